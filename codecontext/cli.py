"""CLI interface for CodeContext"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from tqdm import tqdm

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from codecontext import __version__
from codecontext.config import load_config_overrides
from codecontext.context_detector import CodeContext, characterize
from codecontext.parsing import parse_source
from codecontext.static_analysis.complexity_analyzer import ComplexityAnalysisResult, analyze_complexity
from codecontext.static_analysis.language_detector import detect_language
from codecontext.translation_validator import validate_translation_code


def _read(path: str) -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError:
        click.echo(f"[ERROR] {path} is not UTF-8 text")
        return None


def _summary(context: CodeContext) -> dict:
    ir = context.review_ir
    return {
        "language": ir["language"],
        "codeType": ir["codeType"],
        "paradigm": ir["structure"]["paradigm"],
        "functions": ir["structure"]["functions"],
        "time": ir["complexity"]["time"],
        "space": ir["complexity"]["space"],
        "role": ir["guidance"]["role"],
        "confidence": context.confidence.overall,
    }


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="YAML file with configuration overrides")
def main(verbose: bool, config_path: Optional[str]):
    """CodeContext - characterize source snippets for review and translation

    Language, libraries, paradigm, code type and complexity are detected from
    a single snippet and summarized as a versioned Review-IR record.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if config_path:
        try:
            load_config_overrides(config_path)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--config")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the Review-IR as JSON")
def analyze(file: str, as_json: bool):
    """Characterize a source file"""
    code = _read(file)
    if code is None:
        sys.exit(1)

    context = characterize(code)
    if context is None:
        click.echo(f"[ERROR] Could not analyze {file}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(context.review_ir, indent=2))
        return

    ir = context.review_ir
    click.echo(f"\n{'=' * 60}")
    click.echo(f"CODE CONTEXT: {file}")
    click.echo(f"{'=' * 60}")
    click.echo(f"  Language:    {ir['language']} ({context.language.confidence:.0%}, {context.language.detection_method})")
    click.echo(f"  Code type:   {ir['codeType']}")
    click.echo(f"  Paradigm:    {ir['structure']['paradigm']}")
    click.echo(f"  Intent:      {ir['intent']['description']}")
    click.echo(f"  Structure:   {ir['structure']['functions']} functions, {ir['structure']['classes']} classes, "
               f"{ir['structure']['linesOfCode']} lines")
    click.echo(f"  Complexity:  time {ir['complexity']['time']}, space {ir['complexity']['space']}")
    click.echo(f"  Testability: {ir['quality']['testability']}/100")
    click.echo(f"  Role:        {ir['guidance']['role']}")

    if context.confidence.is_llm_ready:
        click.echo(f"\n  [OK] Ready for model review (confidence {context.confidence.overall:.2f})")
    else:
        click.echo(f"\n  [WARNING] Low context confidence ({context.confidence.overall:.2f})")
    for warning in ir["guidance"]["warnings"]:
        click.echo(f"    - {warning}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def language(file: str):
    """Detect the language of a source file"""
    code = _read(file)
    if code is None:
        sys.exit(1)

    result = detect_language(code)
    dialect = f" ({result.dialect})" if result.dialect else ""
    click.echo(f"[OK] {result.language}{dialect} - confidence {result.confidence:.2f} via {result.detection_method}")
    for indicator in result.indicators:
        click.echo(f"  - {indicator}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def complexity(file: str):
    """Estimate time and space complexity of a source file"""
    code = _read(file)
    if code is None:
        sys.exit(1)

    detected = detect_language(code)
    cst = parse_source(code, detected.language)
    if cst is None:
        result = ComplexityAnalysisResult.unknown()
    else:
        result = analyze_complexity(cst, detected.language)

    worst = result.time_complexity.worst_case
    click.echo(f"Time:  {worst.big_o} - {worst.explanation}")
    for item in worst.breakdown:
        click.echo(f"  - {item.location}: {item.operation} {item.complexity} ({item.reasoning})")
    click.echo(f"Space: {result.space_complexity.big_o} - {result.space_complexity.explanation}")

    if result.dominant_operations:
        click.echo("\nDominant operations:")
        for op in result.dominant_operations:
            click.echo(f"  - {op.type} at {op.location}: {op.complexity}")
    if result.optimization_suggestions:
        click.echo("\nSuggestions:")
        for suggestion in result.optimization_suggestions:
            click.echo(f"  - {suggestion.current} -> {suggestion.improved}: {suggestion.technique}")


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("translated", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the full validation result as JSON")
def validate(source: str, translated: str, as_json: bool):
    """Check that TRANSLATED preserves the characterization of SOURCE"""
    source_code = _read(source)
    translated_code = _read(translated)
    if source_code is None or translated_code is None:
        sys.exit(1)

    result = validate_translation_code(source_code, translated_code)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        status = "[OK] Translation valid" if result.is_valid else "[ERROR] Translation not valid"
        click.echo(f"{status} (score {result.score:.2f})")
        for label, issues in (("CRITICAL", result.critical), ("WARNING", result.warnings), ("INFO", result.info)):
            for issue in issues:
                detail = f" (expected {issue.expected}, got {issue.actual})" if issue.expected is not None else ""
                click.echo(f"  [{label}] {issue.message}{detail}")

    if not result.is_valid:
        sys.exit(1)


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--pattern", default="**/*", show_default=True, help="Glob pattern for files to analyze")
@click.option("--output", type=click.Path(), help="Path to output JSON file")
def batch(directory: str, pattern: str, output: Optional[str]):
    """Analyze every matching file under DIRECTORY"""
    files = sorted(p for p in Path(directory).glob(pattern) if p.is_file())
    if not files:
        click.echo(f"[ERROR] No files match {pattern} in {directory}")
        sys.exit(1)

    results = {}
    failures = 0
    for path in tqdm(files, desc="Analyzing"):
        try:
            code = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Skipping non-UTF-8 file {path}")
            failures += 1
            continue

        context = characterize(code)
        if context is None:
            failures += 1
            results[str(path)] = {"error": "Analysis failed"}
            continue
        results[str(path)] = _summary(context)

    summary = {"files": len(files), "analyzed": len(files) - failures, "failed": failures, "results": results}

    if output:
        with open(output, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)
        click.echo(f"\n[OK] Analyzed {summary['analyzed']}/{len(files)} files, summary saved to: {output}")
    else:
        click.echo(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
