"""
Language detection for source snippets

Two passes:
- Smoking gun: near-unique textual markers return immediately with a fixed confidence
- Weighted scoring: every language sums its pattern weights minus negative
  pattern penalties; the best score wins and its confidence is rescaled by
  snippet length
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("typescript", "python", "go", "rust", "java", "cpp", "c", "ruby", "php")

DEFAULT_LANGUAGE = "typescript"


@dataclass(frozen=True)
class LanguageDetectionResult:
    language: str
    dialect: Optional[str]
    confidence: float
    indicators: List[str] = field(default_factory=list)
    detection_method: str = "weighted"  # smoking-gun | weighted | fallback


@dataclass(frozen=True)
class SmokingGun:
    regex: Pattern
    language: str
    indicator: str
    confidence: float


@dataclass(frozen=True)
class WeightedPattern:
    regex: Pattern
    weight: float
    indicator: str
    # (line count below which the boost applies, multiplier)
    short_snippet_boost: Optional[Tuple[int, float]] = None


@dataclass(frozen=True)
class NegativePattern:
    regex: Pattern
    penalty: float
    reason: str


@dataclass(frozen=True)
class LanguageProfile:
    name: str
    patterns: Tuple[WeightedPattern, ...]
    negative_patterns: Tuple[NegativePattern, ...] = ()
    dialect_detector: Optional[Callable[[str], Optional[str]]] = None


def _p(pattern: str, flags: int = re.M) -> Pattern:
    return re.compile(pattern, flags)


# ===========================================
# Pass 1: smoking guns (checked in order)
# ===========================================

SMOKING_GUN_PATTERNS = (
    SmokingGun(_p(r"<\?php", re.I), "php", "<?php opening tag", 0.98),
    SmokingGun(_p(r"^package\s+main\b"), "go", "package main", 0.95),
    SmokingGun(_p(r"fn\s+main\s*\(\s*\)\s*(\{|->)"), "rust", "fn main()", 0.95),
    SmokingGun(_p(r"def\s+__init__\s*\(\s*self"), "python", "def __init__(self", 0.92),
    SmokingGun(_p(r"interface\s+\w+\s*\{[\s\S]*?:\s*(string|number|boolean|any)"), "typescript",
               "interface with type annotations", 0.95),
    SmokingGun(_p(r"use\s+\w+(::\w+)+;"), "rust", "use crate::path", 0.90),
    SmokingGun(_p(r"pub\s+fn\s+\w+"), "rust", "pub fn", 0.88),
    SmokingGun(_p(r"System\.(out|err)\.(print|println)"), "java", "System.out", 0.92),
    SmokingGun(_p(r"std::\w+"), "cpp", "std:: namespace", 0.88),
)


# ===========================================
# Dialects
# ===========================================

def _php_dialect(code: str) -> Optional[str]:
    if re.search(r"declare\s*\(\s*strict_types\s*=\s*1\s*\)", code):
        return "PHP 7+"
    if re.search(r"namespace\s+", code):
        return "PHP 5.3+"
    return None


def _typescript_dialect(code: str) -> Optional[str]:
    if re.search(r"as\s+const", code):
        return "TypeScript 3.4+"
    if re.search(r"enum\s+\w+", code):
        return "TypeScript"
    return "TypeScript/ES6+"


def _python_dialect(code: str) -> Optional[str]:
    if re.search(r":\s*\w+\s*=|\)\s*->\s*\w+", code):
        return "Python 3.5+"
    if re.search(r"print\s*\(", code):
        return "Python 3"
    if re.search(r"print\s+[^(]", code):
        return "Python 2"
    return "Python 3"


# ===========================================
# Pass 2: weighted patterns
# ===========================================

LANGUAGE_PROFILES = (
    LanguageProfile(
        name="php",
        patterns=(
            WeightedPattern(_p(r"<\?php", re.I), 50, "<?php tag"),
            WeightedPattern(_p(r"\$[a-zA-Z_]\w*\s*="), 15, "$variable assignment", (5, 1.5)),
            WeightedPattern(_p(r"->\w+"), 12, "-> operator"),
            WeightedPattern(_p(r"namespace\s+[\w\\]+;"), 10, "namespace declaration"),
            WeightedPattern(_p(r"use\s+[\w\\]+;"), 6, "use statement"),
            WeightedPattern(_p(r"echo|print_r|var_dump"), 10, "PHP output function"),
            WeightedPattern(_p(r"function\s+\w+\s*\([^)]*\)\s*\{"), 5, "function declaration"),
        ),
        negative_patterns=(
            NegativePattern(_p(r"import\s+.*from"), 15, "ES6 import (not PHP)"),
            NegativePattern(_p(r":\s*(string|number|boolean)\b"), 20, "TypeScript types"),
            NegativePattern(_p(r"def\s+\w+.*:"), 15, "Python function"),
        ),
        dialect_detector=_php_dialect,
    ),
    LanguageProfile(
        name="typescript",
        patterns=(
            WeightedPattern(_p(r":\s*(string|number|boolean|any|void|never|unknown)\b"), 20,
                            "type annotation", (5, 2.0)),
            WeightedPattern(_p(r"interface\s+\w+"), 25, "interface declaration", (5, 2.5)),
            WeightedPattern(_p(r"type\s+\w+\s*="), 22, "type alias"),
            WeightedPattern(_p(r"<[A-Z]\w*>"), 15, "generic type"),
            WeightedPattern(_p(r"as\s+(const|[A-Z]\w*)"), 16, "type assertion"),
            WeightedPattern(_p(r"import\s+.*\s+from\s+['\"][^'\"]+['\"]"), 8, "ES6 import"),
            WeightedPattern(_p(r"export\s+(default|const|function|class|interface|type)"), 10, "ES6 export"),
            WeightedPattern(_p(r"enum\s+\w+"), 22, "enum declaration"),
            WeightedPattern(_p(r"public|private|protected|readonly"), 18, "access modifier"),
        ),
        negative_patterns=(
            NegativePattern(_p(r"def\s+\w+.*:"), 20, "Python function"),
            NegativePattern(_p(r"fn\s+\w+"), 15, "Rust function"),
            NegativePattern(_p(r"\bgo\s+\w+\("), 20, "Go goroutine"),
        ),
        dialect_detector=_typescript_dialect,
    ),
    LanguageProfile(
        name="python",
        patterns=(
            WeightedPattern(_p(r"^from\s+\w+\s+import"), 20, "from...import statement"),
            WeightedPattern(_p(r"^import\s+\w+"), 15, "import statement"),
            WeightedPattern(_p(r"def\s+\w+\s*\([^)]*\)\s*:"), 18, "def function", (5, 1.8)),
            WeightedPattern(_p(r"class\s+\w+[\s\S]*?:"), 15, "class definition"),
            WeightedPattern(_p(r"@\w+"), 12, "decorator"),
            WeightedPattern(_p(r"if\s+__name__\s*==\s*['\"]__main__['\"]"), 18, "__main__ check"),
            WeightedPattern(_p(r":\s*\w+\s*=|\)\s*->\s*\w+"), 12, "type hint"),
            WeightedPattern(_p(r"print\s*\("), 10, "print function"),
            WeightedPattern(_p(r"\bself\b"), 10, "self parameter"),
        ),
        negative_patterns=(
            NegativePattern(_p(r";\s*$"), 10, "Statement semicolons (not Python)"),
            NegativePattern(_p(r"\{[^}]*\}"), 5, "Curly braces block"),
            NegativePattern(_p(r"fn\s+\w+"), 20, "Rust function"),
        ),
        dialect_detector=_python_dialect,
    ),
    LanguageProfile(
        name="go",
        patterns=(
            WeightedPattern(_p(r"^package\s+\w+"), 25, "package declaration", (5, 2.0)),
            WeightedPattern(_p(r"^import\s+\("), 20, "import block"),
            WeightedPattern(_p(r"func\s+\w+\s*\("), 18, "func declaration"),
            WeightedPattern(_p(r"func\s+main\s*\(\s*\)"), 22, "main function"),
            WeightedPattern(_p(r":="), 15, ":= short declaration", (5, 1.5)),
            WeightedPattern(_p(r"\bgo\s+\w+\("), 20, "goroutine"),
            WeightedPattern(_p(r"chan\s+\w+"), 18, "channel type"),
            WeightedPattern(_p(r"defer\s+"), 16, "defer statement"),
            WeightedPattern(_p(r"\brange\s+"), 10, "range keyword"),
        ),
        negative_patterns=(
            NegativePattern(_p(r"def\s+\w+"), 20, "Python/Ruby function"),
            NegativePattern(_p(r"interface\s+\w+\s*\{[^}]*:"), 15, "TypeScript interface"),
        ),
    ),
    LanguageProfile(
        name="rust",
        patterns=(
            WeightedPattern(_p(r"fn\s+main\s*\(\s*\)"), 25, "fn main()", (5, 2.0)),
            WeightedPattern(_p(r"fn\s+\w+"), 15, "fn declaration"),
            WeightedPattern(_p(r"use\s+\w+(::\w+)*"), 18, "use statement"),
            WeightedPattern(_p(r"pub\s+(fn|struct|enum|trait)"), 20, "pub visibility"),
            WeightedPattern(_p(r"let\s+mut\s+"), 16, "let mut binding", (5, 1.5)),
            WeightedPattern(_p(r"impl\s+\w+"), 18, "impl block"),
            WeightedPattern(_p(r"&mut\s+\w+|&\w+"), 12, "reference/borrow"),
            WeightedPattern(_p(r"::\w+"), 10, ":: path separator"),
            WeightedPattern(_p(r"match\s+\w+\s*\{"), 15, "match expression"),
        ),
        negative_patterns=(
            NegativePattern(_p(r"function\s+\w+"), 15, "JavaScript function"),
            NegativePattern(_p(r"def\s+\w+"), 20, "Python function"),
        ),
    ),
    LanguageProfile(
        name="java",
        patterns=(
            WeightedPattern(_p(r"^package\s+[\w.]+;"), 22, "package statement"),
            WeightedPattern(_p(r"^import\s+[\w.]+;"), 15, "import statement"),
            WeightedPattern(_p(r"(public|private|protected)\s+class\s+\w+"), 20, "class declaration"),
            WeightedPattern(_p(r"(public|private|protected)\s+static\s+void\s+main"), 28, "main method", (10, 1.5)),
            WeightedPattern(_p(r"System\.(out|err)\.(print|println)"), 20, "System.out"),
            WeightedPattern(_p(r"@Override|@Deprecated|@SuppressWarnings"), 15, "annotation"),
            WeightedPattern(_p(r"new\s+\w+\s*\("), 8, "new keyword"),
            WeightedPattern(_p(r"extends\s+\w+|implements\s+\w+"), 12, "extends/implements"),
        ),
        negative_patterns=(
            NegativePattern(_p(r"fn\s+\w+"), 20, "Rust function"),
            NegativePattern(_p(r"def\s+\w+"), 15, "Python function"),
            NegativePattern(_p(r"func\s+\w+"), 15, "Go function"),
        ),
    ),
    LanguageProfile(
        name="cpp",
        patterns=(
            WeightedPattern(_p(r"#include\s*<[^>]+>"), 15, "#include <>"),
            WeightedPattern(_p(r"std::"), 22, "std:: namespace", (10, 1.5)),
            WeightedPattern(_p(r"using\s+namespace\s+std;"), 20, "using namespace std"),
            WeightedPattern(_p(r"class\s+\w+"), 12, "class declaration"),
            WeightedPattern(_p(r"template\s*<[^>]+>"), 18, "template"),
            WeightedPattern(_p(r"::(public|private|protected)"), 15, ":: access specifier"),
            WeightedPattern(_p(r"cout|cin|endl"), 16, "iostream operator"),
            WeightedPattern(_p(r"new\s+\w+|delete\s+"), 10, "new/delete"),
            WeightedPattern(_p(r"virtual\s+"), 12, "virtual keyword"),
        ),
        negative_patterns=(
            NegativePattern(_p(r"def\s+\w+"), 20, "Python function"),
            NegativePattern(_p(r"fn\s+\w+"), 20, "Rust function"),
            NegativePattern(_p(r"func\s+\w+"), 15, "Go function"),
        ),
    ),
    LanguageProfile(
        name="c",
        patterns=(
            WeightedPattern(_p(r"#include\s*[\"<]\w+\.h[\">]"), 20, "#include .h", (10, 1.5)),
            WeightedPattern(_p(r"int\s+main\s*\("), 22, "int main()"),
            WeightedPattern(_p(r"printf|scanf|malloc|free"), 16, "C standard library"),
            WeightedPattern(_p(r"struct\s+\w+"), 12, "struct declaration"),
            WeightedPattern(_p(r"typedef\s+"), 10, "typedef"),
            WeightedPattern(_p(r"->\w+"), 8, "-> operator"),
            WeightedPattern(_p(r"sizeof\s*\("), 10, "sizeof operator"),
        ),
        negative_patterns=(
            NegativePattern(_p(r"std::"), 25, "C++ namespace"),
            NegativePattern(_p(r"class\s+\w+"), 20, "C++ class"),
            NegativePattern(_p(r"template\s*<"), 25, "C++ template"),
        ),
    ),
    LanguageProfile(
        name="ruby",
        patterns=(
            WeightedPattern(_p(r"require\s+['\"][^'\"]+['\"]"), 16, "require statement"),
            WeightedPattern(_p(r"def\s+\w+"), 15, "def method"),
            WeightedPattern(_p(r"class\s+\w+\s*<"), 15, "class inheritance"),
            WeightedPattern(_p(r"module\s+\w+"), 16, "module declaration"),
            WeightedPattern(_p(r"\.each\s+do\s*\|"), 20, ".each do block", (5, 1.8)),
            WeightedPattern(_p(r"@\w+"), 10, "instance variable"),
            WeightedPattern(_p(r"puts|print|p\s+"), 8, "Ruby output"),
            WeightedPattern(_p(r"end\b"), 6, "end keyword"),
            WeightedPattern(_p(r":\w+"), 8, "symbol"),
        ),
        negative_patterns=(
            NegativePattern(_p(r";\s*$"), 12, "Statement semicolons"),
            NegativePattern(_p(r"fn\s+\w+"), 20, "Rust function"),
            NegativePattern(_p(r"func\s+\w+"), 15, "Go function"),
        ),
    ),
)

_PROFILES_BY_NAME: Dict[str, LanguageProfile] = {profile.name: profile for profile in LANGUAGE_PROFILES}


def adaptive_confidence(score: float, line_count: int, indicator_count: int) -> float:
    """Scale a raw score into [0, 1] by snippet length.

    Short snippets get a looser denominator and a boost; long snippets need
    more evidence but earn up to 0.15 for indicator diversity.
    """
    if line_count <= 3:
        return min(min(score / 40, 1.0) * 1.3, 1.0)
    if line_count <= 10:
        return min(min(score / 45, 1.0) * 1.15, 1.0)
    if line_count <= 50:
        return min(score / 50, 1.0)
    diversity_bonus = min(indicator_count / 10, 0.15)
    return min(min(score / 55, 1.0) + diversity_bonus, 1.0)


def _dialect_for(language: str, code: str) -> Optional[str]:
    profile = _PROFILES_BY_NAME.get(language)
    if profile is None or profile.dialect_detector is None:
        return None
    return profile.dialect_detector(code)


def _score_profile(profile: LanguageProfile, code: str, line_count: int) -> Tuple[float, List[str]]:
    score = 0.0
    indicators = []
    for pattern in profile.patterns:
        if pattern.regex.search(code):
            weight = pattern.weight
            if pattern.short_snippet_boost is not None:
                max_lines, multiplier = pattern.short_snippet_boost
                if line_count < max_lines:
                    weight *= multiplier
            score += weight
            indicators.append(pattern.indicator)
    for negative in profile.negative_patterns:
        if negative.regex.search(code):
            score -= negative.penalty
            indicators.append(f"-{negative.reason}")
    return score, indicators


def detect_language(code: str) -> LanguageDetectionResult:
    """Detect the language of a snippet"""
    if not code or not code.strip():
        return LanguageDetectionResult(
            language=DEFAULT_LANGUAGE,
            dialect=None,
            confidence=0.0,
            indicators=["empty code"],
            detection_method="fallback",
        )

    line_count = len(code.split("\n"))

    for gun in SMOKING_GUN_PATTERNS:
        if gun.regex.search(code):
            logger.debug(f"Smoking gun for {gun.language}: {gun.indicator}")
            return LanguageDetectionResult(
                language=gun.language,
                dialect=_dialect_for(gun.language, code),
                confidence=gun.confidence,
                indicators=[gun.indicator],
                detection_method="smoking-gun",
            )

    best_language = DEFAULT_LANGUAGE
    best_score = 0.0
    best_indicators: List[str] = []

    # Strictly greater: ties keep the earlier profile
    for profile in LANGUAGE_PROFILES:
        score, indicators = _score_profile(profile, code, line_count)
        if score > best_score:
            best_language, best_score, best_indicators = profile.name, score, indicators

    if best_score <= 0:
        return LanguageDetectionResult(
            language=DEFAULT_LANGUAGE,
            dialect=None,
            confidence=0.1,
            indicators=["no patterns matched"],
            detection_method="fallback",
        )

    positive = [indicator for indicator in best_indicators if not indicator.startswith("-")]
    confidence = adaptive_confidence(best_score, line_count, len(positive))
    logger.debug(f"Weighted detection: {best_language} (score {best_score}, confidence {confidence:.2f})")

    return LanguageDetectionResult(
        language=best_language,
        dialect=_dialect_for(best_language, code),
        confidence=round(confidence, 2),
        indicators=positive[:5],
        detection_method="weighted",
    )
