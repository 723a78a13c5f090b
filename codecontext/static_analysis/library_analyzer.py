"""
Library and framework analysis

Extracts:
- Imported modules, verbatim from the CST (import / include / use / require)
- Library categories (standard, framework, utility, testing, database, ui)
- Frameworks, from imports and API usage across the full source text
- External interactions and the determinism they imply
- Error-handling strategy and the output contract
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .cst import CSTNode

logger = logging.getLogger(__name__)

LIBRARY_CATEGORIES = ("standard", "framework", "utility", "testing", "database", "ui", "unknown")

STANDARD_LIBS = {
    "typescript": {"fs", "path", "http", "https", "util", "os", "crypto", "stream", "events", "buffer",
                   "child_process", "url", "querystring", "readline", "fs/promises", "assert", "zlib"},
    "python": {"sys", "os", "math", "re", "json", "datetime", "collections", "itertools", "functools",
               "pathlib", "typing", "random", "time", "io", "subprocess", "urllib", "http", "socket",
               "threading", "multiprocessing", "asyncio", "unittest", "logging", "argparse", "copy",
               "dataclasses", "enum", "abc", "hashlib", "string", "struct", "csv", "shutil", "tempfile",
               "uuid", "heapq", "bisect", "statistics", "decimal", "fractions", "glob", "pickle", "sqlite3"},
    "go": {"fmt", "os", "io", "time", "strings", "strconv", "math", "math/rand", "sync", "encoding/json",
           "net/http", "context", "errors", "log", "testing", "bytes", "bufio", "path", "path/filepath", "sort"},
    "rust": {"std", "core", "alloc"},
    "java": {"java.lang", "java.util", "java.io", "java.nio", "java.net", "java.math", "java.time",
             "java.text", "java.util.concurrent", "java.util.stream", "java.util.function"},
    "cpp": {"iostream", "vector", "string", "map", "set", "algorithm", "memory", "cmath", "cstring",
            "cstdlib", "cstdio", "fstream", "sstream", "thread", "mutex", "atomic", "unordered_map",
            "unordered_set", "queue", "stack", "deque", "functional", "numeric", "chrono", "random"},
    "c": {"stdio.h", "stdlib.h", "string.h", "math.h", "time.h", "ctype.h", "limits.h", "stdint.h",
          "stdbool.h", "assert.h", "errno.h", "stddef.h", "unistd.h", "pthread.h"},
    "ruby": {"fileutils", "json", "yaml", "uri", "net/http", "time", "date", "set", "ostruct", "tempfile",
             "pathname", "digest", "base64", "securerandom"},
    "php": {"PDO", "DateTime", "Exception", "ArrayObject", "SplFileObject", "DirectoryIterator"},
}

# name -> (category, framework display name)
LIBRARY_TABLE: Dict[str, Tuple[str, Optional[str]]] = {
    # JavaScript / TypeScript
    "react": ("framework", "React"),
    "vue": ("framework", "Vue"),
    "angular": ("framework", "Angular"),
    "@angular": ("framework", "Angular"),
    "express": ("framework", "Express"),
    "next": ("framework", "Next.js"),
    "nest": ("framework", "NestJS"),
    "@nestjs": ("framework", "NestJS"),
    "svelte": ("framework", "Svelte"),
    "lodash": ("utility", None),
    "axios": ("utility", None),
    "moment": ("utility", None),
    "dayjs": ("utility", None),
    "jest": ("testing", None),
    "mocha": ("testing", None),
    "chai": ("testing", None),
    "vitest": ("testing", None),
    "testing-library": ("testing", None),
    "mongoose": ("database", None),
    "sequelize": ("database", None),
    "prisma": ("database", None),
    "typeorm": ("database", None),
    "styled-components": ("ui", None),
    "tailwindcss": ("ui", None),
    "material-ui": ("ui", None),
    "@mui": ("ui", None),
    "antd": ("ui", None),
    "lucide-react": ("ui", None),
    # Python
    "django": ("framework", "Django"),
    "flask": ("framework", "Flask"),
    "fastapi": ("framework", "FastAPI"),
    "tornado": ("framework", "Tornado"),
    "numpy": ("utility", None),
    "pandas": ("utility", None),
    "requests": ("utility", None),
    "pytest": ("testing", None),
    "unittest": ("testing", None),
    "sqlalchemy": ("database", None),
    "pymongo": ("database", None),
    "psycopg2": ("database", None),
    "tkinter": ("ui", None),
    "pyside": ("ui", None),
    # Go
    "gin": ("framework", "Gin"),
    "echo": ("framework", "Echo"),
    "fiber": ("framework", "Fiber"),
    "gorm": ("database", None),
    "testify": ("testing", None),
    # Rust
    "actix": ("framework", "Actix"),
    "actix_web": ("framework", "Actix"),
    "rocket": ("framework", "Rocket"),
    "axum": ("framework", "Axum"),
    "tokio": ("framework", None),
    "diesel": ("database", None),
    "sqlx": ("database", None),
    # Java
    "springframework": ("framework", "Spring"),
    "spring": ("framework", "Spring"),
    "hibernate": ("database", None),
    "junit": ("testing", None),
    "mockito": ("testing", None),
    # Ruby
    "rails": ("framework", "Rails"),
    "sinatra": ("framework", "Sinatra"),
    "rspec": ("testing", None),
    "activerecord": ("database", None),
    # PHP
    "laravel": ("framework", "Laravel"),
    "illuminate": ("framework", "Laravel"),
    "symfony": ("framework", "Symfony"),
    "phpunit": ("testing", None),
    "doctrine": ("database", None),
}

# framework -> imports, usage indicators, confidence
FRAMEWORK_PATTERNS = {
    "React": {
        "imports": ["react", "react-dom", "react-router"],
        "indicators": ["useState", "useEffect", "useContext", "useReducer", "React.Component", "createElement"],
        "confidence": 0.95,
    },
    "Vue": {
        "imports": ["vue", "vue-router", "vuex", "pinia"],
        "indicators": ["createApp", "ref", "reactive", "computed", "watch", "defineComponent"],
        "confidence": 0.95,
    },
    "Angular": {
        "imports": ["@angular/core", "@angular/common", "@angular/router"],
        "indicators": ["@Component", "@NgModule", "@Injectable", "@Directive"],
        "confidence": 0.98,
    },
    "Express": {
        "imports": ["express"],
        "indicators": ["app.get", "app.post", "app.use", "app.listen", "req.", "res."],
        "confidence": 0.90,
    },
    "Django": {
        "imports": ["django"],
        "indicators": ["models.Model", "HttpResponse", "render", "urlpatterns"],
        "confidence": 0.95,
    },
    "Flask": {
        "imports": ["flask"],
        "indicators": ["Flask", "route", "request", "render_template", "jsonify"],
        "confidence": 0.90,
    },
    "FastAPI": {
        "imports": ["fastapi"],
        "indicators": ["FastAPI", "APIRouter", "HTTPException", "Depends"],
        "confidence": 0.95,
    },
    "Gin": {
        "imports": ["gin"],
        "indicators": ["gin.Default", "gin.Context", "c.JSON"],
        "confidence": 0.90,
    },
    "Spring": {
        "imports": ["org.springframework"],
        "indicators": ["@SpringBootApplication", "@RestController", "@Service", "@Autowired"],
        "confidence": 0.95,
    },
    "Rails": {
        "imports": ["rails"],
        "indicators": ["ActiveRecord", "ActionController", "render", "redirect_to"],
        "confidence": 0.90,
    },
}

PACKAGE_MANAGERS = {
    "typescript": "npm",
    "python": "pip",
    "go": "go-mod",
    "rust": "cargo",
    "java": "maven",
    "ruby": "gem",
    "php": "composer",
}

FRAMEWORK_FLOOR = 0.5
USAGE_DISCOUNT = 0.7
MIN_USAGE_INDICATORS = 2


# ===========================================
# Result types
# ===========================================

@dataclass(frozen=True)
class LibraryInfo:
    name: str
    category: str
    is_standard_lib: bool
    import_path: str


@dataclass(frozen=True)
class FrameworkInfo:
    name: str
    confidence: float
    indicators: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NondeterministicSource:
    source: str
    severity: str  # high | medium | low
    explanation: str


@dataclass(frozen=True)
class DeterminismClassification:
    determinism_class: str
    value_stability: str   # stable | unstable | conditional
    order_stability: str   # stable | unstable | unordered
    has_race_conditions: bool
    has_time_dependency: bool
    has_randomness: bool
    has_external_state: bool
    llm_guidance: str


@dataclass(frozen=True)
class DeterminismReasoning:
    is_deterministic: bool
    confidence: float
    reasoning: List[str]
    nondeterministic_sources: List[NondeterministicSource]
    classification: DeterminismClassification


@dataclass(frozen=True)
class ExternalInteractionAnalysis:
    types: List[str]
    confidence: float
    indicators: List[str]
    is_deterministic: bool
    nondeterministic_sources: List[str]
    determinism_reasoning: DeterminismReasoning


@dataclass(frozen=True)
class ErrorHandlingStrategy:
    approach: str  # exceptions | result-types | panic | silent | mixed | unknown
    confidence: float
    indicators: List[str]
    has_error_handling: bool


@dataclass(frozen=True)
class OutputContract:
    return_types: List[str]
    structure: str  # primitive | object | array | union | unknown
    semantic_meaning: str
    guarantees: List[str]
    uncertainties: List[str]


@dataclass(frozen=True)
class LibraryAnalysisResult:
    libraries: List[LibraryInfo]
    frameworks: List[FrameworkInfo]
    package_manager: Optional[str]
    external_interactions: ExternalInteractionAnalysis
    error_handling: ErrorHandlingStrategy
    output_contract: OutputContract

    @classmethod
    def unavailable(cls, reason: str = "CST not available") -> "LibraryAnalysisResult":
        classification = DeterminismClassification(
            determinism_class="fully-deterministic",
            value_stability="stable",
            order_stability="stable",
            has_race_conditions=False,
            has_time_dependency=False,
            has_randomness=False,
            has_external_state=False,
            llm_guidance=FULLY_DETERMINISTIC_GUIDANCE,
        )
        reasoning = DeterminismReasoning(
            is_deterministic=True,
            confidence=0.0,
            reasoning=[reason],
            nondeterministic_sources=[],
            classification=classification,
        )
        return cls(
            libraries=[],
            frameworks=[],
            package_manager=None,
            external_interactions=ExternalInteractionAnalysis(
                types=["none"],
                confidence=0.0,
                indicators=[],
                is_deterministic=True,
                nondeterministic_sources=[],
                determinism_reasoning=reasoning,
            ),
            error_handling=ErrorHandlingStrategy(approach="unknown", confidence=0.0,
                                                 indicators=[], has_error_handling=False),
            output_contract=OutputContract(return_types=[], structure="unknown",
                                           semantic_meaning="Unspecified output",
                                           guarantees=[], uncertainties=[reason]),
        )


# ===========================================
# Import extraction
# ===========================================

RUBY_REQUIRE = re.compile(r"^\s*require(?:_relative)?\s*\(?\s*['\"]([^'\"]+)['\"]", re.M)
PHP_USE = re.compile(r"^\s*use\s+\\?([\w\\]+)(?:\s+as\s+\w+)?\s*;", re.M)
LEADING_IDENTIFIER = re.compile(r"[A-Za-z_]\w*")


def _unquote(text: str) -> str:
    return text.strip().strip("'\"`<>")


def _typescript_imports(root: CSTNode) -> List[str]:
    names = []
    for node in root.walk():
        if node.type in ("import_statement", "export_statement"):
            source = node.child_by_field("source")
            if source is not None:
                names.append(_unquote(source.text))
        elif node.type == "call_expression":
            function = node.child_by_field("function")
            if function is not None and function.text == "require":
                arguments = node.child_by_field("arguments")
                strings = arguments.children_of_type("string") if arguments is not None else []
                if strings:
                    names.append(_unquote(strings[0].text))
    return names


def _python_imports(root: CSTNode) -> List[str]:
    names = []
    for node in root.find_by_type("import_statement", "import_from_statement"):
        if node.type == "import_from_statement":
            module = node.child_by_field("module_name")
            # Relative imports are local to the snippet's package
            if module is not None and module.type == "dotted_name":
                names.append(module.text.split(".")[0])
            continue
        for name_node in node.children_by_field("name"):
            target = name_node.child_by_field("name") if name_node.type == "aliased_import" else name_node
            if target is not None:
                names.append(target.text.split(".")[0])
    return names


def _go_imports(root: CSTNode) -> List[str]:
    names = []
    for spec in root.find_by_type("import_spec"):
        path = spec.child_by_field("path")
        if path is not None:
            names.append(_unquote(path.text))
    return names


def _rust_imports(root: CSTNode) -> List[str]:
    names = []
    for node in root.find_by_type("use_declaration", "extern_crate_declaration"):
        argument = node.child_by_field("argument") or node.child_by_field("name")
        text = argument.text if argument is not None else node.text.replace("use", "", 1)
        match = LEADING_IDENTIFIER.search(text)
        if match and match.group(0) not in ("crate", "self", "super"):
            names.append(match.group(0))
    return names


def _java_imports(root: CSTNode) -> List[str]:
    names = []
    for node in root.find_by_type("import_declaration"):
        path = node.first_child_of_type("scoped_identifier", "identifier")
        if path is None:
            continue
        parts = path.text.split(".")
        names.append(".".join(parts[:2]) if len(parts) > 2 else parts[0])
    return names


def _c_includes(root: CSTNode) -> List[str]:
    names = []
    for node in root.find_by_type("preproc_include"):
        path = node.child_by_field("path")
        if path is not None:
            names.append(_unquote(path.text))
    return names


IMPORT_EXTRACTORS = {
    "typescript": _typescript_imports,
    "python": _python_imports,
    "go": _go_imports,
    "rust": _rust_imports,
    "java": _java_imports,
    "c": _c_includes,
    "cpp": _c_includes,
}


def extract_imports(cst: CSTNode, language: str) -> List[str]:
    """Unique imported module names in source order, full text, never truncated"""
    extractor = IMPORT_EXTRACTORS.get(language)
    if extractor is not None:
        names = extractor(cst)
    elif language == "ruby":
        names = RUBY_REQUIRE.findall(cst.text)
    elif language == "php":
        names = [match.split("\\")[-1] for match in PHP_USE.findall(cst.text)]
    else:
        names = []
    return list(dict.fromkeys(name for name in names if name))


# ===========================================
# Categorization
# ===========================================

NAME_SEPARATORS = re.compile(r"[/.:]+")
TOKEN_SEPARATORS = re.compile(r"[^a-z0-9]+")


def name_matches(name: str, key: str) -> bool:
    """Whether an import name refers to a table entry.

    Matches the whole name, a prefix followed by a separator (react-dom,
    @mui/material) or one path segment (github.com/gin-gonic/gin).
    """
    lowered = name.lower()
    key = key.lower()
    for candidate in (lowered, lowered.lstrip("@")):
        if candidate == key:
            return True
        if any(candidate.startswith(key + sep) for sep in "/.-_:"):
            return True
    return key in NAME_SEPARATORS.split(lowered)


def is_standard_library(name: str, language: str) -> bool:
    if name in STANDARD_LIBS.get(language, ()):
        return True
    if language == "go":
        # Standard packages never carry a host name
        return "." not in name.split("/")[0]
    if language == "java":
        return name.startswith(("java.", "javax."))
    return False


def categorize_library(name: str, language: str) -> str:
    for key, (category, _) in LIBRARY_TABLE.items():
        if name_matches(name, key):
            return category

    lowered = name.lower()
    tokens = set(TOKEN_SEPARATORS.split(lowered))
    if any(hint in lowered for hint in ("test", "spec", "mock")):
        return "testing"
    if "db" in tokens or any(hint in lowered for hint in ("sql", "mongo", "redis")):
        return "database"
    if "ui" in tokens or any(hint in lowered for hint in ("component", "styl")):
        return "ui"

    if is_standard_library(name, language):
        return "standard"
    return "unknown"


def _usage_regex(indicator: str) -> re.Pattern:
    tail = r"(?!\w)" if indicator[-1].isalnum() or indicator[-1] == "_" else ""
    return re.compile(r"(?<![\w.])" + re.escape(indicator) + tail)


def detect_frameworks(libraries: List[LibraryInfo], cst: CSTNode) -> List[FrameworkInfo]:
    """Frameworks from imports (full confidence) and API usage (discounted)"""
    frameworks = []
    code_text = cst.text

    for framework_name, pattern in FRAMEWORK_PATTERNS.items():
        confidence = 0.0
        found = []

        imported = [imp for imp in pattern["imports"]
                    if any(name_matches(lib.name, imp) for lib in libraries)]
        if imported:
            confidence = pattern["confidence"]
            found.extend(f"imports {imp}" for imp in imported)

        used = [ind for ind in pattern["indicators"] if _usage_regex(ind).search(code_text)]
        # One common word is not evidence of a framework on its own
        if len(used) >= MIN_USAGE_INDICATORS or (imported and used):
            confidence = max(confidence, pattern["confidence"] * USAGE_DISCOUNT)
            found.extend(f"uses {ind}" for ind in used)

        if confidence > FRAMEWORK_FLOOR and found:
            frameworks.append(FrameworkInfo(
                name=framework_name,
                confidence=round(confidence, 2),
                indicators=found[:3],
            ))

    # Libraries that name a framework in the table count as an import match too
    reported = {fw.name for fw in frameworks}
    for lib in libraries:
        for key, (_, framework_name) in LIBRARY_TABLE.items():
            if framework_name and framework_name not in reported and name_matches(lib.name, key):
                frameworks.append(FrameworkInfo(name=framework_name, confidence=0.9,
                                                indicators=[f"imports {lib.name}"]))
                reported.add(framework_name)

    return sorted(frameworks, key=lambda fw: fw.confidence, reverse=True)


# ===========================================
# External interactions and determinism
# ===========================================

# type, indicator, source, severity, explanation, reasoning, text pattern, library hints
INTERACTION_RULES = (
    ("filesystem", "file I/O", "filesystem", "high", "File contents can change between executions",
     "File system state is external and mutable",
     re.compile(r"readfile|writefile|\bfs\.|\bopen\(|fopen|os\.path|pathlib|ioutil|std::fs|file::open|\bnew file\("),
     ("fs", "pathlib", "shutil", "fileutils", "fstream")),
    ("network", "network requests", "network", "high", "Network responses vary based on server state and availability",
     "Network calls depend on remote state",
     re.compile(r"\bfetch\(|https?://|\bhttp\.|axios|urllib|requests\.|\bsocket\b|xmlhttprequest|reqwest"),
     ("http", "https", "axios", "requests", "socket", "net/http", "reqwest", "urllib")),
    ("database", "database access", "database", "high", "Database content changes over time",
     "Database queries return mutable external state",
     None,
     ("sql", "mongo", "redis", "db")),
    ("environment", "environment variables", "environment", "medium", "Environment variables differ across deployments",
     "Relies on external configuration",
     re.compile(r"process\.env|os\.environ|getenv|env::var|\$_env|\$_server"),
     ()),
    ("process", "process execution", "external-process", "high", "External process output is unpredictable",
     "Executes external processes with variable output",
     re.compile(r"subprocess|child_process|\bexec\(|\bexecsync\(|\bspawn\(|os\.system|exec\.command|"
                r"process::command|runtime\.getruntime|\bsystem\("),
     ("subprocess", "child_process", "os/exec")),
)

RANDOMNESS_PATTERN = re.compile(r"\brandom\b|math\.random|\buuid|rand::|\brand\(|math/rand|securerandom")
TIME_PATTERN = re.compile(r"date\.now|new date\(|datetime\.(now|today|utcnow)|time\.time\(|time\.now\(|"
                          r"instant::now|systemtime::now|currenttimemillis|\btime\(null\)")
CONCURRENCY_PATTERN = re.compile(r"thread|\basync\b|parallel|concurrent|goroutine|promise\.all|\bgo\s+\w+\(")

FULLY_DETERMINISTIC_GUIDANCE = ("Same inputs always produce same outputs in same order. "
                                "Safe to assume stable behavior.")


def _library_hit(lib_names: List[str], hints: Tuple[str, ...]) -> bool:
    for name in lib_names:
        tokens = set(TOKEN_SEPARATORS.split(name))
        for hint in hints:
            if name == hint or hint in tokens or (len(hint) >= 3 and hint in name):
                return True
    return False


def _classify_determinism(is_deterministic: bool, has_race: bool, has_random: bool,
                          has_time: bool, has_external: bool) -> Tuple[str, str, str, str]:
    if is_deterministic:
        return "fully-deterministic", "stable", "stable", FULLY_DETERMINISTIC_GUIDANCE
    if has_race and not has_random and not has_time:
        return ("execution-nondeterministic", "stable", "unstable",
                "Values are deterministic but execution order/timing may vary due to concurrency. "
                "Do NOT assume stable ordering of async operations.")
    if (has_random or has_time) and not has_external:
        return ("weakly-deterministic", "conditional", "stable",
                "Deterministic with fixed seed/timestamp. "
                "Different values on each run unless inputs are controlled.")
    if has_external:
        return ("value-nondeterministic", "unstable", "unstable",
                "Depends on external mutable state (filesystem, network, database). "
                "Values and order both unpredictable.")
    return ("value-nondeterministic", "unstable", "stable",
            "Values change between runs. Cannot assume consistent output.")


def analyze_external_interactions(cst: CSTNode, libraries: List[LibraryInfo]) -> ExternalInteractionAnalysis:
    code_text = cst.text.lower()
    lib_names = [lib.name.lower() for lib in libraries]

    types = []
    indicators = []
    sources: List[NondeterministicSource] = []
    reasoning = []

    for kind, indicator, source, severity, explanation, reason, pattern, hints in INTERACTION_RULES:
        text_hit = pattern is not None and pattern.search(code_text)
        if text_hit or _library_hit(lib_names, hints):
            types.append(kind)
            indicators.append(indicator)
            sources.append(NondeterministicSource(source, severity, explanation))
            reasoning.append(reason)

    has_random = bool(RANDOMNESS_PATTERN.search(code_text))
    if has_random:
        sources.append(NondeterministicSource("randomness", "high", "Uses random number generation"))
        reasoning.append("Generates random values")

    has_time = bool(TIME_PATTERN.search(code_text))
    if has_time:
        sources.append(NondeterministicSource("time", "medium", "Depends on current timestamp"))
        reasoning.append("Reads current time")

    evidence = bool(types or sources)
    if not types:
        types.append("none")

    is_deterministic = not sources
    if is_deterministic:
        reasoning.extend(["No external dependencies detected", "Output depends only on inputs"])

    confidence = 0.9 if evidence else 0.6
    has_race = bool(CONCURRENCY_PATTERN.search(code_text))
    has_external = any(s.source in ("filesystem", "network", "database", "environment") for s in sources)

    determinism_class, value_stability, order_stability, guidance = _classify_determinism(
        is_deterministic, has_race, has_random, has_time, has_external
    )

    determinism = DeterminismReasoning(
        is_deterministic=is_deterministic,
        confidence=confidence,
        reasoning=reasoning[:3],
        nondeterministic_sources=sources,
        classification=DeterminismClassification(
            determinism_class=determinism_class,
            value_stability=value_stability,
            order_stability=order_stability,
            has_race_conditions=has_race,
            has_time_dependency=has_time,
            has_randomness=has_random,
            has_external_state=has_external,
            llm_guidance=guidance,
        ),
    )

    return ExternalInteractionAnalysis(
        types=types,
        confidence=confidence,
        indicators=indicators[:4],
        is_deterministic=is_deterministic,
        nondeterministic_sources=[s.source for s in sources][:3],
        determinism_reasoning=determinism,
    )


# ===========================================
# Error handling and output contract
# ===========================================

TRY_PATTERN = re.compile(r"\btry\b")
CATCH_PATTERN = re.compile(r"\b(catch|except|rescue)\b")
THROW_PATTERN = re.compile(r"\b(throw|throws|raise)\b")
RESULT_PATTERN = re.compile(r"result<|option<|\beither\b|\bok\(|\berr\(|err\s*!=\s*nil")
RUST_PROPAGATION = re.compile(r"\)\?\s*[;.)]")
PANIC_PATTERN = re.compile(r"\bpanic!?\(|\.unwrap\(|\.expect\(|\babort\(")


def analyze_error_handling(cst: CSTNode, language: str) -> ErrorHandlingStrategy:
    code_text = cst.text.lower()
    indicators = []
    score = 0

    has_try_catch = bool(TRY_PATTERN.search(code_text) and CATCH_PATTERN.search(code_text))
    has_throw = bool(THROW_PATTERN.search(code_text))
    has_exceptions = has_try_catch or has_throw
    if has_exceptions:
        score += 2
        indicators.append("try-catch blocks" if has_try_catch else "raised exceptions")

    has_result = bool(RESULT_PATTERN.search(code_text))
    if language == "rust" and RUST_PROPAGATION.search(code_text):
        has_result = True
    if has_result:
        score += 2
        indicators.append("result types")

    has_panic = bool(PANIC_PATTERN.search(code_text))
    if has_panic:
        score += 1
        indicators.append("panic/unwrap")

    has_error_handling = has_exceptions or has_result

    if has_exceptions and not has_result and not has_panic:
        approach = "exceptions"
    elif has_result and not has_exceptions and not has_panic:
        approach = "result-types"
    elif has_panic and not has_error_handling:
        approach = "panic"
    elif has_error_handling and (has_panic or (has_exceptions and has_result)):
        approach = "mixed"
    else:
        approach = "silent"

    return ErrorHandlingStrategy(
        approach=approach,
        confidence=0.85 if score > 0 else 0.3,
        indicators=indicators[:3],
        has_error_handling=has_error_handling,
    )


TS_ARROW_RETURN = re.compile(r":\s*([\w<>\[\]|]+)\s*=>")
TS_FUNCTION_RETURN = re.compile(r"\):\s*([\w<>\[\]|]+)\s*\{")
PY_RETURN_ANNOTATION = re.compile(r"\)\s*->\s*([\w\[\], .|]+?)\s*:")
RETURN_OBJECT = re.compile(r"return\s*\{|return\s+dict\(|return\s+new\s+\w+")
RETURN_ARRAY = re.compile(r"return\s*\[|return\s+(list|vec!)\(|return\s+vec!\[")
RETURN_PRIMITIVE = re.compile(r"return\s+(-?\d+|true|false|True|False|null|None|nil|\"[^\"]*\"|'[^']*')")


def extract_output_contract(cst: CSTNode, language: str) -> OutputContract:
    code_text = cst.text
    guarantees = []
    uncertainties = []

    return_types = []
    if language == "typescript":
        return_types = TS_ARROW_RETURN.findall(code_text) or TS_FUNCTION_RETURN.findall(code_text)
    elif language == "python":
        return_types = [t.strip() for t in PY_RETURN_ANNOTATION.findall(code_text)]
    return_types = list(dict.fromkeys(return_types))

    has_object = bool(RETURN_OBJECT.search(code_text))
    has_array = bool(RETURN_ARRAY.search(code_text))
    has_primitive = bool(RETURN_PRIMITIVE.search(code_text))

    structure = "unknown"
    if has_object:
        structure = "object"
        guarantees.append("Returns structured object")
    elif has_array:
        structure = "array"
        guarantees.append("Returns array/list")
    elif has_primitive:
        structure = "primitive"
        guarantees.append("Returns primitive value")

    if len(return_types) > 1:
        structure = "union"
        uncertainties.append("Multiple return types possible")

    lowered = code_text.lower()
    semantic_meaning = "Unspecified output"
    if "validate" in lowered:
        semantic_meaning = "Validation result (boolean or error)"
        guarantees.append("Indicates validity")
    elif "parse" in lowered:
        semantic_meaning = "Parsed structured data"
        guarantees.append("Structured representation of input")
    elif "format" in lowered or "render" in lowered:
        semantic_meaning = "Formatted output string"
        guarantees.append("Human-readable format")

    if not (has_object or has_array or has_primitive):
        uncertainties.append("No explicit return statements found")

    return OutputContract(
        return_types=return_types,
        structure=structure,
        semantic_meaning=semantic_meaning,
        guarantees=guarantees,
        uncertainties=uncertainties,
    )


def analyze_libraries(cst: CSTNode, language: str) -> LibraryAnalysisResult:
    """Analyze imports, frameworks and external behavior of a snippet"""
    libraries = [
        LibraryInfo(
            name=name,
            category=categorize_library(name, language),
            is_standard_lib=is_standard_library(name, language),
            import_path=name,
        )
        for name in extract_imports(cst, language)
    ]
    logger.debug(f"Found {len(libraries)} imports for {language}")

    return LibraryAnalysisResult(
        libraries=libraries,
        frameworks=detect_frameworks(libraries, cst),
        package_manager=PACKAGE_MANAGERS.get(language),
        external_interactions=analyze_external_interactions(cst, libraries),
        error_handling=analyze_error_handling(cst, language),
        output_contract=extract_output_contract(cst, language),
    )
