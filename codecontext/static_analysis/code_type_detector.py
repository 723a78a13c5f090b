"""
Code type classification

Scores independent hypotheses (test, script, library, application,
configuration). Test code is checked first and wins outright above 0.6.
Afterwards the runnability of the snippet is estimated:
- Execution intent: is it runnable on its own, and what blocks it?
- Execution context: runtime, build steps, package installs, environment
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .adapters import get_adapter
from .cst import CSTNode, count_lines
from .library_analyzer import LibraryAnalysisResult
from .paradigm_detector import CALL_TYPES, NODE_TABLES, callee_text

logger = logging.getLogger(__name__)

CODE_TYPES = ("test", "script", "library", "application", "configuration", "unknown")

TEST_SHORT_CIRCUIT = 0.6
PRIMARY_FLOOR = 0.5
SECONDARY_FLOOR = 0.4
SECONDARY_RATIO = 0.6

TEST_FRAMEWORKS = {
    "jest", "mocha", "chai", "jasmine", "vitest", "ava", "@testing-library",
    "pytest", "unittest", "nose", "doctest",
    "junit", "testng", "mockito",
    "testify", "gotest", "testing",
    "rspec", "minitest",
    "phpunit",
}

TEST_PATTERNS = {
    "typescript": ["describe(", "it(", "test(", "expect(", "assert", "beforeEach(", "afterEach(",
                   "beforeAll(", "afterAll("],
    "python": ["def test_", "class Test", "unittest.TestCase", "pytest", "assert ", "@pytest", "def setUp",
               "def tearDown"],
    "go": ["func Test", "*testing.T", "t.Run(", "t.Error(", "t.Fatal("],
    "rust": ["#[test]", "#[cfg(test)]", "assert_eq!", "assert!", "#[should_panic]"],
    "java": ["@Test", "@Before", "@After", "@BeforeClass", "@AfterClass", "assertEquals", "assertTrue",
             "assertFalse"],
    "cpp": ["TEST(", "EXPECT_", "ASSERT_", "TEST_F(", "GTEST_"],
    "c": ["assert(", "CU_ASSERT", "TEST_"],
    "ruby": ["describe ", "it ", "expect(", "should ", "RSpec", "test_", "assert_"],
    "php": ["function test", "class Test", "PHPUnit", "assertEquals", "assertTrue", "assertFalse"],
}

# Languages without an adapter fall back to text markers
ENTRY_POINT_MARKERS = {
    "ruby": ["if __FILE__ == $0", "if __FILE__ == $PROGRAM_NAME"],
    "php": ["// Entry point", "// Main script"],
}

EXPORT_MARKERS = {
    "ruby": re.compile(r"^\s*(?:module|class)\s+([A-Z]\w*)", re.M),
    "php": re.compile(r"^\s*(?:(?:abstract|final)\s+)?(?:class|interface|trait|function)\s+(\w+)", re.M),
}

RUNTIMES = {
    "typescript": "node",
    "python": "python3",
    "go": "go",
    "rust": "rustc",
    "java": "java",
    "cpp": "g++",
    "c": "gcc",
    "ruby": "ruby",
    "php": "php",
}

BUILD_STEPS = {
    "typescript": ["tsc"],
    "go": ["go build"],
    "rust": ["cargo build"],
    "java": ["javac"],
    "cpp": ["g++"],
    "c": ["gcc"],
}

TEST_RUNNERS = {
    "typescript": "jest",
    "python": "pytest",
    "go": "go test",
    "rust": "cargo test",
    "java": "junit",
    "cpp": "ctest",
    "ruby": "rspec",
    "php": "phpunit",
}

ENV_VAR_PATTERN = re.compile(
    r"process\.env\.(\w+)"
    r"|process\.env\[['\"](\w+)['\"]\]"
    r"|os\.environ(?:\.get)?\(?\[?\s*['\"](\w+)['\"]"
    r"|[Gg]etenv\(\s*['\"](\w+)['\"]"
    r"|env::var\(\s*\"(\w+)\""
    r"|ENV\[\s*['\"](\w+)['\"]\s*\]"
    r"|\$_ENV\[\s*['\"](\w+)['\"]\s*\]"
)

INPUT_MARKERS = (
    ("standard input", re.compile(r"\binput\(|\bscanf\(|\bgets\b|readline|Scanner\(\s*System\.in|"
                                  r"bufio\.NewReader\(os\.Stdin|stdin")),
    ("command-line arguments", re.compile(r"sys\.argv|process\.argv|os\.Args|std::env::args|\bargv\b|ARGV|\$argv")),
    ("files", re.compile(r"\bopen\(|fopen\(|readFile|ReadFile|File::open|new File\(|File\.read")),
)

INITIALIZATION = re.compile(r"\b(?:init|setup|config)", re.I)

LITERAL_TYPES = {
    "string", "number", "integer", "float", "true", "false", "null", "none", "nil",
    "object", "array", "dictionary", "list", "tuple", "set", "hash",
    "string_literal", "raw_string_literal", "interpreted_string_literal", "char_literal",
    "int_literal", "float_literal", "integer_literal", "number_literal", "boolean_literal",
    "decimal_integer_literal", "decimal_floating_point_literal", "composite_literal",
    "array_creation_expression", "initializer_list", "encapsed_string", "boolean", "template_string",
}
DATA_HOLDERS = ("assignment", "declarator", "const_spec", "var_spec", "pair", "keyed_element", "let_declaration",
                "const_item", "static_item")
LOGIC_TYPES = {"if_statement", "switch_statement", "match_expression", "conditional_expression", "ternary_expression",
               "if_expression", "if", "unless", "case"}


@dataclass(frozen=True)
class TypeHypothesis:
    type: str
    confidence: float
    indicators: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExecutionIntent:
    is_runnable: bool
    runnability_score: float
    blockers: List[str]
    required_inputs: List[str]


@dataclass(frozen=True)
class ExecutionContext:
    runtime: Optional[str]
    build_steps: List[str]
    needs_package_install: bool
    environment_variables: List[str]
    test_runner: Optional[str] = None


@dataclass(frozen=True)
class CodeTypeResult:
    type: str
    confidence: float
    indicators: List[str]
    secondary: Optional[TypeHypothesis] = None
    entry_points: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    execution_intent: Optional[ExecutionIntent] = None
    execution_context: Optional[ExecutionContext] = None

    @classmethod
    def unavailable(cls, reason: str = "AST not available") -> "CodeTypeResult":
        return cls(
            type="unknown",
            confidence=0.0,
            indicators=[reason],
            execution_intent=ExecutionIntent(is_runnable=False, runnability_score=0.0,
                                             blockers=[reason], required_inputs=[]),
            execution_context=ExecutionContext(runtime=None, build_steps=[], needs_package_install=False,
                                               environment_variables=[]),
        )


def _marker_regex(marker: str) -> re.Pattern:
    prefix = r"(?<!\w)" if marker[0].isalnum() or marker[0] == "_" else ""
    return re.compile(prefix + re.escape(marker), re.I)


_TEST_REGEXES = {language: [(m, _marker_regex(m)) for m in markers] for language, markers in TEST_PATTERNS.items()}


def _is_test_framework(libraries: LibraryAnalysisResult) -> Optional[str]:
    for lib in libraries.libraries:
        if lib.name.lower() in TEST_FRAMEWORKS or lib.category == "testing":
            return lib.name
    return None


def _count_test_nodes(cst: CSTNode, language: str) -> int:
    function_types = NODE_TABLES.get(language, {}).get("function", set())
    count = 0
    for node in cst.walk():
        if node.type in function_types:
            name_node = node.child_by_field("name")
            if name_node is not None and name_node.text.lower().startswith("test"):
                count += 1
        elif node.type in CALL_TYPES:
            callee = callee_text(node).lower()
            if callee in ("describe", "it", "test") or any(word in callee for word in ("assert", "expect", "should")):
                count += 1
        elif node.type == "assert_statement":
            count += 1
    return count


def detect_test(cst: CSTNode, language: str, libraries: LibraryAnalysisResult) -> TypeHypothesis:
    indicators = []
    score = 0

    framework = _is_test_framework(libraries)
    if framework:
        score += 40
        indicators.append(f"imports {framework}")

    found = [marker for marker, regex in _TEST_REGEXES.get(language, []) if regex.search(cst.text)]
    if found:
        score += len(found) * 10
        indicators.append(f"contains test patterns ({', '.join(found[:2])})")

    test_nodes = _count_test_nodes(cst, language)
    if test_nodes > 2:
        score += min(test_nodes * 5, 30)
        indicators.append(f"{test_nodes} test assertions/functions")

    return TypeHypothesis("test", round(min(score / 100, 1.0), 2), indicators)


def _adapter_entry_points(cst: CSTNode, language: str) -> Tuple[List[str], List[str], bool]:
    """(entry points, exports, has top-level execution) from the language adapter"""
    adapter = get_adapter(language)
    if adapter is None:
        markers = [m for m in ENTRY_POINT_MARKERS.get(language, []) if m in cst.text]
        pattern = EXPORT_MARKERS.get(language)
        exports = pattern.findall(cst.text) if pattern is not None else []
        return markers, list(dict.fromkeys(exports)), False

    entry_points = []
    exports = []
    top_level = False
    for pattern in adapter.detect_entry_points(cst):
        label = pattern.names[0] if pattern.names else pattern.type
        if pattern.type == "main":
            entry_points.append(label)
        elif pattern.type == "export":
            exports.extend(pattern.names)
        elif pattern.type == "global":
            top_level = True

    if language == "python":
        # Every public top-level definition is importable
        for node in cst.children:
            target = node.child_by_field("definition") if node.type == "decorated_definition" else node
            if target is not None and target.type in ("function_definition", "class_definition"):
                name_node = target.child_by_field("name")
                if name_node is not None and not name_node.text.startswith("_"):
                    exports.append(name_node.text)

    return list(dict.fromkeys(entry_points)), list(dict.fromkeys(exports)), top_level


def detect_script(entry_points: List[str], export_count: int, top_level: bool, line_count: int) -> TypeHypothesis:
    indicators = []
    score = 0
    if entry_points:
        score += 40
        indicators.append(f"has entry point ({entry_points[0]})")
    elif top_level:
        score += 25
        indicators.append("top-level execution")
    if export_count == 0:
        score += 20
        indicators.append("no exports")
    elif export_count <= 2:
        score += 10
        indicators.append("minimal exports")
    if line_count < 100:
        score += 15
        indicators.append("simple structure")
    return TypeHypothesis("script", min(score / 100, 1.0), indicators)


def detect_library(cst: CSTNode, language: str, entry_points: List[str], export_count: int) -> TypeHypothesis:
    indicators = []
    score = 0
    if export_count >= 5:
        score += 40
        indicators.append(f"{export_count} exports")
    elif export_count >= 2:
        score += 25
        indicators.append(f"{export_count} exports")
    if not entry_points:
        score += 30
        indicators.append("no main entry point")

    tables = NODE_TABLES.get(language, {})
    definition_types = tables.get("function", set()) | tables.get("class", set())
    definitions = sum(1 for node in cst.walk() if node.is_named and node.type in definition_types)
    if definitions >= 3:
        score += 20
        indicators.append(f"{definitions} definitions")
    return TypeHypothesis("library", min(score / 100, 1.0), indicators)


def detect_application(cst: CSTNode, entry_points: List[str], libraries: LibraryAnalysisResult,
                       line_count: int) -> TypeHypothesis:
    indicators = []
    score = 0
    if entry_points:
        score += 30
        indicators.append("has main entry")
    if libraries.frameworks:
        score += 25
        indicators.append(f"uses {libraries.frameworks[0].name}")
    if INITIALIZATION.search(cst.text):
        score += 15
        indicators.append("has initialization")
    if len(libraries.libraries) >= 5:
        score += 20
        indicators.append(f"{len(libraries.libraries)} dependencies")
    if line_count > 100:
        score += 15
        indicators.append("complex structure")
    return TypeHypothesis("application", min(score / 100, 1.0), indicators)


def _data_and_logic(cst: CSTNode, language: str) -> Tuple[int, int, int]:
    """(literal assignments, logic nodes, functions + loops)"""
    tables = NODE_TABLES.get(language, {})
    structural = tables.get("function", set()) | tables.get("loop", set())

    data = logic = functions_and_loops = 0
    for node in cst.walk():
        if node.is_named and node.type in structural:
            functions_and_loops += 1
            logic += 1
        elif node.type in LOGIC_TYPES or node.type in CALL_TYPES:
            logic += 1
        elif any(holder in node.type for holder in DATA_HOLDERS):
            value = node.child_by_field("value") or node.child_by_field("right")
            if value is None and node.named_children:
                value = node.named_children[-1]
            if value is not None and value.type in LITERAL_TYPES:
                data += 1
    return data, logic, functions_and_loops


def detect_configuration(cst: CSTNode, language: str) -> TypeHypothesis:
    data, logic, functions_and_loops = _data_and_logic(cst, language)
    if functions_and_loops or data < 2:
        return TypeHypothesis("configuration", 0.0, [])

    ratio = data / (data + logic)
    score = ratio * 80 + (20 if data >= 5 else 10)
    indicators = [f"{data} literal assignments", "no functions or loops"]
    if logic:
        indicators.append(f"{logic} logic nodes")
    return TypeHypothesis("configuration", round(min(score / 100, 1.0), 2), indicators)


def environment_variables(code: str) -> List[str]:
    names = []
    for match in ENV_VAR_PATTERN.finditer(code):
        name = next(group for group in match.groups() if group)
        names.append(name)
    return list(dict.fromkeys(names))


def analyze_execution_intent(cst: CSTNode, code_type: str, entry_points: List[str], top_level: bool,
                             libraries: LibraryAnalysisResult, env_vars: List[str]) -> ExecutionIntent:
    score = 1.0
    blockers = []

    runnable_shape = bool(entry_points) or top_level or code_type == "test"
    if not runnable_shape:
        score -= 0.4
        blockers.append("No entry point")

    unresolved = [lib.name for lib in libraries.libraries if not lib.is_standard_lib]
    if unresolved:
        score -= min(0.2 * len(unresolved), 0.4)
        blockers.append(f"Unresolved imports: {', '.join(unresolved[:3])}")

    if env_vars:
        score -= 0.2
        blockers.append(f"Undefined environment: {', '.join(env_vars[:3])}")

    required_inputs = [label for label, pattern in INPUT_MARKERS if pattern.search(cst.text)]
    required_inputs.extend(f"env:{name}" for name in env_vars)

    score = round(max(0.0, score), 2)
    return ExecutionIntent(
        is_runnable=runnable_shape and score >= 0.6,
        runnability_score=score,
        blockers=blockers,
        required_inputs=required_inputs,
    )


def analyze_execution_context(language: str, code_type: str, libraries: LibraryAnalysisResult,
                              env_vars: List[str]) -> ExecutionContext:
    third_party = [lib for lib in libraries.libraries
                   if not lib.is_standard_lib and not lib.name.startswith((".", "/"))]
    test_runner = None
    if code_type == "test":
        test_runner = TEST_RUNNERS.get(language)
        for lib in libraries.libraries:
            if lib.name in ("vitest", "mocha", "jest", "unittest", "rspec", "minitest"):
                test_runner = lib.name
                break
    return ExecutionContext(
        runtime=RUNTIMES.get(language),
        build_steps=list(BUILD_STEPS.get(language, [])),
        needs_package_install=bool(third_party),
        environment_variables=env_vars,
        test_runner=test_runner,
    )


def detect_code_type(cst: CSTNode, language: str, libraries: LibraryAnalysisResult) -> CodeTypeResult:
    """Classify a snippet as test, script, library, application or configuration"""
    entry_points, exports, top_level = _adapter_entry_points(cst, language)
    env_vars = environment_variables(cst.text)
    line_count = count_lines(cst.text)

    test = detect_test(cst, language, libraries)
    secondary = None
    if test.confidence > TEST_SHORT_CIRCUIT:
        primary = test
        code_type = "test"
    else:
        hypotheses = sorted(
            [
                detect_script(entry_points, len(exports), top_level, line_count),
                detect_library(cst, language, entry_points, len(exports)),
                detect_application(cst, entry_points, libraries, line_count),
                detect_configuration(cst, language),
            ],
            key=lambda h: h.confidence,
            reverse=True,
        )
        primary = hypotheses[0]
        code_type = primary.type if primary.confidence > PRIMARY_FLOOR else "unknown"
        runner_up = hypotheses[1]
        if (code_type != "unknown" and runner_up.confidence >= SECONDARY_FLOOR
                and runner_up.confidence >= primary.confidence * SECONDARY_RATIO):
            secondary = runner_up

    logger.debug(f"Code type: {code_type} ({primary.confidence:.2f})")

    return CodeTypeResult(
        type=code_type,
        confidence=round(primary.confidence, 2),
        indicators=primary.indicators[:3],
        secondary=secondary,
        entry_points=entry_points,
        exports=exports[:5],
        execution_intent=analyze_execution_intent(cst, code_type, entry_points, top_level, libraries, env_vars),
        execution_context=analyze_execution_context(language, code_type, libraries, env_vars),
    )
