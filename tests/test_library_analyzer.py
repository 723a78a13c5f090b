"""Tests for library, framework and external-interaction analysis"""

import pytest

from codecontext.static_analysis.library_analyzer import (
    LibraryInfo,
    analyze_error_handling,
    analyze_external_interactions,
    analyze_libraries,
    categorize_library,
    detect_frameworks,
    extract_output_contract,
    is_standard_library,
    name_matches,
)


def lib(name: str, category: str = "unknown", standard: bool = False) -> LibraryInfo:
    return LibraryInfo(name=name, category=category, is_standard_lib=standard, import_path=name)


class TestCategorization:
    """Import names map to categories: table, then heuristics, then standard library"""

    @pytest.mark.parametrize("name, language, category", [
        ("react", "typescript", "framework"),
        ("react-dom", "typescript", "framework"),
        ("lodash", "typescript", "utility"),
        ("jest", "typescript", "testing"),
        ("pytest", "python", "testing"),
        ("sqlalchemy", "python", "database"),
        ("os", "python", "standard"),
        ("fmt", "go", "standard"),
        ("github.com/gin-gonic/gin", "go", "framework"),
        ("java.util.List", "java", "standard"),
        ("my-redis-client", "typescript", "database"),
        ("left-pad", "typescript", "unknown"),
    ])
    def test_categories(self, name, language, category):
        assert categorize_library(name, language) == category, f"{name} should be {category}"

    def test_name_matching(self):
        assert name_matches("@angular/core", "@angular")
        assert name_matches("react-dom", "react")
        assert name_matches("github.com/gin-gonic/gin", "gin")
        assert not name_matches("preact", "react")

    def test_standard_library_rules(self):
        assert is_standard_library("net/http", "go")
        assert not is_standard_library("github.com/stretchr/testify", "go")
        assert is_standard_library("javax.swing.JFrame", "java")
        assert not is_standard_library("numpy", "python")


class TestFrameworks:
    """Framework detection from imports and usage"""

    def test_import_gives_full_confidence(self, text_node):
        cst = text_node("const app = express();\napp.get('/', handler);\n")
        frameworks = detect_frameworks([lib("express", "framework")], cst)
        assert [fw.name for fw in frameworks] == ["Express"]
        assert frameworks[0].confidence == 0.9

    def test_single_usage_word_is_not_enough(self, text_node):
        cst = text_node("return render(view)\n")
        assert detect_frameworks([], cst) == []

    def test_two_usage_indicators_are_discounted(self, text_node):
        cst = text_node("const [n, setN] = useState(0);\nuseEffect(() => setN(1));\n")
        frameworks = detect_frameworks([], cst)
        assert [fw.name for fw in frameworks] == ["React"]
        assert 0.5 < frameworks[0].confidence < 0.95, "Usage-only evidence should be discounted"

    def test_table_framework_from_library_name(self, text_node):
        cst = text_node("use rocket::get;\n")
        frameworks = detect_frameworks([lib("rocket", "framework")], cst)
        assert [fw.name for fw in frameworks] == ["Rocket"]


class TestExternalInteractions:
    """Interactions and the determinism they imply"""

    def test_pure_code_is_deterministic(self, text_node):
        result = analyze_external_interactions(text_node("def add(a, b):\n    return a + b\n"), [])
        assert result.types == ["none"]
        assert result.is_deterministic
        assert result.confidence == 0.6, "No evidence either way should give 0.6 confidence"
        assert result.determinism_reasoning.classification.determinism_class == "fully-deterministic"

    def test_randomness_is_weakly_deterministic(self, text_node):
        result = analyze_external_interactions(text_node("x = random.randint(1, 6)\n"), [])
        assert not result.is_deterministic
        assert result.types == ["none"]
        classification = result.determinism_reasoning.classification
        assert classification.has_randomness
        assert classification.determinism_class == "weakly-deterministic"

    def test_network_access(self, text_node):
        result = analyze_external_interactions(text_node("resp = requests.get('https://example.com')\n"), [])
        assert "network" in result.types
        assert not result.is_deterministic
        assert result.determinism_reasoning.classification.determinism_class == "value-nondeterministic"

    def test_library_hint_counts_as_interaction(self, text_node):
        result = analyze_external_interactions(text_node("conn.close()\n"), [lib("sqlite3")])
        assert result.types == ["database"]


class TestErrorHandling:
    """Error-handling strategy classification"""

    def test_exceptions(self, text_node):
        code = "try:\n    run()\nexcept ValueError:\n    raise\n"
        result = analyze_error_handling(text_node(code), "python")
        assert result.approach == "exceptions"
        assert result.has_error_handling

    def test_rust_propagation(self, text_node):
        result = analyze_error_handling(text_node("let v = read_config()?;\n"), "rust")
        assert result.approach == "result-types"

    def test_panic_only(self, text_node):
        result = analyze_error_handling(text_node("let v = parse(s).unwrap();\n"), "rust")
        assert result.approach == "panic"
        assert not result.has_error_handling

    def test_nothing_is_silent(self, text_node):
        result = analyze_error_handling(text_node("x = 1\n"), "python")
        assert result.approach == "silent"
        assert result.confidence == 0.3


class TestOutputContract:
    def test_object_return(self, text_node):
        code = "function toUser(row): User {\n  return { id: row.id };\n}\n"
        contract = extract_output_contract(text_node(code), "typescript")
        assert contract.structure == "object"
        assert contract.return_types == ["User"]

    def test_no_return(self, text_node):
        contract = extract_output_contract(text_node("x = 1\n"), "python")
        assert contract.structure == "unknown"
        assert "No explicit return statements found" in contract.uncertainties


class TestAnalyzeLibraries:
    """Full analysis over a parsed snippet"""

    def test_python_imports(self, parse):
        code = "import os\nfrom collections import OrderedDict\nimport numpy as np\n"
        result = analyze_libraries(parse(code, "python"), "python")
        names = [library.name for library in result.libraries]
        assert names == ["os", "collections", "numpy"], f"Unexpected imports {names}"
        assert result.package_manager == "pip"
        assert [library.is_standard_lib for library in result.libraries] == [True, True, False]

    def test_go_imports_keep_full_path(self, parse):
        code = 'package server\n\nimport (\n\t"net/http"\n\t"github.com/gin-gonic/gin"\n)\n'
        result = analyze_libraries(parse(code, "go"), "go")
        names = [library.name for library in result.libraries]
        assert names == ["net/http", "github.com/gin-gonic/gin"]
        assert "Gin" in [fw.name for fw in result.frameworks]
