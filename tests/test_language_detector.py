"""Tests for snippet language detection"""

import pytest

from codecontext.static_analysis.language_detector import (
    SUPPORTED_LANGUAGES,
    adaptive_confidence,
    detect_language,
)

GO_MAIN = '''package main

import "fmt"

func main() {
    fmt.Println("hello")
}
'''

JAVA_MAIN = '''public class Main {
    public static void main(String[] args) {
        System.out.println("hello");
    }
}
'''

RUST_MAIN = '''fn main() {
    let mut total = 0;
    println!("{}", total);
}
'''

PYTHON_CLASS = '''class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y
'''

PYTHON_FUNCTION = '''import os

def greet(name):
    print(name)'''

TYPESCRIPT_SNIPPET = '''interface User {
  name: string;
  age: number;
}
'''


class TestSmokingGuns:
    """Near-unique markers short-circuit detection"""

    def test_go_package_main(self):
        result = detect_language(GO_MAIN)
        assert result.language == "go"
        assert result.detection_method == "smoking-gun"
        assert result.confidence >= 0.9, f"Smoking gun confidence too low: {result.confidence}"

    @pytest.mark.parametrize("code, language", [
        (JAVA_MAIN, "java"),
        (RUST_MAIN, "rust"),
        (PYTHON_CLASS, "python"),
        (TYPESCRIPT_SNIPPET, "typescript"),
        ("<?php\necho 'hi';\n", "php"),
    ])
    def test_other_smoking_guns(self, code, language):
        result = detect_language(code)
        assert result.language == language, f"Expected {language}, got {result.language}"
        assert result.detection_method == "smoking-gun"

    def test_php_dialect(self):
        result = detect_language("<?php\ndeclare(strict_types=1);\n")
        assert result.dialect == "PHP 7+"


class TestWeightedScoring:
    """Pattern weights decide when no smoking gun is present"""

    def test_python_function(self):
        result = detect_language(PYTHON_FUNCTION)
        assert result.language == "python"
        assert result.detection_method == "weighted"
        assert "def function" in result.indicators
        assert all(not indicator.startswith("-") for indicator in result.indicators)

    def test_indicators_are_capped(self):
        code = "\n".join([
            "from os import path",
            "import sys",
            "@decorator",
            "def run(value: int) -> int:",
            "    print(self)",
            "    return value",
        ])
        result = detect_language(code)
        assert result.language == "python"
        assert len(result.indicators) <= 5


class TestFallback:
    """Inputs without usable evidence"""

    def test_empty_input(self):
        for code in ("", "   \n\t  "):
            result = detect_language(code)
            assert result.language == "typescript"
            assert result.confidence == 0.0
            assert result.detection_method == "fallback"

    def test_no_pattern_matches(self):
        result = detect_language("... ???")
        assert result.detection_method == "fallback"
        assert result.confidence == 0.1


class TestConfidenceBounds:
    """Confidence always stays in [0, 1] and languages stay in the supported set"""

    @pytest.mark.parametrize("code", [
        GO_MAIN, JAVA_MAIN, RUST_MAIN, PYTHON_CLASS, PYTHON_FUNCTION, TYPESCRIPT_SNIPPET,
        "#include <stdio.h>\nint main() { printf(\"x\"); return 0; }\n",
        "require 'json'\nitems.each do |item|\n  puts item\nend\n",
        "x" * 5000,
    ])
    def test_bounds(self, code):
        result = detect_language(code)
        assert 0.0 <= result.confidence <= 1.0
        assert result.language in SUPPORTED_LANGUAGES

    def test_adaptive_confidence_scales_by_length(self):
        assert adaptive_confidence(40, 2, 1) == 1.0
        assert adaptive_confidence(25, 30, 2) == 0.5
        assert adaptive_confidence(1000, 200, 50) == 1.0
        assert adaptive_confidence(11, 200, 1) == pytest.approx(0.3)
