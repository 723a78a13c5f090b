"""Static analysis core for code characterization

This package implements the per-dimension detectors over a lossless CST:
- Language, library/framework, paradigm and code-type detection
- Language adapters and the semantic IR built from them
- Cost-expression algebra and time/space complexity estimation
- Review elements (decision rules, magic values, silent behaviors, testability)
"""

from .cst import CSTNode, from_tree_sitter
from .language_detector import LanguageDetectionResult, detect_language
from .library_analyzer import LibraryAnalysisResult, analyze_libraries
from .paradigm_detector import ParadigmAnalysisResult, analyze_paradigm
from .code_type_detector import CodeTypeResult, detect_code_type
from .ir_builder import IRBuilder
from .complexity_analyzer import ComplexityAnalysisResult, analyze_complexity
from .call_graph import build_call_graph

__all__ = [
    "CSTNode",
    "from_tree_sitter",
    "LanguageDetectionResult",
    "detect_language",
    "LibraryAnalysisResult",
    "analyze_libraries",
    "ParadigmAnalysisResult",
    "analyze_paradigm",
    "CodeTypeResult",
    "detect_code_type",
    "IRBuilder",
    "ComplexityAnalysisResult",
    "analyze_complexity",
    "build_call_graph",
]
