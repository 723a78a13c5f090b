"""Shared fixtures for CodeContext tests"""

import pytest

from codecontext.config import reset_config
from codecontext.static_analysis.cst import CSTNode


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from the shipped configuration"""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def text_node():
    """Build a childless CST node that carries only source text.

    Enough for the detectors that work on the snippet text alone.
    """
    def _make(code: str, node_type: str = "module") -> CSTNode:
        lines = code.split("\n")
        return CSTNode(
            type=node_type,
            start_index=0,
            end_index=len(code.encode("utf-8")),
            start_point=(0, 0),
            end_point=(len(lines) - 1, len(lines[-1])),
            is_named=True,
            text=code,
        )
    return _make


@pytest.fixture
def parse():
    """Parse a snippet with its tree-sitter grammar, skipping when the grammar is missing"""
    pytest.importorskip("tree_sitter_language_pack")
    from codecontext.parsing import parse_source

    def _parse(code: str, language: str) -> CSTNode:
        cst = parse_source(code, language)
        if cst is None:
            pytest.skip(f"{language} grammar not available")
        return cst
    return _parse
