"""Parser acquisition

Grammars come from ``tree-sitter-language-pack``. Loading a grammar is the
only step of an analysis that may fail for reasons outside the snippet
(missing wheel, unknown grammar), so every failure here degrades to ``None``
and the caller falls back to the degraded characterization.
"""

import asyncio
import logging
from typing import Dict, Optional

from tree_sitter_language_pack import get_parser

from .static_analysis.cst import CSTNode, from_tree_sitter

logger = logging.getLogger(__name__)

# Language id -> grammar name in tree-sitter-language-pack
GRAMMARS = {
    "typescript": "typescript",
    "python": "python",
    "go": "go",
    "rust": "rust",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "ruby": "ruby",
    "php": "php",
}

_PARSERS: Dict[str, object] = {}


def load_parser(language: str):
    """Return a cached tree_sitter.Parser for ``language``, or None"""
    if language in _PARSERS:
        return _PARSERS[language]

    grammar = GRAMMARS.get(language)
    if grammar is None:
        logger.warning(f"No grammar registered for language '{language}'")
        return None

    try:
        parser = get_parser(grammar)
    except Exception as e:
        logger.warning(f"Failed to load {grammar} grammar: {e}")
        return None

    _PARSERS[language] = parser
    logger.debug(f"Loaded {grammar} grammar")
    return parser


async def aload_parser(language: str):
    """Awaitable form of load_parser (grammar loading runs in a worker thread)"""
    return await asyncio.to_thread(load_parser, language)


def parse_source(code: str, language: str) -> Optional[CSTNode]:
    """Parse ``code`` into a lossless CST, or None when no parser is available"""
    parser = load_parser(language)
    if parser is None:
        return None

    source = code.encode("utf-8")
    try:
        tree = parser.parse(source)
    except Exception as e:
        logger.warning(f"Failed to parse {language} source: {e}")
        return None
    return from_tree_sitter(tree.root_node, source)
