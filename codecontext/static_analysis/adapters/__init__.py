"""
Language adapter registry

Maps a language identifier to the adapter that knows its grammar. Languages
without an adapter fall back to the legacy complexity path.
"""

from typing import Dict, List, Optional

from .base import (
    AllocationPattern,
    ConditionalPattern,
    EntryPointPattern,
    FunctionPattern,
    LanguageAdapter,
    LoopPattern,
)
from .c_adapter import CAdapter, CppAdapter
from .go_adapter import GoAdapter
from .java_adapter import JavaAdapter
from .python_adapter import PythonAdapter
from .rust_adapter import RustAdapter
from .typescript_adapter import TypeScriptAdapter

ADAPTERS: Dict[str, LanguageAdapter] = {}


def register_adapter(adapter: LanguageAdapter) -> None:
    if not adapter.language:
        raise ValueError(f"Adapter {type(adapter).__name__} does not declare a language")
    ADAPTERS[adapter.language] = adapter


def get_adapter(language: str) -> Optional[LanguageAdapter]:
    return ADAPTERS.get(language)


def registered_languages() -> List[str]:
    return sorted(ADAPTERS)


for _adapter_class in (TypeScriptAdapter, PythonAdapter, GoAdapter, JavaAdapter, CAdapter, CppAdapter, RustAdapter):
    register_adapter(_adapter_class())


__all__ = [
    "ADAPTERS",
    "AllocationPattern",
    "ConditionalPattern",
    "EntryPointPattern",
    "FunctionPattern",
    "LanguageAdapter",
    "LoopPattern",
    "get_adapter",
    "register_adapter",
    "registered_languages",
]
