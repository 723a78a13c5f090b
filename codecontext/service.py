"""
Orchestration around the pure analysis core

- content_hash: SHA-256 of the exact snippet text
- ContextCache: bounded memo of results, oldest-inserted entry evicted first
- Debouncer: asyncio timer, only the last request in a burst fires
- CodeContextService: cache + debounce + the observable analysis state
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional

from .config import ANALYSIS_CONFIG
from .context_detector import CodeContext, analyze_code_context, characterize
from .parsing import aload_parser, parse_source
from .static_analysis.language_detector import detect_language

logger = logging.getLogger(__name__)

ANALYSIS_FAILED = "Analysis failed"


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class ContextCache:
    """Bounded mapping with FIFO eviction (re-storing a key keeps its slot)"""

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries if max_entries is not None else ANALYSIS_CONFIG["cache_size"]
        if self.max_entries < 1:
            raise ValueError(f"Cache size must be positive, got {self.max_entries}")
        self._entries: Dict[str, CodeContext] = {}

    def get(self, key: str) -> Optional[CodeContext]:
        return self._entries.get(key)

    def put(self, key: str, value: CodeContext) -> None:
        self._entries[key] = value
        while len(self._entries) > self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug(f"Evicted cached context {oldest[:12]}")

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)


class Debouncer:
    """Runs a callback once a burst of schedule() calls has been quiet for ``delay`` seconds"""

    def __init__(self, delay: Optional[float] = None):
        self.delay = delay if delay is not None else ANALYSIS_CONFIG["debounce_seconds"]
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def schedule(self, callback: Callable, *args) -> None:
        """Must be called from a running event loop"""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, callback, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable, args: tuple) -> None:
        self._handle = None
        callback(*args)


@dataclass
class AnalysisState:
    context: Optional[CodeContext] = None
    is_analyzing: bool = False
    error: Optional[str] = None


class CodeContextService:
    """
    Cached, debounced code characterization.

    ``analyze`` runs immediately; ``request`` is the editor-facing entry
    point that waits for a quiet period and skips unchanged input.
    """

    def __init__(self, cache_size: Optional[int] = None, debounce_seconds: Optional[float] = None):
        self.cache = ContextCache(cache_size)
        self.debouncer = Debouncer(debounce_seconds)
        self.state = AnalysisState()
        self._last_hash = ""
        self._task: Optional[asyncio.Task] = None

    def _begin(self, code: str) -> Optional[str]:
        """Handle the cheap cases; return the hash when a real run is needed"""
        if not code or not code.strip():
            self.state = AnalysisState()
            return None

        code_hash = content_hash(code)
        if code_hash == self._last_hash:
            return None

        cached = self.cache.get(code_hash)
        if cached is not None:
            logger.debug(f"Cache hit for {code_hash[:12]}")
            self.state = AnalysisState(context=cached)
            self._last_hash = code_hash
            return None

        self.state = AnalysisState(context=self.state.context, is_analyzing=True)
        return code_hash

    def _finish(self, code_hash: str, context: Optional[CodeContext]) -> Optional[CodeContext]:
        if context is None:
            self.state = AnalysisState(context=None, error=ANALYSIS_FAILED)
            return None

        self.cache.put(code_hash, context)
        self._last_hash = code_hash
        self.state = AnalysisState(context=context)
        return context

    def analyze(self, code: str) -> Optional[CodeContext]:
        """Synchronous run: detect language, parse, assemble"""
        code_hash = self._begin(code)
        if code_hash is None:
            return self.state.context
        return self._finish(code_hash, characterize(code))

    async def analyze_async(self, code: str) -> Optional[CodeContext]:
        """Same as analyze, with grammar loading awaited off the event loop"""
        code_hash = self._begin(code)
        if code_hash is None:
            return self.state.context

        language = detect_language(code)
        parser = await aload_parser(language.language)
        cst = parse_source(code, language.language) if parser is not None else None
        return self._finish(code_hash, analyze_code_context(code, cst, language))

    async def request(self, code: str) -> None:
        """Debounced analysis; a request for the last analyzed text is a no-op"""
        if code and content_hash(code) == self._last_hash:
            return
        self.debouncer.schedule(self._start, code)

    def _start(self, code: str) -> None:
        self._task = asyncio.get_running_loop().create_task(self.analyze_async(code))

    async def wait(self) -> Optional[CodeContext]:
        """Wait for any pending debounced run to start and complete"""
        while self.debouncer.pending:
            await asyncio.sleep(self.debouncer.delay / 4)
        if self._task is not None:
            await self._task
        return self.state.context
