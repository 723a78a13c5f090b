"""Tests for caching, debouncing and the analysis service state"""

import asyncio

import pytest

pytest.importorskip("tree_sitter_language_pack")

from codecontext.service import (  # noqa: E402
    ANALYSIS_FAILED,
    CodeContextService,
    ContextCache,
    Debouncer,
    content_hash,
)


class FakeCharacterize:
    """Stands in for characterize(), recording every call"""

    def __init__(self, result="context"):
        self.result = result
        self.calls = []

    def __call__(self, code):
        self.calls.append(code)
        return None if self.result is None else f"{self.result}:{code}"


@pytest.fixture
def fake_characterize(monkeypatch):
    fake = FakeCharacterize()
    monkeypatch.setattr("codecontext.service.characterize", fake)
    return fake


class TestContentHash:
    def test_sha256_hex(self):
        digest = content_hash("x = 1")
        assert len(digest) == 64
        assert digest == content_hash("x = 1")
        assert digest != content_hash("x = 1 ")


class TestContextCache:
    """FIFO eviction by insertion order"""

    def test_oldest_entry_is_evicted(self):
        cache = ContextCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)
        assert list(cache) == ["b", "c"], "Reads must not refresh an entry"

    def test_restore_keeps_slot(self):
        cache = ContextCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("a", 10)
        cache.put("c", 3)
        assert "a" not in cache
        assert list(cache) == ["b", "c"]
        assert len(cache) == 2

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            ContextCache(0)

    def test_default_size_from_config(self):
        assert ContextCache().max_entries == 10


class TestDebouncer:
    def test_only_last_call_fires(self):
        calls = []

        async def burst():
            debouncer = Debouncer(0.01)
            for i in range(3):
                debouncer.schedule(calls.append, i)
            assert debouncer.pending
            await asyncio.sleep(0.1)
            assert not debouncer.pending

        asyncio.run(burst())
        assert calls == [2]

    def test_cancel(self):
        calls = []

        async def cancelled():
            debouncer = Debouncer(0.01)
            debouncer.schedule(calls.append, 1)
            debouncer.cancel()
            await asyncio.sleep(0.05)

        asyncio.run(cancelled())
        assert calls == []


class TestAnalyze:
    """Synchronous analysis with cache and change detection"""

    def test_result_is_stored(self, fake_characterize):
        service = CodeContextService()
        assert service.analyze("x = 1") == "context:x = 1"
        assert service.state.context == "context:x = 1"
        assert not service.state.is_analyzing
        assert content_hash("x = 1") in service.cache

    def test_unchanged_input_is_skipped(self, fake_characterize):
        service = CodeContextService()
        service.analyze("x = 1")
        service.analyze("x = 1")
        assert fake_characterize.calls == ["x = 1"]

    def test_cache_hit(self, fake_characterize):
        service = CodeContextService()
        service.analyze("x = 1")
        service.analyze("y = 2")
        assert service.analyze("x = 1") == "context:x = 1"
        assert fake_characterize.calls == ["x = 1", "y = 2"]

    def test_empty_input_resets_state(self, fake_characterize):
        service = CodeContextService()
        service.analyze("x = 1")
        assert service.analyze("  ") is None
        assert service.state.context is None
        assert service.state.error is None
        assert fake_characterize.calls == ["x = 1"]

    def test_failure_sets_error(self, monkeypatch):
        monkeypatch.setattr("codecontext.service.characterize", FakeCharacterize(result=None))
        service = CodeContextService()
        assert service.analyze("x = 1") is None
        assert service.state.error == ANALYSIS_FAILED
        assert len(service.cache) == 0


class TestDebouncedRequests:
    def test_burst_runs_once_with_last_text(self, monkeypatch):
        analyzed = []

        async def no_parser(language):
            return None

        def fake_analyze(code, cst=None, language=None):
            analyzed.append((code, cst))
            return f"context:{code}"

        monkeypatch.setattr("codecontext.service.aload_parser", no_parser)
        monkeypatch.setattr("codecontext.service.analyze_code_context", fake_analyze)

        async def edit_session():
            service = CodeContextService(debounce_seconds=0.01)
            await service.request("a = 1")
            await service.request("a = 2")
            first = await service.wait()
            await service.request("a = 2")
            pending_after_repeat = service.debouncer.pending
            return first, pending_after_repeat

        result, pending_after_repeat = asyncio.run(edit_session())
        assert result == "context:a = 2"
        assert analyzed == [("a = 2", None)]
        assert not pending_after_repeat, "Re-requesting the analyzed text must not schedule a run"
