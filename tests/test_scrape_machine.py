"""Tests for the bounded polling scrape machine, driven by a fake surface."""

import asyncio

import pytest

from quick_search.browser.machine import ScrapeMachine, ScrapeState
from quick_search.models import SearchResult

POST = SearchResult(title="someone", url="https://x.com/someone/status/1", snippet="hello")


class FakeSurface:
    """Scripted RenderingSurface: `polls` lists what each extract() returns."""

    def __init__(self, final_url="https://x.com/search?q=q", polls=None, load_error=None, load_delay=0.0):
        self.final_url = final_url
        self.polls = list(polls or [])
        self.load_error = load_error
        self.load_delay = load_delay
        self.loaded = []
        self.extract_calls = 0
        self.close_calls = 0

    async def load(self, url):
        self.loaded.append(url)
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_error:
            raise self.load_error
        return self.final_url

    async def extract(self, max_items):
        self.extract_calls += 1
        outcome = self.polls.pop(0) if self.polls else None
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self):
        self.close_calls += 1


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_machine(sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    def _make(surface, **kwargs):
        return ScrapeMachine(surface, sleep=fake_sleep, **kwargs)

    return _make


class TestScrapeMachine:
    @pytest.mark.anyio
    async def test_first_non_empty_poll_wins(self, make_machine, sleeps):
        surface = FakeSurface(polls=[None, [], [POST]])
        machine = make_machine(surface)

        results = await machine.run("https://x.com/search?q=q")

        assert results == [POST]
        assert machine.attempts == 3
        assert machine.state is ScrapeState.RESOLVED
        assert sleeps == [2.0, 1.5, 1.5]
        assert surface.close_calls == 1

    @pytest.mark.anyio
    async def test_login_redirect_resolves_empty_without_polling(self, make_machine):
        surface = FakeSurface(final_url="https://x.com/i/flow/login?redirect_after_login=%2Fsearch")
        machine = make_machine(surface)

        assert await machine.run("https://x.com/search?q=q") == []
        assert surface.extract_calls == 0
        assert surface.close_calls == 1

    @pytest.mark.anyio
    async def test_exhausted_attempts_resolve_empty(self, make_machine):
        surface = FakeSurface(polls=[])
        machine = make_machine(surface, max_attempts=8)

        assert await machine.run("https://x.com/search?q=q") == []
        assert machine.attempts == 8
        assert surface.extract_calls == 8
        assert surface.close_calls == 1

    @pytest.mark.anyio
    async def test_extract_error_counts_as_empty_poll(self, make_machine):
        surface = FakeSurface(polls=[RuntimeError("detached"), [POST]])
        assert await make_machine(surface).run("https://x.com/search?q=q") == [POST]

    @pytest.mark.anyio
    async def test_load_failure_resolves_empty(self, make_machine):
        surface = FakeSurface(load_error=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))
        machine = make_machine(surface)

        assert await machine.run("https://x.com/search?q=q") == []
        assert machine.state is ScrapeState.RESOLVED
        assert surface.close_calls == 1

    @pytest.mark.anyio
    async def test_global_deadline(self, make_machine):
        surface = FakeSurface(load_delay=5)
        machine = make_machine(surface, timeout=0.05)

        assert await machine.run("https://x.com/search?q=q") == []
        assert surface.close_calls == 1

    @pytest.mark.anyio
    async def test_teardown_error_is_contained(self, make_machine):
        surface = FakeSurface(polls=[[POST]])

        async def failing_close():
            surface.close_calls += 1
            raise RuntimeError("browser already gone")

        surface.close = failing_close
        assert await make_machine(surface).run("https://x.com/search?q=q") == [POST]
        assert surface.close_calls == 1

    @pytest.mark.anyio
    async def test_machine_is_single_use(self, make_machine):
        machine = make_machine(FakeSurface(polls=[[POST]]))
        await machine.run("https://x.com/search?q=q")
        with pytest.raises(RuntimeError):
            await machine.run("https://x.com/search?q=q")
