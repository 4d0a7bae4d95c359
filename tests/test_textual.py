"""Tests for statecrate.textual — Textual integration layer."""

import logging
import threading

import pytest
from textual.css.query import NoMatches

from statecrate import Crate
from statecrate import textual as stx


class _MockApp:
    """Minimal mock matching the Textual App interface stx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


def coins(state):
    return state["coins"]


class TestOnUpdate:
    @pytest.mark.asyncio
    async def test_skips_when_not_running(self):
        crate = Crate({"coins": 0})
        binding = stx.bind(_MockApp(is_running=False), crate)
        effects = []
        binding.on_update(coins, effects.append)
        await crate.update({"coins": 1})
        assert effects == []

    @pytest.mark.asyncio
    async def test_skips_while_paused(self):
        crate = Crate({"coins": 0})
        binding = stx.bind(_MockApp(), crate)
        effects = []
        binding.on_update(coins, effects.append)
        with binding.paused():
            with binding.paused():
                await crate.update({"coins": 1})
            await crate.update({"coins": 2})
        await crate.update({"coins": 3})
        assert effects == [3]

    @pytest.mark.asyncio
    async def test_fires_when_ready(self):
        crate = Crate({"coins": 0})
        binding = stx.bind(_MockApp(), crate)
        effects = []
        binding.on_update(coins, effects.append)
        await crate.update({"coins": 1})
        assert effects == [1]
        assert binding.ready

    @pytest.mark.asyncio
    async def test_nomatch_is_ignored(self, caplog):
        crate = Crate({"coins": 0})
        binding = stx.bind(_MockApp(), crate)

        def _raise_nomatch(v):
            raise NoMatches("StatusFooter")

        binding.on_update(coins, _raise_nomatch)
        with caplog.at_level(logging.DEBUG, logger="statecrate.textual"):
            await crate.update({"coins": 1})
        assert not [r for r in caplog.records if r.name == "statecrate.channel"]

    @pytest.mark.asyncio
    async def test_real_errors_reach_channel_log(self, caplog):
        """Non-NoMatches exceptions are not swallowed by the binding."""
        crate = Crate({"coins": 0})
        binding = stx.bind(_MockApp(), crate)
        effects = []

        def _raise_value_error(v):
            raise ValueError("boom")

        binding.on_update(coins, _raise_value_error)
        binding.on_update(coins, effects.append)
        with caplog.at_level(logging.ERROR, logger="statecrate.channel"):
            await crate.update({"coins": 1})
        assert effects == [1]
        assert any(r.exc_info and isinstance(r.exc_info[1], ValueError) for r in caplog.records)

    @pytest.mark.asyncio
    async def test_disconnect_all(self):
        crate = Crate({"coins": 0})
        binding = stx.bind(_MockApp(), crate)
        effects, diffs = [], []
        conn = binding.on_update(coins, effects.append)
        binding.use_diff(diffs.append)
        await crate.update({"coins": 1})
        binding.disconnect_all()
        await crate.update({"coins": 2})
        assert effects == [1]
        assert diffs == [{"coins": 1}]
        assert not conn.connected


class TestUseDiff:
    @pytest.mark.asyncio
    async def test_fires_when_ready(self):
        crate = Crate({"coins": 0})
        binding = stx.bind(_MockApp(), crate)
        diffs = []
        binding.use_diff(diffs.append)
        await crate.update({"coins": 1})
        assert diffs == [{"coins": 1}]


class TestThreadMarshal:
    def test_delivery_from_worker_thread_uses_call_from_thread(self):
        app = _MockApp()
        captured = []

        class _FakeCrate:
            def on_update(self, selector, callback):
                captured.append(callback)

        effects = []
        stx.bind(app, _FakeCrate()).on_update(coins, effects.append)

        t = threading.Thread(target=captured[0], args=(5,))
        t.start()
        t.join()

        assert effects == [5]
        assert len(app._call_from_thread_log) == 1

    def test_delivery_on_owner_thread_is_direct(self):
        app = _MockApp()
        captured = []

        class _FakeCrate:
            def use_diff(self, callback):
                captured.append(callback)

        diffs = []
        stx.bind(app, _FakeCrate()).use_diff(diffs.append)
        captured[0]({"coins": 1})
        assert diffs == [{"coins": 1}]
        assert app._call_from_thread_log == []
