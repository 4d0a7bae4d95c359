from __future__ import annotations

import time

import pytest

from statecrate import Crate, CrateConfig, MiddlewareSlowWarning


def test_defaults() -> None:
    config = CrateConfig()
    assert config.middleware_warn_seconds == 0.2
    assert config.freeze_state is True


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATECRATE_MIDDLEWARE_WARN_SECONDS", "0.5")
    monkeypatch.setenv("STATECRATE_FREEZE_STATE", "off")
    config = CrateConfig.from_env()
    assert config.middleware_warn_seconds == 0.5
    assert config.freeze_state is False


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATECRATE_MIDDLEWARE_WARN_SECONDS", "0.5")
    monkeypatch.setenv("STATECRATE_FREEZE_STATE", "0")
    config = CrateConfig.from_env(middleware_warn_seconds=1.0, freeze_state=True)
    assert config.middleware_warn_seconds == 1.0
    assert config.freeze_state is True


def test_from_env_ignores_garbage_bool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STATECRATE_MIDDLEWARE_WARN_SECONDS", raising=False)
    monkeypatch.setenv("STATECRATE_FREEZE_STATE", "maybe")
    assert CrateConfig.from_env().freeze_state is True


@pytest.mark.asyncio
async def test_crate_uses_warn_threshold() -> None:
    crate = Crate({"coins": 0}, config=CrateConfig(middleware_warn_seconds=0.01))

    def slow(old, new):
        time.sleep(0.03)
        return new

    crate.use_middleware("coins", slow)
    with pytest.warns(MiddlewareSlowWarning):
        await crate.update({"coins": 1})
    assert crate.get_state("coins") == 1
