import logging

import pytest

from conftest import FakeProber, wait_until
from pingwatch import main
from pingwatch.config import Settings
from pingwatch.services.monitor import Monitor

CFG = Settings(PROBE_INTERVAL_SECONDS=3600, PROBE_TIMEOUT_SECONDS=1, SHUTDOWN_DRAIN_SECONDS=0.5)


@pytest.fixture
def app_monitor(monkeypatch, fake_store):
    """Point the application lifespan at an in-memory store and a fake prober."""
    async def no_tables(bind=None):
        return None

    monitor = Monitor(fake_store, cfg=CFG, probe=FakeProber())
    monkeypatch.setattr(main, "store", fake_store)
    monkeypatch.setattr(main, "monitor", monitor)
    monkeypatch.setattr(main, "init_db", no_tables)
    return monitor


async def test_seed_on_empty_store(fake_store):
    await main.create_default_data(fake_store)
    target = fake_store.targets[main.DEFAULT_TARGET_UUID]
    assert (target.name, target.address) == ("localhost", "127.0.0.1")


async def test_seed_skipped_when_targets_exist(fake_store):
    fake_store.add("T1", "10.0.0.1")
    await main.create_default_data(fake_store)
    assert list(fake_store.targets) == ["T1"]


async def test_seed_can_be_disabled(monkeypatch, fake_store):
    monkeypatch.setattr(main.settings, "SEED_DEFAULT_TARGET", False)
    await main.create_default_data(fake_store)
    assert fake_store.targets == {}


async def test_lifespan_reload_restarts_monitor(app_monitor, fake_store):
    async with main.lifespan(main.app):
        assert app_monitor.running
        await wait_until(lambda: main.DEFAULT_TARGET_UUID in fake_store.stats)
        first = app_monitor.scheduler

        await main.request_reload()

        assert app_monitor.running
        assert app_monitor.scheduler is not first
        assert not main._reload_tasks
        await wait_until(lambda: fake_store.stats[main.DEFAULT_TARGET_UUID].sent == 2)

    assert not app_monitor.running


async def test_failed_reload_is_logged(monkeypatch, app_monitor, caplog):
    async def broken_restart():
        raise RuntimeError("cannot start scheduler")

    monkeypatch.setattr(app_monitor, "restart", broken_restart)

    with caplog.at_level(logging.ERROR, logger="pingwatch.main"):
        await main.request_reload()

    assert "cannot start scheduler" in caplog.text
    assert not main._reload_tasks


def test_debug_flag_reaches_app():
    assert main.app.debug == main.settings.DEBUG
