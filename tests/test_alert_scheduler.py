"""
Tests for the alert scheduler jobs and loop.
"""
from contextlib import asynccontextmanager
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

import bikeshop_backend.jobs.alert_scheduler as scheduler_module
from bikeshop_backend.jobs.alert_scheduler import (
    AlertScheduler,
    run_alert_retention_cleanup,
    run_stock_alert_check,
)


@pytest.fixture(autouse=True)
def reset_heartbeats():
    for name in scheduler_module.heartbeats:
        scheduler_module.heartbeats[name] = scheduler_module._new_heartbeat()
    yield


@pytest.fixture
def patched_session(db_session):
    @asynccontextmanager
    async def _session():
        yield db_session

    with patch.object(scheduler_module, "get_db_session", _session):
        yield db_session


class TestJobs:
    @pytest.mark.asyncio
    async def test_stock_alert_check_updates_heartbeat(self, patched_session, make_product):
        await make_product(stock=0)
        await make_product(stock=50)

        stats = await run_stock_alert_check()

        assert stats == {"products_checked": 2, "alerts": 1, "resolved": 0, "errors": 0}
        heartbeat = scheduler_module.heartbeats["stock_alert_check"]
        assert heartbeat["last_success"] is not None
        assert heartbeat["records_processed"] == 2
        assert heartbeat["errors"] == 0

    @pytest.mark.asyncio
    async def test_failed_run_counts_error(self):
        @asynccontextmanager
        async def _broken():
            raise ConnectionError("database unavailable")
            yield  # pragma: no cover

        with patch.object(scheduler_module, "get_db_session", _broken):
            with pytest.raises(ConnectionError):
                await run_stock_alert_check()

        heartbeat = scheduler_module.heartbeats["stock_alert_check"]
        assert heartbeat["errors"] == 1
        assert heartbeat["last_run"] is not None
        assert heartbeat["last_success"] is None

    @pytest.mark.asyncio
    async def test_retention_cleanup_uses_configured_days(self, patched_session, make_product, make_alert):
        product = await make_product(stock=5)
        await make_alert(product, is_active=False, resolved_ago=timedelta(days=31))
        await make_alert(product, is_active=False, resolved_ago=timedelta(days=2))

        stats = await run_alert_retention_cleanup()

        assert stats == {"deleted": 1, "days_old": 30}
        assert scheduler_module.heartbeats["alert_retention_cleanup"]["records_processed"] == 1

    @pytest.mark.asyncio
    async def test_retention_cleanup_zero_days_is_not_the_default(self, patched_session, make_product, make_alert):
        product = await make_product(stock=5)
        await make_alert(product, is_active=False, resolved_ago=timedelta(hours=1))

        stats = await run_alert_retention_cleanup(days_old=0)

        assert stats == {"deleted": 1, "days_old": 0}


class TestAlertScheduler:
    @pytest.mark.asyncio
    async def test_loop_survives_failed_run(self):
        scheduler = AlertScheduler()
        scheduler._running = True
        calls = []

        async def job():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("database unavailable")
            scheduler._running = False
            return {}

        with patch.object(scheduler_module.asyncio, "sleep", AsyncMock()):
            await scheduler._run_job_loop("flaky", job, interval_minutes=1)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        scheduler = AlertScheduler()

        await scheduler.start()
        assert scheduler.is_running
        assert len(scheduler._tasks) == 2

        await scheduler.start()
        assert len(scheduler._tasks) == 2

        await scheduler.stop()
        assert not scheduler.is_running
        assert scheduler._tasks == []

    @pytest.mark.asyncio
    async def test_run_job_now_unknown_job(self):
        with pytest.raises(ValueError):
            await AlertScheduler().run_job_now("reindex")

    @pytest.mark.asyncio
    async def test_run_job_now_dispatches(self):
        scheduler = AlertScheduler()
        cleanup = AsyncMock(return_value={"deleted": 0, "days_old": 7})

        with patch.object(scheduler_module, "run_alert_retention_cleanup", cleanup):
            stats = await scheduler.run_job_now("alert_retention_cleanup", days_old=7)

        cleanup.assert_awaited_once_with(days_old=7)
        assert stats["days_old"] == 7
