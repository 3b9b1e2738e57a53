# tests/services/test_tag_dispatch.py
"""Tests for the background tag statistics dispatcher and sweep worker."""

import asyncio
import logging

import pytest
from sqlalchemy import select

from underkover.models import Tag
from underkover.services.tag_dispatch import TagStatsDispatcher, TagSweepWorker
from underkover.services.tag_stats import TagStatsService


@pytest.fixture()
def recorded(mocker):
    """Record recomputed names and fail for the tag called ``bad``."""
    names: list[str] = []
    original = TagStatsService.recompute

    def recompute(self, tag_name, now=None):
        names.append(tag_name)
        if tag_name == "bad":
            raise RuntimeError("boom")
        return original(self, tag_name, now=now)

    mocker.patch.object(TagStatsService, "recompute", recompute)
    return names


@pytest.mark.asyncio
async def test_dispatcher_recomputes_submitted_tags(session_factory, make_post, recorded) -> None:
    make_post("a", tags=["vent", "advice"])
    dispatcher = TagStatsDispatcher(session_factory)
    await dispatcher.start()

    dispatcher.submit(["vent", "advice", "vent"])
    await dispatcher.drain()
    await dispatcher.stop()

    assert recorded == ["vent", "advice"]
    with session_factory() as session:
        counts = dict(session.execute(select(Tag.name, Tag.post_count)).all())
    assert counts == {"vent": 1, "advice": 1}


@pytest.mark.asyncio
async def test_failing_tag_does_not_stop_its_siblings(session_factory, make_post, recorded, caplog) -> None:
    make_post("b", tags=["first", "last"])
    dispatcher = TagStatsDispatcher(session_factory)
    await dispatcher.start()

    with caplog.at_level(logging.ERROR, logger="underkover.services.tag_dispatch"):
        dispatcher.submit(["first", "bad", "last"])
        await dispatcher.drain()

    assert dispatcher.running
    await dispatcher.stop()
    assert not dispatcher.running

    assert recorded == ["first", "bad", "last"]
    assert "Tag stats update failed for bad" in caplog.text
    with session_factory() as session:
        names = set(session.scalars(select(Tag.name)))
    assert names == {"first", "last"}


@pytest.mark.asyncio
async def test_submit_does_not_wait_for_the_worker(session_factory, recorded) -> None:
    dispatcher = TagStatsDispatcher(session_factory)

    dispatcher.submit(["queued"])
    assert recorded == []

    await dispatcher.start()
    await dispatcher.stop()
    assert recorded == ["queued"]


@pytest.mark.asyncio
async def test_sweep_run_once_recomputes_every_tag(session_factory, db_session, make_post) -> None:
    make_post("c", tags=["sweep"])
    TagStatsService(db_session).recompute("sweep")
    TagStatsService(db_session).recompute("unused")

    worker = TagSweepWorker(session_factory, interval_seconds=0)

    assert await worker.run_once() == 2


@pytest.mark.asyncio
async def test_sweep_loop_runs_until_stopped(session_factory, mocker) -> None:
    sweep = mocker.patch.object(TagSweepWorker, "_sweep", return_value=0)
    worker = TagSweepWorker(session_factory, interval_seconds=0.01)

    await worker.start()
    for _ in range(100):
        if sweep.call_count >= 2:
            break
        await asyncio.sleep(0.01)
    await worker.stop()

    assert sweep.call_count >= 2


@pytest.mark.asyncio
async def test_sweep_disabled_with_zero_interval(session_factory, mocker) -> None:
    sweep = mocker.patch.object(TagSweepWorker, "_sweep", return_value=0)
    worker = TagSweepWorker(session_factory, interval_seconds=0)

    await worker.start()
    await asyncio.sleep(0.02)
    await worker.stop()

    sweep.assert_not_called()
