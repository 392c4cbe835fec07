"""Tests for ReclassificationWorker."""

import asyncio
from datetime import timedelta

import pytest

from conftest import NOW, FakeClassifier, make_product
from glutenpeek.models import CONTAINS_GLUTEN
from glutenpeek.staleness import ReclassifyState, StalenessClassifier
from glutenpeek.worker import ReclassificationWorker


@pytest.fixture
def classifier():
    return FakeClassifier(label=CONTAINS_GLUTEN)


@pytest.fixture
def staleness(status_db, classifier):
    return StalenessClassifier(status_db, classifier, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_submit_and_drain(catalog, staleness, classifier):
    catalog.create(make_product(age=timedelta(days=8)))
    worker = ReclassificationWorker(staleness)
    worker.start()
    try:
        assert worker.submit("0001") is True
        await worker.drain()
    finally:
        await worker.stop()

    assert len(classifier.calls) == 1
    assert [r.state for r in worker.results] == [ReclassifyState.UPDATED]
    assert catalog.get("0001").status.label == CONTAINS_GLUTEN


@pytest.mark.asyncio
async def test_pending_barcode_is_not_queued_twice(catalog, staleness, classifier):
    catalog.create(make_product(age=timedelta(days=8)))
    worker = ReclassificationWorker(staleness)

    assert worker.submit("0001") is True
    assert worker.submit("0001") is False

    await worker.drain()
    await worker.stop()
    assert len(classifier.calls) == 1


@pytest.mark.asyncio
async def test_full_queue_drops(staleness):
    worker = ReclassificationWorker(staleness, queue_size=1)
    assert worker.submit("0001") is True
    assert worker.submit("0002") is False


@pytest.mark.asyncio
async def test_worker_survives_check_errors(catalog, status_db, classifier):
    catalog.create(make_product("0002", age=timedelta(days=8)))

    class ExplodingStaleness:
        def __init__(self, inner):
            self.inner = inner

        async def check(self, barcode):
            if barcode == "0001":
                raise RuntimeError("database locked")
            return await self.inner.check(barcode)

    inner = StalenessClassifier(status_db, classifier, clock=lambda: NOW)
    worker = ReclassificationWorker(ExplodingStaleness(inner))
    worker.start()
    worker.submit("0001")
    worker.submit("0002")
    await worker.drain()
    await worker.stop()

    assert [r.barcode for r in worker.results] == ["0002"]


@pytest.mark.asyncio
async def test_submit_does_not_wait_for_classification(catalog, status_db):
    catalog.create(make_product(age=timedelta(days=8)))
    gate = asyncio.Event()

    class GatedClassifier(FakeClassifier):
        async def check_status(self, name, ingredients, current_label):
            await gate.wait()
            return await super().check_status(name, ingredients, current_label)

    worker = ReclassificationWorker(
        StalenessClassifier(status_db, GatedClassifier(), clock=lambda: NOW)
    )
    worker.start()
    worker.submit("0001")
    await asyncio.sleep(0)
    assert len(worker.results) == 0

    gate.set()
    await worker.drain()
    await worker.stop()
    assert len(worker.results) == 1
    assert worker.running is False


@pytest.mark.asyncio
async def test_result_history_is_bounded(catalog, staleness):
    for i in range(5):
        catalog.create(make_product(f"000{i}", age=timedelta(days=8)))
    worker = ReclassificationWorker(staleness, history_size=2)
    worker.start()
    try:
        for _ in range(3):
            for i in range(5):
                worker.submit(f"000{i}")
            await worker.drain()
    finally:
        await worker.stop()

    assert len(worker.results) == 2
    assert [r.barcode for r in worker.results] == ["0003", "0004"]
