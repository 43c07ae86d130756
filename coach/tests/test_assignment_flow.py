import asyncio
import pytest
from coach.infra.Cache_Service import CacheService
from coach.logic.assignment.dispatcher import CloneDispatcher
from coach.logic.assignment.errors import EmptySelectionError, FlowBusyError, SelectionConflictError
from coach.logic.assignment.flow import open_flow, load_existing_plans
from coach.logic.assignment.reconciler import CacheReconciler

from fake_platform import FakePlatform


@pytest.fixture
def platform():
    p = FakePlatform()
    p.add_template("workout", "w1", "12-Week Cut")
    p.add_template("diet", "d9", "Keto Basics")
    p.add_client("c1", "Ana Pop")
    p.add_client("c2", "Bogdan Ionescu")
    p.add_client("c3", "Carmen Dobre")
    p.add_plan("workout", templateId="w1", name="12-Week Cut", clientId={"_id": "c1", "name": "Ana Pop"})
    p.add_plan("diet", templateId="", name="Keto Basics", clientId={"_id": "c2", "name": "Bogdan Ionescu"})
    return p


@pytest.fixture
def engine(platform):
    gateway = platform.gateway()
    cache = CacheService()
    return gateway, cache, CloneDispatcher(gateway), CacheReconciler(cache)


@pytest.mark.asyncio
async def test_already_assigned_client_cannot_be_selected(engine):
    gateway, cache, _, _ = engine
    flow = await open_flow(gateway, cache, "workout", "w1")

    assert flow.index.assigned_client_ids == {"c1"}
    assert flow.view()["assignedClientNames"] == ["Ana Pop"]
    assert flow.selection.toggle("c1") is False
    assert "c1" not in flow.selection


@pytest.mark.asyncio
async def test_legacy_diet_plan_marks_client_by_name(engine):
    gateway, cache, _, _ = engine
    flow = await open_flow(gateway, cache, "diet", "d9")
    assert flow.index.assigned_client_ids == {"c2"}
    rows = {r["id"]: r for r in flow.view()["clients"]}
    assert rows["c2"]["isAlreadyAssigned"] is True
    assert rows["c3"]["isAlreadyAssigned"] is False


@pytest.mark.asyncio
async def test_submit_dispatches_and_reconciles(platform, engine):
    gateway, cache, dispatcher, reconciler = engine
    flow = await open_flow(gateway, cache, "workout", "w1")
    assert flow.selection.select_all(flow.visible_client_ids()) == ["c2", "c3"]

    outcome = await flow.submit(dispatcher, reconciler)

    assert outcome.ok
    assert flow.closed
    assert len(flow.selection) == 0
    assert len(platform.plans_for("workout", "c2")) == 1
    assert cache.is_stale("/api/all-workout-plans")
    assert cache.is_stale("/api/workout-plans/c3")

    # next open refetches the feed and sees the new clones
    reads = platform.feed_reads
    reopened = await open_flow(gateway, cache, "workout", "w1")
    assert platform.feed_reads == reads + 1
    assert reopened.index.assigned_client_ids == {"c1", "c2", "c3"}


@pytest.mark.asyncio
async def test_feed_is_served_from_cache_until_invalidated(platform, engine):
    gateway, cache, _, _ = engine
    await load_existing_plans(gateway, cache, "workout")
    await load_existing_plans(gateway, cache, "workout")
    assert platform.feed_reads == 1


@pytest.mark.asyncio
async def test_empty_submit_is_rejected_before_any_request(platform, engine):
    gateway, cache, dispatcher, reconciler = engine
    flow = await open_flow(gateway, cache, "workout", "w1")
    with pytest.raises(EmptySelectionError):
        await flow.submit(dispatcher, reconciler)
    assert platform.clone_requests == []


@pytest.mark.asyncio
async def test_submit_rechecks_against_fresh_feed(platform, engine):
    gateway, cache, dispatcher, reconciler = engine
    flow = await open_flow(gateway, cache, "workout", "w1")
    flow.selection.toggle("c2")
    # another operator assigns c2 in the meantime
    platform.add_plan("workout", templateId="w1", name="12-Week Cut", clientId="c2")
    fresh = await gateway.list_existing_plans("workout")

    with pytest.raises(SelectionConflictError):
        await flow.submit(dispatcher, reconciler, fresh)
    assert platform.clone_requests == []


@pytest.mark.asyncio
async def test_partial_failure_keeps_failed_clients_selected(platform, engine):
    gateway, cache, dispatcher, reconciler = engine
    platform.fail_for = {"c3"}
    flow = await open_flow(gateway, cache, "workout", "w1")
    flow.selection.select_all(["c2", "c3"])

    outcome = await flow.submit(dispatcher, reconciler)

    assert not outcome.ok
    assert not flow.closed
    assert flow.selection.selected == ["c3"]
    assert "c2" in flow.index.assigned_client_ids
    # c2's clone exists, so the feed must be refetched
    assert cache.is_stale("/api/all-workout-plans")
    assert cache.is_stale("/api/workout-plans/c2")

    platform.fail_for = set()
    retried = await flow.retry(dispatcher, reconciler)
    assert retried.ok
    assert retried.client_ids == ["c3"]
    assert flow.closed


@pytest.mark.asyncio
async def test_flow_is_busy_while_dispatching(engine):
    gateway, cache, dispatcher, reconciler = engine
    flow = await open_flow(gateway, cache, "workout", "w1")
    flow.selection.toggle("c2")

    task = asyncio.ensure_future(flow.submit(dispatcher, reconciler))
    await asyncio.sleep(0.001)
    assert flow.busy
    with pytest.raises(FlowBusyError):
        await flow.submit(dispatcher, reconciler)
    await task
    assert not flow.busy


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_clones(platform, engine):
    gateway, cache, dispatcher, reconciler = engine
    flow = await open_flow(gateway, cache, "workout", "w1")
    flow.selection.select_all(["c2", "c3"])

    task = asyncio.ensure_future(flow.submit(dispatcher, reconciler))
    await asyncio.sleep(0.001)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    # still in flight: the flow stays locked
    assert flow.busy
    with pytest.raises(FlowBusyError):
        await flow.submit(dispatcher, reconciler)

    await asyncio.sleep(0.05)
    assert not flow.busy
    assert flow.closed
    assert flow.last_outcome.ok
    assert flow.selection.selected == []
    assert {"c2", "c3"} <= flow.index.assigned_client_ids
    assert ("/api/all-workout-plans",) in cache.stale_keys()
    assert len(platform.plans_for("workout", "c2")) == 1
    assert len(platform.plans_for("workout", "c3")) == 1

    reopened = await open_flow(gateway, cache, "workout", "w1")
    assert {"c1", "c2", "c3"} <= reopened.index.assigned_client_ids
    assert not reopened.selection.toggle("c2")
    with pytest.raises(EmptySelectionError):
        await reopened.submit(dispatcher, reconciler)
    assert len(platform.plans_for("workout", "c2")) == 1


@pytest.mark.asyncio
async def test_cancelled_caller_still_records_partial_failure(platform, engine):
    gateway, cache, dispatcher, reconciler = engine
    platform.fail_for = {"c3"}
    flow = await open_flow(gateway, cache, "workout", "w1")
    flow.selection.select_all(["c2", "c3"])

    task = asyncio.ensure_future(flow.submit(dispatcher, reconciler))
    await asyncio.sleep(0.001)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0.05)

    assert not flow.busy
    assert not flow.closed
    assert flow.selection.selected == ["c3"]
    assert "c2" in flow.index.assigned_client_ids
    assert not flow.selection.toggle("c2")
