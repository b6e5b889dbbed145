"""Pipeline service against the SQL stores (in-memory SQLite)."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import OTHER_OWNER, OWNER
from core.exceptions import ConflictError, NotFoundError, ValidationError
from services.pipeline_service import PipelineService


@pytest.fixture
def create_agent(agent_store):
    async def _create(role="processing", name=None, owner=OWNER, stage=None):
        return await agent_store.create_agent(
            owner_id=owner,
            name=name or f"{role} agent",
            role=role,
            stage=stage,
        )
    return _create


@pytest.fixture
def create_inbox(inbox_store):
    async def _create(owner=OWNER, name="Support"):
        inbox = await inbox_store.create_inbox(owner, name, "email")
        return inbox["inbox_id"]
    return _create


@pytest.mark.asyncio
async def test_assign_and_list_response_agent(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    agent = await create_agent("response", name="Replier")

    slot = await pipeline_service.assign_response_agent(inbox_id, agent.agent_id, {"tone": "brief"}, owner_id=OWNER)
    assert slot["agent_id"] == agent.agent_id
    assert slot["name"] == "Replier"
    assert slot["agent_type"] == "response"
    assert slot["config"] == {"tone": "brief"}

    listing = await pipeline_service.list_agents(inbox_id, owner_id=OWNER)
    assert listing["response_agent"]["agent_id"] == agent.agent_id
    assert listing["processing_agents"] == []
    assert listing["summary"]["has_response_agent"] is True
    assert listing["inbox"] == {"id": inbox_id, "name": "Support", "channel_type": "email"}


@pytest.mark.asyncio
async def test_role_exclusivity_both_ways(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    responder = await create_agent("response")
    processor = await create_agent("processing")

    with pytest.raises(ConflictError) as exc_info:
        await pipeline_service.add_processing_agent(inbox_id, responder.agent_id, owner_id=OWNER)
    assert exc_info.value.code == "RoleMismatch"

    with pytest.raises(ConflictError) as exc_info:
        await pipeline_service.assign_response_agent(inbox_id, processor.agent_id, owner_id=OWNER)
    assert exc_info.value.code == "RoleMismatch"

    listing = await pipeline_service.list_agents(inbox_id)
    assert listing["response_agent"] is None
    assert listing["processing_agents"] == []


@pytest.mark.asyncio
async def test_response_holder_cannot_be_added_to_pipeline(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    responder = await create_agent("response")
    await pipeline_service.assign_response_agent(inbox_id, responder.agent_id, owner_id=OWNER)

    with pytest.raises(ConflictError) as exc_info:
        await pipeline_service.add_processing_agent(inbox_id, responder.agent_id, priority=50, owner_id=OWNER)
    assert exc_info.value.code == "AlreadyAssignedElsewhere"


@pytest.mark.asyncio
async def test_priorities_read_back_sorted(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    for priority in (300, 50, 100):
        agent = await create_agent(name=f"p{priority}")
        await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, priority=priority, owner_id=OWNER)

    listing = await pipeline_service.list_agents(inbox_id, owner_id=OWNER)
    assert [a["priority"] for a in listing["processing_agents"]] == [50, 100, 300]
    assert listing["summary"]["processing_count"] == 3


@pytest.mark.asyncio
async def test_later_lower_priority_runs_first(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    p1 = await create_agent(name="P1")
    p2 = await create_agent(name="P2")
    await pipeline_service.add_processing_agent(inbox_id, p1.agent_id, priority=100, owner_id=OWNER)
    await pipeline_service.add_processing_agent(inbox_id, p2.agent_id, priority=10, owner_id=OWNER)

    listing = await pipeline_service.list_agents(inbox_id)
    assert [a["agent_id"] for a in listing["processing_agents"]] == [p2.agent_id, p1.agent_id]


@pytest.mark.asyncio
async def test_tie_order_survives_reload(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    agents = [await create_agent(name=name) for name in ("first", "second", "third")]
    for agent in agents:
        await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, priority=100, owner_id=OWNER)

    listing = await pipeline_service.list_agents(inbox_id)
    assert [a["name"] for a in listing["processing_agents"]] == ["first", "second", "third"]


@pytest.mark.asyncio
async def test_duplicate_add_rejected(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    agent = await create_agent()
    await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, owner_id=OWNER)

    with pytest.raises(ConflictError) as exc_info:
        await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, priority=5, owner_id=OWNER)
    assert exc_info.value.code == "Duplicate"

    listing = await pipeline_service.list_agents(inbox_id)
    assert len(listing["processing_agents"]) == 1
    assert listing["processing_agents"][0]["priority"] == 100


class SlowWriteInboxStore:
    """
    Inbox store whose roster writes yield between load and write, the way a
    store with async I/O would. Two unguarded writers both see the old roster.
    """

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def mutate_roster(self, inbox_id, mutation, owner_id=None, agent_id=None):
        _, snapshot = await self.inner.load_roster(inbox_id)
        result = mutation(snapshot)
        await asyncio.sleep(0)

        def overwrite(roster):
            roster.response_slot = snapshot.response_slot
            roster._processing = snapshot.processing_agents

        inbox, roster, _ = await self.inner.mutate_roster(inbox_id, overwrite, owner_id=owner_id, agent_id=agent_id)
        return inbox, roster, result


@pytest.mark.asyncio
async def test_concurrent_adds_of_same_agent(inbox_store, agent_store, create_agent, create_inbox):
    service = PipelineService(inbox_store=SlowWriteInboxStore(inbox_store), agent_store=agent_store)
    inbox_id = await create_inbox()
    agent = await create_agent()

    results = await asyncio.gather(
        service.add_processing_agent(inbox_id, agent.agent_id, owner_id=OWNER),
        service.add_processing_agent(inbox_id, agent.agent_id, owner_id=OWNER),
        return_exceptions=True,
    )
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(conflicts) == 1
    assert conflicts[0].code == "Duplicate"
    listing = await service.list_agents(inbox_id)
    assert len(listing["processing_agents"]) == 1
    assert service._locks == {}


@pytest.mark.asyncio
async def test_concurrent_adds_of_different_agents_both_kept(inbox_store, agent_store, create_agent, create_inbox):
    service = PipelineService(inbox_store=SlowWriteInboxStore(inbox_store), agent_store=agent_store)
    inbox_id = await create_inbox()
    first = await create_agent(name="first")
    second = await create_agent(name="second")

    await asyncio.gather(
        service.add_processing_agent(inbox_id, first.agent_id, priority=20, owner_id=OWNER),
        service.add_processing_agent(inbox_id, second.agent_id, priority=10, owner_id=OWNER),
    )
    listing = await service.list_agents(inbox_id)
    assert [a["name"] for a in listing["processing_agents"]] == ["second", "first"]


@pytest.mark.asyncio
async def test_missing_inboxes_leave_no_locks(pipeline_service):
    for i in range(50):
        with pytest.raises(NotFoundError):
            await pipeline_service.remove_response_agent(f"missing-{i}", owner_id=OWNER)
        with pytest.raises(NotFoundError):
            await pipeline_service.update_processing_agent(f"missing-{i}", "agent", priority=5, owner_id=OWNER)
        with pytest.raises(NotFoundError):
            await pipeline_service.remove_processing_agent(f"missing-{i}", "agent", owner_id=OWNER)
    assert pipeline_service._locks == {}
    assert pipeline_service._lock_users == {}


@pytest.mark.asyncio
async def test_locks_released_after_mutations(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    agent = await create_agent()
    await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, owner_id=OWNER)
    with pytest.raises(ConflictError):
        await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, owner_id=OWNER)
    with pytest.raises(NotFoundError):
        await pipeline_service.remove_response_agent(inbox_id, owner_id=OWNER)

    assert pipeline_service._locks == {}
    assert pipeline_service._lock_users == {}


@pytest.mark.asyncio
async def test_agent_deleted_after_lookup_is_not_added(
    pipeline_service, agent_store, create_agent, create_inbox, monkeypatch
):
    inbox_id = await create_inbox()
    agent = await create_agent()
    await agent_store.delete_agent(agent.agent_id)
    # Lookup returns the agent as read before the delete
    monkeypatch.setattr(agent_store, "get_agent", AsyncMock(return_value=agent))

    with pytest.raises(NotFoundError) as exc_info:
        await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, owner_id=OWNER)
    assert exc_info.value.code == "AgentNotFound"
    listing = await pipeline_service.list_agents(inbox_id)
    assert listing["processing_agents"] == []


@pytest.mark.asyncio
async def test_agent_deleted_after_lookup_does_not_take_slot(
    pipeline_service, agent_store, create_agent, create_inbox, monkeypatch
):
    inbox_id = await create_inbox()
    agent = await create_agent("response")
    await agent_store.delete_agent(agent.agent_id)
    monkeypatch.setattr(agent_store, "get_agent", AsyncMock(return_value=agent))

    with pytest.raises(NotFoundError) as exc_info:
        await pipeline_service.assign_response_agent(inbox_id, agent.agent_id, owner_id=OWNER)
    assert exc_info.value.code == "AgentNotFound"
    listing = await pipeline_service.list_agents(inbox_id)
    assert listing["response_agent"] is None


@pytest.mark.asyncio
async def test_update_and_remove_processing_agent(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    a = await create_agent(name="a")
    b = await create_agent(name="b")
    await pipeline_service.add_processing_agent(inbox_id, a.agent_id, priority=10, config={"x": 1}, owner_id=OWNER)
    await pipeline_service.add_processing_agent(inbox_id, b.agent_id, priority=20, owner_id=OWNER)

    result = await pipeline_service.update_processing_agent(
        inbox_id, a.agent_id, priority=30, is_active=False, config={"y": 2}, owner_id=OWNER
    )
    assert result["agent"]["priority"] == 30
    assert result["agent"]["is_active"] is False
    assert result["agent"]["config"] == {"x": 1, "y": 2}
    assert result["summary"] == {"total_agents": 2, "active_agents": 1}

    listing = await pipeline_service.list_agents(inbox_id)
    assert [x["agent_id"] for x in listing["processing_agents"]] == [b.agent_id, a.agent_id]

    removed = await pipeline_service.remove_processing_agent(inbox_id, a.agent_id, owner_id=OWNER)
    assert removed["agent"]["agent_id"] == a.agent_id
    assert removed["summary"] == {"total_agents": 1, "active_agents": 1}

    with pytest.raises(NotFoundError) as exc_info:
        await pipeline_service.remove_processing_agent(inbox_id, a.agent_id, owner_id=OWNER)
    assert exc_info.value.code == "NotAssigned"


@pytest.mark.asyncio
async def test_invalid_priority_writes_nothing(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    agent = await create_agent()
    with pytest.raises(ValidationError):
        await pipeline_service.add_processing_agent(inbox_id, agent.agent_id, priority=1000, owner_id=OWNER)
    listing = await pipeline_service.list_agents(inbox_id)
    assert listing["processing_agents"] == []


@pytest.mark.asyncio
async def test_remove_response_agent(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    with pytest.raises(NotFoundError) as exc_info:
        await pipeline_service.remove_response_agent(inbox_id, owner_id=OWNER)
    assert exc_info.value.code == "NothingAssigned"

    agent = await create_agent("response")
    await pipeline_service.assign_response_agent(inbox_id, agent.agent_id, owner_id=OWNER)
    removed = await pipeline_service.remove_response_agent(inbox_id, owner_id=OWNER)
    assert removed["agent_id"] == agent.agent_id
    assert (await pipeline_service.list_agents(inbox_id))["response_agent"] is None


@pytest.mark.asyncio
async def test_ownership_is_enforced(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    foreign_agent = await create_agent(owner=OTHER_OWNER)

    with pytest.raises(NotFoundError) as exc_info:
        await pipeline_service.add_processing_agent(inbox_id, foreign_agent.agent_id, owner_id=OWNER)
    assert exc_info.value.code == "AgentNotFound"

    with pytest.raises(NotFoundError) as exc_info:
        await pipeline_service.list_agents(inbox_id, owner_id=OTHER_OWNER)
    assert exc_info.value.code == "InboxNotFound"

    with pytest.raises(NotFoundError):
        await pipeline_service.add_processing_agent("missing-inbox", foreign_agent.agent_id, owner_id=OWNER)


@pytest.mark.asyncio
async def test_get_pipeline_filters_inactive_and_range(pipeline_service, create_agent, create_inbox):
    inbox_id = await create_inbox()
    responder = await create_agent("response")
    await pipeline_service.assign_response_agent(inbox_id, responder.agent_id, owner_id=OWNER)
    agents = {}
    for priority in (10, 50, 100, 200):
        agents[priority] = await create_agent(name=f"p{priority}")
        await pipeline_service.add_processing_agent(inbox_id, agents[priority].agent_id, priority=priority, owner_id=OWNER)
    await pipeline_service.update_processing_agent(inbox_id, agents[50].agent_id, is_active=False, owner_id=OWNER)

    pipeline = await pipeline_service.get_pipeline(inbox_id, owner_id=OWNER)
    assert [a["priority"] for a in pipeline["processing_agents"]] == [10, 100, 200]
    assert pipeline["response_agent"]["agent_id"] == responder.agent_id

    ranged = await pipeline_service.get_pipeline(inbox_id, min_priority=10, max_priority=200)
    assert [a["priority"] for a in ranged["processing_agents"]] == [10, 100]
