import asyncio

import pytest

from rag_gateway.knowledge.registry import KnowledgeBaseRegistry


@pytest.mark.asyncio
async def test_register_is_idempotent() -> None:
    registry = KnowledgeBaseRegistry()

    assert await registry.register("doc-a") is True
    assert await registry.register("doc-a") is False

    assert await registry.list() == frozenset({"doc-a"})
    assert registry.size() == 1


@pytest.mark.asyncio
async def test_unregister_all_empties_registry_and_returns_snapshot() -> None:
    registry = KnowledgeBaseRegistry()
    for doc_id in ("doc-a", "doc-b", "doc-c"):
        await registry.register(doc_id)

    removed = await registry.unregister_all()

    assert removed == ["doc-a", "doc-b", "doc-c"]
    assert await registry.list() == frozenset()
    assert not await registry.contains("doc-b")


@pytest.mark.asyncio
async def test_unregister_all_on_empty_registry() -> None:
    registry = KnowledgeBaseRegistry()

    assert await registry.unregister_all() == []
    assert registry.size() == 0


@pytest.mark.asyncio
async def test_exclusive_section_blocks_concurrent_writers() -> None:
    registry = KnowledgeBaseRegistry()
    events: list[str] = []

    async def slow_commit() -> None:
        async with registry.exclusive() as txn:
            events.append("commit-start")
            await asyncio.sleep(0.01)
            txn.add("doc-slow")
            events.append("commit-end")

    async def clear() -> None:
        await asyncio.sleep(0)
        await registry.unregister_all()
        events.append("cleared")

    await asyncio.gather(slow_commit(), clear())

    assert events == ["commit-start", "commit-end", "cleared"]
    assert registry.size() == 0
