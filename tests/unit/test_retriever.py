import pytest

from rag_gateway.errors import RetrievalError, ValidationError
from rag_gateway.retrieval.retriever import ScopedRetriever
from tests.fakes import FRUIT_TEXT, FailingEmbedder, SlowEmbedder


@pytest.mark.asyncio
async def test_fruit_query_finds_ingested_counts(ingestor, retriever) -> None:
    document, _ = await ingestor.ingest(FRUIT_TEXT, "fruits.txt")

    hits = await retriever.retrieve("What is the total number of fruits?", {document.doc_id})

    assert hits
    assert "10 apples" in hits[0].chunk.text
    assert "77 bananas" in hits[0].chunk.text


@pytest.mark.asyncio
async def test_empty_scope_is_always_empty(ingestor, vector_store) -> None:
    await ingestor.ingest(FRUIT_TEXT, "fruits.txt")
    retriever = ScopedRetriever(vector_store, FailingEmbedder(), timeout=5.0)

    # No embedding call is made for an empty scope.
    assert await retriever.retrieve("apples", set()) == []


@pytest.mark.asyncio
async def test_results_never_leave_scope(ingestor, retriever) -> None:
    kept, _ = await ingestor.ingest(FRUIT_TEXT, "fruits.txt")
    await ingestor.ingest("Norman also keeps 5 pears and 3 plums.", "more-fruits.txt")

    hits = await retriever.retrieve("How many pears and apples?", {kept.doc_id})

    assert hits
    assert {hit.chunk.doc_id for hit in hits} == {kept.doc_id}


@pytest.mark.asyncio
async def test_ranking_is_deterministic(ingestor, retriever, registry) -> None:
    for i in range(4):
        await ingestor.ingest(f"Warehouse {i} stores apples and oranges.", f"w{i}.txt")
    scope = await registry.list()

    first = await retriever.retrieve("apples in the warehouse", scope)
    second = await retriever.retrieve("apples in the warehouse", scope)

    assert [hit.chunk.chunk_id for hit in first] == [hit.chunk.chunk_id for hit in second]
    assert [hit.score for hit in first] == sorted((hit.score for hit in first), reverse=True)


@pytest.mark.asyncio
async def test_blank_query_is_rejected(retriever) -> None:
    with pytest.raises(ValidationError):
        await retriever.retrieve("  ", {"doc-a"})


@pytest.mark.asyncio
async def test_embedder_failure_is_a_retrieval_error(vector_store) -> None:
    retriever = ScopedRetriever(vector_store, FailingEmbedder(), timeout=5.0)

    with pytest.raises(RetrievalError):
        await retriever.retrieve("apples", {"doc-a"})


@pytest.mark.asyncio
async def test_query_embedding_timeout_is_a_retrieval_error(ingestor, vector_store) -> None:
    document, _ = await ingestor.ingest(FRUIT_TEXT, "fruits.txt")
    retriever = ScopedRetriever(vector_store, SlowEmbedder(), timeout=0.01)

    with pytest.raises(RetrievalError) as excinfo:
        await retriever.retrieve("apples", {document.doc_id})

    assert excinfo.value.details["operation"] == "embed query"
