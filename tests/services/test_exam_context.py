from unittest.mock import AsyncMock

import pytest

from core.domain import ContextSource
from services.exam_context import ExamContextBuilder


@pytest.fixture
def builder(document_session) -> ExamContextBuilder:
    return ExamContextBuilder(
        document_session,
        opening_chunks=2,
        opening_min_chars=100,
        opening_fallback_chars=60,
        answer_min_chars=50,
        answer_fallback_chars=40,
        top_k=1,
    )


async def test_opening_context_uses_document_summary(builder, document_session, topic_document) -> None:
    await document_session.load(topic_document, "Topics")

    result = builder.opening_context()

    assert result.source == ContextSource.SUMMARY
    assert result.title == "Topics"
    assert result.context == document_session.get_summary(2)


async def test_opening_context_falls_back_to_document_head_when_summary_short(
    document_session, topic_document
) -> None:
    await document_session.load(topic_document, "Topics")
    builder = ExamContextBuilder(
        document_session, opening_chunks=1, opening_min_chars=10_000, opening_fallback_chars=60
    )

    result = builder.opening_context()

    assert result.source == ContextSource.DOCUMENT_HEAD
    assert result.context == topic_document[:60]


async def test_answer_context_retrieves_on_question_and_answer(
    builder, document_session, fake_embeddings, topic_document
) -> None:
    await document_session.load(topic_document, "Topics")

    result = await builder.answer_context("What stores heat?", "The ocean stores climate heat")

    assert result.source == ContextSource.RETRIEVAL
    assert result.context.startswith("Climate models couple the ocean")
    assert fake_embeddings.query_calls[-1] == "What stores heat? The ocean stores climate heat"


async def test_answer_context_falls_back_when_retrieval_too_short(builder, document_session) -> None:
    document_session.retrieve_context = AsyncMock(return_value="tiny")
    document_session._document_text = "Raw document text that is long enough to be cut by the fallback."

    result = await builder.answer_context("question", "answer")

    assert result.source == ContextSource.DOCUMENT_HEAD
    assert result.context == "Raw document text that is long enough to"


async def test_answer_context_survives_retrieval_errors(builder, document_session, topic_document) -> None:
    await document_session.load(topic_document, "Topics")
    document_session.retrieve_context = AsyncMock(side_effect=RuntimeError("boom"))

    result = await builder.answer_context("question", "answer")

    assert result.source == ContextSource.DOCUMENT_HEAD
    assert result.context == topic_document[:40]


async def test_answer_context_honours_explicit_top_k(builder, document_session, topic_document) -> None:
    await document_session.load(topic_document, "Topics")

    result = await builder.answer_context("neural protein", "climate exam", top_k=4)

    assert result.context.count("\n\n---\n\n") == 3
