"""Tests for GeminiEmbeddingService request shape and failure policy."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests

from infrastructure.embedding_services import GeminiEmbeddingService


def make_response(status_code: int = 200, payload=None, json_error: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = "error body"
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload if payload is not None else {}
    return response


def ok_response(values):
    return make_response(200, {"embedding": {"values": values}})


@pytest.fixture
def service() -> GeminiEmbeddingService:
    return GeminiEmbeddingService(
        api_key="test-key",
        model="text-embedding-004",
        base_url="https://example.test/v1beta/",
        document_timeout=10.0,
        query_timeout=0.8,
        max_retries=2,
        query_retries=0,
        backoff_base=2.0,
    )


@pytest.fixture
def no_sleep():
    """Backoff sleep handed to tenacity, replaced so retries run instantly."""
    with patch("infrastructure.embedding_services.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestRequestShape:

    async def test_document_embedding_posts_retrieval_document(self, service) -> None:
        with patch("infrastructure.embedding_services.requests.post", return_value=ok_response([0.1, 0.2])) as post:
            result = await service.generate_document_embedding("Some chunk text")

        assert result == [0.1, 0.2]
        args, kwargs = post.call_args
        assert args[0] == "https://example.test/v1beta/models/text-embedding-004:embedContent"
        assert kwargs["params"] == {"key": "test-key"}
        assert kwargs["json"] == {
            "model": "models/text-embedding-004",
            "content": {"parts": [{"text": "Some chunk text"}]},
            "taskType": "RETRIEVAL_DOCUMENT",
        }
        assert kwargs["timeout"] == 10.0

    async def test_query_embedding_posts_retrieval_query_with_short_timeout(self, service) -> None:
        with patch("infrastructure.embedding_services.requests.post", return_value=ok_response([1, 2])) as post:
            result = await service.generate_query_embedding("what is folding?")

        assert result == [1.0, 2.0]
        kwargs = post.call_args.kwargs
        assert kwargs["json"]["taskType"] == "RETRIEVAL_QUERY"
        assert kwargs["timeout"] == 0.8

    @pytest.mark.parametrize("text", ["", "   "])
    async def test_blank_text_skips_request(self, service, text) -> None:
        with patch("infrastructure.embedding_services.requests.post") as post:
            assert await service.generate_document_embedding(text) is None
        post.assert_not_called()

    async def test_missing_api_key_skips_request(self) -> None:
        service = GeminiEmbeddingService(api_key="")
        with patch("infrastructure.embedding_services.requests.post") as post:
            assert await service.generate_document_embedding("text") is None
        post.assert_not_called()


class TestFailurePolicy:

    async def test_rate_limit_backs_off_exponentially_then_succeeds(self, service, no_sleep) -> None:
        responses = [make_response(429), make_response(429), ok_response([0.5])]
        with patch("infrastructure.embedding_services.requests.post", side_effect=responses) as post:
            result = await service.generate_document_embedding("text")

        assert result == [0.5]
        assert post.call_count == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [2.0, 4.0]

    async def test_timeout_during_backoff_is_not_retried(self, service, no_sleep) -> None:
        responses = [make_response(429), requests.exceptions.Timeout("slow")]
        with patch("infrastructure.embedding_services.requests.post", side_effect=responses) as post:
            result = await service.generate_document_embedding("text")

        assert result is None
        assert post.call_count == 2
        assert [c.args[0] for c in no_sleep.await_args_list] == [2.0]

    async def test_rate_limit_exhausts_retry_budget(self, service, no_sleep) -> None:
        with patch("infrastructure.embedding_services.requests.post", return_value=make_response(429)) as post:
            result = await service.generate_document_embedding("text")

        assert result is None
        assert post.call_count == 3

    async def test_query_rate_limit_is_not_retried_by_default(self, service, no_sleep) -> None:
        with patch("infrastructure.embedding_services.requests.post", return_value=make_response(429)) as post:
            result = await service.generate_query_embedding("question")

        assert result is None
        assert post.call_count == 1
        no_sleep.assert_not_awaited()

    async def test_timeout_returns_none_without_retry(self, service) -> None:
        with patch(
            "infrastructure.embedding_services.requests.post",
            side_effect=requests.exceptions.Timeout("slow"),
        ) as post:
            assert await service.generate_document_embedding("text") is None
        assert post.call_count == 1

    async def test_transport_error_returns_none(self, service) -> None:
        with patch(
            "infrastructure.embedding_services.requests.post",
            side_effect=requests.exceptions.ConnectionError("refused"),
        ):
            assert await service.generate_document_embedding("text") is None

    @pytest.mark.parametrize("status_code", [400, 403, 500, 503])
    async def test_other_error_status_returns_none_without_retry(self, service, status_code) -> None:
        with patch(
            "infrastructure.embedding_services.requests.post",
            return_value=make_response(status_code),
        ) as post:
            assert await service.generate_document_embedding("text") is None
        assert post.call_count == 1

    @pytest.mark.parametrize("response", [
        make_response(200, json_error=True),
        make_response(200, {"embedding": {}}),
        make_response(200, {"embedding": {"values": []}}),
        make_response(200, {"unexpected": True}),
        make_response(200, ["not", "a", "dict"]),
        make_response(200, {"embedding": {"values": ["x", "y"]}}),
    ])
    async def test_malformed_body_returns_none(self, service, response) -> None:
        with patch("infrastructure.embedding_services.requests.post", return_value=response):
            assert await service.generate_document_embedding("text") is None
