"""Tests for the generation client."""

import pytest

from recruiter.app.core.config import Settings
from recruiter.app.exceptions import ExhaustedRetriesError, TransientError, UpstreamError
from recruiter.app.providers.retry import RetryPolicy
from recruiter.app.services.generation import GenerationClient, GenerationRequest
from tests.conftest import ScriptedProvider, completion


def make_client(provider, sleep, **kwargs) -> GenerationClient:
    return GenerationClient(provider, model="gpt-test", temperature=0.7, sleep=sleep, **kwargs)


class TestPayload:

    def test_two_message_prompt(self, recording_sleep):
        client = make_client(ScriptedProvider(completion("x")), recording_sleep)

        payload = client.build_payload(GenerationRequest("system text", "user text"))

        assert payload == {
            "model": "gpt-test",
            "messages": [
                {"role": "system", "content": "system text"},
                {"role": "user", "content": "user text"},
            ],
            "temperature": 0.7,
        }

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            model="gpt-custom",
            temperature=0.2,
            generation_max_attempts=5,
            generation_backoff_base=0.5,
        )

        client = GenerationClient.from_settings(ScriptedProvider(completion("x")), settings)

        assert client.model == "gpt-custom"
        assert client.temperature == 0.2
        assert client.retry_policy.max_attempts == 5
        assert client.retry_policy.base_delay == 0.5


class TestGenerate:

    @pytest.mark.asyncio
    async def test_plain_text(self, recording_sleep):
        provider = ScriptedProvider(completion("<h2>Engineer</h2>"))
        client = make_client(provider, recording_sleep)

        result = await client.generate(GenerationRequest("s", "u"))

        assert result.raw_text == "<h2>Engineer</h2>"
        assert result.structured is None
        assert result.attempts == 1
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_structured_output_is_extracted(self, recording_sleep):
        provider = ScriptedProvider(completion('Here you go:\n{"technical": []}\nEnjoy'))
        client = make_client(provider, recording_sleep)

        result = await client.generate(GenerationRequest("s", "u", expect_structured=True))

        assert result.structured == {"technical": []}

    @pytest.mark.asyncio
    async def test_failed_extraction_is_not_an_error(self, recording_sleep):
        provider = ScriptedProvider(completion("I cannot answer in JSON today."))
        client = make_client(provider, recording_sleep)

        result = await client.generate(GenerationRequest("s", "u", expect_structured=True))

        assert result.raw_text == "I cannot answer in JSON today."
        assert result.structured is None

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, recording_sleep):
        provider = ScriptedProvider(
            TransientError(OSError("getaddrinfo EAI_AGAIN")),
            TransientError(timeout=True),
            completion("done"),
        )
        client = make_client(provider, recording_sleep)

        result = await client.generate(GenerationRequest("s", "u"))

        assert result.raw_text == "done"
        assert result.attempts == 3
        assert len(provider.calls) == 3
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_upstream_4xx_fails_after_one_attempt(self, recording_sleep):
        provider = ScriptedProvider(UpstreamError(400, '{"error": {"message": "bad"}}'))
        client = make_client(provider, recording_sleep)

        with pytest.raises(UpstreamError) as exc_info:
            await client.generate(GenerationRequest("s", "u"))

        assert exc_info.value.status == 400
        assert len(provider.calls) == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_upstream_5xx_is_not_retried(self, recording_sleep):
        provider = ScriptedProvider(UpstreamError(503, "overloaded"))
        client = make_client(provider, recording_sleep)

        with pytest.raises(UpstreamError):
            await client.generate(GenerationRequest("s", "u"))

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries(self, recording_sleep):
        provider = ScriptedProvider(TransientError(timeout=True))
        client = make_client(provider, recording_sleep)

        with pytest.raises(ExhaustedRetriesError) as exc_info:
            await client.generate(GenerationRequest("s", "u"))

        assert exc_info.value.attempts == 3
        assert exc_info.value.timed_out
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_custom_policy(self, recording_sleep):
        provider = ScriptedProvider(TransientError(ConnectionResetError()))
        client = make_client(
            provider, recording_sleep, retry_policy=RetryPolicy(max_attempts=4, base_delay=0.25)
        )

        with pytest.raises(ExhaustedRetriesError):
            await client.generate(GenerationRequest("s", "u"))

        assert len(provider.calls) == 4
        assert recording_sleep.delays == [0.25, 0.5, 0.75]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"choices": []},
            {"choices": [{"message": {}}]},
            {"choices": [{"message": {"content": None}}]},
            {"choices": [{"message": {"content": ""}}]},
            {"choices": [{"message": {"content": "   \n"}}]},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_response_is_upstream_error(self, recording_sleep, body):
        provider = ScriptedProvider(body)
        client = make_client(provider, recording_sleep)

        with pytest.raises(UpstreamError):
            await client.generate(GenerationRequest("s", "u"))

        assert len(provider.calls) == 1
