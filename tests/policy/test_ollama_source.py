# tests/policy/test_ollama_source.py
"""
Tests for OllamaPolicySource and prompt rendering.

The Ollama AsyncClient is replaced with an AsyncMock; no server is needed.
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from ollama import ResponseError

from voxelmind.config.engine_config import PolicyConfig
from voxelmind.exceptions import PolicySourceError
from voxelmind.policy.prompts import DECISION_SYSTEM_PROMPT, STRATEGY_SYSTEM_PROMPT, render_messages
from voxelmind.policy.source import OllamaPolicySource, PolicyContext, PolicySource


@pytest.fixture
def client():
    client = AsyncMock()
    client.chat.return_value = {"message": {"role": "assistant", "content": '{"action": "EAT"}'}}
    return client


@pytest.fixture
def context(sensor):
    return PolicyContext(purpose="decision", snapshot=sensor.snapshot().to_dict())


class TestRenderMessages:

    def test_decision_prompt(self, context):
        messages = render_messages(context)
        assert messages[0] == {"role": "system", "content": DECISION_SYSTEM_PROMPT}
        body = json.loads(messages[1]["content"])
        assert body["situation"]["position"] == {"x": 0, "y": 64, "z": 0}
        assert "strategic_recommendation" not in body

    def test_strategy_prompt_with_recommendation(self, context):
        context.purpose = "strategy"
        context.recommendation = "build before dark"
        messages = render_messages(context)
        assert messages[0]["content"] == STRATEGY_SYSTEM_PROMPT
        assert json.loads(messages[1]["content"])["strategic_recommendation"] == "build before dark"

    def test_decision_prompt_lists_every_action(self):
        for kind in ("MOVE", "GOTO", "EXPLORE", "MINE_AT", "MINE_TREE", "PLACE_AT", "ATTACK_NEAREST", "CRAFT"):
            assert kind in DECISION_SYSTEM_PROMPT


class TestOllamaPolicySource:

    def test_satisfies_protocol(self, client):
        assert isinstance(OllamaPolicySource(client=client), PolicySource)

    @pytest.mark.asyncio
    async def test_propose_returns_message_text(self, client, context):
        source = OllamaPolicySource(PolicyConfig(model="qwen2.5", temperature=0.5, options={"num_ctx": 4096}), client)
        text = await source.propose(context)
        assert text == '{"action": "EAT"}'

        kwargs = client.chat.call_args.kwargs
        assert kwargs["model"] == "qwen2.5"
        assert kwargs["stream"] is False
        assert kwargs["options"] == {"temperature": 0.5, "num_ctx": 4096}
        assert kwargs["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_accepts_response_objects(self, client, context):
        client.chat.return_value = SimpleNamespace(message=SimpleNamespace(content="hello"))
        assert await OllamaPolicySource(client=client).propose(context) == "hello"

    @pytest.mark.asyncio
    async def test_missing_model(self, client, context):
        client.chat.side_effect = ResponseError("model 'nope' not found", 404)
        source = OllamaPolicySource(PolicyConfig(model="nope"), client)
        with pytest.raises(PolicySourceError, match="ollama pull nope"):
            await source.propose(context)

    @pytest.mark.asyncio
    async def test_api_error(self, client, context):
        client.chat.side_effect = ResponseError("overloaded", 503)
        with pytest.raises(PolicySourceError, match="HTTP 503"):
            await OllamaPolicySource(client=client).propose(context)

    @pytest.mark.asyncio
    async def test_timeout(self, client, context):
        client.chat.side_effect = asyncio.TimeoutError()
        with pytest.raises(PolicySourceError, match="timed out"):
            await OllamaPolicySource(client=client).propose(context)

    @pytest.mark.asyncio
    async def test_connection_error(self, client, context):
        client.chat.side_effect = ConnectionError("refused")
        with pytest.raises(PolicySourceError, match="Could not reach Ollama"):
            await OllamaPolicySource(client=client).propose(context)

    @pytest.mark.asyncio
    async def test_empty_reply(self, client, context):
        client.chat.return_value = {"message": {"content": "   "}}
        with pytest.raises(PolicySourceError, match="Empty response"):
            await OllamaPolicySource(client=client).propose(context)

    @pytest.mark.asyncio
    async def test_close_releases_http_client(self, client):
        client._client = AsyncMock()
        await OllamaPolicySource(client=client).close()
        client._client.aclose.assert_awaited_once()
