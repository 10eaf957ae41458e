# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the OpenAI completion client
"""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from openai import OpenAIError

from flowrunner.llm.client import (
    SYSTEM_PROMPTS,
    AICompletionClient,
    OpenAICompletionClient,
    get_system_prompt,
)
from flowrunner.workflow.exceptions import AIProviderError


def make_sdk_client(content="Hello"):
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(return_value=response)
    return sdk


def test_system_prompts():
    assert set(SYSTEM_PROMPTS) == {
        "research", "writing", "marketing", "customer_support", "code_review", "general", "custom",
    }
    assert get_system_prompt("research") == SYSTEM_PROMPTS["research"]
    assert get_system_prompt("unknown") == SYSTEM_PROMPTS["general"]
    assert get_system_prompt(None) == SYSTEM_PROMPTS["general"]


def test_satisfies_protocol():
    assert isinstance(OpenAICompletionClient(), AICompletionClient)


@pytest.mark.asyncio
async def test_complete_sends_system_and_user_messages():
    sdk = make_sdk_client("Summary")
    client = OpenAICompletionClient(model="gpt-4o-mini", max_tokens=4096, client=sdk)

    result = await client.complete("Summarize this", "writing")

    assert result == "Summary"
    kwargs = sdk.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 4096
    assert kwargs["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPTS["writing"]},
        {"role": "user", "content": "Summarize this"},
    ]


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(AIProviderError) as exc_info:
        await OpenAICompletionClient().complete("hi", "general")
    assert str(exc_info.value) == "OPENAI_API_KEY not configured"


@pytest.mark.asyncio
async def test_provider_error_wrapped():
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(side_effect=OpenAIError("quota exceeded"))
    client = OpenAICompletionClient(client=sdk)

    with pytest.raises(AIProviderError) as exc_info:
        await client.complete("hi", "general")
    assert str(exc_info.value) == "Failed to call AI API: quota exceeded"


@pytest.mark.asyncio
async def test_empty_content_becomes_empty_string():
    client = OpenAICompletionClient(client=make_sdk_client(None))

    assert await client.complete("hi", "general") == ""
