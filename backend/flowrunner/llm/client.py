# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
AI Completion Client

Thin adapter between the workflow engine and the chat-completion provider.
The engine only depends on the AICompletionClient protocol: one prompt in,
one text completion out, with a role selecting the system prompt preset.
"""

import logging
from typing import Dict, Optional, Protocol, runtime_checkable

from openai import AsyncOpenAI, OpenAIError

from flowrunner.core.config import Config, get_openai_api_key
from flowrunner.workflow.exceptions import AIProviderError

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "general"

# Role-specific system prompts
SYSTEM_PROMPTS: Dict[str, str] = {
    "research": "You are a research assistant. Provide thorough, well-researched information with sources when possible.",
    "writing": "You are a professional writer. Create clear, engaging, and well-structured content.",
    "marketing": "You are a marketing expert. Create compelling, conversion-focused content that resonates with the target audience.",
    "customer_support": "You are a helpful customer support agent. Provide clear, empathetic, and solution-focused responses.",
    "code_review": "You are a senior software engineer. Review code for quality, security, performance, and best practices.",
    "general": "You are a helpful AI assistant. Provide accurate and useful responses.",
    "custom": "You are a helpful AI assistant. Process the given task according to the instructions.",
}


def get_system_prompt(role: Optional[str]) -> str:
    """System prompt for a role; unknown roles get the general preset"""
    return SYSTEM_PROMPTS.get(role or DEFAULT_ROLE, SYSTEM_PROMPTS[DEFAULT_ROLE])


@runtime_checkable
class AICompletionClient(Protocol):
    """Anything that can turn a prompt into a completion"""

    async def complete(self, prompt: str, role: str) -> str:
        ...


class OpenAICompletionClient:
    """
    Chat-completion client backed by the OpenAI SDK.

    The API key is read when the first request is made, so a missing key
    fails the node that needs it rather than the whole process.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 4096,
        timeout: float = 60.0,
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._api_key = api_key
        self._client = client

    @classmethod
    def from_config(cls, config: Config) -> "OpenAICompletionClient":
        return cls(
            model=config.llm_model,
            max_tokens=config.llm_max_tokens,
            timeout=config.llm_timeout,
        )

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            api_key = self._api_key or get_openai_api_key()
            if not api_key:
                raise AIProviderError("OPENAI_API_KEY not configured")
            self._client = AsyncOpenAI(api_key=api_key, timeout=self.timeout)
        return self._client

    async def complete(self, prompt: str, role: str) -> str:
        """
        Run a single chat completion.

        Raises:
            AIProviderError: Missing key, provider/network error or timeout
        """
        client = self._get_client()

        try:
            response = await client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": get_system_prompt(role)},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as e:
            logger.warning(f"AI completion failed (model={self.model}, role={role}): {e}")
            raise AIProviderError(f"Failed to call AI API: {e}")

        if not response.choices:
            raise AIProviderError("Failed to call AI API: empty response")

        return response.choices[0].message.content or ""

    async def close(self) -> None:
        """Close HTTP client"""
        if self._client is not None:
            await self._client.close()
