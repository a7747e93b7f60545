# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Perplexity chat-completions REST client, used as a side channel for
one-off research questions outside the main conversation."""

import httpx
import logging

from pydantic import BaseModel, Field

from ...types.llm_types import TokenUsage

logger = logging.getLogger(__name__)
logger.setLevel(logging.WARNING)

DEFAULT_URL = "https://api.perplexity.ai/chat/completions"
DEFAULT_MODEL = "llama-3-sonar-large-32k-online"


class MissingCredentialsError(ValueError):
    """Raised before any I/O when a required API key is empty"""


class SideChannelHTTPError(RuntimeError):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP error! status: {status_code}, body: {body}")


class SideChannelAnswer(BaseModel):
    content: str
    usage: TokenUsage
    raw: dict = Field(default_factory=dict)


def mask_key(api_key: str) -> str:
    if len(api_key) <= 10:
        return "*" * len(api_key)
    return f"{api_key[:5]}...{api_key[-5:]}"


class PerplexityProvider:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        url: str = DEFAULT_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise MissingCredentialsError("Perplexity API key is not provided")
        self._api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def build_payload(self, question: str) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": question}],
            "max_tokens": 4096,
            "temperature": 0.2,
            "top_p": 0.9,
            "top_k": 0,
            "stream": False,
            "presence_penalty": 0,
            "frequency_penalty": 1,
        }

    async def _make_request(self, payload: dict) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        logger.debug(f"POST {self.url} with key {mask_key(self._api_key)}")
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(self.url, headers=headers, json=payload)

        if not response.is_success:
            raise SideChannelHTTPError(response.status_code, response.text)
        return response.json()

    async def ask(self, question: str, payload: dict | None = None) -> SideChannelAnswer:
        """Ask a single question.

        Raises:
            SideChannelHTTPError: on a non-2xx response
            httpx.HTTPError: on transport failures
            KeyError, IndexError, ValueError: on a malformed response body
        """
        data = await self._make_request(payload or self.build_payload(question))
        usage = data.get("usage", {})
        return SideChannelAnswer(
            content=data["choices"][0]["message"]["content"],
            usage=TokenUsage(
                input_tokens=usage.get("prompt_tokens", 0),
                output_tokens=usage.get("completion_tokens", 0),
            ),
            raw=data,
        )
