"""Text-understanding collaborator: turns raw content + question into a structured answer."""

from __future__ import annotations

import json
from typing import Any, Protocol

import httpx
import structlog

from predresolve.errors import CollaboratorFailure

log = structlog.get_logger(__name__)

EXTRACT_PROMPT = (
    "You resolve prediction-market questions from source content. "
    'Reply with JSON only: {"answer": true|false|null, "confidence": 0-100, "reason": "..."} '
    'or, when the question asks for a measurement, {"value": number, "unit": "...", "confidence": 0-100}. '
    "Use null when the content does not settle the question."
)

DISCOVER_PROMPT = (
    "List up to {limit} independent, machine-readable data sources that can settle the question. "
    'Reply with JSON only: {{"sources": [{{"name": "...", "url": "...", "kind": "rest|graphql|scrape|rpc", '
    '"response_format": "json|html", "extraction_path": "$.json.path, a CSS selector for html, or null", '
    '"reliability": 0-100}}]}}'
)


class TextInterpreter(Protocol):
    """Extract a structured answer from unstructured content."""

    async def extract(self, question: str, raw_content: str) -> dict[str, Any]: ...


class SourceSuggester(Protocol):
    """Propose candidate sources for a question at runtime."""

    async def suggest_sources(self, question: str, category: str, limit: int = 5) -> list[dict[str, Any]]: ...


class HttpInterpreter:
    """OpenAI-compatible chat-completions client implementing TextInterpreter and SourceSuggester."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        max_content_chars: int = 12000,
    ) -> None:
        self.client = client
        self.url = url
        self.model = model
        self.api_key = api_key
        self.max_content_chars = max_content_chars

    async def _complete(self, system: str, user: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        body = {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        try:
            resp = await self.client.post(self.url, json=body, headers=headers)
            resp.raise_for_status()
            content = resp.json()["choices"][0]["message"]["content"]
            reply = json.loads(content)
        except httpx.HTTPError as e:
            raise CollaboratorFailure(f"interpreter request failed: {e}") from e
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            raise CollaboratorFailure(f"interpreter reply malformed: {e}") from e
        if not isinstance(reply, dict):
            raise CollaboratorFailure("interpreter reply is not an object")
        return reply

    async def extract(self, question: str, raw_content: str) -> dict[str, Any]:
        content = raw_content[: self.max_content_chars]
        return await self._complete(EXTRACT_PROMPT, f"Question: {question}\n\nContent:\n{content}")

    async def suggest_sources(self, question: str, category: str, limit: int = 5) -> list[dict[str, Any]]:
        reply = await self._complete(
            DISCOVER_PROMPT.format(limit=limit), f"Category: {category}\nQuestion: {question}"
        )
        sources = reply.get("sources")
        if not isinstance(sources, list):
            raise CollaboratorFailure("interpreter returned no source list")
        log.debug("sources_suggested", count=len(sources), category=category)
        return [s for s in sources if isinstance(s, dict)]
