"""Interpretive fetcher: raw content + question -> collaborator -> claim."""

from __future__ import annotations

from typing import Any

import httpx

from predresolve.errors import SourceFailure
from predresolve.fetchers.base import FetchValue, SourceFetcher
from predresolve.fetchers.extraction import to_claim
from predresolve.fetchers.interpreter import TextInterpreter
from predresolve.models import SourceDescriptor


class InterpretiveFetcher(SourceFetcher):
    """Hands fetched content to a TextInterpreter and accepts only confident answers."""

    kind = "interpretive"

    def __init__(
        self,
        client: httpx.AsyncClient,
        interpreter: TextInterpreter | None,
        min_confidence: float = 60.0,
        log: Any = None,
    ) -> None:
        super().__init__(client, log=log)
        self.interpreter = interpreter
        self.min_confidence = min_confidence

    async def _fetch(self, source: SourceDescriptor, question: str, timeout: float) -> FetchValue:
        if self.interpreter is None:
            raise SourceFailure(source.name, "requires interpretive extraction; no interpreter configured")
        resp = await self._request(source, timeout)
        return await self.interpret(source, question, resp.text)

    async def interpret(self, source: SourceDescriptor, question: str, content: str) -> FetchValue:
        """Ask the collaborator for {answer|value, confidence} and turn it into a claim."""
        if self.interpreter is None:
            raise SourceFailure(source.name, "requires interpretive extraction; no interpreter configured")
        if not content.strip():
            raise SourceFailure(source.name, "empty content")
        reply = await self.interpreter.extract(question, content)
        try:
            confidence = float(reply.get("confidence") or 0)
        except (TypeError, ValueError):
            confidence = 0.0
        if confidence < self.min_confidence:
            raise SourceFailure(source.name, f"low interpreter confidence {confidence:g}")
        reason = reply.get("reason")
        if "answer" in reply:
            answer = reply["answer"]
            if answer is None:
                raise SourceFailure(source.name, "interpreter could not answer")
            claim = to_claim(answer, question)
        elif "value" in reply and reply["value"] is not None:
            claim = to_claim(reply["value"], question)
            unit = reply.get("unit")
            reason = reason or (f"{reply['value']} {unit}" if unit else str(reply["value"]))
        else:
            raise SourceFailure(source.name, "interpreter reply has no answer or value")
        if claim is None:
            raise SourceFailure(source.name, f"interpreter reply not decidable: {reply!r}")
        return claim, reason
