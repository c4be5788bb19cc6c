"""Category, FetchKind, SourceDescriptor - routing vocabulary."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    """Question category. Selects both the source list and the consensus mode."""

    PRICE = "price"
    WEATHER = "weather"
    SOCIAL = "social"
    NEWS = "news"
    ONCHAIN = "onchain"
    GENERAL = "general"

    @property
    def numeric(self) -> bool:
        """True when questions in this category reduce to a single scalar."""
        return self is Category.PRICE


class FetchKind(str, Enum):
    """How a source is queried."""

    REST = "rest"
    GRAPHQL = "graphql"
    SCRAPE = "scrape"
    RPC = "rpc"


class SourceDescriptor(BaseModel):
    """One candidate data source. Immutable; owned by the registry."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    kind: FetchKind = FetchKind.REST
    extraction_path: str | None = None  # JSON path, or CSS selector for html; None = interpretive
    reliability: int = Field(80, ge=0, le=100)
    response_format: str = "json"
    params: dict[str, Any] = Field(default_factory=dict)  # query params (REST) or request body (RPC/GraphQL)

    @property
    def interpretive(self) -> bool:
        return self.extraction_path is None

    @property
    def selector(self) -> bool:
        """extraction_path is a CSS selector over an HTML body rather than a JSON path."""
        return self.extraction_path is not None and self.response_format == "html"
