"""
Models shared by the workflow generation pipeline and its HTTP surface.

Payloads coming back from the node index and the blob store are loosely
shaped, so the candidate models keep any extra fields the index supplies and
only pin down the handful of attributes the pipeline actually reads.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

StepName = Literal[
    "extract_keywords",
    "search_nodes",
    "fetch_nodes",
    "parse_nodes",
    "generate_workflow",
]
StepStatus = Literal["started", "completed"]

PIPELINE_STEPS: tuple[StepName, ...] = (
    "extract_keywords",
    "search_nodes",
    "fetch_nodes",
    "parse_nodes",
    "generate_workflow",
)


class GenerationRequest(BaseModel):
    """One call to the generator. Built once per request and never mutated."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., min_length=1)
    # Optional n8n instance the caller works against.
    endpoint: str | None = None
    token: str | None = None


# ---------------------------------------------------------------------------
# Search / hydration
# ---------------------------------------------------------------------------


class SearchCandidate(BaseModel):
    """A ranked hit from the node index. Index metadata rides along as extras."""

    model_config = ConfigDict(extra="allow")

    reference: str = ""  # blob store key (node definition filename)
    score: float = 0.0
    file_id: str | None = None


class HydratedCandidate(SearchCandidate):
    # Only set once the full definition was fetched from the blob store.
    identity: str | None = None
    raw_content: Any = None


class SearchResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    query: str
    data: list[SearchCandidate] = Field(default_factory=list)
    error: str | None = None


class NodeIndexResponse(BaseModel):
    """What the node index hands back for one query."""

    data: list[SearchCandidate] = Field(default_factory=list)
    error: str | None = None


class NormalizedNode(BaseModel):
    identity: str
    reference: str
    content: Any = None


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


class ProgressEvent(BaseModel):
    step: StepName
    status: StepStatus
    message: str | None = None
    data: Any = None


class ResultEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workflow: Any
    keywords: list[str]
    search_results: list[SearchResult] = Field(alias="searchResults")
    nodes: list[NormalizedNode]


class ErrorEvent(BaseModel):
    error: str
    details: Any = None


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------


class QuotaStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    allowed: bool = True
    remaining: int
    reset_at: int = Field(alias="resetAt")  # epoch milliseconds
