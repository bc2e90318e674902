"""
Node search, hydration, de-duplication and content normalization.

Search flow:
1) Join the keywords into one query and search the node index once
2) Fetch each candidate's full definition from R2, all at once
3) Keep the first candidate per node identity
4) Parse each definition as JSON where possible

Only a raised search exception is fatal. Everything after the search degrades
per item: a definition that can't be fetched drops out at step 3, and one that
isn't JSON is kept as its raw text.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from flowsmith.db.node_index import search_node_index
from flowsmith.models.generation import (
    HydratedCandidate,
    NormalizedNode,
    SearchCandidate,
    SearchResult,
)
from flowsmith.storage.r2 import get_node_definition

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 15
SCORE_THRESHOLD = 0.25


async def search_nodes_for_keywords(keywords: list[str]) -> list[SearchResult]:
    """
    Search the node index with all keywords combined into one query.

    Always returns a single SearchResult. If the index reports an error the
    result carries it with no candidates; exceptions propagate.
    """
    combined_query = " ".join(keywords)
    logger.info("Searching node index with combined query: %r", combined_query)

    response = await search_node_index(
        combined_query,
        max_results=MAX_SEARCH_RESULTS,
        score_threshold=SCORE_THRESHOLD,
    )
    if response.error:
        logger.warning(
            "Node index returned an error for %r: %s", combined_query, response.error
        )
        return [SearchResult(query=combined_query, data=[], error=response.error)]

    logger.info("Node index returned %d candidates", len(response.data))
    return [SearchResult(query=combined_query, data=response.data)]


async def fetch_full_node(candidate: SearchCandidate) -> HydratedCandidate:
    hydrated = HydratedCandidate(
        **candidate.model_dump(exclude={"identity", "raw_content"})
    )
    reference = candidate.reference
    if not reference:
        return hydrated

    try:
        content = await get_node_definition(reference)
    except Exception:
        logger.error("Error fetching full node from R2 for %s", reference, exc_info=True)
        return hydrated

    if content is None:
        logger.warning("Node definition %s not found in R2", reference)
        return hydrated
    if not content:
        logger.warning("Empty content from R2 for %s", reference)
        return hydrated

    return hydrated.model_copy(
        update={"identity": candidate.file_id or reference, "raw_content": content}
    )


async def hydrate_candidates(candidates: list[SearchCandidate]) -> list[HydratedCandidate]:
    """Fetch every candidate concurrently and wait for all of them."""
    outcomes = await asyncio.gather(
        *(fetch_full_node(candidate) for candidate in candidates),
        return_exceptions=True,
    )

    hydrated: list[HydratedCandidate] = []
    for candidate, outcome in zip(candidates, outcomes):
        if isinstance(outcome, HydratedCandidate):
            hydrated.append(outcome)
        elif isinstance(outcome, Exception):
            logger.error(
                "Hydration failed for %s: %s", candidate.reference, outcome
            )
            hydrated.append(
                HydratedCandidate(**candidate.model_dump(exclude={"identity", "raw_content"}))
            )
        else:
            raise outcome
    return hydrated


def dedupe_candidates(candidates: list[HydratedCandidate]) -> list[HydratedCandidate]:
    """First candidate wins per identity; candidates without one are dropped."""
    seen: set[str] = set()
    unique: list[HydratedCandidate] = []
    for candidate in candidates:
        identity = candidate.identity
        if not identity or identity in seen:
            continue
        seen.add(identity)
        unique.append(candidate)
    return unique


def normalize_node_content(content: Any, *, reference: str | None = None) -> Any:
    """
    Best-effort JSON parse of a node definition. Never raises.

    A definition that decodes to a bare JSON string is left as the original
    text, so normalizing an already-normalized value changes nothing.
    """
    if not isinstance(content, str) or not content.strip():
        return content

    try:
        parsed = json.loads(content)
    except (ValueError, RecursionError) as e:
        logger.warning("Non-JSON content encountered for node %s: %s", reference, e)
        return content

    if isinstance(parsed, str):
        return content
    return parsed


def parse_node_contents(candidates: list[HydratedCandidate]) -> list[NormalizedNode]:
    return [
        NormalizedNode(
            identity=candidate.identity,
            reference=candidate.reference,
            content=normalize_node_content(
                candidate.raw_content, reference=candidate.reference
            ),
        )
        for candidate in candidates
        if candidate.identity
    ]
