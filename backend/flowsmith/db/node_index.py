"""
Semantic node index (Supabase + pgvector).

The query text is embedded with Gemini and matched against the stored node
embeddings by a Postgres function, which returns one row per indexed node
definition:

    {"filename": "...", "file_id": "...", "score": 0.83, "attributes": {...}}

Errors the database reports for the call come back in NodeIndexResponse.error;
transport failures are raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from supabase import PostgrestAPIError

from flowsmith.db.supabase import get_supabase
from flowsmith.llm.gemini import embed_text
from flowsmith.models.generation import NodeIndexResponse, SearchCandidate

logger = logging.getLogger(__name__)

NODE_INDEX_RPC = os.getenv("NODE_INDEX_RPC", "match_node_documents")


async def search_node_index(
    query: str,
    *,
    max_results: int,
    score_threshold: float,
) -> NodeIndexResponse:
    if not query.strip():
        logger.info("Empty node index query; skipping search.")
        return NodeIndexResponse(data=[])

    embedding = await embed_text(query)
    params: dict[str, Any] = {
        "query_embedding": embedding,
        "match_count": max_results,
        "match_threshold": score_threshold,
    }

    def _rpc():
        return get_supabase().client.rpc(NODE_INDEX_RPC, params).execute()

    try:
        result = await asyncio.to_thread(_rpc)
    except PostgrestAPIError as e:
        logger.error("Node index reported an error for %r: %s", query, e.message)
        return NodeIndexResponse(data=[], error=e.message or str(e))

    rows = result.data or []
    return NodeIndexResponse(
        data=[_row_to_candidate(row) for row in rows if isinstance(row, dict)]
    )


def _row_to_candidate(row: dict[str, Any]) -> SearchCandidate:
    extra = {k: v for k, v in row.items() if k not in ("filename", "file_id", "score", "reference")}
    file_id = row.get("file_id")
    score = row.get("score")
    return SearchCandidate(
        reference=str(row.get("filename") or ""),
        score=float(score) if isinstance(score, (int, float)) else 0.0,
        file_id=str(file_id) if file_id is not None else None,
        **extra,
    )
