"""
Workflow generation endpoints.

POST /generate-workflow streams progress as Server-Sent Events:
- event: progress  {"step", "status", "message"?, "data"?}
- event: result    {"workflow", "keywords", "searchResults", "nodes"}
- event: error     {"error", "details"?}

Authentication, prompt validation and the quota check all happen before the
stream opens, so those rejections are plain JSON responses.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from ...auth.dependencies import User, get_current_user
from ...models.generation import GenerationRequest, NormalizedNode, SearchResult
from ...services.event_channel import RunContext
from ...services.generation_pipeline import run_generation_pipeline
from ...services.node_search import (
    dedupe_candidates,
    hydrate_candidates,
    parse_node_contents,
    search_nodes_for_keywords,
)
from ...services.rate_limiter import QuotaStoreError, RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])

# Strong references to running pipelines; the event loop only keeps weak ones
_pipeline_tasks: set = set()


class GenerateWorkflowBody(BaseModel):
    # Optional so a missing prompt is answered with 400 rather than a validation error
    prompt: Optional[str] = None
    endpoint: Optional[str] = None
    token: Optional[str] = None


class NodeSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    combined: List[NormalizedNode]
    search_results: List[SearchResult] = Field(alias="searchResults")


@router.post("/generate-workflow")
async def generate_workflow_stream(
    request: Request,
    body: GenerateWorkflowBody,
    user: User = Depends(get_current_user),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Generate an n8n workflow from a natural-language prompt.

    Consumes one unit of the caller's quota once the prompt is accepted.
    """
    if not body.prompt or not body.prompt.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Prompt is required"},
        )

    try:
        quota = await rate_limiter.check_and_consume(user.sub)
    except QuotaStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Quota service unavailable: {str(e)}",
        )

    if not quota.allowed:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "message": "Quota exceeded. Please wait for reset.",
                "remaining": 0,
                "resetAt": quota.reset_at,
            },
        )

    generation_request = GenerationRequest(
        prompt=body.prompt,
        endpoint=body.endpoint,
        token=body.token,
    )
    ctx = RunContext()
    task = asyncio.create_task(run_generation_pipeline(generation_request, ctx))
    _pipeline_tasks.add(task)
    task.add_done_callback(_pipeline_tasks.discard)

    logger.info("Started generation for user %s (%d remaining)", user.sub, quota.remaining)

    async def event_generator():
        try:
            async for message in ctx.channel.messages():
                if await request.is_disconnected():
                    ctx.abort()
                    break
                yield message.encode()
        finally:
            # Response torn down before the run finished: stop emitting
            if not ctx.closed:
                ctx.abort()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/search", response_model=NodeSearchResponse)
async def search_nodes(
    q: Optional[str] = None,
    user: User = Depends(get_current_user),
):
    """
    Look up node definitions for a free-text query.

    Runs the same search, fetch, de-duplication and parsing as generation,
    without calling the model or consuming quota.
    """
    if not q or not q.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Query parameter q is required"},
        )

    try:
        search_results = await search_nodes_for_keywords([q])
        candidates = search_results[0].data if search_results else []
        hydrated = await hydrate_candidates(candidates)
        combined = parse_node_contents(dedupe_candidates(hydrated))
    except Exception as e:
        logger.error("Search handler error for %r: %s", q, e)
        raise HTTPException(status_code=500, detail=f"Failed to search nodes: {str(e)}")

    return NodeSearchResponse(combined=combined, search_results=search_results)
