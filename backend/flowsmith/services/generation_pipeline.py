"""
Workflow generation pipeline.

Drives one request through five steps, strictly in order, and reports each on
the run's event channel:

    extract_keywords -> search_nodes -> fetch_nodes -> parse_nodes -> generate_workflow

Every step emits `started` before it runs and `completed` after it succeeds.
A fatal failure in any step emits a single error event and ends the run; a
successful run ends with a single result event. The channel is closed on every
path, including unexpected exceptions in the pipeline itself.

If the client disconnects, the channel is aborted: calls already in flight are
allowed to finish, their results are discarded and no later step is started.
"""

from __future__ import annotations

import logging
from typing import Any

from flowsmith.llm.prompts import WORKFLOW_SYSTEM_PROMPT
from flowsmith.models.generation import GenerationRequest, ResultEvent
from flowsmith.services.event_channel import RunContext
from flowsmith.services.keyword_extractor import extract_keywords
from flowsmith.services.node_search import (
    dedupe_candidates,
    hydrate_candidates,
    parse_node_contents,
    search_nodes_for_keywords,
)
from flowsmith.services.workflow_synthesizer import (
    WorkflowSynthesisError,
    generate_workflow,
)

logger = logging.getLogger(__name__)


async def run_generation_pipeline(
    request: GenerationRequest,
    ctx: RunContext,
    *,
    system_prompt: str = WORKFLOW_SYSTEM_PROMPT,
) -> None:
    try:
        await _run_steps(request, ctx, system_prompt)
    except Exception as e:
        logger.exception("Unexpected error in generation pipeline")
        await ctx.emit_error("An unexpected error occurred", _describe(e))
    finally:
        await ctx.close()


async def _run_steps(
    request: GenerationRequest,
    ctx: RunContext,
    system_prompt: str,
) -> None:
    if request.endpoint:
        logger.info(
            "Request references n8n instance %s; generating from the node index",
            request.endpoint,
        )

    # 1) Keywords
    await ctx.emit_progress("extract_keywords", "started", "Extracting keywords...")
    try:
        keywords = await extract_keywords(request.prompt)
    except Exception as e:
        await ctx.emit_error("Failed to extract keywords", _describe(e))
        return
    await ctx.emit_progress(
        "extract_keywords", "completed", "Keywords extracted.", {"keywords": keywords}
    )
    if ctx.closed:
        return

    # 2) Search
    await ctx.emit_progress("search_nodes", "started", "Searching for relevant nodes...")
    try:
        search_results = await search_nodes_for_keywords(keywords)
    except Exception as e:
        await ctx.emit_error("Failed to search nodes", _describe(e))
        return
    candidates = search_results[0].data if search_results else []
    raw_count = len(candidates)
    await ctx.emit_progress(
        "search_nodes",
        "completed",
        f"Found {raw_count} potential node matches.",
        {"rawCount": raw_count},
    )
    if ctx.closed:
        return

    # 3) Hydrate + dedupe
    await ctx.emit_progress("fetch_nodes", "started", "Fetching full node details...")
    try:
        hydrated = await hydrate_candidates(candidates)
    except Exception as e:
        await ctx.emit_error("Failed during node fetching", _describe(e))
        return
    unique_nodes = dedupe_candidates(hydrated)
    await ctx.emit_progress(
        "fetch_nodes",
        "completed",
        f"Fetched and deduplicated {len(unique_nodes)} unique nodes.",
        {"uniqueCount": len(unique_nodes)},
    )
    if ctx.closed:
        return

    # 4) Parse
    await ctx.emit_progress("parse_nodes", "started", "Parsing node content...")
    nodes = parse_node_contents(unique_nodes)
    await ctx.emit_progress(
        "parse_nodes", "completed", "Node content parsed.", {"nodeCount": len(nodes)}
    )
    if ctx.closed:
        return

    # 5) Generate
    await ctx.emit_progress("generate_workflow", "started", "Generating final workflow...")
    try:
        workflow = await generate_workflow(system_prompt, nodes, request.prompt)
    except WorkflowSynthesisError as e:
        await ctx.emit_error(e.error, e.details)
        return
    except Exception as e:
        await ctx.emit_error("Failed to generate workflow", _describe(e))
        return
    await ctx.emit_progress(
        "generate_workflow", "completed", "Workflow generation complete."
    )

    await ctx.emit_result(
        ResultEvent(
            workflow=workflow,
            keywords=keywords,
            search_results=search_results,
            nodes=nodes,
        )
    )


def _describe(error: Exception) -> Any:
    return str(error) or type(error).__name__
