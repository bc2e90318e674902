"""
Final workflow generation.

The system instruction is the static workflow prompt with the normalized node
definitions appended as grounding context; the user's prompt is the content.
Only JSON-parseability is checked here. The workflow's own shape is left to
whoever consumes it.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from flowsmith.llm.gemini import query_gemini
from flowsmith.models.generation import NormalizedNode

logger = logging.getLogger(__name__)

WORKFLOW_MODEL = os.getenv("GEMINI_WORKFLOW_MODEL", "gemini-2.5-flash")


class WorkflowSynthesisError(Exception):
    def __init__(self, error: str, *, details: Any = None, content: str | None = None):
        super().__init__(error)
        self.error = error
        self.details = details
        # Raw model output, kept for debugging
        self.content = content


def build_system_instruction(system_prompt: str, nodes: list[NormalizedNode]) -> str:
    serialized = json.dumps([node.model_dump(mode="json") for node in nodes])
    return f"{system_prompt}\n\nRelevant nodes from search: {serialized}"


async def generate_workflow(
    system_prompt: str,
    nodes: list[NormalizedNode],
    user_prompt: str,
) -> Any:
    content = await query_gemini(
        user_prompt,
        system_instruction=build_system_instruction(system_prompt, nodes),
        model=WORKFLOW_MODEL,
        response_mime_type="application/json",
        temperature=0,
    )
    try:
        return json.loads(content)
    except ValueError as e:
        logger.error("Gemini returned invalid workflow JSON: %s", e)
        raise WorkflowSynthesisError(
            "Invalid JSON from AI", details=str(e), content=content
        ) from e
