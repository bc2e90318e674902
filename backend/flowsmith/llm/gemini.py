from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from dotenv import load_dotenv
from google import genai
from google.genai import types

load_dotenv()

DEFAULT_MODEL = os.getenv("GEMINI_WORKFLOW_MODEL", "gemini-2.5-flash")
EMBEDDING_MODEL = os.getenv("GEMINI_EMBEDDING_MODEL", "text-embedding-004")


@lru_cache(maxsize=1)
def get_gemini_client() -> genai.Client:
    """Get or create the cached Gemini client."""
    gemini_api_key = os.getenv("GEMINI_API_KEY")
    if not gemini_api_key:
        raise ValueError("GEMINI_API_KEY environment variable is required")
    return genai.Client(api_key=gemini_api_key)


async def query_gemini(
    prompt: str,
    *,
    system_instruction: str | None = None,
    model: str = DEFAULT_MODEL,
    response_schema: dict[str, Any] | None = None,
    response_mime_type: str | None = None,
    temperature: float | None = None,
) -> str:
    """
    Run a single Gemini completion and return the raw response text.

    Callers that ask for JSON (response_mime_type="application/json") parse and
    validate the text themselves.
    """
    config = types.GenerateContentConfig(
        system_instruction=system_instruction,
        response_schema=response_schema,
        response_mime_type=response_mime_type,
        temperature=temperature,
    )
    response = await get_gemini_client().aio.models.generate_content(
        model=model,
        contents=prompt,
        config=config,
    )
    return response.text or ""


async def embed_text(text: str, *, model: str = EMBEDDING_MODEL) -> list[float]:
    """Embed one query string with the same model the node index was built with."""
    response = await get_gemini_client().aio.models.embed_content(
        model=model,
        contents=text,
    )
    if not response.embeddings or response.embeddings[0].values is None:
        raise ValueError("No embedding returned from Gemini.")
    return list(response.embeddings[0].values)
