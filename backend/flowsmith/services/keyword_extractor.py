"""
Keyword extraction for node search.

One Gemini call turns the user's prompt into at most MAX_KEYWORDS short search
terms. The response is validated strictly; anything that does not match the
{"keywords": [str, ...]} shape is an error, never coerced.
"""

from __future__ import annotations

import json
import logging
import os

from flowsmith.llm.gemini import query_gemini
from flowsmith.llm.prompts import KEYWORD_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

KEYWORD_MODEL = os.getenv("GEMINI_KEYWORD_MODEL", "gemini-2.5-flash-lite")
MAX_KEYWORDS = 5

KEYWORDS_SCHEMA = {
    "type": "object",
    "properties": {
        "keywords": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Up to 5 relevant keywords or phrases.",
        },
    },
    "required": ["keywords"],
}


class KeywordExtractionError(Exception):
    """The keyword step could not produce a usable keyword list."""


async def extract_keywords(prompt: str) -> list[str]:
    try:
        content = await query_gemini(
            prompt,
            system_instruction=KEYWORD_SYSTEM_PROMPT,
            model=KEYWORD_MODEL,
            response_schema=KEYWORDS_SCHEMA,
            response_mime_type="application/json",
        )
    except Exception as e:
        raise KeywordExtractionError(f"Keyword request to Gemini failed: {e}") from e

    keywords = parse_keywords(content)
    logger.info("Extracted keywords: %s", keywords)
    return keywords


def parse_keywords(content: str | None) -> list[str]:
    if not content:
        raise KeywordExtractionError("No content received from Gemini for keyword extraction.")

    try:
        parsed = json.loads(content)
    except ValueError as e:
        logger.error("Failed to parse keywords JSON: %s. Raw content: %r", e, content)
        raise KeywordExtractionError(f"Failed to parse keywords: {e}") from e

    keywords = parsed.get("keywords") if isinstance(parsed, dict) else None
    if not isinstance(keywords, list):
        logger.error("Unexpected JSON structure for keywords: %r", parsed)
        raise KeywordExtractionError(
            "Keywords extracted are not in the expected {keywords: [...]} format."
        )

    if not all(isinstance(kw, str) for kw in keywords):
        logger.error("Not all extracted keywords are strings: %r", keywords)
        raise KeywordExtractionError(
            "Invalid keyword format: keywords array contains non-string elements."
        )
    if any(not kw.strip() for kw in keywords):
        raise KeywordExtractionError(
            "Invalid keyword format: keywords array contains empty elements."
        )
    if len(keywords) > MAX_KEYWORDS:
        raise KeywordExtractionError(
            f"Invalid keyword format: expected at most {MAX_KEYWORDS} keywords, got {len(keywords)}."
        )

    return keywords
