import json

import pytest

from flowsmith.models.generation import NormalizedNode
from flowsmith.services.workflow_synthesizer import (
    WorkflowSynthesisError,
    build_system_instruction,
    generate_workflow,
)

NODES = [
    NormalizedNode(identity="slack", reference="Slack.json", content={"name": "slack"}),
    NormalizedNode(identity="odd", reference="Odd.json", content="raw text"),
]


def test_system_instruction_appends_node_definitions():
    instruction = build_system_instruction("BASE PROMPT", NODES)

    base, _, serialized = instruction.partition("\n\nRelevant nodes from search: ")
    assert base == "BASE PROMPT"
    assert json.loads(serialized) == [
        {"identity": "slack", "reference": "Slack.json", "content": {"name": "slack"}},
        {"identity": "odd", "reference": "Odd.json", "content": "raw text"},
    ]


@pytest.mark.asyncio
async def test_generate_workflow_parses_json(monkeypatch):
    calls = []
    workflow = {"nodes": [], "connections": {}}

    async def fake_gemini(prompt, **kwargs):
        calls.append({"prompt": prompt, **kwargs})
        return json.dumps(workflow)

    monkeypatch.setattr("flowsmith.services.workflow_synthesizer.query_gemini", fake_gemini)

    result = await generate_workflow("BASE PROMPT", NODES, "Notify Slack on new email")

    assert result == workflow
    assert calls[0]["prompt"] == "Notify Slack on new email"
    assert calls[0]["temperature"] == 0
    assert calls[0]["response_mime_type"] == "application/json"
    assert calls[0]["system_instruction"].startswith("BASE PROMPT")


@pytest.mark.asyncio
async def test_generate_workflow_does_not_validate_shape(monkeypatch):
    async def fake_gemini(prompt, **kwargs):
        return '{"anything": ["goes"]}'

    monkeypatch.setattr("flowsmith.services.workflow_synthesizer.query_gemini", fake_gemini)

    assert await generate_workflow("BASE", [], "prompt") == {"anything": ["goes"]}


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["```json\n{}\n```", "", "{nodes: []}"])
async def test_invalid_json_raises_with_raw_content(monkeypatch, raw):
    async def fake_gemini(prompt, **kwargs):
        return raw

    monkeypatch.setattr("flowsmith.services.workflow_synthesizer.query_gemini", fake_gemini)

    with pytest.raises(WorkflowSynthesisError) as exc_info:
        await generate_workflow("BASE", NODES, "prompt")

    assert exc_info.value.error == "Invalid JSON from AI"
    assert exc_info.value.content == raw
    assert exc_info.value.details
