import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock

from openai import OpenAIError

from shell_pilot.advisory import (
    AdvisoryError,
    AdvisoryService,
    ClassificationError,
    CLASSIFY_PROMPT,
    extract_json_object,
    parse_intent,
    strip_fences,
)
from shell_pilot.config import LlmConfig
from shell_pilot.models import Command, Question

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

def _service(content=None, error=None, system_prompt=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        client.chat.completions.create.return_value = _completion(content)
    config = LlmConfig(base_url="http://llm.local/v1", api_key="k", model="test-model", system_prompt=system_prompt)
    return AdvisoryService(config, client=client), client

# ---------------------------------------------------------------------------
# Intent parsing
# ---------------------------------------------------------------------------

def test_parse_question():
    intent = parse_intent('{"type": "question", "content": "42"}')
    assert isinstance(intent, Question)
    assert intent.content == "42"

def test_parse_command_with_missing_description():
    intent = parse_intent('{"type": "command", "commands": [{"command": "uptime"}]}')
    assert isinstance(intent, Command)
    assert intent.to_plan().actions[0].command == "uptime"
    assert intent.to_plan().actions[0].description == ""

def test_parse_fenced_json():
    raw = 'Here you go:\n```json\n{"type": "question", "content": "hi"}\n```'
    assert parse_intent(raw).content == "hi"

def test_parse_unknown_tag_is_an_error():
    with pytest.raises(ClassificationError):
        parse_intent('{"type": "shutdown", "content": "x"}')

def test_parse_malformed_json_is_an_error():
    with pytest.raises(ClassificationError):
        parse_intent("{type: question}")

def test_parse_command_with_empty_command_is_an_error():
    with pytest.raises(ClassificationError):
        parse_intent('{"type": "command", "commands": [{"command": ""}]}')

def test_parse_command_with_blank_command_is_an_error():
    with pytest.raises(ClassificationError):
        parse_intent('{"type": "command", "commands": [{"command": "  ", "description": "x"}]}')

def test_extract_json_object_from_prose():
    assert extract_json_object('sure! {"a": {"b": 1}} done') == '{"a": {"b": 1}}'

def test_strip_fences_only_unwraps_whole_block():
    assert strip_fences("```markdown\n# Deck\n```") == "# Deck"
    body = "# Deck\n\n```python\nprint(1)\n```"
    assert strip_fences(body) == body

# ---------------------------------------------------------------------------
# Service calls
# ---------------------------------------------------------------------------

def test_classify_appends_skill_hints():
    service, client = _service('{"type": "question", "content": "ok"}')
    service.classify("hello", "\n- [Shot] use scrot")

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][0]["content"] == CLASSIFY_PROMPT + "\n- [Shot] use scrot"
    assert kwargs["messages"][1] == {"role": "user", "content": "hello"}

def test_classify_uses_configured_system_prompt():
    service, client = _service('{"type": "question", "content": "ok"}', system_prompt="CUSTOM")
    service.classify("hello")
    assert client.chat.completions.create.call_args.kwargs["messages"][0]["content"] == "CUSTOM"

def test_transport_error_becomes_advisory_error():
    service, _ = _service(error=OpenAIError("connection reset"))
    with pytest.raises(AdvisoryError, match="connection reset"):
        service.ask_fix("ls", 1, "boom")

def test_empty_response_is_an_error():
    service, _ = _service(content="")
    with pytest.raises(AdvisoryError, match="empty"):
        service.classify("hello")

def test_ask_fix_message_carries_failure_context():
    service, client = _service("```\nls -la\n```")
    assert service.ask_fix("lss", None, "lss: not found", "[Hint] try ls") == "```\nls -la\n```"

    message = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert "lss" in message
    assert "timed out or failed to start" in message
    assert "lss: not found" in message
    assert "[Hint] try ls" in message

def test_generate_slides_strips_wrapping_fence():
    service, client = _service("```markdown\n---\nmarp: true\n---\n# T\n```")
    assert service.generate_slides("content", "T") == "---\nmarp: true\n---\n# T"
    assert client.chat.completions.create.call_args.kwargs["messages"][1]["content"].startswith("Title: T")
