# advisory.py
# AdvisoryService — the only component that talks to the language model.
#
# Three calls: classify an instruction into an Intent, suggest a fix for a
# failed command, and generate slide markup. Transport faults surface as
# AdvisoryError; malformed classifications as ClassificationError.

import json
import re

import httpx
from openai import OpenAI, OpenAIError
from pydantic import TypeAdapter, ValidationError

from shell_pilot import display
from shell_pilot.config import LlmConfig
from shell_pilot.models import Intent

REQUEST_TIMEOUT_SECS = 60
CONNECT_TIMEOUT_SECS = 10


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AdvisoryError(Exception):
    """Raised when the advisory service cannot be reached or returns nothing."""


class ClassificationError(AdvisoryError):
    """Raised when a classification response is not a valid Intent."""


# ---------------------------------------------------------------------------
# System Prompts
# ---------------------------------------------------------------------------

CLASSIFY_PROMPT = """\
You are a message intent classifier. Users send instructions to a server \
operator bot; decide which kind of message this is:

1. "question" — the user asks, chats or wants advice; nothing needs to run on the server
2. "command" — the user wants something done on the server (inspect files, check \
system status, deploy, install software, take screenshots, record the screen, ...)

Return one JSON object.

For a question:
{"type": "question", "content": "the complete answer to the user's question"}

For a command:
{"type": "command", "commands": [{"command": "shell command", "description": "what it does"}]}

Notes:
- For screenshots use screencapture (macOS) or scrot/import (Linux) and save the image under /tmp/
- Return only JSON, no other text and no markdown code fences
- For a question, put a detailed, useful answer in "content"\
"""

FIX_PROMPT = """\
You repair failed shell commands. Given a command, its exit code and its \
error output, reply with ONE corrected shell command that achieves the same \
goal, inside a ```bash code block. Keep any explanation to one short line \
after the block. Do not reply with several alternatives.\
"""

SLIDES_PROMPT = """\
You write slide decks in Marp markdown. Start with the front matter \
(---, marp: true, ---), separate slides with a line containing only ---, \
keep each slide to a heading and at most six bullet points. Return only the \
markdown, without code fences.\
"""

_FENCE = re.compile(r"```[^\n]*\n(.*?)```", re.DOTALL)

_intent_adapter = TypeAdapter(Intent)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def extract_json_object(text: str) -> str:
    """Pull the JSON payload out of a model reply (fenced block, then outer braces)."""
    fenced = _FENCE.search(text)
    if fenced:
        return fenced.group(1).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return text[start:end + 1]
    return text.strip()


def parse_intent(raw: str) -> Intent:
    """
    Validate a classification reply into Question or Command.
    Raises ClassificationError on unknown tags or malformed payloads.
    """
    payload = extract_json_object(raw)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ClassificationError(f"Classification is not valid JSON: {exc}\nPayload: {raw}") from exc
    try:
        return _intent_adapter.validate_python(data)
    except ValidationError as exc:
        raise ClassificationError(f"Unrecognized classification: {exc}\nPayload: {raw}") from exc


def strip_fences(text: str) -> str:
    """Unwrap a reply that is entirely one fenced block."""
    text = text.strip()
    fenced = _FENCE.match(text)
    if fenced and text.endswith("```"):
        return fenced.group(1).strip()
    return text


# ---------------------------------------------------------------------------
# AdvisoryService
# ---------------------------------------------------------------------------


class AdvisoryService:
    """
    Client for an OpenAI-compatible chat completions endpoint.

    Example:
        advisory = AdvisoryService(config.llm)
        intent = advisory.classify("take a screenshot")
    """

    def __init__(self, config: LlmConfig, client: OpenAI | None = None) -> None:
        self._config = config
        self._client = client or OpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=httpx.Timeout(REQUEST_TIMEOUT_SECS, connect=CONNECT_TIMEOUT_SECS),
        )

    @property
    def model(self) -> str:
        return self._config.model

    # ------------------------------------------------------------------
    # Low-level model call
    # ------------------------------------------------------------------

    def _call_model(self, system_prompt: str, user_message: str) -> str:
        display.log("LLM", f"model={self._config.model} >>> {display.truncate(user_message, 200)}")
        try:
            response = self._client.chat.completions.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
            )
        except OpenAIError as exc:
            raise AdvisoryError(f"Advisory request failed: {exc}") from exc

        if not response.choices or not response.choices[0].message.content:
            raise AdvisoryError("Advisory service returned an empty response.")
        content = response.choices[0].message.content.strip()
        display.log("LLM", f"<<< ({len(content)} chars) {display.truncate(content, 500)}")
        return content

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def classify(self, text: str, skill_hints: str = "") -> Intent:
        system_prompt = (self._config.system_prompt or CLASSIFY_PROMPT) + skill_hints
        return parse_intent(self._call_model(system_prompt, text))

    def ask_fix(
        self,
        command: str,
        exit_code: int | None,
        stderr: str,
        hint: str = "",
    ) -> str:
        message = (
            f"Command:\n{command}\n\n"
            f"Exit code: {exit_code if exit_code is not None else 'none (timed out or failed to start)'}\n\n"
            f"Error output:\n{display.truncate(stderr, 2000) or '(empty)'}"
        )
        if hint:
            message += f"\n\nRelevant installed skills:\n{hint}"
        return self._call_model(FIX_PROMPT, message)

    def generate_slides(self, content: str, title: str = "") -> str:
        message = f"Title: {title}\n\n{content}" if title else content
        return strip_fences(self._call_model(SLIDES_PROMPT, message))
