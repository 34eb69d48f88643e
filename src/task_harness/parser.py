# parser.py
# Decision parser: turns free-form assistant text into a Decision.
#
# Precedence:
#   completion marker → <TOOL_DECISION> block → fallback inference
#
# parse_decision() never raises. Malformed input degrades to defaults so the
# loop can always narrate the problem back to the assistant.

import json
import logging
import re
from typing import Iterable

from task_harness.models import Decision

logger = logging.getLogger(__name__)

DEFAULT_COMPLETION_MESSAGE = "Task completed successfully"
NO_DECISION_MESSAGE = "No tool decision found. Please use the <TOOL_DECISION> format."

_COMPLETE_RE = re.compile(r"task[\s_]+complete\w*", re.IGNORECASE)
_BLOCK_RE = re.compile(r"<TOOL_DECISION>(.*?)</TOOL_DECISION>", re.DOTALL)
_QUOTED_PATH_RE = re.compile(r"[\"'`]([^\"'`\s]+\.[A-Za-z0-9]+)[\"'`]")
_MENTIONS_FILE_RE = re.compile(r"file|path", re.IGNORECASE)

_LABELS = ("ACTION", "INPUT", "REASONING", "STATUS")
_NEXT_LABEL = rf"\n[ \t]*[A-Z][A-Z_]*:|\s+(?:{'|'.join(_LABELS)}):|\Z"


def _normalise(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _strip_fences(raw: str) -> str:
    # Strip markdown code blocks if the assistant wrapped the JSON in one
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
        raw = re.sub(r"\s*```$", "", raw)
    return raw


def extract_field(text: str, label: str) -> str:
    """
    Return the value of ``LABEL:`` inside a decision block.

    The value runs until the next line that opens with an all-caps label, the
    next decision label on the same line, or the end of the text. Missing
    labels yield an empty string.
    """
    pattern = re.compile(
        rf"(?:^|(?<=\s)){re.escape(label)}:[ \t]*(.*?)(?={_NEXT_LABEL})",
        re.DOTALL,
    )
    match = pattern.search(_normalise(text))
    return match.group(1).strip() if match else ""


def _parse_input(raw: str) -> dict:
    raw = _strip_fences(raw.strip())
    if not raw:
        return {}
    try:
        value = json.loads(raw, strict=False)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse INPUT JSON: %s", exc)
        return {}
    if not isinstance(value, dict):
        logger.warning("INPUT is not a JSON object: %r", value)
        return {}
    return value


def _parse_status(raw: str) -> str:
    status = raw.strip().lower()
    if status in ("continue", "final"):
        return status
    if status:
        logger.warning("Unexpected status value %r, defaulting to 'continue'", raw)
    return "continue"


def infer_decision(text: str, available_tools: Iterable[str]) -> Decision:
    """
    Best-effort recovery when no structured block is present.

    Picks the leftmost mention of an available tool name. Ties at the same
    offset go to the longer name.
    """
    hits = []
    for name in set(available_tools):
        index = text.find(name) if name else -1
        if index >= 0:
            hits.append((index, -len(name), name))

    if not hits:
        return Decision(action=None, status="continue", reasoning=NO_DECISION_MESSAGE)

    _, _, action = min(hits)
    tool_input = {}
    if _MENTIONS_FILE_RE.search(text):
        path_match = _QUOTED_PATH_RE.search(text)
        if path_match:
            tool_input["filepath"] = path_match.group(1)

    return Decision(
        action=action,
        input=tool_input,
        reasoning=f"Inferred tool '{action}' from response text",
        status="continue",
    )


def parse_decision(raw_text: str, available_tools: Iterable[str]) -> Decision:
    """Interpret one assistant reply. Pure: the same text always yields the same Decision."""
    text = _normalise(raw_text or "")

    completion = _COMPLETE_RE.search(text)
    if completion:
        message = text[completion.end():].lstrip(" \t\n:-–—").strip()
        return Decision(
            action=None,
            status="final",
            reasoning=message or DEFAULT_COMPLETION_MESSAGE,
        )

    block = _BLOCK_RE.search(text)
    if block is None:
        return infer_decision(text, available_tools)

    body = block.group(1)
    action = extract_field(body, "ACTION")
    return Decision(
        action=action or None,
        input=_parse_input(extract_field(body, "INPUT")),
        reasoning=extract_field(body, "REASONING"),
        status=_parse_status(extract_field(body, "STATUS")),
    )
