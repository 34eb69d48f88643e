# approval.py
# Approval gate for risky tool calls.
#
# A callback supplied by the caller always wins. Without one, the gate falls
# back to a blocking console prompt, so unattended runs must either pass a
# callback or switch safe mode off.

import json
from typing import Any, Callable, Mapping

from rich.prompt import Prompt

from task_harness import display
from task_harness.models import ApprovalResponse
from task_harness.tools import ToolNotFoundError, ToolRegistry

ApprovalCallback = Callable[[str, dict, str], Any]

_APPROVE = ("", "y", "yes")
_DENY = ("n", "no")
_EDIT = ("e", "edit")
_VIEW = ("v", "view")


def requires_approval(registry: ToolRegistry, action: str | None) -> bool:
    return registry.is_risky(action)


def _coerce(answer: Any, tool_input: dict) -> ApprovalResponse:
    """Accept an ApprovalResponse, a mapping with approved/input, or a bare bool."""
    if isinstance(answer, ApprovalResponse):
        return answer
    if isinstance(answer, bool):
        return ApprovalResponse(approved=answer, input=tool_input)
    if isinstance(answer, Mapping):
        merged = {"input": tool_input, **answer}
        if merged["input"] is None:
            merged["input"] = tool_input
        return ApprovalResponse.model_validate(merged)
    raise TypeError(f"Approval callback returned unsupported value: {answer!r}")


def _edit_input(tool_input: dict) -> dict:
    display.edit_prompt(tool_input)
    while True:
        raw = Prompt.ask("New JSON", console=display.console, default="", show_default=False)
        if not raw.strip():
            return tool_input
        try:
            edited = json.loads(raw)
        except json.JSONDecodeError as exc:
            display.edit_invalid(str(exc))
            continue
        if not isinstance(edited, dict):
            display.edit_invalid("expected a JSON object")
            continue
        return edited


def _interactive_approval(
    registry: ToolRegistry, action: str, tool_input: dict, reasoning: str
) -> ApprovalResponse:
    display.approval_request(action, tool_input, reasoning)

    while True:
        answer = Prompt.ask(
            "[cyan]❯ Approve? \\[y/n/e(dit)/v(iew)][/cyan]",
            console=display.console,
            default="y",
            show_default=False,
        )
        answer = answer.strip().lower()

        if answer in _APPROVE:
            display.approved(edited=False)
            return ApprovalResponse(approved=True, input=tool_input)
        if answer in _DENY:
            return ApprovalResponse(approved=False, input=tool_input)
        if answer in _EDIT:
            edited = _edit_input(tool_input)
            display.approved(edited=edited != tool_input)
            return ApprovalResponse(approved=True, input=edited)
        if answer in _VIEW:
            try:
                descriptor = registry.describe(action)
            except ToolNotFoundError:
                descriptor = None
            display.tool_details(descriptor, action, tool_input)
            continue

        display.invalid_answer()


def request_approval(
    registry: ToolRegistry,
    action: str,
    tool_input: dict,
    reasoning: str,
    callback: ApprovalCallback | None = None,
) -> ApprovalResponse:
    """
    Ask whether ``action`` may run with ``tool_input``.

    Denial is an ordinary answer, never an exception. The returned input
    replaces the proposed one for execution.
    """
    if callback is not None:
        return _coerce(callback(action, tool_input, reasoning), tool_input)
    return _interactive_approval(registry, action, tool_input, reasoning)
