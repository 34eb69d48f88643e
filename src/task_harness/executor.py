# executor.py
# Tool executor: the only place tool implementations are invoked.
# Every failure is converted into a ToolOutcome; nothing escapes.

import logging
from pathlib import Path
from pprint import pformat
from typing import Any, Callable, Mapping

from task_harness.models import ToolOutcome
from task_harness.tools import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)


def execute_tool(
    registry: ToolRegistry,
    name: str,
    tool_input: dict | None,
    working_dir: str | Path,
    context_provider: Callable[[str], str] | None = None,
    data: Mapping[str, Any] | None = None,
) -> ToolOutcome:
    """Run ``name`` with ``tool_input`` against ``working_dir``."""
    if name not in registry:
        return ToolOutcome.fail(f"Unknown tool: {name}")
    if tool_input is not None and not isinstance(tool_input, dict):
        return ToolOutcome.fail(f"Tool input must be an object, got {type(tool_input).__name__}")

    descriptor = registry.describe(name)
    ctx = ToolContext(
        working_dir=Path(working_dir),
        context_provider=context_provider,
        data=data or {},
    )
    try:
        result = descriptor.executor(dict(tool_input or {}), ctx)
    except Exception as exc:
        logger.debug("Tool %s failed", name, exc_info=True)
        return ToolOutcome.fail(str(exc) or type(exc).__name__)
    return ToolOutcome.ok(result)


def render_result(result: Any) -> str:
    """Stringify a tool result for the next prompt. Structured values get a readable dump."""
    if isinstance(result, str):
        return result
    return pformat(result, width=100, sort_dicts=False)
