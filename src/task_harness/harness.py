# harness.py
# Agentic task harness
#
# The Harness is the kernel. The assistant is a passive responder; this
# class owns all control flow, routing, state, and approval. The assistant
# never touches the file system; it only names a tool and its input.
#
# Control flow, once per iteration:
#   assistant reply → decision parse → approval gate (risky tools, safe mode)
#   → tool execution → outcome folded into the next prompt
#
# The run ends when the assistant declares the task complete, the iteration
# budget runs out, or the assistant can no longer be reached.
#
# All terminal output is delegated to display.py. No formatting here.

import logging
from typing import Any

from task_harness import display
from task_harness.approval import request_approval, requires_approval
from task_harness.config import ConfigError, RunConfig
from task_harness.conversation import ConversationService, OpenRouterConversationService
from task_harness.executor import execute_tool, render_result
from task_harness.models import ActionRecord, Decision, TaskResult, ToolOutcome
from task_harness.parser import parse_decision
from task_harness.tools import DEFAULT_REGISTRY, ToolRegistry

logger = logging.getLogger(__name__)

INCOMPLETE_MESSAGE = "Task incomplete (max iterations reached)"


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

DECISION_FORMAT = """\
<TOOL_DECISION>
ACTION: tool_name
INPUT: {"param_name": "value"}
REASONING: why this tool and these parameters
STATUS: continue
</TOOL_DECISION>"""


def _format_tools(registry: ToolRegistry, allowed_tools: tuple[str, ...]) -> str:
    lines: list[str] = []
    for name in allowed_tools:
        descriptor = registry.describe(name)
        suffix = " (requires approval)" if descriptor.risky else ""
        lines.append(f"- {name}: {descriptor.description}{suffix}")
        for param, description in descriptor.parameters.items():
            lines.append(f"    {param}: {description}")
    return "\n".join(lines)


def build_system_prompt(
    working_dir: str,
    max_iterations: int,
    registry: ToolRegistry = DEFAULT_REGISTRY,
    allowed_tools: tuple[str, ...] | None = None,
) -> str:
    """Preamble for the first message: role, workspace, tools, decision format, budget."""
    allowed = registry.names() if allowed_tools is None else allowed_tools
    return (
        f"You are an expert programming assistant working in: {working_dir}\n\n"
        "Your role is to complete the task by choosing one tool at a time. "
        "After each tool call you will receive its RESULT or ERROR and decide the next step.\n\n"
        f"Available tools:\n{_format_tools(registry, allowed)}\n\n"
        "Reply with exactly one decision in this format:\n\n"
        f"{DECISION_FORMAT}\n\n"
        "Guidelines:\n"
        "- Break down complex tasks into clear, logical steps\n"
        "- Explain your reasoning in the REASONING field\n"
        "- INPUT must be a single JSON object\n"
        "- Be precise about file paths and parameters\n"
        f"- You have {max_iterations} iterations to complete the task\n\n"
        "When you believe the task is complete, clearly state: 'TASK COMPLETE' "
        "followed by a summary of what was accomplished."
    )


def build_first_message(
    task: str,
    working_dir: str,
    max_iterations: int,
    registry: ToolRegistry = DEFAULT_REGISTRY,
    allowed_tools: tuple[str, ...] | None = None,
    initial_context: str | None = None,
) -> str:
    message = build_system_prompt(working_dir, max_iterations, registry, allowed_tools)
    if initial_context:
        message += f"\n\nCONTEXT:\n{initial_context}"
    return message + f"\n\nTASK: {task}"


def denied_message(action: str) -> str:
    return (
        f"DENIED: User did not approve the '{action}' action.\n"
        "Try a different approach or ask for clarification."
    )


def result_message(action: str, outcome: ToolOutcome) -> str:
    if outcome.success:
        return f"RESULT ({action}):\n{render_result(outcome.result)}"
    return f"ERROR ({action}):\n{outcome.error}\n\nTry a different approach or adjust parameters."


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------


class Harness:
    """
    Runs one task at a time through the reasoning → decision → tool loop.

    Example:
        config = RunConfig.from_env(max_iterations=5, safe_mode=True)
        harness = Harness(config)
        result = harness.run("List all Python files and describe what they do.")
    """

    def __init__(
        self,
        config: RunConfig,
        conversation: ConversationService | None = None,
        registry: ToolRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self._config = config
        self._conversation = conversation or OpenRouterConversationService()
        self._registry = registry

    @property
    def allowed_tools(self) -> tuple[str, ...]:
        if self._config.allowed_tools is None:
            return self._registry.names()
        return tuple(self._config.allowed_tools)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self, task: str) -> None:
        if not task or not task.strip():
            raise ConfigError("Task cannot be empty")
        self._config.check_credentials()

        allowed = self.allowed_tools
        if not allowed:
            raise ConfigError("At least one tool must be allowed")
        unknown = [name for name in allowed if name not in self._registry]
        if unknown:
            raise ConfigError(f"Unknown tools in allowed_tools: {', '.join(unknown)}")

    # ------------------------------------------------------------------
    # Single-iteration steps
    # ------------------------------------------------------------------

    def _approve(self, decision: Decision) -> tuple[bool, dict]:
        """Run the approval gate. A failing callback counts as a denial."""
        try:
            approval = request_approval(
                self._registry,
                decision.action,
                dict(decision.input),
                decision.reasoning,
                callback=self._config.approval_callback,
            )
        except Exception:
            logger.warning("Approval callback failed for %s; treating as denied", decision.action, exc_info=True)
            return False, dict(decision.input)
        return approval.approved, dict(approval.input)

    def _execute(self, action: str, tool_input: dict) -> ToolOutcome:
        if action not in self.allowed_tools:
            return ToolOutcome.fail(f"Tool not available: {action}")
        return execute_tool(
            self._registry,
            action,
            tool_input,
            self._config.working_dir,
            context_provider=self._config.context_provider,
            data=self._config.data,
        )

    def _finish(
        self,
        task: str,
        conversation_id: str,
        status: str,
        message: str,
        iterations: int,
        log: list[ActionRecord],
    ) -> TaskResult:
        if self._config.verbose:
            if status == "succeeded":
                display.completed(message)
            elif status == "incomplete":
                display.max_iterations_reached()
            else:
                display.halt(message)
        return TaskResult(
            task=task,
            final_message=message,
            iterations_used=iterations,
            action_log=list(log),
            conversation_id=conversation_id,
            status=status,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, task: str) -> TaskResult:
        """
        Full loop entry point.

        Raises ConfigError before any remote call when the run cannot start.
        Otherwise always returns a terminal TaskResult. Remote failures, tool
        failures and denials are narrated back to the assistant, not raised.
        """
        self._validate(task)
        cfg = self._config
        verbose = cfg.verbose

        if verbose:
            display.creating_conversation()
        try:
            conversation_id = self._conversation.create_conversation(cfg.assistant_id, cfg.api_key)
        except Exception as exc:
            logger.warning("Could not create conversation", exc_info=True)
            return self._finish(task, "", "failed", f"Error creating conversation: {exc}", 0, [])

        if verbose:
            display.banner(task, conversation_id, cfg.safe_mode, cfg.max_iterations)

        message = build_first_message(
            task,
            str(cfg.working_dir),
            cfg.max_iterations,
            self._registry,
            self.allowed_tools,
            cfg.initial_context,
        )
        log: list[ActionRecord] = []
        iteration = 0

        while True:
            iteration += 1
            if iteration > cfg.max_iterations:
                return self._finish(
                    task, conversation_id, "incomplete", INCOMPLETE_MESSAGE, cfg.max_iterations, log
                )

            # ── Reasoning ────────────────────────────────────────────
            if verbose:
                display.iteration_start(iteration, cfg.max_iterations)
                display.consulting_assistant()
            try:
                reply = self._conversation.send_message(conversation_id, message, cfg.api_key)
            except Exception as exc:
                logger.warning("Assistant call failed at iteration %d", iteration, exc_info=True)
                return self._finish(
                    task, conversation_id, "failed", f"Error contacting assistant: {exc}", iteration, log
                )
            if verbose:
                display.assistant_reply(reply.content)

            # ── Decision ─────────────────────────────────────────────
            decision = parse_decision(reply.content, self.allowed_tools)
            if decision.status == "final":
                return self._finish(task, conversation_id, "succeeded", decision.reasoning, iteration, log)

            if decision.action is None:
                if verbose:
                    display.no_decision()
                message = decision.reasoning
                continue

            action = decision.action
            tool_input: dict[str, Any] = dict(decision.input)
            if verbose:
                display.decision(action, decision.reasoning)

            # ── Approval gate ────────────────────────────────────────
            gated = cfg.safe_mode and requires_approval(self._registry, action)
            if gated and action in self.allowed_tools:
                approved, tool_input = self._approve(decision)
                if not approved:
                    if verbose:
                        display.denied(action)
                    message = denied_message(action)
                    continue

            # ── Execution ────────────────────────────────────────────
            if verbose:
                display.executing(action)
            outcome = self._execute(action, tool_input)
            log.append(
                ActionRecord(
                    iteration=iteration,
                    action=action,
                    input=tool_input,
                    success=outcome.success,
                    result=outcome.result if outcome.success else outcome.error,
                )
            )
            message = result_message(action, outcome)

            if verbose:
                if outcome.success:
                    display.tool_succeeded(render_result(outcome.result))
                else:
                    display.tool_failed(outcome.error or "")


def run_task(
    task: str,
    conversation: ConversationService | None = None,
    registry: ToolRegistry = DEFAULT_REGISTRY,
    **overrides: Any,
) -> TaskResult:
    """Convenience wrapper: configuration from the environment, keyword overrides on top."""
    config = RunConfig.from_env(**overrides)
    return Harness(config, conversation, registry).run(task)
