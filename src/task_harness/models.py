# models.py
# Data contracts for the agentic task harness.
# No business logic lives here: pure schema and validation.

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

DecisionStatus = Literal["continue", "final"]
RunStatus = Literal["running", "succeeded", "incomplete", "failed"]


class Decision(BaseModel):
    """The parsed interpretation of one round of assistant reasoning."""

    model_config = ConfigDict(frozen=True)

    action: str | None = Field(default=None, description="Tool name. Ignored when status is final.")
    input: dict[str, Any] = Field(default_factory=dict, description="Tool parameters.")
    reasoning: str = Field(default="", description="Why this action was chosen.")
    status: DecisionStatus = "continue"


class ApprovalResponse(BaseModel):
    """Answer from the approval gate. Input may have been edited by the approver."""

    approved: bool
    input: dict[str, Any] = Field(default_factory=dict)


class ToolOutcome(BaseModel):
    """Result of one tool execution. Exactly one of result / error is meaningful."""

    model_config = ConfigDict(frozen=True)

    success: bool
    result: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, result: Any) -> "ToolOutcome":
        return cls(success=True, result=result)

    @classmethod
    def fail(cls, error: str) -> "ToolOutcome":
        return cls(success=False, error=error)


class ActionRecord(BaseModel):
    """Immutable log entry produced after each executed tool call."""

    model_config = ConfigDict(frozen=True)

    iteration: int
    action: str
    input: dict[str, Any] = Field(default_factory=dict)
    success: bool
    result: Any = Field(default=None, description="Tool result on success, error message on failure.")


class TaskResult(BaseModel):
    """Terminal state of one task run. The only output the harness exposes."""

    task: str
    final_message: str
    iterations_used: int
    action_log: list[ActionRecord] = Field(default_factory=list)
    conversation_id: str
    status: RunStatus

    @computed_field
    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"
