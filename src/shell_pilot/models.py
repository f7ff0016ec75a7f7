# models.py
# Data contracts for the plan execution and repair engine.
# No business logic lives here — pure schema and validation.

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Action(BaseModel):
    """A single shell command in an execution plan."""

    model_config = ConfigDict(frozen=True)

    command: str = Field(..., min_length=1, description="Shell command to run.")
    description: str = Field(default="", description="Human-readable intent of this action.")

    @field_validator("command")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("command must not be blank")
        return value


class Plan(BaseModel):
    """Ordered actions derived from one classified instruction."""

    actions: list[Action] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    """Terminal outcome of one action, after any repair attempts."""

    command: str
    success: bool
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    documents: list[str] = Field(
        default_factory=list,
        description="Files produced without a shell command (e.g. generated slides).",
    )


class Skill(BaseModel):
    """Read-only descriptor of an installed skill."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    prompt_hint: str = ""
    install: str = ""


# ---------------------------------------------------------------------------
# Intent — tagged union returned by the advisory service
# ---------------------------------------------------------------------------


class Question(BaseModel):
    type: Literal["question"]
    content: str


class Command(BaseModel):
    type: Literal["command"]
    commands: list[Action] = Field(default_factory=list)

    def to_plan(self) -> Plan:
        return Plan(actions=list(self.commands))


Intent = Annotated[Union[Question, Command], Field(discriminator="type")]


class Report(BaseModel):
    """Everything one handled message produced."""

    task_id: int
    answer: str | None = None
    plan: Plan | None = None
    results: list[ExecutionResult] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    report_text: str | None = None
    error: str | None = None
