"""Change proposals the assistant can make to workflows and mini-prompts.

Proposal tools never write anything.  They validate the change the model
suggests and return it as a plan; the client shows the plan with the
reply and the user applies or discards it.
"""

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

Complexity = Literal["XS", "S", "M", "L", "XL"]
Visibility = Literal["PUBLIC", "PRIVATE"]

ACTION_CREATE_WORKFLOW = "create_workflow"
ACTION_ADD_STAGE = "add_stage"
ACTION_MODIFY_STAGE = "modify_stage"
ACTION_REMOVE_STAGE = "remove_stage"
ACTION_CREATE_MINI_PROMPT = "create_mini_prompt"
ACTION_MODIFY_MINI_PROMPT = "modify_mini_prompt"
ACTION_UPDATE_WORKFLOW_SETTINGS = "update_workflow_settings"


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


class MiniPromptDraft(BaseModel):
    id: str | None = Field(
        default=None, description="Existing mini-prompt ID when reusing a prompt"
    )
    name: str = Field(min_length=1, max_length=255, description="Mini-prompt name")
    description: str | None = Field(default=None, description="Short description")
    content: str | None = Field(
        default=None,
        description="Markdown content (required when creating a new prompt)",
    )


class StageDraft(BaseModel):
    name: str = Field(min_length=1, max_length=255, description="Stage name")
    description: str | None = Field(default=None, description="Stage description")
    color: str | None = Field(
        default=None, description="Hex or named color used to display the stage"
    )
    with_review: bool = Field(
        default=True, description="End the stage with a review / memory board"
    )
    include_multi_agent_chat: bool = Field(
        default=False,
        description="Add multi-agent chat prompts after each mini-prompt",
    )
    mini_prompts: list[MiniPromptDraft] = Field(
        min_length=1, description="Mini-prompts of the stage, in order"
    )


# ---------------------------------------------------------------------------
# Tool inputs
# ---------------------------------------------------------------------------


class CreateWorkflowInput(BaseModel):
    name: str = Field(min_length=1, max_length=255, description="Workflow name")
    description: str | None = Field(default=None, description="Workflow description")
    complexity: Complexity | None = Field(
        default=None, description="XS (very simple) to XL (very large)"
    )
    include_multi_agent_chat: bool = Field(
        default=False,
        description="Add multi-agent chat prompts after each mini-prompt",
    )
    tags: list[str] | None = Field(
        default=None, description="Tag names, created when they do not exist"
    )
    stages: list[StageDraft] = Field(min_length=1, description="Stages, in order")


class AddStageInput(StageDraft):
    position: int = Field(
        ge=-1, description="Where to insert the stage: 0 is first, -1 is last"
    )


class StageUpdates(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    color: str | None = None
    with_review: bool | None = None
    include_multi_agent_chat: bool | None = None
    mini_prompts: list[MiniPromptDraft] | None = Field(
        default=None,
        description="Replaces every mini-prompt of the stage when given",
    )


class ModifyStageInput(BaseModel):
    stage_id: str | None = Field(
        default=None, description="Database ID of a saved stage"
    )
    stage_position: int | None = Field(
        default=None, ge=0, description="0-based index, for unsaved stages"
    )
    updates: StageUpdates

    @model_validator(mode="after")
    def _identified(self) -> "ModifyStageInput":
        if self.stage_id is None and self.stage_position is None:
            raise ValueError("Either stage_id or stage_position must be provided")
        return self


class RemoveStageInput(BaseModel):
    stage_index: int = Field(ge=0, description="0-based index of the stage")


class CreateMiniPromptInput(BaseModel):
    name: str = Field(min_length=1, max_length=255, description="Mini-prompt name")
    description: str | None = Field(default=None, max_length=1000)
    content: str = Field(min_length=1, description="Markdown content")
    tags: list[str] | None = None


class MiniPromptUpdates(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    content: str | None = Field(default=None, min_length=1)
    tags: list[str] | None = None


class ModifyMiniPromptInput(BaseModel):
    mini_prompt_id: str | None = Field(
        default=None, description="Database ID of a saved mini-prompt"
    )
    stage_position: int | None = Field(
        default=None, ge=0, description="0-based stage index, with mini_prompt_position"
    )
    mini_prompt_position: int | None = Field(
        default=None, ge=0, description="0-based index within the stage"
    )
    updates: MiniPromptUpdates

    @model_validator(mode="after")
    def _identified(self) -> "ModifyMiniPromptInput":
        by_position = (
            self.stage_position is not None and self.mini_prompt_position is not None
        )
        if self.mini_prompt_id is None and not by_position:
            raise ValueError(
                "Either mini_prompt_id or both stage_position and "
                "mini_prompt_position must be provided"
            )
        return self


class WorkflowSettingsInput(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    complexity: Complexity | None = None
    include_multi_agent_chat: bool | None = None
    visibility: Visibility | None = Field(
        default=None, description="PUBLIC (discoverable) or PRIVATE (owner only)"
    )


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


def _plan(action: str, change: BaseModel, message: str) -> dict[str, Any]:
    return {
        "success": True,
        "action": action,
        "change": change.model_dump(exclude_none=True),
        "message": message,
    }


def plan_create_workflow(change: CreateWorkflowInput) -> dict[str, Any]:
    return _plan(
        ACTION_CREATE_WORKFLOW,
        change,
        f'Workflow "{change.name}" created with {len(change.stages)} stage(s). '
        "Review and save when ready.",
    )


def plan_add_stage(change: AddStageInput) -> dict[str, Any]:
    where = "end" if change.position == -1 else f"position {change.position}"
    return _plan(
        ACTION_ADD_STAGE, change, f'Stage "{change.name}" will be added at {where}.'
    )


def plan_modify_stage(change: ModifyStageInput) -> dict[str, Any]:
    if change.stage_id is not None:
        message = f"Stage {change.stage_id} will be updated."
    else:
        message = f"Stage at position {change.stage_position} will be updated."
    return _plan(ACTION_MODIFY_STAGE, change, message)


def plan_remove_stage(change: RemoveStageInput) -> dict[str, Any]:
    return _plan(
        ACTION_REMOVE_STAGE,
        change,
        f"Stage at index {change.stage_index} will be removed.",
    )


def plan_create_mini_prompt(change: CreateMiniPromptInput) -> dict[str, Any]:
    return _plan(
        ACTION_CREATE_MINI_PROMPT,
        change,
        f'Mini-prompt "{change.name}" created. Review and save when ready.',
    )


def plan_modify_mini_prompt(change: ModifyMiniPromptInput) -> dict[str, Any]:
    if change.updates.name:
        message = f'Mini-prompt "{change.updates.name}" will be updated'
    else:
        message = "Mini-prompt will be updated"
    if change.mini_prompt_id is not None:
        message += f" (ID: {change.mini_prompt_id})."
    else:
        message += (
            f" at stage {change.stage_position}, "
            f"position {change.mini_prompt_position}."
        )
    return _plan(ACTION_MODIFY_MINI_PROMPT, change, message)


def plan_update_workflow_settings(change: WorkflowSettingsInput) -> dict[str, Any]:
    return _plan(
        ACTION_UPDATE_WORKFLOW_SETTINGS, change, "Workflow settings will be updated."
    )


ProposalSpec = tuple[type[BaseModel], Callable[[Any], dict[str, Any]], str]

PROPOSALS: dict[str, ProposalSpec] = {
    ACTION_CREATE_WORKFLOW: (
        CreateWorkflowInput,
        plan_create_workflow,
        "Create or restructure a complete workflow with stages and mini-prompts. "
        "Returns the workflow for the user to review before it is saved.",
    ),
    ACTION_ADD_STAGE: (
        AddStageInput,
        plan_add_stage,
        "Add one stage to the current workflow at a given position.",
    ),
    ACTION_MODIFY_STAGE: (
        ModifyStageInput,
        plan_modify_stage,
        "Change one stage: name, description, color, review setting or its "
        "mini-prompts. Identify it by stage_id or stage_position.",
    ),
    ACTION_REMOVE_STAGE: (
        RemoveStageInput,
        plan_remove_stage,
        "Remove a stage from the current workflow by its index.",
    ),
    ACTION_CREATE_MINI_PROMPT: (
        CreateMiniPromptInput,
        plan_create_mini_prompt,
        "Create a standalone, reusable mini-prompt.",
    ),
    ACTION_MODIFY_MINI_PROMPT: (
        ModifyMiniPromptInput,
        plan_modify_mini_prompt,
        "Change a mini-prompt's name, description, content or tags. Identify it "
        "by mini_prompt_id or by stage_position and mini_prompt_position.",
    ),
    ACTION_UPDATE_WORKFLOW_SETTINGS: (
        WorkflowSettingsInput,
        plan_update_workflow_settings,
        "Change workflow-level settings (name, description, complexity, "
        "multi-agent chat, visibility) without touching stages.",
    ),
}
