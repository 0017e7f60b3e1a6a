"""Tools the assistant may call during a turn.

Tools are built per run because they are scoped to the calling user.
Lookups read the content source; proposal tools only validate a change
and return it as a plan for the user to approve.
"""

from typing import Any

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel

from playbook.core.context.sources import ContentSource

from .proposals import PROPOSALS

GET_AVAILABLE_MINI_PROMPTS = "get_available_mini_prompts"
GET_WORKFLOW = "get_workflow"
GET_MINI_PROMPT = "get_mini_prompt"

LOOKUP_TOOLS = (GET_AVAILABLE_MINI_PROMPTS, GET_WORKFLOW, GET_MINI_PROMPT)

UNSAVED_WORKFLOW_ID = "new"
TEMP_ID_PREFIX = "temp-"


def _is_unsaved(workflow_id: str) -> bool:
    return workflow_id == UNSAVED_WORKFLOW_ID or workflow_id.startswith(TEMP_ID_PREFIX)


def _proposal_tool(
    name: str, schema: type[BaseModel], build: Any, description: str
) -> StructuredTool:
    async def propose(**kwargs: Any) -> dict[str, Any]:
        # nested drafts arrive as models; validating again restores defaults
        return build(schema.model_validate(kwargs))

    return StructuredTool.from_function(
        coroutine=propose, name=name, description=description, args_schema=schema
    )


class ToolRegistry:
    """Builds the assistant's tools for one user."""

    def __init__(self, source: ContentSource | None, library_limit: int = 100):
        self._source = source
        self._library_limit = library_limit

    def get_tools(self, user_id: str) -> list[BaseTool]:
        proposals = [
            _proposal_tool(name, schema, build, description)
            for name, (schema, build, description) in PROPOSALS.items()
        ]
        if self._source is None:
            return proposals
        return [*self._lookup_tools(self._source, user_id), *proposals]

    def _lookup_tools(self, source: ContentSource, user_id: str) -> list[BaseTool]:
        limit = self._library_limit

        async def get_available_mini_prompts(
            search: str | None = None,
        ) -> list[dict[str, Any]]:
            """List the user's and the system mini-prompts (id, name, description).

            Pass search to keep only those whose name or description contains it.
            """
            items = await source.list_mini_prompts(user_id, limit=limit, search=search)
            return [mp.model_dump() for mp in items]

        async def get_workflow(workflow_id: str) -> dict[str, Any]:
            """Get a saved workflow with its ordered stages and their mini-prompts.

            Not needed for the workflow being edited; it is already in the context.
            """
            if _is_unsaved(workflow_id):
                return {
                    "error": f"Workflow {workflow_id} is not saved yet",
                    "message": "Use the workflow context already provided.",
                }
            workflow = await source.get_workflow(workflow_id)
            if workflow is None:
                return {"error": f"Workflow {workflow_id} not found"}
            return workflow.model_dump()

        async def get_mini_prompt(mini_prompt_id: str) -> dict[str, Any]:
            """Get one mini-prompt including its full content."""
            mini_prompt = await source.get_mini_prompt(mini_prompt_id)
            if mini_prompt is None:
                return {"error": f"Mini-prompt {mini_prompt_id} not found"}
            return mini_prompt.model_dump()

        return [
            StructuredTool.from_function(
                coroutine=get_available_mini_prompts, name=GET_AVAILABLE_MINI_PROMPTS
            ),
            StructuredTool.from_function(coroutine=get_workflow, name=GET_WORKFLOW),
            StructuredTool.from_function(
                coroutine=get_mini_prompt, name=GET_MINI_PROMPT
            ),
        ]
