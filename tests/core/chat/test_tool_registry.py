"""Tests for the assistant's lookup and proposal tools."""

import pytest
from pydantic import ValidationError

from playbook.core.chat.proposals import (
    ACTION_ADD_STAGE,
    ACTION_CREATE_MINI_PROMPT,
    ACTION_CREATE_WORKFLOW,
    ACTION_MODIFY_MINI_PROMPT,
    ACTION_MODIFY_STAGE,
    ACTION_REMOVE_STAGE,
    ACTION_UPDATE_WORKFLOW_SETTINGS,
    PROPOSALS,
)
from playbook.core.chat.tools import (
    GET_AVAILABLE_MINI_PROMPTS,
    GET_MINI_PROMPT,
    GET_WORKFLOW,
    LOOKUP_TOOLS,
    ToolRegistry,
)


def _tools(source, user_id="user_1", limit=100):
    return {t.name: t for t in ToolRegistry(source, limit).get_tools(user_id)}


class TestToolRegistry:
    def test_without_source_only_proposals(self):
        names = {t.name for t in ToolRegistry(None).get_tools("user_1")}
        assert names == set(PROPOSALS)

    def test_tool_names_and_descriptions(self, content_source):
        tools = _tools(content_source)
        assert set(tools) == {*LOOKUP_TOOLS, *PROPOSALS}
        assert "workflow" in tools[GET_WORKFLOW].description.lower()
        assert "review" in tools[ACTION_CREATE_WORKFLOW].description.lower()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class TestLookupTools:
    @pytest.mark.asyncio
    async def test_available_mini_prompts_scoped_to_user(self, content_source):
        result = await _tools(content_source, limit=1)[
            GET_AVAILABLE_MINI_PROMPTS
        ].ainvoke({})
        assert result == [
            {
                "id": "mp_1",
                "name": "Outline",
                "description": "Draft an outline",
                "is_system": False,
            }
        ]
        assert content_source.calls == ["list_mini_prompts:user_1"]

    @pytest.mark.asyncio
    async def test_available_mini_prompts_search(self, content_source):
        tool = _tools(content_source)[GET_AVAILABLE_MINI_PROMPTS]

        by_name = await tool.ainvoke({"search": "code"})
        ignoring_case = await tool.ainvoke({"search": "OUTLINE"})

        assert [mp["id"] for mp in by_name] == ["mp_2"]
        assert [mp["id"] for mp in ignoring_case] == ["mp_1"]
        assert await tool.ainvoke({"search": "nothing"}) == []

    @pytest.mark.asyncio
    async def test_get_workflow(self, content_source):
        result = await _tools(content_source)[GET_WORKFLOW].ainvoke(
            {"workflow_id": "wf_1"}
        )
        assert result["name"] == "Feature Delivery"
        assert len(result["stages"]) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("workflow_id", ["new", "temp-123"])
    async def test_unsaved_workflow_not_fetched(self, content_source, workflow_id):
        result = await _tools(content_source)[GET_WORKFLOW].ainvoke(
            {"workflow_id": workflow_id}
        )
        assert "not saved" in result["error"]
        assert content_source.calls == []

    @pytest.mark.asyncio
    async def test_missing_items_reported(self, content_source):
        tools = _tools(content_source)
        missing_wf = await tools[GET_WORKFLOW].ainvoke({"workflow_id": "nope"})
        missing_mp = await tools[GET_MINI_PROMPT].ainvoke({"mini_prompt_id": "nope"})
        assert missing_wf == {"error": "Workflow nope not found"}
        assert missing_mp == {"error": "Mini-prompt nope not found"}

    @pytest.mark.asyncio
    async def test_get_mini_prompt_includes_content(self, content_source):
        result = await _tools(content_source)[GET_MINI_PROMPT].ainvoke(
            {"mini_prompt_id": "mp_1"}
        )
        assert result["content"] == "Write a numbered outline of the task."


# ---------------------------------------------------------------------------
# Proposals
# ---------------------------------------------------------------------------


class TestProposalTools:
    @pytest.mark.asyncio
    async def test_create_workflow_plan_fills_defaults(self):
        result = await _tools(None)[ACTION_CREATE_WORKFLOW].ainvoke(
            {
                "name": "Bugfix",
                "complexity": "S",
                "stages": [
                    {
                        "name": "Reproduce",
                        "mini_prompts": [{"id": "mp_1", "name": "Outline"}],
                    }
                ],
            }
        )

        assert result["success"] is True
        assert result["action"] == ACTION_CREATE_WORKFLOW
        assert result["message"].startswith('Workflow "Bugfix" created with 1 stage(s)')
        stage = result["change"]["stages"][0]
        assert stage["with_review"] is True
        assert stage["include_multi_agent_chat"] is False
        assert stage["mini_prompts"] == [{"id": "mp_1", "name": "Outline"}]
        assert result["change"]["include_multi_agent_chat"] is False

    @pytest.mark.asyncio
    async def test_create_workflow_needs_a_stage(self):
        with pytest.raises(ValidationError):
            await _tools(None)[ACTION_CREATE_WORKFLOW].ainvoke(
                {"name": "Empty", "stages": []}
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("position, where", [(0, "position 0"), (-1, "end")])
    async def test_add_stage(self, position, where):
        result = await _tools(None)[ACTION_ADD_STAGE].ainvoke(
            {
                "name": "Review",
                "position": position,
                "mini_prompts": [{"name": "Check", "content": "Check the diff."}],
            }
        )
        assert result["action"] == ACTION_ADD_STAGE
        assert result["change"]["position"] == position
        assert result["message"] == f'Stage "Review" will be added at {where}.'

    @pytest.mark.asyncio
    async def test_modify_stage_by_position(self):
        result = await _tools(None)[ACTION_MODIFY_STAGE].ainvoke(
            {"stage_position": 1, "updates": {"name": "Build"}}
        )
        assert result["change"] == {"stage_position": 1, "updates": {"name": "Build"}}
        assert result["message"] == "Stage at position 1 will be updated."

    @pytest.mark.asyncio
    async def test_modify_stage_needs_identifier(self):
        with pytest.raises(ValidationError, match="stage_id or stage_position"):
            await _tools(None)[ACTION_MODIFY_STAGE].ainvoke(
                {"updates": {"name": "Build"}}
            )

    @pytest.mark.asyncio
    async def test_remove_stage(self):
        result = await _tools(None)[ACTION_REMOVE_STAGE].ainvoke({"stage_index": 2})
        assert result == {
            "success": True,
            "action": ACTION_REMOVE_STAGE,
            "change": {"stage_index": 2},
            "message": "Stage at index 2 will be removed.",
        }

    @pytest.mark.asyncio
    async def test_create_mini_prompt_requires_content(self):
        tool = _tools(None)[ACTION_CREATE_MINI_PROMPT]
        with pytest.raises(ValidationError):
            await tool.ainvoke({"name": "Blank", "content": ""})

        result = await tool.ainvoke({"name": "Lint", "content": "Run the linter."})
        assert result["change"] == {"name": "Lint", "content": "Run the linter."}

    @pytest.mark.asyncio
    async def test_modify_mini_prompt_messages(self):
        tool = _tools(None)[ACTION_MODIFY_MINI_PROMPT]

        by_id = await tool.ainvoke(
            {"mini_prompt_id": "mp_1", "updates": {"name": "Plan"}}
        )
        by_position = await tool.ainvoke(
            {
                "stage_position": 0,
                "mini_prompt_position": 2,
                "updates": {"content": "New text"},
            }
        )

        assert by_id["message"] == 'Mini-prompt "Plan" will be updated (ID: mp_1).'
        assert by_position["message"] == (
            "Mini-prompt will be updated at stage 0, position 2."
        )

    @pytest.mark.asyncio
    async def test_modify_mini_prompt_needs_both_positions(self):
        with pytest.raises(ValidationError):
            await _tools(None)[ACTION_MODIFY_MINI_PROMPT].ainvoke(
                {"stage_position": 0, "updates": {"name": "Plan"}}
            )

    @pytest.mark.asyncio
    async def test_update_workflow_settings(self):
        tool = _tools(None)[ACTION_UPDATE_WORKFLOW_SETTINGS]

        result = await tool.ainvoke({"visibility": "PRIVATE", "complexity": "XL"})

        assert result["change"] == {"visibility": "PRIVATE", "complexity": "XL"}
        with pytest.raises(ValidationError):
            await tool.ainvoke({"visibility": "SECRET"})
