"""create workflow and mini-prompt content tables

Revision ID: 0001
Revises:
Create Date: 2026-09-14
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "workflows",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("complexity", sa.String(length=32), nullable=True),
        sa.Column(
            "include_multi_agent_chat",
            sa.Boolean(),
            server_default=sa.false(),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_workflows"),
    )
    op.create_index("ix_workflows_user_id", "workflows", ["user_id"])

    op.create_table(
        "workflow_stages",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column(
            "with_review", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["workflow_id"],
            ["workflows.id"],
            name="fk_workflow_stages_workflow_id_workflows",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_workflow_stages"),
    )
    op.create_index(
        "ix_workflow_stages_workflow_id_order",
        "workflow_stages",
        ["workflow_id", "order"],
    )

    op.create_table(
        "mini_prompts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "is_system", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_mini_prompts"),
    )
    op.create_index("ix_mini_prompts_user_id", "mini_prompts", ["user_id"])

    op.create_table(
        "stage_mini_prompts",
        sa.Column("stage_id", sa.String(), nullable=False),
        sa.Column("mini_prompt_id", sa.String(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["stage_id"],
            ["workflow_stages.id"],
            name="fk_stage_mini_prompts_stage_id_workflow_stages",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["mini_prompt_id"],
            ["mini_prompts.id"],
            name="fk_stage_mini_prompts_mini_prompt_id_mini_prompts",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint(
            "stage_id", "mini_prompt_id", name="pk_stage_mini_prompts"
        ),
    )


def downgrade() -> None:
    op.drop_table("stage_mini_prompts")
    op.drop_index("ix_mini_prompts_user_id", table_name="mini_prompts")
    op.drop_table("mini_prompts")
    op.drop_index(
        "ix_workflow_stages_workflow_id_order", table_name="workflow_stages"
    )
    op.drop_table("workflow_stages")
    op.drop_index("ix_workflows_user_id", table_name="workflows")
    op.drop_table("workflows")
