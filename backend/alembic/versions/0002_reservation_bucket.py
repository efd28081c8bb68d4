"""reservation bucket

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 15:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    with op.batch_alter_table("leave_request") as batch_op:
        batch_op.add_column(sa.Column("balance_id", sa.Uuid(), nullable=True))
        batch_op.create_foreign_key(
            "fk_leave_request_balance_id_leave_balance", "leave_balance", ["balance_id"], ["id"]
        )

    op.create_index(
        "uq_leave_balance_shared_bucket",
        "leave_balance",
        ["employee_id", "year"],
        unique=True,
        postgresql_where=sa.text("leave_type_id IS NULL"),
        sqlite_where=sa.text("leave_type_id IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_leave_balance_shared_bucket", table_name="leave_balance")

    with op.batch_alter_table("leave_request") as batch_op:
        batch_op.drop_constraint("fk_leave_request_balance_id_leave_balance", type_="foreignkey")
        batch_op.drop_column("balance_id")
