"""Create vacancy table.

Salary is guarded by a check constraint mirroring the application rule.

Revision ID: 001
Revises: None
Create Date: 2025-02-04 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLE = "vacancy"
INDEXED_COLUMNS = ["title", "salary", "created_at"]


def upgrade() -> None:
    op.create_table(
        TABLE,
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("salary", sa.Integer(), nullable=False),
        sa.Column("additional_fields", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("salary >= 0", name="chk_vacancy_salary_positive"),
    )
    op.create_index(f"ix_{TABLE}_id", TABLE, ["id"])
    for column in INDEXED_COLUMNS:
        op.create_index(f"ix_{TABLE}_{column}", TABLE, [column])


def downgrade() -> None:
    for column in reversed(INDEXED_COLUMNS):
        op.drop_index(f"ix_{TABLE}_{column}", table_name=TABLE)
    op.drop_index(f"ix_{TABLE}_id", table_name=TABLE)
    op.drop_table(TABLE)
