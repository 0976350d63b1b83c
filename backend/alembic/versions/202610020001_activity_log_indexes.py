"""activity log lookup indexes

Revision ID: 202610020001
Revises: 202610010001
Create Date: 2026-10-02 09:30:01
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "202610020001"
down_revision: Union[str, None] = "202610010001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INDEXES = (
    ("idx_activity_logs_user_id", ["user_id"]),
    ("idx_activity_logs_action", ["action"]),
    ("idx_activity_logs_table_name", ["table_name"]),
    ("idx_activity_logs_record_id", ["record_id"]),
    ("idx_activity_logs_created_at", ["created_at"]),
    ("idx_activity_logs_user_created", ["user_id", "created_at"]),
    ("idx_activity_logs_table_record", ["table_name", "record_id"]),
)


def _existing_indexes(bind: sa.engine.Connection) -> set:
    return {index["name"] for index in sa.inspect(bind).get_indexes("activity_logs")}


def upgrade() -> None:
    existing = _existing_indexes(op.get_bind())
    for name, columns in INDEXES:
        if name not in existing:
            op.create_index(name, "activity_logs", columns)


def downgrade() -> None:
    existing = _existing_indexes(op.get_bind())
    for name, _columns in reversed(INDEXES):
        if name in existing:
            op.drop_index(name, table_name="activity_logs")
