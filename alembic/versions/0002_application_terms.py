"""Application terms as columns

Revision ID: 0002_application_terms
Revises: 0001_initial_schema
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_application_terms"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

TERM_COLUMNS = ("availability", "proposed_rate")


def _has_table(insp: sa.Inspector, table: str) -> bool:
    return table in insp.get_table_names()


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if not _has_table(insp, table):
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def upgrade() -> None:
    insp = sa.inspect(op.get_bind())
    if not _has_table(insp, "applications"):
        return

    with op.batch_alter_table("applications", schema=None) as batch_op:
        if not _has_column(insp, "applications", "availability"):
            batch_op.add_column(sa.Column("availability", sa.String(length=120), nullable=True))
        if not _has_column(insp, "applications", "proposed_rate"):
            batch_op.add_column(sa.Column("proposed_rate", sa.Float(), nullable=True))


def downgrade() -> None:
    insp = sa.inspect(op.get_bind())
    if not _has_table(insp, "applications"):
        return

    present = [column for column in TERM_COLUMNS if _has_column(insp, "applications", column)]
    if present:
        with op.batch_alter_table("applications", schema=None) as batch_op:
            for column in present:
                batch_op.drop_column(column)
