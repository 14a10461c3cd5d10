# ruff: noqa: I001
"""Link revenue accounts and realized revenues to revenue types.

Revision ID: 0002_revenue_type_links
Revises: 0001_cashflow_core
Create Date: 2025-10-20
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002_revenue_type_links"
down_revision: str | None = "0001_cashflow_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Batch mode so SQLite can add the foreign keys
    with op.batch_alter_table("ctr_contas_receita") as batch:
        batch.add_column(sa.Column("revenue_type_id", sa.BigInteger(), nullable=True))
        batch.create_foreign_key(
            "fk_ctr_revenue_type",
            "tpr_tipos_receita",
            ["revenue_type_id"],
            ["id"],
            ondelete="SET NULL",
        )
    with op.batch_alter_table("rec_receitas") as batch:
        batch.add_column(sa.Column("revenue_type_id", sa.BigInteger(), nullable=True))
        batch.create_foreign_key(
            "fk_rec_revenue_type", "tpr_tipos_receita", ["revenue_type_id"], ["id"]
        )


def downgrade() -> None:
    with op.batch_alter_table("rec_receitas") as batch:
        batch.drop_constraint("fk_rec_revenue_type", type_="foreignkey")
        batch.drop_column("revenue_type_id")
    with op.batch_alter_table("ctr_contas_receita") as batch:
        batch.drop_constraint("fk_ctr_revenue_type", type_="foreignkey")
        batch.drop_column("revenue_type_id")
