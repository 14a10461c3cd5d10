# ruff: noqa: I001
"""Cash-flow core tables: reference data, forecast weeks/items and realized rows.

Revision ID: 0001_cashflow_core
Revises: None
Create Date: 2025-10-06
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_cashflow_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _is_active() -> sa.Column:
    return sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true())


def upgrade() -> None:
    op.create_table(
        "are_areas",
        _id(),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("code", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _is_active(),
        _created_at(),
    )
    op.create_table(
        "ban_bancos",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=True),
        sa.Column("agency", sa.String(), nullable=True),
        sa.Column("account_number", sa.String(), nullable=True),
        _is_active(),
        _created_at(),
    )
    op.create_table(
        "ctr_contas_receita",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(16), nullable=True, unique=True),
        sa.Column(
            "bank_id",
            sa.BigInteger(),
            sa.ForeignKey("ban_bancos.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _is_active(),
        _created_at(),
    )
    op.create_table(
        "tpr_tipos_receita",
        _id(),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("code", sa.String(), nullable=True),
        _is_active(),
        _created_at(),
    )

    op.create_table(
        "pvs_semanas",
        _id(),
        sa.Column("week_start", sa.Date(), nullable=False, unique=True),
        sa.Column("week_end", sa.Date(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="importado"),
        sa.Column("note", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "pvi_previsao_itens",
        _id(),
        sa.Column(
            "week_id",
            sa.BigInteger(),
            sa.ForeignKey("pvs_semanas.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("area_id", sa.BigInteger(), sa.ForeignKey("are_areas.id"), nullable=True),
        sa.Column(
            "account_id", sa.BigInteger(), sa.ForeignKey("ctr_contas_receita.id"), nullable=True
        ),
        sa.Column(
            "revenue_type_id", sa.BigInteger(), sa.ForeignKey("tpr_tipos_receita.id"), nullable=True
        ),
        sa.Column("bank_id", sa.BigInteger(), sa.ForeignKey("ban_bancos.id"), nullable=True),
        sa.Column("code", sa.String(16), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.CheckConstraint(
            "kind in ('saldo_inicial','gasto','receita','saldo_diario','saldo_acumulado')",
            name="ck_pvi_kind",
        ),
    )
    op.create_index("ix_pvi_week_date", "pvi_previsao_itens", ["week_id", "date"])

    op.create_table(
        "pag_pagamentos_area",
        _id(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("area_id", sa.BigInteger(), sa.ForeignKey("are_areas.id"), nullable=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "rec_receitas",
        _id(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "account_id", sa.BigInteger(), sa.ForeignKey("ctr_contas_receita.id"), nullable=True
        ),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "sdb_saldo_banco",
        _id(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("bank_id", sa.BigInteger(), sa.ForeignKey("ban_bancos.id"), nullable=False),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False),
        _created_at(),
        sa.UniqueConstraint("date", "bank_id", name="uq_sdb_date_bank"),
    )

    for table in ("pag_pagamentos_area", "rec_receitas", "sdb_saldo_banco"):
        op.create_index(f"ix_{table.split('_')[0]}_date", table, ["date"])


def downgrade() -> None:
    for table in ("sdb_saldo_banco", "rec_receitas", "pag_pagamentos_area"):
        op.drop_index(f"ix_{table.split('_')[0]}_date", table_name=table)
        op.drop_table(table)
    op.drop_index("ix_pvi_week_date", table_name="pvi_previsao_itens")
    op.drop_table("pvi_previsao_itens")
    op.drop_table("pvs_semanas")
    op.drop_table("tpr_tipos_receita")
    op.drop_table("ctr_contas_receita")
    op.drop_table("ban_bancos")
    op.drop_table("are_areas")
