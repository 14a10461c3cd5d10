"""db: shared database library (SQLAlchemy/Alembic).

Public exports
--------------
- ``Base`` and ``metadata`` for Alembic autogenerate/targeting
- ORM models in ``db.models.cashflow`` (re-exported for convenience)
- Engine/session helpers in ``db.client``
"""

from __future__ import annotations

from .models.cashflow import (
    Base,
    CfArea,
    CfAreaPayment,
    CfBank,
    CfBankBalance,
    CfForecastItem,
    CfForecastWeek,
    CfRevenue,
    CfRevenueAccount,
    CfRevenueType,
)

# Re-export SQLAlchemy metadata for Alembic's env.py
metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "CfArea",
    "CfAreaPayment",
    "CfBank",
    "CfBankBalance",
    "CfForecastItem",
    "CfForecastWeek",
    "CfRevenue",
    "CfRevenueAccount",
    "CfRevenueType",
]
