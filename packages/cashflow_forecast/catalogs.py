"""Load the reference catalogs from the shared database."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.cashflow import CfArea, CfBank, CfRevenueAccount, CfRevenueType

from .logging_setup import get_logger
from .models import Area, Bank, Catalogs, RevenueAccount, RevenueType

logger = get_logger("cashflow_forecast.catalogs")


def load_catalogs_from_db(session: Session, *, include_inactive: bool = False) -> Catalogs:
    """Snapshot areas, revenue accounts, revenue types and banks.

    Inactive entries are left out unless ``include_inactive`` is set, so
    titles never resolve to a retired entity.
    """

    def _stmt(model):
        stmt = select(model).order_by(model.id)
        if not include_inactive:
            stmt = stmt.where(model.is_active.is_(True))
        return stmt

    areas = tuple(Area(id=r.id, display_name=r.name) for r in session.scalars(_stmt(CfArea)))
    banks = tuple(Bank(id=r.id, display_name=r.name) for r in session.scalars(_stmt(CfBank)))
    types = tuple(
        RevenueType(id=r.id, display_name=r.name) for r in session.scalars(_stmt(CfRevenueType))
    )
    accounts = tuple(
        RevenueAccount(
            id=r.id,
            display_name=r.name,
            code=r.code,
            bank_id=r.bank_id,
            revenue_type_id=r.revenue_type_id,
        )
        for r in session.scalars(_stmt(CfRevenueAccount))
    )

    logger.debug(
        "Loaded catalogs: %d areas, %d accounts, %d revenue types, %d banks",
        len(areas),
        len(accounts),
        len(types),
        len(banks),
    )
    return Catalogs(areas=areas, accounts=accounts, revenue_types=types, banks=banks)


__all__ = ["load_catalogs_from_db"]
