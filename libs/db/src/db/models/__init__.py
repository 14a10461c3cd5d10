"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the cash-flow forecast models used by ``cashflow_forecast``.
"""

from .cashflow import (
    FORECAST_KINDS,
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

__all__ = [
    "FORECAST_KINDS",
    "Base",
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
