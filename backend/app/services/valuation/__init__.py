# backend/app/services/valuation/__init__.py
"""
Valuation Engine Package.

Turns holdings, quotes and a USD/JPY rate into a valuation snapshot:
enriched holdings, category summaries and a portfolio summary.

Usage:
    from app.services.valuation import ValuationEngine

    engine = ValuationEngine()
    result = engine.valuate(holdings, quotes, None, Decimal("150"))

Architecture:
    valuation/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # Internal data classes
    ├── calculators.py           # Point-in-time calculators
    └── service.py               # ValuationEngine (orchestrator)

Data Flow:
    Holding + Quote → HoldingValueCalculator → HoldingValuation
    HoldingValuations + OtherAssets → CategoryAggregator → CategorySummary
    Transactions → RealizedPnLCalculator → year realized P&L
    Dividends → DividendCalculator → year dividends
    Transactions → TransactionSummaryCalculator → listing totals
    All Above → PortfolioSummary → ValuationResult
"""

from app.services.valuation.calculators import (
    CategoryAggregator,
    DividendCalculator,
    HoldingValueCalculator,
    RealizedPnLCalculator,
    TransactionSummaryCalculator,
)
from app.services.valuation.service import ValuationEngine, build_previous_quotes
from app.services.valuation.types import (
    CategorySummary,
    HoldingValuation,
    PortfolioSummary,
    TransactionSummary,
    ValuationResult,
)

__all__ = [
    # Main service
    "ValuationEngine",
    "build_previous_quotes",
    # Calculators
    "HoldingValueCalculator",
    "CategoryAggregator",
    "RealizedPnLCalculator",
    "DividendCalculator",
    "TransactionSummaryCalculator",
    # Types
    "HoldingValuation",
    "CategorySummary",
    "PortfolioSummary",
    "TransactionSummary",
    "ValuationResult",
]
