"""Dashboard query package."""

from budget_ledger.queries.summary import SummaryAggregator

__all__ = ["SummaryAggregator"]
