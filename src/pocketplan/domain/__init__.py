"""Domain layer for pocketplan.

Services are exported lazily: ``pocketplan.database.base`` imports
``pocketplan.domain.entities`` and the services import the database layer.
"""

_SERVICES = {
    "WalletService": "pocketplan.domain.wallet",
    "ExpenseService": "pocketplan.domain.expense",
    "SubscriptionService": "pocketplan.domain.subscription",
    "LimitService": "pocketplan.domain.limits",
    "BudgetCalculator": "pocketplan.domain.budget",
    "ExpenseAnalysisService": "pocketplan.domain.analysis",
    "InsightService": "pocketplan.domain.insights",
    "StatisticsService": "pocketplan.domain.statistics",
    "ExpensePredictionService": "pocketplan.domain.prediction",
    "NotificationService": "pocketplan.domain.notifications",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
