"""Expense prediction from a short description.

Recent entries with a similar description are the first source; an optional
external ``Predictor`` (e.g. a language model) is asked only when nothing in
the history matches.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pocketplan.database.base import Database
from pocketplan.domain.entities import Expense, ExpenseFilters, ExpenseType
from pocketplan.domain.errors import NotFoundError, PredictionError, wallet_not_found
from pocketplan.utils.text_similarity import tokenize, word_similarity

logger = logging.getLogger(__name__)

HISTORY_SIZE = 300
MIN_CONFIDENCE = 0.75


@dataclass(frozen=True)
class ExpensePrediction:
    """Suggested values for a new entry."""

    description: str
    amount: Decimal
    category: str
    type: ExpenseType
    shop: Optional[str]
    confidence: float


class Predictor(ABC):
    """External prediction backend."""

    @abstractmethod
    def predict(self, description: str, similar: list[Expense]) -> dict[str, Any]:
        """Return ``{"amount", "category"}`` and optionally ``type``/``shop``.

        Raises:
            PredictionError: On a transient backend failure
        """
        pass


def predictions_from_history(
    text: str, history: list[Expense], limit: int = 3
) -> list[ExpensePrediction]:
    """Entries whose description matches ``text``, best first."""
    normalized = text.lower().strip()
    if len(normalized) < 3:
        return []
    input_words = tokenize(normalized)
    if not input_words:
        return []

    predictions = []
    for expense in history:
        if not expense.description:
            continue
        candidate = expense.description.lower().strip()
        if candidate == normalized:
            confidence = 1.0
        else:
            confidence = word_similarity(input_words, tokenize(candidate))
            if confidence <= MIN_CONFIDENCE:
                continue
        predictions.append(
            ExpensePrediction(
                description=expense.description,
                amount=expense.amount,
                category=expense.category,
                type=expense.type,
                shop=expense.shop,
                confidence=round(confidence, 3),
            )
        )
    predictions.sort(key=lambda p: p.confidence, reverse=True)
    return predictions[:limit]


class ExpensePredictionService:
    """Suggests amount and category for a new entry."""

    def __init__(self, db: Database, predictor: Optional[Predictor] = None):
        """Initialize prediction service.

        Args:
            db: Database instance
            predictor: Optional external backend consulted when history has no match
        """
        self.db = db
        self.predictor = predictor

    def predict(self, user_id: str, text: str, amount: Optional[Decimal] = None) -> Optional[ExpensePrediction]:
        """Best prediction for ``text``, or None.

        Raises:
            NotFoundError: If the user has no wallet
        """
        wallet = self.db.get_wallet_by_user(user_id)
        if wallet is None:
            raise NotFoundError(wallet_not_found(user_id))

        history = self.db.list_expenses(wallet.id, ExpenseFilters(), take=HISTORY_SIZE)
        matches = predictions_from_history(text, history)
        if matches:
            best = matches[0]
            return replace(best, amount=Decimal(amount)) if amount is not None else best

        if self.predictor is None:
            return None

        similar = self.db.list_expenses(wallet.id, ExpenseFilters(title=text), take=50)
        try:
            raw = self.predictor.predict(text, similar)
        except PredictionError as e:
            logger.warning("Prediction backend failed for %r: %s", text, e)
            return None
        return self._from_backend(raw, text, amount)

    @staticmethod
    def _from_backend(
        raw: Any, text: str, amount: Optional[Decimal]
    ) -> Optional[ExpensePrediction]:
        if not isinstance(raw, dict) or "category" not in raw:
            logger.warning("Discarding malformed prediction: %r", raw)
            return None
        try:
            predicted_amount = Decimal(str(amount if amount is not None else raw.get("amount", 0)))
            expense_type = ExpenseType(raw.get("type", ExpenseType.EXPENSE.value))
        except (InvalidOperation, ValueError):
            logger.warning("Discarding malformed prediction: %r", raw)
            return None
        return ExpensePrediction(
            description=text,
            amount=predicted_amount,
            category=str(raw["category"]),
            type=expense_type,
            shop=raw.get("shop"),
            confidence=1.0,
        )
