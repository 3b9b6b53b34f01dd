"""Tests for expense prediction."""

import pytest
from datetime import datetime
from decimal import Decimal

from pocketplan.domain.entities import ExpenseType
from pocketplan.domain.errors import NotFoundError, PredictionError
from pocketplan.domain.prediction import (
    ExpensePredictionService,
    Predictor,
    predictions_from_history,
)


class StubPredictor(Predictor):
    """Backend returning a canned answer and remembering what it was asked."""

    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    def predict(self, description, similar):
        self.calls.append((description, similar))
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def history(wallet, expense_service):
    expense_service.create_expense(
        "alice", Decimal("45"), "Biedronka groceries", category="food:groceries",
        shop="Biedronka", date=datetime(2025, 3, 10, 18),
    )
    expense_service.create_expense(
        "alice", Decimal("12"), "Morning coffee", category="food:coffee", date=datetime(2025, 3, 11, 8)
    )
    return expense_service.create_expense(
        "alice", Decimal("8"), "Coffee beans", category="food:groceries", date=datetime(2025, 3, 11, 9)
    )


class TestPredictionsFromHistory:
    """Tests for history matching."""

    def test_exact_match(self, history, temp_db, wallet):
        matches = predictions_from_history("morning coffee", temp_db.list_all_expenses(wallet.id))
        assert matches[0].description == "Morning coffee"
        assert matches[0].confidence == 1.0

    def test_reordered_words_match(self, history, temp_db, wallet):
        matches = predictions_from_history("coffee morning", temp_db.list_all_expenses(wallet.id))
        assert [m.description for m in matches] == ["Morning coffee"]

    def test_partial_match_below_threshold(self, history, temp_db, wallet):
        # One of two words matched scores exactly 0.75, which is not enough
        matches = predictions_from_history("coffee", temp_db.list_all_expenses(wallet.id))
        assert matches == []

    def test_too_short(self, history, temp_db, wallet):
        assert predictions_from_history("ab", temp_db.list_all_expenses(wallet.id)) == []


class TestPredictionService:
    """Tests for the prediction service."""

    def test_history_wins(self, history, temp_db):
        predictor = StubPredictor({"amount": "1", "category": "wrong"})
        prediction = ExpensePredictionService(temp_db, predictor).predict("alice", "biedronka groceries")

        assert prediction.amount == Decimal("45")
        assert prediction.category == "food:groceries"
        assert prediction.shop == "Biedronka"
        assert prediction.type == ExpenseType.EXPENSE
        assert predictor.calls == []

    def test_given_amount_overrides_history(self, history, temp_db):
        prediction = ExpensePredictionService(temp_db).predict("alice", "Biedronka groceries", Decimal("60"))
        assert prediction.amount == Decimal("60")

    def test_backend_fallback(self, history, temp_db):
        predictor = StubPredictor({"amount": "120.50", "category": "fun:concerts", "shop": "Ticketmaster"})
        prediction = ExpensePredictionService(temp_db, predictor).predict("alice", "concert tickets")

        assert prediction.description == "concert tickets"
        assert prediction.amount == Decimal("120.50")
        assert prediction.category == "fun:concerts"
        assert prediction.shop == "Ticketmaster"
        assert prediction.confidence == 1.0
        assert predictor.calls[0][0] == "concert tickets"

    def test_backend_gets_similar_entries(self, history, temp_db):
        predictor = StubPredictor({"category": "food"})
        ExpensePredictionService(temp_db, predictor).predict("alice", "beans")

        similar = predictor.calls[0][1]
        assert [e.description for e in similar] == ["Coffee beans"]

    def test_backend_failure(self, history, temp_db):
        predictor = StubPredictor(error=PredictionError("rate limited"))
        assert ExpensePredictionService(temp_db, predictor).predict("alice", "concert tickets") is None

    @pytest.mark.parametrize("answer", [None, "food", {"amount": "5"}, {"category": "x", "amount": "abc"}])
    def test_malformed_backend_answer(self, history, temp_db, answer):
        predictor = StubPredictor(answer)
        assert ExpensePredictionService(temp_db, predictor).predict("alice", "concert tickets") is None

    def test_no_backend(self, history, temp_db):
        assert ExpensePredictionService(temp_db).predict("alice", "concert tickets") is None

    def test_missing_wallet(self, temp_db):
        with pytest.raises(NotFoundError):
            ExpensePredictionService(temp_db).predict("nobody", "coffee")
