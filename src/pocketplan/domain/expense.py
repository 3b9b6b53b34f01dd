"""Expense domain service.

``ExpenseService`` is the only code path that changes a wallet balance. Every
mutation reads the wallet row locked, writes the entry and applies the signed
balance delta inside one ``Database.atomic()`` unit, so the balance always
equals the sum of :func:`balance_effect` over the wallet's entries.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from pocketplan.database.base import Database
from pocketplan.domain.entities import (
    Expense as ExpenseEntity,
    ExpenseLocation,
    ExpenseType,
    SubExpense,
    Wallet,
)
from pocketplan.domain.errors import (
    NotFoundError,
    ValidationError,
    expense_not_found,
    subexpense_not_found,
    wallet_not_found,
)
from pocketplan.utils.date_parser import parse_datetime, start_of_day

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def balance_effect(type: ExpenseType, amount: Decimal, schedule: bool) -> Decimal:
    """Signed contribution of an entry to its wallet's balance."""
    if schedule or type == ExpenseType.REFUNDED:
        return ZERO
    if type == ExpenseType.INCOME:
        return amount
    return -amount


def entry_effect(expense: ExpenseEntity) -> Decimal:
    """Signed contribution of a stored entry."""
    return balance_effect(expense.type, expense.amount, expense.schedule)


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid {field}: {value!r}") from e


class ExpenseService:
    """Service for recording, editing and reversing ledger entries."""

    def __init__(self, db: Database, clock: Optional[Callable[[], datetime]] = None):
        """Initialize expense service.

        Args:
            db: Database instance
            clock: Callable returning the current local time (defaults to datetime.now)
        """
        self.db = db
        self.clock = clock or datetime.now

    def _wallet_for_user(self, user_id: str, for_update: bool = False) -> Wallet:
        wallet = self.db.get_wallet_by_user(user_id, for_update=for_update)
        if wallet is None:
            raise NotFoundError(wallet_not_found(user_id))
        return wallet

    def _owned_expense(
        self, user_id: str, expense_id: int, for_update: bool = False
    ) -> tuple[Wallet, ExpenseEntity]:
        """Load the caller's wallet and one of its entries.

        An entry that belongs to another wallet is reported as missing.
        """
        wallet = self._wallet_for_user(user_id, for_update=for_update)
        expense = self.db.get_expense(expense_id, for_update=for_update)
        if expense is None or expense.wallet_id != wallet.id:
            raise NotFoundError(expense_not_found(expense_id))
        return wallet, expense

    def _apply_delta(self, wallet_id: int, delta: Decimal) -> None:
        if delta == ZERO:
            return
        balance = self.db.apply_balance_delta(wallet_id, delta)
        logger.info("Wallet %s balance changed by %s to %s", wallet_id, delta, balance)

    @staticmethod
    def _validate_entry(
        amount: Decimal, type: ExpenseType, spontaneous_rate: Decimal
    ) -> tuple[Decimal, ExpenseType, Decimal]:
        amount = _to_decimal(amount, "amount")
        if amount < 0:
            raise ValidationError(f"Amount must not be negative, got {amount}")
        try:
            type = ExpenseType(type)
        except ValueError as e:
            raise ValidationError(f"Unknown expense type: {type!r}") from e
        spontaneous_rate = _to_decimal(spontaneous_rate, "spontaneous rate")
        if not ZERO <= spontaneous_rate <= 1:
            raise ValidationError(f"Spontaneous rate must be between 0 and 1, got {spontaneous_rate}")
        return amount, type, spontaneous_rate

    def record_entry(
        self,
        wallet_id: int,
        amount: Decimal,
        type: ExpenseType,
        description: str,
        category: str,
        date: Optional[datetime] = None,
        schedule: bool = False,
        subscription_id: Optional[int] = None,
        note: Optional[str] = None,
        shop: Optional[str] = None,
        tags: Optional[list[str]] = None,
        spontaneous_rate: Decimal = ZERO,
        location_id: Optional[int] = None,
    ) -> ExpenseEntity:
        """Insert an entry and apply its balance effect in one unit of work.

        An entry flagged ``schedule`` with a date in the future is stored as
        scheduled and leaves the balance alone until it is realized; any
        other entry is stored as realized.

        Raises:
            NotFoundError: If the wallet doesn't exist
            ValidationError: If amount, type or spontaneous rate is invalid
        """
        amount, type, spontaneous_rate = self._validate_entry(amount, type, spontaneous_rate)
        now = self.clock()
        date = date or now
        deferred = bool(schedule) and date > now

        with self.db.atomic():
            wallet = self.db.get_wallet(wallet_id, for_update=True)
            if wallet is None:
                raise NotFoundError(f"Wallet {wallet_id} not found")
            expense_id = self.db.create_expense(
                wallet_id=wallet.id,
                amount=amount,
                type=type,
                description=description,
                category=category,
                date=date,
                schedule=deferred,
                balance_before_interaction=wallet.balance,
                subscription_id=subscription_id,
                note=note,
                shop=shop,
                tags=tags,
                spontaneous_rate=spontaneous_rate,
                location_id=location_id,
            )
            self._apply_delta(wallet.id, balance_effect(type, amount, deferred))
            return self.db.get_expense(expense_id)

    def create_expense(
        self,
        user_id: str,
        amount: Decimal,
        description: str,
        type: ExpenseType = ExpenseType.EXPENSE,
        category: str = "",
        date: Optional[datetime] = None,
        schedule: bool = False,
        subscription_id: Optional[int] = None,
        spontaneous_rate: Decimal = ZERO,
        note: Optional[str] = None,
        shop: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> ExpenseEntity:
        """Create an entry on the caller's wallet.

        Args:
            user_id: Owner of the wallet
            amount: Non-negative amount
            description: Free text description
            type: expense, income or refunded
            category: ``topic:subtopic`` category string
            date: Effective timestamp (defaults to now)
            schedule: Defer the balance effect until ``date`` when it lies in the future
            subscription_id: Optional originating subscription
            spontaneous_rate: Impulse-purchase score between 0 and 1
            note: Optional note
            shop: Optional merchant
            tags: Optional tags

        Returns:
            The stored Expense entity

        Raises:
            NotFoundError: If the user has no wallet
            ValidationError: If the input is invalid
        """
        wallet = self._wallet_for_user(user_id)
        return self.record_entry(
            wallet.id,
            amount=amount,
            type=type,
            description=description,
            category=category,
            date=date,
            schedule=schedule,
            subscription_id=subscription_id,
            note=note,
            shop=shop,
            tags=tags,
            spontaneous_rate=spontaneous_rate,
        )

    def get_expense(self, user_id: str, expense_id: int) -> ExpenseEntity:
        """Get one of the caller's entries.

        Raises:
            NotFoundError: If the entry doesn't exist on the caller's wallet
        """
        _, expense = self._owned_expense(user_id, expense_id)
        return expense

    def edit_expense(
        self,
        user_id: str,
        expense_id: int,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        type: Optional[ExpenseType] = None,
        category: Optional[str] = None,
        date: Optional[datetime] = None,
        spontaneous_rate: Optional[Decimal] = None,
        note: Optional[str] = None,
        shop: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> ExpenseEntity:
        """Replace an entry's fields and rebase the balance.

        The old effect is reverted and the new one applied in one step, so
        the result equals deleting and re-creating the entry. Fields passed
        as None keep their current value.

        Raises:
            NotFoundError: If the entry doesn't exist on the caller's wallet
            ValidationError: If the new values are invalid
        """
        with self.db.atomic():
            wallet, old = self._owned_expense(user_id, expense_id, for_update=True)

            new_amount, new_type, new_rate = self._validate_entry(
                old.amount if amount is None else amount,
                old.type if type is None else type,
                old.spontaneous_rate if spontaneous_rate is None else spontaneous_rate,
            )
            old_effect = entry_effect(old)
            new_effect = balance_effect(new_type, new_amount, old.schedule)
            baseline = wallet.balance - old_effect

            changes: dict[str, Any] = {
                "amount": new_amount,
                "type": new_type,
                "spontaneous_rate": new_rate,
                "balance_before_interaction": baseline,
            }
            if description is not None:
                changes["description"] = description
            if category is not None:
                changes["category"] = category
            if date is not None:
                changes["date"] = date
            if note is not None:
                changes["note"] = note
            if shop is not None:
                changes["shop"] = shop
            if tags is not None:
                changes["tags"] = tags

            self.db.update_expense(expense_id, **changes)
            self._apply_delta(wallet.id, new_effect - old_effect)
            return self.db.get_expense(expense_id)

    def delete_expense(self, user_id: str, expense_id: int) -> None:
        """Delete an entry and revert its balance effect.

        Refunded and still-scheduled entries have no effect, so deleting them
        leaves the balance untouched.

        Raises:
            NotFoundError: If the entry doesn't exist on the caller's wallet
        """
        with self.db.atomic():
            wallet, old = self._owned_expense(user_id, expense_id, for_update=True)
            self.db.delete_expense(expense_id)
            self._apply_delta(wallet.id, -entry_effect(old))

    def refund_expense(self, user_id: str, expense_id: int) -> ExpenseEntity:
        """Mark an entry refunded and revert its balance effect.

        Refunding an already refunded entry changes nothing.

        Raises:
            NotFoundError: If the entry doesn't exist on the caller's wallet
        """
        with self.db.atomic():
            wallet, old = self._owned_expense(user_id, expense_id, for_update=True)
            if old.type == ExpenseType.REFUNDED:
                logger.warning("Expense %s is already refunded", expense_id)
                return old

            stamp = f"Refunded at {self.clock():%Y-%m-%d %H:%M}"
            note = f"{stamp}\n{old.note}" if old.note else stamp
            self.db.update_expense(expense_id, type=ExpenseType.REFUNDED, note=note)
            self._apply_delta(wallet.id, -entry_effect(old))
            return self.db.get_expense(expense_id)

    def due_scheduled_expenses(self, now: Optional[datetime] = None) -> list[ExpenseEntity]:
        """Scheduled entries dated before the start of the next day."""
        now = now or self.clock()
        return self.db.due_scheduled_expenses(start_of_day(now.date() + timedelta(days=1)))

    def realize_scheduled(self, expense_id: int, now: Optional[datetime] = None) -> bool:
        """Apply a due scheduled entry to its wallet.

        Returns:
            True if this call realized the entry, False if it was already realized

        Raises:
            NotFoundError: If the entry doesn't exist
            ValidationError: If the entry is dated after today
        """
        now = now or self.clock()
        with self.db.atomic():
            expense = self.db.get_expense(expense_id)
            if expense is None:
                raise NotFoundError(expense_not_found(expense_id))
            # Wallet before entry, same as every other balance change
            wallet = self.db.get_wallet(expense.wallet_id, for_update=True)
            expense = self.db.get_expense(expense_id, for_update=True)
            if expense is None:
                raise NotFoundError(expense_not_found(expense_id))
            if not expense.schedule:
                logger.info("Expense %s is already realized", expense_id)
                return False
            if expense.date >= start_of_day(now.date() + timedelta(days=1)):
                raise ValidationError(f"Expense {expense_id} is not due before {expense.date:%Y-%m-%d}")

            if not self.db.mark_realized(expense_id):
                return False
            self.db.update_expense(expense_id, balance_before_interaction=wallet.balance)
            self._apply_delta(wallet.id, balance_effect(expense.type, expense.amount, False))
            return True

    def create_expense_from_prediction(
        self, user_id: str, prediction: dict[str, Any]
    ) -> ExpenseEntity:
        """Create an entry from a receipt prediction.

        The prediction must carry ``merchant``, ``total_price``, ``date``,
        ``title`` and ``category``; ``subexpenses`` is an optional list of
        ``{"name", "amount"}`` line items.

        Raises:
            ValidationError: If the prediction is malformed
            NotFoundError: If the user has no wallet
        """
        if not isinstance(prediction, dict):
            raise ValidationError("Prediction must be an object")
        missing = [
            key
            for key in ("merchant", "total_price", "date", "title", "category")
            if prediction.get(key) in (None, "")
        ]
        if missing:
            raise ValidationError(f"Prediction is missing: {', '.join(missing)}")

        try:
            date = parse_datetime(str(prediction["date"]), now=self.clock())
        except ValueError as e:
            raise ValidationError(str(e)) from e

        items = prediction.get("subexpenses") or []
        if not isinstance(items, list):
            raise ValidationError("Prediction subexpenses must be a list")
        line_items = []
        for item in items:
            if not isinstance(item, dict) or "name" not in item or "amount" not in item:
                raise ValidationError(f"Malformed subexpense: {item!r}")
            line_items.append(
                (str(item["name"]), _to_decimal(item["amount"], "subexpense amount"), item.get("category"))
            )

        with self.db.atomic():
            expense = self.create_expense(
                user_id,
                amount=prediction["total_price"],
                description=str(prediction["title"]).strip(),
                type=ExpenseType.EXPENSE,
                category=str(prediction["category"]),
                date=date,
                shop=str(prediction["merchant"]),
            )
            for name, amount, category in line_items:
                self.db.add_subexpense(expense.id, name, amount, category)
            return self.db.get_expense(expense.id)

    # Sub-expenses
    def add_subexpense(
        self,
        user_id: str,
        expense_id: int,
        description: str,
        amount: Decimal,
        category: Optional[str] = None,
    ) -> SubExpense:
        """Attach a line item to one of the caller's entries."""
        self._owned_expense(user_id, expense_id)
        amount = _to_decimal(amount, "amount")
        if amount < 0:
            raise ValidationError(f"Amount must not be negative, got {amount}")
        subexpense_id = self.db.add_subexpense(expense_id, description, amount, category)
        return self.db.get_subexpense(subexpense_id)

    def add_subexpenses(
        self, user_id: str, expense_id: int, items: list[tuple[str, Decimal, Optional[str]]]
    ) -> list[SubExpense]:
        """Attach several line items at once."""
        with self.db.atomic():
            return [
                self.add_subexpense(user_id, expense_id, description, amount, category)
                for description, amount, category in items
            ]

    def list_subexpenses(self, user_id: str, expense_id: int) -> list[SubExpense]:
        self._owned_expense(user_id, expense_id)
        return self.db.list_subexpenses(expense_id)

    def _owned_subexpense(self, user_id: str, subexpense_id: int) -> SubExpense:
        subexpense = self.db.get_subexpense(subexpense_id)
        if subexpense is None:
            raise NotFoundError(subexpense_not_found(subexpense_id))
        try:
            self._owned_expense(user_id, subexpense.expense_id)
        except NotFoundError as e:
            raise NotFoundError(subexpense_not_found(subexpense_id)) from e
        return subexpense

    def update_subexpense(
        self,
        user_id: str,
        subexpense_id: int,
        description: Optional[str] = None,
        amount: Optional[Decimal] = None,
        category: Optional[str] = None,
    ) -> SubExpense:
        """Change a line item. Line items never touch the balance."""
        self._owned_subexpense(user_id, subexpense_id)
        changes: dict[str, Any] = {}
        if description is not None:
            changes["description"] = description
        if amount is not None:
            changes["amount"] = _to_decimal(amount, "amount")
        if category is not None:
            changes["category"] = category
        if changes:
            self.db.update_subexpense(subexpense_id, **changes)
        return self.db.get_subexpense(subexpense_id)

    def delete_subexpense(self, user_id: str, subexpense_id: int) -> None:
        self._owned_subexpense(user_id, subexpense_id)
        self.db.delete_subexpense(subexpense_id)

    # Locations
    def create_location(
        self,
        name: str,
        kind: Optional[str] = None,
        longitude: Optional[float] = None,
        latitude: Optional[float] = None,
    ) -> ExpenseLocation:
        if not name or not name.strip():
            raise ValidationError("Location name must not be empty")
        location_id = self.db.create_location(name.strip(), kind, longitude, latitude)
        return self.db.get_location(location_id)

    def set_expense_location(self, user_id: str, expense_id: int, location_id: Optional[int]) -> ExpenseEntity:
        """Point an entry at a location, or clear it with None."""
        self._owned_expense(user_id, expense_id)
        if location_id is not None and self.db.get_location(location_id) is None:
            raise NotFoundError(f"Location {location_id} not found")
        self.db.update_expense(expense_id, location_id=location_id)
        return self.db.get_expense(expense_id)

    def query_locations(
        self,
        name: Optional[str] = None,
        longitude: Optional[float] = None,
        latitude: Optional[float] = None,
    ) -> list[ExpenseLocation]:
        return self.db.find_locations(name=name, longitude=longitude, latitude=latitude)
