"""Mapper functions to convert SQLAlchemy models into domain entities.

Keeping the conversion here lets the persistence schema evolve without the
ledger services noticing.
"""

from decimal import Decimal

from pocketplan.domain import entities as domain
from pocketplan.database.models import (
    Wallet as ORMWallet,
    Expense as ORMExpense,
    SubExpense as ORMSubExpense,
    ExpenseLocation as ORMExpenseLocation,
    Subscription as ORMSubscription,
    WalletLimit as ORMWalletLimit,
    NotificationRecipient as ORMNotificationRecipient,
    NotificationHistory as ORMNotificationHistory,
)


def _money(value) -> Decimal:
    """Normalize a stored numeric value to a Decimal."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def wallet_to_domain(orm_wallet: ORMWallet) -> domain.Wallet:
    """Convert SQLAlchemy Wallet model to domain Wallet entity."""
    return domain.Wallet(
        id=orm_wallet.id,
        user_id=orm_wallet.user_id,
        balance=_money(orm_wallet.balance),
        income=_money(orm_wallet.income),
        monthly_percentage_target=_money(orm_wallet.monthly_percentage_target),
        paycheck_date=orm_wallet.paycheck_date,
        created_at=orm_wallet.created_at,
    )


def subexpense_to_domain(orm_subexpense: ORMSubExpense) -> domain.SubExpense:
    """Convert SQLAlchemy SubExpense model to domain SubExpense entity."""
    return domain.SubExpense(
        id=orm_subexpense.id,
        expense_id=orm_subexpense.expense_id,
        description=orm_subexpense.description,
        amount=_money(orm_subexpense.amount),
        category=orm_subexpense.category,
    )


def location_to_domain(orm_location: ORMExpenseLocation) -> domain.ExpenseLocation:
    """Convert SQLAlchemy ExpenseLocation model to domain ExpenseLocation entity."""
    return domain.ExpenseLocation(
        id=orm_location.id,
        name=orm_location.name,
        kind=orm_location.kind,
        longitude=orm_location.longitude,
        latitude=orm_location.latitude,
    )


def expense_to_domain(orm_expense: ORMExpense, with_subexpenses: bool = False) -> domain.Expense:
    """Convert SQLAlchemy Expense model to domain Expense entity.

    Sub-expenses are only loaded when ``with_subexpenses`` is set, to avoid a
    lazy load per row in listings.
    """
    subexpenses: tuple[domain.SubExpense, ...] = ()
    if with_subexpenses:
        subexpenses = tuple(subexpense_to_domain(s) for s in orm_expense.subexpenses)
    return domain.Expense(
        id=orm_expense.id,
        wallet_id=orm_expense.wallet_id,
        amount=_money(orm_expense.amount),
        type=domain.ExpenseType(orm_expense.type),
        description=orm_expense.description or "",
        category=orm_expense.category or "",
        date=orm_expense.date,
        schedule=bool(orm_expense.schedule),
        balance_before_interaction=_money(orm_expense.balance_before_interaction),
        subscription_id=orm_expense.subscription_id,
        note=orm_expense.note,
        shop=orm_expense.shop,
        tags=tuple(orm_expense.tags or ()),
        spontaneous_rate=_money(orm_expense.spontaneous_rate),
        location_id=orm_expense.location_id,
        created_at=orm_expense.created_at,
        subexpenses=subexpenses,
    )


def subscription_to_domain(orm_subscription: ORMSubscription) -> domain.Subscription:
    """Convert SQLAlchemy Subscription model to domain Subscription entity."""
    return domain.Subscription(
        id=orm_subscription.id,
        wallet_id=orm_subscription.wallet_id,
        amount=_money(orm_subscription.amount),
        description=orm_subscription.description,
        billing_cycle=domain.BillingCycle(orm_subscription.billing_cycle),
        date_start=orm_subscription.date_start,
        date_end=orm_subscription.date_end,
        is_active=bool(orm_subscription.is_active),
        next_billing_date=orm_subscription.next_billing_date,
        created_at=orm_subscription.created_at,
    )


def limit_to_domain(orm_limit: ORMWalletLimit) -> domain.WalletLimit:
    """Convert SQLAlchemy WalletLimit model to domain WalletLimit entity."""
    return domain.WalletLimit(
        id=orm_limit.id,
        wallet_id=orm_limit.wallet_id,
        category=orm_limit.category,
        amount=_money(orm_limit.amount),
        range=domain.LimitRange(orm_limit.range),
        is_auto_generated=bool(orm_limit.is_auto_generated),
        created_at=orm_limit.created_at,
    )


def recipient_to_domain(orm_recipient: ORMNotificationRecipient) -> domain.NotificationRecipient:
    """Convert SQLAlchemy NotificationRecipient model to domain entity."""
    return domain.NotificationRecipient(
        id=orm_recipient.id,
        user_id=orm_recipient.user_id,
        token=orm_recipient.token,
        is_enabled=bool(orm_recipient.is_enabled),
        enabled_notifications=dict(orm_recipient.enabled_notifications or {}),
    )


def notification_record_to_domain(orm_record: ORMNotificationHistory) -> domain.NotificationRecord:
    """Convert SQLAlchemy NotificationHistory model to domain NotificationRecord."""
    return domain.NotificationRecord(
        id=orm_record.id,
        user_id=orm_record.user_id,
        title=orm_record.title,
        body=orm_record.body,
        data=dict(orm_record.data or {}),
        sent_at=orm_record.sent_at,
    )
