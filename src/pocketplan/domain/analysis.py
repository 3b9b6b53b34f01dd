"""Expense description analysis.

Groups three months of expenses by similar descriptions to find where the
money goes. Descriptions are normalized, grouped exactly, then greedily
merged when they are textually close, share a category, or both mention a
keyword of the same category. Groups are ranked by share of spending, by
frequency and by an impact score mixing the two.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from pocketplan.database.base import Database
from pocketplan.domain.entities import Expense, ExpenseType
from pocketplan.utils.date_parser import end_of_day, start_of_day
from pocketplan.utils.text_similarity import normalize_description, similarity_ratio

logger = logging.getLogger(__name__)

MIN_ENTRIES = 15
MIN_EXPENSES = 10
MERGE_SIMILARITY = 0.7
MAX_MESSAGE_LENGTH = 178

KNOWN_CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Education/University": ["uwm", "rata", "czesne", "studia", "semestr", "rekrutacja"],
    "PlayStation/Gaming": ["playstation", "ps plus", "ps", "ea pass", "subscription", "mortal kombat"],
    "Work Meals": ["do pracy", "praca", "lunch", "bułki do pracy", "jedzenie"],
    "Transportation": ["bolt", "bilet", "bilety", "uber", "pkp", "autobus", "miejski"],
    "Groceries": ["lidl", "biedronka", "lewiatan", "żabka", "zabka", "carrefour", "carefour", "zakupy"],
    "Energy Drinks": ["tiger", "monster", "energetyk"],
    "iCloud/Apple Services": ["icloud", "cloud"],
}

_NON_WORD = re.compile(r"[^\w\s]")


@dataclass
class ExpenseGroup:
    """Expenses sharing a (merged) description."""

    descriptions: list[str]
    expenses: list[Expense]
    total: Decimal
    categories: list[str]
    name: str = ""
    avg_amount: Decimal = Decimal("0")
    percent_of_total: float = 0.0
    frequency_percentage: float = 0.0
    impact_score: float = 0.0

    @property
    def count(self) -> int:
        return len(self.expenses)

    def absorb(self, other: "ExpenseGroup") -> None:
        self.descriptions.extend(other.descriptions)
        self.expenses.extend(other.expenses)
        self.total += other.total
        for category in other.categories:
            if category not in self.categories:
                self.categories.append(category)

    @property
    def primary_description(self) -> str:
        """Most frequent original description; first seen wins ties."""
        counts = Counter(self.descriptions)
        return max(self.descriptions, key=lambda d: counts[d]) if self.descriptions else ""


@dataclass
class AnalysisResult:
    """Outcome of an expense description analysis."""

    title: str
    body: str
    groups: list[ExpenseGroup] = field(default_factory=list)
    top_by_amount: list[ExpenseGroup] = field(default_factory=list)
    top_by_frequency: list[ExpenseGroup] = field(default_factory=list)
    top_by_impact: list[ExpenseGroup] = field(default_factory=list)


def truncate_message(body: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Cut a notification body to ``limit`` characters, ending in an ellipsis."""
    if len(body) > limit:
        return body[: limit - 3] + "..."
    return body


def build_category_keywords(expenses: list[Expense]) -> dict[str, list[str]]:
    """Category -> keywords map from description words plus the known lists.

    Known keyword lists are attached to a matching category of the user
    (by substring, either direction) or added as categories of their own.
    """
    keywords: dict[str, list[str]] = {}
    for expense in expenses:
        if not expense.category:
            continue
        words = keywords.setdefault(expense.category, [])
        for word in _NON_WORD.sub("", expense.description.lower()).split():
            if len(word) > 3 and word not in words:
                words.append(word)

    categories = list(keywords)
    for known, known_words in KNOWN_CATEGORY_KEYWORDS.items():
        match = next(
            (
                c
                for c in categories
                if known.lower() in c.lower() or c.lower() in known.lower()
            ),
            None,
        )
        if match is not None:
            keywords[match] = keywords[match] + known_words
        else:
            keywords[known] = list(known_words)
    return keywords


def initial_groups(expenses: list[Expense]) -> dict[str, ExpenseGroup]:
    """Group expenses by exact normalized description."""
    groups: dict[str, ExpenseGroup] = {}
    for expense in expenses:
        if not expense.description:
            continue
        key = normalize_description(expense.description)
        if len(key) < 2:
            continue
        group = groups.get(key)
        if group is None:
            groups[key] = ExpenseGroup(
                descriptions=[expense.description],
                expenses=[expense],
                total=expense.amount,
                categories=[expense.category] if expense.category else [],
            )
        else:
            group.descriptions.append(expense.description)
            group.expenses.append(expense)
            group.total += expense.amount
            if expense.category and expense.category not in group.categories:
                group.categories.append(expense.category)
    return groups


def should_merge(
    key_a: str,
    key_b: str,
    group_a: ExpenseGroup,
    group_b: ExpenseGroup,
    category_keywords: dict[str, list[str]],
) -> bool:
    if similarity_ratio(key_a, key_b) >= MERGE_SIMILARITY:
        return True
    if any(category in group_b.categories for category in group_a.categories):
        return True
    for words in category_keywords.values():
        if words and any(w in key_a for w in words) and any(w in key_b for w in words):
            return True
    return False


def group_name(group: ExpenseGroup, category_keywords: dict[str, list[str]]) -> str:
    """Single category, else best keyword-scoring category, else primary description."""
    if len(group.categories) == 1:
        return group.categories[0]

    lowered = [d.lower() for d in group.descriptions]
    if len(group.categories) > 1:
        best, best_score = None, 0
        for category in group.categories:
            score = sum(
                1 for keyword in category_keywords.get(category, []) for d in lowered if keyword in d
            )
            if score > best_score:
                best, best_score = category, score
        if best is not None:
            return best

    for category, words in category_keywords.items():
        if any(w in d for w in words for d in lowered):
            return category
    return group.primary_description


def merge_groups(
    groups: dict[str, ExpenseGroup], category_keywords: dict[str, list[str]]
) -> list[ExpenseGroup]:
    """Greedily fold later groups into the first group they match."""
    keys = list(groups)
    merged: list[ExpenseGroup] = []
    consumed: set[str] = set()
    for i, key in enumerate(keys):
        if key in consumed:
            continue
        consumed.add(key)
        seed = groups[key]
        combined = ExpenseGroup(
            descriptions=list(seed.descriptions),
            expenses=list(seed.expenses),
            total=seed.total,
            categories=list(seed.categories),
        )
        for other_key in keys[i + 1 :]:
            if other_key in consumed:
                continue
            if should_merge(key, other_key, seed, groups[other_key], category_keywords):
                combined.absorb(groups[other_key])
                consumed.add(other_key)
        combined.name = group_name(combined, category_keywords)
        merged.append(combined)
    return merged


def calculate_metrics(groups: list[ExpenseGroup], total_spending: Decimal, expense_count: int) -> None:
    for group in groups:
        group.avg_amount = (group.total / group.count).quantize(Decimal("0.01"))
        group.percent_of_total = float(group.total / total_spending * 100) if total_spending else 0.0
        group.frequency_percentage = group.count / expense_count * 100 if expense_count else 0.0
        group.impact_score = group.percent_of_total * 0.7 + group.frequency_percentage * 0.3


def _format_amount(amount: Decimal) -> str:
    if amount >= 100:
        return str(int(amount.quantize(Decimal("1"))))
    return f"{amount:.1f}"


def _format_group(group: ExpenseGroup, currency: str) -> str:
    return (
        f"{group.name}: {group.count}x ({group.percent_of_total:.1f}%), "
        f"{_format_amount(group.total)}{currency}"
    )


def compose_message(
    top_by_amount: list[ExpenseGroup],
    top_by_frequency: list[ExpenseGroup],
    currency: str = "zł",
) -> str:
    """Summarize the most significant groups in one notification body."""
    significant: list[ExpenseGroup] = []
    seen: set[str] = set()

    for group in top_by_amount:
        if group.name not in seen:
            significant.append(group)
            seen.add(group.name)
        if len(significant) >= 3:
            break
    for group in top_by_frequency:
        if len(significant) >= 3:
            break
        if group.name not in seen and group.percent_of_total >= 5.0:
            significant.append(group)
            seen.add(group.name)
    for group in top_by_frequency:
        if len(significant) >= 3:
            break
        if group.name not in seen and group.percent_of_total >= 3.0 and group.count >= 10:
            significant.append(group)
            seen.add(group.name)

    if not significant:
        body = f"Expense analysis: {_format_group(top_by_amount[0], currency)}"
        if len(top_by_amount) > 1:
            body += f", {_format_group(top_by_amount[1], currency)}"
        return truncate_message(body)

    significant.sort(key=lambda g: g.percent_of_total, reverse=True)
    lead = significant[0]
    dominant = lead.percent_of_total > 15 or (
        len(significant) > 1 and lead.percent_of_total > significant[1].percent_of_total * 1.5
    )
    if dominant:
        body = f"Top expense: {_format_group(lead, currency)}"
    else:
        body = f"Top expenses: {_format_group(lead, currency)}"
    for group in significant[1:]:
        body += f", {_format_group(group, currency)}"

    most_frequent = top_by_frequency[0]
    if most_frequent.name not in seen and most_frequent.count >= 15:
        body += f". Most frequent: {_format_group(most_frequent, currency)}"
    return truncate_message(body)


def analyze_expenses(expenses: list[Expense], currency: str = "zł") -> Optional[AnalysisResult]:
    """Cluster expenses and describe the top groups.

    Returns None when there are fewer than 15 entries, fewer than 10 of
    type expense, or no group with at least two expenses.
    """
    if len(expenses) < MIN_ENTRIES:
        return None
    items = [e for e in expenses if e.type == ExpenseType.EXPENSE]
    if len(items) < MIN_EXPENSES:
        return None

    total_spending = sum((e.amount for e in items), Decimal("0"))
    category_keywords = build_category_keywords(items)
    groups = [g for g in merge_groups(initial_groups(items), category_keywords) if g.count >= 2]
    if not groups:
        return None

    calculate_metrics(groups, total_spending, len(items))
    # sorted() is stable, so equal scores keep discovery order
    top_by_amount = sorted(groups, key=lambda g: g.percent_of_total, reverse=True)[:3]
    top_by_frequency = sorted(groups, key=lambda g: g.count, reverse=True)[:3]
    top_by_impact = sorted(groups, key=lambda g: g.impact_score, reverse=True)[:3]

    return AnalysisResult(
        title="Expense Analysis",
        body=compose_message(top_by_amount, top_by_frequency, currency),
        groups=groups,
        top_by_amount=top_by_amount,
        top_by_frequency=top_by_frequency,
        top_by_impact=top_by_impact,
    )


class ExpenseAnalysisService:
    """Runs the description analysis over a wallet's last three months."""

    def __init__(
        self,
        db: Database,
        clock: Optional[Callable[[], datetime]] = None,
        currency: str = "zł",
    ):
        self.db = db
        self.clock = clock or datetime.now
        self.currency = currency

    def analyze(self, user_id: str, today: Optional[date] = None) -> Optional[AnalysisResult]:
        wallet = self.db.get_wallet_by_user(user_id)
        if wallet is None:
            logger.warning("No wallet found for user %s", user_id)
            return None
        today = today or self.clock().date()
        expenses = self.db.expenses_in_range(
            wallet.id, start_of_day(today - relativedelta(months=3)), end_of_day(today)
        )
        result = analyze_expenses(expenses, self.currency)
        if result is None:
            logger.debug("Not enough data to analyze expenses of user %s", user_id)
        return result
