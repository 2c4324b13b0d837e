"""
Data models for the cash-flow ledger.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

ZERO = Decimal("0")

INCOME_BUCKETS = ("uber", "bolt", "freenow", "horizoncars", "other")
EXPENSE_CATEGORY = "expense"


class TransactionType(Enum):
    """Classification outcome for a single transaction."""

    INCOME = "income"
    EXPENSE = "expense"
    EXCLUDE = "exclude"
    UNKNOWN = "unknown"


class MergeMode(Enum):
    """How an import batch is merged into existing daily entries."""

    ACCUMULATE = "accumulate"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class Classification:
    """The decision attached to one transaction."""

    type: TransactionType
    confidence: float
    category: str


@dataclass
class ParsedTransaction:
    """A row read from a bank export, before classification."""

    date: date
    description: str
    amount: Decimal | None
    category: str | None = None
    source: str | None = None
    verified: bool = False


@dataclass
class ClassifiedTransaction:
    """A transaction with corrected sign and final category label."""

    date: date
    description: str
    amount: Decimal
    category: str
    source: str | None = None
    verified: bool = False

    @property
    def is_income(self) -> bool:
        return self.category != EXPENSE_CATEGORY


@dataclass
class ImportedTransaction:
    """A persisted row of the imported transaction log."""

    id: int
    user_id: int
    date: date
    description: str
    amount: Decimal
    category: str | None
    source: str | None = None
    verified: bool = False
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class CSVParseResult:
    """Transactions read from a CSV export plus per-reason skip counts."""

    transactions: list[ParsedTransaction]
    skipped: Counter = field(default_factory=Counter)

    @property
    def skipped_count(self) -> int:
        return sum(self.skipped.values())


@dataclass
class DailyAggregate:
    """Per-date sums computed from one import batch."""

    date: date
    uber: Decimal = ZERO
    bolt: Decimal = ZERO
    freenow: Decimal = ZERO
    horizoncars: Decimal = ZERO
    other: Decimal = ZERO
    expenses: Decimal = ZERO

    def add_income(self, category: str, amount: Decimal) -> None:
        """Route an income amount into its platform bucket."""
        bucket = category if category in INCOME_BUCKETS else "other"
        setattr(self, bucket, getattr(self, bucket) + amount)

    def add_expense(self, amount: Decimal) -> None:
        self.expenses += abs(amount)

    @property
    def total_income(self) -> Decimal:
        return sum((getattr(self, b) for b in INCOME_BUCKETS), ZERO)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.expenses


@dataclass
class DailyEntry:
    """A user's ledger row for one calendar day."""

    user_id: int
    date: date
    uber: Decimal = ZERO
    bolt: Decimal = ZERO
    freenow: Decimal = ZERO
    horizoncars: Decimal = ZERO
    other: Decimal = ZERO
    expenses: Decimal = ZERO
    balance: Decimal = ZERO
    notes: str | None = None

    @property
    def total_income(self) -> Decimal:
        return sum((getattr(self, b) for b in INCOME_BUCKETS), ZERO)

    def recompute_balance(self) -> None:
        self.balance = self.total_income - self.expenses


@dataclass
class RecurringExpense:
    """An expense that repeats on the same day every month."""

    user_id: int
    name: str
    amount: Decimal
    day_of_month: int
    category: str | None = None
    id: int | None = None

    def __post_init__(self):
        if not 1 <= self.day_of_month <= 31:
            raise ValueError(
                f"day_of_month must be between 1 and 31, got {self.day_of_month}",
            )
        object.__setattr__(self, "amount", Decimal(str(self.amount)))


@dataclass
class ImportSummary:
    """Statistics reported back to the caller after an import."""

    accepted_count: int
    dates_affected: int
    excluded_count: int
    skipped_zero_count: int
    parse_skipped: Counter = field(default_factory=Counter)


@dataclass
class MonthSummary:
    """Planned versus actual figures for one month."""

    year: int
    month: int
    planned_income: Decimal
    actual_income: Decimal
    planned_expenses: Decimal
    actual_expenses: Decimal

    @property
    def net_position(self) -> Decimal:
        return self.actual_income - self.actual_expenses

    @property
    def variance(self) -> Decimal:
        return self.actual_income - self.planned_income


class CalendarItemType(Enum):
    """What a dated calendar item represents."""

    INCOME = "income"
    EXPENSE = "expense"
    REMINDER = "reminder"


@dataclass
class CalendarItem:
    """A one-off dated event, such as an expected payout or a bill due."""

    user_id: int
    title: str
    date: date
    type: CalendarItemType
    amount: Decimal | None = None
    description: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.type = CalendarItemType(self.type)
        if self.amount is not None:
            self.amount = Decimal(str(self.amount))


@dataclass
class TodoItem:
    """A free-text task on the user's list."""

    user_id: int
    text: str
    completed: bool = False
    id: int | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
