"""
Folds an import batch into classified log rows and per-day totals.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from .classifier import TransactionClassifier
from .models import (
    EXPENSE_CATEGORY,
    INCOME_BUCKETS,
    ClassifiedTransaction,
    DailyAggregate,
    DailyEntry,
    MergeMode,
    ParsedTransaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportBatch:
    """Everything computed from one import call, before persistence."""

    transactions: list[ClassifiedTransaction] = field(default_factory=list)
    daily: dict[date, DailyAggregate] = field(default_factory=dict)
    excluded_count: int = 0
    skipped_zero_count: int = 0


class ImportAggregator:
    """Classifies a batch of parsed transactions and sums them per day."""

    def __init__(self, classifier: TransactionClassifier | None = None):
        self.classifier = classifier or TransactionClassifier()

    def aggregate(
        self,
        transactions: list[ParsedTransaction],
        source: str | None = None,
    ) -> ImportBatch:
        """
        Classify, sign-correct and aggregate a batch.

        Args:
            transactions: Parsed transactions in input order
            source: Batch tag stored on every kept row. Defaults to the
                source of the first input row.

        Returns:
            ImportBatch with kept rows, per-date aggregates and drop counts
        """
        if source is None and transactions:
            source = transactions[0].source

        batch = ImportBatch()
        for transaction in transactions:
            classification = self.classifier.classify(
                transaction.description,
                transaction.amount,
            )
            if classification.type == TransactionType.EXCLUDE:
                logger.debug(f"Excluding internal transfer '{transaction.description}'")
                batch.excluded_count += 1
                continue

            amount = self.classifier.fix_amount(transaction.amount, classification)
            if amount is None or amount == 0:
                batch.skipped_zero_count += 1
                continue

            if classification.type == TransactionType.INCOME:
                category = self.classifier.categorize_income(transaction.description)
            else:
                category = EXPENSE_CATEGORY

            kept = ClassifiedTransaction(
                date=transaction.date,
                description=transaction.description,
                amount=amount,
                category=category,
                source=source,
            )
            batch.transactions.append(kept)

            aggregate = batch.daily.setdefault(
                kept.date,
                DailyAggregate(date=kept.date),
            )
            if kept.is_income:
                aggregate.add_income(kept.category, kept.amount)
            else:
                aggregate.add_expense(kept.amount)

        logger.info(
            f"Aggregated {len(batch.transactions)} transactions over "
            f"{len(batch.daily)} days ({batch.excluded_count} excluded, "
            f"{batch.skipped_zero_count} zero)",
        )
        return batch


def merge_into_entry(
    aggregate: DailyAggregate,
    existing: DailyEntry | None,
    user_id: int,
    mode: MergeMode = MergeMode.ACCUMULATE,
) -> DailyEntry:
    """
    Apply one day's aggregate to the stored ledger entry for that day.

    OVERWRITE replaces every bucket with the batch sums. ACCUMULATE adds the
    batch sums to whatever is already recorded. Notes are always kept.
    """
    entry = DailyEntry(
        user_id=user_id,
        date=aggregate.date,
        notes=existing.notes if existing else None,
    )
    for bucket in (*INCOME_BUCKETS, "expenses"):
        value = getattr(aggregate, bucket)
        if mode == MergeMode.ACCUMULATE and existing is not None:
            value += getattr(existing, bucket)
        setattr(entry, bucket, value)
    entry.recompute_balance()
    return entry
