"""
Rule-based income/expense classification of bank transactions.
"""

import logging
from decimal import Decimal

from .keywords import DEFAULT_KEYWORDS, KeywordGroup, KeywordTables
from .models import Classification, TransactionType

logger = logging.getLogger(__name__)

EXCLUDE_CATEGORY = "internal_transfer"


class TransactionClassifier:
    """Decides whether a transaction is income, an expense, or not real money."""

    def __init__(self, keywords: KeywordTables = DEFAULT_KEYWORDS):
        self.keywords = keywords

    def classify(
        self,
        description: str,
        amount: Decimal | None,
    ) -> Classification:
        """
        Classify a transaction from its description and signed amount.

        Internal transfers are excluded before the sign is looked at. Otherwise
        the sign decides income versus expense and the keyword groups pick the
        category. Zero or missing amounts fall back to keywords alone.

        Args:
            description: Free text from the bank export
            amount: Signed amount as exported, or None

        Returns:
            Classification with type, confidence and category
        """
        text = (description or "").lower().strip()

        if any(marker in text for marker in self.keywords.exclusion_markers):
            return Classification(TransactionType.EXCLUDE, 1.0, EXCLUDE_CATEGORY)

        if amount is not None and amount > 0:
            group = _first_match(self.keywords.income_groups, text)
            if group:
                return Classification(TransactionType.INCOME, 0.95, group.name)
            return Classification(TransactionType.INCOME, 0.85, "other")

        if amount is not None and amount < 0:
            group = _first_match(self.keywords.expense_groups, text)
            if group:
                return Classification(TransactionType.EXPENSE, 0.95, group.name)
            if any(word in text for word in self.keywords.expense_indicators):
                return Classification(TransactionType.EXPENSE, 0.85, "generic")
            return Classification(TransactionType.EXPENSE, 0.85, "other")

        group = _first_match(self.keywords.income_groups, text)
        if group:
            return Classification(TransactionType.INCOME, 0.7, group.name)
        group = _first_match(self.keywords.expense_groups, text)
        if group:
            return Classification(TransactionType.EXPENSE, 0.7, group.name)

        logger.debug(f"No keyword matched '{description}', defaulting to expense")
        return Classification(TransactionType.EXPENSE, 0.3, "unknown")

    @staticmethod
    def fix_amount(
        amount: Decimal | None,
        classification: Classification,
    ) -> Decimal | None:
        """Make the sign of the amount agree with the classified type."""
        if amount is None:
            return None
        if classification.type == TransactionType.EXPENSE and amount > 0:
            return -amount
        if classification.type == TransactionType.INCOME and amount < 0:
            return abs(amount)
        return amount

    def categorize_income(self, description: str) -> str:
        """Map an income description onto a work-platform bucket."""
        group = _first_match(self.keywords.income_platforms, (description or "").lower())
        return group.name if group else "other"


def _first_match(groups: tuple[KeywordGroup, ...], text: str) -> KeywordGroup | None:
    for group in groups:
        if group.matches(text):
            return group
    return None
