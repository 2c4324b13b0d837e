"""
Gig Ledger - a daily cash-flow tracker for gig-economy drivers.

This package parses bank CSV exports, classifies each transaction as income,
expense or internal transfer, and folds the result into a daily ledger alongside recurring expenses,
calendar items and todos.
"""

from .aggregator import ImportAggregator, ImportBatch, merge_into_entry
from .classifier import TransactionClassifier
from .csv_parser import BankCSVParser
from .keywords import DEFAULT_KEYWORDS, KeywordGroup, KeywordTables
from .models import (
    CalendarItem,
    CalendarItemType,
    Classification,
    ClassifiedTransaction,
    DailyAggregate,
    DailyEntry,
    ImportSummary,
    MergeMode,
    ParsedTransaction,
    RecurringExpense,
    TodoItem,
    TransactionType,
)
from .output_formatter import LedgerCSVFormatter, SummaryFormatter
from .storage import InMemoryStore, JsonFileStore, LedgerStore
from .tracker import CashFlowTracker

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_KEYWORDS",
    "BankCSVParser",
    "CalendarItem",
    "CalendarItemType",
    "CashFlowTracker",
    "Classification",
    "ClassifiedTransaction",
    "DailyAggregate",
    "DailyEntry",
    "ImportAggregator",
    "ImportBatch",
    "ImportSummary",
    "InMemoryStore",
    "JsonFileStore",
    "KeywordGroup",
    "KeywordTables",
    "LedgerCSVFormatter",
    "LedgerStore",
    "MergeMode",
    "ParsedTransaction",
    "RecurringExpense",
    "SummaryFormatter",
    "TodoItem",
    "TransactionClassifier",
    "TransactionType",
    "merge_into_entry",
]
