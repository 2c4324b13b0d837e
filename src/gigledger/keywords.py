"""
Keyword tables driving transaction classification.

Tables are ordered: groups are checked in declaration order and the first
matching group wins, so the order in a JSON override file matters.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class FileLoadingError(Exception):
    """Exception raised when a keyword file cannot be loaded."""


class FileSavingError(Exception):
    """Exception raised when a keyword file cannot be saved."""


class KeywordConfigError(Exception):
    """Exception raised when a keyword file has an invalid structure."""


@dataclass(frozen=True)
class KeywordGroup:
    """A named, ordered list of substrings."""

    name: str
    keywords: tuple[str, ...]

    def matches(self, text: str) -> bool:
        """Return True if any keyword occurs in the lower-cased text."""
        return any(keyword in text for keyword in self.keywords)


@dataclass(frozen=True)
class KeywordTables:
    """All static configuration used by the classifier."""

    exclusion_markers: tuple[str, ...]
    income_groups: tuple[KeywordGroup, ...]
    expense_groups: tuple[KeywordGroup, ...]
    expense_indicators: tuple[str, ...]
    income_platforms: tuple[KeywordGroup, ...]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KeywordTables":
        """Build tables from a JSON-compatible mapping."""
        try:
            return cls(
                exclusion_markers=_lower_all(data["exclusion_markers"]),
                income_groups=_groups(data["income_groups"]),
                expense_groups=_groups(data["expense_groups"]),
                expense_indicators=_lower_all(data["expense_indicators"]),
                income_platforms=_groups(data["income_platforms"]),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise KeywordConfigError(f"Invalid keyword configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "exclusion_markers": list(self.exclusion_markers),
            "income_groups": {g.name: list(g.keywords) for g in self.income_groups},
            "expense_groups": {g.name: list(g.keywords) for g in self.expense_groups},
            "expense_indicators": list(self.expense_indicators),
            "income_platforms": {
                g.name: list(g.keywords) for g in self.income_platforms
            },
        }


def _lower_all(values: list[str]) -> tuple[str, ...]:
    if isinstance(values, str):
        raise TypeError("expected a list of strings, got a single string")
    return tuple(str(v).lower() for v in values)


def _groups(data: dict[str, list[str]]) -> tuple[KeywordGroup, ...]:
    return tuple(
        KeywordGroup(name=name, keywords=_lower_all(keywords))
        for name, keywords in data.items()
    )


DEFAULT_KEYWORDS = KeywordTables.from_dict(
    {
        "exclusion_markers": [
            "olowogboye",
            "olu olowogboye",
            "o a olowogboye",
            "oluwaseun",
            "wsx",
            "pot",
            "monzo pot",
            "transfer to",
            "transfer from",
            "internal transfer",
            "account transfer",
        ],
        "income_groups": {
            "rideshare": [
                "uber",
                "bolt",
                "freenow",
                "free now",
                "minicab",
                "ridde",
                "citywide",
            ],
            "horizon_cars": ["horizon", "buraqq", "horizon cars"],
            "salary": ["salary", "wage", "payroll", "hmrc refund"],
            "refunds": ["refund", "reimbursement", "cashback"],
            "transfers": ["bank transfer", "faster payment"],
        },
        "expense_groups": {
            "fuel": [
                "shell",
                "bp",
                "esso",
                "texaco",
                "jet",
                "gulf",
                "total",
                "petrol",
                "diesel",
                "fuel",
                "gas station",
            ],
            "parking": ["parking", "park", "ncp", "q-park", "apcoa", "parkopedia"],
            "transport": [
                "tfl",
                "transport for london",
                "oyster",
                "congestion",
                "ulez",
                "dart charge",
                "toll",
            ],
            "car_expenses": [
                "mot",
                "insurance",
                "car wash",
                "valeting",
                "tyres",
                "kwik fit",
                "halfords",
                "garage",
                "repair",
                "service",
            ],
            "groceries": [
                "tesco",
                "sainsbury",
                "asda",
                "morrisons",
                "waitrose",
                "lidl",
                "aldi",
                "marks & spencer",
                "m&s",
                "co-op",
                "iceland",
            ],
            "restaurants": [
                "restaurant",
                "cafe",
                "coffee",
                "starbucks",
                "costa",
                "nero",
                "pret",
                "mcdonald",
                "kfc",
                "burger king",
                "nando",
                "pizza",
                "takeaway",
                "deliveroo",
                "uber eats",
                "just eat",
            ],
            "bills": [
                "rent",
                "council tax",
                "water",
                "electric",
                "gas",
                "broadband",
                "phone",
                "mobile",
                "vodafone",
                "ee",
                "o2",
                "three",
                "virgin",
                "bt",
                "sky",
            ],
            "subscriptions": [
                "netflix",
                "spotify",
                "amazon prime",
                "apple",
                "google",
                "microsoft",
                "adobe",
                "gym",
                "membership",
            ],
            "shopping": [
                "amazon",
                "ebay",
                "argos",
                "currys",
                "john lewis",
                "next",
                "zara",
                "h&m",
                "primark",
                "sports direct",
            ],
            "personal": [
                "barber",
                "haircut",
                "salon",
                "pharmacy",
                "boots",
                "superdrug",
                "dentist",
                "doctor",
                "hospital",
            ],
            "generic": [
                "payment",
                "purchase",
                "withdrawal",
                "atm",
                "cash",
                "direct debit",
                "standing order",
            ],
        },
        "expense_indicators": [
            "ltd",
            "limited",
            "store",
            "shop",
            "market",
            "service",
            "bill",
            "payment",
        ],
        "income_platforms": {
            "uber": ["uber"],
            "bolt": ["bolt"],
            "freenow": ["freenow", "free now"],
            "horizoncars": ["horizon", "buraqq"],
            "other": ["minicab", "ridde", "citywide"],
        },
    },
)


def load_keywords(file_path: Path) -> KeywordTables:
    """Load keyword tables from a JSON file."""
    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in keyword file {file_path}: {e}")
        raise KeywordConfigError(f"Invalid JSON in keyword file {file_path}: {e}") from e
    except OSError as e:
        logger.error(f"Failed to load keywords from {file_path}: {e}")
        raise FileLoadingError(
            f"Failed to load keywords from {file_path}: {e}",
        ) from e

    tables = KeywordTables.from_dict(data)
    logger.info(
        f"Loaded {len(tables.income_groups)} income and "
        f"{len(tables.expense_groups)} expense keyword groups from {file_path}",
    )
    return tables


def save_keywords(tables: KeywordTables, file_path: Path) -> None:
    """Save keyword tables to a JSON file."""
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(tables.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Saved keyword tables to {file_path}")
    except OSError as e:
        logger.error(f"Failed to save keywords to {file_path}: {e}")
        raise FileSavingError(f"Failed to save keywords to {file_path}: {e}") from e
