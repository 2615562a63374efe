# Overview: Static vocabularies: item categories, ledger/count types, roles, location terminology.

from __future__ import annotations


CATEGORIES = ("ACM", "SwissPearl", "Trespa", "Extrusions", "Tools", "Hardware", "Other")
DEFAULT_CATEGORY = "Other"

# Spreadsheet keywords -> canonical category. Anything else is "Other".
CATEGORY_KEYWORDS = {
    "acm": "ACM",
    "swiss pearl": "SwissPearl",
    "swisspearl": "SwissPearl",
    "swiss": "SwissPearl",
    "trespa": "Trespa",
    "extrusion": "Extrusions",
    "extrusions": "Extrusions",
    "profile": "Extrusions",
    "profiles": "Extrusions",
    "tool": "Tools",
    "tools": "Tools",
    "hardware": "Hardware",
    "fastener": "Hardware",
    "fasteners": "Hardware",
}

# Transaction types
TXN_PULL = "pull"
TXN_RETURN = "return"
TXN_ADJUSTMENT = "adjustment"
TXN_COUNT = "count"
TXN_TRANSFER = "transfer"
TRANSACTION_TYPES = (TXN_PULL, TXN_RETURN, TXN_ADJUSTMENT, TXN_COUNT, TXN_TRANSFER)

# Count types
COUNT_TYPES = ("quarterly", "daily", "spot")

# Count session status
SESSION_IN_PROGRESS = "in_progress"
SESSION_COMPLETED = "completed"

# User roles
ROLE_ADMIN = "admin"
ROLE_COUNTER = "counter"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_COUNTER, ROLE_USER)


def normalize_category(value) -> str:
    """Map free-text spreadsheet categories onto the fixed enum."""
    if value is None:
        return DEFAULT_CATEGORY
    text = str(value).strip()
    if text in CATEGORIES:
        return text
    return CATEGORY_KEYWORDS.get(text.lower(), DEFAULT_CATEGORY)


_LOCATION_TERMS = {
    "Extrusions": "rack",
    "ACM": "row",
    "SwissPearl": "tent",
    "Trespa": "tent",
    "Hardware": "rivet room",
}

_LOCATION_PLACEHOLDERS = {
    "Extrusions": "e.g., Rack 3, Rack A",
    "ACM": "e.g., Row 1, Row B",
    "SwissPearl": "e.g., Tent 1, Tent A",
    "Trespa": "e.g., Tent 1, Tent A",
    "Hardware": "e.g., Rivet Room Shelf 1",
}


def location_term(category: str) -> str:
    return _LOCATION_TERMS.get(category, "location")


def location_term_capitalized(category: str) -> str:
    term = location_term(category)
    return term[:1].upper() + term[1:]


def location_placeholder(category: str) -> str:
    return _LOCATION_PLACEHOLDERS.get(category, "e.g., Warehouse A, Shelf 3")


def location_terminology(category: str) -> dict:
    return {
        "category": category,
        "term": location_term(category),
        "label": location_term_capitalized(category),
        "placeholder": location_placeholder(category),
    }
