"""
Keyword-based grocery aisle classification.

Rules are evaluated in a fixed priority order and the first match wins, so
"chicken broth" lands in meat and "cream cheese" in dairy. Anything that
matches nothing is a pantry item.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Valid categories, in the order the shopping list displays them.
ITEM_CATEGORIES: tuple[str, ...] = (
    "produce",
    "meat",
    "dairy",
    "pantry",
    "frozen",
    "bakery",
    "beverages",
    "other",
)

DEFAULT_CATEGORY = "pantry"

CATEGORY_LABELS: dict[str, str] = {
    "produce": "Produce",
    "meat": "Meat & Seafood",
    "dairy": "Dairy & Eggs",
    "pantry": "Pantry",
    "frozen": "Frozen",
    "bakery": "Bakery",
    "beverages": "Beverages",
    "other": "Other",
}

# Keywords are matched as substrings, so "berry" also covers "blueberry".
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("produce", (
        "vegetable", "fruit", "lettuce", "tomato", "onion", "garlic", "pepper",
        "carrot", "potato", "apple", "banana", "berry", "greens", "spinach",
        "kale", "celery", "cucumber", "zucchini", "squash", "broccoli",
        "cauliflower", "mushroom", "herb", "cilantro", "parsley", "basil",
    )),
    ("meat", (
        "chicken", "beef", "pork", "turkey", "fish", "salmon", "tuna", "shrimp",
        "meat", "steak", "bacon", "sausage",
    )),
    ("dairy", (
        "milk", "cheese", "yogurt", "butter", "cream", "sour cream",
        "cottage cheese", "parmesan", "mozzarella", "cheddar", "egg",
    )),
    ("frozen", ("frozen", "ice cream")),
    ("bakery", ("bread", "bun", "roll", "bagel", "tortilla", "pita", "croissant")),
    ("beverages", (
        "juice", "soda", "coffee", "tea", "water", "wine", "beer", "beverage", "drink",
    )),
)

_CATEGORY_PATTERNS: tuple[tuple[str, re.Pattern], ...] = tuple(
    (category, re.compile("|".join(re.escape(k) for k in keywords), re.IGNORECASE))
    for category, keywords in CATEGORY_KEYWORDS
)


def categorize_ingredient(raw: str) -> str:
    """Return the grocery category for a raw ingredient string.

    Uses the raw text rather than the normalized key so words like
    "frozen" can still steer the result. Falls back to DEFAULT_CATEGORY.
    """
    if not raw:
        return DEFAULT_CATEGORY

    lower = raw.lower()
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(lower):
            return category
    return DEFAULT_CATEGORY


def canonicalise_category(raw: str) -> str:
    """Return *raw* as a valid category name.

    Raises:
        ValueError: if *raw* is not one of ITEM_CATEGORIES
    """
    normalised = str(raw or "").strip().lower()
    if normalised not in ITEM_CATEGORIES:
        raise ValueError(
            f"Unknown category {raw!r}; expected one of: {', '.join(ITEM_CATEGORIES)}"
        )
    return normalised


def resolve_category(ingredient: str, category: str | None = None) -> str:
    """Category for a new shopping-list item.

    An explicit *category* is validated and used as given; otherwise the
    keyword rules decide. Manually added items go through here too, so they
    are categorised exactly like generated ones.
    """
    if category:
        return canonicalise_category(category)
    inferred = categorize_ingredient(ingredient)
    logger.debug("Inferred category", extra={"ingredient": ingredient, "category": inferred})
    return inferred
