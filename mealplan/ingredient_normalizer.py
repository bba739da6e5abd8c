"""
Canonicalise raw ingredient names into grouping keys for the shopping list.

"2 cloves garlic, minced", "minced garlic cloves" and "garlic clove" all
describe the same thing to a shopper. `normalize_ingredient_name` strips
preparation and qualifier words, cleans up punctuation and folds known
variants onto one canonical term so the aggregator can put them in one
bucket.
"""

import logging
import re

logger = logging.getLogger(__name__)

# How the ingredient is prepared; irrelevant when buying it.
PREPARATION_WORDS: tuple[str, ...] = (
    'chopped', 'minced', 'diced', 'sliced', 'crushed', 'grated', 'shredded',
    'julienned', 'cubed', 'halved', 'quartered', 'whole', 'ground', 'crumbled',
    'melted', 'softened', 'beaten', 'whisked', 'sifted', 'peeled', 'seeded',
    'trimmed', 'cleaned', 'rinsed', 'drained', 'thawed', 'cooked', 'uncooked',
    'raw', 'roasted', 'toasted', 'blanched',
)

# Variety / packaging qualifiers. "extra virgin" must come before "virgin".
QUALIFIER_WORDS: tuple[str, ...] = (
    'fresh', 'freshly', 'dried', 'frozen', 'canned', 'jarred', 'bottled',
    'organic', 'kosher', 'sea', 'fine', 'coarse', 'extra virgin', 'virgin',
    'light', 'dark', 'heavy', 'regular', 'low-fat', 'non-fat', 'whole',
    'skim', 'reduced-fat', 'unsalted', 'salted', 'sweetened', 'unsweetened',
)

# (variant, canonical) pairs, checked in order against the cleaned name.
# The first variant contained anywhere in the name replaces the whole name.
INGREDIENT_SYNONYMS: tuple[tuple[str, str], ...] = (
    ('garlic cloves', 'garlic'),
    ('cloves garlic', 'garlic'),
    ('clove garlic', 'garlic'),
    ('garlic clove', 'garlic'),
    ('clove', 'garlic'),
    ('cloves', 'garlic'),
    ('black pepper', 'pepper'),
    ('white pepper', 'pepper'),
    ('ground pepper', 'pepper'),
    ('parsley stems', 'parsley'),
    ('parsley sprigs', 'parsley'),
    ('parsley leaves', 'parsley'),
    ('sprig parsley', 'parsley'),
    ('sprigs parsley', 'parsley'),
    ('cilantro stems', 'cilantro'),
    ('cilantro leaves', 'cilantro'),
    ('basil leaves', 'basil'),
    ('bay leaves', 'bay leaf'),
    ('bay leaf', 'bay leaf'),
    ('onion', 'onion'),
    ('onions', 'onion'),
    ('tomato', 'tomato'),
    ('tomatoes', 'tomato'),
    ('celery stalks', 'celery'),
    ('celery stalk', 'celery'),
    ('stalk celery', 'celery'),
    ('stalks celery', 'celery'),
)


def _word_pattern(words: tuple[str, ...]) -> list[re.Pattern]:
    return [re.compile(r"\b" + re.escape(word) + r"\b", re.IGNORECASE) for word in words]


_PREPARATION_PATTERNS = _word_pattern(PREPARATION_WORDS)
_QUALIFIER_PATTERNS = _word_pattern(QUALIFIER_WORDS)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_ingredient_name(raw: str) -> str:
    """Return the comparison key for a raw ingredient name.

    Steps, in order:

    1. Lower-case and trim.
    2. Drop preparation words ("minced", "chopped", ...) as whole words.
    3. Drop qualifier words ("fresh", "extra virgin", ...) as whole words.
    4. Turn commas into spaces and collapse whitespace.
    5. Replace the whole name with the canonical term of the first synonym
       variant it contains ("2 cloves garlic" -> "garlic").

    Never raises. The result may be empty when every word was stripped
    (e.g. "fresh, chopped"); callers decide how to handle that.

    Examples:
        >>> normalize_ingredient_name("2 cloves garlic, minced")
        'garlic'
        >>> normalize_ingredient_name("Extra Virgin Olive Oil")
        'olive oil'
    """
    if not raw:
        return ""

    normalized = raw.lower().strip()

    for pattern in _PREPARATION_PATTERNS:
        normalized = pattern.sub("", normalized)
    for pattern in _QUALIFIER_PATTERNS:
        normalized = pattern.sub("", normalized)

    normalized = _WHITESPACE_RE.sub(" ", normalized.replace(",", " ")).strip()

    for variant, canonical in INGREDIENT_SYNONYMS:
        if variant in normalized:
            return canonical

    return normalized


def ingredient_key(raw: str) -> str:
    """Bucket key for *raw*: its normalized name, or the trimmed lower-cased
    raw text when normalization strips everything.

    Keeps e.g. "fresh" and "whole" from collapsing into one nameless bucket.
    """
    key = normalize_ingredient_name(raw)
    if key:
        return key
    fallback = (raw or "").strip().lower()
    if fallback:
        logger.debug("Ingredient name normalized to empty, using raw text", extra={"raw": raw})
    return fallback


def display_name(key: str) -> str:
    """Capitalise the first letter of a normalized key for display."""
    return key[:1].upper() + key[1:]
