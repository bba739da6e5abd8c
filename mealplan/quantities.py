"""
Combining free-form ingredient amounts for one shopping-list line.

Amounts stay strings end to end: recipes say things like "2", "1/2",
"3-4" or "a pinch". Only plain decimals with identical units are summed;
anything else turns the line into the VARIOUS_AMOUNTS marker, and once a
line holds the marker it keeps it for the rest of the run.
"""

import math
import re
from dataclasses import dataclass

VARIOUS_AMOUNTS = "Various amounts"

_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


@dataclass(frozen=True)
class MergedQuantity:
    amount: str | None = None
    unit: str | None = None


def parse_amount(text: str | None) -> float | None:
    """Parse *text* as a finite decimal number, or return None.

    Fractions ("1/2"), ranges ("3-4") and words ("a pinch") are not numbers
    here; exact fraction arithmetic is not attempted.
    """
    if text is None:
        return None
    stripped = str(text).strip()
    if not _DECIMAL_RE.match(stripped):
        return None
    value = float(stripped)
    if not math.isfinite(value):
        return None
    return value


def format_amount(value: float) -> str:
    """Render a summed amount: "3" rather than "3.0", "2.5" as is."""
    if float(value).is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


def _unit_key(unit: str | None) -> str | None:
    # None and "" both mean "no unit"
    if unit is None:
        return None
    return unit.strip() or None


def merge_quantities(existing: MergedQuantity, incoming: MergedQuantity) -> MergedQuantity:
    """Fold *incoming* into *existing* and return the new line quantity.

    Rules, in order:
    - no incoming amount: unchanged
    - existing is VARIOUS_AMOUNTS: unchanged
    - no existing amount: take the incoming amount and unit as they are
    - same unit and both amounts numeric: sum them, keep the unit
    - otherwise: VARIOUS_AMOUNTS with no unit
    """
    if not incoming.amount:
        return existing
    if existing.amount == VARIOUS_AMOUNTS:
        return existing
    if not existing.amount:
        return MergedQuantity(amount=incoming.amount, unit=incoming.unit)

    if _unit_key(existing.unit) == _unit_key(incoming.unit):
        existing_num = parse_amount(existing.amount)
        incoming_num = parse_amount(incoming.amount)
        if existing_num is not None and incoming_num is not None:
            return MergedQuantity(
                amount=format_amount(existing_num + incoming_num),
                unit=existing.unit,
            )

    return MergedQuantity(amount=VARIOUS_AMOUNTS, unit=None)
