"""
Shopping-list data model and the ingredient aggregator.

Recipes scheduled in a meal plan arrive as `RecipeIngredientSource`s.
`aggregate_ingredients` folds their ingredients into one `ShoppingListItem`
per normalized name, keeping a breakdown of which recipe asked for how much
and on which date. `ShoppingList` is the saved, editable list; its
`to_dict` and `from_dict` use the camelCase item shape that clients send.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from mealplan.ingredient_categorizer import CATEGORY_LABELS, ITEM_CATEGORIES, categorize_ingredient
from mealplan.ingredient_normalizer import display_name, ingredient_key
from mealplan.quantities import MergedQuantity, format_amount, merge_quantities

logger = logging.getLogger(__name__)

SHOPPING_LIST_STATUSES: tuple[str, ...] = ("active", "completed", "archived")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return format_amount(value)
    return str(value)


@dataclass
class Ingredient:
    """One parsed ingredient line of a recipe."""
    item: str
    amount: str = ""
    unit: str | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ingredient":
        return cls(
            item=_optional_str(data.get("item")) or "",
            amount=_optional_str(data.get("amount")) or "",
            unit=_optional_str(data.get("unit")),
            notes=_optional_str(data.get("notes")),
        )


@dataclass
class RecipeIngredientSource:
    """A recipe scheduled on one date, with its ingredients."""
    recipe_id: str
    date: str | None
    ingredients: list[Ingredient] = field(default_factory=list)


@dataclass
class RecipeBreakdownEntry:
    recipe_id: str
    amount: str | None = None
    unit: str | None = None
    date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"recipeId": self.recipe_id}
        if self.amount is not None:
            data["amount"] = self.amount
        if self.unit is not None:
            data["unit"] = self.unit
        if self.date is not None:
            data["date"] = self.date
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecipeBreakdownEntry":
        if not isinstance(data, dict):
            raise ValueError("Each recipe breakdown entry must be an object")
        if not data.get("recipeId"):
            raise ValueError("Recipe breakdown entry is missing 'recipeId'")
        return cls(
            recipe_id=str(data["recipeId"]),
            amount=_optional_str(data.get("amount")),
            unit=_optional_str(data.get("unit")),
            date=_optional_str(data.get("date")),
        )


@dataclass
class ShoppingListItem:
    id: str
    ingredient: str
    amount: str | None
    unit: str | None
    category: str
    checked: bool = False
    recipe_ids: list[str] = field(default_factory=list)
    recipe_breakdown: list[RecipeBreakdownEntry] = field(default_factory=list)

    @property
    def quantity(self) -> MergedQuantity:
        return MergedQuantity(amount=self.amount, unit=self.unit)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the stored/JSON shape. Absent amount/unit are omitted."""
        data: dict[str, Any] = {"id": self.id, "ingredient": self.ingredient}
        if self.amount is not None:
            data["amount"] = self.amount
        if self.unit is not None:
            data["unit"] = self.unit
        data["checked"] = self.checked
        data["category"] = self.category
        data["recipeIds"] = list(self.recipe_ids)
        data["recipeBreakdown"] = [entry.to_dict() for entry in self.recipe_breakdown]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShoppingListItem":
        if not isinstance(data, dict):
            raise ValueError("Each item must be an object")
        missing = [f for f in ("id", "ingredient", "category") if f not in data]
        if missing:
            raise ValueError(f"Missing required item fields: {', '.join(missing)}")
        if not str(data["ingredient"]).strip():
            raise ValueError("Ingredient name is required")
        if data["category"] not in ITEM_CATEGORIES:
            raise ValueError(f"Invalid item category: {data['category']!r}")
        for list_field in ("recipeIds", "recipeBreakdown"):
            if not isinstance(data.get(list_field) or [], list):
                raise ValueError(f"'{list_field}' must be a list")
        return cls(
            id=str(data["id"]),
            ingredient=str(data["ingredient"]),
            amount=_optional_str(data.get("amount")),
            unit=_optional_str(data.get("unit")),
            category=data["category"],
            checked=bool(data.get("checked", False)),
            recipe_ids=[str(r) for r in data.get("recipeIds") or []],
            recipe_breakdown=[
                RecipeBreakdownEntry.from_dict(entry)
                for entry in data.get("recipeBreakdown") or []
            ],
        )


@dataclass
class ShoppingList:
    id: str
    name: str
    items: list[ShoppingListItem] = field(default_factory=list)
    meal_plan_id: str | None = None
    status: str = "active"
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def items_by_category(self) -> dict[str, list[ShoppingListItem]]:
        """Group items by category, in display order. Empty categories are left out."""
        grouped = defaultdict(list)
        for item in self.items:
            grouped[item.category].append(item)
        return {category: grouped[category] for category in ITEM_CATEGORIES if grouped.get(category)}

    @property
    def checked_count(self) -> int:
        return sum(1 for item in self.items if item.checked)

    @property
    def recipe_ids(self) -> list[str]:
        """Every recipe referenced by any item, first-seen order."""
        seen: dict[str, None] = {}
        for item in self.items:
            for recipe_id in item.recipe_ids:
                seen.setdefault(recipe_id, None)
        return list(seen)

    def to_markdown(self) -> str:
        """Render as a markdown checklist grouped under category headings."""
        lines = [f"# {self.name}", ""]
        for category, items in self.items_by_category.items():
            lines.append(f"## {CATEGORY_LABELS[category]}")
            lines.append("")
            for item in items:
                checkbox = "[x]" if item.checked else "[ ]"
                if item.amount and item.unit:
                    amount = f"{item.amount} {item.unit}"
                else:
                    amount = item.amount or ""
                lines.append(" ".join(part for part in (f"- {checkbox}", amount, item.ingredient) if part))
            lines.append("")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "meal_plan_id": self.meal_plan_id,
            "status": self.status,
            "items": [item.to_dict() for item in self.items],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShoppingList":
        missing = [f for f in ("id", "name") if f not in data]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        status = data.get("status") or "active"
        if status not in SHOPPING_LIST_STATUSES:
            raise ValueError(f"Invalid shopping list status: {status!r}")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            items=[ShoppingListItem.from_dict(i) for i in data.get("items") or []],
            meal_plan_id=data.get("meal_plan_id"),
            status=status,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


def sort_items(items: list[ShoppingListItem]) -> list[ShoppingListItem]:
    """Sort by category name, then display name (plain string order)."""
    items.sort(key=lambda x: (x.category, x.ingredient))
    return items


def aggregate_ingredients(sources: list[RecipeIngredientSource]) -> list[ShoppingListItem]:
    """Merge the ingredients of every scheduled recipe into shopping-list items.

    Ingredient names are normalized into bucket keys, so "garlic cloves" and
    "minced garlic" end up on one line. Within a bucket, amounts are summed
    when their units agree and both are plain numbers; otherwise the line
    reads "Various amounts". Every mention is kept in the item's
    recipe_breakdown, in input order, including repeats of the same recipe
    on different dates.

    Ingredients with a blank name are skipped instead of being filed under
    an empty key as an uncategorised pantry line. The result is sorted by
    (category, ingredient).
    """
    logger.debug("Aggregating ingredients", extra={"source_count": len(sources)})
    buckets: dict[str, ShoppingListItem] = {}
    mention_count = 0

    for source in sources:
        for ingredient in source.ingredients or []:
            key = ingredient_key(ingredient.item)
            if not key:
                logger.debug("Skipping ingredient with blank name", extra={"recipe_id": source.recipe_id})
                continue
            mention_count += 1

            entry = RecipeBreakdownEntry(
                recipe_id=source.recipe_id,
                amount=ingredient.amount,
                unit=ingredient.unit,
                date=source.date,
            )
            existing = buckets.get(key)

            if existing is None:
                buckets[key] = ShoppingListItem(
                    id=str(uuid.uuid4()),
                    ingredient=display_name(key),
                    amount=ingredient.amount,
                    unit=ingredient.unit,
                    category=categorize_ingredient(ingredient.item),
                    checked=False,
                    recipe_ids=[source.recipe_id],
                    recipe_breakdown=[entry],
                )
                continue

            existing.recipe_breakdown.append(entry)
            if source.recipe_id not in existing.recipe_ids:
                existing.recipe_ids.append(source.recipe_id)

            merged = merge_quantities(
                existing.quantity,
                MergedQuantity(amount=ingredient.amount, unit=ingredient.unit),
            )
            existing.amount = merged.amount
            existing.unit = merged.unit

    items = sort_items(list(buckets.values()))
    logger.info(
        "Ingredients aggregated",
        extra={"mention_count": mention_count, "item_count": len(items)},
    )
    return items
