"""
Persistence and manual edits for saved shopping lists.

Lists are stored whole in one JSON file. Generated lists come from
`aggregate_ingredients`. The edit helpers here (add, check, remove, rename)
change a `ShoppingList` in place. Callers then save the whole collection.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from mealplan import config
from mealplan.ingredient_categorizer import resolve_category
from mealplan.ingredient_normalizer import ingredient_key
from mealplan.quantities import MergedQuantity, merge_quantities
from mealplan.shopping_list import (
    SHOPPING_LIST_STATUSES,
    RecipeIngredientSource,
    ShoppingList,
    ShoppingListItem,
    aggregate_ingredients,
    sort_items,
)
from mealplan.storage import read_json, write_json_atomic

logger = logging.getLogger(__name__)


class ShoppingListLoadError(Exception):
    """Raised when shopping lists cannot be loaded from file."""
    pass


class ShoppingListSaveError(Exception):
    """Raised when shopping lists cannot be saved to file."""
    pass


class NoRecipesError(Exception):
    """Raised when a shopping list is requested for a plan with no recipes."""
    pass


class ItemNotFoundError(Exception):
    """Raised when an item id does not exist in the shopping list."""
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validate_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Shopping list name is required")
    if len(name) > config.SHOPPING_LIST_NAME_MAX_LENGTH:
        raise ValueError(
            f"Shopping list name must be at most {config.SHOPPING_LIST_NAME_MAX_LENGTH} characters"
        )
    return name


def load_shopping_lists(file_path: Path | str) -> list[ShoppingList]:
    """Load all shopping lists; a missing file means no lists yet."""
    file_path = Path(file_path)

    if not file_path.exists():
        return []

    try:
        data = read_json(file_path)
    except json.JSONDecodeError as e:
        raise ShoppingListLoadError(f"Invalid JSON in shopping list file: {e}")

    if "shopping_lists" not in data:
        raise ShoppingListLoadError("Shopping list file must contain a 'shopping_lists' key")

    try:
        return [ShoppingList.from_dict(sl) for sl in data["shopping_lists"]]
    except ValueError as e:
        raise ShoppingListLoadError(f"Invalid shopping list in {file_path}: {e}")


def save_shopping_lists(file_path: Path | str, shopping_lists: list[ShoppingList]) -> None:
    """Save shopping lists to JSON file with atomic write.

    Raises:
        ShoppingListSaveError: If the file cannot be written
    """
    file_path = Path(file_path)
    data = {"shopping_lists": [sl.to_dict() for sl in shopping_lists]}
    try:
        write_json_atomic(file_path, data, prefix=".shopping_lists_tmp_")
    except OSError as e:
        raise ShoppingListSaveError(f"Failed to save shopping lists to {file_path}: {e}")


def find_shopping_list(shopping_lists: list[ShoppingList], list_id: str) -> ShoppingList | None:
    for shopping_list in shopping_lists:
        if shopping_list.id == list_id:
            return shopping_list
    return None


def create_shopping_list(
    name: str,
    items: list[ShoppingListItem] | None = None,
    meal_plan_id: str | None = None,
) -> ShoppingList:
    now = _now()
    return ShoppingList(
        id=str(uuid.uuid4()),
        name=_validate_name(name),
        items=sort_items(list(items or [])),
        meal_plan_id=meal_plan_id,
        status="active",
        created_at=now,
        updated_at=now,
    )


def generate_from_sources(
    name: str,
    sources: list[RecipeIngredientSource],
    meal_plan_id: str | None = None,
) -> ShoppingList:
    """Build a new active shopping list from scheduled recipes.

    Raises:
        NoRecipesError: If *sources* is empty
    """
    if not sources:
        raise NoRecipesError("No recipes found in meal plan")

    shopping_list = create_shopping_list(name, aggregate_ingredients(sources), meal_plan_id)
    logger.info(
        "Shopping list generated",
        extra={
            "shopping_list_id": shopping_list.id,
            "meal_plan_id": meal_plan_id,
            "recipe_count": len(shopping_list.recipe_ids),
            "item_count": len(shopping_list.items),
        },
    )
    return shopping_list


def _find_item(shopping_list: ShoppingList, item_id: str) -> ShoppingListItem:
    for item in shopping_list.items:
        if item.id == item_id:
            return item
    raise ItemNotFoundError(f"Item '{item_id}' not found in shopping list '{shopping_list.id}'")


def add_item(
    shopping_list: ShoppingList,
    ingredient: str,
    amount: str | None = None,
    unit: str | None = None,
    category: str | None = None,
) -> ShoppingListItem:
    """Add a manually entered item and return the resulting line.

    If the name normalizes to the same key as an existing line, the amounts
    are merged into that line and it is unchecked again. Otherwise a new
    line is added, categorised like a generated one.

    Raises:
        ValueError: If the name is blank or the category is unknown
    """
    ingredient = (ingredient or "").strip()
    if not ingredient:
        raise ValueError("Ingredient name is required")
    amount = (amount or "").strip() or None
    unit = (unit or "").strip() or None
    resolved_category = resolve_category(ingredient, category)

    key = ingredient_key(ingredient)
    for existing in shopping_list.items:
        if ingredient_key(existing.ingredient) != key:
            continue
        merged = merge_quantities(existing.quantity, MergedQuantity(amount=amount, unit=unit))
        existing.amount = merged.amount
        existing.unit = merged.unit
        existing.checked = False
        shopping_list.updated_at = _now()
        logger.info(
            "Merged manual item into existing line",
            extra={"shopping_list_id": shopping_list.id, "item_id": existing.id},
        )
        return existing

    new_item = ShoppingListItem(
        id=str(uuid.uuid4()),
        ingredient=ingredient,
        amount=amount,
        unit=unit,
        category=resolved_category,
        checked=False,
    )
    shopping_list.items.append(new_item)
    sort_items(shopping_list.items)
    shopping_list.updated_at = _now()
    logger.info(
        "Added manual item",
        extra={"shopping_list_id": shopping_list.id, "item_id": new_item.id, "category": resolved_category},
    )
    return new_item


def set_item_checked(shopping_list: ShoppingList, item_id: str, checked: bool) -> ShoppingListItem:
    item = _find_item(shopping_list, item_id)
    item.checked = bool(checked)
    shopping_list.updated_at = _now()
    return item


def remove_item(shopping_list: ShoppingList, item_id: str) -> ShoppingListItem:
    item = _find_item(shopping_list, item_id)
    shopping_list.items.remove(item)
    shopping_list.updated_at = _now()
    return item


def update_shopping_list(
    shopping_list: ShoppingList,
    name: str | None = None,
    status: str | None = None,
    items: list[ShoppingListItem] | None = None,
) -> ShoppingList:
    """Apply a partial update. Fields left as None are unchanged.

    Raises:
        ValueError: If the name or status is invalid
    """
    if name is not None:
        shopping_list.name = _validate_name(name)
    if status is not None:
        if status not in SHOPPING_LIST_STATUSES:
            raise ValueError(
                f"Invalid status {status!r}; expected one of: {', '.join(SHOPPING_LIST_STATUSES)}"
            )
        shopping_list.status = status
    if items is not None:
        shopping_list.items = sort_items(list(items))
    shopping_list.updated_at = _now()
    return shopping_list
