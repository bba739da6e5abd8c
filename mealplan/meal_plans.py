import json
import logging
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date
from pathlib import Path
from typing import Any

from mealplan.recipes import Recipe
from mealplan.shopping_list import RecipeIngredientSource
from mealplan.storage import read_json, write_json_atomic

logger = logging.getLogger(__name__)

MEAL_TYPES: tuple[str, ...] = ("breakfast", "lunch", "dinner", "snack")


class MealPlanLoadError(Exception):
    """Raised when meal plans cannot be loaded from file."""
    pass


class MealPlanSaveError(Exception):
    """Raised when meal plans cannot be saved to file."""
    pass


def parse_date(value: str, field_name: str = "date") -> date:
    """Parse an ISO ``YYYY-MM-DD`` string, raising ValueError with the field name."""
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)")


@dataclass
class MealPlanItem:
    """A recipe scheduled into one date / meal-type slot."""
    date: str
    meal_type: str
    recipe_id: str | None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    servings: int = 1
    notes: str | None = None
    position: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MealPlanItem":
        if "date" not in data:
            raise ValueError("Meal plan item is missing 'date'")
        parse_date(data["date"])

        meal_type = data.get("meal_type")
        if meal_type not in MEAL_TYPES:
            raise ValueError(f"Invalid meal type: {meal_type!r}")

        servings = data.get("servings", 1)
        if not isinstance(servings, int) or not 1 <= servings <= 100:
            raise ValueError(f"Servings must be an integer between 1 and 100, got {servings!r}")

        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            date=data["date"],
            meal_type=meal_type,
            recipe_id=data.get("recipe_id"),
            servings=servings,
            notes=data.get("notes"),
            position=data.get("position", 0),
        )


@dataclass
class MealPlan:
    id: str
    name: str
    start_date: str
    end_date: str
    items: list[MealPlanItem] = field(default_factory=list)
    dietary_requirements: dict[str, list[str]] | None = None

    @property
    def scheduled_items(self) -> list[MealPlanItem]:
        """Items in calendar order: by date, then slot position."""
        return sorted(self.items, key=lambda i: (i.date, i.position))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MealPlan":
        missing = [f for f in ("id", "name", "start_date", "end_date") if f not in data]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        if not str(data["name"]).strip():
            raise ValueError("Meal plan name is required")

        start = parse_date(data["start_date"], "start_date")
        end = parse_date(data["end_date"], "end_date")
        if end < start:
            raise ValueError("End date must be on or after start date")

        return cls(
            id=data["id"],
            name=data["name"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            items=[MealPlanItem.from_dict(i) for i in data.get("items", [])],
            dietary_requirements=data.get("dietary_requirements"),
        )


def load_meal_plans(file_path: Path | str) -> list[MealPlan]:
    """Load meal plans; a missing file means no plans yet."""
    file_path = Path(file_path)

    if not file_path.exists():
        return []

    try:
        data = read_json(file_path)
    except json.JSONDecodeError as e:
        raise MealPlanLoadError(f"Invalid JSON in meal plan file: {e}")

    if "meal_plans" not in data:
        raise MealPlanLoadError("Meal plan file must contain a 'meal_plans' key")

    try:
        return [MealPlan.from_dict(p) for p in data["meal_plans"]]
    except ValueError as e:
        raise MealPlanLoadError(f"Invalid meal plan in {file_path}: {e}")


def save_meal_plans(file_path: Path | str, meal_plans: list[MealPlan]) -> None:
    """Save meal plans to JSON file with atomic write.

    Raises:
        MealPlanSaveError: If the file cannot be written
    """
    file_path = Path(file_path)
    data = {"meal_plans": [asdict(plan) for plan in meal_plans]}
    try:
        write_json_atomic(file_path, data, prefix=".meal_plans_tmp_")
    except OSError as e:
        raise MealPlanSaveError(f"Failed to save meal plans to {file_path}: {e}")


def find_meal_plan(meal_plans: list[MealPlan], plan_id: str) -> MealPlan | None:
    for plan in meal_plans:
        if plan.id == plan_id:
            return plan
    return None


def _sources_for_items(items: list[MealPlanItem], recipes: list[Recipe]) -> list[RecipeIngredientSource]:
    recipes_by_id = {recipe.id: recipe for recipe in recipes}
    sources = []
    for item in items:
        recipe = recipes_by_id.get(item.recipe_id) if item.recipe_id else None
        if recipe is None:
            if item.recipe_id:
                logger.warning(
                    "Scheduled recipe not found, skipping",
                    extra={"recipe_id": item.recipe_id, "date": item.date},
                )
            continue
        if not recipe.ingredients:
            continue
        sources.append(RecipeIngredientSource(
            recipe_id=recipe.id,
            date=item.date,
            ingredients=recipe.ingredient_list,
        ))
    return sources


def collect_ingredient_sources(meal_plan: MealPlan, recipes: list[Recipe]) -> list[RecipeIngredientSource]:
    """One ingredient source per scheduled recipe of *meal_plan*.

    A recipe scheduled on several dates yields one source per date. Slots
    without a recipe, or whose recipe is unknown or has no ingredients,
    are skipped.
    """
    return _sources_for_items(meal_plan.scheduled_items, recipes)


def collect_sources_for_date_range(
    meal_plans: list[MealPlan],
    recipes: list[Recipe],
    start_date: str,
    end_date: str,
) -> list[RecipeIngredientSource]:
    """Ingredient sources for every recipe scheduled between two dates (inclusive),
    across all meal plans.

    Raises:
        ValueError: If a date is malformed or end_date is before start_date
    """
    start = parse_date(start_date, "start_date")
    end = parse_date(end_date, "end_date")
    if end < start:
        raise ValueError("End date must be on or after start date")

    in_range = [
        item
        for plan in meal_plans
        for item in plan.items
        if start <= parse_date(item.date) <= end
    ]
    in_range.sort(key=lambda i: (i.date, i.position))
    return _sources_for_items(in_range, recipes)
