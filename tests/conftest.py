"""Pytest configuration and helper factories."""

from mealplan.meal_plans import MealPlan, MealPlanItem
from mealplan.recipes import Recipe
from mealplan.shopping_list import Ingredient, RecipeIngredientSource


def create_test_recipe(
    recipe_id: str,
    title: str,
    servings: int = 4,
    prep_time_minutes: int = 10,
    cook_time_minutes: int = 20,
    tags: list | None = None,
    ingredients: list | None = None,
    instructions: list | None = None,
) -> Recipe:
    """Helper to create a test Recipe."""
    return Recipe(
        id=recipe_id,
        title=title,
        servings=servings,
        prep_time_minutes=prep_time_minutes,
        cook_time_minutes=cook_time_minutes,
        tags=tags or [],
        ingredients=ingredients or [],
        instructions=instructions or [],
    )


def make_source(recipe_id: str, date: str | None, *ingredients: tuple) -> RecipeIngredientSource:
    """Helper to build an aggregation source from (item, amount, unit) tuples."""
    return RecipeIngredientSource(
        recipe_id=recipe_id,
        date=date,
        ingredients=[
            Ingredient(item=item, amount=amount, unit=unit)
            for item, amount, unit in ingredients
        ],
    )


def create_test_meal_plan(
    plan_id: str,
    name: str,
    schedule: list[tuple[str, str, str | None]],
    start_date: str = "2025-01-06",
    end_date: str = "2025-01-12",
) -> MealPlan:
    """Helper to create a MealPlan from (date, meal_type, recipe_id) tuples."""
    return MealPlan(
        id=plan_id,
        name=name,
        start_date=start_date,
        end_date=end_date,
        items=[
            MealPlanItem(id=f"{plan_id}-item-{i}", date=d, meal_type=meal_type, recipe_id=recipe_id, position=i)
            for i, (d, meal_type, recipe_id) in enumerate(schedule)
        ],
    )
