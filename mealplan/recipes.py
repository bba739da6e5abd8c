import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

from mealplan.shopping_list import Ingredient
from mealplan.storage import read_json, write_json_atomic

logger = logging.getLogger(__name__)

# Parsed recipes keyed by resolved path, invalidated when the file's mtime changes.
_cache: dict[str, tuple[float, list["Recipe"]]] = {}


class RecipeLoadError(Exception):
    """Raised when recipes cannot be loaded from file."""
    pass


class RecipeSaveError(Exception):
    """Raised when recipes cannot be saved to file."""
    pass


@dataclass
class Recipe:
    id: str
    title: str
    servings: int = 1
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    description: str = ""
    source_url: str | None = None
    tags: list[str] = field(default_factory=list)
    ingredients: list[dict[str, Any]] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)

    @property
    def total_time_minutes(self) -> int:
        return self.prep_time_minutes + self.cook_time_minutes

    @property
    def ingredient_list(self) -> list[Ingredient]:
        return [Ingredient.from_dict(i) for i in self.ingredients]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recipe":
        missing = [f for f in ("id", "title") if f not in data]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        ingredients = []
        for index, ingredient in enumerate(data.get("ingredients") or []):
            if not isinstance(ingredient, dict) or "item" not in ingredient:
                # Dropped on its own so the rest of the recipe stays usable
                logger.warning(
                    "Skipping malformed ingredient",
                    extra={"recipe_id": data["id"], "index": index},
                )
                continue
            ingredients.append(ingredient)

        return cls(
            id=data["id"],
            title=data["title"],
            servings=data.get("servings", 1),
            prep_time_minutes=data.get("prep_time_minutes", 0),
            cook_time_minutes=data.get("cook_time_minutes", 0),
            description=data.get("description", ""),
            source_url=data.get("source_url"),
            tags=data.get("tags", []),
            ingredients=ingredients,
            instructions=data.get("instructions", []),
        )


def load_recipes(file_path: Path | str) -> list[Recipe]:
    file_path = Path(file_path)

    if not file_path.exists():
        raise RecipeLoadError(f"Recipe file not found: {file_path}")

    cache_key = str(file_path.resolve())
    mtime = file_path.stat().st_mtime
    cached = _cache.get(cache_key)
    if cached is not None and cached[0] == mtime:
        return list(cached[1])

    try:
        data = read_json(file_path)
    except json.JSONDecodeError as e:
        raise RecipeLoadError(f"Invalid JSON in recipe file: {e}")

    if "recipes" not in data:
        raise RecipeLoadError("Recipe file must contain a 'recipes' key")

    try:
        recipes = [Recipe.from_dict(r) for r in data["recipes"]]
    except (ValueError, TypeError) as e:
        raise RecipeLoadError(f"Invalid recipe in {file_path}: {e}")

    _cache[cache_key] = (mtime, recipes)
    logger.debug("Recipes loaded", extra={"path": str(file_path), "recipe_count": len(recipes)})
    return list(recipes)


def save_recipes(file_path: Path | str, recipes: list[Recipe]) -> None:
    """Save recipes to JSON file with atomic write.

    Args:
        file_path: Path to the JSON file
        recipes: List of Recipe objects to save

    Raises:
        RecipeSaveError: If the file cannot be written
    """
    file_path = Path(file_path)
    data = {"recipes": [asdict(recipe) for recipe in recipes]}

    try:
        write_json_atomic(file_path, data, prefix=".recipes_tmp_")
    except OSError as e:
        raise RecipeSaveError(f"Failed to save recipes to {file_path}: {e}")

    _cache.pop(str(file_path.resolve()), None)


def find_recipe(recipes: list[Recipe], recipe_id: str) -> Recipe | None:
    for recipe in recipes:
        if recipe.id == recipe_id:
            return recipe
    return None


def update_recipe(recipes: list[Recipe], updated_recipe: Recipe) -> list[Recipe]:
    """Replace recipe in list by ID, return new list.

    Raises:
        ValueError: If recipe with given ID is not found
    """
    recipe_index = None
    for i, recipe in enumerate(recipes):
        if recipe.id == updated_recipe.id:
            recipe_index = i
            break

    if recipe_index is None:
        raise ValueError(f"Recipe with ID '{updated_recipe.id}' not found")

    new_recipes = recipes.copy()
    new_recipes[recipe_index] = updated_recipe
    return new_recipes
