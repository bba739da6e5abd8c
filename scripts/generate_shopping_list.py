#!/usr/bin/env python3
"""
Generate a shopping list from the meal plans on disk and print it as markdown.

Usage:
    python generate_shopping_list.py --meal-plan week-1
    python generate_shopping_list.py --start 2025-01-06 --end 2025-01-12
    python generate_shopping_list.py --meal-plan week-1 --save
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path to import mealplan modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from mealplan import config
from mealplan.meal_plans import (
    MealPlanLoadError,
    collect_ingredient_sources,
    collect_sources_for_date_range,
    find_meal_plan,
    load_meal_plans,
)
from mealplan.recipes import RecipeLoadError, load_recipes
from mealplan.shopping_lists import (
    NoRecipesError,
    ShoppingListLoadError,
    ShoppingListSaveError,
    generate_from_sources,
    load_shopping_lists,
    save_shopping_lists,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a shopping list from scheduled recipes"
    )
    selection = parser.add_mutually_exclusive_group(required=True)
    selection.add_argument('--meal-plan', help="ID of the meal plan to shop for")
    selection.add_argument('--start', help="First date of the range (YYYY-MM-DD)")
    parser.add_argument('--end', help="Last date of the range (YYYY-MM-DD), required with --start")
    parser.add_argument('--name', help="Name for the generated list")
    parser.add_argument('--recipes', default=config.RECIPES_FILE, help="Recipes JSON file")
    parser.add_argument('--meal-plans', default=config.MEAL_PLANS_FILE, help="Meal plans JSON file")
    parser.add_argument(
        '--shopping-lists',
        default=config.SHOPPING_LISTS_FILE,
        help="Shopping lists JSON file (used with --save)",
    )
    parser.add_argument(
        '--save',
        action='store_true',
        help="Store the generated list alongside the existing ones",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.start and not args.end:
        parser.error("--end is required with --start")

    try:
        recipes = load_recipes(args.recipes)
        meal_plans = load_meal_plans(args.meal_plans)
    except (RecipeLoadError, MealPlanLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.meal_plan:
            plan = find_meal_plan(meal_plans, args.meal_plan)
            if plan is None:
                print(f"Error: meal plan '{args.meal_plan}' not found", file=sys.stderr)
                return 1
            sources = collect_ingredient_sources(plan, recipes)
            name = args.name or f"{plan.name} - Shopping List"
            shopping_list = generate_from_sources(name, sources, meal_plan_id=plan.id)
        else:
            sources = collect_sources_for_date_range(meal_plans, recipes, args.start, args.end)
            name = args.name or f"Shopping List {args.start} to {args.end}"
            shopping_list = generate_from_sources(name, sources)
    except (NoRecipesError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(shopping_list.to_markdown())

    if args.save:
        try:
            lists = load_shopping_lists(args.shopping_lists)
            lists.append(shopping_list)
            save_shopping_lists(args.shopping_lists, lists)
        except (ShoppingListLoadError, ShoppingListSaveError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"✅ Saved shopping list {shopping_list.id} to {args.shopping_lists}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
