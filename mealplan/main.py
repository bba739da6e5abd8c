import logging
import threading

from flask import Flask, Response, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect

from mealplan import config
from mealplan.ingredient_categorizer import resolve_category
from mealplan.logging_config import configure_logging
from mealplan.meal_plans import (
    MealPlanLoadError,
    collect_ingredient_sources,
    collect_sources_for_date_range,
    find_meal_plan,
    load_meal_plans,
)
from mealplan.recipes import RecipeLoadError, load_recipes
from mealplan.shopping_list import ShoppingList, ShoppingListItem
from mealplan.shopping_lists import (
    ItemNotFoundError,
    NoRecipesError,
    ShoppingListLoadError,
    ShoppingListSaveError,
    add_item,
    create_shopping_list,
    find_shopping_list,
    generate_from_sources,
    load_shopping_lists,
    remove_item,
    save_shopping_lists,
    set_item_checked,
    update_shopping_list,
)

configure_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = config.SECRET_KEY
# The JSON API is exempted route by route; only form posts would carry a token.
csrf = CSRFProtect(app)
limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[],          # no global limit; apply per-route only
    storage_uri="memory://",
)

# Serialises load → modify → save of the shopping-list file across request threads.
_store_lock = threading.Lock()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _json_body() -> dict | None:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _with_category(raw_item: dict) -> dict:
    # Same rules as add_item: explicit categories are canonicalised, missing ones inferred
    if not isinstance(raw_item, dict):
        raise ValueError("Each item must be an object")
    category = resolve_category(str(raw_item.get("ingredient", "")), raw_item.get("category"))
    return {**raw_item, "category": category}


def _serialize_list(shopping_list: ShoppingList) -> dict:
    data = shopping_list.to_dict()
    data["checked_count"] = shopping_list.checked_count
    data["total_count"] = len(shopping_list.items)
    return data


def _not_found(list_id: str):
    return jsonify({
        "error": "Shopping list not found",
        "message": f"No shopping list found with ID '{list_id}'"
    }), 404


@app.errorhandler(ShoppingListLoadError)
@app.errorhandler(ShoppingListSaveError)
@app.errorhandler(MealPlanLoadError)
@app.errorhandler(RecipeLoadError)
def _storage_error(e):
    logger.exception("Storage error")
    return jsonify({"error": "Storage error", "message": str(e)}), 500


def _store_new_list(shopping_list: ShoppingList) -> None:
    with _store_lock:
        lists = load_shopping_lists(config.SHOPPING_LISTS_FILE)
        lists.append(shopping_list)
        save_shopping_lists(config.SHOPPING_LISTS_FILE, lists)


# ---------------------------------------------------------------------------
# Shopping lists
# ---------------------------------------------------------------------------

@app.route("/shopping-lists", methods=["GET"])
def list_shopping_lists():
    """All shopping lists, newest first."""
    lists = load_shopping_lists(config.SHOPPING_LISTS_FILE)
    lists.sort(key=lambda sl: sl.created_at or "", reverse=True)
    return jsonify({"shopping_lists": [_serialize_list(sl) for sl in lists]})


@app.route("/shopping-lists", methods=["POST"])
@csrf.exempt
def create_shopping_list_endpoint():
    """Create an empty (or pre-filled) manual shopping list."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON"}), 400

    try:
        items = [ShoppingListItem.from_dict(_with_category(i)) for i in data.get("items", [])]
        shopping_list = create_shopping_list(
            data.get("name"),
            items=items,
            meal_plan_id=data.get("meal_plan_id"),
        )
    except (ValueError, TypeError) as e:
        return jsonify({"error": "Validation failed", "message": str(e)}), 400

    _store_new_list(shopping_list)
    logger.info("Shopping list created", extra={"shopping_list_id": shopping_list.id})
    return jsonify({"success": True, "shopping_list": _serialize_list(shopping_list)}), 201


@app.route("/shopping-lists/generate", methods=["POST"])
@csrf.exempt
@limiter.limit(lambda: config.GENERATE_RATE_LIMIT)
def generate_shopping_list():
    """Aggregate every scheduled recipe of a meal plan into a new list."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON"}), 400

    meal_plan_id = data.get("meal_plan_id")
    if not meal_plan_id:
        return jsonify({"error": "Missing meal_plan_id"}), 400

    meal_plan = find_meal_plan(load_meal_plans(config.MEAL_PLANS_FILE), meal_plan_id)
    if meal_plan is None:
        return jsonify({
            "error": "Meal plan not found",
            "message": f"No meal plan found with ID '{meal_plan_id}'"
        }), 404

    sources = collect_ingredient_sources(meal_plan, load_recipes(config.RECIPES_FILE))
    try:
        shopping_list = generate_from_sources(
            f"{meal_plan.name} - Shopping List", sources, meal_plan_id=meal_plan.id
        )
    except NoRecipesError as e:
        return jsonify({"error": str(e)}), 400

    _store_new_list(shopping_list)
    return jsonify({"success": True, "shopping_list": _serialize_list(shopping_list)}), 201


@app.route("/shopping-lists/generate-range", methods=["POST"])
@csrf.exempt
@limiter.limit(lambda: config.GENERATE_RATE_LIMIT)
def generate_shopping_list_for_range():
    """Aggregate every recipe scheduled between two dates, across all plans."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON"}), 400

    start_date = data.get("start_date")
    end_date = data.get("end_date")
    if not start_date or not end_date:
        return jsonify({"error": "Both start_date and end_date are required"}), 400

    try:
        sources = collect_sources_for_date_range(
            load_meal_plans(config.MEAL_PLANS_FILE),
            load_recipes(config.RECIPES_FILE),
            start_date,
            end_date,
        )
        shopping_list = generate_from_sources(
            data.get("name") or f"Shopping List {start_date} to {end_date}", sources
        )
    except NoRecipesError:
        return jsonify({"error": "No recipes scheduled in this date range"}), 400
    except ValueError as e:
        return jsonify({"error": "Validation failed", "message": str(e)}), 400

    _store_new_list(shopping_list)
    return jsonify({"success": True, "shopping_list": _serialize_list(shopping_list)}), 201


@app.route("/shopping-lists/<list_id>", methods=["GET"])
def get_shopping_list(list_id: str):
    """A single list, plus titles of the recipes it was built from."""
    shopping_list = find_shopping_list(load_shopping_lists(config.SHOPPING_LISTS_FILE), list_id)
    if shopping_list is None:
        return _not_found(list_id)

    wanted = set(shopping_list.recipe_ids)
    recipe_map = {r.id: r.title for r in load_recipes(config.RECIPES_FILE) if r.id in wanted}

    data = _serialize_list(shopping_list)
    data["recipeMap"] = recipe_map
    return jsonify(data)


@app.route("/shopping-lists/<list_id>", methods=["PUT"])
@csrf.exempt
def update_shopping_list_endpoint(list_id: str):
    """Rename, change status, or replace the items of a list."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON"}), 400

    with _store_lock:
        lists = load_shopping_lists(config.SHOPPING_LISTS_FILE)
        shopping_list = find_shopping_list(lists, list_id)
        if shopping_list is None:
            return _not_found(list_id)

        try:
            items = None
            if data.get("items") is not None:
                items = [ShoppingListItem.from_dict(_with_category(i)) for i in data["items"]]
            update_shopping_list(
                shopping_list,
                name=data.get("name"),
                status=data.get("status"),
                items=items,
            )
        except (ValueError, TypeError) as e:
            return jsonify({"error": "Validation failed", "message": str(e)}), 400

        save_shopping_lists(config.SHOPPING_LISTS_FILE, lists)

    logger.info("Shopping list updated", extra={"shopping_list_id": list_id})
    return jsonify({"success": True, "shopping_list": _serialize_list(shopping_list)})


@app.route("/shopping-lists/<list_id>", methods=["DELETE"])
@csrf.exempt
def delete_shopping_list(list_id: str):
    with _store_lock:
        lists = load_shopping_lists(config.SHOPPING_LISTS_FILE)
        shopping_list = find_shopping_list(lists, list_id)
        if shopping_list is None:
            return _not_found(list_id)
        lists.remove(shopping_list)
        save_shopping_lists(config.SHOPPING_LISTS_FILE, lists)

    logger.info("Shopping list deleted", extra={"shopping_list_id": list_id})
    return jsonify({"success": True, "message": f"Deleted {shopping_list.name}"})


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

@app.route("/shopping-lists/<list_id>/items", methods=["POST"])
@csrf.exempt
def add_shopping_item(list_id: str):
    """Add a custom item to the shopping list."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON"}), 400

    with _store_lock:
        lists = load_shopping_lists(config.SHOPPING_LISTS_FILE)
        shopping_list = find_shopping_list(lists, list_id)
        if shopping_list is None:
            return _not_found(list_id)

        try:
            item = add_item(
                shopping_list,
                data.get("ingredient"),
                amount=data.get("amount"),
                unit=data.get("unit"),
                category=data.get("category"),
            )
        except ValueError as e:
            return jsonify({"error": "Validation failed", "message": str(e)}), 400

        save_shopping_lists(config.SHOPPING_LISTS_FILE, lists)

    return jsonify({
        "success": True,
        "message": f"Added {item.ingredient}",
        "item": item.to_dict(),
    })


@app.route("/shopping-lists/<list_id>/items/<item_id>", methods=["PATCH"])
@csrf.exempt
def update_item_checked(list_id: str, item_id: str):
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON"}), 400
    if not isinstance(data.get("checked"), bool):
        return jsonify({"error": "'checked' must be true or false"}), 400

    with _store_lock:
        lists = load_shopping_lists(config.SHOPPING_LISTS_FILE)
        shopping_list = find_shopping_list(lists, list_id)
        if shopping_list is None:
            return _not_found(list_id)

        try:
            item = set_item_checked(shopping_list, item_id, data["checked"])
        except ItemNotFoundError as e:
            return jsonify({"error": "Item not found", "message": str(e)}), 404

        save_shopping_lists(config.SHOPPING_LISTS_FILE, lists)

    return jsonify({"success": True, "item": item.to_dict()})


@app.route("/shopping-lists/<list_id>/items/<item_id>", methods=["DELETE"])
@csrf.exempt
def delete_shopping_item(list_id: str, item_id: str):
    """Delete an item from the shopping list."""
    with _store_lock:
        lists = load_shopping_lists(config.SHOPPING_LISTS_FILE)
        shopping_list = find_shopping_list(lists, list_id)
        if shopping_list is None:
            return _not_found(list_id)

        try:
            deleted_item = remove_item(shopping_list, item_id)
        except ItemNotFoundError as e:
            return jsonify({"error": "Item not found", "message": str(e)}), 404

        save_shopping_lists(config.SHOPPING_LISTS_FILE, lists)

    return jsonify({
        "success": True,
        "message": f"Deleted {deleted_item.ingredient}",
        "deleted_item": deleted_item.ingredient
    })


@app.route("/shopping-lists/<list_id>/markdown", methods=["GET"])
def export_markdown(list_id: str):
    """The list as a markdown checklist, for pasting into notes apps."""
    shopping_list = find_shopping_list(load_shopping_lists(config.SHOPPING_LISTS_FILE), list_id)
    if shopping_list is None:
        return _not_found(list_id)
    return Response(shopping_list.to_markdown(), mimetype="text/markdown")


if __name__ == "__main__":
    app.run(debug=True, port=5000)
