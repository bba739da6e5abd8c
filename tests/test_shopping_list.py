import uuid

import pytest

from mealplan.quantities import VARIOUS_AMOUNTS
from mealplan.shopping_list import (
    Ingredient,
    RecipeBreakdownEntry,
    RecipeIngredientSource,
    ShoppingList,
    ShoppingListItem,
    aggregate_ingredients,
)
from tests.conftest import make_source


@pytest.fixture
def week_sources():
    return [
        make_source(
            "recipe-1", "2025-01-06",
            ("onion", "1", None),
            ("2 cloves garlic, minced", "3", "cloves"),
            ("pasta", "400", "g"),
        ),
        make_source(
            "recipe-2", "2025-01-07",
            ("onions", "2", None),
            ("rice", "300", "g"),
            ("chicken breast", "500", "g"),
        ),
        make_source(
            "recipe-3", "2025-01-08",
            ("garlic clove", "2", "cloves"),
            ("tomatoes", "4", None),
            ("sourdough bread", "1", "loaf"),
        ),
    ]


def _by_name(items, name):
    matches = [i for i in items if i.ingredient == name]
    assert len(matches) == 1, f"Expected exactly one '{name}' line, got {len(matches)}"
    return matches[0]


class TestIngredient:
    def test_from_dict_tolerates_missing_fields(self):
        ingredient = Ingredient.from_dict({"item": "salt"})
        assert ingredient.item == "salt"
        assert ingredient.amount == ""
        assert ingredient.unit is None

    def test_from_dict_renders_numeric_amounts(self):
        assert Ingredient.from_dict({"item": "eggs", "amount": 2}).amount == "2"
        assert Ingredient.from_dict({"item": "milk", "amount": 1.5}).amount == "1.5"


class TestAggregateIngredients:
    def test_empty_input_returns_empty_list(self):
        assert aggregate_ingredients([]) == []

    def test_source_without_ingredients_contributes_nothing(self):
        sources = [
            RecipeIngredientSource(recipe_id="r1", date="2025-01-06", ingredients=[]),
            make_source("r2", "2025-01-07", ("carrot", "2", None)),
        ]
        items = aggregate_ingredients(sources)
        assert [i.ingredient for i in items] == ["Carrot"]
        assert items[0].recipe_ids == ["r2"]

    def test_end_to_end_garlic_scenario(self):
        sources = [
            make_source("r1", "2025-01-06", ("2 cloves garlic, minced", "2", "cloves")),
            make_source("r2", "2025-01-07", ("garlic clove", "1", "cloves")),
        ]

        items = aggregate_ingredients(sources)

        assert len(items) == 1
        item = items[0]
        assert item.ingredient == "Garlic"
        assert item.amount == "3"
        assert item.unit == "cloves"
        assert item.category == "produce"
        assert item.checked is False
        assert item.recipe_ids == ["r1", "r2"]
        assert item.recipe_breakdown == [
            RecipeBreakdownEntry(recipe_id="r1", amount="2", unit="cloves", date="2025-01-06"),
            RecipeBreakdownEntry(recipe_id="r2", amount="1", unit="cloves", date="2025-01-07"),
        ]

    def test_variants_share_one_bucket(self, week_sources):
        items = aggregate_ingredients(week_sources)

        onion = _by_name(items, "Onion")
        assert onion.recipe_ids == ["recipe-1", "recipe-2"]
        assert onion.amount == "3"

        garlic = _by_name(items, "Garlic")
        assert garlic.recipe_ids == ["recipe-1", "recipe-3"]
        assert garlic.amount == "5"
        assert garlic.unit == "cloves"

    def test_one_item_per_normalized_key(self, week_sources):
        items = aggregate_ingredients(week_sources)
        names = [i.ingredient for i in items]
        assert len(names) == len(set(names))
        assert len(items) == 7

    def test_ids_are_unique_uuids(self, week_sources):
        items = aggregate_ingredients(week_sources)
        ids = [i.id for i in items]
        assert len(set(ids)) == len(ids)
        for item_id in ids:
            uuid.UUID(item_id)

    def test_sorted_by_category_then_name(self, week_sources):
        items = aggregate_ingredients(week_sources)
        keys = [(i.category, i.ingredient) for i in items]
        assert keys == sorted(keys)
        assert [i.ingredient for i in items] == [
            "Sourdough bread",
            "Chicken breast",
            "Pasta",
            "Rice",
            "Garlic",
            "Onion",
            "Tomato",
        ]

    def test_categories_sort_alphabetically(self):
        sources = [make_source(
            "r1", None,
            ("spinach", "1", None),
            ("bagel", "1", None),
            ("coffee", "1", None),
            ("steak", "1", None),
            ("cheddar", "1", None),
            ("flour", "1", None),
            ("frozen waffles", "1", None),
        )]
        categories = [i.category for i in aggregate_ingredients(sources)]
        assert categories == ["bakery", "beverages", "dairy", "frozen", "meat", "pantry", "produce"]

    def test_same_recipe_on_two_dates_keeps_both_mentions(self):
        sources = [
            make_source("r1", "2025-01-06", ("carrot", "2", None)),
            make_source("r1", "2025-01-08", ("carrot", "2", None)),
        ]

        item = aggregate_ingredients(sources)[0]

        assert item.recipe_ids == ["r1"]
        assert len(item.recipe_breakdown) == 2
        assert [e.date for e in item.recipe_breakdown] == ["2025-01-06", "2025-01-08"]
        assert item.amount == "4"

    def test_final_amount_independent_of_source_order(self):
        a = make_source("a", "2025-01-06", ("milk", "2", "cups"))
        b = make_source("b", "2025-01-07", ("milk", "1", "cups"))

        forward = aggregate_ingredients([a, b])[0]
        backward = aggregate_ingredients([b, a])[0]

        assert forward.amount == backward.amount == "3"
        assert forward.unit == backward.unit == "cups"
        assert [e.recipe_id for e in forward.recipe_breakdown] == ["a", "b"]
        assert [e.recipe_id for e in backward.recipe_breakdown] == ["b", "a"]

    def test_mismatched_units_poison_bucket_for_rest_of_run(self):
        sources = [
            make_source("r1", None, ("butter", "2", "cups")),
            make_source("r2", None, ("butter", "1", "tbsp")),
            make_source("r3", None, ("butter", "3", "cups")),
        ]

        item = aggregate_ingredients(sources)[0]

        assert item.amount == VARIOUS_AMOUNTS
        assert item.unit is None
        assert [e.amount for e in item.recipe_breakdown] == ["2", "1", "3"]

    def test_fraction_amounts_become_various_amounts(self):
        sources = [
            make_source("r1", None, ("sugar", "1/2", "cup")),
            make_source("r2", None, ("sugar", "1", "cup")),
        ]
        item = aggregate_ingredients(sources)[0]
        assert item.amount == VARIOUS_AMOUNTS

    def test_first_mention_without_amount_adopts_later_amount(self):
        sources = [
            make_source("r1", None, ("salt", "", None)),
            make_source("r2", None, ("salt", "1", "tsp")),
        ]
        item = aggregate_ingredients(sources)[0]
        assert item.amount == "1"
        assert item.unit == "tsp"

    def test_no_amounts_anywhere_leaves_amount_empty(self):
        sources = [
            make_source("r1", None, ("salt", "", None)),
            make_source("r2", None, ("salt", "", None)),
        ]
        item = aggregate_ingredients(sources)[0]
        assert item.amount == ""

    def test_category_uses_raw_text(self):
        # "frozen" is stripped from the key but still picks the aisle
        sources = [make_source("r1", None, ("frozen corn", "1", "bag"))]
        item = aggregate_ingredients(sources)[0]
        assert item.ingredient == "Corn"
        assert item.category == "frozen"

    def test_blank_item_is_skipped_not_fatal(self):
        sources = [make_source("r1", None, ("   ", "1", None), ("carrot", "1", None))]
        items = aggregate_ingredients(sources)
        assert [i.ingredient for i in items] == ["Carrot"]

    def test_emptied_names_fall_back_to_raw_text(self):
        sources = [make_source("r1", None, ("Fresh", "1", None), ("Whole", "2", None))]
        names = sorted(i.ingredient for i in aggregate_ingredients(sources))
        assert names == ["Fresh", "Whole"]

    def test_breakdown_always_non_empty(self, week_sources):
        for item in aggregate_ingredients(week_sources):
            assert len(item.recipe_breakdown) >= 1

    def test_calls_are_independent(self, week_sources):
        first = aggregate_ingredients(week_sources)
        second = aggregate_ingredients(week_sources)
        assert [i.amount for i in first] == [i.amount for i in second]
        assert {i.id for i in first}.isdisjoint({i.id for i in second})


class TestShoppingListItemSerialisation:
    def test_to_dict_uses_wire_names(self):
        item = ShoppingListItem(
            id="i1",
            ingredient="Garlic",
            amount="3",
            unit="cloves",
            category="produce",
            recipe_ids=["r1"],
            recipe_breakdown=[RecipeBreakdownEntry("r1", "3", "cloves", "2025-01-06")],
        )
        assert item.to_dict() == {
            "id": "i1",
            "ingredient": "Garlic",
            "amount": "3",
            "unit": "cloves",
            "checked": False,
            "category": "produce",
            "recipeIds": ["r1"],
            "recipeBreakdown": [
                {"recipeId": "r1", "amount": "3", "unit": "cloves", "date": "2025-01-06"}
            ],
        }

    def test_to_dict_omits_absent_unit(self):
        item = ShoppingListItem(id="i1", ingredient="Butter", amount=VARIOUS_AMOUNTS,
                                unit=None, category="dairy")
        data = item.to_dict()
        assert "unit" not in data
        assert data["amount"] == VARIOUS_AMOUNTS

    def test_from_dict_rejects_unknown_category(self):
        with pytest.raises(ValueError):
            ShoppingListItem.from_dict({"id": "i1", "ingredient": "x", "category": "snacks"})

    def test_from_dict_rejects_blank_ingredient(self):
        with pytest.raises(ValueError):
            ShoppingListItem.from_dict({"id": "i1", "ingredient": " ", "category": "other"})

    @pytest.mark.parametrize("breakdown", [[{"amount": "2"}], [{"recipeId": ""}], ["r1"], "r1"])
    def test_from_dict_rejects_malformed_breakdown(self, breakdown):
        with pytest.raises(ValueError):
            ShoppingListItem.from_dict({
                "id": "i1", "ingredient": "Milk", "category": "dairy", "recipeBreakdown": breakdown,
            })

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValueError, match="must be an object"):
            ShoppingListItem.from_dict("milk")

    def test_breakdown_entry_requires_recipe_id(self):
        with pytest.raises(ValueError, match="recipeId"):
            RecipeBreakdownEntry.from_dict({"amount": "1"})

    def test_from_dict_reads_stored_item(self):
        item = ShoppingListItem.from_dict({
            "id": "i1",
            "ingredient": "Milk",
            "amount": "2",
            "checked": True,
            "category": "dairy",
            "recipeIds": ["r1"],
            "recipeBreakdown": [{"recipeId": "r1", "amount": "2"}],
        })
        assert item.checked is True
        assert item.unit is None
        assert item.recipe_breakdown[0].date is None


class TestShoppingList:
    def _make_list(self):
        return ShoppingList(
            id="sl-1",
            name="Week 1 - Shopping List",
            items=[
                ShoppingListItem(id="1", ingredient="Bagel", amount="6", unit=None, category="bakery"),
                ShoppingListItem(id="2", ingredient="Milk", amount="2", unit="l", category="dairy",
                                 checked=True),
                ShoppingListItem(id="3", ingredient="Garlic", amount="3", unit="cloves",
                                 category="produce"),
                ShoppingListItem(id="4", ingredient="Salt", amount="", unit=None, category="pantry"),
            ],
        )

    def test_items_by_category_in_display_order(self):
        grouped = self._make_list().items_by_category
        assert list(grouped) == ["produce", "dairy", "pantry", "bakery"]
        assert sum(len(v) for v in grouped.values()) == 4

    def test_checked_count(self):
        assert self._make_list().checked_count == 1

    def test_to_markdown(self):
        assert self._make_list().to_markdown() == "\n".join([
            "# Week 1 - Shopping List",
            "",
            "## Produce",
            "",
            "- [ ] 3 cloves Garlic",
            "",
            "## Dairy & Eggs",
            "",
            "- [x] 2 l Milk",
            "",
            "## Pantry",
            "",
            "- [ ] Salt",
            "",
            "## Bakery",
            "",
            "- [ ] 6 Bagel",
            "",
        ])

    def test_round_trips_through_dict(self):
        original = self._make_list()
        restored = ShoppingList.from_dict(original.to_dict())
        assert restored == original

    def test_from_dict_rejects_unknown_status(self):
        data = self._make_list().to_dict()
        data["status"] = "deleted"
        with pytest.raises(ValueError):
            ShoppingList.from_dict(data)
