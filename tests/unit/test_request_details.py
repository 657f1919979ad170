"""Unit tests for per-category request details."""

import pytest

from ngoconnect.core.exceptions import ValidationError
from ngoconnect.core.request_details import (
    ClothingDetails,
    FoodDetails,
    details_to_json,
    parse_details,
)
from ngoconnect.models.enums import RequestCategory


def test_food_details_parse():
    details = parse_details(
        RequestCategory.FOOD,
        {"food_type": "Cooked meals", "food_category": "Vegetarian", "approx_weight": 12.5},
    )
    assert isinstance(details, FoodDetails)
    assert details_to_json(details) == {
        "category": "food",
        "food_type": "Cooked meals",
        "food_category": "Vegetarian",
        "approx_weight": 12.5,
    }


def test_category_tag_comes_from_request():
    details = parse_details(
        RequestCategory.CLOTHING,
        {"clothing_type": "Jackets", "condition": "New", "season": "Winter"},
    )
    assert isinstance(details, ClothingDetails)


def test_missing_required_field_is_named():
    with pytest.raises(ValidationError) as exc_info:
        parse_details(RequestCategory.FOOD, {"food_category": "Vegetarian"})
    assert exc_info.value.field == "details.food_type"
    assert exc_info.value.status_code == 422


def test_fields_of_another_category_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_details(RequestCategory.MEDICAL, {"medical_type": "Insulin", "book_type": "Novel"})
    assert exc_info.value.field == "details.book_type"


def test_conflicting_tag_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_details(RequestCategory.OTHER, {"category": "food", "item_type": "Chairs"})
    assert exc_info.value.field == "details.category"


def test_non_positive_weight_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_details(
            RequestCategory.FOOD,
            {"food_type": "Rice", "food_category": "Grains", "approx_weight": 0},
        )
    assert exc_info.value.field == "details.approx_weight"
