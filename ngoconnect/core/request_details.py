"""Per-category details attached to a need-request.

Each category carries its own required attributes. The payload is a tagged
union on ``category`` so a request can only hold the fields of its own kind.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ngoconnect.core.exceptions import ValidationError
from ngoconnect.models.enums import RequestCategory

NonEmpty = Annotated[str, Field(min_length=1, max_length=100)]
OptionalText = Annotated[str | None, Field(default=None, max_length=500)]


class _Details(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class FoodDetails(_Details):
    category: Literal["food"] = "food"
    food_type: NonEmpty
    food_category: NonEmpty
    approx_weight: float | None = Field(None, gt=0)
    expiry_time: datetime | None = None


class ClothingDetails(_Details):
    category: Literal["clothing"] = "clothing"
    clothing_type: NonEmpty
    condition: NonEmpty
    season: NonEmpty


class MedicalDetails(_Details):
    category: Literal["medical"] = "medical"
    medical_type: NonEmpty
    expiry_date: date | None = None
    storage_requirements: OptionalText = None


class EducationDetails(_Details):
    category: Literal["education"] = "education"
    book_type: NonEmpty
    subject: OptionalText = None
    age_group: OptionalText = None


class OtherDetails(_Details):
    category: Literal["other"] = "other"
    item_type: NonEmpty
    specifications: OptionalText = None


RequestDetails = Annotated[
    Union[FoodDetails, ClothingDetails, MedicalDetails, EducationDetails, OtherDetails],
    Field(discriminator="category"),
]

_adapter: TypeAdapter[RequestDetails] = TypeAdapter(RequestDetails)


def parse_details(category: RequestCategory, payload: dict[str, Any] | None) -> RequestDetails:
    """Validate ``payload`` against the schema selected by ``category``.

    The category tag is taken from the request itself; a conflicting tag in the
    payload is rejected rather than silently overwritten.

    Raises:
        ValidationError: naming the first offending ``details.<field>``
    """
    data = dict(payload or {})
    tag = data.setdefault("category", category.value)
    if tag != category.value:
        raise ValidationError(
            "details.category",
            f"Details are for '{tag}' but the request category is '{category.value}'",
        )

    try:
        return _adapter.validate_python(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = [str(part) for part in first["loc"] if part != category.value]
        field = ".".join(["details", *loc]) if loc else "details"
        raise ValidationError(field, first["msg"]) from exc


def details_to_json(details: RequestDetails) -> dict[str, Any]:
    return details.model_dump(mode="json", exclude_none=True)
