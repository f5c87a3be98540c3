"""Validated input models for category and goal mutations.

Consumers pass either an instance of one of these models or a plain dict;
services parse dicts with parse_input() so every failure surfaces as
errors.ValidationError rather than pydantic's own exception.
"""

from datetime import date
from decimal import Decimal
from typing import ClassVar, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from models.category import DEFAULT_COLOR

CategoryType = Literal["income", "expense", "transfer"]
GoalCategory = Literal["asset_growth", "savings", "debt_reduction", "expense_reduction"]
GoalPriority = Literal["low", "medium", "high"]
GoalStatus = Literal["active", "completed", "paused"]

ModelT = TypeVar("ModelT", bound=BaseModel)


class _UpdateModel(BaseModel):
    """Base for partial updates: only explicitly supplied fields are changes."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    # Fields that may be supplied but never cleared
    required_if_set: ClassVar[tuple] = ()

    @model_validator(mode="after")
    def reject_cleared_required_fields(self):
        for name in self.required_if_set:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    def changes(self) -> dict:
        """Return the supplied fields, excluding the record's identity."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in ("id", "organization_id")
        }


class CategoryCreate(BaseModel):
    """Input for creating a category."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    organization_id: int
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType
    parent_id: Optional[int] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=DEFAULT_COLOR, max_length=20)
    is_default: bool = False
    display_order: int = Field(default=0, ge=0)


class CategoryUpdate(_UpdateModel):
    """Input for updating a category.

    parent_id=None supplied explicitly moves the category to the root.
    """

    required_if_set = ("name", "type", "display_order", "is_active")

    id: int
    organization_id: int
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[CategoryType] = None
    parent_id: Optional[int] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)
    display_order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class GoalCreate(BaseModel):
    """Input for creating a financial goal."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    organization_id: int
    name: str = Field(..., min_length=1, max_length=200)
    category: GoalCategory = "asset_growth"
    target_amount: Decimal = Field(..., gt=0)
    target_date: date
    priority: GoalPriority = "medium"
    description: Optional[str] = Field(default=None, max_length=1000)


class GoalUpdate(_UpdateModel):
    """Input for updating a financial goal."""

    required_if_set = ("name", "category", "target_amount", "target_date", "priority", "status")

    id: int
    organization_id: int
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[GoalCategory] = None
    target_amount: Optional[Decimal] = Field(default=None, gt=0)
    target_date: Optional[date] = None
    priority: Optional[GoalPriority] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[GoalStatus] = None


def parse_input(model_cls: Type[ModelT], data: Union[ModelT, dict]) -> ModelT:
    """Validate raw input against an input model.

    Args:
        model_cls: The pydantic model to validate against.
        data: A model instance (returned unchanged) or a dict of fields.

    Returns:
        The validated model instance.

    Raises:
        ValidationError: If the input does not satisfy the model.
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid {model_cls.__name__}: {details}") from e
