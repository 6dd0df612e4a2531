"""Declarative form rule models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from medeasy_console.utils.http import PATH_ID_PLACEHOLDER

SubmitMode = Literal["body", "query"]
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

REGISTER_ROLE_FIELDS = "register-role-dependent-fields"
SALE_LINE_ITEMS = "sale-line-items"
SpecialCase = Literal["register-role-dependent-fields", "sale-line-items"]


class FormRuleError(Exception):
    """Raised when the form rule table cannot be built."""


def _ensure_list(v: Any) -> Any:
    """Convert None to empty list, pass through everything else."""
    if v is None:
        return []
    return v


class FormRule(BaseModel):
    """How one form's raw field values become a request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    path: str
    method: HttpMethod = "POST"
    mode: SubmitMode = "body"
    id_in_path: bool = False
    numeric_fields: frozenset[str] = Field(default_factory=frozenset)
    float_fields: frozenset[str] = Field(default_factory=frozenset)
    produces_auth: bool = False
    special_case: SpecialCase | None = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("numeric_fields", "float_fields", mode="before")
    @classmethod
    def _validate_field_sets(cls, v: Any) -> Any:
        return _ensure_list(v)

    @field_validator("path")
    @classmethod
    def _validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v

    @model_validator(mode="after")
    def _validate_combination(self) -> "FormRule":
        if self.id_in_path and PATH_ID_PLACEHOLDER not in self.path:
            raise ValueError(f"id_in_path requires a '{PATH_ID_PLACEHOLDER}' segment in path")
        if self.mode == "query":
            if self.numeric_fields or self.float_fields:
                raise ValueError("query-mode rules do not coerce fields")
            if self.special_case is not None:
                raise ValueError("query-mode rules cannot carry a special case")
            if self.produces_auth:
                raise ValueError("query-mode rules cannot produce auth")
        overlap = self.numeric_fields & self.float_fields
        if overlap:
            raise ValueError(f"fields listed as both numeric and float: {sorted(overlap)}")
        return self

    def describe(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["numeric_fields"] = sorted(self.numeric_fields)
        data["float_fields"] = sorted(self.float_fields)
        return data
