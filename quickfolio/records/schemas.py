"""
QuickFolio Record Schemas — Pydantic request payload models for Files and Folios.

Create schemas require every mandatory text field as a non-empty string.
Update schemas make every field optional but apply the same per-field rules
to whatever is supplied; explicit ``null`` is rejected for mandatory fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from quickfolio.engine.errors import QuickFolioValidationError


def parse_iso_datetime(value: Any) -> datetime:
    """
    Parse an ISO-8601 datetime string (date AND time required).

    Naive values are taken as UTC; aware values are converted to UTC.
    """
    if not isinstance(value, str):
        raise ValueError("must be an ISO-8601 datetime string")
    text = value.strip()
    if len(text) <= 10 or ("T" not in text and " " not in text):
        raise ValueError("must be an ISO-8601 datetime string")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError("must be an ISO-8601 datetime string")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class RecordPayload(BaseModel):
    """Base for request payloads: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=False)

    # Fields that may be omitted on update but never set to null
    NON_NULLABLE: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_null_required(self):
        for name in self.NON_NULLABLE:
            if name in self.model_fields_set and getattr(self, name) is None:
                alias = type(self).model_fields[name].alias or name
                raise ValueError(f"{alias} cannot be null")
        return self

    def to_columns(self, field_map: Dict[str, str]) -> Dict[str, Any]:
        """Supplied fields only, keyed by model column attribute."""
        data = self.model_dump(by_alias=True, exclude_unset=True)
        return {field_map[k]: v for k, v in data.items() if k in field_map}


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

class FileCreate(RecordPayload):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    created_by: str = Field(alias="createdBy", min_length=1, max_length=200)
    folio_number: Optional[str] = Field(default=None, alias="folioNumber", min_length=1)


class FileUpdate(RecordPayload):
    NON_NULLABLE: ClassVar[Tuple[str, ...]] = ("name", "created_by")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    created_by: Optional[str] = Field(default=None, alias="createdBy", min_length=1, max_length=200)


# ---------------------------------------------------------------------------
# Folios
# ---------------------------------------------------------------------------

class FolioCreate(RecordPayload):
    item: str = Field(min_length=1, max_length=255)
    running_no: str = Field(alias="runningNo", min_length=1, max_length=100)
    description: Optional[str] = None
    drafted_by: str = Field(alias="draftedBy", min_length=1, max_length=200)
    letter_date: datetime = Field(alias="letterDate")
    file_id: Optional[str] = Field(default=None, alias="fileId", min_length=1)

    @field_validator("letter_date", mode="before")
    @classmethod
    def validate_letter_date(cls, v: Any) -> datetime:
        return parse_iso_datetime(v)


class FolioUpdate(RecordPayload):
    NON_NULLABLE: ClassVar[Tuple[str, ...]] = ("item", "running_no", "drafted_by", "letter_date")

    item: Optional[str] = Field(default=None, min_length=1, max_length=255)
    running_no: Optional[str] = Field(default=None, alias="runningNo", min_length=1, max_length=100)
    description: Optional[str] = None
    drafted_by: Optional[str] = Field(default=None, alias="draftedBy", min_length=1, max_length=200)
    letter_date: Optional[datetime] = Field(default=None, alias="letterDate")
    file_id: Optional[str] = Field(default=None, alias="fileId", min_length=1)

    @field_validator("letter_date", mode="before")
    @classmethod
    def validate_letter_date(cls, v: Any) -> Optional[datetime]:
        if v is None:
            return None
        return parse_iso_datetime(v)


# ---------------------------------------------------------------------------
# Validation entry point
# ---------------------------------------------------------------------------

def _error_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "path": [str(part) for part in err.get("loc", ())],
            "message": err.get("msg", ""),
            "code": err.get("type", ""),
        }
        for err in exc.errors()
    ]


def validate_payload(schema: Type[RecordPayload], body: Any) -> RecordPayload:
    """
    Validate a request body against a payload schema.

    Raises:
        QuickFolioValidationError: with field-level ``validation_errors``.
    """
    if not isinstance(body, dict):
        raise QuickFolioValidationError(
            "Validation failed",
            validation_errors=[{"path": [], "message": "Request body must be a JSON object", "code": "object_type"}],
        )
    try:
        return schema.model_validate(body)
    except ValidationError as e:
        raise QuickFolioValidationError(
            "Validation failed",
            validation_errors=_error_details(e),
            schema=schema.__name__,
        )
