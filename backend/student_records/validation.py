"""
Student payload schemas and validation.

Payloads use the external camelCase field names (firstName, enrollmentDate,
...). The pydantic models keep snake_case attributes with camelCase aliases.
Validation is purely structural: there are no cross-field rules.
"""

from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional

from dateutil import parser as date_parser
from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, StrictInt,
    StringConstraints, field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from student_records.errors import ValidationError

EMAIL_MAX_LENGTH = 255


def _check_email(value: str) -> str:
    # The address is stored exactly as submitted; the normalized form
    # email_validator computes is only used to decide validity.
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email address: {e}") from e
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"Email must be at most {EMAIL_MAX_LENGTH} characters")
    return value


def _parse_enrollment_date(value: Any):
    """Accept any parseable date or date/time and keep only the date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        # "2024/09/01", "September 1, 2024", RFC 2822 and friends.
        # Ambiguous numeric forms are read month first.
        try:
            return date_parser.parse(text).date()
        except (ValueError, OverflowError):
            pass
    raise ValueError("Invalid date format, expected a date such as YYYY-MM-DD")


NameStr = Annotated[str, StringConstraints(min_length=1, max_length=100)]
PhoneStr = Annotated[str, StringConstraints(min_length=10, max_length=20, pattern=r"^[0-9 ()+\-]+$")]
EmailField = Annotated[str, AfterValidator(_check_email)]
EnrollmentDate = Annotated[date, BeforeValidator(_parse_enrollment_date)]
GraduationYear = Annotated[StrictInt, Field(ge=2000, le=2100)]
StudentStatus = Literal["active", "inactive", "graduated", "suspended"]


class StudentCreate(BaseModel):
    """Payload for creating a student. phone and graduationYear are optional."""

    model_config = ConfigDict(alias_generator=to_camel)

    first_name: NameStr
    last_name: NameStr
    email: EmailField
    phone: Optional[PhoneStr] = None
    enrollment_date: EnrollmentDate
    major: NameStr
    status: StudentStatus
    graduation_year: Optional[GraduationYear] = None


class StudentUpdate(BaseModel):
    """
    Partial update payload; only the supplied fields are checked.

    phone and graduationYear may be set to null to clear them, every other
    field must be a value when present.
    """

    model_config = ConfigDict(alias_generator=to_camel)

    first_name: Optional[NameStr] = None
    last_name: Optional[NameStr] = None
    email: Optional[EmailField] = None
    phone: Optional[PhoneStr] = None
    enrollment_date: Optional[EnrollmentDate] = None
    major: Optional[NameStr] = None
    status: Optional[StudentStatus] = None
    graduation_year: Optional[GraduationYear] = None

    @field_validator("first_name", "last_name", "email", "enrollment_date", "major", "status")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("Field may not be null")
        return value


class StudentRecord(BaseModel):
    """A stored student as returned by the query layer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    enrollment_date: date
    major: str
    status: str
    graduation_year: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def violations_from(exc: PydanticValidationError) -> list:
    """Flatten a pydantic error into [{"field", "message"}] dicts."""
    violations = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        message = error["msg"]
        if error["type"] == "value_error" and "error" in error.get("ctx", {}):
            message = str(error["ctx"]["error"])
        violations.append({"field": field, "message": message})
    return violations


def _validate(model, payload):
    if not isinstance(payload, dict):
        raise ValidationError([{"field": "body", "message": "Expected a JSON object"}])
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(violations_from(e)) from e


def validate_create(payload) -> StudentCreate:
    """
    Validate a create payload.

    Raises:
        ValidationError: listing every violated field
    """
    return _validate(StudentCreate, payload)


def validate_partial_update(payload) -> StudentUpdate:
    """
    Validate a partial update payload. An empty object is accepted here;
    the query layer rejects it with NoFieldsToUpdate.

    Raises:
        ValidationError: listing every violated field
    """
    return _validate(StudentUpdate, payload)
