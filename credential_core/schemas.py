"""
Request Schemas
===============
Validation for signup, login and password-reset input.

Email addresses are checked with the same rules as ``EmailStr`` but the
caller's string is kept as typed. Lookup tokens and the stored ciphertext
are derived from exactly what the user entered.
"""

import re
from typing import Annotated, List

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    validate_email,
)

from .errors import InvalidArgument

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "Password must contain at least one special character"),
)


def _check_email(value: str) -> str:
    _, normalized = validate_email(value)
    # Reject display-name forms and anything normalisation changed beyond case
    if normalized.lower() != value.lower():
        raise ValueError("value is not a valid email address")
    return value


EmailAddress = Annotated[str, AfterValidator(_check_email)]


class SignupRequest(BaseModel):
    username: str = Field(min_length=3, max_length=20)
    email: EmailAddress
    phone: str = Field(pattern=r"^\d{10}$")
    password: str = Field(min_length=8)

    @field_validator("password")
    @classmethod
    def password_complexity(cls, value: str) -> str:
        for pattern, message in _PASSWORD_RULES:
            if not pattern.search(value):
                raise ValueError(message)
        return value


class LoginRequest(BaseModel):
    email: EmailAddress
    password: str = Field(min_length=1)


class PasswordResetRequest(BaseModel):
    password: str = Field(min_length=1)


def invalid_fields(error: ValidationError) -> List[str]:
    """Field names that failed validation. Input values are never included."""
    return sorted({str(err["loc"][0]) for err in error.errors() if err.get("loc")})


def parse(model: type, **data) -> BaseModel:
    """
    Validate ``data`` against ``model``.

    Raises:
        InvalidArgument: listing offending field names only
    """
    try:
        return model(**data)
    except ValidationError as e:
        fields = invalid_fields(e)
        raise InvalidArgument(f"Invalid fields: {', '.join(fields)}", details=fields) from None
