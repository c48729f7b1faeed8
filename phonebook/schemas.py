import re
from datetime import datetime
from typing import Annotated, List, Optional

import phonenumbers
from pydantic import (
    AnyUrl,
    BaseModel,
    Field,
    StringConstraints,
    TypeAdapter,
    field_validator,
)

from .core import get_settings
from .models import PhoneType

MAX_ID = 2**31 - 1

RecordId = Annotated[int, Field(ge=1, le=MAX_ID)]

# Limits mirror the column sizes in models.py
Name = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
]
PhoneNumberStr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)
]
RelationshipStr = Annotated[
    str, StringConstraints(strip_whitespace=True, max_length=100)
]
ImageStr = Annotated[
    str, StringConstraints(strip_whitespace=True, max_length=500)
]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]

MAC_ADDRESS_RE = re.compile(
    r"^(?:[0-9A-Fa-f]{2}([:-]))(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$"
    r"|^[0-9A-Fa-f]{12}$"
)

_url_adapter = TypeAdapter(AnyUrl)


def _reject_null(value):
    if value is None:
        raise ValueError("may not be null")
    return value


class PhoneNumberBase(BaseModel):
    """Shared fields for phone number schemas."""

    phone_number: PhoneNumberStr
    phone_type: PhoneType = PhoneType.mobile
    is_primary: bool = False


class PhoneNumberIn(PhoneNumberBase):
    """Phone number supplied together with a new contact.

    An explicit ``null`` type or primary flag falls back to the default.
    """

    @field_validator("phone_type", "is_primary", mode="before")
    @classmethod
    def null_as_default(cls, value, info):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value


class PhoneNumberCreate(PhoneNumberBase):
    """Schema for adding a phone number to an existing contact."""

    contact_id: RecordId


class PhoneNumberUpdate(BaseModel):
    """Schema for updating a phone number (all fields optional)."""

    phone_number: Optional[PhoneNumberStr] = None
    phone_type: Optional[PhoneType] = None
    is_primary: Optional[bool] = None

    @field_validator("phone_number", "phone_type", "is_primary", mode="before")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class PhoneNumberOut(PhoneNumberBase):
    """Schema for returning phone number with IDs."""

    id: int
    contact_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContactBase(BaseModel):
    """Shared fields for contact schemas."""

    name: Name
    is_emergency: bool = False
    relationship: Optional[RelationshipStr] = None
    image: Optional[ImageStr] = None


class ContactCreate(ContactBase):
    """Schema for creating a contact, optionally with its phone numbers."""

    user_id: RecordId
    phone_numbers: List[PhoneNumberIn] = []

    @field_validator("phone_numbers")
    @classmethod
    def single_primary(cls, value: List[PhoneNumberIn]) -> List[PhoneNumberIn]:
        if sum(1 for phone in value if phone.is_primary) > 1:
            raise ValueError("only one phone number can be primary")
        return value


class ContactUpdate(BaseModel):
    """Schema for updating contact (all fields optional).

    Omitted fields keep their stored value; ``relationship`` and
    ``image`` can be cleared by sending ``null``.
    """

    name: Optional[Name] = None
    is_emergency: Optional[bool] = None
    relationship: Optional[RelationshipStr] = None
    image: Optional[ImageStr] = None

    @field_validator("name", "is_emergency", mode="before")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class ContactOut(ContactBase):
    """Schema for returning contact with ID and phone numbers."""

    id: int
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    phone_numbers: List[PhoneNumberOut] = []

    class Config:
        from_attributes = True


class UserFields(BaseModel):
    """Format rules shared by user creation and update."""

    age: Optional[int] = Field(None, ge=1)
    mac: Optional[TrimmedStr] = None
    phone_number: Optional[TrimmedStr] = None
    image: Optional[ImageStr] = None

    @field_validator("mac")
    @classmethod
    def valid_mac(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not MAC_ADDRESS_RE.match(value):
            raise ValueError("invalid MAC address")
        return value

    @field_validator("phone_number")
    @classmethod
    def valid_phone_number(cls, value: Optional[str]) -> Optional[str]:
        """Validate with ``phonenumbers`` and store the E.164 form."""
        if value is None:
            return value
        try:
            parsed = phonenumbers.parse(value, get_settings().DEFAULT_PHONE_REGION)
        except phonenumbers.NumberParseException:
            raise ValueError("invalid phone number")
        if not phonenumbers.is_valid_number(parsed):
            raise ValueError("invalid phone number")
        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

    @field_validator("image")
    @classmethod
    def valid_image_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                _url_adapter.validate_python(value)
            except ValueError:
                raise ValueError("invalid URL")
        return value


class UserCreate(UserFields):
    """Payload for registering a new user."""

    name: Name
    password: str = Field(min_length=6)


class UserUpdate(UserFields):
    """Payload for a partial user update."""

    name: Optional[Name] = None
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("name", "password", mode="before")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class UserOut(BaseModel):
    """Response schema for user data; never includes the password."""

    id: int
    name: str
    age: Optional[int] = None
    mac: Optional[str] = None
    phone_number: Optional[str] = None
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserRegistered(BaseModel):
    """Registration response: the new user and a bearer token."""

    user: UserOut
    token: str
    token_type: str = "bearer"
