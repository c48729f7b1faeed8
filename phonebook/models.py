"""Database models for the Phonebook API.

This module defines SQLAlchemy ORM models used by the application.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.orm import relationship as orm_relationship

from .database import Base


class PhoneType(str, enum.Enum):
    """Kind of line a phone number reaches."""

    mobile = "mobile"
    home = "home"
    work = "work"


class User(Base):
    """
    SQLAlchemy model representing an application user.

    A user owns contacts; deleting the user deletes them too.
    The ``password`` column only ever holds a bcrypt hash.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    mac = Column(String(17), nullable=True)
    phone_number = Column(String(32), nullable=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    #: Contacts owned by the user
    contacts = orm_relationship(
        "Contact",
        back_populates="owner",
        passive_deletes=True,
    )


class Contact(Base):
    """
    SQLAlchemy model representing a contact entry.

    Each contact belongs to exactly one user and owns its phone numbers.
    """

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    is_emergency = Column(Boolean, default=False, nullable=False)
    relationship = Column(String(100), nullable=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    #: Identifier of the owning user
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    #: Reference to the owning User object
    owner = orm_relationship("User", back_populates="contacts")

    #: Phone numbers, primary first
    phone_numbers = orm_relationship(
        "PhoneNumber",
        back_populates="contact",
        order_by=lambda: (PhoneNumber.is_primary.desc(), PhoneNumber.phone_type),
        passive_deletes=True,
    )


class PhoneNumber(Base):
    """
    SQLAlchemy model representing one phone number of a contact.

    At most one row per contact may be primary; the partial unique index
    rejects a second one.
    """

    __tablename__ = "phone_numbers"
    __table_args__ = (
        CheckConstraint(
            "length(phone_number) > 0", name="ck_phone_numbers_phone_number"
        ),
        Index(
            "uq_phone_numbers_primary",
            "contact_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    phone_number = Column(String(50), nullable=False)
    # Stored as VARCHAR so ``ORDER BY phone_type`` is alphabetical everywhere
    phone_type = Column(
        Enum(PhoneType, name="phone_type", native_enum=False, length=10),
        default=PhoneType.mobile,
        nullable=False,
    )
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    contact_id = Column(
        Integer,
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    contact = orm_relationship("Contact", back_populates="phone_numbers")
