"""CRUD operations for users, contacts and phone numbers.

This module contains database interaction logic isolated from FastAPI
route handlers. Multi-statement writes run inside
:func:`~phonebook.database.transaction`, so a failure in any statement
leaves nothing behind.

At most one phone number per contact is primary. Writers that set the
flag lock the parent contact row, clear the flag on the siblings and
only then write the new primary; the partial unique index on
``phone_numbers`` backs this up at the storage level.
"""

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .auth import get_password_hash
from .database import transaction
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def create_user(
    db: Session, user_in: schemas.UserCreate, hashed_password: str
) -> models.User:
    """
    Create and persist a new user.

    Args:
        db (Session): SQLAlchemy database session.
        user_in (UserCreate): Incoming user data.
        hashed_password (str): Securely hashed password.

    Returns:
        User: Newly created user instance.
    """
    user = models.User(
        **user_in.model_dump(exclude={"password"}), password=hashed_password
    )
    with transaction(db, "register user"):
        db.add(user)
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def get_user(db: Session, user_id: int) -> models.User:
    """
    Retrieve a user by primary key.

    Raises:
        NotFoundError: If no user has this id.
    """
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_user(db: Session, user_id: int, changes: dict) -> models.User:
    """
    Apply a partial update to a user.

    Only keys present in ``changes`` are written; a new password is
    hashed before storage.

    Args:
        db (Session): Database session.
        user_id (int): User identifier.
        changes (dict): Fields supplied by the caller.

    Raises:
        ValidationError: If ``changes`` is empty.
        NotFoundError: If the user does not exist.

    Returns:
        User: Updated user.
    """
    if not changes:
        raise ValidationError("No valid fields to update")

    if "password" in changes:
        changes = {**changes, "password": get_password_hash(changes["password"])}

    with transaction(db, "update user"):
        user = get_user(db, user_id)
        for key, value in changes.items():
            setattr(user, key, value)
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> None:
    """
    Delete a user together with their contacts and phone numbers.

    Raises:
        NotFoundError: If the user does not exist; nothing is deleted.
    """
    contact_ids = select(models.Contact.id).where(models.Contact.user_id == user_id)
    with transaction(db, "delete user"):
        db.execute(
            delete(models.PhoneNumber)
            .where(models.PhoneNumber.contact_id.in_(contact_ids))
            .execution_options(synchronize_session=False)
        )
        db.execute(
            delete(models.Contact)
            .where(models.Contact.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(
            delete(models.User)
            .where(models.User.id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")
    logger.info("Deleted user %s", user_id)


def create_contact(db: Session, contact_in: schemas.ContactCreate) -> models.Contact:
    """
    Create a contact and its initial phone numbers in one transaction.

    The returned contact's ``phone_numbers`` are loaded from the store
    after commit.

    Args:
        db (Session): Database session.
        contact_in (ContactCreate): Contact data with nested phone numbers.

    Raises:
        NotFoundError: If the owning user does not exist.
        TransactionError: If any insert fails; nothing is persisted.

    Returns:
        Contact: Newly created contact.
    """
    with transaction(db, "create contact"):
        get_user(db, contact_in.user_id)
        contact = models.Contact(**contact_in.model_dump(exclude={"phone_numbers"}))
        db.add(contact)
        db.flush()
        for phone_in in contact_in.phone_numbers:
            db.add(models.PhoneNumber(contact_id=contact.id, **phone_in.model_dump()))
        db.flush()
    db.refresh(contact)
    logger.info(
        "Created contact %s with %d phone numbers",
        contact.id,
        len(contact_in.phone_numbers),
    )
    return contact


def get_contact(db: Session, contact_id: int) -> models.Contact:
    """
    Retrieve a single contact with its phone numbers.

    Raises:
        NotFoundError: If the contact does not exist.
    """
    contact = db.get(models.Contact, contact_id)
    if contact is None:
        raise NotFoundError("Contact not found")
    return contact


def get_contacts(
    db: Session, user_id: int, skip: int = 0, limit: int | None = None
) -> list[models.Contact]:
    """
    Retrieve the contacts of a user, emergency contacts first.

    Contacts are ordered by ``is_emergency`` descending, then by name.
    The user itself is not checked; an unknown id yields an empty list.

    Args:
        db (Session): Database session.
        user_id (int): Contact owner.
        skip (int): Number of records to skip.
        limit (int | None): Maximum number of records to return.

    Returns:
        list[Contact]: Contacts with their phone numbers loaded.
    """
    stmt = (
        select(models.Contact)
        .where(models.Contact.user_id == user_id)
        .order_by(models.Contact.is_emergency.desc(), models.Contact.name.asc())
        .options(selectinload(models.Contact.phone_numbers))
        .offset(skip)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt).all())


def update_contact(db: Session, contact_id: int, changes: dict) -> models.Contact:
    """
    Update mutable fields of a contact.

    Keys missing from ``changes`` keep their stored value.

    Raises:
        NotFoundError: If the contact does not exist.
    """
    with transaction(db, "update contact"):
        contact = get_contact(db, contact_id)
        for key, value in changes.items():
            setattr(contact, key, value)
        contact.updated_at = func.now()
    db.refresh(contact)
    return contact


def delete_contact(db: Session, contact_id: int) -> None:
    """
    Delete a contact and its phone numbers in one transaction.

    Raises:
        NotFoundError: If the contact does not exist; the phone number
            delete is rolled back.
    """
    with transaction(db, "delete contact"):
        db.execute(
            delete(models.PhoneNumber)
            .where(models.PhoneNumber.contact_id == contact_id)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(
            delete(models.Contact)
            .where(models.Contact.id == contact_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Contact not found")
    logger.info("Deleted contact %s", contact_id)


def _lock_contact(db: Session, contact_id: int) -> None:
    # Serialises primary-flag writers of one contact until commit
    locked = db.execute(
        select(models.Contact.id)
        .where(models.Contact.id == contact_id)
        .with_for_update()
    ).scalar_one_or_none()
    if locked is None:
        raise NotFoundError("Contact not found")


def _clear_primary(db: Session, contact_id: int, keep_id: int | None = None) -> None:
    stmt = update(models.PhoneNumber).where(
        models.PhoneNumber.contact_id == contact_id,
        models.PhoneNumber.is_primary.is_(True),
    )
    if keep_id is not None:
        stmt = stmt.where(models.PhoneNumber.id != keep_id)
    db.execute(
        stmt.values(is_primary=False).execution_options(synchronize_session="fetch")
    )


def create_phone_number(
    db: Session, phone_in: schemas.PhoneNumberCreate
) -> models.PhoneNumber:
    """
    Add a phone number to a contact.

    A new primary number takes the flag from the contact's current one.

    Args:
        db (Session): Database session.
        phone_in (PhoneNumberCreate): Phone number data.

    Raises:
        NotFoundError: If the contact does not exist.

    Returns:
        PhoneNumber: Newly created phone number.
    """
    with transaction(db, "create phone number"):
        _lock_contact(db, phone_in.contact_id)
        if phone_in.is_primary:
            _clear_primary(db, phone_in.contact_id)
        phone = models.PhoneNumber(**phone_in.model_dump())
        db.add(phone)
    db.refresh(phone)
    return phone


def get_phone_number(db: Session, phone_id: int) -> models.PhoneNumber:
    """
    Retrieve a phone number by id.

    Raises:
        NotFoundError: If the phone number does not exist.
    """
    phone = db.get(models.PhoneNumber, phone_id)
    if phone is None:
        raise NotFoundError("Phone number not found")
    return phone


def get_phone_numbers(db: Session, contact_id: int) -> list[models.PhoneNumber]:
    """Return a contact's phone numbers, primary first, then by type."""
    return list(
        db.scalars(
            select(models.PhoneNumber)
            .where(models.PhoneNumber.contact_id == contact_id)
            .order_by(
                models.PhoneNumber.is_primary.desc(),
                models.PhoneNumber.phone_type.asc(),
            )
        ).all()
    )


def update_phone_number(
    db: Session, phone_id: int, changes: dict
) -> models.PhoneNumber:
    """
    Apply a partial update to a phone number.

    When ``is_primary`` is set to ``True`` every other number of the same
    contact loses the flag before the update is written.

    Args:
        db (Session): Database session.
        phone_id (int): Phone number identifier.
        changes (dict): Fields supplied by the caller.

    Raises:
        NotFoundError: If the phone number does not exist.

    Returns:
        PhoneNumber: Updated phone number.
    """
    with transaction(db, "update phone number"):
        phone = get_phone_number(db, phone_id)
        if changes.get("is_primary") is True:
            _lock_contact(db, phone.contact_id)
            _clear_primary(db, phone.contact_id, keep_id=phone.id)
        for key, value in changes.items():
            setattr(phone, key, value)
    db.refresh(phone)
    return phone


def delete_phone_number(db: Session, phone_id: int) -> None:
    """
    Delete a phone number.

    Deleting the primary number leaves the contact without one.

    Raises:
        NotFoundError: If the phone number does not exist.
    """
    with transaction(db, "delete phone number"):
        result = db.execute(
            delete(models.PhoneNumber)
            .where(models.PhoneNumber.id == phone_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Phone number not found")
