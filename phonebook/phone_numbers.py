"""Phone number routes for the Phonebook API."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .database import get_db
from .responses import api_response

router = APIRouter(prefix="/phone-numbers", tags=["phone numbers"])


@router.post("", status_code=status.HTTP_201_CREATED)
def add_phone_number(
    phone_in: schemas.PhoneNumberCreate, db: Session = Depends(get_db)
):
    """
    Add a phone number to a contact.

    A primary number replaces the contact's previous primary.

    Raises:
        NotFoundError: If the contact does not exist.
    """
    phone = crud.create_phone_number(db, phone_in)
    return api_response(
        status.HTTP_201_CREATED,
        schemas.PhoneNumberOut.model_validate(phone),
        "Phone number added successfully",
    )


@router.get("")
def read_phone_numbers(
    phone_id: int | None = Query(None, alias="id", ge=1, le=schemas.MAX_ID),
    contact_id: int | None = Query(None, ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    """Retrieve one phone number by ``id`` or all numbers of ``contact_id``."""
    if phone_id is not None:
        phone = crud.get_phone_number(db, phone_id)
        return api_response(
            status.HTTP_200_OK, schemas.PhoneNumberOut.model_validate(phone)
        )
    if contact_id is not None:
        phones = crud.get_phone_numbers(db, contact_id)
        return api_response(
            status.HTTP_200_OK,
            [schemas.PhoneNumberOut.model_validate(p) for p in phones],
        )
    return api_response(
        status.HTTP_400_BAD_REQUEST, message="Must provide either id or contact_id"
    )


@router.put("")
def update_phone_number(
    changes: schemas.PhoneNumberUpdate,
    phone_id: int = Query(..., alias="id", ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    """
    Partially update a phone number.

    Args:
        changes (PhoneNumberUpdate): Fields to update.
        phone_id (int): Phone number identifier.
        db (Session): Database session.

    Raises:
        NotFoundError: If the phone number does not exist.

    Returns:
        Response: Updated phone number.
    """
    phone = crud.update_phone_number(
        db, phone_id, changes.model_dump(exclude_unset=True)
    )
    return api_response(
        status.HTTP_200_OK,
        schemas.PhoneNumberOut.model_validate(phone),
        "Phone number updated successfully",
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def remove_phone_number(
    phone_id: int = Query(..., alias="id", ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    crud.delete_phone_number(db, phone_id)
    return api_response(status.HTTP_204_NO_CONTENT)
