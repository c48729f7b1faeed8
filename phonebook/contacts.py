"""Contact management routes for the Phonebook API."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .database import get_db
from .responses import api_response

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_contact(contact_in: schemas.ContactCreate, db: Session = Depends(get_db)):
    """
    Create a new contact, optionally with its phone numbers.

    The contact and every phone number are written in one transaction.

    Args:
        contact_in (ContactCreate): Contact input data.
        db (Session): Database session.

    Returns:
        Response: ``201`` with the created contact and its phone numbers.
    """
    contact = crud.create_contact(db, contact_in)
    return api_response(
        status.HTTP_201_CREATED,
        schemas.ContactOut.model_validate(contact),
        "Contact created successfully",
    )


@router.get("")
def read_contacts(
    contact_id: int | None = Query(None, alias="id", ge=1, le=schemas.MAX_ID),
    user_id: int | None = Query(None, ge=1, le=schemas.MAX_ID),
    skip: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """
    Retrieve one contact by ``id`` or all contacts of ``user_id``.

    Lists put emergency contacts first and sort by name within each
    group.

    Args:
        contact_id (int | None): Contact identifier.
        user_id (int | None): Owner whose contacts to list.
        skip (int): Number of records to skip when listing.
        limit (int | None): Maximum number of records when listing.
        db (Session): Database session.

    Raises:
        NotFoundError: If ``id`` is given and the contact does not exist.

    Returns:
        Response: A contact, a list of contacts, or ``400`` when neither
        identifier is supplied.
    """
    if contact_id is not None:
        contact = crud.get_contact(db, contact_id)
        return api_response(
            status.HTTP_200_OK, schemas.ContactOut.model_validate(contact)
        )
    if user_id is not None:
        contacts = crud.get_contacts(db, user_id, skip=skip, limit=limit)
        return api_response(
            status.HTTP_200_OK,
            [schemas.ContactOut.model_validate(c) for c in contacts],
        )
    return api_response(
        status.HTTP_400_BAD_REQUEST, message="Must provide either id or user_id"
    )


@router.put("")
def update_contact(
    changes: schemas.ContactUpdate,
    contact_id: int = Query(..., alias="id", ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    """
    Partially update an existing contact.

    Only fields provided in the request will be updated.

    Raises:
        NotFoundError: If the contact does not exist.
    """
    contact = crud.update_contact(
        db, contact_id, changes.model_dump(exclude_unset=True)
    )
    return api_response(
        status.HTTP_200_OK,
        schemas.ContactOut.model_validate(contact),
        "Contact updated successfully",
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def remove_contact(
    contact_id: int = Query(..., alias="id", ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    """Delete a contact and its phone numbers."""
    crud.delete_contact(db, contact_id)
    return api_response(status.HTTP_204_NO_CONTENT)
