"""User routes for the Phonebook API."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import create_user_token, get_password_hash
from .database import get_db
from .responses import api_response

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=status.HTTP_201_CREATED)
def register_user(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user and issue a bearer token for them.

    Args:
        user_in (UserCreate): Registration data.
        db (Session): Database session.

    Returns:
        Response: ``201`` with the user (without password) and token.
    """
    user = crud.create_user(db, user_in, get_password_hash(user_in.password))
    registered = schemas.UserRegistered(
        user=schemas.UserOut.model_validate(user), token=create_user_token(user)
    )
    return api_response(
        status.HTTP_201_CREATED, registered, "User registered successfully"
    )


@router.get("")
def read_user(
    user_id: int = Query(..., alias="id", ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    """
    Retrieve a user by id.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = crud.get_user(db, user_id)
    return api_response(status.HTTP_200_OK, schemas.UserOut.model_validate(user))


@router.put("")
def update_user(
    changes: schemas.UserUpdate,
    user_id: int = Query(..., alias="id", ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    """
    Partially update a user.

    Only fields present in the request body are changed.

    Args:
        changes (UserUpdate): Fields to update.
        user_id (int): User identifier.
        db (Session): Database session.

    Raises:
        ValidationError: If the body supplies no fields.
        NotFoundError: If the user does not exist.

    Returns:
        Response: Updated user.
    """
    user = crud.update_user(db, user_id, changes.model_dump(exclude_unset=True))
    return api_response(
        status.HTTP_200_OK,
        schemas.UserOut.model_validate(user),
        "User updated successfully",
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def remove_user(
    user_id: int = Query(..., alias="id", ge=1, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
):
    """Delete a user along with all of their contacts and phone numbers."""
    crud.delete_user(db, user_id)
    return api_response(status.HTTP_204_NO_CONTENT)
