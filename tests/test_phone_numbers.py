import pytest
from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from phonebook import crud, models
from phonebook.auth import get_password_hash
from phonebook.errors import NotFoundError
from phonebook.schemas import ContactCreate, PhoneNumberCreate, UserCreate


@pytest.fixture()
def contact(db_session):
    user_in = UserCreate(name="Owner", password="secret123")
    user = crud.create_user(db_session, user_in, get_password_hash("secret123"))
    return crud.create_contact(db_session, ContactCreate(user_id=user.id, name="Bob"))


def add_phone(db_session, contact, number, **fields):
    phone_in = PhoneNumberCreate(contact_id=contact.id, phone_number=number, **fields)
    return crud.create_phone_number(db_session, phone_in)


def primary_numbers(db_session, contact_id):
    db_session.expire_all()
    return db_session.scalars(
        select(models.PhoneNumber.phone_number).where(
            models.PhoneNumber.contact_id == contact_id,
            models.PhoneNumber.is_primary.is_(True),
        )
    ).all()


def test_add_phone_number_defaults(client, contact):
    response = client.post(
        "/phone-numbers", json={"contact_id": contact.id, "phone_number": " 555 "}
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["message"] == "Phone number added successfully"
    assert body["data"]["phone_number"] == "555"
    assert body["data"]["phone_type"] == "mobile"
    assert body["data"]["is_primary"] is False


def test_add_phone_number_to_missing_contact(client, db_session):
    response = client.post(
        "/phone-numbers", json={"contact_id": 999, "phone_number": "555"}
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Contact not found"


def test_add_phone_number_rejects_unknown_type(client, contact):
    response = client.post(
        "/phone-numbers",
        json={"contact_id": contact.id, "phone_number": "555", "phone_type": "fax"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["field"] == "phone_type"


def test_new_primary_takes_over_flag(client, db_session, contact):
    add_phone(db_session, contact, "1", is_primary=True)
    add_phone(db_session, contact, "2")

    response = client.post(
        "/phone-numbers",
        json={"contact_id": contact.id, "phone_number": "3", "is_primary": True},
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert primary_numbers(db_session, contact.id) == ["3"]


def test_primary_flag_is_scoped_to_contact(db_session, contact):
    other = crud.create_contact(
        db_session, ContactCreate(user_id=contact.user_id, name="Other")
    )
    add_phone(db_session, other, "9", is_primary=True)
    add_phone(db_session, contact, "1", is_primary=True)

    assert primary_numbers(db_session, other.id) == ["9"]
    assert primary_numbers(db_session, contact.id) == ["1"]


def test_at_most_one_primary_after_every_write(db_session, contact):
    first = add_phone(db_session, contact, "1", is_primary=True)
    second = add_phone(db_session, contact, "2", is_primary=True)
    third = add_phone(db_session, contact, "3")
    steps = [
        (first.id, {"is_primary": True}),
        (third.id, {"is_primary": True, "phone_type": models.PhoneType.work}),
        (third.id, {"is_primary": True}),
        (second.id, {"phone_number": "22"}),
        (second.id, {"is_primary": True}),
        (second.id, {"is_primary": False}),
    ]
    for phone_id, changes in steps:
        crud.update_phone_number(db_session, phone_id, changes)
        assert len(primary_numbers(db_session, contact.id)) <= 1

    assert primary_numbers(db_session, contact.id) == []


def test_update_phone_number_to_primary(client, db_session, contact):
    old = add_phone(db_session, contact, "1", is_primary=True)
    new = add_phone(db_session, contact, "2")

    response = client.put(f"/phone-numbers?id={new.id}", json={"is_primary": True})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Phone number updated successfully"
    assert response.json()["data"]["is_primary"] is True

    db_session.refresh(old)
    assert old.is_primary is False
    assert primary_numbers(db_session, contact.id) == ["2"]


def test_update_phone_number_keeps_omitted_fields(client, db_session, contact):
    phone = add_phone(db_session, contact, "1", phone_type=models.PhoneType.home)
    response = client.put(f"/phone-numbers?id={phone.id}", json={"phone_number": "7"})
    data = response.json()["data"]
    assert data["phone_number"] == "7"
    assert data["phone_type"] == "home"
    assert data["is_primary"] is False


def test_update_missing_phone_number_leaves_primary_untouched(
    client, db_session, contact
):
    add_phone(db_session, contact, "1", is_primary=True)
    response = client.put("/phone-numbers?id=999", json={"is_primary": True})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Phone number not found"
    assert primary_numbers(db_session, contact.id) == ["1"]


def test_update_phone_number_rejects_null(client, db_session, contact):
    phone = add_phone(db_session, contact, "1")
    response = client.put(f"/phone-numbers?id={phone.id}", json={"is_primary": None})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_get_phone_number(client, db_session, contact):
    phone = add_phone(db_session, contact, "1")
    response = client.get(f"/phone-numbers?id={phone.id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["contact_id"] == contact.id

    missing = client.get("/phone-numbers?id=999")
    assert missing.status_code == status.HTTP_404_NOT_FOUND


def test_list_phone_numbers_primary_first_then_by_type(client, db_session, contact):
    add_phone(db_session, contact, "w", phone_type=models.PhoneType.work)
    add_phone(db_session, contact, "m", phone_type=models.PhoneType.mobile)
    add_phone(db_session, contact, "h", phone_type=models.PhoneType.home)
    add_phone(
        db_session, contact, "p", phone_type=models.PhoneType.work, is_primary=True
    )

    response = client.get(f"/phone-numbers?contact_id={contact.id}")
    assert response.status_code == status.HTTP_200_OK
    assert [p["phone_number"] for p in response.json()["data"]] == ["p", "h", "m", "w"]


def test_list_phone_numbers_for_unknown_contact(client, db_session):
    response = client.get("/phone-numbers?contact_id=999")
    assert response.json() == {"success": True, "data": []}


def test_get_phone_numbers_requires_identifier(client, db_session):
    response = client.get("/phone-numbers")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Must provide either id or contact_id"


def test_delete_primary_does_not_elect_new_one(client, db_session, contact):
    primary = add_phone(db_session, contact, "1", is_primary=True)
    add_phone(db_session, contact, "2")

    response = client.delete(f"/phone-numbers?id={primary.id}")
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert primary_numbers(db_session, contact.id) == []
    assert len(crud.get_phone_numbers(db_session, contact.id)) == 1


def test_delete_missing_phone_number(client, db_session):
    response = client.delete("/phone-numbers?id=999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    with pytest.raises(NotFoundError):
        crud.delete_phone_number(db_session, 999)


def test_storage_rejects_second_primary(db_session, contact):
    add_phone(db_session, contact, "1", is_primary=True)
    db_session.add(
        models.PhoneNumber(contact_id=contact.id, phone_number="2", is_primary=True)
    )
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_add_phone_number_rejects_number_longer_than_column(client, contact):
    response = client.post(
        "/phone-numbers", json={"contact_id": contact.id, "phone_number": "5" * 51}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["field"] == "phone_number"


def test_update_phone_number_rejects_number_longer_than_column(
    client, db_session, contact
):
    phone = add_phone(db_session, contact, "1")
    response = client.put(
        f"/phone-numbers?id={phone.id}", json={"phone_number": "5" * 51}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    db_session.refresh(phone)
    assert phone.phone_number == "1"


def test_add_phone_number_rejects_null_type(client, contact):
    response = client.post(
        "/phone-numbers",
        json={"contact_id": contact.id, "phone_number": "5", "phone_type": None},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
