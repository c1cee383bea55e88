# app/services/address_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.address import Address
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.schemas.address import AddressCreate, AddressUpdate

NULLABLE_FIELDS = {"line2", "phone", "city_id", "state_id"}


class AddressService:
    """
    Business logic for a customer's saved addresses.

    Rules:
      - every address belongs to exactly one user; other users' ids are
        reported as not found
      - at most one default per (user, type): making one default clears
        the flag on the others
    """

    def __init__(self, repo: AddressRepository):
        self.repo = repo

    def list_addresses(self, session: Session, user: User) -> list[Address]:
        return self.repo.list_for_user(session, user.id)

    def get_address(
        self,
        session: Session,
        user: User,
        address_id: uuid.UUID,
    ) -> Address:
        address = self.repo.get_for_user(session, address_id, user.id)
        if not address:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Address not found",
            )
        return address

    def get_defaults(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> tuple[Address | None, Address | None]:
        """(default shipping, default billing) for the user."""
        return (
            self.repo.get_default(session, user_id, "shipping"),
            self.repo.get_default(session, user_id, "billing"),
        )

    def create_address(
        self,
        session: Session,
        user: User,
        payload: AddressCreate,
    ) -> Address:
        address = Address(user_id=user.id, **payload.model_dump())
        if address.is_default:
            self.repo.clear_defaults(session, user.id, address.type)
        return self.repo.save(session, address)

    def update_address(
        self,
        session: Session,
        user: User,
        address_id: uuid.UUID,
        payload: AddressUpdate,
    ) -> Address:
        address = self.get_address(session, user, address_id)

        data = payload.model_dump(exclude_unset=True)
        for field, value in data.items():
            if value is None and field not in NULLABLE_FIELDS:
                continue
            setattr(address, field, value)

        if address.is_default:
            self.repo.clear_defaults(
                session, user.id, address.type, exclude_id=address.id
            )
        return self.repo.save(session, address)

    def set_default(
        self,
        session: Session,
        user: User,
        address_id: uuid.UUID,
    ) -> Address:
        address = self.get_address(session, user, address_id)
        self.repo.clear_defaults(session, user.id, address.type, exclude_id=address.id)
        address.is_default = True
        return self.repo.save(session, address)

    def delete_address(
        self,
        session: Session,
        user: User,
        address_id: uuid.UUID,
    ) -> None:
        address = self.get_address(session, user, address_id)
        self.repo.delete(session, address)
