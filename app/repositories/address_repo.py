# app/repositories/address_repo.py
import uuid

from sqlalchemy import or_
from sqlmodel import Session, select

from app.models.address import Address
from app.models.order import Order


class AddressRepository:
    """
    Data access layer for saved addresses. Every lookup is scoped to
    the owning user.
    """

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[Address]:
        """Defaults first, then grouped by type."""
        stmt = (
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.type)
        )
        return list(session.exec(stmt).all())

    def get_for_user(
        self,
        session: Session,
        address_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Address | None:
        stmt = select(Address).where(
            Address.id == address_id,
            Address.user_id == user_id,
        )
        return session.exec(stmt).first()

    def get_default(
        self,
        session: Session,
        user_id: uuid.UUID,
        address_type: str,
    ) -> Address | None:
        stmt = select(Address).where(
            Address.user_id == user_id,
            Address.type == address_type,
            Address.is_default == True,  # noqa: E712
        )
        return session.exec(stmt).first()

    def clear_defaults(
        self,
        session: Session,
        user_id: uuid.UUID,
        address_type: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        """
        Unset is_default on every other address of this type (no commit).
        """
        stmt = select(Address).where(
            Address.user_id == user_id,
            Address.type == address_type,
            Address.is_default == True,  # noqa: E712
        )
        for address in session.exec(stmt).all():
            if exclude_id is not None and address.id == exclude_id:
                continue
            address.is_default = False
            session.add(address)

    def save(self, session: Session, address: Address) -> Address:
        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    def delete(self, session: Session, address: Address) -> None:
        """
        Delete an address. Orders keep their JSON snapshot; only the
        foreign keys pointing at this row are cleared.
        """
        for order in session.exec(
            select(Order).where(
                or_(
                    Order.shipping_address_id == address.id,
                    Order.billing_address_id == address.id,
                )
            )
        ).all():
            if order.shipping_address_id == address.id:
                order.shipping_address_id = None
            if order.billing_address_id == address.id:
                order.billing_address_id = None
            session.add(order)
        session.delete(address)
        session.commit()
