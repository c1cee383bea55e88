# app/repositories/guest_repo.py
import uuid
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, select

from app.models.cart import Cart, CartItem
from app.models.user import Guest


class GuestRepository:
    """
    Data access layer for anonymous guest sessions.
    """

    def get_by_token(self, session: Session, token: str) -> Guest | None:
        stmt = select(Guest).where(Guest.session_token == token)
        return session.exec(stmt).first()

    def get_active_by_token(self, session: Session, token: str) -> Guest | None:
        """
        Return the guest for `token` unless it has expired.

        Expired rows are deleted together with their cart.
        """
        now = datetime.now(timezone.utc)
        expired = session.exec(
            select(Guest).where(
                Guest.session_token == token,
                Guest.expires_at < now,
            )
        ).first()
        if expired is not None:
            self.delete(session, expired)
            return None
        return self.get_by_token(session, token)

    def create(self, session: Session, token: str, max_age_seconds: int) -> Guest:
        guest = Guest(
            session_token=token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=max_age_seconds),
        )
        session.add(guest)
        session.commit()
        session.refresh(guest)
        return guest

    def delete(self, session: Session, guest: Guest) -> None:
        for cart in session.exec(select(Cart).where(Cart.guest_id == guest.id)).all():
            for item in session.exec(
                select(CartItem).where(CartItem.cart_id == cart.id)
            ).all():
                session.delete(item)
            session.flush()
            session.delete(cart)
        session.flush()
        session.delete(guest)
        session.commit()

    @staticmethod
    def new_token() -> str:
        return str(uuid.uuid4())
