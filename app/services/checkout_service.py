# app/services/checkout_service.py
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from app.core.config import get_settings
from app.core.identity import UserIdentity
from app.models.address import Address
from app.models.user import User
from app.schemas.address import AddressRead
from app.schemas.cart import CartItemRead
from app.schemas.order import (
    CheckoutData,
    CheckoutResult,
    CheckoutSessionRead,
    DefaultAddresses,
    OrderCalculation,
)
from app.services.address_service import AddressService
from app.services.cart_service import CartService
from app.services.order_service import InsufficientStockError, OrderService
from app.services.pricing import (
    PAYMENT_METHODS,
    calculate_order_totals,
    validate_cart_for_checkout,
)

logger = logging.getLogger(__name__)

AUTH_REQUIRED = "Authentication required. Please sign in to continue."


@dataclass
class CheckoutSession:
    id: str
    user_id: uuid.UUID
    items: list[CartItemRead]
    calculation: OrderCalculation
    user_addresses: list[AddressRead]
    default_addresses: DefaultAddresses
    expires_at: datetime

    def to_read(self) -> CheckoutSessionRead:
        return CheckoutSessionRead(
            id=self.id,
            items=self.items,
            calculation=self.calculation,
            user_addresses=self.user_addresses,
            default_addresses=self.default_addresses,
            expires_at=self.expires_at,
        )


class CheckoutSessionStore:
    """
    In-process store of checkout sessions keyed by session id.

    Sessions expire after `ttl_minutes`; expired entries are dropped
    whenever the store is accessed. Contents are lost on restart.
    """

    def __init__(self, ttl_minutes: int = 30):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: dict[str, CheckoutSession] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_id(user_id: uuid.UUID) -> str:
        return f"checkout_{user_id}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"

    def _prune(self, now: datetime) -> None:
        expired = [sid for sid, s in self._sessions.items() if s.expires_at < now]
        for sid in expired:
            del self._sessions[sid]

    def create(
        self,
        user_id: uuid.UUID,
        items: list[CartItemRead],
        calculation: OrderCalculation,
        user_addresses: list[AddressRead],
        default_addresses: DefaultAddresses,
    ) -> CheckoutSession:
        now = datetime.now(timezone.utc)
        checkout = CheckoutSession(
            id=self.new_id(user_id),
            user_id=user_id,
            items=items,
            calculation=calculation,
            user_addresses=user_addresses,
            default_addresses=default_addresses,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._sessions[checkout.id] = checkout
            self._prune(now)
        return checkout

    def get(self, session_id: str) -> CheckoutSession | None:
        with self._lock:
            self._prune(datetime.now(timezone.utc))
            return self._sessions.get(session_id)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


def _failure(error: str, field_errors: dict[str, list[str]] | None = None) -> CheckoutResult:
    return CheckoutResult(success=False, error=error, field_errors=field_errors or {})


class CheckoutService:
    """
    Checkout flow for signed-in customers.

      1. create_checkout_session: snapshot cart, totals and addresses
      2. process_order: validate the final form against the live cart and
         stock, then write the order through OrderService
      3. clear the cart afterwards as a separate best-effort step

    Every failure is returned as CheckoutResult(success=False) and leaves
    no order rows behind.
    """

    def __init__(
        self,
        cart_service: CartService,
        address_service: AddressService,
        order_service: OrderService,
        store: CheckoutSessionStore,
    ):
        self.cart_service = cart_service
        self.address_service = address_service
        self.order_service = order_service
        self.store = store

    def _calculate(self, items: list[CartItemRead]) -> OrderCalculation:
        settings = get_settings()
        return calculate_order_totals(
            items,
            shipping_cost=settings.SHIPPING_FLAT_FEE,
            tax_rate=settings.TAX_RATE,
            free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
        )

    def create_checkout_session(
        self,
        session: Session,
        user: User | None,
    ) -> CheckoutResult:
        if user is None:
            return _failure(AUTH_REQUIRED)

        cart = self.cart_service.get_cart(session, UserIdentity(user_id=user.id))
        if not cart.items:
            return _failure(
                "Your cart is empty. Please add items before checkout.",
                {"cart": ["Your cart is empty"]},
            )

        errors = validate_cart_for_checkout(cart.items)
        if errors:
            return _failure(", ".join(errors), {"cart": errors})

        addresses = self.address_service.list_addresses(session, user)
        shipping, billing = self.address_service.get_defaults(session, user.id)

        checkout = self.store.create(
            user_id=user.id,
            items=cart.items,
            calculation=self._calculate(cart.items),
            user_addresses=[AddressRead.model_validate(a) for a in addresses],
            default_addresses=DefaultAddresses(
                shipping=AddressRead.model_validate(shipping) if shipping else None,
                billing=AddressRead.model_validate(billing) if billing else None,
            ),
        )
        logger.info("Created checkout session %s", checkout.id)
        return CheckoutResult(success=True, session=checkout.to_read())

    def _get_owned_session(
        self,
        user: User,
        session_id: str,
    ) -> tuple[CheckoutSession | None, CheckoutResult | None]:
        checkout = self.store.get(session_id)
        if checkout is None:
            return None, _failure("Checkout session not found or expired.")
        if checkout.user_id != user.id:
            return None, _failure("Invalid checkout session.")
        return checkout, None

    def get_checkout_session(self, user: User | None, session_id: str) -> CheckoutResult:
        if user is None:
            return _failure(AUTH_REQUIRED)
        checkout, failure = self._get_owned_session(user, session_id)
        if failure is not None:
            return failure
        return CheckoutResult(success=True, session=checkout.to_read())

    def delete_checkout_session(self, user: User | None, session_id: str) -> CheckoutResult:
        """Drop the session if it belongs to the caller; unknown ids are a no-op."""
        if user is None:
            return _failure(AUTH_REQUIRED)
        checkout = self.store.get(session_id)
        if checkout is not None and checkout.user_id == user.id:
            self.store.delete(session_id)
        return CheckoutResult(success=True)

    def _validate_checkout_data(
        self,
        data: CheckoutData,
        addresses: list[Address],
    ) -> tuple[dict[str, list[str]], Address | None, Address | None]:
        """
        Check the form against the user's saved addresses.
        Returns (field_errors, shipping address, billing address).
        """
        field_errors: dict[str, list[str]] = {}
        by_id = {a.id: a for a in addresses}

        if not addresses:
            field_errors["shipping_address_id"] = [
                "Please add an address before placing your order."
            ]
            return field_errors, None, None

        shipping = None
        if data.shipping_address_id is None:
            field_errors["shipping_address_id"] = ["Shipping address is required"]
        else:
            shipping = by_id.get(data.shipping_address_id)
            if shipping is None:
                field_errors["shipping_address_id"] = ["Invalid shipping address."]

        billing = shipping
        if not data.use_same_address:
            if data.billing_address_id is None:
                field_errors["billing_address_id"] = ["Billing address is required"]
            else:
                billing = by_id.get(data.billing_address_id)
                if billing is None:
                    field_errors["billing_address_id"] = ["Invalid billing address."]

        if data.payment_method not in PAYMENT_METHODS:
            field_errors["payment_method"] = ["Invalid payment method"]

        return field_errors, shipping, billing

    def process_order(
        self,
        session: Session,
        user: User | None,
        session_id: str,
        data: CheckoutData,
    ) -> CheckoutResult:
        """
        Place the order for a live checkout session.

        Validates, in order: authentication, session ownership, addresses,
        payment method, non-empty cart and stock. The cart is re-read so
        changes made since the session was created are honored.
        """
        if user is None:
            return _failure(AUTH_REQUIRED)

        _, failure = self._get_owned_session(user, session_id)
        if failure is not None:
            return failure

        addresses = self.address_service.list_addresses(session, user)
        field_errors, shipping, billing = self._validate_checkout_data(data, addresses)
        if field_errors:
            first = next(iter(field_errors.values()))[0]
            return _failure(first, field_errors)

        identity = UserIdentity(user_id=user.id)
        cart = self.cart_service.get_cart(session, identity)
        errors = validate_cart_for_checkout(cart.items)
        if errors:
            return _failure(", ".join(errors), {"cart": errors})

        try:
            order = self.order_service.create_order(
                session,
                user_id=user.id,
                items=cart.items,
                calculation=self._calculate(cart.items),
                checkout=data,
                shipping_address=shipping,
                billing_address=billing,
            )
        except InsufficientStockError as exc:
            return _failure(str(exc), {"cart": [str(exc)]})
        except Exception:
            logger.exception("Failed to create order for user %s", user.id)
            return _failure("Failed to create order. Please try again.")

        self.store.delete(session_id)

        try:
            self.cart_service.clear_cart(session, identity)
        except Exception:
            session.rollback()
            logger.exception("Order %s placed but clearing the cart failed", order.id)

        return CheckoutResult(success=True, order=order)
