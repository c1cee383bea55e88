import os

# Settings are read once at import time, so the environment must be
# ready before anything under `app` is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("SEND_EMAIL_HOOK_SECRET", "test-hook-secret")

import time
import uuid

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import get_settings
from app.database import get_session
from app.main import app
from app.models.address import Address
from app.models.catalog import Color, Size
from app.models.product import Product, ProductVariant
from app.models.user import User
from app.routers.checkout import store


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    store.clear()
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    store.clear()


def make_token(user: User) -> str:
    settings = get_settings()
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "exp": int(time.time()) + 3600,
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def make_user(session: Session):
    def _make(role: str = "user", email: str | None = None, name: str = "Ayesha") -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user)}"}

    return _headers


@pytest.fixture
def make_product(session: Session):
    def _make(
        name: str = "Matte Lipstick",
        price: float = 1000.0,
        sale_price: float | None = None,
        in_stock: int = 10,
        is_published: bool = True,
    ) -> Product:
        product = Product(
            name=name,
            product_type="simple",
            price=price,
            sale_price=sale_price,
            sku=f"SKU-{uuid.uuid4().hex[:8]}",
            in_stock=in_stock,
            is_published=is_published,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_variant_product(session: Session):
    def _make(
        name: str = "Silk Foundation",
        price: float = 500.0,
        sale_price: float | None = None,
        in_stock: int = 10,
        color_name: str = "Ivory",
        size_name: str = "30ml",
    ) -> tuple[Product, ProductVariant]:
        color = Color(name=color_name, slug=f"c-{uuid.uuid4().hex[:8]}", hex_code="#FFFFF0")
        size = Size(name=size_name, slug=f"s-{uuid.uuid4().hex[:8]}")
        product = Product(name=name, product_type="configurable", is_published=True)
        session.add_all([color, size, product])
        session.flush()

        variant = ProductVariant(
            product_id=product.id,
            sku=f"VAR-{uuid.uuid4().hex[:8]}",
            price=price,
            sale_price=sale_price,
            color_id=color.id,
            size_id=size.id,
            in_stock=in_stock,
        )
        session.add(variant)
        session.flush()
        product.default_variant_id = variant.id
        session.commit()
        session.refresh(product)
        session.refresh(variant)
        return product, variant

    return _make


@pytest.fixture
def make_address(session: Session):
    def _make(user: User, type: str = "shipping", is_default: bool = True) -> Address:
        address = Address(
            user_id=user.id,
            type=type,
            full_name="Ayesha Khan",
            line1="House 12, Street 4, F-7",
            city="Islamabad",
            state="ICT",
            postal_code="44000",
            phone="03001234567",
            is_default=is_default,
        )
        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    return _make
