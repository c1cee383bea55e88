# app/repositories/catalog_repo.py
import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from app.models.catalog import ProductCollection

ModelT = TypeVar("ModelT", bound=SQLModel)


class CatalogRepository(Generic[ModelT]):
    """
    Data access layer shared by the slug-keyed catalog tables
    (brands, categories, collections, colors, sizes).
    """

    def __init__(self, model: type[ModelT], order_by: Any = None):
        self.model = model
        self.order_by = order_by if order_by is not None else model.name

    def get_by_id(self, session: Session, obj_id: uuid.UUID) -> ModelT | None:
        return session.get(self.model, obj_id)

    def get_by_slug(self, session: Session, slug: str) -> ModelT | None:
        stmt = select(self.model).where(self.model.slug == slug)
        return session.exec(stmt).first()

    def list(self, session: Session, skip: int = 0, limit: int = 100) -> list[ModelT]:
        stmt = select(self.model).order_by(self.order_by).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def save(self, session: Session, obj: ModelT) -> ModelT:
        session.add(obj)
        session.commit()
        session.refresh(obj)
        return obj

    def delete(self, session: Session, obj: ModelT) -> None:
        session.delete(obj)
        session.commit()

    def count_where(self, session: Session, model: type[SQLModel], column: Any, value: Any) -> int:
        """
        Count rows of `model` whose `column` equals `value`.
        Used to refuse deleting rows that are still referenced.
        """
        stmt = select(func.count()).select_from(model).where(column == value)
        return int(session.exec(stmt).one() or 0)


class CollectionRepository(CatalogRepository):
    """
    Collections plus their many-to-many product membership.
    """

    def get_link(
        self,
        session: Session,
        collection_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> ProductCollection | None:
        return session.get(ProductCollection, (product_id, collection_id))

    def add_products(
        self,
        session: Session,
        collection_id: uuid.UUID,
        product_ids: list[uuid.UUID],
    ) -> None:
        for product_id in dict.fromkeys(product_ids):
            if self.get_link(session, collection_id, product_id) is None:
                session.add(
                    ProductCollection(product_id=product_id, collection_id=collection_id)
                )
        session.commit()

    def remove_products(
        self,
        session: Session,
        collection_id: uuid.UUID,
        product_ids: list[uuid.UUID],
    ) -> None:
        for product_id in product_ids:
            link = self.get_link(session, collection_id, product_id)
            if link is not None:
                session.delete(link)
        session.commit()

    def delete(self, session: Session, obj) -> None:
        for link in session.exec(
            select(ProductCollection).where(ProductCollection.collection_id == obj.id)
        ).all():
            session.delete(link)
        session.delete(obj)
        session.commit()
