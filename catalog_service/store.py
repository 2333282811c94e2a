from contextlib import contextmanager
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .errors import NotFound, StoreError

logger= logging.getLogger(__name__)


class SqlStore:
    """Store collaborator backed by a SQLAlchemy session.

    One instance wraps one session, so a store lives for a single request.
    Every SQLAlchemy failure is rolled back and re-raised as StoreError.
    """

    def __init__(self, session: Session):
        self.session= session

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            logger.exception(f"Store {operation} failed")
            self.session.rollback()
            raise StoreError(f"Failed to {operation}", str(e)) from e

    def create(self, entity):
        with self._guard(f"create {type(entity).__name__}"):
            self.session.add(entity)
            self.session.commit()
            self.session.refresh(entity)
        return entity

    def find_by_id(self, model, entity_id: int):
        with self._guard(f"load {model.__name__}"):
            entity= self.session.get(model, entity_id)
        if entity is None:
            raise NotFound(f"{model.__name__} not found", f"no {model.__name__.lower()} with id {entity_id}")
        return entity

    def find_where(self, model, **criteria):
        with self._guard(f"query {model.__name__}"):
            stmt= select(model).filter_by(**criteria).order_by(model.id)
            return list(self.session.execute(stmt).scalars())

    def find_all(self, model, preload=()):
        with self._guard(f"list {model.__name__}"):
            stmt= select(model).order_by(model.id)
            for association in preload:
                stmt= stmt.options(selectinload(getattr(model, association)))
            return list(self.session.execute(stmt).scalars())

    def save(self, entity):
        with self._guard(f"save {type(entity).__name__}"):
            self.session.add(entity)
            self.session.commit()
            self.session.refresh(entity)
        return entity

    def delete(self, model, entity_id: int):
        entity= self.find_by_id(model, entity_id)
        with self._guard(f"delete {model.__name__}"):
            self.session.delete(entity)
            self.session.commit()
