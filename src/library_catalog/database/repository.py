"""
Repository pattern implementation for the Library Catalog server.

This module provides the data access layer for the plain catalog operations
(members and books). The repository pattern keeps MCP handlers free of
database concerns:

1. **Protocol Separation**: Tools and Resources deal in Pydantic models only
2. **Testability**: Repositories take a session and can be driven directly
3. **Consistency**: All CRUD follows the same commit and error conventions

Lending itself does not go through these repositories; it has its own
transaction discipline in ``lending.py``.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import DuplicateError, NotFoundError, TransactionError
from .schema import Base
from .session import safe_commit, safe_query

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

# SQLSTATE for unique_violation; SQLite only reports it in the message
UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: BaseException | None) -> bool:
    """Tell unique-constraint failures apart from other integrity errors."""
    if not isinstance(error, IntegrityError):
        return False
    if getattr(error.orig, "sqlstate", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return "UNIQUE constraint failed" in str(error.orig)


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing common CRUD operations.

    All reads go through safe_query and all writes through safe_commit, so
    store failures always surface as ``TransactionError``.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_db_obj(self, id: int) -> ModelType | None:
        query = select(self.model_class).where(self.model_class.id == id)
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(self) -> list[ResponseSchemaType]:
        """Get all entities ordered by ID."""
        query = select(self.model_class).order_by(self.model_class.id)
        results = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to get all results"
        )
        return [self._to_response_model(item) for item in results]

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity.

        Raises:
            DuplicateError: If a unique field is already taken
            TransactionError: On other database errors
        """
        db_obj = self.model_class(**data.model_dump())
        self.session.add(db_obj)
        self._commit(f"create {self.model_class.__name__}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def update(self, id: int, data: UpdateSchemaType) -> ResponseSchemaType:
        """
        Update existing entity with the fields set on ``data``.

        Raises:
            NotFoundError: If the entity does not exist
            DuplicateError: If a unique field is already taken
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            raise NotFoundError(f"{self.model_class.__name__} {id} not found")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)

        self._commit(f"update {self.model_class.__name__}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def delete(self, id: int) -> ResponseSchemaType:
        """
        Delete entity by ID.

        Returns:
            The deleted entity

        Raises:
            NotFoundError: If the entity does not exist
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            raise NotFoundError(f"{self.model_class.__name__} {id} not found")

        deleted = self._to_response_model(db_obj)
        self.session.delete(db_obj)
        self._commit(f"delete {self.model_class.__name__}")
        return deleted

    def exists(self, id: int) -> bool:
        """Check if entity exists by ID."""
        return self._get_db_obj(id) is not None

    def _commit(self, operation: str) -> None:
        try:
            safe_commit(self.session, operation)
        except TransactionError as e:
            if is_unique_violation(e.__cause__):
                raise DuplicateError(
                    f"{operation} violates a unique constraint: {e.__cause__.orig}"
                ) from e.__cause__
            raise
