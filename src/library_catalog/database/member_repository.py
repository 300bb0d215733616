"""
Member repository implementation for the Library Catalog server.

Plain CRUD over library members. Member rows are read by the lending engine
(a borrow must name an existing member) but never written by it.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import func, select

from ..models.member import Member as MemberModel
from .errors import DuplicateError, NotFoundError, RepositoryException
from .repository import BaseRepository
from .schema import Loan as LoanDB
from .schema import Member as MemberDB
from .session import safe_query


class MemberCreateSchema(BaseModel):
    """Schema for creating a new member."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr


class MemberUpdateSchema(BaseModel):
    """Schema for updating a member - all fields optional."""

    name: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = None

    @field_validator("name", "email")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v


class MemberRepository(BaseRepository[MemberDB, MemberCreateSchema, MemberUpdateSchema, MemberModel]):
    """Repository for member data access."""

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel

    def get_by_email(self, email: str) -> MemberModel | None:
        member = safe_query(
            self.session,
            lambda s: s.execute(
                select(MemberDB).where(func.lower(MemberDB.email) == email.lower())
            ).scalar_one_or_none(),
            "Failed to get member by email",
        )
        return self._to_response_model(member) if member else None

    def create(self, data: MemberCreateSchema) -> MemberModel:
        """
        Create a new member.

        Raises:
            DuplicateError: If the email is already registered
        """
        if self.get_by_email(data.email) is not None:
            raise DuplicateError(f"Member with email {data.email} already exists")

        member = MemberDB(name=data.name, email=data.email, joined_at=datetime.now())
        self.session.add(member)
        self._commit("create Member")
        self.session.refresh(member)
        return self._to_response_model(member)

    def update(self, id: int, data: MemberUpdateSchema) -> MemberModel:
        """
        Update a member's name or email.

        Raises:
            NotFoundError: If the member does not exist
            DuplicateError: If the new email belongs to another member
        """
        if data.email is not None:
            existing = self.get_by_email(data.email)
            if existing is not None and existing.id != id:
                raise DuplicateError(f"Member with email {data.email} already exists")
        return super().update(id, data)

    def delete(self, id: int) -> MemberModel:
        """
        Delete a member.

        Loan records are kept forever, so a member who has ever borrowed
        cannot be deleted.

        Raises:
            NotFoundError: If the member does not exist
            RepositoryException: If the member has loan records
        """
        if not self.exists(id):
            raise NotFoundError(f"Member {id} not found")

        loan_count = safe_query(
            self.session,
            lambda s: s.execute(
                select(func.count()).select_from(LoanDB).where(LoanDB.member_id == id)
            ).scalar_one(),
            "Failed to count member loans",
        )
        if loan_count:
            raise RepositoryException(
                f"Member {id} has {loan_count} loan record(s) and cannot be deleted"
            )
        return super().delete(id)
