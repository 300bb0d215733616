"""
Loan models for the Library Catalog server.

A LoanRecord is created by a successful borrow and updated exactly once by a
successful return. Its status only moves forward, ``borrowed`` to
``returned``, and ``return_date`` is present exactly when it is returned.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LoanStatus(str, Enum):
    """Status of a loan record."""

    BORROWED = "borrowed"
    RETURNED = "returned"


class LoanRecord(BaseModel):
    """One lent copy of a book."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Unique loan identifier", ge=1)

    member_id: int = Field(..., description="Member who borrowed the copy", ge=1)

    book_id: int = Field(..., description="Book the copy belongs to", ge=1)

    borrow_date: datetime = Field(..., description="When the copy was lent")

    return_date: datetime | None = Field(
        None,
        description="When the copy came back; null while on loan",
    )

    status: LoanStatus = Field(
        default=LoanStatus.BORROWED,
        description="Current status of the loan",
    )

    @model_validator(mode="after")
    def validate_return(self) -> "LoanRecord":
        """Tie the return date to the status."""
        if self.status == LoanStatus.RETURNED and self.return_date is None:
            raise ValueError("Returned loans must have a return date")
        if self.status == LoanStatus.BORROWED and self.return_date is not None:
            raise ValueError("Loans on loan cannot have a return date")
        return self

    @property
    def is_returned(self) -> bool:
        return self.status == LoanStatus.RETURNED

    @property
    def loan_duration_days(self) -> int:
        """Days the copy has been (or was) out."""
        end = self.return_date or datetime.now()
        # Both stamps come from the server clock, which can step backwards
        return max((end - self.borrow_date).days, 0)
