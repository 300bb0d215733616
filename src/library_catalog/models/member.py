"""
Member model for the Library Catalog server.

Members are exposed as resources (``library://members/{member_id}``) and are
the borrowers referenced by loan records.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Member(BaseModel):
    """A library member."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Unique member identifier", ge=1, examples=[1, 42])

    name: str = Field(
        ...,
        description="Full name of the member",
        min_length=1,
        max_length=200,
        examples=["Jane Smith"],
    )

    email: EmailStr = Field(
        ...,
        description="Email address, unique per member",
        examples=["jane.smith@example.com"],
    )

    joined_at: datetime = Field(
        default_factory=datetime.now,
        description="When the member joined the library",
    )
