"""
Book model for the Library Catalog server.

Books are exposed as resources (``library://books/{book_id}``). Title,
author and year are catalog data; the two copy counters are owned by the
lending engine.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Catalog entries may announce next year's releases
MAX_PUBLISHED_YEAR = datetime.now().year + 1


class Book(BaseModel):
    """A catalog entry and its copy counters."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Unique book identifier", ge=1, examples=[1, 7])

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby"],
    )

    author: str = Field(
        ...,
        description="Author name as printed on the book",
        min_length=1,
        max_length=200,
        examples=["F. Scott Fitzgerald"],
    )

    published_year: int | None = Field(
        None,
        description="Year the book was published",
        le=MAX_PUBLISHED_YEAR,
        examples=[1925, 2023],
    )

    total_copies: int = Field(
        ...,
        description="Total number of copies owned by the library",
        ge=0,
        examples=[1, 3],
    )

    available_copies: int = Field(
        ...,
        description="Copies currently on the shelf",
        ge=0,
        examples=[0, 2],
    )

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        """Available copies can never exceed the copies owned."""
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def is_available(self) -> bool:
        return self.available_copies > 0

    @property
    def copies_on_loan(self) -> int:
        return self.total_copies - self.available_copies
