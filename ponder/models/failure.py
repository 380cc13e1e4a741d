"""
Ingestion failure classification.

Every problem met while ingesting is classified into one of four kinds:

- MALFORMED_FIELD: one field of one card could not be decoded. The field is
  stored as NULL and the card is still written.
- CARD_WRITE: a database error while writing one card. That card's savepoint
  is rolled back; the rest of its batch is committed.
- REFERENCE_DATA: the format/image-type vocabularies could not be seeded.
  Fatal to the run.
- BULK_DATA: the bulk file could not be fetched or parsed. Fatal, raised
  before ingestion begins.

Failures are collected and reported, never swallowed.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of ingestion failures."""

    MALFORMED_FIELD = "malformed_field"
    CARD_WRITE = "card_write"
    REFERENCE_DATA = "reference_data"
    BULK_DATA = "bulk_data"


class IngestionFailure(BaseModel):
    """A single recorded failure, identifying the offending card."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    catalog_id: str | None = Field(
        default=None,
        description="Catalog id of the card being processed",
    )
    name: str | None = Field(
        default=None,
        description="Display name of the card being processed",
    )
    operation: str = Field(
        ...,
        description="What was being attempted (e.g. 'encode colors', 'insert legality')",
    )
    message: str = Field(
        ...,
        description="Underlying error text",
    )

    def __str__(self) -> str:
        return (
            f"[{self.kind.value}] {self.operation} failed for "
            f"{self.name!r} ({self.catalog_id}): {self.message}"
        )


class PonderError(Exception):
    """Base class for errors raised by the ingestion pipeline."""


class ColorCodeError(ValueError):
    """Raised when a color array contains an unknown code."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Unknown color code: {code!r}")


class ReferenceDataError(PonderError):
    """Raised when the format/image-type vocabularies cannot be seeded."""


class BulkDataError(PonderError):
    """Raised when the bulk card file cannot be fetched or parsed."""


class RowConflictError(PonderError):
    """Raised when an insert reports a key conflict but no row holds that key."""


class CardWriteError(PonderError):
    """
    Raised when writing one card's rows fails.

    Carries the card identity and the step that failed so the
    caller can report it without re-deriving context.
    """

    def __init__(self, catalog_id: str, name: str, operation: str, cause: Exception):
        self.catalog_id = catalog_id
        self.name = name
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed for {name!r} ({catalog_id}): {cause}")

    def to_failure(self) -> IngestionFailure:
        """Convert to a reportable failure record."""
        return IngestionFailure(
            kind=FailureKind.CARD_WRITE,
            catalog_id=self.catalog_id,
            name=self.name,
            operation=self.operation,
            message=str(self.cause),
        )
