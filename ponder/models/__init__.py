from ponder.models.card import CardRecord, TypeLine
from ponder.models.failure import (
    BulkDataError,
    CardWriteError,
    ColorCodeError,
    FailureKind,
    IngestionFailure,
    PonderError,
    ReferenceDataError,
    RowConflictError,
)
from ponder.models.vocabulary import (
    FORMAT_NAMES,
    IMAGE_TYPE_NAMES,
    LEGALITY_STATUSES,
    Format,
    ImageType,
    LegalityStatus,
)

__all__ = [
    "BulkDataError",
    "CardRecord",
    "CardWriteError",
    "ColorCodeError",
    "FORMAT_NAMES",
    "FailureKind",
    "Format",
    "IMAGE_TYPE_NAMES",
    "ImageType",
    "IngestionFailure",
    "LEGALITY_STATUSES",
    "LegalityStatus",
    "PonderError",
    "ReferenceDataError",
    "RowConflictError",
    "TypeLine",
]
