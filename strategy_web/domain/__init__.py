from .errors import (
    EntityNotFoundError,
    InvalidDocumentError,
    PickerCancelled,
    StrategyError,
    UnknownCollectionError,
)
from .models import (
    Competitor,
    Factor,
    KsfItem,
    StrategicData,
    SwotItem,
    default_competitors,
    new_id,
)

__all__ = [
    "Competitor",
    "EntityNotFoundError",
    "Factor",
    "InvalidDocumentError",
    "KsfItem",
    "PickerCancelled",
    "StrategicData",
    "StrategyError",
    "SwotItem",
    "UnknownCollectionError",
    "default_competitors",
    "new_id",
]
