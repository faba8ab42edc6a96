######## errors.py
########


class StrategyError(Exception):
    """Base class for domain errors raised by the workbench core."""


class InvalidDocumentError(StrategyError):
    """A persisted document does not have the StrategicData shape."""


class UnknownCollectionError(StrategyError):
    def __init__(self, name: str):
        super().__init__(f"Unknown collection: {name!r}")
        self.name = name


class EntityNotFoundError(StrategyError):
    def __init__(self, collection: str, entity_id: str):
        super().__init__(f"No {collection} entry with id {entity_id!r}")
        self.collection = collection
        self.entity_id = entity_id


class PickerCancelled(StrategyError):
    """The user dismissed the file picker. Not an error condition for callers."""
