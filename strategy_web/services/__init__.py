from .analysis_service import COLLECTIONS, StrategicSession

__all__ = [
    "COLLECTIONS",
    "StrategicSession",
]
