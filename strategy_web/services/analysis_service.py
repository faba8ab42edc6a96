from __future__ import annotations

import logging
import math
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional

from strategy_web.adapters.file_exchange import FileExchange
from strategy_web.adapters.sqlserver_store import RemoteResult, SqlServerStrategicStore
from strategy_web.domain.errors import EntityNotFoundError, UnknownCollectionError
from strategy_web.domain.models import (
    MATRIX_KINDS,
    SWOT_BUCKETS,
    Competitor,
    Factor,
    KsfItem,
    StrategicData,
    SwotItem,
    clamp_competitor_rating,
    clamp_factor_rating,
    clamp_factor_weight,
    clamp_percent,
    default_competitors,
)
from strategy_web.repositories.local_store import LocalPersistence

logger = logging.getLogger(__name__)

COLLECTIONS = SWOT_BUCKETS + MATRIX_KINDS + ("ksf", "competitors")

# Fields a caller may change per collection, with the clamp applied on write.
_EDITABLE: Dict[str, Dict[str, Optional[Callable[[Any], Any]]]] = {
    "swot": {"description": None},
    "matrix": {"description": None, "weight": clamp_factor_weight, "rating": clamp_factor_rating},
    "ksf": {
        "description": None,
        "target": None,
        "measure": None,
        "weight": clamp_percent,
        "performance": clamp_percent,
    },
    "competitors": {"name": None},
}


def _kind(collection: str) -> str:
    if collection in SWOT_BUCKETS:
        return "swot"
    if collection in MATRIX_KINDS:
        return "matrix"
    if collection in ("ksf", "competitors"):
        return collection
    raise UnknownCollectionError(collection)


def _coerce(field_name: str, value: Any, clamp: Optional[Callable[[Any], Any]]) -> Any:
    if clamp is None:
        return "" if value is None else str(value)
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{field_name} must be a number") from e
    if not math.isfinite(number):
        raise ValueError(f"{field_name} must be a finite number")
    return clamp(number)


class StrategicSession:
    """
    Service layer: holds the working collections and applies every edit as
    a whole-collection replacement. After each edit the aggregate is written
    to local storage and handed to the file auto-save.
    Collection state is read and replaced under one lock; Flask serves
    requests from several threads.
    """

    def __init__(
        self,
        local: LocalPersistence,
        files: FileExchange,
        remote: Optional[SqlServerStrategicStore] = None,
        data: Optional[StrategicData] = None,
    ):
        self.local = local
        self.files = files
        self.remote = remote
        self._lock = threading.RLock()
        data = data or StrategicData()
        self._collections: Dict[str, List[Any]] = {name: list(getattr(data, name)) for name in COLLECTIONS}
        if not self._collections["competitors"]:
            self._collections["competitors"] = default_competitors()

    # -----------------------------
    # Reads
    # -----------------------------
    def snapshot(self) -> StrategicData:
        with self._lock:
            return StrategicData(**{name: list(items) for name, items in self._collections.items()})

    def items(self, collection: str) -> List[Any]:
        _kind(collection)
        with self._lock:
            return list(self._collections[collection])

    # -----------------------------
    # Mutations
    # -----------------------------
    def add(self, collection: str, fields: Optional[Mapping[str, Any]] = None) -> Any:
        kind = _kind(collection)
        if kind == "swot":
            item = SwotItem.create()
        elif kind == "matrix":
            item = Factor.create()
        elif kind == "ksf":
            item = KsfItem.create()
        else:
            item = Competitor.create()
        if fields:
            item = replace(item, **self._clean(kind, fields))
        with self._lock:
            self._replace(collection, self._collections[collection] + [item])
        return item

    def update(self, collection: str, entity_id: str, fields: Optional[Mapping[str, Any]] = None) -> Any:
        kind = _kind(collection)
        changes = self._clean(kind, fields or {})
        with self._lock:
            current = self._collections[collection]
            if not any(x.id == entity_id for x in current):
                raise EntityNotFoundError(collection, entity_id)

            updated = [replace(x, **changes) if x.id == entity_id else x for x in current]
            self._replace(collection, updated)
        return next(x for x in updated if x.id == entity_id)

    def remove(self, collection: str, entity_id: str) -> None:
        _kind(collection)
        with self._lock:
            current = self._collections[collection]
            remaining = [x for x in current if x.id != entity_id]
            if len(remaining) == len(current):
                raise EntityNotFoundError(collection, entity_id)
            self._replace(collection, remaining)

    def set_competitor_rating(self, competitor_id: str, ksf_id: str, rating: Any) -> Competitor:
        value = _coerce("rating", rating, clamp_competitor_rating)
        with self._lock:
            current = self._collections["competitors"]
            target = next((c for c in current if c.id == competitor_id), None)
            if target is None:
                raise EntityNotFoundError("competitors", competitor_id)

            ratings = dict(target.ratings)
            ratings[ksf_id] = value
            updated = replace(target, ratings=ratings)
            self._replace("competitors", [updated if c.id == competitor_id else c for c in current])
        return updated

    def replace_all(self, data: StrategicData) -> None:
        """Swap every collection for the ones in `data` (load from file or remote)."""
        with self._lock:
            for name in COLLECTIONS:
                self._collections[name] = list(getattr(data, name))
            self._changed(competitors_changed=False)

    def restore_local(self) -> None:
        snap = self.local.load_local()
        with self._lock:
            for name in ("ife", "efe", "strengths", "weaknesses", "opportunities", "threats", "ksf"):
                self._collections[name] = list(getattr(snap, name))
        logger.info(
            "Restored local data: ife=%d efe=%d ksf=%d",
            len(snap.ife), len(snap.efe), len(snap.ksf),
        )

    # -----------------------------
    # Remote
    # -----------------------------
    def save_remote(self) -> RemoteResult:
        if self.remote is None:
            return RemoteResult(success=False, error="Remote store is not configured.")
        return self.remote.save_remote(self.snapshot())

    def load_remote(self) -> RemoteResult:
        if self.remote is None:
            return RemoteResult(success=False, error="Remote store is not configured.")
        result = self.remote.load_remote()
        if result.success and result.data is not None:
            self.replace_all(result.data)
        return result

    # -----------------------------
    # Internals
    # -----------------------------
    @staticmethod
    def _clean(kind: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        editable = _EDITABLE[kind]
        unknown = set(fields) - set(editable)
        if unknown:
            raise ValueError(f"Cannot set {sorted(unknown)} on {kind} entries")
        return {k: _coerce(k, v, editable[k]) for k, v in fields.items()}

    def _replace(self, collection: str, items: List[Any]) -> None:
        # caller holds self._lock
        self._collections[collection] = items
        self._changed(competitors_changed=collection == "competitors")

    def _changed(self, competitors_changed: bool) -> None:
        data = self.snapshot()
        try:
            self.local.save_local(data)
        except OSError:
            logger.exception("Failed to persist to local storage")
        self.files.auto_save(data)

        if competitors_changed and self.remote is not None:
            result = self.remote.save_remote(data)
            if not result.success:
                logger.warning("Remote save after competitor change failed: %s", result.error)
