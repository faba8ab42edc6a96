from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from strategy_web.domain.errors import InvalidDocumentError
from strategy_web.domain.models import Factor, KsfItem, StrategicData, SwotItem

logger = logging.getLogger(__name__)

# One key per sub-collection. Competitors are not stored locally.
KEY_IFE = "ifeFactors"
KEY_EFE = "efeFactors"
KEY_STRENGTHS = "strengths"
KEY_WEAKNESSES = "weaknesses"
KEY_OPPORTUNITIES = "opportunities"
KEY_THREATS = "threats"
KEY_KSF = "ksfItems"

LOCAL_KEYS = (KEY_IFE, KEY_EFE, KEY_STRENGTHS, KEY_WEAKNESSES, KEY_OPPORTUNITIES, KEY_THREATS, KEY_KSF)


# -----------------------------
# Key-value backends
# -----------------------------
class KeyValueStore:
    """Strategy interface: a flat string -> string store."""
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """
    Persistent store kept as a single JSON object on disk.
    Every set() rewrites the file through a temp file + os.replace.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()
        self._data = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Local store %s is unreadable; starting empty", self.path)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Local store %s is not a JSON object; starting empty", self.path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_name(self.path.name + ".tmp")
            tmp.write_text(json.dumps(self._data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.path)


# -----------------------------
# Snapshot + persistence
# -----------------------------
@dataclass(frozen=True)
class LocalSnapshot:
    """Everything the local store knows about; competitors are not included."""
    ife: List[Factor] = field(default_factory=list)
    efe: List[Factor] = field(default_factory=list)
    strengths: List[SwotItem] = field(default_factory=list)
    weaknesses: List[SwotItem] = field(default_factory=list)
    opportunities: List[SwotItem] = field(default_factory=list)
    threats: List[SwotItem] = field(default_factory=list)
    ksf: List[KsfItem] = field(default_factory=list)


@dataclass
class LocalPersistence:
    """
    Repository pattern: maps the aggregate onto the key-value store,
    one JSON-encoded list per key.
    """
    store: KeyValueStore

    def save_local(self, data: StrategicData) -> None:
        payload = {
            KEY_IFE: data.ife,
            KEY_EFE: data.efe,
            KEY_STRENGTHS: data.strengths,
            KEY_WEAKNESSES: data.weaknesses,
            KEY_OPPORTUNITIES: data.opportunities,
            KEY_THREATS: data.threats,
            KEY_KSF: data.ksf,
        }
        for key, items in payload.items():
            self.store.set(key, json.dumps([i.to_dict() for i in items]))

    def load_local(self) -> LocalSnapshot:
        return LocalSnapshot(
            ife=self._load_list(KEY_IFE, Factor.from_dict),
            efe=self._load_list(KEY_EFE, Factor.from_dict),
            strengths=self._load_list(KEY_STRENGTHS, SwotItem.from_dict),
            weaknesses=self._load_list(KEY_WEAKNESSES, SwotItem.from_dict),
            opportunities=self._load_list(KEY_OPPORTUNITIES, SwotItem.from_dict),
            threats=self._load_list(KEY_THREATS, SwotItem.from_dict),
            ksf=self._load_list(KEY_KSF, KsfItem.from_dict),
        )

    def _load_list(self, key: str, parse: Callable[[Any], Any]) -> list:
        raw = self.store.get(key)
        if raw is None:
            return []
        try:
            decoded = json.loads(raw)
            if not isinstance(decoded, list):
                raise InvalidDocumentError(f"{key} is not a list")
            return [parse(x) for x in decoded]
        except (ValueError, InvalidDocumentError) as e:
            logger.warning("Discarding malformed local value for %s: %s", key, e)
            return []
