######## models.py
########

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from strategy_web.domain.errors import InvalidDocumentError

SWOT_BUCKETS = ("strengths", "weaknesses", "opportunities", "threats")
MATRIX_KINDS = ("ife", "efe")

DEFAULT_COMPETITOR_NAMES = ("Our Company", "Competitor 1", "Competitor 2")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_LENGTH = 13  # 36**13 > 2**64


def new_id() -> str:
    """Opaque base-36 token built from 64 random bits."""
    n = secrets.randbits(64)
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits)).rjust(_ID_LENGTH, "0")


# -----------------------------
# Range clamping (applied on mutation only)
# -----------------------------
def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_factor_weight(value: float) -> float:
    return _clamp(value, 0.0, 1.0)


def clamp_factor_rating(value: float) -> int:
    return int(_clamp(round(value), 1, 4))


def clamp_percent(value: float) -> float:
    return _clamp(value, 0.0, 100.0)


def clamp_competitor_rating(value: float) -> float:
    return _clamp(value, 0.0, 4.0)


# -----------------------------
# Parsing helpers
# -----------------------------
def _require_mapping(raw: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise InvalidDocumentError(f"{what} must be an object, got {type(raw).__name__}")
    return raw


def _optional_mapping(raw: Any, what: str) -> Mapping[str, Any]:
    return {} if raw is None else _require_mapping(raw, what)


def _require_list(raw: Any, what: str) -> list:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidDocumentError(f"{what} must be a list, got {type(raw).__name__}")
    return raw


def _id(raw: Mapping[str, Any]) -> str:
    value = raw.get("id")
    return str(value) if value not in (None, "") else new_id()


def _text(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    return "" if value is None else str(value)


def _number(raw: Mapping[str, Any], key: str, default: float) -> float:
    value = raw.get(key)
    if value is None:
        return default
    # bool is an int subclass but never a valid score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidDocumentError(f"{key} must be a number, got {value!r}")
    return value


def _integer(raw: Mapping[str, Any], key: str, default: int) -> int:
    value = _number(raw, key, default)
    if isinstance(value, int):
        return value
    if not value.is_integer():
        raise InvalidDocumentError(f"{key} must be a whole number, got {value!r}")
    return int(value)


# -----------------------------
# Entities
# -----------------------------
@dataclass(frozen=True)
class SwotItem:
    id: str
    description: str = ""

    @classmethod
    def create(cls, description: str = "") -> "SwotItem":
        return cls(id=new_id(), description=description)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "description": self.description}

    @classmethod
    def from_dict(cls, raw: Any) -> "SwotItem":
        raw = _require_mapping(raw, "SWOT item")
        return cls(id=_id(raw), description=_text(raw, "description"))


@dataclass(frozen=True)
class Factor:
    """One row of an IFE or EFE matrix."""
    id: str
    description: str = ""
    weight: float = 0
    rating: int = 1

    @classmethod
    def create(cls, description: str = "", weight: float = 0, rating: int = 1) -> "Factor":
        return cls(id=new_id(), description=description, weight=weight, rating=rating)

    @property
    def weighted_score(self) -> float:
        return self.weight * self.rating

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "weight": self.weight,
            "rating": self.rating,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "Factor":
        raw = _require_mapping(raw, "Factor")
        return cls(
            id=_id(raw),
            description=_text(raw, "description"),
            weight=_number(raw, "weight", 0),
            rating=_integer(raw, "rating", 1),
        )


@dataclass(frozen=True)
class KsfItem:
    """
    Key Success Factor. weight and performance are on a 0-100 scale.
    Older documents carry neither field; both read back as 0.
    """
    id: str
    description: str = ""
    target: str = ""
    measure: str = ""
    weight: float = 0
    performance: float = 0

    @classmethod
    def create(
        cls,
        description: str = "",
        target: str = "",
        measure: str = "",
        weight: float = 0,
        performance: float = 0,
    ) -> "KsfItem":
        return cls(
            id=new_id(),
            description=description,
            target=target,
            measure=measure,
            weight=weight,
            performance=performance,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "target": self.target,
            "measure": self.measure,
            "weight": self.weight,
            "performance": self.performance,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "KsfItem":
        raw = _require_mapping(raw, "KSF item")
        return cls(
            id=_id(raw),
            description=_text(raw, "description"),
            target=_text(raw, "target"),
            measure=_text(raw, "measure"),
            weight=_number(raw, "weight", 0),
            performance=_number(raw, "performance", 0),
        )


@dataclass(frozen=True)
class Competitor:
    id: str
    name: str = ""
    ratings: Dict[str, float] = field(default_factory=dict)  # ksf id -> 0..4

    @classmethod
    def create(cls, name: str = "") -> "Competitor":
        return cls(id=new_id(), name=name, ratings={})

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "ratings": dict(self.ratings)}

    @classmethod
    def from_dict(cls, raw: Any) -> "Competitor":
        raw = _require_mapping(raw, "Competitor")
        ratings_raw = _optional_mapping(raw.get("ratings"), "Competitor ratings")
        ratings = {str(k): _number(ratings_raw, k, 0) for k in ratings_raw}
        return cls(id=_id(raw), name=_text(raw, "name"), ratings=ratings)


def default_competitors() -> List[Competitor]:
    return [Competitor.create(name) for name in DEFAULT_COMPETITOR_NAMES]


@dataclass(frozen=True)
class StrategicData:
    """
    Aggregate root: the unit of export/import and of full-state load/save.
    Built fresh from the session's collections whenever it is needed.
    """
    strengths: List[SwotItem] = field(default_factory=list)
    weaknesses: List[SwotItem] = field(default_factory=list)
    opportunities: List[SwotItem] = field(default_factory=list)
    threats: List[SwotItem] = field(default_factory=list)
    ife: List[Factor] = field(default_factory=list)
    efe: List[Factor] = field(default_factory=list)
    ksf: List[KsfItem] = field(default_factory=list)
    competitors: List[Competitor] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "swot": {
                bucket: [item.to_dict() for item in getattr(self, bucket)]
                for bucket in SWOT_BUCKETS
            },
            "matrices": {
                "ife": [f.to_dict() for f in self.ife],
                "efe": [f.to_dict() for f in self.efe],
            },
            "ksf": [k.to_dict() for k in self.ksf],
            "competitors": [c.to_dict() for c in self.competitors],
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "StrategicData":
        raw = _require_mapping(raw, "StrategicData")
        swot = _optional_mapping(raw.get("swot"), "swot")
        matrices = _optional_mapping(raw.get("matrices"), "matrices")

        def swot_bucket(name: str) -> List[SwotItem]:
            return [SwotItem.from_dict(x) for x in _require_list(swot.get(name), f"swot.{name}")]

        return cls(
            strengths=swot_bucket("strengths"),
            weaknesses=swot_bucket("weaknesses"),
            opportunities=swot_bucket("opportunities"),
            threats=swot_bucket("threats"),
            ife=[Factor.from_dict(x) for x in _require_list(matrices.get("ife"), "matrices.ife")],
            efe=[Factor.from_dict(x) for x in _require_list(matrices.get("efe"), "matrices.efe")],
            ksf=[KsfItem.from_dict(x) for x in _require_list(raw.get("ksf"), "ksf")],
            competitors=[
                Competitor.from_dict(x) for x in _require_list(raw.get("competitors"), "competitors")
            ],
        )
