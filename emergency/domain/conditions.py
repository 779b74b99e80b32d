"""
Structural rule conditions.

Rules are declared as data, not closures: a closed set of comparison and
combinator primitives that pydantic validates when the catalog is loaded.
``custom`` is the one escape hatch; it names a predicate that must have been
registered in-process with ``register_predicate`` before the catalog loads.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from emergency.domain.models import Symptom, VitalSigns

VitalName = Literal[
    "heart_rate",
    "systolic_bp",
    "diastolic_bp",
    "spo2",
    "temperature",
    "respiratory_rate",
    "blood_glucose",
    "pain_level",
]

Comparison = Literal["gt", "ge", "lt", "le"]

Predicate = Callable[["VitalSigns", Sequence["Symptom"]], bool]

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "gt": operator.gt,
    "ge": operator.ge,
    "lt": operator.lt,
    "le": operator.le,
}

_PREDICATES: dict[str, Predicate] = {}


def register_predicate(name: str) -> Callable[[Predicate], Predicate]:
    """Register a named predicate usable from ``{"type": "custom", "name": ...}``."""

    def decorator(func: Predicate) -> Predicate:
        if name in _PREDICATES and _PREDICATES[name] is not func:
            raise ValueError(f"Predicate {name!r} is already registered")
        _PREDICATES[name] = func
        return func

    return decorator


def unregister_predicate(name: str) -> None:
    _PREDICATES.pop(name, None)


class VitalThreshold(BaseModel):
    """
    Compare one vital sign against a threshold.

    An absent reading never matches unless the rule carries an explicit
    ``missing_value``; that substitute is then compared instead.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["vital"] = "vital"
    vital: VitalName
    op: Comparison
    value: float
    missing_value: float | None = Field(
        default=None, description="Audited substitute used when the reading is absent"
    )

    def evaluate(self, vitals: VitalSigns, symptoms: Sequence[Symptom]) -> bool:
        reading = getattr(vitals, self.vital)
        if reading is None:
            if self.missing_value is None:
                return False
            reading = self.missing_value
        return _OPERATORS[self.op](reading, self.value)


class SymptomMatch(BaseModel):
    """True when a reported symptom name contains any of the given phrases."""

    model_config = ConfigDict(frozen=True)

    type: Literal["symptom"] = "symptom"
    any_of: tuple[str, ...] = Field(min_length=1)
    severity: Literal["mild", "moderate", "severe"] | None = None

    @field_validator("any_of")
    @classmethod
    def phrases_not_blank(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if any(not phrase.strip() for phrase in v):
            raise ValueError("symptom phrases must not be blank")
        return v

    def evaluate(self, vitals: VitalSigns, symptoms: Sequence[Symptom]) -> bool:
        needles = [phrase.lower() for phrase in self.any_of]
        for symptom in symptoms:
            name = symptom.name.lower()
            if self.severity is not None and symptom.severity != self.severity:
                continue
            if any(needle in name for needle in needles):
                return True
        return False


class AllOf(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["all"] = "all"
    conditions: tuple[Condition, ...] = Field(min_length=1)

    def evaluate(self, vitals: VitalSigns, symptoms: Sequence[Symptom]) -> bool:
        return all(c.evaluate(vitals, symptoms) for c in self.conditions)


class AnyOf(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["any"] = "any"
    conditions: tuple[Condition, ...] = Field(min_length=1)

    def evaluate(self, vitals: VitalSigns, symptoms: Sequence[Symptom]) -> bool:
        return any(c.evaluate(vitals, symptoms) for c in self.conditions)


class CustomCondition(BaseModel):
    """Escape hatch: delegate to a registered predicate by name."""

    model_config = ConfigDict(frozen=True)

    type: Literal["custom"] = "custom"
    name: str

    @field_validator("name")
    @classmethod
    def must_be_registered(cls, v: str) -> str:
        if v not in _PREDICATES:
            raise ValueError(f"No predicate registered under {v!r}")
        return v

    def evaluate(self, vitals: VitalSigns, symptoms: Sequence[Symptom]) -> bool:
        return bool(_PREDICATES[self.name](vitals, symptoms))


Condition = Annotated[
    Union[VitalThreshold, SymptomMatch, AllOf, AnyOf, CustomCondition],
    Field(discriminator="type"),
]

AllOf.model_rebuild()
AnyOf.model_rebuild()
