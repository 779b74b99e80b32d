"""
Tests for the structural rule conditions.

Covers threshold comparisons, the missing-reading policy, symptom matching,
combinators, and the registered-predicate escape hatch.
"""

from collections.abc import Iterator

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import TypeAdapter, ValidationError

from emergency.domain.conditions import (
    Condition,
    CustomCondition,
    SymptomMatch,
    VitalThreshold,
    register_predicate,
    unregister_predicate,
)
from emergency.domain.models import Symptom, SymptomSeverity, VitalSigns

condition_adapter: TypeAdapter[Condition] = TypeAdapter(Condition)


def _symptom(name: str, severity: SymptomSeverity = SymptomSeverity.MODERATE) -> Symptom:
    return Symptom(name=name, severity=severity)


class TestVitalThreshold:
    """Comparison primitives over a single vital sign."""

    @pytest.mark.parametrize(
        ("op", "reading", "expected"),
        [
            ("gt", 120.0, False),
            ("gt", 120.1, True),
            ("ge", 120.0, True),
            ("lt", 120.0, False),
            ("lt", 119.9, True),
            ("le", 120.0, True),
        ],
    )
    def test_boundaries(self, op: str, reading: float, expected: bool) -> None:
        condition = VitalThreshold(vital="heart_rate", op=op, value=120)
        assert condition.evaluate(VitalSigns(heart_rate=reading), []) is expected

    def test_missing_reading_never_matches(self) -> None:
        low_bp = VitalThreshold(vital="systolic_bp", op="lt", value=90)
        high_bp = VitalThreshold(vital="systolic_bp", op="gt", value=180)

        assert low_bp.evaluate(VitalSigns(), []) is False
        assert high_bp.evaluate(VitalSigns(), []) is False

    def test_missing_value_substitutes_for_absent_reading(self) -> None:
        condition = VitalThreshold(vital="systolic_bp", op="lt", value=90, missing_value=120)

        assert condition.evaluate(VitalSigns(), []) is False
        assert condition.evaluate(VitalSigns(systolic_bp=80), []) is True

    @given(reading=st.floats(min_value=0, max_value=300, allow_nan=False))
    def test_gt_and_le_are_complementary(self, reading: float) -> None:
        vitals = VitalSigns(heart_rate=reading)
        gt = VitalThreshold(vital="heart_rate", op="gt", value=100)
        le = VitalThreshold(vital="heart_rate", op="le", value=100)
        assert gt.evaluate(vitals, []) != le.evaluate(vitals, [])

    def test_unknown_vital_rejected(self) -> None:
        with pytest.raises(ValidationError):
            condition_adapter.validate_python(
                {"type": "vital", "vital": "cholesterol", "op": "gt", "value": 1}
            )


class TestSymptomMatch:
    """Case-insensitive substring matching over reported symptom names."""

    def test_substring_case_insensitive(self) -> None:
        condition = SymptomMatch(any_of=["chest pain"])
        assert condition.evaluate(VitalSigns(), [_symptom("Crushing CHEST PAIN on exertion")])

    def test_no_symptoms_no_match(self) -> None:
        assert SymptomMatch(any_of=["chest pain"]).evaluate(VitalSigns(), []) is False

    def test_severity_must_hold_on_the_same_symptom(self) -> None:
        condition = SymptomMatch(any_of=["bleeding"], severity="severe")
        symptoms = [
            _symptom("active bleeding", SymptomSeverity.MILD),
            _symptom("headache", SymptomSeverity.SEVERE),
        ]

        assert condition.evaluate(VitalSigns(), symptoms) is False
        assert condition.evaluate(
            VitalSigns(), [_symptom("active bleeding", SymptomSeverity.SEVERE)]
        )

    def test_blank_phrase_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SymptomMatch(any_of=["  "])

    def test_empty_phrase_list_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SymptomMatch(any_of=[])


class TestCombinators:
    """Nested all/any conditions parsed from catalog data."""

    def test_nested_condition_from_data(self) -> None:
        condition = condition_adapter.validate_python(
            {
                "type": "all",
                "conditions": [
                    {"type": "vital", "vital": "systolic_bp", "op": "lt", "value": 90},
                    {
                        "type": "any",
                        "conditions": [
                            {"type": "vital", "vital": "heart_rate", "op": "gt", "value": 100},
                            {"type": "symptom", "any_of": ["dizziness"]},
                        ],
                    },
                ],
            }
        )

        assert condition.evaluate(VitalSigns(systolic_bp=80, heart_rate=110), [])
        assert condition.evaluate(VitalSigns(systolic_bp=80), [_symptom("dizziness")])
        assert not condition.evaluate(VitalSigns(systolic_bp=80, heart_rate=90), [])
        assert not condition.evaluate(VitalSigns(heart_rate=130), [_symptom("dizziness")])

    def test_empty_combinator_rejected(self) -> None:
        with pytest.raises(ValidationError):
            condition_adapter.validate_python({"type": "any", "conditions": []})

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            condition_adapter.validate_python({"type": "lambda", "source": "True"})

    def test_conditions_are_immutable(self) -> None:
        condition = VitalThreshold(vital="spo2", op="lt", value=90)
        with pytest.raises(ValidationError, match="frozen"):
            condition.value = 85  # type: ignore[misc]


class TestCustomCondition:
    """Named predicates registered in-process."""

    @pytest.fixture
    def fever_with_pain(self) -> Iterator[str]:
        name = "test_fever_with_pain"

        @register_predicate(name)
        def _predicate(vitals: VitalSigns, symptoms: list[Symptom]) -> bool:
            return (vitals.temperature or 0) > 38 and (vitals.pain_level or 0) >= 7

        yield name
        unregister_predicate(name)

    def test_registered_predicate_evaluates(self, fever_with_pain: str) -> None:
        condition = condition_adapter.validate_python({"type": "custom", "name": fever_with_pain})

        assert isinstance(condition, CustomCondition)
        assert condition.evaluate(VitalSigns(temperature=38.6, pain_level=8), [])
        assert not condition.evaluate(VitalSigns(temperature=38.6), [])

    def test_unregistered_name_rejected(self) -> None:
        with pytest.raises(ValidationError, match="No predicate registered"):
            CustomCondition(name="does_not_exist")

    def test_duplicate_registration_rejected(self, fever_with_pain: str) -> None:
        with pytest.raises(ValueError, match="already registered"):
            register_predicate(fever_with_pain)(lambda vitals, symptoms: True)
