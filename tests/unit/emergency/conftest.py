"""Shared fixtures for the emergency test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from emergency.domain.catalog import RuleCatalog, load_catalogs
from emergency.domain.models import EmergencyContact
from emergency.services.assessment import AssessmentBuilder
from emergency.services.rule_evaluator import RuleEvaluator

PATIENT_ID = "patient-001"


@pytest.fixture(scope="session")
def catalog() -> RuleCatalog:
    """The packaged rule and protocol tables."""
    return load_catalogs()


@pytest.fixture
def evaluator(catalog: RuleCatalog) -> RuleEvaluator:
    return RuleEvaluator(catalog)


@pytest.fixture
def builder(catalog: RuleCatalog) -> AssessmentBuilder:
    return AssessmentBuilder(catalog.protocols)


@pytest.fixture
def make_contact() -> Callable[..., EmergencyContact]:
    def _make(name: str, priority: int, is_primary: bool = False, **kwargs) -> EmergencyContact:
        return EmergencyContact(
            patient_id=kwargs.pop("patient_id", PATIENT_ID),
            name=name,
            relationship=kwargs.pop("relationship", "family"),
            phone=kwargs.pop("phone", "555-0100"),
            is_primary=is_primary,
            priority=priority,
            **kwargs,
        )

    return _make

