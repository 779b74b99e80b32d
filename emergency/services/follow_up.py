"""
Post-event follow-up actions and care-plan adjustments.

Both are template driven and keyed by the event's primary category; a
LIFE_THREATENING event adds one extra item to each.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import NamedTuple

import structlog

from emergency.domain.models import (
    AdjustmentType,
    CarePlanAdjustment,
    EmergencyCategory,
    EmergencyEvent,
    FollowUpAction,
    FollowUpActionType,
    Priority,
)
from emergency.services.assessment import primary_category
from emergency.services.repository import InMemoryPatientRepository, PatientRepository

logger = structlog.get_logger(__name__)

C = EmergencyCategory


class _ActionTemplate(NamedTuple):
    action_type: FollowUpActionType
    description: str
    due_within_hours: int
    assigned_to: str


class _AdjustmentTemplate(NamedTuple):
    adjustment_type: AdjustmentType
    description: str
    reason: str


_UNIVERSAL_ACTIONS = (
    _ActionTemplate(
        FollowUpActionType.APPOINTMENT,
        "Schedule follow-up appointment with attending physician within 24 hours",
        24,
        "attending_physician",
    ),
    _ActionTemplate(
        FollowUpActionType.MONITORING_INCREASE,
        "Increase vital signs monitoring frequency to every 2 hours for 48 hours",
        1,
        "nursing_staff",
    ),
)

_CARDIAC_ACTIONS = (
    _ActionTemplate(
        FollowUpActionType.LAB_WORK,
        "Obtain troponin, BNP, CBC, and BMP within 6 hours",
        6,
        "lab_team",
    ),
    _ActionTemplate(
        FollowUpActionType.IMAGING,
        "Order echocardiogram or cardiac imaging as appropriate",
        24,
        "cardiology",
    ),
    _ActionTemplate(
        FollowUpActionType.SPECIALIST_REFERRAL,
        "Cardiology consult for ongoing management",
        48,
        "cardiology",
    ),
)

_BLEEDING_ACTIONS = (
    _ActionTemplate(
        FollowUpActionType.LAB_WORK, "CBC, coagulation panel, type and screen", 2, "lab_team"
    ),
    _ActionTemplate(
        FollowUpActionType.SPECIALIST_REFERRAL,
        "Surgical consult for wound assessment",
        12,
        "surgery",
    ),
)

_MEDICATION_ACTIONS = (
    _ActionTemplate(
        FollowUpActionType.MEDICATION_CHANGE,
        "Complete medication reconciliation and update allergy list",
        4,
        "pharmacy",
    ),
)

_CATEGORY_ACTIONS: dict[EmergencyCategory, tuple[_ActionTemplate, ...]] = {
    C.CARDIAC: _CARDIAC_ACTIONS,
    C.VASCULAR: _CARDIAC_ACTIONS,
    C.RESPIRATORY: (
        _ActionTemplate(
            FollowUpActionType.IMAGING,
            "Obtain chest X-ray and ABG if not already done",
            4,
            "radiology",
        ),
        _ActionTemplate(
            FollowUpActionType.SPECIALIST_REFERRAL,
            "Pulmonology consult if hypoxemia persists",
            24,
            "pulmonology",
        ),
    ),
    C.NEUROLOGICAL: (
        _ActionTemplate(
            FollowUpActionType.IMAGING, "CT head or MRI brain within 4 hours", 4, "radiology"
        ),
        _ActionTemplate(
            FollowUpActionType.SPECIALIST_REFERRAL,
            "Neurology consult for evaluation",
            12,
            "neurology",
        ),
    ),
    C.HEMORRHAGIC: _BLEEDING_ACTIONS,
    C.WOUND: _BLEEDING_ACTIONS,
    C.INFECTIOUS: (
        _ActionTemplate(
            FollowUpActionType.LAB_WORK,
            "Blood cultures, CBC with differential, lactate, CRP, procalcitonin",
            2,
            "lab_team",
        ),
        _ActionTemplate(
            FollowUpActionType.MEDICATION_CHANGE,
            "Review and adjust antibiotic coverage based on culture results",
            48,
            "infectious_disease",
        ),
    ),
    C.MEDICATION: _MEDICATION_ACTIONS,
    C.ANAPHYLAXIS: _MEDICATION_ACTIONS,
    C.PSYCHIATRIC: (
        _ActionTemplate(
            FollowUpActionType.SPECIALIST_REFERRAL,
            "Psychiatric follow-up evaluation within 24 hours",
            24,
            "psychiatry",
        ),
        _ActionTemplate(
            FollowUpActionType.CARE_PLAN_UPDATE,
            "Update care plan with safety precautions and mental health interventions",
            4,
            "care_team",
        ),
    ),
}

_LIFE_THREATENING_ACTION = _ActionTemplate(
    FollowUpActionType.CARE_PLAN_UPDATE,
    "Comprehensive care plan review and update within 12 hours",
    12,
    "attending_physician",
)

_CARDIAC_ADJUSTMENTS = (
    _AdjustmentTemplate(
        AdjustmentType.ADD_MONITORING,
        "Add continuous telemetry monitoring",
        "Cardiac emergency requires continuous monitoring",
    ),
    _AdjustmentTemplate(
        AdjustmentType.RESTRICT_ACTIVITY,
        "Bed rest with gradual activity increase per physician",
        "Post-cardiac event activity restriction",
    ),
)

_BLEEDING_ADJUSTMENTS = (
    _AdjustmentTemplate(
        AdjustmentType.ADD_PRECAUTION,
        "Bleeding precautions: avoid NSAIDs, soft toothbrush, no razor shaving",
        "Hemorrhagic event requires bleeding precautions",
    ),
)

_MEDICATION_ADJUSTMENTS = (
    _AdjustmentTemplate(
        AdjustmentType.ADD_PRECAUTION,
        "Updated allergy alert and medication precautions in chart",
        "Medication-related emergency",
    ),
)

_CATEGORY_ADJUSTMENTS: dict[EmergencyCategory, tuple[_AdjustmentTemplate, ...]] = {
    C.CARDIAC: _CARDIAC_ADJUSTMENTS,
    C.VASCULAR: _CARDIAC_ADJUSTMENTS,
    C.HEMORRHAGIC: _BLEEDING_ADJUSTMENTS,
    C.WOUND: _BLEEDING_ADJUSTMENTS,
    C.INFECTIOUS: (
        _AdjustmentTemplate(
            AdjustmentType.ADD_MEDICATION,
            "Add or adjust antibiotic/antimicrobial coverage",
            "Infectious emergency detected",
        ),
    ),
    C.MEDICATION: _MEDICATION_ADJUSTMENTS,
    C.ANAPHYLAXIS: _MEDICATION_ADJUSTMENTS,
    C.NEUROLOGICAL: (
        _AdjustmentTemplate(
            AdjustmentType.ADD_PRECAUTION,
            "Fall precautions and neurological checks every 2 hours",
            "Neurological emergency event",
        ),
    ),
    C.PSYCHIATRIC: (
        _AdjustmentTemplate(
            AdjustmentType.ADD_PRECAUTION,
            "Safety precautions: environmental safety check, sharps removal, "
            "1:1 observation consideration",
            "Psychiatric emergency event",
        ),
        _AdjustmentTemplate(
            AdjustmentType.SPECIALIST_CONSULT,
            "Add psychiatry to care team for ongoing management",
            "Psychiatric emergency requires specialist involvement",
        ),
    ),
    C.METABOLIC: (
        _AdjustmentTemplate(
            AdjustmentType.ADD_MONITORING,
            "Point-of-care glucose monitoring every 4 hours",
            "Metabolic emergency requires close glucose monitoring",
        ),
        _AdjustmentTemplate(
            AdjustmentType.CHANGE_DIET,
            "Consult dietitian and adjust dietary plan",
            "Metabolic emergency may require dietary changes",
        ),
    ),
}

_LIFE_THREATENING_ADJUSTMENT = _AdjustmentTemplate(
    AdjustmentType.SPECIALIST_CONSULT,
    "Multidisciplinary team review of care plan within 24 hours",
    "Life-threatening event requires comprehensive care plan review",
)


class FollowUpGenerator:
    """Creates and tracks follow-up actions per patient."""

    def __init__(self, repository: PatientRepository[FollowUpAction] | None = None) -> None:
        self._repository: PatientRepository[FollowUpAction] = (
            repository or InMemoryPatientRepository[FollowUpAction]()
        )
        self.logger = logger.bind(component="follow_up_generator")

    def generate(self, event: EmergencyEvent) -> list[FollowUpAction]:
        """
        Build and store the follow-up actions for an event.

        Not idempotent: a second call for the same event appends a second set.
        """
        category = primary_category(event.assessment)
        base_id = f"fu-{event.id}"
        templates = (*_UNIVERSAL_ACTIONS, *_CATEGORY_ACTIONS.get(category, ()))

        actions = [
            self._action(event, f"{base_id}-{index:03d}", template)
            for index, template in enumerate(templates, start=1)
        ]
        if event.assessment.highest_priority is Priority.LIFE_THREATENING:
            actions.append(self._action(event, f"{base_id}-lt-001", _LIFE_THREATENING_ACTION))

        self._repository.append(event.patient_id, actions)
        self.logger.info(
            "follow_up_actions_generated",
            patient_id=event.patient_id,
            event_id=event.id,
            category=category.value,
            count=len(actions),
        )
        return actions

    def list(self, patient_id: str, pending_only: bool = False) -> list[FollowUpAction]:
        actions = self._repository.list(patient_id)
        if pending_only:
            return [a for a in actions if not a.completed]
        return actions

    def for_event(self, patient_id: str, event_id: str) -> list[FollowUpAction]:
        return [a for a in self._repository.list(patient_id) if a.event_id == event_id]

    def complete(self, patient_id: str, action_id: str, notes: str | None = None) -> bool:
        def mark(actions: list[FollowUpAction]) -> bool:
            action = next((a for a in actions if a.id == action_id), None)
            if action is None:
                return False
            action.completed = True
            action.completed_at = datetime.now(UTC)
            action.notes = notes
            return True

        completed = self._repository.update(patient_id, mark)
        if completed:
            self.logger.info("follow_up_completed", patient_id=patient_id, action_id=action_id)
        return completed

    @staticmethod
    def _action(
        event: EmergencyEvent, action_id: str, template: _ActionTemplate
    ) -> FollowUpAction:
        return FollowUpAction(
            id=action_id,
            event_id=event.id,
            patient_id=event.patient_id,
            action_type=template.action_type,
            description=template.description,
            due_within_hours=template.due_within_hours,
            assigned_to=template.assigned_to,
        )


class CarePlanAdjuster:
    """Derives care-plan adjustments from an event, each with a review date."""

    def __init__(
        self,
        review_window_days: int = 7,
        repository: PatientRepository[CarePlanAdjustment] | None = None,
    ) -> None:
        self.review_window = timedelta(days=review_window_days)
        self._repository: PatientRepository[CarePlanAdjustment] = (
            repository or InMemoryPatientRepository[CarePlanAdjustment]()
        )
        self.logger = logger.bind(component="care_plan_adjuster")

    def generate(self, event: EmergencyEvent) -> list[CarePlanAdjustment]:
        category = primary_category(event.assessment)
        base_id = f"cpa-{event.id}"
        effective = datetime.now(UTC)
        rule_names = ", ".join(r.name for r in event.assessment.triggered_rules)

        templates = (
            _AdjustmentTemplate(
                AdjustmentType.INCREASE_FREQUENCY,
                "Increase vital signs check frequency",
                f"Emergency event: {rule_names}",
            ),
            *_CATEGORY_ADJUSTMENTS.get(category, ()),
        )
        adjustments = [
            self._adjustment(event, f"{base_id}-{index:03d}", template, effective)
            for index, template in enumerate(templates, start=1)
        ]
        if event.assessment.highest_priority is Priority.LIFE_THREATENING:
            adjustments.append(
                self._adjustment(
                    event, f"{base_id}-lt-001", _LIFE_THREATENING_ADJUSTMENT, effective
                )
            )

        self._repository.append(event.patient_id, adjustments)
        self.logger.info(
            "care_plan_adjusted",
            patient_id=event.patient_id,
            event_id=event.id,
            category=category.value,
            count=len(adjustments),
        )
        return adjustments

    def list(self, patient_id: str) -> list[CarePlanAdjustment]:
        return self._repository.list(patient_id)

    def _adjustment(
        self,
        event: EmergencyEvent,
        adjustment_id: str,
        template: _AdjustmentTemplate,
        effective: datetime,
    ) -> CarePlanAdjustment:
        return CarePlanAdjustment(
            id=adjustment_id,
            event_id=event.id,
            patient_id=event.patient_id,
            adjustment_type=template.adjustment_type,
            description=template.description,
            reason=template.reason,
            effective_date=effective,
            review_date=effective + self.review_window,
        )
