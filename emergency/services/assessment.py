"""
Folds triggered rules into a single priority-classified assessment.
"""

from collections.abc import Sequence

import structlog

from emergency.domain.catalog import ProtocolCatalog
from emergency.domain.models import (
    EmergencyAssessment,
    EmergencyCategory,
    Priority,
    Protocol,
    Rule,
    Symptom,
    VitalSigns,
)

logger = structlog.get_logger(__name__)

ROUTINE_MONITORING_ACTION = "Continue routine monitoring."


class AssessmentBuilder:
    """
    Builds an EmergencyAssessment from the rules that fired.

    - highest priority is the max under URGENT < EMERGENCY < LIFE_THREATENING
    - categories and protocols are de-duplicated, first occurrence wins
    - immediate actions are each protocol's first critical step, de-duplicated
    - EMS is required for LIFE_THREATENING, or when any protocol's escalation
      budget is within the threshold
    """

    def __init__(
        self, protocols: ProtocolCatalog, ems_escalation_threshold_minutes: int = 5
    ) -> None:
        self.protocols = protocols
        self.ems_escalation_threshold_minutes = ems_escalation_threshold_minutes
        self.logger = logger.bind(component="assessment_builder")

    def no_emergency(
        self, vitals: VitalSigns, symptoms: Sequence[Symptom]
    ) -> EmergencyAssessment:
        """Sentinel for "nothing detected"; callers check ``triggered_rules``, not priority."""
        return EmergencyAssessment(
            triggered_rules=(),
            highest_priority=Priority.URGENT,
            categories=(),
            recommended_protocols=(),
            immediate_actions=(ROUTINE_MONITORING_ACTION,),
            requires_ems=False,
            vitals_snapshot=vitals,
            symptoms_snapshot=tuple(symptoms),
        )

    def build(
        self,
        triggered_rules: Sequence[Rule],
        vitals: VitalSigns,
        symptoms: Sequence[Symptom],
    ) -> EmergencyAssessment:
        if not triggered_rules:
            return self.no_emergency(vitals, symptoms)

        highest = Priority.highest(r.priority for r in triggered_rules)
        categories = tuple(dict.fromkeys(r.category for r in triggered_rules))
        protocols = self._resolve_protocols(triggered_rules)
        actions = self._immediate_actions(protocols)

        requires_ems = highest is Priority.LIFE_THREATENING or any(
            p.escalation_time_minutes <= self.ems_escalation_threshold_minutes for p in protocols
        )

        return EmergencyAssessment(
            triggered_rules=tuple(triggered_rules),
            highest_priority=highest,
            categories=categories,
            recommended_protocols=tuple(protocols),
            immediate_actions=tuple(actions),
            requires_ems=requires_ems,
            vitals_snapshot=vitals,
            symptoms_snapshot=tuple(symptoms),
        )

    def _resolve_protocols(self, rules: Sequence[Rule]) -> list[Protocol]:
        protocols: list[Protocol] = []
        for protocol_id in dict.fromkeys(r.protocol_id for r in rules):
            protocol = self.protocols.get(protocol_id)
            if protocol is None:
                # Catalog load rejects this; rules built outside the catalog can still get here
                self.logger.warning("protocol_not_found", protocol_id=protocol_id)
                continue
            protocols.append(protocol)
        return protocols

    @staticmethod
    def _immediate_actions(protocols: Sequence[Protocol]) -> list[str]:
        actions: list[str] = []
        for protocol in protocols:
            step = protocol.first_critical_step()
            if step is not None:
                actions.append(step.instruction)
        return list(dict.fromkeys(actions))


def primary_category(assessment: EmergencyAssessment) -> EmergencyCategory:
    """
    First listed category, which downstream templates key off.

    This is the category of the first rule that fired, not necessarily the most
    severe one. Empty assessments fall back to INFECTIOUS.
    """
    if assessment.categories:
        return assessment.categories[0]
    return EmergencyCategory.INFECTIOUS
