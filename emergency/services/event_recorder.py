"""
Append-only per-patient emergency history.

Each non-trivial assessment becomes exactly one EmergencyEvent carrying a
plain-text incident report. After creation only the resolution fields change.
"""

from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from emergency.domain.models import EmergencyAssessment, EmergencyEvent, EventOutcome
from emergency.services.repository import InMemoryPatientRepository, PatientRepository

logger = structlog.get_logger(__name__)

_RULE = "=" * 80

# (field, label, unit suffix) in report order
_VITAL_LINES = (
    ("heart_rate", "Heart Rate", " bpm"),
    ("systolic_bp", "Systolic BP", " mmHg"),
    ("diastolic_bp", "Diastolic BP", " mmHg"),
    ("spo2", "SpO2", "%"),
    ("temperature", "Temperature", " C"),
    ("respiratory_rate", "Respiratory Rate", "/min"),
    ("blood_glucose", "Blood Glucose", " mg/dL"),
    ("pain_level", "Pain Level", "/10"),
)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def render_incident_report(assessment: EmergencyAssessment) -> str:
    """Deterministic text projection of an assessment for chart integration."""
    vitals = assessment.vitals_snapshot
    vital_lines = [
        f"  {label}: {_fmt(getattr(vitals, field))}{unit}"
        for field, label, unit in _VITAL_LINES
        if getattr(vitals, field) is not None
    ]
    symptom_lines = [f"  - {s.name} ({s.severity.value})" for s in assessment.symptoms_snapshot]
    action_lines = [f"  {i}. {a}" for i, a in enumerate(assessment.immediate_actions, start=1)]

    protocol_blocks = []
    for protocol in assessment.recommended_protocols:
        block = [
            f"  {protocol.name} (Escalation: {protocol.escalation_time_minutes} min)",
            "  Patient Instructions:",
            *(f"    - {inst}" for inst in protocol.patient_instructions),
            "  Care Team Actions:",
            *(f"    - {act}" for act in protocol.care_team_actions),
        ]
        protocol_blocks.append("\n".join(block))

    lines = [
        _RULE,
        "EMERGENCY INCIDENT REPORT".center(80).rstrip(),
        _RULE,
        f"Report Generated: {assessment.timestamp.isoformat()}",
        f"Priority Level:   {assessment.highest_priority.value}",
        f"EMS Required:     {'YES' if assessment.requires_ems else 'No'}",
        "",
        "TRIGGERED RULES:",
        f"  {', '.join(r.name for r in assessment.triggered_rules)}",
        "",
        "CATEGORIES:",
        f"  {', '.join(c.value for c in assessment.categories)}",
        "",
        "VITAL SIGNS AT TIME OF EVENT:",
        "\n".join(vital_lines) or "  No vital signs recorded",
        "",
        "SYMPTOMS REPORTED:",
        "\n".join(symptom_lines) or "  No symptoms reported",
        "",
        "ACTIVATED PROTOCOLS:",
        f"  {', '.join(p.name for p in assessment.recommended_protocols)}",
        "",
        "IMMEDIATE ACTIONS RECOMMENDED:",
        "\n".join(action_lines),
        "",
        "PROTOCOL DETAILS:",
        "\n\n".join(protocol_blocks),
        _RULE,
        "END OF INCIDENT REPORT".center(80).rstrip(),
        _RULE,
    ]
    return "\n".join(lines)


class EventRecorder:
    """Persists assessments as EmergencyEvents, one history list per patient."""

    def __init__(self, repository: PatientRepository[EmergencyEvent] | None = None) -> None:
        self._repository: PatientRepository[EmergencyEvent] = (
            repository or InMemoryPatientRepository[EmergencyEvent]()
        )
        self.logger = logger.bind(component="event_recorder")

    def record(
        self,
        patient_id: str,
        assessment: EmergencyAssessment,
        contacts_notified: Sequence[str],
    ) -> EmergencyEvent:
        if not assessment.is_emergency:
            raise ValueError("Cannot record an assessment with no triggered rules")

        event = EmergencyEvent(
            patient_id=patient_id,
            assessment=assessment,
            protocols_activated=tuple(p.id for p in assessment.recommended_protocols),
            contacts_notified=tuple(contacts_notified),
            incident_report=render_incident_report(assessment),
        )
        self._repository.append(patient_id, [event])

        self.logger.info(
            "emergency_event_recorded",
            patient_id=patient_id,
            event_id=event.id,
            priority=assessment.highest_priority.value,
            rules=[r.id for r in assessment.triggered_rules],
            requires_ems=assessment.requires_ems,
        )
        return event

    def history(self, patient_id: str) -> list[EmergencyEvent]:
        """Events for one patient in insertion order."""
        return self._repository.list(patient_id)

    def get(self, patient_id: str, event_id: str) -> EmergencyEvent | None:
        return next((e for e in self.history(patient_id) if e.id == event_id), None)

    def resolve(
        self,
        patient_id: str,
        event_id: str,
        resolution: str,
        outcome: EventOutcome | None = None,
    ) -> bool:
        """
        Set resolution, outcome and resolved_at on an event.

        Repeated calls overwrite the previous resolution. Returns False when the
        event is unknown.
        """

        def apply(events: list[EmergencyEvent]) -> bool:
            event = next((e for e in events if e.id == event_id), None)
            if event is None:
                return False
            event.resolution = resolution
            event.outcome = outcome
            event.resolved_at = datetime.now(UTC)
            return True

        resolved = self._repository.update(patient_id, apply)
        if resolved:
            self.logger.info(
                "emergency_event_resolved",
                patient_id=patient_id,
                event_id=event_id,
                outcome=outcome.value if outcome else None,
            )
        else:
            self.logger.warning(
                "emergency_event_not_found", patient_id=patient_id, event_id=event_id
            )
        return resolved
