"""
Outcome records and aggregate quality statistics per patient.
"""

from collections import Counter

import structlog

from emergency.domain.models import (
    EmergencyEvent,
    EmergencyStatistics,
    EventOutcome,
    OutcomeRecord,
    RuleFrequency,
)
from emergency.services.assessment import primary_category
from emergency.services.event_recorder import EventRecorder
from emergency.services.follow_up import FollowUpGenerator
from emergency.services.repository import InMemoryPatientRepository, PatientRepository

logger = structlog.get_logger(__name__)

_EMS_OUTCOMES = frozenset({EventOutcome.EMS_DISPATCHED, EventOutcome.HOSPITALIZED})


class OutcomeTracker:
    """
    Records what happened after an event and aggregates it.

    Follow-up counts are snapshotted at record time; completing an action
    afterwards does not change an existing record.
    """

    def __init__(
        self,
        events: EventRecorder,
        follow_ups: FollowUpGenerator,
        top_rules_limit: int = 10,
        repository: PatientRepository[OutcomeRecord] | None = None,
    ) -> None:
        self.events = events
        self.follow_ups = follow_ups
        self.top_rules_limit = top_rules_limit
        self._repository: PatientRepository[OutcomeRecord] = (
            repository or InMemoryPatientRepository[OutcomeRecord]()
        )
        self.logger = logger.bind(component="outcome_tracker")

    def record(
        self,
        event: EmergencyEvent,
        detection_to_response_seconds: float,
        lessons_learned: str | None = None,
    ) -> OutcomeRecord:
        actions = self.follow_ups.for_event(event.patient_id, event.id)

        record = OutcomeRecord(
            event_id=event.id,
            patient_id=event.patient_id,
            emergency_category=primary_category(event.assessment),
            priority=event.assessment.highest_priority,
            detection_to_response_seconds=detection_to_response_seconds,
            ems_dispatched=event.outcome in _EMS_OUTCOMES,
            hospitalized=event.outcome is EventOutcome.HOSPITALIZED,
            outcome=event.resolution or "pending",
            follow_up_actions_count=len(actions),
            follow_up_actions_completed=sum(1 for a in actions if a.completed),
            lessons_learned=lessons_learned,
            rules_that_fired=[r.id for r in event.assessment.triggered_rules],
        )
        self._repository.append(event.patient_id, [record])

        self.logger.info(
            "outcome_recorded",
            patient_id=event.patient_id,
            event_id=event.id,
            outcome=record.outcome,
            response_seconds=detection_to_response_seconds,
        )
        return record

    def outcomes(self, patient_id: str) -> list[OutcomeRecord]:
        return self._repository.list(patient_id)

    def statistics(self, patient_id: str, top_n: int | None = None) -> EmergencyStatistics:
        """
        Aggregate the patient's outcome records.

        Rates divide by the number of outcome records (1 when there are none).
        ``total_events`` counts recorded events, which may exceed the number
        of outcomes.
        """
        outcomes = self.outcomes(patient_id)
        limit = self.top_rules_limit if top_n is None else top_n
        denominator = len(outcomes) or 1

        by_category = Counter(o.emergency_category.value for o in outcomes)
        by_priority = Counter(o.priority.value for o in outcomes)
        rule_counts = Counter(rule_id for o in outcomes for rule_id in o.rules_that_fired)

        total_follow_ups = sum(o.follow_up_actions_count for o in outcomes)
        completed_follow_ups = sum(o.follow_up_actions_completed for o in outcomes)

        return EmergencyStatistics(
            total_events=len(self.events.history(patient_id)),
            events_by_category=dict(by_category),
            events_by_priority=dict(by_priority),
            average_response_time_seconds=(
                sum(o.detection_to_response_seconds for o in outcomes) / denominator
            ),
            hospitalization_rate=sum(1 for o in outcomes if o.hospitalized) / denominator,
            ems_dispatch_rate=sum(1 for o in outcomes if o.ems_dispatched) / denominator,
            follow_up_completion_rate=(
                completed_follow_ups / total_follow_ups if total_follow_ups else 1.0
            ),
            most_common_rules=[
                RuleFrequency(rule_id=rule_id, count=count)
                for rule_id, count in rule_counts.most_common(limit)
            ],
        )
