"""
Tests for outcome recording and aggregate statistics.
"""

from collections.abc import Callable

import pytest

from emergency.domain.catalog import RuleCatalog
from emergency.domain.models import (
    EmergencyCategory,
    EmergencyEvent,
    EventOutcome,
    Priority,
    VitalSigns,
)
from emergency.services.assessment import AssessmentBuilder
from emergency.services.event_recorder import EventRecorder
from emergency.services.follow_up import FollowUpGenerator
from emergency.services.outcomes import OutcomeTracker

PATIENT_ID = "patient-001"

RecordEvent = Callable[..., EmergencyEvent]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def follow_ups() -> FollowUpGenerator:
    return FollowUpGenerator()


@pytest.fixture
def tracker(recorder: EventRecorder, follow_ups: FollowUpGenerator) -> OutcomeTracker:
    return OutcomeTracker(recorder, follow_ups)


@pytest.fixture
def record_event(
    recorder: EventRecorder, builder: AssessmentBuilder, catalog: RuleCatalog
) -> RecordEvent:
    def _record(*rule_ids: str) -> EmergencyEvent:
        rules = [catalog.get(rule_id) for rule_id in rule_ids]
        assessment = builder.build([r for r in rules if r is not None], VitalSigns(), [])
        return recorder.record(PATIENT_ID, assessment, [])

    return _record


class TestOutcomeRecord:
    def test_pending_event(self, tracker: OutcomeTracker, record_event: RecordEvent) -> None:
        event = record_event("RULE-001")

        record = tracker.record(event, detection_to_response_seconds=45)

        assert record.event_id == event.id
        assert record.emergency_category is EmergencyCategory.CARDIAC
        assert record.priority is Priority.EMERGENCY
        assert record.outcome == "pending"
        assert record.ems_dispatched is False
        assert record.hospitalized is False
        assert record.rules_that_fired == ["RULE-001"]
        assert record.follow_up_actions_count == 0

    @pytest.mark.parametrize(
        ("outcome", "ems", "hospitalized"),
        [
            (EventOutcome.RESOLVED_SELF, False, False),
            (EventOutcome.RESOLVED_CARE_TEAM, False, False),
            (EventOutcome.EMS_DISPATCHED, True, False),
            (EventOutcome.HOSPITALIZED, True, True),
        ],
    )
    def test_outcome_flags(
        self,
        tracker: OutcomeTracker,
        recorder: EventRecorder,
        record_event: RecordEvent,
        outcome: EventOutcome,
        ems: bool,
        hospitalized: bool,
    ) -> None:
        event = record_event("RULE-004")
        recorder.resolve(PATIENT_ID, event.id, "Handled", outcome)

        record = tracker.record(event, 30)

        assert record.outcome == "Handled"
        assert record.ems_dispatched is ems
        assert record.hospitalized is hospitalized

    def test_follow_up_counts_snapshot(
        self,
        tracker: OutcomeTracker,
        follow_ups: FollowUpGenerator,
        record_event: RecordEvent,
    ) -> None:
        event = record_event("RULE-001")
        actions = follow_ups.generate(event)
        follow_ups.complete(PATIENT_ID, actions[0].id)
        follow_ups.complete(PATIENT_ID, actions[1].id)

        record = tracker.record(event, 60, lessons_learned="Earlier beta-blocker review")

        assert record.follow_up_actions_count == len(actions)
        assert record.follow_up_actions_completed == 2
        assert record.lessons_learned == "Earlier beta-blocker review"
        assert tracker.outcomes(PATIENT_ID) == [record]


class TestStatistics:
    def test_empty_patient(self, tracker: OutcomeTracker) -> None:
        stats = tracker.statistics(PATIENT_ID)

        assert stats.total_events == 0
        assert stats.events_by_category == {}
        assert stats.average_response_time_seconds == 0
        assert stats.hospitalization_rate == 0
        assert stats.ems_dispatch_rate == 0
        assert stats.follow_up_completion_rate == 1.0
        assert stats.most_common_rules == []

    def test_aggregates(
        self,
        tracker: OutcomeTracker,
        recorder: EventRecorder,
        follow_ups: FollowUpGenerator,
        record_event: RecordEvent,
    ) -> None:
        tachy = record_event("RULE-001")
        bleed = record_event("RULE-004", "RULE-018")
        record_event("RULE-001")  # recorded but never given an outcome

        recorder.resolve(PATIENT_ID, bleed.id, "Admitted", EventOutcome.HOSPITALIZED)
        tachy_actions = follow_ups.generate(tachy)
        follow_ups.complete(PATIENT_ID, tachy_actions[0].id)

        tracker.record(tachy, 30)
        tracker.record(bleed, 90)

        stats = tracker.statistics(PATIENT_ID)

        assert stats.total_events == 3
        assert stats.events_by_category == {"CARDIAC": 2}
        assert stats.events_by_priority == {"EMERGENCY": 1, "LIFE_THREATENING": 1}
        assert stats.average_response_time_seconds == pytest.approx(60.0)
        assert stats.hospitalization_rate == pytest.approx(0.5)
        assert stats.ems_dispatch_rate == pytest.approx(0.5)
        assert stats.follow_up_completion_rate == pytest.approx(1 / len(tachy_actions))
        assert [(r.rule_id, r.count) for r in stats.most_common_rules] == [
            ("RULE-001", 1),
            ("RULE-004", 1),
            ("RULE-018", 1),
        ]

    def test_top_rules_ordered_by_count_then_first_seen(
        self, tracker: OutcomeTracker, record_event: RecordEvent
    ) -> None:
        for rule_ids in (("RULE-018",), ("RULE-001",), ("RULE-001", "RULE-018"), ("RULE-004",)):
            tracker.record(record_event(*rule_ids), 10)

        stats = tracker.statistics(PATIENT_ID, top_n=2)

        assert [(r.rule_id, r.count) for r in stats.most_common_rules] == [
            ("RULE-018", 2),
            ("RULE-001", 2),
        ]
