"""
End-to-end emergency handling for one vitals/symptoms snapshot.

Pipeline:
1. Evaluate rules and build the assessment
2. Select notification recipients
3. Record the event (before anything is delivered)
4. Deliver notifications
5. Generate follow-ups and care-plan adjustments
"""

from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from emergency.config import AppConfig, get_config
from emergency.domain.catalog import RuleCatalog, load_catalogs
from emergency.domain.models import (
    EmergencyAssessment,
    EmergencyEvent,
    Priority,
    Symptom,
    VitalSigns,
)
from emergency.services.assessment import AssessmentBuilder
from emergency.services.contacts import ContactRegistry
from emergency.services.event_recorder import EventRecorder
from emergency.services.follow_up import CarePlanAdjuster, FollowUpGenerator
from emergency.services.hospitals import HospitalDirectory
from emergency.services.notifications import NotificationDispatcher
from emergency.services.outcomes import OutcomeTracker
from emergency.services.rule_evaluator import RuleEvaluator

logger = structlog.get_logger(__name__)


class EmergencyWorkflow:
    """
    Wires the detection, notification and documentation components together.

    Components are constructed by the caller (or by ``from_config``) so each
    can be replaced independently in tests.
    """

    def __init__(
        self,
        evaluator: RuleEvaluator,
        builder: AssessmentBuilder,
        contacts: ContactRegistry,
        notifier: NotificationDispatcher,
        events: EventRecorder,
        follow_ups: FollowUpGenerator,
        care_plans: CarePlanAdjuster,
        outcomes: OutcomeTracker,
        hospitals: HospitalDirectory | None = None,
    ) -> None:
        self.evaluator = evaluator
        self.builder = builder
        self.contacts = contacts
        self.notifier = notifier
        self.events = events
        self.follow_ups = follow_ups
        self.care_plans = care_plans
        self.outcomes = outcomes
        self.hospitals = hospitals
        self.logger = logger.bind(component="emergency_workflow")

    @classmethod
    def from_config(
        cls, config: AppConfig | None = None, catalog: RuleCatalog | None = None
    ) -> "EmergencyWorkflow":
        """Build the default in-memory workflow from application config."""
        config = config or get_config()
        catalog = catalog or load_catalogs(
            rules_path=config.catalog.rules_path,
            protocols_path=config.catalog.protocols_path,
        )

        contacts = ContactRegistry()
        events = EventRecorder()
        follow_ups = FollowUpGenerator()

        return cls(
            evaluator=RuleEvaluator(catalog, max_workers=config.engine.max_evaluation_workers),
            builder=AssessmentBuilder(
                catalog.protocols,
                ems_escalation_threshold_minutes=config.engine.ems_escalation_threshold_minutes,
            ),
            contacts=contacts,
            notifier=NotificationDispatcher(contacts, config.notifications),
            events=events,
            follow_ups=follow_ups,
            care_plans=CarePlanAdjuster(review_window_days=config.care_plan.review_window_days),
            outcomes=OutcomeTracker(
                events, follow_ups, top_rules_limit=config.outcomes.top_rules_limit
            ),
            hospitals=HospitalDirectory.load(config.catalog.hospitals_path),
        )

    def evaluate(self, vitals: VitalSigns, symptoms: Sequence[Symptom]) -> EmergencyAssessment:
        """Classify a snapshot without recording or notifying anything."""
        triggered = self.evaluator.evaluate(vitals, symptoms)
        return self.builder.build(triggered, vitals, symptoms)

    async def handle_emergency(
        self,
        patient_id: str,
        vitals: VitalSigns,
        symptoms: Sequence[Symptom],
    ) -> EmergencyEvent | None:
        """
        Run the full pipeline for one snapshot.

        Returns None, with nothing recorded or sent, when no rule triggers.
        """
        started = datetime.now(UTC)
        assessment = self.evaluate(vitals, symptoms)

        if not assessment.is_emergency:
            self.logger.debug("no_emergency_detected", patient_id=patient_id)
            return None

        recipients = self.notifier.select_recipients(patient_id, assessment.highest_priority)
        event = self.events.record(patient_id, assessment, [c.name for c in recipients])
        await self.notifier.deliver(patient_id, assessment, recipients)

        if assessment.highest_priority is not Priority.LIFE_THREATENING:
            self.logger.warning(
                "physician_confirmation_required",
                patient_id=patient_id,
                event_id=event.id,
                priority=assessment.highest_priority.value,
            )

        follow_ups = self.follow_ups.generate(event)
        adjustments = self.care_plans.generate(event)

        self.logger.info(
            "emergency_handled",
            patient_id=patient_id,
            event_id=event.id,
            priority=assessment.highest_priority.value,
            requires_ems=assessment.requires_ems,
            contacts_notified=len(recipients),
            follow_ups=len(follow_ups),
            care_plan_adjustments=len(adjustments),
            duration_seconds=round((datetime.now(UTC) - started).total_seconds(), 3),
        )
        return event
