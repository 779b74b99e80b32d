"""
Emergency services.

Rule evaluation, assessment building, contact notification, event history,
follow-up generation, outcome tracking and the workflow that ties them together.
"""

from .assessment import AssessmentBuilder, primary_category
from .contacts import ContactRegistry
from .event_recorder import EventRecorder, render_incident_report
from .follow_up import CarePlanAdjuster, FollowUpGenerator
from .hospitals import HospitalDirectory
from .notifications import NotificationDispatcher, build_notification_message
from .outcomes import OutcomeTracker
from .repository import InMemoryPatientRepository, PatientRepository
from .rule_evaluator import Result, RuleEvaluator
from .workflow import EmergencyWorkflow

__all__ = [
    "AssessmentBuilder",
    "CarePlanAdjuster",
    "ContactRegistry",
    "EmergencyWorkflow",
    "EventRecorder",
    "FollowUpGenerator",
    "HospitalDirectory",
    "InMemoryPatientRepository",
    "NotificationDispatcher",
    "OutcomeTracker",
    "PatientRepository",
    "Result",
    "RuleEvaluator",
    "build_notification_message",
    "primary_category",
    "render_incident_report",
]
