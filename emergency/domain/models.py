"""
Domain models for post-operative emergency detection and escalation.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; catalog entries and snapshots are frozen.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from emergency.domain.conditions import Condition


class Priority(str, Enum):
    """
    Emergency priority with a fixed total order.

    URGENT < EMERGENCY < LIFE_THREATENING. Comparisons use the rank, never the
    string value.
    """

    URGENT = "URGENT"
    EMERGENCY = "EMERGENCY"
    LIFE_THREATENING = "LIFE_THREATENING"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def _coerce(cls, other: object) -> "Priority | None":
        # Raw strings compare by level, never alphabetically; unknown names raise ValueError
        if isinstance(other, Priority):
            return other
        if isinstance(other, str):
            return cls(other)
        return None

    def __lt__(self, other: object) -> bool:
        level = self._coerce(other)
        if level is None:
            return NotImplemented
        return self.rank < level.rank

    def __le__(self, other: object) -> bool:
        level = self._coerce(other)
        if level is None:
            return NotImplemented
        return self.rank <= level.rank

    def __gt__(self, other: object) -> bool:
        level = self._coerce(other)
        if level is None:
            return NotImplemented
        return self.rank > level.rank

    def __ge__(self, other: object) -> bool:
        level = self._coerce(other)
        if level is None:
            return NotImplemented
        return self.rank >= level.rank

    @classmethod
    def highest(cls, levels: Iterable["Priority"]) -> "Priority":
        """Maximum under the total order; URGENT for an empty input."""
        return max(levels, key=lambda p: p.rank, default=cls.URGENT)


_PRIORITY_RANK = {
    Priority.URGENT: 1,
    Priority.EMERGENCY: 2,
    Priority.LIFE_THREATENING: 3,
}


class EmergencyCategory(str, Enum):
    """Closed set of emergency categories."""

    CARDIAC = "CARDIAC"
    RESPIRATORY = "RESPIRATORY"
    NEUROLOGICAL = "NEUROLOGICAL"
    HEMORRHAGIC = "HEMORRHAGIC"
    INFECTIOUS = "INFECTIOUS"
    WOUND = "WOUND"
    MEDICATION = "MEDICATION"
    METABOLIC = "METABOLIC"
    VASCULAR = "VASCULAR"
    ANAPHYLAXIS = "ANAPHYLAXIS"
    PSYCHIATRIC = "PSYCHIATRIC"


class SymptomSeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class VitalSigns(BaseModel):
    """
    Sparse physiological snapshot.

    Every field is optional: ``None`` means the reading is unknown, not zero.
    """

    model_config = ConfigDict(frozen=True)

    heart_rate: float | None = Field(None, ge=0, description="Beats per minute")
    systolic_bp: float | None = Field(None, ge=0, description="mmHg")
    diastolic_bp: float | None = Field(None, ge=0, description="mmHg")
    spo2: float | None = Field(None, ge=0, le=100, description="Oxygen saturation percent")
    temperature: float | None = Field(None, description="Degrees Celsius")
    respiratory_rate: float | None = Field(None, ge=0, description="Breaths per minute")
    blood_glucose: float | None = Field(None, ge=0, description="mg/dL")
    pain_level: float | None = Field(None, ge=0, le=10, description="0-10 scale")

    def recorded(self) -> dict[str, float]:
        """Readings that are present, in declaration order."""
        return self.model_dump(exclude_none=True)


class Symptom(BaseModel):
    """A reported symptom; its name is free text matched by substring."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"sym-{uuid4().hex[:8]}")
    name: str = Field(min_length=1)
    severity: SymptomSeverity
    onset_time: datetime | None = None
    duration: str | None = None
    description: str | None = None


class ProtocolStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    order: int = Field(ge=1)
    instruction: str
    for_patient: bool
    for_care_team: bool
    time_limit: str | None = None
    critical: bool


class Protocol(BaseModel):
    """Named ordered response template with escalation metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: EmergencyCategory
    priority: Priority
    description: str
    steps: tuple[ProtocolStep, ...] = Field(min_length=1)
    patient_instructions: tuple[str, ...]
    care_team_actions: tuple[str, ...]
    escalation_time_minutes: int = Field(ge=0)
    required_resources: tuple[str, ...] = ()

    def first_critical_step(self) -> ProtocolStep | None:
        """First step flagged critical, in declaration order."""
        return next((step for step in self.steps if step.critical), None)


class Rule(BaseModel):
    """Named condition over vitals and symptoms that points at one protocol."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: EmergencyCategory
    priority: Priority
    description: str
    condition: Condition
    protocol_id: str


class EmergencyAssessment(BaseModel):
    """Point-in-time result of running every rule against one input snapshot."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    triggered_rules: tuple[Rule, ...]
    highest_priority: Priority
    categories: tuple[EmergencyCategory, ...]
    recommended_protocols: tuple[Protocol, ...]
    immediate_actions: tuple[str, ...]
    requires_ems: bool
    vitals_snapshot: VitalSigns
    symptoms_snapshot: tuple[Symptom, ...]

    @property
    def is_emergency(self) -> bool:
        """Use this, not the priority, to tell "nothing detected" apart from URGENT."""
        return bool(self.triggered_rules)


class ContactChannel(str, Enum):
    CALL = "call"
    SMS = "sms"
    EMAIL = "email"
    ALL = "all"


class EmergencyContact(BaseModel):
    """Patient-scoped contact; priority 1 is notified first."""

    id: str = Field(default_factory=lambda: f"ec-{uuid4().hex[:8]}")
    patient_id: str
    name: str = Field(min_length=1)
    relationship: str = ""
    phone: str
    email: str | None = None
    is_primary: bool = False
    priority: int = Field(ge=1, description="Escalation rank, 1 = highest")
    available_hours: str | None = None
    notification_preference: ContactChannel = ContactChannel.CALL


class EventOutcome(str, Enum):
    RESOLVED_SELF = "resolved_self"
    RESOLVED_CARE_TEAM = "resolved_care_team"
    EMS_DISPATCHED = "ems_dispatched"
    HOSPITALIZED = "hospitalized"


class EmergencyEvent(BaseModel):
    """
    A persisted assessment.

    Everything except the resolution fields is frozen after creation.
    """

    id: str = Field(default_factory=lambda: f"emg-{uuid4().hex}", frozen=True)
    patient_id: str = Field(frozen=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), frozen=True)
    assessment: EmergencyAssessment = Field(frozen=True)
    protocols_activated: tuple[str, ...] = Field(frozen=True)
    contacts_notified: tuple[str, ...] = Field(frozen=True)
    incident_report: str = Field(frozen=True)

    resolution: str | None = None
    outcome: EventOutcome | None = None
    resolved_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


class FollowUpActionType(str, Enum):
    APPOINTMENT = "appointment"
    LAB_WORK = "lab_work"
    IMAGING = "imaging"
    MEDICATION_CHANGE = "medication_change"
    CARE_PLAN_UPDATE = "care_plan_update"
    SPECIALIST_REFERRAL = "specialist_referral"
    MONITORING_INCREASE = "monitoring_increase"


class FollowUpAction(BaseModel):
    id: str
    event_id: str
    patient_id: str
    action_type: FollowUpActionType
    description: str
    due_within_hours: int = Field(gt=0)
    assigned_to: str
    completed: bool = False
    completed_at: datetime | None = None
    notes: str | None = None


class AdjustmentType(str, Enum):
    ADD_MONITORING = "add_monitoring"
    INCREASE_FREQUENCY = "increase_frequency"
    ADD_MEDICATION = "add_medication"
    RESTRICT_ACTIVITY = "restrict_activity"
    ADD_PRECAUTION = "add_precaution"
    SPECIALIST_CONSULT = "specialist_consult"
    CHANGE_DIET = "change_diet"


class CarePlanAdjustment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    event_id: str
    patient_id: str
    adjustment_type: AdjustmentType
    description: str
    reason: str
    effective_date: datetime
    review_date: datetime


class OutcomeRecord(BaseModel):
    """Retrospective data point for quality statistics."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    patient_id: str
    emergency_category: EmergencyCategory
    priority: Priority
    detection_to_response_seconds: float = Field(ge=0)
    ems_dispatched: bool
    hospitalized: bool
    outcome: str
    follow_up_actions_count: int = Field(ge=0)
    follow_up_actions_completed: int = Field(ge=0)
    lessons_learned: str | None = None
    rules_that_fired: list[str]
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RuleFrequency(BaseModel):
    rule_id: str
    count: int


class EmergencyStatistics(BaseModel):
    """Aggregate per-patient outcome statistics."""

    total_events: int
    events_by_category: dict[str, int]
    events_by_priority: dict[str, int]
    average_response_time_seconds: float
    hospitalization_rate: float = Field(ge=0.0, le=1.0)
    ems_dispatch_rate: float = Field(ge=0.0, le=1.0)
    follow_up_completion_rate: float = Field(ge=0.0, le=1.0)
    most_common_rules: list[RuleFrequency]


class Notification(BaseModel):
    """One message addressed to one contact."""

    model_config = ConfigDict(frozen=True)

    patient_id: str
    contact_id: str
    contact_name: str
    channel: ContactChannel
    priority: Priority
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class HospitalInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str
    phone: str
    er_phone: str
    distance_miles: float = Field(ge=0)
    estimated_minutes: int = Field(ge=0)
    trauma_level: str = Field(pattern=r"^(I|II|III|IV|V)$")
    specialties: list[str]
    open_24_hours: bool
