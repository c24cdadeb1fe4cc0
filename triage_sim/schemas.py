"""
Pydantic schemas for the triage simulation.

All data structures exchanged between the environment, policies and the
orchestrator are defined here.

Design Philosophy:
- Situations and actions are tagged unions keyed on ``type`` so each kind only
  carries the fields it needs
- Per-step records (situations, actions, rewards, experiences) are frozen once
  created; nothing downstream mutates them
- Aggregates (episode results, metrics) are read-only snapshots recomputed from
  authoritative history rather than edited in place
"""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import Config


def utcnow() -> datetime:
    """Timezone-aware wall-clock timestamp used for all records."""
    return datetime.now(timezone.utc)


# ============================================================================
# Enumerations
# ============================================================================


class StateType(str, Enum):
    INITIAL = "initial"
    PATIENT_ARRIVAL = "patient_arrival"
    TRIAGE_ASSESSMENT = "triage_assessment"
    WAITING = "waiting"
    CONSULTATION = "consultation"
    TREATMENT = "treatment"
    DISCHARGE = "discharge"
    TRANSFER = "transfer"
    EMERGENCY = "emergency"


class ActionType(str, Enum):
    TRIAGE_ASSIGN = "triage_assign"
    PRIORITIZE_PATIENT = "prioritize_patient"
    SCHEDULE_APPOINTMENT = "schedule_appointment"
    REQUEST_TESTS = "request_tests"
    PRESCRIBE_MEDICATION = "prescribe_medication"
    REFER_SPECIALIST = "refer_specialist"
    DISCHARGE_PATIENT = "discharge_patient"
    ESCALATE_CARE = "escalate_care"
    REASSESS_CONDITION = "reassess_condition"
    WAIT = "wait"


class TriagePriority(IntEnum):
    """Ordinal urgency rank. Lower number = more urgent."""

    IMMEDIATE = 1    # Life-threatening
    URGENT = 2       # Within 15 minutes
    LESS_URGENT = 3  # Within 60 minutes
    SEMI_URGENT = 4  # Within 2 hours
    NON_URGENT = 5


class SeverityLevel(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class AcuityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RewardCategory(str, Enum):
    PATIENT_OUTCOMES = "patient_outcomes"
    EFFICIENCY = "efficiency"
    SAFETY = "safety"
    SATISFACTION = "satisfaction"
    COST = "cost"
    COMPLIANCE = "compliance"


class PolicyType(str, Enum):
    RULE_BASED = "rule_based"
    ML_MODEL = "ml_model"
    LLM_AGENT = "llm_agent"
    HYBRID = "hybrid"
    HUMAN_EXPERT = "human_expert"
    RANDOM = "random"


class EnvironmentType(str, Enum):
    EMERGENCY_DEPARTMENT = "emergency_department"
    PRIMARY_CARE = "primary_care"
    SPECIALIST_CLINIC = "specialist_clinic"
    HOSPITAL_WARD = "hospital_ward"
    TELEMEDICINE = "telemedicine"
    TRIAGE_CENTER = "triage_center"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    NON_BINARY = "non_binary"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class InsuranceType(str, Enum):
    PRIVATE = "private"
    MEDICARE = "medicare"
    MEDICAID = "medicaid"
    UNINSURED = "uninsured"
    GOVERNMENT = "government"


class HousingStatus(str, Enum):
    OWNED = "owned"
    RENTED = "rented"
    HOMELESS = "homeless"
    TEMPORARY = "temporary"


class EmploymentStatus(str, Enum):
    EMPLOYED = "employed"
    UNEMPLOYED = "unemployed"
    RETIRED = "retired"
    DISABLED = "disabled"
    STUDENT = "student"


class EducationLevel(str, Enum):
    LESS_THAN_HIGH_SCHOOL = "less_than_high_school"
    HIGH_SCHOOL = "high_school"
    SOME_COLLEGE = "some_college"
    COLLEGE_DEGREE = "college_degree"
    GRADUATE_DEGREE = "graduate_degree"


class TransportationAccess(str, Enum):
    RELIABLE = "reliable"
    LIMITED = "limited"
    NONE = "none"


class SocialSupportLevel(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NONE = "none"


class FoodSecurityLevel(str, Enum):
    SECURE = "secure"
    MODERATELY_INSECURE = "moderately_insecure"
    SEVERELY_INSECURE = "severely_insecure"


class FrozenModel(BaseModel):
    """Base for records that must not change after creation."""

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Patient Profile Schemas
# ============================================================================


class Location(FrozenModel):
    address: str = "123 Main St"
    city: str = "Anytown"
    state: str = "NY"
    zip_code: str = "12345"


class Demographics(FrozenModel):
    age: int = Field(..., ge=0, le=120)
    gender: Gender
    ethnicity: Optional[str] = None
    language: str = "English"
    insurance_type: InsuranceType = InsuranceType.PRIVATE
    location: Location = Field(default_factory=Location)


class DiagnosedCondition(FrozenModel):
    icd10_code: str
    name: str
    diagnosed_date: datetime
    severity: SeverityLevel


class MedicalHistory(FrozenModel):
    conditions: Tuple[DiagnosedCondition, ...] = ()
    surgeries: Tuple[str, ...] = ()
    hospitalizations: Tuple[str, ...] = ()
    family_history: Tuple[str, ...] = ()


class Symptom(FrozenModel):
    name: str
    severity: int = Field(..., ge=0, le=10)
    duration: str = "2 hours"
    location: Optional[str] = None


class CurrentCondition(FrozenModel):
    """Presenting problem: the pair (severity, acuity) drives triage decisions."""

    chief_complaint: str
    symptoms: Tuple[Symptom, ...] = ()
    onset: datetime
    severity: SeverityLevel
    acuity: AcuityLevel
    # Pain scale 0-10; None when the patient could not report it
    pain_level: Optional[int] = Field(None, ge=0, le=10)


class BloodPressure(FrozenModel):
    systolic: float
    diastolic: float


class VitalSigns(FrozenModel):
    temperature: Optional[float] = None
    blood_pressure: Optional[BloodPressure] = None
    heart_rate: Optional[float] = None
    respiratory_rate: Optional[float] = None
    oxygen_saturation: Optional[float] = None
    blood_glucose: Optional[float] = None
    timestamp: datetime = Field(default_factory=utcnow)


class SocialDeterminants(FrozenModel):
    housing: HousingStatus = HousingStatus.OWNED
    employment: EmploymentStatus = EmploymentStatus.EMPLOYED
    education: EducationLevel = EducationLevel.COLLEGE_DEGREE
    transportation: TransportationAccess = TransportationAccess.RELIABLE
    social_support: SocialSupportLevel = SocialSupportLevel.STRONG
    food_security: FoodSecurityLevel = FoodSecurityLevel.SECURE


class RiskFactor(FrozenModel):
    type: str
    level: Literal["low", "medium", "high"]
    modifiable: bool


class Allergy(FrozenModel):
    allergen: str
    reaction: str
    severity: SeverityLevel


class Medication(FrozenModel):
    name: str
    dosage: str
    frequency: str


class PatientProfile(FrozenModel):
    """Everything the environment knows about one waiting patient.

    Profiles are created by the environment's generator and owned by its queue
    until a successful assignment removes them. Situations expose read-only
    snapshots of the queued profiles so policies can reason about them.
    """

    id: str = Field(..., description="Unique patient identifier")
    demographics: Demographics
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)
    current_condition: CurrentCondition
    vital_signs: VitalSigns = Field(default_factory=VitalSigns)
    social_determinants: SocialDeterminants = Field(default_factory=SocialDeterminants)
    risk_factors: Tuple[RiskFactor, ...] = ()
    allergies: Tuple[Allergy, ...] = ()
    medications: Tuple[Medication, ...] = ()


# ============================================================================
# Reward Schemas
# ============================================================================


class RewardComponent(FrozenModel):
    """One named, weighted objective inside a multi-objective reward."""

    name: str
    value: float
    weight: float
    category: RewardCategory


class Reward(FrozenModel):
    """Scalar reward plus the weighted components it was derived from.

    Invariant: ``value == sum(c.value * c.weight for c in components)``. Build
    rewards through :meth:`from_components` so the invariant holds by
    construction.
    """

    value: float
    components: Tuple[RewardComponent, ...] = ()
    reasoning: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_components(
        cls,
        components: List[RewardComponent],
        reasoning: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "Reward":
        total = sum(component.value * component.weight for component in components)
        return cls(
            value=total,
            components=tuple(components),
            reasoning=reasoning,
            metadata=metadata or {},
        )


# ============================================================================
# Action Schemas
# ============================================================================


class ActionConstraint(FrozenModel):
    type: str
    value: Any = None
    message: Optional[str] = None


class ActionBase(FrozenModel):
    """Fields shared by every action kind.

    Environments dispatch on the concrete subclass. An ``ActionBase`` whose kind
    an environment does not implement is rejected with
    ``UnsupportedActionKindError``.
    """

    id: str
    type: ActionType
    constraints: Tuple[ActionConstraint, ...] = ()
    # Minutes the action is expected to take
    estimated_duration: Optional[float] = None


class TriageAssignAction(ActionBase):
    """Assign a triage priority level to one queued patient."""

    type: Literal[ActionType.TRIAGE_ASSIGN] = ActionType.TRIAGE_ASSIGN
    patient_id: str
    priority: TriagePriority
    reasoning: str = ""


class WaitAction(ActionBase):
    """Take no triage decision this step."""

    id: str = "wait"
    type: Literal[ActionType.WAIT] = ActionType.WAIT
    duration: float = Field(5, ge=0, description="Requested wait in minutes")


Action = Annotated[Union[TriageAssignAction, WaitAction], Field(discriminator="type")]


# ============================================================================
# Environment Output Schemas
# ============================================================================


class EnvironmentMetrics(FrozenModel):
    """Aggregate service metrics derived from environment counters."""

    throughput: float = 0.0
    average_wait_time: float = 0.0
    patient_satisfaction: float = 0.0
    resource_utilization: Dict[str, float] = Field(default_factory=dict)
    cost_per_patient: float = 0.0
    safety_incidents: int = 0
    priority_accuracy: float = 0.0
    patients_processed: int = 0


class TriageDecision(FrozenModel):
    """Record of one assignment, as the environment applied it."""

    patient_id: str
    priority: TriagePriority
    estimated_wait_time: float
    care_path_id: str
    confidence: float = 0.8
    reasoning: str = ""
    timestamp: datetime = Field(default_factory=utcnow)


class SituationBase(FrozenModel):
    id: str
    timestamp: datetime = Field(default_factory=utcnow)
    is_terminal: bool = False
    queue_length: int = Field(..., ge=0)
    available_resources: int = Field(..., ge=0)
    # Snapshot of queued patients in arrival order
    queue: Tuple[PatientProfile, ...] = ()


class InitialSituation(SituationBase):
    type: Literal[StateType.INITIAL] = StateType.INITIAL
    shift: str = "day"
    weather_conditions: str = "normal"


class AssessmentSituation(SituationBase):
    type: Literal[StateType.TRIAGE_ASSESSMENT] = StateType.TRIAGE_ASSESSMENT
    recent_triage: TriageDecision
    metrics: EnvironmentMetrics = Field(default_factory=EnvironmentMetrics)


class WaitingSituation(SituationBase):
    type: Literal[StateType.WAITING] = StateType.WAITING
    wait_duration: float


Situation = Annotated[
    Union[InitialSituation, AssessmentSituation, WaitingSituation],
    Field(discriminator="type"),
]


class StepResult(FrozenModel):
    state: Situation
    reward: Reward
    done: bool
    info: Dict[str, Any] = Field(default_factory=dict)


class Experience(FrozenModel):
    """(s, a, r, s', done) tuple handed to a policy's update hook."""

    state: Situation
    action: Action
    reward: Reward
    next_state: Situation
    done: bool
    timestamp: datetime = Field(default_factory=utcnow)


# ============================================================================
# Statistics Schemas
# ============================================================================


class PolicyStats(FrozenModel):
    id: str
    name: str
    type: PolicyType
    episode_count: int = 0
    total_steps: int = 0
    experience_count: int = 0
    is_training: bool = True
    # Policy-specific counters (reward signs, action distribution, ...)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class EnvironmentStats(FrozenModel):
    id: str
    name: str
    type: EnvironmentType
    total_episodes: int
    current_episode_steps: int
    max_steps_per_episode: int
    is_done: bool
    start_time: Optional[datetime] = None
    config: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Orchestrator Schemas
# ============================================================================

EpisodeReason = Literal[
    "incomplete",
    "environment_terminal",
    "max_steps_reached",
    "custom_termination",
    "no_actions",
    "stopped",
    "error",
]


class StepRecord(FrozenModel):
    step_number: int = Field(..., ge=0)
    state: Situation
    action: Action
    reward: Reward
    next_state: Situation
    done: bool
    info: Dict[str, Any] = Field(default_factory=dict)
    agent_confidence: float
    # Wall-clock time from action selection through the policy update
    duration_ms: float = Field(0.0, ge=0)
    timestamp: datetime = Field(default_factory=utcnow)


class EpisodeResult(FrozenModel):
    episode_number: int = Field(..., ge=1)
    steps: Tuple[StepRecord, ...] = ()
    total_reward: float = 0.0
    start_time: datetime
    end_time: datetime
    success: bool = False
    reason: EpisodeReason = "incomplete"
    duration_ms: float = 0.0
    average_reward: float = 0.0
    environment_metrics: EnvironmentMetrics = Field(default_factory=EnvironmentMetrics)
    agent_stats: Optional[PolicyStats] = None
    # Exception text when reason == "error"
    error: Optional[str] = None

    @property
    def step_count(self) -> int:
        return len(self.steps)


class SimulationMetrics(FrozenModel):
    total_episodes: int = 0
    total_steps: int = 0
    total_reward: float = 0.0
    average_reward: float = 0.0
    success_rate: float = 0.0
    average_steps_per_episode: float = 0.0
    average_episode_duration_ms: float = 0.0
    start_time: datetime = Field(default_factory=utcnow)
    last_update_time: datetime = Field(default_factory=utcnow)


class PerformanceSummary(FrozenModel):
    total_episodes: int = 0
    success_rate: float = 0.0
    average_reward: float = 0.0
    average_steps: float = 0.0
    average_duration_ms: float = 0.0
    reward_trend: Tuple[float, ...] = ()
    steps_trend: Tuple[int, ...] = ()


class SimulationConfig(BaseModel):
    """Construction-time options for the orchestrator.

    Defaults come from :class:`triage_sim.config.Config`, so they can be tuned
    through environment variables without touching code.
    """

    max_steps_per_episode: int = Field(
        default_factory=lambda: Config.MAX_STEPS_PER_EPISODE, ge=1
    )
    max_episode_history: int = Field(
        default_factory=lambda: Config.MAX_EPISODE_HISTORY, ge=1
    )
    episode_delay_ms: float = Field(default_factory=lambda: Config.EPISODE_DELAY_MS, ge=0)
    enable_logging: bool = True
    enable_metrics: bool = True
    performance_window_size: int = Field(
        default_factory=lambda: Config.PERFORMANCE_WINDOW, ge=1
    )
    success_threshold: float = Field(default_factory=lambda: Config.SUCCESS_THRESHOLD)


class StepEvent(FrozenModel):
    type: Literal["step_completed"] = "step_completed"
    episode: int
    step: int
    step_record: StepRecord
    cumulative_reward: float


class EpisodeEvent(FrozenModel):
    type: Literal["episode_completed"] = "episode_completed"
    episode: int
    result: EpisodeResult
    total_episodes: int


class SimulationExport(FrozenModel):
    config: SimulationConfig
    metrics: SimulationMetrics
    episode_history: Tuple[EpisodeResult, ...] = ()
    agent_stats: PolicyStats
    environment_stats: EnvironmentStats
    export_timestamp: datetime = Field(default_factory=utcnow)
