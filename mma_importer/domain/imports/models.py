"""
Typed records used by the bulk import pipeline.

Import-session values (field mappings, triaged rows, summaries) live here next
to the two target record kinds the pipeline produces: ``Fighter`` and
``FightRecord``.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .field_dictionary import MAX_ROUNDS


class SchemaKind(str, Enum):
    """Record kinds an import session can target"""
    FIGHTERS = "fighters"
    FIGHT_HISTORY = "fight_history"


class MappingStatus(str, Enum):
    MAPPED = "mapped"
    UNMAPPED = "unmapped"    # auto-mapper found no candidate
    IGNORED = "ignored"      # user explicitly cleared the mapping


class RowStatus(str, Enum):
    READY = "ready"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"
    ERROR = "error"


class RowAction(str, Enum):
    REPLACE = "replace"
    SKIP = "skip"


class CommitMode(str, Enum):
    ADD = "add"
    REPLACE = "replace"


class ImportStep(str, Enum):
    UPLOAD = "upload"
    MAPPING = "mapping"
    PREVIEW = "preview"
    COMPLETE = "complete"


class FieldMapping(BaseModel):
    """Assignment of one source column to a target field."""
    source_column: str
    target_field: Optional[str] = None
    status: MappingStatus = MappingStatus.UNMAPPED

    @model_validator(mode="after")
    def check_status_matches_target(self) -> "FieldMapping":
        if (self.status == MappingStatus.MAPPED) != (self.target_field is not None):
            raise ValueError(
                f"Mapping for '{self.source_column}' has status '{self.status.value}' "
                f"but target_field={self.target_field!r}"
            )
        return self


class MappingValidation(BaseModel):
    is_valid: bool
    missing_fields: List[str] = Field(default_factory=list)


class ImportRow(BaseModel):
    """One parsed source row and its triage state within an import session."""
    id: str
    raw_data: Dict[str, str]
    status: RowStatus
    status_message: Optional[str] = None
    matched_existing_id: Optional[str] = None  # existing record of the same kind
    action: Optional[RowAction] = None
    resolved_fighter_id: Optional[str] = None  # fight rows only
    matched_opponent_id: Optional[str] = None
    opponent_linked: bool = False
    committed: bool = False


class ImportSummary(BaseModel):
    total: int = 0
    ready: int = 0
    duplicate: int = 0
    conflict: int = 0
    error: int = 0
    skipped: int = 0
    replacing: int = 0


class CommitResult(BaseModel):
    added: int = 0
    replaced: int = 0
    dropped: int = 0
    add_error: Optional[str] = None
    replace_error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.add_error is None and self.replace_error is None


# Projections returned by the existing-record stores

class ExistingFighter(BaseModel):
    id: str
    first_name: str
    last_name: str


class ExistingFight(BaseModel):
    id: str
    event_date: str = ""
    opponent_name: str = ""
    fighter_id: Optional[str] = None


# Fighter record

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PhysicalStats(BaseModel):
    age: int = 0
    height: str = ""
    height_inches: int = 0
    reach: str = ""
    reach_inches: int = 0
    leg_reach: str = ""
    leg_reach_inches: int = 0
    weight: int = 0


class WinLossRecord(BaseModel):
    wins: int = 0
    losses: int = 0
    draws: int = 0
    no_contests: int = 0


class PerformanceMetrics(BaseModel):
    ko_wins: int = 0
    tko_wins: int = 0
    submission_wins: int = 0
    decision_wins: int = 0
    losses_by_ko: int = 0
    losses_by_submission: int = 0
    losses_by_decision: int = 0
    finish_rate: float = 0.0
    avg_fight_time_minutes: float = 0.0
    strike_accuracy: float = 0.0
    strike_defense: float = 0.0
    strikes_landed_per_min: float = 0.0
    strikes_absorbed_per_min: float = 0.0
    takedown_avg: float = 0.0
    takedown_accuracy: float = 0.0
    takedown_defense: float = 0.0
    submission_avg: float = 0.0
    submission_defense: float = 0.0
    win_streak: int = 0
    loss_streak: int = 0
    longest_win_streak: int = 0
    ko_streak: int = 0
    sub_streak: int = 0


Organization = Literal["UFC", "ONE", "PFL", "Bellator"]


class Fighter(BaseModel):
    id: str
    first_name: str
    last_name: str
    nickname: Optional[str] = None
    date_of_birth: str = ""
    nationality: str = "Unknown"
    gender: Literal["Male", "Female"] = "Male"
    organization: Organization = "UFC"
    weight_class: Optional[str] = None
    stance: Literal["Orthodox", "Southpaw", "Switch"] = "Orthodox"
    gym: str = "Unknown"
    head_coach: str = "Unknown"
    team: Optional[str] = None
    fighting_out_of: Optional[str] = None
    image_url: str = "/placeholder.svg"
    body_image_url: Optional[str] = None
    physical_stats: PhysicalStats = Field(default_factory=PhysicalStats)
    record: WinLossRecord = Field(default_factory=WinLossRecord)
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    is_active: bool = True
    ranking: Optional[int] = None
    rank_global: Optional[int] = None
    rank_promotion: Optional[int] = None
    is_champion: bool = False
    is_verified: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    last_updated: datetime = Field(default_factory=_utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# Fight record

class FightResult(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    DRAW = "DRAW"
    NC = "NC"
    PENDING = "PENDING"


FightType = Literal["Main Card", "Prelim", "Early Prelim", "Exhibition"]


class FightStats(BaseModel):
    strikes_landed: int = 0
    strikes_attempted: int = 0
    significant_strikes_landed: int = 0
    significant_strikes_attempted: int = 0
    head_strikes_landed: int = 0
    head_strikes_attempted: int = 0
    body_strikes_landed: int = 0
    body_strikes_attempted: int = 0
    leg_strikes_landed: int = 0
    leg_strikes_attempted: int = 0
    distance_strikes_landed: int = 0
    distance_strikes_attempted: int = 0
    clinch_strikes_landed: int = 0
    clinch_strikes_attempted: int = 0
    ground_strikes_landed: int = 0
    ground_strikes_attempted: int = 0
    takedowns_landed: int = 0
    takedowns_attempted: int = 0
    submission_attempts: int = 0
    control_time_seconds: int = 0
    reversals: int = 0
    knockdowns: int = 0

    def has_values(self) -> bool:
        return any(value > 0 for value in self.model_dump().values())


class RoundStatBlock(BaseModel):
    """Statistics for a single round. ``None`` means the value was not recorded."""
    sig_str_landed: int = 0
    sig_str_attempted: int = 0
    sig_str_pct: Optional[int] = None
    head_str_landed: Optional[int] = None
    head_str_attempted: Optional[int] = None
    body_str_landed: Optional[int] = None
    body_str_attempted: Optional[int] = None
    leg_str_landed: Optional[int] = None
    leg_str_attempted: Optional[int] = None
    distance_str_landed: Optional[int] = None
    distance_str_attempted: Optional[int] = None
    clinch_str_landed: Optional[int] = None
    clinch_str_attempted: Optional[int] = None
    ground_str_landed: Optional[int] = None
    ground_str_attempted: Optional[int] = None
    knockdowns: Optional[int] = None
    td_landed: Optional[int] = None
    td_attempted: Optional[int] = None
    td_pct: Optional[int] = None
    sub_attempts: Optional[int] = None
    reversals: Optional[int] = None
    control_time: Optional[str] = None
    landed_by_target_pct: Optional[int] = None
    landed_by_position_pct: Optional[int] = None


class RoundStats(BaseModel):
    number: int = Field(..., ge=1, le=MAX_ROUNDS)
    stats: RoundStatBlock = Field(default_factory=RoundStatBlock)


class FightRecord(BaseModel):
    id: str
    fighter_id: str
    fighter_name: Optional[str] = None
    fighter_nickname: Optional[str] = None
    opponent_id: Optional[str] = None
    opponent_name: str
    opponent_nickname: Optional[str] = None
    opponent_linked: bool = False
    event_id: str = ""
    event_name: str
    event_date: str = ""
    event_promotion: Optional[str] = None
    weight_class: Optional[str] = None
    fight_type: FightType = "Main Card"
    billing: Optional[str] = None
    bout_order: int = 0
    rounds_scheduled: int = 3
    round_duration_minutes: int = 5
    result: FightResult = FightResult.PENDING
    method: str = "TBD"
    method_detail: Optional[str] = None
    round: int = 0
    time: str = "0:00"
    title_fight: bool = False
    title_fight_detail: Optional[str] = None
    referee: Optional[str] = None
    round_time_format: Optional[str] = None
    decision_type: Optional[str] = None
    judges: Optional[str] = None
    is_locked: bool = True
    stats: Optional[FightStats] = None
    per_round_stats: Optional[List[RoundStats]] = None

    @model_validator(mode="after")
    def check_linkage_and_rounds(self) -> "FightRecord":
        if self.opponent_linked != (self.opponent_id is not None):
            raise ValueError("opponent_linked must be set exactly when opponent_id is resolved")
        if self.per_round_stats:
            numbers = [r.number for r in self.per_round_stats]
            if len(numbers) != len(set(numbers)):
                raise ValueError(f"Duplicate round numbers in per_round_stats: {numbers}")
        return self


def record_payload(record: BaseModel) -> Dict[str, Any]:
    """JSON-safe dict for a produced record (used by stores and the API)."""
    return record.model_dump(mode="json")
