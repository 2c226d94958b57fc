import math
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Union, Literal, Annotated
from pydantic import BaseModel, Field, validator
from enum import Enum


DATE_FORMAT = "%Y-%m-%d"

DEFAULT_PITCH_TYPES: Dict[str, str] = {
    "1": "FB",
    "2": "CB",
    "3": "CH",
    "4": "SL",
    "5": "CT",
}


def _new_id() -> str:
    return uuid.uuid4().hex


def _now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


class EventType(str, Enum):
    BULLPEN = "Bullpen"
    GAME = "Game"
    PRACTICE = "Practice"
    EXTERNAL = "External"


# Older rows used these labels for live at-bats before they were renamed
LEGACY_EVENT_TYPES = {
    "Live": EventType.EXTERNAL,
    "Live ABs": EventType.EXTERNAL,
}


class Outing(BaseModel):
    id: str = Field(default_factory=_new_id)
    date: str  # Format: "YYYY-MM-DD"
    pitcher_id: Optional[str] = None
    pitcher_name: str
    event_type: EventType = EventType.BULLPEN
    pitch_count: int = 0
    strikes: Optional[int] = None  # None means strikes were not tracked
    max_velo: float = 0
    notes: str = ""
    focus: Optional[str] = None
    coach_notes: Optional[str] = None

    # Video references (the files themselves live in external storage)
    video_url: Optional[str] = None
    video_url_1: Optional[str] = None
    video_url_2: Optional[str] = None
    video_1_pitch_type: Optional[int] = None
    video_1_velocity: Optional[float] = None
    video_2_pitch_type: Optional[int] = None
    video_2_velocity: Optional[float] = None

    created_at: str = Field(default_factory=_now_iso)

    @validator('date')
    def validate_date(cls, v):
        try:
            datetime.strptime(v, DATE_FORMAT)
            return v
        except (ValueError, TypeError):
            raise ValueError('Date must be in format "YYYY-MM-DD" (e.g., "2026-04-18")')

    @validator('event_type', pre=True)
    def map_legacy_event_type(cls, v):
        if isinstance(v, str) and v in LEGACY_EVENT_TYPES:
            return LEGACY_EVENT_TYPES[v]
        return v

    @validator('max_velo', pre=True)
    def default_missing_velo(cls, v):
        return 0 if v is None else v


class Pitcher(BaseModel):
    """Roster entry"""
    id: str = Field(default_factory=_new_id)
    name: str
    max_weekly_pitches: int = 120
    pitch_types: Optional[Dict[str, str]] = None
    created_at: str = Field(default_factory=_now_iso)

    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class NoData(BaseModel):
    type: Literal["no-data"] = "no-data"


class ThrewToday(BaseModel):
    type: Literal["threw-today"] = "threw-today"


class Active(BaseModel):
    type: Literal["active"] = "active"


class Resting(BaseModel):
    type: Literal["resting"] = "resting"
    days_needed: int
    days_current: int


RestStatus = Annotated[
    Union[NoData, ThrewToday, Active, Resting],
    Field(discriminator="type"),
]


class PitcherStats(Pitcher):
    """Pitcher with derived statistics, rebuilt from outings on every request"""
    seven_day_pulse: int = 0
    strike_percentage: float = 0.0
    max_velo: float = 0
    last_outing: str = ""
    last_pitch_count: int = 0
    rest_status: RestStatus = Field(default_factory=NoData)
    pulse_level: str = "normal"
    notes: str = ""
    focus: Optional[str] = None
    coach_notes: Optional[str] = None
    outings: List[Outing] = Field(default_factory=list)


class PitchLocation(BaseModel):
    """One plotted pitch inside an outing's pitch map"""
    id: str = Field(default_factory=_new_id)
    outing_id: str
    pitcher_id: str
    pitch_number: int
    pitch_type: int = 1
    x_location: float
    y_location: float
    is_strike: bool
    created_at: str = Field(default_factory=_now_iso)

    @validator('pitch_number', 'pitch_type')
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError('Value must be a positive integer')
        return v

    @validator('x_location', 'y_location')
    def clamp_to_zone_space(cls, v):
        if math.isnan(v):
            return 0.0
        return max(-1.0, min(1.0, v))


class User(BaseModel):
    """Coach account model"""
    id: str = Field(default_factory=_new_id)
    username: str
    password_hash: str  # Hashed password (using werkzeug's generate_password_hash)
    email: Optional[str] = None
    created_at: str = Field(default_factory=_now_iso)
    is_active: bool = True

    @validator('username')
    def validate_username(cls, v):
        if not v or not v.strip():
            raise ValueError('Username cannot be empty')
        v = v.strip()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters')
        if ' ' in v:
            raise ValueError('Username cannot contain spaces')
        return v
