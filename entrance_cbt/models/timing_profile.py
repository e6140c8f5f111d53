"""
models/timing_profile.py

Static per-stream timing configuration.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class StreamProfile(str, Enum):
    """Closed set of streams the engine knows timing rules for."""
    NEET = "NEET"
    JEE = "JEE"
    MHT_CET = "MHT-CET"
    UNKNOWN = "UNKNOWN"


class SubjectTiming(BaseModel):
    duration_minutes: int = Field(ge=0)
    unlock_delay_minutes: int = Field(
        default=0,
        ge=0,
        description="0 = always open; >0 = closed until that many minutes before end / after start",
    )

    model_config = {"frozen": True}


class StreamTimingProfile(BaseModel):
    stream: StreamProfile
    total_duration_minutes: int = Field(gt=0)
    subject_timings: Dict[str, SubjectTiming] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def has_restrictions(self) -> bool:
        return any(t.unlock_delay_minutes > 0 for t in self.subject_timings.values())


class SubjectAccessRules(BaseModel):
    """Which subjects a stream holds back, and for how long."""
    stream: StreamProfile
    restricted_subjects: List[str] = Field(default_factory=list)
    unlock_after_minutes: int = 0


class DurationCheck(BaseModel):
    """Plausibility of a configured duration. Warnings never block an exam."""
    is_valid: bool = True
    warnings: List[str] = Field(default_factory=list)
    recommended_minutes: Optional[int] = None
