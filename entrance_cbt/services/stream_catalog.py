"""
services/stream_catalog.py

Lookup tables for stream names and subject spellings.
Pure functions; the fallback for an unrecognised stream is StreamProfile.UNKNOWN,
never a silent default.
"""

from typing import Dict, Optional, Tuple

import config
from entrance_cbt.models.timing_profile import (
    StreamProfile,
    StreamTimingProfile,
    SubjectTiming,
)

_RESTRICTED = config.RESTRICTED_UNLOCK_MINUTES

STREAM_TIMING_PROFILES: Dict[StreamProfile, StreamTimingProfile] = {
    StreamProfile.NEET: StreamTimingProfile(
        stream=StreamProfile.NEET,
        total_duration_minutes=200,
        subject_timings={
            "Physics": SubjectTiming(duration_minutes=60),
            "Chemistry": SubjectTiming(duration_minutes=60),
            "Biology": SubjectTiming(duration_minutes=60),
        },
    ),
    StreamProfile.JEE: StreamTimingProfile(
        stream=StreamProfile.JEE,
        total_duration_minutes=180,
        subject_timings={
            "Physics": SubjectTiming(duration_minutes=60),
            "Chemistry": SubjectTiming(duration_minutes=60),
            "Mathematics": SubjectTiming(duration_minutes=60),
        },
    ),
    StreamProfile.MHT_CET: StreamTimingProfile(
        stream=StreamProfile.MHT_CET,
        total_duration_minutes=180,
        subject_timings={
            "Physics": SubjectTiming(duration_minutes=45),
            "Chemistry": SubjectTiming(duration_minutes=45),
            "Biology": SubjectTiming(duration_minutes=90, unlock_delay_minutes=_RESTRICTED),
            "Mathematics": SubjectTiming(duration_minutes=90, unlock_delay_minutes=_RESTRICTED),
        },
    ),
}

SUBJECT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "Mathematics": ("Maths", "Math"),
    "Biology": ("Bio", "Botany", "Zoology"),
}

# lowercase spelling → canonical subject
_SUBJECT_LOOKUP: Dict[str, str] = {}
for _canonical, _aliases in SUBJECT_ALIASES.items():
    _SUBJECT_LOOKUP[_canonical.lower()] = _canonical
    for _alias in _aliases:
        _SUBJECT_LOOKUP[_alias.lower()] = _canonical

_EXACT_STREAMS: Dict[str, StreamProfile] = {
    "neet": StreamProfile.NEET,
    "jee": StreamProfile.JEE,
    "mht-cet": StreamProfile.MHT_CET,
}


def canonical_stream_of(raw: Optional[str]) -> StreamProfile:
    """
    Map a free-text stream name onto a known profile.

    Matching order:
    1. case-insensitive exact name ("NEET", "jee", "MHT-CET")
    2. substring: "neet" → NEET; "mht" with "cet", or "cet" without "jee" → MHT-CET;
       "jee" → JEE

    Args:
        raw: Stream text as stored on the exam. None/blank is allowed.

    Returns:
        The matching StreamProfile, or StreamProfile.UNKNOWN.
    """
    if not raw:
        return StreamProfile.UNKNOWN
    name = raw.strip().lower()
    if name in _EXACT_STREAMS:
        return _EXACT_STREAMS[name]

    if "neet" in name:
        return StreamProfile.NEET
    if ("mht" in name and "cet" in name) or ("cet" in name and "jee" not in name):
        return StreamProfile.MHT_CET
    if "jee" in name:
        return StreamProfile.JEE
    return StreamProfile.UNKNOWN


def profile_for(stream: StreamProfile) -> Optional[StreamTimingProfile]:
    return STREAM_TIMING_PROFILES.get(stream)


def canonical_subject_of(raw: str) -> str:
    """"Maths" → "Mathematics", "botany" → "Biology". Unknown names come back trimmed."""
    cleaned = (raw or "").strip()
    return _SUBJECT_LOOKUP.get(cleaned.lower(), cleaned)


def aliases_of(subject: str) -> Tuple[str, ...]:
    return SUBJECT_ALIASES.get(canonical_subject_of(subject), ())
