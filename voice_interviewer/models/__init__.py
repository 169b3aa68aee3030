"""Data models for the Voice Interviewer."""

from .base import BaseModel, FrozenModel
from .enums import (
    InputMode,
    Intent,
    Phase,
    QuestionKind,
    QuestionSource,
    SessionStatus,
)
from .interview import (
    CompetencyScore,
    InterviewPlan,
    InterviewReport,
    InterviewSetup,
    QuestionRecord,
    ResponseDecision,
    Transcript,
    TurnRecord,
    Verdict,
)
from .profile import CandidateProfile, RoleProfile

__all__ = [
    "BaseModel",
    "FrozenModel",
    "InputMode",
    "Intent",
    "Phase",
    "QuestionKind",
    "QuestionSource",
    "SessionStatus",
    "CompetencyScore",
    "InterviewPlan",
    "InterviewReport",
    "InterviewSetup",
    "QuestionRecord",
    "ResponseDecision",
    "Transcript",
    "TurnRecord",
    "Verdict",
    "CandidateProfile",
    "RoleProfile",
]
