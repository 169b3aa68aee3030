"""Enumeration types for the Voice Interviewer."""

from enum import Enum


class _LenientEnum(str, Enum):
    """String enum that also accepts member names and loose spellings."""

    @classmethod
    def _missing_(cls, value):
        """Handle "Phase.LISTENING", "LISTENING" and "Listening" style values."""
        if isinstance(value, str):
            candidate = value.strip()
            if candidate.startswith(f"{cls.__name__}."):
                candidate = candidate.split(".", 1)[1]
            for member in cls:
                if candidate.lower() in (member.value.lower(), member.name.lower()):
                    return member
            normalized = candidate.lower().replace("_", "-")
            for member in cls:
                if member.value.replace("_", "-") == normalized:
                    return member
        return None


class QuestionKind(_LenientEnum):
    """Where a question sits in the plan."""

    MAIN = "main"
    FOLLOWUP = "followup"
    DYNAMIC_FOLLOWUP = "dynamic_followup"

    @property
    def is_followup(self) -> bool:
        """Scripted and dynamic follow-ups never spawn further follow-ups."""
        return self in (QuestionKind.FOLLOWUP, QuestionKind.DYNAMIC_FOLLOWUP)


class QuestionSource(_LenientEnum):
    """Provenance of a question record."""

    INTRO = "intro"
    TEMPLATE = "template"
    RESUME_AND_JD = "resume+jd"
    JD_GAP = "jd-gap"
    RESUME_PROJECT = "resume-project"
    ADVISOR = "advisor"
    DYNAMIC = "dynamic"


class InputMode(_LenientEnum):
    """How the candidate delivered an answer."""

    VOICE = "voice"
    TEXT = "text"


class Intent(_LenientEnum):
    """Classified intent of a candidate utterance."""

    ANSWER = "answer"
    THINKING = "thinking"
    CLARIFY = "clarify"
    REPEAT = "repeat"
    READY = "ready"
    EMPTY = "empty"
    OFFER_OPTIONS = "offer_options"
    GIVE_MORE_TIME = "give_more_time"

    @property
    def consumes_turn(self) -> bool:
        """Only an answer advances the plan and lands in the transcript."""
        return self is Intent.ANSWER

    @classmethod
    def parse(cls, value) -> "Intent":
        """Parse a loosely typed intent tag, defaulting to ANSWER."""
        if isinstance(value, Intent):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.ANSWER


class Phase(_LenientEnum):
    """Phases of the turn-taking state machine."""

    READY = "ready"
    AI_SPEAKING = "ai-speaking"
    LISTENING = "listening"
    PROCESSING = "processing"
    ENDING = "ending"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is Phase.ENDING


class SessionStatus(_LenientEnum):
    """Interview session status."""

    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
