"""Interview session models for the Voice Interviewer."""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, validator

from .base import BaseModel, FrozenModel
from .enums import InputMode, Intent, QuestionKind, QuestionSource


class InterviewSetup(BaseModel):
    """Inputs a session is started with."""

    candidate_name: str = Field(default="", description="Candidate name used in the introduction")
    domain: str = Field(default="frontend", description="Template / domain identifier")
    duration_minutes: int = Field(default=20, description="Target interview length")
    resume_text: str = Field(default="", description="Raw resume text")
    jd_text: str = Field(default="", description="Raw job description text")
    years_of_experience: Optional[float] = Field(None, ge=0.0, description="Override for the resume-derived experience")

    @validator("candidate_name", "domain", "resume_text", "jd_text", pre=True)
    def none_to_empty(cls, v):
        return "" if v is None else v

    @validator("duration_minutes", pre=True)
    def default_duration(cls, v):
        if v is None:
            return 20
        try:
            v = int(v)
        except (TypeError, ValueError):
            return 20
        return v if v > 0 else 20


class QuestionRecord(FrozenModel):
    """One question of the plan. Never mutated, only repositioned."""

    id: str = Field(..., description="Unique question identifier")
    prompt: str = Field(..., description="Text spoken to the candidate")
    competency: str = Field(default="general", description="Competency tag")
    kind: QuestionKind = Field(default=QuestionKind.MAIN, description="Main question or follow-up")
    source: QuestionSource = Field(default=QuestionSource.TEMPLATE, description="Provenance")
    parent_prompt: Optional[str] = Field(None, description="Prompt this follow-up probes")
    skill_tag: Optional[str] = Field(None, description="Skill the question targets")


class InterviewPlan(BaseModel):
    """Ordered question sequence with a single cursor.

    The only mutation besides advancing the cursor is inserting a record
    directly after it, so nothing already answered is ever revisited.
    """

    template_id: str = Field(..., description="Template identifier")
    template_label: str = Field(..., description="Human readable template label")
    introduction: Optional[str] = Field(None, description="Opening line spoken before the first question")
    questions: List[QuestionRecord] = Field(default_factory=list, description="Question sequence")
    current_index: int = Field(default=0, ge=0, description="Cursor into the question sequence")
    max_main_questions: int = Field(..., description="Cap applied while building")
    follow_up_budget: int = Field(..., ge=0, description="Dynamic follow-ups allowed per session")
    total_turns_limit: int = Field(..., ge=1, description="Hard cap on resolved turns")
    dynamic_followups_used: int = Field(default=0, ge=0, description="Dynamic follow-ups inserted so far")

    @property
    def current_question(self) -> Optional[QuestionRecord]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def is_exhausted(self) -> bool:
        return self.current_index >= len(self.questions)

    @property
    def remaining(self) -> int:
        return max(len(self.questions) - self.current_index, 0)

    @property
    def followups_remaining(self) -> int:
        return max(self.follow_up_budget - self.dynamic_followups_used, 0)

    def advance(self) -> int:
        """Move the cursor forward by exactly one and return the new index."""
        self.current_index = self.current_index + 1
        return self.current_index

    def insert_after_current(self, record: QuestionRecord) -> int:
        """Splice a record directly after the cursor and return its index."""
        position = min(self.current_index + 1, len(self.questions))
        self.questions.insert(position, record)
        return position

    def __len__(self) -> int:
        return len(self.questions)


class Verdict(FrozenModel):
    """Structured judgment of one answer."""

    score: int = Field(..., ge=1, le=5, description="Ordinal score 1-5")
    feedback: List[str] = Field(default_factory=list, description="Feedback lines")
    is_relevant: bool = Field(default=True, description="Whether the answer addressed the question")
    needs_elaboration: bool = Field(default=False, description="Whether the answer was too thin")
    needs_follow_up: bool = Field(default=False, description="Whether a probing question should follow")
    follow_up_question: Optional[str] = Field(None, description="Proposed probing question")

    @validator("score", pre=True)
    def clamp_score(cls, v):
        if isinstance(v, bool):
            raise ValueError("score must be numeric")
        try:
            value = float(v)
        except (TypeError, ValueError):
            raise ValueError(f"score must be numeric, got {v!r}")
        if not math.isfinite(value):
            raise ValueError(f"score must be finite, got {v!r}")
        return int(min(max(int(value + 0.5), 1), 5))

    @validator("feedback", pre=True)
    def coerce_feedback(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        if not isinstance(v, (list, tuple)):
            raise ValueError(f"feedback must be a string or a list, got {type(v).__name__}")
        return [str(item) for item in v if str(item).strip()]

    @validator("follow_up_question", pre=True)
    def blank_to_none(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @property
    def wants_follow_up(self) -> bool:
        return self.needs_follow_up and bool(self.follow_up_question)

    @classmethod
    def neutral(cls, reason: str = "Evaluation unavailable; answer recorded.") -> "Verdict":
        """Fail-closed default used whenever a real verdict cannot be produced."""
        return cls(score=3, feedback=[reason], is_relevant=True,
                   needs_elaboration=False, needs_follow_up=False)

    @classmethod
    def skipped(cls) -> "Verdict":
        return cls(score=1, feedback=["Question skipped"], is_relevant=False,
                   needs_elaboration=False, needs_follow_up=False)


class TurnRecord(FrozenModel):
    """One resolved question, answered or skipped."""

    question_id: str = Field(..., description="Question identifier")
    prompt: str = Field(..., description="Question prompt")
    answer: str = Field(default="", description="Candidate answer, empty when skipped")
    competency: str = Field(default="general", description="Competency tag")
    kind: QuestionKind = Field(default=QuestionKind.MAIN, description="Question kind")
    input_mode: InputMode = Field(default=InputMode.VOICE, description="How the answer was given")
    verdict: Verdict = Field(..., description="Evaluation of the answer")
    skipped: bool = Field(default=False, description="Whether the question was skipped")
    answered_at: datetime = Field(default_factory=datetime.now, description="Resolution timestamp")

    @classmethod
    def for_question(cls, question: QuestionRecord, answer: str, verdict: Verdict,
                     input_mode: InputMode = InputMode.VOICE, skipped: bool = False) -> "TurnRecord":
        return cls(
            question_id=question.id,
            prompt=question.prompt,
            answer=answer,
            competency=question.competency,
            kind=question.kind,
            input_mode=input_mode,
            verdict=verdict,
            skipped=skipped,
        )


class Transcript(BaseModel):
    """Append-only, chronologically ordered list of turns."""

    turns: List[TurnRecord] = Field(default_factory=list, description="Resolved turns")

    def append(self, turn: TurnRecord) -> None:
        self.turns.append(turn)

    def recent(self, window: int) -> List[TurnRecord]:
        """Most recent turns, oldest first."""
        if window <= 0:
            return []
        return list(self.turns[-window:])

    @property
    def answered(self) -> List[TurnRecord]:
        return [turn for turn in self.turns if not turn.skipped]

    def __len__(self) -> int:
        return len(self.turns)

    def __iter__(self):
        return iter(self.turns)


class ResponseDecision(FrozenModel):
    """How the interviewer should react to an utterance."""

    intent: Intent = Field(default=Intent.ANSWER, description="Classified intent")
    response: str = Field(default="", description="Line to speak back, may be empty")
    extra_time: Optional[float] = Field(None, description="Extra seconds to wait when thinking")
    should_proceed: Optional[bool] = Field(None, description="Whether the answer can be scored")

    @validator("intent", pre=True)
    def parse_intent(cls, v):
        return Intent.parse(v)

    @validator("response", pre=True)
    def coerce_response(cls, v):
        return "" if v is None else str(v).strip()

    @validator("extra_time", pre=True)
    def coerce_extra_time(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    @validator("should_proceed", pre=True)
    def coerce_should_proceed(cls, v):
        return v if isinstance(v, bool) else None


class CompetencyScore(FrozenModel):
    """Average score for one competency tag."""

    competency: str = Field(..., description="Competency tag")
    score: float = Field(..., ge=0.0, le=5.0, description="Average score, one decimal")


class InterviewReport(FrozenModel):
    """Final scorecard, created exactly once per session."""

    candidate_name: str = Field(default="", description="Candidate name")
    template_label: str = Field(default="", description="Interview template label")
    duration_minutes: int = Field(default=0, description="Configured duration")
    overall_score: float = Field(..., ge=0.0, le=5.0, description="Average score, one decimal")
    total_answers: int = Field(default=0, description="Answered (non-skipped) turns")
    total_turns: int = Field(default=0, description="All resolved turns, skipped included")
    competency_scores: Dict[str, float] = Field(default_factory=dict, description="Average per competency")
    strengths: List[str] = Field(default_factory=list, description="Strength highlights")
    improvements: List[str] = Field(default_factory=list, description="Improvement areas")
    matched_skills: List[str] = Field(default_factory=list, description="Required skills covered in answers")
    missing_required_skills: List[str] = Field(default_factory=list, description="Required skills never covered")
    resume_skills: List[str] = Field(default_factory=list, description="Skills found in the resume")
    summary: Optional[str] = Field(None, description="Narrative summary")
    recommendation: Optional[str] = Field(None, description="Hiring-style recommendation")
    end_reason: str = Field(default="completed", description="Why the session ended")
    generated_at: datetime = Field(default_factory=datetime.now, description="Report generation time")

    def competency_breakdown(self) -> List[CompetencyScore]:
        return [CompetencyScore(competency=name, score=score)
                for name, score in self.competency_scores.items()]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
