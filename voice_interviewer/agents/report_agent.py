"""Report Agent: aggregates the transcript into the final scorecard."""

import math
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..models.interview import InterviewPlan, InterviewReport, InterviewSetup, TurnRecord
from ..models.profile import CandidateProfile, RoleProfile
from ..parsers.profile_extractor import extract_skills
from ..services.advisor import InterviewAdvisor
from ..utils.exceptions import AdvisorError
from .base_agent import BaseAgent

MAX_STRENGTHS = 3
MAX_LOW_SCORE_IMPROVEMENTS = 2
MAX_SKILL_IMPROVEMENTS = 3
LOW_SCORE_THRESHOLD = 3
ADVISOR_LIST_LIMIT = 5

DEFAULT_STRENGTH = "Your answers were consistent; focus on adding stronger metrics."
DEFAULT_IMPROVEMENT = "Increase specificity with metrics and concrete decision trade-offs."


def round_one_decimal(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def average(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round_one_decimal(sum(values) / len(values))


def _string_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()][:limit]


class ReportAgent(BaseAgent):
    """Builds the single report of a session. Never raises, never returns None."""

    def __init__(self, advisor: Optional[InterviewAdvisor] = None):
        super().__init__("report")
        self.advisor = advisor

    def build(self, transcript: Sequence[TurnRecord], plan: Optional[InterviewPlan],
              candidate: CandidateProfile, role: RoleProfile,
              setup: Optional[InterviewSetup] = None, end_reason: str = "completed") -> InterviewReport:
        """Compute the report locally from the transcript.

        Args:
            transcript: Resolved turns, skipped ones included
            plan: Session plan, used for the template label
            candidate: Resume profile
            role: Job description profile
            setup: Session inputs, used for name and duration
            end_reason: Why the session ended

        Returns:
            The locally computed report
        """
        turns = list(transcript)
        answered = [turn for turn in turns if not turn.skipped]
        scores = [turn.verdict.score for turn in answered]

        by_competency: "OrderedDict[str, List[int]]" = OrderedDict()
        for turn in answered:
            by_competency.setdefault(turn.competency or "general", []).append(turn.verdict.score)
        competency_scores = {name: average(values) for name, values in by_competency.items()}

        mentioned = set()
        for turn in answered:
            mentioned.update(extract_skills(f"{turn.prompt} {turn.answer}"))
        matched = [skill for skill in role.required_skills if skill in mentioned]
        missing = [skill for skill in role.required_skills if skill not in mentioned]

        ranked = sorted(answered, key=lambda turn: -turn.verdict.score)
        strengths = [
            f'Strong {turn.competency or "general"} response: "{turn.prompt}"'
            for turn in ranked[:MAX_STRENGTHS]
        ]

        weakest = sorted(
            (turn for turn in answered if turn.verdict.score <= LOW_SCORE_THRESHOLD),
            key=lambda turn: turn.verdict.score,
        )
        improvements = [f'Improve depth for: "{turn.prompt}"' for turn in weakest[:MAX_LOW_SCORE_IMPROVEMENTS]]
        improvements.extend(
            f'Practice role-specific examples for "{skill}".' for skill in missing[:MAX_SKILL_IMPROVEMENTS]
        )

        report = InterviewReport(
            candidate_name=setup.candidate_name if setup else "",
            template_label=plan.template_label if plan else "",
            duration_minutes=setup.duration_minutes if setup else 0,
            overall_score=average(scores),
            total_answers=len(answered),
            total_turns=len(turns),
            competency_scores=competency_scores,
            strengths=strengths or [DEFAULT_STRENGTH],
            improvements=improvements or [DEFAULT_IMPROVEMENT],
            matched_skills=matched,
            missing_required_skills=missing,
            resume_skills=list(candidate.skills),
            end_reason=end_reason,
        )
        self.log_operation("report_built", {
            "overall_score": report.overall_score,
            "total_answers": report.total_answers,
            "end_reason": end_reason,
        })
        return report

    async def generate(self, transcript: Sequence[TurnRecord], plan: Optional[InterviewPlan],
                       candidate: CandidateProfile, role: RoleProfile,
                       setup: Optional[InterviewSetup] = None, end_reason: str = "completed") -> InterviewReport:
        """Build the local report and merge the advisor's narrative over it.

        The local report is final whenever the advisor is absent, fails, or
        nothing was answered.
        """
        report = self.build(transcript, plan, candidate, role, setup, end_reason)
        if self.advisor is None or report.total_answers == 0:
            return report

        years = candidate.years_experience
        if setup is not None and setup.years_of_experience is not None:
            years = setup.years_of_experience
        try:
            payload = await self.advisor.build_report(
                list(transcript),
                setup.candidate_name if setup else "",
                plan.template_id if plan else "",
                years,
            )
            return self.merge_advisor_fields(report, payload)
        except (AdvisorError, ValidationError, AttributeError, TypeError, ValueError, OverflowError) as e:
            self.logger.warning(f"Advisor report narrative unavailable, keeping local report: {e}")
            return report

    def merge_advisor_fields(self, report: InterviewReport, payload: Dict[str, Any]) -> InterviewReport:
        """Overlay validated narrative fields; scores stay inside 1-5."""
        updates: Dict[str, Any] = {}

        strengths = _string_list(payload.get("strengths"), ADVISOR_LIST_LIMIT)
        if strengths:
            updates["strengths"] = strengths
        improvements = _string_list(payload.get("improvements"), ADVISOR_LIST_LIMIT)
        if improvements:
            updates["improvements"] = improvements

        for key in ("summary", "recommendation"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                updates[key] = value.strip()

        overall = payload.get("overallScore")
        if isinstance(overall, (int, float)) and not isinstance(overall, bool) and math.isfinite(overall):
            updates["overall_score"] = round_one_decimal(min(max(float(overall), 1.0), 5.0))

        if not updates:
            return report
        return InterviewReport.model_validate({**report.model_dump(), **updates})
