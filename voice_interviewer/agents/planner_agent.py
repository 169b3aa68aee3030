"""Planner Agent: builds the ordered question plan for one session."""

import math
from typing import Any, Dict, List, Optional, Tuple

from ..constants import BASE_QUESTION_BANK, DEFAULT_DURATION_MINUTES, INTERVIEW_TEMPLATES
from ..models.enums import QuestionKind, QuestionSource
from ..models.interview import InterviewPlan, InterviewSetup, QuestionRecord
from ..models.profile import CandidateProfile, RoleProfile
from ..services.advisor import InterviewAdvisor
from ..utils.exceptions import AdvisorError
from ..utils.logging import get_logger
from .base_agent import BaseAgent

MIN_MAIN_QUESTIONS = 4
MAX_MAIN_QUESTIONS = 9
MIN_FOLLOW_UP_BUDGET = 2
MAX_FOLLOW_UP_BUDGET = 5
EXTRA_TURNS = 4
PERSONALIZED_SKILLS = 2


def clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def max_main_questions_for(duration_minutes: int) -> int:
    """Roughly one main question every three minutes, between 4 and 9."""
    if not duration_minutes or duration_minutes <= 0:
        duration_minutes = DEFAULT_DURATION_MINUTES
    return clamp(round_half_up(duration_minutes / 3), MIN_MAIN_QUESTIONS, MAX_MAIN_QUESTIONS)


def follow_up_budget_for(max_main_questions: int) -> int:
    return clamp(max_main_questions // 2, MIN_FOLLOW_UP_BUDGET, MAX_FOLLOW_UP_BUDGET)


def list_templates() -> List[Dict[str, str]]:
    return [dict(template) for template in INTERVIEW_TEMPLATES]


def find_template(domain: Optional[str]) -> Tuple[Dict[str, str], bool]:
    """Look a template up by id or label, ignoring case.

    Returns:
        The template and whether it actually matched; unknown domains get
        the first template.
    """
    key = (domain or "").strip().lower()
    for template in INTERVIEW_TEMPLATES:
        if key in (template["id"], template["label"].lower()):
            return template, True
    return INTERVIEW_TEMPLATES[0], False


class QuestionPlanBuilder:
    """Deterministic plan builder: same inputs, same plan, never raises."""

    def __init__(self):
        self.logger = get_logger("agent.planner.builder")

    def build(self, candidate_name: str, domain: str, duration_minutes: int,
              candidate_profile: CandidateProfile, role_profile: RoleProfile) -> InterviewPlan:
        """Build an interview plan.

        Args:
            candidate_name: Name used in the introduction question
            domain: Template identifier or label
            duration_minutes: Target length, non-positive means the default
            candidate_profile: Signals extracted from the resume
            role_profile: Signals extracted from the job description

        Returns:
            A plan with max_main_questions records and its session caps
        """
        template, matched = find_template(domain)
        if not matched:
            self.logger.warning(f"Unknown interview domain '{domain}', using '{template['id']}'")

        max_main = max_main_questions_for(duration_minutes)

        candidates: List[Dict[str, Any]] = [self._introduction(candidate_name)]
        candidates.extend(
            {
                "prompt": question["prompt"],
                "competency": question["competency"],
                "source": QuestionSource.TEMPLATE,
            }
            for question in BASE_QUESTION_BANK.get(template["id"], [])
        )
        candidates.extend(self._personalized(candidate_profile, role_profile))

        seen = set()
        unique: List[Dict[str, Any]] = []
        for candidate in candidates:
            if candidate["prompt"] in seen:
                continue
            seen.add(candidate["prompt"])
            unique.append(candidate)

        questions = [
            QuestionRecord(id=f"q_{index}", kind=QuestionKind.MAIN, **candidate)
            for index, candidate in enumerate(unique[:max_main], start=1)
        ]

        return InterviewPlan(
            template_id=template["id"],
            template_label=template["label"],
            questions=questions,
            max_main_questions=max_main,
            follow_up_budget=follow_up_budget_for(max_main),
            total_turns_limit=max_main + EXTRA_TURNS,
        )

    @staticmethod
    def _introduction(candidate_name: str) -> Dict[str, Any]:
        name = (candidate_name or "").strip() or "there"
        return {
            "prompt": f"Hi {name}. Give me a 60-second introduction tailored to this role.",
            "competency": "communication",
            "source": QuestionSource.INTRO,
        }

    @staticmethod
    def _personalized(candidate: CandidateProfile, role: RoleProfile) -> List[Dict[str, Any]]:
        questions: List[Dict[str, Any]] = []

        for skill in role.shared_skills(candidate)[:PERSONALIZED_SKILLS]:
            questions.append({
                "prompt": (
                    f"Your resume and JD both emphasize {skill}. Tell me about a real project "
                    f"where you used it and explain one trade-off you handled."
                ),
                "competency": "technical",
                "source": QuestionSource.RESUME_AND_JD,
                "skill_tag": skill,
            })

        for skill in role.gap_skills(candidate)[:PERSONALIZED_SKILLS]:
            questions.append({
                "prompt": (
                    f"This role requires {skill}, but it is less visible in your resume. "
                    f"How would you ramp up fast and deliver in your first 30 days?"
                ),
                "competency": "adaptability",
                "source": QuestionSource.JD_GAP,
                "skill_tag": skill,
            })

        if candidate.project_mentions:
            questions.append({
                "prompt": (
                    f'Walk me through this resume claim: "{candidate.project_mentions[0]}". '
                    f"What was the problem, solution, and measurable impact?"
                ),
                "competency": "communication",
                "source": QuestionSource.RESUME_PROJECT,
            })

        return questions


class PlannerAgent(BaseAgent):
    """Plans a session, asking the advisor first when one is configured."""

    def __init__(self, advisor: Optional[InterviewAdvisor] = None,
                 builder: Optional[QuestionPlanBuilder] = None):
        super().__init__("planner")
        self.advisor = advisor
        self.builder = builder or QuestionPlanBuilder()

    async def plan(self, setup: InterviewSetup, candidate: CandidateProfile, role: RoleProfile) -> InterviewPlan:
        """Produce the plan for a session. Never raises.

        The deterministic plan is always built first; it supplies the caps
        and is the fallback when the advisor fails or returns nothing usable.
        """
        fallback = self.builder.build(
            setup.candidate_name, setup.domain, setup.duration_minutes, candidate, role
        )
        if self.advisor is None:
            self.log_operation("plan_built", {"source": "deterministic", "questions": len(fallback)})
            return fallback

        years = setup.years_of_experience if setup.years_of_experience is not None else candidate.years_experience
        try:
            payload = await self.advisor.plan_questions(
                setup.candidate_name, fallback.template_id, years,
                setup.duration_minutes, setup.resume_text, setup.jd_text,
            )
            plan = self._plan_from_payload(payload, fallback)
        except AdvisorError as e:
            self.logger.warning(f"Advisor planning failed, using deterministic plan: {e}")
            return fallback
        except (TypeError, ValueError, AttributeError) as e:
            self.logger.warning(f"Advisor plan was malformed, using deterministic plan: {e}")
            return fallback

        if plan is None:
            self.logger.warning("Advisor plan had no usable questions, using deterministic plan")
            return fallback

        self.log_operation("plan_built", {"source": "advisor", "questions": len(plan)})
        return plan

    def _plan_from_payload(self, payload: Dict[str, Any], fallback: InterviewPlan) -> Optional[InterviewPlan]:
        introduction = str(payload.get("introduction") or "").strip()
        raw_questions = payload.get("questions") or []
        if not isinstance(raw_questions, list):
            raise TypeError("questions must be a list")

        records: List[QuestionRecord] = []
        seen = set()
        main_count = 0

        if introduction:
            records.append(QuestionRecord(
                id="q_1", prompt=introduction, competency="communication",
                kind=QuestionKind.MAIN, source=QuestionSource.INTRO,
            ))
            seen.add(introduction)
            main_count = 1

        for raw in raw_questions:
            if main_count >= fallback.max_main_questions:
                break
            if not isinstance(raw, dict):
                continue
            prompt = str(raw.get("prompt") or "").strip()
            if not prompt or prompt in seen:
                continue

            main_count += 1
            main_id = f"q_{main_count}"
            competency = str(raw.get("competency") or "technical").strip().lower() or "technical"
            seen.add(prompt)
            records.append(QuestionRecord(
                id=main_id, prompt=prompt, competency=competency,
                kind=QuestionKind.MAIN, source=QuestionSource.ADVISOR,
            ))

            follow_ups = raw.get("followUps") or raw.get("follow_ups") or []
            for index, follow_up in enumerate(follow_ups if isinstance(follow_ups, list) else [], start=1):
                text = follow_up.get("prompt") if isinstance(follow_up, dict) else follow_up
                text = str(text or "").strip()
                if not text or text in seen:
                    continue
                seen.add(text)
                records.append(QuestionRecord(
                    id=f"{main_id}_f{index}", prompt=text, competency=competency,
                    kind=QuestionKind.FOLLOWUP, source=QuestionSource.ADVISOR,
                    parent_prompt=prompt,
                ))

        if main_count <= (1 if introduction else 0):
            return None

        return InterviewPlan(
            template_id=fallback.template_id,
            template_label=fallback.template_label,
            introduction=introduction or None,
            questions=records,
            max_main_questions=fallback.max_main_questions,
            follow_up_budget=fallback.follow_up_budget,
            total_turns_limit=max(fallback.total_turns_limit, len(records) + fallback.follow_up_budget),
        )
