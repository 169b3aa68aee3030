"""Follow-up Injector: splices probing questions into the plan."""

from typing import Optional

from ..models.enums import QuestionKind, QuestionSource
from ..models.interview import InterviewPlan, QuestionRecord, Verdict
from .base_agent import BaseAgent


class FollowUpInjector(BaseAgent):
    """Inserts at most one dynamic follow-up after the current question.

    A follow-up is only ever added behind a main question, so the depth of
    dynamic probing is one level, and the session-wide count never exceeds
    the plan's follow-up budget (or ``max_dynamic_followups`` when lower).
    """

    def __init__(self, max_dynamic_followups: Optional[int] = None):
        super().__init__("followup_injector")
        self.max_dynamic_followups = max_dynamic_followups

    def budget_for(self, plan: InterviewPlan) -> int:
        if self.max_dynamic_followups is None:
            return plan.follow_up_budget
        return min(plan.follow_up_budget, self.max_dynamic_followups)

    def maybe_inject(self, verdict: Verdict, question: QuestionRecord,
                     plan: InterviewPlan) -> Optional[QuestionRecord]:
        """Insert a follow-up directly after the cursor when allowed.

        Args:
            verdict: Verdict of the answer just given
            question: The question that was answered, i.e. the cursor record
            plan: Plan to mutate

        Returns:
            The inserted record, or None when the plan was left untouched
        """
        if not verdict.wants_follow_up:
            return None
        if question.kind.is_followup:
            self.logger.debug(f"Not chaining a follow-up after follow-up {question.id}")
            return None
        if plan.dynamic_followups_used >= self.budget_for(plan):
            self.logger.debug("Follow-up budget exhausted")
            return None
        if plan.current_question is None or plan.current_question.id != question.id:
            self.logger.warning(f"Question {question.id} is not at the cursor; skipping follow-up")
            return None

        plan.dynamic_followups_used = plan.dynamic_followups_used + 1
        record = QuestionRecord(
            id=f"{question.id}_dfu{plan.dynamic_followups_used}",
            prompt=verdict.follow_up_question,
            competency=question.competency,
            kind=QuestionKind.DYNAMIC_FOLLOWUP,
            source=QuestionSource.DYNAMIC,
            parent_prompt=question.prompt,
            skill_tag=question.skill_tag,
        )
        position = plan.insert_after_current(record)
        self.log_operation("followup_injected", {
            "question_id": record.id,
            "position": position,
            "used": plan.dynamic_followups_used,
            "budget": self.budget_for(plan),
        })
        return record
