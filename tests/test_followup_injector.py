"""Unit tests for dynamic follow-up injection."""
from voice_interviewer.agents.followup_injector import FollowUpInjector
from voice_interviewer.agents.planner_agent import QuestionPlanBuilder
from voice_interviewer.models.enums import QuestionKind, QuestionSource
from voice_interviewer.models.interview import Verdict
from voice_interviewer.models.profile import CandidateProfile, RoleProfile


def thin_verdict(question="Which hook held the cart state?"):
    return Verdict(score=2, needs_elaboration=True, needs_follow_up=True, follow_up_question=question)


def make_plan(duration=10):
    return QuestionPlanBuilder().build("Sam", "frontend", duration, CandidateProfile(), RoleProfile())


def test_inserts_directly_after_cursor():
    plan = make_plan()
    plan.advance()
    question = plan.current_question

    record = FollowUpInjector().maybe_inject(thin_verdict(), question, plan)

    assert record.id == "q_2_dfu1"
    assert record.kind == QuestionKind.DYNAMIC_FOLLOWUP
    assert record.source == QuestionSource.DYNAMIC
    assert record.parent_prompt == question.prompt
    assert plan.questions[2] is record
    assert plan.dynamic_followups_used == 1
    assert len(plan) == 5


def test_no_injection_without_follow_up_request():
    plan = make_plan()
    verdict = Verdict(score=4)
    assert FollowUpInjector().maybe_inject(verdict, plan.current_question, plan) is None
    assert len(plan) == 4


def test_follow_ups_never_chain():
    plan = make_plan()
    injector = FollowUpInjector()
    injector.maybe_inject(thin_verdict(), plan.current_question, plan)
    plan.advance()

    follow_up = plan.current_question
    assert follow_up.kind == QuestionKind.DYNAMIC_FOLLOWUP
    assert injector.maybe_inject(thin_verdict("And then?"), follow_up, plan) is None
    assert plan.dynamic_followups_used == 1


def test_budget_is_never_exceeded():
    plan = make_plan()
    injector = FollowUpInjector()
    inserted = 0
    while plan.current_question is not None:
        question = plan.current_question
        if injector.maybe_inject(thin_verdict(), question, plan):
            inserted += 1
        plan.advance()

    assert inserted == plan.follow_up_budget == 2
    assert len(plan) == 6


def test_configured_cap_lowers_the_budget():
    plan = make_plan()
    injector = FollowUpInjector(max_dynamic_followups=0)
    assert injector.budget_for(plan) == 0
    assert injector.maybe_inject(thin_verdict(), plan.current_question, plan) is None


def test_question_off_cursor_is_ignored():
    plan = make_plan()
    stale = plan.questions[3]
    assert FollowUpInjector().maybe_inject(thin_verdict(), stale, plan) is None
