"""Unit tests for question planning."""
import asyncio

import pytest

from voice_interviewer.agents.planner_agent import (
    PlannerAgent,
    QuestionPlanBuilder,
    find_template,
    follow_up_budget_for,
    max_main_questions_for,
)
from voice_interviewer.constants import BASE_QUESTION_BANK
from voice_interviewer.models.enums import QuestionKind, QuestionSource
from voice_interviewer.models.interview import InterviewSetup
from voice_interviewer.models.profile import CandidateProfile, RoleProfile
from voice_interviewer.parsers.profile_extractor import ProfileExtractor

from conftest import JOB_DESCRIPTION, RESUME, FakeAdvisor


@pytest.mark.parametrize("minutes, expected_main, expected_budget", [
    (10, 4, 2),
    (20, 7, 3),
    (30, 9, 4),
    (3, 4, 2),
    (90, 9, 4),
    (0, 7, 3),
])
def test_caps_scale_with_duration(minutes, expected_main, expected_budget):
    main = max_main_questions_for(minutes)
    assert main == expected_main
    assert follow_up_budget_for(main) == expected_budget


def test_find_template_matches_id_or_label():
    assert find_template("Backend Engineer")[0]["id"] == "backend"
    assert find_template("  QA  ") == find_template("qa")
    template, matched = find_template("astronaut")
    assert template["id"] == "frontend"
    assert not matched


def test_backend_plan_without_profiles():
    plan = QuestionPlanBuilder().build("Sam", "backend", 10, CandidateProfile(), RoleProfile())

    assert plan.template_label == "Backend Engineer"
    assert len(plan) == 4
    assert plan.questions[0].prompt == "Hi Sam. Give me a 60-second introduction tailored to this role."
    assert plan.questions[0].source == QuestionSource.INTRO
    assert [q.prompt for q in plan.questions[1:]] == [q["prompt"] for q in BASE_QUESTION_BANK["backend"][:3]]
    assert [q.id for q in plan.questions] == ["q_1", "q_2", "q_3", "q_4"]
    assert plan.total_turns_limit == 8
    assert plan.follow_up_budget == 2


def test_personalized_questions_follow_the_bank():
    candidate, role = ProfileExtractor().extract(RESUME, JOB_DESCRIPTION)
    plan = QuestionPlanBuilder().build("", "frontend", 30, candidate, role)

    assert plan.questions[0].prompt.startswith("Hi there.")
    sources = [q.source for q in plan.questions]
    assert sources == [QuestionSource.INTRO] + [QuestionSource.TEMPLATE] * 4 + [
        QuestionSource.RESUME_AND_JD,
        QuestionSource.RESUME_AND_JD,
        QuestionSource.JD_GAP,
        QuestionSource.RESUME_PROJECT,
    ]
    assert [q.skill_tag for q in plan.questions[5:8]] == ["react", "typescript", "kubernetes"]
    assert "Built a design system" in plan.questions[8].prompt
    assert all(q.kind == QuestionKind.MAIN for q in plan.questions)
    assert len({q.prompt for q in plan.questions}) == len(plan)


def test_unknown_domain_falls_back_to_first_template():
    plan = QuestionPlanBuilder().build("Sam", "astronaut", 20, CandidateProfile(), RoleProfile())
    assert plan.template_id == "frontend"


def test_build_is_deterministic():
    candidate, role = ProfileExtractor().extract(RESUME, JOB_DESCRIPTION)
    builder = QuestionPlanBuilder()
    first = builder.build("Jane", "frontend", 20, candidate, role)
    second = builder.build("Jane", "frontend", 20, candidate, role)
    assert first.model_dump() == second.model_dump()


def test_advisor_plan_with_scripted_followups():
    advisor = FakeAdvisor(plan={
        "introduction": "Hi Jane, welcome. Tell me about yourself.",
        "questions": [
            {"prompt": "How do you structure React state?", "competency": "Technical",
             "followUps": ["Why not Redux?", {"prompt": "How do you test it?"}]},
            {"prompt": "How do you handle API errors?"},
        ],
    })
    setup = InterviewSetup(candidate_name="Jane", domain="frontend", duration_minutes=10)
    plan = asyncio.run(PlannerAgent(advisor).plan(setup, CandidateProfile(), RoleProfile()))

    assert [q.id for q in plan.questions] == ["q_1", "q_2", "q_2_f1", "q_2_f2", "q_3"]
    assert plan.introduction == "Hi Jane, welcome. Tell me about yourself."
    assert plan.questions[1].competency == "technical"
    assert plan.questions[2].kind == QuestionKind.FOLLOWUP
    assert plan.questions[2].parent_prompt == "How do you structure React state?"
    assert plan.total_turns_limit == 8


def test_advisor_failure_falls_back_to_deterministic_plan():
    setup = InterviewSetup(candidate_name="Jane", domain="backend", duration_minutes=10)
    plan = asyncio.run(
        PlannerAgent(FakeAdvisor(fail={"plan_questions"})).plan(setup, CandidateProfile(), RoleProfile())
    )
    expected = QuestionPlanBuilder().build("Jane", "backend", 10, CandidateProfile(), RoleProfile())
    assert plan.model_dump() == expected.model_dump()


def test_advisor_plan_without_questions_falls_back():
    advisor = FakeAdvisor(plan={"introduction": "Hello!", "questions": []})
    setup = InterviewSetup(candidate_name="Jane", domain="backend", duration_minutes=10)
    plan = asyncio.run(PlannerAgent(advisor).plan(setup, CandidateProfile(), RoleProfile()))
    assert plan.questions[0].source == QuestionSource.INTRO
    assert plan.questions[1].source == QuestionSource.TEMPLATE
