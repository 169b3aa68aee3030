"""Unit tests for transcript aggregation into the final report."""
import asyncio

from voice_interviewer.agents.report_agent import (
    DEFAULT_IMPROVEMENT,
    DEFAULT_STRENGTH,
    ReportAgent,
    round_one_decimal,
)
from voice_interviewer.models.interview import InterviewSetup, QuestionRecord, Transcript, TurnRecord, Verdict
from voice_interviewer.models.profile import CandidateProfile, RoleProfile

from conftest import FakeAdvisor


def turn(qid, score, competency="technical", answer="An answer", skipped=False):
    question = QuestionRecord(id=qid, prompt=f"Question {qid}?", competency=competency)
    verdict = Verdict.skipped() if skipped else Verdict(score=score)
    return TurnRecord.for_question(question, answer, verdict, skipped=skipped)


def build(turns, role=None, advisor=None):
    transcript = Transcript(turns=turns)
    setup = InterviewSetup(candidate_name="Jane", duration_minutes=20)
    agent = ReportAgent(advisor)
    return asyncio.run(agent.generate(transcript, None, CandidateProfile(skills=["react"]),
                                      role or RoleProfile(), setup))


def test_overall_is_rounded_mean_of_answered_turns():
    report = build([turn("q_1", 2), turn("q_2", 4), turn("q_3", 3)])
    assert report.overall_score == 3.0
    assert report.total_answers == 3


def test_competency_averages_keep_first_seen_order():
    report = build([
        turn("q_1", 4, competency="communication"),
        turn("q_2", 3),
        turn("q_3", 4),
        turn("q_4", 2, competency="communication"),
    ])
    assert list(report.competency_scores) == ["communication", "technical"]
    assert report.competency_scores == {"communication": 3.0, "technical": 3.5}


def test_skipped_turns_are_counted_but_not_scored():
    report = build([turn("q_1", 4), turn("q_2", 1, skipped=True)])
    assert report.overall_score == 4.0
    assert report.total_answers == 1
    assert report.total_turns == 2


def test_empty_transcript_gives_neutral_report():
    report = build([])
    assert report.overall_score == 0.0
    assert report.strengths == [DEFAULT_STRENGTH]
    assert report.improvements == [DEFAULT_IMPROVEMENT]
    assert report.competency_scores == {}


def test_strengths_and_improvements():
    report = build(
        [turn("q_1", 5), turn("q_2", 2), turn("q_3", 4), turn("q_4", 3), turn("q_5", 1)],
        role=RoleProfile(required_skills=["react", "kubernetes"]),
    )
    assert report.strengths == [
        'Strong technical response: "Question q_1?"',
        'Strong technical response: "Question q_3?"',
        'Strong technical response: "Question q_4?"',
    ]
    assert report.improvements == [
        'Improve depth for: "Question q_5?"',
        'Improve depth for: "Question q_2?"',
        'Practice role-specific examples for "react".',
        'Practice role-specific examples for "kubernetes".',
    ]


def test_skill_coverage_uses_prompts_and_answers():
    report = build(
        [turn("q_1", 4, answer="I shipped React apps on Kubernetes")],
        role=RoleProfile(required_skills=["react", "kubernetes", "aws"]),
    )
    assert report.matched_skills == ["react", "kubernetes"]
    assert report.missing_required_skills == ["aws"]
    assert report.resume_skills == ["react"]


def test_advisor_narrative_is_merged_and_clamped():
    advisor = FakeAdvisor(report={
        "strengths": ["Clear structure"],
        "summary": "Solid interview.",
        "recommendation": "Hire",
        "overallScore": 7,
    })
    report = build([turn("q_1", 4)], advisor=advisor)
    assert report.strengths == ["Clear structure"]
    assert report.summary == "Solid interview."
    assert report.recommendation == "Hire"
    assert report.overall_score == 5.0


def test_advisor_failure_keeps_local_report():
    report = build([turn("q_1", 4)], advisor=FakeAdvisor(fail={"build_report"}))
    assert report.overall_score == 4.0
    assert report.summary is None


def test_advisor_not_consulted_when_nothing_answered():
    advisor = FakeAdvisor()
    build([turn("q_1", 1, skipped=True)], advisor=advisor)
    assert advisor.calls == []


def test_round_one_decimal_rounds_half_up():
    assert round_one_decimal(3.25) == 3.3
    assert round_one_decimal(3.24) == 3.2


def test_non_finite_advisor_overall_keeps_local_score():
    advisor = FakeAdvisor(report={"overallScore": float("nan"), "summary": "Steady answers."})
    report = build([turn("q_1", 4)], advisor=advisor)
    assert report.overall_score == 4.0
    assert report.summary == "Steady answers."

    report = build([turn("q_1", 2)], advisor=FakeAdvisor(report={"overallScore": float("inf")}))
    assert report.overall_score == 2.0
