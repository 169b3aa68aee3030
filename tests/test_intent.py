"""Unit tests for utterance intent classification."""
import asyncio

import pytest

from voice_interviewer.agents.intent_agent import (
    LONG_THINKING_TIMEOUT,
    SHORT_TIMEOUT,
    IntentClassifier,
)
from voice_interviewer.models.enums import Intent
from voice_interviewer.models.interview import QuestionRecord, ResponseDecision

from conftest import DETAILED_ANSWER, FakeAdvisor


QUESTION = QuestionRecord(id="q_2", prompt="How do you cache API responses?")


def classify(utterance, advisor=None):
    return asyncio.run(IntentClassifier(advisor, default_thinking_extension=20).classify(utterance, QUESTION))


@pytest.mark.parametrize("utterance, intent", [
    ("hmm", Intent.THINKING),
    ("let me think about that", Intent.THINKING),
    ("could you clarify what you mean by caching layer?", Intent.CLARIFY),
    ("sorry, can you repeat that", Intent.REPEAT),
    ("okay", Intent.READY),
    ("I'm ready", Intent.READY),
    (DETAILED_ANSWER, Intent.ANSWER),
    ("", Intent.EMPTY),
])
def test_heuristic_intents(utterance, intent):
    assert classify(utterance).intent == intent


def test_only_answers_consume_a_turn():
    assert Intent.ANSWER.consumes_turn
    assert not any(intent.consumes_turn for intent in Intent if intent is not Intent.ANSWER)


def test_timeout_markers():
    long_pause = classify(LONG_THINKING_TIMEOUT)
    assert long_pause.intent == Intent.OFFER_OPTIONS
    assert "skip" in long_pause.response

    short_pause = classify(SHORT_TIMEOUT)
    assert short_pause.intent == Intent.GIVE_MORE_TIME
    assert short_pause.extra_time == 20


def test_thinking_grants_extra_time():
    assert classify("give me a second").extra_time == 20


def test_advisor_decision_is_normalised():
    advisor = FakeAdvisor(intents={"umm so": {"intent": "Thinking", "response": " Sure ", "extraTime": "30"}})
    decision = classify("umm so", advisor=advisor)
    assert decision.intent == Intent.THINKING
    assert decision.response == "Sure"
    assert decision.extra_time == 30.0


def test_unknown_advisor_intent_becomes_answer():
    advisor = FakeAdvisor(intents={"well": {"intent": "philosophize"}})
    assert classify("well", advisor=advisor).intent == Intent.ANSWER


def test_advisor_failure_becomes_answer():
    advisor = FakeAdvisor(fail={"classify_response"})
    assert classify("let me think", advisor=advisor).intent == Intent.ANSWER


def test_advisor_failure_on_timeout_uses_rules():
    advisor = FakeAdvisor(fail={"classify_response"})
    assert classify(LONG_THINKING_TIMEOUT, advisor=advisor).intent == Intent.OFFER_OPTIONS


def test_empty_utterance_never_reaches_advisor():
    advisor = FakeAdvisor()
    assert classify("  ", advisor=advisor).intent == Intent.EMPTY
    assert advisor.calls == []


def test_response_decision_coercions():
    decision = ResponseDecision(intent=None, response=None, extra_time=-5, should_proceed="yes")
    assert decision.intent == Intent.ANSWER
    assert decision.response == ""
    assert decision.extra_time is None
    assert decision.should_proceed is None
