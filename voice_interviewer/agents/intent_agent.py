"""Intent Agent: decides how the interviewer reacts to an utterance."""

import re
from typing import Optional, Sequence

from pydantic import ValidationError

from ..models.enums import Intent
from ..models.interview import QuestionRecord, ResponseDecision, TurnRecord
from ..services.advisor import InterviewAdvisor
from ..utils.exceptions import AdvisorError
from .base_agent import BaseAgent

LONG_THINKING_TIMEOUT = "long_thinking_timeout"
SHORT_TIMEOUT = "short_timeout"
TIMEOUT_MARKERS = (LONG_THINKING_TIMEOUT, SHORT_TIMEOUT)

READY_MAX_WORDS = 3

_THINKING = re.compile(
    r"^\s*(hmm+|umm+|uh+)\W*$|let me think|give me a (second|moment|minute)|good question|thinking about it",
    re.IGNORECASE,
)
_CLARIFY = re.compile(
    r"can you (explain|clarify)|what do you mean|could you clarify|what does .* mean|not sure what you mean",
    re.IGNORECASE,
)
_REPEAT = re.compile(
    r"\b(repeat|pardon|say (that|it) again|come again|one more time)\b|^\s*again\W*$",
    re.IGNORECASE,
)
_READY = re.compile(r"^\s*(ok(ay)?|alright|ready|sure|i'?m ready|let'?s go|go ahead)\W*$", re.IGNORECASE)

THINKING_RESPONSE = "No rush at all. Take your time."
OFFER_OPTIONS_RESPONSE = "Would you like me to repeat the question, or should we skip it?"
MORE_TIME_RESPONSE = "Would you like more time to think, or should I repeat the question?"
EMPTY_RESPONSE = "I didn't catch that. Could you please answer?"


class IntentClassifier(BaseAgent):
    """Classifies utterances; only the ANSWER intent ever consumes a turn."""

    def __init__(self, advisor: Optional[InterviewAdvisor] = None,
                 default_thinking_extension: float = 20.0):
        super().__init__("intent")
        self.advisor = advisor
        self.default_thinking_extension = default_thinking_extension

    async def classify(self, utterance: str, question: Optional[QuestionRecord],
                       years_of_experience: float = 0.0,
                       recent_context: Sequence[TurnRecord] = ()) -> ResponseDecision:
        """Classify one utterance or timeout marker.

        Args:
            utterance: Cleaned candidate text, or a timeout marker
            question: The active question, if any
            years_of_experience: Used by the advisor to pick a tone
            recent_context: Most recent turns, oldest first

        Returns:
            A normalised decision. Empty text is always EMPTY; any advisor
            failure becomes ANSWER.
        """
        text = (utterance or "").strip()
        if not text:
            return ResponseDecision(intent=Intent.EMPTY, response=EMPTY_RESPONSE)

        if self.advisor is None:
            return self.classify_heuristically(text)

        try:
            payload = await self.advisor.classify_response(
                text, question.prompt if question else "", years_of_experience, list(recent_context)
            )
            decision = ResponseDecision(
                intent=payload.get("intent"),
                response=payload.get("response"),
                extra_time=payload.get("extraTime", payload.get("extra_time")),
                should_proceed=payload.get("shouldProceed", payload.get("should_proceed")),
            )
        except (AdvisorError, ValidationError, AttributeError) as e:
            self.logger.warning(f"Intent classification degraded to answer: {e}")
            if text in TIMEOUT_MARKERS:
                return self.classify_heuristically(text)
            return ResponseDecision(intent=Intent.ANSWER)

        self.logger.debug(f"Advisor intent: {decision.intent.value}")
        return decision

    def classify_heuristically(self, text: str) -> ResponseDecision:
        """Keyword rules used when no advisor is configured."""
        if text == LONG_THINKING_TIMEOUT:
            return ResponseDecision(intent=Intent.OFFER_OPTIONS, response=OFFER_OPTIONS_RESPONSE)
        if text == SHORT_TIMEOUT:
            return ResponseDecision(
                intent=Intent.GIVE_MORE_TIME,
                response=MORE_TIME_RESPONSE,
                extra_time=self.default_thinking_extension,
            )

        if _REPEAT.search(text) and len(text.split()) <= 8:
            return ResponseDecision(intent=Intent.REPEAT)
        if _CLARIFY.search(text) and len(text.split()) <= 15:
            return ResponseDecision(intent=Intent.CLARIFY)
        if _THINKING.search(text) and len(text.split()) <= 10:
            return ResponseDecision(
                intent=Intent.THINKING,
                response=THINKING_RESPONSE,
                extra_time=self.default_thinking_extension,
            )
        if len(text.split()) <= READY_MAX_WORDS and _READY.match(text):
            return ResponseDecision(intent=Intent.READY, response="Great, whenever you're ready.")
        return ResponseDecision(intent=Intent.ANSWER, should_proceed=True)
