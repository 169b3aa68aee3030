"""Evaluator Agent for scoring candidate answers against the interview rubric.

Rubric shared by the heuristic and the advisor-backed paths:

    1  empty, irrelevant, deflection or a single filler word
    2  under ~12 words or no technical specificity
    3  adequate but shallow
    4  solid, with concrete examples
    5  comprehensive, with metrics or trade-offs
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..models.interview import QuestionRecord, TurnRecord, Verdict
from ..parsers.profile_extractor import extract_skills
from ..services.advisor import InterviewAdvisor
from ..utils.exceptions import AdvisorError, EvaluationError
from .base_agent import BaseAgent

SHORT_ANSWER_WORDS = 12
ELABORATION_WORDS = 15
DETAILED_ANSWER_WORDS = 25
DEFLECTION_MAX_WORDS = 8
RELEVANCE_MIN_WORDS = 8
SNIPPET_CHARS = 60

FILLER_WORDS = {
    "ok", "okay", "great", "alright", "fine", "good", "yes", "sure",
    "yeah", "yep", "cool", "nice", "right", "hmm", "no", "nope",
}

STOPWORDS = {
    "about", "after", "again", "also", "and", "approach", "because", "been", "before",
    "both", "could", "describe", "does", "doing", "each", "explain", "from", "have",
    "into", "just", "like", "make", "more", "most", "much", "only", "other", "over",
    "really", "should", "some", "such", "tell", "than", "that", "their", "them",
    "then", "there", "these", "they", "this", "those", "through", "time", "very",
    "walk", "what", "when", "where", "which", "while", "with", "would", "your",
}

_DEFLECTION = re.compile(
    r"\b(i\s+don'?t\s+know|no\s+idea|not\s+sure|no\s+comment)\b|^\s*(skip|pass)\b", re.IGNORECASE
)
_METRIC = re.compile(r"\b\d+(\.\d+)?%?")
_CONTEXT = re.compile(r"\b(when|while|during|project|team|customer|users?|production|client)\b", re.IGNORECASE)
_TRADE_OFF = re.compile(r"(trade[\s-]?off|because|decided|alternative|constraint|instead of)", re.IGNORECASE)
_ACTION = re.compile(
    r"\b(built|improved|implemented|designed|fixed|led|migrated|reduced|optimi[sz]ed|created|wrote|shipped)\b",
    re.IGNORECASE,
)
_WORD = re.compile(r"[a-z0-9][a-z0-9'+#.-]*")

GENERIC_FOLLOW_UP_PATTERNS = [
    re.compile(r"(overcome|tackle|handle)\s+(hurdles|challenges|difficulties)", re.IGNORECASE),
    re.compile(r"how\s+did\s+you\s+(overcome|tackle|handle)", re.IGNORECASE),
    re.compile(r"^(can|could)\s+you\s+(tell\s+me\s+more|elaborate)\s*\??$", re.IGNORECASE),
    re.compile(r"tell\s+me\s+(more\s+)?about\s+yourself", re.IGNORECASE),
    re.compile(r"what\s+(are|were)\s+your\s+(strengths|weaknesses)", re.IGNORECASE),
]


def is_generic_follow_up(text: Optional[str]) -> bool:
    """Check a proposed follow-up against the deny-list of platitudes."""
    if not text:
        return False
    return any(pattern.search(text.strip()) for pattern in GENERIC_FOLLOW_UP_PATTERNS)


def word_count(text: str) -> int:
    return len(text.split())


def prompt_snippet(prompt: str, limit: int = SNIPPET_CHARS) -> str:
    """First clause of a prompt, trimmed at a word boundary."""
    clause = re.split(r"[.?!]", prompt.strip(), maxsplit=1)[0].strip()
    if len(clause) > limit:
        clause = clause[:limit].rsplit(" ", 1)[0]
    return clause.rstrip(",;: ")


def _keywords(text: str) -> set:
    return {w.strip(".'") for w in _WORD.findall(text.lower()) if len(w) >= 4 and w not in STOPWORDS}


def _is_filler_only(answer: str) -> bool:
    tokens = [t.strip(".,!?") for t in answer.lower().split()]
    tokens = [t for t in tokens if t]
    return 0 < len(tokens) <= 2 and all(t in FILLER_WORDS for t in tokens)


def _apply_follow_up_policy(verdict: Dict[str, Any]) -> Dict[str, Any]:
    """Follow-ups exist only for thin or off-topic answers and never as platitudes."""
    follow_up = str(verdict.get("follow_up_question") or "").strip()
    wants = not verdict["is_relevant"] or verdict["needs_elaboration"]

    if wants and follow_up:
        verdict["needs_follow_up"] = True
        verdict["follow_up_question"] = follow_up
    else:
        verdict["needs_follow_up"] = False
        verdict["follow_up_question"] = None

    if verdict["needs_follow_up"] and is_generic_follow_up(follow_up):
        verdict["needs_follow_up"] = False
        verdict["follow_up_question"] = None
    return verdict


class AnswerEvaluator(BaseAgent):
    """Turns (question, answer, recent turns) into a Verdict. Never raises."""

    def __init__(self, advisor: Optional[InterviewAdvisor] = None, context_window: int = 2):
        super().__init__("evaluator")
        self.advisor = advisor
        self.context_window = context_window

    async def evaluate(self, question: QuestionRecord, answer: str,
                       recent_context: Sequence[TurnRecord] = ()) -> Verdict:
        """Score one answer.

        Args:
            question: The active question
            answer: Cleaned candidate answer
            recent_context: Most recent turns, oldest first

        Returns:
            A verdict honoring the rubric; the neutral verdict if the
            advisor fails
        """
        answer = (answer or "").strip()
        if self.advisor is None:
            return self.evaluate_heuristically(question, answer)

        context = list(recent_context)[-self.context_window:] if self.context_window else []
        try:
            payload = await self.advisor.evaluate_answer(question.prompt, answer, context)
            verdict = self._verdict_from_payload(payload, question, answer)
        except (AdvisorError, EvaluationError) as e:
            self.logger.warning(f"Evaluation of {question.id} degraded to neutral verdict: {e}")
            return Verdict.neutral()

        self.logger.debug(f"Advisor verdict for {question.id}: score={verdict.score}")
        return verdict

    def _verdict_from_payload(self, payload: Dict[str, Any], question: QuestionRecord, answer: str) -> Verdict:
        if not isinstance(payload, dict):
            raise EvaluationError("Advisor verdict is not an object", question_id=question.id)

        def flag(key: str, default: bool) -> bool:
            value = payload.get(key)
            return value if isinstance(value, bool) else default

        data = {
            "score": payload.get("score"),
            "feedback": payload.get("feedback"),
            "is_relevant": flag("isRelevant", True),
            "needs_elaboration": flag("needsElaboration", False),
            "needs_follow_up": flag("needsFollowUp", False),
            "follow_up_question": payload.get("followUpQuestion"),
        }
        try:
            data["score"] = Verdict(score=data["score"]).score
        except (ValidationError, TypeError, ValueError, OverflowError) as e:
            raise EvaluationError(f"Advisor score is unusable: {data['score']!r}", question_id=question.id) from e

        words = word_count(answer)
        if not answer or _is_filler_only(answer):
            data["score"] = 1
            data["needs_elaboration"] = True
        elif words < SHORT_ANSWER_WORDS:
            data["score"] = min(data["score"], 2)
        if words < ELABORATION_WORDS:
            data["needs_elaboration"] = True
        if not data["is_relevant"]:
            data["score"] = 1

        try:
            return Verdict(**_apply_follow_up_policy(data))
        except (ValidationError, TypeError, ValueError, OverflowError) as e:
            raise EvaluationError(f"Advisor verdict is malformed: {e}", question_id=question.id) from e

    def evaluate_heuristically(self, question: QuestionRecord, answer: str) -> Verdict:
        """Keyword and word-count realisation of the rubric."""
        words = word_count(answer)

        if not answer:
            return self._thin_verdict(question, relevant=False, feedback=["No answer was given."])

        if words <= DEFLECTION_MAX_WORDS and _DEFLECTION.search(answer):
            return self._thin_verdict(
                question, relevant=False,
                feedback=["Try to reason through the question out loud instead of passing."],
            )

        if _is_filler_only(answer):
            return self._thin_verdict(
                question, relevant=True,
                feedback=["Add more depth and structure in your explanation."],
            )

        has_metric = bool(_METRIC.search(answer))
        has_context = bool(_CONTEXT.search(answer))
        has_trade_off = bool(_TRADE_OFF.search(answer))
        has_action = bool(_ACTION.search(answer))
        depth = sum((has_metric, has_context, has_trade_off, has_action))
        grounded = has_context or has_action

        if words < SHORT_ANSWER_WORDS:
            score = 2
        elif words < DETAILED_ANSWER_WORDS:
            score = 3 if depth >= 2 else 2
        else:
            score = 3 + int(grounded) + int(grounded and (has_metric or has_trade_off))
        score = min(score, 5)

        technical = bool(extract_skills(answer)) or depth > 0
        shares_topic = bool(_keywords(question.prompt) & _keywords(answer))
        if question.skill_tag and question.skill_tag.lower() in answer.lower():
            shares_topic = True
        is_relevant = words < RELEVANCE_MIN_WORDS or shares_topic or technical
        if not is_relevant:
            score = 1

        vague = depth == 0 and words < DETAILED_ANSWER_WORDS
        needs_elaboration = words < ELABORATION_WORDS or vague or score <= 2

        feedback: List[str] = []
        if words < DETAILED_ANSWER_WORDS:
            feedback.append("Add more depth and structure in your explanation.")
        if not has_metric:
            feedback.append("Include at least one measurable outcome.")
        if not has_trade_off and question.competency == "technical":
            feedback.append("Mention trade-offs or why you chose one approach over another.")
        if not is_relevant:
            feedback.insert(0, "The answer did not address the question that was asked.")

        verdict = {
            "score": score,
            "feedback": feedback,
            "is_relevant": is_relevant,
            "needs_elaboration": needs_elaboration,
            "needs_follow_up": False,
            "follow_up_question": self._follow_up_for(question, is_relevant),
        }
        return Verdict(**_apply_follow_up_policy(verdict))

    def _thin_verdict(self, question: QuestionRecord, relevant: bool, feedback: List[str]) -> Verdict:
        verdict = {
            "score": 1,
            "feedback": feedback,
            "is_relevant": relevant,
            "needs_elaboration": True,
            "needs_follow_up": False,
            "follow_up_question": self._follow_up_for(question, relevant),
        }
        return Verdict(**_apply_follow_up_policy(verdict))

    @staticmethod
    def _follow_up_for(question: QuestionRecord, relevant: bool) -> str:
        """A probing question that names the skill or quotes the prompt."""
        focus = question.skill_tag or prompt_snippet(question.prompt)
        if not relevant:
            if question.skill_tag:
                return f"Let's stay on {focus}: what have you actually done with it, even on a small project?"
            return f'Let\'s come back to the question, "{focus}". What is your answer to that?'
        if question.skill_tag:
            return f"Can you walk me through one specific time you used {focus}, step by step, and what it changed?"
        return f'Could you go one level deeper on "{focus}" and walk through your exact approach step by step?'
