"""Advisory service: the remote reasoning oracle consulted by the agents.

Every call here is fallible and slow. The advisor raises ``AdvisorError``
on any failure and the calling agent decides what the safe default is.
"""

import asyncio
import json
import random
import re
import time
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..models.interview import TurnRecord
from ..providers.chat_provider import ChatCompletionProvider
from ..utils.exceptions import AdvisorError, CircuitBreakerError
from ..utils.logging import get_logger, log_performance

_FENCE_START = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_END = re.compile(r"\s*```$")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

MAX_PROMPT_CHARS = 18000

INTRODUCTION_TEMPLATES = [
    "Hi [Name]! Welcome, it's great to meet you. I've reviewed your resume and before we dive into the technical questions, I'd love to hear a bit about yourself and your experience.",
    "Hello [Name]! Thanks for joining me today. To get started, could you tell me a little about your professional journey and what brings you here?",
    "Hi [Name]! Great to connect with you. I'd love to hear your story first. Could you introduce yourself and share what you're most passionate about in your work?",
    "Welcome [Name]! It's a pleasure to meet you. To kick things off, could you tell me about your professional background and what you enjoy most about your field?",
]

PLAN_SYSTEM_PROMPT = """JSON only. Respond with valid JSON containing exactly two keys: "introduction" and "questions".
The introduction must be warm and human-like and ask the candidate to introduce themselves.
Generate specific questions based on the resume and job description. No generic questions like "tell me about yourself" in the questions array.
Reference concrete resume content: companies, projects, skills and achievements.
Each question has "id", "prompt", "competency" and "followUps" (a list of {"id", "prompt"}).
Use the provided introduction exactly as given."""

EVALUATION_SYSTEM_PROMPT = """JSON only. Evaluate answer quality and provide feedback.

Return JSON with keys:
- score (1-5)
- feedback (array of short strings)
- needsFollowUp (boolean)
- followUpQuestion (string, optional)
- needsElaboration (boolean)
- isRelevant (boolean)

Rules for scoring:
- 1: No answer, completely irrelevant, or single words like "great", "alright", "ok"
- 2: Very short answer (<12 words) or vague without technical details
- 3: Adequate answer with some details but lacks depth
- 4: Good answer with solid technical details and examples
- 5: Excellent answer with comprehensive details, metrics, trade-offs and insights

Rules for isRelevant:
- false if the answer is unrelated to the question or talks about a different topic
- false for deflections like "I don't know", "no idea", "not sure", "skip", "pass"
- true only if the answer attempts to address the question

Rules for needsElaboration:
- true if the answer is shorter than 15 words or vague ("great", "alright", "ok", "fine", "good")
- true if the answer lacks the expected depth or misses the core of the question

Rules for followUpQuestion:
- Only ask if needsElaboration is true or isRelevant is false
- It MUST be specific to this question and answer
- Do NOT ask generic questions like "How do you overcome challenges?"
- Keep it one sentence."""

INTENT_SYSTEM_PROMPT = """You are an empathetic interviewer. Analyse the candidate's utterance and determine its intent. Respond with valid JSON.

Possible intents:
- "answer": the candidate is answering the question
- "thinking": the candidate needs time to think ("hmm", "let me think", "that's a good question")
- "clarify": the candidate wants clarification ("can you explain", "what do you mean")
- "repeat": the candidate wants the question repeated ("repeat", "again", "pardon")
- "ready": the candidate is ready to proceed ("okay", "alright", "ready", "sure")
- "offer_options": offer to repeat or skip the question
- "give_more_time": give the candidate more thinking time
- "empty": no meaningful response

Keys: "intent", "response" (one short full sentence to say back, never a single word), optional "extraTime" (seconds) and optional "shouldProceed" (boolean)."""

REPORT_SYSTEM_PROMPT = """JSON only. Generate an interview evaluation report based on actual performance.
Calculate overallScore by averaging the individual question scores from the transcript.

Return JSON with:
- overallScore (1-5)
- strengths (array of specific strengths demonstrated)
- improvements (array of specific areas to improve)
- summary (two or three sentences)
- recommendation (one of "strong hire", "hire", "lean hire", "no hire")"""


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Circuit breaker pattern implementation."""

    def __init__(self, failure_threshold: int = 3, timeout: int = 60):
        """Initialize circuit breaker.

        Args:
            failure_threshold: Number of consecutive failures before opening circuit
            timeout: Seconds to wait before letting a trial call through
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = CircuitState.CLOSED
        self.logger = get_logger("circuit_breaker")

    def can_execute(self) -> bool:
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if self.last_failure_time and (datetime.now() - self.last_failure_time).total_seconds() >= self.timeout:
                self.state = CircuitState.HALF_OPEN
                self.logger.info("Circuit breaker transitioning to half-open state")
                return True
            return False

        return True

    def on_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self.logger.info("Circuit breaker closed after successful operation")
        self.state = CircuitState.CLOSED
        self.failure_count = 0

    def on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = datetime.now()

        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            self.logger.warning("Circuit breaker reopened after failure in half-open state")
        elif self.failure_count >= self.failure_threshold and self.state != CircuitState.OPEN:
            self.state = CircuitState.OPEN
            self.logger.warning(f"Circuit breaker opened after {self.failure_count} failures")

    def get_state(self) -> CircuitState:
        return self.state


def parse_json_payload(text: str) -> Dict[str, Any]:
    """Extract a JSON object from a model reply, tolerating code fences.

    Raises:
        AdvisorError: If no JSON object can be recovered
    """
    clean = _FENCE_END.sub("", _FENCE_START.sub("", (text or "").strip())).strip()
    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(clean)
        if not match:
            raise AdvisorError("Advisor reply contained no JSON object", details={"reply": clean[:200]})
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise AdvisorError(f"Advisor reply was not valid JSON: {e}", details={"reply": clean[:200]})

    if not isinstance(parsed, dict):
        raise AdvisorError("Advisor reply was not a JSON object", details={"reply": clean[:200]})
    return parsed


def experience_guidance(years_of_experience: Optional[float]) -> str:
    """Tone hint for the interviewer based on seniority."""
    if years_of_experience is None:
        return "balanced"
    if years_of_experience < 1:
        return "patient and encouraging"
    if years_of_experience < 2:
        return "encouraging"
    if years_of_experience < 3:
        return "balanced"
    if years_of_experience < 5:
        return "professional"
    if years_of_experience < 10:
        return "direct but respectful"
    return "concise and professional"


def format_context(turns: Sequence[TurnRecord]) -> str:
    return "\n".join(f"Q:{turn.prompt or 'N/A'}\nA:{turn.answer or 'N/A'}" for turn in turns)


class InterviewAdvisor(ABC):
    """Interface of the advisory oracle.

    Implementations return loosely typed dictionaries; validation and
    fallbacks belong to the agents that consume them.
    """

    @abstractmethod
    async def plan_questions(self, candidate_name: str, domain: str, years_of_experience: float,
                             duration_minutes: int, resume_text: str, jd_text: str) -> Dict[str, Any]:
        """Return {"introduction": str, "questions": [{id, prompt, competency, followUps}]}."""

    @abstractmethod
    async def evaluate_answer(self, question: str, answer: str,
                              recent_context: Sequence[TurnRecord]) -> Dict[str, Any]:
        """Return a verdict-shaped dictionary."""

    @abstractmethod
    async def classify_response(self, utterance: str, current_question: str,
                                years_of_experience: float,
                                recent_context: Sequence[TurnRecord]) -> Dict[str, Any]:
        """Return {"intent", "response", "extraTime"?, "shouldProceed"?}."""

    @abstractmethod
    async def build_report(self, transcript: Sequence[TurnRecord], candidate_name: str,
                           domain: str, years_of_experience: float) -> Dict[str, Any]:
        """Return partial report fields to merge over the local report."""

    async def close(self) -> None:
        """Release transport resources."""


class LLMAdvisor(InterviewAdvisor):
    """Advisor backed by a chat completion provider."""

    def __init__(self, provider: ChatCompletionProvider, timeout: float = 15.0,
                 circuit_breaker: Optional[CircuitBreaker] = None):
        self.provider = provider
        self.timeout = timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.logger = get_logger("advisor")

    async def _call(self, operation: str, system_prompt: str, user_prompt: str, **kwargs) -> Dict[str, Any]:
        if not self.circuit_breaker.can_execute():
            raise CircuitBreakerError(
                f"Advisor circuit is open; skipping {operation}",
                circuit_state=self.circuit_breaker.get_state().value,
            )

        start_time = time.time()
        try:
            reply = await asyncio.wait_for(
                self.provider.complete(system_prompt, user_prompt, **kwargs),
                timeout=self.timeout,
            )
            payload = parse_json_payload(reply)
        except asyncio.TimeoutError:
            self.circuit_breaker.on_failure()
            raise AdvisorError(f"Advisor {operation} timed out after {self.timeout}s", operation=operation)
        except AdvisorError as e:
            self.circuit_breaker.on_failure()
            e.operation = e.operation or operation
            raise
        except Exception as e:
            self.circuit_breaker.on_failure()
            raise AdvisorError(f"Advisor {operation} failed: {e}", operation=operation) from e

        self.circuit_breaker.on_success()
        log_performance(f"advisor.{operation}", time.time() - start_time)
        return payload

    async def plan_questions(self, candidate_name: str, domain: str, years_of_experience: float,
                             duration_minutes: int, resume_text: str, jd_text: str) -> Dict[str, Any]:
        name = candidate_name or "Candidate"
        introduction = random.choice(INTRODUCTION_TEMPLATES).replace("[Name]", name)
        question_count = 5 if duration_minutes <= 10 else 7 if duration_minutes <= 20 else 8

        resume = self.provider.sanitize(resume_text or "No resume")
        jd = self.provider.sanitize(jd_text or "No job description")
        combined = len(resume) + len(jd)
        if combined > MAX_PROMPT_CHARS:
            resume = resume[: int(MAX_PROMPT_CHARS * len(resume) / combined)]
            jd = jd[: int(MAX_PROMPT_CHARS * len(jd) / combined)]

        user_prompt = (
            f"{domain} {years_of_experience:g} years {duration_minutes}min\n"
            f"{name}\n"
            f"Resume: {resume}\n"
            f"JD: {jd}\n\n"
            f'Use this exact introduction: "{introduction}"\n'
            f"Generate {question_count} specific questions about {domain} skills and projects, "
            f"each with one or two follow-ups."
        )
        return await self._call("plan_questions", PLAN_SYSTEM_PROMPT, user_prompt, temperature=0.7)

    async def evaluate_answer(self, question: str, answer: str,
                              recent_context: Sequence[TurnRecord]) -> Dict[str, Any]:
        user_prompt = (
            f"Q:{question or 'N/A'}\n"
            f"A:{self.provider.sanitize(answer or 'N/A')}\n"
            f"C:{self.provider.sanitize(format_context(recent_context))}\n\n"
            '{"score":3,"feedback":["Good answer"],"needsFollowUp":false,"needsElaboration":false,"isRelevant":true}'
        )
        return await self._call("evaluate_answer", EVALUATION_SYSTEM_PROMPT, user_prompt)

    async def classify_response(self, utterance: str, current_question: str,
                                years_of_experience: float,
                                recent_context: Sequence[TurnRecord]) -> Dict[str, Any]:
        user_prompt = (
            f"Q:{current_question or 'N/A'}\n"
            f'U:"{self.provider.sanitize(utterance or "N/A")}"\n'
            f"YOE:{years_of_experience:g}({experience_guidance(years_of_experience)})\n"
            f"C:{self.provider.sanitize(format_context(recent_context))}\n\n"
            "Respond with JSON like:\n"
            '{"intent":"thinking","response":"Take your time.","extraTime":20}\n'
            'or {"intent":"clarify","response":"Well, let me rephrase that."}\n'
            'or {"intent":"offer_options","response":"Would you like me to repeat the question or skip it?"}\n'
            'or {"intent":"answer","response":"Hmm, okay, that sounds great.","shouldProceed":true}'
        )
        return await self._call("classify_response", INTENT_SYSTEM_PROMPT, user_prompt)

    async def build_report(self, transcript: Sequence[TurnRecord], candidate_name: str,
                           domain: str, years_of_experience: float) -> Dict[str, Any]:
        conversation = "\n".join(
            f"Q:{turn.prompt}\nA:{turn.answer or 'N/A'}\nScore:{turn.verdict.score}"
            for turn in transcript if not turn.skipped
        )
        user_prompt = (
            f"{candidate_name or 'Candidate'} {domain} {years_of_experience:g} years\n"
            f"{self.provider.sanitize(conversation)}\n\n"
            "Generate performance-based evaluation."
        )
        return await self._call("build_report", REPORT_SYSTEM_PROMPT, user_prompt)

    async def close(self) -> None:
        self.provider.close()


def build_advisor(config_manager) -> Optional[InterviewAdvisor]:
    """Construct the advisor for this process, or None for heuristic mode.

    Args:
        config_manager: An initialized ConfigurationManager

    Returns:
        An LLMAdvisor bound to the first enabled provider, or None
    """
    logger = get_logger("advisor")
    providers = config_manager.get_enabled_llm_providers()
    if not providers:
        logger.info("No enabled LLM provider; using heuristic advisor fallbacks")
        return None

    provider_config = providers[0]
    provider = ChatCompletionProvider(provider_config.model_dump())
    try:
        provider.initialize()
    except AdvisorError as e:
        logger.warning(f"Could not initialize provider {provider_config.name}: {e}")
        return None

    timeout = config_manager.get_setting("timing.advisor_timeout", 15.0)
    logger.info(f"Using advisor provider {provider_config.name} ({provider_config.model})")
    return LLMAdvisor(provider, timeout=timeout)
