import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from voice_interviewer.agents.evaluator_agent import AnswerEvaluator
from voice_interviewer.agents.followup_injector import FollowUpInjector
from voice_interviewer.agents.intent_agent import IntentClassifier
from voice_interviewer.agents.orchestrator_agent import TurnOrchestrator
from voice_interviewer.agents.planner_agent import PlannerAgent
from voice_interviewer.agents.report_agent import ReportAgent
from voice_interviewer.models.interview import InterviewSetup
from voice_interviewer.services.advisor import InterviewAdvisor
from voice_interviewer.services.configuration_manager import AppConfig, TimingConfig
from voice_interviewer.services.speech import SpeechListener, SpeechSynthesizer
from voice_interviewer.utils.exceptions import AdvisorError, SpeechIOError


RESUME = """Jane Doe
Frontend engineer with 4 years experience in React, TypeScript and GraphQL.
Built a design system used by 12 product teams.
Implemented CI/CD pipelines with Docker.
"""

JOB_DESCRIPTION = """Senior Frontend Engineer.
Strong React and TypeScript skills are required.
Must have experience with Kubernetes.
AWS is a plus.
You will design and deliver accessible user interfaces.
"""

DETAILED_ANSWER = (
    "In my last project I built a React checkout flow for our customers. "
    "We measured a 30% drop in abandonment after I migrated state to a reducer, "
    "and I decided against Redux because the trade-off in boilerplate was not worth it."
)


class FakeAdvisor(InterviewAdvisor):
    """Scripted advisor; operations listed in ``fail`` raise AdvisorError."""

    def __init__(self, plan: Optional[Dict[str, Any]] = None, verdict: Optional[Dict[str, Any]] = None,
                 intents: Optional[Dict[str, Dict[str, Any]]] = None, report: Optional[Dict[str, Any]] = None,
                 fail=(), delay: float = 0.0):
        self.plan = plan or {}
        self.verdict = verdict or {"score": 4, "feedback": ["Solid"], "isRelevant": True}
        self.intents = intents or {}
        self.report = report or {}
        self.fail = set(fail)
        self.delay = delay
        self.calls: List[str] = []
        self.closed = False

    async def _reply(self, operation: str, payload):
        self.calls.append(operation)
        if self.delay:
            await asyncio.sleep(self.delay)
        if operation in self.fail:
            raise AdvisorError(f"{operation} unavailable", operation=operation)
        return payload

    async def plan_questions(self, candidate_name, domain, years_of_experience, duration_minutes,
                             resume_text, jd_text):
        return await self._reply("plan_questions", self.plan)

    async def evaluate_answer(self, question, answer, recent_context):
        return await self._reply("evaluate_answer", self.verdict)

    async def classify_response(self, utterance, current_question, years_of_experience, recent_context):
        return await self._reply("classify_response", self.intents.get(utterance, {"intent": "answer"}))

    async def build_report(self, transcript, candidate_name, domain, years_of_experience):
        return await self._reply("build_report", self.report)

    async def close(self):
        self.closed = True


class ScriptedListener(SpeechListener):
    """Listen primitive driven by the test through ``say`` and ``fail``."""

    def __init__(self, refuse: bool = False):
        self.refuse = refuse
        self.starts = 0
        self.resets = 0
        self.options = None
        self.last_on_final = None
        self._listening = False
        self._on_final = None
        self._on_error = None

    @property
    def is_listening(self) -> bool:
        return self._listening

    def start(self, options, on_final, on_error) -> bool:
        if self.refuse or self._listening:
            return False
        self.starts += 1
        self.options = options
        self._listening = True
        self._on_final = on_final
        self._on_error = on_error
        self.last_on_final = on_final
        return True

    def stop(self) -> None:
        self._listening = False
        self._on_final = None
        self._on_error = None

    def reset_buffer(self) -> None:
        self.resets += 1

    def say(self, text: str) -> None:
        on_final = self._on_final
        assert on_final is not None, "listener is not capturing"
        self.stop()
        on_final(text)

    def fail(self, message: str) -> None:
        on_error = self._on_error
        assert on_error is not None, "listener is not capturing"
        self.stop()
        on_error(message)


class InstantSynthesizer(SpeechSynthesizer):
    """Speak primitive that finishes on the next loop iteration."""

    def __init__(self, decline: bool = False, explode: bool = False):
        self.decline = decline
        self.explode = explode
        self.spoken: List[str] = []
        self.cancels = 0
        self._pending = None

    def speak(self, text, on_end) -> bool:
        if self.explode:
            raise SpeechIOError("audio device unavailable", primitive="speak")
        self.spoken.append(text)
        if self.decline:
            return False
        self._pending = asyncio.get_running_loop().call_soon(on_end)
        return True

    def cancel(self) -> None:
        self.cancels += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


@pytest.fixture
def fast_config():
    """No pacing delays; silence timers long enough to never fire by accident."""
    return AppConfig(timing=TimingConfig(
        response_timeout=5.0,
        thinking_grace=5.0,
        default_thinking_extension=5.0,
        max_thinking_extension=10.0,
        long_pause_threshold=1.0,
        next_question_delay=0.0,
        ready_resume_delay=0.0,
        advisor_timeout=1.0,
    ))


@pytest.fixture
def setup():
    return InterviewSetup(
        candidate_name="Jane",
        domain="frontend",
        duration_minutes=12,
        resume_text=RESUME,
        jd_text=JOB_DESCRIPTION,
    )


@pytest.fixture
def listener():
    return ScriptedListener()


@pytest.fixture
def synthesizer():
    return InstantSynthesizer()


@pytest.fixture
def make_orchestrator(fast_config, listener, synthesizer):
    """Factory wiring every agent around an optional advisor."""

    def _make(advisor=None, config=None, listener_=None, synthesizer_=None):
        config = config or fast_config
        return TurnOrchestrator(
            planner=PlannerAgent(advisor),
            evaluator=AnswerEvaluator(advisor, context_window=config.interview.context_window),
            classifier=IntentClassifier(advisor, config.timing.default_thinking_extension),
            injector=FollowUpInjector(config.interview.max_dynamic_followups),
            reporter=ReportAgent(advisor),
            listener=listener_ or listener,
            synthesizer=synthesizer_ or synthesizer,
            config=config,
        )

    return _make


@pytest.fixture
def until():
    """Return a coroutine that waits for a predicate on the running loop."""

    async def _until(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.001)

    return _until
