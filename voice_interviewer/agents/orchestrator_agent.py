"""Orchestrator Agent: the turn-taking state machine of a spoken interview.

Everything runs on one asyncio event loop. Primitives report back through
plain callbacks, and every callback carries the snapshot (generation,
question index) it was created under, so a callback that outlived its turn
is dropped instead of acting on a newer one.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from ..models.enums import InputMode, Intent, Phase, SessionStatus
from ..models.interview import (
    InterviewPlan,
    InterviewReport,
    InterviewSetup,
    QuestionRecord,
    Transcript,
    TurnRecord,
    Verdict,
)
from ..models.profile import CandidateProfile, RoleProfile
from ..parsers.profile_extractor import ProfileExtractor
from ..services.configuration_manager import AppConfig
from ..services.scheduler import TimerRegistry
from ..services.speech import ListenOptions, SpeechListener, SpeechSynthesizer, clean_transcript
from ..utils.exceptions import SessionError, SpeechIOError
from ..utils.logging import set_session_id
from .base_agent import BaseAgent
from .evaluator_agent import AnswerEvaluator
from .followup_injector import FollowUpInjector
from .intent_agent import (
    EMPTY_RESPONSE,
    LONG_THINKING_TIMEOUT,
    MORE_TIME_RESPONSE,
    OFFER_OPTIONS_RESPONSE,
    SHORT_TIMEOUT,
    THINKING_RESPONSE,
    IntentClassifier,
)
from .planner_agent import PlannerAgent
from .report_agent import ReportAgent

RESPONSE_TIMER = "response"
TURN_TIMER = "turn"

ACKNOWLEDGMENTS = ("Okay.", "Great.", "Got it.", "Thanks.", "Good.", "Alright.", "Understood.", "Perfect.")
SKIP_ACKNOWLEDGMENT = "No problem, let's move on."

Snapshot = Tuple[int, int]
PhaseCallback = Callable[[Phase, str], None]
ReportCallback = Callable[[InterviewReport], None]


class TurnOrchestrator(BaseAgent):
    """Drives one session from the first question to the single report."""

    def __init__(self, planner: PlannerAgent, evaluator: AnswerEvaluator,
                 classifier: IntentClassifier, injector: FollowUpInjector,
                 reporter: ReportAgent, listener: SpeechListener,
                 synthesizer: SpeechSynthesizer, config: Optional[AppConfig] = None,
                 extractor: Optional[ProfileExtractor] = None):
        """Initialize the orchestrator.

        Args:
            planner: Builds the question plan
            evaluator: Scores answers
            classifier: Classifies utterances and silence markers
            injector: Splices dynamic follow-ups into the plan
            reporter: Builds the final report
            listener: Speech-to-text primitive
            synthesizer: Text-to-speech primitive
            config: Application configuration, defaults when omitted
            extractor: Resume and job description profile extractor
        """
        super().__init__("orchestrator")
        self.planner = planner
        self.evaluator = evaluator
        self.classifier = classifier
        self.injector = injector
        self.reporter = reporter
        self.listener = listener
        self.synthesizer = synthesizer
        self.config = config or AppConfig()
        self.extractor = extractor or ProfileExtractor()

        self.timing = self.config.timing
        self.timers = TimerRegistry()
        self.session_id = str(uuid.uuid4())

        self.on_phase_change: Optional[PhaseCallback] = None
        self.on_report: Optional[ReportCallback] = None

        self._phase = Phase.READY
        self._status = SessionStatus.CREATED
        self._status_message = "Preparing personalized interview..."
        self._subtitle = ""
        self._last_error: Optional[str] = None

        self._setup: Optional[InterviewSetup] = None
        self._candidate = CandidateProfile()
        self._role = RoleProfile()
        self._years = 0.0
        self._plan: Optional[InterviewPlan] = None
        self._transcript = Transcript()
        self._report: Optional[InterviewReport] = None

        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()
        self._report_task: Optional[asyncio.Task] = None
        self._finished: Optional[asyncio.Event] = None

        # Per-question thinking state
        self._extension_used = 0.0
        self._thinking_started_at: Optional[float] = None

    # ------------------------------------------------------------------
    # Read-only state

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def plan(self) -> Optional[InterviewPlan]:
        return self._plan

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def report(self) -> Optional[InterviewReport]:
        return self._report

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def subtitle(self) -> str:
        return self._subtitle

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def armed_timers(self) -> List[str]:
        return self.timers.armed

    @property
    def current_question(self) -> Optional[QuestionRecord]:
        return self._plan.current_question if self._plan else None

    @property
    def progress(self) -> Dict[str, Any]:
        plan = self._plan
        return {
            "answered": len(self._transcript.answered),
            "resolved": len(self._transcript),
            "current_index": plan.current_index if plan else 0,
            "total_questions": len(plan) if plan else 0,
            "total_turns_limit": plan.total_turns_limit if plan else 0,
            "followups_used": plan.dynamic_followups_used if plan else 0,
            "followup_budget": self.injector.budget_for(plan) if plan else 0,
        }

    # ------------------------------------------------------------------
    # Public operations

    async def prepare(self, setup: InterviewSetup) -> InterviewPlan:
        """Extract profiles and build the plan. Only allowed before start."""
        if self._status is not SessionStatus.CREATED:
            raise SessionError("Interview already started", session_id=self.session_id)

        set_session_id(self.session_id)
        self._setup = setup
        self._candidate, self._role = self.extractor.extract(setup.resume_text, setup.jd_text)
        if setup.years_of_experience is not None:
            self._years = setup.years_of_experience
        else:
            self._years = self._candidate.years_experience

        self._plan = await self.planner.plan(setup, self._candidate, self._role)
        self._set_phase(Phase.READY, "Ready to start your personalized interview.")
        self.log_operation("session_prepared", {
            "template": self._plan.template_id,
            "questions": len(self._plan),
            "turns_limit": self._plan.total_turns_limit,
        })
        return self._plan

    def start(self) -> bool:
        """Ask the first question. Returns False when already started."""
        if self._plan is None:
            raise SessionError("Interview has not been prepared", session_id=self.session_id)
        if self._status is not SessionStatus.CREATED:
            return False

        if self._finished is None:
            self._finished = asyncio.Event()
        self._status = SessionStatus.IN_PROGRESS
        self.log_operation("session_started", {"template": self._plan.template_id})
        self._run_callback(self._ask_current_question)
        return True

    async def end_interview(self, reason: str = "ended_by_user") -> InterviewReport:
        """End the session now and return its only report.

        The phase is ``ending`` as soon as this is called. Later calls,
        whatever their reason, return the same report.
        """
        task = self._begin_end(reason)
        return await asyncio.shield(task)

    async def wait_finished(self) -> InterviewReport:
        if self._finished is None:
            self._finished = asyncio.Event()
        await self._finished.wait()
        return self._report

    def skip_question(self) -> bool:
        """Record the current question as skipped and move on."""
        question = self.current_question
        if self._is_ending or question is None or self._status is not SessionStatus.IN_PROGRESS:
            return False

        self._interrupt()
        self._transcript.append(TurnRecord.for_question(question, "", Verdict.skipped(), skipped=True))
        self._plan.advance()
        self.log_operation("question_skipped", {"question_id": question.id})

        if self._should_finish():
            self._begin_end("completed")
        else:
            self._speak(SKIP_ACKNOWLEDGMENT, self._schedule_next_question)
        return True

    def submit_text_answer(self, text: str) -> bool:
        """Route a typed answer through the same path as a spoken one."""
        if self._is_ending or self.current_question is None or self._status is not SessionStatus.IN_PROGRESS:
            return False
        if self._phase is Phase.PROCESSING:
            self.logger.debug("Typed answer ignored while processing")
            return False

        self._interrupt()
        self._set_phase(Phase.PROCESSING, "Analyzing your response...")
        self._spawn(self._handle_utterance(clean_transcript(text), self._snapshot(), InputMode.TEXT))
        return True

    def resume_listening(self) -> bool:
        """Leave the error phase by listening for the current question again."""
        if self._phase is not Phase.ERROR:
            return False
        self._last_error = None
        return self._start_listening()

    # ------------------------------------------------------------------
    # Session snapshot

    @property
    def _is_ending(self) -> bool:
        return self._phase is Phase.ENDING

    def _snapshot(self) -> Snapshot:
        return self._generation, self._plan.current_index if self._plan else 0

    def _next_snapshot(self) -> Snapshot:
        self._generation += 1
        return self._snapshot()

    def _is_current(self, snapshot: Snapshot) -> bool:
        return not self._is_ending and snapshot == self._snapshot()

    def _guard(self, snapshot: Snapshot, callback: Callable[[], None]) -> Callable[[], None]:
        def _guarded() -> None:
            if not self._is_current(snapshot):
                self.logger.debug("Dropped stale callback")
                return
            self._run_callback(callback)
        return _guarded

    def _run_callback(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except SessionError as e:
            self.log_error(e, {"phase": self._phase.value})
            self._begin_end("error")

    def _require_question(self) -> QuestionRecord:
        question = self.current_question
        if question is None:
            raise SessionError("No active question while the session is running",
                               session_id=self.session_id)
        return question

    def _should_finish(self) -> bool:
        return self._plan.is_exhausted or len(self._transcript) >= self._plan.total_turns_limit

    # ------------------------------------------------------------------
    # Phases

    def _set_phase(self, phase: Phase, message: Optional[str] = None) -> None:
        if self._is_ending and phase is not Phase.ENDING:
            return
        previous = self._phase
        self._phase = phase
        if message is not None:
            self._status_message = message
        if previous is not phase:
            self.logger.debug(f"Phase {previous.value} -> {phase.value}")
        if self.on_phase_change:
            self.on_phase_change(phase, self._status_message)

    def _fail(self, message: str) -> None:
        if self._is_ending:
            return
        self._next_snapshot()
        self.timers.clear_all()
        self.listener.stop()
        self._last_error = message
        self.logger.error(message)
        self._set_phase(Phase.ERROR, message)

    def _interrupt(self) -> None:
        """Invalidate pending callbacks and silence both primitives."""
        self._next_snapshot()
        self.timers.clear_all()
        self.synthesizer.cancel()
        self.listener.stop()

    def _ask_current_question(self) -> None:
        question = self._require_question()
        self._extension_used = 0.0
        self._thinking_started_at = None
        self.logger.debug(f"Asking {question.id} ({question.kind.value})")
        self._speak(question.prompt, self._start_listening)

    def _schedule_next_question(self) -> None:
        snapshot = self._snapshot()
        self.timers.arm(TURN_TIMER, self.timing.next_question_delay,
                        self._guard(snapshot, self._ask_current_question))

    def _speak(self, text: str, then: Callable[[], Any]) -> None:
        """Enter ai-speaking and run ``then`` once the line has been spoken."""
        if self._is_ending:
            return
        self.timers.clear(RESPONSE_TIMER)
        self.listener.stop()
        snapshot = self._next_snapshot()
        self._subtitle = text
        self._set_phase(Phase.AI_SPEAKING, text)

        try:
            started = self.synthesizer.speak(text, self._guard(snapshot, then))
        except (SpeechIOError, OSError, RuntimeError) as e:
            self._fail(f"Speech output failed: {e}")
            return

        if not started:
            self.logger.warning("Speech output did not start; continuing without it")
            self._run_callback(then)

    def _start_listening(self, extra_wait: float = 0.0) -> bool:
        """Enter listening and arm the response timer.

        Args:
            extra_wait: Granted thinking time; when set, its expiry goes
                straight to the silence handler instead of the grace period

        Returns:
            False when already listening, ending, or the primitive failed
        """
        if self._is_ending or self._phase is Phase.LISTENING or self.listener.is_listening:
            return False

        snapshot = self._next_snapshot()
        self.listener.reset_buffer()
        self._set_phase(Phase.LISTENING, "Listening...")
        options = ListenOptions(language=self.config.interview.language)

        try:
            started = self.listener.start(
                options,
                lambda text: self._on_utterance(text, snapshot),
                lambda message: self._on_listen_error(message, snapshot),
            )
        except (SpeechIOError, OSError, RuntimeError) as e:
            self._fail(f"Speech input failed: {e}")
            return False

        if not started:
            self._fail("Could not start listening")
            return False

        if extra_wait > 0:
            self.timers.arm(RESPONSE_TIMER, extra_wait, self._guard(snapshot, self._on_silence))
        else:
            self.timers.arm(RESPONSE_TIMER, self.timing.response_timeout,
                            self._guard(snapshot, self._on_first_silence))
        return True

    def _grant_extension(self, seconds: float) -> float:
        remaining = max(self.timing.max_thinking_extension - self._extension_used, 0.0)
        granted = min(max(seconds, 0.0), remaining)
        self._extension_used += granted
        return granted

    @property
    def _extension_exhausted(self) -> bool:
        return self._extension_used >= self.timing.max_thinking_extension

    # ------------------------------------------------------------------
    # Primitive callbacks

    def _on_utterance(self, text: str, snapshot: Snapshot) -> None:
        if not self._is_current(snapshot):
            return
        self.timers.clear(RESPONSE_TIMER)
        self.listener.stop()
        self._set_phase(Phase.PROCESSING, "Analyzing your response...")
        self._spawn(self._handle_utterance(clean_transcript(text), snapshot, InputMode.VOICE))

    def _on_listen_error(self, message: str, snapshot: Snapshot) -> None:
        if not self._is_current(snapshot):
            return
        self._fail(f"Speech input error: {message}")

    def _on_first_silence(self) -> None:
        granted = self._grant_extension(self.timing.thinking_grace)
        if granted <= 0:
            self._on_silence()
            return
        if self._thinking_started_at is None:
            self._thinking_started_at = self.timers.loop.time()
        self._status_message = "Take your time to think..."
        self.timers.arm(RESPONSE_TIMER, granted, self._guard(self._snapshot(), self._on_silence))

    def _on_silence(self) -> None:
        if self._extension_exhausted:
            self.logger.info("Thinking time exhausted; skipping the question")
            self.skip_question()
            return
        self.listener.stop()
        self._set_phase(Phase.PROCESSING, "Taking longer than expected?")
        self._spawn(self._handle_silence(self._snapshot()))

    # ------------------------------------------------------------------
    # Turn handling

    async def _handle_silence(self, snapshot: Snapshot) -> None:
        question = self._require_question()
        thinking_time = 0.0
        if self._thinking_started_at is not None:
            thinking_time = self.timers.loop.time() - self._thinking_started_at
        marker = LONG_THINKING_TIMEOUT if thinking_time > self.timing.long_pause_threshold else SHORT_TIMEOUT

        decision = await self.classifier.classify(
            marker, question, self._years, self._recent_context()
        )
        if not self._is_current(snapshot):
            return

        self._thinking_started_at = None
        if decision.intent is Intent.OFFER_OPTIONS:
            self._speak(decision.response or OFFER_OPTIONS_RESPONSE, self._start_listening)
        elif decision.intent is Intent.GIVE_MORE_TIME:
            extra = self._grant_extension(decision.extra_time or self.timing.default_thinking_extension)
            if extra <= 0:
                self.skip_question()
                return
            self._thinking_started_at = self.timers.loop.time()
            self._speak(decision.response or MORE_TIME_RESPONSE, lambda: self._start_listening(extra))
        else:
            self._speak(decision.response or MORE_TIME_RESPONSE, self._start_listening)

    async def _handle_utterance(self, text: str, snapshot: Snapshot, input_mode: InputMode) -> None:
        question = self._require_question()
        decision = await self.classifier.classify(
            text, question, self._years, self._recent_context()
        )
        if not self._is_current(snapshot):
            return

        intent = decision.intent
        self.logger.debug(f"Intent for {question.id}: {intent.value}")

        if intent.consumes_turn:
            await self._submit_answer(text, question, snapshot, input_mode)
        elif intent is Intent.THINKING:
            self._thinking_started_at = self.timers.loop.time()
            extra = self._grant_extension(decision.extra_time or self.timing.default_thinking_extension)
            self._speak(decision.response or THINKING_RESPONSE, lambda: self._start_listening(extra))
        elif intent in (Intent.CLARIFY, Intent.REPEAT):
            self._speak(decision.response or question.prompt, self._start_listening)
        elif intent is Intent.READY:
            self._status_message = "Ready when you are..."
            self.timers.arm(TURN_TIMER, self.timing.ready_resume_delay,
                            self._guard(snapshot, self._start_listening))
        else:
            self._speak(decision.response or EMPTY_RESPONSE, self._start_listening)

    async def _submit_answer(self, answer: str, question: QuestionRecord,
                             snapshot: Snapshot, input_mode: InputMode) -> None:
        verdict = await self.evaluator.evaluate(question, answer, self._recent_context())
        if not self._is_current(snapshot):
            self.logger.debug(f"Dropped late verdict for {question.id}")
            return

        self._transcript.append(TurnRecord.for_question(question, answer, verdict, input_mode=input_mode))
        self.injector.maybe_inject(verdict, question, self._plan)
        self._plan.advance()
        self.log_operation("answer_recorded", {
            "question_id": question.id,
            "score": verdict.score,
            "resolved": len(self._transcript),
        })

        if self._should_finish():
            await self.end_interview("completed")
            return

        acknowledgment = ACKNOWLEDGMENTS[(len(self._transcript) - 1) % len(ACKNOWLEDGMENTS)]
        self._speak(acknowledgment, self._schedule_next_question)

    def _recent_context(self) -> List[TurnRecord]:
        return self._transcript.recent(self.config.interview.context_window)

    # ------------------------------------------------------------------
    # Tasks and ending

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        if isinstance(error, SessionError):
            self.log_error(error, {"phase": self._phase.value})
            self._begin_end("error")
        else:
            self.logger.error(f"Turn handling failed: {error}", exc_info=error)
            self._fail(f"Something went wrong while processing your answer: {error}")

    def _begin_end(self, reason: str) -> asyncio.Task:
        if self._report_task is not None:
            return self._report_task

        self._set_phase(Phase.ENDING, "Interview complete. Generating your report...")
        self._next_snapshot()
        cleared = self.timers.clear_all()
        self.synthesizer.cancel()
        self.listener.stop()

        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

        self._status = SessionStatus.COMPLETED if reason == "completed" else SessionStatus.CANCELLED
        self.log_operation("session_ending", {"reason": reason, "timers_cleared": cleared})
        self._report_task = asyncio.get_running_loop().create_task(self._produce_report(reason))
        return self._report_task

    async def _produce_report(self, reason: str) -> InterviewReport:
        if self._finished is None:
            self._finished = asyncio.Event()
        try:
            report = await self.reporter.generate(
                self._transcript, self._plan, self._candidate, self._role, self._setup, end_reason=reason
            )
        except Exception as e:
            self.log_error(e, {"phase": self._phase.value, "reason": reason})
            report = self.reporter.build(
                self._transcript, self._plan, self._candidate, self._role, self._setup, end_reason=reason
            )
        finally:
            # Waiters are released even if the local report fails too
            self._finished.set()

        self._report = report
        self.log_operation("report_ready", {
            "overall_score": report.overall_score,
            "total_answers": report.total_answers,
        })
        if self.on_report:
            self.on_report(report)
        return report

    async def _cleanup_resources(self) -> None:
        if self._status is SessionStatus.IN_PROGRESS:
            await self.end_interview("teardown")
        self.timers.clear_all()
