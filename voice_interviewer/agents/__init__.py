"""Agent modules for the Voice Interviewer."""

from .base_agent import BaseAgent
from .planner_agent import PlannerAgent, QuestionPlanBuilder
from .evaluator_agent import AnswerEvaluator
from .followup_injector import FollowUpInjector
from .intent_agent import IntentClassifier
from .report_agent import ReportAgent
from .orchestrator_agent import TurnOrchestrator

__all__ = [
    "BaseAgent",
    "PlannerAgent",
    "QuestionPlanBuilder",
    "AnswerEvaluator",
    "FollowUpInjector",
    "IntentClassifier",
    "ReportAgent",
    "TurnOrchestrator",
]
