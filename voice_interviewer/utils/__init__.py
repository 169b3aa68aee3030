"""Utility modules for the Voice Interviewer."""

from .logging import setup_logging, get_logger, set_session_id, get_session_id, log_performance
from .exceptions import (
    InterviewerError,
    ConfigurationError,
    AdvisorError,
    RateLimitError,
    AuthenticationError,
    CircuitBreakerError,
    EvaluationError,
    SpeechIOError,
    SessionError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_session_id",
    "get_session_id",
    "log_performance",
    "InterviewerError",
    "ConfigurationError",
    "AdvisorError",
    "RateLimitError",
    "AuthenticationError",
    "CircuitBreakerError",
    "EvaluationError",
    "SpeechIOError",
    "SessionError",
]
