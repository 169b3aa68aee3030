"""Service modules for the Voice Interviewer."""

from .advisor import CircuitBreaker, InterviewAdvisor, LLMAdvisor, build_advisor, parse_json_payload
from .scheduler import TimerRegistry
from .speech import (
    ConsoleListener,
    ConsoleSynthesizer,
    ListenOptions,
    SpeechListener,
    SpeechSynthesizer,
    clean_transcript,
)

from .configuration_manager import (
    AppConfig,
    ConfigurationManager,
    InterviewConfig,
    LLMProviderConfig,
    LoggingConfig,
    TimingConfig,
)

__all__ = [
    "CircuitBreaker",
    "InterviewAdvisor",
    "LLMAdvisor",
    "build_advisor",
    "parse_json_payload",
    "TimerRegistry",
    "ConsoleListener",
    "ConsoleSynthesizer",
    "ListenOptions",
    "SpeechListener",
    "SpeechSynthesizer",
    "clean_transcript",
    "AppConfig",
    "ConfigurationManager",
    "InterviewConfig",
    "LLMProviderConfig",
    "LoggingConfig",
    "TimingConfig",
]
