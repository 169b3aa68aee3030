"""Custom exceptions for the Voice Interviewer."""

from typing import Optional, Any, Dict


class InterviewerError(Exception):
    """Base exception for all Voice Interviewer errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(InterviewerError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the configuration error.

        Args:
            message: Error message
            config_key: Optional configuration key that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "CONFIG_ERROR", details)
        self.config_key = config_key


class AdvisorError(InterviewerError):
    """Exception raised when the advisory service fails or answers garbage."""

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the advisor error.

        Args:
            message: Error message
            operation: Optional advisor operation that failed
            details: Optional additional error details
        """
        super().__init__(message, "ADVISOR_ERROR", details)
        self.operation = operation


class RateLimitError(AdvisorError):
    """Exception raised for rate limiting errors."""

    def __init__(self, message: str, provider_name: Optional[str] = None, retry_after: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the rate limit error.

        Args:
            message: Error message
            provider_name: Optional name of the provider that hit rate limits
            retry_after: Optional seconds to wait before retrying
            details: Optional additional error details
        """
        super().__init__(message, details=details)
        self.error_code = "RATE_LIMIT_ERROR"
        self.provider_name = provider_name
        self.retry_after = retry_after


class AuthenticationError(AdvisorError):
    """Exception raised when the provider rejects the credentials."""

    def __init__(self, message: str, provider_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.error_code = "AUTHENTICATION_ERROR"
        self.provider_name = provider_name


class CircuitBreakerError(AdvisorError):
    """Exception raised when circuit breaker is open."""

    def __init__(self, message: str, circuit_state: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.error_code = "CIRCUIT_BREAKER_ERROR"
        self.circuit_state = circuit_state


class EvaluationError(InterviewerError):
    """Exception raised when an answer verdict cannot be produced."""

    def __init__(self, message: str, question_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the evaluation error.

        Args:
            message: Error message
            question_id: Optional question ID that failed evaluation
            details: Optional additional error details
        """
        super().__init__(message, "EVALUATION_ERROR", details)
        self.question_id = question_id


class SpeechIOError(InterviewerError):
    """Exception raised when the microphone or the speaker is unavailable."""

    def __init__(self, message: str, primitive: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the speech I/O error.

        Args:
            message: Error message
            primitive: Which primitive failed ("listen" or "speak")
            details: Optional additional error details
        """
        super().__init__(message, "SPEECH_IO_ERROR", details)
        self.primitive = primitive


class SessionError(InterviewerError):
    """Exception raised for session invariant violations."""

    def __init__(self, message: str, session_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the session error.

        Args:
            message: Error message
            session_id: Optional session ID that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "SESSION_ERROR", details)
        self.session_id = session_id
