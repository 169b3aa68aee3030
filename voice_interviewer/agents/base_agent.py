"""Base agent interface for the Voice Interviewer."""

from abc import ABC
from typing import Any, Dict, Optional

from ..utils.logging import get_logger, get_session_id


class BaseAgent(ABC):
    """Base interface for all agents."""

    def __init__(self, agent_name: str):
        """Initialize the base agent.

        Args:
            agent_name: Name of the agent for logging and identification
        """
        self.agent_name = agent_name
        self.logger = get_logger(f"agent.{agent_name}")
        self._initialized = False

    def initialize(self) -> None:
        """Initialize agent resources and dependencies."""
        if self._initialized:
            self.logger.warning(f"Agent {self.agent_name} already initialized")
            return

        try:
            self._initialize_resources()
            self._initialized = True
            self.logger.debug(f"Agent {self.agent_name} initialized successfully")
        except Exception as e:
            self.logger.error(f"Failed to initialize agent {self.agent_name}: {e}")
            raise

    async def cleanup(self) -> None:
        """Cleanup agent resources."""
        if not self._initialized:
            return

        try:
            await self._cleanup_resources()
            self._initialized = False
            self.logger.debug(f"Agent {self.agent_name} cleaned up successfully")
        except Exception as e:
            self.logger.error(f"Failed to cleanup agent {self.agent_name}: {e}")
            raise

    def _initialize_resources(self) -> None:
        """Initialize agent-specific resources."""

    async def _cleanup_resources(self) -> None:
        """Cleanup agent-specific resources."""

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log agent operation; the session id is stamped by the log filter."""
        extra = {"agent": self.agent_name}
        if details:
            extra.update(details)

        self.logger.info(f"Operation: {operation}", extra=extra)

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """Log agent error with its context."""
        extra = {"agent": self.agent_name}
        if context:
            extra.update(context)

        self.logger.error(f"Error in {self.agent_name}: {error}", extra=extra, exc_info=True)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def health_status(self) -> Dict[str, Any]:
        return {
            "agent_name": self.agent_name,
            "initialized": self._initialized,
            "session_id": get_session_id(),
            "status": "healthy" if self._initialized else "uninitialized",
        }
