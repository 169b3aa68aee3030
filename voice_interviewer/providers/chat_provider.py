"""OpenAI-compatible chat completion provider for the advisory service."""

import asyncio
import re
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import BaseModel, Field

from ..utils.exceptions import AdvisorError, AuthenticationError, RateLimitError
from ..utils.logging import get_logger


class ChatRequest(BaseModel):
    """Chat completion request model."""
    model: str = Field(..., description="Model to use for generation")
    messages: List[Dict[str, str]] = Field(..., description="List of messages")
    max_tokens: int = Field(default=1000, description="Maximum tokens to generate")
    temperature: float = Field(default=0.3, description="Sampling temperature")
    stop: Optional[Union[str, List[str]]] = Field(default=None, description="Stop sequences")


class ChatResponse(BaseModel):
    """Chat completion response model."""
    id: str = "unknown"
    model: str = ""
    choices: List[Dict[str, Any]] = Field(default_factory=list)
    usage: Dict[str, Any] = Field(default_factory=dict)

    @property
    def content(self) -> str:
        if not self.choices:
            raise AdvisorError("Provider returned no choices", operation="chat_completion")
        message = self.choices[0].get("message") or {}
        return str(message.get("content") or "")


class PromptInjectionDetector:
    """Detects and neutralises prompt injection attempts in candidate text."""

    def __init__(self):
        self.injection_patterns = [
            # Role manipulation
            r"ignore previous instructions",
            r"forget everything above",
            r"you are now",
            r"act as if you are",
            r"pretend to be",
            r"new instructions:",
            r"override:",
            # System prompt injection
            r"system:",
            r"assistant:",
            r"<\|system\|>",
            r"<\|user\|>",
            r"<\|assistant\|>",
            # Evaluation manipulation
            r"give perfect score",
            r"always score high",
            r"score this as",
            r"ignore criteria",
            r"ignore (the )?rubric",
        ]
        self.compiled_patterns = [re.compile(pattern, re.IGNORECASE) for pattern in self.injection_patterns]

    def detect_injection(self, text: str) -> List[str]:
        """Return the patterns found in text."""
        return [pattern.pattern for pattern in self.compiled_patterns if pattern.search(text)]

    def sanitize_input(self, text: str) -> str:
        sanitized = text
        for pattern in self.compiled_patterns:
            sanitized = pattern.sub("[REDACTED]", sanitized)
        sanitized = re.sub(r"[<>]", "", sanitized)
        return sanitized


class ChatCompletionProvider:
    """Posts chat messages to an OpenAI-compatible ``/chat/completions`` endpoint.

    The HTTP call itself is blocking, so ``complete`` runs it in a worker
    thread and the event loop stays free for timers and speech callbacks.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.provider_name = config.get("name", "openai")
        self.api_key = config.get("api_key")
        self.base_url = (config.get("base_url") or "https://api.openai.com/v1").rstrip("/")
        self.model = config.get("model", "gpt-4o-mini")
        self.timeout = config.get("timeout", 30)
        self.max_tokens = config.get("max_tokens", 1000)
        self.temperature = config.get("temperature", 0.3)
        self.retries = config.get("retries", 3)
        self.rate_limit = config.get("rate_limit", 60)  # requests per minute

        self._request_count = 0
        self._window_start = datetime.now()
        self._injection_detector = PromptInjectionDetector()
        self._session: Optional[requests.Session] = None
        self.logger = get_logger(f"llm.provider.{self.provider_name}")

    def initialize(self) -> None:
        """Create the HTTP session."""
        if not self.api_key:
            raise AuthenticationError(f"{self.provider_name} API key is required", provider_name=self.provider_name)

        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "User-Agent": "VoiceInterviewer/1.0.0",
        })
        self.logger.info(f"{self.provider_name} provider initialized with model: {self.model}")

    def close(self) -> None:
        if self._session:
            self._session.close()
            self._session = None

    def sanitize(self, text: str) -> str:
        """Strip injection attempts from candidate-controlled text."""
        found = self._injection_detector.detect_injection(text)
        if not found:
            return text
        self.logger.warning(f"Suspicious candidate input neutralised: {found}")
        return self._injection_detector.sanitize_input(text)

    async def complete(self, system_prompt: str, user_prompt: str, **kwargs) -> str:
        """Run one chat completion and return the assistant message text.

        Args:
            system_prompt: Instructions for the model
            user_prompt: Request payload, already sanitised by the caller
            **kwargs: Overrides for max_tokens and temperature

        Returns:
            The content of the first choice

        Raises:
            AdvisorError: On transport, HTTP or payload failures
        """
        if self._session is None:
            self.initialize()

        await self._check_rate_limit()

        request = ChatRequest(
            model=kwargs.get("model", self.model),
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=kwargs.get("max_tokens", self.max_tokens),
            temperature=kwargs.get("temperature", self.temperature),
            stop=kwargs.get("stop"),
        )
        response = await asyncio.to_thread(self._make_request_with_retries, request)
        return response.content

    def _make_request(self, request: ChatRequest) -> ChatResponse:
        url = f"{self.base_url}/chat/completions"
        try:
            response = self._session.post(url, json=request.model_dump(exclude_none=True), timeout=self.timeout)
        except requests.RequestException as e:
            raise AdvisorError(f"{self.provider_name} request failed: {e}", operation="chat_completion")

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"{self.provider_name} rate limit exceeded",
                provider_name=self.provider_name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        elif response.status_code == 401:
            raise AuthenticationError(f"Invalid {self.provider_name} API key", provider_name=self.provider_name)
        elif response.status_code != 200:
            raise AdvisorError(
                f"{self.provider_name} API returned status {response.status_code}",
                operation="chat_completion",
                details={"body": response.text[:200]},
            )

        try:
            return ChatResponse(**response.json())
        except ValueError as e:
            raise AdvisorError(f"{self.provider_name} returned an unreadable body: {e}", operation="chat_completion")

    def _make_request_with_retries(self, request: ChatRequest) -> ChatResponse:
        """Make request with exponential backoff retry logic."""
        last_exception: Optional[Exception] = None

        for attempt in range(self.retries + 1):
            try:
                return self._make_request(request)
            except (RateLimitError, AuthenticationError):
                raise
            except AdvisorError as e:
                last_exception = e
                if attempt < self.retries:
                    wait_time = (2 ** attempt) * 0.5
                    self.logger.warning(
                        f"{self.provider_name} request failed (attempt {attempt + 1}/{self.retries + 1}), "
                        f"retrying in {wait_time:.2f}s: {e}"
                    )
                    time.sleep(wait_time)
                else:
                    self.logger.error(f"{self.provider_name} request failed after {self.retries + 1} attempts: {e}")

        raise last_exception or AdvisorError("Request failed after retries", operation="chat_completion")

    async def _check_rate_limit(self) -> None:
        """Check and enforce the per-minute request budget."""
        now = datetime.now()
        if (now - self._window_start).total_seconds() >= 60:
            self._request_count = 0
            self._window_start = now

        if self._request_count >= self.rate_limit:
            wait_time = 60 - (now - self._window_start).total_seconds()
            if wait_time > 0:
                self.logger.warning(f"Rate limit reached, waiting {wait_time:.2f} seconds")
                await asyncio.sleep(wait_time)
            self._request_count = 0
            self._window_start = datetime.now()

        self._request_count += 1
