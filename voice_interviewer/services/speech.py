"""Listen and speak primitives consumed by the turn orchestrator."""

import asyncio
import os
import re
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from rich.console import Console

from ..utils.logging import get_logger

FinalCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]
EndCallback = Callable[[], None]
CommandHandler = Callable[[str], None]

_FILLER_WORDS = re.compile(r"\b(umm+|uhm|uh|er|ah|you know)\b[,]?", re.IGNORECASE)


def clean_transcript(text: Optional[str]) -> str:
    """Drop verbal fillers from a final utterance and tidy whitespace."""
    cleaned = _FILLER_WORDS.sub("", text or "")
    return re.sub(r"\s+", " ", cleaned).strip()


@dataclass
class ListenOptions:
    """Options handed to the listen primitive."""

    continuous: bool = False
    interim_results: bool = True
    language: str = "en-US"


class SpeechListener(ABC):
    """Speech-to-text primitive."""

    @abstractmethod
    def start(self, options: ListenOptions, on_final: FinalCallback, on_error: ErrorCallback) -> bool:
        """Begin capturing; returns False when capture could not start."""

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing without delivering a final utterance."""

    @abstractmethod
    def reset_buffer(self) -> None:
        """Forget any partially captured utterance."""

    @property
    @abstractmethod
    def is_listening(self) -> bool:
        pass


class SpeechSynthesizer(ABC):
    """Text-to-speech primitive."""

    @abstractmethod
    def speak(self, text: str, on_end: EndCallback) -> bool:
        """Start speaking; returns False when playback did not start."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop playback immediately, on_end is not called afterwards."""


class ConsoleSynthesizer(SpeechSynthesizer):
    """Prints interviewer lines with rich and completes on the next loop turn."""

    def __init__(self, console: Optional[Console] = None, speaker: str = "Interviewer"):
        self.console = console or Console()
        self.speaker = speaker
        self._pending: Optional[asyncio.Handle] = None

    def speak(self, text: str, on_end: EndCallback) -> bool:
        self.cancel()
        self.console.print(f"[bold cyan]{self.speaker}:[/bold cyan] {text}")
        self._pending = asyncio.get_running_loop().call_soon(self._finish, on_end)
        return True

    def _finish(self, on_end: EndCallback) -> None:
        self._pending = None
        on_end()

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


class ConsoleListener(SpeechListener):
    """Reads typed answers from stdin without blocking the event loop.

    Each line is one final utterance. Lines starting with ``/`` are passed
    to the command handler instead of being treated as speech. Lines typed
    ahead while not listening are kept and delivered on the next start.
    """

    def __init__(self, stream: Optional[TextIO] = None, command_handler: Optional[CommandHandler] = None,
                 console: Optional[Console] = None):
        self.stream = stream or sys.stdin
        self.command_handler = command_handler
        self.console = console or Console()
        self.logger = get_logger("speech.listener")
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._listening = False
        self._pending = b""
        self._on_final: Optional[FinalCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    @property
    def is_listening(self) -> bool:
        return self._listening

    def start(self, options: ListenOptions, on_final: FinalCallback, on_error: ErrorCallback) -> bool:
        if self._listening:
            return False

        loop = asyncio.get_running_loop()
        try:
            loop.add_reader(self.stream.fileno(), self._on_readable)
        except (NotImplementedError, ValueError, OSError) as e:
            self.logger.error(f"Console input is not available for non-blocking reads: {e}")
            return False

        self._loop = loop
        self._on_final = on_final
        self._on_error = on_error
        self._listening = True
        self.console.print("[dim]You:[/dim] ", end="")
        if b"\n" in self._pending:
            loop.call_soon(self._drain)
        return True

    def _on_readable(self) -> None:
        try:
            chunk = os.read(self.stream.fileno(), 4096)
        except OSError as e:
            self._deliver_error(f"Console read failed: {e}")
            return
        if not chunk:
            self._deliver_error("Input stream closed")
            return

        self._pending += chunk
        self._drain()

    def _drain(self) -> None:
        while self._listening and b"\n" in self._pending:
            raw, self._pending = self._pending.split(b"\n", 1)
            text = raw.decode("utf-8", errors="replace").strip()

            if text.startswith("/") and self.command_handler:
                self.command_handler(text[1:].lower())
                continue

            on_final = self._on_final
            self.stop()
            if on_final:
                on_final(clean_transcript(text))

    def _deliver_error(self, message: str) -> None:
        on_error = self._on_error
        self.stop()
        if on_error:
            on_error(message)

    def stop(self) -> None:
        if self._listening and self._loop is not None:
            try:
                self._loop.remove_reader(self.stream.fileno())
            except (ValueError, OSError) as e:
                self.logger.debug(f"Console reader already detached: {e}")
        self._listening = False
        self._on_final = None
        self._on_error = None

    def reset_buffer(self) -> None:
        """Drop a partially typed line; complete lines typed ahead are kept."""
        if b"\n" in self._pending:
            self._pending = self._pending[: self._pending.rindex(b"\n") + 1]
        else:
            self._pending = b""
