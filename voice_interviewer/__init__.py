"""Voice Interviewer: a simulated spoken technical interview."""

__version__ = "1.0.0"
