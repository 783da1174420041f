"""Dark Horse 3PL auth service."""

__version__ = "1.0.0"
