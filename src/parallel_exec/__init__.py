"""Run a command template over many inputs in parallel."""

__version__ = "0.1.0"
