"""Inkwell: agentic orchestration core for a writing assistant."""

__version__ = "0.1.0"

__all__ = ["__version__"]
