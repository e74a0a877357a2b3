"""Command-line interface for HTML fold parsing.

Prints the fold regions of HTML files as JSON or text, and summarises fold
statistics across many files.
"""

from .main import main

__all__ = ["main"]
