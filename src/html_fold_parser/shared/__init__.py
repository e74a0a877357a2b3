"""Shared utilities for HTML fold parsing.

This module provides configuration objects, diagnostic and metrics result
types, and correlation-aware logging used across all layers.
"""

from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    FoldingMetrics,
)
from .config import (
    ConfigError,
    ConfigValidationError,
    FoldingConfig,
    FoldParserConfig,
    GlobalConfig,
    OutputConfig,
    TokenizerConfig,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)

__all__ = [
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "FoldingMetrics",
    "ConfigError",
    "ConfigValidationError",
    "FoldingConfig",
    "FoldParserConfig",
    "GlobalConfig",
    "OutputConfig",
    "TokenizerConfig",
    "CorrelationLogger",
    "get_logger",
]
