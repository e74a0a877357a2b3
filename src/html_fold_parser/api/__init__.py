"""Public fold API: simple functions and the configured HtmlFolder class."""

from .folder import (
    FoldingResult,
    HtmlFolder,
    InputType,
    fold,
    fold_file,
    fold_string,
)

__all__ = [
    "FoldingResult",
    "HtmlFolder",
    "InputType",
    "fold",
    "fold_file",
    "fold_string",
]
