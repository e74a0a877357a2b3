"""Fold detection for tokenized HTML documents.

Key Components:
    HtmlFoldParser: Single-pass fold builder over a tokenized document
    Fold: A collapsible line range with nested child folds
    FoldType: CODE (tag pair) or COMMENT (multi-line comment)
    FOLDABLE_TAGS: The immutable allowlist of tags that may fold
"""

from .fold import Fold, FoldError, FoldType
from .parser import (
    FOLDABLE_TAGS,
    HtmlFoldParser,
    TagCloseInfo,
    get_folds,
    is_foldable_tag,
)

__all__ = [
    "FOLDABLE_TAGS",
    "Fold",
    "FoldError",
    "FoldType",
    "HtmlFoldParser",
    "TagCloseInfo",
    "get_folds",
    "is_foldable_tag",
]
