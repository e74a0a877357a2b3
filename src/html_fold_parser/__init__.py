"""HTML Fold Parser.

Computes the collapsible regions of an HTML document for a code editor: pairs
of foldable tags and comments spanning several lines, as a nested forest.

Progressive API Disclosure:
- Level 1: Simple functions - fold(), fold_string(), fold_file()
- Level 2: Configured folder - HtmlFolder class
- Level 3: Fold builder over a host's own token stream - HtmlFoldParser
"""

__version__ = "0.1.0"
__author__ = "HTML Fold Parser Team"

from .api import FoldingResult, HtmlFolder, fold, fold_file, fold_string
from .folding import FOLDABLE_TAGS, Fold, FoldType, HtmlFoldParser
from .shared.config import FoldParserConfig
from .tokenization import HTMLLineTokenizer, TokenizedDocument, tokenize

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple functions
    "fold",
    "fold_string",
    "fold_file",

    # Level 2: Configured folder
    "HtmlFolder",
    "FoldingResult",
    "FoldParserConfig",

    # Level 3: Fold builder and its inputs
    "HtmlFoldParser",
    "HTMLLineTokenizer",
    "TokenizedDocument",
    "tokenize",

    # Fold data structures
    "FOLDABLE_TAGS",
    "Fold",
    "FoldType",
]
