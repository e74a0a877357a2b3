"""Tokenization layer for HTML fold parsing.

Key Components:
    HTMLLineTokenizer: Lexes HTML text into per-line linked token lists
    Token: A classified lexeme with offset and same-line successor
    TokenKind: Lexical classes the fold builder branches on
    TokenizedDocument: Immutable token snapshot and offset-to-line resolver
    PositionError: Raised when an offset cannot be resolved
"""

from .document import PositionError, TokenizedDocument
from .tokenizer import (
    MLC_END,
    MLC_START,
    HTMLLineTokenizer,
    Token,
    TokenizerState,
    TokenKind,
    tokenize,
)

__all__ = [
    "HTMLLineTokenizer",
    "MLC_END",
    "MLC_START",
    "PositionError",
    "Token",
    "TokenKind",
    "TokenizedDocument",
    "TokenizerState",
    "tokenize",
]
