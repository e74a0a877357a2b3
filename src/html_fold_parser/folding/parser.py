"""Fold builder for HTML.

Only the "big" structures fold: a fixed allowlist of tags that need explicit
close tags in both HTML 4 and HTML 5, plus comments spanning several lines.
The builder makes a single forward pass over the token stream, keeping an
explicit stack of open tag names in lock-step with the chain of open folds.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from html_fold_parser.shared import get_logger
from html_fold_parser.tokenization import (
    MLC_END,
    PositionError,
    Token,
    TokenizedDocument,
    TokenKind,
)

from .fold import Fold, FoldType

FOLDABLE_TAGS: FrozenSet[str] = frozenset({
    "body",
    "canvas",
    "div",
    "form",
    "head",
    "html",
    "ol",
    "pre",
    "script",
    "span",
    "style",
    "table",
    "tfoot",
    "thead",
    "tr",
    "td",
    "ul",
})

MARKUP_CLOSING_TAG_START = "</"


@dataclass
class TagCloseInfo:
    """The token closing a start tag ("``>``" or "``/>``") and its line.

    ``line == -1`` with no token means the document ended first.
    """

    close_token: Optional[Token] = None
    line: int = -1

    @property
    def found(self) -> bool:
        return self.close_token is not None


def is_foldable_tag(tag_name_token: Optional[Token]) -> bool:
    """Whether a tag name token names a tag allowed to open a fold."""
    return (
        tag_name_token is not None
        and tag_name_token.lexeme.lower() in FOLDABLE_TAGS
    )


def _is_end_of_last_fold(tag_name_stack: List[str], tag_name_token: Optional[Token]) -> bool:
    # Only the innermost open tag can be closed
    if tag_name_token is not None and tag_name_stack:
        return tag_name_token.lexeme.lower() == tag_name_stack[-1].lower()
    return False


class _CommentTracker:
    """Tracks a multi-line comment whose start was seen on an earlier line."""

    def __init__(self, document: TokenizedDocument) -> None:
        self._document = document
        self.in_comment = False
        self.start_offset = 0

    def process(
        self,
        token: Token,
        current_fold: Optional[Fold],
        folds: List[Fold]
    ) -> None:
        if not self.in_comment:
            if token.kind is TokenKind.COMMENT_MULTILINE and not token.ends_with(MLC_END):
                self.in_comment = True
                self.start_offset = token.offset
            return

        if not token.ends_with(MLC_END):
            return

        if current_fold is None:
            comment_fold = Fold(FoldType.COMMENT, self._document, self.start_offset)
            comment_fold.set_end_offset(token.end_offset)
            if not comment_fold.is_on_single_line():
                folds.append(comment_fold)
        else:
            comment_fold = current_fold.create_child(FoldType.COMMENT, self.start_offset)
            comment_fold.set_end_offset(token.end_offset)
            if comment_fold.is_on_single_line():
                comment_fold.remove_from_parent()

        self.in_comment = False
        self.start_offset = 0


class HtmlFoldParser:
    """Computes the fold forest of a tokenized HTML document.

    The parser holds no per-document state, so one instance can serve any
    number of sequential or concurrent calls on immutable documents.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "html_fold_parser")

    def get_folds(self, document: TokenizedDocument) -> List[Fold]:
        """Return the top-level folds of ``document`` in document order.

        The result is always a forest, never an error. Folds whose close tag
        is never matched keep an unset end offset. If a start tag is still
        open when the document ends, or an offset cannot be resolved, the
        folds built so far are returned.
        """
        folds: List[Fold] = []
        tag_name_stack: List[str] = []
        current_fold: Optional[Fold] = None
        comments = _CommentTracker(document)
        line_count = document.line_count
        line = 0

        try:
            while line < line_count:
                token = document.get_token_list_for_line(line)
                while token is not None and token.is_paintable():

                    if token.is_comment():
                        comments.process(token, current_fold, folds)

                    elif token.is_single_char(TokenKind.MARKUP_TAG_DELIMITER, "<"):
                        tag_start_token = token
                        tag_name_token = token.next_token
                        if is_foldable_tag(tag_name_token):
                            close_info = self.get_tag_close_info(tag_name_token, document, line)
                            if not close_info.found:
                                self.logger.debug(
                                    "Document ended inside a start tag",
                                    extra={
                                        "offset": tag_start_token.offset,
                                        "top_level_folds": len(folds),
                                    }
                                )
                                return folds

                            close_token = close_info.close_token
                            if close_token.is_single_char(TokenKind.MARKUP_TAG_DELIMITER, ">"):
                                if current_fold is None:
                                    current_fold = Fold(
                                        FoldType.CODE, document, tag_start_token.offset
                                    )
                                    folds.append(current_fold)
                                else:
                                    current_fold = current_fold.create_child(
                                        FoldType.CODE, tag_start_token.offset
                                    )
                                tag_name_stack.append(tag_name_token.lexeme)
                            # Continue after the tag, possibly on a later line
                            token = close_token
                            line = close_info.line

                    elif token.is_(TokenKind.MARKUP_TAG_DELIMITER, MARKUP_CLOSING_TAG_START):
                        if current_fold is not None:
                            tag_name_token = token.next_token
                            if (
                                is_foldable_tag(tag_name_token)
                                and _is_end_of_last_fold(tag_name_stack, tag_name_token)
                            ):
                                tag_name_stack.pop()
                                current_fold.set_end_offset(token.offset)
                                parent_fold = current_fold.parent
                                if current_fold.is_on_single_line():
                                    if parent_fold is None:
                                        folds.remove(current_fold)
                                    else:
                                        current_fold.remove_from_parent()
                                current_fold = parent_fold
                                token = tag_name_token

                    token = token.next_token

                line += 1

        except PositionError:
            self.logger.exception(
                "Offset resolution failed, returning partial folds",
                extra={"line": line, "top_level_folds": len(folds)}
            )
            return folds

        if tag_name_stack and self.logger.is_enabled_for(logging.DEBUG):
            self.logger.debug(
                "Document ended with unterminated folds",
                extra={"open_tags": list(tag_name_stack)}
            )
        return folds

    @staticmethod
    def get_tag_close_info(
        tag_name_token: Token,
        document: TokenizedDocument,
        line: int
    ) -> TagCloseInfo:
        """Find the token closing the start tag named by ``tag_name_token``.

        Scans forward from the token after the tag name, continuing into
        later lines, to the first markup delimiter.

        Args:
            tag_name_token: The tag's name token
            document: The document being scanned
            line: The line ``tag_name_token`` is on

        Returns:
            TagCloseInfo for the delimiter, or the not-found sentinel
        """
        token = tag_name_token.next_token
        while True:
            while token is not None and token.kind is not TokenKind.MARKUP_TAG_DELIMITER:
                token = token.next_token
            if token is not None:
                return TagCloseInfo(token, line)
            line += 1
            if line >= document.line_count:
                return TagCloseInfo()
            token = document.get_token_list_for_line(line)


def get_folds(
    document: TokenizedDocument,
    correlation_id: Optional[str] = None
) -> List[Fold]:
    """Compute the fold forest of ``document`` with a fresh parser."""
    return HtmlFoldParser(correlation_id).get_folds(document)
