"""Tokenized document snapshot consumed by the fold builder.

A :class:`TokenizedDocument` pairs the document text with one linked token
list per line and resolves document offsets to line numbers.
"""

from bisect import bisect_right
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence

if TYPE_CHECKING:
    from .tokenizer import Token


class PositionError(Exception):
    """Raised when a document offset cannot be resolved to a position."""

    def __init__(self, message: str, offset: Optional[int] = None) -> None:
        super().__init__(message)
        self.offset = offset


class TokenizedDocument:
    """Immutable snapshot of a document and its per-line token lists.

    Lines are numbered from 0. A document always has at least one line; text
    ending with a line terminator has a trailing empty line, as in an editor.
    """

    def __init__(
        self,
        text: str,
        line_starts: Sequence[int],
        token_lists: Sequence[Optional["Token"]],
    ) -> None:
        """Initialize the document.

        Args:
            text: Full document text
            line_starts: Offset of the first character of each line
            token_lists: Head token of each line's linked token list
        """
        if not line_starts:
            raise ValueError("A document must have at least one line")
        if len(line_starts) != len(token_lists):
            raise ValueError("line_starts and token_lists must have the same length")
        self._text = text
        self._line_starts: List[int] = list(line_starts)
        self._token_lists: List[Optional["Token"]] = list(token_lists)

    @property
    def text(self) -> str:
        """Full document text."""
        return self._text

    @property
    def length(self) -> int:
        """Number of characters in the document."""
        return len(self._text)

    @property
    def line_count(self) -> int:
        """Number of lines in the document."""
        return len(self._line_starts)

    def get_token_list_for_line(self, line: int) -> Optional["Token"]:
        """Return the first token of ``line``'s linked token list.

        Raises:
            IndexError: If ``line`` is not a line of this document
        """
        if not 0 <= line < self.line_count:
            raise IndexError(f"Line {line} out of range (0..{self.line_count - 1})")
        return self._token_lists[line]

    def get_line_start_offset(self, line: int) -> int:
        """Return the document offset at which ``line`` starts."""
        if not 0 <= line < self.line_count:
            raise IndexError(f"Line {line} out of range (0..{self.line_count - 1})")
        return self._line_starts[line]

    def line_of_offset(self, offset: int) -> int:
        """Resolve a document offset to its line number.

        An offset equal to the document length is valid and belongs to the
        last line.

        Raises:
            PositionError: If the offset lies outside the document
        """
        if offset < 0 or offset > self.length:
            raise PositionError(
                f"Offset {offset} outside document (length {self.length})",
                offset=offset,
            )
        return bisect_right(self._line_starts, offset) - 1

    def get_line_text(self, line: int) -> str:
        """Return the text of ``line`` without its line terminator."""
        start = self.get_line_start_offset(line)
        if line + 1 < self.line_count:
            end = self._line_starts[line + 1]
        else:
            end = self.length
        return self._text[start:end].rstrip("\r\n")

    def iter_tokens(self, include_sentinels: bool = False) -> Iterator["Token"]:
        """Iterate over all tokens in document order."""
        for head in self._token_lists:
            token = head
            while token is not None:
                if include_sentinels or token.is_paintable():
                    yield token
                token = token.next_token

    @property
    def token_count(self) -> int:
        """Number of paintable tokens in the document."""
        return sum(1 for _ in self.iter_tokens())
