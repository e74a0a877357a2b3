"""HTML line tokenizer with a small cross-line state machine.

The tokenizer turns document text into one linked token list per line, the
shape the fold builder scans. Each line ends with a non-paintable ``NULL``
sentinel token. Lexer state (inside a tag, a comment, a declaration, a quoted
attribute value or ``script``/``style`` content) is carried from one line to
the next.
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Tuple

from html_fold_parser.shared import TokenizerConfig, get_logger

from .document import TokenizedDocument

MLC_START = "<!--"
MLC_END = "-->"

_TAG_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9:_.\-]*")
_ENTITY_RE = re.compile(r"&(?:#[0-9]+|#[xX][0-9A-Fa-f]+|[A-Za-z][A-Za-z0-9]*);")
_LINE_TERMINATOR_RE = re.compile(r"\r\n|\r|\n")
_TEXT_STOP_CHARS = "<&"
_TAG_STOP_CHARS = ">=\"'"


class TokenKind(Enum):
    """Lexical classes of HTML tokens."""

    COMMENT_EOL = auto()                 # Single-line comment: // in script content
    COMMENT_MULTILINE = auto()           # <!-- ... --> (one token per line touched)
    MARKUP_TAG_DELIMITER = auto()        # <, </, >, />
    MARKUP_TAG_NAME = auto()
    MARKUP_TAG_ATTRIBUTE = auto()
    MARKUP_TAG_ATTRIBUTE_VALUE = auto()
    MARKUP_DTD = auto()                  # <!DOCTYPE ...> and <?...?>
    MARKUP_ENTITY_REFERENCE = auto()     # &amp; &#160;
    OPERATOR = auto()                    # = and stray / inside tags
    IDENTIFIER = auto()                  # Text content
    WHITESPACE = auto()
    NULL = auto()                        # End-of-line sentinel


class TokenizerState(Enum):
    """State carried from one line to the next."""

    TEXT = auto()
    IN_TAG = auto()
    IN_ATTR_VALUE = auto()
    IN_COMMENT = auto()
    IN_DTD = auto()
    IN_RAW_TEXT = auto()


@dataclass(eq=False)
class Token:
    """A classified lexeme linked to the next token on the same line."""

    kind: TokenKind
    lexeme: str
    offset: int
    next_token: Optional["Token"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate token values."""
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")

    @property
    def length(self) -> int:
        return len(self.lexeme)

    @property
    def end_offset(self) -> int:
        """Offset just past the last character of the token."""
        return self.offset + len(self.lexeme)

    def is_paintable(self) -> bool:
        """Whether this token is real content rather than an end-of-line sentinel."""
        return self.kind is not TokenKind.NULL

    def is_comment(self) -> bool:
        return self.kind in (TokenKind.COMMENT_EOL, TokenKind.COMMENT_MULTILINE)

    def is_single_char(self, kind: TokenKind, char: str) -> bool:
        return self.kind is kind and len(self.lexeme) == 1 and self.lexeme == char

    def is_(self, kind: TokenKind, lexeme: str) -> bool:
        return self.kind is kind and self.lexeme == lexeme

    def ends_with(self, suffix: str) -> bool:
        return self.lexeme.endswith(suffix)


class HTMLLineTokenizer:
    """Tokenizes HTML text into per-line linked token lists.

    The tokenizer is lenient: any input produces a document, and characters
    that do not start a recognised construct are lexed as text.
    """

    def __init__(
        self,
        config: Optional[TokenizerConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize the tokenizer.

        Args:
            config: Tokenizer configuration (defaults to ``TokenizerConfig()``)
            correlation_id: Optional correlation ID for tracking requests
        """
        self.config = config or TokenizerConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "html_tokenizer")
        self._raw_text_end_patterns: Dict[str, "re.Pattern[str]"] = {
            tag: re.compile(r"</" + re.escape(tag) + r"(?![A-Za-z0-9:_.\-])", re.IGNORECASE)
            for tag in self.config.raw_text_tags
        }
        self._reset_state()

    def _reset_state(self) -> None:
        """Reset tokenizer state for a new document."""
        self.state = TokenizerState.TEXT
        self._tag_name: Optional[str] = None
        self._closing_tag = False
        self._expect_value = False
        self._quote_char: Optional[str] = None
        self._raw_text_tag: Optional[str] = None
        self._tokens_generated = 0

    def tokenize(self, text: str) -> TokenizedDocument:
        """Tokenize ``text`` into a :class:`TokenizedDocument`."""
        self._reset_state()
        line_starts: List[int] = []
        token_lists: List[Optional[Token]] = []

        for line_text, line_start in _iter_lines(text):
            line_starts.append(line_start)
            token_lists.append(self._tokenize_line(line_text, line_start))

        self.logger.debug(
            "Tokenized document",
            extra={
                "line_count": len(line_starts),
                "tokens_generated": self._tokens_generated,
                "final_state": self.state.name,
            }
        )
        return TokenizedDocument(text, line_starts, token_lists)

    def _tokenize_line(self, line: str, line_start: int) -> Token:
        tokens: List[Token] = []
        position = 0
        while position < len(line):
            position = self._lex(line, position, line_start, tokens)

        tokens.append(Token(TokenKind.NULL, "", line_start + len(line)))
        for current, following in zip(tokens, tokens[1:]):
            current.next_token = following
        return tokens[0]

    def _emit(self, tokens: List[Token], kind: TokenKind, lexeme: str, offset: int) -> None:
        tokens.append(Token(kind, lexeme, offset))
        self._tokens_generated += 1

    def _lex(self, line: str, i: int, base: int, tokens: List[Token]) -> int:
        """Lex one construct starting at column ``i``; return the next column."""
        if self.state is TokenizerState.TEXT:
            return self._lex_text(line, i, base, tokens)
        if self.state is TokenizerState.IN_TAG:
            return self._lex_tag(line, i, base, tokens)
        if self.state is TokenizerState.IN_ATTR_VALUE:
            return self._lex_attr_value(line, i, base, tokens)
        if self.state is TokenizerState.IN_COMMENT:
            return self._lex_comment(line, i, base, tokens)
        if self.state is TokenizerState.IN_DTD:
            return self._lex_dtd(line, i, base, tokens)
        return self._lex_raw_text(line, i, base, tokens)

    def _lex_text(self, line: str, i: int, base: int, tokens: List[Token]) -> int:
        char = line[i]

        if line.startswith(MLC_START, i):
            # "<!-->" and "<!--->" are complete, empty comments
            end = line.find(MLC_END, i + 2)
            if end == -1:
                self._emit(tokens, TokenKind.COMMENT_MULTILINE, line[i:], base + i)
                self.state = TokenizerState.IN_COMMENT
                return len(line)
            end += len(MLC_END)
            self._emit(tokens, TokenKind.COMMENT_MULTILINE, line[i:end], base + i)
            return end

        if line.startswith("<!", i) or line.startswith("<?", i):
            end = line.find(">", i + 2)
            if end == -1:
                self._emit(tokens, TokenKind.MARKUP_DTD, line[i:], base + i)
                self.state = TokenizerState.IN_DTD
                return len(line)
            self._emit(tokens, TokenKind.MARKUP_DTD, line[i:end + 1], base + i)
            return end + 1

        if line.startswith("</", i):
            match = _TAG_NAME_RE.match(line, i + 2)
            if match:
                return self._start_tag("</", i, match, base, tokens, closing=True)
        elif char == "<":
            match = _TAG_NAME_RE.match(line, i + 1)
            if match:
                return self._start_tag("<", i, match, base, tokens, closing=False)

        if char == "&":
            match = _ENTITY_RE.match(line, i)
            if match:
                self._emit(tokens, TokenKind.MARKUP_ENTITY_REFERENCE, match.group(), base + i)
                return match.end()

        if char.isspace():
            return self._lex_whitespace(line, i, len(line), base, tokens)

        end = i + 1
        while end < len(line) and line[end] not in _TEXT_STOP_CHARS and not line[end].isspace():
            end += 1
        self._emit(tokens, TokenKind.IDENTIFIER, line[i:end], base + i)
        return end

    def _start_tag(
        self,
        delimiter: str,
        i: int,
        match: "re.Match[str]",
        base: int,
        tokens: List[Token],
        closing: bool
    ) -> int:
        self._emit(tokens, TokenKind.MARKUP_TAG_DELIMITER, delimiter, base + i)
        self._emit(tokens, TokenKind.MARKUP_TAG_NAME, match.group(), base + match.start())
        self.state = TokenizerState.IN_TAG
        self._tag_name = match.group().lower()
        self._closing_tag = closing
        self._expect_value = False
        return match.end()

    def _lex_tag(self, line: str, i: int, base: int, tokens: List[Token]) -> int:
        char = line[i]

        if char.isspace():
            return self._lex_whitespace(line, i, len(line), base, tokens)

        if line.startswith("/>", i):
            self._emit(tokens, TokenKind.MARKUP_TAG_DELIMITER, "/>", base + i)
            self.state = TokenizerState.TEXT
            self._tag_name = None
            return i + 2

        if char == ">":
            self._emit(tokens, TokenKind.MARKUP_TAG_DELIMITER, ">", base + i)
            self._finish_tag()
            return i + 1

        if char == "=":
            self._emit(tokens, TokenKind.OPERATOR, "=", base + i)
            self._expect_value = True
            return i + 1

        if char in "\"'":
            self._expect_value = False
            end = line.find(char, i + 1)
            if end == -1:
                self._emit(tokens, TokenKind.MARKUP_TAG_ATTRIBUTE_VALUE, line[i:], base + i)
                self._quote_char = char
                self.state = TokenizerState.IN_ATTR_VALUE
                return len(line)
            self._emit(tokens, TokenKind.MARKUP_TAG_ATTRIBUTE_VALUE, line[i:end + 1], base + i)
            return end + 1

        end = i + 1
        while (
            end < len(line)
            and not line[end].isspace()
            and line[end] not in _TAG_STOP_CHARS
            and not line.startswith("/>", end)
        ):
            end += 1
        if char == "/" and end == i + 1:
            kind = TokenKind.OPERATOR
        elif self._expect_value:
            kind = TokenKind.MARKUP_TAG_ATTRIBUTE_VALUE
        else:
            kind = TokenKind.MARKUP_TAG_ATTRIBUTE
        self._expect_value = False
        self._emit(tokens, kind, line[i:end], base + i)
        return end

    def _finish_tag(self) -> None:
        if not self._closing_tag and self._tag_name in self._raw_text_end_patterns:
            self.state = TokenizerState.IN_RAW_TEXT
            self._raw_text_tag = self._tag_name
        else:
            self.state = TokenizerState.TEXT
        self._tag_name = None

    def _lex_attr_value(self, line: str, i: int, base: int, tokens: List[Token]) -> int:
        end = line.find(self._quote_char or '"', i)
        if end == -1:
            self._emit(tokens, TokenKind.MARKUP_TAG_ATTRIBUTE_VALUE, line[i:], base + i)
            return len(line)
        self._emit(tokens, TokenKind.MARKUP_TAG_ATTRIBUTE_VALUE, line[i:end + 1], base + i)
        self._quote_char = None
        self.state = TokenizerState.IN_TAG
        return end + 1

    def _lex_comment(self, line: str, i: int, base: int, tokens: List[Token]) -> int:
        end = line.find(MLC_END, i)
        if end == -1:
            self._emit(tokens, TokenKind.COMMENT_MULTILINE, line[i:], base + i)
            return len(line)
        end += len(MLC_END)
        self._emit(tokens, TokenKind.COMMENT_MULTILINE, line[i:end], base + i)
        self.state = TokenizerState.TEXT
        return end

    def _lex_dtd(self, line: str, i: int, base: int, tokens: List[Token]) -> int:
        end = line.find(">", i)
        if end == -1:
            self._emit(tokens, TokenKind.MARKUP_DTD, line[i:], base + i)
            return len(line)
        self._emit(tokens, TokenKind.MARKUP_DTD, line[i:end + 1], base + i)
        self.state = TokenizerState.TEXT
        return end + 1

    def _lex_raw_text(self, line: str, i: int, base: int, tokens: List[Token]) -> int:
        pattern = self._raw_text_end_patterns[self._raw_text_tag or ""]
        match = pattern.search(line, i)
        end = match.start() if match else len(line)

        position = i
        while position < end:
            char = line[position]
            if char.isspace():
                position = self._lex_whitespace(line, position, end, base, tokens)
            # "//" only opens a comment at a word boundary, so URLs stay text
            elif (
                self.config.lex_line_comments
                and line.startswith("//", position)
                and (position == 0 or line[position - 1].isspace())
            ):
                self._emit(tokens, TokenKind.COMMENT_EOL, line[position:end], base + position)
                position = end
            else:
                run_end = position + 1
                while run_end < end and not line[run_end].isspace():
                    run_end += 1
                self._emit(tokens, TokenKind.IDENTIFIER, line[position:run_end], base + position)
                position = run_end

        if match:
            self.state = TokenizerState.TEXT
            self._raw_text_tag = None
        return end

    def _lex_whitespace(
        self, line: str, i: int, limit: int, base: int, tokens: List[Token]
    ) -> int:
        end = i + 1
        while end < limit and line[end].isspace():
            end += 1
        self._emit(tokens, TokenKind.WHITESPACE, line[i:end], base + i)
        return end


def _iter_lines(text: str) -> Iterator[Tuple[str, int]]:
    """Yield ``(line_text, line_start_offset)`` pairs, terminators excluded."""
    position = 0
    for match in _LINE_TERMINATOR_RE.finditer(text):
        yield text[position:match.start()], position
        position = match.end()
    yield text[position:], position


def tokenize(
    text: str,
    config: Optional[TokenizerConfig] = None,
    correlation_id: Optional[str] = None
) -> TokenizedDocument:
    """Tokenize HTML text with a fresh :class:`HTMLLineTokenizer`."""
    return HTMLLineTokenizer(config, correlation_id).tokenize(text)
