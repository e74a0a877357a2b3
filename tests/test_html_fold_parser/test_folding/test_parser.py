"""Tests for the HTML fold builder.

Covers tag pairing, the foldable tag allowlist, multi-line comments, the
tag-close lookahead and best-effort handling of truncated and mismatched
markup.
"""

import logging
from typing import List

import pytest

from html_fold_parser.folding import (
    FOLDABLE_TAGS,
    Fold,
    FoldType,
    HtmlFoldParser,
    get_folds,
    is_foldable_tag,
)
from html_fold_parser.tokenization import (
    PositionError,
    Token,
    TokenizedDocument,
    TokenKind,
    tokenize,
)


def _folds(text: str) -> List[Fold]:
    return HtmlFoldParser().get_folds(tokenize(text))


def _link(*tokens: Token) -> Token:
    for current, following in zip(tokens, tokens[1:]):
        current.next_token = following
    return tokens[0]


class TestTagFolds:
    """Test folds produced by balanced allowlisted tag pairs."""

    def test_empty_document_has_no_folds(self) -> None:
        """Test that an empty document produces an empty forest."""
        assert _folds("") == []

    def test_nested_tags_produce_nested_folds(self) -> None:
        """Test that fold nesting mirrors tag nesting."""
        text = "<html>\n<body>\n<div>\ntext\n</div>\n</body>\n</html>"

        folds = _folds(text)

        assert len(folds) == 1
        html = folds[0]
        assert html.fold_type is FoldType.CODE
        assert html.start_offset == 0
        assert html.end_offset == text.index("</html>")
        assert html.start_line == 0
        assert html.end_line == 6

        assert html.child_count == 1
        body = html.get_child(0)
        assert body.start_offset == text.index("<body>")
        assert body.end_offset == text.index("</body>")
        assert body.parent is html

        assert body.child_count == 1
        div = body.get_child(0)
        assert (div.start_line, div.end_line) == (2, 4)
        assert not div.has_children
        assert div.parent is body

    def test_sibling_folds_keep_document_order(self) -> None:
        """Test that consecutive top-level pairs become ordered siblings."""
        text = "<ul>\n<li>a</li>\n</ul>\n<ol>\n<li>b</li>\n</ol>"

        folds = _folds(text)

        assert [fold.start_offset for fold in folds] == [0, text.index("<ol>")]
        assert all(not fold.is_unterminated for fold in folds)
        assert all(fold.parent is None for fold in folds)

    def test_same_line_pair_is_not_reported(self) -> None:
        """Test that a pair opening and closing on one line is dropped."""
        text = "<div>\n<span>x</span>\n</div>"

        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].child_count == 0

    def test_single_line_top_level_pair_is_not_reported(self) -> None:
        """Test that a top-level single-line pair is removed from the forest."""
        assert _folds("<div>text</div>") == []

    @pytest.mark.parametrize("text", [
        "<div/>",
        "<div />\ntext",
        "<div\n/>\n</div>",
        '<canvas id="c"/>\n<p>\n</p>',
    ])
    def test_self_closing_tags_never_fold(self, text: str) -> None:
        """Test that self-closing allowlisted tags produce no fold."""
        assert _folds(text) == []

    @pytest.mark.parametrize("tag", ["section", "p", "li", "article", "nav"])
    def test_tags_outside_allowlist_never_fold(self, tag: str) -> None:
        """Test that balanced non-allowlisted tags produce no fold."""
        assert _folds(f"<{tag}>\ncontent\n</{tag}>") == []

    @pytest.mark.parametrize("text", [
        "<DIV>\ntext\n</div>",
        "<div>\ntext\n</DIV>",
        "<Div>\ntext\n</dIV>",
    ])
    def test_tag_matching_is_case_insensitive(self, text: str) -> None:
        """Test that open and close tags match regardless of case."""
        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].end_offset == text.index("</")

    def test_table_rows_and_cells_fold(self) -> None:
        """Test table, tr and td on separate lines produce three nested folds."""
        text = "<table>\n<tr>\n<td>\nx\n</td>\n</tr>\n</table>"

        folds = _folds(text)

        assert len(folds) == 1
        tr = folds[0].get_child(0)
        td = tr.get_child(0)
        assert folds[0].child_count == 1
        assert tr.child_count == 1
        assert td.start_offset == text.index("<td>")
        assert td.end_offset == text.index("</td>")

    def test_single_line_cell_only_table_and_row_fold(self) -> None:
        """Test a td opening and closing on one line is not reported."""
        text = "<table>\n<tr>\n<td>x</td>\n</tr>\n</table>"

        folds = _folds(text)

        assert len(folds) == 1
        tr = folds[0].get_child(0)
        assert folds[0].child_count == 1
        assert tr.child_count == 0

    def test_start_tag_spanning_lines(self) -> None:
        """Test that the closer of a start tag may be on a later line."""
        text = '<div\n  class="a"\n  id="b"\n>\ncontent\n</div>'

        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].start_offset == 0
        assert folds[0].end_offset == text.index("</div>")

    def test_scanning_resumes_after_closer_on_later_line(self) -> None:
        """Test tokens after a multi-line start tag are scanned exactly once."""
        text = '<div\nclass="x"><span>\ntext\n</span>\n</div>'

        folds = _folds(text)

        assert len(folds) == 1
        div = folds[0]
        assert div.child_count == 1
        span = div.get_child(0)
        assert span.start_offset == text.index("<span>")
        assert span.end_offset == text.index("</span>")
        assert div.end_offset == text.index("</div>")

    def test_script_content_is_not_scanned_for_tags(self) -> None:
        """Test that markup inside script content does not fold."""
        text = "<script>\nvar a = '<div>';\nvar b = 1;\n</script>"

        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].child_count == 0
        assert folds[0].end_offset == text.index("</script>")

    def test_close_tag_without_open_fold_is_ignored(self) -> None:
        """Test a stray close tag with nothing open changes nothing."""
        text = "</div>\n<div>\ntext\n</div>"

        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].start_offset == text.index("<div>")


class TestCommentFolds:
    """Test folds produced by multi-line comments."""

    def test_multi_line_comment_folds(self) -> None:
        """Test a comment spanning lines yields one COMMENT fold."""
        text = "<!-- a\nb\n-->"

        folds = _folds(text)

        assert len(folds) == 1
        comment = folds[0]
        assert comment.fold_type is FoldType.COMMENT
        assert comment.start_offset == 0
        assert comment.end_offset == len(text)
        assert (comment.start_line, comment.end_line) == (0, 2)

    def test_comment_end_offset_is_just_after_terminator(self) -> None:
        """Test the comment fold ends right after the closing -->."""
        text = "x <!--\nnotes\n--> <div/>"

        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].start_offset == 2
        assert folds[0].end_offset == text.index("-->") + 3

    def test_single_line_comment_does_not_fold(self) -> None:
        """Test a comment fully on one line yields no fold."""
        assert _folds("<!-- a -->\ntext") == []

    def test_comment_nested_in_tag_fold(self) -> None:
        """Test a comment inside an open fold becomes its child."""
        text = "<div>\n<!--\nx\n-->\n</div>"

        folds = _folds(text)

        assert len(folds) == 1
        div = folds[0]
        assert div.child_count == 1
        comment = div.get_child(0)
        assert comment.fold_type is FoldType.COMMENT
        assert comment.parent is div
        assert div.end_offset == text.index("</div>")

    def test_tags_inside_comment_do_not_fold(self) -> None:
        """Test markup inside a comment is not treated as tags."""
        text = "<!--\n<div>\n</div>\n-->"

        folds = _folds(text)

        assert [fold.fold_type for fold in folds] == [FoldType.COMMENT]
        assert folds[0].child_count == 0

    def test_comment_does_not_change_current_fold(self) -> None:
        """Test tags after a nested comment still close the enclosing fold."""
        text = "<div>\n<!--\nx\n-->\n<ul>\n</ul>\n</div>"

        folds = _folds(text)

        div = folds[0]
        assert [child.fold_type for child in div.children] == [
            FoldType.COMMENT,
            FoldType.CODE,
        ]
        assert not div.is_unterminated

    @pytest.mark.parametrize("comment", ["<!-->", "<!--->"])
    def test_empty_comment_does_not_hide_following_markup(self, comment: str) -> None:
        """Test an empty comment neither folds nor swallows the tags after it."""
        text = comment + "\n<div>\nx\n</div>\n-->"

        folds = _folds(text)

        assert len(folds) == 1
        div = folds[0]
        assert div.fold_type is FoldType.CODE
        assert div.start_offset == text.index("<div>")
        assert (div.start_line, div.end_line) == (1, 3)
        assert not div.has_children

    def test_unclosed_comment_produces_no_fold(self) -> None:
        """Test a comment never terminated yields no fold."""
        assert _folds("<!--\nnever\nclosed") == []


class TestMalformedMarkup:
    """Test best-effort behaviour for truncated and mismatched markup."""

    def test_truncated_start_tag_returns_completed_folds(self) -> None:
        """Test EOF inside a start tag returns the folds built so far."""
        text = "<div>\ntext\n</div>\n<div"

        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].end_offset == text.index("</div>")

    def test_truncation_stops_processing_immediately(self) -> None:
        """Test nothing after the truncated tag is processed."""
        text = "<ul>\n<div class='a'\n"

        folds = _folds(text)

        assert len(folds) == 1
        assert folds[0].is_unterminated
        assert folds[0].child_count == 0

    def test_truncated_non_foldable_tag_does_not_abort(self) -> None:
        """Test a truncated tag outside the allowlist is just skipped."""
        text = "<div>\ntext\n</div>\n<p"

        folds = _folds(text)

        assert len(folds) == 1

    def test_mismatched_close_tag_is_ignored(self) -> None:
        """Test a close tag that does not match the innermost open tag."""
        folds = _folds("<div><span></div>")

        assert len(folds) == 1
        div = folds[0]
        span = div.get_child(0)
        assert div.is_unterminated
        assert span.is_unterminated
        assert span.end_offset is None

    def test_mismatch_leaves_open_folds_matchable_later(self) -> None:
        """Test the stack is unchanged by an ignored close tag."""
        text = "<div>\n<span>\n</div>\n</span>\n</div>"

        folds = _folds(text)

        div = folds[0]
        span = div.get_child(0)
        assert span.end_offset == text.index("</span>")
        assert div.end_offset == text.rindex("</div>")

    def test_ancestors_are_not_searched(self) -> None:
        """Test closing an outer tag does not close inner open folds."""
        text = "<html>\n<body>\n<div>\n</body>\n</html>"

        folds = _folds(text)

        html = folds[0]
        body = html.get_child(0)
        div = body.get_child(0)
        assert html.is_unterminated
        assert body.is_unterminated
        assert div.is_unterminated

    def test_unterminated_fold_extends_to_document_end(self) -> None:
        """Test an unterminated fold reports the last line as its end."""
        document = tokenize("<div>\na\nb\nc")

        folds = HtmlFoldParser().get_folds(document)

        assert folds[0].end_offset is None
        assert folds[0].end_line == document.line_count - 1

    def test_open_tags_are_logged_at_debug(self, caplog) -> None:
        """Test the tags still open at the end are reported at DEBUG level."""
        with caplog.at_level(logging.DEBUG, logger="html_fold_parser.folding.parser"):
            _folds("<div>\n<ul>\n")

        records = [
            r for r in caplog.records
            if r.getMessage() == "Document ended with unterminated folds"
        ]
        assert len(records) == 1
        assert records[0].open_tags == ["div", "ul"]

    def test_open_tags_not_logged_above_debug(self, caplog) -> None:
        """Test no unterminated-folds record is built when DEBUG is disabled."""
        with caplog.at_level(logging.INFO, logger="html_fold_parser.folding.parser"):
            _folds("<div>\n<ul>\n")

        assert not any(
            r.getMessage() == "Document ended with unterminated folds"
            for r in caplog.records
        )

    def test_position_error_returns_partial_forest(self, caplog) -> None:
        """Test an offset resolution failure is contained and logged."""
        text = "<div>\n</div>\n<span>\n</span>"

        class FailingDocument(TokenizedDocument):
            def line_of_offset(self, offset: int) -> int:
                if offset > 10:
                    raise PositionError("unresolvable", offset=offset)
                return super().line_of_offset(offset)

        source = tokenize(text)
        document = FailingDocument(
            text,
            [source.get_line_start_offset(line) for line in range(source.line_count)],
            [source.get_token_list_for_line(line) for line in range(source.line_count)],
        )

        with caplog.at_level(logging.ERROR, logger="html_fold_parser.folding.parser"):
            folds = HtmlFoldParser().get_folds(document)

        assert len(folds) == 1
        assert folds[0].end_offset == text.index("</div>")
        assert any(
            "Offset resolution failed" in record.getMessage() for record in caplog.records
        )


class TestTagCloseLookahead:
    """Test the tag-close lookahead scanner."""

    def test_finds_closer_on_same_line(self) -> None:
        """Test the closer of a one-line start tag is found on its line."""
        document = tokenize('<div id="a">')
        name = document.get_token_list_for_line(0).next_token

        info = HtmlFoldParser.get_tag_close_info(name, document, 0)

        assert info.found
        assert info.line == 0
        assert info.close_token.lexeme == ">"

    def test_crosses_lines_to_find_self_closing_end(self) -> None:
        """Test the scanner continues through later lines."""
        document = tokenize('<div\n\nid="a"/>')
        name = document.get_token_list_for_line(0).next_token

        info = HtmlFoldParser.get_tag_close_info(name, document, 0)

        assert info.found
        assert info.line == 2
        assert info.close_token.lexeme == "/>"

    def test_returns_sentinel_at_end_of_document(self) -> None:
        """Test the not-found sentinel when the document ends first."""
        document = tokenize("<div\nclass='a'")
        name = document.get_token_list_for_line(0).next_token

        info = HtmlFoldParser.get_tag_close_info(name, document, 0)

        assert not info.found
        assert info.line == -1
        assert info.close_token is None


class TestAllowlist:
    """Test the foldable tag allowlist."""

    def test_allowlist_contents(self) -> None:
        """Test the allowlist holds exactly the supported tags."""
        assert FOLDABLE_TAGS == {
            "body", "canvas", "div", "form", "head", "html", "ol", "pre",
            "script", "span", "style", "table", "tfoot", "thead", "tr", "td",
            "ul",
        }

    def test_allowlist_is_immutable(self) -> None:
        """Test the allowlist cannot be modified."""
        assert isinstance(FOLDABLE_TAGS, frozenset)
        with pytest.raises(AttributeError):
            FOLDABLE_TAGS.add("section")  # type: ignore[attr-defined]

    def test_is_foldable_tag(self) -> None:
        """Test allowlist membership checks on tokens."""
        assert is_foldable_tag(Token(TokenKind.MARKUP_TAG_NAME, "TBODY", 0)) is False
        assert is_foldable_tag(Token(TokenKind.MARKUP_TAG_NAME, "TFoot", 0)) is True
        assert is_foldable_tag(None) is False


class TestHostTokenStream:
    """Test folding a token stream built by a host rather than the tokenizer."""

    def test_hand_built_tokens(self) -> None:
        """Test the builder only relies on the token contract."""
        line0 = _link(
            Token(TokenKind.MARKUP_TAG_DELIMITER, "<", 0),
            Token(TokenKind.MARKUP_TAG_NAME, "div", 1),
            Token(TokenKind.MARKUP_TAG_DELIMITER, ">", 4),
            Token(TokenKind.NULL, "", 5),
        )
        line1 = _link(
            Token(TokenKind.MARKUP_TAG_DELIMITER, "</", 6),
            Token(TokenKind.MARKUP_TAG_NAME, "div", 8),
            Token(TokenKind.MARKUP_TAG_DELIMITER, ">", 11),
            Token(TokenKind.NULL, "", 12),
        )
        document = TokenizedDocument("<div>\n</div>", [0, 6], [line0, line1])

        folds = get_folds(document)

        assert len(folds) == 1
        assert folds[0].start_offset == 0
        assert folds[0].end_offset == 6

    def test_parser_is_reusable(self) -> None:
        """Test one parser instance gives identical results on repeated calls."""
        parser = HtmlFoldParser()
        document = tokenize("<div>\n<ul>\n</ul>\n</div>")

        first = [fold.to_dict() for fold in parser.get_folds(document)]
        second = [fold.to_dict() for fold in parser.get_folds(document)]

        assert first == second
