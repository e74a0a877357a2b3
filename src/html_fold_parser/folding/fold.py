"""Fold regions produced by the fold builder.

A :class:`Fold` owns its children; the link back to its parent is a weak
reference used only to return to the enclosing fold once a child closes.
"""

import weakref
from enum import Enum, auto
from typing import Any, Dict, Iterator, List, Optional

from html_fold_parser.tokenization import TokenizedDocument


class FoldType(Enum):
    """Kinds of fold regions."""

    CODE = auto()      # A foldable tag pair
    COMMENT = auto()   # A multi-line <!-- ... --> comment


class FoldError(Exception):
    """Raised when a fold is used in a way its lifecycle does not allow."""


class Fold:
    """A collapsible, possibly nested, range of document lines.

    The end offset is set at most once. A fold whose end offset is never set
    is unterminated and extends to the end of the document.
    """

    def __init__(
        self,
        fold_type: FoldType,
        document: TokenizedDocument,
        start_offset: int,
        parent: Optional["Fold"] = None
    ) -> None:
        """Create a fold starting at ``start_offset``.

        Raises:
            PositionError: If ``start_offset`` is outside the document
        """
        self.fold_type = fold_type
        self._document = document
        self._start_line = document.line_of_offset(start_offset)
        self.start_offset = start_offset
        self._end_offset: Optional[int] = None
        self._end_line: Optional[int] = None
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self._children: List["Fold"] = []
        self.collapsed = False

    def __repr__(self) -> str:
        return (
            f"Fold({self.fold_type.name}, start={self.start_offset}, "
            f"end={self._end_offset}, lines={self.start_line}-{self.end_line}, "
            f"children={len(self._children)})"
        )

    @property
    def document(self) -> TokenizedDocument:
        return self._document

    @property
    def parent(self) -> Optional["Fold"]:
        """The enclosing fold, or ``None`` for a top-level fold."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def children(self) -> List["Fold"]:
        """Direct child folds in document order (a copy)."""
        return list(self._children)

    @property
    def child_count(self) -> int:
        return len(self._children)

    @property
    def has_children(self) -> bool:
        return bool(self._children)

    @property
    def last_child(self) -> Optional["Fold"]:
        return self._children[-1] if self._children else None

    def get_child(self, index: int) -> "Fold":
        return self._children[index]

    @property
    def end_offset(self) -> Optional[int]:
        """End offset, or ``None`` while the fold is unterminated."""
        return self._end_offset

    @property
    def is_unterminated(self) -> bool:
        return self._end_offset is None

    @property
    def start_line(self) -> int:
        return self._start_line

    @property
    def end_line(self) -> int:
        """Line of the end offset; the last document line when unterminated."""
        if self._end_line is None:
            return self._document.line_count - 1
        return self._end_line

    @property
    def collapsed_line_count(self) -> int:
        """Number of lines hidden when this fold is collapsed."""
        return self.end_line - self.start_line

    @property
    def depth(self) -> int:
        """Nesting depth; top-level folds have depth 0."""
        depth = 0
        parent = self.parent
        while parent is not None:
            depth += 1
            parent = parent.parent
        return depth

    def create_child(self, fold_type: FoldType, start_offset: int) -> "Fold":
        """Create a fold nested in this one and append it to the children.

        Raises:
            PositionError: If ``start_offset`` is outside the document
        """
        child = Fold(fold_type, self._document, start_offset, parent=self)
        self._children.append(child)
        return child

    def set_end_offset(self, end_offset: int) -> None:
        """Terminate the fold. Offsets past the document end are clamped.

        Raises:
            FoldError: If the end offset was already set
            PositionError: If ``end_offset`` is negative
        """
        if self._end_offset is not None:
            raise FoldError(
                f"End offset already set to {self._end_offset} for fold at "
                f"offset {self.start_offset}"
            )
        end_offset = min(end_offset, self._document.length)
        self._end_line = self._document.line_of_offset(end_offset)
        self._end_offset = end_offset

    def is_on_single_line(self) -> bool:
        """Whether the fold starts and ends on the same line."""
        return self.start_line == self.end_line

    def remove_from_parent(self) -> bool:
        """Detach this fold from its parent.

        Returns:
            False for a top-level fold, which has no parent to detach from
        """
        parent = self.parent
        if parent is None:
            return False
        parent._children.remove(self)
        self._parent_ref = None
        return True

    def remove_child(self, child: "Fold") -> bool:
        if child in self._children:
            self._children.remove(child)
            child._parent_ref = None
            return True
        return False

    def contains_line(self, line: int) -> bool:
        """Whether ``line`` lies within this fold's line range."""
        return self.start_line <= line <= self.end_line

    def toggle_collapsed_state(self) -> None:
        self.collapsed = not self.collapsed

    def iter_descendants(self) -> Iterator["Fold"]:
        """Yield all nested folds in document order (depth-first, pre-order)."""
        for child in self._children:
            yield child
            yield from child.iter_descendants()

    def to_dict(self, include_line_numbers: bool = True) -> Dict[str, Any]:
        """Convert the fold and its children to a dictionary."""
        result: Dict[str, Any] = {
            "type": self.fold_type.name,
            "start_offset": self.start_offset,
            "end_offset": self._end_offset,
        }
        if include_line_numbers:
            result["start_line"] = self.start_line
            result["end_line"] = self.end_line
        if self.is_unterminated:
            result["unterminated"] = True
        if self._children:
            result["children"] = [
                child.to_dict(include_line_numbers) for child in self._children
            ]
        return result
