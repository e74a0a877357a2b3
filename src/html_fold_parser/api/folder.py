"""Fold API with progressive disclosure.

Level 1 is the module-level functions :func:`fold`, :func:`fold_string` and
:func:`fold_file`; level 2 is the configured :class:`HtmlFolder`. Both return
a :class:`FoldingResult` and never raise for unreadable or malformed input.
"""

import codecs
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, TextIO, Union

from html_fold_parser.folding import Fold, FoldType, HtmlFoldParser
from html_fold_parser.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    FoldingMetrics,
    FoldParserConfig,
    get_logger,
)
from html_fold_parser.tokenization import HTMLLineTokenizer, TokenizedDocument

InputType = Union[str, bytes, BinaryIO, TextIO, Path]

MS_PER_SECOND = 1000


@dataclass
class FoldingResult:
    """Fold forest of one document plus metrics and diagnostics.

    ``success`` is False only when the input could not be read; a forest
    cut short by truncated markup is still a successful result.
    """

    folds: List[Fold] = field(default_factory=list)
    document: Optional[TokenizedDocument] = None
    success: bool = True
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    performance: FoldingMetrics = field(default_factory=FoldingMetrics)
    source: Optional[str] = None
    correlation_id: Optional[str] = None

    def iter_folds(self) -> Iterator[Fold]:
        """Iterate over every fold in document order."""
        for fold in self.folds:
            yield fold
            yield from fold.iter_descendants()

    @property
    def fold_count(self) -> int:
        return sum(1 for _ in self.iter_folds())

    @property
    def unterminated_folds(self) -> List[Fold]:
        """Folds that extend to the end of the document."""
        return [fold for fold in self.iter_folds() if fold.is_unterminated]

    @property
    def max_depth(self) -> int:
        return max((fold.depth for fold in self.iter_folds()), default=-1) + 1

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        position: Optional[Dict[str, int]] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add diagnostic entry to result."""
        self.diagnostics.append(DiagnosticEntry(
            severity=severity,
            message=message,
            component=component,
            position=position,
            details=details,
            correlation_id=self.correlation_id
        ))

    def get_diagnostics_by_severity(
        self,
        severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        return [diag for diag in self.diagnostics if diag.severity == severity]

    def has_errors(self) -> bool:
        """Check if result contains any error diagnostics."""
        return any(
            diag.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
            for diag in self.diagnostics
        )

    def to_dict(
        self,
        include_line_numbers: bool = True,
        include_diagnostics: bool = True
    ) -> Dict[str, Any]:
        """Convert the result to a JSON-friendly dictionary."""
        result: Dict[str, Any] = {
            "source": self.source,
            "success": self.success,
            "fold_count": self.fold_count,
            "unterminated_count": len(self.unterminated_folds),
            "folds": [fold.to_dict(include_line_numbers) for fold in self.folds],
            "performance": self.performance.to_dict(),
        }
        if include_diagnostics:
            result["diagnostics"] = [diag.to_dict() for diag in self.diagnostics]
        return result


class HtmlFolder:
    """Configured entry point that tokenizes input and computes its folds."""

    def __init__(
        self,
        config: Optional[FoldParserConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize the folder.

        Args:
            config: Parser configuration (defaults to ``FoldParserConfig()``)
            correlation_id: Optional correlation ID; one is generated when
                correlation tracking is enabled and none is given
        """
        self.config = config or FoldParserConfig()
        if not self.config.global_.enable_correlation_tracking:
            correlation_id = None
        elif correlation_id is None:
            correlation_id = uuid.uuid4().hex[:12]
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "html_folder")
        self._parser = HtmlFoldParser(correlation_id)

    def fold(self, input_data: InputType) -> FoldingResult:
        """Fold input of any supported type (str, bytes, Path or file-like)."""
        if isinstance(input_data, str):
            return self.fold_string(input_data)
        if isinstance(input_data, bytes):
            return self.fold_bytes(input_data)
        if isinstance(input_data, Path):
            return self.fold_file(input_data)
        if hasattr(input_data, "read"):
            source = getattr(input_data, "name", None)
            try:
                content = input_data.read()
            except (OSError, ValueError) as e:
                self.logger.error("Failed to read input stream", extra={"source": source})
                return self._error_result(f"Unable to read input: {e}", source)
            if isinstance(content, bytes):
                return self.fold_bytes(content, source=source)
            return self.fold_string(content, source=source)
        return self._error_result(
            f"Unsupported input type: {type(input_data).__name__}", None
        )

    def fold_string(self, text: str, source: Optional[str] = None) -> FoldingResult:
        """Tokenize ``text`` and compute its folds."""
        start_time = time.time()
        tokenizer = HTMLLineTokenizer(self.config.tokenizer, self.correlation_id)
        document = tokenizer.tokenize(text)
        return self._fold(document, start_time, source)

    def fold_bytes(self, data: bytes, source: Optional[str] = None) -> FoldingResult:
        """Decode ``data`` (UTF-8 unless a UTF-16 BOM says otherwise) and fold it."""
        limit = self.config.global_.max_input_size_bytes
        if limit is not None and len(data) > limit:
            return self._error_result(
                f"Input of {len(data)} bytes exceeds limit of {limit} bytes", source
            )
        return self.fold_string(_decode(data), source=source)

    def fold_file(self, path: Union[str, Path]) -> FoldingResult:
        """Read and fold a file; read failures yield an unsuccessful result."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            self.logger.error("Failed to read file", extra={"file": str(path)})
            return self._error_result(f"Unable to read {path}: {e}", str(path))
        return self.fold_bytes(data, source=str(path))

    def fold_document(
        self,
        document: TokenizedDocument,
        source: Optional[str] = None
    ) -> FoldingResult:
        """Compute folds for a document tokenized by the caller."""
        return self._fold(document, time.time(), source)

    def _fold(
        self,
        document: TokenizedDocument,
        start_time: float,
        source: Optional[str]
    ) -> FoldingResult:
        result = FoldingResult(
            document=document,
            source=source,
            correlation_id=self.correlation_id
        )
        folds = self._parser.get_folds(document)
        if not self.config.folding.include_comment_folds:
            folds = _strip_comment_folds(folds)
        result.folds = folds

        if self.config.folding.report_unterminated:
            self._report_unterminated(result)

        if self.config.global_.enable_performance_metrics:
            result.performance = FoldingMetrics(
                processing_time_ms=(time.time() - start_time) * MS_PER_SECOND,
                characters_processed=document.length,
                lines_processed=document.line_count,
                tokens_generated=document.token_count,
                folds_found=result.fold_count,
            )

        self.logger.info(
            "Fold computation completed",
            extra={
                "source": source,
                "line_count": document.line_count,
                "top_level_folds": len(result.folds),
            }
        )
        return result

    def _report_unterminated(self, result: FoldingResult) -> None:
        unterminated = result.unterminated_folds
        limit = self.config.folding.max_reported_unterminated
        for fold in unterminated[:limit]:
            result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                "Fold is never closed and extends to the end of the document",
                "html_folder",
                position={"line": fold.start_line, "offset": fold.start_offset},
                details={"fold_type": fold.fold_type.name}
            )
        if len(unterminated) > limit:
            result.add_diagnostic(
                DiagnosticSeverity.INFO,
                f"{len(unterminated) - limit} more unterminated folds not reported",
                "html_folder"
            )

    def _error_result(self, message: str, source: Optional[str]) -> FoldingResult:
        result = FoldingResult(
            success=False,
            source=source,
            correlation_id=self.correlation_id
        )
        result.add_diagnostic(DiagnosticSeverity.CRITICAL, message, "html_folder")
        return result


def _decode(data: bytes) -> str:
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16", errors="replace")
    return data.decode("utf-8-sig", errors="replace")


def _strip_comment_folds(folds: List[Fold]) -> List[Fold]:
    """Return the top-level folds without COMMENT folds at any depth."""
    kept = [fold for fold in folds if fold.fold_type is not FoldType.COMMENT]
    for fold in kept:
        _remove_comment_children(fold)
    return kept


def _remove_comment_children(fold: Fold) -> None:
    # Comment folds never have children, so only CODE folds are descended
    for child in fold.children:
        if child.fold_type is FoldType.COMMENT:
            fold.remove_child(child)
        else:
            _remove_comment_children(child)


def fold(input_data: InputType, correlation_id: Optional[str] = None) -> FoldingResult:
    """Fold HTML from a string, bytes, file-like object or Path.

    Examples:
        >>> result = fold('<div>\\n  text\\n</div>')
        >>> result.fold_count
        1
    """
    return HtmlFolder(correlation_id=correlation_id).fold(input_data)


def fold_string(text: str, correlation_id: Optional[str] = None) -> FoldingResult:
    """Fold HTML held in a string."""
    return HtmlFolder(correlation_id=correlation_id).fold_string(text)


def fold_file(
    path: Union[str, Path],
    correlation_id: Optional[str] = None
) -> FoldingResult:
    """Fold an HTML file."""
    return HtmlFolder(correlation_id=correlation_id).fold_file(path)
