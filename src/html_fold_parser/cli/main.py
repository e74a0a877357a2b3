"""Main CLI entry point for the html-folds command-line tool.

Computes fold regions for HTML files and prints them as JSON or as an
indented text outline, or summarises fold statistics per file.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from html_fold_parser import __version__
from html_fold_parser.api import HtmlFolder
from html_fold_parser.shared.config import ConfigError, FoldParserConfig
from html_fold_parser.shared.logging import get_logger

HTML_SUFFIXES = {".html", ".htm", ".xhtml"}
PACKAGE_LOGGER = "html_fold_parser"

_PRESETS = {
    "default": FoldParserConfig.default,
    "code_only": FoldParserConfig.code_only,
    "diagnostic": FoldParserConfig.diagnostic,
}


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self) -> None:
        self.parser_config = FoldParserConfig.default()
        # None defers to parser_config.output.default_output_format
        self.output_format: Optional[str] = None

    @property
    def effective_output_format(self) -> str:
        return self.output_format or self.parser_config.output.default_output_format

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        Recognised keys: ``parser_preset`` (a preset name), ``parser`` (a
        FoldParserConfig dictionary whose sections are merged over the
        preset) and ``output_format``.
        """
        config = cls()
        if not config_path.exists():
            return config
        try:
            with config_path.open() as f:
                data = json.load(f)
            preset = data.get("parser_preset")
            if preset in _PRESETS:
                config.parser_config = _PRESETS[preset]()
            if "parser" in data:
                merged = _merge_dicts(config.parser_config.to_dict(), data["parser"])
                config.parser_config = FoldParserConfig.from_dict(merged)
            config.output_format = data.get("output_format", config.output_format)
        except (OSError, ValueError, ConfigError, AttributeError) as e:
            print(f"Warning: Could not load config file: {e}", file=sys.stderr)
        return config


def _merge_dicts(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


class FoldProcessor:
    """Core fold processing logic for CLI operations."""

    def __init__(self, config: CLIConfig) -> None:
        self.config = config
        self.folder = HtmlFolder(config=config.parser_config)
        self.logger = get_logger(__name__, None, "cli_processor")

    def process_single_file(self, file_path: Path) -> Dict[str, Any]:
        """Fold a single file and return a JSON-friendly result."""
        output = self.config.parser_config.output
        result = self.folder.fold_file(file_path)
        return result.to_dict(
            include_line_numbers=output.include_line_numbers,
            include_diagnostics=output.include_diagnostics,
        )

    def find_html_files(self, path: Path, recursive: bool = True) -> Iterator[Path]:
        """Find HTML files in path. Explicit file paths are always included."""
        if path.is_dir():
            pattern = "**/*" if recursive else "*"
            for candidate in sorted(path.glob(pattern)):
                if candidate.is_file() and candidate.suffix.lower() in HTML_SUFFIXES:
                    yield candidate
        else:
            yield path

    def batch_process(self, paths: List[Path], recursive: bool = True) -> List[Dict[str, Any]]:
        """Fold every HTML file reachable from ``paths``, in order."""
        results = []
        for path in paths:
            for file_path in self.find_html_files(path, recursive):
                self.logger.debug("Processing file", extra={"file": str(file_path)})
                results.append(self.process_single_file(file_path))
        return results


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="html-folds",
        description="Compute collapsible fold regions of HTML documents"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    folds_parser = subparsers.add_parser("folds", help="Print the fold regions of HTML files")
    folds_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="HTML files or directories"
    )
    folds_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Recursively process directories"
    )
    folds_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        help="Output format (default: from configuration, json)"
    )
    folds_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    folds_parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path"
    )
    folds_parser.add_argument(
        "--preset",
        choices=sorted(_PRESETS),
        help="Parser configuration preset"
    )
    folds_parser.add_argument(
        "--no-comments",
        action="store_true",
        help="Do not report multi-line comment folds"
    )

    summary_parser = subparsers.add_parser("summary", help="Summarise fold statistics")
    summary_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="HTML files or directories"
    )
    summary_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Recursively process directories"
    )
    summary_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def _format_fold_lines(fold: Dict[str, Any], indent: int, lines: List[str]) -> None:
    if "start_line" in fold:
        end = "EOF" if fold.get("unterminated") else str(fold["end_line"] + 1)
        span = f"lines {fold['start_line'] + 1}-{end}"
    else:
        end = "EOF" if fold.get("unterminated") else str(fold["end_offset"])
        span = f"offsets {fold['start_offset']}-{end}"
    lines.append(f"{'  ' * indent}{fold['type']} {span}")
    for child in fold.get("children", []):
        _format_fold_lines(child, indent + 1, lines)


def format_results(
    results: List[Dict[str, Any]],
    format_type: str,
    json_indent: int = 2
) -> str:
    """Format fold results for output."""
    if format_type != "text":
        return json.dumps(results, indent=json_indent)

    if not results:
        return "No results to display."

    lines = []
    for result in results:
        if not result.get("success", False):
            messages = [d.get("message", "") for d in result.get("diagnostics", [])]
            lines.append(f"✗ {result['source']}: {'; '.join(messages) or 'failed'}")
            continue
        lines.append(
            f"{result['source']} ({result['fold_count']} folds, "
            f"{result['unterminated_count']} unterminated)"
        )
        for fold in result["folds"]:
            _format_fold_lines(fold, 1, lines)
        lines.append("")
    return "\n".join(lines)


def summarize_results(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate fold statistics across results."""
    successful = [r for r in results if r.get("success", False)]
    return {
        "files": len(results),
        "successful": len(successful),
        "total_folds": sum(r["fold_count"] for r in successful),
        "total_unterminated": sum(r["unterminated_count"] for r in successful),
        "per_file": [
            {
                "source": r["source"],
                "success": r.get("success", False),
                "fold_count": r.get("fold_count", 0),
                "unterminated_count": r.get("unterminated_count", 0),
            }
            for r in results
        ],
    }


def _exit_code(results: List[Dict[str, Any]]) -> int:
    if not results:
        return 1
    return 0 if all(r.get("success", False) for r in results) else 1


def configure_logging(args: argparse.Namespace, parser_config: FoldParserConfig) -> None:
    """Set the package log level from --verbose/--quiet, else from the configuration."""
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = getattr(logging, parser_config.global_.logging_level)
    logging.basicConfig(level=level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


def cmd_folds(args: argparse.Namespace) -> int:
    """Handle folds command."""
    config = CLIConfig()
    if args.config:
        config = CLIConfig.from_file(args.config)
    if args.preset:
        config.parser_config = _PRESETS[args.preset]()
    if args.no_comments:
        config.parser_config = config.parser_config.override(
            folding__include_comment_folds=False
        )
    configure_logging(args, config.parser_config)
    output_format = args.format or config.effective_output_format

    processor = FoldProcessor(config)
    results = processor.batch_process(args.paths, args.recursive)
    formatted_output = format_results(
        results, output_format, config.parser_config.output.json_indent
    )

    if args.output:
        try:
            args.output.write_text(formatted_output)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
        print(f"Results written to {args.output}", file=sys.stderr)
    else:
        print(formatted_output)

    return _exit_code(results)


def cmd_summary(args: argparse.Namespace) -> int:
    """Handle summary command."""
    config = CLIConfig()
    configure_logging(args, config.parser_config)
    processor = FoldProcessor(config)
    results = processor.batch_process(args.paths, args.recursive)
    summary = summarize_results(results)

    if args.format == "json":
        print(json.dumps(summary, indent=config.parser_config.output.json_indent))
    else:
        print(
            f"Processed {summary['files']} files, {summary['successful']} successful, "
            f"{summary['total_folds']} folds ({summary['total_unterminated']} unterminated)"
        )
        print("-" * 60)
        for entry in summary["per_file"]:
            status = "✓" if entry["success"] else "✗"
            print(
                f"{status} {entry['source']}: {entry['fold_count']} folds, "
                f"{entry['unterminated_count']} unterminated"
            )

    return _exit_code(results)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "folds":
            return cmd_folds(args)
        if args.command == "summary":
            return cmd_summary(args)
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
