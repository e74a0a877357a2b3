"""Configuration classes for HTML fold parsing.

This module provides configuration objects for the tokenizer, the fold API
layer, output formatting and global behaviour. The foldable tag allowlist is
deliberately not configurable; it lives in :mod:`html_fold_parser.folding.parser`.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

_COMPONENT_FIELDS = ("tokenizer", "folding", "output", "global_")


@dataclass
class TokenizerConfig:
    """Configuration for the reference HTML line tokenizer."""

    # Elements whose content is lexed as raw text up to the matching end tag
    raw_text_tags: Tuple[str, ...] = ("script", "style")
    # Lex "//" inside raw text as a single-line comment
    lex_line_comments: bool = True

    def __post_init__(self) -> None:
        """Validate tokenizer configuration."""
        if isinstance(self.raw_text_tags, str):
            raise ValueError("raw_text_tags must be a sequence of tag names")
        if any(not tag or not isinstance(tag, str) for tag in self.raw_text_tags):
            raise ValueError("raw_text_tags entries must be non-empty strings")
        self.raw_text_tags = tuple(tag.lower() for tag in self.raw_text_tags)


@dataclass
class FoldingConfig:
    """Configuration for the fold API layer.

    None of these settings change how tags are matched; they only filter and
    annotate the forest produced by the fold builder.
    """

    include_comment_folds: bool = True
    report_unterminated: bool = True
    max_reported_unterminated: int = 50

    def __post_init__(self) -> None:
        """Validate folding configuration."""
        if self.max_reported_unterminated < 0:
            raise ValueError("max_reported_unterminated must be >= 0")


@dataclass
class OutputConfig:
    """Configuration for rendering fold results."""

    default_output_format: str = "json"  # json, text, dict
    include_line_numbers: bool = True
    include_diagnostics: bool = True
    json_indent: int = 2

    def __post_init__(self) -> None:
        """Validate output configuration."""
        valid_formats = ["json", "text", "dict"]
        if self.default_output_format not in valid_formats:
            raise ValueError(f"default_output_format must be one of {valid_formats}")
        if self.json_indent < 0:
            raise ValueError("json_indent must be >= 0")


@dataclass
class GlobalConfig:
    """Global configuration settings that apply across all components."""

    logging_level: str = "WARNING"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    enable_correlation_tracking: bool = True
    enable_performance_metrics: bool = True
    max_input_size_bytes: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate global configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.logging_level not in valid_levels:
            raise ValueError(f"logging_level must be one of {valid_levels}")
        if self.max_input_size_bytes is not None and self.max_input_size_bytes <= 0:
            raise ValueError("max_input_size_bytes must be > 0 or None")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class FoldParserConfig:
    """Complete configuration for tokenizing, folding and output.

    Immutable, so a single instance can be shared between editor threads.
    """

    tokenizer: TokenizerConfig = field(default_factory=TokenizerConfig)
    folding: FoldingConfig = field(default_factory=FoldingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    version: str = "1.0.0"
    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete configuration."""
        try:
            self.tokenizer.__post_init__()
            self.folding.__post_init__()
            self.output.__post_init__()
            self.global_.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

    def override(self, **kwargs: Any) -> "FoldParserConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Fields to override; nested fields use ``component__field``

        Returns:
            New FoldParserConfig instance with overrides applied

        Example:
            >>> config = FoldParserConfig()
            >>> new_config = config.override(
            ...     folding__include_comment_folds=False,
            ...     output__default_output_format="text"
            ... )
        """
        nested_overrides: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component == "global":
                    component = "global_"
                if component not in _COMPONENT_FIELDS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                        suggestions=list(_COMPONENT_FIELDS),
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                nested_overrides[key] = value

        new_fields: Dict[str, Any] = {}
        for field_name in _COMPONENT_FIELDS:
            current_config = getattr(self, field_name)
            if field_name in nested_overrides:
                try:
                    new_fields[field_name] = replace(
                        current_config, **nested_overrides[field_name]
                    )
                except (TypeError, ValueError) as e:
                    raise ConfigValidationError(str(e), field_name=field_name) from e
            else:
                new_fields[field_name] = current_config

        for key, value in nested_overrides.items():
            if key not in _COMPONENT_FIELDS:
                new_fields[key] = value

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            if isinstance(obj, (list, tuple, set)):
                return [_dataclass_to_dict(item) for item in obj]
            if isinstance(obj, dict):
                return {key: _dataclass_to_dict(value) for key, value in obj.items()}
            return obj

        result = _dataclass_to_dict(self)
        if not isinstance(result, dict):
            raise ConfigValidationError("Configuration serialization failed")
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FoldParserConfig":
        """Create configuration from dictionary.

        Unknown keys are ignored so configuration files written by newer
        versions still load.
        """
        def _dict_to_dataclass(data_dict: Dict[str, Any], target_class: type) -> Any:
            field_values: Dict[str, Any] = {}
            for field_name, field_info in target_class.__dataclass_fields__.items():
                if field_name not in data_dict:
                    continue
                value = data_dict[field_name]
                field_type = field_info.type
                if hasattr(field_type, "__dataclass_fields__"):
                    if not isinstance(value, dict):
                        raise ConfigValidationError(
                            f"Section '{field_name}' must be an object",
                            field_name=field_name,
                        )
                    field_values[field_name] = _dict_to_dataclass(value, field_type)
                else:
                    field_values[field_name] = value
            try:
                return target_class(**field_values)
            except ValueError as e:
                raise ConfigValidationError(str(e)) from e

        result = _dict_to_dataclass(data, cls)
        if not isinstance(result, cls):
            raise ConfigValidationError(f"Failed to deserialize to {cls.__name__}")
        return result

    @classmethod
    def from_json(cls, json_str: str) -> "FoldParserConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def default(cls) -> "FoldParserConfig":
        """Create the default configuration preset."""
        return cls(name="default")

    @classmethod
    def code_only(cls) -> "FoldParserConfig":
        """Create a preset that reports tag folds only, without comment folds."""
        return cls(
            folding=FoldingConfig(include_comment_folds=False),
            name="code_only",
            description="Tag folds only; multi-line comments are not reported",
        )

    @classmethod
    def diagnostic(cls) -> "FoldParserConfig":
        """Create a preset for inspecting why a document folds the way it does."""
        return cls(
            folding=FoldingConfig(report_unterminated=True, max_reported_unterminated=1000),
            output=OutputConfig(default_output_format="text", include_diagnostics=True),
            global_=GlobalConfig(logging_level="DEBUG"),
            name="diagnostic",
            description="Verbose logging and full unterminated-fold reporting",
        )
