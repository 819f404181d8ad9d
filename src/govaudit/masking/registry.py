"""Sensitive Field Registry - which field names must be redacted.

The registry is built once at startup from the packaged ISO 27001 baseline
and an optional custom document of the same shape (JSON or YAML). Merging
is additive: a custom document can add categories, fields and patterns but
can never remove a baseline entry.
"""

import json
import logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from govaudit.common.constants import MaskingConstants
from govaudit.common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class SensitiveFieldsConfig(BaseModel):
    """Shape of a sensitive-fields document.

    Example:
        {
            "version": "1.0.0",
            "description": "...",
            "categories": {"authentication": ["password"], "pii": ["email"]},
            "fieldPatterns": ["secret"]
        }
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: str = Field(
        default="",
        description="Version of the field document"
    )
    description: str = Field(
        default="",
        description="Free-form description"
    )
    categories: Dict[str, List[str]] = Field(
        ...,
        description="Category name -> field names"
    )
    field_patterns: List[str] = Field(
        default_factory=list,
        alias="fieldPatterns",
        description="Substrings that mark any containing field name as sensitive"
    )


def normalize_field_name(name: str) -> str:
    """Lower-case a field name and drop '_' and '-' separators."""
    return name.lower().replace("_", "").replace("-", "")


def _union(existing: Iterable[str], extra: Iterable[str]) -> List[str]:
    """Order-preserving, case-insensitive union of two name lists."""
    seen = set()
    merged = []
    for name in list(existing) + list(extra):
        normalized = normalize_field_name(name)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        merged.append(name.lower())
    return merged


def merge_configs(
    baseline: SensitiveFieldsConfig,
    custom: SensitiveFieldsConfig,
) -> SensitiveFieldsConfig:
    """Additively merge a custom document into the baseline."""
    categories = {name: _union(fields, []) for name, fields in baseline.categories.items()}
    for name, fields in custom.categories.items():
        categories[name] = _union(categories.get(name, []), fields)

    return SensitiveFieldsConfig(
        version=custom.version or baseline.version,
        description=custom.description or baseline.description,
        categories=categories,
        field_patterns=_union(baseline.field_patterns, custom.field_patterns),
    )


class SensitiveFieldRegistry:
    """Answers one question: is this field name sensitive?"""

    BASELINE_FILE = Path(__file__).parent / MaskingConstants.BASELINE_CONFIG_FILENAME

    def __init__(self, config: SensitiveFieldsConfig):
        """Initialize registry from an already merged document.

        Args:
            config: Merged sensitive-fields document.
        """
        self.config = config
        self._fields: FrozenSet[str] = frozenset(
            normalize_field_name(name)
            for fields in config.categories.values()
            for name in fields
            if name
        )
        self._patterns: Tuple[str, ...] = tuple(
            dict.fromkeys(
                normalize_field_name(pattern)
                for pattern in config.field_patterns
                if pattern
            )
        )

    @classmethod
    def load(cls, custom_config_path: Optional[Union[str, Path]] = None) -> "SensitiveFieldRegistry":
        """Build the registry from the baseline plus an optional custom document.

        Args:
            custom_config_path: JSON or YAML document with the same shape as
                the baseline. Relative paths resolve against the working
                directory.

        Returns:
            Registry over the merged field set.

        Raises:
            ConfigurationError: If the custom document is missing, unreadable
                or not shaped like a sensitive-fields document.
        """
        baseline = cls.load_baseline()
        if custom_config_path is None:
            return cls(baseline)

        custom = cls._read_document(Path(custom_config_path))
        merged = merge_configs(baseline, custom)
        logger.info(
            f"Loaded custom sensitive fields from {custom_config_path}: "
            f"{len(custom.categories)} categories, {len(custom.field_patterns)} patterns"
        )
        return cls(merged)

    @classmethod
    def load_baseline(cls) -> SensitiveFieldsConfig:
        """Load the packaged baseline document."""
        with open(cls.BASELINE_FILE, "r", encoding="utf-8") as f:
            return SensitiveFieldsConfig.model_validate(json.load(f))

    @staticmethod
    def _read_document(path: Path) -> SensitiveFieldsConfig:
        path = path if path.is_absolute() else Path.cwd() / path
        if not path.exists():
            raise ConfigurationError(
                f"Sensitive fields config not found: {path}",
                details={"path": str(path)},
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    raw = yaml.safe_load(f)
                else:
                    raw = json.load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not parse sensitive fields config {path}: {e}",
                details={"path": str(path)},
            ) from e

        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Sensitive fields config {path} must be a mapping",
                details={"path": str(path), "type": type(raw).__name__},
            )

        try:
            return SensitiveFieldsConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(
                f"Malformed sensitive fields config {path}",
                details={"path": str(path), "errors": e.errors(include_url=False)},
            ) from e

    @property
    def fields(self) -> FrozenSet[str]:
        """Normalized exact-match field names."""
        return self._fields

    @property
    def patterns(self) -> Tuple[str, ...]:
        """Normalized substring patterns."""
        return self._patterns

    def is_sensitive(self, field_name: str) -> bool:
        """Check whether a field name marks its value as sensitive.

        Matching is case-insensitive and ignores '_' and '-': an exact hit
        in any category, or any pattern contained in the name.
        """
        if not isinstance(field_name, str):
            field_name = str(field_name)
        normalized = normalize_field_name(field_name)
        if not normalized:
            return False
        if normalized in self._fields:
            return True
        return any(pattern in normalized for pattern in self._patterns)
