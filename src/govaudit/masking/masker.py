"""Masker - redacts sensitive values from arbitrary payload trees."""

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Optional, Set

from pydantic import BaseModel

from govaudit.common.constants import MaskingConstants
from govaudit.masking.registry import SensitiveFieldRegistry

logger = logging.getLogger(__name__)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


class Masker:
    """Walks dict/list/scalar trees and replaces sensitive subtrees.

    The input is never modified; a masked copy is returned. Any value
    reachable through a sensitive key is replaced as a whole by the
    redaction marker, however deeply nested it is.
    """

    MARKER = MaskingConstants.REDACTION_MARKER

    def __init__(self, registry: Optional[SensitiveFieldRegistry] = None):
        """Initialize masker.

        Args:
            registry: Field registry. Uses the packaged baseline if not provided.
        """
        self.registry = registry or SensitiveFieldRegistry.load()

    def mask(self, value: Any) -> Any:
        """Return a copy of value with every sensitive subtree redacted."""
        return self._walk(value, set())

    def _walk(self, value: Any, active: Set[int]) -> Any:
        if not isinstance(value, (Mapping, BaseModel) + _SEQUENCE_TYPES) and not _is_dataclass_instance(value):
            return value

        marker_id = id(value)
        if marker_id in active:
            # Self-reference on the current path
            return self.MARKER

        active.add(marker_id)
        try:
            if isinstance(value, BaseModel):
                return self._walk_mapping(value.model_dump(mode="python"), active)
            if _is_dataclass_instance(value):
                return self._walk_mapping(
                    {f.name: getattr(value, f.name) for f in dataclasses.fields(value)},
                    active,
                )
            if isinstance(value, Mapping):
                return self._walk_mapping(value, active)
            return [self._walk(item, active) for item in value]
        except Exception as e:
            logger.debug(f"Redacting subtree of {type(value).__name__} after masking failure: {e}")
            return self.MARKER
        finally:
            active.discard(marker_id)

    def _walk_mapping(self, value: Mapping, active: Set[int]) -> dict:
        masked = {}
        for key, item in value.items():
            if self.registry.is_sensitive(key):
                masked[key] = self.MARKER
            else:
                masked[key] = self._walk(item, active)
        return masked

    def contains_sensitive_data(self, value: Any) -> bool:
        """Check whether any key in the tree is a sensitive field name."""
        return self._contains(value, set())

    def _contains(self, value: Any, active: Set[int]) -> bool:
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="python")
        elif _is_dataclass_instance(value):
            value = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}

        if not isinstance(value, (Mapping,) + _SEQUENCE_TYPES) or id(value) in active:
            return False

        active.add(id(value))
        try:
            if isinstance(value, Mapping):
                return any(
                    self.registry.is_sensitive(key) or self._contains(item, active)
                    for key, item in value.items()
                )
            return any(self._contains(item, active) for item in value)
        finally:
            active.discard(id(value))

    @classmethod
    def mask_value(cls, value: str, show_first: int = 0, show_last: int = 0) -> str:
        """Partially mask a single string, e.g. 'ab****yz'.

        Strings too short to keep the requested ends are fully redacted.
        """
        if not value or len(value) <= show_first + show_last:
            return cls.MARKER

        first = value[:show_first]
        last = value[len(value) - show_last:] if show_last else ""
        stars = "*" * min(MaskingConstants.PARTIAL_MASK_MAX_STARS, len(value) - show_first - show_last)
        return f"{first}{stars}{last}"


def _is_dataclass_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)
