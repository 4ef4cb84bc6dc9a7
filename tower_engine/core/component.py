"""
Component base class for data-only state models.

Components are pure data containers. The logic that mutates them lives
in the owning system (Navigator, RespawnLedger, ProgressionSystem, ...).
This separation makes:
- Serialization trivial (save files are model dumps)
- Testing easier

Usage:
    class Position(Component):
        x: int = 0
        y: int = 0
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="Component")


class Component(BaseModel):
    """
    Base class for all state components.

    Components are data-only containers using Pydantic for:
    - Automatic validation
    - JSON serialization
    - Type hints
    - Default values
    """

    model_config = ConfigDict(
        # Allow arbitrary types (for references)
        arbitrary_types_allowed=True,
        # Validate on assignment
        validate_assignment=True,
        # Saved data may carry keys from newer/older versions
        extra='ignore',
        populate_by_name=True,
    )

    # Class variable: component type name (used for serialization)
    _type_name: ClassVar[str] = ""

    @classmethod
    def get_type_name(cls) -> str:
        """Get the component type name for serialization."""
        return cls._type_name or cls.__name__

    @classmethod
    def restore(cls: type[C], data: Any) -> C:
        """
        Build a component from persisted data.

        Invalid top-level fields fall back to their defaults; data that
        is not a mapping at all gives the default instance.
        """
        if isinstance(data, cls):
            return data.clone()
        if not isinstance(data, dict):
            logger.warning(f"Expected a mapping for {cls.get_type_name()}, using defaults")
            return cls()
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            bad_fields = {str(err['loc'][0]) for err in e.errors() if err['loc']}
            logger.warning(
                f"Invalid {cls.get_type_name()} fields {sorted(bad_fields)}, using defaults"
            )
        cleaned = {k: v for k, v in data.items() if k not in bad_fields}
        try:
            return cls.model_validate(cleaned)
        except ValidationError:
            return cls()

    def clone(self: C) -> C:
        """Create a deep copy of this component."""
        return self.model_copy(deep=True)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dump using field aliases."""
        return self.model_dump(mode="json", by_alias=True)
