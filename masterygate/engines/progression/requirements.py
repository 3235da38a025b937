"""
Level requirement table - per-level advancement requirements.

JSON format:
    {"levels": {"2": {"required_concepts": ["basic-arithmetic"],
                      "mastery_threshold": 0.8, "min_time_spent_ms": 180000,
                      "retention_test_required": false}, ...}}
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from masterygate.kernel.errors import ConfigurationError
from masterygate.logging_config import get_logger

logger = get_logger(__name__)


class LevelRequirement(BaseModel):
    """What a learner must show before entering a level."""

    model_config = ConfigDict(frozen=True)

    required_concepts: FrozenSet[str] = Field(default_factory=frozenset)
    mastery_threshold: float = Field(0.85, ge=0.0, le=1.0)
    min_time_spent_ms: int = Field(300000, ge=0)
    retention_test_required: bool = True


# Used for any level missing from the table
CONSERVATIVE_REQUIREMENT = LevelRequirement()

DEFAULT_REQUIREMENTS: Dict[int, Dict[str, Any]] = {
    # Every listed concept must exist in the default catalog
    2: {
        "required_concepts": ["basic-arithmetic"],
        "mastery_threshold": 0.80,
        "min_time_spent_ms": 180000,  # 3 minutes
        "retention_test_required": False,
    },
    3: {
        "required_concepts": ["algebra-basics", "force-and-motion"],
        "mastery_threshold": 0.85,
        "min_time_spent_ms": 300000,  # 5 minutes
        "retention_test_required": True,
    },
    4: {
        "required_concepts": ["systems-of-equations", "energy-conservation"],
        "mastery_threshold": 0.87,
        "min_time_spent_ms": 450000,  # 7.5 minutes
        "retention_test_required": True,
    },
    5: {
        "required_concepts": [],
        "mastery_threshold": 0.90,
        "min_time_spent_ms": 600000,  # 10 minutes
        "retention_test_required": True,
    },
}


class LevelRequirementTable:
    """Immutable mapping of target level -> LevelRequirement."""

    def __init__(self, requirements: Mapping[int, LevelRequirement]):
        self._requirements: Mapping[int, LevelRequirement] = MappingProxyType(dict(requirements))

    @classmethod
    def from_dict(cls, data: Mapping[Any, Mapping[str, Any]]) -> "LevelRequirementTable":
        parsed: Dict[int, LevelRequirement] = {}
        try:
            for level, raw in data.items():
                parsed[int(level)] = LevelRequirement.model_validate(raw)
        except (ValueError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid level requirement: {exc}") from exc
        return cls(parsed)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "LevelRequirementTable":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"Cannot read level requirements {path}: {exc}") from exc
        levels = data.get("levels") if isinstance(data, dict) and "levels" in data else data
        if not isinstance(levels, dict):
            raise ConfigurationError(f"Level requirements {path} must map levels to requirements")
        table = cls.from_dict(levels)
        logger.info("Level requirements loaded", extra={"path": str(path), "levels": len(table)})
        return table

    @classmethod
    def default(cls) -> "LevelRequirementTable":
        return cls.from_dict(DEFAULT_REQUIREMENTS)

    def __len__(self) -> int:
        return len(self._requirements)

    def levels(self) -> FrozenSet[int]:
        return frozenset(self._requirements)

    def get(self, level: int) -> Optional[LevelRequirement]:
        return self._requirements.get(level)

    def requirement_for(self, level: int) -> LevelRequirement:
        """Requirement for `level`, or the conservative default with a warning."""
        requirement = self._requirements.get(level)
        if requirement is None:
            logger.warning(
                "No requirement configured for level, using conservative default",
                extra={"target_level": level},
            )
            return CONSERVATIVE_REQUIREMENT
        return requirement
