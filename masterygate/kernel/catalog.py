"""
Concept catalog - read-only repository of concepts, levels and prerequisites.

The catalog is built once (from the built-in default set or a JSON file) and
then passed by reference to the service. It never changes after load.

JSON format:
    {"concepts": [{"id": "basic-arithmetic", "name": "Basic Arithmetic",
                   "domain": "mathematics", "level": 1, "difficulty": 1,
                   "keywords": ["add"], "prerequisites": []}, ...]}
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from masterygate.kernel.errors import ConfigurationError
from masterygate.logging_config import get_logger

logger = get_logger(__name__)


class Concept(BaseModel):
    """A concept a learner can practice."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    domain: str = "general"
    level: int = Field(1, ge=1)
    difficulty: int = Field(1, ge=1, le=10)
    keywords: List[str] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)


DEFAULT_CONCEPTS: List[Dict[str, Any]] = [
    {"id": "basic-arithmetic", "name": "Basic Arithmetic", "domain": "mathematics",
     "level": 1, "difficulty": 1,
     "keywords": ["add", "subtract", "multiply", "divide", "calculate"], "prerequisites": []},
    {"id": "variables-and-data-types", "name": "Variables and Data Types", "domain": "programming",
     "level": 1, "difficulty": 2,
     "keywords": ["variable", "data type", "integer", "string", "boolean"], "prerequisites": []},
    {"id": "algebra-basics", "name": "Basic Algebra", "domain": "mathematics",
     "level": 2, "difficulty": 3,
     "keywords": ["variable", "equation", "solve", "expression", "isolate"],
     "prerequisites": ["basic-arithmetic"]},
    {"id": "force-and-motion", "name": "Force and Motion", "domain": "physics",
     "level": 2, "difficulty": 4,
     "keywords": ["force", "acceleration", "newton", "f=ma", "motion"],
     "prerequisites": ["basic-arithmetic"]},
    {"id": "depreciation-straight-line", "name": "Straight-Line Depreciation", "domain": "accounting",
     "level": 2, "difficulty": 3,
     "keywords": ["depreciation", "straight-line", "asset", "salvage value", "useful life"],
     "prerequisites": ["basic-arithmetic"]},
    {"id": "control-flow", "name": "Control Flow", "domain": "programming",
     "level": 2, "difficulty": 4,
     "keywords": ["if", "else", "loop", "condition", "iteration"],
     "prerequisites": ["variables-and-data-types"]},
    {"id": "atomic-structure", "name": "Atomic Structure", "domain": "chemistry",
     "level": 2, "difficulty": 3,
     "keywords": ["atom", "proton", "neutron", "electron", "nucleus"],
     "prerequisites": ["basic-arithmetic"]},
    {"id": "systems-of-equations", "name": "Systems of Equations", "domain": "mathematics",
     "level": 3, "difficulty": 4,
     "keywords": ["system", "elimination", "substitution", "multiple equations"],
     "prerequisites": ["algebra-basics"]},
    {"id": "energy-conservation", "name": "Energy Conservation", "domain": "physics",
     "level": 3, "difficulty": 5,
     "keywords": ["energy", "kinetic", "potential", "conservation", "work"],
     "prerequisites": ["force-and-motion"]},
    {"id": "depreciation-accelerated", "name": "Accelerated Depreciation", "domain": "accounting",
     "level": 3, "difficulty": 5,
     "keywords": ["double-declining", "accelerated", "sum-of-years", "depreciation rate"],
     "prerequisites": ["depreciation-straight-line"]},
    {"id": "chemical-bonding", "name": "Chemical Bonding", "domain": "chemistry",
     "level": 3, "difficulty": 5,
     "keywords": ["ionic", "covalent", "bond", "molecule", "electron sharing"],
     "prerequisites": ["atomic-structure"]},
]


class ConceptCatalog:
    """
    Immutable concept repository.

    Usage:
        catalog = ConceptCatalog.default()
        catalog.get_required_concepts(3)   # concepts of level 2
        catalog.get_prerequisites("energy-conservation")
    """

    def __init__(self, concepts: Iterable[Concept]):
        by_id: Dict[str, Concept] = {}
        for concept in concepts:
            if concept.id in by_id:
                raise ConfigurationError(f"Duplicate concept id: {concept.id}")
            by_id[concept.id] = concept

        for concept in by_id.values():
            unknown = [p for p in concept.prerequisites if p not in by_id]
            if unknown:
                raise ConfigurationError(
                    f"Concept {concept.id} has unknown prerequisites: {', '.join(unknown)}"
                )

        self._concepts: Mapping[str, Concept] = MappingProxyType(by_id)

    @classmethod
    def from_dicts(cls, items: Iterable[Mapping[str, Any]]) -> "ConceptCatalog":
        try:
            return cls(Concept.model_validate(item) for item in items)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid concept definition: {exc}") from exc

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "ConceptCatalog":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"Cannot read concept catalog {path}: {exc}") from exc
        items = data.get("concepts") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ConfigurationError(f"Concept catalog {path} must contain a list of concepts")
        catalog = cls.from_dicts(items)
        logger.info("Concept catalog loaded", extra={"path": str(path), "concepts": len(catalog)})
        return catalog

    @classmethod
    def default(cls) -> "ConceptCatalog":
        return cls.from_dicts(DEFAULT_CONCEPTS)

    def __len__(self) -> int:
        return len(self._concepts)

    def __contains__(self, concept_id: object) -> bool:
        return concept_id in self._concepts

    def has_concept(self, concept_id: str) -> bool:
        return concept_id in self._concepts

    def get_concept(self, concept_id: str) -> Optional[Concept]:
        return self._concepts.get(concept_id)

    def concepts_at_level(self, level: int) -> List[Concept]:
        return [c for c in self._concepts.values() if c.level == level]

    def get_required_concepts(self, level: int) -> FrozenSet[str]:
        """Concepts a learner must have mastered before entering `level`."""
        return frozenset(c.id for c in self.concepts_at_level(level - 1))

    def get_prerequisites(self, concept_id: str) -> FrozenSet[str]:
        concept = self._concepts.get(concept_id)
        return frozenset(concept.prerequisites) if concept else frozenset()

    def prerequisites_met(self, concept_id: str, mastered: Iterable[str]) -> bool:
        return self.get_prerequisites(concept_id) <= set(mastered)

    def difficulty_of(self, concept_id: str) -> int:
        concept = self._concepts.get(concept_id)
        return concept.difficulty if concept else 1

    def learning_path(self, concept_id: str) -> List[str]:
        """Prerequisite chain ending at `concept_id`, foundations first."""
        ordered: List[str] = []
        seen = set()

        def visit(cid: str) -> None:
            if cid in seen:
                return
            seen.add(cid)
            for prereq in sorted(self.get_prerequisites(cid)):
                visit(prereq)
            ordered.append(cid)

        if concept_id in self._concepts:
            visit(concept_id)
        return ordered
