"""Unit tests for the concept catalog and the level requirement table."""

import json

import pytest

from masterygate.engines.progression.requirements import (
    CONSERVATIVE_REQUIREMENT,
    LevelRequirementTable,
)
from masterygate.kernel.catalog import ConceptCatalog
from masterygate.kernel.errors import ConfigurationError


class TestConceptCatalog:
    """Loading and querying concepts."""

    def test_default_catalog(self):
        catalog = ConceptCatalog.default()

        assert len(catalog) == 11
        assert catalog.has_concept("basic-arithmetic")
        assert catalog.get_concept("force-and-motion").level == 2
        assert catalog.get_concept("unknown") is None

    def test_required_concepts_come_from_previous_level(self):
        catalog = ConceptCatalog.default()

        assert catalog.get_required_concepts(2) == frozenset({"basic-arithmetic", "variables-and-data-types"})
        assert catalog.get_required_concepts(1) == frozenset()

    def test_learning_path_orders_foundations_first(self):
        catalog = ConceptCatalog.default()

        assert catalog.learning_path("energy-conservation") == [
            "basic-arithmetic", "force-and-motion", "energy-conservation",
        ]
        assert catalog.learning_path("missing") == []

    def test_prerequisites_met(self, catalog):
        assert catalog.prerequisites_met("c2", ["c1"]) is True
        assert catalog.prerequisites_met("c2", []) is False
        assert catalog.difficulty_of("c2") == 2
        assert catalog.difficulty_of("nope") == 1

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ConfigurationError):
            ConceptCatalog.from_dicts([
                {"id": "a", "name": "A"},
                {"id": "a", "name": "A again"},
            ])

    def test_unknown_prerequisite_rejected(self):
        with pytest.raises(ConfigurationError, match="unknown prerequisites"):
            ConceptCatalog.from_dicts([{"id": "a", "name": "A", "prerequisites": ["b"]}])

    def test_invalid_definition_rejected(self):
        with pytest.raises(ConfigurationError):
            ConceptCatalog.from_dicts([{"id": "", "name": "Nameless"}])

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "concepts.json"
        path.write_text(json.dumps({"concepts": [{"id": "x", "name": "X", "level": 2}]}))

        catalog = ConceptCatalog.from_json_file(path)

        assert catalog.get_concept("x").level == 2

    def test_missing_file_is_configuration_error(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConceptCatalog.from_json_file(tmp_path / "missing.json")


class TestLevelRequirementTable:
    """Per-level advancement requirements."""

    def test_default_table(self):
        table = LevelRequirementTable.default()

        assert table.levels() == frozenset({2, 3, 4, 5})
        level_two = table.requirement_for(2)
        assert level_two.required_concepts == frozenset({"basic-arithmetic"})
        assert level_two.mastery_threshold == 0.80
        assert level_two.retention_test_required is False

    def test_default_table_names_only_catalog_concepts(self):
        """Every default requirement is satisfiable from the default catalog."""
        table = LevelRequirementTable.default()
        catalog = ConceptCatalog.default()

        for level in table.levels():
            for concept_id in table.requirement_for(level).required_concepts:
                assert concept_id in catalog, (level, concept_id)

    def test_missing_level_uses_conservative_default(self, requirements):
        assert requirements.get(9) is None
        assert requirements.requirement_for(9) is CONSERVATIVE_REQUIREMENT
        assert CONSERVATIVE_REQUIREMENT.mastery_threshold == 0.85
        assert CONSERVATIVE_REQUIREMENT.retention_test_required is True

    def test_string_levels_from_json(self, tmp_path):
        path = tmp_path / "levels.json"
        path.write_text(json.dumps({"levels": {"2": {"required_concepts": ["a"]}}}))

        table = LevelRequirementTable.from_json_file(path)

        assert table.requirement_for(2).required_concepts == frozenset({"a"})

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ConfigurationError):
            LevelRequirementTable.from_dict({2: {"mastery_threshold": 1.5}})

    def test_non_numeric_level_rejected(self):
        with pytest.raises(ConfigurationError):
            LevelRequirementTable.from_dict({"two": {}})
