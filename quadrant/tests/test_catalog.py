"""
Tests for the card catalog, validation, configuration and shuffling.

Tests:
- Starter catalog and default deck validate
- Deck layout errors and unknown ids
- Environment overrides for EngineConfig
- Seeded shuffles are reproducible
"""

import pytest

from ..cards.card import Attribute, CardType, MissionCard, MissionType
from ..cards.catalog import CardCatalog, DEFAULT_DECK
from ..cards.rules import DilemmaRequirement, format_requirements
from ..cards.validation import CatalogValidationError, validate_catalog, validate_deck
from ..config import EngineConfig
from ..shuffle import Shuffler, configure_shuffle, default_shuffle, identity_shuffle, reset_shuffle, shuffle


class TestCatalog:
    """Tests for CardCatalog."""

    def test_starter_catalog_is_valid(self, catalog):
        """Every bundled template passes validation."""
        result = validate_catalog(catalog)

        assert result.valid, result.errors

    def test_lookup_unknown_returns_none(self, catalog):
        """Unknown ids are not an error at lookup time."""
        assert catalog.lookup("EN99999") is None
        assert "EN99999" not in catalog

    def test_cards_of_type(self, catalog):
        """The starter set holds five missions, one of them headquarters."""
        missions = catalog.cards_of_type(CardType.MISSION)

        assert len(missions) == 5
        assert sum(1 for m in missions if m.is_headquarters) == 1

    def test_invalid_catalog_raises(self):
        """A mission without requirements is rejected."""
        catalog = CardCatalog.from_cards([MissionCard(card_id="X1", name="Empty", mission_type=MissionType.PLANET)])

        with pytest.raises(CatalogValidationError) as exc_info:
            validate_catalog(catalog, raise_on_error=True)

        assert any("no skill requirements" in e for e in exc_info.value.errors)


class TestDeckValidation:
    """Tests for validate_deck."""

    def test_default_deck_is_valid(self, catalog):
        """The default deck has five missions and one headquarters."""
        result = validate_deck(DEFAULT_DECK, catalog)

        assert result.valid
        assert len(DEFAULT_DECK) == 57

    def test_missing_headquarters(self, catalog):
        """A deck without headquarters is reported."""
        deck = [card_id for card_id in DEFAULT_DECK if card_id != "EN03110"]

        result = validate_deck(deck, catalog)

        assert not result.valid
        assert any("headquarters" in e for e in result.errors)

    def test_unknown_ids_are_warnings(self, catalog):
        """Unknown ids are skipped with a warning, not an error."""
        result = validate_deck(DEFAULT_DECK + ["NOPE"], catalog)

        assert result.valid
        assert result.warnings == ["Unknown card id 'NOPE' will be skipped"]


class TestRequirementText:
    """Tests for dilemma requirement descriptions."""

    def test_describe_alternatives(self):
        """Repeated skills are counted and attributes use strict form."""
        requirements = (
            DilemmaRequirement(("Diplomacy", "Diplomacy")),
            DilemmaRequirement(attribute=Attribute.CUNNING, attribute_threshold=35),
        )

        assert format_requirements(requirements) == "2 Diplomacy or Cunning>35"

    def test_describe_single_personnel(self):
        """Single-personnel requirements say so."""
        requirement = DilemmaRequirement(("Navigation", "Navigation"), single_personnel=True)

        assert requirement.describe() == "one personnel with 2 Navigation"


class TestConfig:
    """Tests for EngineConfig."""

    def test_defaults(self):
        """Defaults match the standard game."""
        config = EngineConfig()

        assert config.starting_counters == 7
        assert config.max_hand_size == 7
        assert config.win_score == 100

    def test_from_env_overrides(self):
        """QUADRANT_* variables override single fields."""
        config = EngineConfig.from_env({"QUADRANT_WIN_SCORE": "35", "UNRELATED": "1"})

        assert config.win_score == 35
        assert config.starting_counters == 7

    def test_from_env_rejects_non_integers(self):
        """A malformed value is a configuration error."""
        with pytest.raises(ValueError):
            EngineConfig.from_env({"QUADRANT_MAX_HAND_SIZE": "seven"})


class TestShuffle:
    """Tests for the shuffle primitive."""

    def test_shuffle_is_a_permutation(self):
        """Shuffling returns the same items and leaves the input alone."""
        items = list(range(20))

        result = shuffle(items)

        assert sorted(result) == items
        assert items == list(range(20))

    def test_seeded_shuffler_is_reproducible(self):
        """Two shufflers with the same seed agree call for call."""
        first, second = Shuffler(seed=7), Shuffler(seed=7)

        assert first(range(30)) == second(range(30))
        assert first(range(30)) == second(range(30))

    def test_configured_default_shuffle(self):
        configure_shuffle(identity_shuffle)
        try:
            assert default_shuffle([3, 1, 2]) == [3, 1, 2]
        finally:
            reset_shuffle()
