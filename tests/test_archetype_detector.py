"""Tests for archetype detection."""

import pytest

from manavault.models.card import DeckEntry
from manavault.services import archetype_detector
from manavault.services.archetype_detector import (
    ArchetypeSignature,
    detect_archetype,
    get_recommendations,
    score_archetypes,
    score_signature,
)


def _deck(*pairs):
    """Entries and card data from (card, quantity) pairs."""
    entries = [DeckEntry(card.id, card.name, quantity) for card, quantity in pairs]
    card_data = {card.id: card for card, _ in pairs}
    return entries, card_data


@pytest.fixture
def counterspell(make_card):
    return make_card("Counterspell", cmc=2.0, oracle_text="Counter target spell. Draw a card.")


@pytest.fixture
def mind_rot(make_card):
    return make_card(
        "Mind Rot", type_line="Sorcery", cmc=3.0, oracle_text="Target player discards two cards."
    )


class TestDetectArchetype:
    def test_empty_deck_is_midrange(self) -> None:
        result = detect_archetype([], {})

        assert result.archetype == "Midrange"
        assert result.confidence == 0.0
        assert result.description

    def test_cards_without_data_are_ignored(self) -> None:
        entries = [DeckEntry("unknown", "Mystery Card", 60)]

        result = detect_archetype(entries, {})

        assert result.archetype == "Midrange"
        assert result.confidence == 0.0

    def test_control(self, counterspell, mind_rot) -> None:
        entries, card_data = _deck((counterspell, 15), (mind_rot, 10))

        result = detect_archetype(entries, card_data)

        assert result.archetype == "Control"
        assert result.confidence == pytest.approx(100.0)
        assert result.recommendations == get_recommendations("Control")

    def test_aggro(self, make_card) -> None:
        raider = make_card(
            "Raging Raider", type_line="Creature — Beast", cmc=2.0, oracle_text="Haste"
        )
        entries, card_data = _deck((raider, 30))

        result = detect_archetype(entries, card_data)

        assert result.archetype == "Aggro"
        assert result.recommendations

    def test_confidence_is_a_percentage(self, counterspell) -> None:
        entries, card_data = _deck((counterspell, 4))

        result = detect_archetype(entries, card_data)

        assert 0.0 <= result.confidence <= 100.0

    def test_ties_go_to_earlier_signature(self, monkeypatch, make_card) -> None:
        first = ArchetypeSignature(name="First", description="1", min_score=0.1, keywords=("bolt",))
        second = ArchetypeSignature(
            name="Second", description="2", min_score=0.1, keywords=("bolt",)
        )
        monkeypatch.setattr(archetype_detector, "ARCHETYPE_SIGNATURES", (first, second))
        monkeypatch.setattr(
            archetype_detector, "SIGNATURES_BY_NAME", {"First": first, "Second": second}
        )
        entries, card_data = _deck((make_card("Lightning Bolt"), 5))

        scores = score_archetypes(entries, card_data)
        result = detect_archetype(entries, card_data)

        assert scores["First"] == scores["Second"]
        assert result.archetype == "First"
        assert result.recommendations == []


class TestScoring:
    @pytest.mark.parametrize("archetype", ["Control", "Spellslinger"])
    def test_adding_spells_never_lowers_score(
        self, archetype: str, counterspell, mind_rot
    ) -> None:
        signature = archetype_detector.SIGNATURES_BY_NAME[archetype]

        scores = []
        for count in range(0, 35, 5):
            entries, card_data = _deck((counterspell, count), (mind_rot, count))
            scores.append(score_signature(signature, entries, card_data))

        assert scores == sorted(scores)
        assert scores[-1] > scores[0]

    def test_scores_are_normalized(self, counterspell, mind_rot) -> None:
        entries, card_data = _deck((counterspell, 40), (mind_rot, 40))

        scores = score_archetypes(entries, card_data)

        assert list(scores) == [s.name for s in archetype_detector.ARCHETYPE_SIGNATURES]
        assert all(0.0 <= score <= 1.0 for score in scores.values())

    def test_card_names_score(self, make_card) -> None:
        signature = archetype_detector.SIGNATURES_BY_NAME["Combo"]
        twin = make_card("Splinter Twin", type_line="Enchantment — Aura")
        entries, card_data = _deck((twin, 1))

        assert score_signature(signature, entries, card_data) > 0.0
