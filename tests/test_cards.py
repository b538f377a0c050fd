"""Tests for cards, decks and card data loading."""

from collections import Counter

import numpy as np
import pytest

from critocracy.game.cards import (
    Card,
    CardSubsystem,
    Deck,
    DeckType,
    EffectKind,
    Movement,
    ResourceChange,
    Steal,
    cards_from_dict,
)
from critocracy.game.errors import CardDataError
from critocracy.game.state import Resource, Role


def _make_deck(n=5, seed=0):
    cards = [Card(f"card {i}", DeckType.PURPLE, effects=[ResourceChange(money=i)])
             for i in range(n)]
    return Deck(DeckType.PURPLE, cards, np.random.default_rng(seed))


class TestDeck:
    def test_size_invariant_across_draws(self):
        deck = _make_deck(6)
        in_hand = []
        for step in range(20):
            card = deck.draw()
            assert card is not None
            in_hand.append(card)
            if step % 2 == 0:
                deck.discard(in_hand.pop(0))
            assert len(deck.draw_pile) + len(deck.discard_pile) + len(in_hand) == 6
            if len(in_hand) > 2:
                deck.discard(in_hand.pop(0))

    def test_drain_and_reshuffle_round_trip(self):
        deck = _make_deck(5)
        original = Counter(c.name for c in deck.draw_pile)
        drawn = [deck.draw() for _ in range(5)]
        assert len(deck) == 0
        for card in drawn:
            deck.discard(card)
        card = deck.draw()
        deck.discard(card)
        assert len(deck.draw_pile) + len(deck.discard_pile) == 5
        assert Counter(c.name for c in deck.draw_pile + deck.discard_pile) == original

    def test_empty_deck_reshuffles_discard(self):
        deck = _make_deck(4)
        drawn = [deck.draw() for _ in range(4)]
        for card in drawn:
            deck.discard(card)
        assert len(deck) == 0
        card = deck.draw()
        assert card is not None
        assert len(deck) == 3
        assert deck.discard_pile == []

    def test_both_piles_empty_returns_none(self):
        deck = Deck(DeckType.BLUE, [], np.random.default_rng(0))
        assert deck.draw() is None

    def test_shuffle_is_seeded(self):
        a = [c.name for c in _make_deck(10, seed=7).draw_pile]
        b = [c.name for c in _make_deck(10, seed=7).draw_pile]
        assert a == b
        assert sorted(a) == sorted(f"card {i}" for i in range(10))


class TestCardSubsystem:
    def test_five_decks(self, card_sets):
        cards = CardSubsystem(card_sets, np.random.default_rng(0))
        assert set(cards.decks) == set(DeckType)
        for deck_type, deck in cards.decks.items():
            assert deck.size == len(card_sets[deck_type]) > 0
            assert all(c.deck == deck_type for c in deck.draw_pile)

    def test_discard_returns_card_to_its_deck(self, card_sets):
        cards = CardSubsystem(card_sets, np.random.default_rng(0))
        card = cards.draw("cyan")
        assert card.deck == DeckType.CYAN
        cards.discard(card)
        assert cards.deck(DeckType.CYAN).discard_pile == [card]

    def test_missing_deck_draws_nothing(self):
        cards = CardSubsystem({}, np.random.default_rng(0))
        assert cards.draw(DeckType.PINK) is None


class TestCardEffects:
    def test_role_specific_effect(self):
        card = Card("Market Day", DeckType.END_OF_TURN, role_effects={
            "ENTREPRENEUR": [ResourceChange(money=3)],
            "ALL": [ResourceChange(money=1)],
        })
        assert card.effects_for(Role.ENTREPRENEUR) == [ResourceChange(money=3)]
        assert card.effects_for(Role.ARTIST) == [ResourceChange(money=1)]

    def test_no_entry_and_no_fallback(self):
        card = Card("Audit", DeckType.END_OF_TURN, role_effects={
            "ENTREPRENEUR": [ResourceChange(money=-3)],
        })
        assert card.effects_for(Role.HISTORIAN) == []

    def test_path_card_applies_all_effects(self):
        effects = [ResourceChange(money=-3), Movement(spaces=-1)]
        card = Card("Shipwreck", DeckType.PURPLE, effects=effects)
        for role in Role:
            assert card.effects_for(role) == effects


class TestCardData:
    def test_bundled_cards(self, card_sets):
        assert set(card_sets) == set(DeckType)
        for card in card_sets[DeckType.END_OF_TURN]:
            assert card.role_effects and not card.effects
        for deck_type in (DeckType.PURPLE, DeckType.BLUE, DeckType.CYAN, DeckType.PINK):
            for card in card_sets[deck_type]:
                assert card.effects

    def test_every_effect_kind_is_used(self, card_sets):
        kinds = set()
        for cards in card_sets.values():
            for card in cards:
                kinds.update(e.kind for e in card.effects)
                for effects in card.role_effects.values():
                    kinds.update(e.kind for e in effects)
        assert kinds == set(EffectKind)

    def test_effect_payload_parsed(self):
        sets = cards_from_dict({"decks": {"blue": [
            {"name": "Plunder", "effects": [{"type": "STEAL", "resource": "money", "amount": 2}]},
        ]}})
        effect = sets[DeckType.BLUE][0].effects[0]
        assert effect == Steal(resource=Resource.MONEY, amount=2)

    def test_steal_needs_resource(self):
        with pytest.raises(CardDataError):
            cards_from_dict({"decks": {"blue": [
                {"name": "Bad", "effects": [{"type": "STEAL", "amount": 2}]},
            ]}})

    def test_unknown_role_key(self):
        with pytest.raises(CardDataError):
            cards_from_dict({"decks": {"end_of_turn": [
                {"name": "Bad", "role_effects": {"WIZARD": [{"type": "SKIP_TURN"}]}},
            ]}})

    def test_unknown_effect_type(self):
        with pytest.raises(CardDataError):
            cards_from_dict({"decks": {"pink": [
                {"name": "Bad", "effects": [{"type": "TELEPORT"}]},
            ]}})
