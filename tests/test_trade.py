"""Tests for trades, swaps and alliances."""

import logging

import pytest

from critocracy.game.errors import TradeError
from critocracy.game.state import Resource
from critocracy.game.trade import OfferKind, ResourceAmount, TradeStatus

from conftest import make_machine

MONEY = Resource.MONEY
KNOWLEDGE = Resource.KNOWLEDGE
INFLUENCE = Resource.INFLUENCE


def _setup(humans=()):
    machine = make_machine(num_players=3, humans=humans)
    return machine.trades, machine.session.players


def _resources(player):
    return dict(player.resources)


class TestValidation:
    def test_source_cannot_afford(self):
        trades, _ = _setup()
        offer = trades.trade(1, 3, ResourceAmount(MONEY, 100), ResourceAmount(KNOWLEDGE, 1))
        with pytest.raises(TradeError, match="cannot afford"):
            trades.propose(offer)

    def test_swap_target_cannot_afford(self):
        trades, players = _setup()
        before = _resources(players.get(2))
        offer = trades.swap(3, 2, MONEY, 10)
        with pytest.raises(TradeError, match="swap"):
            trades.propose(offer)
        assert _resources(players.get(2)) == before

    def test_self_trade(self):
        trades, _ = _setup()
        with pytest.raises(TradeError):
            trades.validate(trades.swap(1, 1, MONEY, 1))

    def test_unknown_player(self):
        trades, _ = _setup()
        with pytest.raises(TradeError):
            trades.validate(trades.swap(1, 9, MONEY, 1))

    def test_non_positive_amounts(self):
        trades, _ = _setup()
        with pytest.raises(TradeError):
            trades.validate(trades.swap(1, 2, MONEY, 0))
        with pytest.raises(TradeError):
            trades.validate(trades.trade(1, 2, ResourceAmount(MONEY, 1),
                                         ResourceAmount(KNOWLEDGE, 0)))

    @pytest.mark.parametrize("blocked_id", [1, 3])
    def test_trade_blocked_party(self, blocked_id):
        trades, players = _setup()
        players.get(blocked_id).trade_blocked_turns = 1
        offer = trades.trade(1, 3, ResourceAmount(MONEY, 1), ResourceAmount(KNOWLEDGE, 1))
        with pytest.raises(TradeError, match="blocked"):
            trades.propose(offer)

    def test_alliance_with_existing_partner(self):
        trades, players = _setup()
        trades.form_alliance(players.get(1), players.get(2))
        with pytest.raises(TradeError, match="already allied"):
            trades.propose(trades.alliance(2, 1))


class TestAutomatedTargets:
    def test_trade_between_cpus(self):
        trades, players = _setup()
        p1, p3 = players.get(1), players.get(3)
        result = trades.propose(trades.trade(1, 3, ResourceAmount(MONEY, 2),
                                             ResourceAmount(KNOWLEDGE, 3)))
        assert result.status == TradeStatus.COMPLETED
        assert p1.get(MONEY) == 6 and p1.get(KNOWLEDGE) == 17
        assert p3.get(MONEY) == 16 and p3.get(KNOWLEDGE) == 5

    def test_cpu_declines_what_it_cannot_pay(self):
        trades, players = _setup()
        before = [_resources(p) for p in players]
        result = trades.propose(trades.trade(1, 3, ResourceAmount(MONEY, 1),
                                             ResourceAmount(INFLUENCE, 20)))
        assert result.status == TradeStatus.DECLINED
        assert [_resources(p) for p in players] == before

    def test_swap_between_cpus(self):
        trades, players = _setup()
        result = trades.propose(trades.swap(3, 1, MONEY, 4))
        assert result.status == TradeStatus.COMPLETED
        assert players.get(3).get(MONEY) == 10
        assert players.get(1).get(MONEY) == 12

    def test_cpu_accepts_human_swap_it_cannot_cover(self, caplog):
        # propose() would reject this swap up front; respond() meets it only when
        # the target's resources drop between validation and the answer
        trades, players = _setup(humans=(1,))
        before = [_resources(p) for p in players]
        offer = trades.swap(1, 2, MONEY, 7)
        with caplog.at_level(logging.INFO, logger="critocracy.trade"):
            result = trades.respond(offer, False)
        assert result.status == TradeStatus.CANCELLED
        assert "accepted but cancelled" in caplog.text
        assert [_resources(p) for p in players] == before

    def test_cpu_always_accepts_human_trade(self):
        trades, players = _setup(humans=(1,))
        result = trades.propose(trades.trade(1, 2, ResourceAmount(MONEY, 1),
                                             ResourceAmount(INFLUENCE, 1)))
        assert result.status == TradeStatus.COMPLETED
        assert players.get(2).get(INFLUENCE) == 13


class TestHumanTargets:
    def test_offer_waits_for_response(self):
        trades, players = _setup(humans=(2,))
        session = trades.session
        offer = trades.trade(1, 2, ResourceAmount(MONEY, 2), ResourceAmount(INFLUENCE, 3))
        result = trades.propose(offer)
        assert result.status == TradeStatus.PENDING
        assert session.pending is offer
        assert players.get(2).get(MONEY) == 6

        result = trades.respond(offer, True)
        assert result.status == TradeStatus.COMPLETED
        assert session.pending is None
        assert players.get(2).get(MONEY) == 8
        assert players.get(2).get(INFLUENCE) == 11
        assert players.get(1).get(INFLUENCE) == 11

    def test_one_pending_offer_at_a_time(self):
        trades, players = _setup(humans=(2, 3))
        first = trades.trade(1, 2, ResourceAmount(MONEY, 1), ResourceAmount(KNOWLEDGE, 1))
        trades.propose(first)
        with pytest.raises(TradeError, match="already awaiting"):
            trades.propose(trades.alliance(1, 3))
        assert trades.session.pending is first
        assert trades.respond(first, True).status == TradeStatus.COMPLETED
        assert trades.propose(trades.alliance(1, 3)).status == TradeStatus.PENDING

    def test_decline(self):
        trades, players = _setup(humans=(2,))
        before = [_resources(p) for p in players]
        offer = trades.trade(1, 2, ResourceAmount(MONEY, 2), ResourceAmount(INFLUENCE, 3))
        trades.propose(offer)
        result = trades.respond(offer, False)
        assert result.status == TradeStatus.DECLINED
        assert trades.session.pending is None
        assert [_resources(p) for p in players] == before

    def test_alliance_offer_to_human(self):
        trades, players = _setup(humans=(3,))
        offer = trades.alliance(1, 3, duration=2)
        assert trades.propose(offer).status == TradeStatus.PENDING
        result = trades.respond(offer, True)
        assert result.status == TradeStatus.COMPLETED
        assert trades.session.is_allied(1, 3)
        assert offer.kind == OfferKind.ALLIANCE


class TestExecution:
    def test_execute_is_all_or_nothing(self):
        trades, players = _setup()
        offer = trades.trade(1, 3, ResourceAmount(MONEY, 2), ResourceAmount(KNOWLEDGE, 5))
        players.get(3).resources[KNOWLEDGE] = 1
        before = [_resources(p) for p in players]
        assert not trades.execute(offer)
        assert [_resources(p) for p in players] == before

    def test_same_resource_both_ways(self):
        trades, players = _setup()
        offer = trades.trade(1, 3, ResourceAmount(MONEY, 3), ResourceAmount(MONEY, 1))
        assert trades.execute(offer)
        assert players.get(1).get(MONEY) == 6
        assert players.get(3).get(MONEY) == 16

    def test_totals_are_conserved(self):
        trades, players = _setup()
        total = sum(p.total_resources for p in players)
        trades.propose(trades.trade(2, 3, ResourceAmount(INFLUENCE, 4),
                                    ResourceAmount(MONEY, 5)))
        trades.propose(trades.swap(3, 1, MONEY, 2))
        assert sum(p.total_resources for p in players) == total


class TestAlliances:
    def test_alliance_grants_immunity(self):
        trades, players = _setup()
        result = trades.propose(trades.alliance(1, 2))
        assert result.status == TradeStatus.COMPLETED
        assert players.get(1).immunity_turns == 1
        assert players.get(2).immunity_turns == 1
        assert not players.get(3).is_immune

    def test_alliance_expires(self):
        trades, players = _setup()
        trades.form_alliance(players.get(1), players.get(2), duration=2)
        session = trades.session
        session.current_round = 2
        assert trades.expire_alliances() == []
        session.current_round = 3
        expired = trades.expire_alliances()
        assert [sorted(a.members) for a in expired] == [[1, 2]]
        assert not session.is_allied(1, 2)
