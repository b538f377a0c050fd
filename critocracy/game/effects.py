"""Applying card effects and role abilities to players."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from critocracy.game.cards import (
    AllianceProposal,
    Card,
    Effect,
    EffectKind,
    Immunity,
    Movement,
    ResourceChange,
    Sabotage,
    SkipTurn,
    Steal,
    TradeBlocked,
    TradeProposal,
)
from critocracy.game.errors import TradeError
from critocracy.game.movement import MoveResult, MovementResolver, StopReason
from critocracy.game.presenter import Presenter
from critocracy.game.state import GameSession, Player, Resource, Role
from critocracy.game.trade import ResourceAmount, TradeResult, TradeSystem

logger = logging.getLogger("critocracy.effects")

# Once-per-game role abilities, expressed as ordinary effects
ROLE_ABILITIES: dict[Role, list[Effect]] = {
    Role.HISTORIAN: [ResourceChange(knowledge=3)],
    Role.REVOLUTIONARY: [Sabotage(resource=Resource.INFLUENCE, amount=2)],
    Role.COLONIALIST: [Steal(resource=Resource.MONEY, amount=2)],
    Role.ENTREPRENEUR: [ResourceChange(money=3)],
    Role.POLITICIAN: [Immunity(turns=1)],
    Role.ARTIST: [ResourceChange(influence=2, knowledge=1)],
}

TARGETED_KINDS = frozenset({
    EffectKind.STEAL,
    EffectKind.SABOTAGE,
    EffectKind.ALLIANCE_OFFER,
    EffectKind.TRADE_OFFER,
})


@dataclass
class EffectOutcome:
    """What applying one effect actually did."""
    kind: EffectKind
    player_id: int
    applied: bool = True
    blocked: bool = False
    target_id: Optional[int] = None
    changes: dict[str, int] = field(default_factory=dict)
    move: Optional[MoveResult] = None
    trade: Optional[TradeResult] = None
    message: str = ""

    def to_dict(self) -> dict:
        d = {
            "kind": self.kind.value,
            "player": self.player_id,
            "applied": self.applied,
            "blocked": self.blocked,
            "message": self.message,
        }
        if self.target_id is not None:
            d["target"] = self.target_id
        if self.changes:
            d["changes"] = dict(self.changes)
        if self.move is not None:
            d["move"] = self.move.to_dict()
        if self.trade is not None:
            d["trade"] = self.trade.to_dict()
        return d


class EffectResolver:
    """Dispatches each effect kind to its handler."""

    def __init__(self, session: GameSession, movement: MovementResolver,
                 trades: TradeSystem, presenter: Optional[Presenter] = None):
        self.session = session
        self.movement = movement
        self.trades = trades
        self.presenter = presenter or Presenter()

    def apply_card(self, player: Player, card: Card,
                   target_id: Optional[int] = None) -> list[EffectOutcome]:
        self.presenter.show_card(player, card)
        effects = card.effects_for(player.role)
        if not effects:
            logger.info(f"'{card.name}' has no effect for {player.role.value}")
        return [self.apply(player, effect, target_id) for effect in effects]

    def apply(self, player: Player, effect: Effect,
              target_id: Optional[int] = None) -> EffectOutcome:
        kind = effect.kind
        if kind == EffectKind.RESOURCE_CHANGE:
            outcome = self._resource_change(player, effect)
        elif kind == EffectKind.MOVEMENT:
            outcome = self._movement(player, effect)
        elif kind == EffectKind.STEAL:
            outcome = self._steal(player, effect, target_id)
        elif kind == EffectKind.SABOTAGE:
            outcome = self._sabotage(player, effect, target_id)
        elif kind == EffectKind.SKIP_TURN:
            player.skip_turns += effect.turns
            outcome = EffectOutcome(kind, player.player_id,
                                    message=f"{player.name} will skip {effect.turns} turn(s)")
        elif kind == EffectKind.IMMUNITY:
            player.immunity_turns = max(player.immunity_turns, effect.turns)
            outcome = EffectOutcome(kind, player.player_id,
                                    message=f"{player.name} is immune for {effect.turns} round(s)")
        elif kind == EffectKind.TRADE_BLOCKED:
            player.trade_blocked_turns = max(player.trade_blocked_turns, effect.turns)
            outcome = EffectOutcome(kind, player.player_id,
                                    message=f"{player.name} cannot trade for {effect.turns} round(s)")
        elif kind == EffectKind.ALLIANCE_OFFER:
            outcome = self._alliance(player, effect, target_id)
        elif kind == EffectKind.TRADE_OFFER:
            outcome = self._trade(player, effect, target_id)
        else:
            raise ValueError(f"Unhandled effect kind {kind}")

        if outcome.message:
            self.presenter.log(outcome.message)
        self.presenter.refresh(self.session.players)
        return outcome

    def use_ability(self, player: Player, target_id: Optional[int] = None) -> list[EffectOutcome]:
        return [self.apply(player, effect, target_id) for effect in ROLE_ABILITIES[player.role]]

    # -- handlers ------------------------------------------------------------

    def _resource_change(self, player: Player, effect: ResourceChange) -> EffectOutcome:
        changes = {}
        for resource, delta in effect.deltas().items():
            if delta:
                changes[resource.value] = player.adjust(resource, delta)
        summary = ", ".join(f"{v:+d} {k}" for k, v in changes.items()) or "no change"
        return EffectOutcome(effect.kind, player.player_id, changes=changes,
                             message=f"{player.name}: {summary}")

    def _movement(self, player: Player, effect: Movement) -> EffectOutcome:
        outcome = EffectOutcome(effect.kind, player.player_id)
        messages = []
        if effect.move_to_age:
            color = self.session.board.path_color_for(effect.move_to_age)
            destination = self.session.board.nearest_space(player.position, color) if color else None
            if destination is None:
                logger.warning(f"Cannot move {player.name} to unknown age '{effect.move_to_age}'")
                outcome.applied = False
            else:
                self.movement.relocate(player, destination)
                messages.append(f"{player.name} moves to the {self.session.board.names[color]}")
        if effect.spaces:
            result = self.movement.resolve(player, effect.spaces)
            outcome.move = result
            if result.reason == StopReason.INTERRUPT_FINISH:
                self.session.mark_finished(player)
                messages.append(f"{player.name} reaches the finish")
            elif result.is_error:
                logger.error(f"Card movement for {player.name} failed: {result.reason.value}")
                outcome.applied = False
            else:
                messages.append(f"{player.name} moves {result.steps_taken} space(s)")
        if effect.force_path_change:
            player.forced_path_change = True
            messages.append(f"{player.name} must change path at the next junction")
        outcome.message = "; ".join(messages)
        return outcome

    def _steal(self, player: Player, effect: Steal, target_id: Optional[int]) -> EffectOutcome:
        target = self.choose_target(player, effect.resource, target_id)
        if target is None:
            return EffectOutcome(effect.kind, player.player_id, applied=False,
                                 message=f"{player.name} has no one to steal from")
        if target.is_immune:
            return self._blocked(effect, player, target)
        taken = min(effect.amount, target.get(effect.resource))
        target.adjust(effect.resource, -taken)
        player.adjust(effect.resource, taken)
        return EffectOutcome(effect.kind, player.player_id, target_id=target.player_id,
                             changes={effect.resource.value: taken},
                             message=f"{player.name} takes {taken} {effect.resource.value} "
                                     f"from {target.name}")

    def _sabotage(self, player: Player, effect: Sabotage, target_id: Optional[int]) -> EffectOutcome:
        target = self.choose_target(player, effect.resource, target_id)
        if target is None:
            return EffectOutcome(effect.kind, player.player_id, applied=False,
                                 message=f"{player.name} has no one to sabotage")
        if target.is_immune:
            return self._blocked(effect, player, target)
        lost = target.adjust(effect.resource, -effect.amount)
        return EffectOutcome(effect.kind, player.player_id, target_id=target.player_id,
                             changes={effect.resource.value: lost},
                             message=f"{target.name} loses {-lost} {effect.resource.value}")

    def _blocked(self, effect: Effect, player: Player, target: Player) -> EffectOutcome:
        logger.info(f"{effect.kind.value} by {player.name} blocked by {target.name}'s immunity")
        return EffectOutcome(effect.kind, player.player_id, applied=False, blocked=True,
                             target_id=target.player_id,
                             message=f"{target.name} is immune; {effect.kind.value.lower()} blocked")

    def _alliance(self, player: Player, effect: AllianceProposal,
                  target_id: Optional[int]) -> EffectOutcome:
        candidates = [p for p in self.session.players.others(player.player_id)
                      if not self.session.is_allied(player.player_id, p.player_id)]
        target = self._pick(player, candidates, target_id, key=lambda p: p.total_resources)
        if target is None:
            return EffectOutcome(effect.kind, player.player_id, applied=False,
                                 message=f"{player.name} has no one to ally with")
        offer = self.trades.alliance(player.player_id, target.player_id, effect.duration)
        return self._propose(effect, player, offer)

    def _trade(self, player: Player, effect: TradeProposal,
               target_id: Optional[int]) -> EffectOutcome:
        if effect.swap:
            wanted = effect.offer_resource
            amount = effect.offer_amount
        else:
            wanted = effect.request_resource
            amount = effect.request_amount
        candidates = [p for p in self.session.players.others(player.player_id)
                      if not p.is_trade_blocked and p.can_afford(wanted, amount)]
        target = self._pick(player, candidates, target_id, key=lambda p: p.get(wanted))
        if target is None:
            return EffectOutcome(effect.kind, player.player_id, applied=False,
                                 message=f"{player.name} finds no trading partner")
        if effect.swap:
            offer = self.trades.swap(player.player_id, target.player_id,
                                     effect.offer_resource, effect.offer_amount)
        else:
            offer = self.trades.trade(
                player.player_id, target.player_id,
                ResourceAmount(effect.offer_resource, effect.offer_amount),
                ResourceAmount(effect.request_resource, effect.request_amount),
            )
        return self._propose(effect, player, offer)

    def _propose(self, effect: Effect, player: Player, offer) -> EffectOutcome:
        try:
            result = self.trades.propose(offer)
        except TradeError as e:
            return EffectOutcome(effect.kind, player.player_id, applied=False,
                                 target_id=offer.target_id, message=str(e))
        return EffectOutcome(effect.kind, player.player_id, target_id=offer.target_id,
                             trade=result, message=result.message)

    # -- targeting -----------------------------------------------------------

    def choose_target(self, player: Player, resource: Resource,
                      target_id: Optional[int] = None) -> Optional[Player]:
        """Pick the player a STEAL or SABOTAGE hits.

        An explicit `target_id` wins; a human may name one through the
        presenter; otherwise the richest other player in `resource`.
        """
        candidates = self.session.players.others(player.player_id)
        return self._pick(player, candidates, target_id, key=lambda p: p.get(resource))

    def _pick(self, player: Player, candidates: list[Player], target_id: Optional[int],
              key) -> Optional[Player]:
        if not candidates:
            return None
        by_id = {p.player_id: p for p in candidates}
        if target_id is not None and target_id in by_id:
            return by_id[target_id]
        if player.is_human:
            chosen = self.presenter.choose_target(player, candidates)
            if chosen in by_id:
                return by_id[chosen]
        return max(candidates, key=key)
