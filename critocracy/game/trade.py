"""Trades, swaps and alliances between players."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from critocracy.game.errors import TradeError
from critocracy.game.presenter import Presenter
from critocracy.game.state import Alliance, GameSession, Player, Resource

logger = logging.getLogger("critocracy.trade")

ALLIANCE_IMMUNITY_TURNS = 1


class OfferKind(str, Enum):
    TRADE = "trade"
    SWAP = "swap"
    ALLIANCE = "alliance"


class TradeStatus(str, Enum):
    COMPLETED = "completed"
    DECLINED = "declined"
    CANCELLED = "accepted_but_cancelled"
    PENDING = "pending"


@dataclass(frozen=True)
class ResourceAmount:
    resource: Resource
    amount: int


@dataclass
class TradeOffer:
    """An offer from `source_id` to `target_id`.

    TRADE: source gives `give`, target gives `receive`.
    SWAP: `give` moves from source to target; both sides must hold it.
    ALLIANCE: a pact lasting `duration` rounds.
    """
    source_id: int
    target_id: int
    kind: OfferKind
    give: Optional[ResourceAmount] = None
    receive: Optional[ResourceAmount] = None
    duration: int = 1

    def describe(self) -> str:
        if self.kind == OfferKind.ALLIANCE:
            return (f"player {self.source_id} proposes an alliance to player "
                    f"{self.target_id} for {self.duration} round(s)")
        if self.kind == OfferKind.SWAP:
            return (f"player {self.source_id} proposes swapping {self.give.amount} "
                    f"{self.give.resource.value} with player {self.target_id}")
        return (f"player {self.source_id} offers {self.give.amount} "
                f"{self.give.resource.value} to player {self.target_id} for "
                f"{self.receive.amount} {self.receive.resource.value}")


@dataclass
class TradeResult:
    offer: TradeOffer
    status: TradeStatus
    message: str = ""

    def to_dict(self) -> dict:
        return {"offer": self.offer.describe(), "status": self.status.value,
                "message": self.message}


class TradeSystem:
    """Validates, routes and executes offers for one session.

    An offer to a human target parks on `session.pending` until the target
    responds. Automated targets answer immediately: they always accept a
    human's offer, and accept another automated player's offer only if they
    can pay their side.
    """

    def __init__(self, session: GameSession, presenter: Optional[Presenter] = None):
        self.session = session
        self.presenter = presenter or Presenter()

    # -- construction --------------------------------------------------------

    @staticmethod
    def trade(source_id: int, target_id: int, give: ResourceAmount,
              receive: ResourceAmount) -> TradeOffer:
        return TradeOffer(source_id, target_id, OfferKind.TRADE, give=give, receive=receive)

    @staticmethod
    def swap(source_id: int, target_id: int, resource: Resource, amount: int) -> TradeOffer:
        return TradeOffer(source_id, target_id, OfferKind.SWAP,
                          give=ResourceAmount(Resource(resource), amount))

    @staticmethod
    def alliance(source_id: int, target_id: int, duration: int = 1) -> TradeOffer:
        return TradeOffer(source_id, target_id, OfferKind.ALLIANCE, duration=duration)

    # -- validation ----------------------------------------------------------

    def validate(self, offer: TradeOffer) -> tuple[Player, Player]:
        """Check an offer before anyone is asked.

        Raises:
            TradeError: if a party is unknown or blocked, an amount is not
                positive, or the source (and for swaps, the target) cannot pay.
        """
        source = self.session.players.get(offer.source_id)
        target = self.session.players.get(offer.target_id)
        if source is None or target is None:
            raise TradeError(f"Unknown player in offer: {offer.describe()}")
        if source.player_id == target.player_id:
            raise TradeError("A player cannot trade with themselves")

        if offer.kind == OfferKind.ALLIANCE:
            if self.session.is_allied(source.player_id, target.player_id):
                raise TradeError(f"{source.name} and {target.name} are already allied")
            if offer.duration < 1:
                raise TradeError("An alliance must last at least one round")
            return source, target

        for p in (source, target):
            if p.is_trade_blocked:
                raise TradeError(f"{p.name} is blocked from trading for "
                                 f"{p.trade_blocked_turns} more round(s)")
        if offer.give is None or offer.give.amount <= 0:
            raise TradeError("Offered amount must be positive")
        if not source.can_afford(offer.give.resource, offer.give.amount):
            raise TradeError(f"{source.name} cannot afford {offer.give.amount} "
                             f"{offer.give.resource.value}")
        if offer.kind == OfferKind.SWAP:
            if not target.can_afford(offer.give.resource, offer.give.amount):
                raise TradeError(f"{target.name} cannot afford to swap "
                                 f"{offer.give.amount} {offer.give.resource.value}")
        elif offer.receive is None or offer.receive.amount <= 0:
            raise TradeError("Requested amount must be positive")
        return source, target

    def target_can_pay(self, offer: TradeOffer) -> bool:
        target = self.session.players.get(offer.target_id)
        if offer.kind == OfferKind.ALLIANCE:
            return True
        side = offer.give if offer.kind == OfferKind.SWAP else offer.receive
        return target.can_afford(side.resource, side.amount)

    # -- protocol ------------------------------------------------------------

    def propose(self, offer: TradeOffer) -> TradeResult:
        """Validate and route an offer. Human targets get a pending decision.

        Raises:
            TradeError: if the offer is invalid or another offer still awaits
                a response.
        """
        if self.session.pending is not None:
            raise TradeError(f"An offer is already awaiting player "
                             f"{self.session.pending.target_id}")
        source, target = self.validate(offer)
        logger.info(f"Offer: {offer.describe()}")

        if target.is_human:
            self.session.pending = offer
            self.presenter.prompt_trade(offer)
            return TradeResult(offer, TradeStatus.PENDING,
                               f"Waiting for {target.name} to respond")

        # Automated targets always take a human's offer
        accepted = source.is_human or self.target_can_pay(offer)
        return self.respond(offer, accepted)

    def respond(self, offer: TradeOffer, accepted: bool) -> TradeResult:
        if self.session.pending is offer:
            self.session.pending = None
        source = self.session.players.get(offer.source_id)
        target = self.session.players.get(offer.target_id)
        if source.is_human and not target.is_human:
            accepted = True

        if not accepted:
            message = f"{target.name} declined: {offer.describe()}"
            logger.info(message)
            self.presenter.log(message)
            return TradeResult(offer, TradeStatus.DECLINED, message)

        if offer.kind == OfferKind.ALLIANCE:
            self.form_alliance(source, target, offer.duration)
            message = f"{source.name} and {target.name} formed an alliance"
            self.presenter.log(message)
            return TradeResult(offer, TradeStatus.COMPLETED, message)

        if not self.execute(offer):
            message = f"{target.name} accepted but cancelled: {offer.describe()}"
            logger.info(message)
            self.presenter.log(message)
            return TradeResult(offer, TradeStatus.CANCELLED, message)

        message = f"Trade completed: {offer.describe()}"
        self.presenter.log(message)
        self.presenter.refresh(self.session.players)
        return TradeResult(offer, TradeStatus.COMPLETED, message)

    def execute(self, offer: TradeOffer) -> bool:
        """Apply every resource delta of an offer, or none of them.

        A swap moves the amount from source to target and needs both sides
        to hold it. A trade moves `give` one way and `receive` the other.
        """
        source = self.session.players.get(offer.source_id)
        target = self.session.players.get(offer.target_id)
        give = offer.give
        if offer.kind == OfferKind.SWAP:
            deltas = [
                (source, give.resource, -give.amount),
                (target, give.resource, give.amount),
            ]
            if not target.can_afford(give.resource, give.amount):
                return False
        else:
            receive = offer.receive
            deltas = [
                (source, give.resource, -give.amount),
                (target, give.resource, give.amount),
                (target, receive.resource, -receive.amount),
                (source, receive.resource, receive.amount),
            ]

        # Net out per player and resource before touching anything
        net: dict[tuple[int, Resource], int] = {}
        for player, resource, delta in deltas:
            key = (player.player_id, resource)
            net[key] = net.get(key, 0) + delta
        players = {source.player_id: source, target.player_id: target}
        for (pid, resource), delta in net.items():
            if players[pid].get(resource) + delta < 0:
                return False

        for player, resource, delta in deltas:
            player.resources[resource] = player.get(resource) + delta
        return True

    # -- alliances -----------------------------------------------------------

    def form_alliance(self, a: Player, b: Player, duration: int = 1) -> Alliance:
        alliance = Alliance(frozenset((a.player_id, b.player_id)),
                            formed_in_round=self.session.current_round,
                            duration=duration)
        self.session.alliances.append(alliance)
        for p in (a, b):
            p.immunity_turns = max(p.immunity_turns, ALLIANCE_IMMUNITY_TURNS)
        logger.info(f"Alliance formed between {a.name} and {b.name} "
                    f"in round {self.session.current_round}")
        return alliance

    def expire_alliances(self) -> list[Alliance]:
        current = self.session.current_round
        expired = [a for a in self.session.alliances if a.expired(current)]
        if expired:
            self.session.alliances = [a for a in self.session.alliances
                                      if not a.expired(current)]
            for a in expired:
                logger.info(f"Alliance {sorted(a.members)} dissolved in round {current}")
        return expired
