"""Turn lifecycle: who acts, what they may do, and what happens next.

Every public action checks the actor and the turn state before touching
anything and raises a RuleViolation if either is wrong. Once an action is
accepted, any unexpected failure ends the current turn and passes play on,
so a bad board space or card can never wedge the game.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from critocracy.engine.agents import Agent, HeuristicAgent
from critocracy.game.board import DEFAULT_TOLERANCE, PathOption, as_coord, distance
from critocracy.game.cards import END_OF_TURN_SLOTS, DeckType
from critocracy.game.effects import EffectResolver
from critocracy.game.errors import (
    AbilityError,
    BoardDataError,
    GameNotInProgressError,
    InvalidChoiceError,
    NotYourTurnError,
    PendingDecisionError,
    RuleViolation,
    TurnStateError,
)
from critocracy.game.movement import (
    DECISION_REASONS,
    DRAW_REASONS,
    MovementResolver,
    StopReason,
)
from critocracy.game.presenter import Presenter
from critocracy.game.state import GamePhase, GameSession, Player, Resource, TurnState
from critocracy.game.trade import ResourceAmount, TradeSystem

logger = logging.getLogger("critocracy.turns")

Choice = Union[PathOption, str, tuple, list]

# States in which a player may use an ability or make an offer
FREE_ACTION_STATES = [TurnState.AWAITING_ROLL, TurnState.ACTION_COMPLETE]


class TurnStateMachine:
    """Drives one GameSession from its first turn to its rankings."""

    def __init__(self, session: GameSession, presenter: Optional[Presenter] = None,
                 agent: Optional[Agent] = None):
        self.session = session
        self.board = session.board
        self.presenter = presenter or Presenter()
        self.movement = MovementResolver(session.board, self.presenter)
        self.trades = TradeSystem(session, self.presenter)
        self.effects = EffectResolver(session, self.movement, self.trades, self.presenter)
        self.agent = agent or HeuristicAgent(session.rng)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> dict:
        """Enter the PLAYING phase and prepare the first player's turn."""
        session = self.session
        if session.phase != GamePhase.SETUP:
            raise GameNotInProgressError(f"Game already {session.phase.value}")
        if not session.turn_order:
            raise ValueError("Cannot start a game with no players")
        session.phase = GamePhase.PLAYING
        session.current_index = 0
        session.current_player_id = session.turn_order[0]
        session.current_round = 1
        session.current_turn = 1
        order = ", ".join(self._name(pid) for pid in session.turn_order)
        logger.info(f"Game started. Turn order: {order}")
        self.presenter.log(f"Turn order: {order}")
        self._prepare_turn()
        return self._state_response()

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def choose_start(self, player_id: int, choice: Choice) -> dict:
        """Place a token at START onto the first space of the chosen path."""
        player = self._check_actor(player_id, [TurnState.AWAITING_START_CHOICE])
        option = self._match_option(choice, self.session.current_choices)
        return self._guarded(self._do_choose_start, player, option)

    def roll(self, player_id: int) -> dict:
        """Roll a die and move up to that many spaces."""
        player = self._check_actor(player_id, [TurnState.AWAITING_ROLL])
        return self._guarded(self._do_roll, player)

    def choose_path(self, player_id: int, choice: Choice) -> dict:
        """Take one of the branches offered at a choicepoint or junction."""
        player = self._check_actor(player_id, [TurnState.AWAITING_CHOICEPOINT])
        option = self._match_option(choice, self.session.current_choices)
        return self._guarded(self._do_choose_path, player, option)

    def draw_path_card(self, player_id: int) -> dict:
        """Draw and resolve a card from the deck of the path just landed on."""
        player = self._check_actor(player_id, [TurnState.AWAITING_PATH_CARD])
        return self._guarded(self._do_draw_path_card, player)

    def draw_end_of_turn_card(self, player_id: int, slot: Optional[int] = None) -> dict:
        """Draw from one of the two end-of-turn slots (both share one deck)."""
        player = self._check_actor(player_id, [TurnState.AWAITING_END_OF_TURN_CARD,
                                               TurnState.ACTION_COMPLETE])
        if player.has_drawn_end_of_turn_card:
            raise RuleViolation(f"{player.name} already drew an end-of-turn card this turn")
        if slot is None:
            slot = self.agent.choose_end_of_turn_slot(player)
        if slot not in END_OF_TURN_SLOTS:
            raise InvalidChoiceError(f"End-of-turn slot must be one of {END_OF_TURN_SLOTS}")
        return self._guarded(self._do_draw_end_of_turn_card, player, slot)

    def end_turn(self, player_id: int) -> dict:
        player = self._check_actor(player_id, [TurnState.ACTION_COMPLETE])
        if not (player.has_drawn_end_of_turn_card or player.finished):
            raise RuleViolation(f"{player.name} must draw an end-of-turn card first")
        return self._guarded(self._do_end_turn, player)

    def use_ability(self, player_id: int, target_id: Optional[int] = None) -> dict:
        """Use the player's once-per-game role ability."""
        player = self._check_actor(player_id, FREE_ACTION_STATES)
        if player.ability_used:
            raise AbilityError(f"{player.name} has already used their ability")
        if target_id is not None and (target_id == player_id
                                      or target_id not in self.session.players):
            raise AbilityError(f"Invalid ability target {target_id}")
        return self._guarded(self._do_use_ability, player, target_id)

    def propose_trade(self, player_id: int, target_id: int, give: Resource, give_amount: int,
                      receive: Optional[Resource] = None, receive_amount: int = 0,
                      swap: bool = False) -> dict:
        """Offer a trade, or a swap of `give_amount` of `give`, to another player."""
        self._check_actor(player_id, FREE_ACTION_STATES)
        if swap:
            offer = self.trades.swap(player_id, target_id, give, give_amount)
        else:
            if receive is None:
                raise InvalidChoiceError("A trade must name the resource requested")
            offer = self.trades.trade(player_id, target_id,
                                      ResourceAmount(Resource(give), give_amount),
                                      ResourceAmount(Resource(receive), receive_amount))
        self.trades.validate(offer)
        return self._guarded(self._do_propose, offer)

    def propose_alliance(self, player_id: int, target_id: int) -> dict:
        self._check_actor(player_id, FREE_ACTION_STATES)
        offer = self.trades.alliance(player_id, target_id)
        self.trades.validate(offer)
        return self._guarded(self._do_propose, offer)

    def respond_to_offer(self, player_id: int, accepted: bool) -> dict:
        """Answer the offer waiting on `player_id`."""
        offer = self.session.pending
        if offer is None:
            raise RuleViolation("No offer is awaiting a response")
        if player_id != offer.target_id:
            raise NotYourTurnError(player_id, offer.target_id)
        return self._guarded(self._do_respond, offer, accepted)

    # ------------------------------------------------------------------
    # Automated players
    # ------------------------------------------------------------------

    def step_automated(self) -> Optional[dict]:
        """Take the next action for an automated current player.

        Returns None when nothing can be done without a human: the game is
        over, the current player is human, or a human owes an answer.
        """
        session = self.session
        if session.phase != GamePhase.PLAYING or session.pending is not None:
            return None
        player = session.current_player
        if player is None or player.is_human:
            return None
        pid = player.player_id
        state = session.turn_state

        if state == TurnState.AWAITING_START_CHOICE:
            option = self.agent.choose_start(player, session.current_choices)
            return self.choose_start(pid, option)
        if state == TurnState.AWAITING_ROLL:
            if self.agent.wants_ability(player):
                return self.use_ability(pid)
            return self.roll(pid)
        if state == TurnState.AWAITING_CHOICEPOINT:
            option = self.agent.choose_path(player, session.current_choices, self.board)
            return self.choose_path(pid, option)
        if state == TurnState.AWAITING_PATH_CARD:
            return self.draw_path_card(pid)
        if state == TurnState.AWAITING_END_OF_TURN_CARD:
            return self.draw_end_of_turn_card(pid, self.agent.choose_end_of_turn_slot(player))
        if state == TurnState.ACTION_COMPLETE:
            if not (player.has_drawn_end_of_turn_card or player.finished):
                return self.draw_end_of_turn_card(pid, self.agent.choose_end_of_turn_slot(player))
            return self.end_turn(pid)

        logger.error(f"{player.name} stuck in {state.value}; ending turn")
        self._abandon_turn()
        return self._state_response()

    def run_automated(self, max_actions: int = 10_000) -> list[dict]:
        """Step automated players until a human must act, the game ends, or the cap is hit."""
        responses = []
        for _ in range(max_actions):
            response = self.step_automated()
            if response is None:
                break
            responses.append(response)
        return responses

    # ------------------------------------------------------------------
    # Action bodies
    # ------------------------------------------------------------------

    def _do_choose_start(self, player: Player, option: PathOption) -> dict:
        destination = self._space_at(option.coords)
        origin = player.position
        self.session.current_choices = []
        self.movement.relocate(player, destination)
        self.presenter.log(f"{player.name} sets out on the {self.board.names[option.path]}")
        landing = self.movement.evaluate_landing(origin, destination)
        if landing is None:
            self.session.turn_state = TurnState.AWAITING_ROLL
        else:
            self._apply_stop(player, *landing)
        return self._state_response(extra={"path": option.path})

    def _do_roll(self, player: Player) -> dict:
        value = self.session.roll_die()
        self.session.last_roll = value
        self.session.turn_state = TurnState.MOVING
        self.presenter.log(f"{player.name} rolls a {value}")
        result = self.movement.resolve(player, value)
        logger.debug(f"{player.name} rolled {value}: {result.reason.value} "
                     f"after {result.steps_taken} step(s)")
        self._apply_stop(player, result.reason, result.junction)
        return self._state_response(extra={"roll": value, "move": result.to_dict()})

    def _do_choose_path(self, player: Player, option: PathOption) -> dict:
        destination = self._space_at(option.coords)
        origin = player.position
        self.session.current_choices = []
        self.movement.relocate(player, destination)
        landing = self.movement.evaluate_landing(origin, destination)
        if landing is None:
            self.session.turn_state = TurnState.ACTION_COMPLETE
        else:
            self._apply_stop(player, *landing)
        return self._state_response(extra={"path": option.path})

    def _do_draw_path_card(self, player: Player) -> dict:
        deck = self.session.pending_path_deck or player.current_path
        card = self.session.cards.draw(deck)
        outcomes = []
        if card is None:
            self.presenter.log(f"The {deck} deck is empty; nothing happens")
        else:
            try:
                outcomes = self.effects.apply_card(player, card)
            finally:
                self.session.cards.discard(card)
        self.session.pending_path_deck = None
        if player.finished:
            self.session.turn_state = TurnState.ACTION_COMPLETE
        else:
            self.session.turn_state = TurnState.AWAITING_END_OF_TURN_CARD
        return self._state_response(extra={
            "card": card.name if card else None,
            "effects": [o.to_dict() for o in outcomes],
        })

    def _do_draw_end_of_turn_card(self, player: Player, slot: int) -> dict:
        logger.debug(f"{player.name} draws from end-of-turn slot {slot}")
        card = self.session.cards.draw(DeckType.END_OF_TURN)
        outcomes = []
        if card is None:
            self.presenter.log("No end-of-turn cards left; nothing happens")
        else:
            try:
                outcomes = self.effects.apply_card(player, card)
            finally:
                self.session.cards.discard(card)
        player.has_drawn_end_of_turn_card = True
        self.session.turn_state = TurnState.ACTION_COMPLETE
        return self._state_response(extra={
            "slot": slot,
            "card": card.name if card else None,
            "effects": [o.to_dict() for o in outcomes],
        })

    def _do_end_turn(self, player: Player) -> dict:
        self.session.turn_state = TurnState.TURN_ENDED
        logger.debug(f"{player.name} ends turn {self.session.current_turn}")
        self._advance_turn()
        return self._state_response()

    def _do_use_ability(self, player: Player, target_id: Optional[int]) -> dict:
        player.ability_used = True
        self.presenter.log(f"{player.name} uses their {player.role.value} ability")
        outcomes = self.effects.use_ability(player, target_id)
        return self._state_response(extra={"effects": [o.to_dict() for o in outcomes]})

    def _do_propose(self, offer) -> dict:
        result = self.trades.propose(offer)
        return self._state_response(extra={"trade": result.to_dict()})

    def _do_respond(self, offer, accepted: bool) -> dict:
        result = self.trades.respond(offer, accepted)
        return self._state_response(extra={"trade": result.to_dict()})

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _apply_stop(self, player: Player, reason: StopReason, junction=None) -> None:
        """Map where a move stopped onto the next turn state."""
        session = self.session
        if reason in (StopReason.STEPS_COMPLETE, StopReason.END_OF_PATH):
            session.turn_state = TurnState.ACTION_COMPLETE
        elif reason == StopReason.INTERRUPT_FINISH:
            session.mark_finished(player)
            self.presenter.log(f"{player.name} reaches the finish in place "
                               f"{player.finish_order}")
            session.turn_state = TurnState.ACTION_COMPLETE
        elif reason in DECISION_REASONS:
            space = junction or self.board.find_space(player.position)
            session.current_choices = self.board.next_options(space.coords).options
            self.presenter.highlight([c.coords for c in session.current_choices])
            session.turn_state = TurnState.AWAITING_CHOICEPOINT
        elif reason in DRAW_REASONS:
            player.special_event_count += 1
            landed = self.board.find_space(player.position)
            session.pending_path_deck = landed.path if landed else player.current_path
            self.presenter.log(f"{player.name} landed on a draw space; draw from the "
                               f"{session.pending_path_deck} deck")
            session.turn_state = TurnState.AWAITING_PATH_CARD
        else:
            raise BoardDataError(f"Movement for {player.name} failed: {reason.value}")

    def _prepare_turn(self) -> None:
        """Set up the current player's turn, passing over any skipped turns."""
        session = self.session
        while session.phase == GamePhase.PLAYING:
            player = session.current_player
            if player.skip_turns > 0:
                player.skip_turns -= 1
                self.presenter.log(f"{player.name} skips this turn "
                                   f"({player.skip_turns} more to skip)")
                session.turn_state = TurnState.TURN_ENDED
                if not self._next_player():
                    return
                continue
            self._begin_turn(player)
            return

    def _begin_turn(self, player: Player) -> None:
        session = self.session
        player.has_drawn_end_of_turn_card = False
        session.current_choices = []
        session.pending_path_deck = None
        session.last_roll = None
        if player.position is None or self.board.is_start(player.position):
            if player.position is None:
                player.position = self.board.start.coords
            session.current_choices = self.board.start_options()
            self.presenter.highlight([c.coords for c in session.current_choices])
            session.turn_state = TurnState.AWAITING_START_CHOICE
        else:
            session.turn_state = TurnState.AWAITING_ROLL
        self.presenter.log(f"Round {session.current_round}, turn {session.current_turn}: "
                           f"{player.name} ({player.role.value})")
        self.presenter.refresh(session.players)

    def _advance_turn(self) -> None:
        if self._next_player():
            self._prepare_turn()

    def _next_player(self) -> bool:
        """Move to the next unfinished player. Returns False if the game ended."""
        session = self.session
        session.current_choices = []
        session.pending_path_deck = None
        if session.players.all_finished():
            self._end_game("every player has finished")
            return False

        order = session.turn_order
        idx = session.current_index
        for _ in range(len(order) + 1):
            idx += 1
            if idx >= len(order):
                idx = 0
                self._round_boundary()
                if session.phase != GamePhase.PLAYING:
                    return False
            if not session.players.get(order[idx]).finished:
                break
        session.current_index = idx
        session.current_player_id = order[idx]
        session.current_turn += 1
        return True

    def _round_boundary(self) -> None:
        session = self.session
        session.current_round += 1
        for p in session.players:
            p.immunity_turns = max(0, p.immunity_turns - 1)
            p.trade_blocked_turns = max(0, p.trade_blocked_turns - 1)
        self.trades.expire_alliances()
        logger.info(f"Round {session.current_round} begins")
        if session.max_rounds is not None and session.current_round > session.max_rounds:
            self._end_game(f"round limit of {session.max_rounds} reached")

    def _end_game(self, reason: str) -> None:
        session = self.session
        session.phase = GamePhase.FINISHED
        session.turn_state = TurnState.TURN_ENDED
        session.pending = None
        session.current_choices = []
        session.alliances = []
        session.rankings = session.compute_rankings()
        names = ", ".join(self._name(pid) for pid in session.rankings)
        logger.info(f"Game over ({reason}). Rankings: {names}")
        self.presenter.log(f"Game over: {reason}")
        self.presenter.refresh(session.players)

    def _abandon_turn(self) -> None:
        session = self.session
        session.pending = None
        session.turn_state = TurnState.TURN_ENDED
        if session.phase == GamePhase.PLAYING:
            self._advance_turn()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_actor(self, player_id: int, allowed: list[TurnState]) -> Player:
        session = self.session
        if session.phase != GamePhase.PLAYING:
            raise GameNotInProgressError(f"Game is {session.phase.value}")
        if session.pending is not None:
            raise PendingDecisionError(session.pending)
        if player_id != session.current_player_id:
            raise NotYourTurnError(player_id, session.current_player_id)
        if session.turn_state not in allowed:
            raise TurnStateError(session.turn_state, allowed)
        return session.current_player

    def _guarded(self, action, *args) -> dict:
        try:
            return action(*args)
        except RuleViolation:
            raise
        except Exception as e:
            logger.exception(f"Action failed for player {self.session.current_player_id}; "
                             f"ending the turn")
            self.presenter.log(f"Something went wrong: {e}. The turn ends.")
            self._abandon_turn()
            return self._state_response(extra={"error": str(e), "turn_abandoned": True})

    def _match_option(self, choice: Choice, options: list[PathOption]) -> PathOption:
        if isinstance(choice, PathOption):
            choice = choice.coords
        if isinstance(choice, str):
            color = self.board.path_color_for(choice) or choice
            for option in options:
                if option.path == color:
                    return option
        else:
            coords = as_coord(choice)
            for option in options:
                if distance(option.coords, coords) <= DEFAULT_TOLERANCE:
                    return option
        offered = [list(o.coords) for o in options]
        raise InvalidChoiceError(f"{choice!r} is not one of the offered choices {offered}")

    def _space_at(self, coords):
        space = self.board.find_space(coords)
        if space is None:
            raise BoardDataError(f"No space at {coords}")
        return space

    def _name(self, player_id: int) -> str:
        player = self.session.players.get(player_id)
        return player.name if player else str(player_id)

    def _state_response(self, extra: Optional[dict] = None) -> dict:
        response = self.session.snapshot()
        if extra:
            response.update(extra)
        return response
