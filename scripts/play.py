#!/usr/bin/env python3
"""Interactive CLI for playing Critocracy.

Usage:
    python scripts/play.py                              # You as Historian vs 5 CPUs
    python scripts/play.py --role ARTIST --players 4    # You as Artist vs 3 CPUs
    python scripts/play.py --watch                      # CPU-only game
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from critocracy.game.errors import RuleViolation
from critocracy.game.presenter import Presenter
from critocracy.game.setup import PlayerConfig, fill_with_cpu, load_config, new_game
from critocracy.game.state import ROLE_PROFILES, GamePhase, Resource, Role, TurnState


class ConsolePresenter(Presenter):
    """Prints game messages and asks the human for targets."""

    def log(self, message: str) -> None:
        print(f"  {message}")

    def show_card(self, player, card) -> None:
        print(f"\n  [{card.deck.value}] {card.name}: {card.description}")

    def prompt_trade(self, offer) -> None:
        print(f"\n  Offer for player {offer.target_id}: {offer.describe()}")

    def choose_target(self, player, candidates: list):
        if not candidates:
            return None
        print("  Choose a target:")
        for i, p in enumerate(candidates):
            print(f"    {i+1}. {p.name} ({p.role.value}) {format_resources(p)}")
        idx = ask_number("  > ", len(candidates))
        return candidates[idx].player_id if idx is not None else None


def format_resources(player) -> str:
    r = player.resources
    return (f"money={r[Resource.MONEY]} knowledge={r[Resource.KNOWLEDGE]} "
            f"influence={r[Resource.INFLUENCE]}")


def ask_number(prompt: str, count: int) -> int | None:
    """Read a 1-based choice. Returns a 0-based index or None to quit."""
    while True:
        inp = input(prompt).strip()
        if inp.lower() == "q":
            return None
        try:
            idx = int(inp) - 1
            if 0 <= idx < count:
                return idx
        except ValueError:
            pass
        print(f"  Enter 1-{count}, or 'q' to quit.")


def display_state(machine):
    session = machine.session
    print("\n" + "=" * 60)
    print(f"  Round {session.current_round}  Turn {session.current_turn}")
    print("=" * 60)
    for pid in session.turn_order:
        p = session.players.get(pid)
        marker = ">" if pid == session.current_player_id else " "
        status = " FINISHED" if p.finished else ""
        print(f" {marker} {p.name:<18} {p.role.value:<13} {p.current_path or 'start':<7} "
              f"{format_resources(p)}{status}")


def human_action(machine, player) -> bool:
    """Offer the human the actions their turn state allows. Returns False to quit."""
    session = machine.session
    state = session.turn_state
    pid = player.player_id

    actions = []
    if state == TurnState.AWAITING_START_CHOICE:
        for c in session.current_choices:
            actions.append((f"Start on the {machine.board.names[c.path]}",
                            lambda c=c: machine.choose_start(pid, c)))
    elif state == TurnState.AWAITING_ROLL:
        actions.append(("Roll the die", lambda: machine.roll(pid)))
    elif state == TurnState.AWAITING_CHOICEPOINT:
        for c in session.current_choices:
            actions.append((f"Take the {c.path} branch at {list(c.coords)}",
                            lambda c=c: machine.choose_path(pid, c)))
    elif state == TurnState.AWAITING_PATH_CARD:
        actions.append(("Draw a path card", lambda: machine.draw_path_card(pid)))
    elif state == TurnState.AWAITING_END_OF_TURN_CARD:
        for slot in (1, 2):
            actions.append((f"Draw end-of-turn card {slot}",
                            lambda slot=slot: machine.draw_end_of_turn_card(pid, slot)))
    elif state == TurnState.ACTION_COMPLETE:
        if not (player.has_drawn_end_of_turn_card or player.finished):
            for slot in (1, 2):
                actions.append((f"Draw end-of-turn card {slot}",
                                lambda slot=slot: machine.draw_end_of_turn_card(pid, slot)))
        else:
            actions.append(("End turn", lambda: machine.end_turn(pid)))

    if state in (TurnState.AWAITING_ROLL, TurnState.ACTION_COMPLETE):
        if not player.ability_used:
            ability = ROLE_PROFILES[player.role].ability
            actions.append((f"Use role ability ({ability})", lambda: machine.use_ability(pid)))
        actions.append(("Propose a trade", lambda: propose_trade(machine, player)))
        actions.append(("Offer an alliance", lambda: propose_alliance(machine, player)))

    print(f"\n{player.name}, what will you do?")
    for i, (label, _) in enumerate(actions):
        print(f"  {i+1}. {label}")
    idx = ask_number("> ", len(actions))
    if idx is None:
        return False
    try:
        response = actions[idx][1]()
    except RuleViolation as e:
        print(f"  Not allowed: {e}")
        return True
    if response is None:
        return True
    if "roll" in response:
        print(f"  You rolled {response['roll']}, stopped: {response['move']['reason']}")
    if "trade" in response:
        print(f"  Offer {response['trade']['status']}: {response['trade']['message']}")
    return True


def pick_resource(prompt: str) -> Resource | None:
    resources = list(Resource)
    print(prompt)
    for i, r in enumerate(resources):
        print(f"    {i+1}. {r.value}")
    idx = ask_number("  > ", len(resources))
    return resources[idx] if idx is not None else None


def pick_amount(prompt: str) -> int | None:
    idx = ask_number(prompt, 20)
    return idx + 1 if idx is not None else None


def propose_trade(machine, player):
    target = machine.presenter.choose_target(player, machine.session.players.others(player.player_id))
    if target is None:
        return None
    give = pick_resource("  Resource to give:")
    give_amount = pick_amount("  How many (1-20)? ") if give else None
    if give_amount is None:
        return None
    print("  1. Ask for a resource in return\n  2. Swap (both of you must hold the amount)")
    kind = ask_number("  > ", 2)
    if kind is None:
        return None
    if kind == 1:
        return machine.propose_trade(player.player_id, target, give, give_amount, swap=True)
    receive = pick_resource("  Resource to receive:")
    receive_amount = pick_amount("  How many (1-20)? ") if receive else None
    if receive_amount is None:
        return None
    return machine.propose_trade(player.player_id, target, give, give_amount,
                                 receive, receive_amount)


def propose_alliance(machine, player):
    candidates = [p for p in machine.session.players.others(player.player_id)
                  if not machine.session.is_allied(player.player_id, p.player_id)]
    target = machine.presenter.choose_target(player, candidates)
    if target is None:
        return None
    return machine.propose_alliance(player.player_id, target)


def answer_offer(machine) -> bool:
    offer = machine.session.pending
    print(f"\nPlayer {offer.target_id}, {offer.describe()}")
    print("  1. Accept\n  2. Decline")
    idx = ask_number("> ", 2)
    if idx is None:
        return False
    machine.respond_to_offer(offer.target_id, accepted=(idx == 0))
    return True


def play_game(machine):
    session = machine.session
    while session.phase == GamePhase.PLAYING:
        machine.run_automated()
        if session.phase != GamePhase.PLAYING:
            break
        display_state(machine)
        if session.pending is not None:
            if not answer_offer(machine):
                print("Game aborted.")
                return
            continue
        if not human_action(machine, session.current_player):
            print("Game aborted.")
            return

    display_state(machine)
    print("\nFinal rankings:")
    for place, pid in enumerate(session.rankings, start=1):
        p = session.players.get(pid)
        print(f"  {place}. {p.name} ({p.role.value}) {format_resources(p)}")


def main():
    parser = argparse.ArgumentParser(description="Play Critocracy")
    parser.add_argument("--config", type=str, default="configs/game.yaml")
    parser.add_argument("--name", type=str, default="You")
    parser.add_argument("--role", type=str, default="HISTORIAN",
                        choices=[r.value for r in Role])
    parser.add_argument("--players", type=int, default=None,
                        help="Total players including CPUs (2-6)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--watch", action="store_true", help="CPU-only game")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = load_config(args.config if os.path.exists(args.config) else None)
    if args.players is not None:
        config.total_players = args.players
    if args.seed is not None:
        config.seed = args.seed

    humans = [] if args.watch else [PlayerConfig(args.name, Role(args.role), is_human=True)]
    players = fill_with_cpu(humans, config.total_players)

    print("=" * 60)
    print("  Critocracy")
    print("=" * 60)
    machine = new_game(players, config, presenter=ConsolePresenter())
    play_game(machine)


if __name__ == "__main__":
    main()
