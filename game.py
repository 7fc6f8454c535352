import sys
from typing import Final, Sequence

from conventions import make_convention
from engine import Engine
from metrics.post_move import PostMoveMetric
from replay import save_log
from state import MAX_PLAYERS, MIN_PLAYERS, hand_size_for
from utils import (
    MAX_HINT_TOKENS,
    MAX_RANK,
    MAX_STRIKES,
    Action,
    Identity,
    Level,
    NullStream,
    format_card,
    format_hand,
)
from variant import Variant, get_variant

NAMES: Final[list[str]] = ["Alice", "Bob", "Cathy", "Donald", "Emily"]


class Game:
    """
    A local self-play table. The game owns the true deck and gives every seat's
    engine the stream of actions that seat would observe.
    """

    def __init__(
        self,
        conventions: Sequence[str],
        log=sys.stdout,
        variant: Variant | None = None,
        deck: Sequence[Identity] | None = None,
        level: Level | None = None,
        metrics: Sequence[PostMoveMetric] = (),
    ):
        if not (MIN_PLAYERS <= len(conventions) <= MAX_PLAYERS):
            raise RuntimeError(
                f"Number of players must be between {MIN_PLAYERS} and {MAX_PLAYERS}"
            )
        self.log = log
        self.variant: Variant = variant if variant is not None else get_variant()
        self.names: list[str] = NAMES[: len(conventions)]
        self.engines: list[Engine] = [
            Engine(self.names, i, self.variant, make_convention(c, level), log=NullStream())
            for i, c in enumerate(conventions)
        ]
        self.metrics: list[PostMoveMetric] = list(metrics)

        self.deck: list[Identity] = list(deck) if deck is not None else self.variant.make_deck()
        self.next_order = 0
        self.hands: list[list[int]] = [[] for _ in conventions]
        self.play_stacks: list[int] = [0] * self.variant.num_suits
        self.discards: list[Identity] = []
        self.hints = MAX_HINT_TOKENS
        self.hits = MAX_STRIKES
        self.current_player = 0
        self.turn = 1
        self.extra_turns = 0
        self.actions: list[Action] = []

        self.make_hands()

    def make_hands(self):
        hand_size = hand_size_for(len(self.engines))
        for i in range(len(self.engines)):
            for _ in range(hand_size):
                self.draw_card(i)

    def draw_card(self, pnr=None):
        if pnr is None:
            pnr = self.current_player
        if self.next_order >= len(self.deck):
            return
        order = self.next_order
        self.next_order += 1
        self.hands[pnr].insert(0, order)
        self.broadcast(
            Action(Action.ActionType.DRAW, player=pnr, order=order, identity=self.deck[order])
        )

    def broadcast(self, action: Action):
        """Record an action and show it to every seat, hiding a seat's own draws."""
        self.actions.append(action)
        for i, engine in enumerate(self.engines):
            seen = Action.from_dict(action.to_dict())
            if seen.action_type == Action.ActionType.DRAW and seen.player == i:
                seen.identity = None
            engine.handle_action(seen)

    def perform(self, action: Action):
        name = self.names[self.current_player]

        if action.action_type == Action.ActionType.CLUE:
            assert action.clue is not None and action.target is not None
            if action.target == self.current_player:
                raise ValueError("Players cannot clue themselves")
            if self.hints <= 0:
                raise RuntimeError("No clue tokens left")
            touched = [
                o
                for o in self.hands[action.target]
                if self.variant.touched(self.deck[o], action.clue)
            ]
            if not touched:
                raise ValueError(f"Clue {action.clue} touches no cards")

            self.hints -= 1
            print(
                name,
                "clues",
                self.names[action.target],
                "about",
                action.clue,
                "hints remaining:",
                self.hints,
                file=self.log,
            )
            print(
                self.names[action.target],
                "has",
                format_hand(self.deck[o] for o in self.hands[action.target]),
                file=self.log,
            )
            self.broadcast(
                Action(
                    Action.ActionType.CLUE,
                    giver=self.current_player,
                    target=action.target,
                    clue=action.clue,
                    touched=touched,
                )
            )

        elif action.action_type in (Action.ActionType.PLAY, Action.ActionType.DISCARD):
            order = action.order
            if order not in self.hands[self.current_player]:
                raise ValueError(f"Card {order} is not in {name}'s hand")
            identity = self.deck[order]

            if action.action_type == Action.ActionType.PLAY:
                print(name, "plays", format_card(identity), file=self.log)
                self.hands[self.current_player].remove(order)
                if self.play_stacks[identity.suit] + 1 == identity.rank:
                    self.play_stacks[identity.suit] = identity.rank
                    if identity.rank == MAX_RANK:
                        self.hints = min(self.hints + 1, MAX_HINT_TOKENS)
                    print("successfully! Board is now", self.play_stacks, file=self.log)
                    self.broadcast(
                        Action(
                            Action.ActionType.PLAY,
                            player=self.current_player,
                            order=order,
                            identity=identity,
                        )
                    )
                else:
                    self.hits -= 1
                    self.discards.append(identity)
                    print("and fails. Board was", self.play_stacks, file=self.log)
                    self.broadcast(
                        Action(
                            Action.ActionType.DISCARD,
                            player=self.current_player,
                            order=order,
                            identity=identity,
                            failed=True,
                        )
                    )
            else:
                if self.hints >= MAX_HINT_TOKENS:
                    raise RuntimeError("Cannot discard with all clue tokens")
                self.hints += 1
                self.hands[self.current_player].remove(order)
                self.discards.append(identity)
                print(name, "discards", format_card(identity), file=self.log)
                print("trash is now", format_hand(self.discards), file=self.log)
                self.broadcast(
                    Action(
                        Action.ActionType.DISCARD,
                        player=self.current_player,
                        order=order,
                        identity=identity,
                    )
                )

            self.draw_card()
            print(
                name,
                "now has",
                format_hand(self.deck[o] for o in self.hands[self.current_player]),
                file=self.log,
            )
        else:
            raise ValueError(f"Cannot perform {action.action_type} in a game")

        for metric in self.metrics:
            metric(action, score=self.score(), lives=self.hits, engine=self.engines[0])

    def _end_turn(self):
        self.current_player = (self.current_player + 1) % len(self.engines)
        self.turn += 1
        self.broadcast(Action(Action.ActionType.TURN, player=self.current_player, turn=self.turn))

    def run(self, turns=-1):
        while not self.done() and (turns < 0 or self.turn < turns):
            self.single_turn()
        print("Game done, hits left:", self.hits, file=self.log)
        points = self.score()
        print("Points:", points, file=self.log)
        return points

    def score(self):
        return sum(self.play_stacks)

    def single_turn(self):
        if self.done():
            return
        if self.next_order >= len(self.deck):
            self.extra_turns += 1
        engine = self.engines[self.current_player]
        self.perform(engine.convention.take_action(engine))
        self._end_turn()

    def external_turn(self, action: Action):
        if self.done():
            return
        if self.next_order >= len(self.deck):
            self.extra_turns += 1
        self.perform(action)
        self._end_turn()

    def done(self):
        if self.extra_turns == len(self.engines) or self.hits == 0:
            return True
        return all(stack == MAX_RANK for stack in self.play_stacks)

    def save_log(self, path):
        save_log(path, self.names, self.actions, self.variant.name)
