from typing import Final, Sequence

import numpy

from utils import MAX_HINT_TOKENS, MAX_RANK, Action, Identity
from variant import Variant

MAX_PLAYERS: Final[int] = 5
MIN_PLAYERS: Final[int] = 2


def hand_size_for(num_players: int) -> int:
    return 4 if num_players >= 4 else 5


class State:
    """
    The public game state as seen from one seat.

    Hands hold card orders with the newest card first, so slot 1 is index 0.
    `deck` maps an order to its identity when this seat can see the card.
    """

    def __init__(self, player_names: Sequence[str], our_player_index: int, variant: Variant):
        if not (MIN_PLAYERS <= len(player_names) <= MAX_PLAYERS):
            raise RuntimeError(
                f"Number of players must be between {MIN_PLAYERS} and {MAX_PLAYERS}"
            )
        self.player_names: list[str] = list(player_names)
        self.num_players: int = len(player_names)
        self.our_player_index: int = our_player_index
        self.variant: Variant = variant
        self.hand_size: int = hand_size_for(self.num_players)

        self.hands: list[list[int]] = [[] for _ in range(self.num_players)]
        self.deck: list[Identity | None] = []
        self.play_stacks: list[int] = [0] * variant.num_suits
        self.discard_stacks = numpy.zeros((variant.num_suits, MAX_RANK), dtype=int)
        self.max_ranks: list[int] = [MAX_RANK] * variant.num_suits
        self.clue_tokens: int = MAX_HINT_TOKENS
        self.strikes: int = 0
        self.turn_count: int = 1
        self.current_player_index: int = 0
        self.action_list: list[Action] = []
        self.cards_left: int = variant.total_cards

    @property
    def score(self) -> int:
        return sum(self.play_stacks)

    @property
    def max_score(self) -> int:
        return sum(self.max_ranks)

    def card_count(self, identity: Identity) -> int:
        return self.variant.card_count(identity)

    def base_count(self, identity: Identity) -> int:
        """
        Copies of an identity already out of play (on the stacks or in the discard pile).
        """
        played = 1 if self.play_stacks[identity.suit] >= identity.rank else 0
        return played + int(self.discard_stacks[identity.suit, identity.rank - 1])

    def is_basic_trash(self, identity: Identity) -> bool:
        return (
            identity.rank <= self.play_stacks[identity.suit]
            or identity.rank > self.max_ranks[identity.suit]
        )

    def is_playable(self, identity: Identity) -> bool:
        return identity.rank == self.play_stacks[identity.suit] + 1

    def is_critical(self, identity: Identity) -> bool:
        if self.is_basic_trash(identity):
            return False
        discarded = int(self.discard_stacks[identity.suit, identity.rank - 1])
        return discarded == self.card_count(identity) - 1

    def next_player_index(self, player_index: int) -> int:
        return (player_index + 1) % self.num_players

    def in_between(self, start: int, target: int) -> list[int]:
        """
        Seats strictly after `start` and before `target` in turn order.
        """
        seats = []
        i = self.next_player_index(start)
        while i != target and i != start:
            seats.append(i)
            i = self.next_player_index(i)
        return seats

    def hand_of(self, order: int) -> int | None:
        for i, hand in enumerate(self.hands):
            if order in hand:
                return i
        return None

    def visible(self, order: int) -> Identity | None:
        if order < len(self.deck):
            return self.deck[order]
        return None

    def set_identity(self, order: int, identity: Identity | None) -> None:
        while len(self.deck) <= order:
            self.deck.append(None)
        if identity is not None:
            self.deck[order] = identity

    def visible_copies(self, identity: Identity, exclude: int | None = None) -> list[int]:
        return [
            order
            for hand in self.hands
            for order in hand
            if order != exclude and self.visible(order) == identity
        ]
