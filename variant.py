import random
from typing import Final, Sequence

import numpy

from utils import COUNTS, MAX_RANK, Clue, ClueType, Color, Identity


class Variant:
    """
    The suits in play and how many copies of each identity the deck holds.

    Copy counts are kept as a (suits x ranks) integer matrix so that whole-deck
    bookkeeping (totals, remaining copies) can be done with array arithmetic.
    """

    def __init__(self, name: str, suits: Sequence[Color]):
        self.name: str = name
        self.suits: list[Color] = list(suits)
        self.counts = numpy.tile(numpy.array(COUNTS, dtype=int), (len(self.suits), 1))

    @property
    def num_suits(self) -> int:
        return len(self.suits)

    @property
    def total_cards(self) -> int:
        return int(self.counts.sum())

    def card_count(self, identity: Identity) -> int:
        return int(self.counts[identity.suit, identity.rank - 1])

    def all_identities(self) -> list[Identity]:
        return [
            Identity(suit, rank)
            for suit in range(self.num_suits)
            for rank in range(1, MAX_RANK + 1)
        ]

    def touched(self, identity: Identity, clue: Clue) -> bool:
        if clue.type == ClueType.COLOUR:
            return identity.suit == clue.value
        return identity.rank == clue.value

    def find_possibilities(self, clue: Clue) -> list[Identity]:
        return [i for i in self.all_identities() if self.touched(i, clue)]

    def all_clues(self) -> list[Clue]:
        return [Clue(ClueType.COLOUR, suit) for suit in range(self.num_suits)] + [
            Clue(ClueType.RANK, rank) for rank in range(1, MAX_RANK + 1)
        ]

    def make_deck(self) -> list[Identity]:
        deck = []
        for identity in self.all_identities():
            for _ in range(self.card_count(identity)):
                deck.append(identity)
        random.shuffle(deck)
        return deck


VARIANTS: Final[dict[str, list[Color]]] = {
    "No Variant": [Color.RED, Color.YELLOW, Color.GREEN, Color.BLUE, Color.PURPLE],
    "6 Suits": list(Color),
}


def get_variant(name: str = "No Variant") -> Variant:
    if name not in VARIANTS:
        raise ValueError(f"Unknown variant: {name}")
    return Variant(name, VARIANTS[name])
