from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Iterable

from card import Card
from identity_set import IdentitySet
from players.elim import (
    Link,
    card_elim,
    find_links,
    good_touch_elim,
    refresh_links,
    reset_card,
    restore_elim,
)
from utils import Identity

if TYPE_CHECKING:
    from connection import WaitingConnection
    from state import State


@dataclass(frozen=True)
class Viewer:
    """Whose eyes a Player looks through: one seat, or common knowledge when seat is None."""

    seat: int | None = None

    @property
    def is_common(self) -> bool:
        return self.seat is None

    def __str__(self) -> str:
        return "common" if self.seat is None else f"seat {self.seat}"


COMMON: Final[Viewer] = Viewer()


class Player:
    """
    A belief state over every card in play, as held by one viewer.
    """

    def __init__(self, viewer: Viewer, num_suits: int):
        self.viewer: Viewer = viewer
        self.num_suits: int = num_suits
        self.thoughts: dict[int, Card] = {}
        self.links: list[Link] = []
        self.hypo_stacks: list[int] = [0] * num_suits
        self.unknown_plays: set[int] = set()
        self.all_possible: IdentitySet = IdentitySet.create(num_suits)
        self.all_inferred: IdentitySet = IdentitySet.create(num_suits)
        self.elims: dict[Identity, list[int]] = {}
        self.waiting_connections: list["WaitingConnection"] = []

    def __repr__(self) -> str:
        return f"Player({self.viewer})"

    @property
    def seat(self) -> int | None:
        return self.viewer.seat

    def add_card(self, order: int, actual: Identity | None, drawn_index: int) -> Card:
        card = Card(order, actual, self.all_possible, self.all_inferred, drawn_index)
        self.thoughts[order] = card
        return card

    # queries used by the conventions

    def is_trash(self, state: "State", order: int) -> bool:
        card = self.thoughts[order]
        if card.possible and all(state.is_basic_trash(i) for i in card.possible):
            return True
        if card.inferred and all(state.is_basic_trash(i) for i in card.inferred):
            return True

        identity = card.identity(infer=True)
        if identity is None:
            return False
        # a touched duplicate elsewhere makes this copy unnecessary
        for hand in state.hands:
            for other in hand:
                if other == order:
                    continue
                other_card = self.thoughts[other]
                if other_card.touched and other_card.matches(identity, infer=True):
                    return True
        return False

    def is_playable(self, state: "State", order: int) -> bool:
        card = self.thoughts[order]
        if card.possible and all(state.is_playable(i) for i in card.possible):
            return True
        return (
            card.touched
            and bool(card.inferred)
            and all(state.is_playable(i) for i in card.inferred)
            and not self._linked_unpromised(order)
        )

    def _linked_unpromised(self, order: int) -> bool:
        return any(
            order in link.orders and not link.promised and len(link.orders) > len(link.identities)
            for link in self.links
        )

    def thinks_playables(self, state: "State", player_index: int) -> list[int]:
        return [o for o in state.hands[player_index] if self.is_playable(state, o)]

    def thinks_trash(self, state: "State", player_index: int) -> list[int]:
        return [
            o
            for o in state.hands[player_index]
            if self.is_trash(state, o) and not self.is_playable(state, o)
        ]

    def thinks_loaded(self, state: "State", player_index: int) -> bool:
        return bool(self.thinks_playables(state, player_index)) or bool(
            self.thinks_trash(state, player_index)
        )

    def thinks_locked(self, state: "State", player_index: int) -> bool:
        return (
            not self.thinks_loaded(state, player_index)
            and state.clue_tokens == 0
            and all(self.thoughts[o].saved for o in state.hands[player_index])
        )

    def find_prompt(
        self,
        state: "State",
        player_index: int,
        identity: Identity,
        connected: Iterable[int] = (),
        ignore_orders: Iterable[int] = (),
    ) -> int | None:
        """
        The card a prompt on `identity` points at: the leftmost clued card that
        could be the identity, skipping cards already used by the chain. None if
        that card is one a rewind told us was not played.
        """
        skip = set(connected)
        for order in state.hands[player_index]:
            card = self.thoughts[order]
            if not card.clued or card.newly_clued or order in skip:
                continue
            known = card.identity(infer=True)
            if known is not None and known != identity:
                continue
            if identity not in card.possible:
                continue
            if not any(state.variant.touched(identity, c.clue) for c in card.clues):
                continue
            return None if order in ignore_orders else order
        return None

    def find_finesse(
        self,
        state: "State",
        player_index: int,
        connected: Iterable[int] = (),
        ignore_orders: Iterable[int] = (),
    ) -> int | None:
        skip = set(connected)
        for order in state.hands[player_index]:
            card = self.thoughts[order]
            if not card.clued and not card.finessed and order not in skip:
                return None if order in ignore_orders else order
        return None

    def update_hypo_stacks(self, state: "State") -> None:
        """
        Play out every card this viewer expects to be played, in order, to see
        how far each stack will get.
        """
        hypo_stacks = list(state.play_stacks)
        unknown_plays: set[int] = set()
        played: set[int] = set()

        found_new = True
        while found_new:
            found_new = False
            for hand in state.hands:
                for order in hand:
                    if order in played:
                        continue
                    card = self.thoughts[order]
                    if not card.touched:
                        continue
                    ids = card.inferred if card.inferred else card.possible
                    if not ids or any(hypo_stacks[i.suit] + 1 != i.rank for i in ids):
                        continue

                    played.add(order)
                    found_new = True
                    identity = card.identity(infer=True, symmetric=self.viewer.is_common)
                    if identity is None:
                        unknown_plays.add(order)
                        continue
                    hypo_stacks[identity.suit] = identity.rank

        self.hypo_stacks = hypo_stacks
        self.unknown_plays = unknown_plays

    # elimination

    def card_elim(self, state: "State") -> None:
        card_elim(self, state)

    def good_touch_elim(self, state: "State", only_self: bool = False) -> set[int]:
        return good_touch_elim(self, state, only_self)

    def reset_card(self, order: int) -> None:
        reset_card(self, order)

    def find_links(self, state: "State") -> None:
        find_links(self, state)

    def refresh_links(self, state: "State") -> None:
        refresh_links(self, state)

    def restore_elim(self, state: "State", identity: Identity) -> list[int]:
        return restore_elim(self, state, identity)
