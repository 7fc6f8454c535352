from dataclasses import dataclass

from identity_set import IdentitySet
from utils import Clue, Identity


@dataclass(frozen=True)
class ClueRecord:
    clue: Clue
    giver: int
    turn: int


class Card:
    """
    One perspective's beliefs about a single physical card.

    `possible` holds the identities not yet disproved by public information and
    `inferred` the subset the conventions point to. Narrowing replaces the sets
    rather than mutating them, and a speculative narrowing first snapshots the
    current inference into `old_inferred` so that it can be undone.
    """

    def __init__(
        self,
        order: int,
        actual: Identity | None,
        possible: IdentitySet,
        inferred: IdentitySet | None = None,
        drawn_index: int = -1,
    ):
        self.order: int = order
        self.actual: Identity | None = actual
        self.possible: IdentitySet = possible
        self.inferred: IdentitySet = possible if inferred is None else inferred
        self.old_inferred: IdentitySet | None = None

        self.clued: bool = False
        self.newly_clued: bool = False
        self.finessed: bool = False
        self.chop_moved: bool = False
        self.focused: bool = False
        self.reset: bool = False
        self.superposition: bool = False
        self.hidden: bool = False
        self.certain_finessed: bool = False
        self.rewinded: bool = False

        self.clues: list[ClueRecord] = []
        self.reasoning: list[int] = []
        self.reasoning_turn: list[int] = []
        self.finesse_index: int = -1
        self.drawn_index: int = drawn_index

    def __repr__(self) -> str:
        return f"Card({self.order}, possible={self.possible}, inferred={self.inferred})"

    def identity(self, infer: bool = False, symmetric: bool = False) -> Identity | None:
        if self.actual is not None and not symmetric:
            return self.actual
        if len(self.possible) == 1:
            return next(iter(self.possible))
        if infer and len(self.inferred) == 1:
            return next(iter(self.inferred))
        return None

    def matches(self, identity: Identity, assume: bool = False, infer: bool = False) -> bool:
        known = self.identity(infer=infer)
        if known is None:
            return assume
        return known == identity

    @property
    def possibilities(self) -> IdentitySet:
        return self.inferred if self.inferred else self.possible

    @property
    def touched(self) -> bool:
        return self.clued or self.finessed

    @property
    def saved(self) -> bool:
        return self.touched or self.chop_moved

    def narrow(self, identities: IdentitySet, action_index: int, turn: int) -> None:
        """
        Intersect the inference, recording where it shrank.
        """
        new_inferred = self.inferred.intersect(identities)
        if new_inferred != self.inferred:
            self.reasoning.append(action_index)
            self.reasoning_turn.append(turn)
        self.inferred = new_inferred

    def sync_from(self, other: "Card") -> None:
        """
        Adopt another perspective's annotations for this card, keeping our own
        (possibly narrower) identity sets.
        """
        self.possible = self.possible.intersect(other.possible)
        self.inferred = other.inferred.intersect(self.possible)
        self.old_inferred = other.old_inferred
        for flag in (
            "clued",
            "newly_clued",
            "finessed",
            "chop_moved",
            "focused",
            "reset",
            "superposition",
            "hidden",
            "certain_finessed",
            "rewinded",
            "finesse_index",
        ):
            setattr(self, flag, getattr(other, flag))
        self.clues = list(other.clues)
        self.reasoning = list(other.reasoning)
        self.reasoning_turn = list(other.reasoning_turn)
