from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy
from dit import Distribution  # type: ignore
from dit.shannon import entropy  # type: ignore
from typing_extensions import override

from utils import Action

if TYPE_CHECKING:
    from engine import Engine


class PostMoveMetric(ABC):
    """Abstract base class for metrics evaluated after each move."""

    @abstractmethod
    def __call__(self, last_action: Action, **kwargs) -> int | float:
        raise NotImplementedError

    @property
    @abstractmethod
    def final_value(self) -> float:
        raise NotImplementedError


class BeliefEntropyMetric(PostMoveMetric):
    """
    Estimate how much common knowledge still has to learn about the cards in hand.

    After every move, each card's candidate identities are weighted by the number
    of their copies not yet played or discarded, and the Shannon entropy of that
    distribution is averaged over every card in every hand. The final value is
    the mean over the whole game and can be retrieved from `final_value`.
    """

    values: list[float]
    """Average entropy in bits after each move"""

    def __init__(self) -> None:
        self.values = []

    @override
    def __call__(self, last_action: Action, engine: "Engine | None" = None, **kwargs):
        if engine is None:
            raise ValueError("Unable to compute belief entropy: engine cannot be None")
        value = self.hand_entropy(engine)
        self.values.append(value)
        return value

    @classmethod
    def hand_entropy(cls, engine: "Engine") -> float:
        orders = [order for hand in engine.state.hands for order in hand]
        if not orders:
            return 0.0
        return float(numpy.mean([cls.card_entropy(engine, order) for order in orders]))

    @staticmethod
    def card_entropy(engine: "Engine", order: int) -> float:
        state = engine.state
        candidates = list(engine.common.thoughts[order].possibilities)
        if len(candidates) <= 1:
            return 0.0

        weights = [state.card_count(i) - state.base_count(i) for i in candidates]
        remaining = [(i, w) for i, w in zip(candidates, weights) if w > 0]
        if not remaining:
            remaining = [(i, 1) for i in candidates]

        total = sum(w for _, w in remaining)
        outcomes = [str(i) for i, _ in remaining]
        pmf = [w / total for _, w in remaining]
        return float(entropy(Distribution(outcomes, pmf)))

    @property
    @override
    def final_value(self) -> float:
        if not self.values:
            return 0.0
        return float(numpy.mean(self.values))
