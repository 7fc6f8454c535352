from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

from utils import Action, Clue, Level

if TYPE_CHECKING:
    from engine import Engine
    from state import State


class Convention(metaclass=ABCMeta):
    """
    The set of agreements a team plays by. The engine calls into it to interpret
    what it observes and to choose our next action; it never asks which
    convention it is talking to.
    """

    name: str = "base"

    def __init__(self, level: Level = Level.INTERMEDIATE_FINESSES):
        self.level: Level = level

    def __repr__(self) -> str:
        return f"{type(self).__name__}(level={self.level.name})"

    @abstractmethod
    def interpret_clue(self, engine: "Engine", action: Action) -> None:
        """
        Called after a clue has been applied to every perspective. Must leave
        common knowledge up to date, normally by ending with `engine.update_beliefs()`.
        """
        raise NotImplementedError

    @abstractmethod
    def interpret_discard(self, engine: "Engine", action: Action) -> None:
        raise NotImplementedError

    def interpret_play(self, engine: "Engine", action: Action) -> None:
        pass

    @abstractmethod
    def update_turn(self, engine: "Engine", action: Action) -> bool:
        """
        Called when a turn ends, before the engine moves on to the next player.
        Returns True if the engine was rewound and the turn is already handled.
        """
        raise NotImplementedError

    @abstractmethod
    def take_action(self, engine: "Engine") -> Action:
        raise NotImplementedError


def clue_touches(state: "State", target: int, clue: Clue) -> list[int]:
    """The cards in another player's hand a clue would touch."""
    return [
        order
        for order in state.hands[target]
        if (identity := state.visible(order)) is not None
        and state.variant.touched(identity, clue)
    ]


def make_clue(state: "State", target: int, clue: Clue) -> Action:
    return Action(
        Action.ActionType.CLUE,
        giver=state.our_player_index,
        target=target,
        clue=clue,
        touched=clue_touches(state, target, clue),
    )
