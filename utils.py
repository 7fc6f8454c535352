from enum import Enum, IntEnum, unique
from typing import Any, Final, NamedTuple


COUNTS: Final[list[int]] = [3, 2, 2, 2, 1]
MAX_RANK: Final[int] = 5
MAX_HINT_TOKENS: Final[int] = 8
MAX_STRIKES: Final[int] = 3


@unique
class Color(IntEnum):
    RED = 0
    YELLOW = 1
    GREEN = 2
    BLUE = 3
    PURPLE = 4
    TEAL = 5

    @property
    def display_name(self) -> str:
        return self.name.lower()

    @property
    def short(self) -> str:
        return self.name[0].lower()

    def __str__(self) -> str:
        return str(self.value)


class Identity(NamedTuple):
    suit: int
    rank: int

    def __str__(self) -> str:
        return Color(self.suit).short + str(self.rank)


@unique
class Level(IntEnum):
    """How much of the convention a player is assumed to know."""

    BASIC = 1
    FIX = 3
    BASIC_CM = 4
    INTERMEDIATE_FINESSES = 5


@unique
class ClueType(Enum):
    COLOUR = 0
    RANK = 1


class Clue(NamedTuple):
    type: ClueType
    value: int

    def __str__(self) -> str:
        if self.type == ClueType.COLOUR:
            return Color(self.value).display_name
        return str(self.value)


class Action:
    @unique
    class ActionType(Enum):
        DRAW = "draw"
        CLUE = "clue"
        PLAY = "play"
        DISCARD = "discard"
        TURN = "turn"
        IDENTIFY = "identify"
        IGNORE = "ignore"

        def __str__(self) -> str:
            return self.value

    action_type: ActionType

    def __init__(
        self,
        action_type: ActionType,
        player: int | None = None,
        order: int | None = None,
        identity: Identity | None = None,
        giver: int | None = None,
        target: int | None = None,
        clue: Clue | None = None,
        touched: list[int] | None = None,
        failed: bool = False,
        conn_index: int | None = None,
        inference: Identity | None = None,
        turn: int | None = None,
    ) -> None:
        self.action_type = action_type
        self.player = player  # acting player, or the holder of `order`
        self.order = order
        self.identity = identity
        self.giver = giver
        self.target = target
        self.clue = clue
        self.touched = touched if touched is not None else []
        self.failed = failed
        self.conn_index = conn_index
        self.inference = inference
        self.turn = turn

        # set while interpreting a clue, read by the waiting-connection tracker
        self.important = False

    def __str__(self):
        if self.action_type == Action.ActionType.CLUE:
            return f"player {self.giver} clues {self.clue} to player {self.target}"
        if self.action_type == Action.ActionType.PLAY:
            return f"player {self.player} plays {format_card(self.identity)} ({self.order})"
        if self.action_type == Action.ActionType.DISCARD:
            verb = "bombs" if self.failed else "discards"
            return f"player {self.player} {verb} {format_card(self.identity)} ({self.order})"
        if self.action_type == Action.ActionType.DRAW:
            return f"player {self.player} draws {format_card(self.identity)} ({self.order})"
        if self.action_type == Action.ActionType.TURN:
            return f"turn {self.turn}, player {self.player} to act"
        if self.action_type == Action.ActionType.IDENTIFY:
            return f"identify {self.order} as {format_card(self.identity)}"
        return (
            f"ignore {self.order} at connection {self.conn_index}"
            f" for {format_card(self.inference)}"
        )

    def __eq__(self, other):
        if not isinstance(other, Action):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> dict[str, Any]:
        """
        A JSON-friendly representation. Fields left at their defaults are omitted.
        """
        result: dict[str, Any] = {"type": self.action_type.value}
        for key in ("player", "order", "giver", "target", "conn_index", "turn"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.identity is not None:
            result["identity"] = list(self.identity)
        if self.inference is not None:
            result["inference"] = list(self.inference)
        if self.clue is not None:
            result["clue"] = {"type": self.clue.type.value, "value": self.clue.value}
        if self.touched:
            result["touched"] = list(self.touched)
        if self.failed:
            result["failed"] = True
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Action":
        clue = None
        if "clue" in data:
            clue = Clue(ClueType(data["clue"]["type"]), data["clue"]["value"])
        return cls(
            Action.ActionType(data["type"]),
            player=data.get("player"),
            order=data.get("order"),
            identity=Identity(*data["identity"]) if "identity" in data else None,
            giver=data.get("giver"),
            target=data.get("target"),
            clue=clue,
            touched=data.get("touched"),
            failed=data.get("failed", False),
            conn_index=data.get("conn_index"),
            inference=Identity(*data["inference"]) if "inference" in data else None,
            turn=data.get("turn"),
        )


def parse_card(text: str) -> Identity:
    """
    Parse a short card name such as 'r3' into an Identity.
    """
    text = text.strip().lower()
    if len(text) != 2 or not text[1].isdigit():
        raise ValueError(f"Unable to parse card: {text!r}")
    for col in Color:
        if col.short == text[0]:
            return Identity(col.value, int(text[1]))
    raise ValueError(f"Unknown suit in card: {text!r}")


def format_card(x: Identity | None) -> str:
    if x is None:
        return "xx"
    return str(x)


def format_hand(hand):
    return ", ".join(list(map(format_card, hand)))


class NullStream:
    def write(self, _):
        pass

    def flush(self):
        pass

    def writelines(self, _):
        pass
