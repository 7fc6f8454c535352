from dataclasses import dataclass, field
from enum import Enum, unique
from typing import TypeAlias

from identity_set import IdentitySet
from utils import Identity, format_card


@unique
class ConnectionType(Enum):
    KNOWN = "known"
    PLAYABLE = "playable"
    PROMPT = "prompt"
    FINESSE = "finesse"


@dataclass
class Connection:
    """One assumed play in a chain leading up to a clued card."""

    type: ConnectionType
    reacting: int
    order: int
    identities: IdentitySet
    hidden: bool = False
    self: bool = False

    def __str__(self) -> str:
        ids = ",".join(format_card(i) for i in self.identities)
        hidden = " (hidden)" if self.hidden else ""
        return f"{self.type.value} {self.order} [{ids}] by {self.reacting}{hidden}"


@dataclass
class WaitingConnection:
    """
    A chain of plays that has been inferred from a clue but not yet observed.

    `conn_index` points at the connection whose play is awaited next. It only
    moves forward; the record is dropped once the chain resolves or is disproved.
    """

    connections: list[Connection]
    focus: int
    inference: Identity
    giver: int
    target: int
    action_index: int
    turn: int
    conn_index: int = 0
    symmetric: bool = False
    ambiguous: bool = False
    ambiguous_passback: bool = False

    @property
    def current(self) -> Connection:
        return self.connections[self.conn_index]

    @property
    def remaining(self) -> list[Connection]:
        return self.connections[self.conn_index :]

    def __str__(self) -> str:
        chain = " -> ".join(str(c) for c in self.connections)
        return f"{format_card(self.inference)} on {self.focus}: {chain} @ {self.conn_index}"


@dataclass
class Feasible:
    connections: list[Connection] = field(default_factory=list)


@dataclass
class Infeasible:
    reason: str


Outcome: TypeAlias = Feasible | Infeasible


@dataclass
class FocusPossibility:
    """A candidate identity for a clue's focus together with the chain it relies on."""

    identity: Identity
    connections: list[Connection] = field(default_factory=list)
    save: bool = False

    @property
    def has_self(self) -> bool:
        return any(c.self for c in self.connections)
