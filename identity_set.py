from typing import Iterable, Iterator, TypeAlias

from utils import MAX_RANK, Identity

Identities: TypeAlias = "IdentitySet | Identity | Iterable[Identity]"


class IdentitySet:
    """
    An immutable set of card identities, stored as a bitmask over every
    (suit, rank) pair of the variant.

    Every operation returns a new set, so two belief records may safely hold the
    same instance.
    """

    __slots__ = ("num_suits", "value")

    num_suits: int
    value: int

    def __init__(self, num_suits: int, value: int = 0):
        object.__setattr__(self, "num_suits", num_suits)
        object.__setattr__(self, "value", value)

    def __setattr__(self, name, value):
        raise AttributeError("IdentitySet is immutable")

    def __reduce__(self):
        return (IdentitySet, (self.num_suits, self.value))

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    @classmethod
    def create(
        cls, num_suits: int, identities: "Identities | None" = None
    ) -> "IdentitySet":
        """
        Create a set of the given identities, or of every identity when none are given.
        """
        if identities is None:
            return cls(num_suits, (1 << (num_suits * MAX_RANK)) - 1)
        return cls(num_suits, cls(num_suits)._mask(identities))

    @staticmethod
    def _bit(identity: Identity) -> int:
        return 1 << (identity.suit * MAX_RANK + identity.rank - 1)

    def _mask(self, other: "Identities") -> int:
        if isinstance(other, IdentitySet):
            return other.value
        if isinstance(other, Identity):
            return self._bit(other)
        mask = 0
        for identity in other:
            mask |= self._bit(identity)
        return mask

    def intersect(self, other: "Identities") -> "IdentitySet":
        return IdentitySet(self.num_suits, self.value & self._mask(other))

    def subtract(self, other: "Identities") -> "IdentitySet":
        return IdentitySet(self.num_suits, self.value & ~self._mask(other))

    def union(self, other: "Identities") -> "IdentitySet":
        return IdentitySet(self.num_suits, self.value | self._mask(other))

    __and__ = intersect
    __sub__ = subtract
    __or__ = union

    def filter(self, predicate) -> "IdentitySet":
        return IdentitySet.create(self.num_suits, [i for i in self if predicate(i)])

    def __len__(self) -> int:
        return self.value.bit_count()

    def __bool__(self) -> bool:
        return self.value != 0

    def __iter__(self) -> Iterator[Identity]:
        value = self.value
        index = 0
        while value:
            if value & 1:
                yield Identity(index // MAX_RANK, index % MAX_RANK + 1)
            value >>= 1
            index += 1

    def __contains__(self, identity: object) -> bool:
        if not isinstance(identity, tuple):
            return False
        return bool(self.value & self._bit(Identity(*identity)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IdentitySet):
            return NotImplemented
        return self.num_suits == other.num_suits and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.num_suits, self.value))

    def __repr__(self) -> str:
        return "IdentitySet(" + ",".join(str(i) for i in self) + ")"

    def issubset(self, other: "IdentitySet") -> bool:
        return self.value & ~other.value == 0
