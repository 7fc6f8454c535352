from typing import Final

from utils import Level

from .base import Convention
from .conventionless import Conventionless
from .h_group import HGroup

CONVENTIONS: Final[dict[str, type[Convention]]] = {
    Conventionless.name: Conventionless,
    HGroup.name: HGroup,
}


def make_convention(name: str, level: Level | None = None) -> Convention:
    if name not in CONVENTIONS:
        raise ValueError(f"Unknown convention: {name}")
    if level is None:
        return CONVENTIONS[name]()
    return CONVENTIONS[name](level)


__all__ = [
    "CONVENTIONS",
    "Convention",
    "Conventionless",
    "HGroup",
    "make_convention",
]
