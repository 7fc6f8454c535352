from .base import COMMON, Player, Viewer
from .elim import Link

__all__ = [
    "COMMON",
    "Link",
    "Player",
    "Viewer",
]
