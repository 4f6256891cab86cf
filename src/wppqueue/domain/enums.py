"""Enumerations for domain models."""

from enum import Enum


class Direction(str, Enum):
    """Directions an entry can be moved within its phone's queue."""

    TOP = "top"
    UP = "up"
    DOWN = "down"
    BOTTOM = "bottom"
