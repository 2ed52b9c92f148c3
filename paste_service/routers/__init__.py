# Routers package for the paste service

from . import pastes, v2

__all__ = [
    "pastes",
    "v2",
]
