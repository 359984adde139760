"""Exceptions raised by the plaza core."""

from __future__ import annotations


class PlazaError(Exception):
    """Base class for plaza errors."""


class NotFoundError(PlazaError):
    pass


class UserNotFoundError(NotFoundError, LookupError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id
