"""IdGenerator port - unique identifiers for reservations."""

import secrets
import string
from abc import ABC, abstractmethod


class IdGenerator(ABC):
    @abstractmethod
    def generate_reservation_id(self) -> str:
        raise NotImplementedError


class RealIdGenerator(IdGenerator):
    RESERVATION_ID_LENGTH = 10
    ALLOWED_CHARS = string.ascii_uppercase + string.digits

    def generate_reservation_id(self) -> str:
        """RSV- followed by 10 random uppercase alphanumerics."""
        suffix = "".join(
            secrets.choice(self.ALLOWED_CHARS) for _ in range(self.RESERVATION_ID_LENGTH)
        )
        return f"RSV-{suffix}"


class FakeIdGenerator(IdGenerator):
    """
    Predictable identifiers for tests.

    Args:
        prefix: Prefix for generated reservation ids.
    """

    def __init__(self, prefix: str = "RSV-TEST"):
        self._prefix = prefix
        self._reservation_counter = 0

    def generate_reservation_id(self) -> str:
        self._reservation_counter += 1
        return f"{self._prefix}{self._reservation_counter:04d}"
