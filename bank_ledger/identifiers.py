"""
Account Number Generation

Issues fixed-length numeric account numbers, unique for the lifetime of
the generator. Identifiers restored from a checkpoint are reserved so they
are never issued again.
"""

import random
import threading
from typing import Iterable, Optional, Set


DEFAULT_ACCOUNT_NUMBER_LENGTH = 12


class AccountIdGenerator:
    """Random fixed-length account numbers with collision re-draw"""

    def __init__(self, rng: Optional[random.Random] = None,
                 default_length: int = DEFAULT_ACCOUNT_NUMBER_LENGTH):
        if default_length < 1:
            raise ValueError("Account number length must be at least 1")
        self._rng = rng or random.Random()
        self._issued: Set[str] = set()
        self._lock = threading.Lock()
        self.default_length = default_length

    def generate(self, length: Optional[int] = None) -> str:
        """
        Issue a new account number

        Draws `length` random digits and re-draws while the value collides
        with anything already issued or reserved.

        Args:
            length: Number of digits (defaults to the generator's length)

        Returns:
            Account number as a string of digits
        """
        length = self.default_length if length is None else length
        if length < 1:
            raise ValueError("Account number length must be at least 1")

        with self._lock:
            space = 10 ** length
            if len(self._issued) >= space:
                taken = sum(1 for issued in self._issued if len(issued) == length)
                if taken >= space:
                    raise ValueError(f"Account number space of length {length} is exhausted")
            while True:
                candidate = "".join(str(self._rng.randrange(10)) for _ in range(length))
                if candidate not in self._issued:
                    self._issued.add(candidate)
                    return candidate

    def reserve(self, account_no: str) -> None:
        """Mark an existing account number as issued"""
        with self._lock:
            self._issued.add(account_no)

    def reserve_all(self, account_numbers: Iterable[str]) -> None:
        with self._lock:
            self._issued.update(account_numbers)

    def is_issued(self, account_no: str) -> bool:
        with self._lock:
            return account_no in self._issued

    @property
    def issued_count(self) -> int:
        with self._lock:
            return len(self._issued)
