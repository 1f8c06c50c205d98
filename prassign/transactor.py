"""The interface services use to group storage calls into one transaction."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol


class Transactor(Protocol):
    """Something that can run a block of work inside one transaction.

    Leaving the block normally commits; leaving it with an exception rolls
    back and lets the exception propagate.
    """

    def transaction(self) -> AbstractContextManager[None]:
        """Return a context manager that wraps a single transaction."""
        ...