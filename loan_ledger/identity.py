"""
identity.py - Caller identity for in-process use

The host runtime normally supplies the caller's principal. StaticIdentityProvider
stands in for it when the ledger is driven directly, e.g. from tests or demos.
"""

from contextlib import contextmanager
from typing import Iterator

from .core import Identity


class StaticIdentityProvider:
    """
    Identity provider that returns whichever identity was set last.

    Example:
        identity = StaticIdentityProvider("alice")
        with identity.acting_as("bob"):
            ledger.accept_loan_request(request_id)   # called by bob
    """

    def __init__(self, caller: Identity):
        self.caller = caller

    def current_caller(self) -> Identity:
        return self.caller

    def switch(self, caller: Identity) -> None:
        self.caller = caller

    @contextmanager
    def acting_as(self, caller: Identity) -> Iterator[Identity]:
        """Temporarily act as another identity."""
        previous = self.caller
        self.caller = caller
        try:
            yield caller
        finally:
            self.caller = previous

    def __repr__(self):
        return f"StaticIdentityProvider(caller={self.caller!r})"
