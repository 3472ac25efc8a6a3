"""
conftest.py - Shared pytest fixtures for loan ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Collaborators (manual clock, static identity, in-memory payment rail)
- Quiet ledgers over in-memory and SQLite stores
- A ledger with one funded loan
- Factories for tests that need several independent ledgers
"""

import itertools

import pytest

from loan_ledger import (
    LoanLedger, LedgerStores, LoanTerms,
    ManualClock, StaticIdentityProvider, InMemoryPaymentRail,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def sequential_ids(prefix: str = "id"):
    """Deterministic id factory: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def make_ledger(stores=None, start: int = 0, caller: str = "alice", payments=None, policy=None):
    """Build a quiet ledger over fresh collaborators. Returns (ledger, clock, identity)."""
    clock = ManualClock(start)
    identity = StaticIdentityProvider(caller)
    ledger = LoanLedger(
        stores if stores is not None else LedgerStores.in_memory(),
        clock,
        identity,
        payments=payments,
        policy=policy,
        id_factory=sequential_ids(),
        verbose=False,
    )
    return ledger, clock, identity


def fund_loan(ledger, identity, terms, borrower: str = "alice", lender: str = "bob"):
    """borrower requests terms, lender accepts. Returns the new Loan."""
    with identity.acting_as(borrower):
        request_id = ledger.create_loan_request(terms).unwrap()
    with identity.acting_as(lender):
        return ledger.accept_loan_request(request_id).unwrap()


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return ManualClock(0)


@pytest.fixture
def identity():
    return StaticIdentityProvider("alice")


@pytest.fixture
def rail():
    """Payment rail where bob holds 10,000 and alice 500."""
    return InMemoryPaymentRail({"bob": 10_000, "alice": 500})


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def ledger(clock, identity):
    """Quiet in-memory ledger; callers are switched through the identity fixture."""
    return LoanLedger(
        LedgerStores.in_memory(), clock, identity,
        id_factory=sequential_ids(), verbose=False,
    )


@pytest.fixture
def sqlite_stores(tmp_path):
    stores = LedgerStores.sqlite(str(tmp_path / "ledger.db"))
    yield stores
    stores.close()


@pytest.fixture
def active_loan(ledger, identity):
    """alice borrows 1000 at 5% for one hour from bob, funded at t=0."""
    return fund_loan(ledger, identity, LoanTerms(1000, 5, 3600))


@pytest.fixture
def ledger_factory():
    """Returns make_ledger, for tests that need several independent ledgers."""
    return make_ledger


@pytest.fixture
def loan_funder():
    """Returns fund_loan."""
    return fund_loan
