"""
test_loan_scenarios.py - End-to-end loan scenarios

Each scenario drives a LoanLedger through a realistic sequence of calls,
switching callers and advancing the clock, over both in-memory and SQLite
stores.
"""

import pytest

from loan_ledger import (
    LoanLedger, LedgerStores, LoanTerms, LoanStatus, ErrorKind,
    ManualClock, StaticIdentityProvider, InMemoryPaymentRail,
    SECONDS_PER_DAY, SECONDS_PER_YEAR,
)


@pytest.fixture(params=["memory", "sqlite"])
def stores(request, tmp_path):
    if request.param == "memory":
        yield LedgerStores.in_memory()
        return
    stores = LedgerStores.sqlite(str(tmp_path / "ledger.db"))
    yield stores
    stores.close()


@pytest.fixture
def world(stores):
    clock = ManualClock(0)
    identity = StaticIdentityProvider("alice")
    ledger = LoanLedger(stores, clock, identity, verbose=False)
    return ledger, clock, identity


def request_and_fund(ledger, identity, terms, borrower="alice", lender="bob"):
    with identity.acting_as(borrower):
        request_id = ledger.create_loan_request(terms).unwrap()
    with identity.acting_as(lender):
        return ledger.accept_loan_request(request_id).unwrap()


# ============================================================================
# SCENARIOS
# ============================================================================

class TestDefaultScenario:
    """A one-hour loan nobody repays."""

    def test_unpaid_loan_defaults_after_due_date(self, world):
        ledger, clock, identity = world
        loan = request_and_fund(ledger, identity, LoanTerms(1000, 5, 3600))
        assert loan.amount == 1000
        assert loan.due_date == 3600
        assert loan.status is LoanStatus.ACTIVE

        clock.advance_to(3601)
        assert ledger.check_for_default() == [loan.id]
        assert ledger.get_loan_status(loan.id).value is LoanStatus.DEFAULTED

        # Defaulted loans accept no further repayment
        assert ledger.make_repayment(loan.id, 100).error is ErrorKind.INVALID_PAYLOAD


class TestRepaymentScenario:
    """A loan repaid in full with one year of interest."""

    def test_repay_principal_plus_interest_completes(self, world):
        ledger, clock, identity = world
        loan = request_and_fund(ledger, identity, LoanTerms(1000, 5, 2 * SECONDS_PER_YEAR))

        clock.advance_to(SECONDS_PER_YEAR)
        assert ledger.get_loan_summary(loan.id).value.current_amount == 1050

        completed = ledger.make_repayment(loan.id, 1050).unwrap()
        assert completed.status is LoanStatus.COMPLETED

        result = ledger.make_repayment(loan.id, 1)
        assert result.error is ErrorKind.INVALID_PAYLOAD

        clock.advance_to(3 * SECONDS_PER_YEAR)
        assert ledger.check_for_default() == []
        assert ledger.get_loan_status(loan.id).value is LoanStatus.COMPLETED

    def test_installments_then_final_payment(self, world):
        ledger, clock, identity = world
        loan = request_and_fund(ledger, identity, LoanTerms(1200, 10, SECONDS_PER_YEAR))

        for month in range(1, 12):
            clock.advance_to(month * SECONDS_PER_YEAR // 12)
            ledger.accumulate_interest()
            assert ledger.make_repayment(loan.id, 100).ok

        clock.advance_to(SECONDS_PER_YEAR)
        remaining = ledger.get_loan_summary(loan.id).unwrap()
        # 1200 at 10% for a year earns 120 regardless of the monthly sweeps
        assert remaining.accumulated_interest == 120
        assert remaining.current_amount == 1200 + 120 - 1100

        done = ledger.make_repayment(loan.id, remaining.current_amount).unwrap()
        assert done.status is LoanStatus.COMPLETED


class TestExtensionScenario:
    """A borrower asks for more time before the due date."""

    def test_extension_moves_due_date_and_avoids_default(self, world):
        ledger, clock, identity = world
        loan = request_and_fund(ledger, identity, LoanTerms(500, 5, SECONDS_PER_DAY))

        clock.advance_to(SECONDS_PER_DAY // 2)
        assert ledger.request_loan_extension(loan.id, SECONDS_PER_DAY).error is ErrorKind.INVALID_PAYLOAD
        extended = ledger.request_loan_extension(loan.id, 3 * SECONDS_PER_DAY).unwrap()
        assert extended.due_date == SECONDS_PER_DAY // 2 + 3 * SECONDS_PER_DAY

        clock.advance_to(2 * SECONDS_PER_DAY)
        assert ledger.check_for_default() == []


class TestSavingsScenario:
    """Registered users save funds that automated repayment draws on."""

    def test_register_and_save(self, world):
        ledger, _, _ = world
        ledger.register_user("Alice")
        assert ledger.save_funds(300).value.balance == 300
        assert ledger.save_funds(200).value.balance == 500

    def test_automated_repayment_from_savings(self, world):
        ledger, clock, identity = world
        ledger.register_user("Alice")
        ledger.save_funds(2000)
        with identity.acting_as("bob"):
            ledger.register_user("Bob")

        loan = request_and_fund(ledger, identity, LoanTerms(1000, 0, 4))
        clock.advance_to(4)

        for _ in range(4):
            assert ledger.automate_loan_repayment() == [loan.id]

        assert ledger.get_loan_status(loan.id).value is LoanStatus.COMPLETED
        assert ledger.get_user_profile("alice").value.balance == 1000
        assert ledger.get_user_profile("bob").value.balance == 1000


class TestMarketplaceScenario:
    """Several borrowers and lenders with a payment rail."""

    def test_requests_history_and_cash_flows(self, stores):
        clock = ManualClock(0)
        identity = StaticIdentityProvider("alice")
        rail = InMemoryPaymentRail({"bob": 5000, "carol": 5000})
        ledger = LoanLedger(stores, clock, identity, payments=rail, verbose=False)

        with identity.acting_as("alice"):
            small = ledger.create_loan_request(LoanTerms(300, 0, 1000)).unwrap()
        with identity.acting_as("dave"):
            large = ledger.create_loan_request(LoanTerms(2000, 0, 1000)).unwrap()
        assert [r.id for r in ledger.get_loan_requests()] == [small, large]

        with identity.acting_as("bob"):
            alice_loan = ledger.accept_loan_request(small).unwrap()
        with identity.acting_as("carol"):
            dave_loan = ledger.accept_loan_request(large).unwrap()
        assert ledger.get_loan_requests() == []

        with identity.acting_as("alice"):
            ledger.make_repayment(alice_loan.id, 300)
        assert rail.balance_of("bob") == 5000
        assert rail.balance_of("carol") == 3000
        assert rail.balance_of("dave") == 2000

        assert [l.id for l in ledger.get_user_loan_history("carol")] == [dave_loan.id]
        with identity.acting_as("dave"):
            assert [l.id for l in ledger.get_loans()] == [dave_loan.id]
        with identity.acting_as("alice"):
            assert ledger.get_loans() == []

        clock.advance_to(1001)
        assert ledger.check_for_default() == [dave_loan.id]


class TestDurability:
    """SQLite-backed ledgers pick up where they left off."""

    def test_reopened_ledger_sees_all_state(self, tmp_path):
        path = str(tmp_path / "ledger.db")
        clock = ManualClock(0)
        identity = StaticIdentityProvider("alice")

        first = LoanLedger(LedgerStores.sqlite(path), clock, identity, verbose=False)
        first.register_user("Alice")
        first.save_funds(75)
        loan = request_and_fund(first, identity, LoanTerms(1000, 5, 3600))
        first.make_repayment(loan.id, 400)
        first.stores.close()

        second = LoanLedger(LedgerStores.sqlite(path), clock, identity, verbose=False)
        assert second.get_user_profile().value.balance == 75
        stored = second.get_loan(loan.id).unwrap()
        assert stored.amount_repaid == 400
        assert stored.lender == "bob"

        clock.advance_to(3601)
        assert second.check_for_default() == [loan.id]
        second.stores.close()
