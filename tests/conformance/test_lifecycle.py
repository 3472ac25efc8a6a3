"""
Lifecycle Conformance Tests

INVARIANTS:

    amount_repaid is non-decreasing and never exceeds amount + accrued_interest
    status = COMPLETED  ⟺  a repayment brought amount_repaid to the total due
    check_default(L, t) ⟺  L is ACTIVE ∧ t > due_date ∧ not fully repaid
    COMPLETED and DEFAULTED are terminal: every transition rejects or is a no-op
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from loan_ledger import (
    LoanStatus, LoanTerms, InvalidPayload, SECONDS_PER_YEAR,
    accept_request, accrue_interest, apply_repayment, check_default,
    is_fully_repaid, mark_defaulted, modify_terms, extend_duration,
)


def open_loan(amount, rate, duration):
    return accept_request(LoanTerms(amount, rate, duration), "alice", 0, "L1", lender="bob")


class TestRepaymentProperties:
    """Property-based repayment tests."""

    @given(
        st.integers(min_value=1, max_value=100_000),
        st.integers(min_value=0, max_value=50),
        st.lists(st.integers(min_value=-10, max_value=50_000), min_size=1, max_size=30),
    )
    @settings(max_examples=200)
    def test_repaid_monotonic_and_bounded(self, amount, rate, payments):
        """
        PROPERTY: Accepted repayments only increase amount_repaid, which
        never exceeds the total due. Rejected repayments change nothing.
        """
        loan = open_loan(amount, rate, SECONDS_PER_YEAR)
        t = 0
        for payment in payments:
            t += 3600
            before = loan
            try:
                loan = apply_repayment(loan, payment, t)
            except InvalidPayload:
                assert loan is before
                continue
            assert loan.amount_repaid == before.amount_repaid + payment
            assert loan.amount_repaid <= loan.amount + loan.accrued_interest
            if loan.status is LoanStatus.COMPLETED:
                assert loan.amount_repaid == loan.amount + loan.accrued_interest

    @given(st.integers(min_value=1, max_value=100_000), st.integers(min_value=0, max_value=50))
    @settings(max_examples=100)
    def test_paying_outstanding_completes(self, amount, rate):
        """
        PROPERTY: Paying exactly the outstanding balance completes the loan.
        """
        loan = accrue_interest(open_loan(amount, rate, 2 * SECONDS_PER_YEAR), SECONDS_PER_YEAR)
        done = apply_repayment(loan, loan.outstanding, SECONDS_PER_YEAR)
        assert done.status is LoanStatus.COMPLETED
        assert is_fully_repaid(done, SECONDS_PER_YEAR)


class TestDefaultProperties:
    """Property-based default detection tests."""

    @given(
        st.integers(min_value=1, max_value=10_000),
        st.integers(min_value=1, max_value=10**6),
        st.integers(min_value=0, max_value=2 * 10**6),
    )
    @settings(max_examples=200)
    def test_default_iff_past_due_and_unpaid(self, amount, duration, now):
        """
        PROPERTY: An unpaid active loan defaults exactly when now > due_date.
        """
        loan = open_loan(amount, 5, duration)
        assert check_default(loan, now) == (now > loan.due_date)

    @given(st.integers(min_value=1, max_value=10**6), st.integers(min_value=1, max_value=10**6))
    @settings(max_examples=100)
    def test_mark_defaulted_idempotent(self, duration, late_by):
        """
        PROPERTY: Marking a defaulted loan again changes nothing.
        """
        loan = open_loan(1000, 5, duration)
        once = mark_defaulted(loan, duration + late_by)
        twice = mark_defaulted(once, duration + 2 * late_by)
        assert once.status is LoanStatus.DEFAULTED
        assert twice == once


class TestTerminalStates:
    """Terminal loans reject every state-changing transition."""

    @pytest.fixture(params=["completed", "defaulted"])
    def terminal_loan(self, request):
        loan = open_loan(1000, 0, 100)
        if request.param == "completed":
            return apply_repayment(loan, 1000, 50)
        return mark_defaulted(loan, 101)

    def test_repayment_rejected(self, terminal_loan):
        with pytest.raises(InvalidPayload):
            apply_repayment(terminal_loan, 1, 200)

    def test_modification_rejected(self, terminal_loan):
        with pytest.raises(InvalidPayload):
            modify_terms(terminal_loan, LoanTerms(5000, 5, 500), 200)

    def test_extension_rejected(self, terminal_loan):
        with pytest.raises(InvalidPayload):
            extend_duration(terminal_loan, 500, 200)

    def test_accrual_and_default_are_noops(self, terminal_loan):
        assert accrue_interest(terminal_loan, 10**6) is terminal_loan
        assert mark_defaulted(terminal_loan, 10**6) is terminal_loan
        assert not check_default(terminal_loan, 10**6)
