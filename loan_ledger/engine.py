"""
engine.py - Loan Lifecycle Engine

Every business rule governing a loan's state transitions, written as pure
functions over frozen records.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. VALIDATION (validate_*):
   - Reject malformed amounts, rates and durations with InvalidPayload

2. PURE CALCULATION FUNCTIONS (calculate_*):
   - Integer arithmetic only, all inputs explicit
   - Example: calculate_interest_accrual(amount, rate, elapsed, carry, policy)

3. TRANSITIONS (accept_request, accrue_interest, apply_repayment, ...):
   - Take a Loan and the current time, return the complete next Loan
   - Never mutate, never touch a store
   - Raise InvalidPayload when the loan's status forbids the transition

State machine:
    ACTIVE --repay in full--> COMPLETED
    ACTIVE --past due, unpaid--> DEFAULTED
    ACTIVE --modify / extend / accrue / partial repay--> ACTIVE
    COMPLETED, DEFAULTED: terminal

Key Formulas:
    interest  = floor(amount * rate * elapsed / (rate_basis * seconds_per_year))
    total_due = amount + accrued_interest
    installment = interest_due + amount // duration
"""

from __future__ import annotations
from dataclasses import replace
from typing import Optional, Tuple

from .core import (
    Identity, Loan, LoanPolicy, LoanStatus, LoanSummary, LoanTerms,
    InvalidPayload, DEFAULT_POLICY,
)


# ============================================================================
# VALIDATION
# ============================================================================

def _require_int(name: str, value) -> int:
    # bool is an int subclass; True is not an amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPayload(f"{name} must be an integer, got {value!r}")
    return value


def validate_amount(name: str, value) -> int:
    """Return value if it is a positive integer, else raise InvalidPayload."""
    _require_int(name, value)
    if value <= 0:
        raise InvalidPayload(f"{name} must be positive, got {value}")
    return value


def validate_terms(amount, interest_rate, duration) -> LoanTerms:
    """
    Validate loan terms.

    Raises:
        InvalidPayload: If amount <= 0, duration <= 0, interest_rate < 0,
                        or any of them is not an integer.
    """
    validate_amount("amount", amount)
    validate_amount("duration", duration)
    _require_int("interest_rate", interest_rate)
    if interest_rate < 0:
        raise InvalidPayload(f"interest_rate cannot be negative, got {interest_rate}")
    return LoanTerms(amount, interest_rate, duration)


def _require_active(loan: Loan, action: str) -> None:
    status = loan.status
    if status is LoanStatus.ACTIVE:
        return
    if status is LoanStatus.COMPLETED or status is LoanStatus.DEFAULTED:
        raise InvalidPayload(
            f"{action} is only allowed for active loans; loan {loan.id} is {status.value}"
        )
    raise InvalidPayload(f"loan {loan.id} has unknown status {status!r}")


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_interest_accrual(
    amount: int,
    interest_rate: int,
    elapsed: int,
    carry: int = 0,
    policy: LoanPolicy = DEFAULT_POLICY,
) -> Tuple[int, int]:
    """
    Simple interest for an elapsed period, in whole currency units.

    PURE FUNCTION - All inputs explicit.

    The fractional remainder is returned as a carry and fed into the next
    call, so accruing over [t0, t1] then [t1, t2] gives exactly the same
    total as accruing over [t0, t2] once.

    Args:
        amount: Principal
        interest_rate: Annual rate in units of policy.rate_basis
        elapsed: Seconds since the last accrual
        carry: Remainder from the previous accrual
        policy: Rate basis and day-count basis

    Returns:
        Tuple of (interest, new_carry)

    Example:
        # 1000 at 5% for one year
        calculate_interest_accrual(1000, 5, SECONDS_PER_YEAR)  # (50, 0)
    """
    if elapsed <= 0 or amount <= 0 or interest_rate <= 0:
        return 0, carry
    numerator = amount * interest_rate * elapsed + carry
    denominator = policy.rate_basis * policy.seconds_per_year
    interest, new_carry = divmod(numerator, denominator)
    return interest, new_carry


def calculate_pending_interest(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> Tuple[int, int]:
    """Interest accrued between loan.last_accrual_time and now, with the new carry."""
    if loan.status is not LoanStatus.ACTIVE:
        return 0, loan.accrual_carry
    return calculate_interest_accrual(
        amount=loan.amount,
        interest_rate=loan.interest_rate,
        elapsed=now - loan.last_accrual_time,
        carry=loan.accrual_carry,
        policy=policy,
    )


def interest_due(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> int:
    """Total interest on the loan at time now: accrued plus pending."""
    pending, _ = calculate_pending_interest(loan, now, policy)
    return loan.accrued_interest + pending


def is_fully_repaid(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> bool:
    """True iff cumulative repayments cover principal plus interest due at now."""
    return loan.amount_repaid >= loan.amount + interest_due(loan, now, policy)


# ============================================================================
# LOAN CREATION
# ============================================================================

def accept_request(
    terms: LoanTerms,
    borrower: Identity,
    now: int,
    loan_id: str,
    lender: Optional[Identity] = None,
    request_id: Optional[str] = None,
) -> Loan:
    """
    Create an active loan from accepted terms.

    Args:
        terms: Amount, rate and duration from the request
        borrower: Identity that owes the debt
        now: Acceptance time; becomes creation_date
        loan_id: Unique id for the new loan
        lender: Identity that funds the loan (optional)
        request_id: Id of the request being consumed (optional)

    Returns:
        Loan with status ACTIVE, due_date = now + duration, amount_repaid = 0.

    Raises:
        InvalidPayload: If the terms are invalid or lender == borrower.

    Example:
        loan = accept_request(LoanTerms(1000, 5, 3600), "alice", 0, "L1", lender="bob")
        assert loan.due_date == 3600
    """
    validate_terms(terms.amount, terms.interest_rate, terms.duration)
    if not borrower:
        raise InvalidPayload("borrower cannot be empty")
    if lender is not None and lender == borrower:
        raise InvalidPayload("borrower and lender must be different")

    return Loan(
        id=loan_id,
        amount=terms.amount,
        interest_rate=terms.interest_rate,
        duration=terms.duration,
        borrower=borrower,
        lender=lender,
        status=LoanStatus.ACTIVE,
        creation_date=now,
        due_date=now + terms.duration,
        amount_repaid=0,
        accrued_interest=0,
        last_accrual_time=now,
        accrual_carry=0,
        original_amount=terms.amount,
        request_id=request_id,
    )


# ============================================================================
# INTEREST ACCRUAL
# ============================================================================

def accrue_interest(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> Loan:
    """
    Accrue interest since last_accrual_time and advance it to now.

    Only ACTIVE loans accrue; terminal loans are returned unchanged. A
    clock reading earlier than last_accrual_time accrues nothing and does
    not move last_accrual_time backwards.

    Calling this repeatedly never double counts: each call accrues only
    the delta since the previous one.
    """
    if loan.status is not LoanStatus.ACTIVE:
        return loan
    if now <= loan.last_accrual_time:
        return loan

    interest, carry = calculate_pending_interest(loan, now, policy)
    return replace(
        loan,
        accrued_interest=loan.accrued_interest + interest,
        accrual_carry=carry,
        last_accrual_time=now,
    )


# ============================================================================
# REPAYMENT
# ============================================================================

def apply_repayment(loan: Loan, amount, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> Loan:
    """
    Apply a repayment and complete the loan once it is fully repaid.

    Interest pending since the last accrual is rolled in first, so the
    settlement compares repayments against principal plus interest at now.

    Args:
        loan: Loan to repay
        amount: Amount paid (positive integer)
        now: Settlement time
        policy: Interest settings

    Returns:
        New Loan with amount_repaid increased; status COMPLETED if
        amount_repaid >= amount + accrued_interest.

    Raises:
        InvalidPayload: If amount <= 0, the loan is not ACTIVE, or amount
                        exceeds the outstanding balance.
    """
    validate_amount("repayment amount", amount)
    _require_active(loan, "Repayment")

    settled = accrue_interest(loan, now, policy)
    if amount > settled.outstanding:
        raise InvalidPayload(
            f"repayment amount ({amount}) exceeds outstanding balance ({settled.outstanding}) "
            f"on loan {loan.id}"
        )

    repaid = settled.amount_repaid + amount
    if repaid >= settled.total_due:
        return replace(settled, amount_repaid=repaid, status=LoanStatus.COMPLETED, closed_at=now)
    return replace(settled, amount_repaid=repaid)


def compute_repayment_amount(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> int:
    """
    Installment collected by the automated repayment sweep.

        installment = interest_due + amount // duration

    An amortization approximation, capped at the outstanding balance.

    Raises:
        InvalidPayload: If the loan's duration is zero.
    """
    if loan.duration == 0:
        raise InvalidPayload(f"loan {loan.id} has zero duration")
    interest = interest_due(loan, now, policy)
    installment = interest + loan.amount // loan.duration
    outstanding = max(0, loan.amount + interest - loan.amount_repaid)
    return min(installment, outstanding)


def is_due_for_automation(loan: Loan, now: int) -> bool:
    """True for ACTIVE loans that have reached their due date."""
    return loan.status is LoanStatus.ACTIVE and now >= loan.due_date


# ============================================================================
# DEFAULT DETECTION
# ============================================================================

def check_default(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> bool:
    """
    True iff the loan is ACTIVE, past due, and not fully repaid at now.

    Terminal loans never report a default.
    """
    if loan.status is not LoanStatus.ACTIVE:
        return False
    return now > loan.due_date and not is_fully_repaid(loan, now, policy)


def mark_defaulted(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> Loan:
    """
    Transition a loan in default to DEFAULTED.

    Interest is accrued up to now before closing. Loans that are not in
    default, including terminal loans, are returned unchanged.
    """
    if not check_default(loan, now, policy):
        return loan
    settled = accrue_interest(loan, now, policy)
    return replace(settled, status=LoanStatus.DEFAULTED, closed_at=now)


# ============================================================================
# TERM CHANGES
# ============================================================================

def modify_terms(loan: Loan, terms: LoanTerms, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> Loan:
    """
    Replace amount, rate and duration of an active loan.

    Interest up to now is accrued under the old terms first. The due date
    restarts at now + duration. amount_repaid is kept.

    Raises:
        InvalidPayload: If the loan is not ACTIVE, the terms are invalid,
                        or the new principal plus accrued interest would not
                        exceed what has already been repaid.
    """
    _require_active(loan, "Loan modification")
    validate_terms(terms.amount, terms.interest_rate, terms.duration)

    settled = accrue_interest(loan, now, policy)
    if terms.amount + settled.accrued_interest <= settled.amount_repaid:
        raise InvalidPayload(
            f"new amount ({terms.amount}) plus accrued interest ({settled.accrued_interest}) "
            f"must exceed amount already repaid ({settled.amount_repaid})"
        )

    return replace(
        settled,
        amount=terms.amount,
        interest_rate=terms.interest_rate,
        duration=terms.duration,
        due_date=now + terms.duration,
    )


def extend_duration(loan: Loan, new_duration, now: int) -> Loan:
    """
    Lengthen an active loan's duration; the due date becomes now + new_duration.

    Raises:
        InvalidPayload: If the loan is not ACTIVE or new_duration is not
                        longer than the current duration.
    """
    _require_active(loan, "Loan extension")
    validate_amount("duration", new_duration)
    if new_duration <= loan.duration:
        raise InvalidPayload(
            f"new duration ({new_duration}) must be longer than the current duration ({loan.duration})"
        )
    return replace(loan, duration=new_duration, due_date=now + new_duration)


# ============================================================================
# SUMMARY
# ============================================================================

def summarize(loan: Loan, now: int, policy: LoanPolicy = DEFAULT_POLICY) -> LoanSummary:
    """Build a LoanSummary with interest and balance evaluated at now."""
    interest = interest_due(loan, now, policy)
    return LoanSummary(
        id=loan.id,
        original_amount=loan.original_amount,
        current_amount=max(0, loan.amount + interest - loan.amount_repaid),
        interest_rate=loan.interest_rate,
        duration=loan.duration,
        borrower=loan.borrower,
        lender=loan.lender,
        status=loan.status,
        creation_date=loan.creation_date,
        due_date=loan.due_date,
        accumulated_interest=interest,
    )
