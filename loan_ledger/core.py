"""
Core types for the peer-to-peer loan ledger.

This module provides the foundational data structures and protocols:
1. Constants: time and interest-rate bases
2. Enums: LoanStatus, RequestStatus, ErrorKind
3. Exceptions: LedgerError and the typed error kinds
4. Immutable records: UserProfile, LoanTerms, LoanRequest, Loan, LoanSummary
5. Configuration: LoanPolicy
6. Protocols: Clock, IdentityProvider, LedgerStore, PaymentRail
7. LedgerResult: the typed success/error value returned by the API

Records are frozen dataclasses. Every state change builds a new record,
so a half-computed update can never be observed through a store.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Tuple, TypeVar, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

# Interest rates are integers expressed in units of 1/rate_basis per year.
RATE_BASIS_PERCENT = 100
RATE_BASIS_BPS = 10_000

# Type alias for a caller's principal, in its text form.
Identity = str


# ============================================================================
# ENUMS
# ============================================================================

class LoanStatus(str, Enum):
    """
    Lifecycle status of a loan.

    ACTIVE is the only non-terminal state. COMPLETED and DEFAULTED are
    terminal: no transition leaves them.
    """
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"

    @property
    def is_terminal(self) -> bool:
        return self is not LoanStatus.ACTIVE


class RequestStatus(str, Enum):
    """Status of a loan request."""
    OPEN = "open"           # Visible to every identity, may be funded
    ACCEPTED = "accepted"   # Consumed by exactly one loan


class ErrorKind(Enum):
    """
    Classification of a failed ledger operation.

    NOT_FOUND: An entity id did not resolve.
    INVALID_PAYLOAD: Validation or state-precondition failure.
    PAYMENT_FAILED: The payment collaborator rejected a transfer.
    PAYMENT_COMPLETED: The payment collaborator had already settled this transfer.
    """
    NOT_FOUND = "not_found"
    INVALID_PAYLOAD = "invalid_payload"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_COMPLETED = "payment_completed"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger errors. Subclasses carry their ErrorKind."""
    kind: ErrorKind = ErrorKind.INVALID_PAYLOAD


class NotFound(LedgerError):
    """Raised when a loan, request, or profile id does not resolve."""
    kind = ErrorKind.NOT_FOUND


class InvalidPayload(LedgerError, ValueError):
    """Raised on malformed input or a transition the loan's status forbids."""
    kind = ErrorKind.INVALID_PAYLOAD


class PaymentFailed(LedgerError):
    """Raised by a payment rail when a transfer cannot be made."""
    kind = ErrorKind.PAYMENT_FAILED


class PaymentCompleted(LedgerError):
    """Raised by a payment rail when a transfer with the same memo already settled."""
    kind = ErrorKind.PAYMENT_COMPLETED


ERROR_TYPES = {
    ErrorKind.NOT_FOUND: NotFound,
    ErrorKind.INVALID_PAYLOAD: InvalidPayload,
    ErrorKind.PAYMENT_FAILED: PaymentFailed,
    ErrorKind.PAYMENT_COMPLETED: PaymentCompleted,
}


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanPolicy:
    """
    Ledger-wide settings that every engine function takes explicitly.

    Attributes:
        rate_basis: Unit of interest_rate (100 = percent, 10_000 = basis points)
        seconds_per_year: Day-count basis for simple interest
        allow_reregistration: If False, registering an identity twice is rejected
    """
    rate_basis: int = RATE_BASIS_PERCENT
    seconds_per_year: int = SECONDS_PER_YEAR
    allow_reregistration: bool = True

    def __post_init__(self):
        if self.rate_basis <= 0:
            raise ValueError(f"rate_basis must be positive, got {self.rate_basis}")
        if self.seconds_per_year <= 0:
            raise ValueError(f"seconds_per_year must be positive, got {self.seconds_per_year}")


DEFAULT_POLICY = LoanPolicy()


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class UserProfile:
    """A registered identity and its saved balance (smallest currency unit)."""
    identity: Identity
    name: str
    balance: int = 0


@dataclass(frozen=True, slots=True)
class LoanTerms:
    """
    Amount, rate and duration of a loan, as submitted by a caller.

    Validation happens in the engine (validate_terms), not here, so that a
    malformed payload surfaces as InvalidPayload through the API.
    """
    amount: int
    interest_rate: int
    duration: int


@dataclass(frozen=True, slots=True)
class LoanRequest:
    """A borrower's request for funding. Any other identity may accept it once."""
    id: str
    owner: Identity
    amount: int
    interest_rate: int
    duration: int
    created_at: int
    status: RequestStatus = RequestStatus.OPEN
    loan_id: Optional[str] = None

    @property
    def terms(self) -> LoanTerms:
        return LoanTerms(self.amount, self.interest_rate, self.duration)


@dataclass(frozen=True, slots=True)
class Loan:
    """
    Immutable snapshot of a loan at a point in its lifecycle.

    Attributes:
        id: Unique loan id
        amount: Current principal (changed only by modify_terms)
        interest_rate: Annual simple rate in units of LoanPolicy.rate_basis
        duration: Term in seconds
        borrower: Identity that owes the debt
        lender: Identity that funded the loan (None until funded, then fixed)
        status: ACTIVE, COMPLETED or DEFAULTED
        creation_date: When the loan was created (seconds)
        due_date: creation_date + duration, or now + duration after a term change
        amount_repaid: Cumulative repayments
        accrued_interest: Interest accrued up to last_accrual_time
        last_accrual_time: Timestamp interest has been accrued up to
        accrual_carry: Remainder of the last accrual, below one currency unit
        original_amount: Principal at creation
        request_id: The request this loan was created from
        closed_at: When the loan reached a terminal status
    """
    id: str
    amount: int
    interest_rate: int
    duration: int
    borrower: Identity
    lender: Optional[Identity]
    status: LoanStatus
    creation_date: int
    due_date: int
    amount_repaid: int = 0
    accrued_interest: int = 0
    last_accrual_time: int = 0
    accrual_carry: int = 0
    original_amount: int = 0
    request_id: Optional[str] = None
    closed_at: Optional[int] = None

    @property
    def total_due(self) -> int:
        """Principal plus interest accrued so far."""
        return self.amount + self.accrued_interest

    @property
    def outstanding(self) -> int:
        return max(0, self.total_due - self.amount_repaid)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def involves(self, identity: Identity) -> bool:
        """True if identity is the borrower or the lender."""
        return self.borrower == identity or (self.lender is not None and self.lender == identity)


@dataclass(frozen=True, slots=True)
class LoanSummary:
    """Read-only view of a loan's position at a given time."""
    id: str
    original_amount: int
    current_amount: int
    interest_rate: int
    duration: int
    borrower: Identity
    lender: Optional[Identity]
    status: LoanStatus
    creation_date: int
    due_date: int
    accumulated_interest: int


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class Clock(Protocol):
    """Source of the current time, in integer seconds."""

    def now(self) -> int:
        ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Supplies the identity of whoever is calling into the ledger."""

    def current_caller(self) -> Identity:
        ...


R = TypeVar("R")


@runtime_checkable
class LedgerStore(Protocol[R]):
    """
    Key-value persistence for one entity kind.

    put() is an atomic upsert. get() returns None for an unknown id.
    values() returns a snapshot of every record at call time, in first
    insertion order; iterating the snapshot again yields the same records.
    """

    def put(self, record_id: str, record: R) -> None:
        ...

    def get(self, record_id: str) -> Optional[R]:
        ...

    def values(self) -> Tuple[R, ...]:
        ...


@dataclass(frozen=True, slots=True)
class PaymentReceipt:
    """Proof that the payment collaborator moved value between identities."""
    source: Identity
    dest: Identity
    amount: int
    memo: str


@runtime_checkable
class PaymentRail(Protocol):
    """
    External value transfer between principals.

    transfer() raises PaymentFailed if the transfer cannot be made and
    PaymentCompleted if a transfer with the same memo was already settled.
    """

    def transfer(self, source: Identity, dest: Identity, amount: int, memo: str) -> PaymentReceipt:
        ...


# ============================================================================
# RESULT
# ============================================================================

@dataclass(frozen=True, slots=True)
class LedgerResult:
    """
    Outcome of a ledger API call.

    Exactly one of value/error is meaningful: ok results carry a value,
    failed results carry an ErrorKind and a human-readable message.
    """
    value: Any = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any, message: str = "") -> LedgerResult:
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, error: LedgerError) -> LedgerResult:
        return cls(error=error.kind, message=str(error))

    def unwrap(self) -> Any:
        """Return the value, or raise the exception matching the error kind."""
        if self.error is not None:
            raise ERROR_TYPES[self.error](self.message)
        return self.value

    def __repr__(self) -> str:
        if self.ok:
            return f"Ok({self.value!r})"
        return f"Err({self.error.value}: {self.message})"
