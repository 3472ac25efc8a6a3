"""
loan_ledger - Peer-to-Peer Loan Ledger

Borrowers publish loan requests, lenders fund them, and the ledger tracks
each loan through repayment, interest accrual, term changes and default.

Usage:
    from loan_ledger import (
        LoanLedger, LedgerStores, LoanTerms, ManualClock, StaticIdentityProvider,
    )

    clock = ManualClock(0)
    identity = StaticIdentityProvider("alice")
    ledger = LoanLedger(LedgerStores.in_memory(), clock, identity)

    # Alice asks for 1000 at 5% a year for one hour
    request_id = ledger.create_loan_request(LoanTerms(1000, 5, 3600)).unwrap()

    # Bob funds it
    with identity.acting_as("bob"):
        loan = ledger.accept_loan_request(request_id).unwrap()

    # Past the due date, an unpaid loan defaults
    clock.advance_to(3601)
    ledger.check_for_default()        # [loan.id]
"""

# Core types
from .core import (
    Identity,
    LoanStatus,
    RequestStatus,
    ErrorKind,
    LedgerError,
    NotFound,
    InvalidPayload,
    PaymentFailed,
    PaymentCompleted,
    LoanPolicy,
    DEFAULT_POLICY,
    UserProfile,
    LoanTerms,
    LoanRequest,
    Loan,
    LoanSummary,
    Clock,
    IdentityProvider,
    LedgerStore,
    PaymentRail,
    PaymentReceipt,
    LedgerResult,
    SECONDS_PER_DAY,
    SECONDS_PER_YEAR,
    RATE_BASIS_PERCENT,
    RATE_BASIS_BPS,
)

# Engine (pure functions)
from .engine import (
    validate_amount,
    validate_terms,
    calculate_interest_accrual,
    calculate_pending_interest,
    interest_due,
    is_fully_repaid,
    accept_request,
    accrue_interest,
    apply_repayment,
    compute_repayment_amount,
    is_due_for_automation,
    check_default,
    mark_defaulted,
    modify_terms,
    extend_duration,
    summarize,
)

# Collaborators
from .clock import SystemClock, ManualClock
from .identity import StaticIdentityProvider
from .payments import InMemoryPaymentRail

# Stores
from .store import InMemoryStore, SqliteStore, LedgerStores, encode_record, decode_record

# API
from .api import LoanLedger


__all__ = [
    # Core
    'Identity', 'LoanStatus', 'RequestStatus', 'ErrorKind',
    'LedgerError', 'NotFound', 'InvalidPayload', 'PaymentFailed', 'PaymentCompleted',
    'LoanPolicy', 'DEFAULT_POLICY',
    'UserProfile', 'LoanTerms', 'LoanRequest', 'Loan', 'LoanSummary',
    'Clock', 'IdentityProvider', 'LedgerStore', 'PaymentRail', 'PaymentReceipt',
    'LedgerResult',
    'SECONDS_PER_DAY', 'SECONDS_PER_YEAR', 'RATE_BASIS_PERCENT', 'RATE_BASIS_BPS',
    # Engine
    'validate_amount', 'validate_terms',
    'calculate_interest_accrual', 'calculate_pending_interest', 'interest_due',
    'is_fully_repaid', 'accept_request', 'accrue_interest', 'apply_repayment',
    'compute_repayment_amount', 'is_due_for_automation', 'check_default',
    'mark_defaulted', 'modify_terms', 'extend_duration', 'summarize',
    # Collaborators
    'SystemClock', 'ManualClock', 'StaticIdentityProvider', 'InMemoryPaymentRail',
    # Stores
    'InMemoryStore', 'SqliteStore', 'LedgerStores', 'encode_record', 'decode_record',
    # API
    'LoanLedger',
]

__version__ = '1.0.0'
