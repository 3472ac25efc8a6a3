"""
api.py - Ledger API

LoanLedger is the set of externally callable operations. It is the only
module that writes to the stores: every operation validates input, asks the
engine for the complete next state, and persists the result.

Key responsibilities:
    - Resolve the caller through the IdentityProvider and time through the Clock
    - Validate every precondition before the first store write
    - Call the payment rail (if any) before persisting, so a failed transfer
      leaves the store untouched
    - Return LedgerResult values instead of raising to the caller
"""

from __future__ import annotations
from dataclasses import replace
from typing import Callable, List, Mapping, Optional
import uuid

from . import engine
from .core import (
    # Types
    Identity, Loan, LoanPolicy, LoanRequest, LoanStatus, LoanSummary,
    LoanTerms, RequestStatus, UserProfile, LedgerResult,
    Clock, IdentityProvider, PaymentRail,
    # Constants
    DEFAULT_POLICY,
    # Exceptions
    LedgerError, NotFound, InvalidPayload,
)
from .store import LedgerStores


def _as_terms(value) -> LoanTerms:
    if isinstance(value, LoanTerms):
        return value
    if isinstance(value, Mapping):
        try:
            return LoanTerms(
                amount=value['amount'],
                interest_rate=value['interest_rate'],
                duration=value['duration'],
            )
        except KeyError as e:
            raise InvalidPayload(f"loan terms missing field {e.args[0]!r}") from e
    raise InvalidPayload(f"expected loan terms, got {type(value).__name__}")


class LoanLedger:
    """
    Peer-to-peer loan ledger over injected stores and collaborators.

    Thread Safety:
        Mutating calls must be serialized by the host. Read-only calls
        may run concurrently with each other.

    Example:
        clock = ManualClock(0)
        identity = StaticIdentityProvider("alice")
        ledger = LoanLedger(LedgerStores.in_memory(), clock, identity)

        ledger.register_user("Alice")
        request_id = ledger.create_loan_request(LoanTerms(1000, 5, 3600)).unwrap()

        with identity.acting_as("bob"):
            loan = ledger.accept_loan_request(request_id).unwrap()

        ledger.make_repayment(loan.id, 400)
    """

    def __init__(
        self,
        stores: LedgerStores,
        clock: Clock,
        identity: IdentityProvider,
        payments: Optional[PaymentRail] = None,
        policy: Optional[LoanPolicy] = None,
        id_factory: Optional[Callable[[], str]] = None,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            stores: Loan, request and profile stores
            clock: Source of the current time
            identity: Source of the caller's identity
            payments: External payment rail; no transfers are made if None
            policy: Interest and registration settings (default: DEFAULT_POLICY)
            id_factory: Generates loan and request ids (default: uuid4)
            verbose: Print one line per operation (default: True)
        """
        self.stores = stores
        self.clock = clock
        self.identity = identity
        self.payments = payments
        self.policy = policy or DEFAULT_POLICY
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.verbose = verbose

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _log(self, icon: str, text: str) -> None:
        if self.verbose:
            print(f"{icon} {text}")

    def _run(self, operation: str, action: Callable[[], object], mutating: bool = True) -> LedgerResult:
        """Run action, turning LedgerError into a failed LedgerResult."""
        try:
            value = action()
        except LedgerError as e:
            self._log("✗", f"REJECTED {operation}: {e}")
            return LedgerResult.failure(e)
        if mutating:
            self._log("✓", f"APPLIED {operation}")
        return LedgerResult.success(value)

    def _load_loan(self, loan_id: str) -> Loan:
        loan = self.stores.loans.get(loan_id)
        if loan is None:
            raise NotFound(f"Loan with id={loan_id} not found")
        return loan

    def _load_profile(self, identity: Identity) -> UserProfile:
        profile = self.stores.profiles.get(identity)
        if profile is None:
            raise NotFound(f"User {identity} not found")
        return profile

    # ========================================================================
    # USER PROFILES
    # ========================================================================

    def register_user(self, name: str) -> LedgerResult:
        """
        Register the caller with a display name.

        Registering again overwrites the prior profile, saved balance
        included, unless the policy disallows re-registration.

        Returns:
            Ok(UserProfile), or Err(INVALID_PAYLOAD) for an empty name or a
            disallowed duplicate.
        """
        def action() -> UserProfile:
            if not isinstance(name, str) or not name.strip():
                raise InvalidPayload("name cannot be empty")
            caller = self.identity.current_caller()
            existing = self.stores.profiles.get(caller)
            if existing is not None and not self.policy.allow_reregistration:
                raise InvalidPayload(f"User {caller} is already registered")
            profile = UserProfile(identity=caller, name=name, balance=0)
            self.stores.profiles.put(caller, profile)
            return profile

        return self._run(f"register_user({name!r})", action)

    def save_funds(self, amount: int) -> LedgerResult:
        """Add amount to the caller's saved balance. Returns Ok(UserProfile)."""
        def action() -> UserProfile:
            engine.validate_amount("amount", amount)
            profile = self._load_profile(self.identity.current_caller())
            updated = replace(profile, balance=profile.balance + amount)
            self.stores.profiles.put(updated.identity, updated)
            return updated

        return self._run(f"save_funds({amount!r})", action)

    def get_user_profile(self, identity: Optional[Identity] = None) -> LedgerResult:
        """Read a profile; defaults to the caller's own."""
        target = identity if identity is not None else self.identity.current_caller()
        return self._run("get_user_profile", lambda: self._load_profile(target), mutating=False)

    # ========================================================================
    # LOAN REQUESTS
    # ========================================================================

    def create_loan_request(self, terms) -> LedgerResult:
        """
        Publish a loan request owned by the caller.

        Any other identity may accept it. Returns Ok(request_id).
        """
        def action() -> str:
            checked = _as_terms(terms)
            engine.validate_terms(checked.amount, checked.interest_rate, checked.duration)
            request = LoanRequest(
                id=self.id_factory(),
                owner=self.identity.current_caller(),
                amount=checked.amount,
                interest_rate=checked.interest_rate,
                duration=checked.duration,
                created_at=self.clock.now(),
            )
            self.stores.requests.put(request.id, request)
            return request.id

        return self._run("create_loan_request", action)

    def get_loan_requests(self) -> List[LoanRequest]:
        """All requests still open for funding, in creation order."""
        return [r for r in self.stores.requests.values() if r.status is RequestStatus.OPEN]

    def accept_loan_request(self, request_id: str) -> LedgerResult:
        """
        Fund an open request; the caller becomes the lender.

        The request owner becomes the borrower. The request is marked
        ACCEPTED so it cannot produce a second loan. If a payment rail is
        configured, the principal is disbursed lender -> borrower before
        anything is written.

        Returns:
            Ok(Loan), Err(NOT_FOUND) for an unknown request, Err(INVALID_PAYLOAD)
            for a consumed request or a caller funding their own request,
            Err(PAYMENT_FAILED) if the disbursement fails.
        """
        def action() -> Loan:
            request = self.stores.requests.get(request_id)
            if request is None:
                raise NotFound(f"Loan request with id={request_id} not found")
            if request.status is not RequestStatus.OPEN:
                raise InvalidPayload(
                    f"Loan request {request_id} was already accepted as loan {request.loan_id}"
                )

            loan = engine.accept_request(
                request.terms,
                borrower=request.owner,
                now=self.clock.now(),
                loan_id=self.id_factory(),
                lender=self.identity.current_caller(),
                request_id=request.id,
            )

            if self.payments is not None:
                self.payments.transfer(loan.lender, loan.borrower, loan.amount, memo=f"disburse:{loan.id}")

            # Request first: an interrupted accept can lose a request, never duplicate a loan
            self.stores.requests.put(
                request.id, replace(request, status=RequestStatus.ACCEPTED, loan_id=loan.id)
            )
            self.stores.loans.put(loan.id, loan)
            return loan

        return self._run(f"accept_loan_request({request_id})", action)

    # ========================================================================
    # LOANS
    # ========================================================================

    def make_repayment(self, loan_id: str, amount: int) -> LedgerResult:
        """
        Repay part or all of a loan.

        If a payment rail is configured, amount is transferred borrower ->
        lender before the loan is updated.

        Returns:
            Ok(Loan) with the new amount_repaid (status COMPLETED once fully
            repaid), Err(NOT_FOUND), Err(INVALID_PAYLOAD) for a non-positive
            amount, an overpayment or a non-active loan, Err(PAYMENT_FAILED).
        """
        def action() -> Loan:
            loan = self._load_loan(loan_id)
            updated = engine.apply_repayment(loan, amount, self.clock.now(), self.policy)
            if self.payments is not None and loan.lender is not None:
                self.payments.transfer(
                    loan.borrower, loan.lender, amount,
                    memo=f"repay:{loan.id}:{updated.amount_repaid}",
                )
            self.stores.loans.put(updated.id, updated)
            return updated

        return self._run(f"make_repayment({loan_id}, {amount!r})", action)

    def get_loan_status(self, loan_id: str) -> LedgerResult:
        """Returns Ok(LoanStatus) or Err(NOT_FOUND)."""
        return self._run("get_loan_status", lambda: self._load_loan(loan_id).status, mutating=False)

    def get_loan(self, loan_id: str) -> LedgerResult:
        """Returns Ok(Loan) or Err(NOT_FOUND)."""
        return self._run("get_loan", lambda: self._load_loan(loan_id), mutating=False)

    def get_loan_summary(self, loan_id: str) -> LedgerResult:
        """Returns Ok(LoanSummary) evaluated at the current time, or Err(NOT_FOUND)."""
        def action() -> LoanSummary:
            return engine.summarize(self._load_loan(loan_id), self.clock.now(), self.policy)

        return self._run("get_loan_summary", action, mutating=False)

    def modify_loan_terms(self, loan_id: str, new_terms) -> LedgerResult:
        """Replace amount, rate and duration of an active loan. Returns Ok(Loan)."""
        def action() -> Loan:
            loan = self._load_loan(loan_id)
            updated = engine.modify_terms(loan, _as_terms(new_terms), self.clock.now(), self.policy)
            self.stores.loans.put(updated.id, updated)
            return updated

        return self._run(f"modify_loan_terms({loan_id})", action)

    def request_loan_extension(self, loan_id: str, new_duration: int) -> LedgerResult:
        """Lengthen an active loan; due date becomes now + new_duration. Returns Ok(Loan)."""
        def action() -> Loan:
            loan = self._load_loan(loan_id)
            updated = engine.extend_duration(loan, new_duration, self.clock.now())
            self.stores.loans.put(updated.id, updated)
            return updated

        return self._run(f"request_loan_extension({loan_id}, {new_duration!r})", action)

    def get_user_loan_history(self, identity: Identity) -> List[Loan]:
        """Every loan where identity is borrower or lender, in creation order."""
        return [loan for loan in self.stores.loans.values() if loan.involves(identity)]

    def get_loans(self) -> List[Loan]:
        """The caller's active loans, as borrower or lender."""
        caller = self.identity.current_caller()
        return [
            loan for loan in self.stores.loans.values()
            if loan.status is LoanStatus.ACTIVE and loan.involves(caller)
        ]

    # ========================================================================
    # SWEEPS
    # ========================================================================

    def check_for_default(self) -> List[str]:
        """
        Mark every active, past-due, not fully repaid loan DEFAULTED.

        Returns:
            Ids of loans defaulted by this call. Loans already DEFAULTED
            are not reported again.
        """
        now = self.clock.now()
        defaulted: List[str] = []
        for loan in self.stores.loans.values():
            if not engine.check_default(loan, now, self.policy):
                continue
            updated = engine.mark_defaulted(loan, now, self.policy)
            self.stores.loans.put(updated.id, updated)
            defaulted.append(updated.id)
            self._log("✗", f"DEFAULTED loan {updated.id} (borrower={updated.borrower})")
        return defaulted

    def accumulate_interest(self) -> List[str]:
        """
        Accrue interest on every active loan up to now.

        Returns:
            Ids of the active loans processed.
        """
        now = self.clock.now()
        processed: List[str] = []
        for loan in self.stores.loans.values():
            if loan.status is not LoanStatus.ACTIVE:
                continue
            updated = engine.accrue_interest(loan, now, self.policy)
            if updated != loan:
                self.stores.loans.put(updated.id, updated)
            processed.append(updated.id)
        if processed:
            self._log("✓", f"ACCRUED interest on {len(processed)} loans")
        return processed

    def automate_loan_repayment(self) -> List[str]:
        """
        Collect one installment from every active loan that has reached its due date.

        The installment (engine.compute_repayment_amount) is taken from the
        borrower's saved balance, up to what that balance covers, and
        credited to the lender's saved balance. Loans whose borrower or
        lender has no profile, or whose borrower has nothing saved, are skipped.

        Writes per loan go borrower debit, then loan, then lender credit.
        An interrupted sweep can leave a debit the loan does not yet show,
        never a recorded payment that was not debited.

        Returns:
            Ids of loans that received a payment.
        """
        now = self.clock.now()
        repaid: List[str] = []
        for loan in self.stores.loans.values():
            if not engine.is_due_for_automation(loan, now):
                continue

            installment = engine.compute_repayment_amount(loan, now, self.policy)
            borrower = self.stores.profiles.get(loan.borrower)
            lender = self.stores.profiles.get(loan.lender) if loan.lender is not None else None
            if borrower is None or (loan.lender is not None and lender is None):
                self._log("·", f"SKIPPED loan {loan.id}: missing profile")
                continue

            paid = min(installment, borrower.balance)
            if paid <= 0:
                continue

            updated = engine.apply_repayment(loan, paid, now, self.policy)
            self.stores.profiles.put(borrower.identity, replace(borrower, balance=borrower.balance - paid))
            self.stores.loans.put(updated.id, updated)
            if lender is not None:
                self.stores.profiles.put(lender.identity, replace(lender, balance=lender.balance + paid))
            repaid.append(updated.id)
            self._log("✓", f"AUTO-REPAID {paid} on loan {updated.id} ({updated.status.value})")
        return repaid

    def __repr__(self):
        return f"LoanLedger(clock={self.clock!r}, identity={self.identity!r})"
