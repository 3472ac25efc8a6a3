#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Loan Ledger Step by Step

A walkthrough of one marketplace: borrowers post requests, lenders fund them,
and the ledger tracks repayment, interest and default. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation    - Collaborators, profiles, saved funds
  4-6:  Loans         - Requests, acceptance, repayment with interest
  7-9:  Time          - Interest sweeps, extensions, default detection
  10:   Automation    - Installments drawn from saved funds
  11:   Durability    - The same ledger on SQLite

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import os
import sys
import tempfile

from loan_ledger import (
    LoanLedger, LedgerStores, LoanTerms,
    ManualClock, StaticIdentityProvider, InMemoryPaymentRail,
    SECONDS_PER_YEAR,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    # Payment rail balances
    alice_cash: int = 100
    bob_cash: int = 10_000
    carol_cash: int = 5_000

    # Alice's loan: 1000 at 5% a year, due in two years
    alice_amount: int = 1_000
    alice_rate: int = 5
    alice_duration: int = 2 * SECONDS_PER_YEAR

    # Dave's loan: 400 interest-free over 4 seconds, so installments are visible
    dave_amount: int = 400
    dave_duration: int = 4


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


# ============================================================================
# PHASE 1: FOUNDATION
# ============================================================================

def step_01_collaborators():
    step_header(1, "Collaborators",
        "A ledger is built from stores, a clock, an identity provider and a payment rail.")

    clock = ManualClock(0)
    identity = StaticIdentityProvider("alice")
    rail = InMemoryPaymentRail({
        "alice": CONFIG.alice_cash, "bob": CONFIG.bob_cash, "carol": CONFIG.carol_cash,
    })
    ledger = LoanLedger(LedgerStores.in_memory(), clock, identity, payments=rail, verbose=True)

    print(f"Clock:    {clock}")
    print(f"Identity: {identity}")
    print(f"Rail:     {rail}")
    return ledger, clock, identity, rail


def step_02_profiles(ledger, identity):
    step_header(2, "User Profiles", "Every caller registers under their own identity.")
    for who, name in (("alice", "Alice"), ("bob", "Bob"), ("dave", "Dave")):
        with identity.acting_as(who):
            ledger.register_user(name)


def step_03_save_funds(ledger, identity):
    step_header(3, "Saved Funds", "Saved balances fund automated repayments later on.")
    with identity.acting_as("dave"):
        ledger.save_funds(150)
        profile = ledger.save_funds(250).unwrap()
    print(f"\nDave's saved balance: {profile.balance}")


# ============================================================================
# PHASE 2: LOANS
# ============================================================================

def step_04_requests(ledger, identity):
    step_header(4, "Loan Requests", "Borrowers publish terms; anyone else may fund them.")
    with identity.acting_as("alice"):
        alice_request = ledger.create_loan_request(
            LoanTerms(CONFIG.alice_amount, CONFIG.alice_rate, CONFIG.alice_duration)).unwrap()
    with identity.acting_as("dave"):
        dave_request = ledger.create_loan_request(
            LoanTerms(CONFIG.dave_amount, 0, CONFIG.dave_duration)).unwrap()

    section_header("Open requests")
    for request in ledger.get_loan_requests():
        print(f"  {request.owner:6} {request.amount:>6} at {request.interest_rate}% for {request.duration}s")
    return alice_request, dave_request


def step_05_accept(ledger, identity, rail, alice_request, dave_request):
    step_header(5, "Acceptance", "The caller lends, the request owner borrows, the principal moves.")
    with identity.acting_as("bob"):
        alice_loan = ledger.accept_loan_request(alice_request).unwrap()
    with identity.acting_as("carol"):
        dave_loan = ledger.accept_loan_request(dave_request).unwrap()

    section_header("A request funds one loan only")
    with identity.acting_as("carol"):
        print(ledger.accept_loan_request(alice_request))

    section_header("Rail balances")
    for who in ("alice", "bob", "carol", "dave"):
        print(f"  {who:6} {rail.balance_of(who):>7}")
    return alice_loan, dave_loan


def step_06_repayment(ledger, clock, identity, alice_loan):
    step_header(6, "Repayment", "Principal plus simple interest settles the loan.")
    clock.advance_to(SECONDS_PER_YEAR)
    summary = ledger.get_loan_summary(alice_loan.id).unwrap()
    print(f"After one year Alice owes {summary.current_amount} "
          f"({summary.accumulated_interest} interest)")

    with identity.acting_as("alice"):
        ledger.make_repayment(alice_loan.id, 500)
        print(ledger.make_repayment(alice_loan.id, 10_000))
        ledger.make_repayment(alice_loan.id, summary.current_amount - 500)
    print(f"\nStatus: {ledger.get_loan_status(alice_loan.id).value.value}")


# ============================================================================
# PHASE 3: TIME
# ============================================================================

def step_07_interest_sweep(ledger):
    step_header(7, "Interest Sweep", "Sweeps accrue only the time elapsed since the last one.")
    print(f"Accrued on: {ledger.accumulate_interest()}")
    print(f"Again:      {ledger.accumulate_interest()}")


def step_08_extension(ledger, clock, identity, dave_loan):
    step_header(8, "Extension", "A longer duration restarts the due date from now.")
    with identity.acting_as("dave"):
        print(ledger.request_loan_extension(dave_loan.id, CONFIG.dave_duration))
        extended = ledger.request_loan_extension(dave_loan.id, 2 * CONFIG.dave_duration).unwrap()
    print(f"\nNew due date: {extended.due_date} (now is {clock.now()})")
    return extended


def step_09_default(ledger, clock, dave_loan):
    step_header(9, "Default Check", "Nothing defaults until the due date has passed.")
    clock.advance_to(dave_loan.due_date)
    print(f"At the due date:   {ledger.check_for_default()}")


# ============================================================================
# PHASE 4: AUTOMATION
# ============================================================================

def step_10_automation(ledger, identity, dave_loan):
    step_header(10, "Automated Repayment", "Loans at their due date pay an installment from savings.")
    with identity.acting_as("carol"):
        ledger.register_user("Carol")
    ledger.automate_loan_repayment()

    summary = ledger.get_loan_summary(dave_loan.id).unwrap()
    print(f"\nDave still owes {summary.current_amount}")
    print(f"Dave saved:  {ledger.get_user_profile('dave').value.balance}")
    print(f"Carol saved: {ledger.get_user_profile('carol').value.balance}")

    with identity.acting_as("dave"):
        ledger.make_repayment(dave_loan.id, summary.current_amount)
    print(f"\nDave's loans: {[loan.status.value for loan in ledger.get_user_loan_history('dave')]}")


# ============================================================================
# PHASE 5: DURABILITY
# ============================================================================

def step_11_sqlite():
    step_header(11, "Durability", "Swap the stores; every operation behaves the same.")
    path = os.path.join(tempfile.mkdtemp(), "ledger.db")
    clock = ManualClock(0)
    identity = StaticIdentityProvider("erin")

    ledger = LoanLedger(LedgerStores.sqlite(path), clock, identity, verbose=False)
    request_id = ledger.create_loan_request(LoanTerms(750, 3, 3600)).unwrap()
    with identity.acting_as("frank"):
        loan = ledger.accept_loan_request(request_id).unwrap()
    ledger.stores.close()

    reopened = LoanLedger(LedgerStores.sqlite(path), clock, identity, verbose=False)
    clock.advance_to(3601)
    print(f"Reopened {path}")
    print(f"Defaulted: {reopened.check_for_default() == [loan.id]}")
    reopened.stores.close()


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LOAN LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger, clock, identity, rail = step_01_collaborators()
    wait_for_enter()
    step_02_profiles(ledger, identity)
    wait_for_enter()
    step_03_save_funds(ledger, identity)
    wait_for_enter()

    alice_request, dave_request = step_04_requests(ledger, identity)
    wait_for_enter()
    alice_loan, dave_loan = step_05_accept(ledger, identity, rail, alice_request, dave_request)
    wait_for_enter()
    step_06_repayment(ledger, clock, identity, alice_loan)
    wait_for_enter()

    step_07_interest_sweep(ledger)
    wait_for_enter()
    dave_loan = step_08_extension(ledger, clock, identity, dave_loan)
    wait_for_enter()
    step_09_default(ledger, clock, dave_loan)
    wait_for_enter()

    step_10_automation(ledger, identity, dave_loan)
    wait_for_enter()
    step_11_sqlite()

    print(f"\n{'='*70}")
    print("Done. Run tests: pytest tests/")


if __name__ == "__main__":
    main()
