"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the loan ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_accrual.py - Interest accrual is exact and path-independent
2. test_lifecycle.py - Status transitions, terminal states, repayment bounds
3. test_atomicity.py - Failed operations leave the stores unchanged

These tests use hypothesis for property-based testing.
"""
