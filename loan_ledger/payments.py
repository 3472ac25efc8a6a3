"""
payments.py - In-memory payment rail

Real deployments transfer value through an external ledger. InMemoryPaymentRail
implements the PaymentRail protocol for tests and demos: it keeps per-identity
balances, refuses overdrafts, and treats a repeated memo as already settled.
"""

from typing import Dict, List, Optional, Set

from .core import Identity, PaymentReceipt, PaymentFailed, PaymentCompleted


class InMemoryPaymentRail:
    """
    Payment rail with explicit balances and an idempotency set of memos.

    Args:
        balances: Initial balance per identity
        allow_overdraft: If True, transfers never fail for lack of funds
    """

    def __init__(self, balances: Optional[Dict[Identity, int]] = None, allow_overdraft: bool = False):
        self.balances: Dict[Identity, int] = dict(balances or {})
        self.allow_overdraft = allow_overdraft
        self.receipts: List[PaymentReceipt] = []
        self.seen_memos: Set[str] = set()
        self.offline = False

    def balance_of(self, identity: Identity) -> int:
        return self.balances.get(identity, 0)

    def transfer(self, source: Identity, dest: Identity, amount: int, memo: str) -> PaymentReceipt:
        """
        Move amount from source to dest.

        Raises:
            PaymentCompleted: If memo was already settled
            PaymentFailed: If the rail is offline, amount is not positive,
                           or source cannot cover the amount
        """
        if memo in self.seen_memos:
            raise PaymentCompleted(f"payment {memo} already completed")
        if self.offline:
            raise PaymentFailed(f"payment {memo} failed: rail offline")
        if amount <= 0:
            raise PaymentFailed(f"payment {memo} failed: amount must be positive, got {amount}")
        if not self.allow_overdraft and self.balance_of(source) < amount:
            raise PaymentFailed(
                f"payment {memo} failed: {source} has {self.balance_of(source)}, needs {amount}"
            )

        self.balances[source] = self.balance_of(source) - amount
        self.balances[dest] = self.balance_of(dest) + amount
        receipt = PaymentReceipt(source=source, dest=dest, amount=amount, memo=memo)
        self.receipts.append(receipt)
        self.seen_memos.add(memo)
        return receipt

    def __repr__(self):
        return f"InMemoryPaymentRail({len(self.receipts)} receipts)"
