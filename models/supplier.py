"""Supplier and supplier ledger records."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class LedgerEntry:
    """A single transaction on a supplier account."""

    id: int
    supplier_id: int
    date: str
    transaction_type: str
    amount: float
    description: str = ""
    reference_number: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class LedgerRow:
    """A ledger entry with its debit/credit split and running balance."""

    entry: LedgerEntry
    debit: float
    credit: float
    running_balance: float


@dataclass
class Supplier:
    id: int
    name: str
    type: str = "OTHER"
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    balance: float = 0.0
    payment_term_id: Optional[int] = None
    payment_term_name: Optional[str] = None
    payment_term_days: Optional[int] = None
    created_at: Optional[str] = None
    ledger: List[LedgerEntry] = field(default_factory=list)

    @property
    def owes_supplier(self) -> bool:
        """A positive balance is money owed to the supplier."""
        return self.balance > 0
