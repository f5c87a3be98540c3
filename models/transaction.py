from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass
class Transaction:
    id: Optional[int]  # None until stored
    organization_id: int
    transaction_date: date
    description: str
    amount: Decimal  # signed: positive is inflow, negative is outflow
    category_id: Optional[int] = None

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    def to_dict(self) -> dict:
        """Convert transaction to dictionary for database storage."""
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "transaction_date": self.transaction_date.isoformat(),
            "description": self.description,
            "amount": float(self.amount),
            "category_id": self.category_id,
        }
