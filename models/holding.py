"""Asset and liability records read by goal progress calculations."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class Asset:
    id: int
    organization_id: int
    name: str
    current_value: Decimal
    is_active: bool = True


@dataclass
class Liability:
    id: int
    organization_id: int
    name: str
    current_amount: Decimal  # outstanding balance, positive
