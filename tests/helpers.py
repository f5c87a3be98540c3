"""Helper utilities for tests."""

from datetime import date
from decimal import Decimal

from models.transaction import Transaction

ORG_ID = 1
OTHER_ORG_ID = 2


def make_category(services, name, category_type="expense", parent=None, **fields):
    """Create a category through the hierarchy engine.

    Args:
        services: Services container.
        name: Category name.
        category_type: Category type.
        parent: Optional parent CategoryNode.
        **fields: Extra CategoryCreate fields (organization_id, display_order, ...).

    Returns:
        The created CategoryNode.
    """
    data = {
        "organization_id": ORG_ID,
        "name": name,
        "type": category_type,
        "parent_id": parent.id if parent else None,
    }
    data.update(fields)
    return services.hierarchy.create_category(data)


def add_transaction(
    services,
    amount,
    transaction_date=None,
    category=None,
    organization_id=ORG_ID,
    description="Test transaction",
):
    """Store a transaction with a signed amount.

    Args:
        services: Services container.
        amount: Signed amount; negative for expenses.
        transaction_date: Defaults to 2026-03-05.
        category: Optional CategoryNode or Category to assign.
        organization_id: Owning organization.
        description: Transaction description.

    Returns:
        The stored Transaction.
    """
    return services.transactions.create(
        Transaction(
            id=None,
            organization_id=organization_id,
            transaction_date=transaction_date or date(2026, 3, 5),
            description=description,
            amount=Decimal(str(amount)),
            category_id=category.id if category else None,
        )
    )
