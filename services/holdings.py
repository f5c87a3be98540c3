"""Asset and liability services for database operations."""

from decimal import Decimal
from typing import List
from models.holding import Asset, Liability


class AssetService:
    """Service for managing assets."""

    def __init__(self, db_manager):
        """Initialize the asset service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, organization_id: int, name: str, current_value: Decimal) -> Asset:
        """Create a new asset.

        Args:
            organization_id: Owning organization.
            name: Asset name.
            current_value: Current market value.

        Returns:
            The created Asset object with id populated.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO assets (organization_id, name, current_value) VALUES (?, ?, ?)",
                (organization_id, name, float(current_value)),
            )
            asset_id = cursor.lastrowid

        return Asset(
            id=asset_id,
            organization_id=organization_id,
            name=name,
            current_value=current_value,
        )

    def find_by_organization(self, organization_id: int) -> List[Asset]:
        """Get all assets of an organization, ordered by id."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT id, organization_id, name, current_value, is_active
                FROM assets
                WHERE organization_id = ?
                ORDER BY id
                """,
                (organization_id,),
            )
            return [
                Asset(
                    id=row[0],
                    organization_id=row[1],
                    name=row[2],
                    current_value=Decimal(str(row[3])),
                    is_active=bool(row[4]),
                )
                for row in cursor.fetchall()
            ]

    def sum_values(self, organization_id: int) -> Decimal:
        """Total current value of every asset of an organization.

        Args:
            organization_id: The organization to sum.

        Returns:
            Sum of current values, Decimal("0") when there are no assets.
        """
        total = sum(
            (asset.current_value for asset in self.find_by_organization(organization_id)),
            Decimal("0"),
        )
        return total


class LiabilityService:
    """Service for managing liabilities."""

    def __init__(self, db_manager):
        """Initialize the liability service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, organization_id: int, name: str, current_amount: Decimal) -> Liability:
        """Create a new liability.

        Args:
            organization_id: Owning organization.
            name: Liability name.
            current_amount: Outstanding balance.

        Returns:
            The created Liability object with id populated.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO liabilities (organization_id, name, current_amount) VALUES (?, ?, ?)",
                (organization_id, name, float(current_amount)),
            )
            liability_id = cursor.lastrowid

        return Liability(
            id=liability_id,
            organization_id=organization_id,
            name=name,
            current_amount=current_amount,
        )

    def find_by_organization(self, organization_id: int) -> List[Liability]:
        """Get all liabilities of an organization, ordered by id."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT id, organization_id, name, current_amount
                FROM liabilities
                WHERE organization_id = ?
                ORDER BY id
                """,
                (organization_id,),
            )
            return [
                Liability(
                    id=row[0],
                    organization_id=row[1],
                    name=row[2],
                    current_amount=Decimal(str(row[3])),
                )
                for row in cursor.fetchall()
            ]

    def sum_amounts(self, organization_id: int) -> Decimal:
        """Total outstanding balance of an organization's liabilities."""
        return sum(
            (item.current_amount for item in self.find_by_organization(organization_id)),
            Decimal("0"),
        )
