"""Transaction service for database operations."""

from typing import List, Optional
from datetime import date
from decimal import Decimal
from models.transaction import Transaction

_TRANSACTION_SELECT_FIELDS = (
    "id, organization_id, transaction_date, description, amount, category_id"
)


class TransactionService:
    """Service for managing transactions.

    Only what the category and goal engines need: storing transactions,
    listing them by date range and detaching them from a category.
    """

    def __init__(self, db_manager, tree_cache=None):
        """Initialize the transaction service.

        Args:
            db_manager: Database manager instance for database operations.
            tree_cache: Optional CategoryTreeCache to invalidate when category
                usage counts change.
        """
        self.db_manager = db_manager
        self.tree_cache = tree_cache

    def create(self, transaction: Transaction) -> Transaction:
        """Create a single transaction in the database.

        Args:
            transaction: Transaction object to insert. Its id is ignored.

        Returns:
            The Transaction with its id populated.

        Raises:
            StorageError: If the insert fails (e.g., unknown category).
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO transactions (organization_id, transaction_date, description,
                    amount, category_id)
                VALUES (:organization_id, :transaction_date, :description,
                    :amount, :category_id)
                """,
                transaction.to_dict(),
            )
            transaction.id = cursor.lastrowid

        if transaction.category_id is not None:
            self._invalidate(transaction.organization_id)

        return transaction

    def bulk_create(self, transactions: List[Transaction]) -> int:
        """Create multiple transactions in a single database transaction.

        Args:
            transactions: List of Transaction objects to insert.

        Returns:
            Number of transactions inserted.

        Raises:
            StorageError: If any insert fails. All inserts are rolled back.
        """
        if not transactions:
            return 0

        with self.db_manager.transaction():
            for transaction in transactions:
                self.create(transaction)

        return len(transactions)

    def find(self, transaction_id: int) -> Optional[Transaction]:
        """Get a single transaction by ID.

        Args:
            transaction_id: The transaction ID.

        Returns:
            Transaction object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_TRANSACTION_SELECT_FIELDS} FROM transactions WHERE id = ?",
                (transaction_id,),
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_transaction(row)
            return None

    def find_by_category(self, category_id: int) -> List[Transaction]:
        """Get all transactions that reference a category.

        Args:
            category_id: The category ID to filter by.

        Returns:
            List of Transaction objects ordered by transaction_date (newest first).
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_TRANSACTION_SELECT_FIELDS}
                FROM transactions
                WHERE category_id = ?
                ORDER BY transaction_date DESC, id
                """,
                (category_id,),
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def list_transactions(
        self,
        organization_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        """Get an organization's transactions, optionally within a date range.

        Args:
            organization_id: The organization to list transactions for.
            start_date: Optional inclusive start date.
            end_date: Optional inclusive end date.

        Returns:
            List of Transaction objects ordered by date (newest first).
        """
        query = f"""
            SELECT {_TRANSACTION_SELECT_FIELDS}
            FROM transactions
            WHERE organization_id = ?
        """
        params = [organization_id]

        if start_date is not None:
            query += " AND transaction_date >= ?"
            params.append(start_date.isoformat())

        if end_date is not None:
            query += " AND transaction_date <= ?"
            params.append(end_date.isoformat())

        query += " ORDER BY transaction_date DESC, id"

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def detach_category(self, category_id: int) -> int:
        """Clear the category reference on every transaction that uses it.

        Args:
            category_id: The category being removed.

        Returns:
            Number of transactions updated.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "UPDATE transactions SET category_id = NULL WHERE category_id = ?",
                (category_id,),
            )
            return cursor.rowcount

    def _invalidate(self, organization_id: int) -> None:
        if self.tree_cache is not None:
            self.tree_cache.invalidate(organization_id)

    def _row_to_transaction(self, row: tuple) -> Transaction:
        """Convert a database row to a Transaction object."""
        return Transaction(
            id=row[0],
            organization_id=row[1],
            transaction_date=date.fromisoformat(row[2]),
            description=row[3],
            amount=Decimal(str(row[4])),
            category_id=row[5],
        )
