from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from cpadocs.database.connection import get_connection
from cpadocs.ledger.models import UnifiedTransaction


def row_to_transaction(row: dict[str, Any]) -> UnifiedTransaction:
    amount = row.get("amount")
    transaction_date = row.get("transaction_date")
    due_date = row.get("due_date")
    document_id = row.get("document_id")
    return UnifiedTransaction(
        transaction_id=row["transaction_id"],
        document_id=str(document_id) if document_id is not None else "",
        client_id=row["client_id"],
        document_source=row["document_source"],
        amount=float(amount) if amount is not None else 0.0,
        currency=row.get("currency") or "USD",
        transaction_date=transaction_date.isoformat() if transaction_date else None,
        description=row.get("description"),
        transaction_type=row.get("transaction_type"),
        debit_credit=row.get("debit_credit"),
        reference_number=row.get("reference_number"),
        counterparty=row.get("counterparty"),
        counterparty_address=row.get("counterparty_address"),
        invoice_number=row.get("invoice_number"),
        due_date=due_date.isoformat() if due_date else None,
        payment_status=row.get("payment_status"),
        payment_method=row.get("payment_method"),
        line_items=row.get("line_items") or [],
        raw_data=row.get("raw_data") or {},
    )


class TransactionsRepository:
    """Database operations for the unified_transactions table."""

    def insert_many(self, transactions: list[UnifiedTransaction]) -> int:
        """Bulk insert ledger rows in one transaction, skipping known transaction ids.

        Returns the number of rows submitted.
        """
        if not transactions:
            return 0
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.executemany(
                    """
                    INSERT INTO unified_transactions
                        (transaction_id, document_id, client_id, document_source,
                         transaction_date, description, amount, currency,
                         transaction_type, debit_credit, reference_number, counterparty,
                         counterparty_address, invoice_number, due_date, payment_status,
                         payment_method, line_items, raw_data)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                            %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (transaction_id) DO NOTHING
                    """,
                    [
                        (
                            t.transaction_id,
                            t.document_id,
                            t.client_id,
                            t.document_source,
                            t.transaction_date,
                            t.description,
                            t.amount,
                            t.currency,
                            t.transaction_type,
                            t.debit_credit,
                            t.reference_number,
                            t.counterparty,
                            t.counterparty_address,
                            t.invoice_number,
                            t.due_date,
                            t.payment_status,
                            t.payment_method,
                            Jsonb(t.line_items),
                            Jsonb(t.raw_data),
                        )
                        for t in transactions
                    ],
                )
            conn.commit()
        return len(transactions)

    def list_for_user(
        self,
        user_id: str,
        client_id: str | None = None,
    ) -> list[UnifiedTransaction]:
        """List ledger rows whose source document belongs to user_id."""
        sql = """
            SELECT t.*
            FROM unified_transactions t
            JOIN documents d ON d.id = t.document_id
            WHERE d.user_id = %s
        """
        params: tuple[Any, ...] = (user_id,)
        if client_id is not None:
            sql += " AND t.client_id = %s"
            params = (user_id, client_id)
        sql += " ORDER BY t.transaction_date DESC NULLS LAST"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        return [row_to_transaction(row) for row in rows]
