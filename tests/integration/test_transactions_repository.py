import pytest

from cpadocs.database.repositories.transactions_repository import TransactionsRepository
from cpadocs.documents.models import Document
from cpadocs.ledger.models import UnifiedTransaction


def _transaction(document: Document, index: int, amount: float) -> UnifiedTransaction:
    return UnifiedTransaction(
        transaction_id=f"{document.id}:bank_statement:0:{index}",
        document_id=document.id,
        client_id="client-1",
        document_source="bank_statement",
        amount=amount,
        transaction_date=f"2024-03-0{index + 1}",
        description="POS PURCHASE STORE #123",
        transaction_type="pos_purchase",
        debit_credit="debit",
        raw_data={"amount_line": -amount},
    )


@pytest.mark.integration
class TestInsertMany:
    def test_insert_and_list(self, seed_document: Document, user_id: str) -> None:
        repo = TransactionsRepository()

        repo.insert_many([_transaction(seed_document, 0, 42.5), _transaction(seed_document, 1, 10.0)])

        rows = repo.list_for_user(user_id)
        assert [r.amount for r in rows] == [10.0, 42.5]
        assert rows[0].transaction_date == "2024-03-02"
        assert rows[1].raw_data == {"amount_line": -42.5}

    def test_reinsert_is_idempotent(self, seed_document: Document, user_id: str) -> None:
        repo = TransactionsRepository()
        rows = [_transaction(seed_document, 0, 42.5)]

        repo.insert_many(rows)
        repo.insert_many(rows)

        assert len(repo.list_for_user(user_id)) == 1

    def test_client_filter(self, seed_document: Document, user_id: str) -> None:
        repo = TransactionsRepository()
        repo.insert_many([_transaction(seed_document, 0, 42.5)])

        assert repo.list_for_user(user_id, "client-2") == []
        assert len(repo.list_for_user(user_id, "client-1")) == 1

    def test_empty_batch(self, integration_pool: None) -> None:
        assert TransactionsRepository().insert_many([]) == 0
