"""
Ledger

Holds the transaction log and the category set, and derives the
financial snapshot from them.

DESIGN DECISION: The snapshot is never patched incrementally. Every read
rescans the full collection, so a caller can never see a stale or drifted
aggregate after a mutation it issued. An O(n) scan is cheap at the size of
a personal ledger.

All mutations are synchronous and validate before they touch state:
either the whole operation applies or nothing does.
"""

from decimal import Decimal
from typing import Any, Iterable, Iterator, Mapping, Optional, Union
from uuid import UUID

from pydantic import ValidationError

from zenith.errors import InvalidInputError
from zenith.models.finance import (
    DEFAULT_CATEGORIES,
    FinancialSnapshot,
    Transaction,
    TransactionDraft,
    TransactionType,
)


DraftInput = Union[TransactionDraft, Mapping[str, Any]]


class CategorySet:
    """
    Append-only, order-preserving set of category labels.

    Labels are deduplicated by exact match ("Dining Out" and "dining out"
    are two categories).
    """

    def __init__(self, seed: Iterable[str] = DEFAULT_CATEGORIES):
        self._labels: list[str] = []
        for label in seed:
            self.add(label)

    def add(self, label: str) -> bool:
        """Register a label. Returns True if it was new."""
        if label in self._labels:
            return False
        self._labels.append(label)
        return True

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    def __contains__(self, label: object) -> bool:
        return label in self._labels

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._labels))

    def __len__(self) -> int:
        return len(self._labels)


def _to_draft(data: DraftInput) -> TransactionDraft:
    """Validate raw user input into a draft, mapping pydantic errors to InvalidInputError."""
    if isinstance(data, TransactionDraft):
        return data
    try:
        return TransactionDraft.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise InvalidInputError(
            f"Invalid transaction: {first.get('msg', str(e))}",
            field=field,
        ) from e


class Ledger:
    """
    The transaction log plus derived aggregates.

    Transactions are kept newest first, which is also display order.
    """

    def __init__(self, categories: Optional[CategorySet] = None):
        self._transactions: list[Transaction] = []
        self._categories = categories if categories is not None else CategorySet()

    @property
    def transactions(self) -> list[Transaction]:
        """Copy of the collection, newest first."""
        return list(self._transactions)

    @property
    def categories(self) -> CategorySet:
        return self._categories

    def __len__(self) -> int:
        return len(self._transactions)

    def add_transaction(
        self,
        data: DraftInput,
    ) -> tuple[Transaction, FinancialSnapshot, bool]:
        """
        Record a transaction.

        Returns:
            (transaction, fresh_snapshot, category_was_new)

        Raises:
            InvalidInputError: nothing was recorded
        """
        draft = _to_draft(data)
        transaction = Transaction(**draft.model_dump())

        self._transactions.insert(0, transaction)
        is_new_category = self._categories.add(transaction.category)

        return transaction, self.snapshot(), is_new_category

    def add_transactions(
        self,
        batch: Iterable[DraftInput],
    ) -> tuple[list[Transaction], FinancialSnapshot, list[str]]:
        """
        Record several transactions as one balance update.

        Every draft is validated before any is recorded, so an invalid
        entry leaves the ledger untouched.

        Returns:
            (transactions_in_submission_order, fresh_snapshot, new_categories)
        """
        drafts = [_to_draft(d) for d in batch]

        added: list[Transaction] = []
        new_categories: list[str] = []
        for draft in drafts:
            transaction = Transaction(**draft.model_dump())
            self._transactions.insert(0, transaction)
            if self._categories.add(transaction.category):
                new_categories.append(transaction.category)
            added.append(transaction)

        return added, self.snapshot(), new_categories

    def delete_transaction(self, transaction_id: UUID) -> tuple[bool, FinancialSnapshot]:
        """
        Remove a transaction by id.

        An unknown id is a no-op, not an error.

        Returns:
            (was_removed, fresh_snapshot)
        """
        remaining = [t for t in self._transactions if t.id != transaction_id]
        removed = len(remaining) != len(self._transactions)
        self._transactions = remaining
        return removed, self.snapshot()

    def get(self, transaction_id: UUID) -> Optional[Transaction]:
        for t in self._transactions:
            if t.id == transaction_id:
                return t
        return None

    def snapshot(self) -> FinancialSnapshot:
        """Aggregate income, expenses and balance over the full ledger."""
        income = Decimal("0")
        expenses = Decimal("0")
        for t in self._transactions:
            if t.type == TransactionType.INCOME:
                income += t.amount
            else:
                expenses += t.amount

        return FinancialSnapshot(
            total_income=income,
            total_expenses=expenses,
            balance=income - expenses,
        )

    def recent(self, limit: int) -> list[Transaction]:
        """The newest `limit` transactions, newest first."""
        if limit <= 0:
            return []
        return self._transactions[:limit]

    def filter(
        self,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        """Transactions matching the type and/or category, newest first."""
        return [
            t for t in self._transactions
            if (transaction_type is None or t.type == transaction_type)
            and (category is None or t.category == category)
        ]
