"""Tests for the ledger and category set."""

import pytest
from decimal import Decimal
from uuid import uuid4

from zenith.errors import InvalidInputError
from zenith.ledger import CategorySet, Ledger
from zenith.models.finance import DEFAULT_CATEGORIES, TransactionType

from conftest import expense, income


class TestSnapshot:
    """Tests for derived aggregates."""

    def test_empty_ledger(self):
        snap = Ledger().snapshot()
        assert snap.total_income == 0
        assert snap.total_expenses == 0
        assert snap.balance == 0

    def test_single_expense_on_empty_ledger(self):
        """Coffee for 4.50 gives income 0, expenses 4.50, balance -4.50."""
        ledger = Ledger()
        _, snap, _ = ledger.add_transaction({
            "description": "Coffee",
            "amount": 4.50,
            "date": "2024-01-05",
            "type": "expense",
            "category": "Dining Out",
        })
        assert snap.total_income == Decimal("0")
        assert snap.total_expenses == Decimal("4.50")
        assert snap.balance == Decimal("-4.50")
        assert ledger.snapshot() == snap

    def test_balance_identity_holds_after_every_mutation(self):
        """balance == income - expenses after each add and delete."""
        ledger = Ledger()
        ids = []
        steps = [
            income(amount="3500"),
            expense(amount="150.75", category="Groceries"),
            expense(amount="65.50"),
            income(amount="0.10", category="Freelance"),
            expense(amount="1200", category="Rent"),
        ]
        for data in steps:
            t, snap, _ = ledger.add_transaction(data)
            ids.append(t.id)
            assert snap.balance == snap.total_income - snap.total_expenses

        for tid in [ids[1], uuid4(), ids[0], ids[4]]:
            _, snap = ledger.delete_transaction(tid)
            assert snap.balance == snap.total_income - snap.total_expenses

        assert ledger.snapshot().balance == Decimal("-65.40")

    def test_snapshot_is_idempotent(self):
        ledger = Ledger()
        ledger.add_transaction(income(amount="10"))
        ledger.add_transaction(expense(amount="3.33"))
        assert ledger.snapshot() == ledger.snapshot()

    def test_decimal_sums_do_not_drift(self):
        """Ten 0.10 incomes are exactly 1.00."""
        ledger = Ledger()
        for _ in range(10):
            ledger.add_transaction(income(amount="0.10"))
        assert ledger.snapshot().balance == Decimal("1.00")


class TestAddTransaction:
    """Tests for recording transactions."""

    def test_newest_first(self):
        ledger = Ledger()
        first, _, _ = ledger.add_transaction(income())
        second, _, _ = ledger.add_transaction(expense())
        assert [t.id for t in ledger.transactions] == [second.id, first.id]

    def test_ids_are_unique(self):
        ledger = Ledger()
        ids = {ledger.add_transaction(expense())[0].id for _ in range(5)}
        assert len(ids) == 5

    @pytest.mark.parametrize("field,value", [
        ("amount", "not a number"),
        ("amount", Decimal("-1")),
        ("amount", Decimal("NaN")),
        ("description", ""),
        ("category", "  "),
        ("type", "transfer"),
        ("date", "05/01/2024"),
    ])
    def test_invalid_input_does_not_mutate(self, field, value):
        """Bad drafts raise InvalidInputError and leave the ledger untouched."""
        ledger = Ledger()
        ledger.add_transaction(income())
        before = ledger.transactions
        categories_before = ledger.categories.labels

        data = expense(category="Brand New")
        data[field] = value
        with pytest.raises(InvalidInputError):
            ledger.add_transaction(data)

        assert ledger.transactions == before
        assert ledger.categories.labels == categories_before

    def test_invalid_input_reports_field(self):
        data = expense()
        data["amount"] = Decimal("-5")
        with pytest.raises(InvalidInputError) as exc:
            Ledger().add_transaction(data)
        assert exc.value.field == "amount"

    def test_zero_amount_is_allowed(self):
        _, snap, _ = Ledger().add_transaction(expense(amount="0"))
        assert snap.total_expenses == 0


class TestBatch:
    """Tests for add_transactions."""

    def test_batch_adds_all_and_returns_one_snapshot(self):
        ledger = Ledger()
        added, snap, new_categories = ledger.add_transactions([
            income(amount="200"),
            income(amount="150", category="Bonus"),
        ])
        assert len(added) == 2
        assert snap.balance == Decimal("350")
        assert new_categories == ["Bonus"]
        assert ledger.transactions[0].id == added[1].id

    def test_batch_with_invalid_entry_adds_nothing(self):
        ledger = Ledger()
        bad = expense()
        bad["description"] = ""
        with pytest.raises(InvalidInputError):
            ledger.add_transactions([income(), bad])
        assert len(ledger) == 0


class TestDeleteTransaction:
    """Tests for deleting transactions."""

    def test_delete_existing(self):
        ledger = Ledger()
        t, _, _ = ledger.add_transaction(expense(amount="20"))
        removed, snap = ledger.delete_transaction(t.id)
        assert removed is True
        assert len(ledger) == 0
        assert snap.balance == 0

    def test_get(self):
        ledger = Ledger()
        t, _, _ = ledger.add_transaction(expense())
        assert ledger.get(t.id) == t
        assert ledger.get(uuid4()) is None

    def test_delete_unknown_is_noop(self):
        ledger = Ledger()
        ledger.add_transaction(expense())
        removed, snap = ledger.delete_transaction(uuid4())
        assert removed is False
        assert len(ledger) == 1
        assert snap.total_expenses == Decimal("4.50")


class TestCategories:
    """Tests for the append-only category set."""

    def test_seeded_with_defaults(self):
        assert Ledger().categories.labels == list(DEFAULT_CATEGORIES)

    def test_new_category_grows_set_by_one(self):
        ledger = Ledger()
        size = len(ledger.categories)

        _, _, is_new = ledger.add_transaction(expense(category="Pets"))
        assert is_new is True
        assert len(ledger.categories) == size + 1
        assert ledger.categories.labels[-1] == "Pets"

        _, _, is_new = ledger.add_transaction(expense(category="Pets"))
        assert is_new is False
        assert len(ledger.categories) == size + 1

    def test_exact_match_deduplication(self):
        categories = CategorySet(seed=[])
        assert categories.add("Dining Out") is True
        assert categories.add("Dining Out") is False
        assert categories.add("dining out") is True
        assert list(categories) == ["Dining Out", "dining out"]

    def test_deleting_transaction_keeps_category(self):
        ledger = Ledger()
        t, _, _ = ledger.add_transaction(expense(category="Pets"))
        ledger.delete_transaction(t.id)
        assert "Pets" in ledger.categories


class TestQueries:
    """Tests for recent() and filter()."""

    def test_recent_window(self):
        ledger = Ledger()
        for i in range(25):
            ledger.add_transaction(expense(description=f"Item {i}"))
        recent = ledger.recent(20)
        assert len(recent) == 20
        assert recent[0].description == "Item 24"
        assert recent[-1].description == "Item 5"
        assert ledger.recent(0) == []

    def test_filter_by_type_and_category(self):
        ledger = Ledger()
        ledger.add_transaction(income())
        ledger.add_transaction(expense(category="Groceries"))
        ledger.add_transaction(expense(category="Dining Out"))

        assert len(ledger.filter(transaction_type=TransactionType.EXPENSE)) == 2
        assert len(ledger.filter(category="Groceries")) == 1
        assert ledger.filter(transaction_type=TransactionType.INCOME, category="Groceries") == []
        assert len(ledger.filter()) == 3
