"""Tests for budget and expense loading."""
import json
import unittest
import tempfile
import shutil
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from budgetwatch.monitor.models import LimitState
from budgetwatch.monitor.schemas import (
    load_budget_config,
    load_expense_snapshot,
    parse_budget,
    parse_expenses
)
from budgetwatch.utils.exceptions import ConfigurationInvalid, ValidationError

CATEGORIES = ["Food", "Travel", "Rent"]


class TestBudgetLoading(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_load_yaml_budget(self):
        path = self.test_dir / "budget.yaml"
        path.write_text("overall: 1000\ncategories:\n  Food: 200\n  Travel: 0\n  Rent: null\n", encoding="utf-8")

        budget = load_budget_config(path, CATEGORIES)

        self.assertEqual(budget.overall, Decimal("1000"))
        self.assertEqual(budget.limit_state("Food"), LimitState.POSITIVE)
        self.assertEqual(budget.limit_state("Travel"), LimitState.ZERO)
        self.assertEqual(budget.limit_state("Rent"), LimitState.UNSET)
        self.assertEqual(budget.limit_state("Other"), LimitState.UNSET)
        self.assertEqual(budget.category_limit("Food"), Decimal("200"))
        self.assertIsNone(budget.category_limit("Travel"))

    def test_non_positive_overall_rejected(self):
        with self.assertRaises(ConfigurationInvalid):
            parse_budget({"overall": 0})

    def test_negative_category_limit_rejected(self):
        with self.assertRaises(ConfigurationInvalid):
            parse_budget({"overall": 100, "categories": {"Food": -5}})

    def test_malformed_yaml_budget(self):
        path = self.test_dir / "budget.yaml"
        path.write_text("overall: [1000\n", encoding="utf-8")

        with self.assertRaises(ConfigurationInvalid):
            load_budget_config(path)

    def test_budget_file_with_bad_encoding(self):
        path = self.test_dir / "budget.yaml"
        path.write_bytes(b"overall: 1000\ncategories:\n  Food: \xff\xfe\n")

        with self.assertRaises(ConfigurationInvalid):
            load_budget_config(path)

    def test_unknown_category_rejected(self):
        with self.assertRaises(ConfigurationInvalid):
            parse_budget({"overall": 100, "categories": {"Yachts": 5}}, CATEGORIES)

    def test_missing_budget_file(self):
        with self.assertRaises(ConfigurationInvalid):
            load_budget_config(self.test_dir / "nope.yaml")


class TestExpenseLoading(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_load_json_snapshot(self):
        path = self.test_dir / "expenses.json"
        path.write_text(json.dumps([
            {"id": 1, "amount": 12.5, "category": "Food", "date": "2025-03-02"},
            {"id": "abc", "amount": "99.99", "category": "Travel", "date": "2025-03-04T18:30:00"},
        ]), encoding="utf-8")

        expenses = load_expense_snapshot(path, CATEGORIES)

        self.assertEqual(len(expenses), 2)
        self.assertEqual(expenses[0].id, "1")
        self.assertEqual(expenses[0].amount, Decimal("12.5"))
        self.assertEqual(expenses[0].date, datetime(2025, 3, 2))
        self.assertEqual(expenses[1].date, datetime(2025, 3, 4, 18, 30))

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValidationError):
            parse_expenses([{"id": "1", "amount": -1, "category": "Food", "date": "2025-03-02"}])

    def test_unknown_category_rejected(self):
        with self.assertRaises(ValidationError):
            parse_expenses([{"id": "1", "amount": 1, "category": "Yachts", "date": "2025-03-02"}], CATEGORIES)

    def test_not_a_list(self):
        with self.assertRaises(ValidationError):
            parse_expenses({"id": "1"})

    def test_invalid_json(self):
        path = self.test_dir / "expenses.json"
        path.write_text("[{", encoding="utf-8")
        with self.assertRaises(ValidationError):
            load_expense_snapshot(path)

    def test_expense_file_with_bad_encoding(self):
        path = self.test_dir / "expenses.json"
        path.write_bytes(b'[{"id": "1", "category": "\xff\xfe"}]')
        with self.assertRaises(ValidationError):
            load_expense_snapshot(path)


if __name__ == "__main__":
    unittest.main()
