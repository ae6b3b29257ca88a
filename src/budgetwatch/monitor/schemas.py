"""Validation of budget files and expense snapshots."""
import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as SchemaError, field_validator

from .models import BudgetConfig, Expense
from budgetwatch.utils.exceptions import ConfigurationInvalid, ValidationError
from budgetwatch.utils.logger import get_logger

logger = get_logger()


class ExpenseSchema(BaseModel):
    """Expense record as supplied by the storage collaborator."""
    id: Union[str, int] = Field(description="Opaque expense identifier")
    amount: Decimal = Field(ge=0, description="Expense amount, never negative")
    category: str = Field(min_length=1)
    date: datetime = Field(description="Expense date, ISO 8601")

    @field_validator("date", mode="before")
    @classmethod
    def _date_only(cls, value):
        # Plain YYYY-MM-DD means midnight
        if isinstance(value, str) and len(value) == 10:
            return f"{value}T00:00:00"
        return value

    def to_expense(self) -> Expense:
        return Expense(id=str(self.id), amount=self.amount, category=self.category, date=self.date)


class BudgetSchema(BaseModel):
    """Budget file: overall limit plus optional per-category limits."""
    overall: Decimal = Field(gt=0)
    categories: Dict[str, Optional[Decimal]] = Field(default_factory=dict)

    @field_validator("categories")
    @classmethod
    def _non_negative(cls, value):
        for category, limit in value.items():
            if limit is not None and limit < 0:
                raise ValueError(f"limit for {category} must not be negative")
        return value

    def to_budget(self) -> BudgetConfig:
        return BudgetConfig(overall=self.overall, per_category=dict(self.categories))


def _check_categories(names, allowed: Sequence[str], what: str, error):
    if not allowed:
        return
    unknown = sorted(set(names) - set(allowed))
    if unknown:
        raise error(f"Unknown {what} categories: {', '.join(unknown)}")


def parse_budget(data: dict, categories: Sequence[str] = ()) -> BudgetConfig:
    """Validate a budget mapping; raises ConfigurationInvalid."""
    try:
        schema = BudgetSchema.model_validate(data or {})
    except SchemaError as e:
        raise ConfigurationInvalid(f"Invalid budget configuration: {e}") from e
    _check_categories(schema.categories, categories, "budget", ConfigurationInvalid)
    return schema.to_budget()


def load_budget_config(path: Path, categories: Sequence[str] = ()) -> BudgetConfig:
    """Load a budget from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationInvalid(f"Budget file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigurationInvalid(f"Budget file {path.name} is not valid YAML: {e}") from e

    budget = parse_budget(data, categories)
    logger.debug(f"Loaded budget from {path.name}: overall {budget.overall}, {len(budget.per_category)} categories")
    return budget


def parse_expenses(rows: list, categories: Sequence[str] = ()) -> List[Expense]:
    """Validate raw expense rows; raises ValidationError."""
    if not isinstance(rows, list):
        raise ValidationError("Expense snapshot must be a list of records")

    expenses = []
    for index, row in enumerate(rows):
        try:
            expenses.append(ExpenseSchema.model_validate(row).to_expense())
        except SchemaError as e:
            raise ValidationError(f"Invalid expense at position {index}: {e}") from e

    _check_categories({e.category for e in expenses}, categories, "expense", ValidationError)
    return expenses


def load_expense_snapshot(path: Path, categories: Sequence[str] = ()) -> List[Expense]:
    """Load an expense snapshot from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"Expense file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"Expense file {path.name} is not valid JSON: {e}") from e

    expenses = parse_expenses(rows, categories)
    logger.debug(f"Loaded {len(expenses)} expenses from {path.name}")
    return expenses
