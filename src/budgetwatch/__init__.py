"""BudgetWatch: budget threshold monitoring with once-per-period alerts."""

__version__ = "1.0.0"
