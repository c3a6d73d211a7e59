"""Validation package."""

from expense_manager.validation.validator import (
    validate_budget,
    validate_category,
    validate_expense,
)

__all__ = ["validate_budget", "validate_category", "validate_expense"]
