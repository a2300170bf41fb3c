"""SQLAlchemy models package."""

from app.models.user import User, UserSession
from app.models.transaction import Transaction, TransactionType, Category
from app.models.recurring_transaction import RecurringTemplate

__all__ = [
    "User",
    "UserSession",
    "Transaction",
    "TransactionType",
    "Category",
    "RecurringTemplate",
]
