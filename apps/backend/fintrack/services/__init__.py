"""
Services package

Business logic classes. Each one is constructed with an explicit SQLAlchemy
session; none of them keeps state between requests.
"""

from .account_service import AccountService
from .category_service import CategoryService
from .rule_matcher import RuleMatcher, match_rule
from .rule_service import RuleService
from .transaction_service import TransactionService
from .transfer_service import TransferService

__all__ = [
    "AccountService",
    "CategoryService",
    "RuleMatcher",
    "RuleService",
    "TransactionService",
    "TransferService",
    "match_rule",
]
