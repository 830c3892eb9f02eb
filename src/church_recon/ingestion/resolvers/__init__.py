"""
Column resolvers.

Provides:
- DateResolver: date column, anchor year, ISO conversion
- AmountResolver: amount column, BR/US amount cleaning
- NameResolver: description column, description cleaning
- RowValidator: rejects non-transaction rows
- TypeResolver: contribution/payment type classification
"""

from .amount import AmountResolver
from .date import INVALID_DATE, DateResolver
from .name import NameResolver
from .row_validator import RowValidator
from .type_resolver import TypeResolver

__all__ = [
    "AmountResolver",
    "DateResolver",
    "INVALID_DATE",
    "NameResolver",
    "RowValidator",
    "TypeResolver",
]
