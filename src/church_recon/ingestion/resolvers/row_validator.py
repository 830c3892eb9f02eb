"""
Row validation: the backstop that drops non-transaction rows.
"""

from __future__ import annotations

from collections.abc import Sequence

from .amount import ZERO, AmountResolver, parse_float_prefix
from .name import NameResolver

ISO_DATE_LENGTH = 10


class RowValidator:
    """Decides whether a resolved row is a real transaction."""

    @staticmethod
    def is_valid(
        iso_date: str,
        raw_name: str,
        amount: str,
        row: Sequence[str] | None = None,
    ) -> bool:
        """Reject rows with an invalid date, an empty name or an unusable amount.

        A "0.00" amount is only accepted when a currency token appears in the
        row (or in the name when no row is given); otherwise it is treated as
        a header, footer or balance line.
        """
        if not iso_date or len(iso_date) < ISO_DATE_LENGTH:
            return False
        if not raw_name or len(raw_name.strip()) < 2:
            return False
        if parse_float_prefix(amount or "") is None:
            return False
        if amount == ZERO:
            context = " ".join(str(cell or "") for cell in row) if row is not None else raw_name
            if not AmountResolver.has_currency_token(context):
                return False
        return True

    @staticmethod
    def is_control_row(description: str) -> bool:
        """Balance/total rows are flagged, not rejected."""
        return NameResolver.is_control_row(description)
