"""
CSV Export

Renders the ledger collections as CSV text for download. Amounts are
rendered through CurrencyFormatter in the user's currency, not raw.

pandas handles quoting: any field containing a comma, quote or newline is
quoted, which covers formatted amounts like "$1,234.50" and free-text
descriptions.
"""

from datetime import date
from typing import Optional

import pandas as pd

from finance_tracker.errors import ValidationError
from finance_tracker.formatting.currency import CurrencyFormatter
from finance_tracker.models.finance import EntryType


EXPORT_HEADERS: dict[str, list[str]] = {
    "spending": ["Date", "Type", "Amount", "Category", "Description", "Account", "Transfer To"],
    "savings": ["Bank Name", "Account Name", "Balance"],
    "investments": ["Name", "Amount", "Date", "Notes"],
}


def export_filename(kind: str, today: Optional[date] = None) -> str:
    """Download name, e.g. financial_spending_2024-03-01.csv"""
    if kind not in EXPORT_HEADERS:
        raise ValidationError(f"Unknown export type: {kind!r}")
    today = today or date.today()
    return f"financial_{kind}_{today.isoformat()}.csv"


class CsvExporter:
    """Builds CSV exports from a LedgerEngine."""

    def __init__(self, engine):
        self._engine = engine

    def export(self, kind: str) -> str:
        """
        Export one collection as CSV text.

        Args:
            kind: "spending", "savings" or "investments"

        Raises:
            ValidationError: Unknown kind
        """
        if kind not in EXPORT_HEADERS:
            raise ValidationError(f"Unknown export type: {kind!r}")

        currency = self._engine.settings.currency
        if kind == "spending":
            rows = self._spending_rows(currency)
        elif kind == "savings":
            rows = [
                [a.bank_name, a.account_name, CurrencyFormatter.format(a.balance, currency)]
                for a in self._engine.get_savings_accounts()
            ]
        else:
            rows = [
                [i.name, CurrencyFormatter.format(i.amount, currency), i.date.isoformat(), i.notes or ""]
                for i in self._engine.get_investments()
            ]

        frame = pd.DataFrame(rows, columns=EXPORT_HEADERS[kind])
        return frame.to_csv(index=False, lineterminator="\n")

    def _spending_rows(self, currency: str) -> list[list[str]]:
        names = {a.id: a.account_name for a in self._engine.get_savings_accounts()}
        rows = []
        for entry in self._engine.get_spending_entries():
            if entry.type == EntryType.EXPENSE:
                transfer_to = ""
            elif entry.type == EntryType.TRANSFER:
                transfer_to = names.get(entry.transfer_to_account_id, "")
            else:
                raise ValidationError(f"Unsupported entry type: {entry.type!r}")
            rows.append([
                entry.date.isoformat(),
                entry.type.value,
                CurrencyFormatter.format(entry.amount, currency),
                entry.category,
                entry.description or "",
                names.get(entry.account_id, ""),
                transfer_to,
            ])
        return rows
