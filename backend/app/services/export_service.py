from __future__ import annotations

from io import BytesIO
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font

from app.core.money import to_decimal

HEADERS = [
    "Date",
    "Type",
    "Account",
    "To Account",
    "Category",
    "Description",
    "Amount",
    "Currency",
    "Exchange Rate",
    "Installment",
]

COLUMN_WIDTHS = [12, 10, 22, 22, 18, 40, 14, 10, 14, 12]


class TransactionExportService:
    """Writes joined transactions (see ``TransactionService.present``) to an .xlsx workbook."""

    SHEET_TITLE = "Transactions"

    def build_workbook_bytes(self, transactions: list[dict[str, Any]]) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = self.SHEET_TITLE

        ws.append(HEADERS)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        ws.freeze_panes = "A2"

        for tx in sorted(transactions, key=lambda t: (t.get("date", ""), t.get("created_at", ""))):
            ws.append(self._row(tx))
            ws.cell(ws.max_row, 7).number_format = "#,##0.00"

        for idx, width in enumerate(COLUMN_WIDTHS, start=1):
            ws.column_dimensions[ws.cell(1, idx).column_letter].width = width

        out = BytesIO()
        wb.save(out)
        return out.getvalue()

    @staticmethod
    def _row(tx: dict[str, Any]) -> list[Any]:
        rate = tx.get("exchange_rate")
        return [
            tx.get("date", ""),
            tx.get("type", ""),
            tx.get("account_name") or "",
            tx.get("to_account_name") or "",
            tx.get("category_name") or "",
            tx.get("description") or "",
            float(to_decimal(tx.get("amount"))),
            tx.get("currency", ""),
            float(to_decimal(rate)) if rate not in (None, "") else None,
            "yes" if tx.get("is_installment") else "",
        ]
