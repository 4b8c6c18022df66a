"""
Exports Excel (pandas + openpyxl) et PDF (fpdf2) de l'inventaire et des
commandes. Fonctions pures: elles reçoivent des objets déjà chargés et
renvoient les octets du fichier.
"""
from __future__ import annotations

import io
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

import pandas as pd
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from koloa.app.db.models.core_types import StockStatus
from koloa.app.db.models.models_v1 import InventoryItem, Order
from koloa.services.inventory import stock_status, stock_value

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

STATUS_LABELS = {
    StockStatus.normal: "Normal",
    StockStatus.low: "Low stock",
    StockStatus.out_of_stock: "Out of stock",
}

INVENTORY_COLUMNS = [
    ("Brand", 20),
    ("Name", 35),
    ("Weight", 10),
    ("Stock", 10),
    ("Min stock", 12),
    ("Status", 15),
    ("Price", 12),
    ("Category", 14),
    ("Total value", 15),
]

ORDER_COLUMNS = [
    ("Order", 18),
    ("User", 25),
    ("Date", 15),
    ("Items", 50),
    ("Total", 30),
]


def _money(value) -> str:
    return f"{Decimal(value):.2f} EUR"


def export_filename(kind: str, extension: str) -> str:
    return f"{kind}-koloa-{datetime.now(timezone.utc).date().isoformat()}.{extension}"


def inventory_summary(items: Sequence[InventoryItem]) -> dict:
    return {
        "products": len(items),
        "units": sum(it.stock for it in items),
        "value": sum((stock_value(it) for it in items), Decimal("0")),
        "low_stock": sum(1 for it in items if stock_status(it) == StockStatus.low),
        "out_of_stock": sum(1 for it in items if stock_status(it) == StockStatus.out_of_stock),
    }


def _set_widths(worksheet, columns) -> None:
    for idx, (_, width) in enumerate(columns):
        worksheet.column_dimensions[get_column_letter(idx + 1)].width = width


# ---------- EXCEL ----------
def inventory_workbook(items: Sequence[InventoryItem]) -> bytes:
    rows = [
        {
            "Brand": it.brand,
            "Name": it.name,
            "Weight": f"{it.weight}g",
            "Stock": it.stock,
            "Min stock": it.min_stock,
            "Status": STATUS_LABELS[stock_status(it)],
            "Price": _money(it.price),
            "Category": it.category,
            "Total value": _money(stock_value(it)),
        }
        for it in items
    ]
    df = pd.DataFrame(rows, columns=[c for c, _ in INVENTORY_COLUMNS])

    summary = inventory_summary(items)
    summary_df = pd.DataFrame(
        [
            ["INVENTORY SUMMARY", ""],
            ["Total products:", summary["products"]],
            ["Total units in stock:", summary["units"]],
            ["Total inventory value:", _money(summary["value"])],
            ["Products with low stock:", summary["low_stock"]],
            ["Products out of stock:", summary["out_of_stock"]],
        ]
    )

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Inventory", index=False)
        summary_df.to_excel(writer, sheet_name="Inventory", index=False, header=False, startrow=len(df) + 2)
        _set_widths(writer.sheets["Inventory"], INVENTORY_COLUMNS)
    return buffer.getvalue()


def orders_workbook(orders: Sequence[Order]) -> bytes:
    rows: list[dict] = []
    header_rows: list[int] = []
    for idx, order in enumerate(orders):
        header_rows.append(len(rows))
        rows.append(
            {
                "Order": order.order_number,
                "User": order.user.name,
                "Date": order.created_at.strftime("%d/%m/%Y"),
                "Items": order.total_items,
                "Total": _money(order.total_price),
            }
        )
        for ln in order.items:
            product = ln.inventory_item
            subtotal = Decimal(ln.price_at_time) * ln.quantity_ordered
            rows.append(
                {
                    "Order": "",
                    "User": "",
                    "Date": "",
                    "Items": f"{product.brand} - {product.name} ({product.weight}g)",
                    "Total": f"{ln.quantity_ordered} x {_money(ln.price_at_time)} = {_money(subtotal)}",
                }
            )
        if idx < len(orders) - 1:
            rows.append({"Order": "", "User": "", "Date": "", "Items": "-" * 40, "Total": ""})

    df = pd.DataFrame(rows, columns=[c for c, _ in ORDER_COLUMNS])

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Orders", index=False)
        ws = writer.sheets["Orders"]
        _set_widths(ws, ORDER_COLUMNS)
        bold = Font(bold=True)
        for row in header_rows:
            # +2: ligne d'en-tête pandas et index openpyxl à partir de 1
            ws.cell(row=row + 2, column=1).font = bold
    return buffer.getvalue()


# ---------- PDF ----------
PDF_COLUMNS = [
    ("Category", 25),
    ("Brand", 35),
    ("Name", 70),
    ("Weight", 20),
    ("Stock", 18),
    ("Min", 18),
    ("Status", 28),
    ("Price", 28),
    ("Value", 30),
]


def _latin1(text: str) -> str:
    # les polices de base de fpdf sont en latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def inventory_pdf(items: Sequence[InventoryItem]) -> bytes:
    pdf = FPDF(orientation="L", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=12)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, "KOLOA INVENTORY", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    summary = inventory_summary(items)
    pdf.set_font("Helvetica", size=10)
    pdf.set_text_color(100, 100, 100)
    generated = datetime.now(timezone.utc).strftime("%d/%m/%Y %H:%M UTC")
    pdf.cell(0, 6, f"Generated: {generated}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(0, 6, f"Total products: {summary['products']}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(
        0,
        6,
        f"Total units: {summary['units']}    Total value: {_money(summary['value'])}    "
        f"Out of stock: {summary['out_of_stock']}    Low stock: {summary['low_stock']}",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(4)

    pdf.set_text_color(255, 255, 255)
    pdf.set_fill_color(41, 128, 185)
    pdf.set_font("Helvetica", "B", 9)
    for title, width in PDF_COLUMNS:
        pdf.cell(width, 7, title, border=1, align="C", fill=True)
    pdf.ln()

    pdf.set_text_color(40, 40, 40)
    pdf.set_font("Helvetica", size=8)
    for it in items:
        values = [
            it.category,
            it.brand,
            it.name,
            f"{it.weight}g",
            str(it.stock),
            str(it.min_stock),
            STATUS_LABELS[stock_status(it)],
            _money(it.price),
            _money(stock_value(it)),
        ]
        for (title, width), value in zip(PDF_COLUMNS, values):
            pdf.cell(width, 6, _latin1(value)[:48], border=1, align="L" if title in ("Brand", "Name", "Category") else "C")
        pdf.ln()

    return bytes(pdf.output())
