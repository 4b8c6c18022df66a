import io

import pandas as pd

from koloa.services.exports import PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE


def test_export_inventory_xlsx(client, admin_headers, make_item):
    make_item(brand="Adalya", name="Love 66", stock=4, min_stock=5, price="4.50")
    make_item(brand="Al Fakher", name="Double Apple", stock=0, price="16.00", weight=250)

    res = client.get("/api/export/inventory", headers=admin_headers)

    assert res.status_code == 200, res.text
    assert res.headers["content-type"] == XLSX_MEDIA_TYPE
    assert res.headers["content-disposition"].startswith('attachment; filename="inventory-koloa-')

    sheet = pd.read_excel(io.BytesIO(res.content), engine="openpyxl")
    first = sheet.iloc[0]
    assert first["Brand"] == "Adalya"
    assert first["Weight"] == "50g"
    assert first["Status"] == "Low stock"
    assert first["Total value"] == "18.00 EUR"
    assert sheet.iloc[1]["Status"] == "Out of stock"
    assert "INVENTORY SUMMARY" in sheet["Brand"].tolist()


def test_export_orders_xlsx(client, admin_headers, staff, make_item, make_order):
    item = make_item(brand="Adalya", name="Love 66", price="4.50")
    make_order(staff, [(item, 3)])

    res = client.get("/api/export/orders", headers=admin_headers)

    assert res.status_code == 200, res.text
    sheet = pd.read_excel(io.BytesIO(res.content), engine="openpyxl")
    assert sheet.iloc[0]["Order"].startswith("ORD-")
    assert sheet.iloc[0]["User"] == "Ana"
    assert sheet.iloc[0]["Total"] == "13.50 EUR"
    assert sheet.iloc[1]["Items"] == "Adalya - Love 66 (50g)"
    assert sheet.iloc[1]["Total"] == "3 x 4.50 EUR = 13.50 EUR"


def test_export_inventory_pdf(client, admin_headers, make_item):
    make_item()

    res = client.get("/api/export/inventory-pdf", headers=admin_headers)

    assert res.status_code == 200, res.text
    assert res.headers["content-type"] == PDF_MEDIA_TYPE
    assert res.content.startswith(b"%PDF")


def test_exports_404_when_empty(client, admin_headers):
    inventory = client.get("/api/export/inventory", headers=admin_headers)
    assert inventory.status_code == 404
    assert inventory.json() == {"error": "No inventory items to export"}

    orders = client.get("/api/export/orders", headers=admin_headers)
    assert orders.status_code == 404
    assert orders.json() == {"error": "No orders to export"}

    pdf = client.get("/api/export/inventory-pdf", headers=admin_headers)
    assert pdf.status_code == 404
