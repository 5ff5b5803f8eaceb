import asyncio

import pytest

from app.main import app
from app.modules.printing.receipt import build_receipt, render_receipt_text
from app.modules.printing.service import PrintService
from app.modules.printing.strategies import (
    HtmlFileStrategy, PrintError, PrintResult, PrintStrategy, SerialThermalStrategy,
    SystemDriverStrategy
)
from app.modules.sales.repository import SalesRepository


class FailingStrategy(PrintStrategy):
    def __init__(self, name):
        self.name = name

    def print_receipt(self, receipt):
        raise PrintError(f"{self.name} offline")


class RecordingStrategy(PrintStrategy):
    name = "recording"

    def __init__(self):
        self.printed = []

    def print_receipt(self, receipt):
        self.printed.append(receipt)
        return PrintResult(True, self.name, "Printed")


class LoopCheckingStrategy(PrintStrategy):
    name = "loop-check"

    def __init__(self):
        self.loop_running = []

    def print_receipt(self, receipt):
        try:
            asyncio.get_running_loop()
            self.loop_running.append(True)
        except RuntimeError:
            self.loop_running.append(False)
        return PrintResult(True, self.name, "Printed")

    def open_drawer(self):
        return self.print_receipt(None)


@pytest.fixture()
def sale(client, db, cashier_headers, products, customer):
    tea, mug = products
    response = client.post("/api/v1/sales", json={
        "items": [{"product_id": tea.id, "quantity": 2}, {"product_id": mug.id, "quantity": 1}],
        "customer_id": customer.id,
        "payment_method": "cash",
        "amount_paid": 3000,
        "discount": 200,
    }, headers=cashier_headers)
    return SalesRepository(db).get_by_id(response.json()["data"]["id"])


def test_receipt_text_fits_width(sale):
    text = render_receipt_text(sale, width=32)
    lines = text.splitlines()

    assert all(len(line) <= 32 for line in lines)
    assert f"Invoice: {sale.invoice_number}" in lines
    assert "Customer: Nimal Perera" in lines
    assert any(line.startswith("TOTAL") and line.endswith("2,300.00") for line in lines)
    assert any(line.startswith("Change") and line.endswith("700.00") for line in lines)


def test_first_working_strategy_wins(sale):
    recorder = RecordingStrategy()
    service = PrintService([FailingStrategy("serial"), recorder, FailingStrategy("never")])

    entry = service.print_sale(sale)

    assert entry["success"] is True
    assert entry["method"] == "recording"
    assert [a["method"] for a in entry["attempts"]] == ["serial", "recording"]
    assert len(recorder.printed) == 1
    assert service.get_history()[0]["invoice_number"] == sale.invoice_number


def test_manual_fallback_when_everything_fails(sale):
    service = PrintService([FailingStrategy("serial"), FailingStrategy("usb")])

    entry = service.print_sale(sale)

    assert entry["success"] is False
    assert entry["method"] == "manual"
    assert sale.invoice_number in entry["fallback"]["receipt_text"]
    assert entry["fallback"]["html"].startswith("<!DOCTYPE html>")
    assert service.clear_history() == 1
    assert service.get_history() == []


def test_html_file_strategy_writes_receipt(sale, tmp_path):
    result = HtmlFileStrategy(str(tmp_path / "out")).print_receipt(build_receipt(sale))

    written = tmp_path / "out" / f"{sale.invoice_number}.html"
    assert result.success is True
    assert result.location == str(written)
    assert "Nimal Perera" in written.read_text(encoding="utf-8")


def test_unconfigured_serial_printer_fails(sale):
    with pytest.raises(PrintError):
        SerialThermalStrategy(None).print_receipt(build_receipt(sale))


def test_system_driver_without_lp(sale, monkeypatch):
    monkeypatch.setattr("app.modules.printing.strategies.shutil.which", lambda name: None)
    with pytest.raises(PrintError):
        SystemDriverStrategy().print_receipt(build_receipt(sale))


def test_cash_drawer_without_hardware():
    service = PrintService([SerialThermalStrategy(None), HtmlFileStrategy("unused")])
    with pytest.raises(PrintError):
        service.open_cash_drawer()


def test_print_endpoint_returns_manual_fallback(client, sale, cashier_headers, monkeypatch):
    monkeypatch.setattr(app.state, "print_service", PrintService([FailingStrategy("serial")]),
                        raising=False)

    response = client.post(f"/api/v1/printing/sales/{sale.id}/receipt", headers=cashier_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["data"]["method"] == "manual"
    assert "receipt_text" in body["data"]["fallback"]

    history = client.get("/api/v1/printing/history", headers=cashier_headers).json()
    assert history["count"] == 1

    drawer = client.post("/api/v1/printing/cash-drawer/open", headers=cashier_headers)
    assert drawer.status_code == 503


def test_receipt_preview(client, sale, cashier_headers):
    response = client.get(f"/api/v1/printing/sales/{sale.id}/receipt", headers=cashier_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert sale.invoice_number in response.text

    missing = client.get("/api/v1/printing/sales/999/receipt", headers=cashier_headers)
    assert missing.status_code == 404


def test_printing_runs_off_the_event_loop(client, sale, cashier_headers, monkeypatch):
    strategy = LoopCheckingStrategy()
    monkeypatch.setattr(app.state, "print_service", PrintService([strategy]), raising=False)

    response = client.post(f"/api/v1/printing/sales/{sale.id}/receipt", headers=cashier_headers)
    assert response.json()["data"]["method"] == "loop-check"
    drawer = client.post("/api/v1/printing/cash-drawer/open", headers=cashier_headers)
    assert drawer.status_code == 200

    assert strategy.loop_running == [False, False]
