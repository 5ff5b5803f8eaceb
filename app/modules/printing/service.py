# app/modules/printing/service.py
import logging
import threading
from datetime import datetime
from typing import List, Optional

from app.config.settings import settings
from app.shared.database.models import Sale
from .receipt import build_receipt
from .strategies import PrintError, PrintResult, PrintStrategy, default_strategies

logger = logging.getLogger(__name__)

MANUAL_METHOD = "manual"


class PrintService:
    """
    Tries each print strategy in order and stops at the first that succeeds.
    When none does, the caller gets the rendered receipt back to print by hand.
    """

    def __init__(self, strategies: List[PrintStrategy], history_limit: int = 200):
        self.strategies = list(strategies)
        self.history_limit = history_limit
        self.history: List[dict] = []
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls) -> "PrintService":
        return cls(default_strategies(
            settings.printer_serial_port,
            settings.printer_baudrate,
            settings.printer_timeout_seconds,
            settings.system_printer_name,
            settings.receipt_output_dir
        ))

    def _record(self, sale: Sale, result: PrintResult, attempts: List[dict]) -> dict:
        entry = {
            "sale_id": sale.id,
            "invoice_number": sale.invoice_number,
            "success": result.success,
            "method": result.method,
            "message": result.message,
            "location": result.location,
            "attempts": attempts,
            "printed_at": datetime.now()
        }
        with self._lock:
            self.history.append(entry)
            if len(self.history) > self.history_limit:
                del self.history[:-self.history_limit]
        return entry

    def print_sale(self, sale: Sale) -> dict:
        receipt = build_receipt(sale)
        attempts = []

        for strategy in self.strategies:
            try:
                result = strategy.print_receipt(receipt)
            except PrintError as exc:
                logger.warning(f"Print via {strategy.name} failed for {sale.invoice_number}: {exc}")
                attempts.append({"method": strategy.name, "error": str(exc)})
                continue
            logger.info(f"Receipt {sale.invoice_number} printed via {strategy.name}")
            attempts.append({"method": strategy.name, "error": None})
            return self._record(sale, result, attempts)

        logger.error(f"All print methods failed for {sale.invoice_number}, manual fallback")
        result = PrintResult(False, MANUAL_METHOD, "All print methods failed; print the receipt manually")
        entry = self._record(sale, result, attempts)
        return {**entry, "fallback": {"receipt_text": receipt.text, "html": receipt.html}}

    def open_cash_drawer(self) -> PrintResult:
        errors = []
        for strategy in self.strategies:
            opener = getattr(strategy, "open_drawer", None)
            if opener is None:
                continue
            try:
                result = opener()
            except PrintError as exc:
                errors.append(f"{strategy.name}: {exc}")
                continue
            logger.info(f"Cash drawer opened via {strategy.name}")
            return result
        raise PrintError("; ".join(errors) or "No cash drawer connected")

    def get_history(self, limit: Optional[int] = None) -> List[dict]:
        with self._lock:
            entries = list(reversed(self.history))
        return entries[:limit] if limit else entries

    def clear_history(self) -> int:
        with self._lock:
            cleared = len(self.history)
            self.history.clear()
        return cleared
