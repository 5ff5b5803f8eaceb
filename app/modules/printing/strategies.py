# app/modules/printing/strategies.py
import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import serial
from serial.tools import list_ports

from .receipt import Receipt

logger = logging.getLogger(__name__)

# ESC/POS
ESC_INIT = b"\x1b@"
ESC_FEED_CUT = b"\n\n\n\x1dV\x01"
ESC_DRAWER_PULSE = b"\x1bp\x00\x19\xfa"


class PrintError(Exception):
    """Raised by a strategy that could not deliver the receipt."""


@dataclass
class PrintResult:
    success: bool
    method: str
    message: str
    location: Optional[str] = None


class PrintStrategy:
    name = "base"

    def print_receipt(self, receipt: Receipt) -> PrintResult:
        raise NotImplementedError


class SerialThermalStrategy(PrintStrategy):
    """ESC/POS thermal printer on a configured serial port"""
    name = "serial"

    def __init__(self, port: Optional[str], baudrate: int = 9600, timeout: float = 2.0):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout

    def _write(self, payload: bytes) -> None:
        if not self.port:
            raise PrintError("No serial printer configured")
        try:
            with serial.Serial(self.port, baudrate=self.baudrate, timeout=self.timeout,
                               write_timeout=self.timeout) as ser:
                ser.write(payload)
                ser.flush()
        except (serial.SerialException, OSError) as exc:
            raise PrintError(f"Serial printer on {self.port} unavailable: {exc}") from exc

    def print_receipt(self, receipt: Receipt) -> PrintResult:
        body = receipt.text.encode("cp437", errors="replace")
        self._write(ESC_INIT + body + ESC_FEED_CUT)
        return PrintResult(True, self.name, f"Printed on {self.port}", self.port)

    def open_drawer(self) -> PrintResult:
        self._write(ESC_DRAWER_PULSE)
        return PrintResult(True, self.name, f"Cash drawer opened via {self.port}", self.port)


class UsbThermalStrategy(PrintStrategy):
    """First USB serial device found on the machine"""
    name = "usb"

    def __init__(self, baudrate: int = 9600, timeout: float = 2.0):
        self.baudrate = baudrate
        self.timeout = timeout

    @staticmethod
    def _is_usb_port(info) -> bool:
        if getattr(info, "vid", None) is not None:
            return True
        text = f"{info.description or ''} {info.hwid or ''}".upper()
        return "USB" in text

    def find_port(self) -> str:
        usb_ports = [info for info in list_ports.comports() if self._is_usb_port(info)]
        if not usb_ports:
            raise PrintError("No USB printer detected")
        return usb_ports[0].device

    def _serial(self) -> SerialThermalStrategy:
        return SerialThermalStrategy(self.find_port(), self.baudrate, self.timeout)

    def print_receipt(self, receipt: Receipt) -> PrintResult:
        result = self._serial().print_receipt(receipt)
        result.method = self.name
        return result

    def open_drawer(self) -> PrintResult:
        result = self._serial().open_drawer()
        result.method = self.name
        return result


class SystemDriverStrategy(PrintStrategy):
    """Hands the text receipt to the operating system spooler through lp"""
    name = "system"

    def __init__(self, printer_name: Optional[str] = None, timeout: float = 10.0):
        self.printer_name = printer_name
        self.timeout = timeout

    def print_receipt(self, receipt: Receipt) -> PrintResult:
        lp = shutil.which("lp")
        if lp is None:
            raise PrintError("No system print driver available")

        fd, path = tempfile.mkstemp(prefix="receipt-", suffix=".txt")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(receipt.text)
            command = [lp]
            if self.printer_name:
                command += ["-d", self.printer_name]
            command.append(path)
            subprocess.run(command, check=True, capture_output=True, timeout=self.timeout)
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as exc:
            raise PrintError(f"System print failed: {exc}") from exc
        finally:
            if os.path.exists(path):
                os.unlink(path)

        return PrintResult(True, self.name, "Sent to system printer", self.printer_name or "default")


class HtmlFileStrategy(PrintStrategy):
    """Writes the HTML receipt to disk for printing from a browser"""
    name = "html"

    def __init__(self, output_dir: str):
        self.output_dir = Path(output_dir)

    def print_receipt(self, receipt: Receipt) -> PrintResult:
        target = self.output_dir / f"{receipt.invoice_number}.html"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            target.write_text(receipt.html, encoding="utf-8")
        except OSError as exc:
            raise PrintError(f"Could not write receipt file: {exc}") from exc
        return PrintResult(True, self.name, f"Receipt saved to {target}", str(target))


def default_strategies(
    serial_port: Optional[str],
    baudrate: int,
    timeout: float,
    printer_name: Optional[str],
    output_dir: str
) -> List[PrintStrategy]:
    return [
        SerialThermalStrategy(serial_port, baudrate, timeout),
        UsbThermalStrategy(baudrate, timeout),
        SystemDriverStrategy(printer_name),
        HtmlFileStrategy(output_dir),
    ]
