# app/modules/printing/dependencies.py
from fastapi import Request

from .service import PrintService


def get_print_service(request: Request) -> PrintService:
    service = getattr(request.app.state, "print_service", None)
    if service is None:
        service = PrintService.from_settings()
        request.app.state.print_service = service
    return service
