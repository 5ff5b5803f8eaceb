# app/modules/printing/router.py
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import require_roles
from app.core.auth.schemas import MANAGEMENT, SALES_STAFF
from app.modules.sales.repository import SalesRepository
from app.shared.database.models import Sale, User
from .dependencies import get_print_service
from .receipt import render_receipt_html, render_receipt_text
from .service import PrintService
from .strategies import PrintError

router = APIRouter(prefix="/printing", tags=["Printing"])


def _load_sale(db: Session, sale_id: int) -> Sale:
    sale = SalesRepository(db).get_by_id(sale_id)
    if not sale:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")
    return sale


@router.get("/sales/{sale_id}/receipt")
async def preview_receipt(
    sale_id: int,
    format: Literal["text", "html"] = Query("text"),
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    sale = _load_sale(db, sale_id)
    if format == "html":
        return HTMLResponse(render_receipt_html(sale))
    return PlainTextResponse(render_receipt_text(sale))


@router.post("/sales/{sale_id}/receipt")
def print_receipt(
    sale_id: int,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db),
    print_service: PrintService = Depends(get_print_service)
):
    # Serial and lp calls block, so this runs in the threadpool
    entry = print_service.print_sale(_load_sale(db, sale_id))
    return {"success": entry["success"], "data": entry, "message": entry["message"]}


@router.post("/cash-drawer/open")
def open_cash_drawer(
    current_user: User = Depends(require_roles(SALES_STAFF)),
    print_service: PrintService = Depends(get_print_service)
):
    try:
        result = print_service.open_cash_drawer()
    except PrintError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return {"success": True, "data": {"method": result.method, "location": result.location},
            "message": result.message}


@router.get("/history")
async def get_print_history(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(require_roles(SALES_STAFF)),
    print_service: PrintService = Depends(get_print_service)
):
    history = print_service.get_history(limit)
    return {"success": True, "count": len(history), "data": history}


@router.delete("/history")
async def clear_print_history(
    current_user: User = Depends(require_roles(MANAGEMENT)),
    print_service: PrintService = Depends(get_print_service)
):
    cleared = print_service.clear_history()
    return {"success": True, "message": f"Cleared {cleared} print records"}
