# app/modules/reports/router.py
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import get_current_user, require_roles
from app.core.auth.schemas import MANAGEMENT
from app.modules.sales.schemas import PaymentMethod, SaleStatus
from app.shared.database.models import User
from .exporters import csv_response
from .service import ReportsService

router = APIRouter(prefix="/reports", tags=["Reports"])

ReportFormat = Literal["json", "csv"]


def _render(report: str, result: dict, format: str):
    if format == "csv":
        headers, rows = ReportsService.csv_table(report, result["data"])
        return csv_response(report, headers, rows)
    return result


@router.get("/dashboard")
async def get_dashboard(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = ReportsService(db)
    return await service.get_dashboard()


@router.get("/sales")
async def get_sales_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    group_by: Literal["day", "month", "year"] = Query("day"),
    format: ReportFormat = Query("json"),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ReportsService(db)
    return _render("sales", await service.get_sales_report(start_date, end_date, group_by), format)


@router.get("/inventory")
async def get_inventory_report(
    format: ReportFormat = Query("json"),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ReportsService(db)
    return _render("inventory", await service.get_inventory_report(), format)


@router.get("/customers")
async def get_customers_report(
    format: ReportFormat = Query("json"),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ReportsService(db)
    return _render("customers", await service.get_customers_report(), format)


@router.get("/profit-loss")
async def get_profit_loss(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    format: ReportFormat = Query("json"),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ReportsService(db)
    return _render("profit-loss", await service.get_profit_loss(start_date, end_date), format)


@router.get("/invoices")
async def get_invoices_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    sale_status: Optional[SaleStatus] = Query(None, alias="status"),
    payment_method: Optional[PaymentMethod] = Query(None),
    customer_id: Optional[int] = Query(None),
    format: ReportFormat = Query("json"),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ReportsService(db)
    result = await service.get_invoices_report(
        start_date, end_date,
        sale_status.value if sale_status else None,
        payment_method.value if payment_method else None,
        customer_id
    )
    return _render("invoices", result, format)
