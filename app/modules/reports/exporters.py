# app/modules/reports/exporters.py
import csv
import io
from datetime import date
from typing import Iterable, List, Sequence

from fastapi import Response


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def csv_response(report_name: str, headers: Sequence[str], rows: List[Sequence]) -> Response:
    filename = f"{report_name}-report-{date.today().isoformat()}.csv"
    return Response(
        content=rows_to_csv(headers, rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
