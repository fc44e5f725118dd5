import csv
import io
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence

from fastapi import HTTPException
from starlette.responses import Response


def export_filename(entity: str, today: Optional[date] = None) -> str:
    return f"{entity}-{(today or date.today()).isoformat()}.csv"


def build_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Every field double-quoted; header row first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def csv_response(
    entity: str,
    headers: Sequence[str],
    rows: List[Sequence[Any]],
    today: Optional[date] = None,
) -> Response:
    """CSV download of rows; an empty dataset is rejected with 400."""
    if not rows:
        raise HTTPException(status_code=400, detail=f"No {entity} to export")
    content = build_csv(headers, rows)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(entity, today)}"'
        },
    )


def text_download(filename: str, content: str) -> Response:
    return Response(
        content=content,
        media_type="text/plain",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
