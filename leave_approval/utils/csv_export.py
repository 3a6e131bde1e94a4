"""
CSV export utilities
"""
import csv
import io
from typing import Iterable, Dict, List
from fastapi.responses import StreamingResponse


def stream_csv(headers: List[str], rows: Iterable[Dict], filename: str = "export.csv") -> StreamingResponse:
    """
    Stream CSV data as an HTTP attachment, one chunk per row

    Args:
        headers: Column headers, also the keys looked up in each row
        rows: Iterable of dictionaries; missing keys and None render as empty cells
        filename: Filename for Content-Disposition header
    """
    def generate():
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=headers, quoting=csv.QUOTE_MINIMAL)

        writer.writeheader()
        yield _drain(output)

        for row in rows:
            writer.writerow({
                header: "" if row.get(header) is None else str(row.get(header))
                for header in headers
            })
            yield _drain(output)

    return StreamingResponse(
        generate(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _drain(buffer: io.StringIO) -> str:
    content = buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)
    return content
