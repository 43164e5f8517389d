"""Tabular report sinks.

Rows are plain dicts keyed by column field; each sink takes the ordered
``(field, title)`` column list and writes a header row followed by one row
per record.
"""

import csv
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from acl_audit.core.errors import ReportError
from acl_audit.infrastructure.logging import get_logger

logger = get_logger(__name__)

Columns = Sequence[Tuple[str, str]]

# Column widths are capped so descriptors do not produce unusable sheets
MAX_COLUMN_WIDTH = 60


class ReportFormat(Enum):
    """Report file formats"""

    CSV = "csv"
    XLSX = "xlsx"


def detect_format(path: Path, requested: Optional[str] = None) -> ReportFormat:
    """Explicit format wins; otherwise the file suffix decides, defaulting to CSV"""
    if requested:
        try:
            return ReportFormat(requested.lower())
        except ValueError:
            raise ReportError(str(path), f"unsupported format '{requested}'") from None
    if path.suffix.lower() == ".xlsx":
        return ReportFormat.XLSX
    return ReportFormat.CSV


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return value


def write_csv(path: Path, columns: Columns, rows: Iterable[Dict[str, Any]]) -> int:
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([title for _, title in columns])
        for row in rows:
            writer.writerow([_cell_value(row.get(name)) for name, _ in columns])
            count += 1
    return count


def write_xlsx(
    path: Path,
    columns: Columns,
    rows: Iterable[Dict[str, Any]],
    sheet_title: str = "Report",
) -> int:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = sheet_title[:31]
    worksheet.sheet_view.showGridLines = False

    header_font = Font(bold=True, color="FFFFFF", size=11, name="Calibri")
    header_fill = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
    data_font = Font(size=10, name="Calibri")
    data_alignment = Alignment(vertical="center", wrap_text=False)
    thin_side = Side(style="thin", color="D9D9D9")
    cell_border = Border(left=thin_side, right=thin_side, top=thin_side, bottom=thin_side)

    column_widths = [len(title) for _, title in columns]
    for col_num, (_, title) in enumerate(columns, 1):
        cell = worksheet.cell(row=1, column=col_num, value=title)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = cell_border

    count = 0
    for row_num, row in enumerate(rows, 2):
        for col_num, (name, _) in enumerate(columns, 1):
            value = _cell_value(row.get(name))
            cell = worksheet.cell(row=row_num, column=col_num, value=value)
            cell.font = data_font
            cell.alignment = data_alignment
            cell.border = cell_border
            column_widths[col_num - 1] = max(column_widths[col_num - 1], len(str(value)))
        count += 1

    for col_num, width in enumerate(column_widths, 1):
        worksheet.column_dimensions[get_column_letter(col_num)].width = min(width + 2, MAX_COLUMN_WIDTH)

    worksheet.freeze_panes = "A2"
    last_row = max(count + 1, 1)
    worksheet.auto_filter.ref = f"A1:{get_column_letter(len(columns))}{last_row}"

    workbook.save(path)
    return count


def write_report(
    path: Path,
    columns: Columns,
    rows: Iterable[Dict[str, Any]],
    report_format: Optional[str] = None,
    sheet_title: str = "Report",
) -> int:
    """Write ``rows`` to ``path`` and return how many rows were written.

    Raises:
        ReportError: If the format is unsupported or the file cannot be written
    """
    fmt = detect_format(path, report_format)
    rows = list(rows)
    try:
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        if fmt == ReportFormat.XLSX:
            count = write_xlsx(path, columns, rows, sheet_title=sheet_title)
        else:
            count = write_csv(path, columns, rows)
    except OSError as e:
        raise ReportError(str(path), str(e)) from e

    logger.info("report_written", path=str(path), format=fmt.value, rows=count)
    return count


def rows_for(records: Iterable[Any]) -> List[Dict[str, Any]]:
    """Rows for records exposing ``to_row()``"""
    return [record.to_row() for record in records]
