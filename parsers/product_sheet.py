"""
Product spreadsheet parser for catalog imports.

Turns the operator's product sheet (the 25-column import template, the
upstream "Xuất file sản phẩm" export, or that export already converted
to JSON) into typed ProductRow records.

Columns are declared once in COLUMNS. Headers are resolved against that
schema a single time per file; headers that match nothing, and second
headers for an already mapped column, are reported in the result instead
of being dropped silently.

No row is rejected here. Bad numbers become 0 and over-long text is
truncated to its column limit, both reported as issues; skipping
decisions belong to the grouper and the import executor.
"""

from dataclasses import asdict, dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence, Union
import hashlib
import json
import math

import pandas as pd
import structlog

from exceptions import SpreadsheetParseError
from utils.text_utils import clean_text, normalize_header

logger = structlog.get_logger(__name__)


DEFAULT_WEIGHT_UNIT = "g"
DEFAULT_UNIT = "unit"
DEFAULT_CONVERSION_RATE = 1.0
EXPORT_SHEET_NAME = "Xuất file sản phẩm"

TRUE_FLAGS = {"có", "yes", "true", "1", "giá bao gồm thuế"}


@dataclass(frozen=True)
class SheetColumn:
    """One declared spreadsheet column."""
    index: Optional[int]  # Position in the import template, None for header-only columns
    key: str
    header: str
    kind: str  # text | number | integer | flag | tags
    aliases: tuple[str, ...] = ()
    max_length: Optional[int] = 255  # Text only; None means unlimited


COLUMNS: tuple[SheetColumn, ...] = (
    SheetColumn(0, "name", "Tên sản phẩm", "text"),
    SheetColumn(1, "product_type", "Hình thức quản lý sản phẩm", "text", max_length=100),
    SheetColumn(2, "description", "Mô tả sản phẩm", "text", ("Mô tả",), max_length=None),
    SheetColumn(3, "brand", "Nhãn hiệu", "text"),
    SheetColumn(4, "tags", "Tags", "tags", ("Tag",)),
    SheetColumn(5, "variant_name", "Tên phiên bản sản phẩm", "text"),
    SheetColumn(6, "sku", "Mã SKU", "text"),
    SheetColumn(7, "barcode", "Barcode", "text"),
    SheetColumn(8, "weight", "Khối lượng", "number"),
    SheetColumn(9, "weight_unit", "Đơn vị khối lượng", "text"),
    SheetColumn(10, "unit", "Đơn vị", "text"),
    SheetColumn(11, "conversion_rate", "Quy đổi đơn vị", "number"),
    SheetColumn(12, "image_url", "Ảnh đại diện", "text", max_length=None),
    SheetColumn(13, "retail_price", "Giá bán lẻ", "number", ("PL_Giá bán lẻ",)),
    SheetColumn(14, "import_price", "Giá nhập", "number", ("PL_Giá nhập",)),
    SheetColumn(15, "wholesale_price", "Giá bán buôn", "number", ("PL_Giá bán buôn",)),
    SheetColumn(16, "tax_applied", "Áp dụng thuế", "flag", ("Giá áp dụng thuế",)),
    SheetColumn(17, "input_tax", "Thuế đầu vào (%)", "number"),
    SheetColumn(18, "output_tax", "Thuế đầu ra (%)", "number"),
    SheetColumn(19, "initial_stock", "Tồn kho ban đầu", "number", ("LC_CN1_Tồn kho ban đầu",)),
    SheetColumn(20, "min_stock", "Tồn tối thiểu", "number", ("LC_CN1_Tồn tối thiểu",)),
    SheetColumn(21, "max_stock", "Tồn tối đa", "number", ("LC_CN1_Tồn tối đa",)),
    SheetColumn(22, "warehouse_location", "Điểm lưu kho", "text", ("LC_CN1_Điểm lưu kho",)),
    SheetColumn(23, "expiry_warning_days", "Số ngày cảnh báo hết hạn", "integer"),
    SheetColumn(24, "warranty_applied", "Áp dụng bảo hành", "flag"),
)

# Only present in header-keyed exports, never in the positional template
EXTRA_COLUMNS: tuple[SheetColumn, ...] = (
    SheetColumn(None, "warranty_policy", "Chính sách bảo hành", "text", max_length=None),
)

ALL_COLUMNS = COLUMNS + EXTRA_COLUMNS
TEMPLATE_COLUMN_COUNT = len(COLUMNS)


def _build_header_lookup() -> dict[str, SheetColumn]:
    lookup = {}
    for column in ALL_COLUMNS:
        for label in (column.header, column.key, *column.aliases):
            lookup[normalize_header(label)] = column
    return lookup


_HEADER_LOOKUP = _build_header_lookup()


# ===================
# RECORDS
# ===================

@dataclass
class ProductRow:
    """One normalized spreadsheet row."""
    row_number: int
    name: Optional[str] = None
    product_type: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    variant_name: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    weight: float = 0.0
    weight_unit: str = DEFAULT_WEIGHT_UNIT
    unit: str = DEFAULT_UNIT
    conversion_rate: float = DEFAULT_CONVERSION_RATE
    image_url: Optional[str] = None
    retail_price: float = 0.0
    import_price: float = 0.0
    wholesale_price: float = 0.0
    tax_applied: bool = False
    input_tax: float = 0.0
    output_tax: float = 0.0
    initial_stock: float = 0.0
    min_stock: float = 0.0
    max_stock: float = 0.0
    warehouse_location: Optional[str] = None
    expiry_warning_days: int = 0
    warranty_applied: bool = False
    warranty_policy: Optional[str] = None


@dataclass
class RowIssue:
    """Single non-blocking problem found in a row."""
    row: int
    field: str
    error: str


@dataclass
class SheetParseResult:
    """Result of parsing a product sheet."""
    rows: list[ProductRow] = field(default_factory=list)
    issues: list[RowIssue] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)
    unknown_headers: list[str] = field(default_factory=list)
    duplicate_headers: list[str] = field(default_factory=list)
    layout: str = "header"

    @property
    def has_issues(self) -> bool:
        return bool(self.issues) or bool(self.unknown_headers) or bool(self.duplicate_headers)


# ===================
# NORMALIZATION
# ===================

def normalize_row(values: Mapping[str, Any], row_number: int) -> tuple[ProductRow, list[RowIssue]]:
    """
    Coerce one row of raw cells into a ProductRow.

    Args:
        values: Raw cell values keyed by canonical column key
        row_number: Spreadsheet row number (1-indexed, header is row 1)

    Returns:
        Tuple of (ProductRow, issues found while coercing)
    """
    row = ProductRow(row_number=row_number)
    issues: list[RowIssue] = []

    for column in ALL_COLUMNS:
        raw = values.get(column.key)

        if column.kind == "text":
            value = clean_text(raw, max_length=None)
            if value is not None and column.max_length is not None and len(value) > column.max_length:
                issues.append(RowIssue(
                    row_number,
                    column.header,
                    f"Longer than {column.max_length} characters ({len(value)}), truncated"
                ))
                value = value[:column.max_length]
            if value is None:
                if column.key == "weight_unit":
                    value = DEFAULT_WEIGHT_UNIT
                elif column.key == "unit":
                    value = DEFAULT_UNIT
            setattr(row, column.key, value)

        elif column.kind == "tags":
            text = clean_text(raw, max_length=None)
            row.tags = [t.strip() for t in text.split(",") if t.strip()] if text else []

        elif column.kind == "flag":
            text = clean_text(raw)
            setattr(row, column.key, bool(text) and text.casefold() in TRUE_FLAGS)

        else:
            default = DEFAULT_CONVERSION_RATE if column.key == "conversion_rate" else 0.0
            number = _parse_number(raw)
            if number is None:
                if clean_text(raw) is not None:
                    issues.append(RowIssue(row_number, column.header, f"Not a number: {raw!r}, using {default:g}"))
                number = default
            elif number < 0:
                issues.append(RowIssue(row_number, column.header, "Must be a non-negative number, using 0"))
                number = 0.0

            if column.kind == "integer":
                setattr(row, column.key, int(number))
            else:
                setattr(row, column.key, number)

    return row, issues


def _parse_number(value: Any) -> Optional[float]:
    """Parse a numeric cell. Returns None when the cell holds no usable number."""
    if value is None:
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").replace(" ", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _resolve_headers(headers: Sequence[Any]) -> tuple[dict[int, SheetColumn], list[str], list[str]]:
    """
    Map header positions to declared columns. First header wins per column.

    Returns:
        Tuple of (position → column, unrecognized headers, repeated headers)
    """
    positions: dict[int, SheetColumn] = {}
    unknown: list[str] = []
    duplicates: list[str] = []
    seen: set[str] = set()

    for idx, header in enumerate(headers):
        normalized = normalize_header(header)
        if not normalized:
            continue
        column = _HEADER_LOOKUP.get(normalized)
        if column is None:
            unknown.append(str(header).strip())
            continue
        if column.key in seen:
            duplicates.append(str(header).strip())
            continue
        seen.add(column.key)
        positions[idx] = column

    return positions, unknown, duplicates


def _is_blank(cells: Iterable[Any]) -> bool:
    return all(clean_text(c) is None for c in cells)


def _collect(result: SheetParseResult, values: Mapping[str, Any], row_number: int) -> None:
    row, issues = normalize_row(values, row_number)
    result.rows.append(row)
    result.issues.extend(issues)


def _log_result(result: SheetParseResult) -> None:
    if result.unknown_headers:
        logger.warning(
            "unknown_sheet_headers",
            headers=result.unknown_headers
        )
    if result.duplicate_headers:
        logger.warning(
            "duplicate_sheet_headers_ignored",
            headers=result.duplicate_headers
        )
    logger.info(
        "product_sheet_parsed",
        layout=result.layout,
        rows=len(result.rows),
        issues=len(result.issues)
    )


# ===================
# ENTRY POINTS
# ===================

def parse_positional_rows(rows: Iterable[Sequence[Any]], first_row_number: int = 2) -> SheetParseResult:
    """
    Parse array-of-arrays rows laid out in the 25-column template order.

    The header row must already be removed. Short rows are padded,
    long rows truncated. Fully blank rows are ignored.
    """
    result = SheetParseResult(layout="positional", headers=[c.header for c in COLUMNS])

    for offset, cells in enumerate(rows):
        cells = list(cells)[:TEMPLATE_COLUMN_COUNT]
        if _is_blank(cells):
            continue
        cells += [None] * (TEMPLATE_COLUMN_COUNT - len(cells))
        values = {column.key: cells[column.index] for column in COLUMNS}
        _collect(result, values, first_row_number + offset)

    _log_result(result)
    return result


def parse_header_rows(records: Iterable[Mapping[str, Any]], first_row_number: int = 2) -> SheetParseResult:
    """
    Parse row objects keyed by free-text spreadsheet headers.

    Headers are resolved once over the union of all record keys.
    """
    records = list(records)

    headers: list[str] = []
    for record in records:
        for key in record.keys():
            if key not in headers:
                headers.append(key)

    positions, unknown, duplicates = _resolve_headers(headers)
    result = SheetParseResult(
        layout="header",
        headers=[str(h) for h in headers],
        unknown_headers=unknown,
        duplicate_headers=duplicates,
    )

    for offset, record in enumerate(records):
        if _is_blank(record.values()):
            continue
        values = {column.key: record.get(headers[idx]) for idx, column in positions.items()}
        _collect(result, values, first_row_number + offset)

    _log_result(result)
    return result


def parse_product_sheet(
    file: Union[str, Path, BytesIO],
    filename: Optional[str] = None,
    sheet_name: Optional[str] = None,
) -> SheetParseResult:
    """
    Parse a product spreadsheet (.xlsx, .xls or .csv).

    Uses header-keyed resolution when the first row names a SKU column,
    otherwise reads the 25-column template positionally.

    Args:
        file: File path (str/Path) or file-like object (BytesIO)
        filename: Original filename, used to pick the reader for file objects
        sheet_name: Workbook sheet to read (first sheet if not given)

    Returns:
        SheetParseResult with normalized rows and issues

    Raises:
        SpreadsheetParseError: If file cannot be read or has no rows
    """
    name = filename or (str(file) if isinstance(file, (str, Path)) else "")
    suffix = Path(name).suffix.lower() if name else ".xlsx"

    logger.info("parsing_product_sheet", file_type=type(file).__name__, suffix=suffix)

    try:
        if suffix == ".csv":
            df = pd.read_csv(file, header=None, dtype=object)
        else:
            engine = "xlrd" if suffix == ".xls" else "openpyxl"
            df = pd.read_excel(file, sheet_name=sheet_name or 0, header=None, dtype=object, engine=engine)
    except Exception as e:
        logger.error("product_sheet_read_failed", error=str(e))
        raise SpreadsheetParseError(
            message="Failed to read spreadsheet",
            details={"original_error": str(e)}
        )

    if df.empty:
        raise SpreadsheetParseError(message="Spreadsheet is empty")

    table = df.astype(object).where(pd.notna(df), None).values.tolist()
    header, body = table[0], table[1:]

    positions, unknown, duplicates = _resolve_headers(header)
    if not any(column.key == "sku" for column in positions.values()):
        logger.info("sku_header_not_found_using_template_layout")
        return parse_positional_rows(body)

    result = SheetParseResult(
        layout="header",
        headers=[str(h).strip() for h in header if h is not None],
        unknown_headers=unknown,
        duplicate_headers=duplicates,
    )
    for offset, cells in enumerate(body):
        if _is_blank(cells):
            continue
        values = {column.key: cells[idx] for idx, column in positions.items()}
        _collect(result, values, offset + 2)

    _log_result(result)
    return result


def parse_product_json(source: Union[str, Path, list]) -> SheetParseResult:
    """
    Parse an already-converted JSON array of header-keyed row objects.

    Raises:
        SpreadsheetParseError: If the file is unreadable or not an array of objects
    """
    if isinstance(source, (str, Path)):
        try:
            with open(source, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("product_json_read_failed", path=str(source), error=str(e))
            raise SpreadsheetParseError(
                message="Failed to read product JSON",
                details={"path": str(source), "original_error": str(e)}
            )
    else:
        data = source

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise SpreadsheetParseError(message="Product JSON must be an array of row objects")

    return parse_header_rows(data)


# ===================
# VALIDATION
# ===================

def validate_rows(rows: Sequence[ProductRow]) -> list[RowIssue]:
    """
    Preview checks shown to the operator before an import.

    These never block the import by themselves; duplicate SKUs are
    enforced again by the import executor.
    """
    issues: list[RowIssue] = []
    seen_skus: set[str] = set()

    for row in rows:
        if not row.sku:
            issues.append(RowIssue(row.row_number, "Mã SKU", "SKU is empty; row will be skipped"))
        elif row.sku in seen_skus:
            issues.append(RowIssue(row.row_number, "Mã SKU", f"SKU '{row.sku}' is duplicated"))
        else:
            seen_skus.add(row.sku)

        if not row.variant_name:
            issues.append(RowIssue(row.row_number, "Tên phiên bản sản phẩm", "Variant name is empty; row will be skipped"))

        if not row.unit:
            issues.append(RowIssue(row.row_number, "Đơn vị", "Unit is required"))

        if row.conversion_rate <= 0:
            issues.append(RowIssue(row.row_number, "Quy đổi đơn vị", "Conversion rate must be greater than 0"))

        for label, value in (("Thuế đầu vào (%)", row.input_tax), ("Thuế đầu ra (%)", row.output_tax)):
            if value > 100:
                issues.append(RowIssue(row.row_number, label, "Tax must be between 0 and 100%"))

    return issues


def rows_fingerprint(rows: Sequence[ProductRow]) -> str:
    """Stable SHA-256 over the normalized rows."""
    payload = json.dumps(
        [asdict(row) for row in rows],
        sort_keys=True,
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
