"""
Test data factories.

Builds normalized ProductRow records and raw sheet rows.
"""

from typing import Optional

from parsers.product_sheet import COLUMNS, ProductRow


class ProductRowFactory:
    """
    Factory for creating test ProductRow records.

    Usage:
        # Create with defaults
        row = ProductRowFactory.create()

        # Create with overrides
        row = ProductRowFactory.create(sku="SUA-180", retail_price=10000)

        # One product with several units of sale
        rows = ProductRowFactory.create_family("Sữa tươi", [("", 10000), ("thùng", 240000)])
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        sku: Optional[str] = None,
        variant_name: Optional[str] = None,
        name: Optional[str] = None,
        row_number: Optional[int] = None,
        **fields
    ) -> ProductRow:
        """
        Create a single row.

        Args:
            sku: SKU (auto-generated if not provided)
            variant_name: Variant name (auto-generated if not provided)
            name: Explicit product name (empty means derive from variant name)
            row_number: Spreadsheet row (auto-generated if not provided)
            **fields: Any other ProductRow field

        Returns:
            ProductRow
        """
        counter = cls._next_counter()

        return ProductRow(
            row_number=row_number or counter + 1,
            name=name,
            sku=sku or f"SKU-{counter:04d}",
            variant_name=variant_name or f"Test product {counter}",
            **fields
        )

    @classmethod
    def create_family(
        cls,
        base_name: str,
        units: list[tuple[str, float]],
        sku_prefix: Optional[str] = None,
        **fields
    ) -> list[ProductRow]:
        """
        Create the variants of one product.

        Args:
            base_name: Product name the variants derive to
            units: (unit suffix, retail price); empty suffix is the base unit
            sku_prefix: SKU prefix (auto-generated if not provided)
        """
        prefix = sku_prefix or f"FAM{cls._next_counter():03d}"
        rows = []
        for idx, (suffix, price) in enumerate(units, start=1):
            rows.append(cls.create(
                sku=f"{prefix}-{idx}",
                variant_name=f"{base_name} - {suffix}" if suffix else base_name,
                retail_price=price,
                **fields
            ))
        return rows


TEMPLATE_HEADERS = [
    "Tên sản phẩm*",
    "Hình thức quản lý sản phẩm",
    "Mô tả sản phẩm",
    "Nhãn hiệu",
    "Tags",
    "Tên phiên bản sản phẩm*",
    "Mã SKU*",
    "Barcode",
    "Khối lượng",
    "Đơn vị khối lượng",
    "Đơn vị",
    "Quy đổi đơn vị",
    "Ảnh đại diện",
    "Giá bán lẻ",
    "Giá nhập",
    "Giá bán buôn",
    "Áp dụng thuế",
    "Thuế đầu vào (%)",
    "Thuế đầu ra (%)",
    "Tồn kho ban đầu",
    "Tồn tối thiểu",
    "Tồn tối đa",
    "Điểm lưu kho",
    "Số ngày cảnh báo hết hạn",
    "Áp dụng bảo hành",
]


def template_row(**values) -> list:
    """A 25-cell template row; keys are ProductRow field names."""
    return [values.get(column.key) for column in COLUMNS]
