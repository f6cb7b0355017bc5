"""
Catalog record schemas.

Insert payloads for the five catalog tables written by an import run.
"""

from pydantic import Field, field_validator
from typing import Optional

from models.base import BaseSchema


class ProductCreate(BaseSchema):
    """
    Create a product.

    Required: name, product_type
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Product name (grouping key of the import)",
        examples=["Sữa tươi Vinamilk 180ml"]
    )
    product_type: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Product management type"
    )
    description: Optional[str] = Field(None, description="Free-text description")
    brand: Optional[str] = Field(None, max_length=255, description="Brand")
    tags: Optional[str] = Field(None, description="Comma-separated tags")

    @field_validator("tags", mode="before")
    @classmethod
    def join_tags(cls, v):
        """Accept a list of tags and store it comma-joined."""
        if isinstance(v, list):
            return ",".join(v) if v else None
        return v


class VariantCreate(BaseSchema):
    """Create a product variant. SKU is globally unique."""

    product_id: str = Field(..., description="Owning product ID")
    sku: str = Field(..., min_length=1, max_length=255, description="Stock-keeping unit code")
    barcode: Optional[str] = Field(None, max_length=255)
    variant_name: str = Field(..., min_length=1, max_length=255)
    weight: float = Field(default=0, ge=0)
    weight_unit: str = Field(default="g")
    unit: str = Field(default="unit")
    image_url: Optional[str] = None
    retail_price: float = Field(default=0, ge=0)
    wholesale_price: float = Field(default=0, ge=0)
    import_price: float = Field(default=0, ge=0)
    tax_applied: bool = False
    input_tax: float = Field(default=0, ge=0)
    output_tax: float = Field(default=0, ge=0)


class InventoryCreate(BaseSchema):
    """Create the inventory row of a variant. Current stock starts at initial stock."""

    variant_id: str = Field(..., description="Variant ID")
    initial_stock: float = Field(default=0, ge=0)
    min_stock: float = Field(default=0, ge=0)
    max_stock: float = Field(default=0, ge=0)
    warehouse_location: Optional[str] = Field(None, max_length=255)

    def to_record(self) -> dict:
        record = self.model_dump()
        record["current_stock"] = self.initial_stock
        return record


class WarrantyCreate(BaseSchema):
    """Create the warranty row of a variant."""

    variant_id: str = Field(..., description="Variant ID")
    expiration_warning_days: int = Field(default=0, ge=0)
    warranty_policy: Optional[str] = None


class UnitConversionCreate(BaseSchema):
    """Create a directed conversion edge between two variants."""

    from_variant_id: str
    to_variant_id: str
    conversion_rate: int = Field(..., gt=0)

    @field_validator("to_variant_id")
    @classmethod
    def distinct_variants(cls, v: str, info) -> str:
        if v == info.data.get("from_variant_id"):
            raise ValueError("Conversion must link two different variants")
        return v


class CatalogCountsResponse(BaseSchema):
    """Row counts per catalog table."""

    products: int = 0
    product_variants: int = 0
    inventory: int = 0
    warranties: int = 0
    unit_conversions: int = 0
