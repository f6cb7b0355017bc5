"""
Unit tests for product grouping.

Run: pytest tests/unit/test_product_grouping.py -v
"""

import pytest

from parsers.product_sheet import ProductRow
from services.product_grouping import (
    DEFAULT_PRODUCT_TYPE,
    derive_product_name,
    group_rows,
    resolve_product_name,
)

from tests.factories import ProductRowFactory


class TestDeriveProductName:
    """Tests for derive_product_name()"""

    @pytest.mark.parametrize("variant_name,expected", [
        ("Sữa tươi - thùng", "Sữa tươi"),
        ("Sữa tươi - lốc", "Sữa tươi"),
        ("Mì gói - bao", "Mì gói"),
        ("Sữa tươi - THÙNG", "Sữa tươi"),
        ("Sữa tươi", "Sữa tươi"),
        ("Bánh - socola", "Bánh - socola"),
        ("Kẹo thùng", "Kẹo thùng"),
    ])
    def test_strips_unit_suffix(self, variant_name, expected):
        assert derive_product_name(variant_name) == expected

    def test_stacked_suffixes_are_all_removed(self):
        assert derive_product_name("Sữa tươi - lốc - thùng") == "Sữa tươi"

    def test_is_idempotent(self):
        for name in ["Sữa tươi - thùng", "Nước - vỉ - hộp", "Bánh quy", "  Kẹo - cây  "]:
            once = derive_product_name(name)
            assert derive_product_name(once) == once

    @pytest.mark.parametrize("variant_name", [None, "", "   "])
    def test_empty_input(self, variant_name):
        assert derive_product_name(variant_name) == ""


class TestResolveProductName:
    """Tests for resolve_product_name()"""

    def test_explicit_name_wins(self):
        row = ProductRow(row_number=2, name="Sữa Vinamilk", variant_name="Sữa tươi - thùng")

        assert resolve_product_name(row) == "Sữa Vinamilk"

    def test_blank_name_falls_back_to_variant(self):
        row = ProductRow(row_number=2, name="  ", variant_name="Sữa tươi - thùng")

        assert resolve_product_name(row) == "Sữa tươi"


class TestGroupRows:
    """Tests for group_rows()"""

    def test_rows_partitioned_by_product(self):
        """Every row lands in exactly one group."""
        milk = ProductRowFactory.create_family("Sữa tươi", [("", 10000), ("lốc", 40000), ("thùng", 240000)])
        cookies = ProductRowFactory.create_family("Bánh quy", [("", 5000), ("hộp", 60000)])
        rows = [milk[0], cookies[0], milk[1], cookies[1], milk[2]]

        groups = group_rows(rows)

        assert [g.name for g in groups] == ["Sữa tươi", "Bánh quy"]
        assert [r.sku for r in groups[0].rows] == [r.sku for r in milk]
        assert [r.sku for r in groups[1].rows] == [r.sku for r in cookies]
        assert sum(len(g.rows) for g in groups) == len(rows)

    def test_first_row_fixes_product_attributes(self):
        rows = [
            ProductRowFactory.create(name="Sữa", product_type="COMBO", brand="Vinamilk", tags=["sữa"]),
            ProductRowFactory.create(name="Sữa", product_type="NORMAL", brand="TH", tags=["khác"]),
        ]

        group = group_rows(rows)[0]

        assert group.product_type == "COMBO"
        assert group.brand == "Vinamilk"
        assert group.tags == ["sữa"]
        assert len(group.rows) == 2

    def test_default_product_type(self):
        groups = group_rows([ProductRowFactory.create(name="Sữa")])

        assert groups[0].product_type == DEFAULT_PRODUCT_TYPE

    def test_rows_without_name_are_skipped(self):
        rows = [
            ProductRow(row_number=2, sku="X-1"),
            ProductRowFactory.create(name="Sữa"),
        ]

        groups = group_rows(rows)

        assert len(groups) == 1
        assert groups[0].skus == [rows[1].sku]

    def test_names_compared_exactly(self):
        """No case folding: 'sữa' and 'Sữa' are different products."""
        rows = [ProductRowFactory.create(name="Sữa"), ProductRowFactory.create(name="sữa")]

        assert len(group_rows(rows)) == 2

    def test_skus_ignores_missing(self):
        rows = [ProductRowFactory.create(name="Sữa"), ProductRow(row_number=9, name="Sữa", variant_name="Sữa")]

        group = group_rows(rows)[0]

        assert group.skus == [rows[0].sku]
