"""
API tests for the catalog import routes.

Run: pytest tests/unit/test_catalog_import_routes.py -v
"""

from io import BytesIO

import pandas as pd

from config import Settings
from routes.dependencies import get_app_settings

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
COLUMNS = ["Tên phiên bản sản phẩm*", "Mã SKU*", "Giá bán lẻ", "Tồn kho ban đầu", "Ghi chú"]


def create_excel_bytes(rows: list[list], columns: list[str] = COLUMNS) -> bytes:
    """Helper to create an upload in memory."""
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        pd.DataFrame(rows, columns=columns).to_excel(writer, sheet_name="Xuất file sản phẩm", index=False)
    return output.getvalue()


MILK_ROWS = [
    ["Sữa tươi", "SUA-1", 10000, 24, None],
    ["Sữa tươi - lốc", "SUA-2", 40000, 6, None],
    ["Sữa tươi - thùng", "SUA-3", 240000, 1, "hàng mới"],
    ["Bánh quy", "BQ-1", 5000, 50, None],
]


def upload(client, content: bytes, filename: str = "products.xlsx"):
    return client.post(
        "/api/catalog/import/preview",
        files={"file": (filename, content, XLSX_TYPE)},
    )


class TestPreview:
    """POST /api/catalog/import/preview"""

    def test_preview_groups_and_conversions(self, test_client_with_mock_db, mock_supabase):
        response = upload(test_client_with_mock_db, create_excel_bytes(MILK_ROWS))

        assert response.status_code == 200
        data = response.json()
        assert data["row_count"] == 4
        assert data["product_count"] == 2
        assert data["unknown_headers"] == ["Ghi chú"]
        assert data["duplicate_headers"] == []
        assert data["duplicate_skus"] == []

        milk = data["products"][0]
        assert milk["name"] == "Sữa tươi"
        assert milk["skus"] == ["SUA-1", "SUA-2", "SUA-3"]
        assert {(c["from_sku"], c["to_sku"], c["rate"]) for c in milk["conversions"]} == {
            ("SUA-1", "SUA-2", 4), ("SUA-1", "SUA-3", 24), ("SUA-2", "SUA-3", 6),
        }
        # Preview writes nothing
        assert mock_supabase.calls == []

    def test_preview_reports_duplicates(self, test_client_with_mock_db):
        rows = MILK_ROWS + [["Bánh quy - hộp", "BQ-1", 60000, 1, None]]

        data = upload(test_client_with_mock_db, create_excel_bytes(rows)).json()

        assert data["duplicate_skus"] == ["BQ-1"]
        assert any(i["field"] == "Mã SKU" for i in data["issues"])

    def test_wrong_extension_rejected(self, test_client_with_mock_db):
        response = upload(test_client_with_mock_db, b"hello", filename="notes.txt")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "SPREADSHEET_PARSE_ERROR"

    def test_too_many_rows_rejected(self, test_client_with_mock_db):
        from main import app

        app.dependency_overrides[get_app_settings] = lambda: Settings(
            supabase_url="https://test-project.supabase.co",
            supabase_key="test-anon-key",
            import_max_rows=2,
        )

        response = upload(test_client_with_mock_db, create_excel_bytes(MILK_ROWS))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "UPLOAD_TOO_LARGE"
        assert response.json()["error"]["details"]["maximum"] == 2


class TestConfirm:
    """POST /api/catalog/import/{preview_id}/confirm"""

    def test_confirm_imports_and_clears_preview(self, test_client_with_mock_db, mock_supabase, preview_cache):
        # Arrange
        preview_id = upload(test_client_with_mock_db, create_excel_bytes(MILK_ROWS)).json()["preview_id"]

        # Act
        response = test_client_with_mock_db.post(f"/api/catalog/import/{preview_id}/confirm")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["mode"] == "replace"
        assert data["products_created"] == 2
        assert data["variants_created"] == 4
        assert data["conversions_created"] == 3
        assert preview_cache.retrieve(preview_id) is None

        counts = test_client_with_mock_db.get("/api/catalog/counts").json()
        assert counts == {
            "products": 2,
            "product_variants": 4,
            "inventory": 4,
            "warranties": 4,
            "unit_conversions": 3,
        }

    def test_unknown_preview_is_404(self, test_client_with_mock_db):
        response = test_client_with_mock_db.post("/api/catalog/import/missing/confirm")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PREVIEW_NOT_FOUND"

    def test_duplicate_skus_refused(self, test_client_with_mock_db, mock_supabase):
        rows = MILK_ROWS + [["Bánh quy - hộp", "BQ-1", 60000, 1, None]]
        preview_id = upload(test_client_with_mock_db, create_excel_bytes(rows)).json()["preview_id"]

        response = test_client_with_mock_db.post(f"/api/catalog/import/{preview_id}/confirm")

        assert response.status_code == 422
        assert response.json()["error"]["details"]["skus"] == ["BQ-1"]
        assert mock_supabase.calls == []

    def test_failed_run_can_be_resumed(self, test_client_with_mock_db, mock_supabase, preview_cache):
        # Arrange: the fourth inventory insert belongs to the second group
        preview_id = upload(test_client_with_mock_db, create_excel_bytes(MILK_ROWS)).json()["preview_id"]
        mock_supabase.fail_on("inventory", "insert", call=4)

        failed = test_client_with_mock_db.post(f"/api/catalog/import/{preview_id}/confirm").json()
        mock_supabase.clear_failures()

        # Act
        response = test_client_with_mock_db.post(
            f"/api/catalog/import/runs/{failed['run_id']}/resume",
            params={"preview_id": preview_id},
        )

        # Assert
        assert failed["success"] is False
        assert failed["groups_committed"] == 1
        assert preview_cache.retrieve(preview_id) is None
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert mock_supabase.count("product_variants") == 4


class TestRuns:
    """GET /api/catalog/import/runs"""

    def test_list_and_get_runs(self, test_client_with_mock_db):
        preview_id = upload(test_client_with_mock_db, create_excel_bytes(MILK_ROWS)).json()["preview_id"]
        run_id = test_client_with_mock_db.post(f"/api/catalog/import/{preview_id}/confirm").json()["run_id"]

        runs = test_client_with_mock_db.get("/api/catalog/import/runs").json()
        run = test_client_with_mock_db.get(f"/api/catalog/import/runs/{run_id}").json()

        assert [r["id"] for r in runs] == [run_id]
        assert run["status"] == "completed"
        assert run["last_committed_group"] == 1

    def test_unknown_run_is_404(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get("/api/catalog/import/runs/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IMPORT_RUN_NOT_FOUND"


class TestRoot:

    def test_root_lists_endpoints(self, test_client_with_mock_db):
        data = test_client_with_mock_db.get("/").json()

        assert data["endpoints"]["import_preview"] == "/api/catalog/import/preview"
