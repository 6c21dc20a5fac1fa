"""
Product API tests.

Verifies JSON and multipart writes, payload validation, auto-archive,
restore precondition and hosted image serving.
"""

import io
import os

import pytest

from counterpos.services import products_service


class TestCreate:

    def test_create_json(self, client, admin_headers):
        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Soap", "barcode": "111", "price_cents": 2500, "stock": 10,
            "primary_category": "Household",
        })

        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["price_cents"] == 2500
        assert product["is_active"] is True
        assert product["created_at"].endswith("Z")

    def test_create_multipart_with_image(self, client, admin_headers, upload_folder):
        resp = client.post(
            "/api/products",
            headers=admin_headers,
            data={
                "name": "Soap",
                "barcode": "111",
                "price_cents": "2500",
                "stock": "4",
                "sub_category": "",
                "image": (io.BytesIO(b"\x89PNG fake"), "soap.png", "image/png"),
            },
            content_type="multipart/form-data",
        )

        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["stock"] == 4
        assert product["sub_category"] is None
        assert product["image_url"].startswith("/product-image/")

        image = client.get(product["image_url"])
        assert image.status_code == 200
        assert image.data == b"\x89PNG fake"

    def test_duplicate_barcode(self, client, admin_headers, product_soap):
        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Other", "barcode": product_soap.barcode, "price_cents": 1,
        })
        assert resp.status_code == 409

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Soap", "barcode": "111"},
            {"name": "Soap", "barcode": "111", "price_cents": 12.5},
            {"name": "Soap", "barcode": "111", "price_cents": -1},
            {"name": "Soap", "barcode": "111", "price_cents": 100, "stock": -2},
            {"name": "Soap", "barcode": "111", "price_cents": 100, "image_url": "ftp://x"},
            {"name": "Soap", "barcode": "111", "price_cents": 100, "sku": "nope"},
            {"name": "", "barcode": "111", "price_cents": 100},
        ],
    )
    def test_validation(self, client, admin_headers, payload):
        resp = client.post("/api/products", headers=admin_headers, json=payload)
        assert resp.status_code == 400

    def test_failed_commit_removes_fresh_upload(self, client, admin_headers, product_soap,
                                                upload_folder, monkeypatch):
        # Another terminal took the barcode between the check and the commit
        monkeypatch.setattr(products_service, "_require_unique_barcode", lambda *args, **kwargs: None)

        resp = client.post(
            "/api/products",
            headers=admin_headers,
            data={
                "name": "Soap refill",
                "barcode": product_soap.barcode,
                "price_cents": "1500",
                "stock": "3",
                "image": (io.BytesIO(b"\x89PNG fake"), "refill.png", "image/png"),
            },
            content_type="multipart/form-data",
        )

        assert resp.status_code == 409
        assert os.listdir(upload_folder) == []

    def test_cashier_cannot_create(self, client, cashier_headers):
        resp = client.post("/api/products", headers=cashier_headers, json={
            "name": "Soap", "barcode": "111", "price_cents": 100,
        })
        assert resp.status_code == 403


class TestReadAndUpdate:

    def test_cashier_can_list_and_scan(self, client, cashier_headers, product_soap):
        resp = client.get("/api/products", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 1

        resp = client.get(f"/api/products/barcode/{product_soap.barcode}", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["name"] == "Soap"

    def test_unknown_barcode(self, client, cashier_headers):
        resp = client.get("/api/products/barcode/000", headers=cashier_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"

    def test_update_to_zero_stock_archives(self, client, admin_headers, product_soap):
        resp = client.put(f"/api/products/{product_soap.id}", headers=admin_headers, json={
            "stock": 0, "is_active": True,
        })

        assert resp.status_code == 200
        product = resp.get_json()["product"]
        assert product["stock"] == 0
        assert product["is_active"] is False

    def test_failed_update_removes_fresh_upload(self, client, admin_headers, product_soap,
                                                product_rice, upload_folder, monkeypatch):
        monkeypatch.setattr(products_service, "_require_unique_barcode", lambda *args, **kwargs: None)

        resp = client.put(
            f"/api/products/{product_rice.id}",
            headers=admin_headers,
            data={
                "barcode": product_soap.barcode,
                "image": (io.BytesIO(b"\x89PNG fake"), "rice.png", "image/png"),
            },
            content_type="multipart/form-data",
        )

        assert resp.status_code == 409
        assert os.listdir(upload_folder) == []

    def test_update_missing(self, client, admin_headers):
        resp = client.put("/api/products/999", headers=admin_headers, json={"name": "x"})
        assert resp.status_code == 404


class TestArchiveRestoreDelete:

    def test_archive_then_restore(self, client, admin_headers, product_soap):
        resp = client.delete(f"/api/products/{product_soap.id}", headers=admin_headers)
        assert resp.get_json()["product"]["is_active"] is False

        resp = client.put(f"/api/products/{product_soap.id}/restore", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["is_active"] is True

    def test_restore_zero_stock_is_blocked(self, client, admin_headers, product_factory):
        product = product_factory("Empty", "999", stock=0, is_active=False)

        resp = client.put(f"/api/products/{product.id}/restore", headers=admin_headers)
        assert resp.status_code == 409
        assert "zero stock" in resp.get_json()["error"]

        resp = client.put(f"/api/products/{product.id}/restore", headers=admin_headers, json={"stock": 5})
        assert resp.status_code == 200
        assert resp.get_json()["product"]["stock"] == 5

    def test_permanent_delete(self, client, admin_headers, product_soap):
        resp = client.delete(f"/api/products/{product_soap.id}/permanent", headers=admin_headers)
        assert resp.status_code == 200

        resp = client.get(f"/api/products/{product_soap.id}", headers=admin_headers)
        assert resp.status_code == 404


class TestProductImageServing:

    def test_missing_image(self, client, db_session, upload_folder):
        assert client.get("/product-image/nothing.png").status_code == 404

    def test_path_traversal_rejected(self, client, db_session, upload_folder):
        assert client.get("/product-image/../config.py").status_code == 404
