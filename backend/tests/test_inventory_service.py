"""
Inventory ledger and product lifecycle tests.

Verifies:
- Stock depletion auto-archives in the same write
- Restore requires stock
- Updates force archive at zero stock regardless of is_active
- Local images are cleaned up on replace/clear/delete; external ones untouched
"""

import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from counterpos.extensions import db
from counterpos.models import Product
from counterpos.services import inventory_service, products_service
from counterpos.validation import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)


def _png(name="photo.png") -> FileStorage:
    return FileStorage(stream=io.BytesIO(b"\x89PNG fake image"), filename=name, content_type="image/png")


class TestApplySale:

    def test_last_unit_sold_archives(self, db_session, product_factory):
        product = product_factory("Soap", "111", stock=1)

        inventory_service.apply_sale([(product.id, 1)])
        db.session.commit()

        db.session.expire_all()
        reloaded = db.session.get(Product, product.id)
        assert reloaded.stock == 0
        assert reloaded.is_active is False

    def test_partial_sale_keeps_active(self, db_session, product_factory):
        product = product_factory("Soap", "111", stock=5)

        inventory_service.apply_sale([(product.id, 2)])
        db.session.commit()

        assert product.stock == 3
        assert product.is_active is True

    def test_insufficient_stock(self, db_session, product_factory):
        product = product_factory("Soap", "111", stock=2)

        with pytest.raises(PreconditionFailedError, match="Insufficient stock for Soap"):
            inventory_service.apply_sale([(product.id, 3)])
        db.session.rollback()

        assert db.session.get(Product, product.id).stock == 2

    def test_archived_product_cannot_be_sold(self, db_session, product_factory):
        product = product_factory("Soap", "111", stock=5, is_active=False)

        with pytest.raises(PreconditionFailedError, match="archived"):
            inventory_service.apply_sale([(product.id, 1)])

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.apply_sale([(424242, 1)])


class TestMergeCart:

    def test_duplicates_are_merged(self):
        merged = inventory_service.merge_cart_items([
            {"product_id": 1, "quantity": 2},
            {"product_id": 2, "quantity": 1},
            {"product_id": 1, "quantity": 3},
        ])
        assert merged == [(1, 5), (2, 1)]

    @pytest.mark.parametrize(
        "items",
        [
            [],
            None,
            [{"product_id": 1, "quantity": 0}],
            [{"product_id": 1, "quantity": -1}],
            [{"product_id": 1, "quantity": 1.5}],
            [{"product_id": "1", "quantity": 1}],
            [{"quantity": 1}],
            ["not-an-object"],
        ],
    )
    def test_malformed_carts(self, items):
        with pytest.raises(ValidationError):
            inventory_service.merge_cart_items(items)


class TestProductLifecycle:

    def test_restore_requires_stock(self, db_session, product_factory):
        product = product_factory("Soap", "111", stock=0, is_active=False)

        with pytest.raises(PreconditionFailedError, match="zero stock"):
            products_service.restore_product(product.id)

        products_service.update_product(product_id=product.id, patch={"stock": 4})
        restored = products_service.restore_product(product.id)

        assert restored.is_active is True
        assert restored.stock == 4

    def test_restore_with_stock_in_same_call(self, db_session, product_factory):
        product = product_factory("Soap", "111", stock=0, is_active=False)

        restored = products_service.restore_product(product.id, stock=7)

        assert restored.is_active is True
        assert restored.stock == 7

    def test_update_to_zero_stock_forces_archive(self, db_session, product_factory):
        product = product_factory("Soap", "111", stock=5)

        updated = products_service.update_product(
            product_id=product.id, patch={"stock": 0, "is_active": True}
        )

        assert updated.stock == 0
        assert updated.is_active is False

    def test_update_refreshes_updated_at(self, db_session, product_factory):
        product = product_factory("Soap", "111")
        before = product.updated_at

        updated = products_service.update_product(product_id=product.id, patch={"name": "Bar Soap"})

        assert updated.name == "Bar Soap"
        assert updated.updated_at >= before

    def test_create_with_zero_stock_starts_archived(self, db_session):
        created = products_service.create_product(
            patch={"name": "Soap", "barcode": "111", "price_cents": 100, "stock": 0}
        )
        assert created.is_active is False

    def test_duplicate_barcode(self, db_session, product_factory):
        product_factory("Soap", "111")
        other = product_factory("Rice", "222")

        with pytest.raises(ConflictError, match="barcode already exists"):
            products_service.create_product(patch={"name": "X", "barcode": "111", "price_cents": 1})
        with pytest.raises(ConflictError):
            products_service.update_product(product_id=other.id, patch={"barcode": "111"})

    def test_archive(self, db_session, product_factory):
        product = product_factory("Soap", "111")
        assert products_service.archive_product(product.id).is_active is False

    def test_missing_product(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.update_product(product_id=999, patch={"name": "x"})
        with pytest.raises(NotFoundError):
            products_service.archive_product(999)
        with pytest.raises(NotFoundError):
            products_service.restore_product(999)
        with pytest.raises(NotFoundError):
            products_service.permanently_delete_product(999)

    def test_list_excludes_archived_on_request(self, db_session, product_factory):
        product_factory("Soap", "111")
        product_factory("Rice", "222", stock=0, is_active=False)

        assert len(products_service.list_products()) == 2
        active = products_service.list_products(include_archived=False)
        assert [p.name for p in active] == ["Soap"]

    def test_lookup_by_barcode(self, db_session, product_factory):
        product_factory("Soap", "111")
        assert products_service.get_product_by_barcode("111").name == "Soap"
        with pytest.raises(NotFoundError):
            products_service.get_product_by_barcode("000")


class TestProductImages:

    def test_upload_wins_over_image_url(self, db_session, upload_folder):
        created = products_service.create_product(
            patch={"name": "Soap", "barcode": "111", "price_cents": 100, "stock": 1,
                   "image_url": "https://example.com/soap.png"},
            image=_png(),
        )
        assert created.image_url.startswith("/product-image/")
        assert os.listdir(upload_folder) == [created.image_url.rsplit("/", 1)[1]]

    def test_replacing_image_deletes_old_local_file(self, db_session, upload_folder):
        created = products_service.create_product(
            patch={"name": "Soap", "barcode": "111", "price_cents": 100, "stock": 1},
            image=_png(),
        )
        old_name = created.image_url.rsplit("/", 1)[1]

        updated = products_service.update_product(
            product_id=created.id, patch={"image_url": "https://example.com/new.png"}
        )

        assert updated.image_url == "https://example.com/new.png"
        assert old_name not in os.listdir(upload_folder)

    def test_clearing_image_deletes_local_file(self, db_session, upload_folder):
        created = products_service.create_product(
            patch={"name": "Soap", "barcode": "111", "price_cents": 100, "stock": 1},
            image=_png(),
        )

        updated = products_service.update_product(product_id=created.id, patch={"image_url": None})

        assert updated.image_url is None
        assert os.listdir(upload_folder) == []

    def test_missing_old_file_is_not_an_error(self, db_session, upload_folder, product_factory):
        product = product_factory("Soap", "111", image_url="/product-image/gone.png")

        updated = products_service.update_product(product_id=product.id, patch={"image_url": None})

        assert updated.image_url is None

    def test_permanent_delete_removes_row_and_image(self, db_session, upload_folder):
        created = products_service.create_product(
            patch={"name": "Soap", "barcode": "111", "price_cents": 100, "stock": 1},
            image=_png(),
        )

        products_service.permanently_delete_product(created.id)

        assert db.session.get(Product, created.id) is None
        assert os.listdir(upload_folder) == []

    def test_rejects_non_image_upload(self, db_session, upload_folder):
        bad = FileStorage(stream=io.BytesIO(b"MZ"), filename="tool.exe", content_type="application/octet-stream")
        with pytest.raises(ValidationError):
            products_service.create_product(
                patch={"name": "Soap", "barcode": "111", "price_cents": 100, "stock": 1},
                image=bad,
            )

    def test_rejects_oversize_upload(self, app, db_session, upload_folder):
        big = FileStorage(
            stream=io.BytesIO(b"x" * (app.config["MAX_IMAGE_BYTES"] + 1)),
            filename="big.png",
            content_type="image/png",
        )
        with pytest.raises(ValidationError, match="maximum size"):
            products_service.create_product(
                patch={"name": "Soap", "barcode": "111", "price_cents": 100, "stock": 1},
                image=big,
            )
