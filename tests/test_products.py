"""
Tests for catalog endpoints, product field validation and image storage.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from starlette.datastructures import Headers, UploadFile

from app.main import app
from app.api.deps import get_current_user
from app.core.exceptions import BadRequestError, ResourceNotFoundError, ValidationError
from app.services import product_service, image_service


client = TestClient(app)

PRODUCT_ID = ObjectId()
ADMIN = {"_id": ObjectId(), "name": "Owner", "email": "owner@example.com", "isAdmin": True}
CUSTOMER = {"_id": ObjectId(), "name": "Asha", "email": "asha@example.com", "isAdmin": False}


def _product(**overrides):
    product = {
        "_id": PRODUCT_ID,
        "name": "Pink Flower",
        "description": "Handmade",
        "price": 199.0,
        "image": "assets/p1.jpeg",
        "category": "Flower",
        "inStock": True,
        "createdAt": datetime(2026, 1, 1),
        "updatedAt": datetime(2026, 1, 1),
    }
    product.update(overrides)
    return product


@pytest.fixture
def as_admin():
    app.dependency_overrides[get_current_user] = lambda: ADMIN
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def as_customer():
    app.dependency_overrides[get_current_user] = lambda: CUSTOMER
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def upload_dir(tmp_path):
    with patch.object(image_service.settings, "UPLOAD_DIR", str(tmp_path)):
        yield tmp_path


class TestBuildProductFields:

    def test_full_product_gets_defaults(self):
        fields = product_service.build_product_fields(name="Tulips", price="399")
        assert fields == {
            "name": "Tulips",
            "price": 399.0,
            "description": "",
            "category": "General",
            "inStock": True,
            "image": "",
        }

    def test_form_strings_are_parsed(self):
        fields = product_service.build_product_fields(
            name="  Bear   Keychain ",
            price="249.499",
            in_stock="false",
            category="Keychain",
        )
        assert fields["name"] == "Bear Keychain"
        assert fields["price"] == 249.5
        assert fields["inStock"] is False

    @pytest.mark.parametrize("price", [None, "", "abc", "-1", "nan"])
    def test_invalid_price_rejected(self, price):
        with pytest.raises(ValidationError):
            product_service.build_product_fields(name="Tulips", price=price)

    def test_name_required(self):
        with pytest.raises(ValidationError):
            product_service.build_product_fields(name="   ", price="10")

    def test_partial_only_returns_supplied_fields(self):
        fields = product_service.build_product_fields(price="10", partial=True)
        assert fields == {"price": 10.0}


class TestProductEndpoints:

    def test_list_products_filters_by_category(self):
        with patch.object(product_service, "list_products", AsyncMock(return_value=[_product()])) as mock_list:
            response = client.get("/api/products", params={"category": "Flower"})

        assert response.status_code == 200
        data = response.json()
        assert data[0]["_id"] == str(PRODUCT_ID)
        assert data[0]["createdAt"] == "2026-01-01T00:00:00"
        mock_list.assert_awaited_once_with("Flower")

    def test_get_product_invalid_id(self):
        response = client.get("/api/products/not-an-id")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid product id"

    def test_get_product_not_found(self):
        with patch.object(product_service, "get_product", AsyncMock(side_effect=ResourceNotFoundError("Product not found"))):
            response = client.get(f"/api/products/{PRODUCT_ID}")
        assert response.status_code == 404

    def test_create_requires_auth(self):
        response = client.post("/api/products", data={"name": "Tulips", "price": "399"})
        assert response.status_code == 401

    def test_create_requires_admin(self, as_customer):
        response = client.post("/api/products", data={"name": "Tulips", "price": "399"})
        assert response.status_code == 403
        assert response.json()["error"] == "Not authorized as an admin"

    def test_create_with_image_url(self, as_admin):
        with patch.object(product_service, "create_product", AsyncMock(side_effect=lambda f: {**f, "_id": PRODUCT_ID})) as mock_create:
            response = client.post(
                "/api/products",
                data={"name": "Tulips", "description": "Colorful", "price": "399", "image": "https://cdn/t.jpg"},
            )

        assert response.status_code == 201
        fields = mock_create.await_args.args[0]
        assert fields["image"] == "https://cdn/t.jpg"
        assert fields["price"] == 399.0
        assert response.json()["_id"] == str(PRODUCT_ID)

    def test_create_with_uploaded_file(self, as_admin, upload_dir):
        with patch.object(product_service, "create_product", AsyncMock(side_effect=lambda f: {**f, "_id": PRODUCT_ID})):
            response = client.post(
                "/api/products",
                data={"name": "Tulips", "price": "399"},
                files={"image": ("tulips.png", b"\x89PNG fake", "image/png")},
            )

        assert response.status_code == 201
        image = response.json()["image"]
        assert image.startswith("/uploads/") and image.endswith(".png")
        assert (upload_dir / image.rsplit("/", 1)[1]).read_bytes() == b"\x89PNG fake"

    def test_create_rejects_non_image_upload(self, as_admin, upload_dir):
        response = client.post(
            "/api/products",
            data={"name": "Tulips", "price": "399"},
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert list(upload_dir.iterdir()) == []

    def test_create_with_invalid_price_removes_upload(self, as_admin, upload_dir):
        response = client.post(
            "/api/products",
            data={"name": "Tulips", "price": "free"},
            files={"image": ("tulips.png", b"\x89PNG fake", "image/png")},
        )
        assert response.status_code == 422
        assert list(upload_dir.iterdir()) == []

    def test_rejected_create_keeps_referenced_upload(self, as_admin, upload_dir):
        (upload_dir / "keep.jpg").write_bytes(b"jpeg")

        response = client.post(
            "/api/products",
            data={"name": "Tulips", "price": "not-a-number", "image": "/uploads/keep.jpg"},
        )

        assert response.status_code == 422
        assert (upload_dir / "keep.jpg").exists()

    def test_rejected_update_keeps_referenced_upload(self, as_admin, upload_dir):
        (upload_dir / "keep.jpg").write_bytes(b"jpeg")

        with patch.object(product_service, "get_product", AsyncMock(return_value=_product())):
            response = client.put(
                f"/api/products/{PRODUCT_ID}",
                data={"price": "-5", "image": "/uploads/keep.jpg"},
            )

        assert response.status_code == 422
        assert (upload_dir / "keep.jpg").exists()

    def test_update_of_vanished_product_removes_new_upload(self, as_admin, upload_dir):
        with patch.object(product_service, "get_product", AsyncMock(return_value=_product())), \
             patch.object(product_service, "update_product", AsyncMock(side_effect=ResourceNotFoundError("Product not found"))):
            response = client.put(
                f"/api/products/{PRODUCT_ID}",
                data={"name": "Tulips"},
                files={"image": ("tulips.png", b"\x89PNG fake", "image/png")},
            )

        assert response.status_code == 404
        assert list(upload_dir.iterdir()) == []

    def test_replaced_image_kept_while_shared(self, as_admin, upload_dir):
        (upload_dir / "shared.png").write_bytes(b"png")
        previous = _product(image="/uploads/shared.png")

        with patch.object(product_service, "get_product", AsyncMock(return_value=previous)), \
             patch.object(product_service, "update_product", AsyncMock(return_value=_product(image="https://cdn/t.jpg"))), \
             patch.object(product_service, "image_in_use", AsyncMock(return_value=True)):
            response = client.put(f"/api/products/{PRODUCT_ID}", data={"image": "https://cdn/t.jpg"})

        assert response.status_code == 200
        assert (upload_dir / "shared.png").exists()

    def test_replaced_image_removed_when_unused(self, as_admin, upload_dir):
        (upload_dir / "old.png").write_bytes(b"png")
        previous = _product(image="/uploads/old.png")

        with patch.object(product_service, "get_product", AsyncMock(return_value=previous)), \
             patch.object(product_service, "update_product", AsyncMock(return_value=_product(image="https://cdn/t.jpg"))), \
             patch.object(product_service, "image_in_use", AsyncMock(return_value=False)):
            response = client.put(f"/api/products/{PRODUCT_ID}", data={"image": "https://cdn/t.jpg"})

        assert response.status_code == 200
        assert not (upload_dir / "old.png").exists()

    def test_update_applies_only_supplied_fields(self, as_admin):
        with patch.object(product_service, "get_product", AsyncMock(return_value=_product())), \
             patch.object(product_service, "update_product", AsyncMock(return_value=_product(price=249.0))) as mock_update:
            response = client.put(f"/api/products/{PRODUCT_ID}", data={"price": "249"})

        assert response.status_code == 200
        mock_update.assert_awaited_once_with(str(PRODUCT_ID), {"price": 249.0})
        assert response.json()["price"] == 249.0

    def test_update_accepts_json_body(self, as_admin):
        with patch.object(product_service, "get_product", AsyncMock(return_value=_product())), \
             patch.object(product_service, "update_product", AsyncMock(return_value=_product(inStock=False))) as mock_update:
            response = client.put(f"/api/products/{PRODUCT_ID}", json={"inStock": False})

        assert response.status_code == 200
        mock_update.assert_awaited_once_with(str(PRODUCT_ID), {"inStock": False})

    def test_delete_product(self, as_admin):
        with patch.object(product_service, "delete_product", AsyncMock(return_value=_product())):
            response = client.delete(f"/api/products/{PRODUCT_ID}")
        assert response.status_code == 200
        assert response.json() == {"message": "Product removed"}


class TestImageService:

    def _upload(self, data: bytes, content_type: str) -> UploadFile:
        import io
        return UploadFile(
            file=io.BytesIO(data),
            filename="x",
            headers=Headers({"content-type": content_type}),
        )

    def test_oversized_upload_rejected(self, upload_dir):
        with patch.object(image_service.settings, "MAX_UPLOAD_BYTES", 4):
            with pytest.raises(BadRequestError):
                asyncio.run(image_service.save_image(self._upload(b"12345", "image/jpeg")))

    def test_delete_only_touches_upload_dir(self, upload_dir):
        (upload_dir / "a.png").write_bytes(b"x")
        assert image_service.delete_image("https://cdn/a.png") is False
        assert image_service.delete_image("/uploads/../a.png") is True
        assert not (upload_dir / "a.png").exists()
        assert image_service.delete_image("/uploads/missing.png") is False
