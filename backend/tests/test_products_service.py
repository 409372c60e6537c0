"""
Product catalogue tests: validation, tenant scoping and paging.
"""

import pytest

from tiendapos.services import products_service
from tiendapos.validation import NotFoundError, ValidationError

from conftest import make_product


class TestCreateProduct:

    def test_create_defaults_stock_to_zero(self, db_session, owner):
        product = products_service.create_product(owner.id, {"name": "Te verde", "price": 8000})
        assert product.id is not None
        assert product.tenant_id == owner.id
        assert product.stock == 0

    def test_create_with_stock(self, db_session, owner):
        product = products_service.create_product(owner.id, {"name": "Te", "price": 8000, "stock": 12})
        assert product.stock == 12

    @pytest.mark.parametrize("payload", [
        {"price": 100},
        {"name": "X"},
        {"name": "  ", "price": 100},
        {"name": "X", "price": -1},
        {"name": "X", "price": 10.5},
        {"name": "X", "price": 100, "stock": -3},
        {"name": "X", "price": 100, "tenant_id": "owner-b"},
        ["not", "an", "object"],
    ])
    def test_invalid_payloads(self, db_session, owner, payload):
        with pytest.raises(ValidationError):
            products_service.create_product(owner.id, payload)


class TestUpdateAndDelete:

    def test_partial_update(self, db_session, owner, coffee):
        product = products_service.update_product(owner.id, coffee.id, {"price": 16000})
        assert product.price == 16000
        assert product.name == "Cafe americano"

    def test_other_tenant_cannot_update(self, db_session, other_owner, coffee):
        with pytest.raises(NotFoundError):
            products_service.update_product(other_owner.id, coffee.id, {"price": 1})

    def test_delete(self, db_session, owner, coffee):
        products_service.delete_product(owner.id, coffee.id)
        with pytest.raises(NotFoundError):
            products_service.get_product(owner.id, coffee.id)

    def test_other_tenant_cannot_delete(self, db_session, other_owner, coffee):
        with pytest.raises(NotFoundError):
            products_service.delete_product(other_owner.id, coffee.id)


class TestListProducts:

    def test_tenant_scoped_and_sorted(self, db_session, owner, other_owner, coffee, croissant):
        make_product(db_session, other_owner, "Pan", 500)

        rows, has_more = products_service.list_products(owner.id)

        assert [p.name for p in rows] == ["Cafe americano", "Croissant"]
        assert has_more is False

    def test_search_is_case_insensitive(self, db_session, owner, coffee, croissant):
        rows, _ = products_service.list_products(owner.id, search="CROIS")
        assert [p.id for p in rows] == [croissant.id]

    def test_search_escapes_wildcards(self, db_session, owner, coffee):
        rows, _ = products_service.list_products(owner.id, search="%")
        assert rows == []

    def test_paging(self, db_session, owner):
        for i in range(5):
            make_product(db_session, owner, f"Item {i}", 100)

        first, more = products_service.list_products(owner.id, page=0, page_size=2)
        last, no_more = products_service.list_products(owner.id, page=2, page_size=2)

        assert [p.name for p in first] == ["Item 0", "Item 1"]
        assert more is True
        assert [p.name for p in last] == ["Item 4"]
        assert no_more is False

    def test_negative_page(self, db_session, owner):
        with pytest.raises(ValidationError):
            products_service.list_products(owner.id, page=-1)
