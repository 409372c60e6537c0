"""
Sale commit tests.

Verifies:
- preconditions are checked before any write
- sale, items and stock decrements commit together or not at all
- the cart is cleared only after a successful commit
- no automatic retry: a failed commit leaves everything as it was
"""

from types import SimpleNamespace

import pytest

from tiendapos.models import Product, Sale, SaleItem
from tiendapos.services import products_service, register_service, sales_service
from tiendapos.services.cart_service import Cart
from tiendapos.services.register_service import RegisterClosedError
from tiendapos.services.sales_service import (
    InsufficientPaymentError,
    InsufficientStockError,
    PaymentMethod,
)
from tiendapos.validation import NotFoundError, ValidationError


@pytest.fixture
def register(db_session, owner):
    return register_service.open_register(owner.id, 50000)


@pytest.fixture
def cart():
    return Cart()


def commit(cart, owner, register, **kwargs):
    kwargs.setdefault("payment_method", "CASH")
    return sales_service.commit_sale(
        cart,
        operator_id=owner.id,
        tenant_id=owner.id,
        register_id=register.id,
        **kwargs,
    )


def stock_of(db_session, product_id):
    db_session.expire_all()
    return db_session.get(Product, product_id).stock


class TestCashSale:

    def test_two_coffees_with_50000_tendered(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        cart.add_item(coffee)

        sale = commit(cart, owner, register, tendered=50000)

        assert sale.total == 30000
        assert sale.tendered == 50000
        assert sale.change == 20000
        assert sale.payment_method == "CASH"
        assert sale.register_id == register.id
        assert [(i.product_name, i.qty, i.price) for i in sale.items] == [("Cafe americano", 2, 15000)]
        assert stock_of(db_session, coffee.id) == 8
        assert cart.is_empty

    @pytest.mark.parametrize("tendered, change", [(30000, 0), (30001, 1), (100000, 70000)])
    def test_change_is_tendered_minus_total(self, db_session, owner, register, coffee, cart, tendered, change):
        cart.add_item(coffee)
        cart.set_quantity(coffee.id, 2)

        sale = commit(cart, owner, register, tendered=tendered)

        assert sale.change == change

    def test_insufficient_payment_reports_shortfall(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        cart.add_item(coffee)

        with pytest.raises(InsufficientPaymentError) as exc:
            commit(cart, owner, register, tendered=20000)

        assert exc.value.shortfall == 10000
        assert db_session.query(Sale).count() == 0
        assert stock_of(db_session, coffee.id) == 10
        assert cart.get(coffee.id).qty == 2

    def test_cash_without_tendered(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        with pytest.raises(ValidationError):
            commit(cart, owner, register)
        assert db_session.query(Sale).count() == 0

    def test_decimal_tendered_rejected(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        with pytest.raises(ValidationError):
            commit(cart, owner, register, tendered=15000.5)


class TestCardSale:

    def test_card_sale_has_no_tender(self, db_session, owner, register, coffee, croissant, cart):
        cart.add_item(coffee)
        cart.add_item(croissant)

        sale = commit(cart, owner, register, payment_method=PaymentMethod.CARD)

        assert sale.total == 24000
        assert sale.tendered is None
        assert sale.change is None
        assert sale.payment_method == "CARD"
        assert len(sale.items) == 2

    def test_card_ignores_tendered(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        sale = commit(cart, owner, register, payment_method="card", tendered=1)
        assert sale.tendered is None

    def test_unknown_payment_method(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        with pytest.raises(ValidationError):
            commit(cart, owner, register, payment_method="CHEQUE")


class TestPreconditions:

    def test_empty_cart(self, db_session, owner, register, cart):
        with pytest.raises(ValidationError):
            commit(cart, owner, register, tendered=100)
        assert db_session.query(Sale).count() == 0

    def test_closed_register(self, db_session, owner, register, coffee, cart):
        register_service.close_register(owner.id, 50000)
        cart.add_item(coffee)

        with pytest.raises(RegisterClosedError):
            commit(cart, owner, register, tendered=50000)

        assert db_session.query(Sale).count() == 0
        assert not cart.is_empty

    def test_register_of_another_operator(self, db_session, owner, cashier, coffee, cart):
        cashier_register = register_service.open_register(cashier.id, 0)
        cart.add_item(coffee)

        with pytest.raises(RegisterClosedError):
            commit(cart, owner, cashier_register, tendered=50000)

    def test_unknown_register(self, db_session, owner, coffee, cart):
        cart.add_item(coffee)
        with pytest.raises(RegisterClosedError):
            commit(cart, owner, SimpleNamespace(id=9999), tendered=50000)


class TestStock:

    def test_insufficient_stock_rolls_back_every_line(self, db_session, owner, register, coffee, croissant, cart):
        cart.add_item(coffee)
        cart.add_item(croissant)
        cart.set_quantity(croissant.id, 6)

        with pytest.raises(InsufficientStockError) as exc:
            commit(cart, owner, register, tendered=100000)

        assert exc.value.items == [{
            "product_id": croissant.id,
            "name": "Croissant",
            "requested_quantity": 6,
            "stock": 5,
        }]
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert stock_of(db_session, coffee.id) == 10
        assert stock_of(db_session, croissant.id) == 5
        assert len(cart) == 2

    def test_exact_stock_reaches_zero(self, db_session, owner, register, croissant, cart):
        cart.add_item(croissant)
        cart.set_quantity(croissant.id, 5)

        commit(cart, owner, register, payment_method="CARD")

        assert stock_of(db_session, croissant.id) == 0

    def test_second_sale_cannot_oversell(self, db_session, owner, register, coffee):
        first, second = Cart(), Cart()
        for c in (first, second):
            c.add_item(coffee)
            c.set_quantity(coffee.id, 6)

        commit(first, owner, register, payment_method="CARD")
        with pytest.raises(InsufficientStockError):
            commit(second, owner, register, payment_method="CARD")

        assert stock_of(db_session, coffee.id) == 4
        assert db_session.query(Sale).count() == 1

    def test_negative_stock_allowed_when_configured(self, db_session, owner, register, croissant, cart):
        cart.add_item(croissant)
        cart.set_quantity(croissant.id, 6)

        sale = commit(cart, owner, register, payment_method="CARD", allow_negative_stock=True)

        assert sale.id is not None
        assert stock_of(db_session, croissant.id) == -1

    def test_negative_stock_from_app_config(self, app, db_session, owner, register, croissant, cart, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOW_NEGATIVE_STOCK", True)
        cart.add_item(croissant)
        cart.set_quantity(croissant.id, 7)

        commit(cart, owner, register, payment_method="CARD")

        assert stock_of(db_session, croissant.id) == -2

    def test_missing_product(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        cart.add_item(SimpleNamespace(id=9999, name="Ghost", price=100, stock=1, icon=None))

        with pytest.raises(NotFoundError):
            commit(cart, owner, register, payment_method="CARD")

        assert db_session.query(Sale).count() == 0
        assert stock_of(db_session, coffee.id) == 10

    def test_product_of_another_tenant_is_not_sold(self, db_session, owner, other_owner, register, cart):
        foreign = Product(tenant_id=other_owner.id, name="Pan", price=500, stock=3)
        db_session.add(foreign)
        db_session.commit()
        cart.add_item(foreign)

        with pytest.raises(NotFoundError):
            commit(cart, owner, register, payment_method="CARD")

        assert stock_of(db_session, foreign.id) == 3


class TestAtomicity:

    def test_fault_mid_sequence_leaves_no_partial_sale(self, db_session, owner, register, coffee, croissant, cart, monkeypatch):
        cart.add_item(coffee)
        cart.add_item(croissant)

        real_decrement = sales_service._decrement_stock
        calls = []

        def failing_decrement(tenant_id, product_id, qty, allow_negative):
            calls.append(product_id)
            if len(calls) == 2:
                raise RuntimeError("connection lost")
            return real_decrement(tenant_id, product_id, qty, allow_negative)

        monkeypatch.setattr(sales_service, "_decrement_stock", failing_decrement)

        with pytest.raises(RuntimeError):
            commit(cart, owner, register, tendered=50000)

        assert calls == [coffee.id, croissant.id]
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert stock_of(db_session, coffee.id) == 10
        assert [item.product_id for item in cart.items] == [coffee.id, croissant.id]

    def test_failed_commit_is_not_retried(self, db_session, owner, register, coffee, cart, monkeypatch):
        cart.add_item(coffee)
        calls = []

        def failing_decrement(*args):
            calls.append(args)
            raise RuntimeError("boom")

        monkeypatch.setattr(sales_service, "_decrement_stock", failing_decrement)

        with pytest.raises(RuntimeError):
            commit(cart, owner, register, payment_method="CARD")

        assert len(calls) == 1

    def test_manual_retry_after_failure_succeeds(self, db_session, owner, register, coffee, cart, monkeypatch):
        cart.add_item(coffee)

        def failing_decrement(*args):
            raise RuntimeError("boom")

        monkeypatch.setattr(sales_service, "_decrement_stock", failing_decrement)
        with pytest.raises(RuntimeError):
            commit(cart, owner, register, payment_method="CARD")

        monkeypatch.undo()
        sale = commit(cart, owner, register, payment_method="CARD")

        assert sale.total == 15000
        assert db_session.query(Sale).count() == 1
        assert stock_of(db_session, coffee.id) == 9


class TestSalesHistory:

    def test_list_sales_newest_first_and_tenant_scoped(self, db_session, owner, other_owner, register, coffee):
        ids = []
        for _ in range(3):
            c = Cart()
            c.add_item(coffee)
            ids.append(commit(c, owner, register, payment_method="CARD").id)

        sales = sales_service.list_sales(owner.id)
        assert [s.id for s in sales] == sorted(ids, reverse=True)
        assert sales_service.list_sales(other_owner.id) == []
        assert len(sales_service.list_sales(owner.id, limit=2)) == 2

    def test_get_sale_other_tenant(self, db_session, owner, other_owner, register, coffee, cart):
        cart.add_item(coffee)
        sale = commit(cart, owner, register, payment_method="CARD")

        assert sales_service.get_sale(owner.id, sale.id).id == sale.id
        with pytest.raises(NotFoundError):
            sales_service.get_sale(other_owner.id, sale.id)

    def test_sale_items_survive_product_delete(self, db_session, owner, register, coffee, cart):
        cart.add_item(coffee)
        sale = commit(cart, owner, register, payment_method="CARD")
        products_service.delete_product(owner.id, coffee.id)

        db_session.expire_all()
        item = sales_service.get_sale(owner.id, sale.id).items[0]
        assert item.product_id is None
        assert item.product_name == "Cafe americano"
