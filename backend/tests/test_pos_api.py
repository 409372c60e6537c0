"""
POS HTTP flow tests.

Verifies:
- full checkout: open register, build cart, pay cash, stock and change
- checkout failures keep the cart and report the cause
- carts are per session, registers are per operator
- suspension blocks everything except sign-out
"""

import pytest

from tiendapos.models import Product, Sale

from conftest import sign_in


def open_register(client, headers, amount=50000):
    return client.post('/api/registers/open', json={'amount': amount}, headers=headers)


def add(client, headers, product_id, times=1):
    response = None
    for _ in range(times):
        response = client.post('/api/pos/cart/items', json={'product_id': product_id}, headers=headers)
    return response


class TestCheckoutFlow:

    def test_cash_sale_end_to_end(self, client, db_session, owner_headers, coffee):
        response = open_register(client, owner_headers)
        assert response.status_code == 201
        register_id = response.get_json()['register']['id']

        response = add(client, owner_headers, coffee.id, times=2)
        assert response.status_code == 201
        assert response.get_json()['cart']['total'] == 30000

        response = client.post('/api/pos/checkout', json={
            'payment_method': 'CASH',
            'tendered': 50000,
        }, headers=owner_headers)

        assert response.status_code == 201
        data = response.get_json()
        assert data['sale']['total'] == 30000
        assert data['sale']['change'] == 20000
        assert data['sale']['register_id'] == register_id
        assert data['sale']['items'][0]['qty'] == 2
        assert data['cart']['items'] == []

        db_session.expire_all()
        assert db_session.get(Product, coffee.id).stock == 8
        assert db_session.query(Sale).count() == 1

    def test_insufficient_payment(self, client, db_session, owner_headers, coffee):
        open_register(client, owner_headers)
        add(client, owner_headers, coffee.id, times=2)

        response = client.post('/api/pos/checkout', json={
            'payment_method': 'CASH',
            'tendered': 20000,
        }, headers=owner_headers)

        assert response.status_code == 400
        assert response.get_json()['shortfall'] == 10000
        cart = client.get('/api/pos/cart', headers=owner_headers).get_json()['cart']
        assert cart['total'] == 30000

    def test_insufficient_stock(self, client, db_session, owner_headers, croissant):
        open_register(client, owner_headers)
        add(client, owner_headers, croissant.id)
        client.put(f'/api/pos/cart/items/{croissant.id}', json={'qty': 6}, headers=owner_headers)

        response = client.post('/api/pos/checkout', json={'payment_method': 'CARD'}, headers=owner_headers)

        assert response.status_code == 409
        assert response.get_json()['details']['items'][0]['stock'] == 5
        assert db_session.query(Sale).count() == 0

    def test_checkout_without_open_register(self, client, db_session, owner_headers, coffee):
        add(client, owner_headers, coffee.id)

        response = client.post('/api/pos/checkout', json={'payment_method': 'CARD'}, headers=owner_headers)

        assert response.status_code == 409
        assert response.get_json()['redirect'] == '/pos'
        cart = client.get('/api/pos/cart', headers=owner_headers).get_json()['cart']
        assert len(cart['items']) == 1

    def test_register_closed_in_another_tab(self, client, db_session, owner, coffee):
        tab_one = sign_in(owner.id)
        tab_two = sign_in(owner.id)
        open_register(client, tab_one)
        add(client, tab_one, coffee.id)

        assert client.post('/api/registers/close', json={'amount': 50000}, headers=tab_two).status_code == 200

        response = client.post('/api/pos/checkout', json={'payment_method': 'CARD'}, headers=tab_one)
        assert response.status_code == 409
        assert client.get('/api/registers/current', headers=tab_one).get_json()['register'] is None

    def test_empty_cart(self, client, db_session, owner_headers):
        open_register(client, owner_headers)
        response = client.post('/api/pos/checkout', json={'payment_method': 'CARD'}, headers=owner_headers)
        assert response.status_code == 400


class TestCartEndpoints:

    def test_add_unknown_product(self, client, db_session, owner_headers):
        response = client.post('/api/pos/cart/items', json={'product_id': 999}, headers=owner_headers)
        assert response.status_code == 404

    def test_add_other_tenant_product(self, client, db_session, owner_headers, other_owner):
        foreign = Product(tenant_id=other_owner.id, name='Pan', price=500, stock=3)
        db_session.add(foreign)
        db_session.commit()

        response = client.post('/api/pos/cart/items', json={'product_id': foreign.id}, headers=owner_headers)
        assert response.status_code == 404

    def test_stepper_never_removes(self, client, db_session, owner_headers, coffee):
        add(client, owner_headers, coffee.id)
        response = client.patch(f'/api/pos/cart/items/{coffee.id}', json={'delta': -1}, headers=owner_headers)
        assert response.status_code == 200
        assert response.get_json()['cart']['items'][0]['qty'] == 1

    def test_zero_quantity_needs_confirmation(self, client, db_session, owner_headers, coffee):
        add(client, owner_headers, coffee.id)

        response = client.put(f'/api/pos/cart/items/{coffee.id}', json={'qty': 0}, headers=owner_headers)
        assert response.status_code == 400
        assert response.get_json()['confirmation_required'] is True

        response = client.put(f'/api/pos/cart/items/{coffee.id}', json={'qty': 0, 'confirmed': True}, headers=owner_headers)
        assert response.status_code == 200
        assert response.get_json()['cart']['items'] == []

    @pytest.mark.parametrize('confirmed', ['false', 'true', 1, 'yes'])
    def test_only_literal_true_confirms_removal(self, client, db_session, owner_headers, coffee, confirmed):
        add(client, owner_headers, coffee.id)

        response = client.put(f'/api/pos/cart/items/{coffee.id}', json={'qty': 0, 'confirmed': confirmed},
                              headers=owner_headers)
        assert response.status_code == 400
        assert response.get_json()['confirmation_required'] is True

        cart = client.get('/api/pos/cart', headers=owner_headers).get_json()['cart']
        assert cart['items'][0]['qty'] == 1

    def test_quantity_beyond_money_bound(self, client, db_session, owner_headers, coffee):
        add(client, owner_headers, coffee.id)

        response = client.put(f'/api/pos/cart/items/{coffee.id}', json={'qty': 10 ** 15}, headers=owner_headers)
        assert response.status_code == 400

        cart = client.get('/api/pos/cart', headers=owner_headers).get_json()['cart']
        assert cart['items'][0]['qty'] == 1

    def test_remove_and_clear(self, client, db_session, owner_headers, coffee, croissant):
        add(client, owner_headers, coffee.id)
        add(client, owner_headers, croissant.id)

        response = client.delete(f'/api/pos/cart/items/{coffee.id}', headers=owner_headers)
        assert [i['product_id'] for i in response.get_json()['cart']['items']] == [croissant.id]

        response = client.delete('/api/pos/cart', headers=owner_headers)
        assert response.get_json()['cart']['total'] == 0

    def test_carts_are_per_session(self, client, db_session, owner, coffee):
        tab_one = sign_in(owner.id)
        tab_two = sign_in(owner.id)

        add(client, tab_one, coffee.id)

        assert client.get('/api/pos/cart', headers=tab_two).get_json()['cart']['items'] == []

    def test_cashier_sells_owner_products(self, client, db_session, cashier_headers, coffee):
        open_register(client, cashier_headers, amount=0)
        add(client, cashier_headers, coffee.id)

        response = client.post('/api/pos/checkout', json={'payment_method': 'CARD'}, headers=cashier_headers)

        assert response.status_code == 201
        assert response.get_json()['sale']['operator_id'] == 'cashier-a'
        assert response.get_json()['sale']['tenant_id'] == 'owner-a'


class TestRegisterEndpoints:

    def test_open_twice(self, client, db_session, owner_headers):
        assert open_register(client, owner_headers).status_code == 201
        response = open_register(client, owner_headers, amount=100)
        assert response.status_code == 409
        assert response.get_json()['register_id'] is not None

    def test_open_invalid_amount(self, client, db_session, owner_headers):
        assert open_register(client, owner_headers, amount='12.50').status_code == 400

    def test_close_without_open(self, client, db_session, owner_headers):
        response = client.post('/api/registers/close', json={'amount': 0}, headers=owner_headers)
        assert response.status_code == 409

    def test_close_reconciles(self, client, db_session, owner_headers, coffee):
        open_register(client, owner_headers)
        add(client, owner_headers, coffee.id, times=2)
        client.post('/api/pos/checkout', json={'payment_method': 'CASH', 'tendered': 50000}, headers=owner_headers)

        response = client.post('/api/registers/close', json={'amount': 80000}, headers=owner_headers)

        register = response.get_json()['register']
        assert register['status'] == 'CLOSED'
        assert register['expected_amount'] == 80000
        assert register['variance'] == 0

    def test_summary_visibility(self, client, db_session, owner_headers, cashier_headers, other_owner, coffee):
        register_id = open_register(client, cashier_headers).get_json()['register']['id']

        assert client.get(f'/api/registers/{register_id}/summary', headers=cashier_headers).status_code == 200
        assert client.get(f'/api/registers/{register_id}/summary', headers=owner_headers).status_code == 200

        outsider = sign_in(other_owner.id)
        assert client.get(f'/api/registers/{register_id}/summary', headers=outsider).status_code == 404


class TestSuspension:

    def test_suspended_tenant_blocks_team_but_not_sign_out(self, client, db_session, owner, cashier_headers):
        owner.status = 'suspended'
        db_session.commit()

        response = client.get('/api/pos/cart', headers=cashier_headers)
        assert response.status_code == 403
        assert response.get_json() == {'error': 'Account suspended', 'suspended': True}

        response = client.delete('/api/auth/sessions/current', headers=cashier_headers)
        assert response.status_code == 200

        assert client.get('/api/pos/cart', headers=cashier_headers).status_code == 401

    def test_super_admin_suspends_and_reactivates(self, client, db_session, owner, owner_headers, super_admin_headers):
        response = client.put(f'/api/admin/tenants/{owner.id}/status', json={'status': 'suspended'},
                              headers=super_admin_headers)
        assert response.status_code == 200
        assert response.get_json()['tenant']['status'] == 'suspended'
        assert client.get('/api/products', headers=owner_headers).status_code == 403

        response = client.put(f'/api/admin/tenants/{owner.id}/status', headers=super_admin_headers)
        assert response.get_json()['tenant']['status'] == 'active'
        assert client.get('/api/products', headers=owner_headers).status_code == 200

    def test_super_admin_cannot_be_suspended(self, client, db_session, super_admin, super_admin_headers):
        response = client.put(f'/api/admin/tenants/{super_admin.id}/status', json={'status': 'suspended'},
                              headers=super_admin_headers)
        assert response.status_code == 409

    def test_tenant_admin_cannot_use_admin_console(self, client, db_session, owner_headers):
        response = client.get('/api/admin/tenants', headers=owner_headers)
        assert response.status_code == 403
        assert response.get_json()['redirect'] == '/'


class TestRoleDenial:

    @pytest.mark.parametrize('path', ['/api/sales', '/api/team', '/api/purchases'])
    def test_cashier_denied_with_redirect(self, client, db_session, cashier_headers, path):
        response = client.get(path, headers=cashier_headers)
        assert response.status_code == 403
        data = response.get_json()
        assert data['error'] == 'Access denied'
        assert data['redirect'] == '/'

    def test_cashier_cannot_manage_products(self, client, db_session, cashier_headers):
        response = client.post('/api/products', json={'name': 'X', 'price': 1}, headers=cashier_headers)
        assert response.status_code == 403
        assert response.get_json()['action'] == 'manage_products'

    def test_super_admin_has_no_pos(self, client, db_session, super_admin_headers):
        assert client.get('/api/pos/cart', headers=super_admin_headers).status_code == 403
