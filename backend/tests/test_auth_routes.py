"""
Identity provider endpoints and bearer-token checks.
"""

from datetime import timedelta

from tiendapos.models import TeamMember
from tiendapos.services import session_service
from tiendapos.time_utils import utcnow

from conftest import auth_headers, identity_headers, sign_in


class TestSignUp:

    def test_create_profile(self, client, db_session):
        response = client.post('/api/auth/profiles', json={
            'id': 'new-owner',
            'email': 'New@Example.com',
            'business_name': 'Tienda Nueva',
            'currency': 'cop',
        }, headers=identity_headers())

        assert response.status_code == 201
        profile = response.get_json()['profile']
        assert profile['email'] == 'new@example.com'
        assert profile['currency'] == 'COP'
        assert profile['status'] == 'active'

    def test_requires_identity_key(self, client, db_session):
        response = client.post('/api/auth/profiles', json={'id': 'x'}, headers={'X-Identity-Key': 'wrong'})
        assert response.status_code == 401

    def test_duplicate_profile(self, client, db_session, owner):
        response = client.post('/api/auth/profiles', json={'id': owner.id}, headers=identity_headers())
        assert response.status_code == 409

    def test_sign_up_joins_inviting_team(self, client, db_session, owner, owner_headers):
        client.post('/api/team/invitations', json={'email': 'later@example.com', 'role': 'cashier'},
                    headers=owner_headers)

        client.post('/api/auth/profiles', json={'id': 'later', 'email': 'later@example.com'},
                    headers=identity_headers())

        assert db_session.query(TeamMember).filter_by(user_id='later', owner_id=owner.id).count() == 1


class TestSignIn:

    def test_sign_in_returns_token_and_access(self, client, db_session, owner, cashier):
        response = client.post('/api/auth/sessions', json={'operator_id': cashier.id}, headers=identity_headers())

        assert response.status_code == 201
        data = response.get_json()
        assert data['access']['role'] == 'cashier'
        assert data['access']['tenant_id'] == owner.id

        me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.get_json()['tenant']['business_name'] == 'Cafe Central'

    def test_unknown_operator(self, client, db_session):
        response = client.post('/api/auth/sessions', json={'operator_id': 'nobody'}, headers=identity_headers())
        assert response.status_code == 404

    def test_missing_operator_id(self, client, db_session):
        response = client.post('/api/auth/sessions', json={}, headers=identity_headers())
        assert response.status_code == 400


class TestBearerToken:

    def test_missing_token(self, client, db_session):
        assert client.get('/api/auth/me').status_code == 401

    def test_garbage_token(self, client, db_session):
        assert client.get('/api/auth/me', headers={'Authorization': 'Bearer nope'}).status_code == 401

    def test_sign_out_drops_pos_state(self, client, db_session, owner_headers, coffee, registry):
        client.post('/api/pos/cart/items', json={'product_id': coffee.id}, headers=owner_headers)
        assert len(registry) == 1

        assert client.delete('/api/auth/sessions/current', headers=owner_headers).status_code == 200

        assert len(registry) == 0
        assert client.get('/api/auth/me', headers=owner_headers).status_code == 401

    def test_suspended_me(self, client, db_session, owner, owner_headers):
        owner.status = 'suspended'
        db_session.commit()
        response = client.get('/api/auth/me', headers=owner_headers)
        assert response.status_code == 403
        assert response.get_json()['suspended'] is True


class TestPosStateLifecycle:

    def _session_with_cart(self, client, operator_id, product_id):
        session, token = session_service.create_session(operator_id)
        headers = auth_headers(token)
        client.post('/api/pos/cart/items', json={'product_id': product_id}, headers=headers)
        return session, headers

    def test_idle_timeout_drops_pos_state(self, client, db_session, owner, coffee, registry):
        session, headers = self._session_with_cart(client, owner.id, coffee.id)
        assert len(registry) == 1

        session.last_used_at = utcnow() - timedelta(hours=9)
        db_session.commit()

        assert client.get('/api/pos/cart', headers=headers).status_code == 401
        assert len(registry) == 0

        session_service.cleanup_expired_sessions(retention_days=0)
        assert len(registry) == 0

    def test_absolute_expiry_drops_pos_state(self, client, db_session, owner, coffee, registry):
        session, headers = self._session_with_cart(client, owner.id, coffee.id)

        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert client.get('/api/pos/cart', headers=headers).status_code == 401
        assert registry.get(session.id) is None

    def test_revoked_elsewhere_is_swept(self, client, db_session, owner, cashier, coffee, registry):
        owner_session, _ = self._session_with_cart(client, owner.id, coffee.id)
        cashier_session, _ = self._session_with_cart(client, cashier.id, coffee.id)

        # Out-of-band revocation, e.g. from the CLI
        session_service.revoke_all_operator_sessions(owner.id, reason='Revoked by administrator')
        assert registry.get(owner_session.id) is not None

        client.get('/api/pos/cart', headers=sign_in(cashier.id))

        assert registry.get(owner_session.id) is None
        assert registry.get(cashier_session.id) is not None
        assert len(registry) == 2

    def test_deleted_by_cleanup_is_swept(self, client, db_session, owner, coffee, registry):
        old_session, _ = self._session_with_cart(client, owner.id, coffee.id)
        old_id = old_session.id
        old_session.is_revoked = True
        old_session.created_at = utcnow() - timedelta(days=40)
        db_session.commit()
        assert session_service.cleanup_expired_sessions(retention_days=30) == 1

        client.get('/api/pos/cart', headers=sign_in(owner.id))

        assert registry.get(old_id) is None
        assert len(registry) == 1


class TestHealth:

    def test_health(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'
