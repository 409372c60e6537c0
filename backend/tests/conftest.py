"""
Pytest fixtures for TiendaPOS backend tests.

Provides test database setup, tenant fixtures (owner, team members,
super-admin), products and authenticated request headers.
"""

import pytest
from tiendapos import create_app
from tiendapos.extensions import db
from tiendapos.models import Profile, TeamMember, Product
from tiendapos.services import session_service
from tiendapos.services.pos_session import get_registry, PosSessionRegistry, EXTENSION_KEY


IDENTITY_KEY = "test-identity-key"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'IDENTITY_SERVICE_KEY': IDENTITY_KEY,
        'ALLOW_NEGATIVE_STOCK': False,
        'PRODUCT_PAGE_SIZE': 20,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions[EXTENSION_KEY] = PosSessionRegistry()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_profile(db_session, profile_id: str, **kwargs) -> Profile:
    profile = Profile(
        id=profile_id,
        email=kwargs.pop("email", f"{profile_id}@example.com"),
        status=kwargs.pop("status", "active"),
        is_super_admin=kwargs.pop("is_super_admin", False),
        **kwargs,
    )
    db_session.add(profile)
    db_session.commit()
    return profile


def make_member(db_session, user: Profile, owner: Profile, role: str, status: str = "active") -> TeamMember:
    member = TeamMember(user_id=user.id, owner_id=owner.id, role=role, status=status)
    db_session.add(member)
    db_session.commit()
    return member


def make_product(db_session, tenant: Profile, name: str, price: int, stock: int = 10, icon: str | None = None) -> Product:
    product = Product(tenant_id=tenant.id, name=name, price=price, stock=stock, icon=icon)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def owner(db_session):
    """Tenant owner (Cafe Central)."""
    return make_profile(db_session, "owner-a", business_name="Cafe Central", currency="COP")


@pytest.fixture(scope='function')
def other_owner(db_session):
    """Owner of a second, unrelated tenant."""
    return make_profile(db_session, "owner-b", business_name="Panaderia Sol", currency="COP")


@pytest.fixture(scope='function')
def cashier(db_session, owner):
    """Cashier on owner's team."""
    profile = make_profile(db_session, "cashier-a")
    make_member(db_session, profile, owner, "cashier")
    return profile


@pytest.fixture(scope='function')
def admin_member(db_session, owner):
    """Admin on owner's team."""
    profile = make_profile(db_session, "admin-a")
    make_member(db_session, profile, owner, "admin")
    return profile


@pytest.fixture(scope='function')
def super_admin(db_session):
    return make_profile(db_session, "platform-admin", is_super_admin=True)


@pytest.fixture(scope='function')
def coffee(db_session, owner):
    return make_product(db_session, owner, "Cafe americano", price=15000, stock=10, icon="coffee")


@pytest.fixture(scope='function')
def croissant(db_session, owner):
    return make_product(db_session, owner, "Croissant", price=9000, stock=5, icon="croissant")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def sign_in(operator_id: str) -> dict:
    """Create a session for an operator and return its Authorization headers."""
    _session, token = session_service.create_session(operator_id)
    return auth_headers(token)


def identity_headers() -> dict:
    return {'X-Identity-Key': IDENTITY_KEY}


@pytest.fixture(scope='function')
def owner_headers(owner):
    return sign_in(owner.id)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return sign_in(cashier.id)


@pytest.fixture(scope='function')
def admin_headers(admin_member):
    return sign_in(admin_member.id)


@pytest.fixture(scope='function')
def super_admin_headers(super_admin):
    return sign_in(super_admin.id)


@pytest.fixture(scope='function')
def registry(db_session):
    return get_registry()
