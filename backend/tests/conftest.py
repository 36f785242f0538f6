"""
Pytest fixtures for lynn_ops backend tests.

Provides a file-backed SQLite database (threads need their own
connections), a wiped schema per test, and the three account tiers with
locations they own or are granted.
"""

import threading
from decimal import Decimal

import pytest

from lynn_ops import create_app
from lynn_ops.extensions import db
from lynn_ops.models import Location, Product, UserLocationAccess
from lynn_ops.permissions import ROLE_ADMIN, ROLE_SUPERADMIN, ROLE_USER
from lynn_ops.services import auth_service, session_service


PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("db") / "test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Clear all data but keep schema."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


# =============================================================================
# ACCOUNTS
# =============================================================================

@pytest.fixture(scope='function')
def superadmin(db_session):
    return auth_service.create_user("root", "Root", PASSWORD, role=ROLE_SUPERADMIN)


@pytest.fixture(scope='function')
def admin(db_session, superadmin):
    return auth_service.create_user("admin_a", "Admin A", PASSWORD, role=ROLE_ADMIN, created_by_id=superadmin.id)


@pytest.fixture(scope='function')
def other_admin(db_session, superadmin):
    return auth_service.create_user("admin_b", "Admin B", PASSWORD, role=ROLE_ADMIN, created_by_id=superadmin.id)


@pytest.fixture(scope='function')
def staff(db_session, admin):
    """A role=user account created by admin, with no grants yet."""
    return auth_service.create_user("staff", "Staff Member", PASSWORD, role=ROLE_USER, created_by_id=admin.id)


# =============================================================================
# LOCATIONS
# =============================================================================

@pytest.fixture(scope='function')
def location(db_session, admin):
    """Warehouse owned by admin."""
    loc = Location(name="Main Warehouse", type="warehouse", currency="VND", admin_id=admin.id)
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def other_location(db_session, other_admin):
    """Hotel owned by other_admin."""
    loc = Location(name="Riverside Hotel", type="hotel", currency="USD", admin_id=other_admin.id)
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def grant(db_session, admin):
    """Factory: grant(user, location, [capabilities]) -> UserLocationAccess."""
    def _grant(user, loc, permissions=()):
        row = UserLocationAccess(
            user_id=user.id,
            location_id=loc.id,
            permissions=list(permissions),
            granted_by_id=admin.id,
        )
        db_session.add(row)
        db_session.commit()
        return row
    return _grant


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(location, name, quantity=0, ...) -> Product."""
    def _make(loc, name="Rice 5kg", quantity=0, price=Decimal("10.00"), sale_price=Decimal("12.50"), status="available"):
        product = Product(
            location_id=loc.id,
            name=name,
            unit="bag",
            price=price,
            sale_price=sale_price,
            quantity=quantity,
            status=status,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product(location, make_product):
    return make_product(location, quantity=10)


# =============================================================================
# AUTH HELPERS
# =============================================================================

def token_for(user, remember_me: bool = False) -> str:
    _, token = session_service.create_session(user.id, remember_me=remember_me)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Factory: headers_for(user, remember_me=False) -> Authorization headers."""
    def _headers(user, remember_me=False):
        return auth_headers(token_for(user, remember_me=remember_me))
    return _headers


@pytest.fixture(scope='function')
def superadmin_headers(superadmin):
    return auth_headers(token_for(superadmin))


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(token_for(admin))


@pytest.fixture(scope='function')
def other_admin_headers(other_admin):
    return auth_headers(token_for(other_admin))


@pytest.fixture(scope='function')
def staff_headers(staff):
    return auth_headers(token_for(staff))


# =============================================================================
# CONCURRENCY HELPERS
# =============================================================================

@pytest.fixture(scope='function')
def run_concurrently(app):
    """
    Factory: run_concurrently(*calls) -> one outcome per call.

    Each call runs in its own thread and app context (own DB session), all
    released together by a barrier. An outcome is "ok" or the name of the
    exception the call raised.
    """
    def _run(*calls):
        barrier = threading.Barrier(len(calls))
        outcomes = [None] * len(calls)

        def worker(index, call):
            with app.app_context():
                try:
                    barrier.wait()
                    call()
                    outcomes[index] = "ok"
                except Exception as exc:
                    outcomes[index] = type(exc).__name__
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return outcomes
    return _run
