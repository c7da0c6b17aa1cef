# conftest.py

import atexit
import os
import tempfile

import pytest

# Set testing environment BEFORE importing app so app.py picks TestingConfig
# and binds the engine to a throwaway SQLite file.
os.environ["FLASK_ENV"] = "testing"
_db_fd, _temp_db = tempfile.mkstemp(suffix="_catalog_test.db")
os.environ.setdefault("TEST_DATABASE_URL", f"sqlite:///{_temp_db}")


def _remove_temp_db():
    try:
        os.close(_db_fd)
    except OSError:
        pass
    try:
        if os.path.exists(_temp_db):
            os.unlink(_temp_db)
    except OSError:
        pass


atexit.register(_remove_temp_db)

# Now import app and other modules after environment is set
from app import app as flask_app  # noqa: E402
from catalog_app.models import Enterprise, EnterpriseRole, Taxon, User, db  # noqa: E402


@pytest.fixture(scope="function")
def app():
    """Create and configure a test Flask application with empty tables"""
    flask_app.config.update(
        {
            "TESTING": True,
            "PRODUCT_IMPORT_ENABLED": True,
            "PRODUCT_IMPORT_METRICS_ENABLED": False,
            "PRODUCT_IMPORT_CHUNK_SIZE": 100,
            "PRODUCT_IMPORT_FALLBACK_TAXON_ID": None,
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
            "LOG_LEVEL": "DEBUG",
        }
    )

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def admin_user(app):
    user = User(email="admin@example.com", is_admin=True)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def manager_user(app):
    """A non-admin user who owns no enterprises yet"""
    user = User(email="manager@example.com", is_admin=False)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def vegetables(app):
    taxon = Taxon(name="Vegetables", permalink="vegetables")
    db.session.add(taxon)
    db.session.commit()
    return taxon


@pytest.fixture
def owned_supplier(manager_user):
    enterprise = Enterprise(name="Green Farm", owner_id=manager_user.id, is_primary_producer=True)
    db.session.add(enterprise)
    db.session.commit()
    return enterprise


@pytest.fixture
def foreign_supplier(app):
    """A supplier the manager has no rights over"""
    enterprise = Enterprise(name="Other Farm", is_primary_producer=True)
    db.session.add(enterprise)
    db.session.commit()
    return enterprise


@pytest.fixture
def managed_hub(manager_user):
    hub = Enterprise(name="City Hub", is_primary_producer=False, sells="any")
    db.session.add(hub)
    db.session.flush()
    db.session.add(EnterpriseRole(user_id=manager_user.id, enterprise_id=hub.id))
    db.session.commit()
    return hub
