"""
Test configuration and fixtures for FamSave API tests
"""

import os
import sys
import tempfile

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Set environment variables for testing before importing the app
os.environ["ENVIRONMENT"] = "testing"
os.environ["TESTING"] = "true"
os.environ["SECURITY_EVENTS_REPORT_TO_ROLLBAR"] = "false"

# Set minimal required environment variables for testing if not already set
if not os.environ.get("JWT_SECRET_KEY"):
    os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-ci-0123456789"
if not os.environ.get("FIELD_ENCRYPTION_KEY"):
    os.environ["FIELD_ENCRYPTION_KEY"] = "0123456789abcdef" * 4

# Flask-SQLAlchemy builds the engine when the app module is imported, so the
# database URL has to be known before that
if not os.environ.get("DATABASE_URL"):
    _db_fd, _db_path = tempfile.mkstemp(suffix=".sqlite")
    os.close(_db_fd)
    os.environ["DATABASE_URL"] = f"sqlite:///{_db_path}"
else:
    _db_path = None

from famsaveapi import app as flask_app  # noqa: E402
from famsaveapi import db  # noqa: E402
from famsaveapi.services import AccountService  # noqa: E402

# Test credentials
PARENT_EMAIL = "parent@test.com"
PARENT_PASSWORD = "ParentPass123!"
PARENT_PHONE = "+254712345678"
OTHER_EMAIL = "other.parent@test.com"
OTHER_PASSWORD = "OtherPass123!"
WRONG_PASSWORD = "WrongPass123!"


def pytest_sessionfinish(session, exitstatus):
    if _db_path and os.path.exists(_db_path):
        os.unlink(_db_path)


@pytest.fixture(scope="function")
def app():
    """Application context with a fresh schema for every test"""
    with flask_app.app_context():
        db.create_all()
        try:
            yield flask_app
        finally:
            db.session.remove()
            db.drop_all()


@pytest.fixture
def parent_account(app):
    """Registered PARENT account, returned with its registration tokens"""
    account, tokens = AccountService.register(
        PARENT_EMAIL, PARENT_PASSWORD, PARENT_PHONE
    )
    return {"account": account, "tokens": tokens}


@pytest.fixture
def other_account(app):
    account, tokens = AccountService.register(OTHER_EMAIL, OTHER_PASSWORD)
    return {"account": account, "tokens": tokens}
