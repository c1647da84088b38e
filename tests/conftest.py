import os
import tempfile
from decimal import Decimal

# Test configuration must be in place before the app modules read it
_DB_DIR = tempfile.mkdtemp(prefix="retail-pos-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["INTERNAL_ADMIN_SECRET"] = "test-internal-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from retail_pos.main import app
from retail_pos.database import Base, SessionLocal, engine, get_db
from retail_pos.core.hashing import hash_password
from retail_pos.core.tokens import create_user_token
from retail_pos.models.categories import Category
from retail_pos.models.products import Product
from retail_pos.models.users import User, UserRole


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Database session shared with the app under test."""
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client(db):
    """Test client whose requests use the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_user(db, username, role, password="s3cret-pass"):
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db):
    return _create_user(db, "admin", UserRole.ADMIN)


@pytest.fixture
def cashier(db):
    return _create_user(db, "cashier", UserRole.CASHIER)


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_user_token(admin_user)}"}


@pytest.fixture
def cashier_headers(cashier):
    return {"Authorization": f"Bearer {create_user_token(cashier)}"}


@pytest.fixture
def category(db):
    category = Category(name="Clothing", description="Apparel and fashion items")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def make_product(db):
    """Factory for catalog products."""
    def _make(name="P1", stock=10, price="1000", cost="600", **extra):
        product = Product(
            name=name,
            stock=stock,
            selling_price=Decimal(price),
            cost_price=Decimal(cost),
            sizes=extra.pop("sizes", []),
            colors=extra.pop("colors", []),
            **extra,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make
