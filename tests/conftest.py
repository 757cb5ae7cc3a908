"""
Shared test fixtures: SQLite test database, test client, catalog helpers.
"""

import os
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AUTO_SEED"] = "false"

from cotizador.database import Base, get_db
from cotizador.main import app
from cotizador.models import MaterialKind
from cotizador.routers.catalog import seed_catalog
from cotizador.schemas import AccessoryCostEntry, MaterialSelection


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_db(db):
    """Session with the default catalog loaded."""
    seed_catalog(db)
    return db


# --- Pricing inputs ---

def material(id, name, cost, kind=MaterialKind.TABLERO):
    return MaterialSelection(id=id, name=name, unit_cost=Decimal(str(cost)), kind=kind)


def accessory(name, category, cost):
    return AccessoryCostEntry(name=name, category=category, unit_cost=Decimal(str(cost)))


@pytest.fixture
def tableros():
    return {
        "mat_huacal": material(1, "MDF 16mm Blanco", 120),
        "mat_vista": material(2, "Melamina 16mm Nogal", 150),
    }
