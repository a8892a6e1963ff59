import pytest
from unittest.mock import patch
from flask import Flask
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from base import Base
from routes.cart import cart_bp
from routes.coupons import coupons_bp
from routes.orders import orders_bp
import schema


@pytest.fixture
def engine():
    """In-memory SQLite DB for fast testing."""
    _engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(_engine)
    yield _engine
    Base.metadata.drop_all(_engine)


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite DB so separate threads get separate connections."""
    _engine = create_engine(
        f"sqlite:///{tmp_path / 'storefront.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(_engine)
    yield _engine
    _engine.dispose()


@pytest.fixture
def db_session(engine):
    """Provides a transactional database session."""
    TestSession = sessionmaker(bind=engine)
    s = TestSession()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def app(engine):
    """Provides a pre-configured Flask app with all blueprints and mocked db."""
    TestSession = sessionmaker(bind=engine)

    def mock_get_db():
        s = TestSession()
        try:
            yield s
        finally:
            s.close()

    flask_app = Flask(__name__)
    flask_app.register_blueprint(cart_bp, url_prefix="/api/v1")
    flask_app.register_blueprint(coupons_bp, url_prefix="/api/v1")
    flask_app.register_blueprint(orders_bp, url_prefix="/api/v1")
    flask_app.config["TESTING"] = True

    with patch("routes.cart.get_db", mock_get_db), \
         patch("routes.coupons.get_db", mock_get_db), \
         patch("db.SessionLocal", TestSession), \
         patch("db.get_db", mock_get_db):
        yield flask_app


@pytest.fixture
def client(app):
    """Provides a Flask test client."""
    return app.test_client()
