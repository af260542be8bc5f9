import os

# Les settings sont lus à l'import : l'environnement de test doit précéder app.*
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.context import RequestContext  # noqa: E402
from app.core.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.core.security import create_access_token, get_password_hash  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models.cpc import CpcProduct  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.models.site import Site  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.auth_service import access_claims  # noqa: E402
from app.services.notification_service import hub  # noqa: E402

PASSWORD = "motdepasse123"


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Session DB isolée par test : schéma recréé sur une base SQLite en mémoire.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        hub.clear()


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(ip_address="127.0.0.1", user_agent="pytest")


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(role=UserRole.BUYER, verified=True, validated=True, email=None, **kwargs):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            first_name=kwargs.pop("first_name", f"User{counter['n']}"),
            last_name=kwargs.pop("last_name", "Test"),
            role=role,
            password_hash=get_password_hash(PASSWORD),
            is_email_verified=verified,
            is_validated=validated,
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user) -> User:
    return make_user()


@pytest.fixture
def admin(make_user) -> User:
    return make_user(role=UserRole.ADMIN, email="admin@example.com")


@pytest.fixture
def make_site(db_session):
    def _make(owner, name="Dépôt", lat=-18.8792, lng=47.5079):
        site = Site(site_name=name, site_address="Antananarivo", site_lat=lat, site_lng=lng, owner_id=owner.id)
        db_session.add(site)
        db_session.commit()
        db_session.refresh(site)
        return site

    return _make


@pytest.fixture
def cpc(db_session) -> CpcProduct:
    node = CpcProduct(code="01111", nom="Blé dur", niveau=5, parent_code="0111")
    db_session.add(node)
    db_session.commit()
    db_session.refresh(node)
    return node


@pytest.fixture
def make_product(db_session, cpc):
    def _make(owner, name="Riz", validated=True, prix=Decimal("1500")):
        product = Product(
            code_cpc=cpc.code,
            product_name=name,
            owner_id=owner.id,
            product_validation=validated,
            prix_unitaire=prix,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token(subject=user.id, claims=access_claims(user))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(db_session) -> TestClient:
    """Client HTTP partageant la session du test ; le lifespan n'est pas déclenché"""
    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()
