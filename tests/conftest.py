import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_AUTO_CREATE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db, get_session_factory
from app.main import create_app
from app.models import User, UserRole, Post
from app.stores import EphemeralStores
from app.utils.security import hash_password, create_access_token


class FakeClock:
    def __init__(self, start=None):
        self.current = start or datetime.now(timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def upload_root(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    (root / "pdfs").mkdir(parents=True)
    (root / "zips").mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(root))
    return root


@pytest.fixture
def stores(clock):
    return EphemeralStores(clock=clock)


@pytest.fixture
def client(session_factory, stores, upload_root):
    app = create_app(stores)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as c:
        yield c


# ─── Data helpers ─────────────────────────────────────────────────────────────
def make_user(db, email="reader@example.com", password="secret123", role=UserRole.USER, verified=True):
    user = User(
        name=email.split("@")[0].title(),
        email=email,
        password=hash_password(password),
        isVerified=verified,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_post(db, upload_root, slug="guide", pdf="pdfs/guide.pdf", zip=None, content=b"%PDF-1.4 test"):
    for rel in (pdf, zip):
        if rel and not rel.startswith(".."):
            target = upload_root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
    post = Post(title=slug.title(), slug=slug, content="body", pdf=pdf, zip=zip)
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def auth_headers(user):
    token = create_access_token(user.id, user.email, user.role.value)
    return {"Authorization": f"Bearer {token}"}
