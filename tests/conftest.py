"""
Fixtures compartidas.

Cada test usa una BD SQLite en memoria (StaticPool → una sola conexión)
y la app con get_db sustituido, así nunca se toca rachaclub.db.
"""

import os

os.environ.setdefault("STREAK_REFRESH_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "development")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models
from database import Base, get_db
from main import app
from streaks import utc_today

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def today():
    return utc_today()


@pytest.fixture
def days_ago(today):
    def _days_ago(n: int):
        return today - timedelta(days=n)
    return _days_ago


# ─────────────────────────────────────────────────────────────────────────────
# Datos directos en BD (tests de servicio)
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def user_factory(db_session):
    counter = {"n": 0}

    def _make(username: str = None) -> models.User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = models.User(
            email=f"{username}@example.com",
            username=username,
            password_hash="not-a-real-hash",
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def habit_factory(db_session):
    def _make(user: models.User, name: str = "Leer", **kwargs) -> models.Habit:
        habit = models.Habit(user_id=user.id, name=name, **kwargs)
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Usuarios vía API (tests de endpoints)
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def signup(client):
    """Registra un usuario y devuelve (datos del usuario, cabeceras de auth)"""
    def _signup(username: str, password: str = "supersecreta"):
        response = client.post("/api/auth/signup", json={
            "email": f"{username}@example.com",
            "username": username,
            "password": password,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _signup


@pytest.fixture
def make_friends(client):
    """Hace amigos a dos usuarios (a envía, b acepta). Devuelve el friendship_id."""
    def _make_friends(a, b):
        user_a, headers_a = a
        user_b, headers_b = b
        sent = client.post(f"/api/friends/request/{user_b['id']}", headers=headers_a)
        assert sent.status_code == 201, sent.text
        friendship_id = sent.json()["friendship"]["id"]
        accepted = client.post(f"/api/friends/accept/{friendship_id}", headers=headers_b)
        assert accepted.status_code == 200, accepted.text
        return friendship_id

    return _make_friends
