import pytest

from config import TestingConfig
from dentaldesk import bcrypt, create_app, db
from dentaldesk.models import Account
from dentaldesk.repository import OwnerContext


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_account(email, password="secret123", **extra):
    account = Account(
        email=email,
        password_hash=bcrypt.generate_password_hash(password).decode("utf-8"),
        first_name=extra.get("first_name", "Claire"),
        last_name=extra.get("last_name", "Martin"),
        clinic_name=extra.get("clinic_name", "Cabinet Martin"),
        phone=extra.get("phone", "0102030405"),
    )
    db.session.add(account)
    db.session.commit()
    return account


@pytest.fixture
def account(app):
    return make_account("claire@example.com")


@pytest.fixture
def other_account(app):
    return make_account("paul@example.com", first_name="Paul", clinic_name="Cabinet Paul")


@pytest.fixture
def ctx(account):
    return OwnerContext.from_identity(account.id)


@pytest.fixture
def other_ctx(other_account):
    return OwnerContext.from_identity(other_account.id)


@pytest.fixture
def auth_headers(client, account):
    resp = client.post("/api/auth/login", json={"email": "claire@example.com", "password": "secret123"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}
