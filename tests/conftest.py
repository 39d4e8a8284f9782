import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import config
import database
from auth import create_token, hash_password
from main import app

API_KEY = "student-demo-key"


@pytest.fixture
def mongo(monkeypatch):
    mock_db = mongomock.MongoClient()["qalab_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(mongo):
    return TestClient(app)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


def make_user(name, email, password="secret123", role="USER"):
    user_id = database.create_document(
        "user",
        {"name": name, "email": email, "password_hash": hash_password(password), "role": role},
    )
    return database.find_by_id("user", user_id)


def make_product(**overrides):
    data = {
        "name": "Rubber Duck",
        "description": "Listens to your bugs",
        "price": 10.0,
        "category": "Hardware",
        "stock": 5,
        "in_stock": True,
        "rating": 4.0,
        "review_count": 3,
        "image": None,
    }
    data.update(overrides)
    product_id = database.create_document("product", data)
    return database.find_by_id("product", product_id)


def make_order(user, status="PENDING", created_at=None, items=None):
    oid = ObjectId()
    stamp = created_at or datetime.now(timezone.utc)
    doc = {
        "_id": oid,
        "user_id": str(user["_id"]),
        "status": status,
        "total_amount": 20,
        "customer_info": {"name": user["name"], "email": user["email"]},
        "shipping": {"payment": {}},
        "items": items or [],
        "created_at": stamp,
        "updated_at": stamp,
    }
    database.get_collection("order").insert_one(doc)
    return doc


def bearer(user):
    return {"Authorization": f"Bearer {create_token(user)}"}


def expired_token(user):
    import jwt

    payload = {
        "sub": str(user["_id"]),
        "email": user["email"],
        "role": user.get("role", "USER"),
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGO)


@pytest.fixture
def user(mongo):
    return make_user("Test User", "user@qalab.hu")


@pytest.fixture
def other_user(mongo):
    return make_user("Other User", "other@qalab.hu")


@pytest.fixture
def admin(mongo):
    return make_user("Admin User", "admin@qalab.hu", role="ADMIN")


@pytest.fixture
def product(mongo):
    return make_product()
