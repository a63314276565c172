"""
Test configuration and fixtures.

Every test gets a fresh in-memory SQLite database and an in-memory stand-in
for the R2 client, wired into the app through dependency overrides.
"""
import io
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app import models  # noqa: F401  registers every table
from app.constants.order_status import ItemType
from app.database import get_session
from app.main import app
from app.models.user import User
from app.services.catalog_service import CATALOG_MODELS
from app.services.storage import ProofStorage, get_storage
from app.utils.token import create_access_token

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF" + b"\x00" * 256
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 128


def _make_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # let SQLAlchemy own BEGIN so SAVEPOINT behaves as on Postgres
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


class FakeS3Client:
    """Just enough of the boto3 S3 client for ProofStorage"""

    def __init__(self):
        self.objects = {}
        self.fail_puts = False

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail_puts:
            raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, "PutObject")
        self.objects[Key] = (Body, ContentType)
        return {}

    def get_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        body, content_type = self.objects[Key]
        return {"Body": io.BytesIO(body), "ContentType": content_type}

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)
        return {}


@pytest.fixture
def engine():
    engine = _make_engine()
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def storage(s3_client):
    return ProofStorage(s3_client, "test-proofs")


@pytest.fixture
def client(session, storage):
    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_storage] = lambda: storage

    yield TestClient(app)

    app.dependency_overrides.clear()


def _add_user(session, name, email, role="student"):
    user = User(name=name, email=email, role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def buyer(session):
    return _add_user(session, "Asha Verma", "asha@example.com")


@pytest.fixture
def other_buyer(session):
    return _add_user(session, "Rohit Das", "rohit@example.com")


@pytest.fixture
def admin(session):
    return _add_user(session, "Office Admin", "admin@example.com", role="admin")


def add_catalog_item(session, item_type: ItemType, title: str, price: int, is_active: bool = True):
    item = CATALOG_MODELS[item_type](title=title, price=price, is_active=is_active)
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


@pytest.fixture
def paid_course(session):
    return add_catalog_item(session, ItemType.course, "UPSC Prelims Foundation", 5000)


@pytest.fixture
def free_ebook(session):
    return add_catalog_item(session, ItemType.ebook, "Monthly Current Affairs Digest", 0)


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def buyer_headers(buyer):
    return auth_headers(buyer)


@pytest.fixture
def other_headers(other_buyer):
    return auth_headers(other_buyer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def catalog_item(session):
    def factory(item_type, title="Item", price=1000, is_active=True):
        return add_catalog_item(session, item_type, title, price, is_active)
    return factory
