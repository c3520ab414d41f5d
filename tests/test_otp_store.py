from __future__ import annotations

import threading
import time
from datetime import datetime
from unittest.mock import MagicMock

import fakeredis
import pytest

from config import Settings
from database import make_engine, make_session_factory
from models import EmailOtp
from utils.otp_store import (
    FirestoreOtpStore,
    InMemoryOtpStore,
    OtpRecord,
    RedisOtpStore,
    SqlOtpStore,
    build_otp_store,
)


@pytest.fixture(params=["memory", "redis", "database"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryOtpStore()
    if request.param == "redis":
        return RedisOtpStore(fakeredis.FakeRedis(decode_responses=True), retention_seconds=60)
    engine = make_engine(f"sqlite:///{tmp_path / 'otp.db'}")
    return SqlOtpStore(make_session_factory(engine))


def _record(code: str = "123456", email: str = "a@b.com") -> OtpRecord:
    return OtpRecord(email=email, code=code, expires_at=time.time() + 300)


def test_get_missing_returns_none(any_store):
    assert any_store.get("a@b.com") is None


def test_put_then_get(any_store):
    rec = _record()
    any_store.put(rec)

    got = any_store.get("a@b.com")
    assert got.code == "123456"
    assert got.expires_at == pytest.approx(rec.expires_at)


def test_put_overwrites(any_store):
    any_store.put(_record("111111"))
    any_store.put(_record("222222"))

    assert any_store.get("a@b.com").code == "222222"


def test_delete(any_store):
    any_store.put(_record())
    any_store.put(_record(email="other@b.com"))
    any_store.delete("a@b.com")

    assert any_store.get("a@b.com") is None
    assert any_store.get("other@b.com") is not None


def test_delete_missing_is_noop(any_store):
    any_store.delete("ghost@b.com")
    assert any_store.get("ghost@b.com") is None


def test_redis_key_outlives_code_by_retention():
    client = fakeredis.FakeRedis(decode_responses=True)
    store = RedisOtpStore(client, retention_seconds=600)
    store.put(_record())

    ttl = client.ttl("otp:email:a@b.com")
    assert 850 <= ttl <= 900


def test_firestore_put_writes_document():
    client = MagicMock()
    store = FirestoreOtpStore(client)
    store.put(OtpRecord(email="a@b.com", code="123456", expires_at=42.0))

    client.collection.assert_called_with("emailOtps")
    client.collection.return_value.document.assert_called_with("a@b.com")
    client.collection.return_value.document.return_value.set.assert_called_once_with(
        {"code": "123456", "expires_at": 42.0}
    )


def test_firestore_get_and_delete():
    client = MagicMock()
    doc = client.collection.return_value.document.return_value
    store = FirestoreOtpStore(client)

    doc.get.return_value.exists = False
    assert store.get("a@b.com") is None

    doc.get.return_value.exists = True
    doc.get.return_value.to_dict.return_value = {"code": "654321", "expires_at": 99}
    assert store.get("a@b.com") == OtpRecord(email="a@b.com", code="654321", expires_at=99.0)

    store.delete("a@b.com")
    doc.delete.assert_called_once_with()


def test_build_memory_store():
    assert isinstance(build_otp_store(Settings(otp_store="memory")), InMemoryOtpStore)


def test_build_database_store(tmp_path):
    store = build_otp_store(Settings(otp_store="database", database_url=f"sqlite:///{tmp_path / 'x.db'}"))
    assert isinstance(store, SqlOtpStore)


def test_build_redis_store_requires_url():
    with pytest.raises(RuntimeError, match="REDIS_URL"):
        build_otp_store(Settings(otp_store="redis"))


def test_build_unknown_store():
    with pytest.raises(RuntimeError, match="Unknown OTP_STORE"):
        build_otp_store(Settings(otp_store="cassandra"))


# ---------- SQL overwrite semantics ----------

@pytest.fixture
def session_factory(tmp_path):
    return make_session_factory(make_engine(f"sqlite:///{tmp_path / 'otp.db'}"))


def test_sql_concurrent_first_issues_last_write_wins(session_factory):
    barrier = threading.Barrier(2)

    def synced_factory():
        db = session_factory()
        barrier.wait(timeout=5)
        return db

    store = SqlOtpStore(synced_factory)
    errors = []

    def issue(code):
        try:
            store.put(_record(code))
        except Exception as e:  # collected for the assertion below
            errors.append(e)

    threads = [threading.Thread(target=issue, args=(c,)) for c in ("111111", "222222")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert SqlOtpStore(session_factory).get("a@b.com").code in {"111111", "222222"}
    db = session_factory()
    try:
        assert db.query(EmailOtp).count() == 1
    finally:
        db.close()


def test_sql_reissue_refreshes_created_at(session_factory):
    store = SqlOtpStore(session_factory)
    store.put(_record("111111"))

    old = datetime(2020, 1, 1)
    db = session_factory()
    try:
        db.query(EmailOtp).update({"created_at": old})
        db.commit()
    finally:
        db.close()

    store.put(_record("222222"))

    db = session_factory()
    try:
        row = db.get(EmailOtp, "a@b.com")
        assert row.code == "222222"
        assert row.created_at > old
    finally:
        db.close()
