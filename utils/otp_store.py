"""
Key/value storage for issued email OTPs.

Every backend keeps at most one record per email and never sweeps expired
records on its own; the service deletes them when it sees them.

- memory:    process-local dict. A restart loses every in-flight code and
             separate instances do not see each other's codes.
- redis:     shared across instances (REDIS_URL).
- database:  SQLAlchemy table `email_otps` (DATABASE_URL).
- firestore: `emailOtps` collection of the Firebase project.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import sessionmaker

from config import Settings
from models import EmailOtp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpRecord:
    email: str
    code: str
    expires_at: float


class OtpStore:
    """Interface: get / put (overwrite) / delete by email."""

    def get(self, email: str) -> Optional[OtpRecord]:
        raise NotImplementedError

    def put(self, record: OtpRecord) -> None:
        raise NotImplementedError

    def delete(self, email: str) -> None:
        raise NotImplementedError


class InMemoryOtpStore(OtpStore):
    def __init__(self) -> None:
        self._mem: dict[str, OtpRecord] = {}

    def get(self, email: str) -> Optional[OtpRecord]:
        return self._mem.get(email)

    def put(self, record: OtpRecord) -> None:
        self._mem[record.email] = record

    def delete(self, email: str) -> None:
        self._mem.pop(email, None)

    def __len__(self) -> int:
        return len(self._mem)


class RedisOtpStore(OtpStore):
    """
    Records are JSON blobs under `otp:email:<email>`.

    The key outlives the code by `retention_seconds` so a late attempt is
    still reported as expired rather than missing.
    """

    KEY_PREFIX = "otp:email:"

    def __init__(self, client: Any, *, retention_seconds: int = 3600) -> None:
        self.client = client
        self.retention_seconds = max(0, int(retention_seconds))

    @classmethod
    def from_url(cls, url: str, *, retention_seconds: int = 3600) -> "RedisOtpStore":
        import redis

        return cls(redis.Redis.from_url(url, decode_responses=True), retention_seconds=retention_seconds)

    def _key(self, email: str) -> str:
        return f"{self.KEY_PREFIX}{email}"

    def get(self, email: str) -> Optional[OtpRecord]:
        raw = self.client.get(self._key(email))
        if not raw:
            return None
        data = json.loads(raw)
        return OtpRecord(email=email, code=str(data["code"]), expires_at=float(data["expires_at"]))

    def put(self, record: OtpRecord) -> None:
        ttl = int(record.expires_at - time.time()) + self.retention_seconds
        payload = json.dumps({"code": record.code, "expires_at": record.expires_at})
        self.client.set(self._key(record.email), payload, ex=max(1, ttl))

    def delete(self, email: str) -> None:
        self.client.delete(self._key(email))


class SqlOtpStore(OtpStore):
    _UPSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def get(self, email: str) -> Optional[OtpRecord]:
        db = self.session_factory()
        try:
            row = db.get(EmailOtp, email)
            if not row:
                return None
            return OtpRecord(email=row.email, code=row.code, expires_at=float(row.expires_at))
        finally:
            db.close()

    def put(self, record: OtpRecord) -> None:
        values = {"code": record.code, "expires_at": record.expires_at, "created_at": datetime.utcnow()}
        db = self.session_factory()
        try:
            dialect = db.get_bind().dialect.name
            insert = self._UPSERTS.get(dialect)
            if insert is None:
                raise RuntimeError(f"OTP_STORE=database does not support the {dialect!r} dialect")
            # Single-statement upsert: concurrent issues for one email never collide.
            stmt = insert(EmailOtp).values(email=record.email, **values)
            db.execute(stmt.on_conflict_do_update(index_elements=["email"], set_=values))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, email: str) -> None:
        db = self.session_factory()
        try:
            db.query(EmailOtp).filter(EmailOtp.email == email).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class FirestoreOtpStore(OtpStore):
    COLLECTION = "emailOtps"

    def __init__(self, client: Any, *, collection: str = COLLECTION) -> None:
        self.client = client
        self.collection = collection

    def _doc(self, email: str):
        return self.client.collection(self.collection).document(email)

    def get(self, email: str) -> Optional[OtpRecord]:
        snap = self._doc(email).get()
        if not snap.exists:
            return None
        data = snap.to_dict() or {}
        return OtpRecord(email=email, code=str(data["code"]), expires_at=float(data["expires_at"]))

    def put(self, record: OtpRecord) -> None:
        self._doc(record.email).set({"code": record.code, "expires_at": record.expires_at})

    def delete(self, email: str) -> None:
        self._doc(email).delete()


def build_otp_store(settings: Settings) -> OtpStore:
    kind = settings.otp_store
    if kind == "memory":
        logger.warning("Using in-memory OTP store; codes are lost on restart and not shared between instances")
        return InMemoryOtpStore()
    if kind == "redis":
        if not settings.redis_url:
            raise RuntimeError("OTP_STORE=redis requires REDIS_URL")
        return RedisOtpStore.from_url(
            settings.redis_url,
            retention_seconds=settings.otp_redis_retention_minutes * 60,
        )
    if kind == "database":
        from database import make_engine, make_session_factory

        return SqlOtpStore(make_session_factory(make_engine(settings.database_url)))
    if kind == "firestore":
        from utils.firebase_app import get_firestore_client

        return FirestoreOtpStore(get_firestore_client(settings))
    raise RuntimeError(f"Unknown OTP_STORE {kind!r} (expected memory, redis, database or firestore)")
