from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, String

from database import Base


class EmailOtp(Base):
    __tablename__ = "email_otps"

    # One live code per address; re-issuing overwrites the row.
    email = Column(String, primary_key=True)
    code = Column(String(6), nullable=False)

    # Absolute expiry as epoch seconds, same clock as the service.
    expires_at = Column(Float, nullable=False)

    # Time of the latest issue; refreshed when a code is overwritten.
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
