from __future__ import annotations

import os
from typing import Any, Dict, Optional

import requests


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _base_url() -> str:
    return os.getenv("BACKEND_URL", "http://localhost:8000").rstrip("/")


def _headers() -> Dict[str, str]:
    return {"content-type": "application/json"}


def _raise(resp: requests.Response) -> None:
    if resp.status_code < 300:
        return
    try:
        data = resp.json()
    except ValueError:
        data = None
    msg = None
    if isinstance(data, dict):
        msg = data.get("detail") or data.get("message")
    raise ApiError(str(msg or f"Request failed ({resp.status_code})"), resp.status_code)


def api_send_email_otp(*, email: str) -> Dict[str, Any]:
    r = requests.post(
        f"{_base_url()}/api/auth/email-otp/send",
        json={"email": email},
        headers=_headers(),
        timeout=20,
    )
    _raise(r)
    return r.json()


def api_verify_email_otp(*, email: str, code: str) -> Dict[str, Any]:
    """
    Returns the verdict dict: {"success": True} or
    {"success": False, "message": "..."}. Only transport and argument
    errors raise ApiError.
    """
    r = requests.post(
        f"{_base_url()}/api/auth/email-otp/verify",
        json={"email": email, "code": code},
        headers=_headers(),
        timeout=20,
    )
    _raise(r)
    return r.json()
