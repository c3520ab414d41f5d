from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from utils.otp_service import (
    InvalidArgumentError,
    OtpDeliveryError,
    OtpService,
    get_otp_service,
)


router = APIRouter(prefix="/auth/email-otp", tags=["email-otp"])


# Fields are optional so a missing value is reported as 400, not as a 422
# validation error.
class SendEmailOtpIn(BaseModel):
    email: Optional[str] = None


class VerifyEmailOtpIn(BaseModel):
    email: Optional[str] = None
    code: Optional[Union[str, int]] = None


class SendEmailOtpOut(BaseModel):
    success: bool


class VerifyEmailOtpOut(BaseModel):
    success: bool
    message: Optional[str] = None


@router.post("/send", response_model=SendEmailOtpOut)
def send_email_otp(payload: SendEmailOtpIn, otp: OtpService = Depends(get_otp_service)):
    try:
        otp.issue(payload.email)
    except InvalidArgumentError as e:
        raise HTTPException(400, str(e))
    except OtpDeliveryError as e:
        raise HTTPException(500, str(e))
    return {"success": True}


@router.post("/verify", response_model=VerifyEmailOtpOut, response_model_exclude_none=True)
def verify_email_otp(payload: VerifyEmailOtpIn, otp: OtpService = Depends(get_otp_service)):
    try:
        result = otp.verify(payload.email, payload.code)
    except InvalidArgumentError as e:
        raise HTTPException(400, str(e))
    return {"success": result.success, "message": result.message}
