"""
Email OTP REST Router
=====================
Thin FastAPI boundary over ``EmailOtpService``.

Endpoints (mounted under the caller's prefix, e.g. ``/realms/{realm}/email-otp``):
    POST /send    - Send an OTP to the identity's email
    POST /verify  - Verify an OTP code
    GET  /health  - Service liveness
"""

from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import structlog

from .service import EmailOtpService, OtpErrorCode, OtpResult

logger = structlog.get_logger(__name__)


class SendOtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    client_id: Optional[str] = Field(default=None, alias="clientId")


class VerifyOtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    code: Optional[str] = None
    client_id: Optional[str] = Field(default=None, alias="clientId")


class OtpResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    error_code: Optional[str] = Field(default=None, alias="errorCode")


STATUS_BY_ERROR: Dict[OtpErrorCode, int] = {
    OtpErrorCode.MISSING_IDENTIFIER: 400,
    OtpErrorCode.MISSING_CODE: 400,
    OtpErrorCode.NO_EMAIL: 400,
    OtpErrorCode.INVALID_CLIENT: 400,
    OtpErrorCode.INVALID_CODE: 400,
    OtpErrorCode.USER_NOT_FOUND: 404,
    OtpErrorCode.RATE_LIMIT_EXCEEDED: 429,
    OtpErrorCode.SEND_FAILED: 500,
}


async def allow_all() -> bool:
    """Default authentication dependency: every caller is accepted."""
    return True


def _respond(status_code: int, body: OtpResponse, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True),
        headers=headers,
    )


def _from_result(result: OtpResult) -> JSONResponse:
    body = OtpResponse(
        success=result.success,
        message=result.message,
        error_code=result.error_code.value if result.error_code else None,
    )
    if result.success:
        return _respond(200, body)

    headers = None
    if result.retry_after is not None:
        headers = {"Retry-After": str(result.retry_after)}
    return _respond(STATUS_BY_ERROR.get(result.error_code, 400), body, headers)


def _auth_required() -> JSONResponse:
    return _respond(
        401,
        OtpResponse(success=False, message="Authentication required", error_code="AUTH_REQUIRED"),
    )


def _internal_error() -> JSONResponse:
    return _respond(
        500,
        OtpResponse(success=False, message="Internal server error", error_code="INTERNAL_ERROR"),
    )


def create_otp_router(
    service: EmailOtpService,
    authenticate: Optional[Callable[..., Any]] = None,
) -> APIRouter:
    """
    Create the email OTP router.

    Args:
        service: Configured EmailOtpService
        authenticate: FastAPI dependency returning a truthy auth context, or a
            falsy value for unauthenticated callers (default: allow all)

    Returns:
        FastAPI router with /send, /verify and /health endpoints
    """
    router = APIRouter(tags=["Email OTP"])
    auth_dependency = authenticate or allow_all

    @router.post("/send")
    async def send_otp(request: SendOtpRequest, auth: Any = Depends(auth_dependency)):
        """Send an OTP code to the user's email."""
        if not auth:
            logger.warning("Unauthenticated request to send OTP")
            return _auth_required()
        try:
            result = await service.send_otp(
                email=request.email,
                user_id=request.user_id,
                client_id=request.client_id,
            )
        except Exception:
            logger.exception("Error processing send OTP request")
            return _internal_error()
        return _from_result(result)

    @router.post("/verify")
    async def verify_otp(request: VerifyOtpRequest, auth: Any = Depends(auth_dependency)):
        """Verify an OTP code."""
        if not auth:
            logger.warning("Unauthenticated request to verify OTP")
            return _auth_required()
        try:
            result = await service.verify_otp(
                code=request.code,
                email=request.email,
                user_id=request.user_id,
                client_id=request.client_id,
            )
        except Exception:
            logger.exception("Error processing verify OTP request")
            return _internal_error()
        return _from_result(result)

    @router.get("/health")
    async def health():
        return {"success": True, "message": "Email OTP service is running"}

    return router
