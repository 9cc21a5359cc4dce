# SecureKey API - FastAPI Backend
#
# Mounts the account, vault and strength routers and translates the
# SecureKeyError taxonomy into HTTP responses. Every error body has the
# shape {success: false, message}; request validation failures use
# {success: false, errors: [{field, message}]}.

import logging

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.errors import (
    AccountExistsError,
    AuthenticationError,
    CryptoError,
    InvalidOrExpiredCode,
    MFARequiredError,
    NotFoundError,
    SecureKeyError,
    ValidationError,
    VerificationRequiredError,
)
from .auth_routes import router as auth_router
from .strength_routes import router as strength_router
from .vault_routes import router as vault_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="SecureKey API",
    description="Encrypted credential vault with MFA-gated access",
    version=__version__,
)

_allowed_origins = [
    "http://localhost:3000", "http://127.0.0.1:3000",
    "http://localhost:5173", "http://127.0.0.1:5173",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(vault_router)
app.include_router(strength_router)


# ── Error mapping ───────────────────────────────────────────────────

# Checked in order; subclasses before their parents
_STATUS_BY_ERROR = (
    (MFARequiredError, status.HTTP_403_FORBIDDEN),
    (VerificationRequiredError, status.HTTP_403_FORBIDDEN),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidOrExpiredCode, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AccountExistsError, status.HTTP_400_BAD_REQUEST),
    (CryptoError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for_error(exc: SecureKeyError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(SecureKeyError)
async def handle_securekey_error(request: Request, exc: SecureKeyError):
    code = status_for_error(exc)
    body = {"success": False, "message": str(exc)}

    if isinstance(exc, MFARequiredError):
        body["requireMFA"] = True
    elif code >= 500:
        # Crypto failures never echo details back to the client
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method,
                     request.url.path, exc)
        body["message"] = "Internal server error"

    return JSONResponse(status_code=code, content=body)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc), "message": message})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "errors": errors},
    )


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": __version__}


def start_api_server(host: str = "127.0.0.1", port: int = 8000, log_level: str = "info"):
    """
    Start FastAPI server.

    Args:
        host: Host to bind to (default: localhost only)
        port: Port to listen on
        log_level: uvicorn log level
    """
    uvicorn.run(app, host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    start_api_server()
