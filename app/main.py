from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import settings
from .errors import AwardError, ErrorCode
from .routes.awards import router as awards_router
from .routes.rules import router as rules_router
from .utils.logging import configure_logging, logger

configure_logging()

app = FastAPI(title="Rank Points Service",
              description="Awards points and rank tiers from the active rule set",
    version="0.1.0",
    docs_url="/docs",          # Swagger UI
    redoc_url="/redoc",        # ReDoc
    openapi_url="/openapi.json")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(awards_router)
app.include_router(rules_router)

def _error_response(exc: AwardError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())

@app.exception_handler(AwardError)
async def award_error_handler(request: Request, exc: AwardError):
    return _error_response(exc)

@app.exception_handler(RequestValidationError)
async def invalid_request_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return _error_response(AwardError(ErrorCode.INVALID_REQUEST, "Invalid JSON body"))

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s", request.url.path)
    return _error_response(AwardError(ErrorCode.SERVER_ERROR, "An unexpected error occurred"))

@app.get("/health")
def health():
    return {"ok": True}
