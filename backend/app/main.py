import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.database import init_db
from app.errors import TournamentCoreError
from app.routes import brackets, matches, rankings, tournament_rules
from app.services.bracket_templates import TemplateCache

logger = logging.getLogger(__name__)

app = FastAPI(title="Racquet Tournament Core API")

# Loaded once at startup; routes read it from app.state
app.state.bracket_templates = TemplateCache()


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TournamentCoreError)
async def tournament_core_error_handler(request: Request, exc: TournamentCoreError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    errors = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
    return JSONResponse(
        status_code=422,
        content={"detail": "Invalid rules or point config", "code": "VALIDATION_FAILED", "errors": errors},
    )


# Include routers
app.include_router(brackets.router, prefix="/api", tags=["brackets"])
app.include_router(tournament_rules.router, prefix="/api", tags=["tournament-rules"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(rankings.router, prefix="/api", tags=["rankings"])


@app.on_event("startup")
def on_startup():
    init_db()
    # Fail closed: a broken template table stops the app from serving
    app.state.bracket_templates.load()
    logger.info(f"Build hash: {BUILD_HASH}")


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {
        "app_name": "Racquet Tournament Core API",
        "build_hash": BUILD_HASH,
        "status": "healthy",
        "bracket_templates": len(app.state.bracket_templates) if app.state.bracket_templates.loaded else 0,
    }
