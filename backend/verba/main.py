import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .db import init_db
from .errors import VerbaError
from .gemini_client import close_gemini_client
from .settings import settings
from .routers import auth
from .routers import conversation
from .routers import lesson
from .routers import onboarding
from .routers import rooms
from .routers import users

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Verba API")
app.include_router(auth.router)
app.include_router(onboarding.router)
app.include_router(lesson.router)
app.include_router(conversation.router)
app.include_router(users.router)
app.include_router(rooms.router)


@app.exception_handler(VerbaError)
async def verba_error_handler(request: Request, exc: VerbaError):
	if exc.status_code >= 500:
		logger.error("%s on %s: %s (raw=%r)", type(exc).__name__, request.url.path, exc, exc.raw)
	message = str(exc) if exc.expose_message else exc.detail
	return JSONResponse(status_code=exc.status_code, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
	logger.exception("Unhandled error on %s", request.url.path)
	return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
async def startup_event():
	init_db()


@app.on_event("shutdown")
async def shutdown_event():
	await close_gemini_client()
