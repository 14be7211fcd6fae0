import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .settings import settings
from .routers import health
from .routers import auth
from .routers import calibration
from .routers import sessions
from .routers import history

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Vision Screening API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(calibration.router)
app.include_router(sessions.router)
app.include_router(history.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"result_store": settings.result_store,
		"supabase_configured": bool(settings.supabase_url and settings.supabase_key),
	}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed; continuing with existing tables")
