import logging

from fastapi import FastAPI

from .db import init_db
from .deps import get_fallback_bank
from .settings import settings
from .routers import ai, auth, recommendations

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Exam Prep API")
app.include_router(auth.router)
app.include_router(ai.router)
app.include_router(recommendations.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"llm_configured": bool(settings.gemini_api_key or settings.openrouter_api_key),
		"fallback_bank": get_fallback_bank().version,
	}


@app.on_event("startup")
async def startup_event():
	init_db()
	# A broken fallback table fails at boot
	bank = get_fallback_bank()
	logger.info("Fallback subjects: %s", ", ".join(bank.subjects))
