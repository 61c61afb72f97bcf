import logging

from fastapi import FastAPI

from .settings import settings
from .routers import scoring

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="APTIS Scoring API")
app.include_router(scoring.router)


@app.get("/info")
async def info():
	return {
		"name": "aptis-scoring",
		"provider": settings.gemini_provider,
		"model": settings.gemini_model,
		"max_retries": settings.scoring_max_retries,
	}
