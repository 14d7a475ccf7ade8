"""
FastAPI application.

Endpoints:
- POST /api/analyze: search sources and analyze one condition
- GET /health: liveness check

Run with `healthref serve` or `uvicorn healthref.api.main:app`.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from healthref import __version__
from healthref.analysis.pipeline import HealthAnalyzer
from healthref.generation.backends import ConfigurationError
from healthref.generation.parser import CamelModel
from healthref.logging import configure_logging, get_logger

logger = get_logger(__name__, component="api")


class AnalyzeRequest(CamelModel):
    condition: str | None = None
    include_budget: bool = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    app.state.analyzer = HealthAnalyzer()
    logger.info("api_started", version=__version__)
    yield
    await app.state.analyzer.aclose()
    logger.info("api_stopped")


app = FastAPI(title="healthref", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_analyzer(request: Request) -> HealthAnalyzer:
    return request.app.state.analyzer


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}


@app.post("/api/analyze")
async def analyze(body: AnalyzeRequest, analyzer: HealthAnalyzer = Depends(get_analyzer)):
    """Search literature and the web for a condition and extract recommendations."""
    if not body.condition or not body.condition.strip():
        return JSONResponse(status_code=400, content={"error": "Condition is required"})

    try:
        run = await analyzer.run(body.condition, include_budget=body.include_budget)
    except ConfigurationError as e:
        logger.error("analyze_configuration_error", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to analyze condition", "details": str(e)},
        )
    except Exception as e:
        logger.exception("analyze_failed", condition=body.condition[:80])
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to analyze condition", "details": str(e)},
        )

    return {
        "success": True,
        "analysis": run.result.to_dict(),
        "searchStats": {to_camel(k): v for k, v in run.search_stats.items()},
    }
