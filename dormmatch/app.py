from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .catalog.config import DEFAULT_CATALOG_CONFIG
from .catalog.models import Entity
from .catalog.record_store import RecordStore
from .errors import DataLoadError, ValidationError
from .logging_config import configure_logging
from .ranking.models import (
    DormOut,
    RankedDormOut,
    RankedItem,
    SearchRequest,
    SearchResponse,
    build_query,
)
from .ranking.service import RankingService
from .resolution.cache import QualityCache
from .resolution.models import QualitySignal
from .services import get_quality_cache, get_ranking_service, get_record_store
from .throttling.dependencies import enforce_rate_limit

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DEFAULT_CATALOG_CONFIG.strict:
        # Strict mode refuses to start without a usable catalog.
        get_record_store().load()
    yield
    if get_ranking_service.cache_info().currsize:
        get_ranking_service().close()


app = FastAPI(title="Dorm Match API", version="1.0.0", lifespan=lifespan)


# ── Error mapping ────────────────────────────────────────────────────────


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        details.setdefault(field, error["msg"])
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid search request", "details": details},
    )


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message, "details": exc.details})


@app.exception_handler(DataLoadError)
async def data_load_handler(request: Request, exc: DataLoadError) -> JSONResponse:
    logger.error("Catalog unavailable: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Unable to load dorm data", "details": "Please try again later"},
    )


# ── Helpers ──────────────────────────────────────────────────────────────


def _dorm_out(entity: Entity, cache: QualityCache) -> DormOut:
    return DormOut(**dict(entity), quality_signal=cache.peek(entity.name))


def _ranked_out(item: RankedItem) -> RankedDormOut:
    return RankedDormOut(
        **dict(item.entity),
        quality_signal=item.quality_signal,
        score=item.breakdown.total,
        score_details=item.breakdown,
        matched_rates=item.matched_rates,
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/dorms", response_model=list[DormOut])
def list_dorms(
    store: RecordStore = Depends(get_record_store),
    cache: QualityCache = Depends(get_quality_cache),
) -> list[DormOut]:
    return [_dorm_out(entity, cache) for entity in store.load()]


@app.get("/map", response_model=list[DormOut])
def map_dorms(
    store: RecordStore = Depends(get_record_store),
    cache: QualityCache = Depends(get_quality_cache),
) -> list[DormOut]:
    # Entities without verified coordinates keep coordinates=null; the map
    # widget decides where (or whether) to draw them.
    return [_dorm_out(entity, cache) for entity in store.load()]


@app.get("/dorms/{name}/reviews", response_model=QualitySignal)
def dorm_reviews(
    name: str,
    store: RecordStore = Depends(get_record_store),
    ranking: RankingService = Depends(get_ranking_service),
) -> QualitySignal:
    entity = store.load().get(name)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Unknown dorm {name!r}")
    signal = ranking.signal_for(entity)
    if signal is None:
        raise HTTPException(status_code=404, detail="No relevant place found")
    return signal


@app.post(
    "/search",
    response_model=SearchResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
@app.post(
    "/rank-dorms",
    response_model=SearchResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
def search(
    body: SearchRequest,
    store: RecordStore = Depends(get_record_store),
    ranking: RankingService = Depends(get_ranking_service),
) -> SearchResponse:
    query = build_query(body.room_type, body.max_budget, body.location, store.config.zones)
    catalog = store.load()

    result = ranking.rank(catalog, query, top_k=body.limit)
    logger.info(
        "Ranked %d of %d dorms for %s / %.0f / %s",
        len(result.items), len(catalog), query.room_type.value, query.max_budget, query.zone,
    )

    return SearchResponse(
        dorms=[_ranked_out(item) for item in result.items],
        total_candidates=result.total_candidates,
        message=result.message,
    )


@app.get("/cache/stats")
def cache_stats(cache: QualityCache = Depends(get_quality_cache)) -> dict:
    return cache.stats()
