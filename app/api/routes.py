from functools import lru_cache
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from .schemas import CacheAdminResponse, DeltaMode, HealthResponse, RangeQuery
from ..pipeline.orchestrator import DashboardEngine, build_engine, preferred_delta_mode
from ..pipeline.ranges import resolve_range, resolve_tax_range
from ..config import settings
from ..store import JsonStore
from ..logging import bind_request

router = APIRouter()

@lru_cache(maxsize=1)
def get_engine() -> DashboardEngine:
    return build_engine(JsonStore(settings.data_dir))

def range_query(
    preset: Optional[str] = Query(default=None, description="last-month|last-quarter|last-year|year-to-date"),
    start: Optional[str] = Query(default=None, description="Custom range start (YYYY-MM-DD)"),
    end: Optional[str] = Query(default=None, description="Custom range end (YYYY-MM-DD), inclusive"),
) -> RangeQuery:
    return RangeQuery(preset=preset, start=start, end=end)

def _load_user(engine: DashboardEngine, user_id: str) -> dict:
    loader = getattr(engine.source, "load_user", None)
    return loader(user_id) if loader else {"id": user_id}

@router.get(
    '/health',
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service configuration and result-cache size.",
    tags=["Health"],
)
def health(engine: DashboardEngine = Depends(get_engine)):
    return HealthResponse(
        ok=True,
        data_dir=settings.data_dir,
        cache_enabled=engine.cache is not None,
        cache_entries=len(engine.cache) if engine.cache is not None else 0,
    )

@router.post(
    '/cache/{action}',
    response_model=CacheAdminResponse,
    summary="Cache admin",
    description="Invalidate the dashboard result cache.",
    tags=["Admin"],
)
def cache_admin(action: str, engine: DashboardEngine = Depends(get_engine)):
    if action != 'invalidate':
        raise HTTPException(400, 'action must be invalidate')
    cleared = engine.cache.invalidate_all() if engine.cache is not None else 0
    return CacheAdminResponse(ok=True, cleared=cleared)

@router.get(
    '/dashboard',
    summary="Dashboard payload",
    description=(
        "Categorised income/spend, HMRC estimate, obligations, comparatives, alerts and "
        "portfolio valuation for the selected range. last-year is the trailing 12 months."
    ),
    tags=["Dashboard"],
)
def dashboard(
    rq: RangeQuery = Depends(range_query),
    delta_mode: Optional[DeltaMode] = Query(default=None),
    x_user_id: Optional[str] = Header(default=None),
    engine: DashboardEngine = Depends(get_engine),
):
    user_id = x_user_id or settings.default_user_id
    bind_request(user_id, "/dashboard")
    try:
        rng = resolve_range(rq.preset, rq.start, rq.end, now=engine.clock())
        user = _load_user(engine, user_id)
        mode = delta_mode or preferred_delta_mode(user)
        return engine.compute_dashboard(user, rng, mode)
    except ValueError as e:
        raise HTTPException(400, str(e))

@router.get(
    '/tax/summary',
    summary="Tax summary",
    description="Tax band, HMRC position, EMTR curve, allowances and deadlines. last-year is the previous UK tax year.",
    tags=["Tax"],
)
def tax_summary(
    rq: RangeQuery = Depends(range_query),
    x_user_id: Optional[str] = Header(default=None),
    engine: DashboardEngine = Depends(get_engine),
):
    user_id = x_user_id or settings.default_user_id
    bind_request(user_id, "/tax/summary")
    try:
        rng = resolve_tax_range(rq.preset, rq.start, rq.end, now=engine.clock())
    except ValueError as e:
        raise HTTPException(400, str(e))
    return engine.tax_summary(_load_user(engine, user_id), rng)
