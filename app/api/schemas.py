from pydantic import BaseModel
from typing import Optional, Literal

DeltaMode = Literal['absolute', 'percent']

class HealthResponse(BaseModel):
    ok: bool
    data_dir: str
    cache_enabled: bool
    cache_entries: int

class CacheAdminResponse(BaseModel):
    ok: bool
    cleared: int

class RangeQuery(BaseModel):
    preset: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
