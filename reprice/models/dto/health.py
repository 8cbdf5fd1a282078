from pydantic import BaseModel


class ComponentHealth(BaseModel):
    status: str
    latency_ms: int | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    checks: dict[str, ComponentHealth]
