from datetime import datetime
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    stages: list[str] = Field(default_factory=list, description="Pipeline stages in execution order")
