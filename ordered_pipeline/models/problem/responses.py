from pydantic import BaseModel, ConfigDict, Field

PROBLEM_TYPE = "about:blank"


class ProblemDetails(BaseModel):
    """RFC 7807 style problem document returned for every failed request"""
    model_config = ConfigDict(populate_by_name=True)

    type: str = PROBLEM_TYPE
    title: str
    status: int
    detail: str
    instance: str
    request_id: str = Field(..., alias="requestId")
