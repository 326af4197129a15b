from pydantic import BaseModel, ConfigDict, Field


class DemoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    request_id: str = Field(..., alias="requestId")
    received_name: str = Field(..., alias="receivedName")
