from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    detail: str = Field(description="错误详情", examples=["Cannot inspect images on this page type"])
