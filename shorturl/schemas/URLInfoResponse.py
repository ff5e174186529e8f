from pydantic import BaseModel, Field
from typing import List

# Response DTOs; python names are snake_case, JSON keys camelCase
class URLCreateResponse(BaseModel):
    short_link: str = Field(..., alias="shortLink")
    expiry: str

    model_config = {"populate_by_name": True}


class ClickData(BaseModel):
    timestamp: str
    source: str
    location: str


class URLStatsResponse(BaseModel):
    short_link: str = Field(..., alias="shortLink")
    original_url: str = Field(..., alias="originalUrl")
    created_at: str = Field(..., alias="createdAt")
    expiry: str
    total_clicks: int = Field(..., alias="totalClicks")
    click_data: List[ClickData] = Field(default_factory=list, alias="clickData")

    model_config = {"populate_by_name": True}


class URLInfoResponse(URLStatsResponse):
    id: int
