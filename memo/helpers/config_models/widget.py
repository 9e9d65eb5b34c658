from pydantic import BaseModel, Field


class WidgetModel(BaseModel):
    display_count: int = Field(default=6, ge=1)
    refresh_min: int = Field(default=15, ge=1)
