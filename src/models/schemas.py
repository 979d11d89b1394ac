from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    status: str
    version: str


class RenderRequest(BaseModel):
    markdown: str = Field(..., description="Markdown source, optionally with front matter")


class TypstMarkup(BaseModel):
    markup: str


class SvgPages(BaseModel):
    pages: list[str]
    width_pt: float
    height_pt: float
