from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies import get_config, get_service
from api.utils import run_sync
from markdown_typst.compiler import CompilationError
from markdown_typst.config import AppConfig
from markdown_typst.core import ConversionService
from models.schemas import RenderRequest, SvgPages, TypstMarkup

router = APIRouter(prefix="/render", tags=["render"])


@router.post("/typst", summary="Generate Typst markup", response_model=TypstMarkup)
async def render_typst(
    request: RenderRequest,
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
) -> TypstMarkup:
    _enforce_size_limit(request.markdown, config)
    markup = await run_sync(service.to_typst, request.markdown)
    return TypstMarkup(markup=markup)


@router.post("/svg", summary="Render pages as SVG", response_model=SvgPages)
async def render_svg(
    request: RenderRequest,
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
) -> SvgPages:
    _enforce_size_limit(request.markdown, config)
    try:
        document = await run_sync(service.to_svg, request.markdown)
    except CompilationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return SvgPages(pages=document.pages, width_pt=document.width_pt, height_pt=document.height_pt)


@router.post("/pdf", summary="Render a PDF document")
async def render_pdf(
    request: RenderRequest,
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
) -> Response:
    _enforce_size_limit(request.markdown, config)
    try:
        pdf_bytes = await run_sync(service.to_pdf, request.markdown)
    except CompilationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return Response(content=pdf_bytes, media_type="application/pdf")


def _enforce_size_limit(markdown: str, config: AppConfig) -> None:
    max_bytes = config.runtime.max_file_size_mb * 1024 * 1024
    if len(markdown.encode("utf-8")) > max_bytes:
        raise HTTPException(status_code=413, detail="SIZE_LIMIT")


__all__ = ["router"]
