"""Translation endpoints."""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from polyglot.core.config import Settings, get_settings
from polyglot.core.exceptions import InvalidInputError
from polyglot.models.translation import (
    DictionaryEntryRequest,
    HtmlTranslationRequest,
    QuickTranslationResponse,
    TranslationRequest,
    TranslationResponse,
    TranslationType,
)
from polyglot.services.translation.translation_service import TranslationService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_translation_service(request: Request) -> TranslationService:
    return request.app.state.translation_service


async def _read_upload(file: UploadFile, settings: Settings) -> bytes:
    # Read one byte past the limit so oversized uploads are rejected by validation
    payload = await file.read(settings.MAX_PAYLOAD_BYTES + 1)
    if not payload:
        raise InvalidInputError("Uploaded file is empty")
    return payload


@router.post("", response_model=TranslationResponse)
async def translate(
    body: TranslationRequest,
    service: TranslationService = Depends(get_translation_service),
):
    """Translate a batch of TEXT or HTML content."""
    logger.info(
        f"Translation request: {len(body.texts or [])} texts "
        f"{body.source_language}->{body.target_language}"
    )
    return await service.translate(body)


@router.post("/quick", response_model=QuickTranslationResponse)
async def quick_translate(
    texts: List[str] = Query(...),
    source: str = Query("en"),
    target: str = Query("pt"),
    service: TranslationService = Depends(get_translation_service),
):
    """Translate plain texts with default pipeline options."""
    response = await service.translate(
        TranslationRequest(
            texts=texts,
            source_language=source,
            target_language=target,
            type=TranslationType.TEXT,
        )
    )
    return QuickTranslationResponse(
        translations=[result.translated_text for result in response.results],
        count=len(response.results),
        cache_hits=response.metadata.cache_hits,
        processing_time_ms=response.metadata.processing_time_ms,
    )


@router.post("/html", response_model=TranslationResponse)
async def translate_html(
    body: HtmlTranslationRequest,
    service: TranslationService = Depends(get_translation_service),
):
    """Translate HTML fragments, keeping markup and attributes intact."""
    return await service.translate(
        TranslationRequest(
            texts=body.html_texts,
            source_language=body.source,
            target_language=body.target,
            type=TranslationType.HTML,
        )
    )


@router.post("/document", response_model=TranslationResponse)
async def translate_document(
    file: UploadFile = File(...),
    source: str = Form(...),
    target: str = Form(...),
    settings: Settings = Depends(get_settings),
    service: TranslationService = Depends(get_translation_service),
):
    """Translate the text of an uploaded document."""
    payload = await _read_upload(file, settings)
    logger.info(f"Document translation: {file.filename} ({file.content_type})")
    return await service.translate_binary(
        TranslationRequest(
            source_language=source,
            target_language=target,
            type=TranslationType.DOCUMENT,
            media_type=file.content_type,
            payload=payload,
        )
    )


@router.post("/image", response_model=TranslationResponse)
async def translate_image(
    file: UploadFile = File(...),
    source: str = Form(...),
    target: str = Form(...),
    settings: Settings = Depends(get_settings),
    service: TranslationService = Depends(get_translation_service),
):
    """Extract and translate the text of an uploaded image.

    Image results are not cached.
    """
    payload = await _read_upload(file, settings)
    logger.info(f"Image translation: {file.filename} ({file.content_type})")
    return await service.translate_binary(
        TranslationRequest(
            source_language=source,
            target_language=target,
            type=TranslationType.IMAGE,
            media_type=file.content_type,
            payload=payload,
            use_cache=False,
        )
    )


@router.get("/languages")
async def supported_languages(
    service: TranslationService = Depends(get_translation_service),
):
    languages = service.supported_languages()
    return {"languages": languages, "count": len(languages)}


@router.get("/stats")
async def translation_stats(
    service: TranslationService = Depends(get_translation_service),
):
    return service.get_stats()


@router.put("/dictionary", status_code=201)
async def add_dictionary_entry(
    body: DictionaryEntryRequest,
    service: TranslationService = Depends(get_translation_service),
):
    """Add or replace a curated translation used before the cache."""
    await service.add_dictionary_entry(
        body.text, body.translation, body.source, body.target
    )
    return {"status": "saved"}


@router.delete("/cache")
async def evict_cache_entry(
    text: str = Query(..., min_length=1),
    source: str = Query(...),
    target: str = Query(...),
    scrubbed: bool = Query(True),
    html: bool = Query(False),
    service: TranslationService = Depends(get_translation_service),
):
    """Remove one cached translation from both cache tiers.

    Pass scrubbed=false for entries cached with sensitive-data removal off.
    """
    key = await service.evict(text, source, target, scrubbed=scrubbed, html=html)
    return {"status": "evicted", "cache_key": key}


@router.post("/cache/cleanup")
async def cleanup_cache(
    service: TranslationService = Depends(get_translation_service),
):
    removed = await service.cleanup_cache()
    return {"status": "ok", "removed": removed}
