"""External translation collaborators.

The pipeline only depends on the small protocols below. Concrete adapters:
- AISuiteTextProvider: LLM text translation through AISuite
- AISuiteVisionProvider: single-call image text extraction and translation
- DocumentTextExtractor: PDF (PyMuPDF) and DOCX (python-docx) text extraction
"""

import base64
import io
import logging
from typing import Optional, Protocol

import aisuite as ai  # type: ignore[import-untyped]
import fitz  # PyMuPDF
from docx import Document

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "pt": "Portuguese",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ar": "Arabic",
    "ru": "Russian",
}


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code.lower(), code)


class TextTranslationProvider(Protocol):
    def translate(self, text: str, source_lang: str, target_lang: str) -> str: ...


class ExtractionProvider(Protocol):
    def extract_text(self, payload: bytes, media_type: Optional[str] = None) -> str: ...


class VisionTranslationProvider(Protocol):
    def extract_and_translate(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> str: ...


class AISuiteTextProvider:
    """Translate text with a chat-completion model through AISuite."""

    TRANSLATION_PROMPT = """Translate the following text from {source_lang} to {target_lang}.
Keep placeholders such as [EMAIL REMOVED] exactly as they are.
Maintain the original tone, formatting and technical accuracy.
Return only the translated text.

Text to translate:
{text}

Translation:"""

    def __init__(
        self, client: ai.Client, model: str, max_tokens: int, temperature: float
    ):
        """Initialize the provider.

        Args:
            client: AISuite Client instance
            model: Full model identifier with provider prefix (e.g., "openai:gpt-4o-mini")
            max_tokens: Maximum tokens for completion
            temperature: Temperature for response generation (0.0-2.0)
        """
        self.client = client
        self.model_id = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        if not text.strip():
            return text

        prompt = self.TRANSLATION_PROMPT.format(
            source_lang=language_name(source_lang),
            target_lang=language_name(target_lang),
            text=text,
        )
        response = self.client.chat.completions.create(
            model=self.model_id,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError(f"Empty translation response from {self.model_id}")
        return content.strip()


class AISuiteVisionProvider:
    """Extract and translate the text of an image in one multimodal call."""

    VISION_PROMPT = (
        "Extract all text from this image and translate it from {source_lang} "
        "to {target_lang}. Return only the translated text, preserving the "
        "original formatting as much as possible."
    )

    def __init__(
        self, client: ai.Client, model: str, max_tokens: int, temperature: float
    ):
        self.client = client
        self.model_id = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def extract_and_translate(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> str:
        """Send the image to the vision model.

        Args:
            payload: Raw image bytes
            source_lang: Source language code
            target_lang: Target language code
            media_type: Image media type, used for the data URL

        Returns:
            Translated text found in the image
        """
        image_base64 = base64.b64encode(payload).decode("utf-8")
        prompt = self.VISION_PROMPT.format(
            source_lang=language_name(source_lang),
            target_lang=language_name(target_lang),
        )
        response = self.client.chat.completions.create(
            model=self.model_id,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:{media_type or 'image/png'};base64,{image_base64}"
                            },
                        },
                    ],
                }
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError(f"Empty vision response from {self.model_id}")
        return content.strip()


class DocumentTextExtractor:
    """Extract plain text from document payloads."""

    DOCX_MEDIA_TYPE = (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )

    def extract_text(self, payload: bytes, media_type: Optional[str] = None) -> str:
        """Extract text in document order.

        Args:
            payload: Raw document bytes
            media_type: Declared media type; PDF when omitted

        Returns:
            Extracted text, pages or paragraphs separated by blank lines

        Raises:
            ValueError: If the format cannot be parsed
        """
        if media_type:
            media_type = media_type.split(";", 1)[0].strip().lower()
        if media_type == self.DOCX_MEDIA_TYPE:
            return self._extract_docx(payload)
        if media_type in (None, "application/pdf"):
            return self._extract_pdf(payload)
        raise ValueError(f"Text extraction is not available for {media_type}")

    @staticmethod
    def _extract_pdf(payload: bytes) -> str:
        with fitz.open(stream=payload, filetype="pdf") as doc:
            pages = [page.get_text() for page in doc]
        logger.debug(f"Extracted {len(pages)} PDF pages")
        return "\n\n".join(page.strip() for page in pages if page.strip())

    @staticmethod
    def _extract_docx(payload: bytes) -> str:
        doc = Document(io.BytesIO(payload))
        paragraphs = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    paragraphs.append(" | ".join(cells))
        logger.debug(f"Extracted {len(paragraphs)} DOCX paragraphs")
        return "\n\n".join(paragraphs)
