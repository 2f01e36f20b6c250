"""
Receipt extraction through the OpenAI async SDK.
One attempt per file with structured output; no retries.
"""
import base64
import json
from typing import Any, Callable, Dict, Optional

from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from core.config import Settings, get_settings
from core.exceptions import ExtractionError, MissingCredentialError
from core.logger import setup_logger
from core.schema import ExtractedReceipt, ReceiptRecord, SourceFile
from llm.prompts import build_extraction_prompt, create_receipt_schema

logger = setup_logger(__name__)


def to_data_url(source_file: SourceFile) -> str:
    """Encode file bytes as a base64 data URL."""
    encoded = base64.b64encode(source_file.content).decode("ascii")
    return f"data:{source_file.media_type};base64,{encoded}"


def build_content_part(source_file: SourceFile) -> Dict[str, Any]:
    """
    Build the message part carrying the file.
    Images go in as image_url parts, PDFs as file parts.
    """
    data_url = to_data_url(source_file)
    if source_file.media_type.lower().startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_url}}
    return {
        "type": "file",
        "file": {
            "filename": source_file.filename or "receipt.pdf",
            "file_data": data_url,
        },
    }


def strip_code_fences(content: str) -> str:
    """Remove ```json ... ``` wrapping some models add around JSON."""
    content_stripped = content.strip()
    if content_stripped.startswith("```"):
        lines = content_stripped.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        content_stripped = "\n".join(lines).strip()
    return content_stripped


def default_client_factory(api_key: str, settings: Settings) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout,
        max_retries=0,
    )


class ExtractionClient:
    """Turns one receipt file into a ReceiptRecord."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Optional[Callable[[str, Settings], Any]] = None,
    ):
        """
        Initialize extraction client.

        Args:
            settings: Application settings; defaults to the global settings
            client_factory: Builds an AsyncOpenAI-compatible client from an API key
        """
        self.settings = settings or get_settings()
        self.client_factory = client_factory or default_client_factory
        self.model = self.settings.openai_model
        self._api_key: Optional[str] = self.settings.openai_api_key
        self._client = None

    @property
    def has_credential(self) -> bool:
        return bool(self._api_key)

    def set_api_key(self, api_key: Optional[str]) -> None:
        """
        Replace the credential supplied at runtime. Empty clears it.

        Args:
            api_key: New API key
        """
        self._api_key = api_key.strip() if api_key and api_key.strip() else None
        self._client = None
        logger.info("API key %s", "configured" if self._api_key else "cleared")

    def _get_client(self):
        if self._client is None:
            self._client = self.client_factory(self._api_key, self.settings)
        return self._client

    async def extract(self, source_file: SourceFile) -> ReceiptRecord:
        """
        Extract receipt fields from a file.

        Args:
            source_file: Uploaded receipt

        Returns:
            Extracted receipt

        Raises:
            MissingCredentialError: If no API key is configured
            ExtractionError: If the call fails or the answer does not fit the schema
        """
        if not self._api_key:
            raise MissingCredentialError()

        logger.info(f"Extracting {source_file.filename} ({source_file.media_type}, {source_file.size} bytes)")

        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_extraction_prompt(source_file.is_pdf)},
                    build_content_part(source_file),
                ],
            }
        ]

        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.1,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "receipt",
                        "strict": True,
                        "schema": create_receipt_schema(),
                    },
                },
            )
        except APITimeoutError as e:
            logger.error(f"Extraction request timed out after {self.settings.openai_timeout}s: {e}")
            raise ExtractionError(
                f"Extraction request timed out after {self.settings.openai_timeout}s",
                details={"filename": source_file.filename, "timeout": self.settings.openai_timeout},
            )
        except APIStatusError as e:
            logger.error(f"Extraction API returned HTTP {e.status_code}: {e}")
            raise ExtractionError(
                f"Extraction API returned an error: {e.message}",
                details={"filename": source_file.filename, "status_code": e.status_code},
            )
        except APIConnectionError as e:
            logger.error(f"Could not reach extraction API: {e}")
            raise ExtractionError(
                f"Failed to connect to extraction API: {e}",
                details={"filename": source_file.filename},
            )
        except OpenAIError as e:
            logger.error(f"Unexpected OpenAI error: {e}")
            raise ExtractionError(
                f"Extraction failed: {e}",
                details={"filename": source_file.filename, "model": self.model},
            )

        return self.parse_response(response, source_file.filename)

    def parse_response(self, response: Any, filename: str = "") -> ReceiptRecord:
        """
        Validate the model's answer against the receipt schema.

        Raises:
            ExtractionError: If the content is missing, not JSON, or schema-invalid
        """
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise ExtractionError("Unexpected response structure from extraction API", details={"error": str(e)})

        if not content:
            raise ExtractionError("Empty response from extraction API", details={"filename": filename})

        try:
            data = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            logger.error(f"Extraction answer is not valid JSON: {e}")
            raise ExtractionError(
                f"Extraction API returned invalid JSON: {e}",
                details={"filename": filename, "raw_response": content[:500]},
            )

        if not isinstance(data, dict):
            raise ExtractionError("Extraction API returned JSON that is not an object", details={"filename": filename})

        try:
            extracted = ExtractedReceipt(**data)
        except ValidationError as e:
            logger.error(f"Extraction answer does not match receipt schema: {e}")
            raise ExtractionError(
                "Extraction API returned data that does not match the receipt schema",
                details={"filename": filename, "errors": e.errors(include_url=False)},
            )

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                f"Token usage - Input: {getattr(usage, 'prompt_tokens', 'N/A')}, "
                f"Output: {getattr(usage, 'completion_tokens', 'N/A')}"
            )

        return extracted.to_record()
