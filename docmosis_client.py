"""
Docmosis API Client

Renders DOCX documents from templates stored in the Docmosis cloud:
- JSON render requests
- Retry logic with exponential backoff
- Errors carry the status code and response body
"""
import logging
import time
from typing import Any, Dict, Optional

import httpx

from config import DOCMOSIS_API_KEY, DOCMOSIS_API_URL, DOCMOSIS_TIMEOUT

logger = logging.getLogger(__name__)


class DocmosisError(Exception):
    """Custom exception for Docmosis API errors."""

    def __init__(self, message: str, status_code: int = None, response: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class DocmosisClient:
    """
    Docmosis render client.

    Usage:
        client = DocmosisClient()
        content = client.render("Rechnung.docx", "Rechnung_023976.docx", data)
    """

    def __init__(
        self,
        api_key: str = None,
        api_url: str = DOCMOSIS_API_URL,
        http_client: httpx.Client = None,
    ):
        self.api_key = api_key if api_key is not None else DOCMOSIS_API_KEY
        self.api_url = api_url
        self._client = http_client or httpx.Client(timeout=DOCMOSIS_TIMEOUT)

    def render(
        self,
        template_name: str,
        output_name: str,
        data: Dict[str, Any],
        retry_count: int = 3,
    ) -> bytes:
        """
        Render a template with the given data.

        Args:
            template_name: Template file name in the Docmosis account
            output_name: File name of the rendered document
            data: Template field values
            retry_count: Attempts for transport errors and 5xx responses

        Returns:
            The rendered document bytes
        """
        if not self.api_key:
            raise DocmosisError("DOCMOSIS_API_KEY is not configured")

        payload = {
            "accessKey": self.api_key,
            "templateName": template_name,
            "outputName": output_name,
            "data": data,
        }
        logger.info("Rendering %s as %s", template_name, output_name)

        for attempt in range(retry_count):
            try:
                response = self._client.post(self.api_url, json=payload)

                if response.status_code >= 500 and attempt < retry_count - 1:
                    logger.warning(
                        "Docmosis returned %d, retrying (attempt %d/%d)",
                        response.status_code, attempt + 1, retry_count,
                    )
                    time.sleep(2 ** attempt)
                    continue

                if response.is_error:
                    logger.error("Docmosis error %d: %s", response.status_code, response.text)
                    raise DocmosisError(
                        f"Docmosis error: {response.status_code}",
                        status_code=response.status_code,
                        response=response.text,
                    )

                logger.info("Rendered %s (%d bytes)", output_name, len(response.content))
                return response.content

            except httpx.RequestError as e:
                if attempt == retry_count - 1:
                    raise DocmosisError(f"Request failed: {e}")
                time.sleep(2 ** attempt)

    def close(self):
        self._client.close()
