import json
import time
from typing import Any

import httpx
from loguru import logger

from pbr_switch.utils.exceptions import LLMError


class GeminiClient:
    """Thin async client for the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: int = 120,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(timeout=timeout)

        logger.info(f"GeminiClient initialized: {self.base_url}")

    def _build_payload(
        self,
        prompt: str,
        schema: dict[str, Any],
        system: str = "",
        temperature: float = 0.2,
        use_search: bool = True,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }

        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        if use_search:
            payload["tools"] = [{"google_search": {}}]

        return payload

    async def generate_json(
        self,
        model: str,
        prompt: str,
        schema: dict[str, Any],
        system: str = "",
        temperature: float = 0.2,
        use_search: bool = True,
    ) -> Any:
        """
        Ask the model for a JSON document shaped by ``schema``.

        Args:
            model: Gemini model name
            prompt: Natural-language instruction
            schema: Gemini response schema (OBJECT/ARRAY/NUMBER/STRING types)
            system: Optional system instruction
            temperature: Sampling temperature
            use_search: Ground the answer with the google_search tool

        Returns:
            Parsed JSON (dict or list)

        Raises:
            LLMError: On transport failure, HTTP error, empty answer or invalid JSON
        """
        if not self.api_key:
            raise LLMError("GEMINI_API_KEY is not configured", model=model)

        url = f"{self.base_url}/models/{model}:generateContent"
        payload = self._build_payload(prompt, schema, system, temperature, use_search)

        start_time = time.time()
        logger.debug(f"Requesting {model}: {len(prompt)} chars prompt")

        try:
            response = await self.client.post(
                url,
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini HTTP error: {e.response.status_code}")
            raise LLMError(
                f"Gemini request failed with status {e.response.status_code}",
                model=model,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Gemini connection error: {e}")
            raise LLMError(f"Failed to reach Gemini at {self.base_url}", model=model) from e
        except ValueError as e:
            raise LLMError(f"Gemini returned a non-JSON envelope: {e}", model=model) from e

        text = self._extract_text(data, model)

        try:
            result = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Gemini answer is not valid JSON: {e.msg} at line {e.lineno}")
            raise LLMError(f"Response body is not valid JSON: {e.msg}", model=model) from e

        elapsed = time.time() - start_time
        usage = data.get("usageMetadata", {})
        logger.info(
            f"Gemini {model} answered in {elapsed:.2f}s "
            f"({usage.get('candidatesTokenCount', 0)} output tokens)"
        )

        return result

    def _extract_text(self, data: dict[str, Any], model: str) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise LLMError(
                f"No candidates returned (block reason: {feedback.get('blockReason', 'unknown')})",
                model=model,
            )

        parts = candidates[0].get("content", {}).get("parts", [])
        text = "".join(part.get("text", "") for part in parts).strip()
        if not text:
            raise LLMError("Empty response text", model=model)

        # Search-grounded answers sometimes wrap the JSON in a markdown fence.
        if text.startswith("```"):
            text = text.strip("`")
            if text.startswith("json"):
                text = text[len("json"):]
            text = text.strip()

        return text

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("GeminiClient closed")

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
