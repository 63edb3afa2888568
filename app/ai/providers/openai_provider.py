from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from app.ai.types import ChatMessage
from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: str,
        project_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 0,
    ):
        self.model = model
        key = (api_key or "").strip()
        if not key:
            raise RuntimeError("OpenAI API key is missing")

        # project sets the OpenAI-Project header for per-tenant usage attribution
        self._client = AsyncOpenAI(
            api_key=key,
            project=(project_id or None),
            base_url=(base_url or None),
            timeout=timeout_s,
            max_retries=max_retries,
        )

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 800,
        json_mode: bool = False,
    ) -> str:
        create_kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            create_kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**create_kwargs)
        except APIStatusError as exc:
            body = ""
            try:
                body = exc.response.text
            except Exception:  # noqa: BLE001 - body is diagnostic only
                body = str(exc)
            logger.warning("openai_status_error model=%s status=%s", create_kwargs["model"], exc.status_code)
            raise UpstreamError(
                f"Model request failed: {exc.status_code}",
                upstream_status=exc.status_code,
                details=body,
            ) from exc
        except APIConnectionError as exc:
            logger.warning("openai_connection_error model=%s: %s", create_kwargs["model"], exc)
            raise UpstreamError("Model service is unreachable. Try again.", details=str(exc)) from exc
        except OpenAIError as exc:
            logger.warning("openai_error model=%s: %s", create_kwargs["model"], exc)
            raise UpstreamError("Model service request failed.", details=str(exc)) from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
