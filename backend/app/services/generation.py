import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from ..core.config import Settings

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error:"
FALLBACK_ERROR = (
    "I encountered an error while processing your request. "
    "Please check your API key and try again."
)


class GenerationError(Exception):
    pass


def is_error_reply(text: str) -> bool:
    return (text or "").startswith(ERROR_PREFIX)


def _role_of(turn: Any) -> str:
    return turn["role"] if isinstance(turn, dict) else turn.role


def _content_of(turn: Any) -> str:
    return turn["content"] if isinstance(turn, dict) else turn.content


def split_history(messages: Sequence[Any]) -> Tuple[List[Dict[str, str]], str]:
    """Split a transcript into provider history and the final user message.

    Only "user" keeps its role; every other role becomes "model".
    """
    history = [
        {"role": "user" if _role_of(m) == "user" else "model", "text": _content_of(m)}
        for m in messages[:-1]
    ]
    return history, _content_of(messages[-1])


def build_generate_content_url(api_base: str, model: str) -> str:
    upstream = (api_base or "").rstrip("/")
    return f"{upstream}/models/{model}:generateContent"


def build_generate_content_body(history: List[Dict[str, str]], final_message: str) -> Dict[str, Any]:
    contents = [{"role": h["role"], "parts": [{"text": h["text"]}]} for h in history]
    contents.append({"role": "user", "parts": [{"text": final_message}]})
    return {"contents": contents}


def extract_reply_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason")
        raise GenerationError(f"No candidates returned{f' ({reason})' if reason else ''}")
    parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
    texts = [p.get("text") for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    if not texts:
        raise GenerationError("Empty response from model")
    return "".join(texts)


class GenerationClient:
    """One chat-completion call with bounded exponential-backoff retry.

    ``generate`` never raises: after the last failed attempt it returns a
    reply starting with ``Error:``.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        max_attempts: int = 3,
        base_delay: float = 2.0,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
            max_attempts=settings.generation_max_attempts,
            base_delay=settings.generation_base_delay,
            timeout=settings.generation_timeout,
        )

    def backoff_delay(self, attempt: int) -> float:
        return self.base_delay * (2 ** (attempt - 1))

    async def _request(self, history: List[Dict[str, str]], final_message: str) -> str:
        url = build_generate_content_url(self.api_base, self.model)
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        body = build_generate_content_body(history, final_message)

        timeout = httpx.Timeout(self.timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            resp = await client.post(url, headers=headers, json=body)
            if resp.status_code != 200:
                detail = resp.text.strip()
                raise GenerationError(f"Upstream error {resp.status_code}: {detail}" if detail else f"Upstream error {resp.status_code}")
            return extract_reply_text(resp.json())

    async def generate(self, messages: Sequence[Any]) -> str:
        if not messages:
            return f"{ERROR_PREFIX} {FALLBACK_ERROR}"
        history, final_message = split_history(messages)

        attempt = 0
        while attempt < self.max_attempts:
            try:
                return await self._request(history, final_message)
            except Exception as e:
                attempt += 1
                error_message = str(e)
                if attempt < self.max_attempts:
                    logger.warning("Generation attempt %d failed: %s", attempt, error_message)
                    await self._sleep(self.backoff_delay(attempt))
                else:
                    logger.error("Generation failed after %d attempts: %s", attempt, error_message)
                    return f"{ERROR_PREFIX} {error_message or FALLBACK_ERROR}"
        return f"{ERROR_PREFIX} Unknown error occurred. Please try again."
