"""
LLM gateway provider (OpenRouter chat completions over aiohttp)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import asyncio
import json
import aiohttp
import logging
from dataclasses import dataclass
import time

from config.settings import Settings

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class ConfigurationError(Exception):
    """Missing or unusable gateway configuration"""


class ProviderError(Exception):
    """A single gateway call failed before producing an HTTP status"""

    def __init__(self, status: str, message: str):
        super().__init__(message)
        self.status = status


@dataclass
class CompletionResult:
    """Outcome of one chat-completion call"""
    model: str
    status: int
    content: Optional[str] = None
    error_text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class LLMProvider(ABC):

    @abstractmethod
    async def complete(self, model: str, messages: List[Message],
                       title: Optional[str] = None) -> CompletionResult:
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass


class OpenRouterProvider(LLMProvider):
    """OpenRouter-compatible chat completions gateway"""

    def __init__(self, api_key: str,
                 base_url: str = "https://openrouter.ai/api/v1/chat/completions",
                 timeout: Optional[float] = 60.0,
                 referer: str = "",
                 app_title: str = ""):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.referer = referer
        self.app_title = app_title

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _headers(self, title: Optional[str]) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if title or self.app_title:
            headers["X-Title"] = title or self.app_title
        return headers

    async def complete(self, model: str, messages: List[Message],
                       title: Optional[str] = None) -> CompletionResult:
        if not self.is_available():
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")

        payload = {
            "model": model,
            "messages": messages
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        start_time = time.time()
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, headers=self._headers(title), json=payload) as response:
                    if not 200 <= response.status < 300:
                        error_text = (await response.read()).decode("utf-8", errors="replace")
                        logger.error("Gateway error for model %s: %s %s", model, response.status, error_text)
                        return CompletionResult(model=model, status=response.status, error_text=error_text)

                    body = await response.read()
                    status = response.status
        except asyncio.TimeoutError:
            logger.error("Gateway timeout for model %s (%.1fs)", model, time.time() - start_time)
            raise ProviderError("timeout", f"Request timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            logger.error("HTTP client error for model %s: %s: %s", model, type(e).__name__, e)
            raise ProviderError("error", str(e))

        try:
            result = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Gateway returned undecodable body for model %s: %r", model, body[:200])
            raise ProviderError("error", f"Invalid JSON from gateway: {e}")

        logger.info("Model %s answered %s in %.2fs", model, status, time.time() - start_time)
        return CompletionResult(model=model, status=status, content=self._extract_content(result))

    @staticmethod
    def _extract_content(result: Any) -> Optional[str]:
        """choices[0].message.content, or None when absent"""
        if not isinstance(result, dict):
            return None
        choices = result.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        if not isinstance(first, dict):
            return None
        message = first.get("message")
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        return content if isinstance(content, str) else None

    def get_provider_name(self) -> str:
        return "OpenRouter"


class LLMProviderFactory:
    """LLM Provider factory"""

    @staticmethod
    def get_provider(settings: Settings) -> LLMProvider:
        if not settings.OPENROUTER_API_KEY:
            logger.error("OPENROUTER_API_KEY is not configured")
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")

        return OpenRouterProvider(
            api_key=settings.OPENROUTER_API_KEY,
            base_url=settings.OPENROUTER_BASE_URL,
            timeout=settings.request_timeout,
            referer=settings.HTTP_REFERER,
            app_title=settings.APP_TITLE
        )

    @staticmethod
    def get_available_providers(settings: Settings) -> Dict[str, bool]:
        return {
            "openrouter": bool(settings.OPENROUTER_API_KEY)
        }
