"""
Sequential model fallback over an ordered list of model candidates.

Rate limits (429) and server errors (500) move on to the next model; any
other non-2xx status stops the whole loop. Empty replies, transport failures
and replies the normalizer rejects also move on. A model is never retried.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TypeVar, Union
import logging

from providers.llm_provider import LLMProvider, Message, ProviderError
from services.response_normalizer import NormalizationError, normalize_review

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500)

T = TypeVar("T")


@dataclass
class AttemptError:
    """Failure recorded for one model candidate"""
    model: str
    status: Union[int, str]
    text: str

    def describe(self) -> str:
        return f"{self.status} - {self.text}"


class ModelsExhaustedError(Exception):
    """No candidate produced a usable reply"""

    def __init__(self, last_error: Optional[AttemptError], attempted: List[str], terminal: bool = False):
        self.last_error = last_error
        self.attempted = attempted
        self.terminal = terminal
        super().__init__(last_error.describe() if last_error else "Unknown error")


class ModelFallbackCaller:

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    async def call(self, models: Sequence[str], messages: List[Message],
                   normalize: Callable[[str], T] = normalize_review,
                   title: Optional[str] = None) -> T:
        last_error = None
        attempted = []

        for model in models:
            attempted.append(model)
            logger.info("Calling %s with model %s", self.provider.get_provider_name(), model)

            try:
                result = await self.provider.complete(model, messages, title=title)
            except ProviderError as e:
                last_error = AttemptError(model, e.status, str(e))
                logger.warning("Model %s failed: %s", model, last_error.describe())
                continue

            if not result.ok:
                last_error = AttemptError(model, result.status, result.error_text)
                if result.status in RETRYABLE_STATUSES:
                    logger.warning("Model %s returned %s, trying next model", model, result.status)
                    continue
                logger.error("Model %s returned terminal status %s, giving up", model, result.status)
                raise ModelsExhaustedError(last_error, attempted, terminal=True)

            if not result.content or not result.content.strip():
                last_error = AttemptError(model, "no_content", "No content in response")
                logger.warning("Model %s returned no content", model)
                continue

            try:
                value = normalize(result.content)
            except NormalizationError as e:
                last_error = AttemptError(model, e.status, str(e))
                logger.warning("Model %s reply rejected: %s", model, last_error.describe())
                continue

            logger.info("Model %s succeeded", model)
            return value

        logger.error("All %d models failed; last error: %s",
                     len(attempted), last_error.describe() if last_error else "none")
        raise ModelsExhaustedError(last_error, attempted)
