"""
Conversational sentence analysis service
"""

from typing import Optional
import logging

from config.settings import Settings
from models.request_models import AnalyzeSentenceRequest
from models.response_models import AnalysisResponse
from prompt.prompt_manager import PromptManager, get_prompt_manager
from providers.llm_provider import LLMProvider
from services.model_fallback import ModelFallbackCaller
from services.response_normalizer import normalize_review

logger = logging.getLogger(__name__)


class AnalysisService:
    """Explains a story sentence and answers follow-up questions about it.

    The client owns the conversation and replays it on every call; nothing
    is kept between requests.
    """

    def __init__(self, provider: LLMProvider, settings: Settings,
                 prompt_manager: Optional[PromptManager] = None):
        self.caller = ModelFallbackCaller(provider)
        self.settings = settings
        self.prompt_manager = prompt_manager or get_prompt_manager()

    async def analyze(self, request: AnalyzeSentenceRequest) -> AnalysisResponse:
        messages = self.prompt_manager.analysis_messages(
            request.sentence,
            request.original_story,
            request.hsk_level,
            request.conversation_history,
        )

        analysis = await self.caller.call(
            self.settings.ANALYSIS_MODELS,
            messages,
            normalize=normalize_review,
            title=f"{self.settings.APP_TITLE} - Analysis",
        )
        return AnalysisResponse(analysis=analysis)
