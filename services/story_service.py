"""
Story generation service (prompt → model fallback → story normalizer)
"""

from functools import partial
from typing import Optional
import logging

from config.settings import Settings
from models.request_models import StoryRequest
from models.response_models import StoryResponse
from prompt.prompt_manager import PromptManager, get_prompt_manager
from providers.llm_provider import LLMProvider
from services.model_fallback import ModelFallbackCaller
from services.response_normalizer import normalize_story

logger = logging.getLogger(__name__)


class StoryService:
    """Generates an HSK-graded story with matching hanzi and pinyin"""

    def __init__(self, provider: LLMProvider, settings: Settings,
                 prompt_manager: Optional[PromptManager] = None):
        self.caller = ModelFallbackCaller(provider)
        self.settings = settings
        self.prompt_manager = prompt_manager or get_prompt_manager()

    async def generate_story(self, request: StoryRequest) -> StoryResponse:
        prompt = self.prompt_manager.story_prompt(request.hsk_level, request.topic)
        messages = [{"role": "user", "content": prompt}]

        story = await self.caller.call(
            self.settings.STORY_MODELS,
            messages,
            normalize=partial(normalize_story, min_length=self.settings.STORY_MIN_LENGTH),
            title=f"{self.settings.APP_TITLE} - Story",
        )

        logger.info("Story generated: %d hanzi characters", len(story.hanzi))
        return story
