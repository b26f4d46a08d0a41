"""
Comprehension and open-ended question generation, and answer review
"""

from functools import partial
from typing import Optional, Union
import logging

from config.settings import Settings
from models.request_models import (
    GenerateOpenEndedRequest,
    GenerateQuestionsRequest,
    ReviewAnswerRequest,
    ReviewOpenEndedRequest,
)
from models.response_models import QuestionsResponse, ReviewResponse
from prompt.prompt_manager import (
    COMPREHENSION_QUESTION_COUNT,
    OPEN_ENDED_QUESTION_COUNT,
    PromptManager,
    get_prompt_manager,
)
from providers.llm_provider import LLMProvider
from services.model_fallback import ModelFallbackCaller
from services.response_normalizer import normalize_questions, normalize_review

logger = logging.getLogger(__name__)


class ComprehensionService:

    def __init__(self, provider: LLMProvider, settings: Settings,
                 prompt_manager: Optional[PromptManager] = None):
        self.caller = ModelFallbackCaller(provider)
        self.settings = settings
        self.prompt_manager = prompt_manager or get_prompt_manager()

    async def handle(self, request) -> Union[QuestionsResponse, ReviewResponse]:
        """Dispatch on the request's action"""
        logger.info("Comprehension request: %s", request.action)

        if isinstance(request, GenerateQuestionsRequest):
            return await self.generate_questions(request)
        if isinstance(request, GenerateOpenEndedRequest):
            return await self.generate_open_ended(request)
        if isinstance(request, ReviewAnswerRequest):
            return await self.review_answer(request)
        if isinstance(request, ReviewOpenEndedRequest):
            return await self.review_open_ended(request)
        raise ValueError("Invalid action specified")

    async def generate_questions(self, request: GenerateQuestionsRequest) -> QuestionsResponse:
        prompt = self.prompt_manager.comprehension_questions_prompt(request.story, request.hsk_level)
        questions = await self._call(
            prompt,
            partial(normalize_questions, expected_count=COMPREHENSION_QUESTION_COUNT),
            "Comprehension",
        )
        return QuestionsResponse(questions=questions)

    async def generate_open_ended(self, request: GenerateOpenEndedRequest) -> QuestionsResponse:
        prompt = self.prompt_manager.open_ended_questions_prompt(request.story, request.hsk_level)
        questions = await self._call(
            prompt,
            partial(normalize_questions, expected_count=OPEN_ENDED_QUESTION_COUNT),
            "Open-Ended",
        )
        return QuestionsResponse(questions=questions)

    async def review_answer(self, request: ReviewAnswerRequest) -> ReviewResponse:
        prompt = self.prompt_manager.review_prompt(
            request.story, request.question, request.answer, request.hsk_level
        )
        return ReviewResponse(review=await self._call(prompt, normalize_review, "Review"))

    async def review_open_ended(self, request: ReviewOpenEndedRequest) -> ReviewResponse:
        prompt = self.prompt_manager.open_ended_review_prompt(
            request.story, request.question, request.answer, request.hsk_level
        )
        return ReviewResponse(review=await self._call(prompt, normalize_review, "Open-Ended Review"))

    async def _call(self, prompt: str, normalize, title: str):
        return await self.caller.call(
            self.settings.QUESTION_MODELS,
            [{"role": "user", "content": prompt}],
            normalize=normalize,
            title=f"{self.settings.APP_TITLE} - {title}",
        )
