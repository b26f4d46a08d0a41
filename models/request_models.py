"""
Request model definitions (camelCase bodies sent by the web client)
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union
import re

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

_HSK_PATTERN = re.compile(r"\s*hsk\s*([1-6])\s*", re.IGNORECASE)


class HSKLevel(str, Enum):
    HSK1 = "HSK 1"
    HSK2 = "HSK 2"
    HSK3 = "HSK 3"
    HSK4 = "HSK 4"
    HSK5 = "HSK 5"
    HSK6 = "HSK 6"

    @classmethod
    def canonical(cls, value: Any) -> Any:
        """'HSK1', 'hsk 1' and 1 all map to 'HSK 1'; anything else is left for validation to reject"""
        if isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 6:
            return f"HSK {value}"
        if isinstance(value, str):
            match = _HSK_PATTERN.fullmatch(value)
            if match:
                return f"HSK {match.group(1)}"
        return value


def _required_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be empty")
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("hsk_level", mode="before", check_fields=False)
    @classmethod
    def canonical_level(cls, value: Any) -> Any:
        return HSKLevel.canonical(value)


class StoryRequest(_CamelModel):
    hsk_level: HSKLevel = Field(..., alias="hskLevel", description="HSK level of the story")
    topic: Optional[str] = Field("", description="Free-text topic; empty means any topic")

    @field_validator("topic", mode="before")
    @classmethod
    def clean_topic(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant"] = Field(..., description="Speaker")
    content: str = Field(..., description="Message text")


class AnalyzeSentenceRequest(_CamelModel):
    sentence: str = Field(..., description="Sentence to analyze, or the follow-up question")
    original_story: str = Field(..., alias="originalStory", description="Story the sentence comes from")
    hsk_level: HSKLevel = Field(..., alias="hskLevel", description="Learner HSK level")
    conversation_history: List[ConversationMessage] = Field(
        default_factory=list, alias="conversationHistory", description="Earlier turns, oldest first"
    )

    check_text = field_validator("sentence", "original_story")(_required_text)


class _StoryQuestionRequest(_CamelModel):
    story: str = Field(..., description="Story text the questions are about")
    hsk_level: HSKLevel = Field(..., alias="hskLevel", description="Learner HSK level")

    check_story = field_validator("story")(_required_text)


class GenerateQuestionsRequest(_StoryQuestionRequest):
    action: Literal["generate"]


class GenerateOpenEndedRequest(_StoryQuestionRequest):
    action: Literal["generate-open-ended"]


class _ReviewRequest(_StoryQuestionRequest):
    question: str = Field(..., description="Question that was answered")
    answer: str = Field(..., description="Learner answer")

    check_answer = field_validator("question", "answer")(_required_text)


class ReviewAnswerRequest(_ReviewRequest):
    action: Literal["review"]


class ReviewOpenEndedRequest(_ReviewRequest):
    action: Literal["review-open-ended"]


ComprehensionRequest = Annotated[
    Union[GenerateQuestionsRequest, GenerateOpenEndedRequest, ReviewAnswerRequest, ReviewOpenEndedRequest],
    Field(discriminator="action"),
]

comprehension_request_adapter = TypeAdapter(ComprehensionRequest)
