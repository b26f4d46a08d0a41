"""
Response model definitions (JSON bodies returned to the client)
"""

from pydantic import BaseModel
from typing import List


class StoryResponse(BaseModel):
    hanzi: str
    pinyin: str


class Question(BaseModel):
    id: int
    question: str


class QuestionsResponse(BaseModel):
    questions: List[Question]


class AnalysisResponse(BaseModel):
    analysis: str


class ReviewResponse(BaseModel):
    review: str
