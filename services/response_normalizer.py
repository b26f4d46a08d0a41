"""
Normalization of raw model replies into story / question / review payloads.

Models do not reliably emit clean JSON: replies arrive wrapped in markdown
fences, split into one object per paragraph, or missing fields. Every
function here either returns the expected shape or raises
NormalizationError, which the fallback caller treats as "try the next model".
"""

from typing import Any, Iterator, List
import json
import logging
import re

from models.response_models import Question, StoryResponse

logger = logging.getLogger(__name__)

PINYIN_FAILED = "Pinyin generation failed. Please try again."
PARAGRAPH_SEPARATOR = "\n\n"

_FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


class NormalizationError(Exception):
    """The model reply could not be turned into the expected shape"""

    def __init__(self, status: str, message: str):
        super().__init__(message)
        self.status = status


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text).strip()


def iter_json_objects(text: str) -> Iterator[str]:
    """Yield every top-level brace-balanced ``{...}`` substring, in order.

    Braces inside JSON strings (including escaped quotes) do not count.
    Quotes outside an object are prose and are ignored. A trailing object
    that never closes is dropped.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            if depth > 0:
                in_string = True
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start:index + 1]
                start = -1


def extract_json_objects(text: str) -> List[dict]:
    """Parse every recoverable top-level object in ``text``."""
    objects = []
    for candidate in iter_json_objects(text):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable object candidate: %s", candidate[:80])
            continue
        if isinstance(parsed, dict):
            objects.append(parsed)
    return objects


def count_paragraphs(text: str) -> int:
    return len([p for p in _PARAGRAPH_SPLIT.split(text.strip()) if p.strip()])


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _story_objects(text: str) -> List[dict]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, dict):
        candidates = [parsed]
    elif isinstance(parsed, list):
        candidates = [item for item in parsed if isinstance(item, dict)]
    else:
        candidates = extract_json_objects(text)
        if len(candidates) > 1:
            logger.info("Merging %d story objects from one reply", len(candidates))

    return [obj for obj in candidates if _has_text(obj.get("hanzi"))]


def normalize_story(raw: str, min_length: int = 0) -> StoryResponse:
    text = strip_code_fences(raw)
    if not text:
        raise NormalizationError("no_content", "No content in response")

    objects = _story_objects(text)

    if not objects:
        logger.warning("No story JSON recoverable, using raw text as hanzi")
        story = StoryResponse(hanzi=text, pinyin=PINYIN_FAILED)
    else:
        hanzi = PARAGRAPH_SEPARATOR.join(obj["hanzi"].strip() for obj in objects)
        pinyin_parts = [obj.get("pinyin") for obj in objects]
        with_pinyin = sum(1 for part in pinyin_parts if _has_text(part))

        if 0 < with_pinyin < len(pinyin_parts):
            raise NormalizationError(
                "invalid_format",
                f"Only {with_pinyin} of {len(pinyin_parts)} story objects carry pinyin"
            )

        if with_pinyin:
            pinyin = PARAGRAPH_SEPARATOR.join(part.strip() for part in pinyin_parts)
            if count_paragraphs(hanzi) != count_paragraphs(pinyin):
                raise NormalizationError(
                    "invalid_format",
                    f"Hanzi has {count_paragraphs(hanzi)} paragraphs but pinyin has {count_paragraphs(pinyin)}"
                )
        else:
            pinyin = PINYIN_FAILED
        story = StoryResponse(hanzi=hanzi, pinyin=pinyin)

    if len(story.hanzi) < min_length:
        raise NormalizationError(
            "too_short",
            f"Story has {len(story.hanzi)} characters, at least {min_length} required"
        )
    return story


def _parse_question_array(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        start = text.find("[")
        end = text.rfind("]")
        if start == -1 or end <= start:
            raise NormalizationError("parse_error", str(e))
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError as inner:
            raise NormalizationError("parse_error", str(inner))


def normalize_questions(raw: str, expected_count: int) -> List[Question]:
    data = _parse_question_array(strip_code_fences(raw))

    if isinstance(data, dict) and isinstance(data.get("questions"), list):
        data = data["questions"]

    if not isinstance(data, list) or len(data) != expected_count:
        raise NormalizationError("invalid_format", f"Response did not contain {expected_count} questions")

    questions = []
    for position, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise NormalizationError("invalid_format", f"Question {position} is not an object")

        question_id = item.get("id")
        if isinstance(question_id, bool) or not isinstance(question_id, int):
            raise NormalizationError("invalid_format", f"Question {position} has no integer id")

        question = item.get("question")
        if not _has_text(question):
            raise NormalizationError("invalid_format", f"Question {position} has no text")

        questions.append(Question(id=question_id, question=question.strip()))

    return questions


def normalize_review(raw: str) -> str:
    review = raw.strip()
    if not review:
        raise NormalizationError("no_content", "No content in response")
    return review
