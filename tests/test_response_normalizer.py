"""
Response normalizer tests
"""
import json
import pytest

from services.response_normalizer import (
    PINYIN_FAILED,
    NormalizationError,
    count_paragraphs,
    extract_json_objects,
    iter_json_objects,
    normalize_questions,
    normalize_review,
    normalize_story,
    strip_code_fences,
)

STORY = {"hanzi": "你好。\n\n谢谢。", "pinyin": "Nǐ hǎo.\n\nXièxiè."}


@pytest.mark.unit
class TestCodeFences:

    def test_strips_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_bare_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == '[1, 2]'

    def test_leaves_plain_text_alone(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


@pytest.mark.unit
class TestBraceScanner:

    def test_finds_concatenated_objects_in_order(self):
        text = '{"n": 1}{"n": 2}\n{"n": 3}'
        assert [json.loads(o)["n"] for o in iter_json_objects(text)] == [1, 2, 3]

    def test_nested_objects_stay_whole(self):
        text = 'prefix {"a": {"b": {"c": 1}}} suffix'
        assert list(iter_json_objects(text)) == ['{"a": {"b": {"c": 1}}}']

    def test_braces_inside_strings_are_ignored(self):
        text = '{"hanzi": "他说：{不}", "pinyin": "} \\" {"}'
        objects = list(iter_json_objects(text))
        assert len(objects) == 1
        assert json.loads(objects[0])["hanzi"] == "他说：{不}"

    def test_unclosed_trailing_object_is_dropped(self):
        assert list(iter_json_objects('{"a": 1} {"b": ')) == ['{"a": 1}']

    def test_quotes_in_prose_do_not_open_strings(self):
        text = 'Here is "the" story: {"a": 1}'
        assert list(iter_json_objects(text)) == ['{"a": 1}']

    def test_unparseable_candidates_are_skipped(self):
        assert extract_json_objects('{not json} {"ok": true}') == [{"ok": True}]


@pytest.mark.unit
class TestNormalizeStory:

    def test_plain_json(self):
        story = normalize_story(json.dumps(STORY, ensure_ascii=False))
        assert story.hanzi == STORY["hanzi"]
        assert story.pinyin == STORY["pinyin"]

    def test_fenced_json_parses_like_unwrapped(self):
        raw = json.dumps(STORY, ensure_ascii=False)
        assert normalize_story(f"```json\n{raw}\n```") == normalize_story(raw)

    def test_concatenated_objects_are_merged_in_order(self):
        raw = '{"hanzi": "第一段。", "pinyin": "Dì yī duàn."}\n{"hanzi": "第二段。", "pinyin": "Dì èr duàn."}'
        story = normalize_story(raw)
        assert story.hanzi == "第一段。\n\n第二段。"
        assert story.pinyin == "Dì yī duàn.\n\nDì èr duàn."

    def test_array_of_paragraph_objects_is_merged(self):
        raw = '[{"hanzi": "一。", "pinyin": "Yī."}, {"hanzi": "二。", "pinyin": "Èr."}]'
        story = normalize_story(raw)
        assert story.hanzi == "一。\n\n二。"
        assert story.pinyin == "Yī.\n\nÈr."

    def test_unrecoverable_text_becomes_hanzi_with_sentinel(self):
        story = normalize_story("今天天气很好。")
        assert story.hanzi == "今天天气很好。"
        assert story.pinyin == PINYIN_FAILED

    def test_missing_pinyin_uses_sentinel(self):
        story = normalize_story('{"hanzi": "只有汉字。"}')
        assert story.hanzi == "只有汉字。"
        assert story.pinyin == PINYIN_FAILED

    def test_objects_all_missing_pinyin_use_sentinel(self):
        story = normalize_story('{"hanzi": "一。"}\n{"hanzi": "二。"}')
        assert story.hanzi == "一。\n\n二。"
        assert story.pinyin == PINYIN_FAILED

    def test_partially_missing_pinyin_is_rejected(self):
        with pytest.raises(NormalizationError) as exc_info:
            normalize_story('{"hanzi": "一。", "pinyin": "Yī."}{"hanzi": "二。"}')
        assert exc_info.value.status == "invalid_format"

    def test_paragraph_count_mismatch_is_rejected(self):
        raw = json.dumps({"hanzi": "一。\n\n二。", "pinyin": "Yī. Èr."}, ensure_ascii=False)
        with pytest.raises(NormalizationError) as exc_info:
            normalize_story(raw)
        assert exc_info.value.status == "invalid_format"

    def test_paragraph_counts_match(self):
        story = normalize_story(json.dumps(STORY, ensure_ascii=False))
        assert count_paragraphs(story.hanzi) == count_paragraphs(story.pinyin) == 2

    def test_short_story_is_rejected_when_minimum_set(self):
        with pytest.raises(NormalizationError) as exc_info:
            normalize_story(json.dumps(STORY, ensure_ascii=False), min_length=100)
        assert exc_info.value.status == "too_short"

    def test_long_enough_story_passes_minimum(self):
        paragraph = "小明每天早上七点起床，然后吃早饭。"
        hanzi = "\n\n".join([paragraph] * 8)
        pinyin = "\n\n".join(["Xiǎo Míng měitiān zǎoshang qī diǎn qǐchuáng."] * 8)
        story = normalize_story(json.dumps({"hanzi": hanzi, "pinyin": pinyin}, ensure_ascii=False), min_length=100)
        assert len(story.hanzi) >= 100


@pytest.mark.unit
class TestNormalizeQuestions:

    def test_valid_array(self, five_questions):
        questions = normalize_questions(five_questions, 5)
        assert [q.id for q in questions] == [1, 2, 3, 4, 5]
        assert questions[0].question == "小明去哪儿了?"

    def test_fenced_array(self, three_questions):
        assert len(normalize_questions(f"```json\n{three_questions}\n```", 3)) == 3

    def test_wrong_length_is_rejected(self, three_questions):
        with pytest.raises(NormalizationError) as exc_info:
            normalize_questions(three_questions, 5)
        assert exc_info.value.status == "invalid_format"

    def test_unparseable_reply_is_rejected(self):
        with pytest.raises(NormalizationError) as exc_info:
            normalize_questions("I cannot do that.", 3)
        assert exc_info.value.status == "parse_error"

    def test_array_inside_prose_is_recovered(self, three_questions):
        assert len(normalize_questions(f"Here you go:\n{three_questions}\nEnjoy!", 3)) == 3

    def test_questions_wrapper_object_is_accepted(self, three_questions):
        raw = '{"questions": ' + three_questions + '}'
        assert len(normalize_questions(raw, 3)) == 3

    @pytest.mark.parametrize("item", [
        '{"id": "1", "question": "问题?"}',
        '{"id": true, "question": "问题?"}',
        '{"id": 1, "question": "  "}',
        '{"id": 1}',
        '"问题?"',
    ])
    def test_malformed_elements_are_rejected(self, item):
        with pytest.raises(NormalizationError):
            normalize_questions(f"[{item}]", 1)


@pytest.mark.unit
class TestNormalizeReview:

    def test_text_is_returned_trimmed_and_unchanged(self):
        assert normalize_review("  **Correctness**: good.\n") == "**Correctness**: good."

    def test_blank_reply_is_rejected(self):
        with pytest.raises(NormalizationError):
            normalize_review(" \n ")
