"""
Prompt builder for story generation, sentence analysis and comprehension work.

Every prompt spells out its output format (a JSON schema or markdown
sections) so the model reply can be parsed mechanically.
"""

from typing import Dict, List, Optional, Sequence

from models.request_models import ConversationMessage, HSKLevel

COMPREHENSION_QUESTION_COUNT = 5
OPEN_ENDED_QUESTION_COUNT = 3

RANDOM_TOPIC = "about any random topic you can think of"


def _level_name(level) -> str:
    return level.value if isinstance(level, HSKLevel) else str(level)


def _question_array_example(count: int) -> str:
    ordinals = ["第一", "第二", "第三", "第四", "第五", "第六", "第七", "第八"]
    lines = [
        f'  {{"id": {i + 1}, "question": "{ordinals[i] if i < len(ordinals) else "下一"}个问题?"}}'
        for i in range(count)
    ]
    return "[\n" + ",\n".join(lines) + "\n]"


class PromptManager:
    """Builds model prompts; pure functions of their inputs"""

    def story_prompt(self, level, topic: Optional[str] = None) -> str:
        level_name = _level_name(level)
        topic_text = f'about "{topic.strip()}"' if topic and topic.strip() else RANDOM_TOPIC

        return f"""You are a Chinese language teacher. Generate a short story in Chinese suitable for {level_name} students {topic_text}.

Requirements:
1. Use vocabulary and grammar appropriate for {level_name}
2. The story must be at least 4 paragraphs, with each paragraph having 4-5 sentences.
3. Make it engaging and educational
4. Separate paragraphs with a blank line, in both fields, so each hanzi paragraph has a matching pinyin paragraph
5. Return your response in JSON format with two fields:
   - "hanzi": The story written in Chinese characters (汉字)
   - "pinyin": The same story written in pinyin with tone marks

Example format:
{{
  "hanzi": "今天天气很好。小明去公园玩。\\n\\n他看见了一只小狗。",
  "pinyin": "Jīntiān tiānqì hěn hǎo. Xiǎo Míng qù gōngyuán wán.\\n\\nTā kànjiànle yì zhī xiǎo gǒu."
}}

Return a single JSON object only, no additional text."""

    def analysis_system_prompt(self, story: str, level) -> str:
        level_name = _level_name(level)
        return f"""You are an expert Chinese language teacher specializing in grammar analysis for {level_name} students.

Context: The student is reading this story:
{story}

Your task is to help the student understand Chinese sentences by:
1. Providing clear English translations
2. Breaking down grammar structures with detailed explanations
3. Highlighting word types (verb, noun, adjective, adverb, etc.) using markdown **bold** or *italic*
4. Explaining grammar points used in the sentence
5. Answering follow-up questions about grammar, word choice, and usage

Format your response in markdown for clear readability. Use:
- **Bold** for important terms and word types
- *Italic* for pinyin or emphasis
- Bullet points for breakdowns
- Code blocks for sentence structure patterns

Be conversational and encouraging. If the student asks follow-up questions, refer back to the original sentence and story context."""

    def analysis_messages(self, sentence: str, story: str, level,
                          history: Sequence[ConversationMessage] = ()) -> List[Dict[str, str]]:
        """System prompt, then the replayed conversation, then the current turn"""
        messages = [{"role": "system", "content": self.analysis_system_prompt(story, level)}]
        messages.extend({"role": m.role, "content": m.content} for m in history)

        if history:
            messages.append({"role": "user", "content": sentence})
        else:
            messages.append({
                "role": "user",
                "content": f"""Please analyze this sentence from the story: "{sentence}"

Provide:
1. English translation
2. Grammar breakdown with word types (mark verbs, nouns, adjectives, etc.)
3. Grammar points used
4. Any cultural or contextual notes if relevant"""
            })
        return messages

    def comprehension_questions_prompt(self, story: str, level) -> str:
        level_name = _level_name(level)
        count = COMPREHENSION_QUESTION_COUNT
        return f"""You are an expert Chinese language teacher creating comprehension questions for {level_name} students.

Story:
{story}

Generate exactly {count} comprehension questions about this story. The questions should:
1. Be written in Chinese (Simplified)
2. Have answers that can be found directly in the story passage
3. Test understanding of the main ideas and details
4. Be appropriate for {level_name} level
5. Progress from easier to slightly more challenging

Return ONLY a valid JSON array with this exact format:
{_question_array_example(count)}

Do not include any other text, explanations, or markdown code blocks. Only return the raw JSON array."""

    def open_ended_questions_prompt(self, story: str, level) -> str:
        level_name = _level_name(level)
        count = OPEN_ENDED_QUESTION_COUNT
        return f"""You are an expert Chinese language teacher creating open-ended discussion questions for {level_name} students.

Story:
{story}

Generate exactly {count} open-ended discussion questions about this story. The questions should:
1. Be written in Chinese (Simplified)
2. Encourage creative thinking and personal expression
3. Allow for multiple valid answers and perspectives
4. Be related to the story's themes, characters, or situations
5. Be appropriate for {level_name} level

Examples of open-ended questions:
- "如果你是故事中的人物，你会怎么做？" (What would you do if you were the character?)
- "你觉得这个故事想告诉我们什么？" (What do you think this story is trying to tell us?)
- "你有过类似的经历吗？" (Have you had a similar experience?)

Return ONLY a valid JSON array with this exact format:
{_question_array_example(count)}

Do not include any other text, explanations, or markdown code blocks. Only return the raw JSON array."""

    def review_prompt(self, story: str, question: str, answer: str, level) -> str:
        level_name = _level_name(level)
        return f"""You are an expert Chinese language teacher reviewing a student's answer for {level_name} level.

Story Passage:
{story}

Question (in Chinese):
{question}

Student's Answer (in Chinese):
{answer}

Review the student's answer and provide feedback in English. Your review should include:

1. **Correctness**: Is the answer factually correct based on the story? Does it answer the question?
2. **Grammar**: Check for any grammar mistakes in the Chinese sentence
3. **Improvements**: Suggest how the answer could be improved (word choice, sentence structure, more natural phrasing)
4. **Encouragement**: Provide positive, encouraging feedback

Format your response in markdown for clear readability. Use:
- **Bold** for section headers and key points
- *Italic* for Chinese text and pinyin
- Bullet points for lists
- A friendly, encouraging tone

If the answer is correct and well-written, praise the student. If there are issues, explain them clearly and provide the correct version."""

    def open_ended_review_prompt(self, story: str, question: str, answer: str, level) -> str:
        level_name = _level_name(level)
        return f"""You are an expert Chinese language teacher reviewing a student's creative answer for {level_name} level.

Story Passage:
{story}

Open-Ended Question (in Chinese):
{question}

Student's Answer (in Chinese):
{answer}

Review the student's open-ended answer and provide feedback in English. Your review should include:

1. **Content Evaluation**: Does the answer demonstrate understanding and creative thinking? Is it relevant to the question?
2. **Grammar Check**: Identify any grammar mistakes in the Chinese sentence
3. **Language Quality**: Comment on vocabulary usage, sentence structure, and natural expression
4. **Constructive Feedback**: Provide specific suggestions on how to improve the answer
5. **Encouragement**: Acknowledge good points and encourage continued learning

Format your response in markdown for clear readability. Use:
- **Bold** for section headers and key points
- *Italic* for Chinese text and pinyin
- Bullet points for lists
- A friendly, supportive, and encouraging tone

Since this is an open-ended question, focus on the quality of expression rather than looking for a "correct" answer. Appreciate creative and thoughtful responses while helping improve Chinese language skills."""


_prompt_manager = None


def get_prompt_manager() -> PromptManager:
    """Shared prompt manager instance"""
    global _prompt_manager
    if _prompt_manager is None:
        _prompt_manager = PromptManager()
    return _prompt_manager
