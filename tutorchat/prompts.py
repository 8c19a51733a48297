from __future__ import annotations

from tutorchat.schemas import CourseContext

TUTOR_SYSTEM = """You are an intelligent tutor for 'Azmi Institute'.
The student is currently viewing: {course_title}.
{course_line}
Provide clear, academic, and helpful answers. Support Arabic language fully.

Interactive content:
When the student asks for a quiz, a summary of a topic, or a study plan, reply with one short
sentence of prose followed by exactly ONE fenced JSON block (```json ... ```) in the matching
shape below. Use no other keys at the top level. For every other request answer in prose only.

1) Quiz (the student asks to be tested):
```json
{{"title": "string", "questions": [{{"question": "string", "type": "multiple_choice" | "true_false", "options": ["string", "..."], "correctIndex": 0, "explanation": "string"}}]}}
```
- "correctIndex" is the zero-based index of the correct entry in "options".
- "true_false" questions have exactly two options.

2) Summary as flashcards (the student asks for a summary or key points):
```json
{{"topic": "string", "cards": [{{"title": "string", "content": "string", "icon": "optional emoji"}}]}}
```

3) Study plan roadmap (the student asks for a plan or schedule):
```json
{{"goal": "string", "steps": [{{"step": "string", "details": "string", "duration": "optional string"}}]}}
```
"""


def build_system_framing(course: CourseContext | None = None) -> str:
    if course is None:
        return TUTOR_SYSTEM.format(course_title="General Catalog", course_line="")
    course_line = f"Course Description: {course.description}\n" if course.description else ""
    return TUTOR_SYSTEM.format(course_title=course.title, course_line=course_line)


# Used when an attachment turn arrives without any text.
IMAGE_DEFAULT_PROMPT = "Analyze this image"
FILE_DEFAULT_PROMPT = "Analyze this file"

NO_RESPONSE_TEXT = "No response"
TRANSPORT_FAILURE_TEXT = "Sorry, something went wrong. Please try again."
CONFIG_MISSING_TEXT = "عذراً، مفتاح الربط مع الذكاء الاصطناعي غير متوفر حالياً."


def quiz_summary_text(title: str, score: int, total: int, answered: int, abandoned: bool) -> str:
    head = f"Quiz finished: {title}" if title else "Quiz finished"
    line = f"{head}\nScore: {score} / {total}"
    if abandoned:
        line += f" (answered {answered} of {total})"
    return line


SUGGESTIONS = [
    "💰 أسعار المواد",
    "📝 اشرح لي مفهوماً",
    "🧪 اختبرني سريعاً",
    "📱 كيف أسجل؟",
    "📅 نصيحة للمذاكرة",
]
