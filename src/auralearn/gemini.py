"""Calls to the Gemini API: structured generation, streaming chat and file storage."""
import json
import logging
from typing import AsyncIterator

from google import genai
from google.genai import types

from auralearn.config import Settings
from auralearn.errors import DocumentError, GenerationError
from auralearn.models import Fragment, Quiz, Source, StudyPlan, UploadedDocument
from auralearn.plan import normalize_plan

logger = logging.getLogger(__name__)

PLAN_DAYS = 7

TUTOR_INSTRUCTION = (
    "You are a friendly and knowledgeable AI tutor. Your goal is to help users understand "
    "complex topics in a clear and concise way. Be encouraging and supportive."
)

DOCUMENT_INSTRUCTION = (
    "You are an AI assistant. Your task is to answer questions based *only* on the content "
    "of the provided document. Do not use any external knowledge. If the information to "
    "answer a question is not in the document, you must clearly state that the answer is "
    "not found in the provided text."
)

STUDY_PLAN_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "subject": {"type": "STRING"},
        "dailyHours": {"type": "NUMBER"},
        "goal": {"type": "STRING"},
        "days": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "day": {"type": "NUMBER"},
                    "topic": {"type": "STRING"},
                    "tasks": {
                        "type": "ARRAY",
                        "items": {
                            "type": "OBJECT",
                            "properties": {
                                "id": {"type": "STRING", "description": "A unique ID for the task."},
                                "name": {"type": "STRING"},
                                "duration": {"type": "NUMBER"},
                                "completed": {"type": "BOOLEAN", "description": "Should always be false initially."},
                            },
                            "required": ["id", "name", "duration", "completed"],
                        },
                    },
                },
                "required": ["day", "topic", "tasks"],
            },
        },
    },
    "required": ["subject", "dailyHours", "goal", "days"],
}

QUIZ_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "topic": {"type": "STRING"},
        "questions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "question": {"type": "STRING"},
                    "type": {"type": "STRING", "enum": ["multiple-choice"]},
                    "options": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "answer": {"type": "STRING"},
                    "explanation": {"type": "STRING", "description": "A brief explanation of why the answer is correct."},
                },
                "required": ["question", "type", "options", "answer", "explanation"],
            },
        },
    },
    "required": ["topic", "questions"],
}


def fragment_from_chunk(chunk) -> Fragment:
    """Reduce one streamed response chunk to its text delta and citations."""
    text = getattr(chunk, "text", None) or None
    sources = None
    candidates = getattr(chunk, "candidates", None) or []
    if candidates:
        metadata = getattr(candidates[0], "grounding_metadata", None)
        grounding_chunks = getattr(metadata, "grounding_chunks", None) if metadata else None
        if grounding_chunks:
            sources = tuple(
                Source(uri=c.web.uri, title=c.web.title or "")
                for c in grounding_chunks
                if getattr(c, "web", None) is not None and c.web.uri
            )
    return Fragment(text=text, sources=sources)


def build_contents(history, document: UploadedDocument | None = None) -> list:
    history = list(history)
    # conversations must open with a user turn
    while history and history[0].role != "user":
        history.pop(0)
    contents = [
        types.Content(role=m.role, parts=[types.Part(text=m.text)])
        for m in history
    ]
    if document is not None and contents and contents[-1].role == "user":
        file_part = types.Part(
            file_data=types.FileData(file_uri=document.uri, mime_type=document.mime_type)
        )
        contents[-1].parts.insert(0, file_part)
    return contents


class GeminiService:
    def __init__(self, client, model: str):
        self._client = client
        self.model = model

    def _generate_json(self, prompt: str, schema: dict) -> dict:
        response = self._client.models.generate_content(
            model=self.model,
            contents=prompt,
            config={
                "response_mime_type": "application/json",
                "response_schema": schema,
            },
        )
        raw = (getattr(response, "text", None) or "").strip()
        return json.loads(raw)

    def generate_study_plan(self, subject: str, daily_hours: int, goal: str) -> StudyPlan:
        prompt = (
            f'You are a study planner. Given the subject "{subject}", daily study time of '
            f'{daily_hours} hours, and the goal "{goal}", generate a balanced {PLAN_DAYS}-day '
            "study plan. Include daily topics and specific tasks with time allocations in "
            "minutes. Each task must have a unique ID."
        )
        try:
            plan = StudyPlan.from_dict(self._generate_json(prompt, STUDY_PLAN_SCHEMA))
        except Exception as e:
            logger.exception("Error generating study plan")
            raise GenerationError(
                "Failed to generate a study plan. The model might be unavailable or the request was malformed."
            ) from e
        return normalize_plan(plan)

    def generate_quiz(self, topic: str, count: int) -> Quiz:
        prompt = (
            f"Generate a quiz with exactly {count} multiple-choice questions on the topic of "
            f'"{topic}". For each question, provide the question text, its type as '
            "'multiple-choice', an array of options (ideally 4), the correct answer, and a "
            "brief explanation for the correct answer."
        )
        try:
            quiz = Quiz.from_dict(self._generate_json(prompt, QUIZ_SCHEMA))
            if not quiz.questions:
                raise ValueError("Generated quiz has no questions.")
        except Exception as e:
            logger.exception("Error generating quiz on %r", topic)
            raise GenerationError(
                "Failed to generate a quiz. Please try a different topic or try again later."
            ) from e
        return quiz

    def explain_task(self, subject: str, topic: str, task_name: str) -> str:
        prompt = (
            f'You are an expert tutor for a student studying "{subject}".\n'
            f'The topic for the day is "{topic}".\n'
            f'The specific task is: "{task_name}".\n\n'
            "Please provide a detailed and clear explanation for this task.\n"
            "- Start with a simple overview.\n"
            "- Break down complex concepts into smaller, easy-to-understand parts.\n"
            "- Use examples or analogies where helpful.\n"
            "- If it's a practical task (like coding), provide a brief code snippet or pseudocode.\n"
            "- Format your response using Markdown for readability.\n"
            "- Keep the tone encouraging and supportive."
        )
        try:
            response = self._client.models.generate_content(model=self.model, contents=prompt)
            text = (getattr(response, "text", None) or "").strip()
            if not text:
                raise ValueError("empty explanation")
        except Exception as e:
            logger.exception("Error generating task explanation")
            raise GenerationError("Failed to generate an explanation for the task.") from e
        return text

    async def stream_tutor_reply(self, history, use_web_search: bool = False) -> AsyncIterator[Fragment]:
        tools = [types.Tool(google_search=types.GoogleSearch())] if use_web_search else None
        config = types.GenerateContentConfig(system_instruction=TUTOR_INSTRUCTION, tools=tools)
        stream = await self._client.aio.models.generate_content_stream(
            model=self.model,
            contents=build_contents(history),
            config=config,
        )
        async for chunk in stream:
            yield fragment_from_chunk(chunk)

    async def stream_document_reply(self, history, document: UploadedDocument) -> AsyncIterator[Fragment]:
        stream = await self._client.aio.models.generate_content_stream(
            model=self.model,
            contents=build_contents(history, document),
            config=types.GenerateContentConfig(system_instruction=DOCUMENT_INSTRUCTION),
        )
        async for chunk in stream:
            yield fragment_from_chunk(chunk)

    def upload_file(self, path: str, display_name: str):
        try:
            return self._client.files.upload(
                file=path,
                config={"display_name": display_name, "mime_type": "application/pdf"},
            )
        except Exception as e:
            logger.exception("Error uploading %s", path)
            raise DocumentError("Failed to upload the file to the server.") from e

    def get_file(self, name: str):
        try:
            return self._client.files.get(name=name)
        except Exception as e:
            logger.exception("Error getting state of %s", name)
            raise DocumentError("Failed to get file status from the server.") from e


def create_service(settings: Settings) -> GeminiService:
    if not settings.api_key:
        raise GenerationError("No API key configured. Set GEMINI_API_KEY in your environment or .env file.")
    return GeminiService(genai.Client(api_key=settings.api_key), settings.model)
