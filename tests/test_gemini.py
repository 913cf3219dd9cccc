# tests/test_gemini.py
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from auralearn.config import Settings
from auralearn.errors import DocumentError, GenerationError
from auralearn.gemini import (
    GeminiService, build_contents, create_service, fragment_from_chunk,
)
from auralearn.models import ChatMessage, Fragment, Source, UploadedDocument

PLAN_JSON = {
    "subject": "Rust",
    "dailyHours": 2,
    "goal": "Write a CLI",
    "days": [
        {"day": 1, "topic": "Ownership", "tasks": [
            {"id": "t1", "name": "Read the book", "duration": 60, "completed": True},
            {"id": "t1", "name": "Exercises", "duration": 60, "completed": False},
        ]},
    ],
}

QUIZ_JSON = {
    "topic": "Algebra",
    "questions": [
        {"question": "x + 1 = 2, x = ?", "type": "multiple-choice",
         "options": ["0", "1", "2", "3"], "answer": "1", "explanation": "Subtract 1."},
    ],
}


def make_service(response_text=None, side_effect=None):
    client = MagicMock()
    if side_effect is not None:
        client.models.generate_content.side_effect = side_effect
    else:
        client.models.generate_content.return_value = SimpleNamespace(text=response_text)
    return GeminiService(client, "test-model"), client


async def chunks(*items):
    for item in items:
        yield item


async def collect(stream):
    return [f async for f in stream]


def chunk(text=None, sources=None):
    candidates = []
    if sources is not None:
        grounding = [SimpleNamespace(web=SimpleNamespace(uri=u, title=t)) for u, t in sources]
        candidates = [SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=grounding))]
    return SimpleNamespace(text=text, candidates=candidates)


def test_generate_study_plan_normalizes_tasks():
    service, client = make_service(json.dumps(PLAN_JSON))
    plan = service.generate_study_plan("Rust", 2, "Write a CLI")
    tasks = plan.all_tasks()
    assert plan.subject == "Rust"
    assert all(not t.completed for t in tasks)
    assert len({t.id for t in tasks}) == 2
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["config"]["response_mime_type"] == "application/json"
    assert "Rust" in kwargs["contents"]


def test_generate_study_plan_bad_json():
    service, _ = make_service("not json")
    with pytest.raises(GenerationError, match="Failed to generate a study plan"):
        service.generate_study_plan("Rust", 2, "Write a CLI")


def test_generate_study_plan_remote_failure():
    service, _ = make_service(side_effect=RuntimeError("503"))
    with pytest.raises(GenerationError):
        service.generate_study_plan("Rust", 2, "Write a CLI")


def test_generate_quiz():
    service, _ = make_service(json.dumps(QUIZ_JSON))
    quiz = service.generate_quiz("Algebra", 3)
    assert quiz.topic == "Algebra"
    assert quiz.questions[0].answer == "1"


def test_generate_quiz_without_questions_fails():
    service, _ = make_service(json.dumps({"topic": "Algebra", "questions": []}))
    with pytest.raises(GenerationError, match="Failed to generate a quiz"):
        service.generate_quiz("Algebra", 3)


def test_explain_task():
    service, client = make_service("## Overview\nOwnership means...")
    text = service.explain_task("Rust", "Ownership", "Read the book")
    assert text.startswith("## Overview")
    assert "Read the book" in client.models.generate_content.call_args.kwargs["contents"]


def test_explain_task_empty_response_fails():
    service, _ = make_service("")
    with pytest.raises(GenerationError):
        service.explain_task("Rust", "Ownership", "Read the book")


def test_fragment_from_chunk_text_only():
    assert fragment_from_chunk(chunk("hello")) == Fragment(text="hello")


def test_fragment_from_chunk_empty():
    assert fragment_from_chunk(chunk()) == Fragment()


def test_fragment_from_chunk_with_citations():
    fragment = fragment_from_chunk(chunk("x", sources=[("https://a", "A"), ("https://b", None)]))
    assert fragment.sources == (Source(uri="https://a", title="A"), Source(uri="https://b", title=""))


def test_fragment_from_chunk_skips_non_web_chunks():
    c = chunk("x", sources=[])
    c.candidates[0].grounding_metadata.grounding_chunks = [SimpleNamespace(web=None)]
    assert fragment_from_chunk(c).sources == ()


def test_build_contents_roles_and_leading_model_turn():
    history = [
        ChatMessage(id="0", role="model", text="I've finished reading it."),
        ChatMessage(id="1", role="user", text="Summarize"),
    ]
    contents = build_contents(history)
    assert [c.role for c in contents] == ["user"]
    assert contents[0].parts[0].text == "Summarize"


def test_build_contents_attaches_document_to_last_user_turn():
    doc = UploadedDocument(name="files/1", display_name="notes.pdf", uri="https://files/1")
    history = [
        ChatMessage(id="1", role="user", text="First"),
        ChatMessage(id="2", role="model", text="Answer"),
        ChatMessage(id="3", role="user", text="Second"),
    ]
    contents = build_contents(history, doc)
    last = contents[-1]
    assert last.parts[0].file_data.file_uri == "https://files/1"
    assert last.parts[0].file_data.mime_type == "application/pdf"
    assert last.parts[1].text == "Second"
    assert contents[0].parts[0].file_data is None


def test_stream_tutor_reply_yields_fragments():
    service, client = make_service()
    client.aio.models.generate_content_stream = AsyncMock(
        return_value=chunks(chunk("Hel"), chunk("lo"))
    )
    history = [ChatMessage(id="1", role="user", text="hi")]
    fragments = asyncio.run(collect(service.stream_tutor_reply(history)))
    assert [f.text for f in fragments] == ["Hel", "lo"]
    config = client.aio.models.generate_content_stream.call_args.kwargs["config"]
    assert not config.tools


def test_stream_tutor_reply_with_web_search():
    service, client = make_service()
    client.aio.models.generate_content_stream = AsyncMock(
        return_value=chunks(chunk("Hi", sources=[("https://news", "News")]))
    )
    history = [ChatMessage(id="1", role="user", text="latest news?")]
    fragments = asyncio.run(collect(service.stream_tutor_reply(history, use_web_search=True)))
    assert fragments[0].sources == (Source(uri="https://news", title="News"),)
    config = client.aio.models.generate_content_stream.call_args.kwargs["config"]
    assert config.tools[0].google_search is not None


def test_stream_document_reply_sends_file():
    service, client = make_service()
    client.aio.models.generate_content_stream = AsyncMock(return_value=chunks(chunk("Page 2")))
    doc = UploadedDocument(name="files/9", display_name="a.pdf", uri="https://files/9")
    history = [ChatMessage(id="1", role="user", text="Where?")]
    fragments = asyncio.run(collect(service.stream_document_reply(history, doc)))
    assert fragments == [Fragment(text="Page 2")]
    contents = client.aio.models.generate_content_stream.call_args.kwargs["contents"]
    assert contents[-1].parts[0].file_data.file_uri == "https://files/9"
    config = client.aio.models.generate_content_stream.call_args.kwargs["config"]
    assert "document" in config.system_instruction


def test_upload_and_get_file_errors():
    service, client = make_service()
    client.files.upload.side_effect = OSError("network")
    client.files.get.side_effect = OSError("network")
    with pytest.raises(DocumentError, match="Failed to upload"):
        service.upload_file("a.pdf", "a.pdf")
    with pytest.raises(DocumentError, match="Failed to get file status"):
        service.get_file("files/1")


def test_create_service_requires_api_key():
    with pytest.raises(GenerationError, match="GEMINI_API_KEY"):
        create_service(Settings(api_key=None))


def test_create_service_builds_client():
    with patch("auralearn.gemini.genai.Client") as client_cls:
        service = create_service(Settings(api_key="secret", model="m"))
    client_cls.assert_called_once_with(api_key="secret")
    assert service.model == "m"
