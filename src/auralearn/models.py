"""Data classes for the study assistant domain model.

Each record converts to and from the camelCase dictionaries that are stored
as JSON, so persisted state keeps one shape across versions.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class QuizResult:
    date: str
    score: int
    topic: str

    def to_dict(self) -> dict:
        return {"date": self.date, "score": self.score, "topic": self.topic}

    @classmethod
    def from_dict(cls, data: dict) -> "QuizResult":
        return cls(date=str(data["date"]), score=int(data["score"]), topic=str(data["topic"]))


@dataclass(frozen=True)
class LearningPoint:
    date: str
    score: int

    def to_dict(self) -> dict:
        return {"date": self.date, "score": self.score}

    @classmethod
    def from_dict(cls, data: dict) -> "LearningPoint":
        return cls(date=str(data["date"]), score=int(data["score"]))


@dataclass(frozen=True)
class Progress:
    streak: int = 0
    last_activity_date: Optional[str] = None  # YYYY-MM-DD
    completed_tasks: int = 0
    quiz_history: tuple = ()
    learning_data: tuple = ()

    def to_dict(self) -> dict:
        data = {
            "streak": self.streak,
            "completedTasks": self.completed_tasks,
            "quizHistory": [r.to_dict() for r in self.quiz_history],
            "learningData": [p.to_dict() for p in self.learning_data],
        }
        if self.last_activity_date is not None:
            data["lastActivityDate"] = self.last_activity_date
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Progress":
        last = data.get("lastActivityDate")
        if last is not None:
            last = date.fromisoformat(last).isoformat()
        return cls(
            streak=int(data.get("streak", 0)),
            last_activity_date=last,
            completed_tasks=int(data.get("completedTasks", 0)),
            quiz_history=tuple(QuizResult.from_dict(r) for r in data.get("quizHistory", [])),
            learning_data=tuple(LearningPoint.from_dict(p) for p in data.get("learningData", [])),
        )


@dataclass(frozen=True)
class StudyTask:
    id: str
    name: str
    duration: int  # minutes
    completed: bool = False

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "duration": self.duration, "completed": self.completed}

    @classmethod
    def from_dict(cls, data: dict) -> "StudyTask":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            duration=int(data["duration"]),
            completed=bool(data.get("completed", False)),
        )


@dataclass(frozen=True)
class StudyDay:
    day: int
    topic: str
    tasks: tuple = ()

    def to_dict(self) -> dict:
        return {"day": self.day, "topic": self.topic, "tasks": [t.to_dict() for t in self.tasks]}

    @classmethod
    def from_dict(cls, data: dict) -> "StudyDay":
        return cls(
            day=int(data["day"]),
            topic=str(data["topic"]),
            tasks=tuple(StudyTask.from_dict(t) for t in data.get("tasks", [])),
        )


@dataclass(frozen=True)
class StudyPlan:
    subject: str
    daily_hours: float
    goal: str
    days: tuple = ()

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "dailyHours": self.daily_hours,
            "goal": self.goal,
            "days": [d.to_dict() for d in self.days],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StudyPlan":
        return cls(
            subject=str(data["subject"]),
            daily_hours=data["dailyHours"],
            goal=str(data["goal"]),
            days=tuple(StudyDay.from_dict(d) for d in data.get("days", [])),
        )

    def all_tasks(self) -> list:
        return [task for day in self.days for task in day.tasks]


@dataclass(frozen=True)
class Source:
    uri: str
    title: str = ""

    def to_dict(self) -> dict:
        return {"uri": self.uri, "title": self.title}

    @classmethod
    def from_dict(cls, data: dict) -> "Source":
        return cls(uri=str(data["uri"]), title=str(data.get("title") or ""))


@dataclass
class ChatMessage:
    """One chat turn. Model messages are filled in while a reply streams."""

    id: str
    role: str  # "user" | "model"
    text: str = ""
    sources: Optional[list] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "role": self.role, "text": self.text}
        if self.sources is not None:
            data["sources"] = [s.to_dict() for s in self.sources]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        sources = data.get("sources")
        return cls(
            id=str(data["id"]),
            role=str(data["role"]),
            text=str(data.get("text", "")),
            sources=[Source.from_dict(s) for s in sources] if sources is not None else None,
        )


@dataclass(frozen=True)
class Fragment:
    """One streamed piece of a reply. Either field may be absent."""

    text: Optional[str] = None
    sources: Optional[tuple] = None


@dataclass(frozen=True)
class QuizQuestion:
    question: str
    options: tuple
    answer: str
    type: str = "multiple-choice"
    explanation: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "QuizQuestion":
        return cls(
            question=str(data["question"]),
            options=tuple(str(o) for o in data.get("options", [])),
            answer=str(data["answer"]),
            type=str(data.get("type", "multiple-choice")),
            explanation=str(data.get("explanation") or ""),
        )


@dataclass(frozen=True)
class Quiz:
    topic: str
    questions: tuple = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Quiz":
        return cls(
            topic=str(data["topic"]),
            questions=tuple(QuizQuestion.from_dict(q) for q in data.get("questions", [])),
        )


@dataclass(frozen=True)
class UploadedDocument:
    name: str
    display_name: str
    uri: str
    mime_type: str = "application/pdf"


@dataclass
class AppState:
    """Everything the app persists, loaded once at start-up."""

    plan: Optional[StudyPlan] = None
    progress: Progress = field(default_factory=Progress)
    chat_history: list = field(default_factory=list)
