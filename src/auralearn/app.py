"""Interactive CLI application."""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from auralearn.chat import Conversation, accumulate_reply, add_user_message
from auralearn.config import Settings, configure_logging, load_settings
from auralearn.dashboard import average_quiz_score, get_stats, score_color, todays_focus
from auralearn.db import init_db
from auralearn.documents import start_document_conversation, upload_document
from auralearn.errors import AuraLearnError, ValidationError
from auralearn.gemini import GeminiService, create_service
from auralearn.models import AppState, ChatMessage, StudyPlan, UploadedDocument
from auralearn.plan import count_completed, toggle_task, validate_plan_request
from auralearn.quiz import (
    DEFAULT_QUESTIONS, complete_quiz, is_correct, score_answers, validate_quiz_request,
)
from auralearn.store import load_state, save_chat_history, save_plan, save_progress
from auralearn.streak import Clock, check_decay, system_clock

logger = logging.getLogger(__name__)

console = Console()

VIEWS = [
    ("dashboard", "Streak, tasks and today's focus"),
    ("plan", "Generate or work through your study plan"),
    ("tutor", "Chat with the AI tutor"),
    ("progress", "Quiz history and learning curve"),
    ("quiz", "Take a generated quiz"),
    ("pdf", "Ask questions about a PDF"),
    ("quit", "Exit"),
]


class SessionExitRequested(Exception):
    """Raised when the user types 'q' or 'menu' inside a view."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer is not None and answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None, **kwargs) -> int:
    answer = session_prompt(prompt, choices=choices, **kwargs)
    return int(answer)


@dataclass
class Session:
    """Live application state for one run of the app."""

    settings: Settings
    state: AppState
    clock: Clock = system_clock
    tutor: Conversation = field(default_factory=Conversation)
    document_chat: Conversation = field(default_factory=Conversation)
    document: Optional[UploadedDocument] = None
    use_web_search: bool = False
    _service: Optional[GeminiService] = None

    @property
    def db_path(self) -> str:
        return self.settings.db_path

    def service(self) -> GeminiService:
        if self._service is None:
            self._service = create_service(self.settings)
        return self._service

    def set_plan(self, plan: StudyPlan | None) -> None:
        self.state.plan = plan
        self.state.progress = replace(self.state.progress, completed_tasks=count_completed(plan))
        save_plan(self.db_path, plan)
        save_progress(self.db_path, self.state.progress)

    def toggle(self, task_id: str) -> None:
        if self.state.plan is None:
            return
        plan, progress = toggle_task(self.state.plan, self.state.progress, task_id, self.clock())
        self.state.plan = plan
        self.state.progress = progress
        save_plan(self.db_path, plan)
        save_progress(self.db_path, progress)

    def finish_quiz(self, score: int, topic: str) -> None:
        self.state.progress = complete_quiz(self.state.progress, score, topic, self.clock())
        save_progress(self.db_path, self.state.progress)

    def save_tutor_chat(self) -> None:
        self.state.chat_history = list(self.tutor.messages)
        save_chat_history(self.db_path, self.state.chat_history)


def open_session(settings: Settings, clock: Clock = system_clock) -> Session:
    init_db(settings.db_path)
    state = load_state(settings.db_path)
    decayed = check_decay(state.progress, clock())
    if decayed != state.progress:
        logger.info("Streak of %d lapsed", state.progress.streak)
        state.progress = decayed
        save_progress(settings.db_path, decayed)
    return Session(
        settings=settings,
        state=state,
        clock=clock,
        tutor=Conversation(state.chat_history),
    )


def show_welcome():
    console.print(Panel(
        "[bold]AuraLearn[/bold]\n[dim]Your AI study assistant[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Views:[/bold]")
    for cmd, desc in VIEWS:
        console.print(f"  [cyan]{cmd:<12}[/cyan] {desc}")


def render_message(message: ChatMessage):
    if message.role == "user":
        return Panel(Text(message.text), title="You", title_align="right", border_style="blue")
    body = Markdown(message.text) if message.text else Spinner("dots", text="Thinking...")
    if message.sources:
        links = Text("\nSources:\n", style="dim")
        for source in message.sources:
            links.append(f"  • {source.title or source.uri} ", style="dim")
            links.append(f"{source.uri}\n", style="dim underline")
        body = Group(body, links)
    return Panel(body, title="AuraLearn", title_align="left", border_style="green")


def stream_reply(conversation: Conversation, fragments) -> ChatMessage:
    """Render a streaming reply in place until it reaches its final text."""
    with Live(console=console, refresh_per_second=12, transient=False) as live:
        def on_update(message: ChatMessage) -> None:
            live.update(render_message(message))

        return asyncio.run(accumulate_reply(conversation, fragments, on_update=on_update))


def cmd_dashboard(session: Session):
    stats = get_stats(session.state.progress, session.state.plan)
    console.print(Panel("[bold]Welcome Back![/bold]\nReady to dive in and learn something new today?",
                        title="Dashboard", border_style="blue"))
    table = Table(show_header=False, box=None)
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("Current Streak", f"[dark_orange]{stats['streak']} days[/dark_orange]")
    table.add_row("Tasks Completed", f"[green]{stats['completed_tasks']}[/green]"
                  + (f" / {stats['total_tasks']}" if stats["total_tasks"] else ""))
    table.add_row("Current Subject", f"[blue]{stats['subject']}[/blue]")
    console.print(table)

    focus = todays_focus(session.state.plan, session.clock())
    console.print("\n[bold]Today's Focus[/bold]")
    if focus:
        console.print(f"  [blue]{focus['topic']}[/blue]")
        for name in focus["tasks"]:
            console.print(f"  • {name}")
        if focus["more"]:
            console.print("  • ...and more")
        console.print("[dim]Open 'plan' to see the full plan.[/dim]")
    else:
        console.print("  [dim]No study plan found for today. Open 'plan' to generate one.[/dim]")
    console.print("\n[dim]Have a question? The AI tutor is in 'tutor'.[/dim]")


def show_plan(plan: StudyPlan) -> list:
    """Print the plan and return its tasks in display order."""
    console.print(Panel(f"[bold]Your Plan: [blue]{plan.subject}[/blue][/bold]\n[dim]{plan.goal}[/dim]",
                        border_style="blue"))
    numbered = []
    for day in plan.days:
        table = Table(title=f"Day {day.day}: {day.topic}", title_justify="left", show_header=False)
        table.add_column(justify="right", style="cyan")
        table.add_column()
        table.add_column()
        table.add_column(justify="right", style="dim")
        for task in day.tasks:
            numbered.append((day, task))
            mark = "[green]✔[/green]" if task.completed else "☐"
            name = f"[strike dim]{task.name}[/strike dim]" if task.completed else task.name
            table.add_row(str(len(numbered)), mark, name, f"{task.duration} min")
        console.print(table)
    return numbered


def generate_plan(session: Session) -> None:
    console.print("\n[bold]Create Your Study Plan[/bold]")
    subject = session_prompt("Subject")
    hours = session_prompt("Daily study time (hours)", default="2")
    goal = session_prompt("Your goal")
    try:
        subject, hours, goal = validate_plan_request(subject, hours, goal)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        return
    with console.status("Generating your personalized plan..."):
        plan = session.service().generate_study_plan(subject, hours, goal)
    session.set_plan(plan)


def cmd_plan(session: Session):
    if session.state.plan is None:
        generate_plan(session)
        if session.state.plan is None:
            return
    while True:
        numbered = show_plan(session.state.plan)
        console.print("[dim]Task number to toggle, 'e <n>' to explain a task, 'new' for a new plan, 'q' to go back.[/dim]")
        choice = session_prompt("\n[bold]plan>[/bold]").strip().lower()
        if choice == "new":
            session.set_plan(None)
            generate_plan(session)
            if session.state.plan is None:
                return
            continue
        explain = choice.startswith("e ")
        index = choice[2:].strip() if explain else choice
        if not index.isdigit() or not 1 <= int(index) <= len(numbered):
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        day, task = numbered[int(index) - 1]
        if explain:
            with console.status(f"Explaining {task.name}..."):
                text = session.service().explain_task(session.state.plan.subject, day.topic, task.name)
            console.print(Panel(Markdown(text), title=task.name, border_style="green"))
            session_prompt("[dim]Press Enter to go back to the plan[/dim]", default="")
        else:
            session.toggle(task.id)


def cmd_tutor(session: Session):
    console.print(Panel("Ask anything. '/web' toggles web search, '/clear' starts over, 'q' goes back.",
                        title="Tutor Chat", border_style="blue"))
    for message in session.tutor.messages:
        console.print(render_message(message))
    while True:
        search = "[green]on[/green]" if session.use_web_search else "[dim]off[/dim]"
        content = session_prompt(f"\n[bold]You[/bold] (web search {search})").strip()
        if content == "/web":
            session.use_web_search = not session.use_web_search
            continue
        if content == "/clear":
            session.tutor.reset()
            session.save_tutor_chat()
            console.print("[dim]Conversation cleared.[/dim]")
            continue
        try:
            add_user_message(session.tutor, content)
        except ValidationError:
            continue
        session.save_tutor_chat()
        fragments = session.service().stream_tutor_reply(session.tutor.history(), session.use_web_search)
        stream_reply(session.tutor, fragments)
        session.save_tutor_chat()


def cmd_progress(session: Session):
    progress = session.state.progress
    average = average_quiz_score(progress)
    console.print(Panel("Track your learning journey and past quiz scores.", title="Your Progress",
                        border_style="blue"))
    console.print(f"  Streak: [bold dark_orange]{progress.streak} days[/bold dark_orange]  |  "
                  f"Tasks Done: [bold green]{progress.completed_tasks}[/bold green]  |  "
                  f"Avg. Score: [bold blue]{f'{average}%' if average is not None else 'N/A'}[/bold blue]")

    console.print("\n[bold]Learning Curve[/bold]")
    if progress.learning_data:
        for point in progress.learning_data:
            filled = int(point.score / 5)
            color = score_color(point.score)
            console.print(f"  {point.date:>10} [{color}]{'█' * filled}{'░' * (20 - filled)}[/{color}] {point.score}%")
    else:
        console.print("  [dim]No data yet. Take a quiz to start your learning curve.[/dim]")

    console.print()
    if progress.quiz_history:
        table = Table(title="Quiz History")
        table.add_column("Date")
        table.add_column("Topic", style="cyan")
        table.add_column("Score", justify="right")
        for result in reversed(progress.quiz_history):
            color = score_color(result.score)
            table.add_row(result.date, result.topic, f"[{color}]{result.score}%[/{color}]")
        console.print(table)
    else:
        console.print("[dim]No quizzes taken yet.[/dim]")


def run_quiz(quiz) -> list[str]:
    answers = []
    for i, q in enumerate(quiz.questions, 1):
        console.print(f"\n[blue]Question {i} of {len(quiz.questions)}[/blue]")
        console.print(f"[bold]{q.question}[/bold]\n")
        for n, option in enumerate(q.options, 1):
            console.print(f"  [cyan]{n})[/cyan] {option}")
        choice = session_int_prompt("\nYour answer", choices=[str(n) for n in range(1, len(q.options) + 1)])
        answers.append(q.options[choice - 1])
    return answers


def show_quiz_results(quiz, answers: list[str], score: int) -> None:
    color = score_color(score)
    correct = sum(1 for q, a in zip(quiz.questions, answers) if is_correct(q, a))
    console.print(Panel(
        f"[bold {color}]{score}%[/bold {color}]\n"
        f"You answered {correct} out of {len(quiz.questions)} questions correctly.",
        title=f"Quiz Results for {quiz.topic}", border_style=color,
    ))
    for i, (q, answer) in enumerate(zip(quiz.questions, answers), 1):
        console.print(f"\n[bold]{i}. {q.question}[/bold]")
        if is_correct(q, answer):
            console.print(f"  [green]✔ Your answer: {answer}[/green]")
        else:
            console.print(f"  [red]✘ Your answer: [strike]{answer or 'No answer'}[/strike][/red]")
            console.print(f"  [green]Correct answer: {q.answer}[/green]")
        if q.explanation:
            console.print(f"  [dim]Explanation: {q.explanation}[/dim]")


def cmd_quiz(session: Session):
    console.print("\n[bold]Create a Quiz[/bold]")
    topic = session_prompt("Topic")
    try:
        count = session_int_prompt("Number of questions (3-15)", default=str(DEFAULT_QUESTIONS))
    except ValueError:
        console.print("[red]Number of questions must be a whole number.[/red]")
        return
    try:
        topic, count = validate_quiz_request(topic, count)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        return
    with console.status(f'Generating your quiz on "{topic}"...'):
        quiz = session.service().generate_quiz(topic, count)
    answers = run_quiz(quiz)
    score = score_answers(quiz.questions, answers)
    session.finish_quiz(score, quiz.topic)
    show_quiz_results(quiz, answers, score)


def load_document(session: Session) -> None:
    path = session_prompt("Path to a PDF").strip()
    with console.status(f"Analyzing your document: {path}"):
        document = upload_document(session.service(), path, poll_interval=session.settings.poll_seconds)
    session.document = document
    start_document_conversation(session.document_chat, document)


def cmd_pdf(session: Session):
    console.print(Panel("Upload a document to start asking questions. 'new' loads another PDF, 'q' goes back.",
                        title="Chat With Your PDF", border_style="blue"))
    if session.document is None:
        load_document(session)
    console.print(f"[blue]{session.document.display_name}[/blue]")
    for message in session.document_chat.messages:
        console.print(render_message(message))
    while True:
        content = session_prompt("\n[bold]Ask about the document[/bold]").strip()
        if content == "new":
            session.document = None
            session.document_chat.reset()
            load_document(session)
            for message in session.document_chat.messages:
                console.print(render_message(message))
            continue
        try:
            add_user_message(session.document_chat, content)
        except ValidationError:
            continue
        fragments = session.service().stream_document_reply(session.document_chat.history(), session.document)
        stream_reply(session.document_chat, fragments)


COMMANDS = {
    "dashboard": cmd_dashboard,
    "plan": cmd_plan,
    "tutor": cmd_tutor,
    "progress": cmd_progress,
    "quiz": cmd_quiz,
    "pdf": cmd_pdf,
}


def main():
    settings = load_settings()
    configure_logging(settings.log_level, console)
    session = open_session(settings)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Keep up the streak![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(session)
        except SessionExitRequested:
            pass
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except AuraLearnError as e:
            console.print(f"[red]{e}[/red]")
        except Exception as e:
            logger.exception("Unexpected error in %s view", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
