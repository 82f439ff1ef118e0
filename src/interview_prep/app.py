"""Interactive CLI application."""
import logging
import os
import random
import time

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from interview_prep.attempts import reset_progress
from interview_prep.dashboard import (
    get_mastery_color, get_mastery_label, get_study_stats, topic_overview,
)
from interview_prep.db import DEFAULT_DB_PATH, DEFAULT_USER_ID, init_db
from interview_prep.errors import InvalidArgument
from interview_prep.flashcards import get_cards_for_review, record_flashcard_result
from interview_prep.mastery import get_category_mastery
from interview_prep.models import TOPICS, AttemptResult, Presentation, QuizFormat, QuizItem, TopicId
from interview_prep.quiz import (
    build_quiz, get_questions, grade_mcq, record_quiz_answer, search_questions,
)
from interview_prep.review import get_weak_categories, get_wrong_answers
from interview_prep.seed import get_categories, is_seeded, seed_all
from interview_prep.sm2 import quality_for
from interview_prep.study import (
    StudySession, get_flashcard_session_size, get_quiz_format, get_quiz_length, set_setting,
)

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user leaves a session before it is complete."""


def configure_logging(level: str = None) -> None:
    level = (level or os.environ.get("INTERVIEW_PREP_LOG_LEVEL", "WARNING")).upper()
    # getLevelName maps unknown names to a "Level X" string
    if not isinstance(logging.getLevelName(level), int):
        level = "WARNING"
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def session_prompt(prompt: str, **kwargs) -> str:
    if "choices" in kwargs:
        kwargs["choices"] = list(kwargs["choices"]) + list(EXIT_WORDS)
        kwargs.setdefault("show_choices", False)
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def show_welcome():
    console.print(Panel(
        "[bold]Frontend Interview Prep[/bold]\n[dim]React, JavaScript, CSS and HTML[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Mastery overview"),
        ("quiz", "Adaptive quiz"),
        ("flashcards", "Spaced-repetition review"),
        ("review", "Retry wrong answers"),
        ("browse", "Search questions and answers"),
        ("progress", "Category mastery for a topic"),
        ("settings", "Quiz and session defaults"),
        ("reset", "Erase all progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_topic() -> str:
    for topic_id, name in TOPICS.items():
        console.print(f"  [cyan]{topic_id.value}[/cyan]  {name}")
    return Prompt.ask("Topic", choices=[t.value for t in TOPICS], default="react")


def run_flashcard_session(db_path: str, user_id: str, cards: list) -> StudySession | None:
    if not cards:
        console.print("[yellow]No flashcards available for this topic.[/yellow]")
        return None
    session = StudySession(cards)
    console.print(f"\n[bold]Flashcard Session[/bold] - {len(cards)} cards\n")
    while not session.is_complete:
        card = session.current
        index = session.state.index + 1
        console.print(Panel(card.front, title=f"Card {index}/{len(cards)}", border_style="cyan"))
        started = time.monotonic()
        session_prompt("[dim]Press Enter to reveal the answer[/dim]", default="", show_default=False)
        console.print(Panel(card.back, border_style="green"))
        knew = session_prompt("Did you know it? (y/n)", choices=["y", "n"]) == "y"
        record_flashcard_result(
            db_path, user_id, card.id, quality_for(knew),
            time_spent_seconds=int(time.monotonic() - started),
        )
        session.record(AttemptResult.KNEW if knew else AttemptResult.DIDNT_KNOW)
        session.advance()
        console.print()
    summary = session.summary()
    console.print(
        f"[bold]Session complete: {summary['correct']}/{summary['total']} known "
        f"({summary['accuracy']}%)[/bold]\n"
    )
    return session


def _ask_question(item: QuizItem) -> AttemptResult:
    q = item.question
    if not item.is_open and q.choices:
        letters = [chr(ord("a") + i) for i in range(len(q.choices))]
        for letter, choice in zip(letters, q.choices):
            console.print(f"  [cyan]{letter})[/cyan] {choice}")
        answer = session_prompt("\nYour answer", choices=letters + ["?"])
        if answer == "?":
            return AttemptResult.DONT_KNOW
        result = grade_mcq(q, letters.index(answer))
        if result == AttemptResult.CORRECT:
            console.print("[green]Correct![/green]")
        else:
            correct = q.choices[q.correct_choice_index]
            console.print(f"[red]Incorrect.[/red] Answer: [green]{correct}[/green]")
        return result

    answer = session_prompt("\nYour answer ('?' if you don't know)")
    if answer.strip() == "?":
        return AttemptResult.DONT_KNOW
    reference = q.answer or (q.choices[q.correct_choice_index] if q.choices else "")
    console.print(Panel(reference, title="Reference Answer", border_style="green"))
    got_it = session_prompt("Did you get it right? (y/n)", choices=["y", "n"]) == "y"
    return AttemptResult.SELF_CORRECT if got_it else AttemptResult.SELF_WRONG


def run_quiz_session(db_path: str, user_id: str, items: list[QuizItem]) -> StudySession | None:
    if not items:
        console.print("[yellow]No questions available![/yellow]")
        return None
    session = StudySession(items)
    console.print(f"\n[bold]Quiz[/bold] - {len(items)} questions\n")
    while not session.is_complete:
        item = session.current
        index = session.state.index + 1
        tag = "open-ended" if item.is_open else "multiple choice"
        console.print(f"[bold]Q{index}.[/bold] {item.question.prompt} [dim]({tag})[/dim]\n")
        started = time.monotonic()
        result = _ask_question(item)
        record_quiz_answer(
            db_path, user_id, item.question, result,
            time_spent_seconds=int(time.monotonic() - started),
        )
        session.record(result)
        if item.question.explanation:
            console.print(f"[dim]{item.question.explanation}[/dim]")
        session.advance()
        console.print()
    summary = session.summary()
    console.print(
        f"[bold]Score: {summary['correct']}/{summary['total']} ({summary['accuracy']}%)[/bold] "
        f"{summary['message']}\n"
    )
    return session


def choose_categories(db_path: str, topic_id: str, mastery: dict) -> list[str]:
    """List a topic's categories with their mastery and ask which to study."""
    for c in get_categories(db_path, topic_id):
        score = mastery[c.id].mastery_score if c.id in mastery else 0
        console.print(f"  [cyan]{c.id}[/cyan]  {c.name} ({score}%)")
    picked = Prompt.ask("Categories (comma-separated, blank for all)", default="")
    return [p.strip() for p in picked.split(",") if p.strip()]


def cmd_quiz(db_path: str, user_id: str):
    console.print("\n[bold]Practice Quiz[/bold]")
    topic_id = choose_topic()
    mastery = get_category_mastery(db_path, user_id, topic_id)
    category_ids = set(choose_categories(db_path, topic_id, mastery))
    quiz_format = Prompt.ask(
        "Format", choices=[f.value for f in QuizFormat], default=get_quiz_format(db_path)
    )
    length = int(Prompt.ask("Number of questions", choices=["5", "10", "20", "50"],
                            default=str(get_quiz_length(db_path))))
    items = build_quiz(
        get_questions(db_path, topic_id), mastery, QuizFormat(quiz_format), category_ids, length
    )
    run_quiz_session(db_path, user_id, items)


def cmd_flashcards(db_path: str, user_id: str):
    console.print("\n[bold]Flashcard Review[/bold]")
    topic_id = choose_topic()
    mastery = get_category_mastery(db_path, user_id, topic_id)
    category_ids = choose_categories(db_path, topic_id, mastery)
    cards = get_cards_for_review(
        db_path, user_id, topic_id, category_ids or None,
        limit=get_flashcard_session_size(db_path),
    )
    run_flashcard_session(db_path, user_id, cards)


def cmd_browse(db_path: str):
    console.print("\n[bold]Question Reference[/bold]")
    topic_id = choose_topic()
    categories = {c.id: c.name for c in get_categories(db_path, topic_id)}
    for category_id, name in categories.items():
        console.print(f"  [cyan]{category_id}[/cyan]  {name}")
    category_id = Prompt.ask(
        "Category", choices=["all", *categories], default="all", show_choices=False
    )
    query = Prompt.ask("Search (blank for all)", default="")
    questions = search_questions(
        db_path, topic_id, None if category_id == "all" else category_id, query
    )
    if not questions:
        console.print("[yellow]No questions match.[/yellow]")
        return
    console.print(f"{len(questions)} question(s)\n")
    for q in sorted(questions, key=lambda q: (categories.get(q.category_id, ""), q.id)):
        reference = q.answer or (q.choices[q.correct_choice_index] if q.choices else "")
        body = f"[bold]{escape(q.prompt)}[/bold]\n\n[green]{escape(reference)}[/green]"
        if q.explanation:
            body += f"\n[dim]{escape(q.explanation)}[/dim]"
        console.print(Panel(body, title=categories.get(q.category_id, "Unknown"),
                            border_style="cyan"))


def cmd_review(db_path: str, user_id: str):
    console.print("\n[bold]Review Wrong Answers[/bold]")
    topic_id = choose_topic()
    wrong = get_wrong_answers(db_path, user_id, topic_id)
    if not wrong:
        console.print("[green]No wrong answers to review. Keep up the good work.[/green]")
        return
    console.print(f"{len(wrong)} question(s) to review.")
    items = [
        QuizItem(q, Presentation(q.type.value)) for q in random.sample(wrong, len(wrong))
    ]
    run_quiz_session(db_path, user_id, items)


def cmd_dashboard(db_path: str, user_id: str):
    stats = get_study_stats(db_path, user_id)
    console.print(Panel(
        f"Overall mastery: [bold]{stats['overall_mastery']}%[/bold]  |  "
        f"Attempts: [bold]{stats['total_attempts']}[/bold]  |  "
        f"Cards due: [bold]{stats['cards_due']}[/bold]",
        title="Interview Prep Dashboard", border_style="blue",
    ))
    table = Table(title="Topics")
    table.add_column("Topic", style="cyan")
    table.add_column("Mastery", justify="right")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Weakest")
    for topic in topic_overview(db_path, user_id):
        color = get_mastery_color(topic["mastery"])
        weakest = ", ".join(
            f"{w['category_name']} ({w['mastery_score']}%)" for w in topic["weakest"]
        )
        table.add_row(
            topic["name"], f"{topic['mastery']}%", f"[{color}]{topic['label']}[/{color}]",
            str(topic["attempts"]), weakest or "[dim]not started[/dim]",
        )
    console.print(table)

    weak = get_weak_categories(db_path, user_id)
    if weak and weak[0]["mastery_score"] < 70:
        console.print(f"\n  [yellow]Recommendation: Focus on {weak[0]['category_name']}[/yellow]")


def cmd_progress(db_path: str, user_id: str):
    topic_id = choose_topic()
    categories = get_categories(db_path, topic_id)
    mastery = get_category_mastery(db_path, user_id, topic_id)
    table = Table(title=f"{TOPICS[TopicId(topic_id)]} Progress")
    table.add_column("Category", style="cyan")
    table.add_column("Mastery", justify="right")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Last studied")
    rows = sorted(
        categories, key=lambda c: mastery[c.id].mastery_score if c.id in mastery else 0
    )
    for c in rows:
        m = mastery.get(c.id)
        score = m.mastery_score if m else 0
        color = get_mastery_color(score)
        table.add_row(
            c.name, f"{score}%", f"[{color}]{get_mastery_label(score)}[/{color}]",
            str(m.attempts_count if m else 0),
            m.last_studied_at.strftime("%Y-%m-%d") if m and m.last_studied_at else "-",
        )
    console.print(table)


def cmd_settings(db_path: str):
    length = Prompt.ask("Default quiz length", choices=["5", "10", "20", "50"],
                        default=str(get_quiz_length(db_path)))
    quiz_format = Prompt.ask("Default quiz format", choices=[f.value for f in QuizFormat],
                             default=get_quiz_format(db_path))
    size = Prompt.ask("Flashcards per session", choices=["5", "10", "20", "30"],
                      default=str(get_flashcard_session_size(db_path)))
    set_setting(db_path, "quiz_length", length)
    set_setting(db_path, "quiz_format", quiz_format)
    set_setting(db_path, "flashcard_session_size", size)
    console.print("[green]Settings saved.[/green]")


def cmd_reset(db_path: str, user_id: str):
    console.print("[red]This permanently deletes all attempts, flashcard progress "
                  "and mastery scores.[/red]")
    if not Confirm.ask("Reset all progress?", default=False):
        return
    deleted = reset_progress(db_path, user_id)
    console.print(f"[green]Progress reset! Removed {sum(deleted.values())} records.[/green]")


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    user_id = DEFAULT_USER_ID
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice == "dashboard":
                cmd_dashboard(db_path, user_id)
            elif choice == "quiz":
                cmd_quiz(db_path, user_id)
            elif choice == "flashcards":
                cmd_flashcards(db_path, user_id)
            elif choice == "review":
                cmd_review(db_path, user_id)
            elif choice == "browse":
                cmd_browse(db_path)
            elif choice == "progress":
                cmd_progress(db_path, user_id)
            elif choice == "settings":
                cmd_settings(db_path)
            elif choice == "reset":
                cmd_reset(db_path, user_id)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck in your interviews![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Session ended. Answers so far are saved.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except InvalidArgument as e:
            console.print(f"[yellow]{e}[/yellow]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
