"""
Answer Sheet Grader CLI Application.

Provides a command-line interface for managing classes, students, exams,
answer keys and student answer sheets, and for viewing grades.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Annotated, Any, Iterator, Optional, Sequence, TypeVar

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from src.answer_key import AnswerKeyManager, MarkParser
from src.config import get_settings
from src.errors import GradebookError
from src.grading import GradingEngine, SubmissionManager
from src.models import (
    AnswerKey,
    Choice,
    Exam,
    KeyMark,
    SchoolClass,
    ScoreResult,
    Student,
    Teacher,
)
from src.storage import JsonFileStorage

# Create Typer app
app = typer.Typer(
    name="answer-sheet-grader",
    help="Manage exams and answer keys, and grade student answer sheets",
    add_completion=False,
)

console = Console()

Record = TypeVar("Record", bound=BaseModel)


def _storage() -> JsonFileStorage:
    return JsonFileStorage(get_settings().data_file)


@contextmanager
def _report_errors() -> Iterator[None]:
    """Print domain and validation errors and exit with status 1."""
    try:
        yield
    except GradebookError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def format_grade(result: ScoreResult | None, scale: float) -> str:
    """Render a result on the configured grade scale."""
    if result is None:
        return "[dim]not graded[/dim]"
    if result.score is None:
        return f"— ({result.reason.value if result.reason else 'ungradable'})"
    return f"{result.score * scale:.2f}"


def _format_marks(marks: Sequence[KeyMark | Choice | None]) -> str:
    return " ".join("-" if m is None else m.value for m in marks)


def _revise(record: Record, **changes: Any) -> Record:
    """Return a validated copy of a record with the given fields replaced."""
    updates = {name: value for name, value in changes.items() if value is not None}
    return type(record).model_validate({**record.model_dump(), **updates})


# ==============================================================================
# Classes
# ==============================================================================


@app.command()
def class_add(
    name: Annotated[str, typer.Argument(help="Class name")],
    year: Annotated[int, typer.Option("--year", "-y", help="School year")],
    course: Annotated[str, typer.Option("--course", "-c", help="Course name")],
) -> None:
    """Register a new class."""
    with _report_errors():
        school_class = SchoolClass(name=name, year=year, course=course)
        _storage().add_class(school_class)
        console.print(f"[green]Class created:[/green] {school_class.id}")


@app.command()
def class_list() -> None:
    """List all classes."""
    with _report_errors():
        storage = _storage()
        table = Table(title="Classes")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Year", justify="right")
        table.add_column("Course")
        table.add_column("Students", justify="right")

        for school_class in storage.list_classes():
            table.add_row(
                school_class.id,
                school_class.name,
                str(school_class.year),
                school_class.course,
                str(len(storage.list_students(school_class.id))),
            )

        console.print(table)


@app.command()
def class_delete(class_id: Annotated[str, typer.Argument(help="Class ID")]) -> None:
    """Delete a class that has no students or exams."""
    with _report_errors():
        _storage().delete_class(class_id)
        console.print(f"[green]Class deleted:[/green] {class_id}")


@app.command()
def class_update(
    class_id: Annotated[str, typer.Argument(help="Class ID")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="New name")] = None,
    year: Annotated[Optional[int], typer.Option("--year", "-y", help="New school year")] = None,
    course: Annotated[Optional[str], typer.Option("--course", "-c", help="New course")] = None,
) -> None:
    """Edit a class."""
    with _report_errors():
        storage = _storage()
        school_class = _revise(storage.get_class(class_id), name=name, year=year, course=course)
        storage.update_class(school_class)
        console.print(f"[green]Class updated:[/green] {class_id}")


# ==============================================================================
# Students and Teachers
# ==============================================================================


@app.command()
def student_add(
    name: Annotated[str, typer.Argument(help="Student name")],
    enrollment: Annotated[str, typer.Argument(help="Enrollment number")],
    class_id: Annotated[str, typer.Argument(help="Class ID")],
) -> None:
    """Enroll a student in a class."""
    with _report_errors():
        student = Student(name=name, enrollment=enrollment, class_id=class_id)
        _storage().add_student(student)
        console.print(f"[green]Student created:[/green] {student.id}")


@app.command()
def student_list(
    class_id: Annotated[
        Optional[str], typer.Option("--class-id", help="Only students of this class")
    ] = None,
) -> None:
    """List students."""
    with _report_errors():
        table = Table(title="Students")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Enrollment")
        table.add_column("Class", style="dim")

        for student in _storage().list_students(class_id):
            table.add_row(student.id, student.name, student.enrollment, student.class_id)

        console.print(table)


@app.command()
def student_delete(student_id: Annotated[str, typer.Argument(help="Student ID")]) -> None:
    """Delete a student and their answer sheets."""
    with _report_errors():
        _storage().delete_student(student_id)
        console.print(f"[green]Student deleted:[/green] {student_id}")


@app.command()
def student_update(
    student_id: Annotated[str, typer.Argument(help="Student ID")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="New name")] = None,
    enrollment: Annotated[
        Optional[str], typer.Option("--enrollment", "-e", help="New enrollment number")
    ] = None,
    class_id: Annotated[Optional[str], typer.Option("--class-id", help="Move to class")] = None,
) -> None:
    """Edit a student or move them to another class."""
    with _report_errors():
        storage = _storage()
        student = _revise(
            storage.get_student(student_id),
            name=name,
            enrollment=enrollment,
            class_id=class_id,
        )
        storage.update_student(student)
        console.print(f"[green]Student updated:[/green] {student_id}")


@app.command()
def teacher_add(
    name: Annotated[str, typer.Argument(help="Teacher name")],
    email: Annotated[str, typer.Argument(help="E-mail address")],
    specialty: Annotated[str, typer.Argument(help="Subject taught")],
) -> None:
    """Register a teacher."""
    with _report_errors():
        teacher = Teacher(name=name, email=email, specialty=specialty)
        _storage().add_teacher(teacher)
        console.print(f"[green]Teacher created:[/green] {teacher.id}")


@app.command()
def teacher_list() -> None:
    """List teachers."""
    with _report_errors():
        table = Table(title="Teachers")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("E-mail")
        table.add_column("Specialty")

        for teacher in _storage().list_teachers():
            table.add_row(teacher.id, teacher.name, teacher.email, teacher.specialty)

        console.print(table)


@app.command()
def teacher_delete(teacher_id: Annotated[str, typer.Argument(help="Teacher ID")]) -> None:
    """Delete a teacher."""
    with _report_errors():
        _storage().delete_teacher(teacher_id)
        console.print(f"[green]Teacher deleted:[/green] {teacher_id}")


@app.command()
def teacher_update(
    teacher_id: Annotated[str, typer.Argument(help="Teacher ID")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="New name")] = None,
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="New e-mail")] = None,
    specialty: Annotated[
        Optional[str], typer.Option("--specialty", "-s", help="New subject taught")
    ] = None,
) -> None:
    """Edit a teacher."""
    with _report_errors():
        storage = _storage()
        teacher = _revise(
            storage.get_teacher(teacher_id), name=name, email=email, specialty=specialty
        )
        storage.update_teacher(teacher)
        console.print(f"[green]Teacher updated:[/green] {teacher_id}")


# ==============================================================================
# Exams and Answer Keys
# ==============================================================================


@app.command()
def exam_create(
    class_id: Annotated[str, typer.Argument(help="Class ID")],
    title: Annotated[str, typer.Argument(help="Exam title")],
    held_on: Annotated[
        datetime, typer.Option("--date", "-d", formats=["%Y-%m-%d"], help="Exam date")
    ],
    questions: Annotated[int, typer.Option("--questions", "-q", help="Number of questions")],
) -> None:
    """Create an exam for a class."""
    with _report_errors():
        exam = Exam(
            class_id=class_id, title=title, held_on=held_on.date(), question_count=questions
        )
        _storage().add_exam(exam)
        console.print(f"[green]Exam created:[/green] {exam.id}")


@app.command()
def exam_list(
    class_id: Annotated[
        Optional[str], typer.Option("--class-id", help="Only exams of this class")
    ] = None,
) -> None:
    """List exams."""
    with _report_errors():
        table = Table(title="Exams")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Date")
        table.add_column("Questions", justify="right")
        table.add_column("Graded")

        for exam in _storage().list_exams(class_id):
            table.add_row(
                exam.id,
                exam.title,
                exam.held_on.isoformat(),
                str(exam.question_count),
                "yes" if exam.graded else "no",
            )

        console.print(table)


@app.command()
def exam_delete(exam_id: Annotated[str, typer.Argument(help="Exam ID")]) -> None:
    """Delete an exam with its answer key and answer sheets."""
    with _report_errors():
        _storage().delete_exam(exam_id)
        console.print(f"[green]Exam deleted:[/green] {exam_id}")


@app.command()
def exam_update(
    exam_id: Annotated[str, typer.Argument(help="Exam ID")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="New title")] = None,
    held_on: Annotated[
        Optional[datetime],
        typer.Option("--date", "-d", formats=["%Y-%m-%d"], help="New exam date"),
    ] = None,
    questions: Annotated[
        Optional[int],
        typer.Option("--questions", "-q", help="New number of questions (before a key exists)"),
    ] = None,
) -> None:
    """Edit an exam's title, date or question count."""
    with _report_errors():
        storage = _storage()
        exam = _revise(
            storage.get_exam(exam_id),
            title=title,
            held_on=held_on.date() if held_on else None,
            question_count=questions,
        )
        storage.update_exam(exam)
        console.print(f"[green]Exam updated:[/green] {exam_id}")


@app.command()
def key_create(
    exam_id: Annotated[str, typer.Argument(help="Exam ID")],
    questions: Annotated[
        Optional[int],
        typer.Option("--questions", "-q", help="Number of questions (defaults to the exam's)"),
    ] = None,
) -> None:
    """Create an answer key with every question void."""
    with _report_errors():
        key = AnswerKeyManager(_storage()).create_key(exam_id, questions)
        _display_key(key)


@app.command()
def key_set(
    exam_id: Annotated[str, typer.Argument(help="Exam ID")],
    marks: Annotated[str, typer.Argument(help="Marks, e.g. 'ABCDN' or 'A,B,C,D,N'")],
) -> None:
    """Replace every mark of an exam's answer key."""
    with _report_errors():
        manager = AnswerKeyManager(_storage())
        key = manager.get_key(exam_id)
        key = manager.set_marks(key.id, MarkParser().parse_key(marks))
        _display_key(key)


@app.command()
def key_mark(
    exam_id: Annotated[str, typer.Argument(help="Exam ID")],
    question: Annotated[int, typer.Argument(help="Question number, starting at 1")],
    mark: Annotated[str, typer.Argument(help="A-E, or N to void the question")],
) -> None:
    """Change the expected mark of one question."""
    with _report_errors():
        manager = AnswerKeyManager(_storage())
        key = manager.get_key(exam_id)
        key = manager.set_mark(key.id, question - 1, mark)
        _display_key(key)


@app.command()
def key_resize(
    exam_id: Annotated[str, typer.Argument(help="Exam ID")],
    questions: Annotated[int, typer.Argument(help="New number of questions")],
) -> None:
    """Change the number of questions and re-grade every answer sheet."""
    with _report_errors():
        manager = AnswerKeyManager(_storage())
        key = manager.get_key(exam_id)
        key = manager.resize(key.id, questions)
        _display_key(key)


@app.command()
def key_show(exam_id: Annotated[str, typer.Argument(help="Exam ID")]) -> None:
    """Show an exam's answer key."""
    with _report_errors():
        _display_key(_storage().get_answer_key(exam_id))


# ==============================================================================
# Answer Sheets and Grades
# ==============================================================================


@app.command()
def answers_submit(
    exam_id: Annotated[str, typer.Argument(help="Exam ID")],
    student_id: Annotated[str, typer.Argument(help="Student ID")],
    answers: Annotated[str, typer.Argument(help="Answers, '-' for blank, e.g. 'AB-DE'")],
) -> None:
    """Record and grade a student's answer sheet."""
    with _report_errors():
        submission = SubmissionManager(_storage()).submit(
            exam_id, student_id, MarkParser().parse_answers(answers)
        )
        console.print(
            f"[green]Answers recorded.[/green] Grade: "
            f"{format_grade(submission.result, get_settings().grade_scale)}"
        )


@app.command()
def answers_update(
    exam_id: Annotated[str, typer.Argument(help="Exam ID")],
    student_id: Annotated[str, typer.Argument(help="Student ID")],
    answers: Annotated[str, typer.Argument(help="Answers, '-' for blank, e.g. 'AB-DE'")],
) -> None:
    """Replace a student's answer sheet and re-grade it."""
    with _report_errors():
        submission = SubmissionManager(_storage()).update(
            exam_id, student_id, MarkParser().parse_answers(answers)
        )
        console.print(
            f"[green]Answers updated.[/green] Grade: "
            f"{format_grade(submission.result, get_settings().grade_scale)}"
        )


@app.command()
def regrade(exam_id: Annotated[str, typer.Argument(help="Exam ID")]) -> None:
    """Re-grade every answer sheet of an exam."""
    with _report_errors():
        results = GradingEngine(_storage()).regrade_exam(exam_id)
        console.print(f"[green]Re-graded {len(results)} answer sheet(s).[/green]")


@app.command()
def report(exam_id: Annotated[str, typer.Argument(help="Exam ID")]) -> None:
    """Show the grade of every student who answered an exam."""
    with _report_errors():
        storage = _storage()
        scale = get_settings().grade_scale
        exam = storage.get_exam(exam_id)

        console.print(
            Panel(
                f"[bold]{exam.title}[/bold]\n"
                f"Date: {exam.held_on.isoformat()}\n"
                f"Questions: {exam.question_count}\n"
                f"Graded: {'yes' if exam.graded else 'no'}",
                title="Exam",
            )
        )

        table = Table(title="Grades")
        table.add_column("Student", style="cyan")
        table.add_column("Enrollment")
        table.add_column("Answers")
        table.add_column("Correct", justify="right")
        table.add_column("Grade", justify="right")

        for submission in storage.list_submissions(exam_id):
            student = storage.get_student(submission.student_id)
            result = submission.result
            table.add_row(
                student.name,
                student.enrollment,
                _format_marks(submission.answers),
                f"{result.correct}/{result.gradable}" if result else "-",
                format_grade(result, scale),
            )

        console.print(table)


@app.command()
def summary() -> None:
    """Show record counts."""
    with _report_errors():
        counts = _storage().summary()
        table = Table(title="Summary")
        table.add_column("Records", style="cyan")
        table.add_column("Count", justify="right")
        table.add_row("Classes", str(counts.classes))
        table.add_row("Students", str(counts.students))
        table.add_row("Teachers", str(counts.teachers))
        table.add_row("Exams", str(counts.exams))
        table.add_row("Graded exams", str(counts.graded_exams))
        table.add_row("Answer sheets", str(counts.submissions))
        console.print(table)


def _display_key(key: AnswerKey) -> None:
    """Display an answer key as a panel."""
    console.print(
        Panel(
            f"[bold]{_format_marks(key.marks)}[/bold]\n"
            f"Questions: {key.question_count}  Scorable: {key.gradable_count}",
            title=f"Answer Key {key.id}",
        )
    )


if __name__ == "__main__":
    app()
