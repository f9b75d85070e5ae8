# ABOUTME: Provides a CLI that scores prompts and replays practice sessions through the engine.
# ABOUTME: Renders scores, events, guidance and learning reports as rich tables.

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from src.prompt_coach.coach import LearningCoach
from src.prompt_coach.config import EngineConfig, load_engine_config
from src.prompt_coach.quality_scoring import QualityScorer
from src.prompt_coach.reporting import build_learning_report
from src.prompt_coach.schemas import SessionContext, SuccessCriteria
from src.prompt_coach.vocabulary import DEFAULT_VOCABULARY, load_vocabulary

console = Console()
app = typer.Typer(help="Score children's prompts and replay practice sessions through the learning engine.")

ENERGY_LEVELS = ("low", "medium", "high")
SESSION_LENGTHS = ("short", "medium", "long")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine log records.")) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[RichHandler(console=console)])


def _load_config(config: Optional[Path]) -> EngineConfig:
    if config is None:
        return EngineConfig()
    if not config.exists():
        console.print(f"[red]Missing config at {config}[/red]")
        raise typer.Exit(code=1)
    try:
        return load_engine_config(config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc


@app.command()
def score(
    text: str = typer.Argument(..., help="Prompt text to score."),
    vocabulary: Optional[Path] = typer.Option(None, "--vocabulary", help="YAML keyword tables to use instead of the defaults."),
    max_suggestions: int = typer.Option(5, "--max-suggestions", help="Number of suggestions to show."),
) -> None:
    """
    Score a single prompt and list improvement suggestions.
    """
    vocab = DEFAULT_VOCABULARY
    if vocabulary is not None:
        try:
            vocab = load_vocabulary(vocabulary)
        except (OSError, ValueError) as exc:
            raise typer.BadParameter(str(exc), param_hint="--vocabulary") from exc

    analysis = QualityScorer(vocab).analyze(text, max_suggestions)
    result = analysis.score

    console.rule("[bold blue]Prompt Quality[/bold blue]")
    console.print(f"[bold]Overall:[/] {result.overall}  [bold]Confidence:[/] {result.confidence:.2f}")
    console.print(f"[bold]Level:[/] {analysis.child_level}  [bold]Weakest:[/] {analysis.weakest_dimension}")

    dims = Table(show_header=True, header_style="bold magenta")
    dims.add_column("Dimension")
    dims.add_column("Score")
    for name, value in result.dimensions.items():
        dims.add_row(name, f"{value:.0f}")
    console.print(dims)

    if analysis.suggestions:
        tips = Table(show_header=True, header_style="bold magenta")
        tips.add_column("Priority")
        tips.add_column("Category")
        tips.add_column("Suggestion")
        tips.add_column("Example")
        for s in analysis.suggestions:
            tips.add_row(s.priority.value, s.category, s.suggested_text, s.example or "")
        console.print(tips)


@app.command()
def replay(
    prompts: Path = typer.Option(..., "--prompts", exists=True, dir_okay=False, help="Text file with one prompt per line."),
    user_id: str = typer.Option("demo-user", "--user-id", help="Learner identifier."),
    template_id: str = typer.Option("daily-life-template", "--template-id", help="Template the prompts belong to."),
    time_spent: float = typer.Option(60.0, "--time-spent", help="Seconds spent per attempt."),
    minimum_score: Optional[float] = typer.Option(None, "--minimum-score", help="Stage pass score; defaults to the mastery threshold."),
    energy: str = typer.Option("medium", "--energy", help="Session energy level: low, medium or high."),
    session_length: str = typer.Option("medium", "--session-length", help="Session length: short, medium or long."),
    parent_present: bool = typer.Option(False, "--parent-present", help="A parent is practicing along."),
    config: Optional[Path] = typer.Option(None, "--config", help="Engine config YAML."),
) -> None:
    """
    Feed each prompt as one attempt (stage-1, stage-2, ...) and show what the engine derives.
    """
    if energy not in ENERGY_LEVELS:
        raise typer.BadParameter(f"Expected one of: {', '.join(ENERGY_LEVELS)}", param_hint="--energy")
    if session_length not in SESSION_LENGTHS:
        raise typer.BadParameter(f"Expected one of: {', '.join(SESSION_LENGTHS)}", param_hint="--session-length")

    engine_config = _load_config(config)
    coach = LearningCoach(engine_config)
    criteria = SuccessCriteria(
        minimum_score=engine_config.mastery_threshold if minimum_score is None else minimum_score
    )
    context = SessionContext(energy_level=energy, session_length=session_length, parent_presence=parent_present)

    lines = [line.strip() for line in prompts.read_text(encoding="utf-8").splitlines() if line.strip()]
    if not lines:
        console.print(f"[red]No prompts found in {prompts}[/red]")
        raise typer.Exit(code=1)

    console.rule("[bold blue]Practice Replay[/bold blue]")
    attempts_table = Table(show_header=True, header_style="bold magenta")
    attempts_table.add_column("Stage", no_wrap=True)
    attempts_table.add_column("Score")
    attempts_table.add_column("Completed")
    attempts_table.add_column("Events")

    guidance = None
    for index, line in enumerate(lines, start=1):
        result = coach.submit(
            user_id,
            template_id,
            f"stage-{index}",
            line,
            time_spent,
            criteria=criteria,
            session_context=context,
        )
        guidance = result.guidance
        attempts_table.add_row(
            result.attempt.stage_id,
            str(result.attempt.overall),
            "yes" if result.attempt.completed else "no",
            ", ".join(e.type.value for e in result.events) or "-",
        )
    console.print(attempts_table)

    if guidance is not None:
        difficulty = guidance.difficulty_config
        analytics = guidance.session_analytics
        console.print()
        console.print("[bold green]Guidance[/bold green]")
        console.print(f"[bold]Trend:[/] {analytics.performance_trend:+.2f}  "
                      f"[bold]Frustration:[/] {analytics.frustration_level:.0f}  "
                      f"[bold]Engagement:[/] {analytics.engagement_level:.0f}")
        console.print(f"[bold]Difficulty:[/] {difficulty.adaptive_level:.1f} ({difficulty.example_complexity})  "
                      f"[bold]Hints:[/] {difficulty.hint_frequency}  "
                      f"[bold]Strictness:[/] {difficulty.evaluation_strict:.2f}")
        console.print(f"[bold]Encouragement:[/] {guidance.learning_preferences.encouragement}  "
                      f"[bold]Pace:[/] {guidance.learning_preferences.pace}")

    report = build_learning_report(coach.store, user_id)
    console.print()
    console.print("[bold yellow]Report[/bold yellow]")
    console.print(f"[bold]Average score:[/] {report.average_score:.1f}  "
                  f"[bold]Trend:[/] {report.improvement_trend.direction}")
    for tip in report.recommendations:
        console.print(f"- {tip}")

    unlocked = coach.achievements.get_user_achievements(user_id)
    if unlocked:
        console.print(f"[bold]Achievements:[/] {', '.join(a.id for a in unlocked)}")


if __name__ == "__main__":
    app()
