import datetime as dt

import typer
from rich import print
from rich.markup import escape
from daily_wrap.config.settings import get_settings
from daily_wrap.db.database import init_db
from daily_wrap.errors import BriefingNotFound
from daily_wrap.services.persistence import get_briefing_by_date, list_briefing_dates
from daily_wrap.tools.lock import RunLock
from daily_wrap.tools.logging_setup import setup_logging
from daily_wrap.workflows.export_briefing import export_briefing, format_briefing_text
from daily_wrap.workflows.run_pipeline import run_pipeline, today_in_offset
setup_logging()


app = typer.Typer(help="Daily news briefing pipeline")


def _parse_date(value: str | None) -> dt.date | None:
    if not value:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


@app.command()
def doctor():
    """Check config + DB connectivity."""
    s = get_settings()
    print("[bold green]Config loaded[/bold green]")
    print("Generation:", "offline (dry run)" if s.offline else f"OpenAI | Model: {s.openai_model}")
    print("Database:", s.database_url)
    print("Revalidate:", s.revalidate_url or "(disabled)")
    init_db()
    print("[bold green]DB OK[/bold green]")


@app.command()
def run(
    date: str = typer.Option(None, "--date", help="Briefing date (YYYY-MM-DD), defaults to today in KST."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use canned output instead of the generation service."),
):
    """Run one pipeline execution."""
    s = get_settings()
    if dry_run:
        s.dry_run = True
    briefing_date = _parse_date(date)

    try:
        with RunLock():
            init_db()
            result = run_pipeline(briefing_date)
    except RuntimeError as e:
        print(f"[bold red]Run failed[/bold red]: {escape(str(e))}")
        raise SystemExit(1)

    stats = result.stats
    print(
        f"fetched={stats.fetched} after_dedup={stats.after_dedup} "
        f"summarized={stats.summarized} saved={stats.saved}"
    )
    if not result.success:
        print(f"[bold red]Pipeline failed[/bold red] for {result.date}:")
        for err in result.errors:
            print(f"  - {escape(err)}")
        raise SystemExit(1)

    print(f"[bold green]Run complete[/bold green] briefing={result.briefing_id} date={result.date}")


@app.command()
def show(date: str = typer.Argument(None, help="Briefing date (YYYY-MM-DD), defaults to today.")):
    """Print a stored briefing."""
    s = get_settings()
    init_db()
    briefing_date = _parse_date(date) or today_in_offset(s.timezone_offset_hours)
    try:
        briefing = get_briefing_by_date(briefing_date)
    except BriefingNotFound as e:
        print(f"[bold red]{e}[/bold red]")
        raise SystemExit(1)
    print(escape(format_briefing_text(briefing)))


@app.command()
def dates(limit: int = typer.Option(30, help="How many dates to list.")):
    """List dates that have a published briefing."""
    init_db()
    found = list_briefing_dates(limit)
    if not found:
        print("No briefings stored yet.")
        return
    for d in found:
        print(d.isoformat())


@app.command()
def export(
    date: str = typer.Argument(None, help="Briefing date (YYYY-MM-DD), defaults to today."),
    compact: bool = typer.Option(False, "--compact", help="Headlines only, top 3 per section."),
    out: str = typer.Option(None, "--out", help="Output directory."),
):
    """Write a stored briefing as JSON + plain text."""
    s = get_settings()
    init_db()
    briefing_date = _parse_date(date) or today_in_offset(s.timezone_offset_hours)
    try:
        info = export_briefing(briefing_date, out_dir=out or s.export_dir, compact=compact)
    except BriefingNotFound as e:
        print(f"[bold red]{e}[/bold red]")
        raise SystemExit(1)
    print(escape(info["text"]))
    print(f"[bold green]Wrote[/bold green] {info['json_path']} and {info['text_path']}")


if __name__ == "__main__":
    app()
