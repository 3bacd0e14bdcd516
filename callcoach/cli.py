import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .core import config
from .core.analysis import build_call_record, run_analysis_or_fallback
from .core.llm import LLMClient
from .core.scripts import ScriptNotFound, get_active_script, list_scripts, update_script
from .core.storage import get_call, init_store, insert_call, list_calls, open_store

app = typer.Typer(help="CallCoach CLI")
console = Console()


def _store():
    store = open_store()
    init_store(store)
    return store


@app.callback()
def main(log_level: str = typer.Option(config.LOG_LEVEL, help="Logging level")):
    config.setup_logging(log_level)


@app.command()
def analyze(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Transcript text file"),
            agent: str = typer.Option("", "--agent", "-a", help="Agent name"),
            notes: str = typer.Option("", "--notes", "-n", help="Manager notes")):
    store = _store()
    transcript = path.read_text(encoding="utf-8")
    script = get_active_script(store)
    result = run_analysis_or_fallback(LLMClient(), agent, notes, transcript, script)
    if not result.parsed:
        console.print("[yellow]Model response unavailable or unparseable; stored fallback analysis[/yellow]")
    record = insert_call(store, build_call_record(result, agent, notes, transcript, path.name))

    a = record.analysis
    console.print(f"[bold green]Stored call {record.id}[/bold green] for {record.agent_name}")
    console.print(f"Quality {a.quality_score} ({record.sentiment}), outcome {a.appointment_outcome}, "
                  f"conversion {a.conversion_likelihood}, script adherence {a.script_adherence:.0%}")
    console.print(a.coaching_summary)


@app.command("list-calls")
def list_calls_cmd():
    rows = list_calls(_store())
    if not rows:
        console.print("No calls analyzed yet.")
        raise typer.Exit(0)
    table = Table(title="Calls")
    table.add_column("ID", style="cyan")
    table.add_column("Agent", style="magenta")
    table.add_column("Score")
    table.add_column("Sentiment")
    table.add_column("Outcome")
    table.add_column("Created")
    for r in rows:
        table.add_row(str(r.id), r.agent_name, str(r.analysis.quality_score), r.sentiment,
                      r.analysis.appointment_outcome, r.created_at)
    console.print(table)


@app.command()
def show(call_id: int):
    record = get_call(_store(), call_id)
    if record is None:
        console.print(f"[red]Call {call_id} not found[/red]")
        raise typer.Exit(1)
    console.print_json(json.dumps(record.to_dict()))


@app.command()
def scripts():
    table = Table(title="Scripts")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Active")
    for s in list_scripts(_store()):
        table.add_row(s.id, s.name, "yes" if s.active else "")
    console.print(table)


@app.command("activate-script")
def activate_script(script_id: str):
    try:
        script = update_script(_store(), script_id, active=True)
    except ScriptNotFound:
        console.print(f"[red]Script {script_id} not found[/red]")
        raise typer.Exit(1)
    console.print(f"Activated script [cyan]{script.id}[/cyan] ({script.name})")


@app.command()
def serve(host: str = typer.Option("0.0.0.0"), port: int = typer.Option(config.PORT)):
    import uvicorn
    uvicorn.run("server.app:app", host=host, port=port)


if __name__ == "__main__":
    app()
