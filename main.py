"""
CLI entry point for the fusion team builder.

Commands:
- fusions: score every fusion of a roster and list the best variants
- teams:   score the roster, then search for the best six-member teams
"""

import asyncio
import sys
import threading
from pathlib import Path
from typing import List, Optional

import nest_asyncio
import typer
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

import config as defaultConfig
from fusion_calculator import FusionCalculator, FusionFilter
from pokemon_data import load_reference_data
from team import TaskController, TeamBuildConfig
from team_builder import TeamBuilder

console = Console()

app = typer.Typer(
    name="fusion-teambuilder",
    help="Score Pokemon fusions and build the best six-member teams",
    add_completion=False,
)

DEFAULT_DATA = Path(__file__).parent / "data" / "sample_reference.yaml"


def _load_reference(data: Path):
    try:
        return load_reference_data(data)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


def _resolve_roster(reference, roster: Optional[str]) -> list:
    if not roster:
        members = reference.all_pokemon()
    else:
        members = []
        for name in roster.split(","):
            name = name.strip()
            if not name:
                continue
            pokemon = reference.get_pokemon(name)
            if pokemon is None:
                console.print(f"[yellow]Unknown Pokemon '{name}', skipping.[/]")
                continue
            members.append(pokemon)
    if not members:
        console.print("[red]Error: Roster is empty![/]")
        raise typer.Exit(1)
    return members


def _start_timer(task: TaskController, time_limit: Optional[float]):
    if not time_limit:
        return None
    timer = threading.Timer(time_limit, task.cancel)
    timer.daemon = True
    timer.start()
    return timer


def _score_roster(calculator: FusionCalculator, roster: list, hidden_penalty: bool, task: TaskController) -> list:
    with Progress(console=console, transient=True) as progress:
        bar = progress.add_task("Scoring fusions", total=len(roster) * len(roster))

        def on_progress(completed, total):
            progress.update(bar, completed=completed, total=total)

        pool = asyncio.run(calculator.score_all_pairs(
            roster, hidden_penalty=hidden_penalty, task=task, progress_callback=on_progress))
    pool.sort()
    return pool.to_list()


def _find_pinned(text: str, candidates: list):
    """HEAD+BODY or HEAD+BODY:ABILITY -> best matching candidate."""
    pair, _, ability = text.partition(":")
    head, _, body = pair.partition("+")
    head, body, ability = head.strip().lower(), body.strip().lower(), ability.strip().lower()
    for c in candidates:
        if c.head_name.lower() != head or c.body_name.lower() != body:
            continue
        if ability and c.ability.lower() != ability:
            continue
        return c
    return None


def _fusion_table(title: str, fusions: list) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Head", style="cyan")
    table.add_column("Body", style="cyan")
    table.add_column("Typing")
    table.add_column("Ability", style="magenta")
    table.add_column("Role")
    table.add_column("BST", justify="right")
    table.add_column("Score", justify="right", style="green")
    for i, f in enumerate(fusions, 1):
        table.add_row(str(i), f.head_name.capitalize(), f.body_name.capitalize(), f.typing,
                      f.ability, f.role, str(f.bst), f"{f.score:.3f}")
    return table


# =============================================================================
# COMMANDS
# =============================================================================

@app.command()
def fusions(
    data: Path = typer.Option(DEFAULT_DATA, "--data", "-d", help="Reference data YAML file"),
    roster: Optional[str] = typer.Option(None, "--roster", "-r", help="Comma-separated Pokemon names (default: all)"),
    top: int = typer.Option(20, "--top", "-n", help="How many fusions to show"),
    hidden_penalty: bool = typer.Option(defaultConfig.HIDDEN_ABILITY_PENALTY, "--hidden-penalty",
                                        help="Score hidden abilities at 80%"),
    type_filter: Optional[str] = typer.Option(None, "--type", help="Only fusions whose typing contains this"),
    ability_filter: Optional[str] = typer.Option(None, "--ability", help="Only fusions whose ability contains this"),
    explain: bool = typer.Option(False, "--explain", help="Print the scoring breakdown of the best fusion"),
):
    """Score every fusion of the roster and list the best variants."""
    reference = _load_reference(data)
    members = _resolve_roster(reference, roster)
    calculator = FusionCalculator(reference)

    results = _score_roster(calculator, members, hidden_penalty, TaskController())
    results = FusionFilter(type_filter, ability_filter).apply(results)
    console.print(f"Generated [bold]{len(results)}[/] fusion variants.")
    if not results:
        return

    console.print(_fusion_table("Top Fusions", results[:top]))
    if explain:
        console.print(calculator.get_detailed_breakdown(results[0]))


@app.command()
def teams(
    data: Path = typer.Option(DEFAULT_DATA, "--data", "-d", help="Reference data YAML file"),
    roster: Optional[str] = typer.Option(None, "--roster", "-r", help="Comma-separated Pokemon names (default: all)"),
    mode: str = typer.Option(defaultConfig.ALGORITHM_MODE, "--mode", "-m",
                             help="speed, balanced, quality or maximum"),
    num_teams: int = typer.Option(defaultConfig.NUM_TEAMS, "--teams", "-t", help="Teams to build"),
    species: int = typer.Option(defaultConfig.SPECIES_CLAUSE, "--species", help="Species clause 0..100"),
    types: int = typer.Option(defaultConfig.TYPE_CLAUSE, "--types", help="Type sharing clause 0..100"),
    self_fusion: int = typer.Option(defaultConfig.SELF_FUSION_CLAUSE, "--self-fusion", help="Self-fusion clause 0..100"),
    weakness_penalty: bool = typer.Option(defaultConfig.WEAKNESS_OVERLAP_CHECK, "--weakness-penalty",
                                          help="Penalize weaknesses shared by 3+ members"),
    pin: Optional[List[str]] = typer.Option(None, "--pin", "-p", help="Force HEAD+BODY[:ABILITY] into every team"),
    hidden_penalty: bool = typer.Option(defaultConfig.HIDDEN_ABILITY_PENALTY, "--hidden-penalty",
                                        help="Score hidden abilities at 80%"),
    time_limit: Optional[float] = typer.Option(None, "--time-limit", help="Cancel the search after N seconds"),
):
    """Score the roster, then search for the best teams."""
    try:
        build_config = TeamBuildConfig(species, types, self_fusion, mode, num_teams, weakness_penalty)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    reference = _load_reference(data)
    members = _resolve_roster(reference, roster)
    calculator = FusionCalculator(reference)
    task = TaskController()

    candidates = _score_roster(calculator, members, hidden_penalty, task)

    pinned = []
    for pin_text in pin or []:
        found = _find_pinned(pin_text, candidates)
        if found is None:
            console.print(f"[yellow]No fusion matches pin '{pin_text}', skipping.[/]")
        else:
            pinned.append(found)

    builder = TeamBuilder()
    timer = _start_timer(task, time_limit)
    with Progress(console=console, transient=True) as progress:
        bar = progress.add_task(f"Building teams ({build_config.mode.value})", total=None)

        def on_progress(completed, total):
            progress.update(bar, completed=completed, total=total)

        results = asyncio.run(builder.build_teams(candidates, pinned, build_config, task, on_progress))
    if timer:
        timer.cancel()

    if not results:
        console.print("[yellow]Warning: No valid teams found![/]")
        return

    for i, team in enumerate(results, 1):
        ordered = sorted(team.members, key=lambda f: f.score, reverse=True)
        title = f"Team {i} | score {team.total_score:.3f} (div: {team.delta:+.2f})"
        console.print(_fusion_table(title, ordered))
    if task.is_cancelled():
        console.print("[yellow]Search was cancelled, results are the best found so far.[/]")


def run():
    # Allows asyncio.run from inside an already running event loop (notebooks, IDE consoles)
    nest_asyncio.apply()
    try:
        app()
    except Exception as e:
        print(f"Fatal application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
