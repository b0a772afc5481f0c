"""Command-line interface for the skill engine."""

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import settings
from .errors import BudgetTooSmallError, ConfigurationError, NotFoundError
from .observability import metrics
from .pipeline import SkillPipeline
from .skills.models import Artifact, Budget
from .skills.registry import SkillRegistry

# Set up logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# CLI app
app = typer.Typer(
    name="skill-engine",
    help="Select and assemble review skills for source files",
    add_completion=False,
)
console = Console()


def _skills_option():
    return typer.Option(
        None, "--skills", "-s", help="Skill folder, skills root or YAML file (repeatable)"
    )


def _load_registry(skills: Optional[List[Path]]) -> SkillRegistry:
    sources = skills or [settings.resolve_path(settings.skills_dir)]
    try:
        return SkillRegistry.load(sources)
    except ConfigurationError as e:
        console.print(f"[bold red]Invalid skill configuration:[/bold red] {e}")
        raise typer.Exit(1)


def _read_artifact(path: Path) -> Artifact:
    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    return Artifact.from_path(path)


@app.command()
def config():
    """Show current configuration."""
    console.print(Panel("Current Configuration", style="bold blue"))

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("SKILL_ENGINE_SKILLS_DIR", str(settings.skills_dir))
    table.add_row("SKILL_ENGINE_DEFAULT_BUDGET", str(settings.default_budget))
    table.add_row("SKILL_ENGINE_SIZE_UNIT", settings.size_unit)
    table.add_row("SKILL_ENGINE_MAX_WORKERS", str(settings.max_workers))
    table.add_row("SKILL_ENGINE_LOG_LEVEL", settings.log_level)

    console.print(table)


@app.command("list")
def list_skills(skills: Optional[List[Path]] = _skills_option()):
    """List registered skills."""
    registry = _load_registry(skills)

    table = Table(title=f"Skills ({len(registry)})")
    table.add_column("Skill", style="cyan", no_wrap=True)
    table.add_column("Enabled")
    table.add_column("Triggers", style="green")
    table.add_column("Modules", justify="right")
    table.add_column("Description")

    for skill in registry.all():
        triggers = skill.triggers
        summary = ", ".join(
            f"{label}={len(values)}"
            for label, values in (
                ("paths", triggers.paths),
                ("lexical", triggers.lexical),
                ("annotations", triggers.annotations),
            )
            if values
        )
        table.add_row(
            skill.id,
            "yes" if skill.enabled else "[yellow]no[/yellow]",
            summary,
            str(len(skill.modules)),
            skill.description,
        )

    console.print(table)


@app.command()
def validate(skills: Optional[List[Path]] = _skills_option()):
    """Load and validate skill descriptors."""
    registry = _load_registry(skills)
    modules = sum(1 + len(s.modules) for s in registry.all())
    console.print(f"[green]OK:[/green] {len(registry)} skills, {modules} modules")


@app.command()
def show(
    skill_id: str = typer.Argument(..., help="Skill id (name@version) or name"),
    skills: Optional[List[Path]] = _skills_option(),
):
    """Show one skill's triggers and modules."""
    registry = _load_registry(skills)
    try:
        skill = registry.lookup(skill_id)
    except NotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(Panel(f"{skill.id}\n{skill.description}", style="bold blue"))
    table = Table()
    table.add_column("Module", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Triggers", style="green")
    table.add_column("Concerns")

    pipeline = SkillPipeline(registry)
    for module in (skill.core,) + skill.modules:
        table.add_row(
            module.id,
            str(pipeline.cache.module_size(skill.id, module)),
            ", ".join(module.triggers) or "(always)",
            ", ".join(module.concerns),
        )
    console.print(table)


@app.command("match")
def match_file(
    file: Path = typer.Argument(..., help="Source file to evaluate"),
    skills: Optional[List[Path]] = _skills_option(),
):
    """Show which skills a file triggers."""
    registry = _load_registry(skills)
    artifact = _read_artifact(file)
    results = SkillPipeline(registry).match(artifact)

    if not results:
        console.print("[yellow]No skills matched.[/yellow]")
        return

    table = Table(title=f"Matches for {artifact.path} ({artifact.language})")
    table.add_column("Skill", style="cyan", no_wrap=True)
    table.add_column("Score", justify="right")
    table.add_column("Fired triggers", style="green")

    for result in results:
        fired = "; ".join(f"{f.category.value}:{f.rule}" for f in result.fired)
        table.add_row(result.skill_id, str(result.score), fired)

    console.print(table)


@app.command()
def compose(
    file: Path = typer.Argument(..., help="Source file to assemble context for"),
    budget: Optional[int] = typer.Option(None, "--budget", "-b", min=1, help="Maximum context size"),
    as_json: bool = typer.Option(False, "--json", help="Print text and manifest as JSON"),
    manifest_only: bool = typer.Option(False, "--manifest", "-m", help="Print only the manifest"),
    skills: Optional[List[Path]] = _skills_option(),
):
    """Assemble the review context for a file."""
    registry = _load_registry(skills)
    artifact = _read_artifact(file)
    max_size = settings.default_budget if budget is None else budget

    try:
        context = SkillPipeline(registry).review(artifact, Budget(max_size))
    except BudgetTooSmallError as e:
        console.print(f"[bold red]Budget too small:[/bold red] {e}")
        raise typer.Exit(2)

    if as_json:
        payload = {"artifact": artifact.path, "manifest": context.manifest.to_dict()}
        if not manifest_only:
            payload["text"] = context.text
        typer.echo(json.dumps(payload, indent=2))
        return

    manifest = context.manifest
    if not manifest_only:
        typer.echo(context.text)

    console.print(
        f"\n[bold]{len(manifest.included)} modules[/bold], "
        f"{manifest.total_size}/{manifest.budget} used"
    )
    for item in manifest.skipped_for_budget:
        console.print(f"  [yellow]skipped for budget:[/yellow] {item.key} ({item.size})")
    for item in manifest.skipped_duplicate:
        console.print(f"  [yellow]skipped duplicate:[/yellow] {item.key} (of {item.duplicate_of})")


@app.command()
def batch(
    files: List[Path] = typer.Argument(..., help="Source files to review"),
    budget: Optional[int] = typer.Option(
        None, "--budget", "-b", min=1, help="Maximum context size per file"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Worker threads"),
    show_metrics: bool = typer.Option(False, "--metrics", help="Print Prometheus metrics afterwards"),
    skills: Optional[List[Path]] = _skills_option(),
):
    """Assemble contexts for many files in parallel and summarise them."""
    registry = _load_registry(skills)
    artifacts = [_read_artifact(f) for f in files]
    max_size = settings.default_budget if budget is None else budget
    results = SkillPipeline(registry).review_batch(artifacts, Budget(max_size), workers)

    table = Table(title=f"Batch ({len(results)} files)")
    table.add_column("File", style="cyan")
    table.add_column("Skills", no_wrap=True)
    table.add_column("Included", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Size", justify="right")

    for result in results:
        if not result.ok:
            table.add_row(result.artifact.path, f"[red]{result.error}[/red]", "-", "-", "-")
            continue
        manifest = result.context.manifest
        skipped = len(manifest.skipped_for_budget) + len(manifest.skipped_duplicate)
        table.add_row(
            result.artifact.path,
            ", ".join(manifest.included_skills) or "-",
            str(len(manifest.included)),
            str(skipped),
            f"{manifest.total_size}/{manifest.budget}",
        )

    console.print(table)
    if show_metrics:
        typer.echo(metrics.to_prometheus())

    if any(not r.ok for r in results):
        raise typer.Exit(2)


if __name__ == "__main__":
    app()
