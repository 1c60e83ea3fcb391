"""Display components for CLI using Rich."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from slugbuilder.models.build import BuildRequest, BuildResult
from slugbuilder.pipeline.output import TITLE_PREFIX

console = Console()


def print_build_line(line: str) -> None:
    """Print one build log line, highlighting stage titles."""
    if line.startswith(TITLE_PREFIX):
        console.print(f"[bold cyan]{escape(line)}[/]", highlight=False)
    else:
        console.print(escape(line), highlight=False)


def show_success(title: str, message: str) -> None:
    """Display a success message."""
    console.print()
    console.print(
        Panel(
            f"[bold green]{escape(message)}[/]",
            title=f"[bold]{escape(title)}[/]",
            border_style="green",
        )
    )


def show_error(title: str, message: str) -> None:
    """Display an error message."""
    console.print()
    console.print(
        Panel(
            f"[bold red]{escape(message)}[/]",
            title=f"[bold]{escape(title)}[/]",
            border_style="red",
        )
    )


def show_request(request: BuildRequest) -> None:
    """Display a summary of the build request before building.

    Args:
        request: The build request.
    """
    console.print()
    table = Table(title="[bold]Build Request[/]", show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Repository", escape(request.repo))
    table.add_row("Git Reference", escape(request.git_ref))
    if request.repo_url:
        table.add_row("URL", escape(request.repo_url))
    if request.buildpacks:
        table.add_row("Buildpacks", escape(", ".join(request.buildpacks)))
    if request.env:
        table.add_row("Environment", escape(", ".join(sorted(request.env))))
    if request.slug_name:
        table.add_row("Slug Name", escape(request.slug_name))
    table.add_row("Clear Cache", str(request.clear_cache))

    console.print(Panel(table, border_style="yellow"))
    console.print()


def _seconds(value: float | None) -> str:
    return "-" if value is None else f"{value:.2f}s"


def show_result(result: BuildResult) -> None:
    """Display the outcome of a build.

    Args:
        result: The build result.
    """
    console.print()
    table = Table(title="[bold]Build Result[/]", show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    status = "[green]succeeded[/]" if result.success else "[red]failed[/]"
    table.add_row("Status", status)
    table.add_row("Request ID", result.request_id)
    if result.sha:
        table.add_row("Commit", result.sha)
    table.add_row("Setup", _seconds(result.setup_duration))
    table.add_row("Build", _seconds(result.build_duration))
    table.add_row("Compile", _seconds(result.compile_duration))
    table.add_row("Package", _seconds(result.package_duration))
    if result.artifact_path:
        table.add_row("Slug", escape(str(result.artifact_path)))
        table.add_row("Slug Size", f"{result.artifact_size_mb} MB")
    if result.process_types:
        table.add_row("Process Types", escape(", ".join(result.process_types)))
    if not result.success:
        table.add_row("Failed Stage", result.stage.value)
        table.add_row("Error", escape(f"{result.error_type}: {result.error_message}"))

    console.print(Panel(table, border_style="green" if result.success else "red"))
