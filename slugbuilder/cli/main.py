"""Main CLI entry point for Slugbuilder."""

from pathlib import Path

import click

from slugbuilder.cli.display import (
    print_build_line,
    show_error,
    show_request,
    show_result,
    show_success,
)
from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import SlugbuilderError
from slugbuilder.core.logger.logger import setup_logging
from slugbuilder.models.build import BuildRequest, BuildResult
from slugbuilder.pipeline.buildpacks import BuildpackCache
from slugbuilder.pipeline.lock import CacheLock
from slugbuilder.pipeline.session import BuildSession


def load_settings(config_path: str | None) -> Settings:
    """Load settings from a YAML file, or the default locations."""
    if config_path:
        return Settings.from_yaml(Path(config_path))
    return get_settings()


def parse_env_options(values: tuple[str, ...]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` option values.

    Raises:
        click.BadParameter: If a value has no ``=`` or an empty key.
    """
    env: dict[str, str] = {}
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {value!r}", param_hint="--env")
        env[key] = val
    return env


def execute_build(request: BuildRequest, settings: Settings, quiet: bool = False) -> BuildResult:
    """Run a build session, streaming its log to the console."""
    session = BuildSession(request, settings=settings, output=None if quiet else print_build_line)
    return session.run()


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def main(ctx: click.Context, version: bool) -> None:
    """Slugbuilder - build deployable slugs from git repositories with buildpacks."""
    if version:
        from slugbuilder import __version__

        click.echo(f"Slugbuilder version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument("repo")
@click.argument("git_ref")
@click.option("--url", "-u", "repo_url", help="Fetch URL overriding the one derived from REPO")
@click.option("--buildpack", "-b", "buildpacks", multiple=True, help="Buildpack URL (repeatable)")
@click.option("--env", "-e", "env_vars", multiple=True, help="KEY=VALUE build variable (repeatable)")
@click.option("--slug-name", "-n", help="Name of the slug file")
@click.option("--clear-cache", is_flag=True, help="Wipe buildpack and source caches first")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="YAML config file")
@click.option("--quiet", "-q", is_flag=True, help="Do not stream build output")
def build(
    repo: str,
    git_ref: str,
    repo_url: str | None,
    buildpacks: tuple[str, ...],
    env_vars: tuple[str, ...],
    slug_name: str | None,
    clear_cache: bool,
    config_path: str | None,
    quiet: bool,
) -> None:
    """Build a slug from REPO at GIT_REF.

    Example:
        slugbuilder build heroku/node-js-sample master -b https://github.com/heroku/heroku-buildpack-nodejs.git
    """
    try:
        settings = load_settings(config_path)
    except SlugbuilderError as e:
        show_error("Configuration Error", e.message)
        raise SystemExit(1) from e

    setup_logging(settings.logging)

    request = BuildRequest(
        repo=repo,
        git_ref=git_ref,
        repo_url=repo_url,
        buildpacks=list(buildpacks) or None,
        slug_name=slug_name,
        env=parse_env_options(env_vars),
        clear_cache=clear_cache,
    )
    show_request(request)

    result = execute_build(request, settings, quiet=quiet)
    show_result(result)

    if not result.success:
        raise SystemExit(1)
    show_success("Success", f"Slug written to {result.artifact_path}")


@main.command("clear-cache")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="YAML config file")
def clear_cache(config_path: str | None) -> None:
    """Delete the buildpack, source and compile caches."""
    settings = load_settings(config_path)
    with CacheLock(settings.build.base_dir, timeout=settings.build.cache_lock_timeout):
        BuildpackCache(settings=settings).wipe()
    show_success("Cleanup Complete", f"Cleared caches under {settings.build.base_dir}")


if __name__ == "__main__":
    main()
