"""Command line entry point for the review bot."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .analysis.client import ReviewClient
from .analysis.schema import parse_service_response
from .analysis.transport import AnalysisTransport, HTTPAnalysisTransport, OpenAIAnalysisTransport
from .config import (
    AppConfig,
    AnalysisConfig,
    ConfigManager,
    GITHUB_TOKEN_ENV_VAR,
    setup_logging,
)
from .diff.acquirer import DiffAcquirer
from .exceptions import AutoCodeReviewError, ConfigurationError, ExitCode
from .github.client import GitHubClient
from .github.publisher import CommentPublisher, NullPublisher
from .pipeline import ReviewPipeline
from .report.assembler import ReportAssembler, wrap_report


logger = logging.getLogger(__name__)

app = typer.Typer(
    name="autocodereview",
    help="AutoCodeReview - AI review comments for pull requests",
    add_completion=False,
    no_args_is_help=True,
)

# Diagnostics go to stderr so stdout stays clean for rendered reports.
console = Console(stderr=True)


def build_transport(analysis: AnalysisConfig) -> AnalysisTransport:
    """Create the analysis transport selected by the configuration."""
    if analysis.backend == "openai":
        return OpenAIAnalysisTransport(
            model=analysis.model,
            timeout=analysis.timeout_seconds,
            base_url=analysis.endpoint,
        )
    return HTTPAnalysisTransport(endpoint=analysis.endpoint, timeout=analysis.timeout_seconds)


def _load_config(config_path: Optional[str]) -> ConfigManager:
    try:
        config = AppConfig.from_yaml(config_path) if config_path else AppConfig.from_env()
    except (ValueError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Invalid configuration value: {e}") from e
    return ConfigManager(config)


def _fail(error: Exception, verbose: bool) -> None:
    """Print a one-line diagnostic and exit with the error's code."""
    exit_code = getattr(error, "exit_code", ExitCode.UNEXPECTED)
    console.print(f"[bold red]Error ({exit_code.name.lower()}):[/bold red] {error}")
    if verbose:
        console.print_exception()
    raise typer.Exit(code=int(exit_code))


@app.command(name="run")
def run(
    base: Optional[str] = typer.Option(None, "--base", "-b", help="Base branch (default: main)"),
    workdir: Optional[Path] = typer.Option(None, "--workdir", "-w", help="Repository working directory"),
    diff_path: Optional[Path] = typer.Option(None, "--diff-path", help="Where the raw diff is saved or read"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Report artifact path"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML configuration file"),
    max_chunk_size: Optional[int] = typer.Option(None, "--max-chunk-size", help="Maximum characters per analysis request"),
    retry_count: Optional[int] = typer.Option(None, "--retry-count", help="Retries for transient analysis failures"),
    retry_backoff: Optional[float] = typer.Option(None, "--retry-backoff", help="Initial retry delay in seconds"),
    max_workers: Optional[int] = typer.Option(None, "--max-workers", help="Concurrent analysis requests"),
    repository: Optional[str] = typer.Option(None, "--repository", help="Repository as owner/name"),
    pr_number: Optional[int] = typer.Option(None, "--pr-number", help="Pull request number"),
    diff_from_file: bool = typer.Option(False, "--diff-from-file", help="Parse --diff-path instead of running git"),
    no_publish: bool = typer.Option(False, "--no-publish", help="Write the report without posting it"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show tracebacks and debug logging"),
):
    """
    Review the current branch and post the report on the pull request.

    The analysis credential is read from ANALYSIS_API_KEY and the GitHub
    token from GITHUB_TOKEN; neither can be passed on the command line.
    """
    try:
        manager = _load_config(config)
        manager.update_config(**{
            "run.base_branch": base,
            "run.working_dir": str(workdir) if workdir else None,
            "run.diff_path": str(diff_path) if diff_path else None,
            "run.output_path": str(output) if output else None,
            "analysis.max_chunk_size": max_chunk_size,
            "analysis.retry_count": retry_count,
            "analysis.retry_backoff": retry_backoff,
            "analysis.max_workers": max_workers,
            "github.repository": repository,
            "github.pr_number": pr_number,
            "logging.level": "DEBUG" if verbose else None,
        })
        context = manager.build_run_context(diff_from_file=diff_from_file, publish=not no_publish)
        settings = manager.config

        github_token = os.environ.get(GITHUB_TOKEN_ENV_VAR, "").strip()
        setup_logging(settings.logging, secrets=[context.credential, github_token])

        if context.target is not None:
            if not github_token:
                raise ConfigurationError(f"{GITHUB_TOKEN_ENV_VAR} is required to publish the review")
            poster = GitHubClient(
                github_token,
                base_url=settings.github.api_base_url,
                timeout=settings.github.timeout_seconds,
            )
            publisher = CommentPublisher(poster, context.target)
        else:
            publisher = NullPublisher()

        analysis = settings.analysis
        pipeline = ReviewPipeline(
            context=context,
            acquirer=DiffAcquirer(
                context.working_dir,
                base_branch=context.base_branch,
                remote=settings.run.remote or None,
            ),
            client=ReviewClient(
                build_transport(analysis),
                max_chunk_size=analysis.max_chunk_size,
                retry_count=analysis.retry_count,
                retry_backoff=analysis.retry_backoff,
                max_workers=analysis.max_workers,
                max_findings=analysis.max_findings,
            ),
            publisher=publisher,
        )
        result = pipeline.run()
    except AutoCodeReviewError as e:
        _fail(e, verbose)

    status = "posted" if result.published else "written"
    console.print(f"[green]Review {status}:[/green] {result.report_path}")
    if result.degraded_chunks:
        console.print(f"[yellow]{result.degraded_chunks} chunk(s) could not be analyzed[/yellow]")


@app.command(name="diff")
def diff(
    base: str = typer.Option("main", "--base", "-b", help="Base branch"),
    workdir: Path = typer.Option(Path("."), "--workdir", "-w", help="Repository working directory"),
    diff_path: Path = typer.Option(Path("diffs.txt"), "--diff-path", help="Where to save the raw diff"),
    remote: str = typer.Option("origin", "--remote", help="Remote holding the base branch"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show tracebacks"),
):
    """
    Compute the diff against the base branch and save it.
    """
    try:
        document = DiffAcquirer(workdir, base_branch=base, remote=remote or None).acquire(diff_path)
    except AutoCodeReviewError as e:
        _fail(e, verbose)

    table = Table(title=f"Changes against {base}")
    table.add_column("File")
    table.add_column("Change")
    table.add_column("+", justify="right")
    table.add_column("-", justify="right")
    for file_diff in document.files:
        table.add_row(file_diff.path, file_diff.change_kind.value, str(file_diff.additions), str(file_diff.deletions))

    console.print(table)
    console.print(f"Saved diff to {diff_path} ({len(document.files)} files)")


@app.command(name="render")
def render(
    diff_file: Path = typer.Argument(..., help="Unified diff file", exists=True, dir_okay=False),
    findings_file: Path = typer.Argument(..., help="JSON file in the analysis response format", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show tracebacks"),
):
    """
    Render a report from a diff and saved findings without calling any service.
    """
    try:
        document = DiffAcquirer(Path(".")).load(diff_file)
        try:
            payload = json.loads(findings_file.read_text(encoding="utf-8"))
        except ValueError as e:
            raise ConfigurationError(f"Findings file is not valid JSON: {e}") from e
        response = parse_service_response(payload)
    except AutoCodeReviewError as e:
        _fail(e, verbose)

    findings = [item.to_finding() for item in response.findings]
    report = ReportAssembler().assemble(findings, document)
    typer.echo(wrap_report(report.render()), nl=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
