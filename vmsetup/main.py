"""
vmsetup — CLI entrypoint.

Usage:
    vmsetup --help
    vmsetup run
    vmsetup auth
    vmsetup status
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Callable

import click

from vmsetup import __version__
from vmsetup.core.observability.logging_config import setup_logging

# ── Status lines ────────────────────────────────────────────────────

_TAGS = {
    "INFO": "blue",
    "SUCCESS": "green",
    "WARNING": "yellow",
    "ERROR": "red",
}


def _line(tag: str, message: str) -> None:
    click.secho(f"[{tag}]", fg=_TAGS[tag], nl=False)
    click.echo(f" {message}")


def _listeners(quiet: bool) -> tuple[Callable, Callable]:
    """on_start/on_finish callbacks that print one status line per step."""
    counter = {"n": 0}

    def on_start(step) -> None:
        counter["n"] += 1
        if not quiet:
            label = step.description or step.name
            _line("INFO", f"Step {counter['n']}: {step.name} ({label})")

    def on_finish(step, result) -> None:
        if result.status == "ok":
            if not quiet:
                _line("SUCCESS", f"{step.name}")
        elif result.status == "skipped":
            if not quiet:
                _line("INFO", f"{step.name}: {result.message}")
        elif result.status == "warning":
            _line("WARNING", f"{step.name}: {result.error}")
        else:
            kind = f" [{result.failure_kind}]" if result.failure_kind else ""
            _line("ERROR", f"{step.name} failed{kind}")
            for err_line in (result.error or "").splitlines()[:10]:
                click.echo(f"     │ {err_line}")

    return on_start, on_finish


def _summary(report) -> None:
    click.echo()
    if report.dry_run:
        _line("INFO", f"Dry run: {report.total} steps planned, nothing executed.")
    elif report.ok and report.warnings:
        _line("WARNING", f"Completed with {len(report.warnings)} warning(s).")
    elif report.ok:
        _line("SUCCESS", f"{report.pipeline} complete ({report.total} steps).")
    else:
        _line("ERROR", f"Stopped at step '{report.failed_step}'. Fix the problem and re-run.")


# ── Shared helpers ──────────────────────────────────────────────────


def _load_config(ctx: click.Context):
    from vmsetup.core.config.loader import ConfigError, load_config

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        _line("ERROR", str(e))
        sys.exit(1)


def _context(ctx: click.Context, workdir: str):
    """Build the run-time context. Tests inject ``registry``/``probes`` via ``obj``."""
    from vmsetup.core.use_cases.provision import build_context

    config = _load_config(ctx)
    return build_context(
        config,
        Path(workdir),
        registry=ctx.obj.get("registry"),
        **ctx.obj.get("probes", {}),
    )


def _execute(
    ctx: click.Context,
    runner: Callable,
    as_json: bool,
    closing: Callable[[], str] | None = None,
) -> None:
    """Run a pipeline, print it, exit 0/1 (130 when interrupted).

    *closing* renders text shown after a successful real run.
    """
    quiet = ctx.obj.get("quiet", False)
    on_start, on_finish = (None, None) if as_json else _listeners(quiet)

    try:
        report = runner(on_start=on_start, on_finish=on_finish)
    except KeyboardInterrupt:
        click.echo()
        _line("ERROR", "Interrupted.")
        sys.exit(130)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _summary(report)
        if closing and report.ok and not report.dry_run and not quiet:
            click.echo()
            click.echo(closing(), nl=False)

    if not report.ok:
        sys.exit(1)


_workdir_option = click.option(
    "--workdir",
    "-w",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Directory the repository is cloned into.",
)
_json_option = click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")


# ── CLI ─────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="vmsetup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to vmsetup.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """vmsetup — provision a development VM for a Python research project."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("VMSETUP_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("VMSETUP_LOG_FILE"),
        log_file_level=os.environ.get("VMSETUP_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@_workdir_option
@click.option("--dry-run", is_flag=True, help="Check preconditions only; run nothing.")
@_json_option
@click.pass_context
def run(ctx: click.Context, workdir: str, dry_run: bool, as_json: bool) -> None:
    """Provision this machine: tools, packages, repository, venv, documents."""
    from vmsetup.core.services.generators.quick_start import render_next_steps
    from vmsetup.core.use_cases.provision import run_provision

    pctx = _context(ctx, workdir)
    if not as_json and not ctx.obj.get("quiet"):
        mode = "[dry-run] " if dry_run else ""
        click.secho(f"\n🚀 {mode}{pctx.config.project_name} VM setup → {pctx.workdir}\n", fg="cyan", bold=True)

    _execute(
        ctx,
        lambda **kw: run_provision(pctx, dry_run=dry_run, **kw),
        as_json,
        closing=lambda: render_next_steps(pctx.config),
    )


@cli.command()
@_workdir_option
@_json_option
@click.pass_context
def plan(ctx: click.Context, workdir: str, as_json: bool) -> None:
    """Show the ordered steps and which are already satisfied."""
    from vmsetup.core.engine.executor import WOULD_RUN
    from vmsetup.core.use_cases.provision import build_provision_plan, run_provision

    pctx = _context(ctx, workdir)
    report = run_provision(pctx, dry_run=True, persist=False)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    steps = build_provision_plan(pctx).steps
    click.secho(f"\n📋 {pctx.config.project_name}: {len(steps)} steps\n", fg="cyan", bold=True)
    for i, (step, result) in enumerate(zip(steps, report.results), start=1):
        done = result.message != WOULD_RUN
        marker, color = ("⊘", "green") if done else ("•", "white")
        soft = " (soft)" if step.soft else ""
        click.secho(f"   {marker} {i:2}. {step.name}{soft}", fg=color, nl=False)
        click.echo(f"  {result.message}")
        if ctx.obj.get("verbose") and step.description:
            click.echo(f"         {step.description}")
    click.echo()


@cli.command()
@_workdir_option
@_json_option
@click.pass_context
def auth(ctx: click.Context, workdir: str, as_json: bool) -> None:
    """Configure token-based git authentication for the cloned repository."""
    from vmsetup.core.use_cases.auth import run_auth

    pctx = _context(ctx, workdir)
    _execute(ctx, lambda **kw: run_auth(pctx, **kw), as_json)


@cli.command("install-cli")
@_json_option
@click.pass_context
def install_cli(ctx: click.Context, as_json: bool) -> None:
    """Install the CLI tool (apt bootstrap, nvm, Node.js LTS, npm package)."""
    from vmsetup.core.use_cases.install_cli import run_install_cli
    from vmsetup.core.use_cases.status import record_run

    pctx = _context(ctx, ".")

    def runner(**kw):
        report = run_install_cli(pctx, **kw)
        record_run(pctx.workdir, pctx.config.project_name, report)
        return report

    _execute(ctx, runner, as_json)


@cli.command()
@click.argument("source", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write an executable script here instead of printing it.",
)
@click.option("--repo-dir", default=None, help="Repository directory name (default: from config).")
@click.pass_context
def patch(ctx: click.Context, source: Path, output: Path | None, repo_dir: str | None) -> None:
    """Re-root a repository validation script to run from the work directory."""
    from vmsetup.core.models.template import GeneratedFile
    from vmsetup.core.services.script_patcher import PatchSourceError, validation_script_rules
    from vmsetup.core.services.script_patcher import patch as patch_script
    from vmsetup.core.services.templates import write_generated

    if repo_dir is None:
        repo_dir = _load_config(ctx).repository.directory

    try:
        content = patch_script(source, validation_script_rules(repo_dir))
    except PatchSourceError as e:
        _line("ERROR", str(e))
        sys.exit(1)

    if output is None:
        click.echo(content, nl=False)
        return

    written = write_generated(Path("."), GeneratedFile(path=str(output), content=content, executable=True))
    if not ctx.obj.get("quiet"):
        _line("SUCCESS", f"Wrote {written}")


@cli.command()
@_workdir_option
@_json_option
@click.pass_context
def status(ctx: click.Context, workdir: str, as_json: bool) -> None:
    """Show the last recorded run."""
    from vmsetup.core.use_cases.status import get_status

    result = get_status(Path(workdir).resolve())

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.has_run:
        _line("INFO", f"No recorded runs in {result.workdir}. Run `vmsetup run` first.")
        return

    state = result.state
    assert state is not None  # guaranteed by has_run
    last = state.last_run
    status_color = {"ok": "green", "warning": "yellow", "failed": "red"}.get(last.status, "white")

    click.secho(f"\n📋 {state.project_name}", fg="cyan", bold=True)
    click.echo(f"   Last run: {last.pipeline} ({last.operation_id}) — ", nl=False)
    click.secho(last.status, fg=status_color)
    if last.ended_at:
        click.echo(f"   at {last.ended_at}")
    if last.failed_step:
        click.secho(f"   Stopped at: {last.failed_step}", fg="red")
    click.echo()

    step_colors = {"ok": "green", "skipped": "white", "warning": "yellow", "failed": "red"}
    for name, step in state.steps.items():
        click.secho(f"   • {name:28} {step.status}", fg=step_colors.get(step.status, "white"))
        if ctx.obj.get("verbose") and step.message:
            click.echo(f"       {step.message.splitlines()[0]}")

    if result.history and ctx.obj.get("verbose"):
        click.echo()
        click.secho("   History:", fg="white", bold=True)
        for entry in result.history:
            click.echo(f"     {entry.timestamp}  {entry.pipeline:12} {entry.status}")
    click.echo()


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@_workdir_option
@_json_option
@click.pass_context
def config_check(ctx: click.Context, workdir: str, as_json: bool) -> None:
    """Validate vmsetup.yml against the work directory it will provision."""
    from vmsetup.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"), workdir=Path(workdir).resolve())

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        _line("SUCCESS", "Configuration is valid")
        click.echo(f"   Project:    {result.config.project_name}")
        click.echo(f"   Repository: {result.config.repository.url}")
        click.echo(f"   Source:     {result.config_path or 'built-in defaults'}")
    else:
        for err in result.errors:
            _line("ERROR", err)

    for warn in result.warnings:
        _line("WARNING", warn)

    if not result.valid:
        sys.exit(1)


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective configuration as YAML."""
    from vmsetup.core.config.loader import dump_config

    click.echo(dump_config(_load_config(ctx)), nl=False)


if __name__ == "__main__":
    cli()
