# webpoll/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
List, validate and run YAML scenarios, and print the effective config.
Thin wrapper around the scenario loader and runner for local runs.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import click

from webpoll.core.errors import ScenarioError
from webpoll.core.scenario_loader import Scenario, find_scenario_files, load_scenarios_file
from webpoll.utils.config import get_settings
from webpoll.utils.logger import bind, get_logger, set_log_level, unbind


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _collect(targets: List[str], scenarios_dir: Optional[str], recursive: bool) -> Optional[list[Path]]:
    paths: list[Path] = []
    if targets:
        for p in (Path(t).resolve() for t in targets):
            if p.is_dir():
                paths.extend(find_scenario_files(p, recursive=True))
            else:
                paths.append(p)
    elif scenarios_dir:
        paths.extend(find_scenario_files(Path(scenarios_dir), recursive=recursive))
    else:
        return None
    return paths


def _matches(sc: Scenario, tags: tuple[str, ...]) -> bool:
    return not tags or bool(set(tags) & set(sc.tags))


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(package_name="webpoll")
def cli(log_level: Optional[str]):
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())


# -------- commands --------


@cli.command("config")
@click.option("--paths", "paths_only", is_flag=True, help="Only print resolved artifact paths")
def cmd_config(paths_only: bool):
    """Print effective configuration (after .env & env vars)."""
    s = get_settings()
    if paths_only:
        _echo_json(s.model_dump(mode="json", include={"SCREENSHOT_DIR", "SCENARIOS_DIR", "LOG_FILE"}))
        return
    _echo_json(s.model_dump(mode="json"))


@cli.command("list")
@click.option(
    "--dir", "scenarios_dir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=lambda: str(get_settings().SCENARIOS_DIR),
    show_default=True,
    help="Directory containing scenario YAML files",
)
@click.option("--recursive/--no-recursive", default=True, show_default=True)
@click.option("--tag", "tags", multiple=True, help="Only scenarios carrying one of these tags")
def cmd_list(scenarios_dir: str, recursive: bool, tags: tuple[str, ...]):
    """List scenarios available in a directory."""
    log = get_logger(__name__)
    rows = []
    for fp in find_scenario_files(Path(scenarios_dir), recursive=recursive):
        try:
            scenarios = load_scenarios_file(fp)
        except ScenarioError as e:
            log.debug(f"Skipping {fp}: {e}")
            continue
        rows.extend((fp, sc) for sc in scenarios if _matches(sc, tags))

    if not rows:
        click.echo("No scenarios found.")
        return

    click.echo(f"Found {len(rows)} scenario(s):\n")
    for fp, sc in rows:
        tag_str = f" [{', '.join(sc.tags)}]" if sc.tags else ""
        click.echo(f" - {sc.name}{tag_str}  ({len(sc.steps)} steps)  <- {fp}")


@cli.command("validate")
@click.argument("targets", nargs=-1, required=False)
@click.option("--dir", "scenarios_dir", type=click.Path(file_okay=False, dir_okay=True, exists=True),
              help="Validate all scenarios under this directory")
@click.option("--recursive/--no-recursive", default=True, show_default=True)
def cmd_validate(targets: List[str], scenarios_dir: Optional[str], recursive: bool):
    """Validate scenarios from files or a directory (supports multi-doc YAML)."""
    paths = _collect(targets, scenarios_dir, recursive)
    if paths is None:
        click.echo("Provide file(s) or --dir to validate.")
        sys.exit(2)

    ok = True
    for fp in paths:
        try:
            for sc in load_scenarios_file(fp):
                click.echo(f"OK  {fp}  ->  {sc.name} ({len(sc.steps)} steps)")
        except (ScenarioError, FileNotFoundError) as e:
            ok = False
            click.echo(f"ERR {fp}  ->  {e}")

    sys.exit(0 if ok else 1)


@cli.command("run")
@click.argument("targets", nargs=-1, required=False)
@click.option("--dir", "scenarios_dir", type=click.Path(file_okay=False, dir_okay=True, exists=True),
              help="Run all scenarios found under this directory (filtered by --tag)")
@click.option("--recursive/--no-recursive", default=True, show_default=True)
@click.option("--tag", "tags", multiple=True, help="Only run scenarios carrying one of these tags")
@click.option("--headless/--headed", default=None, help="Override HEADLESS from settings")
@click.option("--timeout-ms", type=int, default=None, help="Override DEFAULT_TIMEOUT_MS from settings")
@click.option("--json-out", type=click.Path(dir_okay=False), default=None, help="Write a JSON summary to this file")
def cmd_run(
    targets: List[str],
    scenarios_dir: Optional[str],
    recursive: bool,
    tags: tuple[str, ...],
    headless: Optional[bool],
    timeout_ms: Optional[int],
    json_out: Optional[str],
):
    """
    Run one or more scenarios, each in a fresh browser.

    Examples:
      webpoll run scenarios/login.yaml
      webpoll run --dir scenarios --tag smoke --headed
    """
    paths = _collect(targets, scenarios_dir, recursive)
    if paths is None:
        click.echo("Nothing to run. Provide file(s) or --dir.")
        sys.exit(2)

    overrides = {}
    if headless is not None:
        overrides["HEADLESS"] = headless
    if timeout_ms is not None:
        overrides["DEFAULT_TIMEOUT_MS"] = timeout_ms
    settings = get_settings().model_copy(update=overrides) if overrides else get_settings()

    jobs: list[tuple[Path, Scenario]] = []
    for fp in paths:
        try:
            jobs.extend((fp, sc) for sc in load_scenarios_file(fp) if _matches(sc, tags))
        except (ScenarioError, FileNotFoundError) as e:
            click.echo(f"ERR {fp}  ->  {e}")
            sys.exit(1)

    if not jobs:
        click.echo("No scenarios matched.")
        sys.exit(1)

    from webpoll.core.runner import ScenarioRunner

    bind(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"))
    click.echo(f"Running {len(jobs)} scenario(s)...")

    runner = ScenarioRunner(settings=settings)
    results: List[dict] = []
    for fp, sc in jobs:
        res = runner.run(sc)
        res["file"] = str(fp)
        results.append(res)
        if res.get("ok"):
            click.echo(f"OK  {sc.name} ({res.get('elapsed_ms', '-')} ms)")
        else:
            failed = res.get("failed_step") or {}
            step_desc = f" [step {failed.get('index', '?')} {failed.get('action', '')}]" if failed else ""
            prefix = f"{res['error_type']}: " if res.get("error_type") else ""
            click.echo(f"ERR {sc.name}{step_desc} -> {prefix}{res.get('error', 'unknown error')}")

    ok_count = sum(1 for r in results if r.get("ok"))
    fail_count = len(results) - ok_count
    click.echo(f"Done. OK={ok_count}  FAIL={fail_count}")

    if json_out:
        outp = Path(json_out).resolve()
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(json.dumps({"results": results}, indent=2), encoding="utf-8")
        click.echo(f"Wrote summary: {outp}")

    unbind("run_id")
    sys.exit(0 if fail_count == 0 else 1)


def main() -> None:
    cli(prog_name="webpoll")


if __name__ == "__main__":
    main()
