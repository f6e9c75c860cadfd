"""
bugfixer CLI - Command-line interface for cost-bounded bug fixing
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import click
from dotenv import load_dotenv

from bugfixer import __version__
from bugfixer.core.config_loader import PRESETS, FixConfig, load_config
from bugfixer.core.cost_ledger import CostLedger, format_cost
from bugfixer.core.data_types import FixAttemptResult, FixRequest
from bugfixer.core.errors import ConfigError, RollbackError
from bugfixer.core.file_store import FileStore
from bugfixer.integrations.git_integration import GitIntegration
from bugfixer.integrations.test_runner import ShellTestRunner
from bugfixer.llm.proposer import LLMPatchProposer
from bugfixer.orchestrator.ci_driver import CIDriver
from bugfixer.orchestrator.fix_engine import FixEngine


LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass
class CLIOptions:
    config_path: Optional[Path]
    preset: Optional[str]
    model: Optional[str]
    test_command: Optional[str]

    def fix_overrides(self) -> dict:
        return {"preset": self.preset, "model": self.model, "test_command": self.test_command}


def _build_engine(fix_config: FixConfig, ledger: CostLedger, store: FileStore) -> FixEngine:
    runner = ShellTestRunner(workspace=store.base_dir, timeout=fix_config.test_timeout)
    return FixEngine(
        proposer=LLMPatchProposer(),
        ledger=ledger,
        file_store=store,
        test_runner=runner,
        config=fix_config,
    )


def _new_ledger(fix_config: FixConfig) -> CostLedger:
    return CostLedger(
        daily_limit=fix_config.daily_limit,
        per_operation_limit=fix_config.per_operation_limit,
    )


def _echo_result(result: FixAttemptResult) -> None:
    if result.success:
        click.echo(f"✅ Fixed {result.filename} ({result.lines_changed} line(s) changed, {format_cost(result.cost)})")
    else:
        click.echo(f"❌ Could not fix {result.filename}: {result.error}")


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", type=click.Path(path_type=Path), help="Config file path (default: .bugfixer.yaml)")
@click.option("--preset", "-p", help="Configuration preset (quick, thorough, security, performance)")
@click.option("--model", "-m", help="Model override")
@click.option("--test-command", "-t", help="Test command override")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=lambda: os.getenv("BUGFIXER_LOG_LEVEL", "INFO"),
    help="Logging level (default: BUGFIXER_LOG_LEVEL or INFO)",
)
@click.pass_context
def cli(ctx, config_path: Optional[Path], preset: Optional[str], model: Optional[str], test_command: Optional[str], log_level: str):
    """bugfixer - propose, apply, test and roll back fixes within a cost budget"""
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="[%(levelname)s] %(message)s",
    )
    ctx.obj = CLIOptions(
        config_path=config_path,
        preset=preset,
        model=model,
        test_command=test_command,
    )


@cli.command()
@click.argument("filename")
@click.argument("error_message", required=False, default="")
@click.pass_obj
def fix(options: CLIOptions, filename: str, error_message: str):
    """Fix a single file

    Exits 0 when the fix was accepted, 1 otherwise.
    """
    try:
        fix_config = load_config(options.config_path).fix_config(**options.fix_overrides())
    except ConfigError as e:
        raise click.ClickException(str(e))

    ledger = _new_ledger(fix_config)
    engine = _build_engine(fix_config, ledger, FileStore())

    click.echo(f"🔧 Fixing {filename} with {fix_config.model}...")
    try:
        result = engine.attempt_fix(filename, error_message, fix_config)
    except RollbackError as e:
        raise click.ClickException(str(e))

    _echo_result(result)
    click.echo(ledger.report().render())
    raise SystemExit(0 if result.success else 1)


@cli.command()
@click.option("--max-retries", type=int, help="Maximum pipeline rounds")
@click.option("--commit/--no-commit", "auto_commit", default=None, help="Commit accepted fixes")
@click.option("--push/--no-push", "auto_push", default=None, help="Push after committing")
@click.option("--default-file", help="File to fix when no stack frame is recognized")
@click.pass_obj
def ci(options: CLIOptions, max_retries: Optional[int], auto_commit: Optional[bool], auto_push: Optional[bool], default_file: Optional[str]):
    """Run the CI fix pipeline with retries

    Exits 0 when the tests pass at the end, 1 otherwise.
    """
    try:
        loader = load_config(options.config_path)
        fix_config = loader.fix_config(**options.fix_overrides())
        ci_config = loader.ci_config(
            fix=fix_config,
            max_retries=max_retries,
            auto_commit=auto_commit,
            auto_push=auto_push,
            default_file=default_file,
        )
    except ConfigError as e:
        raise click.ClickException(str(e))

    store = FileStore()
    ledger = _new_ledger(fix_config)
    engine = _build_engine(fix_config, ledger, store)
    git = GitIntegration(
        workspace=store.base_dir,
        user_name=ci_config.git_user_name,
        user_email=ci_config.git_user_email,
    )
    driver = CIDriver(
        engine=engine,
        test_runner=engine.test_runner,
        file_store=store,
        config=ci_config,
        git=git,
    )

    try:
        outcome = driver.run_with_retries()
    except RollbackError as e:
        raise click.ClickException(str(e))

    if outcome.batch:
        for result in outcome.batch.attempted:
            _echo_result(result)
        if outcome.batch.error:
            click.echo(f"⚠️  {outcome.batch.error}")
        if outcome.batch.commit_error:
            click.echo(f"⚠️  {outcome.batch.commit_error}")

    click.echo(f"\nAttempts: {outcome.attempts}")
    click.echo(f"Fixed: {outcome.successful}/{outcome.total_attempted}")
    click.echo(f"Committed: {'yes' if outcome.committed else 'no'}")
    if outcome.final_tests_passed:
        click.echo("🎉 All tests passing")
    else:
        click.echo("❌ Tests still failing")
    click.echo(ledger.report().render())
    raise SystemExit(0 if outcome.final_tests_passed else 1)


@cli.command()
@click.argument("filenames", nargs=-1, required=True)
@click.option("--error", "-e", "error_message", default="", help="Error context shared by all files")
@click.option("--max-workers", type=int, help="Number of files fixed in parallel")
@click.pass_obj
def batch(options: CLIOptions, filenames: Tuple[str, ...], error_message: str, max_workers: Optional[int]):
    """Fix several independent files concurrently

    Exits 0 when every fix was accepted, 1 otherwise.
    """
    try:
        fix_config = load_config(options.config_path).fix_config(**options.fix_overrides())
    except ConfigError as e:
        raise click.ClickException(str(e))

    ledger = _new_ledger(fix_config)
    engine = _build_engine(fix_config, ledger, FileStore())
    requests = [FixRequest(filename=name, error_context=error_message) for name in filenames]

    click.echo(f"🔧 Fixing {len(requests)} file(s) with {fix_config.model}...")
    try:
        results = engine.fix_many(requests, fix_config, max_workers=max_workers)
    except (ValueError, RollbackError) as e:
        raise click.ClickException(str(e))

    for result in results:
        _echo_result(result)
    successful = sum(1 for r in results if r.success)
    click.echo(f"\nFixed: {successful}/{len(results)}")
    click.echo(ledger.report().render())
    raise SystemExit(0 if successful == len(results) else 1)


@cli.command()
def presets():
    """List configuration presets"""
    for preset in PRESETS.values():
        click.echo(
            f"{preset.name:<12} {preset.model:<12} max_tokens={preset.max_tokens:<5} "
            f"temperature={preset.temperature}  {preset.description}"
        )


if __name__ == "__main__":
    cli()
