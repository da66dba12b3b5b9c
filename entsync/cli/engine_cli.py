#!/usr/bin/env python3
"""
CLI tool for planning, applying and checking generated artifacts
"""

import asyncio
import click
import logging
import sys
from pathlib import Path
from typing import Optional

from ..build.doctor import CoherenceChecker, DoctorReport
from ..build.manager import BuildEngine, CycleReport
from ..core.enums import CoherenceStatus
from ..core.exceptions import EngineError
from ..core.models import Plan, Step, StepResult
from ..monitoring.event_stream import EventLogger, JsonLogCollector
from ..watch.watcher import run_dev


EXIT_FATAL = 3


class EngineCLI:
    """Command-line interface for the build engine"""

    def __init__(self, project_root: Path, config_path: Optional[str] = None,
                 json_mode: bool = False, log_level: Optional[str] = None):
        self.project_root = Path(project_root)
        self.config_path = config_path
        self.json_mode = json_mode
        self.log_level = log_level
        self.events = EventLogger(enabled=json_mode)
        self.log_collector = JsonLogCollector(self.events)
        self.engine: Optional[BuildEngine] = None
        self.logger = logging.getLogger(__name__)

    def _ensure_engine(self) -> BuildEngine:
        """Load configuration and create the engine on first use"""
        if self.engine is None:
            self.engine = BuildEngine.from_project(self.project_root, self.config_path)
            self._setup_logging(self.log_level or self.engine.config.logging.level)
        return self.engine

    def _setup_logging(self, level_name: str) -> None:
        level = getattr(logging, level_name.upper(), logging.INFO)
        if self.json_mode:
            self.log_collector.start(level)
        else:
            logging.basicConfig(
                level=level,
                format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                handlers=[logging.StreamHandler(sys.stdout)]
            )

    def close(self) -> None:
        self.log_collector.stop()

    def _fatal(self, error: EngineError) -> int:
        if self.json_mode:
            self.events.emit('error', type=error.__class__.__name__, message=str(error))
        else:
            click.echo(f"Error: {error}", err=True)
        return EXIT_FATAL

    def _on_step(self, step: Step, result: StepResult) -> None:
        if self.json_mode:
            self.events.emit('step', **result.to_event())
        else:
            note = "" if result.changed else " (unchanged on disk)"
            click.echo(f"  {result.action.value:<6} {result.path}{note}")

    def _print_plan(self, plan: Plan) -> None:
        if self.json_mode:
            for step in plan.steps:
                self.events.emit('plan.step', **step.to_dict())
            self.events.emit('plan.summary', **plan.summary.to_dict())
            return

        if not plan.steps:
            click.echo("No changes. Generated artifacts are up to date.")
        for step in plan.steps:
            click.echo(f"  {step.action.value:<6} {step.node.id:<32} {step.node.output_path}  ({step.reason})")

        summary = plan.summary
        click.echo(
            f"\nPlan: {summary.create} to create, {summary.update} to update, "
            f"{summary.delete} to delete, {summary.noop} unchanged"
        )

    def _print_cycle(self, report: CycleReport) -> None:
        if self.json_mode:
            data = report.to_dict()
            data.pop('results')
            self.events.emit('cycle.complete', **data)
            return

        summary = report.plan.summary
        if not summary.changed:
            click.echo("No changes. Generated artifacts are up to date.")
        else:
            click.echo(
                f"Applied: {summary.create} created, {summary.update} updated, "
                f"{summary.delete} deleted ({report.files_changed} files changed)"
            )

    async def plan(self, include_unchanged: bool = False) -> int:
        """Print the plan without writing anything"""
        try:
            engine = self._ensure_engine()
            report = await engine.run_cycle(apply=False, include_unchanged=include_unchanged)
        except EngineError as e:
            return self._fatal(e)
        self._print_plan(report.plan)
        return 0

    async def apply(self, force: bool = False) -> int:
        """Run one cycle"""
        try:
            engine = self._ensure_engine()
            report = await engine.run_cycle(apply=True, force=force, on_step=self._on_step)
        except EngineError as e:
            return self._fatal(e)
        self._print_cycle(report)
        return 0

    async def doctor(self, fix: bool = False, quick: bool = False, strict: bool = False) -> int:
        """Check coherence of generated artifacts"""
        try:
            checker = CoherenceChecker(self._ensure_engine())
            report = await checker.check(fix=fix, quick=quick, on_step=self._on_step)
        except EngineError as e:
            return self._fatal(e)
        self._print_doctor(report, quick)
        return report.exit_code(strict)

    def _print_doctor(self, report: DoctorReport, quick: bool) -> None:
        if self.json_mode:
            for entity, steps in report.breakdown().items():
                self.events.emit('doctor.pending', entity=entity, steps=steps)
            data = report.to_dict()
            data.pop('breakdown')
            data.pop('results')
            self.events.emit('doctor.status', **data)
            return

        if report.status == CoherenceStatus.CLEAN:
            if not quick:
                click.echo(f"Coherent: {report.plan.summary.noop} artifacts up to date")
            else:
                click.echo("Coherent")
            return

        for entity, steps in report.breakdown().items():
            click.echo(f"{entity}:")
            for step in steps:
                click.echo(f"  {step['action']:<6} {step['path']}  ({step['reason']})")

        summary = report.plan.summary
        click.echo(
            f"Pending: {summary.create} to create, {summary.update} to update, {summary.delete} to delete"
        )
        if report.fix_attempted:
            if report.status == CoherenceStatus.FIXED:
                click.echo("Fixed: artifacts are coherent again")
            else:
                click.echo("Fix applied but changes are still pending", err=True)
        else:
            click.echo("Run `entsync doctor --fix` to regenerate")

    async def dev(self, apply: bool = True) -> int:
        """Watch entity sources and re-run cycles on change"""
        try:
            engine = self._ensure_engine()
        except EngineError as e:
            return self._fatal(e)
        await run_dev(engine, apply=apply, on_report=self._print_dev_cycle)
        return 0

    def _print_dev_cycle(self, report: CycleReport) -> None:
        if report.applied:
            self._print_cycle(report)
        else:
            self._print_plan(report.plan)

    async def graph(self) -> int:
        """Print the persisted graph snapshot"""
        try:
            engine = self._ensure_engine()
        except EngineError as e:
            return self._fatal(e)

        snapshot = engine.state_store.read_graph()
        if snapshot is None:
            if self.json_mode:
                self.events.emit('graph', snapshot=None)
            else:
                click.echo("No graph snapshot yet. Run `entsync apply` first.", err=True)
            return 1

        if self.json_mode:
            self.events.emit('graph', snapshot=snapshot)
            return 0

        nodes = snapshot.get('nodes', [])
        edges = snapshot.get('edges', [])
        click.echo(f"Engine version: {snapshot.get('engine_version')}")
        click.echo(f"Nodes: {len(nodes)}, edges: {len(edges)}")
        for node in nodes:
            path = node.get('output_path') or '-'
            click.echo(f"  {node.get('id'):<32} {path}")
        return 0


@click.group()
@click.option('--project', default='.', type=click.Path(file_okay=False), help='Project root directory')
@click.option('--config', 'config_path', default=None, help='Path to entsync.yaml (relative to the project)')
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Set the logging level (defaults to logging.level from the config)')
@click.option('--json', 'json_mode', is_flag=True, help='Emit NDJSON events instead of human output')
@click.pass_context
def cli(ctx, project, config_path, log_level, json_mode):
    """entsync - keep generated artifacts in sync with entity definitions"""
    ctx.ensure_object(dict)
    ctx.obj['cli'] = EngineCLI(Path(project), config_path, json_mode=json_mode, log_level=log_level)


@cli.command()
@click.option('--all', 'include_unchanged', is_flag=True, help='Also list unchanged artifacts')
@click.pass_context
def plan(ctx, include_unchanged):
    """Show what the next cycle would do"""
    cli_instance = ctx.obj['cli']
    try:
        return_code = asyncio.run(cli_instance.plan(include_unchanged))
    finally:
        cli_instance.close()
    sys.exit(return_code or 0)


@cli.command()
@click.option('--force', is_flag=True, help='Regenerate unchanged artifacts too')
@click.pass_context
def apply(ctx, force):
    """Run one cycle and write artifacts"""
    cli_instance = ctx.obj['cli']
    try:
        return_code = asyncio.run(cli_instance.apply(force))
    finally:
        cli_instance.close()
    sys.exit(return_code or 0)


@cli.command()
@click.option('--fix', is_flag=True, help='Apply pending changes')
@click.option('--quick', is_flag=True, help='Only report changed artifacts')
@click.option('--strict', is_flag=True, help='Exit with 2 instead of 1 when changes are pending')
@click.pass_context
def doctor(ctx, fix, quick, strict):
    """Check that generated artifacts match their entities"""
    cli_instance = ctx.obj['cli']
    try:
        return_code = asyncio.run(cli_instance.doctor(fix, quick, strict))
    finally:
        cli_instance.close()
    sys.exit(return_code or 0)


@cli.command()
@click.option('--apply/--no-apply', 'apply_changes', default=True, help='Apply plans or only print them')
@click.pass_context
def dev(ctx, apply_changes):
    """Watch entity sources and regenerate on change"""
    cli_instance = ctx.obj['cli']
    try:
        return_code = asyncio.run(cli_instance.dev(apply_changes))
    finally:
        cli_instance.close()
    sys.exit(return_code or 0)


@cli.command()
@click.pass_context
def graph(ctx):
    """Show the graph of the last successful cycle"""
    cli_instance = ctx.obj['cli']
    try:
        return_code = asyncio.run(cli_instance.graph())
    finally:
        cli_instance.close()
    sys.exit(return_code or 0)


if __name__ == "__main__":
    cli()
