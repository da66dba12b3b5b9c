"""
Main build engine that orchestrates one Load -> Build -> Plan -> Apply cycle.
"""
import asyncio
import inspect
import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from ..config.global_config_loader import EngineConfig, load_engine_config
from ..config.scanner import SourceLoader, YamlSourceLoader
from ..core.models import EngineState, Graph, Plan, Step, StepResult
from ..generators import default_registry
from ..generators.base import GeneratorRegistry
from .applier import Applier, StepCallback
from .graph_builder import GraphBuilder
from .hasher import Fingerprinter
from .planner import Planner
from .state_store import StateStore, render_document


@dataclass
class CyclePlan:
    """Everything the apply phase needs from the planning phase"""
    graph: Graph
    state: EngineState
    plan: Plan
    force: bool = False


@dataclass
class CycleReport:
    """Outcome of one cycle"""
    plan: Plan
    applied: bool = False
    persisted: bool = False
    results: List[StepResult] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def files_changed(self) -> int:
        return sum(1 for result in self.results if result.changed)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'summary': self.plan.summary.to_dict(),
            'applied': self.applied,
            'persisted': self.persisted,
            'files_changed': self.files_changed,
            'results': [result.to_event() for result in self.results],
            'duration_ms': round(self.duration_ms, 2),
        }


class BuildEngine:
    """
    Main orchestrator for build cycles of one project.

    Engine state is read at the start of every cycle and written only after
    every step of the cycle succeeded. Cycles of one engine never overlap.
    """

    def __init__(
        self,
        project_root: Path,
        config: Optional[EngineConfig] = None,
        registry: Optional[GeneratorRegistry] = None,
        source_loader: Optional[SourceLoader] = None
    ):
        """
        Initialize build engine.

        Args:
            project_root: Project root directory
            config: Engine configuration (defaults when omitted)
            registry: Generator registry (built-in generators when omitted)
            source_loader: Entity source (YAML entity files when omitted)
        """
        self.project_root = Path(project_root)
        self.config = config or EngineConfig.default()
        self.registry = registry or default_registry()
        self.source_loader = source_loader or YamlSourceLoader()

        self.logger = logging.getLogger(__name__)
        self._cycle_lock = asyncio.Lock()
        self._init_components()

    def _init_components(self) -> None:
        """Build the cycle components from the current configuration"""
        self.fingerprinter = Fingerprinter(self.config.engine_version)
        self.graph_builder = GraphBuilder(
            self.registry,
            self.fingerprinter,
            self.config.out_dir,
            generator_options=self.config.generators,
            disabled_kinds=self.config.disabled_kinds
        )
        self.planner = Planner()
        self.applier = Applier(self.project_root, self.registry, self.config.out_dir)
        self.state_store = StateStore(self.project_root, self.config.state_dir)

    @classmethod
    def from_project(cls, project_root: Path, config_path: Optional[str] = None, **kwargs) -> 'BuildEngine':
        """Create an engine with the configuration found in a project"""
        config = load_engine_config(Path(project_root), config_path)
        return cls(project_root, config, **kwargs)

    async def reload_config(self) -> None:
        """
        Re-read the project configuration and rebuild the cycle components.
        Waits for a running cycle; on a malformed file the current
        configuration stays in place.

        Raises:
            LoadError: The configuration file is unreadable or malformed
        """
        async with self._cycle_lock:
            self.config = load_engine_config(self.project_root, self.config.config_path)
            self._init_components()
            self.logger.info(f"Reloaded configuration from {self.config.config_path or 'defaults'}")

    @property
    def out_dir(self) -> Path:
        return self.project_root / self.config.out_dir

    async def prepare(self, include_unchanged: bool = False, force: bool = False) -> CyclePlan:
        """
        Load entities, build the graph and plan against the stored state.
        Nothing is written.

        Raises:
            LoadError: Entity sources are unreadable or malformed
            ValidationError: The graph is structurally invalid
        """
        entities = self.source_loader.load(self.project_root, self.config)
        graph = self.graph_builder.build(entities)
        state = self.state_store.read_state()
        plan = self.planner.plan(graph, state, include_unchanged=include_unchanged, force=force)
        return CyclePlan(graph=graph, state=state, plan=plan, force=force)

    async def apply(self, cycle: CyclePlan, on_step: Optional[StepCallback] = None) -> CycleReport:
        """
        Apply a prepared plan, then persist graph and manifest.

        State is written only after every step succeeded, and only when
        something changed, so an idempotent cycle performs no writes at all.

        Raises:
            GenerationError: A generator failed (state is not persisted)
            WriteError: A filesystem operation failed (state is not persisted)
        """
        report = CycleReport(plan=cycle.plan, applied=True)

        async def collect(step: Step, result: StepResult) -> None:
            report.results.append(result)
            if on_step is not None:
                callback_result = on_step(step, result)
                if inspect.isawaitable(callback_result):
                    await callback_result

        new_state = await self.applier.apply(cycle.plan, cycle.graph, cycle.state, on_step=collect)

        if cycle.plan.changed or cycle.force or not self._graph_snapshot_current(cycle.graph):
            self.state_store.write(new_state, cycle.graph)
            report.persisted = True

        return report

    async def run_cycle(
        self,
        apply: bool = True,
        include_unchanged: bool = False,
        force: bool = False,
        on_step: Optional[StepCallback] = None
    ) -> CycleReport:
        """
        Run one full cycle.

        Args:
            apply: Apply the plan; when False only plan (dry run)
            include_unchanged: Report noop steps as well
            force: Regenerate unchanged artifacts
            on_step: Progress callback invoked once per applied step

        Returns:
            CycleReport with plan, step results and persistence flag
        """
        async with self._cycle_lock:
            started = time.monotonic()
            self.logger.info(f"Starting cycle for {self.project_root} (apply={apply})")

            cycle = await self.prepare(include_unchanged=include_unchanged, force=force)

            if apply:
                report = await self.apply(cycle, on_step=on_step)
            else:
                report = CycleReport(plan=cycle.plan)

            report.duration_ms = (time.monotonic() - started) * 1000
            self.logger.info(
                f"Cycle complete: {report.files_changed} files changed, "
                f"persisted={report.persisted} ({report.duration_ms:.1f} ms)"
            )
            return report

    def _graph_snapshot_current(self, graph: Graph) -> bool:
        stored = self.state_store.read_graph()
        if stored is None:
            return False
        return stored == json.loads(render_document(graph.to_dict()))
