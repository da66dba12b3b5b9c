"""
Executes plan steps against the filesystem.
"""
import asyncio
import inspect
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set, Union
import logging

from ..core.enums import StepAction
from ..core.exceptions import GenerationError, WriteError
from ..core.models import EngineState, Graph, ManifestEntry, Plan, Step, StepResult
from ..generators.base import GeneratorRegistry
from ..utils.file_ops import safe_write, remove_file_if_exists, prune_empty_dirs


StepCallback = Callable[[Step, StepResult], Union[None, Awaitable[None]]]


class Applier:
    """
    Applies a plan with content-comparing writes.

    The applier returns the updated engine state but never persists it: the
    caller writes state once every step of the cycle has completed.
    """

    def __init__(self, project_root: Path, registry: GeneratorRegistry, out_dir: Optional[str] = None):
        """
        Initialize applier.

        Args:
            project_root: Root all node output paths are relative to
            registry: Generator registry used to render artifacts
            out_dir: Output directory; emptied directories below it are pruned after deletes
        """
        self.project_root = Path(project_root)
        self.registry = registry
        self.out_dir = self.project_root / out_dir if out_dir else None
        self.logger = logging.getLogger(__name__)

    async def apply(
        self,
        plan: Plan,
        graph: Graph,
        state: EngineState,
        on_step: Optional[StepCallback] = None
    ) -> EngineState:
        """
        Apply the non-noop steps of a plan in order.

        Args:
            plan: Plan to apply
            graph: Graph the plan was computed from (entity records for generators)
            state: State the plan was computed against (left untouched)
            on_step: Optional progress callback, sync or async

        Returns:
            New EngineState reflecting the applied steps

        Raises:
            GenerationError: A generator failed; earlier steps stay on disk
            WriteError: A filesystem operation failed
        """
        new_state = state.copy()
        results: List[StepResult] = []
        # Paths the current graph writes; a delete or a path move never removes them
        owned_paths = {node.output_path for node in graph.artifact_nodes()}

        for step in plan.actionable_steps():
            if step.action == StepAction.DELETE:
                result = await self._delete(step, owned_paths)
                new_state.entries.pop(step.node.id, None)
            else:
                result = await self._write(step, graph, owned_paths)
                new_state.entries[step.node.id] = ManifestEntry(
                    fingerprint=step.node.fingerprint,
                    output_path=step.node.output_path,
                    kind=step.node.kind,
                    entity=step.node.entity,
                    written_at=datetime.now(timezone.utc).isoformat(),
                )

            results.append(result)
            self.logger.debug(
                f"{result.action.value} {result.node_id} -> {result.path} (changed={result.changed})"
            )
            if on_step is not None:
                callback_result = on_step(step, result)
                if inspect.isawaitable(callback_result):
                    await callback_result

        changed = sum(1 for result in results if result.changed)
        self.logger.info(f"Applied {len(results)} steps, {changed} files changed")
        return new_state

    async def _write(self, step: Step, graph: Graph, owned_paths: Set[str]) -> StepResult:
        node = step.node
        generator = self.registry.get(node.kind)
        if generator is None:
            raise GenerationError(node.id, LookupError(f"no generator registered for kind '{node.kind}'"))

        try:
            artifact = generator.generate(graph.entity_for(node), node.options)
        except Exception as e:
            raise GenerationError(node.id, e) from e

        expected = Path(node.output_path)
        if self.out_dir is not None:
            actual = self.out_dir / artifact.path
            if actual.relative_to(self.project_root) != expected:
                raise GenerationError(
                    node.id, ValueError(f"generator returned path {artifact.path}, planned {node.output_path}")
                )

        target = self.project_root / expected
        try:
            write_result = await asyncio.to_thread(safe_write, target, artifact.content)
            previous = step.previous
            if previous is not None and previous.output_path not in owned_paths:
                await asyncio.to_thread(remove_file_if_exists, self.project_root / previous.output_path)
        except OSError as e:
            raise WriteError(node.output_path, e) from e

        return StepResult(
            node_id=node.id,
            kind=node.kind,
            action=step.action,
            path=node.output_path,
            changed=write_result.changed,
        )

    async def _delete(self, step: Step, owned_paths: Set[str]) -> StepResult:
        node = step.node
        target = self.project_root / node.output_path
        if node.output_path in owned_paths:
            self.logger.info(f"Keeping {node.output_path}: now written by another node")
            return StepResult(
                node_id=node.id,
                kind=node.kind,
                action=step.action,
                path=node.output_path,
                changed=False,
            )

        try:
            removed = await asyncio.to_thread(remove_file_if_exists, target)
        except OSError as e:
            raise WriteError(node.output_path, e) from e

        if removed and self.out_dir is not None:
            prune_empty_dirs(target.parent, self.out_dir)

        return StepResult(
            node_id=node.id,
            kind=node.kind,
            action=step.action,
            path=node.output_path,
            changed=removed,
        )
