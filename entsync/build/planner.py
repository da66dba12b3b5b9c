"""
Diffs a freshly built graph against the persisted engine state.
"""
from typing import List
import logging

from ..core.enums import StepAction
from ..core.models import EngineState, Graph, Node, Plan, PlanSummary, Step


class Planner:
    """Produces the ordered create/update/delete/noop steps of a cycle"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def plan(
        self,
        graph: Graph,
        state: EngineState,
        include_unchanged: bool = False,
        force: bool = False
    ) -> Plan:
        """
        Compute the plan for a graph.

        Entity nodes are never planned, they have no output. Steps are sorted
        by node id so logs and tests are reproducible.

        Args:
            graph: Graph of the current cycle
            state: Engine state of the last successful cycle
            include_unchanged: Also return noop steps
            force: Treat unchanged artifacts as updates

        Returns:
            Plan with steps and summary
        """
        steps: List[Step] = []

        for node in graph.artifact_nodes():
            previous = state.entries.get(node.id)

            if previous is None:
                steps.append(Step(node=node, action=StepAction.CREATE, reason="new"))
            elif previous.fingerprint != node.fingerprint:
                steps.append(Step(node=node, action=StepAction.UPDATE, reason="fingerprint changed", previous=previous))
            elif previous.output_path != node.output_path:
                steps.append(Step(node=node, action=StepAction.UPDATE, reason="output path changed", previous=previous))
            elif force:
                steps.append(Step(node=node, action=StepAction.UPDATE, reason="forced", previous=previous))
            elif include_unchanged:
                steps.append(Step(node=node, action=StepAction.NOOP, reason="up to date", previous=previous))

        for node_id, entry in state.entries.items():
            if node_id in graph.nodes:
                continue
            # Rebuilt from the manifest so the applier knows which file to remove
            orphan = Node(
                id=node_id,
                kind=entry.kind,
                fingerprint=entry.fingerprint,
                entity=entry.entity,
                output_path=entry.output_path,
            )
            reason = "entity removed" if entry.entity not in graph.entities else "artifact disabled"
            steps.append(Step(node=orphan, action=StepAction.DELETE, reason=reason, previous=entry))

        steps.sort(key=lambda step: step.node.id)
        plan = Plan(steps=steps, summary=self.summarize(steps))

        self.logger.info(
            f"Plan: create={plan.summary.create}, update={plan.summary.update}, "
            f"delete={plan.summary.delete}, noop={plan.summary.noop}"
        )
        return plan

    @staticmethod
    def summarize(steps: List[Step]) -> PlanSummary:
        summary = PlanSummary()
        for step in steps:
            if step.action == StepAction.CREATE:
                summary.create += 1
            elif step.action == StepAction.UPDATE:
                summary.update += 1
            elif step.action == StepAction.DELETE:
                summary.delete += 1
            else:
                summary.noop += 1
        return summary
