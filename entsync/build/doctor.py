"""
Coherence checker: reports drift between entity sources and generated
artifacts without writing, and optionally fixes it.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import logging

from ..core.enums import CoherenceStatus
from ..core.models import Plan, StepResult
from .applier import StepCallback

if TYPE_CHECKING:
    from .manager import BuildEngine


@dataclass
class DoctorReport:
    """Result of a coherence check"""
    status: CoherenceStatus
    plan: Plan
    quick: bool = False
    fix_attempted: bool = False
    followup: Optional[Plan] = None
    results: List[StepResult] = field(default_factory=list)

    @property
    def coherent(self) -> bool:
        return self.status != CoherenceStatus.PENDING

    def breakdown(self) -> Dict[str, List[Dict[str, Any]]]:
        """Actionable steps of the checked plan grouped by entity name"""
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for step in self.plan.actionable_steps():
            grouped.setdefault(step.node.entity, []).append(step.to_dict())
        return {entity: grouped[entity] for entity in sorted(grouped)}

    def exit_code(self, strict: bool = False) -> int:
        """
        Process exit status for CI usage.

        clean/fixed -> 0, pending -> 1 (2 when strict). Quick mode only reports
        and exits 0, unless a requested fix left work pending.
        """
        if self.coherent:
            return 0
        if self.quick and not self.fix_attempted:
            return 0
        return 2 if strict else 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'status': self.status.value,
            'summary': self.plan.summary.to_dict(),
            'breakdown': self.breakdown(),
            'fix_attempted': self.fix_attempted,
            'followup': self.followup.summary.to_dict() if self.followup else None,
            'results': [result.to_event() for result in self.results],
        }


class CoherenceChecker:
    """Runs Load -> Build -> Plan, and Apply only in fix mode"""

    def __init__(self, engine: 'BuildEngine'):
        self.engine = engine
        self.logger = logging.getLogger(__name__)

    async def check(
        self,
        fix: bool = False,
        quick: bool = False,
        on_step: Optional[StepCallback] = None
    ) -> DoctorReport:
        """
        Check whether generated artifacts are coherent with their entities.

        Args:
            fix: Apply the pending plan and persist state, then re-check
            quick: Only report changed nodes (no noop steps)
            on_step: Progress callback for the fix cycle

        Returns:
            DoctorReport
        """
        dry_run = await self.engine.run_cycle(apply=False, include_unchanged=not quick)
        plan = dry_run.plan

        if not plan.changed:
            self.logger.info("Artifacts are coherent with entity sources")
            return DoctorReport(status=CoherenceStatus.CLEAN, plan=plan, quick=quick)

        self.logger.info(
            f"Pending changes: create={plan.summary.create}, "
            f"update={plan.summary.update}, delete={plan.summary.delete}"
        )
        if not fix:
            return DoctorReport(status=CoherenceStatus.PENDING, plan=plan, quick=quick)

        cycle = await self.engine.run_cycle(apply=True, on_step=on_step)
        followup = (await self.engine.run_cycle(apply=False)).plan

        if followup.changed:
            self.logger.warning("Fix applied but the project is still not coherent")
            status = CoherenceStatus.PENDING
        else:
            self.logger.info("Fix applied, artifacts are coherent")
            status = CoherenceStatus.FIXED

        return DoctorReport(
            status=status,
            plan=plan,
            quick=quick,
            fix_attempted=True,
            followup=followup,
            results=cycle.results,
        )
