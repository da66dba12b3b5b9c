#!/usr/bin/env python3
"""
Example usage of the build engine as a library: plan, apply and check the
example project in ./examples/project.
"""

import asyncio
import logging
from pathlib import Path

from entsync.build.doctor import CoherenceChecker
from entsync.build.manager import BuildEngine


PROJECT = Path(__file__).parent / "project"


async def plan_example(engine: BuildEngine):
    """Dry run: print what the next cycle would do"""
    print("\n=== Plan ===")
    report = await engine.run_cycle(apply=False, include_unchanged=True)
    for step in report.plan.steps:
        print(f"  {step.action.value:<6} {step.node.id:<24} {step.reason}")
    print(f"Summary: {report.plan.summary.to_dict()}")


async def apply_example(engine: BuildEngine):
    """Run one cycle, printing every step as it is applied"""
    print("\n=== Apply ===")

    def on_step(step, result):
        print(f"  {result.action.value:<6} {result.path} changed={result.changed}")

    report = await engine.run_cycle(on_step=on_step)
    print(f"Files changed: {report.files_changed}, state persisted: {report.persisted}")


async def doctor_example(engine: BuildEngine):
    """Coherence check after the apply"""
    print("\n=== Doctor ===")
    report = await CoherenceChecker(engine).check()
    print(f"Status: {report.status.value}")


async def main():
    logging.basicConfig(level=logging.INFO)
    engine = BuildEngine.from_project(PROJECT)

    await plan_example(engine)
    await apply_example(engine)
    await doctor_example(engine)


if __name__ == "__main__":
    asyncio.run(main())
