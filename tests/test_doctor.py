"""Tests for the coherence checker."""

import pytest

from entsync.build.doctor import CoherenceChecker
from entsync.core.enums import CoherenceStatus

from conftest import USER_ENTITY


class TestCoherenceChecker:
    """Test suite for CoherenceChecker."""

    @pytest.mark.asyncio
    async def test_pending_on_fresh_project(self, project, write_entity, make_engine):
        write_entity('User', USER_ENTITY)
        report = await CoherenceChecker(make_engine()).check()

        assert report.status == CoherenceStatus.PENDING
        assert report.breakdown() == {
            'User': [
                {'id': 'doc:User', 'kind': 'doc', 'action': 'create',
                 'path': 'generated/docs/User.md', 'reason': 'new'},
                {'id': 'schema:User', 'kind': 'schema', 'action': 'create',
                 'path': 'generated/schemas/User.schema.json', 'reason': 'new'},
            ],
        }
        assert report.exit_code() == 1
        assert report.exit_code(strict=True) == 2
        # Checking never writes
        assert not (project / 'generated').exists()

    @pytest.mark.asyncio
    async def test_clean_after_apply(self, write_entity, make_engine):
        write_entity('User', USER_ENTITY)
        engine = make_engine()
        await engine.run_cycle()

        report = await CoherenceChecker(engine).check()

        assert report.status == CoherenceStatus.CLEAN
        assert report.plan.summary.noop == 2
        assert report.exit_code(strict=True) == 0

    @pytest.mark.asyncio
    async def test_quick_mode_reports_without_failing(self, write_entity, make_engine):
        write_entity('User', USER_ENTITY)
        report = await CoherenceChecker(make_engine()).check(quick=True)

        assert report.status == CoherenceStatus.PENDING
        assert report.plan.summary.noop == 0
        assert report.exit_code() == 0
        assert report.exit_code(strict=True) == 0

    @pytest.mark.asyncio
    async def test_fix_then_clean(self, project, write_entity, make_engine):
        write_entity('User', USER_ENTITY)
        engine = make_engine()
        steps = []

        report = await CoherenceChecker(engine).check(fix=True, on_step=lambda step, result: steps.append(step.node.id))

        assert report.status == CoherenceStatus.FIXED
        assert report.fix_attempted is True
        assert report.followup.changed is False
        assert steps == ['doc:User', 'schema:User']
        assert report.exit_code(strict=True) == 0
        assert (project / 'generated' / 'docs' / 'User.md').is_file()

        second = await CoherenceChecker(engine).check()
        assert second.status == CoherenceStatus.CLEAN

    @pytest.mark.asyncio
    async def test_source_change_is_reported(self, project, write_entity, make_engine):
        write_entity('User', USER_ENTITY)
        engine = make_engine()
        await engine.run_cycle()

        write_entity('User', USER_ENTITY + "  age: integer\n")
        report = await CoherenceChecker(engine).check(quick=True)

        assert report.status == CoherenceStatus.PENDING
        assert [step['action'] for step in report.breakdown()['User']] == ['update', 'update']
        assert report.to_dict()['summary']['update'] == 2
