"""Tests for the dependency-aware plan executor."""

import asyncio
import logging

import pytest

from toolplan.execution import PlanExecutor
from toolplan.planning import Plan, PlanBuilder, Task, TaskStatus
from toolplan.types import SchedulingError


def build(calls):
    return PlanBuilder().build(calls)


class TestPlanExecutorBasics:
    def test_rejects_bad_limits(self):
        with pytest.raises(ValueError):
            PlanExecutor(task_timeout=0)
        with pytest.raises(ValueError):
            PlanExecutor(max_concurrency=0)

    @pytest.mark.asyncio
    async def test_empty_plan(self, fake_tools):
        assert await PlanExecutor().execute(Plan(), fake_tools) == {}
        assert fake_tools.calls == []

    @pytest.mark.asyncio
    async def test_one_result_per_task(self, sample_batch, fake_tools):
        plan = build(sample_batch)
        results = await PlanExecutor().execute(plan, fake_tools)

        assert set(results) == {"task_0", "task_1", "task_2"}
        assert all(task.status is TaskStatus.COMPLETED for task in plan)
        assert results["task_1"]["tool"] == "web_search"
        assert len(fake_tools.calls) == 3

    @pytest.mark.asyncio
    async def test_placeholders_resolved_before_dispatch(self, sample_batch, fake_tools):
        plan = build(sample_batch)
        await PlanExecutor().execute(plan, fake_tools)

        assert fake_tools.arguments_for("sf_create_task") == {"WhoId": "00Q1", "Subject": "Call"}
        # The plan keeps the raw arguments
        assert plan.get("task_2").arguments["WhoId"] == "$task_0.leadId"


class TestOrdering:
    @pytest.mark.asyncio
    async def test_dependents_start_after_dependencies(self, sample_batch, fake_tools):
        plan = build(sample_batch)
        await PlanExecutor().execute(plan, fake_tools)

        for task in plan:
            for dep_id in task.dependency_ids:
                assert task.started_at >= plan.get(dep_id).ended_at

    @pytest.mark.asyncio
    async def test_roots_run_concurrently(self, independent_batch, tools_factory):
        tools = tools_factory(delay=0.05)
        await PlanExecutor().execute(build(independent_batch), tools)
        assert tools.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_independent_task_overlaps_dependency(self, sample_batch, tools_factory):
        tools = tools_factory(delays={"sf_create_lead": 0.05, "web_search": 0.05})
        plan = build(sample_batch)
        await PlanExecutor().execute(plan, tools)

        lead, search = plan.get("task_0"), plan.get("task_1")
        assert search.started_at < lead.ended_at
        assert lead.started_at < search.ended_at

    @pytest.mark.asyncio
    async def test_wall_time_follows_longest_chain(self, tools_factory):
        tools = tools_factory(delay=0.05)
        calls = [{"toolName": "web_search", "arguments": {"query": f"q{i}"}} for i in range(6)]
        loop = asyncio.get_running_loop()
        started = loop.time()
        await PlanExecutor().execute(build(calls), tools)
        assert loop.time() - started < 0.05 * 6


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, tools_factory):
        tools = tools_factory(failing=["sf_create_lead"])
        plan = build(
            [
                {"toolName": "web_search", "arguments": {"query": "Acme"}},
                {"toolName": "sf_create_lead", "arguments": {"LastName": "Doe"}},
                {"toolName": "sf_create_task", "arguments": {"WhoId": "$task_1.leadId"}},
            ]
        )
        assert plan.get("task_2").dependency_ids == {"task_1"}

        results = await PlanExecutor().execute(plan, tools)

        assert plan.get("task_1").status is TaskStatus.FAILED
        assert results["task_1"] == {"error": "sf_create_lead exploded"}
        assert plan.get("task_0").status is TaskStatus.COMPLETED
        # The dependent still runs, with the reference left unresolved
        assert plan.get("task_2").status is TaskStatus.COMPLETED
        assert tools.arguments_for("sf_create_task") == {"WhoId": "$task_1.leadId"}

    @pytest.mark.asyncio
    async def test_exception_without_message(self):
        async def tool_call(tool_name, arguments):
            raise KeyError()

        plan = build([{"toolName": "web_search", "arguments": {}}])
        results = await PlanExecutor().execute(plan, tool_call)
        assert results["task_0"] == {"error": "KeyError"}

    @pytest.mark.asyncio
    async def test_timeout_marks_task_failed(self, tools_factory):
        tools = tools_factory(delays={"web_search": 1.0}, delay=0.0)
        plan = build(
            [
                {"toolName": "web_search", "arguments": {"query": "slow"}},
                {"toolName": "research_company", "arguments": {"name": "Acme"}},
            ]
        )
        results = await PlanExecutor(task_timeout=0.05).execute(plan, tools)

        assert plan.get("task_0").status is TaskStatus.FAILED
        assert "timed out" in results["task_0"]["error"]
        assert plan.get("task_1").status is TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_tool_timeout_keeps_its_message(self):
        async def tool_call(tool_name, arguments):
            raise asyncio.TimeoutError("upstream gateway timeout")

        plan = build([{"toolName": "web_search", "arguments": {}}])
        results = await PlanExecutor(task_timeout=5).execute(plan, tool_call)

        assert results["task_0"] == {"error": "upstream gateway timeout"}
        assert plan.get("task_0").status is TaskStatus.FAILED

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, tools_factory, caplog):
        tools = tools_factory(failing=["web_search"])
        with caplog.at_level(logging.WARNING, logger="toolplan"):
            await PlanExecutor().execute(
                build([{"toolName": "web_search", "arguments": {}}]), tools
            )
        assert "web_search exploded" in caplog.text


class TestConcurrencyLimit:
    @pytest.mark.asyncio
    async def test_limit_is_respected(self, tools_factory):
        tools = tools_factory(delay=0.02)
        calls = [{"toolName": "web_search", "arguments": {"query": f"q{i}"}} for i in range(5)]
        plan = build(calls)
        await PlanExecutor(max_concurrency=2).execute(plan, tools)

        assert tools.max_in_flight == 2
        assert all(task.status is TaskStatus.COMPLETED for task in plan)

    @pytest.mark.asyncio
    async def test_limit_of_one_serializes(self, independent_batch, tools_factory):
        tools = tools_factory(delay=0.02)
        await PlanExecutor(max_concurrency=1).execute(build(independent_batch), tools)
        assert tools.max_in_flight == 1


class TestProgress:
    @pytest.mark.asyncio
    async def test_progress_reports_each_terminal_task(self, sample_batch, tools_factory):
        tools = tools_factory(failing=["web_search"])
        seen = []
        await PlanExecutor().execute(
            build(sample_batch), tools, lambda done, total: seen.append((done, total))
        )
        assert seen == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_progress_callback_errors_are_contained(self, sample_batch, fake_tools):
        def explode(done, total):
            raise RuntimeError("display closed")

        plan = build(sample_batch)
        results = await PlanExecutor().execute(plan, fake_tools, explode)
        assert len(results) == 3
        assert all(task.status is TaskStatus.COMPLETED for task in plan)


class TestPlanChecks:
    @pytest.mark.asyncio
    async def test_plans_execute_once(self, sample_batch, fake_tools):
        plan = build(sample_batch)
        executor = PlanExecutor()
        await executor.execute(plan, fake_tools)
        with pytest.raises(SchedulingError, match="execute once"):
            await executor.execute(plan, fake_tools)

    @pytest.mark.asyncio
    async def test_invalid_plan_rejected(self, fake_tools):
        plan = Plan(
            tasks={
                "a": Task(id="a", tool_name="x", dependency_ids=frozenset({"b"})),
                "b": Task(id="b", tool_name="x", dependency_ids=frozenset({"a"})),
            },
            root_ids=[],
        )
        with pytest.raises(SchedulingError, match="invalid plan"):
            await PlanExecutor().execute(plan, fake_tools)
        assert fake_tools.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_roots_rejected_before_dispatch(self, fake_tools):
        plan = Plan(
            tasks={"task_0": Task(id="task_0", tool_name="web_search")},
            root_ids=["task_0", "task_0"],
        )
        with pytest.raises(SchedulingError, match="roots"):
            await PlanExecutor().execute(plan, fake_tools)
        assert fake_tools.calls == []
        assert plan.get("task_0").status is TaskStatus.PENDING
