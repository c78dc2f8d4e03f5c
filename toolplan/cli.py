import asyncio
import itertools
import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from typing_extensions import Annotated

from toolplan.execution.compiler import ParallelToolCompiler
from toolplan.planning import Plan, ToolInvocation, estimate_time_savings
from toolplan.types import PlanError, ToolPlanError
from toolplan.utils import ConfigManager, get_logger, handle_errors, setup_logging_from_config

logger = get_logger(__name__)

app = typer.Typer(help="Plan and run batches of tool calls with maximum safe parallelism.")

# Add config management sub-command
config_app = typer.Typer(name="config", help="Configuration management commands")
app.add_typer(config_app)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """toolplan command line."""
    # force=True rebinds handlers to the current stderr on every invocation
    setup_logging_from_config(force=True, level="DEBUG" if verbose else None)


@handle_errors(PlanError)
def load_batch(path: Path) -> List[ToolInvocation]:
    """
    Read a batch file: a JSON array of tool calls, or an object with a ``calls`` array.

    Raises:
        PlanError: If the file cannot be read or parsed
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict) and "calls" in data:
        data = data["calls"]
    if not isinstance(data, list):
        raise PlanError("Batch file must contain a JSON array of tool calls")
    return [ToolInvocation.from_dict(item) for item in data]


def _print_plan(plan: Plan) -> None:
    for task in plan:
        deps = ", ".join(sorted(task.dependency_ids)) or "-"
        marker = "root" if task.is_root else f"after {deps}"
        typer.echo(f"{task.id}  {task.tool_name:<24} {marker}")
    typer.echo(f"Roots: {', '.join(plan.root_ids) or '-'}")
    typer.echo(f"Estimated parallelism: {plan.estimated_parallelism}")


@app.command()
def plan(
    batch_file: Annotated[Path, typer.Argument(help="JSON file with the tool calls.")],
    duration_ms: Annotated[
        Optional[float], typer.Option(help="Assumed duration of one tool call in ms.")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the plan as JSON.")] = False,
):
    """Build the dependency plan for a batch and estimate the time saved."""
    try:
        compiler = ParallelToolCompiler.from_config()
        built = compiler.plan(load_batch(batch_file))
        duration = compiler.average_task_duration_ms if duration_ms is None else duration_ms
        estimate = estimate_time_savings(built, duration)
    except (ToolPlanError, ValueError) as e:
        logger.error(f"Failed to plan batch: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        payload = {"plan": built.to_dict(), "estimate": estimate.to_dict()}
        typer.echo(json.dumps(payload, indent=2, default=str))
        return

    _print_plan(built)
    typer.echo(
        f"Sequential: {estimate.sequential_time:.0f}ms  Parallel: {estimate.parallel_time:.0f}ms  "
        f"Savings: {estimate.savings:.0f}ms ({estimate.savings_percent:.0f}%)"
    )


@app.command()
def simulate(
    batch_file: Annotated[Path, typer.Argument(help="JSON file with the tool calls.")],
    delay_ms: Annotated[float, typer.Option(help="Simulated latency of every tool call.")] = 100.0,
    fail: Annotated[
        Optional[List[str]], typer.Option(help="Tool name whose calls should fail.")
    ] = None,
):
    """Execute a batch against a simulated tool backend and print the results."""
    if delay_ms < 0:
        raise typer.BadParameter("delay-ms must be non-negative")

    failing = set(fail or [])
    counter = itertools.count(1)

    async def simulated_call(tool_name: str, arguments: Any) -> Any:
        await asyncio.sleep(delay_ms / 1000)
        if tool_name in failing:
            raise RuntimeError(f"Simulated failure in {tool_name}")
        return {"id": f"{tool_name}-{next(counter)}", "tool": tool_name, "arguments": arguments}

    def report(completed: int, total: int) -> None:
        typer.echo(f"[{completed}/{total}] done")

    try:
        compiler = ParallelToolCompiler.from_config()
        built = compiler.plan(load_batch(batch_file))
        results = asyncio.run(compiler.execute(built, simulated_call, report))
    except ToolPlanError as e:
        logger.error(f"Failed to simulate batch: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    for task in built:
        duration = task.duration_ms or 0.0
        typer.echo(f"{task.id}  {task.tool_name:<24} {task.status.value:<9} {duration:7.1f}ms")
    typer.echo(json.dumps(results, indent=2, default=str))


@app.command()
def match(
    query: Annotated[str, typer.Argument(help="Natural-language request.")],
    limit: Annotated[int, typer.Option(help="Maximum number of tools to list.")] = 5,
):
    """Rank catalog tools by keyword overlap with a query."""
    if not query.strip():
        raise typer.BadParameter("Query cannot be empty")

    tools = ParallelToolCompiler.from_config().match_tools(query, limit=limit)
    if not tools:
        typer.echo("No matching tools")
        return
    for tool in tools:
        typer.echo(tool)


@app.command()
def quick_plan(
    query: Annotated[str, typer.Argument(help="Natural-language request.")],
    intent: Annotated[Optional[str], typer.Option(help="Classified intent, if known.")] = None,
):
    """Show the pre-grouped parallel batches for a known intent or query."""
    batches = ParallelToolCompiler.from_config().quick_plan(intent, query)
    if batches is None:
        typer.echo("No quick plan for this query")
        return
    for number, batch in enumerate(batches, start=1):
        typer.echo(f"Batch {number}: {', '.join(batch)}")


@config_app.command("show")
def config_show():
    """Print the effective configuration."""
    try:
        typer.echo(ConfigManager.get_instance().to_yaml())
    except ToolPlanError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
