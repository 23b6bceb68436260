"""Compile a timed plan into a behavior tree and print the tree and its dependency graph."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from robotics_planning.errors import CompilationError
from robotics_planning.execution import ExecutionTreeBuilder, Plan
from robotics_planning.io import configure_logging, console
from robotics_planning.pddl import Domain
from robotics_planning.state import Problem


@click.command()
@click.argument("domain_path", type=click.Path(exists=True, path_type=Path))
@click.argument("problem_path", type=click.Path(exists=True, path_type=Path))
@click.argument("plan_path", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path))
@click.option("--template", default=None, help="Name of a registered action template.")
@click.option("--legend", is_flag=True, help="Include a legend in the dependency graph.")
@click.option("--verbose", is_flag=True, help="Log debug messages.")
def compile_plan(
    domain_path: Path,
    problem_path: Path,
    plan_path: Path,
    config_path: Path | None,
    template: str | None,
    legend: bool,
    verbose: bool,
) -> None:
    """Compile the plan in PLAN_PATH using the given domain and problem YAML files.

    :param domain_path: YAML file describing the planning domain
    :param problem_path: YAML file describing the initial state of the problem
    :param plan_path: YAML file listing the timed actions of the plan
    :param config_path: Optional YAML file configuring the emitted behavior tree
    :param template: Optional name of the action template (overrides the configuration)
    :param legend: Whether to include a legend in the printed dependency graph
    :param verbose: Whether to log debug messages
    """
    configure_logging(logging.DEBUG if verbose else logging.INFO)

    domain = Domain.from_yaml(domain_path)
    problem = Problem.from_yaml(problem_path)
    plan = Plan.from_yaml(plan_path)
    console.print(f"[yellow]Loaded a plan of {len(plan)} actions from {plan_path}[/yellow]...")

    if config_path is not None:
        builder = ExecutionTreeBuilder.from_yaml(domain, problem, config_path)
    else:
        builder = ExecutionTreeBuilder(domain, problem)
    if template is not None:
        builder.initialize(template)

    try:
        xml = builder.get_tree(plan)
    except CompilationError as error:
        console.print(f"[red]Unable to compile the plan: {error}[/red]")
        raise click.exceptions.Exit(1) from error

    console.print("[green]Compiled behavior tree:[/green]")
    console.print(xml, markup=False, highlight=False)

    console.print("[green]Dependency graph:[/green]")
    builder.get_dotgraph(enable_legend=legend, enable_print_graph=True)


if __name__ == "__main__":
    compile_plan()
