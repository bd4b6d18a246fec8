"""Graph command - show the resolved dependency graph."""

import json
import sys
import click
from ...graph import build_dependency_graph
from ...utils.errors import ConvergeError
from ..utils import format_error, load_registry


@click.command()
@click.argument('config_file', type=click.Path(exists=False))
@click.option('--dot', is_flag=True, help='Output Graphviz DOT')
@click.option('--json', 'json_output', is_flag=True, help='Output structured JSON')
def graph(config_file, dot, json_output):
    """Resolve references in CONFIG_FILE and print the dependency graph."""
    try:
        dependency_graph = build_dependency_graph(load_registry(config_file))
    except ConvergeError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    
    edges = dependency_graph.edges()
    if dot:
        click.echo("digraph converge {")
        for node in dependency_graph.nodes():
            click.echo(f'  "{node}";')
        for dependent, dependency in edges:
            click.echo(f'  "{dependent}" -> "{dependency}";')
        click.echo("}")
    elif json_output:
        click.echo(json.dumps({
            "order": [str(a) for a in dependency_graph.topological_order()],
            "edges": [[str(a), str(b)] for a, b in edges],
        }, indent=2))
    else:
        click.echo("Apply order:")
        for index, address in enumerate(dependency_graph.topological_order(), start=1):
            deps = ", ".join(str(d) for d in dependency_graph.dependencies_of(address))
            click.echo(f"  {index:>2}. {address}" + (f"  (after {deps})" if deps else ""))
