"""Command-line interface for gql-shape."""

import asyncio
import importlib
import json
import logging
import os
import sys

import click
import httpx
from graphql import parse, print_ast
from graphql.error import GraphQLSyntaxError
from pydantic import BaseModel, ValidationError

from .core.client import GraphQLClient, GraphQLError
from .core.query_builder import QueryBuilder
from .core.scalars import ScalarRegistry
from .core.shape import ShapeError
from .core.transport import BearerAuth, NoAuth, TransportError


def load_shape(target: str, app_dir: str | None = None) -> type[BaseModel]:
    """Import a shape model from a "package.module:Model" reference.

    ``app_dir`` is put at the front of ``sys.path`` first, so modules of the
    project being worked on import without being installed.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected 'module:Model', got {target!r}", param_hint="SHAPE")
    if app_dir is not None:
        path = os.path.abspath(app_dir)
        if path not in sys.path:
            sys.path.insert(0, path)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name}: {e}", param_hint="SHAPE") from e

    shape = module
    for part in attr.split("."):
        shape = getattr(shape, part, None)
    if not (isinstance(shape, type) and issubclass(shape, BaseModel)):
        raise click.BadParameter(f"{target} is not a pydantic model", param_hint="SHAPE")
    return shape


def parse_variables(values: tuple[str, ...]) -> dict:
    """Parse NAME=JSON pairs; values that are not JSON are taken as strings."""
    variables = {}
    for item in values:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got {item!r}", param_hint="--var")
        try:
            variables[name] = json.loads(raw)
        except json.JSONDecodeError:
            variables[name] = raw
    return variables


def pretty_print(text: str) -> str:
    """Re-print minified operation text in the standard GraphQL layout."""
    try:
        return print_ast(parse(text))
    except GraphQLSyntaxError as e:
        raise click.ClickException(f"compiled text is not valid GraphQL: {e.message}") from e


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_operation(shape, variables: dict, mutation: bool, string_type: str) -> str:
    builder = QueryBuilder(ScalarRegistry(string_type=string_type))
    try:
        if mutation:
            return builder.mutation(shape, variables)
        return builder.query(shape, variables)
    except (ShapeError, TypeError) as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(package_name="gql-shape")
def main():
    """Derive GraphQL operations from pydantic shape models.

    Describe the response you want as a model, and get the minified
    query that fetches it.
    """
    pass


_shape_argument = click.argument("shape")
_var_option = click.option(
    "--var",
    "variables",
    multiple=True,
    metavar="NAME=VALUE",
    help="Operation variable; VALUE is parsed as JSON. Repeatable.",
)
_mutation_option = click.option(
    "--mutation",
    "-m",
    is_flag=True,
    help="Build a mutation instead of a query.",
)
_string_type_option = click.option(
    "--string-type",
    default="ID",
    show_default=True,
    help="GraphQL type declared for string variables.",
)
_app_dir_option = click.option(
    "--app-dir",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory added to the module search path before importing SHAPE.",
)
_verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)


@main.command()
@_shape_argument
@_var_option
@_mutation_option
@_string_type_option
@click.option("--pretty", is_flag=True, help="Print formatted instead of minified text.")
@_app_dir_option
@_verbose_option
def build(
    shape: str,
    variables: tuple[str, ...],
    mutation: bool,
    string_type: str,
    pretty: bool,
    app_dir: str,
    verbose: bool,
):
    """Print the operation derived from SHAPE.

    Examples:

        gql-shape build myapp.queries:ViewerQuery

        gql-shape build myapp.queries:RepoQuery --var owner='"octocat"' --pretty

        gql-shape build myapp.mutations:AddStar -m --var starrableId=MDEw

        gql-shape build queries:ViewerQuery --app-dir src/myapp
    """
    configure_logging(verbose)
    model = load_shape(shape, app_dir)
    text = build_operation(model, parse_variables(variables), mutation, string_type)
    click.echo(pretty_print(text) if pretty else text)


@main.command()
@_shape_argument
@click.option(
    "--url",
    "-u",
    required=True,
    envvar="GQL_SHAPE_URL",
    help="GraphQL endpoint URL.",
)
@click.option(
    "--token",
    envvar="GQL_SHAPE_TOKEN",
    help="Bearer token for the Authorization header.",
)
@click.option("--timeout", default=30.0, show_default=True, help="Request timeout in seconds.")
@_var_option
@_mutation_option
@_string_type_option
@_app_dir_option
@_verbose_option
def run(
    shape: str,
    url: str,
    token: str | None,
    timeout: float,
    variables: tuple[str, ...],
    mutation: bool,
    string_type: str,
    app_dir: str,
    verbose: bool,
):
    """Execute the operation derived from SHAPE and print the result as JSON.

    Examples:

        gql-shape run myapp.queries:ViewerQuery --url https://api.github.com/graphql

        GQL_SHAPE_TOKEN=... gql-shape run myapp.queries:ViewerQuery -u $URL -v
    """
    configure_logging(verbose)
    model = load_shape(shape, app_dir)
    parsed = parse_variables(variables)
    text = build_operation(model, parsed, mutation, string_type)

    async def execute():
        auth = BearerAuth(token) if token else NoAuth()
        client = GraphQLClient.from_url(
            url,
            auth,
            timeout=timeout,
            registry=ScalarRegistry(string_type=string_type),
        )
        async with client:
            if mutation:
                return await client.mutate_custom(model, text, parsed)
            return await client.query_custom(model, text, parsed)

    try:
        result = asyncio.run(execute())
    except GraphQLError as e:
        raise click.ClickException(f"GraphQL error: {e.message}") from e
    except (TransportError, ValidationError, httpx.HTTPError) as e:
        raise click.ClickException(str(e)) from e

    if result is None:
        click.echo("null")
    else:
        click.echo(result.model_dump_json(indent=2))


if __name__ == "__main__":
    main()
