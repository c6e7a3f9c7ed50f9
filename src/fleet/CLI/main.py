"""
Command Line Interface for Fleet.
"""
import logging
import os
import sys

import click

from ..errors import ConfigError
from ..PARSERS.config_parser import ConfigParser
from ..MANAGERS.service_orchestrator import ComposeOrchestrator
from ..PROVIDERS.registry import default_registry
from ..CONVERTERS.to_compose import ComposeConverter
from ..CONVERTERS.to_nginx import NginxConfigConverter


@click.group()
@click.option('--file', '-f', default='fleet.yml', help='Project file path (.yml, .yaml, .json or .toml)')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, file, verbose):
    """
    Fleet - generates a docker-compose setup from a short project file.

    Services declare the databases, caches and other infrastructure they need;
    Fleet shares it between them and wires their environment.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj['file'] = file


def _load(ctx):
    """
    Parses the project file, exiting with status 1 on any problem.
    """
    path = ctx.obj['file']
    if not os.path.exists(path):
        click.echo(f"Error: {path} not found.", err=True)
        sys.exit(1)
    try:
        return ConfigParser().parse(path)
    except ConfigError as e:
        _report(e.errors)
        sys.exit(1)


def _report(errors):
    click.echo(f"Error: {len(errors)} problem(s) found:", err=True)
    for error in errors:
        click.echo(f"  - {error}", err=True)


@cli.command()
@click.option('--out', '-o', default='docker-compose.yml', help='Output compose file')
@click.option('--nginx-config', default=None, help='Where to write the proxy nginx.conf '
                                                  '(defaults to the configured proxy path)')
@click.pass_context
def generate(ctx, out, nginx_config):
    """Generate the docker-compose file."""
    config = _load(ctx)
    document, errors = ComposeOrchestrator(config.settings).generate(config.services)
    if errors:
        _report(errors)
        sys.exit(1)

    ComposeConverter(document).write(out)
    click.echo(f"Generated {out} with {len(document.services)} service(s).")

    if document.proxy_routes:
        path = nginx_config or config.settings.proxy_config_path
        NginxConfigConverter(document).write(path)
        click.echo(f"Generated {path} for {len(document.proxy_routes)} domain(s).")


@cli.command()
@click.pass_context
def validate(ctx):
    """Check the project file without writing anything."""
    config = _load(ctx)
    _, errors = ComposeOrchestrator(config.settings).generate(config.services)
    if errors:
        _report(errors)
        sys.exit(1)
    click.echo(f"{ctx.obj['file']} is valid ({len(config.services)} service(s)).")


@cli.command()
def providers():
    """List supported infrastructure and versions"""
    for kind, subtypes in default_registry().describe().items():
        click.echo(f"{kind}:")
        for subtype, versions in subtypes.items():
            default, others = versions[0], versions[1:]
            click.echo(f"  {subtype:12} {default} (default){', ' if others else ''}{', '.join(others)}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
