"""
CLI commands for the export hub.

Commands:
- exporthub inspect: Bootstrap declared services and show the export table
- exporthub check:   Validate import declarations of consumer classes
"""

import importlib
import sys
from typing import Optional, Tuple

import click

from . import __version__
from .bootstrap import Bootstrapper, ResourceLoader, default_table
from .config import ConfigLoader, configure_logging
from .core import Injector
from .errors import ConfigError, ImportDeclarationError
from .members import declared_imports


def _success(message: str) -> None:
    click.echo(click.style(message, fg="green"))


def _error(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)


def _import_modules(modules: Tuple[str, ...]) -> None:
    for name in modules:
        try:
            importlib.import_module(name)
        except ImportError as e:
            _error(f"✗ Cannot import module '{name}': {e}")
            sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="exporthub")
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='YAML/JSON config file')
@click.option('--env-file', type=click.Path(dir_okay=False), help='.env file')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False), help='Log level')
@click.pass_context
def cli(ctx, config_path: Optional[str], env_file: Optional[str], log_level: Optional[str]):
    """Inspect export hub services and import declarations."""
    ctx.ensure_object(dict)
    overrides = {"log_level": log_level} if log_level else None
    try:
        config = ConfigLoader.load(path=config_path, env_file=env_file, overrides=overrides)
    except ConfigError as e:
        _error(f"✗ {e}")
        sys.exit(2)
    configure_logging(config.log_level)
    ctx.obj['config'] = config


@cli.command('inspect')
@click.argument('modules', nargs=-1, required=True)
@click.option('--resources', multiple=True, type=click.Path(file_okay=False), help='Extra resource directory')
@click.pass_context
def inspect_services(ctx, modules: Tuple[str, ...], resources: Tuple[str, ...]):
    """
    Import MODULES, bootstrap their services and list the exports.

    Examples:
      exporthub inspect myapp.services
      exporthub inspect myapp.services --resources=config/resources
    """
    config = ctx.obj['config']
    _import_modules(modules)

    loader = ResourceLoader([*config.resource_paths, *resources])
    with Injector(config, bootstrapper=Bootstrapper(default_table, loader)) as injector:
        exports = injector.exports()

        click.echo(click.style(f"Services declared: {len(default_table)}", bold=True))
        click.echo(click.style(f"Exports: {len(exports)}", bold=True))
        for index, record in enumerate(exports):
            key = record.key if record.key is not None else "-"
            name = f"{record.declared_type.__module__}.{record.declared_type.__qualname__}"
            click.echo(f"  {index:>3}  {name:<60} key={key}")

        missing = [m for m in default_table if not any(type(e.instance) is m.cls for e in exports)]
        for meta in missing:
            click.echo(click.style(f"  ⚠ {meta.name} was not loaded", fg="yellow"))


@cli.command('check')
@click.argument('targets', nargs=-1, required=True)
def check_imports(targets: Tuple[str, ...]):
    """
    Validate import declarations of TARGETS (module:Class).

    Examples:
      exporthub check myapp.views:Dashboard myapp.jobs:Reporter
    """
    failed = False
    for target in targets:
        module_name, _, class_name = target.partition(":")
        if not class_name:
            _error(f"✗ {target}: expected module:Class")
            failed = True
            continue

        try:
            module = importlib.import_module(module_name)
            cls = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            _error(f"✗ {target}: {e}")
            failed = True
            continue

        try:
            declarations = declared_imports(cls)
        except ImportDeclarationError as e:
            _error(f"✗ {target}: {e}")
            failed = True
            continue

        _success(f"✓ {target}: {len(declarations)} import(s)")
        for name, shape, item_type, key in declarations:
            line = f"    {name}: {shape.value}[{item_type.__qualname__}]"
            if key is not None:
                line += f" key={key}"
            click.echo(line)

    if failed:
        sys.exit(1)


def main():
    """Entry point for `exporthub` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
