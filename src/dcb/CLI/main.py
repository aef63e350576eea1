"""
Command Line Interface for DCB.
"""
import logging
import os

import click
from pydantic import ValidationError

from ..BUILDERS.compose_assembler import assemble
from ..CONVERTERS.export_formats import EXPORT_FORMATS, UnknownServiceError, export, export_filename
from ..CONVERTERS.to_systemd import SystemdConverter
from ..MANAGERS.environment_manager import fill_env_template
from ..MODELS.orchestration_config import ComposeProject
from ..MODELS.validation import validate_services
from ..MODELS.vpn_config import VPNConfig, VPNType
from ..PARSERS.compose_parser import ComposeImportError, ComposeParser, import_template
from ..REGISTRY.template_cache import DEFAULT_TTL, TemplateCache
from ..REGISTRY.template_catalog import DEFAULT_CATALOG_URL, CatalogError, TemplateCatalog

logger = logging.getLogger(__name__)

CONVERT_TYPES = [name for name in EXPORT_FORMATS if name != 'compose']


def _fail(ctx, message):
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


def _load_project(ctx) -> ComposeProject:
    path = ctx.obj['file']
    if not os.path.exists(path):
        _fail(ctx, f"{path} not found.")
    try:
        return ComposeParser().parse(path)
    except ComposeImportError as e:
        _fail(ctx, e)


def _write_or_echo(text, out):
    if out:
        with open(out, 'w') as f:
            f.write(text)
        click.echo(f"Wrote {out}")
    else:
        click.echo(text, nl=not text.endswith("\n"))


def _vpn_config(ctx, vpn, vpn_services, vpn_settings) -> VPNConfig:
    if not vpn:
        return VPNConfig()
    settings = {}
    for item in vpn_settings:
        key, sep, value = item.partition('=')
        if not sep:
            _fail(ctx, f"Invalid --vpn-setting '{item}', expected KEY=VALUE")
        settings[key.strip()] = value
    try:
        return VPNConfig.model_validate({
            'enabled': True,
            'type': vpn,
            vpn: settings,
            'servicesUsingVpn': list(vpn_services),
        })
    except ValidationError as e:
        _fail(ctx, f"Invalid VPN settings: {e}")


@click.group()
@click.option('--file', '-f', default='docker-compose.yml', help='Compose file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, file, verbose):
    """
    DCB - Docker Compose Builder.

    Normalizes compose files, validates them and exports them to docker run
    commands, systemd units, .env files, redacted YAML and Komodo TOML.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj['file'] = file


@cli.command('format')
@click.option('--vpn', type=click.Choice([t.value for t in VPNType]), help='Add a VPN sidecar')
@click.option('--vpn-service', 'vpn_services', multiple=True, help='Route a service through the VPN')
@click.option('--vpn-setting', 'vpn_settings', multiple=True, help='VPN setting as KEY=VALUE')
@click.option('--out', '-o', default=None, help='Output file')
@click.pass_context
def format_(ctx, vpn, vpn_services, vpn_settings, out):
    """Re-generate the compose file in canonical form."""
    project = _load_project(ctx)
    vpn_config = _vpn_config(ctx, vpn, vpn_services, vpn_settings)
    text = assemble(project.services, project.networks, project.volumes, vpn_config)
    _write_or_echo(text, out)


@cli.command()
@click.pass_context
def validate(ctx):
    """Check services for invalid names, ports, env keys and resources."""
    project = _load_project(ctx)
    errors = validate_services(project.services)
    if errors:
        for error in errors:
            click.echo(error)
        ctx.exit(1)
    click.echo("No validation errors.")


@cli.command()
@click.option('--type', '-t', 'type_', type=click.Choice(CONVERT_TYPES), required=True)
@click.option('--service', '-s', default=None, help='Only convert this service')
@click.option('--out', '-o', default=None, help='Output directory')
@click.option('--env-values', default=None, help='Existing .env file to fill values from')
@click.pass_context
def convert(ctx, type_, service, out, env_values):
    """Convert to another format"""
    project = _load_project(ctx)

    if type_ == 'systemd' and out and service is None:
        for path in SystemdConverter(project.services).convert(out):
            click.echo(f"Wrote {path}")
        return

    try:
        text = export(type_, project, service)
    except UnknownServiceError as e:
        _fail(ctx, f"Service {e} not found.")
    if type_ == 'env':
        text = fill_env_template(text, env_values)

    target = None
    if out:
        os.makedirs(out, exist_ok=True)
        target = os.path.join(out, export_filename(type_, project, service))
    _write_or_echo(text, target)


@cli.group()
@click.option('--catalog-url', envvar='DCB_CATALOG_URL', default=DEFAULT_CATALOG_URL, help='Catalog base URL')
@click.option('--cache-dir', envvar='DCB_CACHE_DIR', default=None, help='Cache directory (default ~/.dcb/cache)')
@click.option('--cache-ttl', envvar='DCB_CACHE_TTL', type=int, default=DEFAULT_TTL, help='Index cache lifetime in seconds')
@click.pass_context
def templates(ctx, catalog_url, cache_dir, cache_ttl):
    """Browse and import catalog templates."""
    ctx.obj['catalog'] = TemplateCatalog(catalog_url, TemplateCache(cache_dir, ttl=cache_ttl))


@templates.command('list')
@click.option('--refresh', is_flag=True, help='Ignore the cached index')
@click.option('--search', default=None, help='Filter by text')
@click.pass_context
def list_templates(ctx, refresh, search):
    """List catalog templates"""
    catalog = ctx.obj['catalog']
    try:
        entries = catalog.search(search, refresh=refresh) if search else catalog.list_templates(refresh=refresh)
    except CatalogError as e:
        _fail(ctx, e)
    for entry in entries:
        click.echo(f"{entry.get('id', ''):25} {entry.get('name', '')}")


@templates.command('import')
@click.argument('template_id')
@click.option('--out', '-o', default=None, help='Output file')
@click.pass_context
def import_(ctx, template_id, out):
    """Import a template, merged into the compose file when it exists."""
    catalog = ctx.obj['catalog']
    try:
        template = catalog.fetch_template(template_id)
    except CatalogError as e:
        _fail(ctx, e)

    base = ComposeProject()
    if os.path.exists(ctx.obj['file']):
        base = _load_project(ctx)
    try:
        project = import_template(
            base.services, base.networks, base.volumes, template.compose, template.template_toml
        )
    except ComposeImportError as e:
        _fail(ctx, e)
    _write_or_echo(assemble(project.services, project.networks, project.volumes), out)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
