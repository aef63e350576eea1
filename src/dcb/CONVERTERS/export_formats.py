"""
Export formats and the dispatcher that renders a project into any of them.
"""
from typing import Dict, NamedTuple, Optional

from ..BUILDERS.compose_assembler import assemble
from ..MODELS.orchestration_config import ComposeProject
from .redaction import redact_sensitive_data
from .to_docker_run import convert_to_docker_run
from .to_env_file import generate_env_file
from .to_komodo import generate_komodo_toml
from .to_systemd import convert_to_systemd, unit_name


class ExportFormat(NamedTuple):
    name: str
    filename: str
    mime_type: str


EXPORT_FORMATS: Dict[str, ExportFormat] = {
    fmt.name: fmt
    for fmt in (
        ExportFormat("compose", "docker-compose.yml", "text/yaml"),
        ExportFormat("docker-run", "docker-run.sh", "text/x-shellscript"),
        ExportFormat("systemd", "<name>.service", "text/plain"),
        ExportFormat("env", ".env", "text/plain"),
        ExportFormat("redact", "docker-compose.redacted.yml", "text/yaml"),
        ExportFormat("komodo", "komodo.toml", "text/toml"),
    )
}


class UnknownServiceError(KeyError):
    """Raised when an export names a service the project does not have."""


def _selected(project: ComposeProject, service_name: Optional[str]):
    services = [svc for svc in project.services if svc.name]
    if service_name is None:
        return services
    service = project.service_named(service_name)
    if service is None:
        raise UnknownServiceError(service_name)
    return [service]


def export_filename(format_name: str, project: ComposeProject, service_name: Optional[str] = None) -> str:
    """
    Resolves the file name for an export. Systemd units are named after the
    selected service, or the first one.
    """
    fmt = EXPORT_FORMATS[format_name]
    if format_name != "systemd":
        return fmt.filename
    services = _selected(project, service_name)
    return unit_name(services[0]) if services else "service.service"


def export(format_name: str, project: ComposeProject, service_name: Optional[str] = None) -> str:
    """
    Renders ``project`` in the named export format.

    docker-run and systemd convert a single service when ``service_name`` is
    given and every named service otherwise, separated by a blank line.

    :param format_name: A key of ``EXPORT_FORMATS``.
    :param project: The model snapshot.
    :param service_name: Optional service to restrict per-service formats to.
    :return: The rendered text.
    :raises KeyError: For an unknown format or service.
    """
    if format_name not in EXPORT_FORMATS:
        raise KeyError(format_name)
    if format_name == "docker-run":
        return "\n\n".join(convert_to_docker_run(svc) for svc in _selected(project, service_name))
    if format_name == "systemd":
        return "\n".join(convert_to_systemd(svc) for svc in _selected(project, service_name))
    if format_name == "env":
        return generate_env_file(project.services, project.vpn)

    compose = assemble(project.services, project.networks, project.volumes, project.vpn)
    if format_name == "redact":
        return redact_sensitive_data(compose)
    if format_name == "komodo":
        return generate_komodo_toml(compose)
    return compose
