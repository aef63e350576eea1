# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Parser for catalog template metadata (``template.toml``).
"""
import logging
from typing import Any, Dict, List, Optional

import tomli
from pydantic import BaseModel, ConfigDict, Field

from ..MODELS.service_config import KeyValue

logger = logging.getLogger(__name__)


class TemplateParseError(ValueError):
    """Raised when template metadata is not valid TOML."""


class TemplateDomain(BaseModel):
    """
    Binds a service's container port to a public host name.
    ``env`` holds ``KEY=VALUE`` strings specific to that service.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    service_name: str = Field(default="", alias="serviceName")
    port: int = 0
    host: str = ""
    path: Optional[str] = None
    env: List[str] = []


class TemplateMount(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_path: str = Field(default="", alias="filePath")
    content: str = ""
    description: Optional[str] = None


class TemplateMetadata(BaseModel):
    """
    Parsed template metadata: variables, domain bindings, shared environment
    and files to mount.
    """
    model_config = ConfigDict(frozen=True)

    variables: Dict[str, str] = {}
    domains: List[TemplateDomain] = []
    env: List[KeyValue] = []
    mounts: List[TemplateMount] = []

    def domain_for(self, service_name: str) -> Optional[TemplateDomain]:
        return next((d for d in self.domains if d.service_name == service_name), None)


def split_env_pair(entry: str) -> KeyValue:
    """
    Splits ``KEY=VALUE`` on the first ``=``; both sides are stripped.
    """
    key, _, value = str(entry).partition("=")
    return KeyValue(key=key.strip(), value=value.strip())


def _parse_env(raw: Any) -> List[KeyValue]:
    if isinstance(raw, list):
        return [split_env_pair(entry) for entry in raw]
    if isinstance(raw, dict):
        return [KeyValue(key=str(k), value=str(v)) for k, v in raw.items()]
    return []


def parse_template_toml(text: str) -> TemplateMetadata:
    """
    Parses ``template.toml`` content.

    :param text: The TOML document.
    :return: The parsed metadata; missing sections are empty.
    :raises TemplateParseError: If the document is not valid TOML or a
        section has the wrong shape.
    """
    try:
        data = tomli.loads(text)
    except tomli.TOMLDecodeError as e:
        raise TemplateParseError(f"Failed to parse template.toml: {e}") from e

    config = data.get("config") or {}
    if not isinstance(config, dict):
        raise TemplateParseError("Failed to parse template.toml: 'config' must be a table")

    try:
        domains = [
            TemplateDomain(
                serviceName=str(domain.get("serviceName") or ""),
                port=int(domain.get("port") or 0),
                host=str(domain.get("host") or ""),
                path=domain.get("path"),
                env=[str(e) for e in domain.get("env") or []],
            )
            for domain in config.get("domains") or []
            if isinstance(domain, dict)
        ]
        mounts = [
            TemplateMount(
                filePath=str(mount.get("filePath") or ""),
                content=str(mount.get("content") or ""),
                description=mount.get("description"),
            )
            for mount in config.get("mounts") or []
            if isinstance(mount, dict)
        ]
    except (TypeError, ValueError) as e:
        raise TemplateParseError(f"Failed to parse template.toml: {e}") from e

    raw_variables = data.get("variables") or {}
    if not isinstance(raw_variables, dict):
        raise TemplateParseError("Failed to parse template.toml: 'variables' must be a table")
    variables = {str(k): str(v) for k, v in raw_variables.items()}
    metadata = TemplateMetadata(
        variables=variables,
        domains=domains,
        env=_parse_env(config.get("env")),
        mounts=mounts,
    )
    logger.debug(
        "Parsed template metadata: %d variables, %d domains, %d env entries",
        len(metadata.variables), len(metadata.domains), len(metadata.env),
    )
    return metadata
