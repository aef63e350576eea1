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
Converters for generating systemd service files for compose services.
"""
import logging
import os
from typing import List

from jinja2 import Template

from ..MODELS.service_config import RestartPolicy, ServiceConfig

logger = logging.getLogger(__name__)

SYSTEMD_TEMPLATE = """[Unit]
Description=Docker Container {{ container }}
Requires=docker.service
After=docker.service

[Service]
Type=oneshot
RemainAfterExit=yes
ExecStart=/usr/bin/docker start {{ container }}
ExecStop=/usr/bin/docker stop {{ container }}
Restart={{ restart }}

[Install]
WantedBy=multi-user.target
"""

RESTART_MAP = {
    RestartPolicy.ALWAYS: "always",
    RestartPolicy.UNLESS_STOPPED: "on-failure",
}

_template = Template(SYSTEMD_TEMPLATE, keep_trailing_newline=True)


def unit_name(service: ServiceConfig) -> str:
    return f"{service.container_name or service.name}.service"


def convert_to_systemd(service: ServiceConfig) -> str:
    """
    Renders a unit that starts and stops the service's existing container.

    ``always`` maps to ``Restart=always``, ``unless-stopped`` to
    ``Restart=on-failure`` and everything else to ``Restart=no``.

    :param service: The service to convert.
    :return: The unit file content.
    """
    return _template.render(
        container=service.container_name or service.name,
        restart=RESTART_MAP.get(service.restart, "no"),
    )


class SystemdConverter:
    """
    Writes one unit file per service.
    """

    def __init__(self, services: List[ServiceConfig]):
        """
        :param services: Services to convert; unnamed ones are skipped.
        """
        self.services = [svc for svc in services if svc.name]

    def convert(self, output_dir: str = "systemd") -> List[str]:
        """
        Generates systemd service files.

        :param output_dir: The directory where service files will be created.
        :return: Paths of the written files.
        """
        os.makedirs(output_dir, exist_ok=True)

        written = []
        for svc in self.services:
            path = os.path.join(output_dir, unit_name(svc))
            with open(path, "w") as f:
                f.write(convert_to_systemd(svc))
            written.append(path)

        logger.info("Systemd service files generated in %s", output_dir)
        return written
