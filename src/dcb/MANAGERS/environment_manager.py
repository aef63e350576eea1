"""
Fills generated ``.env`` templates with values from an existing env file.
"""
import logging
import os
from typing import Dict, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def load_env_values(values_path: str) -> Dict[str, str]:
    """
    Reads ``values_path`` with python-dotenv. A missing file yields no values.
    """
    if not os.path.exists(values_path):
        logger.warning("Env values file %s not found", values_path)
        return {}
    return {k: v for k, v in dotenv_values(values_path).items() if v is not None}


def fill_env_template(template_text: str, values_path: Optional[str] = None) -> str:
    """
    Fills ``NAME=`` lines whose name has a known value; other lines are kept.

    :param template_text: Output of the ``.env`` extractor.
    :param values_path: An existing env file to take values from.
    :return: The filled template.
    """
    if not values_path:
        return template_text
    values = load_env_values(values_path)
    lines = []
    for line in template_text.split("\n"):
        name, sep, current = line.partition("=")
        if sep and not current and name in values:
            line = f"{name}={values[name]}"
        lines.append(line)
    return "\n".join(lines)
