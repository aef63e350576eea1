"""
Utilities for finding ``${VAR}`` references in strings.
"""
import re
from typing import Iterable, List


class EnvironmentInterpolator:
    """
    Scans strings for variable references.
    Supports ${VAR}, ${VAR:-default} and ${VAR:+value}; only the name is reported.
    """
    # Group 1: VAR name
    # Group 2: - or +
    # Group 3: default or value
    PATTERN = re.compile(r'\$\{([^}:]+)(?::(-|\+)([^}]*))?\}')

    @classmethod
    def references(cls, template: str) -> List[str]:
        """
        Lists variable names referenced in ``template``, in order of appearance.

        :param template: The string containing ${VAR} placeholders.
        :return: Variable names, duplicates included.
        """
        if not template:
            return []
        return [match.group(1).strip() for match in cls.PATTERN.finditer(template)]

    @classmethod
    def collect(cls, values: Iterable[str]) -> List[str]:
        """
        Returns the distinct variable names referenced across ``values``, sorted.
        """
        names = set()
        for value in values:
            names.update(name for name in cls.references(value) if name)
        return sorted(names)
