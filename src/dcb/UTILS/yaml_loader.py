"""
YAML loading with Compose's reading of ports.

PyYAML follows YAML 1.1, where ``2222:22`` is a base-60 integer. Compose
reads it as a string, so the loader here drops the sexagesimal forms from the
implicit int and float resolvers. Everything else behaves like
``yaml.safe_load``.
"""
import re
from typing import Any

import yaml

INT_TAG = "tag:yaml.org,2002:int"
FLOAT_TAG = "tag:yaml.org,2002:float"
STR_TAG = "tag:yaml.org,2002:str"

INT_RE = re.compile(r"""^(?:[-+]?0b[0-1_]+
    |[-+]?0[0-7_]+
    |[-+]?(?:0|[1-9][0-9_]*)
    |[-+]?0x[0-9a-fA-F_]+)$""", re.X)

FLOAT_RE = re.compile(r"""^(?:[-+]?(?:[0-9][0-9_]*)\.[0-9_]*(?:[eE][-+][0-9]+)?
    |\.[0-9][0-9_]*(?:[eE][-+][0-9]+)?
    |[-+]?\.(?:inf|Inf|INF)
    |\.(?:nan|NaN|NAN))$""", re.X)


class ComposeLoader(yaml.SafeLoader):
    """SafeLoader without base-60 numbers."""


ComposeLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in (INT_TAG, FLOAT_TAG)]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
ComposeLoader.add_implicit_resolver(INT_TAG, INT_RE, list("-+0123456789"))
ComposeLoader.add_implicit_resolver(FLOAT_TAG, FLOAT_RE, list("-+0123456789."))


def load_yaml(text: str) -> Any:
    """
    Parses a YAML document the way Compose reads it.

    :raises yaml.YAMLError: If the text is not valid YAML.
    """
    return yaml.load(text, Loader=ComposeLoader)


def implicit_tag(text: str) -> str:
    """
    Returns the tag a plain (unquoted) scalar ``text`` resolves to when loaded.
    """
    resolvers = ComposeLoader.yaml_implicit_resolvers
    for tag, regexp in resolvers.get(text[:1] if text else "", []) + resolvers.get(None, []):
        if regexp.match(text):
            return tag
    return STR_TAG
