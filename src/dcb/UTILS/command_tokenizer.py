"""
Conversion between the internal string form of command-like fields and the
token lists Compose expects.
"""
import json
import re
from typing import Any, List

TOKEN_RE = re.compile(r"""(?:"[^"]*"|'[^']*'|\S+)""")
SURROUNDING_QUOTES_RE = re.compile(r"""^["']|["']$""")


def tokenize_command(command: Any) -> List[str]:
    """
    Splits a command into tokens.

    A JSON array is taken as-is. Anything else is split shell-style: quoted
    substrings stay whole, unquoted runs split on whitespace, and each token
    loses one surrounding quote character on either side.

    :param command: Internal string form (or an already split list).
    :return: The token list; empty for an empty command.
    """
    if isinstance(command, list):
        return [str(part) for part in command]
    if not command or not str(command).strip():
        return []
    text = str(command)
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return [part if isinstance(part, str) else json.dumps(part) for part in parsed]
    tokens = [SURROUNDING_QUOTES_RE.sub("", part) for part in TOKEN_RE.findall(text)]
    return tokens or [text]


def command_to_string(command: Any) -> str:
    """
    Turns a parsed document value into the internal string form.

    Lists become JSON arrays so that :func:`tokenize_command` restores them
    exactly; strings are kept verbatim.
    """
    if command is None:
        return ""
    if isinstance(command, list):
        return json.dumps([str(part) for part in command])
    return str(command)
