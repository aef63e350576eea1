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
Recursive YAML encoder for plain value trees (dicts, lists, scalars).

The encoder knows nothing about Compose. It only looks at the key a value
sits under to pick a layout: ``command``/``entrypoint``/nested ``test`` lists
render as one-line flow sequences, multi-line ``content`` strings inside a
``configs`` block render as literal block scalars, everything else renders
in block style.

Callers must prune ``None`` values first; the encoder does not detect
self-referencing input.
"""
import re
from typing import Any, Sequence, Tuple

from .yaml_loader import STR_TAG, implicit_tag

INDENT = "  "
FLOW_LIST_KEYS = ("command", "entrypoint")

PORT_MAPPING_RE = re.compile(r"^\d+(:\d+)?(/\w+)?$")
NUMERIC_RE = re.compile(r"^\d+$")
SPECIAL_CHARS_RE = re.compile(r"^[\d!-]|[{}\[\],&*#?|>'\"%@`]")
RESERVED_WORDS = {"true", "false", "yes", "no", "on", "off", "null", "~"}


class QuotedStr(str):
    """A string that is always rendered double-quoted."""


def double_quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def needs_quotes(text: str) -> bool:
    """
    Decides whether a plain string must be quoted.

    Port mappings (``8080:80/tcp``) and pure digits stay bare. Strings that
    start with a digit, hyphen or ``!``, contain YAML indicator characters, carry
    surrounding whitespace, or would otherwise change meaning when parsed
    back (``key: value`` pairs, reserved words, anything the loader would
    resolve to a number, boolean or null, empty strings) are quoted.
    """
    if PORT_MAPPING_RE.match(text) or NUMERIC_RE.match(text):
        return False
    if not text or text != text.strip():
        return True
    if SPECIAL_CHARS_RE.search(text):
        return True
    if ": " in text or text.endswith(":") or "\n" in text:
        return True
    return text.lower() in RESERVED_WORDS or implicit_tag(text) != STR_TAG


def format_key(key: str) -> str:
    """Quotes mapping keys that would not load back as the same string."""
    if NUMERIC_RE.match(key) or needs_quotes(key):
        return double_quote(key)
    return key


def format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value)
    if isinstance(value, QuotedStr) or needs_quotes(text):
        return double_quote(text)
    return text


def _flow_list(items: Sequence[Any]) -> str:
    return "[" + ", ".join(double_quote(str(item)) for item in items) + "]"


def _literal_block(key: str, text: str, indent: int) -> str:
    lines = text.split("\n")
    if lines and not lines[-1].strip():
        lines = lines[:-1]
    pad = INDENT * (indent + 1)
    body = "\n".join(f"{pad}{line}" if line else "" for line in lines)
    return f"\n{INDENT * indent}{key}: |\n{body}"


def _serialize_mapping(value: dict, path: Tuple[str, ...], indent: int) -> str:
    pad = INDENT * indent
    parts = []
    for raw_key, item in value.items():
        key = str(raw_key)
        prefix = f"\n{pad}{format_key(key)}:"
        if isinstance(item, dict):
            parts.append(prefix + _serialize_mapping(item, path + (key,), indent + 1))
        elif isinstance(item, list):
            if key in FLOW_LIST_KEYS or (key == "test" and indent > 0):
                parts.append(f"{prefix} {_flow_list(item)}")
            elif not item:
                parts.append(f"{prefix} []")
            else:
                parts.append(prefix + _serialize_sequence(item, path + (key,), indent + 1))
        elif isinstance(item, str) and key == "content" and "configs" in path and "\n" in item:
            parts.append(_literal_block(key, item, indent))
        else:
            parts.append(f"{prefix} {format_scalar(item)}")
    return "".join(parts)


def _serialize_sequence(items: list, path: Tuple[str, ...], indent: int) -> str:
    pad = INDENT * indent
    parts = []
    for item in items:
        if isinstance(item, (dict, list)):
            rendered = serialize(item, path, indent + 1).lstrip()
        else:
            rendered = format_scalar(item)
        parts.append(f"\n{pad}- {rendered}")
    return "".join(parts)


def serialize(value: Any, path: Tuple[str, ...] = (), indent: int = 0) -> str:
    """
    Encodes ``value`` as YAML text without a trailing newline.

    :param value: A pruned tree of dicts, lists and scalars.
    :param path: Keys of the enclosing mappings, outermost first.
    :param indent: Nesting depth; zero for a document root.
    :return: The YAML text.
    """
    if isinstance(value, dict):
        text = _serialize_mapping(value, path, indent)
        return text[1:] if indent == 0 and text.startswith("\n") else text
    if isinstance(value, list):
        text = _serialize_sequence(value, path, indent)
        return text[1:] if indent == 0 and text.startswith("\n") else text
    return format_scalar(value)
