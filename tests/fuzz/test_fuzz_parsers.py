import random
import string

import pytest

from dcb.CONVERTERS.redaction import redact_sensitive_data
from dcb.PARSERS.compose_parser import ComposeImportError, ComposeParser
from dcb.PARSERS.template_parser import TemplateParseError, parse_template_toml
from dcb.UTILS.command_tokenizer import tokenize_command
from dcb.UTILS.string_interpolation import EnvironmentInterpolator

rng = random.Random(1234)


def random_string(length):
    return ''.join(rng.choice(string.printable) for _ in range(length))


def test_fuzz_compose_parser():
    parser = ComposeParser()
    for _ in range(100):
        content = random_string(rng.randint(0, 1000))
        try:
            parser.parse_from_string(content)
        except ComposeImportError:
            pass


def test_fuzz_template_parser():
    for _ in range(100):
        content = random_string(rng.randint(1, 500))
        try:
            parse_template_toml(content)
        except TemplateParseError:
            pass


def test_fuzz_text_helpers():
    for _ in range(200):
        content = random_string(rng.randint(0, 300))
        tokens = tokenize_command(content)
        assert isinstance(tokens, list)
        assert all(isinstance(t, str) for t in tokens)
        EnvironmentInterpolator.references(content)
        assert redact_sensitive_data(content).count("\n") == content.count("\n")


def test_edge_cases_parsers():
    parser = ComposeParser()

    for content in ("", "   \n\t  ", "services:", "services: []", "services: 42"):
        with pytest.raises(ComposeImportError):
            parser.parse_from_string(content)

    # Services with empty bodies still import
    project = parser.parse_from_string("services:\n  a:\n  b: {}\n")
    assert [s.name for s in project.services] == ["a", "b"]

    # Very long command
    project = parser.parse_from_string("services:\n  a:\n    command: " + "x " * 5000 + "\n")
    assert len(tokenize_command(project.services[0].command)) == 5000

    assert tokenize_command('"unterminated') == ["unterminated"]
    assert tokenize_command("[1, 2") == ["[1,", "2"]
