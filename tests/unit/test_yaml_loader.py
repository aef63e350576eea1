"""
Unit tests for the Compose-flavored YAML loader.
"""
import pytest

from dcb.UTILS.yaml_loader import FLOAT_TAG, INT_TAG, STR_TAG, implicit_tag, load_yaml


@pytest.mark.parametrize("mapping", ["2222:22", "53:53", "21:21", "1:1"])
def test_short_port_mappings_stay_strings(mapping):
    assert load_yaml(f"ports:\n  - {mapping}\n") == {"ports": [mapping]}


def test_numbers_still_resolve():
    document = load_yaml("a: 3\nb: 0.5\nc: .inf\nd: 0x1f\ne: true\nf: null\n")
    assert document == {"a": 3, "b": 0.5, "c": float("inf"), "d": 31, "e": True, "f": None}


def test_other_resolvers_are_kept():
    assert load_yaml("when: 2024-01-01").get("when").year == 2024


@pytest.mark.parametrize("text, tag", [
    ("2222:22", STR_TAG),
    ("nginx", STR_TAG),
    ("42", INT_TAG),
    ("+1", INT_TAG),
    (".5", FLOAT_TAG),
    ("-.inf", FLOAT_TAG),
    ("", "tag:yaml.org,2002:null"),
    ("off", "tag:yaml.org,2002:bool"),
])
def test_implicit_tag(text, tag):
    assert implicit_tag(text) == tag
