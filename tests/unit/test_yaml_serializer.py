"""
Unit tests for the YAML serializer.
"""
import pytest
import yaml

from dcb.UTILS.yaml_loader import load_yaml
from dcb.UTILS.yaml_serializer import QuotedStr, format_scalar, needs_quotes, serialize


class TestQuoting:
    """Tests for the scalar quoting policy."""

    def test_decimal_is_quoted(self):
        assert serialize({"cpus": "0.5"}) == 'cpus: "0.5"'

    def test_leading_digit_is_quoted(self):
        assert serialize({"memory": "512m"}) == 'memory: "512m"'

    def test_port_mapping_stays_bare(self):
        assert serialize({"ports": ["8080:9090"]}) == "ports:\n  - 8080:9090"

    def test_plain_digits_stay_bare(self):
        assert serialize({"retries": "3"}) == "retries: 3"

    def test_special_characters(self):
        assert needs_quotes("-x")
        assert needs_quotes("a#b")
        assert needs_quotes("${TOKEN}")
        assert needs_quotes(" padded")
        assert not needs_quotes("nginx:latest")
        assert not needs_quotes("/var/lib/data")

    def test_reserved_words_are_quoted(self):
        assert serialize({"flag": "yes"}) == 'flag: "yes"'

    def test_embedded_quotes_are_escaped(self):
        assert format_scalar('say "hi"') == '"say \\"hi\\""'

    def test_quoted_str_is_always_quoted(self):
        assert format_scalar(QuotedStr("1000:1000")) == '"1000:1000"'

    def test_booleans(self):
        assert serialize({"privileged": True, "tty": False}) == "privileged: true\ntty: false"


class TestLayout:
    """Tests for block and flow layout decisions."""

    def test_command_is_flow_sequence(self):
        assert serialize({"command": ["npm", "start"]}) == 'command: ["npm", "start"]'

    def test_nested_test_is_flow_sequence(self):
        text = serialize({"healthcheck": {"test": ["CMD", "curl"]}})
        assert text == 'healthcheck:\n  test: ["CMD", "curl"]'

    def test_root_test_is_block_sequence(self):
        assert serialize({"test": ["a"]}) == "test:\n  - a"

    def test_list_of_mappings(self):
        text = serialize({"volumes": [{"type": "bind", "source": "./d", "target": "/d"}]})
        assert text == "volumes:\n  - type: bind\n    source: ./d\n    target: /d"

    def test_config_content_is_literal_block(self):
        content = '{\n  "a": 1\n}'
        text = serialize({"configs": {"serve-config": {"content": content}}})
        assert text == 'configs:\n  serve-config:\n    content: |\n      {\n        "a": 1\n      }'
        assert yaml.safe_load(text)["configs"]["serve-config"]["content"] == content + "\n"

    def test_content_outside_configs_is_escaped(self):
        assert serialize({"content": "a\nb"}) == 'content: "a\\nb"'

    def test_output_parses_back(self):
        tree = {
            "services": {
                "web": {
                    "image": "nginx",
                    "environment": {"KEY": "value with spaces", "EMPTY": ""},
                    "labels": ["traefik.enable=true"],
                }
            }
        }
        assert yaml.safe_load(serialize(tree)) == tree

    def test_deterministic(self):
        tree = {"a": {"b": ["x", {"c": "d"}]}}
        assert serialize(tree) == serialize(tree)


class TestRoundTrip:
    """Plain scalars and keys must load back as the same strings."""

    @pytest.mark.parametrize("value", ["!s3cret", ".5", ".inf", "+1", "~", "=", "Off", "NULL"])
    def test_lookalike_values_are_quoted(self, value):
        text = serialize({"value": value})
        assert text.startswith('value: "')
        assert load_yaml(text) == {"value": value}

    def test_short_port_mapping_loads_as_string(self):
        assert load_yaml(serialize({"ports": ["2222:22"]})) == {"ports": ["2222:22"]}

    @pytest.mark.parametrize("key", ["on", "yes", "null", "123", "1.5"])
    def test_lookalike_keys_are_quoted(self, key):
        text = serialize({"services": {key: {"image": "busybox"}}})
        assert f'\n  "{key}":' in text
        assert list(load_yaml(text)["services"]) == [key]

    def test_plain_keys_stay_bare(self):
        assert serialize({"net.core.somaxconn": "1024"}) == "net.core.somaxconn: 1024"
