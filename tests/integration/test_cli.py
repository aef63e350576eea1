import os

import pytest
import yaml
from click.testing import CliRunner

from dcb.CLI.main import cli
from dcb.REGISTRY.template_cache import TemplateCache
from dcb.REGISTRY.template_catalog import CatalogTemplate, TemplateCatalog

COMPOSE = """
services:
  web:
    image: nginx:alpine
    ports:
      - "8080:80"
    environment:
      API_URL: http://api:${API_PORT}
    restart: always
  db:
    image: postgres:16
    container_name: pg
    environment:
      - POSTGRES_PASSWORD=${DB_PASS}
    volumes:
      - db_data:/var/lib/postgresql/data
volumes:
  db_data:
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def compose_file(tmp_path):
    path = tmp_path / "docker-compose.yml"
    path.write_text(COMPOSE)
    return str(path)


def test_cli_help(runner):
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'Docker Compose Builder' in result.output


def test_cli_convert_help(runner):
    result = runner.invoke(cli, ['convert', '--help'])
    assert result.exit_code == 0
    assert '--type' in result.output


def test_missing_file(runner):
    result = runner.invoke(cli, ['-f', 'non_existent.yml', 'format'])
    assert result.exit_code == 1
    assert 'Error: non_existent.yml not found.' in result.output


def test_invalid_compose(runner, tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("version: '3'\n")
    result = runner.invoke(cli, ['-f', str(path), 'validate'])
    assert result.exit_code == 1
    assert "missing 'services'" in result.output


def test_format(runner, compose_file):
    result = runner.invoke(cli, ['-f', compose_file, 'format'])
    assert result.exit_code == 0
    document = yaml.safe_load(result.output)
    assert list(document['services']) == ['web', 'db']
    assert document['services']['web']['ports'] == ['8080:80']
    assert document['services']['db']['environment'] == ['POSTGRES_PASSWORD=${DB_PASS}']


def test_format_with_vpn(runner, compose_file, tmp_path):
    out = tmp_path / "out.yml"
    result = runner.invoke(cli, [
        '-f', compose_file, 'format',
        '--vpn', 'tailscale', '--vpn-service', 'web',
        '--vpn-setting', 'hostname=box', '--out', str(out),
    ])
    assert result.exit_code == 0
    assert f"Wrote {out}" in result.output
    document = yaml.safe_load(out.read_text())
    assert document['services']['web']['network_mode'] == 'service:tailscale'
    assert 'ports' not in document['services']['web']
    assert document['services']['tailscale']['environment']['TS_HOSTNAME'] == 'box'
    assert 'tailscale' in document['volumes']


def test_format_bad_vpn_setting(runner, compose_file):
    result = runner.invoke(cli, ['-f', compose_file, 'format', '--vpn', 'newt', '--vpn-setting', 'oops'])
    assert result.exit_code == 1
    assert "expected KEY=VALUE" in result.output


def test_validate(runner, compose_file, tmp_path):
    result = runner.invoke(cli, ['-f', compose_file, 'validate'])
    assert result.exit_code == 0
    assert 'No validation errors.' in result.output

    bad = tmp_path / "bad.yml"
    bad.write_text("services:\n  web:\n    ports:\n      - '70000:80'\n")
    result = runner.invoke(cli, ['-f', str(bad), 'validate'])
    assert result.exit_code == 1
    assert 'Service "web": Image is required' in result.output
    assert 'Service "web" port 1 host: Port must be between 1 and 65535' in result.output


def test_convert_env(runner, compose_file, tmp_path):
    result = runner.invoke(cli, ['-f', compose_file, 'convert', '-t', 'env'])
    assert result.exit_code == 0
    assert result.output.splitlines() == ['API_PORT=', 'DB_PASS=']

    values = tmp_path / "values.env"
    values.write_text("DB_PASS=hunter2\n")
    result = runner.invoke(cli, ['-f', compose_file, 'convert', '-t', 'env', '--env-values', str(values)])
    assert result.output.splitlines() == ['API_PORT=', 'DB_PASS=hunter2']


def test_convert_docker_run(runner, compose_file):
    result = runner.invoke(cli, ['-f', compose_file, 'convert', '-t', 'docker-run', '-s', 'web'])
    assert result.exit_code == 0
    assert result.output.strip() == (
        "docker run --name web --restart always -p 8080:80 "
        "-e API_URL=http://api:${API_PORT} nginx:alpine"
    )


def test_convert_unknown_service(runner, compose_file):
    result = runner.invoke(cli, ['-f', compose_file, 'convert', '-t', 'systemd', '-s', 'nope'])
    assert result.exit_code == 1
    assert 'Service nope not found.' in result.output


def test_convert_systemd_directory(runner, compose_file, tmp_path):
    out = tmp_path / "units"
    result = runner.invoke(cli, ['-f', compose_file, 'convert', '-t', 'systemd', '-o', str(out)])
    assert result.exit_code == 0
    assert sorted(os.listdir(out)) == ['pg.service', 'web.service']


def test_convert_komodo_to_directory(runner, compose_file, tmp_path):
    out = tmp_path / "export"
    result = runner.invoke(cli, ['-f', compose_file, 'convert', '-t', 'komodo', '-o', str(out)])
    assert result.exit_code == 0
    assert (out / "komodo.toml").read_text().startswith("# Komodo configuration")


def test_templates_list_from_cache(runner, tmp_path):
    TemplateCache(str(tmp_path)).put([
        {"id": "gitea", "name": "Gitea", "tags": ["git"]},
        {"id": "plausible", "name": "Plausible", "tags": ["analytics"]},
    ])
    env = {"DCB_CACHE_DIR": str(tmp_path), "DCB_CATALOG_URL": "http://127.0.0.1:9"}
    result = runner.invoke(cli, ['templates', 'list'], env=env)
    assert result.exit_code == 0
    assert [line.split()[0] for line in result.output.splitlines()] == ['gitea', 'plausible']

    result = runner.invoke(cli, ['templates', 'list', '--search', 'analytics'], env=env)
    assert result.output.split() == ['plausible', 'Plausible']


def test_templates_import_merges(runner, compose_file, tmp_path, monkeypatch):
    template = CatalogTemplate(
        id="redis",
        compose="services:\n  redis:\n    image: redis:7\nvolumes:\n  redis_data:\n",
        template_toml='[config]\nenv = ["REDIS_PASSWORD=${redis_password}"]\n',
    )
    monkeypatch.setattr(TemplateCatalog, "fetch_template", lambda self, template_id: template)

    result = runner.invoke(cli, ['-f', compose_file, 'templates', '--cache-dir', str(tmp_path / "cache"), 'import', 'redis'])
    assert result.exit_code == 0
    document = yaml.safe_load(result.output)
    assert list(document['services']) == ['web', 'db', 'redis']
    assert document['services']['redis']['environment'] == ['REDIS_PASSWORD=${redis_password}']
    assert list(document['volumes']) == ['db_data', 'redis_data']
