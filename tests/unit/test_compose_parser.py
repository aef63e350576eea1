import pytest
import yaml

from dcb.BUILDERS.compose_assembler import assemble
from dcb.MODELS.service_config import PortMapping, Protocol, RestartPolicy, ServiceConfig, SyntaxFlag, TriState
from dcb.PARSERS.compose_parser import (
    ComposeImportError,
    ComposeParser,
    import_template,
    normalize,
    parse_port,
    parse_volume,
)
from dcb.UTILS.command_tokenizer import tokenize_command


def _service(spec, name="app"):
    return normalize({"services": {name: spec}}).services[0]


def test_parse(tmp_path):
    compose_content = {
        'services': {
            'web': {
                'image': 'nginx:latest',
                'ports': ['8080:80'],
                'environment': {'DEBUG': 'true'},
                'restart': 'always',
            },
            'db': {
                'image': 'postgres:13',
                'volumes': ['db_data:/var/lib/postgresql/data'],
            },
        },
        'volumes': {'db_data': {}},
    }

    compose_file = tmp_path / "docker-compose.yml"
    with open(compose_file, 'w') as f:
        yaml.dump(compose_content, f)

    project = ComposeParser().parse(str(compose_file))

    web = project.service_named('web')
    assert web.image == 'nginx:latest'
    assert web.ports[0].host == '8080'
    assert web.ports[0].container == '80'
    assert web.environment[0].key == 'DEBUG'
    assert web.environment_syntax == SyntaxFlag.DICT
    assert web.restart == RestartPolicy.ALWAYS

    db = project.service_named('db')
    assert db.volumes[0].host == 'db_data'
    assert db.volumes[0].container == '/var/lib/postgresql/data'
    assert [v.name for v in project.volumes] == ['db_data']


def test_port_shapes():
    assert parse_port("8080:80/udp").model_dump() == {"host": "8080", "container": "80", "protocol": Protocol.UDP}
    assert parse_port("53/tcp").model_dump() == {"host": "", "container": "53", "protocol": Protocol.TCP}
    assert parse_port("3000").protocol == Protocol.NONE
    assert parse_port("127.0.0.1:8080:80").host == "127.0.0.1:8080"
    assert parse_port(9000).container == "9000"
    long_form = parse_port({"target": 80, "published": 8080, "protocol": "tcp"})
    assert (long_form.host, long_form.container, long_form.protocol) == ("8080", "80", Protocol.TCP)


def test_unknown_protocol_is_dropped():
    assert parse_port("80/sctp").protocol == Protocol.NONE


def test_volume_shapes():
    assert parse_volume("./data:/data:ro").read_only is True
    assert parse_volume("./data:/data:rw").read_only is False
    anonymous = parse_volume("/cache")
    assert (anonymous.host, anonymous.container) == ("", "/cache")
    mount = parse_volume({"type": "bind", "source": "./src", "target": "/app", "read_only": True})
    assert (mount.host, mount.container, mount.read_only) == ("./src", "/app", True)


def test_volumes_syntax_follows_first_entry():
    svc = _service({"volumes": [{"source": "a", "target": "/a"}, "b:/b"]})
    assert svc.volumes_syntax == SyntaxFlag.DICT
    assert [v.host for v in svc.volumes] == ["a", "b"]
    assert _service({"volumes": ["b:/b"]}).volumes_syntax == SyntaxFlag.ARRAY


def test_environment_labels_sysctls():
    svc = _service({
        "environment": ["URL=postgres://u:p@db/x?a=b", "EMPTY"],
        "labels": {"traefik.enable": True},
        "sysctls": ["net.core.somaxconn=1024"],
    })
    assert [(e.key, e.value) for e in svc.environment] == [("URL", "postgres://u:p@db/x?a=b"), ("EMPTY", "")]
    assert svc.environment_syntax == SyntaxFlag.ARRAY
    assert [(l.key, l.value) for l in svc.labels] == [("traefik.enable", "true")]
    assert svc.labels_syntax == SyntaxFlag.DICT
    assert svc.sysctls_syntax == SyntaxFlag.ARRAY


def test_tmpfs_and_ulimits():
    svc = _service({
        "tmpfs": {"/run": "64m", "/tmp": None},
        "ulimits": {"nofile": {"soft": 1024, "hard": 2048}, "nproc": 512},
    })
    assert svc.tmpfs == ["/run:64m", "/tmp:"]
    assert [(u.name, u.soft, u.hard) for u in svc.ulimits] == [("nofile", "1024", "2048"), ("nproc", "512", "512")]


def test_command_arrays_become_json():
    svc = _service({
        "command": ["sh", "-c", "echo hello world"],
        "entrypoint": "/docker-entrypoint.sh",
        "healthcheck": {"test": ["CMD-SHELL", "pg_isready -U postgres"], "retries": 5},
    })
    assert tokenize_command(svc.command) == ["sh", "-c", "echo hello world"]
    assert svc.entrypoint == "/docker-entrypoint.sh"
    assert tokenize_command(svc.healthcheck.test) == ["CMD-SHELL", "pg_isready -U postgres"]
    assert svc.healthcheck.retries == "5"


def test_depends_on_and_networks_mappings():
    svc = _service({
        "depends_on": {"db": {"condition": "service_healthy"}, "cache": None},
        "networks": {"front": None, "back": {"aliases": ["api"]}},
    })
    assert svc.depends_on == ["db", "cache"]
    assert svc.networks == ["front", "back"]


def test_tristates_and_misc_fields():
    svc = _service({
        "privileged": True,
        "tty": False,
        "ipc": "host",
        "env_file": [".env", "secrets.env"],
        "expose": 9000,
        "deploy": {"resources": {"limits": {"cpus": "0.5", "memory": "256M"}}},
    })
    assert svc.privileged == TriState.TRUE
    assert svc.tty == TriState.FALSE
    assert svc.read_only == TriState.UNSET
    assert svc.ipc_mode == "host"
    assert svc.env_file == ".env,secrets.env"
    assert svc.expose == ["9000"]
    assert svc.deploy.resources.limits.cpus == "0.5"
    assert svc.deploy.resources.reservations.memory == ""


def test_restart_policies():
    assert _service({"restart": "unless-stopped"}).restart == RestartPolicy.UNLESS_STOPPED
    assert _service({"restart": "on-failure:3"}).restart == RestartPolicy.ON_FAILURE
    assert _service({"restart": "sometimes"}).restart == RestartPolicy.NONE
    assert _service({}).restart == RestartPolicy.NONE


def test_top_level_networks_and_volumes():
    project = normalize({
        "services": {"app": {"image": "x"}},
        "networks": {
            "proxy": {"external": {"name": "traefik_proxy"}},
            "back": {
                "driver": "bridge",
                "internal": True,
                "ipam": {"config": [{"subnet": "172.28.0.0/16", "gateway": "172.28.0.1"}]},
            },
        },
        "volumes": {
            "nfs": {"driver": "local", "driver_opts": {"type": "nfs", "o": "addr=10.0.0.1", "device": ":/x", "extra": "1"}},
        },
    })
    proxy, back = project.networks
    assert proxy.external and proxy.name_external == "traefik_proxy"
    assert back.internal
    assert back.ipam.config[0].subnet == "172.28.0.0/16"
    nfs = project.volumes[0]
    assert (nfs.driver_opts_type, nfs.driver_opts_o, nfs.driver_opts_device) == ("nfs", "addr=10.0.0.1", ":/x")
    assert [(o.key, o.value) for o in nfs.driver_opts] == [("extra", "1")]


def test_missing_services_is_an_error():
    with pytest.raises(ComposeImportError):
        normalize({"version": "3.8"})
    with pytest.raises(ComposeImportError):
        normalize("just a string")
    with pytest.raises(ComposeImportError):
        ComposeParser().parse_from_string("services: [unclosed")


def test_assembled_short_ports_import_back():
    services = [
        ServiceConfig(name="ssh", image="linuxserver/openssh-server", ports=[
            PortMapping(host="2222", container="22"),
            PortMapping(host="53", container="53", protocol=Protocol.UDP),
        ]),
        ServiceConfig(name="dns", image="coredns/coredns", ports=[PortMapping(host="53", container="53")]),
    ]
    text = assemble(services, [], [])
    assert "- 2222:22\n" in text

    project = ComposeParser().parse_from_string(text)
    ssh = project.service_named("ssh")
    assert [(p.host, p.container, p.protocol) for p in ssh.ports] == [
        ("2222", "22", Protocol.NONE),
        ("53", "53", Protocol.UDP),
    ]
    assert project.service_named("dns").ports == [PortMapping(host="53", container="53")]


def test_template_import_keeps_short_ports():
    compose = "services:\n  ssh:\n    image: x\n    ports:\n      - 2222:22\n"
    port = import_template([], [], [], compose).services[0].ports[0]
    assert (port.host, port.container) == ("2222", "22")
