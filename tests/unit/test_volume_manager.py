"""
Unit tests for volume editing cascades.
"""
from dcb.MANAGERS.volume_manager import add_volume, remove_volume, rename_volume
from dcb.MODELS.resource_config import VolumeConfig
from dcb.MODELS.service_config import ServiceConfig, VolumeMapping


def _fixture():
    volumes = [VolumeConfig(name="data", driver="local"), VolumeConfig(name="logs")]
    services = [
        ServiceConfig(name="db", volumes=[
            VolumeMapping(host="data", container="/var/lib/postgresql/data"),
            VolumeMapping(host="./init", container="/docker-entrypoint-initdb.d", read_only=True),
        ]),
        ServiceConfig(name="web", volumes=[VolumeMapping(host="logs", container="/var/log/nginx")]),
    ]
    return volumes, services


def test_add_volume():
    volumes, _ = _fixture()
    assert add_volume(volumes)[-1] == VolumeConfig()


def test_rename_volume_updates_mounts():
    volumes, services = _fixture()
    new_volumes, new_services = rename_volume(volumes, services, 0, "pgdata")
    assert (new_volumes[0].name, new_volumes[0].driver) == ("pgdata", "local")
    assert [m.host for m in new_services[0].volumes] == ["pgdata", "./init"]
    assert new_services[0].volumes[1].read_only
    assert new_services[1] is services[1]


def test_remove_volume_drops_mounts():
    volumes, services = _fixture()
    new_volumes, new_services = remove_volume(volumes, services, 0)
    assert [v.name for v in new_volumes] == ["logs"]
    assert [m.host for m in new_services[0].volumes] == ["./init"]
    assert [m.host for m in services[0].volumes] == ["data", "./init"]
