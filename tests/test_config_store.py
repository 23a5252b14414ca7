"""Tests for loading and querying the juliaup configuration file."""

import json
from pathlib import Path

import pytest

from config_store import ConfigStore, load_config_store, validate_config
from errors import ConfigCorruptedError
from versioning.models import Version


def _config(**overrides):
    data = {
        "Default": "release",
        "InstalledVersions": {
            "1.6.1+0.x64": {"Path": "julia-1.6.1+0.x64"},
            "1.5.2+0.x86": {"Path": "./sub/../julia-1.5.2+0.x86"},
        },
        "InstalledChannels": {
            "release": {"Version": "1.6.1+0.x64"},
            "dev": {"Command": "/opt/julia-dev/bin/julia", "Args": ["--project"]},
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def store(tmp_path):
    return ConfigStore(_config(), tmp_path / "juliaup.json", default_platform="x64")


class TestValidateConfig:
    """Schema validation of raw configuration documents."""

    def test_valid(self):
        validate_config(_config())

    def test_missing_installed_versions(self):
        data = _config()
        del data["InstalledVersions"]
        with pytest.raises(ConfigCorruptedError, match="<root>.*InstalledVersions"):
            validate_config(data)

    def test_version_entry_without_path(self):
        data = _config(InstalledVersions={"1.6.1": {}})
        with pytest.raises(ConfigCorruptedError, match="InstalledVersions/1.6.1"):
            validate_config(data)

    def test_channel_entry_needs_version_command_or_target(self):
        data = _config(InstalledChannels={"release": {"Args": []}})
        with pytest.raises(ConfigCorruptedError, match="InstalledChannels/release"):
            validate_config(data)

    def test_settings_type(self):
        data = _config(Settings={"CheckChannelUpToDate": "yes"})
        with pytest.raises(ConfigCorruptedError, match="Settings/CheckChannelUpToDate"):
            validate_config(data)

    def test_error_is_reported_as_corruption(self):
        with pytest.raises(ConfigCorruptedError) as exc_info:
            validate_config([])
        assert exc_info.value.format().startswith("Configuration corrupted.")


class TestConfigStore:
    """Queries on a loaded configuration."""

    def test_defaults(self, store):
        assert store.default == "release"
        assert store.check_channel_up_to_date is True
        assert store.overrides == []

    def test_versions_are_normalized(self, store):
        assert store.installed_versions() == {Version(1, 6, 1, "x64"), Version(1, 5, 2, "x86")}
        assert store.is_version_installed(Version(1, 6, 1))
        assert not store.is_version_installed(Version(1, 5, 2))
        assert store.is_version_installed(Version(1, 5, 2, "x86"))

    def test_install_dir_is_normalized(self, store, tmp_path):
        installed = store.installed(Version(1, 5, 2, "x86"))
        assert store.install_dir(installed) == tmp_path / "julia-1.5.2+0.x86"

    def test_bound_version(self, store):
        assert store.bound_version(store.channel("release")) == Version(1, 6, 1, "x64")

    def test_command_channel(self, store):
        entry = store.channel("dev")
        assert entry.command == "/opt/julia-dev/bin/julia"
        assert entry.args == ["--project"]
        with pytest.raises(ConfigCorruptedError, match="dev"):
            store.bound_version(entry)

    def test_unknown_channel(self, store):
        assert store.channel("nightly") is None

    def test_duplicate_normalized_versions(self, tmp_path):
        data = _config(InstalledVersions={
            "1.6.1": {"Path": "a"},
            "1.6.1+0.x64": {"Path": "b"},
        })
        with pytest.raises(ConfigCorruptedError, match="same Julia version"):
            ConfigStore(data, tmp_path / "juliaup.json", default_platform="x64")

    def test_invalid_version_key(self, tmp_path):
        data = _config(InstalledVersions={"not-a-version": {"Path": "a"}})
        with pytest.raises(ConfigCorruptedError, match="not-a-version"):
            ConfigStore(data, tmp_path / "juliaup.json", default_platform="x64")

    def test_settings_disable_check(self, tmp_path):
        data = _config(Settings={"CheckChannelUpToDate": False})
        store = ConfigStore(data, tmp_path / "juliaup.json", default_platform="x64")
        assert store.check_channel_up_to_date is False


class TestRealWorldEntries:
    """Entries as juliaup writes them for pre-release and nightly installs."""

    def _data(self):
        return _config(
            InstalledVersions={
                "1.10.4+0.x64.linux.gnu": {"Path": "julia-1.10.4+0.x64.linux.gnu"},
                "1.11.0-rc1+0.x64.linux.gnu": {"Path": "julia-1.11.0-rc1+0.x64.linux.gnu"},
            },
            InstalledChannels={
                "release": {"Version": "1.10.4+0.x64.linux.gnu"},
                "rc": {"Version": "1.11.0-rc1+0.x64.linux.gnu"},
                "nightly": {
                    "Path": "nightly",
                    "Url": "https://julialangnightlies-s3.julialang.org/bin/linux/x86_64/julia-latest-linux-x86_64.tar.gz",
                    "LocalETag": "\"abc\"",
                    "ServerETag": "\"abc\"",
                    "Version": "1.12.0-DEV.1234",
                },
            },
        )

    def test_prerelease_install_loads(self, tmp_path):
        store = ConfigStore(self._data(), tmp_path / "juliaup.json", default_platform="x64")
        assert store.is_version_installed(Version(1, 11, 0, "x64", ("rc1",)))
        assert not store.is_version_installed(Version(1, 11, 0, "x64"))
        assert store.bound_version(store.channel("rc")) == Version(1, 11, 0, "x64", ("rc1",))

    def test_direct_download_channel(self, tmp_path):
        store = ConfigStore(self._data(), tmp_path / "juliaup.json", default_platform="x64")
        entry = store.channel("nightly")
        assert entry.path == "nightly"
        assert entry.url.endswith(".tar.gz")
        assert store.resolve_path(entry.path) == tmp_path / "nightly"

    def test_manifest_detection_setting(self, tmp_path):
        store = ConfigStore(self._data(), tmp_path / "juliaup.json")
        assert store.manifest_version_detect is False
        data = self._data()
        data["Settings"] = {"ManifestVersionDetect": True}
        assert ConfigStore(data, tmp_path / "juliaup.json").manifest_version_detect is True


class TestOverrides:
    """Directory override lookup."""

    def test_closest_ancestor_wins(self, tmp_path):
        outer = tmp_path / "projects"
        inner = outer / "app"
        data = _config(Overrides=[
            {"Path": str(outer), "Channel": "lts"},
            {"Path": str(inner), "Channel": "1.6"},
        ])
        store = ConfigStore(data, tmp_path / "juliaup.json", default_platform="x64")

        assert store.override_for(inner / "src").channel == "1.6"
        assert store.override_for(inner).channel == "1.6"
        assert store.override_for(outer / "other").channel == "lts"
        assert store.override_for(tmp_path) is None

    def test_sibling_prefix_does_not_match(self, tmp_path):
        data = _config(Overrides=[{"Path": str(tmp_path / "app"), "Channel": "lts"}])
        store = ConfigStore(data, tmp_path / "juliaup.json", default_platform="x64")
        assert store.override_for(tmp_path / "app2") is None


class TestLoadConfigStore:
    """Reading the configuration file from disk."""

    def test_roundtrip(self, tmp_path):
        path = tmp_path / "juliaup.json"
        path.write_text(json.dumps(_config()), encoding="utf-8")
        store = load_config_store(path, "x64")
        assert store.directory == tmp_path
        assert store.location == path

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigCorruptedError, match="Could not read configuration file"):
            load_config_store(tmp_path / "juliaup.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "juliaup.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ConfigCorruptedError, match="not a valid JSON file"):
            load_config_store(Path(path))
