import pytest

from desktop_installer.errors import ManifestError
from desktop_installer.lib.manifests import load_manifest, parse_manifest


def test_bundled_manifest_loads():
    m = load_manifest()

    names = [g.name for g in m.groups]
    assert names[0] == "core"
    assert [g.name for g in m.stage("core")] == ["core"]
    assert "firefox" in names
    assert all(g.members for g in m.groups)
    assert "lightdm" in m.services
    assert m.dotfiles[0].executable == ("scripts",)


def test_optional_group_carries_prompt():
    optional = {g.name: g for g in load_manifest().groups}["optional"]
    assert optional.prompt


def test_repeated_packages_listed_once():
    m = parse_manifest({"groups": [{"name": "x", "packages": ["feh", "rofi", "feh"]}]})
    assert m.groups[0].members == ("feh", "rofi")


def test_defaults_and_blank_members_dropped():
    m = parse_manifest({"groups": [{"name": "x", "packages": ["a", " ", "b "]}]})
    g = m.groups[0]
    assert g.members == ("a", "b")
    assert g.stage == "core"
    assert g.on_failure == "warn"
    assert g.title == "Installing x packages"


@pytest.mark.parametrize(
    "data",
    [
        {"groups": {"name": "x"}},
        {"groups": [{"packages": ["a"]}]},
        {"groups": [{"name": "x", "packages": "a b"}]},
        {"groups": [{"name": "x", "on_failure": "retry"}]},
        {"services": "lightdm"},
        {"dotfiles": [{"source": "i3"}]},
    ],
)
def test_invalid_manifest_rejected(data):
    with pytest.raises(ManifestError):
        parse_manifest(data)


def test_unreadable_manifest(tmp_path):
    with pytest.raises(ManifestError):
        load_manifest(str(tmp_path / "missing.yaml"))


def test_non_mapping_manifest(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n")
    with pytest.raises(ManifestError):
        load_manifest(str(p))
