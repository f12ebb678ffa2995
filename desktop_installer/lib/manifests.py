from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..errors import ManifestError
from ..models import PackageGroup

FAILURE_POLICIES = {"warn", "abort"}


def default_manifest_path() -> Path:
    # desktop_installer/lib/manifests.py -> desktop_installer/manifests/packages.yaml
    return Path(__file__).resolve().parents[1] / "manifests" / "packages.yaml"


@dataclass(frozen=True)
class Dotfile:
    source: str
    target: str
    executable: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Manifest:
    groups: Tuple[PackageGroup, ...]
    services: Tuple[str, ...] = ()
    dotfiles: Tuple[Dotfile, ...] = ()

    def stage(self, stage: str) -> List[PackageGroup]:
        return [g for g in self.groups if g.stage == stage]


def load_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest must be a mapping/dict: {path}")
    return data


def _parse_group(raw: Any, index: int) -> PackageGroup:
    if not isinstance(raw, dict):
        raise ManifestError(f"groups[{index}] must be a mapping")
    name = str(raw.get("name") or "").strip()
    if not name:
        raise ManifestError(f"groups[{index}] is missing a name")

    pkgs = raw.get("packages") or []
    if not isinstance(pkgs, list):
        raise ManifestError(f"Package group {name} packages must be a list")

    policy = str(raw.get("on_failure", "warn")).lower()
    if policy not in FAILURE_POLICIES:
        raise ManifestError(f"Package group {name}: on_failure must be one of {sorted(FAILURE_POLICIES)}")

    prompt = raw.get("prompt")
    return PackageGroup(
        name=name,
        members=tuple(dict.fromkeys(str(p).strip() for p in pkgs if str(p).strip())),
        stage=str(raw.get("stage", "core")),
        on_failure=policy,
        prompt=str(prompt) if prompt else None,
        description=str(raw.get("description") or ""),
    )


def parse_manifest(data: Dict[str, Any]) -> Manifest:
    groups_raw = data.get("groups") or []
    if not isinstance(groups_raw, list):
        raise ManifestError("groups must be a list")
    groups = tuple(_parse_group(g, i) for i, g in enumerate(groups_raw))

    services = data.get("services") or []
    if not isinstance(services, list):
        raise ManifestError("services must be a list")

    dotfiles: List[Dotfile] = []
    for i, d in enumerate(data.get("dotfiles") or []):
        if not isinstance(d, dict) or not d.get("source") or not d.get("target"):
            raise ManifestError(f"dotfiles[{i}] needs source and target")
        dotfiles.append(
            Dotfile(
                source=str(d["source"]),
                target=str(d["target"]),
                executable=tuple(str(x) for x in (d.get("executable") or [])),
            )
        )

    return Manifest(groups=groups, services=tuple(str(s) for s in services), dotfiles=tuple(dotfiles))


def load_manifest(path: Optional[str] = None) -> Manifest:
    p = Path(path) if path else default_manifest_path()
    return parse_manifest(load_yaml(p))
