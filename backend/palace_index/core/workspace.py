"""Workspace layout, curated configuration and room manifests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping

import orjson
from pydantic import BaseModel, Field, ValidationError

from palace_index.core.config import PALACE_DIRNAME
from palace_index.core.errors import ManifestError, ScanError
from palace_index.core.logging import get_logger
from palace_index.core.manifest import MANIFEST_SUFFIXES, ManifestDecoder, decode_manifest

logger = get_logger(__name__)

LAYOUT_DIRS = ("rooms", "playbooks", "outputs", "schemas", "maps", "index")

DEFAULT_DO_NOT_TOUCH = (
    ".git/**",
    ".palace/**",
    "node_modules/**",
    "vendor/**",
    "dist/**",
    "build/**",
    "coverage/**",
    "target/**",
    ".dart_tool/**",
    ".next/**",
    ".turbo/**",
    ".nx/**",
    ".gradle/**",
    ".idea/**",
    ".vscode/**",
    "**/__pycache__/**",
    "**/*.min.*",
    "**/*.lock",
    "**/*.generated.*",
    "**/*.g.*",
)

_MANIFEST_MODEL_CONFIG = {"populate_by_name": True, "extra": "ignore"}


class Guardrails(BaseModel):
    """Two tiers of glob patterns that are never indexed."""

    do_not_touch: list[str] = Field(default_factory=list, alias="doNotTouchGlobs")
    read_only: list[str] = Field(default_factory=list, alias="readOnlyGlobs")

    model_config = _MANIFEST_MODEL_CONFIG

    def patterns(self) -> list[str]:
        return [*self.do_not_touch, *self.read_only]


class ProjectInfo(BaseModel):
    name: str = ""
    description: str = ""
    language: str = ""
    repository: str = ""


class PalaceConfig(BaseModel):
    """Mirror of the curated ``.palace/palace.jsonc`` file."""

    schema_version: str = Field(default="1.0.0", alias="schemaVersion")
    kind: str = "palace/config"
    project: ProjectInfo = Field(default_factory=ProjectInfo)
    default_room: str = Field(default="", alias="defaultRoom")
    guardrails: Guardrails = Field(default_factory=Guardrails)

    model_config = _MANIFEST_MODEL_CONFIG


class Room(BaseModel):
    """A curated grouping of paths with declared entry points."""

    schema_version: str = Field(default="1.0.0", alias="schemaVersion")
    kind: str = "palace/room"
    name: str
    summary: str = ""
    entry_points: list[str] = Field(default_factory=list, alias="entryPoints")
    capabilities: list[str] = Field(default_factory=list)

    model_config = _MANIFEST_MODEL_CONFIG


def require_workspace(root: Path, operation: str = "open") -> Path:
    """Return ``root`` if it is an existing directory, else raise :class:`ScanError`."""
    if not root.is_dir():
        raise ScanError(str(root), operation, "workspace root is not a directory")
    return root


def palace_dir(root: Path) -> Path:
    return root / PALACE_DIRNAME


def outputs_dir(root: Path) -> Path:
    return palace_dir(root) / "outputs"


def ensure_layout(root: Path) -> Path:
    """Create the ``.palace`` directory hierarchy and return its path."""
    base = palace_dir(root)
    base.mkdir(parents=True, exist_ok=True)
    for name in LAYOUT_DIRS:
        (base / name).mkdir(exist_ok=True)
    return base


def write_artifact(root: Path, name: str, payload: Mapping[str, Any]) -> Path:
    """Persist a JSON artifact under ``.palace/outputs`` and return its path."""
    target = outputs_dir(root) / name
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(target.suffix + ".tmp")
    tmp.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS) + b"\n")
    tmp.replace(target)
    return target


def load_palace_config(root: Path, decoder: ManifestDecoder = decode_manifest) -> PalaceConfig | None:
    """Parse the curated config if present. Returns ``None`` when absent."""
    path = palace_dir(root) / "palace.jsonc"
    if not path.exists():
        return None
    return _validate(PalaceConfig, decoder(path), path)


def load_guardrails(root: Path, decoder: ManifestDecoder = decode_manifest) -> Guardrails:
    """Return built-in guardrails merged with the user-declared ones."""
    try:
        config = load_palace_config(root, decoder)
    except ManifestError as exc:
        logger.warning("Ignoring guardrails from invalid config: %s", exc)
        config = None
    user = config.guardrails if config else Guardrails()
    return Guardrails(
        do_not_touch=merge_globs(DEFAULT_DO_NOT_TOUCH, user.do_not_touch),
        read_only=merge_globs((), user.read_only),
    )


def load_rooms(root: Path, decoder: ManifestDecoder = decode_manifest) -> dict[str, Room]:
    """Load every valid room manifest. Invalid files are skipped with a warning."""
    rooms_dir = palace_dir(root) / "rooms"
    if not rooms_dir.is_dir():
        return {}
    rooms: dict[str, Room] = {}
    for path in sorted(rooms_dir.iterdir()):
        if path.suffix.lower() not in MANIFEST_SUFFIXES or not path.is_file():
            continue
        try:
            room = _validate(Room, decoder(path), path)
        except ManifestError as exc:
            logger.warning("Skipping room manifest: %s", exc)
            continue
        room.entry_points = [normalize_glob(ep) for ep in room.entry_points if ep.strip()]
        rooms[room.name] = room
    return rooms


def merge_globs(defaults: Iterable[str], user: Iterable[str]) -> list[str]:
    """Merge user globs after defaults, normalized and without duplicates."""
    seen: set[str] = set()
    merged: list[str] = []
    for glob in [*defaults, *user]:
        normalized = normalize_glob(glob)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        merged.append(normalized)
    return merged


def normalize_glob(glob: str) -> str:
    trimmed = glob.strip().replace("\\", "/")
    while "//" in trimmed:
        trimmed = trimmed.replace("//", "/")
    while trimmed.startswith("./"):
        trimmed = trimmed[2:]
    return trimmed


def _validate(model: type[BaseModel], data: Any, path: Path) -> Any:
    if not isinstance(data, dict):
        raise ManifestError(str(path), "expected an object at the top level")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(str(path), str(exc)) from exc


__all__ = [
    "DEFAULT_DO_NOT_TOUCH",
    "Guardrails",
    "PalaceConfig",
    "Room",
    "ensure_layout",
    "load_guardrails",
    "load_palace_config",
    "load_rooms",
    "merge_globs",
    "normalize_glob",
    "outputs_dir",
    "palace_dir",
    "require_workspace",
    "write_artifact",
]
