"""
Project Serializer: export / import of the session as one JSON document.

Documents use the camelCase keys of ProjectSnapshot's aliases. Images are
stored as data URLs; display previews are never written.

Import is tolerant of older documents: only ``storyText`` and ``numScenes``
are required, everything else is defaulted. Scenes saved before per-scene
ratios existed take the document's global ratio.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from agents.video_agent import without_api_key
from config import get_export_config
from schemas import ProjectSnapshot
from store import DEFAULT_ASPECT_RATIO, DEFAULT_STYLE, ProjectStore
from utils.errors import ProjectImportError
from utils.logger import get_logger

logger = get_logger("project_io")

REQUIRED_FIELDS = ("storyText", "numScenes")


def export_project(store: ProjectStore) -> bytes:
    """Serialize the store to UTF-8 JSON bytes. Video URIs are written without the API key."""
    snapshot = store.snapshot()
    snapshot.scenes = [
        scene.model_copy(update={"video_uri": without_api_key(scene.video_uri)})
        for scene in snapshot.scenes
    ]
    return snapshot.model_dump_json(by_alias=True, indent=2).encode("utf-8")


def _apply_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    data.setdefault("notes", "")
    if data.get("notes") is None:
        data["notes"] = ""
    if not data.get("storyStyle"):
        data["storyStyle"] = DEFAULT_STYLE.model_dump()
    if not data.get("aspectRatio"):
        data["aspectRatio"] = DEFAULT_ASPECT_RATIO.model_dump()
    data.setdefault("characters", [])
    data.setdefault("scenes", [])

    if not isinstance(data["characters"], list) or not isinstance(data["scenes"], list):
        raise ProjectImportError("Project 'characters' and 'scenes' must be lists.")

    global_ratio = data["aspectRatio"]
    characters = []
    for character in data["characters"]:
        if not isinstance(character, dict):
            raise ProjectImportError("Project contains a malformed character entry.")
        # nothing is in flight after an import
        characters.append({**character, "isLoading": False})

    scenes = []
    for scene in data["scenes"]:
        if not isinstance(scene, dict):
            raise ProjectImportError("Project contains a malformed scene entry.")
        scene = {**scene, "isLoading": False, "isVideoLoading": False}
        if not scene.get("aspectRatio"):
            scene["aspectRatio"] = global_ratio
        scenes.append(scene)

    data["characters"] = characters
    data["scenes"] = scenes
    return data


def parse_project(data: Union[bytes, str]) -> ProjectSnapshot:
    """
    Parse and validate a project document.

    Raises:
        ProjectImportError: not JSON, missing required fields, or invalid values
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8-sig")
        document = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProjectImportError(f"Failed to import the project: {e}") from e

    if not isinstance(document, dict):
        raise ProjectImportError("Failed to import the project: document is not an object.")

    missing = [field for field in REQUIRED_FIELDS if not document.get(field)]
    if missing:
        raise ProjectImportError(f"Failed to import the project: missing {', '.join(missing)}.")

    try:
        return ProjectSnapshot.model_validate(_apply_defaults(document))
    except SchemaValidationError as e:
        raise ProjectImportError(f"Failed to import the project: {e.error_count()} invalid field(s).") from e


def import_project(store: ProjectStore, data: Union[bytes, str]) -> ProjectSnapshot:
    """Validate ``data`` completely, then replace the store with it."""
    snapshot = parse_project(data)
    store.load_snapshot(snapshot)
    logger.info(
        f"Project imported: {len(snapshot.characters)} characters, {len(snapshot.scenes)} scenes"
    )
    return snapshot


def project_path(directory: Optional[str] = None) -> Path:
    export_config = get_export_config()
    return Path(directory or export_config["output_dir"]) / export_config["filename"]


def save_project(store: ProjectStore, directory: Optional[str] = None) -> Path:
    """Write the export document to ``directory`` under the fixed file name."""
    path = project_path(directory)
    os.makedirs(path.parent, exist_ok=True)
    path.write_bytes(export_project(store))
    logger.info(f"Project saved: {path}")
    return path


def load_project(store: ProjectStore, path: Union[str, Path]) -> ProjectSnapshot:
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ProjectImportError(f"Failed to read project file: {e}") from e
    return import_project(store, data)
