"""
Write a storyboard to disk: one image file per successful shot plus a
``storyboard.json`` manifest describing every panel, failed ones included.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .models import RunState

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


def build_manifest(state: RunState) -> dict[str, Any]:
    panels = []
    for index, panel in enumerate(state.storyboard):
        entry: dict[str, Any] = {
            "index": index,
            "label": f"SHOT {index + 1}",
            "caption": panel.caption,
            "original_caption": panel.original_caption,
            "failed": panel.failed,
            "image_file": None,
        }
        if panel.failed:
            entry["failure_reason"] = panel.failure_reason
        elif panel.image is not None:
            ext = _EXTENSIONS.get(panel.image.mime_type, "png")
            entry["image_file"] = f"shot_{index + 1:02d}.{ext}"
            entry["mime_type"] = panel.image.mime_type
        panels.append(entry)

    return {
        "status": state.status.value,
        "scene_count": state.scene_count,
        "style": state.direction.style,
        "character": state.direction.character,
        "error": state.error,
        "panels": panels,
    }


def export_storyboard(state: RunState, output_dir: str | Path) -> Path:
    """Decode every successful panel's image and write the manifest.

    Returns:
        Path of the written ``storyboard.json``.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    manifest = build_manifest(state)
    for entry in manifest["panels"]:
        if not entry["image_file"]:
            continue
        panel = state.storyboard[entry["index"]]
        (output_dir / entry["image_file"]).write_bytes(panel.image.raw_bytes)

    manifest_path = output_dir / "storyboard.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)
    return manifest_path
