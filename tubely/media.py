"""Asset storage paths and video inspection helpers."""

from __future__ import annotations

import base64
import json
import os
import secrets
import subprocess
from pathlib import Path


class AssetStore:
    """A directory on disk whose files are served under /assets/."""

    def __init__(self, root, port) -> None:
        self.root = Path(root)
        self.port = str(port)

    def ensure_dir(self) -> None:
        """Create the root directory if it does not already exist."""
        if not self.root.exists():
            os.mkdir(self.root, 0o755)

    def disk_path(self, asset_path: str) -> Path:
        return self.root / asset_path

    def url(self, asset_path: str) -> str:
        return f"http://localhost:{self.port}/assets/{asset_path}"


def media_type_to_ext(media_type: str) -> str:
    """Map "type/subtype" to ".subtype"; anything else becomes ".bin"."""
    parts = media_type.split("/")
    if len(parts) != 2:
        return ".bin"
    return "." + parts[1]


def new_asset_path(media_type: str) -> str:
    """Return a random, URL-safe file name with an extension for the media type."""
    name = base64.urlsafe_b64encode(secrets.token_bytes(32)).rstrip(b"=").decode("ascii")
    return name + media_type_to_ext(media_type)


def classify_aspect_ratio(width: int, height: int) -> str:
    """Return "16:9", "9:16" or "other" for the given frame size."""
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    ratio = width / height
    if abs(ratio - 16 / 9) < 0.1:
        return "16:9"
    if abs(ratio - 9 / 16) < 0.1:
        return "9:16"
    return "other"


def get_video_aspect_ratio(file_path) -> str:
    """Probe a video with ffprobe and classify its first sized stream."""
    result = subprocess.run(
        ["ffprobe", "-v", "error", "-print_format", "json", "-show_streams", str(file_path)],
        stdout=subprocess.PIPE,
        check=True,
    )
    probe = json.loads(result.stdout)
    for stream in probe.get("streams") or []:
        width = stream.get("width") or 0
        height = stream.get("height") or 0
        if width > 0 and height > 0:
            return classify_aspect_ratio(width, height)
    return "other"


def aspect_ratio_to_prefix(aspect_ratio: str) -> str:
    return {"16:9": "landscape", "9:16": "portrait"}.get(aspect_ratio, "other")


def process_video_for_fast_start(file_path) -> str:
    """Remux a video with its index at the front; return the new file's path."""
    output_path = f"{file_path}.processing"
    subprocess.run(
        [
            "ffmpeg", "-i", str(file_path), "-c", "copy",
            "-movflags", "faststart", "-f", "mp4", output_path,
        ],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        check=True,
    )
    return output_path