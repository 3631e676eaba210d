"""
captioncut.validation - Dependency checks and input validation.

Validates environment, dependencies, and operator input before processing.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any

from captioncut.exceptions import DependencyError, ValidationError

VIDEO_EXTENSIONS = (".mp4", ".mov", ".webm", ".mkv")


def validate_project_name(name: str) -> str:
    """Reject names that are empty or could escape the archive directory.

    Args:
        name: Proposed project name

    Returns:
        The name, unchanged

    Raises:
        ValidationError: If the name is empty, padded, hidden, or contains
            path separators or ".."
    """
    if not name or not name.strip():
        raise ValidationError("Project name must not be empty")
    if name != name.strip():
        raise ValidationError(f"Project name has leading or trailing whitespace: {name!r}")
    if "/" in name or "\\" in name or ".." in name:
        raise ValidationError(f"Invalid project name: {name!r}")
    if name.startswith("."):
        raise ValidationError(f"Project name must not start with '.': {name!r}")
    return name


def find_input_video(input_dir: Path) -> Path:
    """Return the first recording in the input store.

    Args:
        input_dir: The workspace input/ directory

    Returns:
        Path to the first video file, by name

    Raises:
        ValidationError: If the directory is missing or holds no video files
    """
    if not input_dir.is_dir():
        raise ValidationError(f"Input directory not found: {input_dir}")

    videos = sorted(
        p for p in input_dir.iterdir() if p.is_file() and p.suffix.lower() in VIDEO_EXTENSIONS
    )
    if not videos:
        raise ValidationError(
            f"No video files found in {input_dir} (expected {', '.join(VIDEO_EXTENSIONS)})"
        )
    return videos[0]


def check_ffmpeg() -> dict[str, str]:
    """Check if FFmpeg and FFprobe are installed and get versions.

    Returns:
        Dict with 'ffmpeg_version' and 'ffprobe_version'

    Raises:
        DependencyError: If FFmpeg or FFprobe not found
    """
    result = {}

    for tool in ("ffmpeg", "ffprobe"):
        tool_path = shutil.which(tool)
        if not tool_path:
            raise DependencyError(
                tool,
                f"{tool} not found in PATH",
                "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)",
            )

        try:
            proc = subprocess.run(
                [tool_path, "-version"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            version_line = proc.stdout.split("\n")[0]
            result[f"{tool}_version"] = version_line.split()[2] if version_line else "unknown"
        except (subprocess.TimeoutExpired, IndexError):
            result[f"{tool}_version"] = "unknown"

    return result


def check_disk_space(path: Path, required_mb: int) -> dict[str, Any]:
    """Check if there's enough disk space at the given path.

    Args:
        path: Path to check (will use parent directory if file)
        required_mb: Required space in megabytes

    Returns:
        Dict with 'available_mb', 'required_mb', 'sufficient'

    Raises:
        ValidationError: If the space cannot be determined
    """
    check_path = path.parent if path.is_file() else path

    if not check_path.exists():
        check_path = check_path.parent

    try:
        stat = shutil.disk_usage(check_path)
        available_mb = stat.free // (1024 * 1024)

        return {
            "available_mb": available_mb,
            "required_mb": required_mb,
            "sufficient": available_mb >= required_mb,
        }
    except OSError as e:
        raise ValidationError(f"Cannot check disk space: {e}") from e
