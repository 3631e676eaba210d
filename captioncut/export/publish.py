"""
captioncut.export.publish - Publish the latest cut video for preview.

Copies the current project's cut video into public/ under a timestamped
name so a preview never serves a stale cached file, then removes older
published copies.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Any

from captioncut.io import read_artifact

logger = logging.getLogger(__name__)

PUBLISHED_PREFIX = "video-"
PUBLISHED_SUFFIX = ".mp4"


def current_video_name(workspace: Any) -> str | None:
    """Stem of the current project's recording, if it has been transcribed."""
    if not workspace.transcription_path.exists():
        return None
    transcription = read_artifact(workspace.transcription_path, produced_by="transcribe")
    video_name = transcription.get("video_name")
    if video_name:
        return video_name
    source_ref = transcription.get("source_ref")
    return Path(source_ref).stem if source_ref else None


def published_videos(public_dir: Path) -> list[Path]:
    if not public_dir.is_dir():
        return []
    return sorted(
        p
        for p in public_dir.iterdir()
        if p.is_file()
        and p.name.startswith(PUBLISHED_PREFIX)
        and p.name.endswith(PUBLISHED_SUFFIX)
    )


def publish_latest_media(workspace: Any) -> str | None:
    """Copy the cut video to public/video-<ms timestamp>.mp4.

    Args:
        workspace: Workspace instance

    Returns:
        Published file name, or None when there is no cut video yet
    """
    video_name = current_video_name(workspace)
    if video_name is None:
        return None

    cut_path = workspace.cut_video_path(video_name)
    if not cut_path.exists():
        logger.debug("No cut video at %s, nothing to publish", cut_path)
        return None

    public_dir = workspace.public_dir
    public_dir.mkdir(parents=True, exist_ok=True)

    published_name = f"{PUBLISHED_PREFIX}{int(time.time() * 1000)}{PUBLISHED_SUFFIX}"
    shutil.copyfile(cut_path, public_dir / published_name)

    for old in published_videos(public_dir):
        if old.name == published_name:
            continue
        try:
            old.unlink()
        except OSError as e:
            logger.warning("Could not remove old published video %s: %s", old, e)

    logger.info("Published %s", published_name)
    return published_name
