"""
captioncut.project - Workspace layout and project lifecycle.

A workspace holds exactly one current project in four working stores
(input/, data/, output/, temp/) and any number of archived projects under
archive/<name>/. The current project's name lives in the .project marker.
"""

from __future__ import annotations

import logging
import re
import shutil
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from captioncut.config import CONFIG_FILENAME, create_default_config, write_config
from captioncut.exceptions import CaptionCutError, ProjectStateError
from captioncut.utils import format_bytes
from captioncut.validation import validate_project_name

logger = logging.getLogger(__name__)

STORE_NAMES = ("input", "data", "output", "temp")

TRANSCRIPTION_FILE = "01_transcription.json"
FILLER_ANALYSIS_FILE = "02_filler_analysis.json"
CUTS_FILE = "03_cuts.json"
EMPHASIS_FILE = "04_emphasis.json"
CAPTION_TIMING_FILE = "05_caption_timing.json"

_DATE_PREFIX = re.compile(r"^(\d{4})(\d{2})(\d{2})")


class Workspace:
    """Represents a CaptionCut workspace directory."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.config_path = path / CONFIG_FILENAME
        self.marker_path = path / ".project"
        self.input_dir = path / "input"
        self.data_dir = path / "data"
        self.output_dir = path / "output"
        self.temp_dir = path / "temp"
        self.archive_dir = path / "archive"
        self.public_dir = path / "public"
        self.prompts_dir = path / "prompts"

    @property
    def stores(self) -> dict[str, Path]:
        return {
            "input": self.input_dir,
            "data": self.data_dir,
            "output": self.output_dir,
            "temp": self.temp_dir,
        }

    @property
    def transcription_path(self) -> Path:
        return self.data_dir / TRANSCRIPTION_FILE

    @property
    def filler_analysis_path(self) -> Path:
        return self.data_dir / FILLER_ANALYSIS_FILE

    @property
    def cuts_path(self) -> Path:
        return self.data_dir / CUTS_FILE

    @property
    def emphasis_path(self) -> Path:
        return self.data_dir / EMPHASIS_FILE

    @property
    def caption_timing_path(self) -> Path:
        return self.data_dir / CAPTION_TIMING_FILE

    def cut_video_path(self, video_name: str) -> Path:
        return self.temp_dir / f"{video_name}_cut.mp4"

    def exists(self) -> bool:
        return self.config_path.exists()

    def create(self) -> None:
        """Create the workspace directory structure and default config."""
        self.path.mkdir(parents=True, exist_ok=True)
        for store in self.stores.values():
            store.mkdir(exist_ok=True)
        self.archive_dir.mkdir(exist_ok=True)
        self.public_dir.mkdir(exist_ok=True)

        if not self.config_path.exists():
            write_config(create_default_config(), self.config_path)

    def has_content(self) -> bool:
        """True if any working store holds files."""
        return any(_is_non_empty(store) for store in self.stores.values())


@dataclass
class ProjectInfo:
    name: str
    date: str
    size_bytes: int
    is_current: bool

    @property
    def size(self) -> str:
        return format_bytes(self.size_bytes)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "date": self.date,
            "size": self.size,
            "size_bytes": self.size_bytes,
            "is_current": self.is_current,
        }


class ProjectStore(ABC):
    """Current/archived project bookkeeping, independent of physical layout."""

    @abstractmethod
    def current_name(self) -> str | None:
        """Name of the current project, if any."""

    @abstractmethod
    def create(self, name: str) -> str:
        """Start a fresh current project, archiving the previous one.

        Returns the allocated (possibly suffixed) name.
        """

    @abstractmethod
    def archive(self, name: str) -> None:
        """Move the current project into the archive under ``name``."""

    @abstractmethod
    def load(self, name: str) -> None:
        """Make an archived project current again."""

    @abstractmethod
    def list(self) -> list[ProjectInfo]:
        """Archived projects plus the current one, name descending."""


class DirectoryProjectStore(ProjectStore):
    """ProjectStore backed by the workspace's directory tree.

    Only one lifecycle operation runs at a time per instance. Preconditions
    are checked before any directory is touched, and a source is never
    cleared until its destination copy has succeeded.
    """

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace
        self._lock = threading.Lock()

    def current_name(self) -> str | None:
        marker = self.workspace.marker_path
        if not marker.exists():
            return None
        name = marker.read_text(encoding="utf-8").strip()
        return name or None

    def _set_current_name(self, name: str | None) -> None:
        marker = self.workspace.marker_path
        if name:
            marker.write_text(name, encoding="utf-8")
        else:
            marker.unlink(missing_ok=True)

    def create(self, name: str) -> str:
        validate_project_name(name)
        with self._lock:
            current = self.current_name()
            if self.workspace.has_content():
                if current is None:
                    raise ProjectStateError(
                        "Working stores hold files that belong to no project. "
                        "Archive them under a name first."
                    )
                self._archive(current)

            unique_name = self._unique_name(name)

            for store in self.workspace.stores.values():
                store.mkdir(parents=True, exist_ok=True)
            self._set_current_name(unique_name)

        logger.info("Created project %s", unique_name)
        return unique_name

    def archive(self, name: str) -> None:
        validate_project_name(name)
        with self._lock:
            self._archive(name)

    def load(self, name: str) -> None:
        validate_project_name(name)
        with self._lock:
            entry = self.workspace.archive_dir / name
            if not entry.is_dir():
                raise ProjectStateError(f'Project "{name}" not found in archive')

            current = self.current_name()
            if self.workspace.has_content():
                if current is None:
                    raise ProjectStateError(
                        "Working stores hold files that belong to no project. "
                        "Archive them under a name first."
                    )
                if current == name:
                    raise ProjectStateError(
                        f'Project "{name}" is already current and also archived'
                    )
                self._archive(current)

            staging = self._stage_entry(entry)
            try:
                for store_name, store in self.workspace.stores.items():
                    _clear_dir(store)
                    store.mkdir(parents=True, exist_ok=True)
                    for item in (staging / store_name).iterdir():
                        item.rename(store / item.name)
            except OSError:
                for store in self.workspace.stores.values():
                    _clear_dir(store)
                raise
            finally:
                _remove_staging(staging)

            shutil.rmtree(entry)
            self._set_current_name(name)

        logger.info("Loaded project %s", name)

        from captioncut.export.publish import publish_latest_media

        try:
            publish_latest_media(self.workspace)
        except (OSError, CaptionCutError) as e:
            logger.warning("Could not publish media for %s: %s", name, e)

    def list(self) -> list[ProjectInfo]:
        projects: list[ProjectInfo] = []
        archive_dir = self.workspace.archive_dir

        if archive_dir.exists():
            for entry in archive_dir.iterdir():
                if not entry.is_dir() or entry.name.startswith("."):
                    continue
                projects.append(
                    ProjectInfo(
                        name=entry.name,
                        date=project_display_date(entry, entry.name),
                        size_bytes=dir_size(entry),
                        is_current=False,
                    )
                )

        current = self.current_name()
        if current and self.workspace.has_content():
            projects.append(
                ProjectInfo(
                    name=current,
                    date=project_display_date(self.workspace.path, current),
                    size_bytes=sum(dir_size(s) for s in self.workspace.stores.values()),
                    is_current=True,
                )
            )

        projects.sort(key=lambda p: p.name, reverse=True)
        return projects

    def _archive(self, name: str) -> None:
        """Copy the working stores into archive/<name>, then clear them."""
        if not self.workspace.has_content():
            raise ProjectStateError("No current project to archive")

        archive_dir = self.workspace.archive_dir
        destination = archive_dir / name
        if destination.exists():
            raise ProjectStateError(f'Project "{name}" already exists in archive')

        archive_dir.mkdir(parents=True, exist_ok=True)
        staging = archive_dir / f".{name}.staging"
        if staging.exists():
            shutil.rmtree(staging)

        try:
            staging.mkdir()
            for store_name, store in self.workspace.stores.items():
                if _is_non_empty(store):
                    shutil.copytree(store, staging / store_name)
            staging.rename(destination)
        except OSError:
            _remove_staging(staging)
            raise

        for store in self.workspace.stores.values():
            _clear_dir(store)
        self._set_current_name(None)

        logger.info("Archived project %s", name)

    def _stage_entry(self, entry: Path) -> Path:
        """Copy an archive entry into a staging tree beside the stores."""
        staging = self.workspace.path / f".{entry.name}.loading"
        if staging.exists():
            shutil.rmtree(staging)

        try:
            staging.mkdir()
            for store_name in self.workspace.stores:
                source = entry / store_name
                if source.is_dir():
                    shutil.copytree(source, staging / store_name)
                else:
                    (staging / store_name).mkdir()
        except OSError:
            _remove_staging(staging)
            raise
        return staging

    def _unique_name(self, base_name: str) -> str:
        """Append -2, -3, ... until the name is free in the archive."""
        name = base_name
        suffix = 1
        while (self.workspace.archive_dir / name).exists():
            suffix += 1
            name = f"{base_name}-{suffix}"
        return name


def project_display_date(path: Path, name: str) -> str:
    """Display date from a YYYYMMDD name prefix, else the directory mtime."""
    match = _DATE_PREFIX.match(name)
    if match:
        try:
            return _format_date(date(*(int(part) for part in match.groups())))
        except ValueError:
            pass
    return _format_date(datetime.fromtimestamp(path.stat().st_mtime).date())


def _format_date(d: date) -> str:
    return f"{d:%b} {d.day}, {d.year}"


def dir_size(path: Path) -> int:
    """Total size in bytes of all files under ``path``."""
    if not path.exists():
        return 0
    return sum(f.stat().st_size for f in path.rglob("*") if f.is_file())


def _is_non_empty(path: Path) -> bool:
    return path.is_dir() and any(path.iterdir())


def _clear_dir(path: Path) -> None:
    if not path.exists():
        return
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def _remove_staging(staging: Path) -> None:
    if not staging.exists():
        return
    try:
        shutil.rmtree(staging)
    except OSError as e:
        logger.warning("Failed to remove staging dir %s: %s", staging, e)
