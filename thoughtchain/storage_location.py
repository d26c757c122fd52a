"""
Storage location resolution and first-run preparation.

resolve_storage_location() only inspects the filesystem through a probe and
returns a plan; prepare_storage_location() carries the plan out (directory
creation, legacy copy, permission tightening).
"""

from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol

import thoughtchain.config as config

MEMORY_PATH = ":memory:"
DIR_MODE = 0o700
FILE_MODE = 0o600


class FileSystemProbe(Protocol):
    def exists(self, path: str) -> bool: ...

    def makedirs(self, path: str, mode: int) -> None: ...

    def copy(self, src: str, dst: str) -> None: ...

    def chmod(self, path: str, mode: int) -> None: ...


class LocalFileSystem:
    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def makedirs(self, path: str, mode: int) -> None:
        os.makedirs(path, mode=mode, exist_ok=True)

    def copy(self, src: str, dst: str) -> None:
        # copy rather than move: the legacy file must survive a failed migration
        shutil.copy2(src, dst)

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(path, mode)


@dataclass(frozen=True)
class PlatformInfo:
    system: str
    home: str
    env: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "PlatformInfo":
        return cls(system=sys.platform, home=os.path.expanduser("~"), env=dict(os.environ))


@dataclass(frozen=True)
class StorageLocation:
    path: str
    directory: Optional[str]
    legacy_path: Optional[str] = None
    migrate_from: Optional[str] = None
    managed: bool = True

    @property
    def in_memory(self) -> bool:
        return self.path == MEMORY_PATH


def app_data_dir(platform: PlatformInfo) -> str:
    if platform.system == "win32":
        return platform.env.get("APPDATA") or os.path.join(platform.home, "AppData", "Roaming")
    if platform.system == "darwin":
        return os.path.join(platform.home, "Library", "Application Support")
    return platform.env.get("XDG_CONFIG_HOME") or os.path.join(platform.home, ".config")


def legacy_db_path(platform: PlatformInfo) -> str:
    return os.path.join(platform.home, config.LEGACY_DIR_NAME, config.DB_FILE_NAME)


def resolve_storage_location(
    platform: PlatformInfo,
    probe: FileSystemProbe,
    override: Optional[str] = None,
) -> StorageLocation:
    """Decide where the database lives without touching the filesystem."""
    if override:
        if override == MEMORY_PATH:
            return StorageLocation(path=MEMORY_PATH, directory=None, managed=False)
        return StorageLocation(
            path=override,
            directory=os.path.dirname(os.path.abspath(override)),
            managed=False,
        )

    directory = os.path.join(app_data_dir(platform), config.APP_DIR_NAME)
    path = os.path.join(directory, config.DB_FILE_NAME)
    legacy_path = legacy_db_path(platform)

    migrate_from = None
    if probe.exists(legacy_path) and not probe.exists(path):
        migrate_from = legacy_path

    return StorageLocation(
        path=path,
        directory=directory,
        legacy_path=legacy_path,
        migrate_from=migrate_from,
    )


def _tighten(fs: FileSystemProbe, path: str, mode: int) -> None:
    try:
        fs.chmod(path, mode)
    except OSError as exc:
        # Windows and foreign-owned directories do not support these bits
        config.logger.debug("chmod_skipped", extra={"path": path, "error": str(exc)})


def _fall_back_to_legacy(location: StorageLocation, fs: FileSystemProbe) -> StorageLocation:
    legacy_dir = os.path.dirname(location.legacy_path)
    if not fs.exists(legacy_dir):
        fs.makedirs(legacy_dir, DIR_MODE)
    return StorageLocation(path=location.legacy_path, directory=legacy_dir, legacy_path=location.legacy_path)


def prepare_storage_location(
    location: StorageLocation,
    fs: Optional[FileSystemProbe] = None,
) -> StorageLocation:
    """Create the private directory and migrate the legacy database if needed."""
    if location.in_memory:
        return location
    fs = fs or LocalFileSystem()

    if location.migrate_from:
        try:
            if not fs.exists(location.directory):
                fs.makedirs(location.directory, DIR_MODE)
            fs.copy(location.migrate_from, location.path)
            config.logger.info(
                "storage_migrated",
                extra={"source": location.migrate_from, "target": location.path},
            )
        except OSError as exc:
            config.logger.warning(
                "storage_migration_failed",
                extra={"source": location.migrate_from, "error": str(exc)},
            )
            return StorageLocation(
                path=location.migrate_from,
                directory=os.path.dirname(location.migrate_from),
                legacy_path=location.legacy_path,
            )

    if not fs.exists(location.directory):
        try:
            fs.makedirs(location.directory, DIR_MODE)
        except OSError as exc:
            if not location.legacy_path:
                raise
            config.logger.warning(
                "storage_directory_failed",
                extra={"directory": location.directory, "error": str(exc)},
            )
            return _fall_back_to_legacy(location, fs)
    elif location.managed:
        _tighten(fs, location.directory, DIR_MODE)

    return StorageLocation(
        path=location.path,
        directory=location.directory,
        legacy_path=location.legacy_path,
        managed=location.managed,
    )


def secure_database_file(location: StorageLocation, fs: Optional[FileSystemProbe] = None) -> None:
    if location.in_memory:
        return
    fs = fs or LocalFileSystem()
    if fs.exists(location.path):
        _tighten(fs, location.path, FILE_MODE)


def default_storage_location() -> StorageLocation:
    fs = LocalFileSystem()
    planned = resolve_storage_location(PlatformInfo.current(), fs, override=config.DB_PATH_OVERRIDE)
    return prepare_storage_location(planned, fs)


__all__ = [
    "MEMORY_PATH",
    "FileSystemProbe",
    "LocalFileSystem",
    "PlatformInfo",
    "StorageLocation",
    "app_data_dir",
    "legacy_db_path",
    "resolve_storage_location",
    "prepare_storage_location",
    "secure_database_file",
    "default_storage_location",
]
