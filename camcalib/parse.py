"""Calibration file access that picks the format from the file extension."""

from __future__ import annotations

import os
from pathlib import Path

from camcalib.ini import loads_ini, read_ini, write_ini
from camcalib.models import CalibrationError, CameraInfo
from camcalib.yml import read_yml, write_yml

_INI = (".ini",)
_YML = (".yml", ".yaml")


def _unrecognized(extension: str) -> CalibrationError:
    return CalibrationError(
        f"Unrecognized format '{extension}', calibration must be "
        "'.ini', '.yml', or '.yaml'"
    )


def write_calibration(
    file_name: str | os.PathLike, camera_name: str, cam_info: CameraInfo
) -> None:
    """Write a calibration; the extension (.ini, .yml, .yaml) picks the format."""
    extension = Path(file_name).suffix
    if extension in _INI:
        write_ini(file_name, camera_name, cam_info)
    elif extension in _YML:
        write_yml(file_name, camera_name, cam_info)
    else:
        raise _unrecognized(extension)


def read_calibration(file_name: str | os.PathLike) -> tuple[str, CameraInfo]:
    """Read a calibration file in INI or YAML format; return (camera name, info)."""
    extension = Path(file_name).suffix
    if extension in _INI:
        return read_ini(file_name)
    if extension in _YML:
        return read_yml(file_name)
    raise _unrecognized(extension)


def parse_calibration(buffer: str, format: str) -> tuple[str, CameraInfo]:
    """Parse a calibration held in a string. Only the "ini" format is supported."""
    if format != "ini":
        raise CalibrationError(f"Unsupported calibration format '{format}'")
    return loads_ini(buffer)