"""Reading and writing calibrations in the legacy Videre INI format."""

from __future__ import annotations

import io
import logging
import math
import os
import re
from pathlib import Path
from typing import TextIO

from camcalib.models import (
    PLUMB_BOB,
    RATIONAL_POLYNOMIAL,
    CalibrationError,
    CameraInfo,
)

_log = logging.getLogger(__name__)

_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER = re.compile(r"\s*([+-]?\d+)")


def _is_section(line: str) -> bool:
    return "[" in line and "]" in line


def _split_lines(text: str) -> list[str]:
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def _split_sections(lines: list[str]) -> list[list[str]]:
    sections: list[list[str]] = []
    section: list[str] = []
    for raw in lines:
        line = raw.strip()
        if not line or line[0] in "#;":
            continue
        if _is_section(line) and section:
            sections.append(section)
            section = []
        section.append(line)
    if section:
        sections.append(section)
    return sections


def _parse_row(line: str, cols: int) -> list[float]:
    """Read up to ``cols`` numbers from a line; missing values become NaN.

    A token that is not a number reads as 0.0 and ends the row.
    """
    values: list[float] = []
    pos = 0
    stopped = False
    for _ in range(cols):
        if stopped:
            values.append(math.nan)
            continue
        while pos < len(line) and line[pos].isspace():
            pos += 1
        if pos >= len(line):
            stopped = True
            values.append(math.nan)
            continue
        match = _NUMBER.match(line, pos)
        if match is None:
            stopped = True
            values.append(0.0)
            continue
        values.append(float(match.group()))
        pos = match.end()
        if pos >= len(line):
            stopped = True
    return values


def _parse_matrix(section: list[str], key_index: int, rows: int, cols: int) -> list[float]:
    values: list[float] = []
    for row in range(rows):
        index = key_index + 1 + row
        line = section[index] if index < len(section) else ""
        values.extend(_parse_row(line, cols))
    return values


def _find(section: list[str], key: str) -> int | None:
    try:
        return section.index(key)
    except ValueError:
        return None


def _require(section: list[str], key: str, where: str) -> int:
    index = _find(section, key)
    if index is None:
        raise CalibrationError(f"Failed to find key '{key}' in {where}")
    return index


def _parse_int_after(section: list[str], index: int, key: str) -> int:
    if index + 1 >= len(section):
        raise CalibrationError(f"Missing value for key '{key}' in section '[image]'")
    match = _INTEGER.match(section[index + 1])
    if match is None:
        raise CalibrationError(f"Invalid integer for key '{key}' in section '[image]'")
    return int(match.group(1))


def _parse_image_section(section: list[str], cam_info: CameraInfo) -> None:
    width = _require(section, "width", "section '[image]'")
    height = _require(section, "height", "section '[image]'")
    cam_info.width = _parse_int_after(section, width, "width")
    cam_info.height = _parse_int_after(section, height, "height")


def _parse_camera_section(section: list[str], cam_info: CameraInfo) -> str:
    camera_name = section[0][1:-1]
    where = "camera section"
    camera_matrix = _require(section, "camera matrix", where)
    distortion = _require(section, "distortion", where)
    rectification = _require(section, "rectification", where)
    projection = _require(section, "projection", where)

    d = _parse_matrix(section, distortion, 1, 8)
    if math.isnan(d[5]):
        cam_info.d = d[:5]
        cam_info.distortion_model = PLUMB_BOB
    else:
        cam_info.d = d
        cam_info.distortion_model = RATIONAL_POLYNOMIAL

    for attr, key, index, rows, cols in (
        ("k", "camera matrix", camera_matrix, 3, 3),
        ("r", "rectification", rectification, 3, 3),
        ("p", "projection", projection, 3, 4),
    ):
        values = _parse_matrix(section, index, rows, cols)
        if any(math.isnan(v) for v in values):
            raise CalibrationError(f"Error parsing '{key}', incorrect size")
        setattr(cam_info, attr, values)
    return camera_name


def _check_externals_section(section: list[str]) -> None:
    # Nothing is done with externals, so missing keys are only reported.
    for key in ("translation", "rotation"):
        if _find(section, key) is None:
            _log.error("Failed to find key '%s' in section '[externals]'", key)


def load_ini(stream: TextIO) -> tuple[str, CameraInfo]:
    """Read a calibration from a text stream; return (camera name, info)."""
    lines = _split_lines(stream.read())
    if not lines:
        raise CalibrationError("Failed to detect content in .ini file")
    sections = _split_sections(lines)
    if not sections:
        raise CalibrationError("Failed to detect valid sections in .ini file")

    camera_name = ""
    cam_info = CameraInfo()
    for section in sections:
        header = section[0]
        if header == "[image]":
            _parse_image_section(section, cam_info)
        elif header == "[externals]":
            _check_externals_section(section)
        else:
            camera_name = _parse_camera_section(section, cam_info)
    return camera_name, cam_info


def loads_ini(buffer: str) -> tuple[str, CameraInfo]:
    """Parse a calibration held in a string."""
    return load_ini(io.StringIO(buffer))


def _format_matrix(values: list[float], rows: int, cols: int) -> str:
    return "".join(
        "".join(f"{values[cols * i + j]:.5f} " for j in range(cols)) + "\n"
        for i in range(rows)
    )


def dumps_ini(camera_name: str, cam_info: CameraInfo) -> str:
    """Return the calibration as INI text.

    Only the plumb bob model with five coefficients can be stored.
    """
    if cam_info.distortion_model != PLUMB_BOB or len(cam_info.d) != 5:
        raise CalibrationError(
            "Videre INI format can only save calibrations using the plumb bob "
            "distortion model. Use the YAML format instead.\n"
            f"\tdistortion_model = '{cam_info.distortion_model}', expected '{PLUMB_BOB}'\n"
            f"\tD.size() = {len(cam_info.d)}, expected 5"
        )
    return "".join(
        [
            "# Camera intrinsics\n\n",
            "[image]\n\n",
            f"width\n{cam_info.width}\n\n",
            f"height\n{cam_info.height}\n\n",
            f"[{camera_name}]\n\n",
            "camera matrix\n",
            _format_matrix(cam_info.k, 3, 3),
            "\ndistortion\n",
            _format_matrix(cam_info.d, 1, 5),
            "\n\nrectification\n",
            _format_matrix(cam_info.r, 3, 3),
            "\nprojection\n",
            _format_matrix(cam_info.p, 3, 4),
        ]
    )


def dump_ini(camera_name: str, cam_info: CameraInfo, stream: TextIO) -> None:
    """Write the calibration as INI text to a stream."""
    stream.write(dumps_ini(camera_name, cam_info))


def write_ini(path: str | os.PathLike, camera_name: str, cam_info: CameraInfo) -> None:
    """Write the calibration to an INI file, creating parent directories."""
    text = dumps_ini(camera_name, cam_info)
    path = Path(path)
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CalibrationError(
            f"Unable to create directory for camera calibration file [{directory}]"
        ) from exc
    try:
        with path.open("w", encoding="utf-8") as out:
            out.write(text)
    except OSError as exc:
        raise CalibrationError(
            f"Unable to open camera calibration file [{path}] for writing"
        ) from exc


def read_ini(path: str | os.PathLike) -> tuple[str, CameraInfo]:
    """Read a calibration from an INI file; return (camera name, info)."""
    try:
        with open(path, encoding="utf-8") as stream:
            return load_ini(stream)
    except OSError as exc:
        raise CalibrationError(f"Unable to open camera calibration file [{path}]") from exc