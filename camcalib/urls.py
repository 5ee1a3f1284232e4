"""Calibration URLs: variable substitution, classification and package lookup."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Mapping
from enum import IntEnum
from pathlib import Path

_log = logging.getLogger(__name__)

DEFAULT_URL = "file://${ROS_HOME}/camera_info/${NAME}.yaml"

_FILE_PREFIX = "file:///"
_FLASH_PREFIX = "flash:///"
_PACKAGE_PREFIX = "package://"

_NAME_VAR = "{NAME}"
_HOME_VAR = "{ROS_HOME}"


class UrlType(IntEnum):
    """Kinds of calibration URL; values at or above INVALID are unsupported."""

    EMPTY = 0
    FILE = 1
    PACKAGE = 2
    INVALID = 3
    FLASH = 4

    @property
    def is_supported(self) -> bool:
        return self < UrlType.INVALID


def split(text: str, pattern: str) -> list[str]:
    """Return the pieces of ``text`` between matches of the regular expression.

    A trailing empty piece after the last match is dropped; text with no
    match at all comes back whole, even when empty.
    """
    pieces: list[str] = []
    pos = 0
    matched = False
    for match in re.finditer(pattern, text):
        pieces.append(text[pos:match.start()])
        pos = match.end()
        matched = True
    if not matched or pos < len(text):
        pieces.append(text[pos:])
    return pieces


def _ros_home(environ: Mapping[str, str]) -> str:
    ros_home = environ.get("ROS_HOME", "")
    if ros_home:
        return ros_home
    home = environ.get("HOME", "")
    if home:
        return home + "/.ros"
    return ""


def resolve_url(
    url: str, camera_name: str, environ: Mapping[str, str] | None = None
) -> str:
    """Substitute ``${NAME}`` and ``${ROS_HOME}`` in a URL in a single pass.

    Unknown variables and lone ``$`` signs are kept literally.
    """
    if environ is None:
        environ = os.environ
    resolved: list[str] = []
    rest = 0
    while True:
        dollar = url.find("$", rest)
        if dollar < 0:
            resolved.append(url[rest:])
            break
        resolved.append(url[rest:dollar])
        after = url[dollar + 1:]
        if not after.startswith("{"):
            resolved.append("$")
        elif after.startswith(_NAME_VAR):
            resolved.append(camera_name)
            dollar += len(_NAME_VAR)
        elif after.startswith(_HOME_VAR):
            resolved.append(_ros_home(environ))
            dollar += len(_HOME_VAR)
        else:
            _log.error("invalid URL substitution (not resolved): %s", url)
            resolved.append("$")
        rest = dollar + 1
    return "".join(resolved)


def _has_prefix(url: str, prefix: str) -> bool:
    return url[: len(prefix)].lower() == prefix


def parse_url(url: str) -> UrlType:
    """Classify a resolved calibration URL."""
    if url == "":
        return UrlType.EMPTY
    if _has_prefix(url, _FILE_PREFIX):
        return UrlType.FILE
    if _has_prefix(url, _FLASH_PREFIX):
        return UrlType.FLASH
    if _has_prefix(url, _PACKAGE_PREFIX):
        # The package name must be non-empty and something must follow its '/'.
        start = len(_PACKAGE_PREFIX)
        slash = url.find("/", start)
        if start < slash < len(url) - 1:
            return UrlType.PACKAGE
    return UrlType.INVALID


def find_package_share_directory(
    package: str, environ: Mapping[str, str] | None = None
) -> str | None:
    """Return the share directory of an installed package, or None if unknown.

    Each prefix in ``AMENT_PREFIX_PATH`` is searched for the package's marker
    in the resource index.
    """
    if environ is None:
        environ = os.environ
    if not package:
        return None
    for prefix in environ.get("AMENT_PREFIX_PATH", "").split(os.pathsep):
        if not prefix:
            continue
        marker = (
            Path(prefix) / "share" / "ament_index" / "resource_index" / "packages" / package
        )
        if marker.is_file():
            return str(Path(prefix) / "share" / package)
    return None


def package_file_name(
    url: str, resolver: Callable[[str], str | None] | None = None
) -> str | None:
    """Map a ``package://`` URL to a local file name, or None if the package is unknown."""
    if resolver is None:
        resolver = find_package_share_directory
    _log.debug("camera calibration url: %s", url)
    start = len(_PACKAGE_PREFIX)
    slash = url.find("/", start)
    if slash < 0:
        slash = len(url)
    package = url[start:slash]
    package_path = resolver(package)
    if not package_path:
        _log.warning("unknown package: %s (ignored)", package)
        return None
    return package_path + url[slash:]