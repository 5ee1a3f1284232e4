"""Keeps a camera's calibration, loading and saving it by URL on demand."""

from __future__ import annotations

import copy
import logging
import os
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from camcalib.models import CalibrationError, CameraInfo
from camcalib.parse import read_calibration, write_calibration
from camcalib.urls import (
    DEFAULT_URL,
    UrlType,
    find_package_share_directory,
    package_file_name,
    parse_url,
    resolve_url,
)

_log = logging.getLogger(__name__)

_T = TypeVar("_T")

_NAME_EXTRA_CHARS = frozenset("_")


def _is_ascii_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


@dataclass
class SetCameraInfoResponse:
    """Outcome of a request to store a new calibration."""

    success: bool = False
    status_message: str = ""


class CameraInfoManager:
    """Provides the current calibration of one camera.

    Nothing is loaded until :meth:`load_camera_info`, :meth:`is_calibrated`
    or :meth:`get_camera_info` is called. The URL may hold ``${NAME}`` and
    ``${ROS_HOME}`` variables; an empty URL means the default location
    ``file://${ROS_HOME}/camera_info/${NAME}.yaml``.
    """

    def __init__(
        self,
        camera_name: str = "camera",
        url: str = "",
        package_resolver: Callable[[str], str | None] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._camera_name = camera_name
        self._url = url
        self._cam_info = CameraInfo()
        self._loaded = False
        self._environ = os.environ if environ is None else environ
        if package_resolver is None:
            self._package_resolver: Callable[[str], str | None] = (
                lambda package: find_package_share_directory(package, self._environ)
            )
        else:
            self._package_resolver = package_resolver

    # -- public interface -------------------------------------------------

    def get_camera_info(self) -> CameraInfo:
        """Return a copy of the current calibration, loading it first if needed.

        All matrices are zero when no calibration is available.
        """
        return self._with_loaded(copy.deepcopy)

    def is_calibrated(self) -> bool:
        """Return True if the current calibration holds a camera matrix."""
        return self._with_loaded(lambda info: info.is_calibrated())

    def load_camera_info(self, url: str) -> bool:
        """Set a new URL and load its calibration; return True on success."""
        with self._lock:
            self._url = url
            camera_name = self._camera_name
            self._loaded = True
        return self._load_calibration(url, camera_name)

    def resolve_url(self, url: str, camera_name: str) -> str:
        """Return ``url`` with its substitution variables resolved."""
        return resolve_url(url, camera_name, self._environ)

    def set_camera_name(self, camera_name: str) -> bool:
        """Set a new camera name; only letters, digits and '_' are accepted.

        A valid name forces the calibration to be reloaded before next use.
        """
        if not camera_name:
            return False
        if not all(_is_ascii_alnum(c) or c in _NAME_EXTRA_CHARS for c in camera_name):
            return False
        with self._lock:
            self._camera_name = camera_name
            self._loaded = False
        return True

    def set_camera_info(self, camera_info: CameraInfo) -> bool:
        """Replace the current calibration without saving it."""
        with self._lock:
            self._cam_info = copy.deepcopy(camera_info)
            self._loaded = True
        return True

    def validate_url(self, url: str) -> bool:
        """Return True if the URL has a supported syntax."""
        with self._lock:
            camera_name = self._camera_name
        return parse_url(self.resolve_url(url, camera_name)).is_supported

    def handle_set_camera_info(
        self, camera_info: CameraInfo, running: bool = True
    ) -> SetCameraInfoResponse:
        """Adopt a new calibration and store it at the current URL.

        The calibration is adopted even when it cannot be stored.
        """
        with self._lock:
            self._cam_info = copy.deepcopy(camera_info)
            url = self._url
            camera_name = self._camera_name
            self._loaded = True

        if not running:
            _log.error("set_camera_info service called, but driver not running.")
            return SetCameraInfoResponse(False, "Camera driver not running.")

        if self._save_calibration(camera_info, url, camera_name):
            return SetCameraInfoResponse(True, "")
        return SetCameraInfoResponse(False, "Error storing camera calibration.")

    # -- loading ----------------------------------------------------------

    def _with_loaded(self, read: Callable[[CameraInfo], _T]) -> _T:
        while True:
            with self._lock:
                if self._loaded:
                    return read(self._cam_info)
                self._loaded = True
                url = self._url
                camera_name = self._camera_name
            # The lock is not held during I/O.
            self._load_calibration(url, camera_name)

    def _load_calibration(self, url: str, camera_name: str) -> bool:
        resolved = self.resolve_url(url, camera_name)
        url_type = parse_url(resolved)
        if url_type is not UrlType.EMPTY:
            _log.info("camera calibration URL: %s", resolved)

        if url_type is UrlType.EMPTY:
            _log.info("using default calibration URL")
            return self._load_calibration(DEFAULT_URL, camera_name)
        if url_type is UrlType.FILE:
            return self._load_calibration_file(resolved[len("file://"):], camera_name)
        if url_type is UrlType.FLASH:
            _log.warning("reading from flash not implemented yet")
            return False
        if url_type is UrlType.PACKAGE:
            filename = package_file_name(resolved, self._package_resolver)
            if filename:
                return self._load_calibration_file(filename, camera_name)
            return False
        _log.error("Invalid camera calibration URL: %s", resolved)
        return False

    def _load_calibration_file(self, filename: str, camera_name: str) -> bool:
        _log.debug("reading camera calibration from %s", filename)
        try:
            found_name, cam_info = read_calibration(filename)
        except CalibrationError:
            _log.warning("Camera calibration file %s not found", filename)
            return False
        if found_name != camera_name:
            _log.warning(
                "[%s] does not match %s in file %s", camera_name, found_name, filename
            )
        with self._lock:
            self._cam_info = cam_info
        return True

    # -- saving -----------------------------------------------------------

    def _save_calibration(self, new_info: CameraInfo, url: str, camera_name: str) -> bool:
        resolved = self.resolve_url(url, camera_name)
        url_type = parse_url(resolved)

        if url_type is UrlType.EMPTY:
            return self._save_calibration(new_info, DEFAULT_URL, camera_name)
        if url_type is UrlType.FILE:
            return self._save_calibration_file(
                new_info, resolved[len("file://"):], camera_name
            )
        if url_type is UrlType.PACKAGE:
            filename = package_file_name(resolved, self._package_resolver)
            if filename:
                return self._save_calibration_file(new_info, filename, camera_name)
            return False
        _log.error("invalid url: %s (ignored)", resolved)
        return self._save_calibration(new_info, DEFAULT_URL, camera_name)

    def _save_calibration_file(
        self, new_info: CameraInfo, filename: str, camera_name: str
    ) -> bool:
        _log.info("writing calibration data to %s", filename)
        parent = Path(filename).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            _log.error("unable to create path directory [%s]", parent)
            return False
        try:
            write_calibration(filename, camera_name, new_info)
        except CalibrationError as exc:
            _log.error("%s", exc)
            return False
        return True