"""Reading and writing calibrations in YAML format."""

from __future__ import annotations

import datetime
import io
import logging
import os
from pathlib import Path
from typing import Any, TextIO

import yaml

from camcalib.models import (
    PLUMB_BOB,
    CalibrationError,
    CameraInfo,
    RegionOfInterest,
)

_log = logging.getLogger(__name__)

CAM_NAME = "camera_name"
WIDTH = "image_width"
HEIGHT = "image_height"
K_NAME = "camera_matrix"
D_NAME = "distortion_coefficients"
R_NAME = "rectification_matrix"
P_NAME = "projection_matrix"
DMODEL = "distortion_model"
BINNING_X = "binning_x"
BINNING_Y = "binning_y"
ROI = "roi"
ROI_WIDTH = "width"
ROI_HEIGHT = "height"
ROI_X_OFFSET = "x_offset"
ROI_Y_OFFSET = "y_offset"
ROI_DO_RECTIFY = "do_rectify"

_MISSING = object()


class _FlowList(list):
    """A list emitted in YAML flow style: ``[1, 2, 3]``."""


class _Dumper(yaml.SafeDumper):
    pass


def _represent_flow_list(dumper: yaml.SafeDumper, data: _FlowList) -> yaml.Node:
    return dumper.represent_sequence("tag:yaml.org,2002:seq", list(data), flow_style=True)


_Dumper.add_representer(_FlowList, _represent_flow_list)


def _matrix(rows: int, cols: int, values: list[float]) -> dict[str, Any]:
    return {
        "rows": rows,
        "cols": cols,
        "data": _FlowList(float(v) for v in values[: rows * cols]),
    }


def dumps_yml(camera_name: str, cam_info: CameraInfo) -> str:
    """Return the calibration as YAML text."""
    roi = cam_info.roi
    doc = {
        WIDTH: int(cam_info.width),
        HEIGHT: int(cam_info.height),
        CAM_NAME: camera_name,
        K_NAME: _matrix(3, 3, cam_info.k),
        DMODEL: cam_info.distortion_model,
        D_NAME: _matrix(1, len(cam_info.d), cam_info.d),
        R_NAME: _matrix(3, 3, cam_info.r),
        P_NAME: _matrix(3, 4, cam_info.p),
        BINNING_X: int(cam_info.binning_x),
        BINNING_Y: int(cam_info.binning_y),
        ROI: {
            ROI_X_OFFSET: int(roi.x_offset),
            ROI_Y_OFFSET: int(roi.y_offset),
            ROI_HEIGHT: int(roi.height),
            ROI_WIDTH: int(roi.width),
            ROI_DO_RECTIFY: bool(roi.do_rectify),
        },
    }
    return yaml.dump(doc, Dumper=_Dumper, sort_keys=False, default_flow_style=False)


def dump_yml(camera_name: str, cam_info: CameraInfo, stream: TextIO) -> None:
    """Write the calibration as YAML text to a stream."""
    stream.write(dumps_yml(camera_name, cam_info))


def write_yml(path: str | os.PathLike, camera_name: str, cam_info: CameraInfo) -> None:
    """Write the calibration to a YAML file, creating parent directories."""
    text = dumps_yml(camera_name, cam_info)
    path = Path(path)
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        _log.error(
            "Unable to create directory for camera calibration file [%s]", directory
        )
    try:
        with path.open("w", encoding="utf-8") as out:
            out.write(text)
    except OSError as exc:
        raise CalibrationError(
            f"Unable to open camera calibration file [{path}] for writing"
        ) from exc


def _lookup(node: Any, key: str, where: str) -> Any:
    if not isinstance(node, dict):
        raise CalibrationError(f"Expected a map holding '{key}' in {where}")
    value = node.get(key, _MISSING)
    if value is _MISSING:
        raise CalibrationError(f"Missing key '{key}' in {where}")
    return value


def _to_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or value is None:
        raise CalibrationError(f"Bad conversion of '{what}' to an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        try:
            result = int(value.strip())
        except ValueError as exc:
            raise CalibrationError(f"Bad conversion of '{what}' to an integer") from exc
    else:
        raise CalibrationError(f"Bad conversion of '{what}' to an integer")
    if result < 0:
        raise CalibrationError(f"'{what}' must not be negative")
    return result


def _to_float(value: Any, what: str) -> float:
    if isinstance(value, bool) or value is None:
        raise CalibrationError(f"Bad conversion of '{what}' to a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as exc:
            raise CalibrationError(f"Bad conversion of '{what}' to a number") from exc
    raise CalibrationError(f"Bad conversion of '{what}' to a number")


def _to_bool(value: Any, what: str) -> bool:
    if isinstance(value, bool):
        return value
    raise CalibrationError(f"Bad conversion of '{what}' to a boolean")


def _to_str(value: Any, what: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float, datetime.date)):
        return str(value)
    raise CalibrationError(f"Bad conversion of '{what}' to a string")


def _read_data(node: Any, count: int, what: str) -> list[float]:
    data = _lookup(node, "data", what)
    if not isinstance(data, list) or len(data) < count:
        raise CalibrationError(f"'{what}' holds fewer than {count} values")
    return [_to_float(v, what) for v in data[:count]]


def _read_matrix(doc: Any, key: str, rows: int, cols: int) -> list[float]:
    node = _lookup(doc, key, "calibration")
    found = (_to_int(_lookup(node, "rows", key), key), _to_int(_lookup(node, "cols", key), key))
    if found != (rows, cols):
        raise CalibrationError(
            f"'{key}' must be {rows}x{cols}, got {found[0]}x{found[1]}"
        )
    return _read_data(node, rows * cols, key)


def _parse_document(doc: Any) -> tuple[str, CameraInfo]:
    if not isinstance(doc, dict):
        raise CalibrationError("Calibration document is not a map")

    if CAM_NAME in doc:
        camera_name = _to_str(doc[CAM_NAME], CAM_NAME)
    else:
        camera_name = "unknown"

    width = _to_int(_lookup(doc, WIDTH, "calibration"), WIDTH)
    height = _to_int(_lookup(doc, HEIGHT, "calibration"), HEIGHT)

    k = _read_matrix(doc, K_NAME, 3, 3)
    r = _read_matrix(doc, R_NAME, 3, 3)
    p = _read_matrix(doc, P_NAME, 3, 4)

    if DMODEL in doc:
        distortion_model = _to_str(doc[DMODEL], DMODEL)
    else:
        distortion_model = PLUMB_BOB
        _log.warning(
            "Camera calibration file did not specify distortion model, "
            "assuming plumb bob"
        )

    d_node = _lookup(doc, D_NAME, "calibration")
    d_rows = _to_int(_lookup(d_node, "rows", D_NAME), D_NAME)
    d_cols = _to_int(_lookup(d_node, "cols", D_NAME), D_NAME)
    d = _read_data(d_node, d_rows * d_cols, D_NAME)

    binning_x = _to_int(doc[BINNING_X], BINNING_X) if BINNING_X in doc else 0
    binning_y = _to_int(doc[BINNING_Y], BINNING_Y) if BINNING_Y in doc else 0

    roi = RegionOfInterest()
    if ROI in doc:
        node = doc[ROI]
        roi = RegionOfInterest(
            x_offset=_to_int(_lookup(node, ROI_X_OFFSET, ROI), ROI_X_OFFSET),
            y_offset=_to_int(_lookup(node, ROI_Y_OFFSET, ROI), ROI_Y_OFFSET),
            height=_to_int(_lookup(node, ROI_HEIGHT, ROI), ROI_HEIGHT),
            width=_to_int(_lookup(node, ROI_WIDTH, ROI), ROI_WIDTH),
            do_rectify=_to_bool(_lookup(node, ROI_DO_RECTIFY, ROI), ROI_DO_RECTIFY),
        )

    cam_info = CameraInfo(
        width=width,
        height=height,
        distortion_model=distortion_model,
        d=d,
        k=k,
        r=r,
        p=p,
        binning_x=binning_x,
        binning_y=binning_y,
        roi=roi,
    )
    return camera_name, cam_info


def load_yml(stream: TextIO) -> tuple[str, CameraInfo]:
    """Read a calibration from a YAML text stream; return (camera name, info)."""
    try:
        doc = yaml.safe_load(stream.read())
    except yaml.YAMLError as exc:
        raise CalibrationError(f"Exception parsing YAML camera calibration:\n{exc}") from exc
    return _parse_document(doc)


def loads_yml(buffer: str) -> tuple[str, CameraInfo]:
    """Parse a YAML calibration held in a string."""
    return load_yml(io.StringIO(buffer))


def read_yml(path: str | os.PathLike) -> tuple[str, CameraInfo]:
    """Read a calibration from a YAML file; return (camera name, info)."""
    try:
        stream = open(path, encoding="utf-8")
    except OSError as exc:
        raise CalibrationError(f"Unable to open camera calibration file [{path}]") from exc
    with stream:
        try:
            return load_yml(stream)
        except CalibrationError:
            _log.error("Failed to parse camera calibration from file [%s]", path)
            raise