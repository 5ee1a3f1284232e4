"""Command that converts a calibration file between INI and YAML formats."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from camcalib.models import CalibrationError
from camcalib.parse import read_calibration, write_calibration

_log = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Convert the calibration file named first into the file named second."""
    if argv is None:
        argv = sys.argv[1:]
    prog = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else "convert"
    if len(argv) < 2:
        print(
            f"Usage: {prog} input.yml output.ini\n"
            f"       {prog} input.ini output.yml"
        )
        return 0

    source, target = argv[0], argv[1]
    try:
        camera_name, cam_info = read_calibration(source)
    except CalibrationError as exc:
        _log.error("Failed to load camera model from file %s: %s", source, exc)
        return 1
    try:
        write_calibration(target, camera_name, cam_info)
    except CalibrationError as exc:
        _log.error("Failed to save camera model to file %s: %s", target, exc)
        return 1

    _log.info("Saved %s", target)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())