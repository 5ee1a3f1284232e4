"""Camera calibration data: intrinsics, distortion and region of interest."""

from __future__ import annotations

from dataclasses import dataclass, field

PLUMB_BOB = "plumb_bob"
RATIONAL_POLYNOMIAL = "rational_polynomial"

_FIXED_SIZES = (("k", 9), ("r", 9), ("p", 12))


class CalibrationError(Exception):
    """Raised when calibration data cannot be read, parsed or written."""


@dataclass
class RegionOfInterest:
    """Sub-window of the full image that holds the useful pixels."""

    x_offset: int = 0
    y_offset: int = 0
    height: int = 0
    width: int = 0
    do_rectify: bool = False


def _zeros(size: int):
    return lambda: [0.0] * size


@dataclass
class CameraInfo:
    """Camera calibration parameters.

    ``k`` and ``r`` are 3x3 matrices and ``p`` a 3x4 matrix, all stored
    row-major as flat lists. ``d`` holds the distortion coefficients.
    """

    width: int = 0
    height: int = 0
    distortion_model: str = ""
    d: list[float] = field(default_factory=list)
    k: list[float] = field(default_factory=_zeros(9))
    r: list[float] = field(default_factory=_zeros(9))
    p: list[float] = field(default_factory=_zeros(12))
    binning_x: int = 0
    binning_y: int = 0
    roi: RegionOfInterest = field(default_factory=RegionOfInterest)

    def __post_init__(self) -> None:
        for name, size in _FIXED_SIZES:
            values = [float(v) for v in getattr(self, name)]
            if len(values) != size:
                raise ValueError(
                    f"'{name}' must hold {size} values, got {len(values)}"
                )
            setattr(self, name, values)
        self.d = [float(v) for v in self.d]

    def is_calibrated(self) -> bool:
        """Return True when the camera matrix holds calibration data."""
        return self.k[0] != 0.0