# camcalib

Read, write and manage camera calibration data.

A calibration is held in a `camcalib.models.CameraInfo` dataclass: image
`width` and `height`, the 3x3 camera matrix `k`, the `distortion_model` and
its coefficients `d`, the 3x3 rectification matrix `r`, the 3x4 projection
matrix `p` (all matrices flat and row-major), `binning_x`, `binning_y` and a
`RegionOfInterest` in `roi`. `CameraInfo.is_calibrated()` is true when the
first entry of `k` is non-zero.

Two file formats are supported:

- **YAML** (`.yml` / `.yaml`) — every field, any distortion model.
- **Videre INI** (`.ini`) — legacy format; only the `plumb_bob` model with five
  coefficients can be written. On reading, eight distortion values give the
  `rational_polynomial` model, five give `plumb_bob`.

Every failure to read, parse or write raises `camcalib.models.CalibrationError`.

## Installation

```
pip install camcalib
```

## Reading and writing files

```python
from camcalib.parse import read_calibration, write_calibration

name, info = read_calibration("left.yaml")
write_calibration("left.ini", name, info)
```

The file extension picks the format; any other extension raises
`CalibrationError`. Parent directories are created when writing.

Text already in memory can be parsed with `parse_calibration(buffer, "ini")`;
"ini" is the only format it accepts. The format-specific functions are:

- `camcalib.yml`: `loads_yml`, `load_yml`, `read_yml`, `dumps_yml`, `dump_yml`, `write_yml`
- `camcalib.ini`: `loads_ini`, `load_ini`, `read_ini`, `dumps_ini`, `dump_ini`, `write_ini`

The `load*`/`read*` functions return a `(camera_name, CameraInfo)` pair. A YAML
file without `camera_name` gives the name `"unknown"`, and one without
`distortion_model` is taken as `plumb_bob`.

## Converting between formats

```
camcalib-convert input.yml output.ini
camcalib-convert input.ini output.yml
```

With fewer than two arguments the command prints its usage and exits with 0.
It exits with 1 when the input cannot be read or the output cannot be written.

## Managing a camera's calibration

`camcalib.manager.CameraInfoManager` loads a calibration lazily from a URL and
stores new calibrations:

```python
from camcalib.manager import CameraInfoManager

manager = CameraInfoManager("camera", "file:///tmp/camera_info/${NAME}.yaml")
if manager.is_calibrated():
    info = manager.get_camera_info()
```

Nothing is loaded until `load_camera_info`, `is_calibrated` or
`get_camera_info` is called. When no calibration can be loaded,
`get_camera_info` returns an all-zero `CameraInfo`.

Supported URLs:

- `file:///absolute/path/to/calibration.yaml`
- `package://package_name/relative/path.yaml`
- an empty string, which means `file://${ROS_HOME}/camera_info/${NAME}.yaml`

`${NAME}` is replaced by the camera name, and `${ROS_HOME}` by the `ROS_HOME`
environment variable, or `$HOME/.ros` when that is unset. Unknown variables
are left as they are. `validate_url` tells whether a URL has a supported
syntax. Camera names given to `set_camera_name` may contain only letters,
digits and `_`; a new name makes the calibration reload before its next use.

`package://` URLs are looked up through `package_resolver`, a callable taking
a package name and returning its directory or `None`. By default
`camcalib.urls.find_package_share_directory` searches the prefixes in the
`AMENT_PREFIX_PATH` environment variable. An `environ` mapping can be passed
to the manager in place of `os.environ`.

`set_camera_info` replaces the calibration in memory only.
`handle_set_camera_info` adopts a new calibration and stores it at the current
URL, returning a `SetCameraInfoResponse` with `success` and `status_message`.
An invalid URL makes it store at the default location.

The helpers in `camcalib.urls` (`resolve_url`, `parse_url`, `UrlType`,
`package_file_name`, `split`) can also be used on their own.

## What it does not do

- `flash:///` URLs are recognised but not supported: nothing is loaded from or
  saved to them.
- The manager offers no network service of its own; a calibration request is
  made by calling `handle_set_camera_info` directly.