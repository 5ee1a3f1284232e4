"""Camera calibration files in YAML and INI formats, a converter command and a calibration manager."""

__version__ = "0.1.0"