import os

import pytest

from camcalib.urls import (
    DEFAULT_URL,
    UrlType,
    find_package_share_directory,
    package_file_name,
    parse_url,
    resolve_url,
    split,
)

PACKAGE_NAME = "camera_info_manager"
TEST_NAME = "test_calibration"
PACKAGE_URL = f"package://{PACKAGE_NAME}/tests/{TEST_NAME}.yaml"
PACKAGE_NAME_URL = f"package://{PACKAGE_NAME}/tests/${{NAME}}.yaml"
CAMERA_NAME = "test_camera_0001"
ENV = {"ROS_HOME": "/tmp", "HOME": "/home/user"}


def _valid(url, name=CAMERA_NAME, environ=ENV):
    return parse_url(resolve_url(url, name, environ)) < UrlType.INVALID


@pytest.mark.parametrize(
    "url",
    [
        "",
        "file:///",
        "file:///tmp/url.yaml",
        "File:///tmp/url.ini",
        "FILE:///tmp/url.yaml",
        DEFAULT_URL,
        PACKAGE_URL,
        "package://no_such_package/calibration.yaml",
        "packAge://camera_info_manager/x",
    ],
)
def test_valid_urls(url):
    assert _valid(url) is True


@pytest.mark.parametrize(
    "url",
    [
        "file://",
        "flash:///",
        "html://ros.org/wiki/camera_info_manager",
        "package://",
        "package:///",
        "package://calibration.yaml",
        "package://camera_info_manager/",
    ],
)
def test_invalid_urls(url):
    assert _valid(url) is False


@pytest.mark.parametrize(
    "url, expected",
    [
        ("", UrlType.EMPTY),
        ("file:///tmp/x.yaml", UrlType.FILE),
        ("flash:///", UrlType.FLASH),
        ("package://pkg/x.yaml", UrlType.PACKAGE),
        ("http://example.com/x.yaml", UrlType.INVALID),
    ],
)
def test_parse_url_types(url, expected):
    assert parse_url(url) == expected


def test_flash_is_not_supported():
    assert parse_url("flash:///").is_supported is False
    assert parse_url("file:///a").is_supported is True


def test_substitute_camera_name():
    assert (
        resolve_url(f"package://{PACKAGE_NAME}/tests/${{NAME}}.yaml", CAMERA_NAME, ENV)
        == f"package://{PACKAGE_NAME}/tests/{CAMERA_NAME}.yaml"
    )
    name_url = f"package://{PACKAGE_NAME}/tests/${{NAME}}_calibration.yaml"
    assert (
        resolve_url(name_url, "test", ENV)
        == f"package://{PACKAGE_NAME}/tests/test_calibration.yaml"
    )
    assert (
        resolve_url(name_url, "camera_1024x768", ENV)
        == f"package://{PACKAGE_NAME}/tests/camera_1024x768_calibration.yaml"
    )
    assert (
        resolve_url(name_url, "", ENV)
        == f"package://{PACKAGE_NAME}/tests/_calibration.yaml"
    )
    assert resolve_url(PACKAGE_NAME_URL, TEST_NAME, ENV) == PACKAGE_URL


def test_ros_home_undefined_uses_home():
    url = "file://${ROS_HOME}/camera_info/test_camera.yaml"
    assert (
        resolve_url(url, CAMERA_NAME, {"HOME": "/home/user"})
        == "file:///home/user/.ros/camera_info/test_camera.yaml"
    )


def test_ros_home_defined():
    url = "file://${ROS_HOME}/camera_info/test_camera.yaml"
    environ = {"ROS_HOME": "/my/ros/home", "HOME": "/home/user"}
    assert (
        resolve_url(url, CAMERA_NAME, environ)
        == "file:///my/ros/home/camera_info/test_camera.yaml"
    )


def test_ros_home_neither_defined():
    assert resolve_url("file://${ROS_HOME}/x.yaml", CAMERA_NAME, {}) == "file:///x.yaml"


def test_default_url_resolution():
    assert (
        resolve_url(DEFAULT_URL, "camera", ENV) == "file:///tmp/camera_info/camera.yaml"
    )


def test_double_dollar_then_name():
    assert (
        resolve_url("file:///tmp/$${NAME}.yaml", CAMERA_NAME, ENV)
        == f"file:///tmp/${CAMERA_NAME}.yaml"
    )


@pytest.mark.parametrize(
    "url",
    [
        "file:///$whatever.yaml",
        "file:///something$$whatever.yaml",
        "file:///$$",
        "",
        "file:///tmp/$NAME.yaml",
        "file:///tmp/${INVALID}/calibration.yaml",
        "file:///tmp/${NAME",
        "file:///tmp/${}",
        "file:///$",
    ],
)
def test_unresolved_urls_unchanged(url):
    assert resolve_url(url, CAMERA_NAME, ENV) == url


def test_resolve_is_single_pass():
    assert resolve_url("file:///${NAME}.yaml", "${NAME}", ENV) == "file:///${NAME}.yaml"


@pytest.mark.parametrize(
    "text, pattern, expected",
    [
        ("a,b,,c", ",", ["a", "b", "", "c"]),
        ("a,b,", ",", ["a", "b"]),
        (",a", ",", ["", "a"]),
        ("abc", ",", ["abc"]),
        ("", ",", [""]),
        ("a1b22c", r"\d+", ["a", "b", "c"]),
        ("/this/is/a/topic", "/", ["", "this", "is", "a", "topic"]),
    ],
)
def test_split(text, pattern, expected):
    assert split(text, pattern) == expected


def test_package_file_name_found():
    seen = []

    def resolver(package):
        seen.append(package)
        return "/opt/share/pkg"

    assert package_file_name("package://pkg/tests/cal.yaml", resolver) == (
        "/opt/share/pkg/tests/cal.yaml"
    )
    assert seen == ["pkg"]


def test_package_file_name_unknown_package():
    assert package_file_name("package://nope/cal.yaml", lambda package: None) is None
    assert package_file_name("package://nope/cal.yaml", lambda package: "") is None


def test_find_package_share_directory(tmp_path):
    other = tmp_path / "other"
    other.mkdir()
    prefix = tmp_path / "install"
    index = prefix / "share" / "ament_index" / "resource_index" / "packages"
    index.mkdir(parents=True)
    (index / "mypkg").write_text("")
    environ = {"AMENT_PREFIX_PATH": os.pathsep.join([str(other), str(prefix)])}
    assert find_package_share_directory("mypkg", environ) == str(
        prefix / "share" / "mypkg"
    )
    assert find_package_share_directory("missing", environ) is None
    assert find_package_share_directory("mypkg", {}) is None


def test_package_file_name_with_default_lookup(tmp_path, monkeypatch):
    prefix = tmp_path / "install"
    index = prefix / "share" / "ament_index" / "resource_index" / "packages"
    index.mkdir(parents=True)
    (index / "mypkg").write_text("")
    monkeypatch.setenv("AMENT_PREFIX_PATH", str(prefix))
    assert package_file_name("package://mypkg/cal.yaml") == str(
        prefix / "share" / "mypkg"
    ) + "/cal.yaml"