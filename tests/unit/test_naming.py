"""Tests for generated names."""

import pytest

from msgbind.core.naming import (
    c_struct_name,
    import_alias,
    module_name,
    module_path,
    python_name,
    service_of,
    snake_case,
)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Sample", "sample"),
        ("AddTwoInts", "add_two_ints"),
        ("HTTPRequest", "http_request"),
        ("PointCloud2", "point_cloud2"),
        ("IMUData", "imu_data"),
        ("already_snake", "already_snake"),
    ],
)
def test_snake_case(name, expected):
    assert snake_case(name) == expected


def test_python_name():
    assert python_name("x") == "x"
    assert python_name("class") == "class_"
    assert python_name("from_raw") == "from_raw_"
    assert python_name("property") == "property_"
    assert python_name("staticmethod") == "staticmethod_"


def test_module_name_mangles_keywords():
    assert module_name("Import") == "import_"


def test_service_paths():
    assert service_of("AddTwoInts_Request") == "AddTwoInts"
    assert service_of("AddTwoInts_Response") == "AddTwoInts"
    assert module_path("demo", "srv", "AddTwoInts_Response") == "demo.srv.add_two_ints"
    assert module_path("demo", "msg", "Sample") == "demo.msg.sample"


def test_c_names():
    assert c_struct_name("demo", "msg", "Sample") == "demo__msg__Sample"
    assert import_alias("geometry", "msg", "Pose") == "_geometry__msg__Pose"
