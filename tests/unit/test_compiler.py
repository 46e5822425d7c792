"""Tests for compile_interfaces: orchestration, error collection and output."""

import logging

import pytest

from msgbind import CompilationError, CompilerConfig, compile_interfaces
from msgbind.core.errors import (
    CyclicTypeError,
    NameCollisionError,
    SchemaIOError,
    SchemaSyntaxError,
    UnresolvedTypeError,
)

SAMPLE_MSG = "int32 x\nstring name\nint32[3] ids\n"


def snapshot(directory):
    return {
        str(p.relative_to(directory)): p.read_bytes()
        for p in sorted(directory.rglob("*"))
        if p.is_file()
    }


class TestOutput:
    def test_written_layout(self, write_schema, output_dir):
        paths = [
            write_schema("demo/msg/Sample.msg", SAMPLE_MSG),
            write_schema("demo/srv/AddTwoInts.srv", "int64 a\n---\nint64 sum\n"),
        ]
        result = compile_interfaces("demo", paths, output_dir)
        assert result.ok
        assert sorted(snapshot(output_dir)) == [
            "demo/__init__.py",
            "demo/msg/__init__.py",
            "demo/msg/sample.py",
            "demo/srv/__init__.py",
            "demo/srv/add_two_ints.py",
        ]
        assert result.written == sorted(result.written)
        assert [f.schema for f in result.files[:2]] == ["demo/Sample", "demo/AddTwoInts"]

    def test_deterministic(self, write_schema, tmp_path):
        paths = [
            write_schema("demo/msg/Sample.msg", SAMPLE_MSG),
            write_schema("demo/msg/Group.msg", "Sample[] samples\nSample first\nstring[] t\n"),
            write_schema("demo/srv/Get.srv", "string key\n---\nGroup group\n"),
        ]
        first, second = tmp_path / "first", tmp_path / "second"
        compile_interfaces("demo", paths, first)
        compile_interfaces("demo", paths, second, CompilerConfig(jobs=4))
        assert snapshot(first) == snapshot(second)
        assert snapshot(first)

    def test_invocation_order_does_not_change_output(self, write_schema, tmp_path):
        a = write_schema("demo/msg/A.msg", "B b\n")
        b = write_schema("demo/msg/B.msg", "string s\n")
        compile_interfaces("demo", [a, b], tmp_path / "ab")
        compile_interfaces("demo", [b, a], tmp_path / "ba")
        assert snapshot(tmp_path / "ab") == snapshot(tmp_path / "ba")

    def test_no_init_files(self, write_schema, output_dir):
        path = write_schema("demo/msg/Sample.msg", SAMPLE_MSG)
        result = compile_interfaces("demo", [path], output_dir, CompilerConfig(write_init=False))
        assert [str(f.path) for f in result.files] == ["demo/msg/sample.py"]

    def test_invalid_package_name(self, output_dir):
        with pytest.raises(ValueError, match="not a valid Python identifier"):
            compile_interfaces("my-pkg", [], output_dir)
        with pytest.raises(ValueError):
            compile_interfaces("class", [], output_dir)

    def test_unwritable_output(self, write_schema, tmp_path):
        path = write_schema("demo/msg/Sample.msg", SAMPLE_MSG)
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        result = compile_interfaces("demo", [path], blocker)
        (error,) = result.errors
        assert isinstance(error, SchemaIOError)
        assert not result.ok


class TestErrorCollection:
    def test_every_file_reported_and_nothing_written(self, write_schema, output_dir):
        paths = [
            write_schema("demo/msg/Good.msg", "int32 x\n"),
            write_schema("demo/msg/Syntax.msg", "int32 x y z\n"),
            write_schema("demo/msg/Unknown.msg", "Missing m\nint31 n\n"),
        ]
        result = compile_interfaces("demo", paths, output_dir)
        assert [type(e) for e in result.errors] == [
            SchemaSyntaxError,
            UnresolvedTypeError,
            UnresolvedTypeError,
        ]
        assert [e.file.name for e in result.errors] == ["Syntax.msg", "Unknown.msg", "Unknown.msg"]
        assert result.written == []
        assert list(output_dir.iterdir()) == []

    def test_raise_for_errors(self, write_schema, output_dir):
        path = write_schema("demo/msg/Dup.msg", "int32 x\nint32 x\n")
        result = compile_interfaces("demo", [path], output_dir)
        with pytest.raises(CompilationError) as exc_info:
            result.raise_for_errors()
        (error,) = exc_info.value.errors
        assert error.lines == (1, 2)
        assert "Dup.msg:2:1: Duplicate field 'x' (lines 1 and 2)" in str(exc_info.value)

    def test_partial_output(self, write_schema, output_dir):
        paths = [
            write_schema("demo/msg/Good.msg", "int32 x\n"),
            write_schema("demo/msg/Bad.msg", "int31 x\n"),
        ]
        result = compile_interfaces(
            "demo", paths, output_dir, CompilerConfig(partial_output=True)
        )
        assert len(result.errors) == 1
        assert (output_dir / "demo" / "msg" / "good.py").exists()
        assert not (output_dir / "demo" / "msg" / "bad.py").exists()

    def test_dependents_of_failed_schema_skipped(self, write_schema, output_dir, caplog):
        paths = [
            write_schema("demo/msg/Broken.msg", "int31 x\n"),
            write_schema("demo/msg/User.msg", "Broken[] items\n"),
            write_schema("demo/msg/Fine.msg", "int32 y\n"),
        ]
        with caplog.at_level(logging.WARNING, logger="msgbind"):
            result = compile_interfaces(
                "demo", paths, output_dir, CompilerConfig(partial_output=True)
            )
        assert len(result.errors) == 1
        assert result.warnings == ["Skipping demo/User: depends on failed demo/Broken"]
        assert "Skipping demo/User" in caplog.text
        assert [str(f.path) for f in result.files if f.schema] == ["demo/msg/fine.py"]
        assert result.units[1].skipped

    def test_containment_cycle(self, write_schema, output_dir):
        paths = [
            write_schema("demo/msg/A.msg", "B b\n"),
            write_schema("demo/msg/B.msg", "A[2] a\n"),
        ]
        result = compile_interfaces("demo", paths, output_dir)
        (error,) = result.errors
        assert isinstance(error, CyclicTypeError)
        assert result.files == []

    def test_module_name_collision(self, write_schema, output_dir):
        paths = [
            write_schema("demo/msg/Foo.msg", "int32 x\n"),
            write_schema("demo/msg/FOO.msg", "int32 y\n"),
        ]
        result = compile_interfaces(
            "demo", paths, output_dir, CompilerConfig(partial_output=True)
        )
        (error,) = result.errors
        assert isinstance(error, NameCollisionError)
        assert error.context.schema == "demo/Foo"
        assert "class FOO(rt.Message)" in (output_dir / "demo" / "msg" / "foo.py").read_text()


class TestDependencies:
    def test_cross_package_reference(self, build, write_schema, output_dir):
        geometry = build({"msg/Pose.msg": "float64 x\nstring frame\n"}, package="geometry")
        pose_path = write_schema("geometry/msg/Pose.msg", "float64 x\nstring frame\n")

        robot = build(
            {"msg/Robot.msg": "geometry/Pose pose\ngeometry/Pose[] history\n"},
            dependencies={"geometry": [pose_path]},
        )
        assert [str(f.path) for f in robot.result.files if f.schema] == [
            f"{robot.name}/msg/robot.py"
        ]
        source = robot.source("msg/robot.py")
        assert "from geometry.msg.pose import Pose as _geometry__msg__Pose" in source

        robot_cls = robot.module("msg.robot").Robot
        pose_cls = geometry.module("msg.pose").Pose
        with robot_cls(pose={"frame": "map"}, history=[pose_cls(x=1.0)]) as msg:
            assert msg.pose.frame == "map"
            assert msg.history[0].x == 1.0

    def test_dependencies_from_config(self, write_schema, output_dir):
        pose = write_schema("geometry/msg/Pose.msg", "float64 x\n")
        robot = write_schema("demo/msg/Robot.msg", "geometry/Pose pose\n")
        config = CompilerConfig(dependencies={"geometry": [pose]})
        result = compile_interfaces("demo", [robot], output_dir, config)
        assert result.ok
        assert result.file("geometry/msg/pose.py") is None
