"""
Tests for simplify_file().

FakeNativeLibrary reads and writes real files under tmp_path.
"""

from pathlib import Path

import pytest

from onnxsim_bridge import (
    InternalError,
    InvalidArgumentError,
    OnnxSimError,
    ParseError,
    SimplifyOptions,
    simplify_file,
)


class TestSimplifyFileSuccess:
    """Successful calls write the output file and return None."""

    def test_writes_output(self, fake_lib, model_file, tmp_path):
        out = tmp_path / "model.sim.onnx"

        assert simplify_file(model_file, out) is None
        assert out.read_bytes() == b"SIMPLIFIED:graph"

    @pytest.mark.parametrize("convert", [str, Path, lambda p: str(p).encode("utf-8")])
    def test_path_types(self, fake_lib, model_file, tmp_path, convert):
        out = tmp_path / "out.onnx"

        simplify_file(convert(model_file), convert(out))

        call = fake_lib.calls[0]
        assert call["in_path"] == str(model_file).encode("utf-8")
        assert call["out_path"] == str(out).encode("utf-8")

    def test_non_ascii_paths(self, fake_lib, tmp_path, model_bytes):
        source = tmp_path / "modèle.onnx"
        source.write_bytes(model_bytes)
        out = tmp_path / "modèle.sim.onnx"

        simplify_file(source, out)

        assert fake_lib.calls[0]["in_path"] == str(source).encode("utf-8")
        assert out.exists()

    def test_options_forwarded(self, fake_lib, model_file, tmp_path):
        options = (
            SimplifyOptions()
            .with_skip_optimizers(["fuse_bn_into_conv"])
            .with_shape_inference(True)
            .with_tensor_size_threshold(10)
        )

        simplify_file(model_file, tmp_path / "out.onnx", options)

        call = fake_lib.calls[0]
        assert call["skip"] == [b"fuse_bn_into_conv"]
        assert call["constant_folding"] == 0
        assert call["shape_inference"] == 1
        assert call["threshold"] == 10

    def test_no_buffer_traffic(self, fake_lib, model_file, tmp_path):
        """File mode never hands a buffer back across the boundary."""
        simplify_file(model_file, tmp_path / "out.onnx")

        assert fake_lib.freed == []
        assert fake_lib.last_error_reads == 0

    def test_initializes_environment(self, fake_lib, model_file, tmp_path):
        simplify_file(model_file, tmp_path / "a.onnx")
        simplify_file(model_file, tmp_path / "b.onnx")

        assert fake_lib.init_calls == 1


class TestSimplifyFileErrors:
    """Native failures surface with path details attached."""

    def test_missing_input(self, fake_lib, tmp_path):
        missing = tmp_path / "does_not_exist.onnx"
        out = tmp_path / "out.onnx"

        with pytest.raises(OnnxSimError) as exc_info:
            simplify_file(missing, out)

        assert isinstance(exc_info.value, InternalError)
        assert exc_info.value.details == {
            "operation": "simplify_file",
            "in_path": str(missing),
            "out_path": str(out),
        }
        assert not out.exists()

    def test_invalid_model_file(self, fake_lib, tmp_path):
        source = tmp_path / "junk.onnx"
        source.write_bytes(b"not a valid onnx model")

        with pytest.raises(ParseError, match="Failed to parse model protobuf"):
            simplify_file(source, tmp_path / "out.onnx")


class TestSimplifyFileMarshaling:
    """Paths are validated before the library is touched."""

    def test_invalid_utf8_input_path(self, fake_lib, tmp_path):
        with pytest.raises(InvalidArgumentError, match="Invalid UTF-8 in in_path"):
            simplify_file(b"/tmp/\xff.onnx", tmp_path / "out.onnx")

        assert fake_lib.calls == []
        assert fake_lib.init_calls == 0

    def test_nul_in_output_path(self, fake_lib, model_file):
        fake_lib.set_last_error("previous failure")

        with pytest.raises(InvalidArgumentError, match="nul byte found"):
            simplify_file(model_file, "out\x00.onnx")

        assert fake_lib.calls == []
        assert fake_lib.last_error == "previous failure"

    def test_nul_in_skip_optimizer(self, fake_lib, model_file, tmp_path):
        options = SimplifyOptions().with_skip_optimizers(["\x00"])

        with pytest.raises(InvalidArgumentError, match="position: 0"):
            simplify_file(model_file, tmp_path / "out.onnx", options)

        assert fake_lib.calls == []

    def test_non_path_argument(self, fake_lib, tmp_path):
        with pytest.raises(InvalidArgumentError, match="out_path must be a path"):
            simplify_file(tmp_path / "in.onnx", None)  # type: ignore[arg-type]
