"""
ONNX model simplification.

Thin orchestration over the native library: marshal the options, make one
native call under the native lock, translate the result code, and hand back
Python-owned data.

Usage
-----
>>> from onnxsim_bridge import SimplifyOptions, simplify_bytes, simplify_file

>>> with open("model.onnx", "rb") as f:  # doctest: +SKIP
...     simplified = simplify_bytes(f.read())

>>> options = SimplifyOptions().with_constant_folding(True).with_shape_inference(True)
>>> simplify_file("model.onnx", "model.sim.onnx", options)  # doctest: +SKIP

See Also
--------
SimplifyOptions : Pass selection and thresholds.
onnxsim_bridge.exceptions : Errors raised by these functions.
"""

from __future__ import annotations

import ctypes

from ._bindings import check, init_env, native_buffer, native_call, take_buffer
from ._logging import scoped_logger
from ._marshal import NativeOptions, PathLike, encode_path
from .exceptions import InvalidArgumentError
from .options import SimplifyOptions

__all__ = ["simplify_bytes", "simplify_file"]

log = scoped_logger("simplify")


def _native_options(options: SimplifyOptions | None) -> NativeOptions:
    if options is None:
        options = SimplifyOptions()
    elif not isinstance(options, SimplifyOptions):
        raise InvalidArgumentError(
            f"options must be SimplifyOptions, got {type(options).__name__}",
            details={"param": "options"},
        )
    return NativeOptions(options)


def simplify_bytes(
    model_bytes: bytes | bytearray | memoryview,
    options: SimplifyOptions | None = None,
) -> bytes:
    """
    Simplify a serialized ONNX model held in memory.

    Parameters
    ----------
    model_bytes : bytes, bytearray or memoryview
        Serialized ``ModelProto``.
    options : SimplifyOptions, optional
        Pass selection and thresholds. Defaults to ``SimplifyOptions()``.

    Returns
    -------
    bytes
        The simplified model, serialized. The native output buffer has already
        been released when this returns.

    Raises
    ------
    InvalidArgumentError
        If the options cannot be marshaled (raised before any native call)
        or the library rejects an argument.
    ParseError
        If ``model_bytes`` is not a valid serialized model.
    SerializeError
        If the simplified model cannot be serialized.
    SimplificationError
        If a simplification pass fails.
    InternalError
        If the library breaks its contract (unknown result code, empty output).

    Example
    -------
    >>> simplify_bytes(b"not a valid onnx model")  # doctest: +SKIP
    Traceback (most recent call last):
    ParseError: Failed to parse model protobuf: Failed to parse model protobuf
    """
    if not isinstance(model_bytes, (bytes, bytearray, memoryview)):
        raise InvalidArgumentError(
            f"model_bytes must be bytes-like, got {type(model_bytes).__name__}",
            details={"param": "model_bytes"},
        )
    data = bytes(model_bytes)
    native_opts = _native_options(options)
    skip = native_opts.skip_optimizers

    init_env()
    log.debug(
        "Simplifying model bytes",
        extra={"operation": "simplify_bytes", "input_len": len(data), "skip_count": skip.count},
    )

    with native_call() as lib, native_buffer(lib) as (out_ptr, out_len):
        code = lib.onnxsim_simplify_bytes(
            data,
            len(data),
            skip.pointer,
            skip.count,
            native_opts.constant_folding,
            native_opts.shape_inference,
            native_opts.tensor_size_threshold,
            ctypes.byref(out_ptr),
            ctypes.byref(out_len),
        )
        check(code, lib, {"operation": "simplify_bytes"})
        result = take_buffer(out_ptr, out_len)

    log.debug(
        "Simplified model bytes",
        extra={"operation": "simplify_bytes", "output_len": len(result)},
    )
    return result


def simplify_file(
    in_path: PathLike,
    out_path: PathLike,
    options: SimplifyOptions | None = None,
) -> None:
    """
    Simplify an ONNX model file and write the result to another file.

    The native library reads ``in_path`` and writes ``out_path`` itself; no
    model bytes cross into Python.

    Parameters
    ----------
    in_path : str, bytes or os.PathLike
        Input model file.
    out_path : str, bytes or os.PathLike
        Destination for the simplified model.
    options : SimplifyOptions, optional
        Pass selection and thresholds. Defaults to ``SimplifyOptions()``.

    Raises
    ------
    InvalidArgumentError
        If a path is not UTF-8 representable or contains a NUL byte, or the
        options cannot be marshaled. Raised before any native call.
    ParseError, SerializeError, SimplificationError, InternalError
        As for ``simplify_bytes``. A missing input file surfaces as whatever
        the library reports for it.
    """
    in_bytes = encode_path(in_path, "in_path")
    out_bytes = encode_path(out_path, "out_path")
    native_opts = _native_options(options)
    skip = native_opts.skip_optimizers

    details = {
        "operation": "simplify_file",
        "in_path": in_bytes.decode("utf-8"),
        "out_path": out_bytes.decode("utf-8"),
    }

    init_env()
    log.debug("Simplifying model file", extra={**details, "skip_count": skip.count})

    with native_call() as lib:
        code = lib.onnxsim_simplify_file(
            in_bytes,
            out_bytes,
            skip.pointer,
            skip.count,
            native_opts.constant_folding,
            native_opts.shape_inference,
            native_opts.tensor_size_threshold,
        )
        check(code, lib, details)

    log.debug("Simplified model file", extra=details)
