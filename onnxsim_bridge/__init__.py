"""
onnxsim_bridge - Python bindings for the ONNX simplifier native library.

Wraps ``libonnxsim_ffi`` (the C API of onnx-simplifier) with ctypes. The
bridge only marshals data and translates errors; graph parsing, constant
folding, shape inference and fusion all happen in the native library.

Quick Start
-----------

    >>> import onnxsim_bridge
    >>>
    >>> with open("model.onnx", "rb") as f:
    ...     simplified = onnxsim_bridge.simplify_bytes(f.read())

With options:

    >>> from onnxsim_bridge import SimplifyOptions
    >>>
    >>> options = (
    ...     SimplifyOptions()
    ...     .with_constant_folding(True)
    ...     .with_shape_inference(True)
    ...     .with_skip_optimizers(["fuse_bn_into_conv"])
    ... )
    >>> onnxsim_bridge.simplify_file("model.onnx", "model.sim.onnx", options)

Errors:

    >>> try:
    ...     onnxsim_bridge.simplify_bytes(b"not a valid onnx model")
    ... except onnxsim_bridge.ParseError as e:
    ...     print(e.code)
    PARSE_FAILED


Native Library
--------------

The shared library is located on first use, in this order:

- ``ONNXSIM_LIBRARY_PATH`` (exact file path; nothing else is tried when set)
- ``libonnxsim_ffi`` next to this package
- the platform loader's search path

Calls into the library are serialized by a process-wide lock so each error
message is read back by the call that caused it.


Environment
-----------

- ``ONNXSIM_LIBRARY_PATH``: path to the shared library
- ``ONNXSIM_LOG_LEVEL``: trace|debug|info|warn|error|off (default: warn)
- ``ONNXSIM_LOG_FORMAT``: json|human (default: human on a TTY, else json)
"""

from onnxsim_bridge._bindings import init_env
from onnxsim_bridge._logging import setup_logging
from onnxsim_bridge._version import __version__ as __version__

# Exceptions
from onnxsim_bridge.exceptions import (
    InternalError,
    InvalidArgumentError,
    LibraryNotFoundError,
    OnnxSimError,
    ParseError,
    SerializeError,
    SimplificationError,
)

# Configuration
from onnxsim_bridge.options import SimplifyOptions

# Simplification
from onnxsim_bridge.simplifier import simplify_bytes, simplify_file

__all__ = [
    # Simplification
    "init_env",
    "simplify_bytes",
    "simplify_file",
    # Configuration
    "SimplifyOptions",
    # Logging
    "setup_logging",
    # Exceptions
    "OnnxSimError",
    "InvalidArgumentError",
    "ParseError",
    "SerializeError",
    "SimplificationError",
    "InternalError",
    "LibraryNotFoundError",
]
