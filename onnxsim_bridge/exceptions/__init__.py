"""
onnxsim_bridge exceptions.

This module defines the exception hierarchy for onnxsim_bridge:

    OnnxSimError (base)
    ├── InvalidArgumentError - Bad caller input or native-reported bad argument
    ├── ParseError - Input model could not be parsed
    ├── SerializeError - Output model could not be serialized
    ├── SimplificationError - A simplification pass failed
    └── InternalError - Native contract violation or unknown result code
        └── LibraryNotFoundError - Native library could not be loaded
"""

from .exceptions import (
    InternalError,
    InvalidArgumentError,
    LibraryNotFoundError,
    OnnxSimError,
    ParseError,
    SerializeError,
    SimplificationError,
    error_for_code,
)

__all__ = [
    # Base
    "OnnxSimError",
    # Kinds
    "InvalidArgumentError",
    "ParseError",
    "SerializeError",
    "SimplificationError",
    "InternalError",
    "LibraryNotFoundError",
    # Translation
    "error_for_code",
]
