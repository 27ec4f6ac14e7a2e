"""
onnxsim_bridge exceptions.

This module defines the exception hierarchy for onnxsim_bridge:

    OnnxSimError (base)
    ├── InvalidArgumentError - Bad caller input or native-reported bad argument
    ├── ParseError - Native deserialization of the input model failed
    ├── SerializeError - Native serialization of the output model failed
    ├── SimplificationError - A simplification pass failed
    └── InternalError - Native contract violation or unknown result code
        └── LibraryNotFoundError - Native library could not be loaded

Usage:
    try:
        simplify_bytes(data)
    except onnxsim_bridge.ParseError:
        print("Not an ONNX model")
    except onnxsim_bridge.OnnxSimError as e:
        # Catch any bridge error with structured details
        print(f"Error {e.code}: {e}")
        print(f"Details: {e.details}")

See Also
--------
    error_for_code : Map a native result code to an exception instance.
"""

from typing import Any

from .._native import ErrorCode

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


class OnnxSimError(Exception):
    """
    Base exception for all onnxsim_bridge errors.

    Attributes
    ----------
    message : str
        Human-readable error description.
    code : str
        Stable, string-based error code (e.g., "PARSE_FAILED").
        Use this for programmatic error handling.
    details : dict[str, Any]
        Structured context (e.g., {"operation": "simplify_bytes"}).
    original_code : int | None
        The native integer result code, when the error came from the library.

    Example
    -------
    >>> try:
    ...     simplify_bytes(b"not a valid onnx model")
    ... except OnnxSimError as e:
    ...     print(f"Error code: {e.code}")
    Error code: PARSE_FAILED
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.original_code = original_code

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.args[0]!r}, code={self.code!r})"


# =============================================================================
# Argument Errors
# =============================================================================


class InvalidArgumentError(OnnxSimError, ValueError):
    """
    Invalid argument.

    Raised before any native call when caller data cannot be marshaled:
    - Skip-optimizer name containing a NUL byte
    - Path that is not representable as UTF-8
    - Negative or oversized tensor size threshold

    Also raised when the native library reports ``INVALID_ARGUMENT``.

    This exception inherits from both OnnxSimError and ValueError, so both work::

        except onnxsim_bridge.OnnxSimError:
        except ValueError:
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_ARGUMENT",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Model Errors
# =============================================================================


class ParseError(OnnxSimError, RuntimeError):
    """
    The native library could not parse the input model.

    Raised for byte sequences that are not a serialized ONNX model, and for
    unreadable input files when the library reports it as a parse failure.
    """

    def __init__(
        self,
        message: str,
        code: str = "PARSE_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


class SerializeError(OnnxSimError, RuntimeError):
    """The simplified model could not be serialized."""

    def __init__(
        self,
        message: str,
        code: str = "SERIALIZE_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


class SimplificationError(OnnxSimError, RuntimeError):
    """A simplification pass failed inside the native engine."""

    def __init__(
        self,
        message: str,
        code: str = "SIMPLIFICATION_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Internal Errors
# =============================================================================


class InternalError(OnnxSimError, RuntimeError):
    """
    Native contract violation.

    Raised when:
    - The library returns a result code the bridge does not know
    - The library reports its own ``INTERNAL`` code (e.g. a C++ exception)
    - Success is reported but the output buffer is NULL or empty
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


class LibraryNotFoundError(InternalError, OSError):
    """
    The native library could not be located or loaded.

    Set ``ONNXSIM_LIBRARY_PATH`` to the full path of ``libonnxsim_ffi`` or
    install it where the platform loader can find it.
    """

    def __init__(
        self,
        message: str,
        code: str = "LIBRARY_NOT_FOUND",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Code Translation
# =============================================================================

# Display prefixes match the messages of the native binding's error enum.
_CODE_TO_ERROR: dict[int, tuple[type[OnnxSimError], str]] = {
    ErrorCode.INVALID_ARGUMENT: (InvalidArgumentError, "Invalid argument"),
    ErrorCode.PARSE_FAILED: (ParseError, "Failed to parse model protobuf"),
    ErrorCode.SERIALIZE_FAILED: (SerializeError, "Failed to serialize model protobuf"),
    ErrorCode.SIMPLIFICATION_FAILED: (SimplificationError, "Simplification failed"),
}


def error_for_code(
    code: int, message: str, details: dict[str, Any] | None = None
) -> OnnxSimError:
    """
    Build the exception for a non-success native result code.

    Unknown codes, and the native ``INTERNAL`` code, become InternalError.

    Parameters
    ----------
    code : int
        Result code returned by the native entry point.
    message : str
        Diagnostic read from the native last-error state.
    details : dict, optional
        Extra context (operation name, paths).

    Returns
    -------
    OnnxSimError
        The exception instance (not raised).
    """
    exc_class, prefix = _CODE_TO_ERROR.get(code, (InternalError, "Internal error"))
    return exc_class(f"{prefix}: {message}", details=details, original_code=code)
