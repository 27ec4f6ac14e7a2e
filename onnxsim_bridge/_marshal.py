"""
Marshaling of Python values into the native call layout.

Every check here runs before the native library is touched, so a bad
argument never reaches the native side.
"""

from __future__ import annotations

import ctypes
import os
from collections.abc import Sequence
from typing import TYPE_CHECKING, Union

from .exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from .options import SimplifyOptions

__all__ = ["CStringArray", "NativeOptions", "encode_path", "encode_cstring"]

PathLike = Union[str, bytes, "os.PathLike[str]", "os.PathLike[bytes]"]

# Largest value a size_t argument can carry
SIZE_MAX = (1 << (8 * ctypes.sizeof(ctypes.c_size_t))) - 1


def _reject_nul(encoded: bytes, param: str) -> bytes:
    if b"\x00" in encoded:
        pos = encoded.index(b"\x00")
        raise InvalidArgumentError(
            f"nul byte found in provided data at position: {pos}",
            details={"param": param, "position": pos},
        )
    return encoded


def encode_cstring(value: str, param: str) -> bytes:
    """Encode ``value`` as UTF-8 suitable for a NUL-terminated C string.

    Raises:
        InvalidArgumentError: If ``value`` is not a str, cannot be encoded,
            or contains an embedded NUL byte.
    """
    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"{param} must be a string, got {type(value).__name__}",
            details={"param": param},
        )
    try:
        encoded = value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidArgumentError(
            f"{param} is not valid UTF-8: {e}", details={"param": param}
        ) from e
    return _reject_nul(encoded, param)


def encode_path(path: PathLike, param: str) -> bytes:
    """Convert a filesystem path to NUL-terminated UTF-8 bytes.

    Raises:
        InvalidArgumentError: If the path is not UTF-8 representable or
            contains a NUL byte.
    """
    try:
        raw = os.fspath(path)
    except TypeError as e:
        raise InvalidArgumentError(
            f"{param} must be a path, got {type(path).__name__}", details={"param": param}
        ) from e

    try:
        if isinstance(raw, bytes):
            raw.decode("utf-8")
            encoded = raw
        else:
            encoded = raw.encode("utf-8")
    except UnicodeError as e:
        raise InvalidArgumentError(f"Invalid UTF-8 in {param}", details={"param": param}) from e

    return _reject_nul(encoded, param)


class CStringArray:
    """
    A ``const char**`` view of a list of Python strings.

    Holds the encoded buffers and the pointer array that references them;
    keep the instance alive until the native call consuming ``pointer``
    returns. An empty list is a NULL pointer with count 0.

    Example
    -------
    >>> arr = CStringArray(["eliminate_deadend"], param="skip_optimizers")
    >>> arr.count
    1
    >>> bool(CStringArray([], param="skip_optimizers").pointer)
    False
    """

    def __init__(self, strings: Sequence[str] | None, param: str):
        self._encoded: list[bytes] = [encode_cstring(s, param) for s in strings or ()]
        self._array: ctypes.Array | None = None

        if self._encoded:
            arr_type = ctypes.c_char_p * len(self._encoded)
            self._array = arr_type(*self._encoded)

    @property
    def pointer(self):
        """Pointer to the first element, or a NULL ``char**``."""
        if self._array is None:
            return ctypes.POINTER(ctypes.c_char_p)()
        return ctypes.cast(self._array, ctypes.POINTER(ctypes.c_char_p))

    @property
    def count(self) -> int:
        return len(self._encoded)

    @property
    def values(self) -> list[bytes]:
        return list(self._encoded)


class NativeOptions:
    """
    SimplifyOptions in native calling convention.

    Attributes
    ----------
    skip_optimizers : CStringArray
        Owns the skip list buffers for the duration of the call.
    constant_folding : int
        0 or 1.
    shape_inference : int
        0 or 1.
    tensor_size_threshold : int
        Validated to fit a size_t.
    """

    def __init__(self, options: SimplifyOptions):
        threshold = options.tensor_size_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise InvalidArgumentError(
                f"tensor_size_threshold must be an int, got {type(threshold).__name__}",
                details={"param": "tensor_size_threshold"},
            )
        if threshold < 0 or threshold > SIZE_MAX:
            raise InvalidArgumentError(
                f"tensor_size_threshold must be between 0 and {SIZE_MAX}, got {threshold}",
                details={"param": "tensor_size_threshold", "value": threshold},
            )

        self.skip_optimizers = CStringArray(options.skip_optimizers, param="skip_optimizers")
        self.constant_folding = 1 if options.constant_folding else 0
        self.shape_inference = 1 if options.shape_inference else 0
        self.tensor_size_threshold = threshold
