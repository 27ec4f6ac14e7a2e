"""
Library loading and shared FFI primitives.

Everything that touches libonnxsim_ffi directly lives here: locating and
loading the shared library, environment initialization, reading the native
last-error string, and releasing native output buffers.

Thread safety
-------------
The native library keeps a single last-error string that every failing call
overwrites. Two threads failing at the same time could otherwise read each
other's diagnostics, so every call into the library goes through
``native_call()``, which holds a process-wide lock from the entry point call
through the diagnostic read and the buffer release. Code that calls the
library handle directly, outside ``native_call()``, bypasses that lock and
can observe or clobber another call's diagnostic.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import os
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from ._logging import scoped_logger
from ._native import ErrorCode, apply_signatures
from .exceptions import InternalError, LibraryNotFoundError, error_for_code

__all__ = [
    "get_lib",
    "init_env",
    "native_call",
    "native_buffer",
    "check",
    "get_last_error",
    "free_native_buffer",
    "take_buffer",
    "UNKNOWN_ERROR",
]

log = scoped_logger("bridge")

# Diagnostic used when the native last-error pointer is NULL
UNKNOWN_ERROR = "Unknown error"

LIBRARY_ENV_VAR = "ONNXSIM_LIBRARY_PATH"

# =============================================================================
# Library Loading
# =============================================================================

_lib: ctypes.CDLL | None = None
_lib_path: str | None = None
_load_lock = threading.Lock()

# Serializes every native call together with its diagnostic read-back
_NATIVE_LOCK = threading.Lock()

_env_initialized = False


def _library_filename() -> str:
    """Get the shared library file name for the current platform."""
    if sys.platform == "win32":
        return "onnxsim_ffi.dll"
    if sys.platform == "darwin":
        return "libonnxsim_ffi.dylib"
    return "libonnxsim_ffi.so"


def _candidate_paths() -> list[str]:
    """Library locations to try, in order.

    An explicit ONNXSIM_LIBRARY_PATH is the only candidate when set.
    """
    explicit = os.environ.get(LIBRARY_ENV_VAR)
    if explicit:
        return [explicit]

    filename = _library_filename()
    candidates = [str(Path(__file__).parent / filename)]

    found = ctypes.util.find_library("onnxsim_ffi")
    if found:
        candidates.append(found)

    # Bare name: let the platform loader search its own paths
    candidates.append(filename)

    seen: set[str] = set()
    return [c for c in candidates if not (c in seen or seen.add(c))]


def _load_library() -> tuple[ctypes.CDLL, str]:
    tried: list[str] = []
    for path in _candidate_paths():
        try:
            lib = ctypes.CDLL(path)
        except OSError as e:
            log.debug("Failed to load native library", extra={"path": path, "reason": str(e)})
            tried.append(path)
            continue

        try:
            apply_signatures(lib)
        except AttributeError as e:
            raise LibraryNotFoundError(
                f"Library at {path} does not export the onnxsim C API: {e}",
                details={"path": path},
            ) from e

        log.info("Loaded native library", extra={"path": path})
        return lib, path

    raise LibraryNotFoundError(
        "Could not load libonnxsim_ffi. Tried: "
        + ", ".join(tried)
        + f". Set {LIBRARY_ENV_VAR} to the library path.",
        details={"tried": tried},
    )


def get_lib() -> ctypes.CDLL:
    """Get the native library handle, loading it on first use.

    Raises:
        LibraryNotFoundError: If no candidate path can be loaded.
    """
    global _lib, _lib_path
    if _lib is None:
        with _load_lock:
            if _lib is None:
                _lib, _lib_path = _load_library()
    return _lib


@contextmanager
def native_call() -> Iterator[Any]:
    """Hold the process-wide native lock and yield the library handle.

    Everything that must be paired with one native call (the call itself,
    reading its diagnostic, copying and freeing its output) belongs inside a
    single ``with native_call()`` block.
    """
    lib = get_lib()
    with _NATIVE_LOCK:
        yield lib


def init_env() -> None:
    """
    Initialize the native ONNX environment.

    Safe to call any number of times; the native initializer runs once per
    process. ``simplify_bytes`` and ``simplify_file`` call this themselves.

    Raises:
        LibraryNotFoundError: If the native library cannot be loaded.
    """
    global _env_initialized
    with native_call() as lib:
        if _env_initialized:
            return
        lib.onnxsim_init_env()
        _env_initialized = True
    log.debug("Native environment initialized")


# =============================================================================
# Error Retrieval
# =============================================================================


def get_last_error(lib: Any) -> str:
    """Read the native last-error string.

    Only meaningful directly after a non-success result code from the same
    ``native_call()`` block; the native side overwrites it on every failing
    call and does not clear it on success.

    Returns:
        The diagnostic, or ``UNKNOWN_ERROR`` when the native pointer is NULL.
    """
    ptr = lib.onnxsim_get_last_error()
    if not ptr:
        return UNKNOWN_ERROR
    return ctypes.string_at(ptr).decode("utf-8", errors="replace")


def check(code: int, lib: Any, details: dict[str, Any] | None = None) -> None:
    """Raise the mapped exception for a non-success result code.

    Must be called inside the same ``native_call()`` block as the call that
    returned ``code``.

    Args:
        code: Result code returned by a native entry point.
        lib: Library handle the code came from.
        details: Context attached to the raised exception.

    Raises:
        OnnxSimError: Subclass matching ``code``; unknown codes raise InternalError.
    """
    if code == ErrorCode.SUCCESS:
        return

    message = get_last_error(lib)
    log.debug(
        "Native call failed",
        extra={"native_code": int(code), "diagnostic": message, **(details or {})},
    )
    raise error_for_code(code, message, details)


# =============================================================================
# Buffer Ownership
# =============================================================================


def free_native_buffer(lib: Any, ptr: ctypes.c_void_p) -> None:
    """Release a buffer allocated by ``onnxsim_simplify_bytes``.

    A NULL pointer is never handed to the native free.
    """
    if not ptr.value:
        return
    lib.onnxsim_free_string(ptr)


@contextmanager
def native_buffer(lib: Any) -> Iterator[tuple[ctypes.c_void_p, ctypes.c_size_t]]:
    """Provide ``(out_ptr, out_len)`` out-parameters for a native call.

    Whatever the native side stores in ``out_ptr`` is freed exactly once when
    the block exits, on success and on every error path.
    """
    out_ptr = ctypes.c_void_p()
    out_len = ctypes.c_size_t()
    try:
        yield out_ptr, out_len
    finally:
        try:
            free_native_buffer(lib, out_ptr)
        finally:
            out_ptr.value = None


def take_buffer(out_ptr: ctypes.c_void_p, out_len: ctypes.c_size_t) -> bytes:
    """Copy a native output buffer into Python bytes.

    The native buffer is not released here; ``native_buffer`` owns that.

    Raises:
        InternalError: If success was reported with a NULL or empty buffer.
    """
    if not out_ptr.value or out_len.value == 0:
        raise InternalError(
            "Internal error: Empty output",
            details={"out_ptr_null": not out_ptr.value, "out_len": out_len.value},
        )
    return ctypes.string_at(out_ptr.value, out_len.value)
