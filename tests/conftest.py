"""
Global pytest fixtures for onnxsim_bridge tests.

This module provides:
- FakeNativeLibrary, an in-process stand-in for libonnxsim_ffi
- Fixtures that install the fake (or the real library) into the bridge
- Fault handling for native crashes

=============================================================================
Fake vs Real Library
=============================================================================

Most tests run against FakeNativeLibrary. It exposes the five C symbols as
Python methods and works on real ctypes memory: output buffers are allocated
with create_string_buffer and handed back by address, frees are recorded, and
a single process-wide last-error string is kept the way the native side keeps
one per failing call. That makes marshaling, error mapping, buffer release
and locking observable without a compiled library.

The fake "parses" any input starting with ``FakeNativeLibrary.MODEL_PREFIX``
and returns it with ``OUTPUT_PREFIX`` in place of the model prefix. Anything
else fails with PARSE_FAILED.

Tests marked ``requires_native`` use the ``native_lib`` fixture and skip
when libonnxsim_ffi cannot be loaded.
"""

import ctypes
import faulthandler
import threading
import time
from pathlib import Path

import pytest

# Enable faulthandler to trace native crashes (segfaults)
faulthandler.enable()


# =============================================================================
# Fake Native Library
# =============================================================================


class FakeNativeLibrary:
    """In-process implementation of the libonnxsim_ffi C API."""

    MODEL_PREFIX = b"MODEL:"
    OUTPUT_PREFIX = b"SIMPLIFIED:"

    SUCCESS = 0
    INVALID_ARGUMENT = 1
    PARSE_FAILED = 2
    INTERNAL = 5

    def __init__(self):
        self.calls: list[dict] = []
        self.init_calls = 0
        self.last_error_reads = 0
        self.freed: list[int] = []
        self.invalid_frees: list[int] = []

        # Behaviour switches
        self.force_code: int | None = None
        self.force_message: str | None = None
        self.output_mode = "normal"  # "normal", "null" or "zero_len"
        self.failure_delay = 0.0

        self._live: dict[int, ctypes.Array] = {}
        self._last_error: ctypes.Array | None = None
        self._state_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Inspection helpers
    # -------------------------------------------------------------------------

    @property
    def last_error(self) -> str | None:
        if self._last_error is None:
            return None
        return self._last_error.value.decode("utf-8")

    def set_last_error(self, message: str | None) -> None:
        if message is None:
            self._last_error = None
        else:
            self._last_error = ctypes.create_string_buffer(message.encode("utf-8"))

    @property
    def live_buffers(self) -> int:
        return len(self._live)

    @property
    def native_calls(self) -> list[str]:
        return [c["name"] for c in self.calls]

    # -------------------------------------------------------------------------
    # C API
    # -------------------------------------------------------------------------

    def onnxsim_init_env(self):
        self.init_calls += 1

    def onnxsim_get_last_error(self):
        self.last_error_reads += 1
        if self._last_error is None:
            return None
        return ctypes.addressof(self._last_error)

    def onnxsim_free_string(self, ptr):
        address = ptr.value if isinstance(ptr, ctypes.c_void_p) else ptr
        with self._state_lock:
            self.freed.append(address)
            if self._live.pop(address, None) is None:
                self.invalid_frees.append(address)

    def onnxsim_simplify_bytes(
        self,
        model_bytes,
        model_len,
        skip_ptr,
        skip_len,
        constant_folding,
        shape_inference,
        threshold,
        out_bytes,
        out_len,
    ):
        data = bytes(model_bytes[:model_len])
        self._record(
            "onnxsim_simplify_bytes",
            skip_ptr,
            skip_len,
            constant_folding,
            shape_inference,
            threshold,
            input=data,
        )

        if self.force_code is not None:
            return self._fail(self.force_code, self.force_message)

        if not data.startswith(self.MODEL_PREFIX):
            message = "Failed to parse model protobuf: " + data.decode("utf-8", errors="replace")
            return self._fail(self.PARSE_FAILED, message)

        if self.output_mode == "null":
            return self.SUCCESS
        if self.output_mode == "zero_len":
            self._store(out_bytes, out_len, b"\x00", length=0)
            return self.SUCCESS

        payload = self.OUTPUT_PREFIX + data[len(self.MODEL_PREFIX) :]
        self._store(out_bytes, out_len, payload)
        return self.SUCCESS

    def onnxsim_simplify_file(
        self,
        in_path,
        out_path,
        skip_ptr,
        skip_len,
        constant_folding,
        shape_inference,
        threshold,
    ):
        self._record(
            "onnxsim_simplify_file",
            skip_ptr,
            skip_len,
            constant_folding,
            shape_inference,
            threshold,
            in_path=in_path,
            out_path=out_path,
        )

        if self.force_code is not None:
            return self._fail(self.force_code, self.force_message)

        source = Path(in_path.decode("utf-8"))
        if not source.is_file():
            return self._fail(self.INTERNAL, f"Unable to open file {source}")

        data = source.read_bytes()
        if not data.startswith(self.MODEL_PREFIX):
            return self._fail(self.PARSE_FAILED, "Failed to parse model protobuf")

        Path(out_path.decode("utf-8")).write_bytes(
            self.OUTPUT_PREFIX + data[len(self.MODEL_PREFIX) :]
        )
        return self.SUCCESS

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _record(self, name, skip_ptr, skip_len, constant_folding, shape_inference, threshold, **kw):
        skip = [skip_ptr[i] for i in range(skip_len)] if skip_len else []
        with self._state_lock:
            self.calls.append(
                {
                    "name": name,
                    "skip": skip,
                    "skip_is_null": not bool(skip_ptr),
                    "skip_len": skip_len,
                    "constant_folding": constant_folding,
                    "shape_inference": shape_inference,
                    "threshold": threshold,
                    **kw,
                }
            )

    def _fail(self, code, message):
        self.set_last_error(message)
        if self.failure_delay:
            # Widen the window between writing and reading the diagnostic
            time.sleep(self.failure_delay)
        return code

    def _store(self, out_bytes, out_len, payload, length=None):
        buf = ctypes.create_string_buffer(payload, len(payload))
        address = ctypes.addressof(buf)
        with self._state_lock:
            self._live[address] = buf
        out_bytes._obj.value = address
        out_len._obj.value = len(payload) if length is None else length


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_lib(monkeypatch):
    """Install a FakeNativeLibrary as the loaded library handle."""
    from onnxsim_bridge import _bindings

    fake = FakeNativeLibrary()
    monkeypatch.setattr(_bindings, "_lib", fake)
    monkeypatch.setattr(_bindings, "_lib_path", "<fake>")
    monkeypatch.setattr(_bindings, "_env_initialized", False)
    return fake


@pytest.fixture
def model_bytes():
    """Bytes the fake library accepts as a model."""
    return FakeNativeLibrary.MODEL_PREFIX + b"graph"


@pytest.fixture
def model_file(tmp_path, model_bytes):
    path = tmp_path / "model.onnx"
    path.write_bytes(model_bytes)
    return path


@pytest.fixture
def unloaded_bridge(monkeypatch):
    """Reset the bridge to its never-loaded state."""
    from onnxsim_bridge import _bindings

    monkeypatch.setattr(_bindings, "_lib", None)
    monkeypatch.setattr(_bindings, "_lib_path", None)
    monkeypatch.setattr(_bindings, "_env_initialized", False)
    return _bindings


@pytest.fixture
def native_lib(monkeypatch):
    """
    The real libonnxsim_ffi handle.

    Raises:
        pytest.skip: If the library cannot be located or loaded
    """
    from onnxsim_bridge import _bindings
    from onnxsim_bridge.exceptions import LibraryNotFoundError

    # Drop any fake installed by an earlier test in this process
    if isinstance(_bindings._lib, FakeNativeLibrary):
        monkeypatch.setattr(_bindings, "_lib", None)
        monkeypatch.setattr(_bindings, "_env_initialized", False)

    try:
        return _bindings.get_lib()
    except LibraryNotFoundError as e:
        pytest.skip(f"libonnxsim_ffi not available: {e}")
