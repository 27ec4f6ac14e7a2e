"""
Native ABI description for libonnxsim_ffi.

Mirrors ``onnxsim/onnxsim_ffi.h``. Keep the result codes and the signature
table in sync with the header; ``_bindings.get_lib()`` applies ``SIGNATURES``
to the library handle when it is first loaded.
"""

import ctypes
from enum import IntEnum

__all__ = ["ErrorCode", "SIGNATURES", "apply_signatures"]


class ErrorCode(IntEnum):
    """Result codes returned by the native entry points (``onnxsim_error_t``)."""

    SUCCESS = 0
    INVALID_ARGUMENT = 1
    PARSE_FAILED = 2
    SERIALIZE_FAILED = 3
    SIMPLIFICATION_FAILED = 4
    INTERNAL = 5


# =============================================================================
# Function Signatures
# =============================================================================

# name -> (argtypes, restype)
#
# onnxsim_get_last_error returns c_void_p rather than c_char_p: the string is
# owned by the native side and c_char_p would hide the NULL/non-NULL pointer
# behind an automatic bytes conversion.
SIGNATURES: dict[str, tuple[list, object]] = {
    "onnxsim_init_env": ([], None),
    "onnxsim_simplify_bytes": (
        [
            ctypes.c_char_p,  # model_bytes
            ctypes.c_size_t,  # model_bytes_len
            ctypes.POINTER(ctypes.c_char_p),  # skip_optimizers (NULL for none)
            ctypes.c_size_t,  # skip_optimizers_len
            ctypes.c_int,  # constant_folding (1=enabled, 0=disabled)
            ctypes.c_int,  # shape_inference (1=enabled, 0=disabled)
            ctypes.c_size_t,  # tensor_size_threshold
            ctypes.POINTER(ctypes.c_void_p),  # out_bytes
            ctypes.POINTER(ctypes.c_size_t),  # out_bytes_len
        ],
        ctypes.c_int,
    ),
    "onnxsim_simplify_file": (
        [
            ctypes.c_char_p,  # in_path
            ctypes.c_char_p,  # out_path
            ctypes.POINTER(ctypes.c_char_p),  # skip_optimizers (NULL for none)
            ctypes.c_size_t,  # skip_optimizers_len
            ctypes.c_int,  # constant_folding
            ctypes.c_int,  # shape_inference
            ctypes.c_size_t,  # tensor_size_threshold
        ],
        ctypes.c_int,
    ),
    "onnxsim_get_last_error": ([], ctypes.c_void_p),
    "onnxsim_free_string": ([ctypes.c_void_p], None),
}


def apply_signatures(lib: ctypes.CDLL) -> None:
    """Configure argtypes/restype on every known symbol of ``lib``.

    Raises:
        AttributeError: If the library does not export one of the symbols.
    """
    for name, (argtypes, restype) in SIGNATURES.items():
        func = getattr(lib, name)
        func.argtypes = argtypes
        func.restype = restype
