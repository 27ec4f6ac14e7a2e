"""Hatch build hook that bundles a prebuilt libonnxsim_ffi into the wheel."""

import os
import platform
import shutil
import sys
from pathlib import Path

from hatchling.builders.hooks.plugin.interface import BuildHookInterface


class NativeLibraryHook(BuildHookInterface):
    """Copy an already-built native library next to the Python package.

    The library itself is built by the onnx-simplifier CMake project; this hook
    never compiles anything. Without a prebuilt library the wheel is pure
    Python and the library is located at runtime instead.
    """

    PLUGIN_NAME = "onnxsim-native"

    def initialize(self, version: str, build_data: dict) -> None:
        """Bundle the library before packaging."""
        if self.target_name == "sdist":
            # Don't bundle binaries into the sdist
            return

        package_root = Path(self.root)
        lib_name = self._get_lib_name()
        target_lib = package_root / "onnxsim_bridge" / lib_name

        prebuilt = self._find_prebuilt(package_root, lib_name)
        if prebuilt is None:
            self._log(f"No prebuilt {lib_name} found, building a pure-Python wheel")
            return

        if prebuilt.resolve() != target_lib.resolve():
            shutil.copy2(prebuilt, target_lib)
            self._log(f"Copied {prebuilt} to onnxsim_bridge/")

        # Platform-specific wheel once a shared library is inside
        build_data["pure_python"] = False
        build_data["infer_tag"] = True

    def _get_lib_name(self) -> str:
        """Get platform-specific library name."""
        system = platform.system()
        if system == "Darwin":
            return "libonnxsim_ffi.dylib"
        elif system == "Windows":
            return "onnxsim_ffi.dll"
        else:
            return "libonnxsim_ffi.so"

    def _find_prebuilt(self, package_root: Path, lib_name: str) -> Path | None:
        """Locate a prebuilt library.

        Resolution order:
        1. ONNXSIM_PREBUILT_LIB (explicit file path)
        2. build/<lib_name> under the project root (CMake output directory)
        3. A library already placed in onnxsim_bridge/
        """
        explicit = os.environ.get("ONNXSIM_PREBUILT_LIB")
        if explicit:
            path = Path(explicit)
            if not path.is_file():
                raise RuntimeError(f"ONNXSIM_PREBUILT_LIB points to a missing file: {path}")
            return path

        for candidate in (
            package_root / "build" / lib_name,
            package_root / "onnxsim_bridge" / lib_name,
        ):
            if candidate.is_file():
                return candidate
        return None

    def _log(self, msg: str) -> None:
        """Log build progress."""
        print(f"[onnxsim-native] {msg}", file=sys.stderr)
