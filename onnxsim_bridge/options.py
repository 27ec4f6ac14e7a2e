"""Configuration for model simplification."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

__all__ = ["SimplifyOptions"]


@dataclass(frozen=True, slots=True)
class SimplifyOptions:
    """
    Options passed to ``simplify_bytes`` and ``simplify_file``.

    The object is immutable. Each ``with_*`` method returns a new options
    object and leaves the receiver untouched, so options can be built once
    and shared between calls:

        >>> base = SimplifyOptions().with_constant_folding(True)
        >>> strict = base.with_skip_optimizers(["fuse_bn_into_conv"])
        >>> base.skip_optimizers is None
        True

    Attributes
    ----------
        skip_optimizers: Names of optimizer passes to disable. None or an
            empty sequence runs every pass.
        constant_folding: Enable constant folding. Default False.
        shape_inference: Enable shape inference. Default False.
        tensor_size_threshold: Tensor size threshold handed to the native
            engine unchanged. Must fit an unsigned size_t. Default 0.
    """

    skip_optimizers: tuple[str, ...] | None = None
    constant_folding: bool = False
    shape_inference: bool = False
    tensor_size_threshold: int = 0

    def __post_init__(self) -> None:
        if self.skip_optimizers is not None:
            object.__setattr__(self, "skip_optimizers", _as_tuple(self.skip_optimizers))

    def with_skip_optimizers(self, optimizers: Iterable[str] | None) -> SimplifyOptions:
        """Return a copy that skips the given optimizer passes."""
        return replace(self, skip_optimizers=optimizers)

    def with_constant_folding(self, enabled: bool) -> SimplifyOptions:
        """Return a copy with constant folding enabled or disabled."""
        return replace(self, constant_folding=enabled)

    def with_shape_inference(self, enabled: bool) -> SimplifyOptions:
        """Return a copy with shape inference enabled or disabled."""
        return replace(self, shape_inference=enabled)

    def with_tensor_size_threshold(self, threshold: int) -> SimplifyOptions:
        """Return a copy with a new tensor size threshold."""
        return replace(self, tensor_size_threshold=threshold)


def _as_tuple(optimizers: Iterable[str]) -> tuple[str, ...]:
    # A bare string is one name, not a sequence of one-character names
    if isinstance(optimizers, (str, bytes)):
        return (optimizers,)
    return tuple(optimizers)
