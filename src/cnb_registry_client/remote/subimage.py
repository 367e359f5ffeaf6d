"""Truncated layer view of an image, used as the old base of a rebase."""

from collections.abc import Sequence
from typing import Iterator, Union, overload

from ..core.types import LayerInfo
from ..exceptions import LayerBoundaryError


class SubImage(Sequence):
    """Read-only view over the layers of an image up to a boundary layer.

    The view borrows the source image's layer list; nothing is copied or
    fetched again.
    """

    def __init__(self, layers: Sequence[LayerInfo], end: int) -> None:
        if not 0 <= end <= len(layers):
            raise ValueError(f"end {end} out of range for {len(layers)} layers")
        self._layers = layers
        self._end = end

    @classmethod
    def from_layers(cls, layers: Sequence[LayerInfo], top_layer: str) -> "SubImage":
        """Build the view ending at the layer whose diff ID is ``top_layer``.

        Raises:
            LayerBoundaryError: If no layer has that diff ID
        """
        for index, layer in enumerate(layers):
            if layer.diff_id == top_layer:
                return cls(layers, index + 1)
        raise LayerBoundaryError(f"could not find base layer {top_layer!r} in image")

    @property
    def top_layer(self) -> str:
        return self._layers[self._end - 1].diff_id if self._end else ""

    @property
    def diff_ids(self) -> list[str]:
        return [layer.diff_id for layer in self]

    def upper_layers(self) -> Sequence[LayerInfo]:
        """Layers of the source image above the boundary."""
        return self._layers[self._end :]

    @overload
    def __getitem__(self, index: int) -> LayerInfo: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[LayerInfo]: ...

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            return self._layers[: self._end][index]
        if index < 0:
            index += self._end
        if not 0 <= index < self._end:
            raise IndexError("SubImage index out of range")
        return self._layers[index]

    def __len__(self) -> int:
        return self._end

    def __iter__(self) -> Iterator[LayerInfo]:
        for index in range(self._end):
            yield self._layers[index]

    def __repr__(self) -> str:
        return f"SubImage(top_layer={self.top_layer!r}, layers={self._end})"
