from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

# Quad corner orders offered by the scene viewer; index 1 is the stored order.
QUAD_UV_MAPPINGS: Tuple[Tuple[int, int, int, int], ...] = (
    (2, 0, 3, 1),
    (0, 1, 2, 3),
    (1, 0, 3, 2),
    (0, 2, 1, 3),
    (3, 2, 1, 0),
    (2, 3, 0, 1),
)

TRI_UV_MAPPINGS: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (0, 2, 1),
    (1, 0, 2),
    (1, 2, 0),
    (2, 0, 1),
    (2, 1, 0),
)

BASE_PAGE_X = 6
PAGE_WIDTH = 128
GRID = 32
MIN_REGION = 64
BLOCK_SIZE = 256
PAGE_SIZE = 256
TEXTURE_LIMIT = 10
TEXTURE_WARN_AT = 8


@dataclass(frozen=True)
class DecodeOptions:
    """
    Knobs that change how stored UVs are interpreted.

    The defaults reproduce the stored data as-is: identity corner orders, no shift,
    texture page 6 as the base page. Region/page sizes are the PC format's.
    """

    base_page_x: int = BASE_PAGE_X
    page_width: int = PAGE_WIDTH
    quad_uv_mapping: Tuple[int, int, int, int] = QUAD_UV_MAPPINGS[1]
    tri_uv_mapping: Tuple[int, int, int] = TRI_UV_MAPPINGS[0]
    uv_shift: int = 0
    grid: int = GRID
    min_region: int = MIN_REGION
    block_size: int = BLOCK_SIZE
    page_size: int = PAGE_SIZE
    texture_limit: int = TEXTURE_LIMIT
    texture_warn_at: int = TEXTURE_WARN_AT

    def __post_init__(self) -> None:
        if sorted(self.quad_uv_mapping) != [0, 1, 2, 3]:
            raise ValueError(f"quad_uv_mapping is not a permutation: {self.quad_uv_mapping}")
        if sorted(self.tri_uv_mapping) != [0, 1, 2]:
            raise ValueError(f"tri_uv_mapping is not a permutation: {self.tri_uv_mapping}")
        if self.page_width <= 0 or self.grid <= 0 or self.block_size <= 0:
            raise ValueError("page_width, grid and block_size must be positive")

    def with_modes(
        self,
        quad_mode: Optional[int] = None,
        tri_mode: Optional[int] = None,
        uv_shift: Optional[int] = None,
    ) -> "DecodeOptions":
        """Return a copy using the viewer's numbered mapping presets."""
        changes = {}
        if quad_mode is not None:
            changes["quad_uv_mapping"] = QUAD_UV_MAPPINGS[quad_mode]
        if tri_mode is not None:
            changes["tri_uv_mapping"] = TRI_UV_MAPPINGS[tri_mode]
        if uv_shift is not None:
            changes["uv_shift"] = uv_shift
        return replace(self, **changes)


DEFAULT_OPTIONS = DecodeOptions()


def texture_x_offset(texture_page_x: int, options: DecodeOptions = DEFAULT_OPTIONS) -> int:
    # page 0 is never used by battle scenes; treat it as the base page
    page = texture_page_x or options.base_page_x
    return (page - options.base_page_x) * options.page_width


def remap(items: Sequence, mapping: Sequence[int]) -> list:
    return [items[i] for i in mapping]
