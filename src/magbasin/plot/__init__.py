from .basin import (
    COLOR_TABLE,
    UNRESOLVED_COLOR,
    basin_image,
    basin_plot,
    color_for_code,
    colorize,
    save_basin_image,
)

__all__ = [
    "COLOR_TABLE",
    "UNRESOLVED_COLOR",
    "basin_image",
    "basin_plot",
    "color_for_code",
    "colorize",
    "save_basin_image",
]
