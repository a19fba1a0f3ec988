"""核心模块包。

相对区域到像素矩形的换算、裁剪与输出格式处理。
"""

from .formats import FormatProcessor
from .rasterizer import RasterOutput, compute_pixel_rect, rasterize, round_half_up


__all__ = [
    "FormatProcessor",
    "RasterOutput",
    "compute_pixel_rect",
    "rasterize",
    "round_half_up",
]
