"""数据模型包。

定义裁剪区域、源图片以及裁剪结果相关的数据结构。
"""

from .constants import (
    ImageFormats,
    get_extension,
    get_format_alias,
    get_mime_type,
)
from .crop_result import (
    BatchProgress,
    CropFailure,
    CropResult,
    CropSuccess,
    ExportArchive,
    ExportResult,
    FailureReason,
    FailureSummary,
    PixelRect,
)
from .region import RelativeRegion, validate_region
from .source_image import SourceImage


__all__ = [
    "BatchProgress",
    "CropFailure",
    "CropResult",
    "CropSuccess",
    "ExportArchive",
    "ExportResult",
    "FailureReason",
    "FailureSummary",
    # 常量和工具
    "ImageFormats",
    "PixelRect",
    # 核心模型
    "RelativeRegion",
    "SourceImage",
    "get_extension",
    "get_format_alias",
    "get_mime_type",
    "validate_region",
]
