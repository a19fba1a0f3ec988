"""批量图片裁剪库。

用一个百分比区域裁剪整批不同分辨率的图片，并打包为单个 ZIP 归档。
"""

__version__ = "0.1.0"
__author__ = "crper"
__description__ = "按相对区域批量裁剪图片并打包导出，基于 Pillow 11"

# 核心功能导出
from .cropper import BulkCropper, export_batch
from .exceptions import (
    ArchiveFinalizeError,
    BatchCancelledError,
    CropError,
    InvalidRegionError,
    RasterError,
)
from .models import (
    CropFailure,
    CropSuccess,
    ExportArchive,
    ExportResult,
    RelativeRegion,
    SourceImage,
)


__all__ = [
    "ArchiveFinalizeError",
    "BatchCancelledError",
    "BulkCropper",
    "CropError",
    "CropFailure",
    "CropSuccess",
    "ExportArchive",
    "ExportResult",
    "InvalidRegionError",
    "RasterError",
    "RelativeRegion",
    "SourceImage",
    "export_batch",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
