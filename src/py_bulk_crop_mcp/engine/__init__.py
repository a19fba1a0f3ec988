"""批量裁剪处理引擎模块。

包含批量执行、并发调度和归档构建等核心处理逻辑。
"""

from .archiver import Archiver
from .batch import BatchRunner, CropTask, crop_item
from .concurrent_executor import ConcurrentExecutor, ProgressTracker


__all__ = [
    "Archiver",
    "BatchRunner",
    "ConcurrentExecutor",
    "CropTask",
    "ProgressTracker",
    "crop_item",
]
