"""批量处理器模块。

把同一个相对区域逐张应用到整批图片，单张失败不影响其余条目。
"""

import threading
from collections.abc import Sequence
from dataclasses import dataclass

from ..core.formats import FormatProcessor
from ..core.rasterizer import rasterize
from ..exceptions import ErrorHandler, RasterError
from ..models.crop_result import CropFailure, CropSuccess
from ..models.region import RelativeRegion
from ..models.source_image import SourceImage
from ..utils.logging_helpers import get_logger
from ..utils.naming_helpers import FileNamingStrategy
from .concurrent_executor import ConcurrentExecutor, ProgressCallback


logger = get_logger()


@dataclass(frozen=True)
class CropTask:
    """单张图片的裁剪任务（可序列化，供进程池使用）"""

    index: int
    region: RelativeRegion
    image: SourceImage
    processor: FormatProcessor
    apply_exif_orientation: bool
    output_suffix: str

    @property
    def source_id(self) -> str:
        return self.image.id

    @property
    def source_name(self) -> str:
        return self.image.name

    @property
    def payload_size(self) -> int:
        return self.image.size


def crop_item(task: CropTask) -> CropSuccess | CropFailure:
    """裁剪单张图片，栅格化错误转换为 CropFailure 数据而不是向上抛出"""
    image = task.image
    try:
        output = rasterize(
            task.region,
            image,
            processor=task.processor,
            apply_exif_orientation=task.apply_exif_orientation,
        )
    except RasterError as e:
        return ErrorHandler.to_failure(e, task.index, image.id, image.name)

    filename = FileNamingStrategy.generate_output_name(
        image.name,
        output.extension,
        suffix=task.output_suffix,
        fallback=image.id,
    )
    return CropSuccess(
        index=task.index,
        source_id=image.id,
        source_name=image.name,
        data=output.data,
        mime_type=output.mime_type,
        format_used=output.format_used,
        suggested_filename=filename,
        pixel_rect=output.pixel_rect,
    )


class BatchRunner:
    """批量裁剪执行器

    按输入顺序派发任务，结果与输入一一对应且同序。
    """

    def __init__(
        self,
        max_workers: int | None = None,
        force_executor_type: str | None = None,
        processor: FormatProcessor | None = None,
        apply_exif_orientation: bool | None = None,
        output_suffix: str | None = None,
    ):
        """初始化批量执行器

        Args:
            max_workers: 最大并发数，默认读取全局配置
            force_executor_type: 强制指定执行器类型 ('thread'/'process'/None为自动选择)
            processor: 格式处理器
            apply_exif_orientation: 是否按 EXIF 方向旋正
            output_suffix: 输出文件名后缀
        """
        from ..config import get_config

        crop_config = get_config().crop
        self.max_workers = max_workers or crop_config.MAX_WORKERS
        self.processor = processor or FormatProcessor()
        self.apply_exif_orientation = (
            crop_config.APPLY_EXIF_ORIENTATION
            if apply_exif_orientation is None
            else apply_exif_orientation
        )
        self.output_suffix = (
            crop_config.OUTPUT_SUFFIX if output_suffix is None else output_suffix
        )
        self.concurrent_executor = ConcurrentExecutor(
            self.max_workers, force_executor_type
        )

    def run(
        self,
        region: RelativeRegion,
        images: Sequence[SourceImage],
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[CropSuccess | CropFailure]:
        """对整批图片应用同一裁剪区域

        Args:
            region: 已校验的相对裁剪区域
            images: 源图片列表
            on_progress: 进度回调 (completed, total)，每个条目结束后调用一次
            cancel_event: 取消信号

        Returns:
            list: 与输入同序的 CropResult 列表

        Raises:
            BatchCancelledError: 批次被取消
        """
        tasks = [
            CropTask(
                index=index,
                region=region,
                image=image,
                processor=self.processor,
                apply_exif_orientation=self.apply_exif_orientation,
                output_suffix=self.output_suffix,
            )
            for index, image in enumerate(images)
        ]

        logger.info(f"开始批量裁剪: {len(tasks)} 张图片, 区域 {region.as_dict()}")
        results = self.concurrent_executor.execute_tasks(
            tasks=tasks,
            task_function=crop_item,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

        success_count = sum(1 for r in results if r.success)
        logger.info(f"批量裁剪结束: 成功 {success_count}/{len(results)}")
        return results
