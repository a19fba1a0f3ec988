"""批量裁剪导出接口。

把区域校验、批量裁剪和归档串联为单一入口，供界面层或 MCP 工具调用。
"""

import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .core.formats import FormatProcessor
from .engine.archiver import Archiver
from .engine.batch import BatchRunner
from .engine.concurrent_executor import ProgressCallback
from .exceptions import ArchiveFinalizeError, InvalidRegionError
from .models import (
    CropFailure,
    ExportResult,
    FailureSummary,
    RelativeRegion,
    SourceImage,
    validate_region,
)
from .suggesters import NoopRegionSuggester, RegionSuggester
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()


class BulkCropper:
    """批量裁剪导出器。

    同一个相对区域应用到整批图片，成功结果打包为一个 ZIP 归档。
    区域非法或归档写入失败时抛出异常，单张图片的失败只记录在结果中。
    """

    def __init__(
        self,
        max_workers: int | None = None,
        force_executor_type: str | None = None,
        jpeg_quality: int | None = None,
        folder_name: str | None = None,
        archive_name: str | None = None,
    ):
        """初始化导出器。

        Args:
            max_workers: 批量处理时的最大并发数
            force_executor_type: 强制指定执行器类型 ('thread'/'process'/None为自动选择)
            jpeg_quality: 非直通格式输出的 JPEG 质量 1-100
            folder_name: 归档内的顶层目录名
            archive_name: 下载文件名
        """
        self.batch_runner = BatchRunner(
            max_workers=max_workers,
            force_executor_type=force_executor_type,
            processor=FormatProcessor(jpeg_quality=jpeg_quality),
        )
        self.archiver = Archiver(folder_name=folder_name, archive_name=archive_name)

        logger.debug("初始化批量裁剪导出器")

    def export_batch(
        self,
        region: RelativeRegion,
        images: Sequence[SourceImage],
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ExportResult:
        """裁剪整批图片并打包。

        Args:
            region: 相对裁剪区域
            images: 源图片列表
            on_progress: 进度回调 (completed, total)
            cancel_event: 取消信号，设置后不再提交新条目且不生成归档

        Returns:
            ExportResult: 归档、逐条结果与失败摘要

        Raises:
            InvalidRegionError: 区域非法，未处理任何图片
            ArchiveFinalizeError: 归档写入失败
            BatchCancelledError: 批次被取消

        Examples:
            >>> cropper = BulkCropper()
            >>> region = RelativeRegion(x=10, y=10, width=80, height=80)
            >>> result = cropper.export_batch(region, images)
            >>> print(result.get_summary())
        """
        validate_region(region)

        results = self.batch_runner.run(region, images, on_progress, cancel_event)
        archive = self.archiver.build(results)

        failures = [
            FailureSummary.from_failure(r) for r in results if isinstance(r, CropFailure)
        ]
        export_result = ExportResult(archive=archive, results=results, failures=failures)

        if export_result.all_failed:
            logger.warning(f"所有图片裁剪失败: {export_result.get_summary()}")
        else:
            logger.info(export_result.get_summary())
        return export_result

    def export_to_path(
        self,
        region: RelativeRegion,
        images: Sequence[SourceImage],
        output_path: str | Path,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ExportResult:
        """裁剪整批图片并把归档写入磁盘。

        output_path 为目录时使用归档默认文件名。
        """
        export_result = self.export_batch(region, images, on_progress, cancel_event)

        target = Path(output_path)
        if target.is_dir():
            target = target / export_result.archive.filename

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(export_result.archive.data)
        except OSError as e:
            logger.error(MessageFormatter.operation_failed("归档保存", target, e))
            raise ArchiveFinalizeError(f"归档保存失败: {e}") from e

        logger.info(f"归档已保存: {target}")
        return export_result

    @staticmethod
    def suggest_region(
        image: SourceImage,
        suggester: RegionSuggester | None = None,
        fallback: RelativeRegion | None = None,
    ) -> tuple[RelativeRegion, bool]:
        """获取裁剪区域建议，失败时回退到手动区域。

        Args:
            image: 用于分析的图片
            suggester: 区域建议器，默认不启用
            fallback: 回退区域，默认居中 80%

        Returns:
            tuple: (区域, 是否来自建议器)
        """
        fallback = fallback or RelativeRegion.default()
        suggester = suggester or NoopRegionSuggester()

        try:
            suggestion = suggester.suggest(image)
        except Exception as e:
            # 建议服务的任何失败都不能阻塞导出
            logger.warning(MessageFormatter.operation_failed("区域建议", image.name, e))
            return fallback, False

        if suggestion is None:
            return fallback, False

        try:
            return validate_region(suggestion), True
        except InvalidRegionError as e:
            logger.warning(f"区域建议不合法，使用回退区域 [{image.name}]: {e}")
            return fallback, False


# 便捷函数


def export_batch(
    region: RelativeRegion,
    images: Sequence[SourceImage],
    on_progress: ProgressCallback | None = None,
    **kwargs: Any,
) -> ExportResult:
    """便捷的批量裁剪导出函数

    Args:
        region: 相对裁剪区域
        images: 源图片列表
        on_progress: 进度回调 (completed, total)
        **kwargs: BulkCropper 的构造参数，包括：
            - max_workers: 最大并发数
            - force_executor_type: 'thread' / 'process'
            - jpeg_quality: JPEG 质量
            - folder_name: 归档目录名
            - archive_name: 归档文件名

    Returns:
        ExportResult: 导出结果
    """
    return BulkCropper(**kwargs).export_batch(region, images, on_progress)
