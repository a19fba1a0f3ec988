"""归档器模块。

把成功的裁剪结果打包为单个 ZIP 容器，所有条目位于同一顶层目录下。
"""

import zipfile
from collections.abc import Sequence
from io import BytesIO

from ..exceptions import ArchiveFinalizeError
from ..models.crop_result import CropFailure, CropSuccess, ExportArchive
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from ..utils.naming_helpers import UniqueNameRegistry


logger = get_logger()

# 固定条目时间戳，使相同输入生成相同字节的归档
FIXED_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


class Archiver:
    """ZIP 归档构建器

    只在批次全部条目尝试完成后由单个线程调用，不支持并发写入。
    """

    def __init__(
        self,
        folder_name: str | None = None,
        archive_name: str | None = None,
        compress_level: int | None = None,
    ):
        """初始化归档器

        Args:
            folder_name: 归档内的顶层目录名
            archive_name: 下载文件名
            compress_level: DEFLATE 压缩级别 0-9
        """
        from ..config import get_config

        archive_config = get_config().archive
        self.folder_name = (folder_name or archive_config.FOLDER_NAME).strip("/")
        self.archive_name = archive_name or archive_config.ARCHIVE_NAME
        self.compress_level = (
            archive_config.COMPRESS_LEVEL if compress_level is None else compress_level
        )

        if not self.folder_name:
            raise ValueError("归档目录名不能为空")

    def build(self, results: Sequence[CropSuccess | CropFailure]) -> ExportArchive:
        """构建归档

        Args:
            results: 批次的全部结果，失败条目不产生归档条目

        Returns:
            ExportArchive: 已完成写入的归档

        Raises:
            ArchiveFinalizeError: 容器写入失败
        """
        registry = UniqueNameRegistry()
        entries: list[str] = []
        buffer = BytesIO()

        try:
            with zipfile.ZipFile(
                buffer,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compress_level,
            ) as archive:
                archive.writestr(self._zip_info(f"{self.folder_name}/"), b"")

                for result in results:
                    if not isinstance(result, CropSuccess):
                        continue

                    filename = registry.claim(
                        result.suggested_filename, result.sequence_number
                    )
                    if filename != result.suggested_filename:
                        logger.info(
                            f"文件名冲突: {result.suggested_filename} → {filename}"
                        )

                    entry_name = f"{self.folder_name}/{filename}"
                    archive.writestr(
                        self._zip_info(entry_name),
                        result.data,
                        compresslevel=self.compress_level,
                    )
                    entries.append(entry_name)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            logger.error(
                MessageFormatter.operation_failed("归档写入", self.archive_name, e)
            )
            raise ArchiveFinalizeError(f"归档写入失败: {e}") from e

        logger.info(f"归档完成: {self.archive_name}, {len(entries)} 个条目")
        return ExportArchive(
            filename=self.archive_name,
            folder_name=self.folder_name,
            entries=entries,
            data=buffer.getvalue(),
        )

    @staticmethod
    def _zip_info(name: str) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(name, date_time=FIXED_TIMESTAMP)
        if name.endswith("/"):
            info.external_attr = 0o40755 << 16 | 0x10
        else:
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
        return info
