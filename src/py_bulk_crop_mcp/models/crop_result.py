"""裁剪结果模型。

定义单张裁剪结果、批次进度以及最终导出归档的数据结构。
"""

from enum import Enum
from typing import Annotated, Literal

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field


class FailureReason(str, Enum):
    """单张图片失败原因"""

    DIMENSION_UNKNOWN = "dimension_unknown"
    DECODE_FAILURE = "decode_failure"
    DEGENERATE_REGION = "degenerate_region"
    ENCODE_FAILURE = "encode_failure"
    PROCESSING_ERROR = "processing_error"  # 执行器层面的意外错误


class PixelRect(BaseModel):
    """某张图片上的整数像素矩形"""

    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @property
    def box(self) -> tuple[int, int, int, int]:
        """Pillow crop 使用的 (left, upper, right, lower)"""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


class BaseCropResult(BaseModel):
    """结果基类，包含通用字段和方法"""

    index: int = Field(ge=0, description="在批次中的位置（从 0 开始）")
    source_id: str = Field(description="源图片标识")
    source_name: str = Field(description="源图片文件名")

    @property
    def success(self) -> bool:
        return isinstance(self, CropSuccess)

    @property
    def sequence_number(self) -> int:
        """从 1 开始的批次序号"""
        return self.index + 1


class CropSuccess(BaseCropResult):
    """单张图片裁剪成功"""

    status: Literal["success"] = "success"
    data: bytes = Field(repr=False, description="编码后的裁剪图片")
    mime_type: str = Field(description="输出 MIME 类型")
    format_used: str = Field(description="输出格式")
    suggested_filename: str = Field(description="建议的输出文件名")
    pixel_rect: PixelRect = Field(description="实际裁剪的像素矩形")

    @property
    def size(self) -> int:
        return len(self.data)

    def get_summary(self) -> str:
        rect = self.pixel_rect
        return (
            f"{self.source_name} → {self.suggested_filename} "
            f"({rect.width}x{rect.height}, {naturalsize(self.size, binary=True)})"
        )


class CropFailure(BaseCropResult):
    """单张图片裁剪失败"""

    status: Literal["failure"] = "failure"
    reason: FailureReason = Field(description="失败原因")
    error: str = Field(description="错误信息")

    def get_summary(self) -> str:
        return f"{self.source_name} 失败 ({self.reason.value}): {self.error}"


CropResult = Annotated[CropSuccess | CropFailure, Field(discriminator="status")]


class BatchProgress(BaseModel):
    """批次进度快照"""

    completed: int = Field(ge=0, description="已尝试的条目数（成功或失败）")
    total: int = Field(ge=0, description="批次总数")

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.completed / self.total

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.total


class ExportArchive(BaseModel):
    """最终导出的 ZIP 归档，生成后不可变"""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(description="下载文件名")
    folder_name: str = Field(description="归档内的顶层目录")
    entries: list[str] = Field(default_factory=list, description="归档条目名")
    data: bytes = Field(repr=False, description="ZIP 容器数据")

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def size(self) -> int:
        return len(self.data)

    def get_size_human(self) -> str:
        """人类可读的归档大小"""
        return naturalsize(self.size, binary=True)


class FailureSummary(BaseModel):
    """失败条目摘要，供调用方直接展示"""

    id: str
    name: str
    reason: FailureReason
    message: str

    @classmethod
    def from_failure(cls, failure: CropFailure) -> "FailureSummary":
        return cls(
            id=failure.source_id,
            name=failure.source_name,
            reason=failure.reason,
            message=failure.error,
        )


class ExportResult(BaseModel):
    """批量导出结果：归档 + 逐条结果 + 失败摘要"""

    archive: ExportArchive
    results: list[CropResult] = Field(description="与输入同序的逐条结果")
    failures: list[FailureSummary] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def all_failed(self) -> bool:
        return self.total > 0 and self.success_count == 0

    def get_success_rate(self) -> float:
        """获取成功率（百分比）"""
        if self.total == 0:
            return 0.0
        return (self.success_count / self.total) * 100

    def get_summary(self) -> str:
        """批量导出摘要"""
        return (
            f"裁剪 {self.success_count}/{self.total} 张图片 "
            f"(成功率 {self.get_success_rate():.1f}%), "
            f"归档 {self.archive.filename} {self.archive.get_size_human()}"
        )
