"""源图片模型。"""

from pydantic import BaseModel, ConfigDict, Field


class SourceImage(BaseModel):
    """待裁剪的源图片

    由调用方持有，流水线只读。width/height 为按 EXIF 方向旋正后的像素尺寸，
    未知时为 None，对应条目会以尺寸未知失败，而不是猜测。
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="稳定的条目标识")
    content: bytes = Field(repr=False, description="编码后的图片数据")
    mime_type: str = Field("", description="声明的 MIME 类型")
    name: str = Field(description="原始文件名")
    width: int | None = Field(None, gt=0, description="像素宽度")
    height: int | None = Field(None, gt=0, description="像素高度")

    @property
    def has_dimensions(self) -> bool:
        return self.width is not None and self.height is not None

    @property
    def size(self) -> int:
        """数据字节数"""
        return len(self.content)
