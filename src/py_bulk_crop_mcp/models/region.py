"""相对裁剪区域模型。

以百分比（0-100）表示的裁剪矩形，同一批次内对所有图片统一生效。
"""

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..utils.message_formatter import format_validation_error


# 浮点加法误差容忍度，例如 33.3 + 66.7
EDGE_TOLERANCE = 1e-9


class RelativeRegion(BaseModel):
    """相对裁剪区域

    坐标与尺寸均为图片宽高的百分比，构造后不可变。
    合法性检查由 validate_region() 统一完成，便于对外部建议值走同一校验路径。
    """

    model_config = ConfigDict(frozen=True)

    x: float = Field(description="左边距（宽度百分比）")
    y: float = Field(description="上边距（高度百分比）")
    width: float = Field(description="宽度（宽度百分比）")
    height: float = Field(description="高度（高度百分比）")
    unit: Literal["%"] = Field("%", description="单位，固定为百分比")

    @classmethod
    def default(cls) -> "RelativeRegion":
        """默认区域：居中 80%"""
        from ..config import get_config

        x, y, width, height = get_config().crop.DEFAULT_REGION
        return cls(x=x, y=y, width=width, height=height)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def as_dict(self) -> dict[str, float]:
        """导出为纯数值字典"""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def validate_region(region: RelativeRegion) -> RelativeRegion:
    """校验裁剪区域

    在处理任何图片之前调用；失败即整个批次失败。

    Args:
        region: 待校验的相对区域

    Returns:
        RelativeRegion: 校验通过的同一区域

    Raises:
        InvalidRegionError: 区域不合法
    """
    from ..exceptions import InvalidRegionError

    for name in ("x", "y", "width", "height"):
        value = getattr(region, name)
        if not math.isfinite(value):
            raise InvalidRegionError(format_validation_error(name, value, "有限数值"))
        if value < 0:
            raise InvalidRegionError(format_validation_error(name, value, ">= 0"))

    if region.width <= 0:
        raise InvalidRegionError(format_validation_error("width", region.width, "> 0"))
    if region.height <= 0:
        raise InvalidRegionError(
            format_validation_error("height", region.height, "> 0")
        )

    if region.right > 100 + EDGE_TOLERANCE:
        raise InvalidRegionError(
            format_validation_error("x + width", region.right, "<= 100")
        )
    if region.bottom > 100 + EDGE_TOLERANCE:
        raise InvalidRegionError(
            format_validation_error("y + height", region.bottom, "<= 100")
        )

    return region
