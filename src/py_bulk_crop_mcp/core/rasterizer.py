"""栅格化模块。

把相对裁剪区域换算为某张图片上的精确像素矩形，并完成裁剪与重新编码。
纯函数实现，可在线程池或进程池中并发调用；源图片永不被修改。
"""

import math
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps

from ..exceptions import (
    DecodeFailureError,
    DegenerateRegionError,
    DimensionUnknownError,
    EncodeFailureError,
    handle_image_errors,
)
from ..models.crop_result import PixelRect
from ..models.region import RelativeRegion
from ..models.source_image import SourceImage
from ..utils.logging_helpers import get_logger
from .formats import FormatProcessor


logger = get_logger()


@dataclass(frozen=True)
class RasterOutput:
    """单张图片的栅格化输出"""

    pixel_rect: PixelRect
    data: bytes
    format_used: str
    mime_type: str
    extension: str


def round_half_up(value: float) -> int:
    """四舍五入（.5 向上），避免 round() 的银行家舍入"""
    return math.floor(value + 0.5)


def compute_pixel_rect(
    region: RelativeRegion, width: int, height: int, source_id: str | None = None
) -> PixelRect:
    """计算相对区域在指定尺寸图片上的像素矩形

    起点向下取整，宽高四舍五入，再按图片边界收紧，保证不会越界读取。
    先乘后除，使整百分比得到精确像素值。

    Args:
        region: 相对裁剪区域
        width: 图片像素宽度
        height: 图片像素高度
        source_id: 源图片标识（用于错误信息）

    Returns:
        PixelRect: 像素矩形

    Raises:
        DegenerateRegionError: 取整后宽或高为 0
    """
    pixel_x = min(max(math.floor(region.x * width / 100), 0), width)
    pixel_y = min(max(math.floor(region.y * height / 100), 0), height)
    pixel_width = min(round_half_up(region.width * width / 100), width - pixel_x)
    pixel_height = min(round_half_up(region.height * height / 100), height - pixel_y)

    if pixel_width <= 0 or pixel_height <= 0:
        raise DegenerateRegionError(
            f"区域在 {width}x{height} 图片上取整后为空 "
            f"({pixel_width}x{pixel_height})",
            source_id,
        )

    return PixelRect(x=pixel_x, y=pixel_y, width=pixel_width, height=pixel_height)


@handle_image_errors(DecodeFailureError, "图片解码")
def _decode(
    source_id: str, content: bytes, apply_exif_orientation: bool
) -> tuple[Image.Image, str | None]:
    """解码图片数据，返回 (像素已加载的图片, 源格式)"""
    with Image.open(BytesIO(content)) as img:
        img.load()
        decoded_format = img.format
        if apply_exif_orientation:
            return ImageOps.exif_transpose(img), decoded_format
        return img.copy(), decoded_format


@handle_image_errors(EncodeFailureError, "图片编码")
def _encode(
    source_id: str,
    img: Image.Image,
    target_format: str,
    processor: FormatProcessor,
) -> bytes:
    """按目标格式编码裁剪结果"""
    prepared = processor.prepare_for_format(img, target_format)
    params = processor.get_save_parameters(target_format)
    if icc_profile := img.info.get("icc_profile"):
        params["icc_profile"] = icc_profile

    buffer = BytesIO()
    prepared.save(buffer, format=target_format, **params)
    return buffer.getvalue()


def rasterize(
    region: RelativeRegion,
    image: SourceImage,
    processor: FormatProcessor | None = None,
    apply_exif_orientation: bool | None = None,
) -> RasterOutput:
    """裁剪单张图片

    Args:
        region: 已校验的相对裁剪区域
        image: 源图片
        processor: 格式处理器，默认按全局配置创建
        apply_exif_orientation: 是否按 EXIF 方向旋正，默认读取全局配置

    Returns:
        RasterOutput: 像素矩形与编码后的数据

    Raises:
        DimensionUnknownError: 源图片尺寸未知
        DecodeFailureError: 源图片解码失败
        DegenerateRegionError: 像素矩形为空
        EncodeFailureError: 编码失败
    """
    if processor is None:
        processor = FormatProcessor()
    if apply_exif_orientation is None:
        from ..config import get_config

        apply_exif_orientation = get_config().crop.APPLY_EXIF_ORIENTATION

    if image.width is None or image.height is None:
        raise DimensionUnknownError(f"图片尺寸未知: {image.name}", image.id)

    pixel_rect = compute_pixel_rect(region, image.width, image.height, image.id)

    decoded, decoded_format = _decode(image.id, image.content, apply_exif_orientation)
    if decoded.size != (image.width, image.height):
        logger.warning(
            f"声明尺寸与实际尺寸不一致 [{image.name}]: "
            f"{image.width}x{image.height} != {decoded.width}x{decoded.height}，"
            "按实际尺寸重新计算"
        )
        pixel_rect = compute_pixel_rect(
            region, decoded.width, decoded.height, image.id
        )

    cropped = decoded.crop(pixel_rect.box)
    target_format = processor.select_output_format(image.mime_type, decoded_format)
    data = _encode(image.id, cropped, target_format, processor)
    mime_type, extension = processor.describe(target_format)

    logger.debug(
        f"裁剪完成 [{image.name}]: {pixel_rect.as_tuple()} → {target_format}, "
        f"{len(data)} 字节"
    )

    return RasterOutput(
        pixel_rect=pixel_rect,
        data=data,
        format_used=target_format,
        mime_type=mime_type,
        extension=extension,
    )
