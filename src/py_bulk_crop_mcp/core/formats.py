"""格式处理器模块。

决定裁剪结果的输出格式，并为目标格式准备像素数据和保存参数。
"""

import logging
from collections.abc import Collection
from typing import Any

from PIL import Image

from ..models.constants import ImageFormats, get_extension, get_mime_type


logger = logging.getLogger(__name__)


class FormatProcessor:
    """格式处理器

    输出策略：源格式在直通白名单内时保持原格式（默认仅 PNG），
    其余格式统一回退为固定质量的 JPEG。
    """

    def __init__(
        self,
        passthrough_formats: Collection[str] | None = None,
        fallback_format: str | None = None,
        jpeg_quality: int | None = None,
    ) -> None:
        """初始化格式处理器

        Args:
            passthrough_formats: 保持原格式输出的格式集合
            fallback_format: 非直通格式的统一输出格式
            jpeg_quality: JPEG 输出质量 1-100
        """
        from ..config import get_config

        crop_config = get_config().crop
        if passthrough_formats is None:
            passthrough_formats = crop_config.PASSTHROUGH_FORMATS
        self.passthrough_formats = frozenset(fmt.upper() for fmt in passthrough_formats)
        self.fallback_format = (fallback_format or crop_config.FALLBACK_FORMAT).upper()
        self.jpeg_quality = jpeg_quality or crop_config.JPEG_QUALITY
        self._crop_config = crop_config

        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"JPEG 质量必须在 1-100 之间: {self.jpeg_quality}")

    def select_output_format(
        self, mime_type: str, decoded_format: str | None = None
    ) -> str:
        """选择输出格式

        优先依据声明的 MIME 类型，缺失或无法识别时使用解码得到的格式。

        Args:
            mime_type: 源图片声明的 MIME 类型
            decoded_format: Pillow 解码得到的格式名

        Returns:
            str: 输出格式名（如 "PNG"、"JPEG"）
        """
        source_format = ImageFormats.format_from_mime(mime_type) or (
            decoded_format.upper() if decoded_format else None
        )

        if source_format in self.passthrough_formats:
            return source_format

        logger.debug(
            f"{source_format or mime_type or '未知格式'} 不在直通列表中，"
            f"输出为 {self.fallback_format}"
        )
        return self.fallback_format

    def prepare_for_format(self, img: Image.Image, target_format: str) -> Image.Image:
        """为目标格式准备图片

        Args:
            img: PIL图片对象
            target_format: 目标格式

        Returns:
            Image.Image: 处理后的图片对象
        """
        match target_format:
            case "JPEG":
                return self._prepare_for_jpeg(img)
            case "PNG":
                return self._prepare_for_png(img)
            case _:
                return img

    def _prepare_for_jpeg(self, img: Image.Image) -> Image.Image:
        """JPEG 不支持透明度，透明像素合成到白色背景上"""
        if img.mode == "P" and "transparency" in img.info:
            img = img.convert("RGBA")

        if img.mode in ("RGBA", "LA", "PA"):
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            return background

        if img.mode not in ("RGB", "L", "CMYK"):
            return img.convert("RGB")
        return img

    def _prepare_for_png(self, img: Image.Image) -> Image.Image:
        """PNG 保留透明度，只转换 PNG 无法写入的模式"""
        if img.mode in ("CMYK", "YCbCr", "LAB", "HSV"):
            return img.convert("RGB")
        return img

    def get_save_parameters(self, target_format: str) -> dict[str, Any]:
        """获取目标格式的保存参数"""
        params = self._crop_config.get_save_parameters(target_format)
        if target_format == "JPEG":
            params["quality"] = self.jpeg_quality
        return params

    @staticmethod
    def describe(target_format: str) -> tuple[str, str]:
        """返回目标格式的 (MIME 类型, 扩展名)"""
        return get_mime_type(target_format), get_extension(target_format)
