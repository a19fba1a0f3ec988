"""图像格式相关常量定义。

基于 Pillow 动态能力的图像格式管理，避免硬编码重复。
"""

from typing import Final

from PIL import Image


class ImageFormats:
    """基于 Pillow 的动态图像格式管理"""

    # 只定义必要的别名映射（用户友好的别名）
    ALIASES: Final[dict[str, str]] = {
        "JPG": "JPEG",
    }

    # 只定义 Pillow 未提供的特殊 MIME 类型
    SPECIAL_MIME_TYPES: Final[dict[str, str]] = {
        "ICO": "image/x-icon",
        "PPM": "image/x-portable-pixmap",
        "PGM": "image/x-portable-graymap",
        "PBM": "image/x-portable-bitmap",
    }

    # 浏览器常见的非标准 MIME 写法
    MIME_ALIASES: Final[dict[str, str]] = {
        "image/jpg": "JPEG",
        "image/pjpeg": "JPEG",
        "image/x-png": "PNG",
    }

    # 只定义首选扩展名（当 Pillow 有多个选择时）
    PREFERRED_EXTENSIONS: Final[dict[str, str]] = {
        "JPEG": ".jpg",  # 而不是 .jpeg
        "TIFF": ".tiff",  # 而不是 .tif
    }

    @classmethod
    def get_supported_extensions(cls) -> set[str]:
        """动态获取 Pillow 支持的所有扩展名"""
        return set(Image.registered_extensions().keys())

    @classmethod
    def get_mime_type(cls, format_name: str) -> str:
        """动态获取 MIME 类型，优先使用 Pillow 信息"""
        format_upper = format_name.upper()

        if format_upper in cls.SPECIAL_MIME_TYPES:
            return cls.SPECIAL_MIME_TYPES[format_upper]

        Image.init()
        if mime := Image.MIME.get(format_upper):
            return mime

        return f"image/{format_upper.lower()}"

    @classmethod
    def get_extension(cls, format_name: str) -> str:
        """动态获取扩展名，优先使用首选扩展名"""
        format_upper = format_name.upper()

        if format_upper in cls.PREFERRED_EXTENSIONS:
            return cls.PREFERRED_EXTENSIONS[format_upper]

        for ext, fmt in Image.registered_extensions().items():
            if fmt and fmt.upper() == format_upper:
                return ext.lower()

        # 后备选择
        return f".{format_upper.lower()}"

    @classmethod
    def format_from_mime(cls, mime_type: str) -> str | None:
        """根据 MIME 类型反查 Pillow 格式名"""
        mime = mime_type.strip().lower()
        if not mime:
            return None

        if mime in cls.MIME_ALIASES:
            return cls.MIME_ALIASES[mime]

        Image.init()
        for format_name, registered_mime in Image.MIME.items():
            if registered_mime.lower() == mime:
                return format_name.upper()

        for format_name, special_mime in cls.SPECIAL_MIME_TYPES.items():
            if special_mime == mime:
                return format_name

        return None

    @classmethod
    def format_from_extension(cls, suffix: str) -> str | None:
        """根据扩展名查找 Pillow 格式名"""
        fmt = Image.registered_extensions().get(suffix.lower())
        return fmt.upper() if fmt else None


# 便捷访问函数
def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_upper = format_str.upper()
    return ImageFormats.ALIASES.get(format_upper, format_upper)


def get_mime_type(format_str: str) -> str:
    """获取格式的MIME类型"""
    return ImageFormats.get_mime_type(get_format_alias(format_str))


def get_extension(format_str: str) -> str:
    """获取格式的首选扩展名"""
    return ImageFormats.get_extension(get_format_alias(format_str))
