"""工具函数模块。

提供文件系统调用方使用的图片查找与加载工具函数。
"""

from collections.abc import Iterator
from io import BytesIO
from pathlib import Path

from PIL import Image

from ..models.constants import ImageFormats, get_mime_type
from ..models.source_image import SourceImage
from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()

# EXIF 方向值 5-8 表示需要交换宽高
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}
_ORIENTATION_TAG = 0x0112


def find_image_files(
    directory: str | Path,
    recursive: bool = True,
    exclude_dirs: list[str] | None = None,
) -> Iterator[Path]:
    """查找目录中的图像文件，按路径排序以保证批次顺序稳定。

    Args:
        directory: 搜索目录
        recursive: 是否递归搜索子目录
        exclude_dirs: 要排除的目录名列表

    Yields:
        Path: 图像文件路径
    """
    directory = Path(directory)
    exclude_dirs = exclude_dirs or []

    if not directory.exists():
        logger.warning(MessageFormatter.path_unavailable(directory, "目录不存在"))
        return

    if not directory.is_dir():
        logger.warning(MessageFormatter.path_unavailable(directory, "不是目录"))
        return

    # 选择搜索模式
    pattern = "**/*" if recursive else "*"

    # 获取支持的扩展名（直接使用 Pillow API）
    supported_extensions = ImageFormats.get_supported_extensions()

    try:
        for file_path in sorted(directory.glob(pattern)):
            if (
                file_path.is_file()
                and file_path.suffix.lower() in supported_extensions
                and not any(
                    exclude_dir in file_path.relative_to(directory).parts
                    for exclude_dir in exclude_dirs
                )
            ):
                yield file_path
    except PermissionError:
        logger.error(MessageFormatter.path_unavailable(directory, "权限不足"))


def read_image_header(content: bytes) -> tuple[str | None, tuple[int, int] | None]:
    """读取图片格式与按 EXIF 方向旋正后的尺寸，不解码像素

    Returns:
        tuple: (格式名, (宽, 高))，无法识别时对应项为 None
    """
    try:
        with Image.open(BytesIO(content)) as img:
            width, height = img.size
            if img.getexif().get(_ORIENTATION_TAG) in _TRANSPOSED_ORIENTATIONS:
                width, height = height, width
            return img.format, (width, height)
    except Exception as e:
        logger.debug(MessageFormatter.operation_failed("读取图片头信息", "内存数据", e))
        return None, None


def load_source_image(file_path: str | Path, item_id: str | None = None) -> SourceImage:
    """从文件加载源图片

    尺寸无法读取时返回 width/height 为 None 的 SourceImage，
    由批处理把该条目记为尺寸未知失败，而不是在加载阶段中断。

    Args:
        file_path: 图片文件路径
        item_id: 条目标识，默认使用文件路径

    Returns:
        SourceImage: 源图片
    """
    file_path = Path(file_path)
    content = file_path.read_bytes()

    format_name, dimensions = read_image_header(content)
    if format_name is None:
        format_name = ImageFormats.format_from_extension(file_path.suffix)
    mime_type = get_mime_type(format_name) if format_name else ""

    if dimensions is None:
        logger.warning(MessageFormatter.operation_failed("读取图片尺寸", file_path))

    return SourceImage(
        id=item_id or str(file_path),
        content=content,
        mime_type=mime_type,
        name=file_path.name,
        width=dimensions[0] if dimensions else None,
        height=dimensions[1] if dimensions else None,
    )

