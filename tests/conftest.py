"""测试配置文件。

提供测试所需的fixtures和配置。
"""

from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from py_bulk_crop_mcp.config import reset_config
from py_bulk_crop_mcp.models import RelativeRegion, SourceImage, get_mime_type


def make_image_bytes(
    size: tuple[int, int] = (200, 100),
    format: str = "PNG",
    mode: str = "RGB",
    **save_kwargs,
) -> bytes:
    """生成带图案的测试图片数据"""
    color = (0, 0, 0, 0) if mode == "RGBA" else "white"
    img = Image.new(mode, size, color=color)
    draw = ImageDraw.Draw(img)
    width, height = size
    for i in range(10):
        x, y = (i * width) // 10, (i * height) // 10
        fill = (i * 25 % 256, 100 + i * 15 % 156, 255 - i * 20 % 256)
        if mode == "RGBA":
            fill = (*fill, 120 + i * 10)
        draw.rectangle([x, y, x + width // 5, y + height // 5], fill=fill)

    buffer = BytesIO()
    img.save(buffer, format=format, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture
def make_source() -> Callable[..., SourceImage]:
    """构造 SourceImage 的工厂 fixture"""

    def _make(
        name: str,
        size: tuple[int, int] = (200, 100),
        format: str = "PNG",
        mode: str = "RGB",
        **overrides,
    ) -> SourceImage:
        fields = {
            "id": name,
            "content": make_image_bytes(size, format, mode),
            "mime_type": get_mime_type(format),
            "name": name,
            "width": size[0],
            "height": size[1],
        }
        fields.update(overrides)
        return SourceImage(**fields)

    return _make


@pytest.fixture
def default_region() -> RelativeRegion:
    """居中 80% 区域"""
    return RelativeRegion(x=10, y=10, width=80, height=80)


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    """包含多种格式图片和一个损坏文件的目录"""
    images_dir = tmp_path / "images"
    images_dir.mkdir()
    (images_dir / "landscape.png").write_bytes(make_image_bytes((400, 200), "PNG"))
    (images_dir / "portrait.jpg").write_bytes(make_image_bytes((150, 300), "JPEG"))
    (images_dir / "broken.png").write_bytes(b"definitely not a png")
    return images_dir


@pytest.fixture
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """隔离环境变量配置，测试结束后恢复全局配置"""
    for key in (
        "GEMINI_API_KEY",
        "BULKCROP_JPEG_QUALITY",
        "BULKCROP_MAX_WORKERS",
        "BULKCROP_ARCHIVE_FOLDER",
        "BULKCROP_ARCHIVE_NAME",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield monkeypatch
    monkeypatch.undo()
    reset_config()
