"""核心功能测试。

测试区域校验、像素矩形换算与栅格化。
"""

import logging
import math
from io import BytesIO

import pytest
from PIL import Image

from py_bulk_crop_mcp.core.formats import FormatProcessor
from py_bulk_crop_mcp.core.rasterizer import compute_pixel_rect, rasterize, round_half_up
from py_bulk_crop_mcp.exceptions import (
    DecodeFailureError,
    DegenerateRegionError,
    DimensionUnknownError,
    EncodeFailureError,
    InvalidRegionError,
)
from py_bulk_crop_mcp.models import PixelRect, RelativeRegion, SourceImage, validate_region
from py_bulk_crop_mcp.utils.file_helpers import find_image_files, read_image_header


class TestRelativeRegion:
    """相对区域校验测试"""

    def test_valid_region_passes(self, default_region: RelativeRegion):
        """测试合法区域原样返回"""
        assert validate_region(default_region) is default_region

    def test_full_image_region_is_valid(self):
        """测试覆盖整张图片的区域合法"""
        region = RelativeRegion(x=0, y=0, width=100, height=100)
        assert validate_region(region) is region

    def test_right_edge_beyond_100_rejected(self):
        """测试右边界超过 100 被拒绝"""
        region = RelativeRegion(x=50, y=0, width=60, height=50)
        with pytest.raises(InvalidRegionError, match="x \\+ width"):
            validate_region(region)

    def test_bottom_edge_beyond_100_rejected(self):
        """测试下边界超过 100 被拒绝"""
        region = RelativeRegion(x=0, y=30, width=50, height=80)
        with pytest.raises(InvalidRegionError, match="y \\+ height"):
            validate_region(region)

    @pytest.mark.parametrize(
        "field",
        ["x", "y", "width", "height"],
    )
    def test_negative_values_rejected(self, field: str):
        """测试负数被拒绝"""
        values = {"x": 10, "y": 10, "width": 20, "height": 20, field: -1}
        with pytest.raises(InvalidRegionError, match=field):
            validate_region(RelativeRegion(**values))

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_values_rejected(self, value: float):
        """测试非有限数值被拒绝"""
        with pytest.raises(InvalidRegionError):
            validate_region(RelativeRegion(x=value, y=0, width=10, height=10))

    @pytest.mark.parametrize("field", ["width", "height"])
    def test_zero_size_rejected(self, field: str):
        """测试宽或高为 0 被拒绝"""
        values = {"x": 10, "y": 10, "width": 20, "height": 20, field: 0}
        with pytest.raises(InvalidRegionError):
            validate_region(RelativeRegion(**values))

    def test_float_noise_on_edge_tolerated(self):
        """测试浮点误差导致的边界微小超出被容忍"""
        region = RelativeRegion(x=33.3, y=0.1, width=66.7, height=99.9)
        assert validate_region(region) is region

    def test_region_is_immutable(self, default_region: RelativeRegion):
        """测试区域不可变"""
        with pytest.raises(ValueError):
            default_region.x = 20  # type: ignore[misc]

    def test_default_region(self):
        """测试默认区域为居中 80%"""
        assert RelativeRegion.default().as_dict() == {
            "x": 10.0,
            "y": 10.0,
            "width": 80.0,
            "height": 80.0,
        }


class TestPixelRect:
    """像素矩形换算测试"""

    def test_reference_rect(self, default_region: RelativeRegion):
        """测试 1000x500 图片上的居中 80% 区域"""
        rect = compute_pixel_rect(default_region, 1000, 500)
        assert rect.as_tuple() == (100, 50, 800, 400)
        assert rect.box == (100, 50, 900, 450)

    def test_origin_floors_and_size_rounds_half_up(self):
        """测试起点向下取整、宽高四舍五入"""
        region = RelativeRegion(x=12.5, y=0, width=25, height=50)
        rect = compute_pixel_rect(region, 10, 3)
        # 1.25 → 1, 2.5 → 3, 1.5 → 2
        assert rect.as_tuple() == (1, 0, 3, 2)

    def test_round_half_up(self):
        """测试 .5 向上取整"""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    def test_rect_clamped_to_image_bounds(self):
        """测试越界矩形被收紧到图片范围内"""
        region = RelativeRegion(x=90, y=95, width=20, height=20)
        rect = compute_pixel_rect(region, 100, 100)
        assert rect.as_tuple() == (90, 95, 10, 5)

    def test_degenerate_region_raises(self):
        """测试取整后为空的区域报错"""
        region = RelativeRegion(x=0, y=0, width=0.01, height=50)
        with pytest.raises(DegenerateRegionError) as exc_info:
            compute_pixel_rect(region, 10, 10, source_id="tiny")
        assert exc_info.value.source_id == "tiny"

    def test_rect_always_within_bounds(self):
        """测试各种合法区域与尺寸组合下矩形均不越界"""
        sizes = [(1, 1), (3, 7), (99, 101), (640, 480), (1001, 333), (4096, 2160)]
        percents = [0, 0.1, 12.5, 33.3, 49.99, 50, 66.7, 99.9]
        for width, height in sizes:
            for start in percents:
                for extent in (0.1, 25, 33.4, 50, 100 - start):
                    if extent <= 0 or start + extent > 100:
                        continue
                    region = RelativeRegion(x=start, y=start, width=extent, height=extent)
                    try:
                        rect = compute_pixel_rect(region, width, height)
                    except DegenerateRegionError:
                        continue
                    assert rect.x >= 0 and rect.y >= 0
                    assert rect.x + rect.width <= width
                    assert rect.y + rect.height <= height

    def test_same_input_same_rect(self, default_region: RelativeRegion):
        """测试换算结果确定"""
        first = compute_pixel_rect(default_region, 1234, 567)
        second = compute_pixel_rect(default_region, 1234, 567)
        assert first == second


class TestRasterizer:
    """栅格化测试"""

    def test_png_passthrough_keeps_transparency(self, make_source, default_region):
        """测试 PNG 保持原格式和透明度"""
        source = make_source("alpha.png", size=(200, 100), format="PNG", mode="RGBA")
        output = rasterize(default_region, source)

        assert output.format_used == "PNG"
        assert output.mime_type == "image/png"
        assert output.extension == ".png"
        assert output.pixel_rect == PixelRect(x=20, y=10, width=160, height=80)
        with Image.open(BytesIO(output.data)) as img:
            assert img.format == "PNG"
            assert img.size == (160, 80)
            assert img.mode == "RGBA"

    def test_jpeg_output_for_jpeg_source(self, make_source, default_region):
        """测试 JPEG 源输出为 JPEG"""
        source = make_source("photo.jpg", size=(300, 200), format="JPEG")
        output = rasterize(default_region, source)

        assert output.format_used == "JPEG"
        assert output.mime_type == "image/jpeg"
        assert output.extension == ".jpg"
        with Image.open(BytesIO(output.data)) as img:
            assert img.size == (240, 160)

    def test_other_formats_fall_back_to_jpeg(self, make_source, default_region):
        """测试非白名单格式回退为 JPEG"""
        source = make_source("anim.gif", size=(100, 100), format="GIF")
        output = rasterize(default_region, source)

        assert output.format_used == "JPEG"
        with Image.open(BytesIO(output.data)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"

    def test_missing_mime_uses_decoded_format(self, make_source, default_region):
        """测试缺少 MIME 时按解码格式判断"""
        source = make_source("noext", format="PNG", mime_type="")
        assert rasterize(default_region, source).format_used == "PNG"

    def test_source_is_not_modified(self, make_source, default_region):
        """测试源图片数据不被修改"""
        source = make_source("keep.png")
        original = source.content
        rasterize(default_region, source)
        assert source.content == original

    def test_dimension_unknown(self, make_source, default_region):
        """测试尺寸未知时报错"""
        source = make_source("unknown.png", width=None, height=None)
        with pytest.raises(DimensionUnknownError) as exc_info:
            rasterize(default_region, source)
        assert exc_info.value.source_id == "unknown.png"

    def test_decode_failure(self, default_region):
        """测试无法解码的数据"""
        source = SourceImage(
            id="bad-1",
            content=b"garbage",
            mime_type="image/png",
            name="bad.png",
            width=100,
            height=100,
        )
        with pytest.raises(DecodeFailureError) as exc_info:
            rasterize(default_region, source)
        assert exc_info.value.source_id == "bad-1"

    def test_truncated_image_is_decode_failure(self, make_source, default_region):
        """测试截断的图片数据"""
        source = make_source("cut.jpg", format="JPEG")
        truncated = source.model_copy(update={"content": source.content[:200]})
        with pytest.raises(DecodeFailureError):
            rasterize(default_region, truncated)

    def test_degenerate_region_on_small_image(self, make_source):
        """测试在小图上取整为空"""
        source = make_source("small.png", size=(10, 10))
        region = RelativeRegion(x=0, y=0, width=1, height=1)
        with pytest.raises(DegenerateRegionError):
            rasterize(region, source)

    def test_encode_failure(self, make_source, default_region):
        """测试编码阶段失败"""

        class BrokenProcessor(FormatProcessor):
            def prepare_for_format(self, img, target_format):
                raise OSError("磁盘已满")

        source = make_source("enc.png")
        with pytest.raises(EncodeFailureError) as exc_info:
            rasterize(default_region, source, processor=BrokenProcessor())
        assert exc_info.value.source_id == "enc.png"

    def test_declared_size_mismatch_uses_decoded_size(self, make_source, default_region):
        """测试声明尺寸与实际不符时按实际尺寸裁剪"""
        source = make_source("liar.png", size=(200, 100), width=400, height=200)
        output = rasterize(default_region, source)
        assert output.pixel_rect.as_tuple() == (20, 10, 160, 80)

    def test_exif_orientation_applied(self):
        """测试按 EXIF 方向旋正后再裁剪"""
        exif = Image.Exif()
        exif[0x0112] = 6  # 顺时针旋转 90 度
        buffer = BytesIO()
        Image.new("RGB", (200, 100), "red").save(buffer, format="JPEG", exif=exif)
        content = buffer.getvalue()

        format_name, dimensions = read_image_header(content)
        assert format_name == "JPEG"
        assert dimensions == (100, 200)

        source = SourceImage(
            id="rot",
            content=content,
            mime_type="image/jpeg",
            name="rot.jpg",
            width=100,
            height=200,
        )
        region = RelativeRegion(x=0, y=0, width=100, height=50)
        output = rasterize(region, source)
        with Image.open(BytesIO(output.data)) as img:
            assert img.size == (100, 100)

    def test_jpeg_quality_setting(self, make_source, default_region):
        """测试 JPEG 质量影响输出体积"""
        source = make_source("q.jpg", size=(300, 300), format="JPEG")
        low = rasterize(default_region, source, processor=FormatProcessor(jpeg_quality=10))
        high = rasterize(default_region, source, processor=FormatProcessor(jpeg_quality=95))
        assert len(low.data) < len(high.data)


class TestFormatProcessor:
    """格式处理器测试"""

    @pytest.fixture
    def processor(self):
        return FormatProcessor()

    @pytest.mark.parametrize(
        ("mime_type", "expected"),
        [
            ("image/png", "PNG"),
            ("image/x-png", "PNG"),
            ("image/jpeg", "JPEG"),
            ("image/jpg", "JPEG"),
            ("image/webp", "JPEG"),
            ("image/gif", "JPEG"),
            ("application/octet-stream", "JPEG"),
        ],
    )
    def test_select_output_format(self, processor, mime_type: str, expected: str):
        """测试输出格式选择策略"""
        assert processor.select_output_format(mime_type) == expected

    def test_custom_passthrough(self):
        """测试自定义直通白名单"""
        processor = FormatProcessor(passthrough_formats={"png", "gif"})
        assert processor.select_output_format("image/gif") == "GIF"

    def test_empty_passthrough_converts_everything(self):
        """测试空白名单时全部转为 JPEG"""
        processor = FormatProcessor(passthrough_formats=set())
        assert processor.select_output_format("image/png") == "JPEG"

    def test_invalid_quality_rejected(self):
        """测试非法质量值"""
        with pytest.raises(ValueError):
            FormatProcessor(jpeg_quality=101)

    def test_fallback_choice_is_logged(self, processor, caplog):
        """测试回退为 JPEG 时记录调试日志"""
        with caplog.at_level(logging.DEBUG, logger="py_bulk_crop_mcp.core.formats"):
            assert processor.select_output_format("image/webp") == "JPEG"
        assert "WEBP" in caplog.text
        assert "JPEG" in caplog.text

    def test_jpeg_flattens_alpha_on_white(self, processor):
        """测试 JPEG 输出时透明像素合成到白色"""
        img = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
        prepared = processor.prepare_for_format(img, "JPEG")
        assert prepared.mode == "RGB"
        assert prepared.getpixel((0, 0)) == (255, 255, 255)


class TestFileHelpers:
    """文件工具测试"""

    def test_find_image_files_sorted(self, image_dir):
        """测试按路径排序返回图片"""
        names = [path.name for path in find_image_files(image_dir)]
        assert names == ["broken.png", "landscape.png", "portrait.jpg"]

    @pytest.mark.parametrize(
        ("target", "reason"),
        [("missing", "目录不存在"), ("landscape.png", "不是目录")],
    )
    def test_unusable_directory_logged(self, image_dir, caplog, target, reason):
        """测试无法扫描的路径返回空结果并记录原因"""
        with caplog.at_level(logging.WARNING, logger="py_bulk_crop_mcp.utils.file_helpers"):
            assert list(find_image_files(image_dir / target)) == []
        assert reason in caplog.text
        assert str(image_dir / target) in caplog.text
