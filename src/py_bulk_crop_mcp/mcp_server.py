"""批量裁剪 MCP 服务器。

把批量裁剪导出和智能区域建议暴露为 MCP 工具。
"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .cropper import BulkCropper
from .exceptions import CropError, InvalidRegionError
from .models import ExportResult, RelativeRegion
from .suggesters import GeminiRegionSuggester, NoopRegionSuggester, RegionSuggester
from .utils.file_helpers import find_image_files, load_source_image
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter


# MCP 服务器响应类型定义
MCPCropResponse = dict[str, Any]
MCPSuggestionResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result: dict[str, Any] = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> dict[str, Any]:
        """构建验证错误结果。"""
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="validation",
            details=details,
        )

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        """构建文件相关错误结果。"""
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="file",
            details=details,
        )

    @staticmethod
    def processing_error(message: str, operation: str | None = None) -> dict[str, Any]:
        """构建处理错误结果。"""
        details = {"operation": operation} if operation else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="processing",
            details=details,
        )


logger = get_logger(__name__)

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("批量图片裁剪服务")


def _collect_image_paths(input_path: Path, recursive: bool) -> list[Path]:
    """收集待处理图片：单个文件或目录下的全部图片"""
    if input_path.is_file():
        return [input_path]
    return list(find_image_files(input_path, recursive=recursive))


def _default_suggester() -> RegionSuggester:
    """配置了 Gemini API Key 时启用智能建议"""
    if get_config().suggestion.GEMINI_API_KEY:
        return GeminiRegionSuggester()
    return NoopRegionSuggester()


# ============================================================================
# 核心工具
# ============================================================================


def crop_batch(
    input_path: str,
    x: float = 10.0,
    y: float = 10.0,
    width: float = 80.0,
    height: float = 80.0,
    output_path: str | None = None,
    recursive: bool = True,
) -> MCPCropResponse:
    """批量裁剪工具 - 同一相对区域裁剪整批图片并打包为 ZIP

    区域以图片宽高的百分比（0-100）表示，对不同分辨率的图片统一生效。
    PNG 保持原格式，其余格式输出为 JPEG。

    Args:
        input_path: 输入路径（单个图片文件或目录）
        x: 左边距百分比
        y: 上边距百分比
        width: 宽度百分比
        height: 高度百分比
        output_path: 归档输出路径（文件或目录，默认输入目录下的默认文件名）
        recursive: 目录处理时是否递归子目录

    Returns:
        dict: 导出摘要，包含归档路径、成功数量和失败原因

    使用场景:
        # 居中 80% 裁剪整个目录
        crop_batch("photos/")

        # 只保留上半部分
        crop_batch("photos/", x=0, y=0, width=100, height=50, output_path="out/top.zip")
    """
    try:
        input_path_obj = Path(input_path)
        if not input_path_obj.exists():
            return MCPResponseBuilder.file_error(
                MessageFormatter.file_not_found(input_path), input_path
            )

        region = RelativeRegion(x=x, y=y, width=width, height=height)
        image_paths = _collect_image_paths(input_path_obj, recursive)
        images = [load_source_image(path) for path in image_paths]

        cropper = BulkCropper()
        if output_path:
            target = Path(output_path)
        elif input_path_obj.is_dir():
            target = input_path_obj
        else:
            target = input_path_obj.parent

        result = cropper.export_to_path(region, images, target)
        if target.is_dir():
            target = target / result.archive.filename

        return _format_export_result(result, target)

    except InvalidRegionError as e:
        logger.error(MessageFormatter.operation_failed("区域校验", input_path, e))
        return MCPResponseBuilder.validation_error(e.message, "region")
    except CropError as e:
        logger.error(MessageFormatter.operation_failed("批量裁剪", input_path, e))
        return MCPResponseBuilder.processing_error(e.message, "批量裁剪")
    except OSError as e:
        logger.error(MessageFormatter.operation_failed("读取图片", input_path, e))
        return MCPResponseBuilder.file_error(str(e), input_path)


def _format_export_result(result: ExportResult, archive_path: Path) -> dict[str, Any]:
    """格式化导出结果为MCP响应格式"""
    return {
        "success": True,
        "archive_path": str(archive_path),
        "archive_size": result.archive.size,
        "archive_size_human": result.archive.get_size_human(),
        "entries": result.archive.entries,
        "total_files": result.total,
        "successful_files": result.success_count,
        "failed_files": result.failure_count,
        "all_failed": result.all_failed,
        "summary": result.get_summary(),
        "failures": [failure.model_dump(mode="json") for failure in result.failures],
    }


# ============================================================================
# 智能区域建议工具
# ============================================================================


def suggest_crop_region(input_path: str) -> MCPSuggestionResponse:
    """为单张图片建议裁剪区域。

    配置了 GEMINI_API_KEY 时使用 Gemini 主体检测，否则或失败时返回默认的居中 80% 区域。
    返回的区域可直接传给 crop_batch。

    Args:
        input_path: 输入图像文件路径

    Returns:
        dict: 区域百分比坐标，以及是否来自智能建议
    """
    try:
        input_path_obj = Path(input_path)
        if not input_path_obj.is_file():
            return MCPResponseBuilder.file_error(
                MessageFormatter.file_not_found(input_path), input_path
            )

        image = load_source_image(input_path_obj)
        region, suggested = BulkCropper.suggest_region(image, _default_suggester())

        return {
            "success": True,
            "region": region.as_dict(),
            "suggested": suggested,
        }

    except OSError as e:
        logger.error(MessageFormatter.operation_failed("获取区域建议", input_path, e))
        return MCPResponseBuilder.file_error(str(e), input_path)


# 工具注册
mcp.tool(crop_batch)
mcp.tool(suggest_crop_region)


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    configure_logging()
    logger.info("启动批量裁剪 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
