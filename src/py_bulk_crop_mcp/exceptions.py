"""批量裁剪异常处理模块。

定义统一的异常类和错误处理机制，包含现代化的异常处理装饰器。
单张图片的错误在批处理层被转换为 CropFailure 数据，只有批次级错误向上抛出。
"""

from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .models.crop_result import CropFailure, FailureReason
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class CropError(Exception):
    """裁剪相关错误基类"""

    def __init__(self, message: str, source_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.source_id = source_id


class InvalidRegionError(CropError):
    """裁剪区域不合法 - 批次级错误，处理任何图片之前抛出"""

    pass


class ArchiveFinalizeError(CropError):
    """归档写入失败 - 批次级错误，所有条目尝试完成后抛出"""

    pass


class BatchCancelledError(CropError):
    """调用方取消了批次"""

    pass


class SuggestionError(CropError):
    """智能裁剪建议失败，不会阻塞导出"""

    pass


class RasterError(CropError):
    """单张图片栅格化错误基类"""

    reason: FailureReason = FailureReason.PROCESSING_ERROR


class DimensionUnknownError(RasterError):
    """源图片像素尺寸未知"""

    reason = FailureReason.DIMENSION_UNKNOWN


class DecodeFailureError(RasterError):
    """源图片解码失败"""

    reason = FailureReason.DECODE_FAILURE


class DegenerateRegionError(RasterError):
    """区域取整后宽或高为 0"""

    reason = FailureReason.DEGENERATE_REGION


class EncodeFailureError(RasterError):
    """裁剪结果编码失败"""

    reason = FailureReason.ENCODE_FAILURE


# 现代化异常处理装饰器
def handle_image_errors(
    error_class: type[RasterError], operation_name: str = "图像处理"
):
    """统一的图像处理异常处理装饰器

    把 Pillow 抛出的各类异常映射为指定阶段的 RasterError。
    被装饰函数的第一个参数必须是源图片标识。

    Args:
        error_class: 该阶段对应的 RasterError 子类
        operation_name: 操作名称，用于日志记录
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(source_id: str, *args, **kwargs) -> T:
            try:
                return func(source_id, *args, **kwargs)
            except RasterError:
                raise
            except UnidentifiedImageError as e:
                logger.debug(f"{operation_name} - 无法识别图像格式: {e}")
                raise error_class(f"无法识别的图像格式: {e}", source_id) from e
            except DecompressionBombError as e:
                logger.debug(f"{operation_name} - 图像过大: {e}")
                raise error_class(
                    f"图像尺寸过大，可能存在安全风险: {e}", source_id
                ) from e
            except OSError as e:
                logger.debug(f"{operation_name} - 数据读写失败: {e}")
                raise error_class(f"{operation_name}失败: {e}", source_id) from e
            except (ValueError, TypeError, KeyError) as e:
                logger.debug(f"{operation_name} - 参数错误: {e}")
                raise error_class(f"{operation_name}参数错误: {e}", source_id) from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    提供标准化的错误处理和日志记录功能。
    """

    @staticmethod
    def _log_error(
        operation: str, target: str, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称（如"图片裁剪"、"归档写入"等）
            target: 相关条目（文件名或标识）
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, target, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def to_failure(
        error: Exception,
        index: int,
        source_id: str,
        source_name: str,
        operation: str = "图片裁剪",
    ) -> CropFailure:
        """把单张图片的异常转换为 CropFailure，支持 match-case 错误分发"""
        match error:
            case RasterError() as re:
                ErrorHandler._log_error(operation, source_name, re, "warning")
                reason = re.reason
                message = re.message
            case _:
                ErrorHandler._log_error(
                    f"{operation} - 意外错误", source_name, error, "error"
                )
                reason = FailureReason.PROCESSING_ERROR
                message = f"{operation}: {error}"

        return CropFailure(
            index=index,
            source_id=source_id,
            source_name=source_name,
            reason=reason,
            error=message,
        )
