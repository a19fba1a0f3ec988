"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CropDefaults:
    """裁剪相关的默认配置"""

    # 非直通格式统一转为 JPEG，固定质量（对应原产品画布导出质量 0.9）
    JPEG_QUALITY: int = 90
    PNG_COMPRESS_LEVEL: int = 6

    # 保持原格式输出的无损格式白名单
    PASSTHROUGH_FORMATS: frozenset[str] = field(
        default_factory=lambda: frozenset({"PNG"})
    )
    FALLBACK_FORMAT: str = "JPEG"

    # 输出文件名后缀
    OUTPUT_SUFFIX: str = "_cropped"

    # 是否按 EXIF 方向信息旋正像素
    APPLY_EXIF_ORIENTATION: bool = True

    # 并发设置
    MAX_WORKERS: int = 4

    # 默认裁剪区域（居中 80%）
    DEFAULT_REGION: tuple[float, float, float, float] = (10.0, 10.0, 80.0, 80.0)

    def get_save_parameters(self, format_name: str) -> dict[str, object]:
        """获取格式特定的保存参数"""
        defaults: dict[str, dict[str, object]] = {
            "JPEG": {
                "quality": self.JPEG_QUALITY,
                "optimize": True,
            },
            "PNG": {
                "compress_level": self.PNG_COMPRESS_LEVEL,
                "optimize": True,
            },
        }
        return dict(defaults.get(format_name, {}))


@dataclass(frozen=True)
class ArchiveDefaults:
    """归档相关的默认配置"""

    FOLDER_NAME: str = "cropped_images"
    ARCHIVE_NAME: str = "bulk_cropped_images.zip"
    COMPRESS_LEVEL: int = 6


@dataclass(frozen=True)
class SuggestionDefaults:
    """智能裁剪建议相关的默认配置"""

    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-2.5-flash"


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "py_bulk_crop.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.crop = CropDefaults()
        self.archive = ArchiveDefaults()
        self.suggestion = SuggestionDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 裁剪配置
        if jpeg_quality := os.getenv("BULKCROP_JPEG_QUALITY"):
            object.__setattr__(self.crop, "JPEG_QUALITY", int(jpeg_quality))

        if max_workers := os.getenv("BULKCROP_MAX_WORKERS"):
            object.__setattr__(self.crop, "MAX_WORKERS", int(max_workers))

        # 归档配置
        if folder_name := os.getenv("BULKCROP_ARCHIVE_FOLDER"):
            object.__setattr__(self.archive, "FOLDER_NAME", folder_name)

        if archive_name := os.getenv("BULKCROP_ARCHIVE_NAME"):
            object.__setattr__(self.archive, "ARCHIVE_NAME", archive_name)

        # 智能建议配置
        if api_key := os.getenv("GEMINI_API_KEY"):
            object.__setattr__(self.suggestion, "GEMINI_API_KEY", api_key)

        if model := os.getenv("BULKCROP_GEMINI_MODEL"):
            object.__setattr__(self.suggestion, "GEMINI_MODEL", model)

        # 日志配置
        if log_level := os.getenv("BULKCROP_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("BULKCROP_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging,
                "ENABLE_FILE_LOGGING",
                enable_file_log.lower() in ("true", "1", "yes"),
            )

    @staticmethod
    def get_executor_type(item_count: int, avg_size: float) -> str:
        """根据任务数量和平均图片体积选择执行器类型"""
        # 大图或大批量任务解码开销高，使用进程池
        if avg_size > 5 * 1024 * 1024 or item_count > 20:
            return "process"
        return "thread"


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
