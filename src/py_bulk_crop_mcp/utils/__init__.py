"""工具模块包。

提供纯工具函数，不包含业务逻辑。
"""

# 从文件助手模块导入
from .file_helpers import (
    find_image_files,
    load_source_image,
    read_image_header,
)

# 从日志工具模块导入
from .logging_helpers import configure_logging, get_logger

# 从消息格式化模块导入
from .message_formatter import (
    MessageFormatter,
    format_validation_error,
)

# 从命名助手模块导入
from .naming_helpers import (
    FileNamingStrategy,
    UniqueNameRegistry,
)


__all__ = [
    "FileNamingStrategy",
    "MessageFormatter",
    "UniqueNameRegistry",
    "configure_logging",
    "find_image_files",
    "format_validation_error",
    "get_logger",
    "load_source_image",
    "read_image_header",
]
