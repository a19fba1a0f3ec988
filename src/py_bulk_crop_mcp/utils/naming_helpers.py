"""文件命名工具模块。

提供统一的输出文件命名策略和归档条目去重功能。
"""

import itertools
from pathlib import PurePosixPath


class FileNamingStrategy:
    """文件命名策略类"""

    @staticmethod
    def base_name(original_name: str, fallback: str) -> str:
        """提取不带扩展名的基础文件名

        去掉目录部分，防止条目名逃逸出归档目录；没有可用名称时使用 fallback。
        """
        name = PurePosixPath(original_name.replace("\\", "/")).name
        # ".hidden" 这类名称的 stem 仍是自身
        stem = PurePosixPath(name).stem if name not in ("", ".", "..") else ""
        return stem or fallback

    @staticmethod
    def generate_output_name(
        original_name: str,
        extension: str,
        suffix: str = "_cropped",
        fallback: str = "image",
    ) -> str:
        """生成输出文件名 <原名去扩展名><suffix><ext>

        Args:
            original_name: 原始文件名
            extension: 输出扩展名（如 ".jpg"）
            suffix: 文件名后缀
            fallback: 无法得到基础名时使用的名称

        Returns:
            str: 生成的文件名（不含路径）
        """
        if extension and not extension.startswith("."):
            extension = f".{extension}"
        base = FileNamingStrategy.base_name(original_name, fallback)
        return f"{base}{suffix}{extension.lower()}"


class UniqueNameRegistry:
    """归档条目名登记表

    同名（忽略大小写，避免在大小写不敏感的文件系统上解压时互相覆盖）时，
    后出现的条目追加其批次序号；序号形式仍冲突时再追加递增计数。
    """

    def __init__(self) -> None:
        self._taken: set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._taken

    def __len__(self) -> int:
        return len(self._taken)

    def claim(self, filename: str, sequence_number: int) -> str:
        """登记并返回唯一文件名

        Args:
            filename: 期望的文件名
            sequence_number: 条目在批次中的序号（从 1 开始）

        Returns:
            str: 实际使用的唯一文件名
        """
        if filename not in self:
            return self._take(filename)

        path = PurePosixPath(filename)
        stem, suffix = path.stem, path.suffix

        candidate = f"{stem}_{sequence_number}{suffix}"
        if candidate not in self:
            return self._take(candidate)

        for counter in itertools.count(1):
            candidate = f"{stem}_{sequence_number}_{counter}{suffix}"
            if candidate not in self:
                return self._take(candidate)

        return filename  # pragma: no cover

    def _take(self, name: str) -> str:
        self._taken.add(name.casefold())
        return name
