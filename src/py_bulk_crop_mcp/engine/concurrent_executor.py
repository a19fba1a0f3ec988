"""并发执行器模块。

提供有界并发的任务执行功能：结果按输入顺序归位，进度只在收集线程中串行发出。
"""

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import (
    FIRST_COMPLETED,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from typing import Protocol

from ..config import get_config
from ..exceptions import BatchCancelledError, ErrorHandler
from ..models.crop_result import BatchProgress, CropFailure, CropSuccess
from ..utils.message_formatter import MessageFormatter


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
TaskResult = CropSuccess | CropFailure


class IndexedTask(Protocol):
    """可并发执行的任务，需携带批次位置与源图片信息"""

    index: int

    @property
    def source_id(self) -> str: ...

    @property
    def source_name(self) -> str: ...

    @property
    def payload_size(self) -> int: ...


class ProgressTracker:
    """批次进度计数器，保证 completed 严格递增且恰好发出 total 次"""

    def __init__(self, total: int, on_progress: ProgressCallback | None = None):
        self.total = total
        self.completed = 0
        self.on_progress = on_progress

    @property
    def snapshot(self) -> BatchProgress:
        return BatchProgress(completed=self.completed, total=self.total)

    def advance(self) -> None:
        self.completed += 1
        logger.debug(MessageFormatter.progress(self.completed, self.total))
        if self.on_progress is not None:
            self.on_progress(self.completed, self.total)


class ConcurrentExecutor:
    """通用并发执行器

    同时在途的任务数不超过 max_workers，取消时停止提交新任务并丢弃在途结果。
    """

    def __init__(self, max_workers: int = 4, force_executor_type: str | None = None):
        """初始化并发执行器

        Args:
            max_workers: 最大并发数，1 表示在调用线程中顺序执行
            force_executor_type: 强制指定执行器类型 ('thread'/'process'/None为自动选择)
        """
        if max_workers <= 0:
            raise ValueError("max_workers 必须大于 0")
        if force_executor_type not in (None, "thread", "process"):
            raise ValueError("force_executor_type 必须是 'thread', 'process' 或 None")

        self.max_workers = max_workers
        self.force_executor_type = force_executor_type

    def execute_tasks(
        self,
        tasks: Sequence[IndexedTask],
        task_function: Callable[[IndexedTask], TaskResult],
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[TaskResult]:
        """执行任务并按输入顺序返回结果

        Args:
            tasks: 任务列表，task.index 必须为 0..len-1
            task_function: 要执行的任务函数（进程池模式下需可序列化）
            on_progress: 进度回调 (completed, total)
            cancel_event: 取消信号

        Returns:
            list: 与输入同序的任务结果

        Raises:
            BatchCancelledError: 批次被取消
        """
        if not tasks:
            return []

        results: list[TaskResult | None] = [None] * len(tasks)
        tracker = ProgressTracker(len(tasks), on_progress)

        if self.max_workers == 1 or len(tasks) == 1:
            self._execute_inline(tasks, task_function, results, tracker, cancel_event)
        else:
            executor_class = self._choose_executor(tasks)
            with executor_class(max_workers=self.max_workers) as executor:
                self._execute_bounded(
                    executor, tasks, task_function, results, tracker, cancel_event
                )

        return [result for result in results if result is not None]

    def _execute_inline(
        self,
        tasks: Sequence[IndexedTask],
        task_function: Callable[[IndexedTask], TaskResult],
        results: list[TaskResult | None],
        tracker: ProgressTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """在调用线程中顺序执行"""
        for task in tasks:
            self._check_cancelled(cancel_event, tracker)
            try:
                results[task.index] = task_function(task)
            except Exception as e:
                results[task.index] = self._error_result(e, task, "任务执行")
            tracker.advance()

    def _execute_bounded(
        self,
        executor: Executor,
        tasks: Sequence[IndexedTask],
        task_function: Callable[[IndexedTask], TaskResult],
        results: list[TaskResult | None],
        tracker: ProgressTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """有界窗口提交，完成一个补充一个"""
        pending: Iterator[IndexedTask] = iter(tasks)
        in_flight: dict[Future[TaskResult], IndexedTask] = {}

        # 提交任务阶段
        self._fill_window(executor, pending, in_flight, task_function, results, tracker)

        # 收集结果阶段
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for future in sorted(done, key=lambda f: in_flight[f].index):
                task = in_flight.pop(future)
                results[task.index] = self._collect_result(future, task)
                tracker.advance()

            # 退出 with 块时执行器会等待在途任务结束，其结果被丢弃
            self._check_cancelled(cancel_event, tracker)
            self._fill_window(
                executor, pending, in_flight, task_function, results, tracker
            )

    def _fill_window(
        self,
        executor: Executor,
        pending: Iterator[IndexedTask],
        in_flight: dict[Future[TaskResult], IndexedTask],
        task_function: Callable[[IndexedTask], TaskResult],
        results: list[TaskResult | None],
        tracker: ProgressTracker,
    ) -> None:
        """提交任务直到在途数量达到 max_workers"""
        while len(in_flight) < self.max_workers:
            task = next(pending, None)
            if task is None:
                return
            try:
                in_flight[executor.submit(task_function, task)] = task
            except Exception as e:
                results[task.index] = self._error_result(e, task, "任务提交")
                tracker.advance()

    def _collect_result(
        self, future: Future[TaskResult], task: IndexedTask
    ) -> TaskResult:
        """收集单个任务的执行结果"""
        try:
            result = future.result()
        except Exception as e:
            return self._error_result(e, task, "并发任务处理")

        logger.debug(result.get_summary())
        return result

    @staticmethod
    def _error_result(error: Exception, task: IndexedTask, operation: str) -> CropFailure:
        return ErrorHandler.to_failure(
            error, task.index, task.source_id, task.source_name, operation
        )

    @staticmethod
    def _check_cancelled(
        cancel_event: threading.Event | None, tracker: ProgressTracker
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(
                f"批次已取消: 进度 {tracker.snapshot.fraction:.0%}，丢弃全部结果"
            )
            raise BatchCancelledError(
                f"批次在完成 {tracker.completed}/{tracker.total} 后被取消"
            )

    def _choose_executor(self, tasks: Sequence[IndexedTask]) -> type[Executor]:
        """根据任务特征选择合适的执行器

        Args:
            tasks: 任务列表

        Returns:
            执行器类 (ThreadPoolExecutor 或 ProcessPoolExecutor)
        """
        # 如果用户强制指定了执行器类型
        if self.force_executor_type == "thread":
            return ThreadPoolExecutor
        if self.force_executor_type == "process":
            return ProcessPoolExecutor

        task_count = len(tasks)
        avg_size = sum(task.payload_size for task in tasks) / task_count

        executor_type = get_config().get_executor_type(task_count, avg_size)
        logger.debug(
            f"使用{executor_type}执行器: 任务数={task_count}, "
            f"平均大小={avg_size / 1024 / 1024:.1f}MB"
        )
        if executor_type == "process":
            return ProcessPoolExecutor
        return ThreadPoolExecutor
