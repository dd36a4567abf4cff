"""邮件轮询服务接口"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional


class MailPollingService(ABC):
    """
    邮件轮询服务接口

    定义单个邮箱轮询调度器的契约，负责：
    - 首次延迟后立即检查一次
    - 按固定间隔周期性检查
    - 单次检查超时处理，单次失败不影响后续检查
    - 启动和停止
    """

    DEFAULT_INTERVAL: float = 15 * 60.0  # 默认检查间隔（秒）

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """
        检查轮询服务是否正在运行

        Returns:
            True 如果服务正在运行，False 如果已停止
        """
        raise NotImplementedError

    @abstractmethod
    def start(self, interval: float = 0) -> Optional["asyncio.Task[None]"]:
        """
        启动轮询服务

        如果服务已在运行，则不会重复启动。

        Args:
            interval: 配置中没有间隔时使用的默认检查间隔（秒）

        Returns:
            轮询任务；已在运行时返回 None
        """
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        """
        停止轮询服务

        取消轮询任务并等待其结束，之后可以重新启动。
        """
        raise NotImplementedError

    @abstractmethod
    async def check_emails(self) -> None:
        """立即检查一次新邮件"""
        raise NotImplementedError
