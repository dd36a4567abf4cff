"""单邮箱控制器 - 控制新邮件的检查与通知"""

import asyncio
import logging
import threading
from typing import Optional

from application.mail.services.email_fetch_service import EmailFetchService, FetchResult
from application.mail.services.mail_polling_service import MailPollingService
from domain.mail.services.mailbox_client import (
    INBOX,
    MailboxConnectionError,
    MailboxFetchError,
)
from domain.mailbox.value_objects.controller_config import ControllerConfig, Option
from domain.notice.services.notifier import dispatch_notification


class MailboxController(MailPollingService):
    """
    单邮箱控制器

    持有一个邮箱的配置（凭证、处理器链、通知器链、时间参数）
    和一个周期性检查任务：
    - 首次延迟（delay）后立即检查一次，之后按间隔（interval）周期检查
    - 单次检查受超时（timeout）限制，任何失败只记录日志，下个周期继续
    - 支持运行中重新配置，检查任务总是读到完整的配置快照

    配置是不可变的 ControllerConfig，重新配置时构造新快照后整体替换引用，
    读取方不持有锁。
    """

    def __init__(
        self,
        fetch_service: EmailFetchService,
        *options: Option,
        mailbox: str = INBOX,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化控制器

        Args:
            fetch_service: 邮件收取引擎
            *options: 配置选项
            mailbox: 检查的邮箱名称，默认 INBOX
            logger: 可选的日志记录器

        Raises:
            ConfigurationException: 配置无效
        """
        self._config = ControllerConfig().reconfigure(*options)
        self._fetch_service = fetch_service
        self._mailbox = mailbox
        self._logger = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def config(self) -> ControllerConfig:
        """当前生效的配置快照"""
        return self._config

    @property
    def address(self) -> str:
        """邮件服务器地址"""
        return self._config.mailbox.address

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def reconfigure(self, *options: Option) -> None:
        """
        重新配置控制器

        选项先作用于零值配置，再将已设置的字段合并到当前快照上，
        验证通过后才发布新快照；验证失败时当前快照保持不变。

        Raises:
            ConfigurationException: 合并后的配置无效
        """
        with self._lock:
            self._config = self._config.reconfigure(*options)
        self._logger.info(f"Reconfigured the controller for {self.address}")

    def start(self, interval: float = 0) -> Optional["asyncio.Task[None]"]:
        if self.is_running:
            self._logger.warning(f"Controller for {self.address} has been started")
            return None

        self._task = asyncio.get_running_loop().create_task(
            self._run_until_stopped(interval),
            name=f"mailbox-controller:{self.address}",
        )
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait(self) -> None:
        """等待检查任务结束"""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def _run_until_stopped(self, interval: float) -> None:
        try:
            await self.run(interval)
        finally:
            self._logger.info(f"Controller for {self.address} has stopped")

    async def run(self, interval: float = 0) -> None:
        """
        运行检查循环，直到被取消

        Args:
            interval: 配置中没有间隔时使用的默认检查间隔（秒），
                仍未设置时使用 15 分钟
        """
        config = self._config
        if config.delay > 0:
            await asyncio.sleep(config.delay)

        await self.check_emails()

        period = self._config.effective_interval(interval)
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + period
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            await self.check_emails()

            # Ticks missed during a slow check are dropped.
            next_tick += period
            now = loop.time()
            if next_tick <= now:
                next_tick += ((now - next_tick) // period + 1) * period

    async def check_emails(self) -> None:
        """
        立即检查新邮件

        只要单轮收取报告还有更早的新邮件，就继续收取下一轮。
        """
        stop: Optional[int] = None
        while True:
            result = await self._check_emails_once(stop)
            if result is None or not result.more:
                return
            stop = result.next_stop

    async def _check_emails_once(self, stop: Optional[int]) -> Optional[FetchResult]:
        config = self._config
        mailbox = config.mailbox
        self._logger.info(f"Start to check the emails of {mailbox.username}")

        try:
            if config.timeout > 0:
                return await asyncio.wait_for(
                    self._fetch_and_notify(config, stop), timeout=config.timeout
                )
            return await self._fetch_and_notify(config, stop)

        except MailboxConnectionError as e:
            self._logger.error(
                f"Failed to connect the mailbox: addr={mailbox.address}, "
                f"email={mailbox.username}, mailbox={self._mailbox}: {e}"
            )
        except MailboxFetchError as e:
            self._logger.error(
                f"Failed to fetch emails: addr={mailbox.address}, "
                f"email={mailbox.username}, mailbox={self._mailbox}, "
                f"discarded={len(e.emails)}: {e}"
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Timeout checking the emails of {mailbox.username} "
                f"after {config.timeout}s"
            )
        except Exception:
            self._logger.exception(
                f"Unexpected error while checking the emails of {mailbox.username}"
            )
        finally:
            self._logger.info(f"End to check the emails of {mailbox.username}")

        return None

    async def _fetch_and_notify(
        self, config: ControllerConfig, stop: Optional[int]
    ) -> FetchResult:
        result = await self._fetch_service.fetch_emails(
            config.mailbox, config.handlers, self._mailbox, stop
        )
        if not result.emails:
            self._logger.debug("No emails to be sent")
            return result

        await dispatch_notification(
            config.notifiers,
            result.emails,
            self._logger,
            account=config.mailbox.username,
        )
        return result
