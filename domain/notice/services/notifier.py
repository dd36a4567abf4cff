"""
通知器链

一次检查周期内通过处理器链的全部邮件作为一个批次，按注册顺序
依次尝试通知器，第一个成功的通知器之后不再尝试其它通知器。
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Sequence

from domain.mail.entities.email import Email


class NotificationDeliveryError(Exception):
    """通知发送失败"""

    def __init__(self, notifier: str, message: str):
        self.notifier = notifier
        super().__init__(f"{notifier}: {message}")


class Notifier(ABC):
    """通知器接口"""

    @property
    @abstractmethod
    def description(self) -> str:
        """通知器描述，用于日志"""
        raise NotImplementedError

    @abstractmethod
    async def notify(self, emails: Sequence[Email]) -> None:
        """
        发送一批邮件的通知

        Raises:
            NotificationDeliveryError: 发送失败
        """
        raise NotImplementedError

    def __str__(self) -> str:
        return self.description


class FunctionNotifier(Notifier):
    """将异步函数包装为通知器"""

    def __init__(
        self,
        description: str,
        send: Callable[[Sequence[Email]], Awaitable[None]],
    ):
        self._description = description
        self._send = send

    @property
    def description(self) -> str:
        return self._description

    async def notify(self, emails: Sequence[Email]) -> None:
        await self._send(emails)


async def dispatch_notification(
    notifiers: Sequence[Notifier],
    emails: Sequence[Email],
    logger: Optional[logging.Logger] = None,
    account: str = "",
) -> Optional[Notifier]:
    """
    按顺序尝试通知器，直到一个成功

    Args:
        notifiers: 通知器列表
        emails: 邮件批次
        logger: 日志记录器
        account: 邮箱账号，仅用于日志

    Returns:
        成功发送的通知器；全部失败或没有通知器时返回 None
    """
    logger = logger or logging.getLogger(__name__)

    for notifier in notifiers:
        try:
            await notifier.notify(emails)
        except Exception as e:
            logger.error(
                f"Failed to send notice: email={account}, notifier={notifier}: {e}"
            )
            continue

        logger.info(
            f"Sent new email notice: email={account}, notifier={notifier}, "
            f"count={len(emails)}"
        )
        return notifier

    logger.error(
        f"No notifier delivered {len(emails)} email(s) for {account}, "
        f"tried {len(notifiers)} notifier(s)"
    )
    return None
