"""控制器配置值对象"""

from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from domain.mail.services.email_handler import EmailHandler
from domain.mailbox.value_objects.mailbox_config import MailboxConfig
from domain.notice.services.notifier import Notifier

DEFAULT_INTERVAL = 15 * 60.0


@dataclass(frozen=True)
class ControllerConfig:
    """
    控制器配置快照

    不可变，重新配置时整体替换。零值字段（非正的时长、空的处理器/通知器列表、
    None 的邮箱配置）在合并时表示"未设置"。

    Attributes:
        mailbox: 邮箱连接配置
        handlers: 邮件处理器链
        notifiers: 通知器链
        delay: 首次检查前的延迟（秒）
        timeout: 单次检查的超时（秒）
        interval: 检查间隔（秒）
    """

    mailbox: Optional[MailboxConfig] = None
    handlers: Tuple[EmailHandler, ...] = ()
    notifiers: Tuple[Notifier, ...] = ()
    delay: float = 0.0
    timeout: float = 0.0
    interval: float = 0.0

    @classmethod
    def overlay(cls, *options: "Option") -> "ControllerConfig":
        """在全新的零值配置上应用选项"""
        config = cls()
        for option in options:
            config = option(config)
        return config

    def merge(self, other: "ControllerConfig") -> "ControllerConfig":
        """
        将 other 中已设置的字段覆盖到当前配置上，返回新配置

        other 中的零值字段不会覆盖当前配置。
        """
        changes = {}
        for name in ("delay", "timeout", "interval"):
            value = getattr(other, name)
            if value > 0:
                changes[name] = value
        if other.mailbox is not None:
            changes["mailbox"] = other.mailbox
        if other.handlers:
            changes["handlers"] = other.handlers
        if other.notifiers:
            changes["notifiers"] = other.notifiers
        return replace(self, **changes)

    def validated(self) -> "ControllerConfig":
        """
        验证配置

        Raises:
            ConfigurationException: 邮箱未配置或凭证不完整
        """
        (self.mailbox or MailboxConfig()).ensure_complete()
        return self

    def reconfigure(self, *options: "Option") -> "ControllerConfig":
        """
        合并选项并验证，返回新配置；当前配置保持不变

        Raises:
            ConfigurationException: 合并后的配置无效
        """
        return self.merge(self.overlay(*options)).validated()

    def effective_interval(self, default: float = 0) -> float:
        """实际检查间隔：配置值，其次是调用方默认值，最后是 15 分钟"""
        if self.interval > 0:
            return self.interval
        if default > 0:
            return default
        return DEFAULT_INTERVAL


Option = Callable[[ControllerConfig], ControllerConfig]


def mailbox_option(
    address: str,
    username: str,
    password: str,
    use_tls: bool = True,
    skip_tls_verify: bool = False,
    max_messages: int = 0,
) -> Option:
    """邮箱连接选项，max_messages 非正时使用默认值 100"""
    mailbox = MailboxConfig(
        address=address,
        username=username,
        password=password,
        use_tls=use_tls,
        skip_tls_verify=skip_tls_verify,
        max_messages=max_messages,
    )
    return lambda c: replace(c, mailbox=mailbox)


def mailbox_config_option(mailbox: MailboxConfig) -> Option:
    return lambda c: replace(c, mailbox=mailbox)


def handlers_option(*handlers: EmailHandler) -> Option:
    """邮件处理器选项，替换整个处理器链"""
    captured = tuple(handlers)
    return lambda c: replace(c, handlers=captured)


def notifiers_option(*notifiers: Notifier) -> Option:
    """
    通知器选项，替换整个通知器链

    通知器按顺序尝试，直到一个发送成功。
    """
    captured = tuple(notifiers)
    return lambda c: replace(c, notifiers=captured)


def delay_option(delay: float) -> Option:
    return lambda c: replace(c, delay=delay)


def timeout_option(timeout: float) -> Option:
    return lambda c: replace(c, timeout=timeout)


def interval_option(interval: float) -> Option:
    return lambda c: replace(c, interval=interval)
