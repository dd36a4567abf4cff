"""远程邮箱客户端接口"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

from domain.mail.value_objects.message_summary import (
    MailboxInfo,
    MailboxStatus,
    MessageSummary,
)

if TYPE_CHECKING:
    from domain.mail.entities.email import Email

INBOX = "INBOX"


class MailboxSession(ABC):
    """
    远程邮箱会话接口

    表示一个已建立的邮件服务器连接。所有方法都是阻塞调用，
    调用方负责在线程池中执行。同一会话不会被并发使用。
    """

    @abstractmethod
    def login(self, username: str, password: str) -> None:
        """
        登录

        Raises:
            MailboxConnectionError: 认证失败
        """
        raise NotImplementedError

    @abstractmethod
    def select(self, mailbox: str) -> MailboxStatus:
        """
        选中邮箱

        Raises:
            MailboxConnectionError: 邮箱不存在或选中失败
        """
        raise NotImplementedError

    @abstractmethod
    def list_mailboxes(self, pattern: str = "*") -> List[MailboxInfo]:
        """列出匹配 pattern 的邮箱"""
        raise NotImplementedError

    @abstractmethod
    def fetch(
        self,
        start: int,
        stop: int,
        on_message: Callable[[MessageSummary], None],
    ) -> None:
        """
        批量收取序号区间 [start, stop] 内的邮件摘要

        每解析出一封邮件就调用一次 on_message，全部收取完成后返回。

        Raises:
            MailboxFetchError: 收取过程中失败
        """
        raise NotImplementedError

    @abstractmethod
    def mark_read(self, uid: int) -> None:
        """
        将邮件标记为已读

        Raises:
            MailboxOperationError: 操作失败
        """
        raise NotImplementedError

    @abstractmethod
    def move(self, uid: int, mailbox: str) -> None:
        """
        将邮件移动到其它邮箱

        Raises:
            MailboxOperationError: 操作失败
        """
        raise NotImplementedError

    @abstractmethod
    def logout(self) -> None:
        """正常登出并关闭连接"""
        raise NotImplementedError

    @abstractmethod
    def terminate(self) -> None:
        """立即关闭底层连接，不等待服务器响应"""
        raise NotImplementedError


class MailboxClient(ABC):
    """
    远程邮箱客户端接口

    负责建立到邮件服务器的连接，具体协议由基础设施层实现。
    """

    @abstractmethod
    def connect(
        self,
        address: str,
        use_tls: bool = True,
        skip_tls_verify: bool = False,
    ) -> MailboxSession:
        """
        连接邮件服务器

        Args:
            address: 服务器地址，``host`` 或 ``host:port``
            use_tls: 是否使用 TLS
            skip_tls_verify: 是否跳过证书校验

        Returns:
            未登录的会话

        Raises:
            MailboxConnectionError: 连接失败
        """
        raise NotImplementedError


class MailboxConnectionError(Exception):
    """连接、认证或选中邮箱失败"""

    def __init__(self, address: str, message: str):
        self.address = address
        super().__init__(f"Failed to connect to {address} - {message}")


class MailboxFetchError(Exception):
    """
    批量收取过程中失败

    Attributes:
        emails: 失败前已收取并经过处理器链过滤的邮件（尽力而为）
    """

    def __init__(self, message: str, emails: Optional[Sequence["Email"]] = None):
        self.emails: List["Email"] = list(emails or [])
        super().__init__(message)


class MailboxOperationError(Exception):
    """对单封邮件的操作（标记已读、移动）失败"""

    def __init__(self, operation: str, uid: int, message: str):
        self.operation = operation
        self.uid = uid
        super().__init__(f"Failed to {operation} email {uid} - {message}")
