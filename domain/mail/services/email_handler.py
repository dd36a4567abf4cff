"""
邮件处理器链

处理器按注册顺序依次处理每封邮件：
- 返回 True 表示继续交给后续处理器，最终进入通知批次
- 返回 False 表示拦截，后续处理器不再执行，邮件不会被通知
- 抛出异常只记录日志，视为 True 继续执行后续处理器
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from domain.common.exceptions import ConfigurationException
from domain.mail.entities.email import Email

EmailMatcher = Callable[[str, str], bool]


@dataclass(frozen=True)
class MatchPattern:
    """
    发件人/主题匹配规则

    Attributes:
        sender: 发件人地址正则，为空表示不限制
        subject: 主题正则，为空表示不限制
    """

    sender: str = ""
    subject: str = ""


def build_email_matcher(sender_pattern: str = "", subject_pattern: str = "") -> EmailMatcher:
    """
    构建发件人/主题匹配函数

    两个正则都给出时必须同时匹配（re.search 语义）。

    Raises:
        ConfigurationException: 正则无效
    """
    sender_re = _compile(sender_pattern, "sender")
    subject_re = _compile(subject_pattern, "subject")

    def match(sender: str, subject: str) -> bool:
        return (sender_re is None or sender_re.search(sender) is not None) and (
            subject_re is None or subject_re.search(subject) is not None
        )

    return match


def build_or_matcher(patterns: Sequence[MatchPattern]) -> EmailMatcher:
    """
    构建多条规则取或的匹配函数

    Raises:
        ConfigurationException: 没有任何规则或正则无效
    """
    if not patterns:
        raise ConfigurationException("Missing the email matcher")

    matchers = [build_email_matcher(p.sender, p.subject) for p in patterns]

    def match(sender: str, subject: str) -> bool:
        return any(m(sender, subject) for m in matchers)

    return match


def _compile(pattern: str, name: str) -> Optional["re.Pattern[str]"]:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigurationException(f"Invalid {name} pattern {pattern!r}: {e}") from e


class EmailHandler(ABC):
    """邮件处理器接口"""

    @property
    @abstractmethod
    def type(self) -> str:
        """处理器类型名称"""
        raise NotImplementedError

    @abstractmethod
    def handle(self, email: Email) -> bool:
        """
        处理一封邮件

        Args:
            email: 待处理的邮件，处理器可以修改其已读状态或所在邮箱

        Returns:
            True 表示继续交给后续处理器，False 表示拦截
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.type!r})"


class FunctionEmailHandler(EmailHandler):
    """将普通函数包装为处理器"""

    def __init__(self, handler_type: str, func: Callable[[Email], bool]):
        self._type = handler_type
        self._func = func

    @property
    def type(self) -> str:
        return self._type

    def handle(self, email: Email) -> bool:
        return self._func(email)


class SetReadHandler(EmailHandler):
    """将匹配的未读邮件标记为已读，总是继续"""

    TYPE = "set_read"

    def __init__(self, match: EmailMatcher, logger: Optional[logging.Logger] = None):
        self._match = match
        self._logger = logger or logging.getLogger(__name__)

    @property
    def type(self) -> str:
        return self.TYPE

    def handle(self, email: Email) -> bool:
        if not email.is_read and self._match(email.sender, email.subject):
            email.set_read()
            self._logger.info(
                f"Set email to read: mailbox={email.mailbox}, uid={email.uid}, "
                f"sender={email.sender}, subject={email.subject!r}, date={email.date}"
            )
        return True


class FilterReadHandler(EmailHandler):
    """拦截已读邮件"""

    TYPE = "filter_read"

    @property
    def type(self) -> str:
        return self.TYPE

    def handle(self, email: Email) -> bool:
        return not email.is_read


class MoveMailboxHandler(EmailHandler):
    """将匹配的邮件移动到指定邮箱，总是继续"""

    TYPE = "move_mailbox"

    def __init__(
        self,
        mailbox: str,
        match: EmailMatcher,
        logger: Optional[logging.Logger] = None,
    ):
        if not mailbox:
            raise ConfigurationException("Target mailbox of move_mailbox handler is empty")
        self._mailbox = mailbox
        self._match = match
        self._logger = logger or logging.getLogger(__name__)

    @property
    def type(self) -> str:
        return self.TYPE

    @property
    def target_mailbox(self) -> str:
        return self._mailbox

    def handle(self, email: Email) -> bool:
        if self._match(email.sender, email.subject):
            source = email.mailbox
            email.move(self._mailbox)
            self._logger.info(
                f"Move email: {source} -> {self._mailbox}, uid={email.uid}, "
                f"sender={email.sender}, subject={email.subject!r}, date={email.date}"
            )
        return True


class FilterNotifiedHandler(EmailHandler):
    """
    基于内存的去重处理器

    以 (uid, 日期) 为键，同一个键在进程生命周期内只放行一次。
    集合不会收缩，重启后丢失。
    """

    TYPE = "filter_notified"

    def __init__(self) -> None:
        self._seen: Set[Tuple[int, str]] = set()
        self._lock = threading.Lock()

    @property
    def type(self) -> str:
        return self.TYPE

    def handle(self, email: Email) -> bool:
        date = email.date
        key = (email.uid, date.isoformat() if date else "")
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
        return True

    def __len__(self) -> int:
        return len(self._seen)


def run_handler_chain(
    email: Email,
    handlers: Iterable[EmailHandler],
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    按顺序执行处理器链

    Returns:
        True 表示邮件通过了所有处理器
    """
    logger = logger or logging.getLogger(__name__)
    for handler in handlers:
        try:
            forward = handler.handle(email)
        except Exception as e:
            logger.error(
                f"Failed to handle email: handler={handler.type}, mailbox={email.mailbox}, "
                f"uid={email.uid}, sender={email.sender}, subject={email.subject!r}: {e}"
            )
            continue

        if not forward:
            if not email.is_read:
                logger.debug(
                    f"Ignore email: handler={handler.type}, mailbox={email.mailbox}, "
                    f"uid={email.uid}, sender={email.sender}, subject={email.subject!r}"
                )
            return False

    return True


def filter_emails(
    emails: Iterable[Email],
    handlers: Sequence[EmailHandler],
    logger: Optional[logging.Logger] = None,
) -> List[Email]:
    """返回通过处理器链的邮件，保持原有顺序"""
    return [email for email in emails if run_handler_chain(email, handlers, logger)]
