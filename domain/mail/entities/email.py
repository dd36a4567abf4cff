"""邮件实体"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from domain.mail.services.mailbox_client import MailboxSession
from domain.mail.value_objects.address import Address
from domain.mail.value_objects.message_summary import MessageSummary


@dataclass(eq=False)
class Email:
    """
    邮件实体

    表示从远程邮箱收取的一封邮件。收取后除已读状态和所在邮箱外不再变化，
    这两个字段只能通过 set_read() 和 move() 经由所属会话修改。

    Attributes:
        uid: 邮件在所在邮箱内的唯一数字标识
        froms: From 地址列表
        senders: Sender 地址列表
        subject: 邮件主题
        sent_date: 邮件发送时间
        received_date: 邮件服务器接收时间
    """

    uid: int
    froms: List[Address] = field(default_factory=list)
    senders: List[Address] = field(default_factory=list)
    subject: str = ""
    sent_date: Optional[datetime] = None
    received_date: Optional[datetime] = None
    read: bool = field(default=False, repr=False)
    current_mailbox: str = field(default="", repr=False)
    session: Optional[MailboxSession] = field(default=None, repr=False)

    @classmethod
    def from_summary(
        cls,
        summary: MessageSummary,
        mailbox: str,
        session: Optional[MailboxSession] = None,
    ) -> "Email":
        """
        工厂方法：由邮件摘要创建邮件实体

        Args:
            summary: 远程邮箱返回的邮件摘要
            mailbox: 邮件所在的邮箱
            session: 用于修改邮件状态的会话

        Returns:
            Email 实例
        """
        return cls(
            uid=summary.uid,
            froms=list(summary.froms),
            senders=list(summary.senders),
            subject=summary.subject,
            sent_date=summary.sent_date,
            received_date=summary.received_date,
            read=summary.is_seen,
            current_mailbox=mailbox,
            session=session,
        )

    @property
    def is_read(self) -> bool:
        """邮件是否已读"""
        return self.read

    @property
    def mailbox(self) -> str:
        """邮件当前所在的邮箱"""
        return self.current_mailbox

    @property
    def sender(self) -> str:
        """第一个发件人的地址，没有 Sender 时使用 From"""
        if self.senders:
            return self.senders[0].addr
        if self.froms:
            return self.froms[0].addr
        return ""

    @property
    def date(self) -> Optional[datetime]:
        """邮件日期，优先使用发送时间"""
        if self.sent_date is not None:
            return self.sent_date
        return self.received_date

    def set_read(self) -> None:
        """
        将邮件标记为已读

        Raises:
            MailboxOperationError: 远程操作失败
        """
        if self.read:
            return

        self._require_session().mark_read(self.uid)
        self.read = True

    def move(self, mailbox: str) -> None:
        """
        将邮件移动到指定邮箱

        移动后 uid 只在原邮箱中有意义。

        Raises:
            MailboxOperationError: 远程操作失败
        """
        if self.current_mailbox == mailbox:
            return

        self._require_session().move(self.uid, mailbox)
        self.current_mailbox = mailbox

    def _require_session(self) -> MailboxSession:
        if self.session is None:
            raise RuntimeError(f"Email {self.uid} is not bound to a mailbox session")
        return self.session

    def to_dict(self) -> Dict[str, Any]:
        """转换为 JSON 可序列化字典"""
        date = self.date
        return {
            "uid": self.uid,
            "froms": [a.full_address for a in self.froms],
            "senders": [a.full_address for a in self.senders],
            "subject": self.subject,
            "is_read": self.is_read,
            "mailbox": self.mailbox,
            "date": date.isoformat() if date else None,
        }
