"""远程邮箱返回的原始数据值对象"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import InvalidValueObjectException
from domain.mail.value_objects.address import Address

SEEN_FLAG = "\\Seen"


@dataclass(frozen=True)
class MessageSummary(BaseValueObject):
    """
    邮件摘要值对象

    表示一次批量收取中流式返回的单封邮件摘要（信封 + 标志），
    不包含邮件正文。

    Attributes:
        uid: 邮件在邮箱内的唯一数字标识
        flags: 邮件标志，如 ``\\Seen``
        subject: 邮件主题
        froms: From 地址列表
        senders: Sender 地址列表
        sent_date: 邮件发送时间（Date 头）
        received_date: 邮件服务器接收时间（INTERNALDATE）
    """

    uid: int
    flags: Tuple[str, ...] = ()
    subject: str = ""
    froms: Tuple[Address, ...] = ()
    senders: Tuple[Address, ...] = ()
    sent_date: Optional[datetime] = None
    received_date: Optional[datetime] = None

    def validate(self) -> None:
        if self.uid <= 0:
            raise InvalidValueObjectException(
                value_object_type="MessageSummary",
                value=self.uid,
                reason="UID must be a positive integer",
            )

    @property
    def is_seen(self) -> bool:
        """邮件是否已读"""
        return SEEN_FLAG in self.flags


@dataclass(frozen=True)
class MailboxStatus(BaseValueObject):
    """
    选中邮箱后的状态

    Attributes:
        name: 邮箱名称
        messages: 邮箱中当前的邮件数量
    """

    name: str
    messages: int = 0


@dataclass(frozen=True)
class MailboxInfo(BaseValueObject):
    """
    邮箱（文件夹）信息

    Attributes:
        name: 邮箱名称
        has_children: 是否包含子邮箱
    """

    name: str
    has_children: bool = False
