"""邮件值对象模块"""

from domain.mail.value_objects.address import Address
from domain.mail.value_objects.message_summary import (
    MailboxInfo,
    MailboxStatus,
    MessageSummary,
)

__all__ = ["Address", "MailboxInfo", "MailboxStatus", "MessageSummary"]
