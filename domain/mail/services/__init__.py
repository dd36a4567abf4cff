"""邮件领域服务模块"""

from domain.mail.services.mailbox_client import (
    INBOX,
    MailboxClient,
    MailboxConnectionError,
    MailboxFetchError,
    MailboxOperationError,
    MailboxSession,
)

__all__ = [
    "INBOX",
    "MailboxClient",
    "MailboxConnectionError",
    "MailboxFetchError",
    "MailboxOperationError",
    "MailboxSession",
]
