"""邮件应用服务"""

from application.mail.services.mail_polling_service import MailPollingService
from application.mail.services.email_fetch_service import EmailFetchService, FetchResult
from application.mail.services.mailbox_controller import MailboxController
from application.mail.services.controller_options_builder import ControllerOptionsBuilder
from application.mail.services.mailbox_manager import MailboxManager

__all__ = [
    "MailPollingService",
    "EmailFetchService",
    "FetchResult",
    "MailboxController",
    "ControllerOptionsBuilder",
    "MailboxManager",
]
