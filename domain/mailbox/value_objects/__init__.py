"""邮箱值对象模块"""

from domain.mailbox.value_objects.mailbox_config import MailboxConfig, DEFAULT_MAX_MESSAGES
from domain.mailbox.value_objects.controller_definition import (
    BuilderDefinition,
    ControllerDefinition,
)

__all__ = [
    "MailboxConfig",
    "DEFAULT_MAX_MESSAGES",
    "BuilderDefinition",
    "ControllerDefinition",
]
