"""邮箱连接配置值对象"""

from dataclasses import dataclass

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import ConfigurationException, InvalidValueObjectException

DEFAULT_MAX_MESSAGES = 100


@dataclass(frozen=True)
class MailboxConfig(BaseValueObject):
    """
    邮箱连接配置值对象

    封装连接远程邮箱所需的配置信息。address、username、password
    在控制器运行前必须全部非空，由 ensure_complete() 检查。

    Attributes:
        address: 邮件服务器地址（host 或 host:port）
        username: 登录用户名
        password: 登录密码
        use_tls: 是否使用 TLS，默认 True
        skip_tls_verify: 是否跳过证书校验，默认 False
        max_messages: 每次轮询最多收取的邮件数，非正数时使用 100
    """

    address: str = ""
    username: str = ""
    password: str = ""
    use_tls: bool = True
    skip_tls_verify: bool = False
    max_messages: int = DEFAULT_MAX_MESSAGES

    def validate(self) -> None:
        """规范化 max_messages"""
        if not isinstance(self.max_messages, int) or isinstance(self.max_messages, bool):
            raise InvalidValueObjectException(
                value_object_type="MailboxConfig",
                value=self.max_messages,
                reason="max_messages must be an integer",
            )
        if self.max_messages <= 0:
            object.__setattr__(self, "max_messages", DEFAULT_MAX_MESSAGES)

    def ensure_complete(self) -> None:
        """
        检查必需的连接凭证

        Raises:
            ConfigurationException: address、username 或 password 为空
        """
        missing = [
            name
            for name in ("address", "username", "password")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationException(
                f"Mailbox is not configured: missing {', '.join(missing)}"
            )

    def __repr__(self) -> str:
        return (
            f"MailboxConfig(address={self.address!r}, username={self.username!r}, "
            f"use_tls={self.use_tls}, max_messages={self.max_messages})"
        )
