"""控制器定义值对象"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Tuple

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import InvalidValueObjectException
from domain.mailbox.value_objects.mailbox_config import MailboxConfig


@dataclass(frozen=True)
class BuilderDefinition(BaseValueObject):
    """
    处理器/通知器的构建定义

    Attributes:
        type: 构建器类型名称
        configs: 传给构建器的参数
    """

    type: str
    configs: Mapping[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.type:
            raise InvalidValueObjectException(
                value_object_type="BuilderDefinition",
                value=self.type,
                reason="Builder type cannot be empty",
            )


@dataclass(frozen=True)
class ControllerDefinition(BaseValueObject):
    """
    单个邮箱控制器的期望状态

    由配置加载器产生，管理器以 mailbox.address 为键与运行中的控制器对比，
    两个定义相等（逐字段深比较）时不会重新配置。

    Attributes:
        mailbox: 邮箱连接配置
        handlers: 处理器构建定义，按顺序组成处理器链
        notifiers: 通知器构建定义，按顺序组成通知器链
        delay: 首次检查前的延迟（秒）
        timeout: 单次检查超时（秒）
        interval: 检查间隔（秒）
    """

    mailbox: MailboxConfig
    handlers: Tuple[BuilderDefinition, ...] = ()
    notifiers: Tuple[BuilderDefinition, ...] = ()
    delay: float = 0
    timeout: float = 0
    interval: float = 0

    @property
    def address(self) -> str:
        """控制器标识：邮件服务器地址"""
        return self.mailbox.address
