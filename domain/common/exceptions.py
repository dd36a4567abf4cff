"""领域异常定义"""

from typing import Any, List, Sequence


class DomainException(Exception):
    """
    领域异常基类

    Attributes:
        message: 异常信息
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidValueObjectException(DomainException):
    """值对象无效异常"""

    def __init__(self, value_object_type: str, value: Any, reason: str):
        self.value_object_type = value_object_type
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {value_object_type} ({value!r}): {reason}")


class ConfigurationException(DomainException):
    """
    配置错误

    缺少必需的凭证、无效的匹配规则、未知的处理器/通知器类型等。
    构建或重新配置控制器时抛出，之前生效的配置保持不变。
    """


class MailboxSyncError(DomainException):
    """
    邮箱配置同步错误

    同步时单个邮箱的失败不会中断其它邮箱，所有错误被收集到一起抛出。

    Attributes:
        errors: 各邮箱的错误列表
    """

    def __init__(self, errors: Sequence[Exception]):
        self.errors: List[Exception] = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))
