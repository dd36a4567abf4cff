"""邮件地址值对象"""

from dataclasses import dataclass

from domain.common.base_value_object import BaseValueObject


@dataclass(frozen=True)
class Address(BaseValueObject):
    """
    邮件地址值对象

    Attributes:
        name: 显示名称（可为空）
        addr: 邮箱地址
    """

    name: str = ""
    addr: str = ""

    @property
    def full_address(self) -> str:
        """返回带显示名称的完整地址，如 ``Alice<alice@example.com>``"""
        if not self.name:
            return self.addr
        return f"{self.name}<{self.addr}>"

    def __str__(self) -> str:
        return self.full_address
