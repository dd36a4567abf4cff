"""值对象基类"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BaseValueObject:
    """
    值对象基类

    子类应声明为 frozen dataclass，并在需要时重写 validate()。
    创建实例后自动调用 validate()。
    """

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """验证值对象的有效性，默认不做任何检查"""
