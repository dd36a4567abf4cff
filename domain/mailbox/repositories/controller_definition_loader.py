"""控制器定义加载器接口"""

from abc import ABC, abstractmethod
from typing import List

from domain.mailbox.value_objects.controller_definition import ControllerDefinition


class ControllerDefinitionLoader(ABC):
    """
    控制器定义加载器接口

    每次调用 load() 返回当前期望的完整控制器定义列表，
    邮件服务器地址是唯一键。
    """

    @abstractmethod
    def load(self) -> List[ControllerDefinition]:
        """
        加载控制器定义

        Raises:
            ConfigurationException: 配置无法读取或无效
        """
        raise NotImplementedError
