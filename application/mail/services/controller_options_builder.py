"""控制器选项构建器"""

from typing import Any, Callable, List, Mapping

from domain.common.exceptions import ConfigurationException
from domain.mail.services.email_handler import EmailHandler
from domain.mailbox.value_objects.controller_config import (
    Option,
    delay_option,
    handlers_option,
    interval_option,
    mailbox_config_option,
    notifiers_option,
    timeout_option,
)
from domain.mailbox.value_objects.controller_definition import (
    BuilderDefinition,
    ControllerDefinition,
)
from domain.notice.services.notifier import Notifier

HandlerBuilder = Callable[[Mapping[str, Any]], EmailHandler]
NotifierBuilder = Callable[[Mapping[str, Any]], Notifier]


class ControllerOptionsBuilder:
    """
    将控制器定义转换为控制器选项

    处理器和通知器按类型名称从构建器表中查找，构建器表由调用方显式传入。
    """

    def __init__(
        self,
        handler_builders: Mapping[str, HandlerBuilder],
        notifier_builders: Mapping[str, NotifierBuilder],
    ):
        """
        Args:
            handler_builders: 处理器类型 -> 构建函数
            notifier_builders: 通知器类型 -> 构建函数
        """
        self._handler_builders = dict(handler_builders)
        self._notifier_builders = dict(notifier_builders)

    @property
    def handler_types(self) -> List[str]:
        return sorted(self._handler_builders)

    @property
    def notifier_types(self) -> List[str]:
        return sorted(self._notifier_builders)

    def build_handler(self, definition: BuilderDefinition) -> EmailHandler:
        """
        Raises:
            ConfigurationException: 类型未知或参数无效
        """
        build = self._handler_builders.get(definition.type)
        if build is None:
            raise ConfigurationException(f"No handler builder typed '{definition.type}'")
        return build(definition.configs)

    def build_notifier(self, definition: BuilderDefinition) -> Notifier:
        """
        Raises:
            ConfigurationException: 类型未知或参数无效
        """
        build = self._notifier_builders.get(definition.type)
        if build is None:
            raise ConfigurationException(f"No notifier builder typed '{definition.type}'")
        return build(definition.configs)

    def build(self, definition: ControllerDefinition) -> List[Option]:
        """
        构建控制器选项

        Raises:
            ConfigurationException: 任一处理器或通知器构建失败
        """
        options: List[Option] = [
            delay_option(definition.delay),
            timeout_option(definition.timeout),
            interval_option(definition.interval),
            mailbox_config_option(definition.mailbox),
        ]

        handlers = []
        for h in definition.handlers:
            try:
                handlers.append(self.build_handler(h))
            except Exception as e:
                raise ConfigurationException(
                    f"Failed to build email handler '{h.type}' for {definition.address}: {e}"
                ) from e
        options.append(handlers_option(*handlers))

        notifiers = []
        for n in definition.notifiers:
            try:
                notifiers.append(self.build_notifier(n))
            except Exception as e:
                raise ConfigurationException(
                    f"Failed to build notifier '{n.type}' for {definition.address}: {e}"
                ) from e
        options.append(notifiers_option(*notifiers))

        return options
