"""邮箱管理器 - 按配置同步所有邮箱控制器"""

import asyncio
import logging
import threading
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from application.mail.services.controller_options_builder import ControllerOptionsBuilder
from application.mail.services.mailbox_controller import MailboxController
from domain.common.exceptions import ConfigurationException, MailboxSyncError
from domain.mailbox.repositories.controller_definition_loader import ControllerDefinitionLoader
from domain.mailbox.value_objects.controller_config import Option
from domain.mailbox.value_objects.controller_definition import ControllerDefinition

ControllerFactory = Callable[..., MailboxController]


class MailboxManager:
    """
    邮箱管理器

    以邮件服务器地址为键维护控制器表：
    - sync() 加载期望的控制器定义，新增的邮箱创建控制器，
      定义变化的邮箱原地重新配置，配置中消失的邮箱保持不变
    - start() 启动所有控制器，之后新增的控制器在加入时立即启动
    - stop() 停止所有控制器并等待其结束

    sync() 可以在任意线程中调用，控制器表由一把锁保护，
    锁不会跨越任何一次邮件检查。
    """

    def __init__(
        self,
        loader: ControllerDefinitionLoader,
        options_builder: ControllerOptionsBuilder,
        controller_factory: ControllerFactory,
        default_interval: float = 0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化管理器

        Args:
            loader: 控制器定义加载器
            options_builder: 将定义转换为控制器选项
            controller_factory: 以选项为位置参数创建控制器
            default_interval: 定义中没有间隔时使用的检查间隔（秒）
            logger: 可选的日志记录器
        """
        self._loader = loader
        self._options_builder = options_builder
        self._controller_factory = controller_factory
        self._default_interval = default_interval
        self._logger = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._controllers: Dict[str, MailboxController] = {}
        self._definitions: Dict[str, ControllerDefinition] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def controllers(self) -> Mapping[str, MailboxController]:
        """控制器表的只读快照：地址 -> 控制器"""
        with self._lock:
            return MappingProxyType(dict(self._controllers))

    @property
    def is_started(self) -> bool:
        return self._loop is not None

    def sync(self) -> None:
        """
        将控制器表同步到当前配置

        单个邮箱失败不影响其它邮箱，所有失败在最后一起抛出。

        Raises:
            ConfigurationException: 加载配置失败，控制器表保持不变
            MailboxSyncError: 部分邮箱同步失败
        """
        try:
            definitions = self._loader.load()
        except ConfigurationException:
            raise
        except Exception as e:
            raise ConfigurationException(f"Failed to load controller definitions: {e}") from e

        errors: List[Exception] = []
        with self._lock:
            for definition in definitions:
                try:
                    self._apply(definition)
                except Exception as e:
                    self._logger.error(
                        f"Failed to sync the controller for {definition.address}: {e}"
                    )
                    errors.append(e)

        if errors:
            raise MailboxSyncError(errors)

        self._logger.info(f"Synced {len(definitions)} controller definition(s)")

    def _apply(self, definition: ControllerDefinition) -> None:
        address = definition.address
        controller = self._controllers.get(address)

        if controller is not None:
            if self._definitions.get(address) == definition:
                return
            controller.reconfigure(*self._build_options(definition))
            self._definitions[address] = definition
            return

        controller = self._controller_factory(*self._build_options(definition))
        self._controllers[address] = controller
        self._definitions[address] = definition
        self._logger.info(f"Added the controller for {address}")

        if self._loop is not None:
            self._start_controller(controller)

    def _build_options(self, definition: ControllerDefinition) -> List[Option]:
        return self._options_builder.build(definition)

    def start(self) -> None:
        """
        启动所有控制器

        必须在事件循环中调用；重复调用不会重复启动。
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._loop is not None:
                return
            self._loop = loop
            controllers = list(self._controllers.values())

        for controller in controllers:
            controller.start(self._default_interval)
        self._logger.info(f"Started {len(controllers)} controller(s)")

    def _start_controller(self, controller: MailboxController) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            controller.start(self._default_interval)
        else:
            self._loop.call_soon_threadsafe(controller.start, self._default_interval)

    async def stop(self) -> None:
        """停止所有控制器并等待其结束"""
        with self._lock:
            controllers = list(self._controllers.values())
            self._loop = None

        await asyncio.gather(*(c.stop() for c in controllers))
        self._logger.info(f"Stopped {len(controllers)} controller(s)")

    async def wait(self) -> None:
        """等待所有控制器的检查任务结束"""
        with self._lock:
            controllers = list(self._controllers.values())

        await asyncio.gather(*(c.wait() for c in controllers))
