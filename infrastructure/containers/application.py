"""
应用容器（AppContainer）

管理应用层组件：收取引擎、控制器工厂、邮箱管理器等。
依赖 InfraContainer 获取基础设施。
"""

from dependency_injector import containers, providers

from application.mail.services.controller_options_builder import ControllerOptionsBuilder
from application.mail.services.email_fetch_service import EmailFetchService
from application.mail.services.mailbox_controller import MailboxController
from application.mail.services.mailbox_manager import MailboxManager
from infrastructure.config.builders import (
    default_handler_builders,
    default_notifier_builders,
)


class AppContainer(containers.DeclarativeContainer):
    """应用容器 - 管理应用层服务"""

    # 依赖配置容器
    config = providers.DependenciesContainer()

    # 依赖基础设施容器
    infra = providers.DependenciesContainer()

    # ============ 应用服务 ============

    # 邮件收取引擎（单例）
    email_fetch_service = providers.Singleton(
        EmailFetchService,
        client=infra.mailbox_client,
        executor=infra.fetch_executor,
    )

    # 控制器选项构建器（单例）
    controller_options_builder = providers.Singleton(
        ControllerOptionsBuilder,
        handler_builders=providers.Callable(default_handler_builders),
        notifier_builders=providers.Callable(default_notifier_builders),
    )

    # 单邮箱控制器（每个邮箱一个实例，调用时传入控制器选项）
    mailbox_controller = providers.Factory(
        MailboxController,
        email_fetch_service,
    )

    # 邮箱管理器（单例，整个应用只需一个实例）
    # 注意: mailbox_controller 使用 .provider 传递工厂，而非实例
    mailbox_manager = providers.Singleton(
        MailboxManager,
        loader=infra.definition_loader,
        options_builder=controller_options_builder,
        controller_factory=mailbox_controller.provider,
        default_interval=config.settings.provided.default_poll_interval,
    )
