"""
基础设施容器（InfraContainer）

管理所有基础设施组件：IMAP 客户端、配置加载器、线程池等。
依赖 ConfigContainer 获取配置。
"""

from concurrent.futures import ThreadPoolExecutor

from dependency_injector import containers, providers

from infrastructure.config.file_definition_loader import JsonFileDefinitionLoader
from infrastructure.mail.services.imap_mailbox_client import ImapMailboxClient


class InfraContainer(containers.DeclarativeContainer):
    """基础设施容器 - 管理技术实现"""

    # 依赖配置容器
    config = providers.DependenciesContainer()

    # ============ 线程池 ============

    # 执行阻塞 IMAP 操作的线程池（单例，所有控制器共享）
    fetch_executor = providers.Singleton(
        ThreadPoolExecutor,
        max_workers=config.settings.provided.fetch_max_workers,
        thread_name_prefix="mailbox-fetch",
    )

    # ============ 邮件服务 ============

    # IMAP 远程邮箱客户端
    mailbox_client = providers.Singleton(
        ImapMailboxClient,
        timeout=config.settings.provided.imap_timeout,
    )

    # ============ 配置加载 ============

    # 控制器定义加载器
    definition_loader = providers.Singleton(
        JsonFileDefinitionLoader,
        file_path=config.settings.provided.mailbox_config_file,
    )
