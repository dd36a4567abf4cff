"""
依赖注入容器

用法：
    from infrastructure.containers import bootstrap

    boot = bootstrap()
    manager = boot.app.mailbox_manager()
"""

from dataclasses import dataclass
from typing import Optional

from dependency_injector import providers

from infrastructure.config.settings import Settings
from infrastructure.containers.application import AppContainer
from infrastructure.containers.config import ConfigContainer
from infrastructure.containers.infrastructure import InfraContainer


@dataclass
class Bootstrap:
    """已连接好的容器集合"""

    config: ConfigContainer
    infra: InfraContainer
    app: AppContainer


def bootstrap(settings: Optional[Settings] = None) -> Bootstrap:
    """
    创建并连接所有容器

    Args:
        settings: 覆盖全局配置（测试时使用）

    Returns:
        Bootstrap 实例
    """
    config = ConfigContainer()
    if settings is not None:
        config.settings.override(providers.Object(settings))

    infra = InfraContainer(config=config)
    app = AppContainer(config=config, infra=infra)
    return Bootstrap(config=config, infra=infra, app=app)


__all__ = [
    "AppContainer",
    "Bootstrap",
    "ConfigContainer",
    "InfraContainer",
    "bootstrap",
]
