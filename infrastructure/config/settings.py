"""
应用配置管理

使用 pydantic-settings 管理环境变量和配置
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    应用配置类

    自动从环境变量和 .env 文件读取配置
    """

    # ========== 应用环境 ==========
    app_env: Literal["test", "dev", "staging", "prod"] = "dev"
    app_name: str = "EmailManager"
    app_version: str = "1.0.0"
    debug: bool = False

    # ========== 日志配置 ==========
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    # ========== 邮箱配置 ==========
    # 控制器定义文件（JSON，允许 // 注释）
    mailbox_config_file: str = "config/mailboxes.json"
    # 定义中没有间隔时使用的检查间隔（秒）
    default_poll_interval: float = Field(default=15 * 60.0, gt=0)
    # 周期性重新加载定义文件的间隔（秒），0 表示不重新加载
    config_reload_interval: float = Field(default=0, ge=0)
    # 执行阻塞 IMAP 操作的线程数
    fetch_max_workers: int = Field(default=8, ge=1)
    # IMAP 套接字超时（秒）
    imap_timeout: float = Field(default=30.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # 忽略未定义的环境变量
    )

    @property
    def is_test(self) -> bool:
        """是否为测试环境"""
        return self.app_env == "test"

    @property
    def is_dev(self) -> bool:
        """是否为开发环境"""
        return self.app_env == "dev"

    @property
    def is_prod(self) -> bool:
        """是否为生产环境"""
        return self.app_env == "prod"


# 全局配置实例（单例）
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    获取配置实例（单例模式）

    Returns:
        Settings 实例
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
