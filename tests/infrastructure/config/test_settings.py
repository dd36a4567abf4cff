"""Settings 单元测试"""

import pytest
from pydantic import ValidationError

from infrastructure.config.settings import Settings


class TestSettings:
    """应用配置测试"""

    def test_defaults(self):
        """测试默认值"""
        settings = Settings(_env_file=None)

        assert settings.mailbox_config_file == "config/mailboxes.json"
        assert settings.default_poll_interval == 900
        assert settings.config_reload_interval == 0

    def test_reads_environment(self, monkeypatch):
        """测试从环境变量读取（不区分大小写）"""
        monkeypatch.setenv("MAILBOX_CONFIG_FILE", "/etc/mailboxes.json")
        monkeypatch.setenv("app_env", "prod")

        settings = Settings(_env_file=None)

        assert settings.mailbox_config_file == "/etc/mailboxes.json"
        assert settings.is_prod is True

    def test_poll_interval_must_be_positive(self):
        """测试检查间隔必须为正数"""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_poll_interval=0)
