"""MailboxConfig 值对象单元测试"""

import pytest

from domain.common.exceptions import ConfigurationException, InvalidValueObjectException
from domain.mailbox.value_objects.mailbox_config import DEFAULT_MAX_MESSAGES, MailboxConfig


class TestMailboxConfigCreate:
    """创建与规范化测试"""

    def test_defaults(self):
        """测试默认值"""
        config = MailboxConfig()

        assert config.use_tls is True
        assert config.skip_tls_verify is False
        assert config.max_messages == DEFAULT_MAX_MESSAGES

    @pytest.mark.parametrize("value", [0, -5])
    def test_non_positive_max_messages_is_normalized(self, value):
        """测试非正的 max_messages 使用默认值 100"""
        assert MailboxConfig(max_messages=value).max_messages == 100

    def test_non_integer_max_messages_raises(self):
        """测试非整数 max_messages 抛出异常"""
        with pytest.raises(InvalidValueObjectException):
            MailboxConfig(max_messages="10")

    def test_is_immutable(self):
        """测试值对象不可变"""
        config = MailboxConfig(address="imap.example.com")

        with pytest.raises(AttributeError):
            config.address = "other"

    def test_repr_hides_password(self):
        """测试 repr 不包含密码"""
        config = MailboxConfig(address="imap.example.com", username="alice", password="s3cret")

        assert "s3cret" not in repr(config)


class TestMailboxConfigEnsureComplete:
    """凭证完整性检查测试"""

    def test_complete_config_passes(self):
        """测试完整配置通过检查"""
        MailboxConfig(address="imap.example.com", username="alice", password="pw").ensure_complete()

    def test_missing_fields_are_reported(self):
        """测试缺少的字段出现在异常信息中"""
        with pytest.raises(ConfigurationException) as exc_info:
            MailboxConfig(address="imap.example.com").ensure_complete()

        assert "username" in exc_info.value.message
        assert "password" in exc_info.value.message
        assert "address" not in exc_info.value.message
