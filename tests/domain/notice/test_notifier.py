"""通知器链单元测试"""

import logging

import pytest

from domain.mail.entities.email import Email
from domain.notice.services.notifier import (
    FunctionNotifier,
    NotificationDeliveryError,
    dispatch_notification,
)


class RecordingNotifier(FunctionNotifier):
    """记录收到的批次，可配置为失败"""

    def __init__(self, description, error=None):
        self.batches = []
        self.error = error
        super().__init__(description, self._record)

    async def _record(self, emails):
        self.batches.append(list(emails))
        if self.error is not None:
            raise self.error


@pytest.fixture
def emails():
    return [Email(uid=7), Email(uid=5), Email(uid=3)]


class TestDispatchNotification:
    """通知器链执行语义测试"""

    @pytest.mark.asyncio
    async def test_first_success_stops_chain(self, emails):
        """测试第一个成功的通知器之后不再尝试"""
        n1 = RecordingNotifier("N1")
        n2 = RecordingNotifier("N2")

        winner = await dispatch_notification([n1, n2], emails)

        assert winner is n1
        assert len(n1.batches) == 1
        assert n2.batches == []

    @pytest.mark.asyncio
    async def test_failover_to_next_notifier(self, emails, caplog):
        """测试失败后尝试下一个通知器，整批邮件一起发送"""
        n1 = RecordingNotifier("N1", NotificationDeliveryError("N1", "HTTP 500"))
        n2 = RecordingNotifier("N2")

        with caplog.at_level(logging.ERROR):
            winner = await dispatch_notification([n1, n2], emails, account="alice")

        assert winner is n2
        assert [e.uid for e in n2.batches[0]] == [7, 5, 3]
        assert "notifier=N1" in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_treated_as_failure(self, emails):
        """测试任意异常都视为发送失败"""
        n1 = RecordingNotifier("N1", ValueError("bad payload"))
        n2 = RecordingNotifier("N2")

        assert await dispatch_notification([n1, n2], emails) is n2

    @pytest.mark.asyncio
    async def test_all_failed_returns_none(self, emails, caplog):
        """测试全部失败时返回 None 并记录错误"""
        n1 = RecordingNotifier("N1", RuntimeError("down"))

        with caplog.at_level(logging.ERROR):
            assert await dispatch_notification([n1], emails) is None

        assert "No notifier delivered 3 email(s)" in caplog.text

    def test_str_is_description(self):
        """测试 str() 返回描述"""
        assert str(RecordingNotifier("FeiShuWebhook(groupid=x)")) == "FeiShuWebhook(groupid=x)"
