"""FeishuWebhookNotifier 单元测试"""

import base64
import hashlib
import hmac
import json

import httpx
import pytest

from domain.mail.entities.email import Email
from domain.mail.value_objects.address import Address
from domain.notice.services.notifier import NotificationDeliveryError
from infrastructure.notice.feishu.feishu_notifier import (
    URL_PREFIX,
    FeishuWebhookNotifier,
    build_content,
    gen_sign,
)


def make_email(uid):
    return Email(uid=uid, subject=f"subject {uid}", froms=[Address(addr=f"u{uid}@example.com")])


def make_transport(payload, requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


class TestFeishuSign:
    """签名测试"""

    def test_gen_sign(self):
        """测试以 timestamp 和 secret 为密钥对空消息签名"""
        key = b"1700000000\nsecret"
        expected = base64.b64encode(hmac.new(key, b"", hashlib.sha256).digest()).decode()

        assert gen_sign("secret", "1700000000") == expected


class TestFeishuContent:
    """消息内容测试"""

    def test_lists_emails(self):
        """测试逐行列出邮件"""
        content = build_content([make_email(7), make_email(5)])

        assert content.splitlines() == [
            "您有2封未读邮件:",
            "1. subject 7(u7@example.com)",
            "2. subject 5(u5@example.com)",
        ]

    def test_truncates_after_eleven_emails(self):
        """测试最多列出 11 封邮件"""
        lines = build_content([make_email(i) for i in range(13)]).splitlines()

        assert lines[0] == "您有13封未读邮件:"
        assert len(lines) == 13
        assert lines[11] == "11. subject 10(u10@example.com)"
        assert lines[-1] == "......"


class TestFeishuWebhookNotifier:
    """发送测试"""

    @pytest.mark.asyncio
    async def test_sends_signed_text_message(self):
        """测试发送带签名的文本消息"""
        requests = []
        notifier = FeishuWebhookNotifier(
            "group-1",
            secret="secret",
            clock=lambda: 1700000000.5,
            transport=make_transport({"code": 0, "msg": "success"}, requests),
        )

        await notifier.notify([make_email(1)])

        request = requests[0]
        body = json.loads(request.content)
        assert str(request.url) == URL_PREFIX + "group-1"
        assert body["timestamp"] == "1700000000"
        assert body["sign"] == gen_sign("secret", "1700000000")
        assert body["msg_type"] == "text"
        assert body["content"]["text"].startswith("您有1封未读邮件:")

    @pytest.mark.asyncio
    async def test_non_zero_code_is_delivery_error(self):
        """测试响应 code 不为 0 时发送失败，默认不重试"""
        requests = []
        notifier = FeishuWebhookNotifier(
            "group-1",
            transport=make_transport({"code": 19021, "msg": "sign match fail"}, requests),
        )

        with pytest.raises(NotificationDeliveryError) as exc_info:
            await notifier.notify([make_email(1)])

        assert "code=19021" in str(exc_info.value)
        assert len(requests) == 1

    def test_description(self):
        """测试描述包含群 ID"""
        assert str(FeishuWebhookNotifier("group-1")) == "FeiShuWebhook(groupid=group-1)"

    def test_group_id_required(self):
        """测试群 ID 不能为空"""
        with pytest.raises(ValueError):
            FeishuWebhookNotifier("")
