"""WebhookNotifier 单元测试"""

import json

import httpx
import pytest

from domain.mail.entities.email import Email
from domain.notice.services.notifier import NotificationDeliveryError
from infrastructure.notice.webhook.webhook_notifier import WebhookNotifier

URL = "https://hooks.example.com/new-mail"


def make_transport(*statuses, requests=None):
    """按顺序返回给定状态码的模拟传输层"""
    responses = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(responses.pop(0), json={})

    return httpx.MockTransport(handler)


class TestWebhookNotifierSuccess:
    """成功场景测试"""

    @pytest.mark.asyncio
    async def test_posts_email_batch(self):
        """测试以 JSON 发送整批邮件"""
        requests = []
        notifier = WebhookNotifier(URL, transport=make_transport(200, requests=requests))

        await notifier.notify([Email(uid=7, subject="a"), Email(uid=5, subject="b")])

        assert len(requests) == 1
        body = json.loads(requests[0].content)
        assert body["count"] == 2
        assert [e["uid"] for e in body["emails"]] == [7, 5]
        assert requests[0].headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_custom_headers(self):
        """测试附加自定义请求头"""
        requests = []
        notifier = WebhookNotifier(
            URL,
            headers={"Authorization": "Bearer t0ken"},
            transport=make_transport(204, requests=requests),
        )

        await notifier.notify([Email(uid=1)])

        assert requests[0].headers["Authorization"] == "Bearer t0ken"

    @pytest.mark.asyncio
    async def test_empty_batch_is_not_sent(self):
        """测试空批次不发送请求"""
        requests = []
        notifier = WebhookNotifier(URL, transport=make_transport(requests=requests))

        await notifier.notify([])

        assert requests == []

    def test_description(self):
        """测试描述包含 URL"""
        assert str(WebhookNotifier(URL)) == f"Webhook(url={URL})"

    def test_empty_url_raises(self):
        """测试 URL 不能为空"""
        with pytest.raises(ValueError):
            WebhookNotifier("")


class TestWebhookNotifierRetry:
    """重试测试"""

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        """测试失败后重试成功"""
        notifier = WebhookNotifier(URL, retry_intervals=[0], transport=make_transport(500, 200))

        result = await notifier.send({"count": 0})

        assert result.success is True
        assert result.retry_count == 1

    @pytest.mark.asyncio
    async def test_all_attempts_fail(self):
        """测试全部尝试失败后抛出 NotificationDeliveryError"""
        requests = []
        notifier = WebhookNotifier(
            URL,
            retry_intervals=[0, 0],
            transport=make_transport(500, 502, 503, requests=requests),
        )

        with pytest.raises(NotificationDeliveryError) as exc_info:
            await notifier.notify([Email(uid=1)])

        assert len(requests) == 3
        assert "HTTP 503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_request_error(self):
        """测试网络错误视为失败"""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        notifier = WebhookNotifier(URL, retry_intervals=[], transport=httpx.MockTransport(handler))

        result = await notifier.send({})

        assert result.success is False
        assert result.status_code is None
        assert "connection refused" in result.error_message
