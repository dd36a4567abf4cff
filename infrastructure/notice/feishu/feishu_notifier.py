"""飞书自定义机器人通知器"""

import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from domain.mail.entities.email import Email
from infrastructure.notice.webhook.webhook_notifier import WebhookNotifier

URL_PREFIX = "https://open.feishu.cn/open-apis/bot/v2/hook/"
MAX_LISTED_EMAILS = 11


def gen_sign(secret: str, timestamp: str) -> str:
    """
    生成飞书签名

    以 "{timestamp}\\n{secret}" 为密钥对空消息做 HMAC-SHA256，再 base64 编码。
    """
    key = f"{timestamp}\n{secret}".encode("utf-8")
    digest = hmac.new(key, b"", hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def build_content(emails: Sequence[Email]) -> str:
    """
    构造文本消息

    最多列出 11 封邮件，超出部分以 "......" 表示。
    """
    lines = [f"您有{len(emails)}封未读邮件:"]
    for i, email in enumerate(emails):
        if i >= MAX_LISTED_EMAILS:
            lines.append("......")
            break
        lines.append(f"{i + 1}. {email.subject}({email.sender})")
    return "\n".join(lines)


class FeishuWebhookNotifier(WebhookNotifier):
    """
    飞书自定义机器人 Webhook 通知器

    响应中 code 不为 0 视为发送失败。默认不重试，失败后由通知器链
    尝试下一个通知器。
    """

    RETRY_INTERVALS: List[float] = []

    def __init__(
        self,
        group_id: str,
        secret: str = "",
        clock: Callable[[], float] = time.time,
        retry_intervals: Optional[Sequence[float]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            group_id: 机器人 Webhook 地址中的 ID
            secret: 签名校验密钥
            clock: 返回当前 Unix 时间的函数
        """
        if not group_id:
            raise ValueError("feishu group id must not be empty")

        super().__init__(
            URL_PREFIX + group_id,
            retry_intervals=retry_intervals,
            timeout=timeout,
            transport=transport,
            logger=logger,
        )
        self._group_id = group_id
        self._secret = secret
        self._clock = clock

    @property
    def description(self) -> str:
        return f"FeiShuWebhook(groupid={self._group_id})"

    def build_payload(self, emails: Sequence[Email]) -> Dict[str, Any]:
        timestamp = str(int(self._clock()))
        return {
            "sign": gen_sign(self._secret, timestamp),
            "timestamp": timestamp,
            "msg_type": "text",
            "content": {"text": build_content(emails)},
        }

    def check_response(self, response: httpx.Response) -> Optional[str]:
        error = super().check_response(response)
        if error is not None:
            return error

        try:
            result = response.json()
        except json.JSONDecodeError as e:
            return f"invalid response: {e}"

        code = result.get("code", 0) if isinstance(result, dict) else 0
        if code != 0:
            return f"code={code}, msg={result.get('msg', '')}"
        return None
