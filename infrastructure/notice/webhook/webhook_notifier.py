"""HTTP Webhook 通知器实现"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from domain.mail.entities.email import Email
from domain.notice.services.notifier import NotificationDeliveryError, Notifier


@dataclass
class WebhookResult:
    """Webhook 调用结果

    Attributes:
        success: 是否成功（收到 2xx 响应且响应内容表示成功）
        status_code: HTTP 状态码（如果有响应）
        retry_count: 重试次数
        error_message: 错误信息（失败时）
    """

    success: bool
    status_code: Optional[int] = None
    retry_count: int = 0
    error_message: str = ""


class WebhookNotifier(Notifier):
    """HTTP Webhook 通知器

    将一批新邮件以 JSON POST 到指定 URL，使用 httpx 异步客户端，
    支持重试。全部尝试失败后抛出 NotificationDeliveryError，
    由通知器链尝试下一个通知器。

    Attributes:
        RETRY_INTERVALS: 重试间隔列表（秒）
        TIMEOUT: 请求超时时间（秒）
    """

    RETRY_INTERVALS: List[float] = [1, 5, 15]  # 重试间隔：1秒, 5秒, 15秒
    TIMEOUT: float = 10  # 请求超时时间

    def __init__(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        retry_intervals: Optional[Sequence[float]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """初始化通知器

        Args:
            url: 回调 URL
            headers: 额外的请求头
            retry_intervals: 重试间隔，默认 RETRY_INTERVALS
            timeout: 请求超时时间，默认 TIMEOUT
            transport: 自定义 httpx 传输层（可选）
            logger: 日志记录器（可选）
        """
        if not url:
            raise ValueError("webhook url must not be empty")

        self._url = url
        self._headers = {"Content-Type": "application/json", **dict(headers or {})}
        self._retry_intervals = list(
            self.RETRY_INTERVALS if retry_intervals is None else retry_intervals
        )
        self._timeout = self.TIMEOUT if timeout is None else timeout
        self._transport = transport
        self._logger = logger or logging.getLogger(__name__)

    @property
    def url(self) -> str:
        return self._url

    @property
    def description(self) -> str:
        return f"Webhook(url={self._url})"

    def build_payload(self, emails: Sequence[Email]) -> Dict[str, Any]:
        """构造 JSON 载荷"""
        return {
            "count": len(emails),
            "emails": [e.to_dict() for e in emails],
        }

    def check_response(self, response: httpx.Response) -> Optional[str]:
        """检查响应，成功返回 None，否则返回错误信息"""
        if 200 <= response.status_code < 300:
            return None
        return f"HTTP {response.status_code}"

    async def notify(self, emails: Sequence[Email]) -> None:
        if not emails:
            return

        result = await self.send(self.build_payload(emails))
        if not result.success:
            raise NotificationDeliveryError(self.description, result.error_message)

    async def send(self, payload: Dict[str, Any]) -> WebhookResult:
        """发送 Webhook 请求，支持重试

        Args:
            payload: JSON 载荷

        Returns:
            WebhookResult 包含调用结果
        """
        last_error = ""
        last_status_code: Optional[int] = None
        total_attempts = len(self._retry_intervals) + 1

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            for attempt in range(total_attempts):
                try:
                    response = await client.post(
                        self._url, json=payload, headers=self._headers
                    )
                    last_status_code = response.status_code

                    error = self.check_response(response)
                    if error is None:
                        self._logger.info(
                            f"Webhook successful: {self._url} (attempt {attempt + 1}, "
                            f"status {response.status_code})"
                        )
                        return WebhookResult(
                            success=True,
                            status_code=response.status_code,
                            retry_count=attempt,
                        )

                    last_error = error
                    self._logger.warning(
                        f"Webhook failed: {self._url} - {last_error} (attempt {attempt + 1})"
                    )

                except httpx.TimeoutException:
                    last_error = "Request timeout"
                    self._logger.warning(
                        f"Webhook timeout: {self._url} (attempt {attempt + 1})"
                    )

                except httpx.RequestError as e:
                    last_error = f"Request error: {str(e)}"
                    self._logger.warning(
                        f"Webhook error: {self._url} - {last_error} (attempt {attempt + 1})"
                    )

                # 如果不是最后一次尝试，等待后重试
                if attempt < len(self._retry_intervals):
                    wait_time = self._retry_intervals[attempt]
                    self._logger.debug(f"Waiting {wait_time}s before retry...")
                    await asyncio.sleep(wait_time)

        self._logger.error(
            f"Webhook failed after {total_attempts} attempts: {self._url} - {last_error}"
        )
        return WebhookResult(
            success=False,
            status_code=last_status_code,
            retry_count=total_attempts - 1,
            error_message=last_error,
        )
