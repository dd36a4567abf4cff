"""HTTP Webhook 通知器"""

from infrastructure.notice.webhook.webhook_notifier import WebhookNotifier, WebhookResult

__all__ = ["WebhookNotifier", "WebhookResult"]
