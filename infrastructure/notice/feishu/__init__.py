"""飞书机器人通知器"""

from infrastructure.notice.feishu.feishu_notifier import FeishuWebhookNotifier

__all__ = ["FeishuWebhookNotifier"]
