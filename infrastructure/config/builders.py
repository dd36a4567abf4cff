"""
处理器 / 通知器构建器表

每个构建器接收配置文件中的 configs 字典，用 pydantic 模型校验后
构造对应的处理器或通知器。校验失败抛出 ConfigurationException。
"""

from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from application.mail.services.controller_options_builder import (
    HandlerBuilder,
    NotifierBuilder,
)
from domain.common.exceptions import ConfigurationException
from domain.mail.services.email_handler import (
    EmailHandler,
    FilterNotifiedHandler,
    FilterReadHandler,
    MatchPattern,
    MoveMailboxHandler,
    SetReadHandler,
    build_or_matcher,
)
from domain.notice.services.notifier import Notifier
from infrastructure.notice.feishu.feishu_notifier import FeishuWebhookNotifier
from infrastructure.notice.webhook.webhook_notifier import WebhookNotifier

ModelT = TypeVar("ModelT", bound=BaseModel)


class MatcherConfig(BaseModel):
    """发件人 / 主题正则，留空表示不限制"""

    model_config = ConfigDict(extra="forbid")

    sender: str = ""
    subject: str = ""


class SetReadConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    matchers: List[MatcherConfig] = Field(min_length=1)


class MoveMailboxConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mailbox: str = Field(min_length=1)
    matchers: List[MatcherConfig] = Field(min_length=1)


class WebhookConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1)
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = Field(default=None, gt=0)
    retry_intervals: Optional[List[float]] = None


class FeishuWebhookConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    group_id: str = Field(min_length=1)
    secret: str = ""


def _parse(model: Type[ModelT], builder_type: str, configs: Mapping[str, Any]) -> ModelT:
    try:
        return model.model_validate(dict(configs or {}))
    except ValidationError as e:
        raise ConfigurationException(f"Invalid configs for '{builder_type}': {e}") from e


def _patterns(matchers: List[MatcherConfig]) -> List[MatchPattern]:
    return [MatchPattern(sender=m.sender, subject=m.subject) for m in matchers]


def build_filter_read_handler(configs: Mapping[str, Any]) -> EmailHandler:
    return FilterReadHandler()


def build_filter_notified_handler(configs: Mapping[str, Any]) -> EmailHandler:
    return FilterNotifiedHandler()


def build_set_read_handler(configs: Mapping[str, Any]) -> EmailHandler:
    config = _parse(SetReadConfig, SetReadHandler.TYPE, configs)
    return SetReadHandler(build_or_matcher(_patterns(config.matchers)))


def build_move_mailbox_handler(configs: Mapping[str, Any]) -> EmailHandler:
    config = _parse(MoveMailboxConfig, MoveMailboxHandler.TYPE, configs)
    return MoveMailboxHandler(config.mailbox, build_or_matcher(_patterns(config.matchers)))


def build_webhook_notifier(configs: Mapping[str, Any]) -> Notifier:
    config = _parse(WebhookConfig, "webhook", configs)
    return WebhookNotifier(
        config.url,
        headers=config.headers,
        retry_intervals=config.retry_intervals,
        timeout=config.timeout,
    )


def build_feishu_webhook_notifier(configs: Mapping[str, Any]) -> Notifier:
    config = _parse(FeishuWebhookConfig, "feishu_webhook", configs)
    return FeishuWebhookNotifier(config.group_id, config.secret)


def default_handler_builders() -> Dict[str, HandlerBuilder]:
    """内置的处理器构建器：类型 -> 构建函数"""
    return {
        FilterReadHandler.TYPE: build_filter_read_handler,
        FilterNotifiedHandler.TYPE: build_filter_notified_handler,
        SetReadHandler.TYPE: build_set_read_handler,
        MoveMailboxHandler.TYPE: build_move_mailbox_handler,
    }


def default_notifier_builders() -> Dict[str, NotifierBuilder]:
    """内置的通知器构建器：类型 -> 构建函数"""
    return {
        "webhook": build_webhook_notifier,
        "feishu_webhook": build_feishu_webhook_notifier,
    }
