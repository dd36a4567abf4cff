"""JSON 文件控制器定义加载器"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from domain.common.exceptions import ConfigurationException
from domain.mailbox.repositories.controller_definition_loader import ControllerDefinitionLoader
from domain.mailbox.value_objects.controller_definition import (
    BuilderDefinition,
    ControllerDefinition,
)
from domain.mailbox.value_objects.mailbox_config import MailboxConfig

COMMENT = "//"


def strip_line_comments(text: str) -> str:
    """
    去掉 JSON 文本中的 // 注释

    整行注释和空行被删除；行尾注释被删除，除非 // 位于字符串内部
    （// 之前的双引号个数为奇数）。
    """
    lines = []
    for line in text.splitlines():
        stripped = line.lstrip(" \t")
        if not stripped or stripped.startswith(COMMENT):
            continue

        index = line.find(COMMENT)
        if index == -1:
            lines.append(line)
        elif '"' not in line[index:] or line[:index].count('"') % 2 == 0:
            lines.append(line[:index].rstrip(" \t"))
        else:
            lines.append(line)
    return "\n".join(lines)


class MailboxDefinitionModel(BaseModel):
    """邮箱连接配置"""

    model_config = ConfigDict(extra="forbid")

    address: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    # 未配置时默认使用 TLS
    use_tls: bool = True
    skip_tls_verify: bool = False
    max_messages: int = Field(default=0, ge=0)


class BuilderDefinitionModel(BaseModel):
    """处理器 / 通知器构建定义"""

    model_config = ConfigDict(extra="forbid")

    type: str = Field(min_length=1)
    configs: Dict[str, Any] = Field(default_factory=dict)

    def to_definition(self) -> BuilderDefinition:
        return BuilderDefinition(type=self.type, configs=self.configs)


class ControllerDefinitionModel(BaseModel):
    """
    单个邮箱控制器定义

    时长单位为秒，0 表示未设置。
    """

    model_config = ConfigDict(extra="forbid")

    mailbox: MailboxDefinitionModel
    handlers: List[BuilderDefinitionModel] = Field(default_factory=list)
    notifiers: List[BuilderDefinitionModel] = Field(default_factory=list)
    delay: float = Field(default=0, ge=0)
    timeout: float = Field(default=0, ge=0)
    interval: float = Field(default=0, ge=0)

    def to_definition(self) -> ControllerDefinition:
        return ControllerDefinition(
            mailbox=MailboxConfig(**self.mailbox.model_dump()),
            handlers=tuple(h.to_definition() for h in self.handlers),
            notifiers=tuple(n.to_definition() for n in self.notifiers),
            delay=self.delay,
            timeout=self.timeout,
            interval=self.interval,
        )


_DEFINITIONS = TypeAdapter(List[ControllerDefinitionModel])


class JsonFileDefinitionLoader(ControllerDefinitionLoader):
    """
    从 JSON 文件加载控制器定义

    文件内容是控制器定义列表，允许 // 注释。每次 load() 都重新读取文件，
    用于启动时和周期性的配置同步。

    Example:
        [
            // 公司邮箱
            {
                "mailbox": {"address": "imap.example.com:993", "username": "...", "password": "..."},
                "interval": 300,
                "handlers": [{"type": "filter_read"}, {"type": "filter_notified"}],
                "notifiers": [{"type": "feishu_webhook", "configs": {"group_id": "..."}}]
            }
        ]
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        logger: Optional[logging.Logger] = None,
    ):
        self._file_path = Path(file_path)
        self._logger = logger or logging.getLogger(__name__)

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> List[ControllerDefinition]:
        try:
            text = self._file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationException(
                f"Failed to read the mailbox config file {self._file_path}: {e}"
            ) from e

        try:
            models = _DEFINITIONS.validate_json(strip_line_comments(text))
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid mailbox config file {self._file_path}: {e}"
            ) from e

        definitions = []
        addresses = set()
        for model in models:
            definition = model.to_definition()
            if definition.address in addresses:
                raise ConfigurationException(
                    f"Duplicate mailbox address {definition.address} in {self._file_path}"
                )
            addresses.add(definition.address)
            definitions.append(definition)

        self._logger.debug(
            f"Loaded {len(definitions)} controller definition(s) from {self._file_path}"
        )
        return definitions
