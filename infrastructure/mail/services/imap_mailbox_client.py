"""IMAP 远程邮箱客户端实现"""

import imaplib
import logging
import re
import ssl
from datetime import datetime
from email.header import decode_header
from email.parser import BytesHeaderParser
from email.utils import getaddresses, parsedate_to_datetime
from typing import Callable, List, Optional, Tuple

from domain.mail.services.mailbox_client import (
    MailboxClient,
    MailboxConnectionError,
    MailboxFetchError,
    MailboxOperationError,
    MailboxSession,
)
from domain.mail.value_objects.address import Address
from domain.mail.value_objects.message_summary import (
    SEEN_FLAG,
    MailboxInfo,
    MailboxStatus,
    MessageSummary,
)

DEFAULT_TLS_PORT = 993
DEFAULT_PORT = 143

FETCH_ITEMS = "(UID FLAGS INTERNALDATE BODY.PEEK[HEADER.FIELDS (DATE SUBJECT FROM SENDER)])"

_FETCH_START = re.compile(rb"^\d+ \(")
_UID = re.compile(rb"UID (\d+)")
_FLAGS = re.compile(rb"FLAGS \(([^)]*)\)")
_INTERNALDATE = re.compile(rb'INTERNALDATE "([^"]+)"')
_LITERAL_SIZE = re.compile(rb"\{\d+\}$")
_LIST_LINE = re.compile(rb'^\((?P<flags>[^)]*)\) (?P<delimiter>"[^"]*"|NIL) (?P<name>.+)$')


def parse_address(address: str, use_tls: bool = True) -> Tuple[str, int]:
    """
    解析服务器地址

    Example:
        parse_address("imap.example.com:993") -> ("imap.example.com", 993)
        parse_address("imap.example.com", use_tls=False) -> ("imap.example.com", 143)
    """
    host, sep, port = address.rpartition(":")
    if sep and port.isdigit() and (":" not in host or host.startswith("[")):
        return host.strip("[]"), int(port)
    return address.strip("[]"), DEFAULT_TLS_PORT if use_tls else DEFAULT_PORT


def _quote(mailbox: str) -> str:
    if mailbox.startswith('"'):
        return mailbox
    escaped = mailbox.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _decode_header_value(value: Optional[str]) -> str:
    """解码邮件头部值（处理 RFC 2047 编码）"""
    if not value:
        return ""

    result_parts = []
    for part, charset in decode_header(value):
        if isinstance(part, bytes):
            try:
                decoded = part.decode(charset or "utf-8", errors="replace")
            except (LookupError, UnicodeDecodeError):
                decoded = part.decode("utf-8", errors="replace")
            result_parts.append(decoded)
        else:
            result_parts.append(part)

    return "".join(result_parts)


def _parse_addresses(values: Optional[List[str]]) -> Tuple[Address, ...]:
    if not values:
        return ()
    return tuple(
        Address(name=_decode_header_value(name), addr=addr)
        for name, addr in getaddresses([str(v) for v in values])
        if addr
    )


def _parse_date(date_str: Optional[str]) -> Optional[datetime]:
    if not date_str:
        return None
    try:
        return parsedate_to_datetime(date_str)
    except (TypeError, ValueError):
        return None


def _parse_internaldate(meta: bytes) -> Optional[datetime]:
    match = _INTERNALDATE.search(meta)
    if match is None:
        return None
    try:
        return datetime.strptime(match.group(1).decode().strip(), "%d-%b-%Y %H:%M:%S %z")
    except ValueError:
        return None


def group_fetch_response(data: List) -> List[Tuple[bytes, bytes]]:
    """
    将 imaplib 的 FETCH 响应按邮件分组

    imaplib 把带字面量的响应拆成 (前缀, 字面量) 元组，字面量之后的属性
    作为单独的 bytes 项紧随其后。

    Returns:
        [(属性文本, 头部字节)]
    """
    messages: List[List[bytes]] = []
    for item in data:
        if item is None:
            continue
        if isinstance(item, tuple):
            messages.append([item[0], item[1] or b""])
        elif messages and not _FETCH_START.match(item):
            messages[-1][0] += b" " + item
        else:
            messages.append([item, b""])
    return [(meta, headers) for meta, headers in messages]


def parse_message_summary(meta: bytes, headers: bytes) -> Optional[MessageSummary]:
    """解析单封邮件的 FETCH 响应，缺少 UID 时返回 None"""
    uid_match = _UID.search(meta)
    if uid_match is None:
        return None

    flags_match = _FLAGS.search(meta)
    flags = tuple(flags_match.group(1).decode().split()) if flags_match else ()

    msg = BytesHeaderParser().parsebytes(headers)
    return MessageSummary(
        uid=int(uid_match.group(1)),
        flags=flags,
        subject=_decode_header_value(msg.get("Subject")),
        froms=_parse_addresses(msg.get_all("From")),
        senders=_parse_addresses(msg.get_all("Sender")),
        sent_date=_parse_date(msg.get("Date")),
        received_date=_parse_internaldate(meta),
    )


class ImapMailboxSession(MailboxSession):
    """
    基于 imaplib 的邮箱会话

    使用 UID 命令操作单封邮件，按序号区间分批收取邮件摘要，
    只取信封头部，不下载正文，也不改变已读状态。
    """

    def __init__(
        self,
        imap: imaplib.IMAP4,
        address: str,
        batch_size: int = 20,
        logger: Optional[logging.Logger] = None,
    ):
        self._imap = imap
        self._address = address
        self._batch_size = max(batch_size, 1)
        self._logger = logger or logging.getLogger(__name__)

    def login(self, username: str, password: str) -> None:
        try:
            self._logger.debug(f"Authenticating as {username}")
            self._imap.login(username, password)
        except imaplib.IMAP4.error as e:
            raise MailboxConnectionError(self._address, f"login failed for {username}: {e}")

    def select(self, mailbox: str) -> MailboxStatus:
        try:
            status, data = self._imap.select(_quote(mailbox))
        except imaplib.IMAP4.error as e:
            raise MailboxConnectionError(self._address, f"cannot select {mailbox}: {e}")

        if status != "OK":
            raise MailboxConnectionError(
                self._address, f"cannot select {mailbox}: {self._describe(data)}"
            )

        try:
            messages = int(data[0])
        except (TypeError, ValueError, IndexError):
            messages = 0
        return MailboxStatus(name=mailbox, messages=messages)

    def list_mailboxes(self, pattern: str = "*") -> List[MailboxInfo]:
        status, data = self._imap.list('""', _quote(pattern or "*"))
        if status != "OK":
            raise MailboxOperationError("list mailboxes", 0, self._describe(data))

        mailboxes = []
        for line in data:
            if isinstance(line, tuple):
                line = _LITERAL_SIZE.sub(b"", line[0]) + b'"' + line[1] + b'"'
            if not line:
                continue
            match = _LIST_LINE.match(line)
            if match is None:
                self._logger.debug(f"Unparsable LIST response: {line!r}")
                continue
            name = match.group("name").decode(errors="replace").strip()
            if name.startswith('"') and name.endswith('"'):
                name = name[1:-1].replace('\\"', '"').replace("\\\\", "\\")
            flags = match.group("flags").decode().split()
            mailboxes.append(
                MailboxInfo(name=name, has_children="\\HasChildren" in flags)
            )
        return mailboxes

    def fetch(
        self,
        start: int,
        stop: int,
        on_message: Callable[[MessageSummary], None],
    ) -> None:
        first = max(start, 1)
        while first <= stop:
            last = min(first + self._batch_size - 1, stop)
            try:
                status, data = self._imap.fetch(f"{first}:{last}", FETCH_ITEMS)
            except (imaplib.IMAP4.error, OSError) as e:
                raise MailboxFetchError(f"FETCH {first}:{last} failed: {e}") from e

            if status != "OK":
                raise MailboxFetchError(f"FETCH {first}:{last} failed: {self._describe(data)}")

            for meta, headers in group_fetch_response(data):
                summary = parse_message_summary(meta, headers)
                if summary is None:
                    self._logger.debug(f"Skip a FETCH response without UID: {meta!r}")
                    continue
                on_message(summary)

            first = last + 1

    def mark_read(self, uid: int) -> None:
        self._uid_command("set read", uid, "STORE", str(uid), "+FLAGS.SILENT", f"({SEEN_FLAG})")

    def move(self, uid: int, mailbox: str) -> None:
        if "MOVE" in self._imap.capabilities:
            self._uid_command("move", uid, "MOVE", str(uid), _quote(mailbox))
            return

        self._uid_command("move", uid, "COPY", str(uid), _quote(mailbox))
        self._uid_command("move", uid, "STORE", str(uid), "+FLAGS.SILENT", "(\\Deleted)")
        if "UIDPLUS" in self._imap.capabilities:
            self._uid_command("move", uid, "EXPUNGE", str(uid))
        else:
            try:
                self._imap.expunge()
            except imaplib.IMAP4.error as e:
                raise MailboxOperationError("move", uid, str(e))

    def logout(self) -> None:
        try:
            # close() 只能在 SELECTED 状态调用
            if self._imap.state == "SELECTED":
                self._imap.close()
        except Exception as e:
            self._logger.debug(f"Error during close: {e}")

        try:
            self._imap.logout()
        except Exception as e:
            self._logger.debug(f"Error during logout: {e}")

    def terminate(self) -> None:
        try:
            self._imap.shutdown()
        except OSError as e:
            self._logger.debug(f"Error during shutdown: {e}")

    def _uid_command(self, operation: str, uid: int, command: str, *args: str) -> None:
        try:
            status, data = self._imap.uid(command, *args)
        except imaplib.IMAP4.error as e:
            raise MailboxOperationError(operation, uid, str(e))
        if status != "OK":
            raise MailboxOperationError(operation, uid, self._describe(data))

    @staticmethod
    def _describe(data) -> str:
        if not data:
            return "no response"
        first = data[0]
        if isinstance(first, bytes):
            return first.decode(errors="replace")
        return str(first)


class ImapMailboxClient(MailboxClient):
    """
    IMAP 远程邮箱客户端

    使用 Python 标准库 imaplib 建立连接，支持：
    - SSL/TLS 安全连接（默认端口 993）和明文连接（默认端口 143）
    - 跳过证书校验（自签名证书的私有邮件服务器）
    """

    DEFAULT_TIMEOUT = 30  # 秒

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        batch_size: int = 20,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            timeout: 套接字超时（秒）
            batch_size: 每条 FETCH 命令收取的邮件数
            logger: 可选的日志记录器
        """
        self._timeout = timeout
        self._batch_size = batch_size
        self._logger = logger or logging.getLogger(__name__)

    def connect(
        self,
        address: str,
        use_tls: bool = True,
        skip_tls_verify: bool = False,
    ) -> MailboxSession:
        host, port = parse_address(address, use_tls)

        try:
            self._logger.debug(f"Connecting to {host}:{port}")
            if use_tls:
                imap = imaplib.IMAP4_SSL(
                    host=host,
                    port=port,
                    ssl_context=self._ssl_context(skip_tls_verify),
                    timeout=self._timeout,
                )
            else:
                imap = imaplib.IMAP4(host=host, port=port, timeout=self._timeout)
        except Exception as e:
            raise MailboxConnectionError(address, str(e)) from e

        self._logger.debug(f"Successfully connected to {host}:{port}")
        return ImapMailboxSession(imap, address, self._batch_size, self._logger)

    @staticmethod
    def _ssl_context(skip_tls_verify: bool) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if skip_tls_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context
