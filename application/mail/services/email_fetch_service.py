"""邮件收取引擎"""

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from domain.mail.entities.email import Email
from domain.mail.services.email_handler import EmailHandler, filter_emails
from domain.mail.services.mailbox_client import (
    INBOX,
    MailboxClient,
    MailboxConnectionError,
    MailboxFetchError,
    MailboxSession,
)
from domain.mail.value_objects.message_summary import MailboxInfo, MailboxStatus
from domain.mailbox.value_objects.mailbox_config import MailboxConfig

_END_OF_STREAM = object()


@dataclass
class FetchResult:
    """
    单轮收取结果

    Attributes:
        emails: 通过处理器链的邮件，按 uid 降序排列
        more: 是否可能还有更早的新邮件
        next_stop: 下一轮收取窗口的结束序号（more 为 True 时有效）
    """

    emails: List[Email] = field(default_factory=list)
    more: bool = False
    next_stop: int = 0


def compute_fetch_window(count: int, max_messages: int) -> Tuple[int, int]:
    """
    计算收取窗口 [start, stop]

    stop 为邮箱当前邮件数；邮件数超过 max_messages 时
    start = stop - max_messages - 1，否则为 0。
    """
    stop = max(count, 0)
    start = stop - max_messages - 1 if stop > max_messages else 0
    return start, stop


class EmailFetchService:
    """
    邮件收取引擎

    通过 MailboxClient 从远程邮箱收取最近的一批邮件：
    - 连接、登录、选中邮箱，计算收取窗口
    - 在线程池中批量收取，邮件摘要经队列流式送回事件循环
    - 同时等待取消、收取完成信号和下一封邮件
    - 收取结束后执行处理器链，按 uid 降序排列通过的邮件

    所有阻塞的邮箱操作都在线程池中执行，不会阻塞其它控制器。
    """

    def __init__(
        self,
        client: MailboxClient,
        executor: Optional[Executor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化收取引擎

        Args:
            client: 远程邮箱客户端
            executor: 执行阻塞操作的线程池，默认使用事件循环的默认线程池
            logger: 可选的日志记录器
        """
        self._client = client
        self._executor = executor
        self._logger = logger or logging.getLogger(__name__)

    async def fetch_emails(
        self,
        config: MailboxConfig,
        handlers: Sequence[EmailHandler] = (),
        mailbox: str = INBOX,
        stop: Optional[int] = None,
    ) -> FetchResult:
        """
        收取邮件

        Args:
            config: 邮箱连接配置
            handlers: 处理器链
            mailbox: 邮箱名称，为空时使用 INBOX
            stop: 收取窗口的结束序号，None 表示从最新一封开始

        Returns:
            FetchResult

        Raises:
            MailboxConnectionError: 连接、认证或选中邮箱失败
            MailboxFetchError: 收取过程中失败，已收取的邮件仍经过处理器链并附在异常上
            asyncio.CancelledError: 收取被取消，已收取的邮件全部丢弃
        """
        config.ensure_complete()
        mailbox = mailbox or INBOX
        loop = asyncio.get_running_loop()

        session, status = await self._open(loop, config, mailbox)
        count = status.messages if stop is None else min(stop, status.messages)
        start_id, stop_id = compute_fetch_window(count, config.max_messages)

        terminated = False
        try:
            if stop_id <= 0:
                self._logger.debug(f"No emails in {mailbox} of {config.username}")
                return FetchResult()
            return await self._fetch_window(
                loop, session, config, handlers, mailbox, start_id, stop_id
            )
        except asyncio.CancelledError:
            terminated = True
            session.terminate()
            raise
        finally:
            if not terminated:
                await self._close(loop, session)

    async def get_mailboxes(self, config: MailboxConfig, pattern: str = "*") -> List[MailboxInfo]:
        """
        列出匹配 pattern 的邮箱

        Example:
            await service.get_mailboxes(config, "*")
            await service.get_mailboxes(config, "Archives.*")
        """
        config.ensure_complete()
        loop = asyncio.get_running_loop()
        session, _ = await self._open(loop, config, None)

        terminated = False
        try:
            return await loop.run_in_executor(
                self._executor, session.list_mailboxes, pattern or "*"
            )
        except asyncio.CancelledError:
            terminated = True
            session.terminate()
            raise
        finally:
            if not terminated:
                await self._close(loop, session)

    async def _fetch_window(
        self,
        loop: asyncio.AbstractEventLoop,
        session: MailboxSession,
        config: MailboxConfig,
        handlers: Sequence[EmailHandler],
        mailbox: str,
        start_id: int,
        stop_id: int,
    ) -> FetchResult:
        messages: asyncio.Queue = asyncio.Queue()

        def on_message(summary) -> None:
            loop.call_soon_threadsafe(messages.put_nowait, summary)

        def bulk_fetch() -> None:
            try:
                session.fetch(start_id, stop_id, on_message)
            finally:
                loop.call_soon_threadsafe(messages.put_nowait, _END_OF_STREAM)

        done = loop.run_in_executor(self._executor, bulk_fetch)
        done.add_done_callback(self._consume_fetch_outcome)

        emails, error = await self._drain(done, messages, session, mailbox)
        # Newness is judged by the read flag at fetch time, before handlers run.
        all_unread = bool(emails) and all(not e.is_read for e in emails)

        forwarded = await loop.run_in_executor(
            self._executor, filter_emails, emails, list(handlers), self._logger
        )
        forwarded.sort(key=lambda e: e.uid, reverse=True)

        self._logger.info(
            f"Fetched {len(emails)} email(s) from {mailbox} of {config.username} "
            f"in [{start_id}, {stop_id}], {len(forwarded)} passed the handlers"
        )

        if error is not None:
            raise MailboxFetchError(
                f"Failed to fetch emails from {mailbox} of {config.username}: {error}",
                emails=forwarded,
            ) from error

        # Moving expunges messages and shifts sequence numbers.
        moved = any(e.mailbox != mailbox for e in emails)
        window = stop_id - max(start_id, 1) + 1
        more = (
            bool(handlers)
            and start_id > 1
            and all_unread
            and not moved
            and len(forwarded) >= window
        )
        return FetchResult(
            emails=forwarded,
            more=more,
            next_stop=start_id - 1 if more else 0,
        )

    async def _drain(
        self,
        done: "asyncio.Future[None]",
        messages: asyncio.Queue,
        session: MailboxSession,
        mailbox: str,
    ) -> Tuple[List[Email], Optional[BaseException]]:
        """
        消费邮件流，直到流结束或收到失败信号

        Returns:
            (已收取的邮件, 收取错误)
        """
        emails: List[Email] = []
        error: Optional[BaseException] = None
        completed = False
        getter: Optional[asyncio.Future] = None

        try:
            while True:
                if getter is None:
                    getter = asyncio.ensure_future(messages.get())

                waits = {getter} if completed else {getter, done}
                finished, _ = await asyncio.wait(waits, return_when=asyncio.FIRST_COMPLETED)

                if not completed and done in finished:
                    completed = True
                    error = done.exception()
                    if error is not None:
                        break

                if getter in finished:
                    item = getter.result()
                    getter = None
                    if item is _END_OF_STREAM:
                        if not completed:
                            await asyncio.wait({done})
                            error = done.exception()
                        break
                    emails.append(Email.from_summary(item, mailbox, session))
        finally:
            if getter is not None:
                getter.cancel()

        while not messages.empty():
            item = messages.get_nowait()
            if item is not _END_OF_STREAM:
                emails.append(Email.from_summary(item, mailbox, session))

        return emails, error

    async def _open(
        self,
        loop: asyncio.AbstractEventLoop,
        config: MailboxConfig,
        mailbox: Optional[str],
    ) -> Tuple[MailboxSession, Optional[MailboxStatus]]:
        future = loop.run_in_executor(self._executor, self._connect, config, mailbox)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            future.add_done_callback(self._terminate_opened)
            raise

    def _connect(
        self, config: MailboxConfig, mailbox: Optional[str]
    ) -> Tuple[MailboxSession, Optional[MailboxStatus]]:
        """连接、登录并选中邮箱（在线程池中执行）"""
        try:
            session = self._client.connect(
                config.address, config.use_tls, config.skip_tls_verify
            )
        except MailboxConnectionError:
            raise
        except Exception as e:
            raise MailboxConnectionError(config.address, str(e)) from e

        try:
            session.login(config.username, config.password)
            status = session.select(mailbox) if mailbox else None
        except MailboxConnectionError:
            session.terminate()
            raise
        except Exception as e:
            session.terminate()
            raise MailboxConnectionError(config.address, str(e)) from e

        return session, status

    async def _close(self, loop: asyncio.AbstractEventLoop, session: MailboxSession) -> None:
        try:
            await loop.run_in_executor(self._executor, session.logout)
        except Exception as e:
            self._logger.debug(f"Error during logout: {e}")

    def _terminate_opened(self, future: "asyncio.Future") -> None:
        if future.cancelled() or future.exception() is not None:
            return
        session, _ = future.result()
        session.terminate()

    def _consume_fetch_outcome(self, future: "asyncio.Future") -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.debug(f"Bulk fetch finished with error: {error}")
