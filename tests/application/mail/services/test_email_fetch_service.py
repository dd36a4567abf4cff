"""EmailFetchService 单元测试"""

import asyncio
import threading

import pytest

from application.mail.services.email_fetch_service import (
    EmailFetchService,
    compute_fetch_window,
)
from domain.common.exceptions import ConfigurationException
from domain.mail.services.email_handler import (
    FilterReadHandler,
    FunctionEmailHandler,
    MoveMailboxHandler,
    SetReadHandler,
    build_email_matcher,
)
from domain.mail.services.mailbox_client import MailboxConnectionError, MailboxFetchError
from domain.mail.value_objects.message_summary import MailboxInfo
from domain.mailbox.value_objects.mailbox_config import MailboxConfig
from tests.fakes import FakeClient, FakeSession, make_summary


@pytest.fixture
def mailbox_config():
    return MailboxConfig(
        address="imap.example.com:993",
        username="alice@example.com",
        password="pw",
        max_messages=100,
    )


def forward_all():
    return FunctionEmailHandler("forward_all", lambda e: True)


class TestComputeFetchWindow:
    """收取窗口计算测试"""

    def test_small_mailbox_fetches_everything(self):
        """测试邮件数不超过上限时从头收取"""
        assert compute_fetch_window(5, 100) == (0, 5)

    def test_large_mailbox_keeps_off_by_one(self):
        """测试邮件数超过上限时 start = stop - N - 1"""
        assert compute_fetch_window(250, 100) == (149, 250)

    def test_empty_mailbox(self):
        """测试空邮箱"""
        assert compute_fetch_window(0, 100) == (0, 0)


class TestFetchEmails:
    """收取流程测试"""

    @pytest.mark.asyncio
    async def test_results_sorted_by_uid_descending(self, mailbox_config):
        """测试结果按 uid 降序排列"""
        session = FakeSession([make_summary(5), make_summary(3), make_summary(7)])
        service = EmailFetchService(FakeClient(session))

        result = await service.fetch_emails(mailbox_config)

        assert [e.uid for e in result.emails] == [7, 5, 3]
        assert result.more is False
        assert session.selected == "INBOX"
        assert session.logged_out is True

    @pytest.mark.asyncio
    async def test_connection_uses_tls_options(self, mailbox_config):
        """测试连接参数来自邮箱配置"""
        client = FakeClient(FakeSession())
        config = MailboxConfig(
            address="mail.internal:143",
            username="u",
            password="p",
            use_tls=False,
            skip_tls_verify=True,
        )

        await EmailFetchService(client).fetch_emails(config)

        assert client.connections == [("mail.internal:143", False, True)]

    @pytest.mark.asyncio
    async def test_handlers_filter_emails(self, mailbox_config):
        """测试处理器链过滤邮件"""
        session = FakeSession([make_summary(1, seen=True), make_summary(2), make_summary(3)])
        service = EmailFetchService(FakeClient(session))

        result = await service.fetch_emails(mailbox_config, [FilterReadHandler()])

        assert [e.uid for e in result.emails] == [3, 2]

    @pytest.mark.asyncio
    async def test_emails_are_bound_to_session(self, mailbox_config):
        """测试邮件可以通过会话修改状态"""
        session = FakeSession([make_summary(4)])
        handler = FunctionEmailHandler("mark", lambda e: e.set_read() or True)

        await EmailFetchService(FakeClient(session)).fetch_emails(mailbox_config, [handler])

        assert session.read_uids == [4]

    @pytest.mark.asyncio
    async def test_empty_mailbox_returns_nothing(self, mailbox_config):
        """测试空邮箱不执行收取"""
        session = FakeSession()

        result = await EmailFetchService(FakeClient(session)).fetch_emails(mailbox_config)

        assert result.emails == []
        assert session.windows == []
        assert session.logged_out is True

    @pytest.mark.asyncio
    async def test_window_respects_max_messages(self):
        """测试只收取最近的一批邮件"""
        session = FakeSession([make_summary(uid) for uid in range(1, 11)])
        config = MailboxConfig(address="a", username="u", password="p", max_messages=3)

        result = await EmailFetchService(FakeClient(session)).fetch_emails(config)

        assert session.windows == [(6, 10)]
        assert [e.uid for e in result.emails] == [10, 9, 8, 7, 6]

    @pytest.mark.asyncio
    async def test_incomplete_config_raises(self):
        """测试凭证不完整时不连接"""
        client = FakeClient()

        with pytest.raises(ConfigurationException):
            await EmailFetchService(client).fetch_emails(MailboxConfig(address="a"))

        assert client.connections == []


class TestFetchEmailsContinuation:
    """多轮收取测试"""

    @pytest.mark.asyncio
    async def test_more_when_whole_window_is_new(self):
        """测试整个窗口都通过处理器链时报告还有更早的邮件"""
        session = FakeSession([make_summary(uid) for uid in range(1, 6)])
        config = MailboxConfig(address="a", username="u", password="p", max_messages=2)
        service = EmailFetchService(FakeClient(session))

        first = await service.fetch_emails(config, [forward_all()])
        second = await service.fetch_emails(config, [forward_all()], stop=first.next_stop)

        assert first.more is True
        assert first.next_stop == 1
        assert [e.uid for e in first.emails] == [5, 4, 3, 2]
        assert [e.uid for e in second.emails] == [1]
        assert second.more is False

    @pytest.mark.asyncio
    async def test_no_more_without_handlers(self):
        """测试没有处理器时不会继续收取"""
        session = FakeSession([make_summary(uid) for uid in range(1, 6)])
        config = MailboxConfig(address="a", username="u", password="p", max_messages=2)

        result = await EmailFetchService(FakeClient(session)).fetch_emails(config)

        assert result.more is False

    @pytest.mark.asyncio
    async def test_no_more_when_some_emails_filtered(self):
        """测试窗口中有邮件被拦截时不会继续收取"""
        summaries = [make_summary(uid, seen=(uid == 4)) for uid in range(1, 6)]
        config = MailboxConfig(address="a", username="u", password="p", max_messages=2)

        result = await EmailFetchService(FakeClient(FakeSession(summaries))).fetch_emails(
            config, [FilterReadHandler()]
        )

        assert result.more is False

    @pytest.mark.asyncio
    async def test_no_more_when_window_already_read(self):
        """测试窗口中的邮件收取时已读，即使全部通过处理器链也不继续收取"""
        summaries = [make_summary(uid, seen=True) for uid in range(1, 6)]
        config = MailboxConfig(address="a", username="u", password="p", max_messages=2)

        result = await EmailFetchService(FakeClient(FakeSession(summaries))).fetch_emails(
            config, [forward_all()]
        )

        assert [e.uid for e in result.emails] == [5, 4, 3, 2]
        assert result.more is False

    @pytest.mark.asyncio
    async def test_more_judged_before_handlers_mark_read(self):
        """测试处理器标记已读不影响新邮件的判断"""
        session = FakeSession([make_summary(uid) for uid in range(1, 6)])
        config = MailboxConfig(address="a", username="u", password="p", max_messages=2)

        result = await EmailFetchService(FakeClient(session)).fetch_emails(
            config, [SetReadHandler(build_email_matcher())]
        )

        assert session.read_uids != []
        assert result.more is True

    @pytest.mark.asyncio
    async def test_no_more_after_move(self):
        """测试移动邮件后序号失效，不继续收取"""
        session = FakeSession([make_summary(uid) for uid in range(1, 6)])
        config = MailboxConfig(address="a", username="u", password="p", max_messages=2)

        result = await EmailFetchService(FakeClient(session)).fetch_emails(
            config,
            [MoveMailboxHandler("Archive", build_email_matcher(subject_pattern="^subject 5$"))],
        )

        assert session.moves == [(5, "Archive")]
        assert result.more is False


class TestFetchEmailsFailures:
    """失败与取消测试"""

    @pytest.mark.asyncio
    async def test_connect_error(self, mailbox_config):
        """测试连接失败抛出 MailboxConnectionError"""
        client = FakeClient(connect_error=OSError("connection refused"))

        with pytest.raises(MailboxConnectionError) as exc_info:
            await EmailFetchService(client).fetch_emails(mailbox_config)

        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_login_error_terminates_session(self, mailbox_config):
        """测试登录失败时关闭已建立的连接"""
        session = FakeSession(
            [make_summary(1)],
            login_error=MailboxConnectionError("imap.example.com", "bad credentials"),
        )

        with pytest.raises(MailboxConnectionError):
            await EmailFetchService(FakeClient(session)).fetch_emails(mailbox_config)

        assert session.terminated is True
        assert session.windows == []

    @pytest.mark.asyncio
    async def test_mid_stream_error_carries_partial_batch(self, mailbox_config):
        """测试收取中途失败时异常携带已收取并过滤的邮件"""
        session = FakeSession(
            [make_summary(1), make_summary(2), make_summary(3)],
            fail_after=2,
        )

        with pytest.raises(MailboxFetchError) as exc_info:
            await EmailFetchService(FakeClient(session)).fetch_emails(
                mailbox_config, [forward_all()]
            )

        assert [e.uid for e in exc_info.value.emails] == [2, 1]
        assert session.logged_out is True

    @pytest.mark.asyncio
    async def test_cancellation_terminates_session(self, mailbox_config):
        """测试取消收取时立即关闭连接，不再登出"""
        block = threading.Event()
        session = FakeSession([make_summary(1), make_summary(2)], block=block)
        service = EmailFetchService(FakeClient(session))
        loop = asyncio.get_running_loop()

        task = asyncio.ensure_future(service.fetch_emails(mailbox_config))
        started = await loop.run_in_executor(None, session.fetch_started.wait, 5)
        assert started
        await asyncio.sleep(0.05)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.terminated is True
        assert session.logged_out is False


class TestGetMailboxes:
    """邮箱列表测试"""

    @pytest.mark.asyncio
    async def test_lists_mailboxes(self, mailbox_config):
        """测试列出邮箱后登出"""
        mailboxes = [MailboxInfo("INBOX"), MailboxInfo("Archives", has_children=True)]
        session = FakeSession(mailboxes=mailboxes)

        result = await EmailFetchService(FakeClient(session)).get_mailboxes(mailbox_config)

        assert result == mailboxes
        assert session.selected is None
        assert session.logged_out is True
