"""
Email Manager - 邮箱新邮件通知服务入口

运行：
    uv run python main.py

配置：
    .env / 环境变量见 infrastructure/config/settings.py，
    邮箱定义见 MAILBOX_CONFIG_FILE（默认 config/mailboxes.json）
"""

import asyncio
import contextlib
import logging
import signal
import sys

from application.mail.services.mailbox_manager import MailboxManager
from domain.common.exceptions import ConfigurationException, MailboxSyncError
from infrastructure.config.settings import get_settings
from infrastructure.containers import Bootstrap, bootstrap
from infrastructure.logging.logging_config import configure_logging

logger = logging.getLogger("main")


async def reload_periodically(manager: MailboxManager, interval: float) -> None:
    """周期性地重新加载邮箱定义并同步控制器"""
    loop = asyncio.get_running_loop()
    while True:
        await asyncio.sleep(interval)
        try:
            await loop.run_in_executor(None, manager.sync)
        except (ConfigurationException, MailboxSyncError) as e:
            logger.error(f"Failed to resync the mailbox controllers: {e}")


async def run(boot: Bootstrap) -> int:
    """
    启动所有控制器，直到收到 SIGINT / SIGTERM

    Returns:
        进程退出码
    """
    settings = boot.config.settings()
    manager = boot.app.mailbox_manager()

    try:
        manager.sync()
    except (ConfigurationException, MailboxSyncError) as e:
        logger.error(f"Failed to sync the mailbox controllers: {e}")
        return 1

    stopping = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stopping.set)
        except NotImplementedError:
            # Windows 事件循环不支持，依赖 KeyboardInterrupt
            logger.debug(f"Signal handler for {sig.name} is not supported")

    manager.start()
    logger.info(f"{settings.app_name} {settings.app_version} started")

    reloader = None
    if settings.config_reload_interval > 0:
        reloader = loop.create_task(
            reload_periodically(manager, settings.config_reload_interval)
        )

    await stopping.wait()
    logger.info("Shutting down")

    if reloader is not None:
        reloader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reloader

    await manager.stop()
    return 0


def main() -> None:
    settings = get_settings()
    configure_logging(settings)

    boot = bootstrap(settings)
    try:
        exit_code = asyncio.run(run(boot))
    except KeyboardInterrupt:
        exit_code = 0
    finally:
        boot.infra.fetch_executor().shutdown(wait=False, cancel_futures=True)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
