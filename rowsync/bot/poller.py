"""
Bot Poller - Trigger sync runs from Telegram messages

One cycle:
    poll       fetch updates after the last acknowledged id
    authorize  keep messages sent after startup, by an allowed user,
               whose text equals the trigger phrase
    trigger    dedupe by chat, tell each chat the sync is starting
    sync       one run shared by every triggering chat
    report     send the per-item summary back to each chat

The offset advances past every update seen, authorized or not, so nothing
is delivered twice. The loop sleeps a fixed interval after every cycle. Poll
errors are counted; once the consecutive count exceeds max_errors the last
error is raised and the loop ends.
"""

import logging
import time
from typing import Callable, List, Optional

from rowsync.interfaces import ItemResult, MessagingGatewayInterface, Update
from rowsync.workflows.schema import BotSpec

logger = logging.getLogger(__name__)

STARTING_NOTICE = 'starting sync...'


def format_report(results: List[ItemResult]) -> str:
    """Chat-facing summary of a run."""
    report = ''
    for result in results:
        report += f"{result.name}\n"
        if result.error:
            report += f"error: {result.error}\n"
        report += f"records: total {result.total}, done {result.done}, failed {result.failed}\n"
    return report or 'nothing to sync\n'


class BotPoller:
    """Single-threaded long-poll loop."""

    def __init__(
        self,
        gateway: MessagingGatewayInterface,
        settings: BotSpec,
        run_sync: Callable[[], List[ItemResult]],
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize BotPoller.

        Args:
            gateway: Messaging gateway used for polling and replies
            settings: Allowed users, trigger phrase, interval, error threshold
            run_sync: Runs one sync and returns per-item results
            clock: Time source (seconds since epoch)
            sleep: Sleep function
        """
        self.gateway = gateway
        self.settings = settings
        self.run_sync = run_sync
        self.sleep = sleep
        self.users = set(settings.users)
        self.start_time = int(clock())
        self.offset = 0
        self.errors = 0

    def authorize(self, update: Update) -> bool:
        """Check one update against time, sender and text."""
        if not update.has_message:
            logger.debug(f"Update {update.update_id}: no message")
            return False
        if update.date < self.start_time:
            logger.debug(f"Update {update.update_id}: sent before startup")
            return False
        if update.sender_id not in self.users:
            logger.warning(f"Update {update.update_id}: user {update.sender_id} not allowed")
            return False
        if update.text != self.settings.trigger_message:
            logger.debug(f"Update {update.update_id}: not a trigger message")
            return False
        return True

    def poll(self) -> List[int]:
        """
        Fetch updates and return the chats that requested a sync.

        Raises:
            Exception: Whatever the gateway raised
        """
        updates = self.gateway.get_updates(self.offset, self.settings.poll_timeout)
        logger.info(f"Received {len(updates)} update(s)")

        chats: List[int] = []
        for update in updates:
            if update.update_id == 0:
                logger.debug("Ignoring update with id 0")
                continue
            self.offset = max(self.offset, update.update_id)
            if self.authorize(update) and update.chat_id not in chats:
                chats.append(update.chat_id)
        return chats

    def _notify(self, chats: List[int], text: str) -> None:
        for chat in chats:
            try:
                self.gateway.send_message(str(chat), text)
            except Exception as e:
                logger.error(f"Failed to notify chat {chat}: {e}")

    def serve(self, chats: List[int]) -> str:
        """Run one sync for the triggering chats and report back."""
        logger.info(f"Received {len(chats)} sync request(s)")
        self._notify(chats, STARTING_NOTICE)

        logger.info("Starting sync...")
        try:
            report = format_report(self.run_sync())
        except Exception as e:
            logger.error(f"Sync failed: {e}", exc_info=True)
            report = f"sync failed: {e}"

        logger.info(report)
        self._notify(chats, report)
        return report

    def run_cycle(self) -> Optional[str]:
        """
        One polling cycle without the trailing sleep.

        Returns:
            The report sent, or None when nothing was triggered

        Raises:
            Exception: The poll error once consecutive errors exceed max_errors
        """
        try:
            chats = self.poll()
        except Exception as e:
            self.errors += 1
            logger.error(f"Listening error ({self.errors}/{self.settings.max_errors}): {e}")
            if self.errors > self.settings.max_errors:
                raise
            return None

        self.errors = 0
        if not chats:
            return None
        return self.serve(chats)

    def run(self) -> None:
        """Poll forever; returns only by raising the fatal poll error."""
        logger.info("Listening...")
        while True:
            self.run_cycle()
            self.sleep(self.settings.refresh_interval)
