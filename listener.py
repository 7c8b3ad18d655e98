"""
ActionRecorded listener: polls the FarmTreasury contract and reconciles each
confirmed action into the database.

    python listener.py
"""
import logging
import time

import schedule

import settings
from services.errors import LedgerError, PersistenceError, ReconciliationError

logger = logging.getLogger(__name__)


class EventListener:
    def __init__(self, ledger=None, reconciler=None, start_block=None):
        if ledger is None:
            from services.ledger_service import LedgerClient
            ledger = LedgerClient()
        if reconciler is None:
            from services.event_reconciler import EventReconciler
            reconciler = EventReconciler()
        self.ledger = ledger
        self.reconciler = reconciler
        start_block = settings.LISTENER_START_BLOCK if start_block is None else start_block
        self.next_block = None if start_block == 'latest' else int(start_block)

    def poll_once(self):
        """
        Fetch and apply every event since the last poll.

        A failing event is logged and skipped; a failing RPC call leaves the
        cursor where it was so the same range is fetched next time.

        Returns:
            Number of events applied
        """
        try:
            latest = self.ledger.latest_block()
            if self.next_block is None:
                self.next_block = latest
            if self.next_block > latest:
                return 0
            events = self.ledger.fetch_events(self.next_block, latest)
        except LedgerError as e:
            logger.error(f"[Listener] Polling failed: {e}")
            return 0

        applied = 0
        for event in events:
            if self.handle_event(event):
                applied += 1
        self.next_block = latest + 1
        return applied

    def handle_event(self, event):
        logger.info(f"[Listener] Block {event.block_number} tx {event.tx_hash}: "
                    f"{event.user} {event.action_type} data={event.data} ts={event.timestamp}")
        try:
            self.reconciler.process_event(event.user, event.action_type, event.data, event.timestamp)
        except ReconciliationError as e:
            logger.error(f"[Listener] Could not apply {event.action_type} for {event.user}: {e}")
            return False
        except PersistenceError as e:
            logger.error(f"[Listener] Store error on {event.action_type} for {event.user}: {e}")
            return False
        except Exception:
            logger.exception(f"[Listener] Unexpected error on {event.action_type} for {event.user}")
            return False
        logger.info(f"[Listener] Applied {event.action_type} for {event.user}")
        return True


def main():
    settings.configure_logging()
    listener = EventListener()
    listener.ledger.check_config()
    logger.info(f"[Listener] Watching {listener.ledger.contract_address} on chain {listener.ledger.chain_id}")

    schedule.every(settings.LISTENER_POLL_SECONDS).seconds.do(listener.poll_once)
    listener.poll_once()
    try:
        while True:
            schedule.run_pending()
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("[Listener] Shutting down")


if __name__ == "__main__":
    main()
