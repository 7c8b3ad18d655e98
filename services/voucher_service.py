import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from database import Database
from services.action_codec import ActionKind
from services.action_validator import ActionValidator
from services.catalog_loader import get_catalog
from services.errors import PersistenceError
from services.growth_calculator import GrowthCalculator
from services.ledger_service import LedgerClient
from services.user_service import UserService

logger = logging.getLogger(__name__)


class VoucherService:
    """Validate a requested action, then have the ledger sign it"""

    def __init__(self, catalog=None, validator=None, ledger=None, user_service=None):
        self.db = Database()
        self.catalog = catalog or get_catalog()
        self.validator = validator or ActionValidator(self.catalog, GrowthCalculator())
        self.ledger = ledger or LedgerClient()
        self.user_service = user_service or UserService(self.catalog)

    def issue_voucher(self, wallet_address, action_type, payload, now=None):
        """
        Returns:
            (True, voucher) or (False, reason). A voucher is
            {success, signature, nonce, actionType, data, user, timestamp}
            with nonce and data as decimal strings.

        Raises:
            LedgerError: nonce lookup or signing failed
            PersistenceError: the user could not be loaded
        """
        now = int(now if now is not None else time.time())
        try:
            kind = ActionKind.parse(action_type)
        except ValueError:
            return False, f"Unknown action type: {action_type}"

        session = self.db.get_session()
        try:
            user = self.user_service.find_or_create(session, wallet_address)
            ok, data = self.validator.validate(user, kind, payload, now)
            # Persist a first-sight farm; validation itself changed nothing
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Could not load {wallet_address}: {e}")
        finally:
            session.close()

        if not ok:
            return False, data

        logger.info(f"[VoucherService] {wallet_address} requesting voucher for {action_type}")
        nonce = self.ledger.get_nonce(wallet_address)
        signature = self.ledger.sign_action(wallet_address, action_type, data, nonce)
        logger.info(f"[VoucherService] Voucher issued for {action_type} (nonce {nonce}, {signature[:20]}...)")
        return True, {
            'success': True,
            'signature': signature,
            'nonce': str(nonce),
            'actionType': action_type,
            'data': str(data),
            'user': wallet_address,
            'timestamp': now,
        }
