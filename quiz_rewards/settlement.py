import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from .blockchain import ChainError, mask_wallet_address
from .scoring import format_amount

logger = logging.getLogger(__name__)

CONFIRMED = 'confirmed'
SIMULATED = 'simulated'
REJECTED = 'rejected'

# Reasons for a simulated claim that are not transfer failures
SIMULATION_REASONS = ('not_configured', 'not_funded')


@dataclass(frozen=True)
class SettlementOutcome:
    status: str
    transaction_hash: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def confirmed(cls, transaction_hash):
        return cls(CONFIRMED, transaction_hash)

    @classmethod
    def simulated(cls, transaction_hash, reason):
        return cls(SIMULATED, transaction_hash, reason)

    @classmethod
    def rejected(cls, reason):
        return cls(REJECTED, None, reason)

    @property
    def simulated_claim(self) -> bool:
        return self.status == SIMULATED

    @property
    def transfer_failed(self) -> bool:
        return self.status == SIMULATED and self.reason not in SIMULATION_REASONS

    @property
    def accepted(self) -> bool:
        return self.status != REJECTED


def placeholder_tx_hash(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


class SettlementService:
    """
    Pays an attempt's reward to a wallet and records the outcome on the attempt.

    Ownership, wallet presence and amount checks belong to the caller. Double
    claims are refused by the ledger reservation. Transfer failures never reach
    the caller: the attempt is marked claimed with an error placeholder hash and
    the outcome is reported as simulated.
    """

    def __init__(self, ledger, store, chain, transfer_lock=None):
        self.ledger = ledger
        self.store = store
        self.chain = chain
        # One funding account, one nonce sequence
        self._transfer_lock = transfer_lock or threading.Lock()

    def settle(self, attempt, wallet_address: str) -> SettlementOutcome:
        attempt_id = attempt['id']
        amount = attempt['reward_amount']

        token = self.ledger.reserve_claim(attempt_id)
        if token is None:
            return SettlementOutcome.rejected('already_claimed')

        logger.info(f"💰 Settling attempt {attempt_id}: {format_amount(amount)} to {mask_wallet_address(wallet_address)}")

        with self._transfer_lock:
            outcome = self._execute_transfer(wallet_address, amount)

        try:
            self.ledger.finalize_claim(attempt_id, token, outcome.transaction_hash)
        except Exception as e:
            logger.error(f"❌ Attempt {attempt_id} left at {token}: could not record {outcome.status} transaction {outcome.transaction_hash}: {e}")
            raise
        new_balance = self.store.increment_user_balance(attempt['user_id'], amount)
        logger.info(f"💳 User {attempt['user_id']} balance credited {format_amount(amount)} (now {new_balance})")

        return outcome

    def _execute_transfer(self, wallet_address: str, amount) -> SettlementOutcome:
        if not self.chain.is_configured:
            logger.warning("⚠️ Reward wallet not configured - simulating transfer")
            return SettlementOutcome.simulated(placeholder_tx_hash('dev-tx'), 'not_configured')

        amount_units = self.chain.to_base_units(amount)

        try:
            funded = (self.chain.account_exists(self.chain.platform_address)
                      and self.chain.is_funded(amount_units))
        except ChainError as e:
            logger.warning(f"⚠️ Could not check platform wallet funding: {e}")
            funded = False

        if not funded:
            logger.info(f"🧪 Simulating transfer of {format_amount(amount)} to {mask_wallet_address(wallet_address)}")
            return SettlementOutcome.simulated(placeholder_tx_hash('dev-tx'), 'not_funded')

        try:
            tx_hash = self.chain.transfer(wallet_address, amount_units)
            self.chain.wait_for_confirmation(tx_hash)
            return SettlementOutcome.confirmed(tx_hash)
        except ChainError as e:
            logger.error(f"❌ Reward transfer failed ({e.reason}): {e}")
            return SettlementOutcome.simulated(placeholder_tx_hash('error-tx'), e.reason)
        except Exception as e:
            logger.error(f"❌ Unexpected reward transfer error: {e}", exc_info=True)
            return SettlementOutcome.simulated(placeholder_tx_hash('error-tx'), 'unexpected_error')
