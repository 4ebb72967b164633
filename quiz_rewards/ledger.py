import logging
import uuid
from typing import Dict, List, Optional

from .scoring import format_amount, to_decimal
from .storage import utc_now_iso

logger = logging.getLogger(__name__)

PENDING_TX_PREFIX = 'pending-tx-'


class AttemptLedger:
    """One record per quiz submission; the only writer of quiz_attempts rows"""

    def __init__(self, store):
        self.store = store

    @staticmethod
    def _normalize(row: Optional[Dict]) -> Optional[Dict]:
        if row is None:
            return None
        attempt = dict(row)
        attempt['reward_amount'] = to_decimal(attempt.get('reward_amount'))
        attempt['reward_claimed'] = bool(attempt.get('reward_claimed'))
        return attempt

    def record(self, user_id: int, quiz_id: int, score: int, reward_amount) -> Dict:
        attempt = self.store.create_attempt({
            'user_id': user_id,
            'quiz_id': quiz_id,
            'score': score,
            'reward_amount': format_amount(reward_amount),
            'reward_claimed': False,
            'transaction_hash': None,
            'completed_at': utc_now_iso(),
        })
        logger.info(f"📝 Attempt {attempt['id']} recorded: user {user_id}, quiz {quiz_id}, score {score}, reward {format_amount(reward_amount)}")
        return self._normalize(attempt)

    def lookup(self, attempt_id: int) -> Optional[Dict]:
        return self._normalize(self.store.get_attempt(attempt_id))

    def lookup_by_user(self, user_id: int) -> List[Dict]:
        return [self._normalize(row) for row in self.store.get_attempts_by_user(user_id)]

    def reserve_claim(self, attempt_id: int) -> Optional[str]:
        """
        Mark the attempt claimed if it is still unclaimed.

        Returns:
            Reservation token to pass to finalize_claim, or None when the
            attempt was already claimed (or does not exist).
        """
        token = f"{PENDING_TX_PREFIX}{uuid.uuid4().hex}"
        reserved = self.store.reserve_attempt_claim(attempt_id, token, utc_now_iso())
        if not reserved:
            logger.warning(f"⚠️ Attempt {attempt_id} already claimed - reservation refused")
            return None
        logger.info(f"🔒 Attempt {attempt_id} reserved for settlement")
        return token

    def finalize_claim(self, attempt_id: int, token: str, transaction_hash: str) -> Optional[Dict]:
        updated = self.store.finalize_attempt_claim(attempt_id, token, transaction_hash)
        if not updated:
            logger.error(f"❌ Attempt {attempt_id} reservation {token} no longer matches - hash {transaction_hash} not recorded")
            return None
        logger.info(f"✅ Attempt {attempt_id} settled with transaction: {transaction_hash}")
        return self._normalize(updated)
