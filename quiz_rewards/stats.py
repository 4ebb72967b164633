import logging
from decimal import Decimal, ROUND_HALF_UP

from config import QUIZ_REWARDS_CONFIG
from .scoring import format_amount, to_decimal

logger = logging.getLogger(__name__)


class StatsAggregator:
    """Per-user summary, recomputed from the attempt history on every call"""

    def __init__(self, ledger, store, knowledge_multiplier=None):
        self.ledger = ledger
        self.store = store
        if knowledge_multiplier is None:
            knowledge_multiplier = QUIZ_REWARDS_CONFIG['KNOWLEDGE_SCORE_MULTIPLIER']
        self.knowledge_multiplier = knowledge_multiplier

    def for_user(self, user_id: int) -> dict:
        attempts = self.ledger.lookup_by_user(user_id)

        quizzes = {quiz['id']: quiz for quiz in self.store.get_quizzes_by_ids({a['quiz_id'] for a in attempts})}

        total_correct = sum(attempt['score'] for attempt in attempts)
        total_questions = sum(
            quizzes[attempt['quiz_id']]['question_count']
            for attempt in attempts
            if attempt['quiz_id'] in quizzes
        )
        earned = sum(
            (attempt['reward_amount'] for attempt in attempts if attempt['reward_claimed']),
            Decimal(0)
        )

        if total_questions > 0:
            success_rate = int((Decimal(total_correct) * 100 / total_questions).to_integral_value(rounding=ROUND_HALF_UP))
        else:
            success_rate = 0

        return {
            'quizzesTaken': len(attempts),
            'successRate': success_rate,
            'aptsEarned': format_amount(to_decimal(earned)),
            'knowledgeScore': total_correct * self.knowledge_multiplier,
        }
