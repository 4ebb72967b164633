from flask import current_app

from .ledger import AttemptLedger
from .settlement import SettlementService
from .stats import StatsAggregator

EXTENSION_KEY = 'quiz_rewards'


class QuizRewardServices:
    """Collaborators built once at startup and shared by the request handlers"""

    def __init__(self, store, chain):
        self.store = store
        self.chain = chain
        self.ledger = AttemptLedger(store)
        self.settlement = SettlementService(self.ledger, store, chain)
        self.stats = StatsAggregator(self.ledger, store)


def get_services() -> QuizRewardServices:
    return current_app.extensions[EXTENSION_KEY]
