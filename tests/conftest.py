from decimal import Decimal

import pytest

from main import create_app
from quiz_rewards.ledger import AttemptLedger
from quiz_rewards.storage import MemoryQuizStore

WALLET = '0x' + 'a1' * 20


class FakeChainClient:
    """Stands in for RewardChainClient; records transfers instead of sending them"""

    def __init__(self, configured=True, funded=True, transfer_error=None, confirm_error=None):
        self.is_configured = configured
        self.platform_address = '0x' + 'ab' * 20 if configured else None
        self.funded = funded
        self.funding_error = None
        self.transfer_error = transfer_error
        self.confirm_error = confirm_error
        self.token_decimals = 8
        self.token_symbol = 'G$'
        self.transfers = []
        self.confirmed = []

    def to_base_units(self, amount):
        return int(Decimal(amount) * (10 ** self.token_decimals))

    def account_exists(self, address):
        if self.funding_error:
            raise self.funding_error
        return self.funded

    def is_funded(self, amount_units):
        return self.funded

    def transfer(self, to_address, amount_units):
        if self.transfer_error:
            raise self.transfer_error
        self.transfers.append((to_address, amount_units))
        return '0x' + format(len(self.transfers), '064x')

    def wait_for_confirmation(self, tx_hash):
        if self.confirm_error:
            raise self.confirm_error
        self.confirmed.append(tx_hash)

    def get_token_balance(self, address):
        return Decimal('12.5')

    def explorer_url(self, tx_hash):
        return f"https://explorer.test/tx/{tx_hash}"


def create_quiz(store, question_count=10, reward='5', title='Chain Quiz', category_id=None):
    """Quiz whose correct option for question i is i % 4"""
    quiz = store.create_quiz({
        'title': title,
        'description': 'Test quiz',
        'category_id': category_id,
        'difficulty': 'beginner',
        'question_count': question_count,
        'reward': reward,
        'duration': 5,
    })
    for i in range(question_count):
        store.create_question({
            'quiz_id': quiz['id'],
            'text': f'Question {i + 1}',
            'options': ['A', 'B', 'C', 'D'],
            'correct_option': i % 4,
        })
    return quiz


def answers_with_score(question_count, score):
    """First `score` answers right, the rest wrong"""
    return [i % 4 if i < score else (i + 1) % 4 for i in range(question_count)]


@pytest.fixture
def store():
    return MemoryQuizStore()


@pytest.fixture
def chain():
    return FakeChainClient(funded=True)


@pytest.fixture
def ledger(store):
    return AttemptLedger(store)


@pytest.fixture
def quiz(store):
    return create_quiz(store)


@pytest.fixture
def user(store):
    return store.create_user({
        'username': 'alice',
        'email': 'alice@example.com',
        'password_hash': 'x',
        'wallet_address': WALLET,
    })


@pytest.fixture
def app(store, chain):
    return create_app(
        config_overrides={
            'TESTING': True,
            'SEED_SAMPLE_QUIZZES': False,
            'SESSION_COOKIE_SECURE': False,
        },
        store=store,
        chain=chain,
    )


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, username='bob', password='secret123'):
    return client.post('/api/register', json={
        'username': username,
        'email': f'{username}@example.com',
        'password': password,
        'confirmPassword': password,
    })


@pytest.fixture
def auth_client(client):
    """Logged-in client with a linked wallet"""
    register(client)
    client.put('/api/user/wallet', json={'walletAddress': WALLET})
    return client
