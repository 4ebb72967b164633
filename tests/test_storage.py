from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from quiz_rewards.storage import SupabaseQuizStore


def supabase_returning(data):
    """Mock client whose every query chain ends in .execute().data == data"""
    client = MagicMock()
    query = MagicMock()
    for method in ('select', 'insert', 'update', 'eq', 'in_', 'order', 'limit'):
        getattr(query, method).return_value = query
    query.execute.return_value.data = data
    client.table.return_value = query
    client.rpc.return_value.execute.return_value.data = data
    return client, query


class TestSupabaseQuizStore:

    def test_reserve_claim_is_conditional(self):
        client, query = supabase_returning([{'id': 1, 'reward_claimed': True}])

        row = SupabaseQuizStore(client).reserve_attempt_claim(1, 'pending-tx-1', '2026-01-01T00:00:00+00:00')

        assert row['reward_claimed'] is True
        query.eq.assert_any_call('reward_claimed', False)

    def test_lost_reservation(self):
        client, _ = supabase_returning([])
        assert SupabaseQuizStore(client).reserve_attempt_claim(1, 'pending-tx-1', 'now') is None

    def test_finalize_matches_token(self):
        client, query = supabase_returning([{'id': 1, 'transaction_hash': '0xabc'}])

        SupabaseQuizStore(client).finalize_attempt_claim(1, 'pending-tx-1', '0xabc')

        query.eq.assert_any_call('transaction_hash', 'pending-tx-1')

    def test_balance_increment_uses_rpc(self):
        client, _ = supabase_returning('7.25000000')

        balance = SupabaseQuizStore(client).increment_user_balance(3, Decimal('3.5'))

        client.rpc.assert_called_once_with('increment_user_balance', {'p_user_id': 3, 'p_amount': '3.50000000'})
        assert balance == Decimal('7.25')

    def test_reads_retry_on_connection_errors(self, monkeypatch):
        monkeypatch.setattr('supabase_client.time.sleep', lambda seconds: None)
        client, query = supabase_returning([{'id': 5}])
        query.execute.side_effect = [Exception('Server disconnected'), MagicMock(data=[{'id': 5}])]

        assert SupabaseQuizStore(client).get_quiz(5) == {'id': 5}
        assert query.execute.call_count == 2

    def test_finalize_retries_on_connection_errors(self, monkeypatch):
        monkeypatch.setattr('supabase_client.time.sleep', lambda seconds: None)
        client, query = supabase_returning([])
        settled = {'id': 1, 'transaction_hash': '0xabc'}
        query.execute.side_effect = [Exception('Server disconnected'), MagicMock(data=[settled])]

        row = SupabaseQuizStore(client).finalize_attempt_claim(1, 'pending-tx-1', '0xabc')

        assert row == settled
        assert query.execute.call_count == 2

    def test_invalid_question_is_not_inserted(self):
        client, query = supabase_returning([])

        with pytest.raises(ValueError):
            SupabaseQuizStore(client).create_question({'quiz_id': 1, 'text': 'Q', 'options': ['A', 'B'], 'correct_option': 2})
        query.insert.assert_not_called()


class TestMemoryQuizStore:

    def test_rows_are_copies(self, store, quiz):
        store.get_quiz(quiz['id'])['title'] = 'changed'
        assert store.get_quiz(quiz['id'])['title'] == 'Chain Quiz'

    def test_balance_increment(self, store, user):
        store.increment_user_balance(user['id'], Decimal('1.5'))
        assert store.increment_user_balance(user['id'], '2') == Decimal('3.5')
        assert store.get_user(user['id'])['balance'] == '3.50000000'

    def test_unknown_user_balance(self, store):
        assert store.increment_user_balance(99, '1') is None

    @pytest.mark.parametrize('options, correct_option', [
        (['A', 'B', 'C', 'D'], 4),
        (['A', 'B'], -1),
        ([], 0),
        (['A', 'B'], None),
        (['A', 'B'], True),
    ])
    def test_correct_option_must_index_options(self, store, quiz, options, correct_option):
        with pytest.raises(ValueError):
            store.create_question({'quiz_id': quiz['id'], 'text': 'Q', 'options': options, 'correct_option': correct_option})
        assert len(store.get_questions(quiz['id'])) == 10
