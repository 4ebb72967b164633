import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from supabase_client import retry_on_connection_error
from .scoring import format_amount, to_decimal

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_question(question: Dict) -> Dict:
    """correct_option must index into options"""
    options = question.get('options') or []
    correct_option = question.get('correct_option')
    if isinstance(correct_option, bool) or not isinstance(correct_option, int) \
            or not 0 <= correct_option < len(options):
        raise ValueError(f"correct_option {correct_option!r} is not an index into {len(options)} options")
    return question


class SupabaseQuizStore:
    """Storage backed by the Supabase tables described in supabase_client.py"""

    def __init__(self, client):
        self.client = client
        logger.info("🗄️ Supabase quiz store initialized")

    # ---- users ----

    @retry_on_connection_error()
    def get_user(self, user_id: int) -> Optional[Dict]:
        result = self.client.table('users').select('*').eq('id', user_id).limit(1).execute()
        return result.data[0] if result.data else None

    @retry_on_connection_error()
    def get_user_by_username(self, username: str) -> Optional[Dict]:
        result = self.client.table('users').select('*').eq('username', username).limit(1).execute()
        return result.data[0] if result.data else None

    @retry_on_connection_error()
    def get_user_by_email(self, email: str) -> Optional[Dict]:
        result = self.client.table('users').select('*').eq('email', email).limit(1).execute()
        return result.data[0] if result.data else None

    def create_user(self, user: Dict) -> Dict:
        result = self.client.table('users').insert(user).execute()
        return result.data[0]

    def update_user_wallet(self, user_id: int, wallet_address: str) -> Optional[Dict]:
        result = self.client.table('users')\
            .update({'wallet_address': wallet_address})\
            .eq('id', user_id)\
            .execute()
        return result.data[0] if result.data else None

    def increment_user_balance(self, user_id: int, amount):
        result = self.client.rpc('increment_user_balance', {
            'p_user_id': user_id,
            'p_amount': format_amount(amount)
        }).execute()
        return to_decimal(result.data) if result.data is not None else None

    # ---- catalog ----

    @retry_on_connection_error()
    def get_categories(self) -> List[Dict]:
        return self.client.table('categories').select('*').order('id').execute().data or []

    def create_category(self, category: Dict) -> Dict:
        return self.client.table('categories').insert(category).execute().data[0]

    @retry_on_connection_error()
    def get_quizzes(self, category_id: Optional[int] = None) -> List[Dict]:
        query = self.client.table('quizzes').select('*')
        if category_id is not None:
            query = query.eq('category_id', category_id)
        return query.order('created_at', desc=True).order('id', desc=True).execute().data or []

    @retry_on_connection_error()
    def get_quiz(self, quiz_id: int) -> Optional[Dict]:
        result = self.client.table('quizzes').select('*').eq('id', quiz_id).limit(1).execute()
        return result.data[0] if result.data else None

    @retry_on_connection_error()
    def get_quizzes_by_ids(self, quiz_ids) -> List[Dict]:
        quiz_ids = list(quiz_ids)
        if not quiz_ids:
            return []
        return self.client.table('quizzes').select('*').in_('id', quiz_ids).execute().data or []

    def create_quiz(self, quiz: Dict) -> Dict:
        return self.client.table('quizzes').insert(quiz).execute().data[0]

    @retry_on_connection_error()
    def get_questions(self, quiz_id: int) -> List[Dict]:
        return self.client.table('questions')\
            .select('*')\
            .eq('quiz_id', quiz_id)\
            .order('id')\
            .execute().data or []

    def create_question(self, question: Dict) -> Dict:
        return self.client.table('questions').insert(validate_question(question)).execute().data[0]

    # ---- attempts ----

    def create_attempt(self, attempt: Dict) -> Dict:
        return self.client.table('quiz_attempts').insert(attempt).execute().data[0]

    @retry_on_connection_error()
    def get_attempt(self, attempt_id: int) -> Optional[Dict]:
        result = self.client.table('quiz_attempts').select('*').eq('id', attempt_id).limit(1).execute()
        return result.data[0] if result.data else None

    @retry_on_connection_error()
    def get_attempts_by_user(self, user_id: int) -> List[Dict]:
        return self.client.table('quiz_attempts')\
            .select('*')\
            .eq('user_id', user_id)\
            .order('completed_at', desc=True)\
            .order('id', desc=True)\
            .execute().data or []

    def reserve_attempt_claim(self, attempt_id: int, token: str, claimed_at: str) -> Optional[Dict]:
        # Single UPDATE ... WHERE reward_claimed = false
        result = self.client.table('quiz_attempts')\
            .update({
                'reward_claimed': True,
                'transaction_hash': token,
                'claimed_at': claimed_at
            })\
            .eq('id', attempt_id)\
            .eq('reward_claimed', False)\
            .execute()
        return result.data[0] if result.data else None

    @retry_on_connection_error()
    def finalize_attempt_claim(self, attempt_id: int, token: str, transaction_hash: str) -> Optional[Dict]:
        result = self.client.table('quiz_attempts')\
            .update({'transaction_hash': transaction_hash})\
            .eq('id', attempt_id)\
            .eq('transaction_hash', token)\
            .execute()
        return result.data[0] if result.data else None


class MemoryQuizStore:
    """In-process store used when Supabase is not configured, and in tests"""

    TABLES = ('users', 'categories', 'quizzes', 'questions', 'quiz_attempts')

    def __init__(self):
        self._lock = threading.RLock()
        self._rows = {table: {} for table in self.TABLES}
        self._ids = {table: itertools.count(1) for table in self.TABLES}
        logger.info("🧠 In-memory quiz store initialized")

    def _insert(self, table: str, row: Dict) -> Dict:
        with self._lock:
            row = dict(row)
            row['id'] = next(self._ids[table])
            self._rows[table][row['id']] = row
            return dict(row)

    def _get(self, table: str, row_id) -> Optional[Dict]:
        with self._lock:
            row = self._rows[table].get(row_id)
            return dict(row) if row else None

    def _select(self, table: str, **filters) -> List[Dict]:
        with self._lock:
            return [
                dict(row) for row in self._rows[table].values()
                if all(row.get(key) == value for key, value in filters.items())
            ]

    def _update(self, table: str, row_id, changes: Dict, **conditions) -> Optional[Dict]:
        with self._lock:
            row = self._rows[table].get(row_id)
            if not row or any(row.get(key) != value for key, value in conditions.items()):
                return None
            row.update(changes)
            return dict(row)

    # ---- users ----

    def get_user(self, user_id: int) -> Optional[Dict]:
        return self._get('users', user_id)

    def get_user_by_username(self, username: str) -> Optional[Dict]:
        matches = self._select('users', username=username)
        return matches[0] if matches else None

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        matches = self._select('users', email=email)
        return matches[0] if matches else None

    def create_user(self, user: Dict) -> Dict:
        row = {'wallet_address': None, 'balance': format_amount(0), 'created_at': utc_now_iso()}
        row.update(user)
        return self._insert('users', row)

    def update_user_wallet(self, user_id: int, wallet_address: str) -> Optional[Dict]:
        return self._update('users', user_id, {'wallet_address': wallet_address})

    def increment_user_balance(self, user_id: int, amount):
        with self._lock:
            row = self._rows['users'].get(user_id)
            if not row:
                return None
            new_balance = to_decimal(row.get('balance')) + to_decimal(amount)
            row['balance'] = format_amount(new_balance)
            return to_decimal(new_balance)

    # ---- catalog ----

    def get_categories(self) -> List[Dict]:
        return sorted(self._select('categories'), key=lambda c: c['id'])

    def create_category(self, category: Dict) -> Dict:
        return self._insert('categories', category)

    def get_quizzes(self, category_id: Optional[int] = None) -> List[Dict]:
        quizzes = self._select('quizzes') if category_id is None else self._select('quizzes', category_id=category_id)
        return sorted(quizzes, key=lambda q: (q['created_at'], q['id']), reverse=True)

    def get_quiz(self, quiz_id: int) -> Optional[Dict]:
        return self._get('quizzes', quiz_id)

    def get_quizzes_by_ids(self, quiz_ids) -> List[Dict]:
        wanted = set(quiz_ids)
        return [quiz for quiz in self._select('quizzes') if quiz['id'] in wanted]

    def create_quiz(self, quiz: Dict) -> Dict:
        row = {'created_at': utc_now_iso()}
        row.update(quiz)
        return self._insert('quizzes', row)

    def get_questions(self, quiz_id: int) -> List[Dict]:
        return sorted(self._select('questions', quiz_id=quiz_id), key=lambda q: q['id'])

    def create_question(self, question: Dict) -> Dict:
        return self._insert('questions', validate_question(question))

    # ---- attempts ----

    def create_attempt(self, attempt: Dict) -> Dict:
        return self._insert('quiz_attempts', attempt)

    def get_attempt(self, attempt_id: int) -> Optional[Dict]:
        return self._get('quiz_attempts', attempt_id)

    def get_attempts_by_user(self, user_id: int) -> List[Dict]:
        attempts = self._select('quiz_attempts', user_id=user_id)
        return sorted(attempts, key=lambda a: (a['completed_at'], a['id']), reverse=True)

    def reserve_attempt_claim(self, attempt_id: int, token: str, claimed_at: str) -> Optional[Dict]:
        return self._update(
            'quiz_attempts', attempt_id,
            {'reward_claimed': True, 'transaction_hash': token, 'claimed_at': claimed_at},
            reward_claimed=False
        )

    def finalize_attempt_claim(self, attempt_id: int, token: str, transaction_hash: str) -> Optional[Dict]:
        return self._update(
            'quiz_attempts', attempt_id,
            {'transaction_hash': transaction_hash},
            transaction_hash=token
        )
