import logging
from decimal import Decimal, ROUND_HALF_UP

from config import QUIZ_REWARDS_CONFIG

logger = logging.getLogger(__name__)

REWARD_QUANTUM = Decimal(1).scaleb(-QUIZ_REWARDS_CONFIG['REWARD_DECIMAL_PLACES'])


class QuizSubmissionError(ValueError):
    """Submitted answers cannot be scored"""


class AnswerCountMismatch(QuizSubmissionError):
    def __init__(self, expected, received):
        self.expected = expected
        self.received = received
        super().__init__(f"Invalid number of answers. Expected {expected}, received {received}.")


class InvalidQuizConfiguration(ValueError):
    """Quiz cannot award rewards, e.g. it has no questions"""


def to_decimal(value) -> Decimal:
    """Convert a stored amount (str, int, float or Decimal) to a quantized Decimal"""
    if value is None:
        return Decimal(0).quantize(REWARD_QUANTUM)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(REWARD_QUANTUM, rounding=ROUND_HALF_UP)


def format_amount(value) -> str:
    """Fixed-point string with 8 decimals, e.g. '3.50000000'"""
    return format(to_decimal(value), 'f')


def score_answers(questions, answers) -> int:
    """
    Count the answers matching each question's correct option.

    Args:
        questions: ordered question rows holding 'correct_option'
        answers: ordered answer indices, one per question

    Returns:
        Number of correct answers, between 0 and len(questions)
    """
    if len(answers) != len(questions):
        raise AnswerCountMismatch(len(questions), len(answers))

    score = 0
    for question, answer in zip(questions, answers):
        if answer == question['correct_option']:
            score += 1
    return score


def calculate_reward(max_reward, score: int, question_count: int) -> Decimal:
    """Reward proportional to score / question_count, capped by the quiz reward"""
    if question_count <= 0:
        raise InvalidQuizConfiguration("Quiz has no questions")
    if score < 0 or score > question_count:
        raise ValueError(f"Score {score} outside 0..{question_count}")

    reward = to_decimal(max_reward) * score / question_count
    return reward.quantize(REWARD_QUANTUM, rounding=ROUND_HALF_UP)
