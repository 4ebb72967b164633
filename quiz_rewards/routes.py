import logging

from flask import Blueprint, jsonify, request

from accounts import login_required
from .blockchain import ChainError
from .scoring import (
    AnswerCountMismatch,
    InvalidQuizConfiguration,
    calculate_reward,
    format_amount,
    score_answers,
)
from .services import get_services
from config import QUIZ_REWARDS_CONFIG

logger = logging.getLogger(__name__)

quiz_rewards_bp = Blueprint('quiz_rewards', __name__, url_prefix='/api')

MESSAGES = QUIZ_REWARDS_CONFIG['MESSAGES']


def quiz_to_json(quiz):
    return {
        'id': quiz['id'],
        'title': quiz['title'],
        'description': quiz.get('description'),
        'categoryId': quiz.get('category_id'),
        'difficulty': quiz.get('difficulty'),
        'questionCount': quiz['question_count'],
        'reward': format_amount(quiz['reward']),
        'duration': quiz.get('duration'),
        'createdAt': quiz.get('created_at'),
    }


def question_to_json(question):
    # correct_option stays on the server
    return {
        'id': question['id'],
        'quizId': question['quiz_id'],
        'text': question['text'],
        'options': question['options'],
    }


def attempt_to_json(attempt):
    return {
        'id': attempt['id'],
        'userId': attempt['user_id'],
        'quizId': attempt['quiz_id'],
        'score': attempt['score'],
        'rewardAmount': format_amount(attempt['reward_amount']),
        'rewardClaimed': attempt['reward_claimed'],
        'transactionHash': attempt.get('transaction_hash'),
        'completedAt': attempt.get('completed_at'),
    }


def is_answer_index(value):
    return isinstance(value, int) and not isinstance(value, bool)


@quiz_rewards_bp.route('/categories', methods=['GET'])
def list_categories():
    try:
        return jsonify(get_services().store.get_categories()), 200
    except Exception as e:
        logger.error(f"❌ Error listing categories: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load categories'}), 500


@quiz_rewards_bp.route('/quizzes', methods=['GET'])
def list_quizzes():
    category_id = request.args.get('categoryId', type=int)
    try:
        quizzes = get_services().store.get_quizzes(category_id)
        return jsonify([quiz_to_json(quiz) for quiz in quizzes]), 200
    except Exception as e:
        logger.error(f"❌ Error listing quizzes: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load quizzes'}), 500


@quiz_rewards_bp.route('/quizzes/<int:quiz_id>', methods=['GET'])
def get_quiz(quiz_id):
    try:
        quiz = get_services().store.get_quiz(quiz_id)
        if not quiz:
            return jsonify({'success': False, 'error': 'Quiz not found'}), 404
        return jsonify(quiz_to_json(quiz)), 200
    except Exception as e:
        logger.error(f"❌ Error loading quiz {quiz_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load quiz'}), 500


@quiz_rewards_bp.route('/quizzes/<int:quiz_id>/questions', methods=['GET'])
@login_required
def get_quiz_questions(current_user, quiz_id):
    try:
        store = get_services().store
        if not store.get_quiz(quiz_id):
            return jsonify({'success': False, 'error': 'Quiz not found'}), 404
        return jsonify([question_to_json(q) for q in store.get_questions(quiz_id)]), 200
    except Exception as e:
        logger.error(f"❌ Error loading questions for quiz {quiz_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load questions'}), 500


@quiz_rewards_bp.route('/quizzes/<int:quiz_id>/submit', methods=['POST'])
@login_required
def submit_quiz(current_user, quiz_id):
    """Score a submission and record the attempt"""
    data = request.get_json(silent=True) or {}
    answers = data.get('answers')

    if not isinstance(answers, list) or not all(is_answer_index(a) for a in answers):
        return jsonify({'success': False, 'error': 'Answers must be a list of option indices'}), 400

    try:
        services = get_services()
        quiz = services.store.get_quiz(quiz_id)
        if not quiz:
            return jsonify({'success': False, 'error': 'Quiz not found'}), 404

        questions = services.store.get_questions(quiz_id)
        if len(questions) != quiz['question_count']:
            logger.warning(f"⚠️ Quiz {quiz_id} declares {quiz['question_count']} questions but has {len(questions)}")

        try:
            score = score_answers(questions, answers)
            reward_amount = calculate_reward(quiz['reward'], score, len(questions))
        except AnswerCountMismatch as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        except InvalidQuizConfiguration as e:
            logger.error(f"❌ Quiz {quiz_id} cannot be scored: {e}")
            return jsonify({'success': False, 'error': 'Quiz is not configured correctly'}), 400

        attempt = services.ledger.record(current_user['id'], quiz_id, score, reward_amount)
        logger.info(f"📊 Quiz {quiz_id} results for user {current_user['id']}: {score}/{len(questions)}, {format_amount(reward_amount)} earned")

        return jsonify({
            'attemptId': attempt['id'],
            'score': score,
            'totalQuestions': len(questions),
            'rewardAmount': format_amount(reward_amount),
        }), 201

    except Exception as e:
        logger.error(f"❌ Error submitting quiz {quiz_id} for user {current_user['id']}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to submit quiz. Please try again.'}), 500


@quiz_rewards_bp.route('/quiz-attempts', methods=['GET'])
@login_required
def list_attempts(current_user):
    try:
        attempts = get_services().ledger.lookup_by_user(current_user['id'])
        return jsonify([attempt_to_json(a) for a in attempts]), 200
    except Exception as e:
        logger.error(f"❌ Error listing attempts for user {current_user['id']}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load quiz attempts'}), 500


@quiz_rewards_bp.route('/quiz-attempts/<int:attempt_id>', methods=['GET'])
@login_required
def get_attempt(current_user, attempt_id):
    try:
        attempt = get_services().ledger.lookup(attempt_id)
        # Other users' attempts look missing
        if not attempt or attempt['user_id'] != current_user['id']:
            return jsonify({'success': False, 'error': 'Quiz attempt not found'}), 404
        return jsonify(attempt_to_json(attempt)), 200
    except Exception as e:
        logger.error(f"❌ Error loading attempt {attempt_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load quiz attempt'}), 500


@quiz_rewards_bp.route('/rewards/claim/<int:attempt_id>', methods=['POST'])
@login_required
def claim_reward(current_user, attempt_id):
    """Transfer an attempt's reward to the user's linked wallet"""
    try:
        services = get_services()
        attempt = services.ledger.lookup(attempt_id)

        if not attempt:
            return jsonify({'success': False, 'error': 'Quiz attempt not found'}), 404
        if attempt['user_id'] != current_user['id']:
            logger.warning(f"❌ User {current_user['id']} tried to claim attempt {attempt_id} of user {attempt['user_id']}")
            return jsonify({'success': False, 'error': 'Unauthorized'}), 403
        if attempt['reward_claimed']:
            return jsonify({'success': False, 'error': MESSAGES['already_claimed']}), 400
        if attempt['reward_amount'] <= 0:
            return jsonify({'success': False, 'error': 'No reward to claim for this attempt'}), 400

        wallet_address = current_user.get('wallet_address')
        if not wallet_address:
            return jsonify({'success': False, 'error': 'Wallet address not connected'}), 400

        outcome = services.settlement.settle(attempt, wallet_address)

        if not outcome.accepted:
            return jsonify({'success': False, 'error': MESSAGES['already_claimed']}), 400

        if outcome.simulated_claim:
            message = MESSAGES['simulated_error'] if outcome.transfer_failed else MESSAGES['simulated']
        else:
            message = MESSAGES['confirmed']

        response = {
            'success': True,
            'transactionHash': outcome.transaction_hash,
            'simulated': outcome.simulated_claim,
            'status': outcome.status,
            'message': message,
        }
        if not outcome.simulated_claim:
            response['explorerUrl'] = services.chain.explorer_url(outcome.transaction_hash)

        return jsonify(response), 200

    except Exception as e:
        logger.error(f"❌ Error claiming reward for attempt {attempt_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to claim reward'}), 500


@quiz_rewards_bp.route('/user/stats', methods=['GET'])
@login_required
def user_stats(current_user):
    try:
        return jsonify(get_services().stats.for_user(current_user['id'])), 200
    except Exception as e:
        logger.error(f"❌ Error computing stats for user {current_user['id']}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to get stats'}), 500


@quiz_rewards_bp.route('/user/balance', methods=['GET'])
@login_required
def wallet_balance(current_user):
    """On-chain token balance of the linked wallet (informational)"""
    wallet_address = current_user.get('wallet_address')
    if not wallet_address:
        return jsonify({'success': False, 'error': 'Wallet address not connected'}), 400

    chain = get_services().chain
    try:
        balance = chain.get_token_balance(wallet_address)
    except ChainError as e:
        logger.error(f"❌ Balance check error: {e}")
        return jsonify({'success': False, 'error': 'Balance unavailable', 'balance': '0'}), 503

    return jsonify({
        'success': True,
        'wallet': wallet_address,
        'balance': format(balance, 'f'),
        'symbol': chain.token_symbol,
    }), 200
