import logging

from .scoring import format_amount

logger = logging.getLogger(__name__)

SAMPLE_CATEGORIES = [
    {
        'name': 'Blockchain Basics',
        'description': 'Wallets, transactions and how blocks are made',
        'color': '#35D07F',
        'icon': 'link',
        'quizzes': [
            {
                'title': 'Blockchain Fundamentals',
                'description': 'Test your knowledge of the building blocks of a blockchain',
                'difficulty': 'beginner',
                'reward': '5',
                'duration': 5,
                'questions': [
                    {
                        'text': 'What links each block to the previous one?',
                        'options': ['A timestamp', 'The hash of the previous block', 'The miner address', 'The block size'],
                        'correct_option': 1
                    },
                    {
                        'text': 'What do you need to sign a transaction?',
                        'options': ['A public key', 'A username', 'A private key', 'An email address'],
                        'correct_option': 2
                    },
                    {
                        'text': 'What is a gas fee paid for?',
                        'options': ['Computation on the network', 'Wallet storage', 'Exchange listing', 'Account creation emails'],
                        'correct_option': 0
                    },
                    {
                        'text': 'Which of these is a token standard on EVM chains?',
                        'options': ['HTTP', 'ERC20', 'SMTP', 'JPEG'],
                        'correct_option': 1
                    },
                ]
            },
        ]
    },
    {
        'name': 'Celo & GoodDollar',
        'description': 'The network and the token used for rewards',
        'color': '#FBCC5C',
        'icon': 'coins',
        'quizzes': [
            {
                'title': 'Rewards Network',
                'description': 'Learn about the network rewards are paid on',
                'difficulty': 'intermediate',
                'reward': '2.5',
                'duration': 5,
                'questions': [
                    {
                        'text': 'What blockchain network does GoodDollar use?',
                        'options': ['Bitcoin', 'Ethereum', 'Celo', 'Binance Smart Chain'],
                        'correct_option': 2
                    },
                    {
                        'text': 'What is the Celo network chain ID?',
                        'options': ['1', '56', '42220', '137'],
                        'correct_option': 2
                    },
                    {
                        'text': 'What is the main goal of GoodDollar?',
                        'options': ['Make money for investors', 'Provide universal basic income', 'Replace all banks', 'Create a gaming platform'],
                        'correct_option': 1
                    },
                ]
            },
        ]
    },
]


def seed_sample_quizzes(store) -> int:
    """Insert the sample catalog into an empty store. Returns the number of quizzes created."""
    if store.get_quizzes():
        logger.info("📚 Quizzes already exist - skipping sample data")
        return 0

    created = 0
    for category in SAMPLE_CATEGORIES:
        category_row = store.create_category({
            'name': category['name'],
            'description': category['description'],
            'color': category['color'],
            'icon': category['icon'],
        })

        for quiz in category['quizzes']:
            quiz_row = store.create_quiz({
                'title': quiz['title'],
                'description': quiz['description'],
                'category_id': category_row['id'],
                'difficulty': quiz['difficulty'],
                'question_count': len(quiz['questions']),
                'reward': format_amount(quiz['reward']),
                'duration': quiz['duration'],
            })
            for question in quiz['questions']:
                store.create_question(dict(question, quiz_id=quiz_row['id']))

            logger.info(f"✅ Added sample quiz '{quiz['title']}' with {len(quiz['questions'])} questions")
            created += 1

    return created
