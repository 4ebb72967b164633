"""
Application Configuration
"""
import os

# ============================
# App Settings
# ============================
APP_CONFIG = {
    'SECRET_KEY': os.environ.get('SECRET_KEY', 'your-secret-key-here'),
    'SESSION_LIFETIME_HOURS': int(os.getenv('SESSION_LIFETIME_HOURS', '24')),
    'SESSION_COOKIE_SECURE': os.getenv('SESSION_COOKIE_SECURE', 'true').lower() == 'true',
    'SEED_SAMPLE_QUIZZES': os.getenv('SEED_SAMPLE_QUIZZES', 'true').lower() == 'true',
}

# ============================
# Quiz Rewards Settings
# ============================
QUIZ_REWARDS_CONFIG = {
    # Rewards are tracked with 8 decimal places
    'REWARD_DECIMAL_PLACES': 8,

    # Stats
    'KNOWLEDGE_SCORE_MULTIPLIER': 10,

    # Claim messages
    'MESSAGES': {
        'confirmed': 'Reward claimed successfully',
        'simulated': 'Reward claimed in simulation mode (platform wallet not funded)',
        'simulated_error': 'Reward claimed in simulation mode (transfer could not be completed)',
        'already_claimed': 'Reward already claimed',
    }
}

# ============================
# Reward Chain Settings
# ============================
CHAIN_CONFIG = {
    'RPC_URL': os.getenv('CELO_RPC_URL', 'https://forno.celo.org'),
    'CHAIN_ID': int(os.getenv('CHAIN_ID', '42220')),
    'TOKEN_CONTRACT': os.getenv('REWARD_TOKEN_CONTRACT', '0x62B8B11039FcfE5aB0C56E502b1C372A3d2a9c7A'),
    'TOKEN_DECIMALS': int(os.getenv('REWARD_TOKEN_DECIMALS', '18')),
    'TOKEN_SYMBOL': os.getenv('REWARD_TOKEN_SYMBOL', 'G$'),

    # Private key of the platform funding account
    'REWARD_KEY': os.getenv('REWARD_KEY'),

    'GAS_LIMIT': 250000,
    'GAS_PRICE_BUFFER': 1.2,  # 20% buffer
    'CONFIRMATION_TIMEOUT': int(os.getenv('CONFIRMATION_TIMEOUT', '120')),  # seconds
    'EXPLORER_TX_URL': os.getenv('EXPLORER_TX_URL', 'https://explorer.celo.org/mainnet/tx/'),
}
