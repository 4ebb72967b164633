import logging

from .blockchain import RewardChainClient
from .sample_data import seed_sample_quizzes
from .services import EXTENSION_KEY, QuizRewardServices, get_services
from .storage import MemoryQuizStore, SupabaseQuizStore

logger = logging.getLogger(__name__)


def build_default_store():
    """Supabase when configured, otherwise the in-memory store"""
    from supabase_client import get_supabase_client

    client = get_supabase_client()
    if client is None:
        logger.warning("⚠️ Supabase not available - quiz data will not survive a restart")
        return MemoryQuizStore()
    return SupabaseQuizStore(client)


def init_quiz_rewards(app, store=None, chain=None, seed_samples=True):
    """Build the quiz reward services and register their routes"""
    from .routes import quiz_rewards_bp

    logger.info("🎓 Initializing Quiz Rewards module...")

    store = store if store is not None else build_default_store()
    chain = chain if chain is not None else RewardChainClient()

    services = QuizRewardServices(store, chain)
    app.extensions[EXTENSION_KEY] = services
    app.register_blueprint(quiz_rewards_bp)

    if seed_samples:
        try:
            created = seed_sample_quizzes(store)
            if created:
                logger.info(f"✅ Seeded {created} sample quizzes")
        except Exception as seed_error:
            logger.error(f"❌ Error seeding sample quizzes: {seed_error}")

    logger.info("✅ Quiz Rewards module initialized successfully")
    return services


__all__ = [
    'init_quiz_rewards',
    'get_services',
    'QuizRewardServices',
    'MemoryQuizStore',
    'SupabaseQuizStore',
    'RewardChainClient',
]
