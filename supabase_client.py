import os
import logging
import time
from supabase import create_client, Client
from functools import wraps

# Configure logging
logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Supabase configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_ANON_KEY")

supabase: Client = None
supabase_enabled = False

CONNECTION_ERROR_KEYWORDS = ['server disconnected', 'connection', 'timeout', 'network']


def retry_on_connection_error(max_retries=3, delay=1):
    """Decorator to retry database operations on connection errors"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    last_exception = e
                    error_msg = str(e).lower()

                    # Check if it's a connection-related error
                    if any(keyword in error_msg for keyword in CONNECTION_ERROR_KEYWORDS):
                        if attempt < max_retries - 1:
                            logger.warning(f"⚠️ Connection error on attempt {attempt + 1}/{max_retries}: {e}")
                            time.sleep(delay * (attempt + 1))
                            continue
                        else:
                            logger.error(f"❌ All {max_retries} connection attempts failed: {e}")
                    else:
                        # Not a connection error, don't retry
                        raise

            raise last_exception
        return wrapper
    return decorator


def get_supabase_client(retries=3):
    """Get Supabase client instance, creating it on first use"""
    global supabase, supabase_enabled

    if supabase_enabled and supabase:
        return supabase

    if not SUPABASE_URL or not SUPABASE_KEY or SUPABASE_URL == "your-supabase-url":
        logger.warning("⚠️ Supabase not configured - using in-memory storage")
        logger.info("💡 Set SUPABASE_URL and SUPABASE_ANON_KEY environment variables to enable Supabase storage")
        return None

    for attempt in range(retries):
        try:
            supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
            # Test connection by performing a simple query
            supabase.table("users").select("id").limit(1).execute()
            supabase_enabled = True
            logger.info("✅ Supabase client initialized successfully")
            return supabase
        except Exception as e:
            logger.error(f"❌ Supabase initialization failed on attempt {attempt + 1}: {e}")
            if attempt < retries - 1:
                time.sleep(2)

    logger.error("💡 Check your Supabase URL and API key in environment variables")
    supabase_enabled = False
    return None


# SQL COMMANDS TO RUN IN YOUR SUPABASE SQL EDITOR:
# Copy and run these commands one by one in your Supabase SQL Editor

"""
-- 1. Users
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    username TEXT UNIQUE NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    wallet_address VARCHAR(42),
    balance DECIMAL(18,8) DEFAULT 0,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

-- 2. Quiz catalog
CREATE TABLE IF NOT EXISTS categories (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    color TEXT NOT NULL,
    icon TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS quizzes (
    id SERIAL PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    category_id INTEGER REFERENCES categories(id),
    difficulty TEXT NOT NULL,
    question_count INTEGER NOT NULL,
    reward DECIMAL(18,8) NOT NULL,
    duration INTEGER NOT NULL, -- minutes
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS questions (
    id SERIAL PRIMARY KEY,
    quiz_id INTEGER REFERENCES quizzes(id),
    text TEXT NOT NULL,
    options TEXT[] NOT NULL,
    correct_option INTEGER NOT NULL
);

-- 3. Attempt ledger
CREATE TABLE IF NOT EXISTS quiz_attempts (
    id SERIAL PRIMARY KEY,
    user_id INTEGER REFERENCES users(id),
    quiz_id INTEGER REFERENCES quizzes(id),
    score INTEGER NOT NULL,
    reward_amount DECIMAL(18,8) NOT NULL,
    reward_claimed BOOLEAN DEFAULT FALSE,
    transaction_hash TEXT,
    completed_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    claimed_at TIMESTAMP WITH TIME ZONE
);

CREATE INDEX IF NOT EXISTS idx_quiz_attempts_user ON quiz_attempts(user_id);
CREATE INDEX IF NOT EXISTS idx_quiz_attempts_completed_at ON quiz_attempts(completed_at);
CREATE INDEX IF NOT EXISTS idx_questions_quiz ON questions(quiz_id);

-- 4. Additive balance update used by reward claims
CREATE OR REPLACE FUNCTION increment_user_balance(p_user_id INTEGER, p_amount DECIMAL)
RETURNS DECIMAL AS $$
    UPDATE users SET balance = COALESCE(balance, 0) + p_amount
    WHERE id = p_user_id
    RETURNING balance;
$$ LANGUAGE sql;
"""
