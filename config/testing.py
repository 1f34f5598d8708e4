import os

from config.config import BADGE_PREFIX, db_config_from_env, env_flag

SECRET_KEY = "test-secret"

DB_CONFIG = db_config_from_env(default_password="test")

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")
