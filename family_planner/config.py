import os
from dotenv import load_dotenv

load_dotenv()

# Database configuration
DB_USER = os.getenv("DB_USER", "user")
DB_PASS = os.getenv("DB_PASS", "password")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "family_planner_db")
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

# "memory" or "sql"
PERSISTENCE_BACKEND = os.getenv("PERSISTENCE_BACKEND", "memory")

# Active member preference
PREFERENCES_PATH = os.getenv("PREFERENCES_PATH", os.path.expanduser("~/.family_planner/preferences.json"))
ACTIVE_MEMBER_KEY = os.getenv("ACTIVE_MEMBER_KEY", "activeMemberId")

# IANA zone name used as "local time" for day boundaries; empty means host local zone
FAMILY_TIMEZONE = os.getenv("FAMILY_TIMEZONE", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Compact list caps
COMPACT_DAY_LIMIT = 3
WEEK_CELL_LIMIT = 4

# Onboarding colors
PARENT_COLOR = "hsl(210 60% 50%)"
CHILD_COLOR = "hsl(340 70% 60%)"
