import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the code as evslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "evslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer session lifetime: 8 hours
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(8 * 60 * 60)))

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(20 * 60)))

    # Passwords
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LEN = 8

    # Slot times are wall-clock times in this zone; booking windows are checked against it
    TIMEZONE = os.getenv("TIMEZONE", "UTC")

    # Slot grid used when a station has no parseable operating hours
    SLOT_DURATION_MINUTES = int(os.getenv("SLOT_DURATION_MINUTES", "60"))
    SLOT_DAY_START = os.getenv("SLOT_DAY_START", "06:00")
    SLOT_DAY_END = os.getenv("SLOT_DAY_END", "22:00")

    # Listing caps
    MAX_LIST_RESULTS = int(os.getenv("MAX_LIST_RESULTS", "500"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BCRYPT_ROUNDS = 4
    SLOT_DURATION_MINUTES = 60
    SLOT_DAY_START = "06:00"
    SLOT_DAY_END = "22:00"
    TIMEZONE = "UTC"
    LOG_LEVEL = "WARNING"
