"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""
    
    # Database (entity lookups for suggestions)
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "quotevault")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")
    
    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
    
    # Book providers
    GOOGLE_BOOKS_API_KEY = os.getenv("GOOGLE_BOOKS_API_KEY")
    PRIMARY_SOURCE = os.getenv("PRIMARY_SOURCE", "google_books")
    
    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    DEFAULT_MAX_RETRIES = int(os.getenv("DEFAULT_MAX_RETRIES", "3"))
    RETRY_DELAY = float(os.getenv("RETRY_DELAY", "1.0"))
    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "24"))
    DEBOUNCE_DELAY = float(os.getenv("DEBOUNCE_DELAY", "0.3"))
    
    # Local persistence
    RECENT_SEARCHES_FILE = os.getenv(
        "RECENT_SEARCHES_FILE",
        os.path.join(os.path.expanduser("~"), ".quotevault", "recent_searches.json")
    )
    
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
