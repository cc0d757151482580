import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Configuration class for environment variables"""

    # Storage
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'file').lower()
    STORAGE_DIR = os.getenv('STORAGE_DIR', '.portal_storage')

    # Database (only used by the mysql storage backend)
    MYSQL_HOST = os.getenv('MYSQL_HOST', 'localhost')
    MYSQL_PORT = int(os.getenv('MYSQL_PORT', 3306))
    MYSQL_USER = os.getenv('MYSQL_USER', 'root')
    MYSQL_PASSWORD = os.getenv('MYSQL_PASSWORD', '')
    MYSQL_DATABASE = os.getenv('MYSQL_DATABASE', 'bank_portal')
    MYSQL_STORAGE_TABLE = os.getenv('MYSQL_STORAGE_TABLE', 'portal_storage')

    # Sync
    POLL_INTERVAL = float(os.getenv('POLL_INTERVAL', 1.0))

    # Uploads
    TICKET_ATTACHMENT_MAX_BYTES = int(float(os.getenv('TICKET_ATTACHMENT_MAX_MB', 10)) * 1024 * 1024)
    ATM_IMAGE_MAX_BYTES = int(float(os.getenv('ATM_IMAGE_MAX_MB', 5)) * 1024 * 1024)

    # Rewards
    REWARD_POINTS_PER_ACCEPT = int(os.getenv('REWARD_POINTS_PER_ACCEPT', 20))

    # App
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG' if DEBUG else 'INFO').upper()

class StorageConfig:
    def __init__(self):
        self.backend = Config.STORAGE_BACKEND
        self.directory = Config.STORAGE_DIR
        self.table = Config.MYSQL_STORAGE_TABLE
        self.poll_interval = Config.POLL_INTERVAL
