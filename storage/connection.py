import logging

import mysql.connector
from mysql.connector import Error
from config import Config

logger = logging.getLogger(__name__)

def get_db_connection():
    """Create and return a MySQL database connection"""
    try:
        conn = mysql.connector.connect(
            host=Config.MYSQL_HOST,
            port=Config.MYSQL_PORT,
            user=Config.MYSQL_USER,
            password=Config.MYSQL_PASSWORD,
            database=Config.MYSQL_DATABASE,
        )
        logger.debug("Database connection established to %s:%s", Config.MYSQL_HOST, Config.MYSQL_PORT)
        return conn
    except Error as e:
        logger.error(f"Database connection error: {e}")
        return None
