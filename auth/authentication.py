import logging
from typing import Optional

from storage.keyed_store import (
    IS_AUTHENTICATED_KEY,
    LANGUAGE_KEY,
    USER_IBAN_KEY,
    USER_NATIONAL_NUMBER_KEY,
    USER_PHONE_NUMBER_KEY,
    KeyedStore,
    get_store,
)

logger = logging.getLogger(__name__)

LANGUAGES = ("en", "ar")


class AuthSystem:
    """Portal "login": any non-empty credentials are accepted.

    The customer's identifiers are kept as scalar keys so tickets,
    appointments and rewards can be attributed to them.
    """

    def __init__(self, store: Optional[KeyedStore] = None):
        self.store = store or get_store()

    def login(self, national_number, phone_number, iban):
        """Store the customer's identifiers and mark the session authenticated"""
        fields = {
            'National number': national_number,
            'Phone number': phone_number,
            'IBAN': iban,
        }
        for label, value in fields.items():
            if not value or not str(value).strip():
                raise ValueError(f"{label} is required")

        with self.store.transaction():
            self.store.set_scalar(USER_NATIONAL_NUMBER_KEY, national_number.strip())
            self.store.set_scalar(USER_PHONE_NUMBER_KEY, phone_number.strip())
            self.store.set_scalar(USER_IBAN_KEY, iban.strip())
            self.store.set_scalar(IS_AUTHENTICATED_KEY, "true")

        logger.info(f"Customer {national_number.strip()} logged in")
        return self.current_user()

    def logout(self):
        self.store.remove(IS_AUTHENTICATED_KEY)
        logger.info("Customer logged out")

    def is_authenticated(self):
        return self.store.get_scalar(IS_AUTHENTICATED_KEY) == "true"

    def current_user(self):
        if not self.is_authenticated():
            return None
        return {
            'national_number': self.store.get_scalar(USER_NATIONAL_NUMBER_KEY, ""),
            'phone_number': self.store.get_scalar(USER_PHONE_NUMBER_KEY, ""),
            'iban': self.store.get_scalar(USER_IBAN_KEY, ""),
        }

    def get_language(self):
        language = self.store.get_scalar(LANGUAGE_KEY)
        return language if language in LANGUAGES else "en"

    def set_language(self, language):
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        self.store.set_scalar(LANGUAGE_KEY, language)
