# tests/test_auth.py
import pytest

from auth.authentication import AuthSystem


class TestAuthSystem:

    def test_login_stores_identifiers(self, store):
        auth = AuthSystem(store)
        user = auth.login(" 1234567890 ", "0912345678", "LY83002048000020100120361")

        assert auth.is_authenticated()
        assert user == {
            "national_number": "1234567890",
            "phone_number": "0912345678",
            "iban": "LY83002048000020100120361",
        }
        assert store.get_scalar("isAuthenticated") == "true"

    def test_login_requires_all_fields(self, store):
        auth = AuthSystem(store)
        with pytest.raises(ValueError):
            auth.login("1234567890", "", "LY83")
        assert not auth.is_authenticated()
        assert store.keys() == []

    def test_logout_keeps_identifiers(self, store):
        auth = AuthSystem(store)
        auth.login("1234567890", "0912345678", "LY83")
        auth.logout()

        assert not auth.is_authenticated()
        assert auth.current_user() is None
        assert store.get_scalar("userNationalNumber") == "1234567890"

    def test_language(self, store):
        auth = AuthSystem(store)
        assert auth.get_language() == "en"
        auth.set_language("ar")
        assert auth.get_language() == "ar"
        with pytest.raises(ValueError):
            auth.set_language("fr")
