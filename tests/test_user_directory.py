"""Tests for app.services.user_directory: login, password change, admin CRUD, bootstrap."""

import io
import unittest
from unittest.mock import patch

from app.core.config import Settings
from app.core.context import build_context
from app.core.errors import Conflict, Forbidden, InvalidInput, NotFound, Unauthorized
from app.services.user_directory import (
    INVALID_CREDENTIALS,
    UserDirectory,
    bootstrap_default_admin,
)


def _settings(**overrides: object) -> Settings:
    values = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": "test-secret",
        "BCRYPT_ROUNDS": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _directory() -> UserDirectory:
    ctx = build_context(_settings())
    ctx.store.ensure_schema()
    return ctx.directory


class TestLogin(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = _directory()
        self.user = self.directory.create_user("real_user", "r@example.com", "pass1234")

    def test_login_returns_token_for_same_subject(self) -> None:
        token, user = self.directory.login("real_user", "pass1234")
        self.assertEqual(user.id, self.user.id)
        claims = self.directory.tokens.verify(token)
        self.assertEqual(claims.subject_id, self.user.id)
        self.assertEqual(claims.username, "real_user")
        self.assertFalse(claims.is_admin)

    def test_unknown_user_and_wrong_password_are_indistinguishable(self) -> None:
        with self.assertRaises(Unauthorized) as ghost:
            self.directory.login("ghost", "x")
        with self.assertRaises(Unauthorized) as wrong:
            self.directory.login("real_user", "wrong_password")
        self.assertEqual(ghost.exception.message, wrong.exception.message)
        self.assertEqual(ghost.exception.status_code, wrong.exception.status_code)
        self.assertEqual(ghost.exception.message, INVALID_CREDENTIALS)


class TestChangeOwnPassword(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = _directory()
        self.user = self.directory.create_user("bob", None, "oldpass")

    def test_wrong_current_password(self) -> None:
        with self.assertRaises(Unauthorized):
            self.directory.change_own_password(self.user.id, "nope", "newpass")

    def test_new_password_too_short(self) -> None:
        for new in ("", "abc"):
            with self.subTest(new=new):
                with self.assertRaises(InvalidInput):
                    self.directory.change_own_password(self.user.id, "oldpass", new)

    def test_success_changes_hash_and_refreshes_updated_at(self) -> None:
        before = self.directory.get_user(self.user.id)
        updated = self.directory.change_own_password(self.user.id, "oldpass", "newpass")
        self.assertNotEqual(updated.password_hash, before.password_hash)
        self.assertGreaterEqual(updated.updated_at.replace(tzinfo=None), before.updated_at.replace(tzinfo=None))
        self.directory.login("bob", "newpass")
        with self.assertRaises(Unauthorized):
            self.directory.login("bob", "oldpass")

    def test_deleted_principal(self) -> None:
        with self.assertRaises(NotFound):
            self.directory.change_own_password("missing", "oldpass", "newpass")


class TestCreateUser(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = _directory()

    def test_password_is_hashed(self) -> None:
        user = self.directory.create_user("carol", "c@example.com", "s3cret", is_admin=True)
        self.assertNotEqual(user.password_hash, "s3cret")
        self.assertTrue(self.directory.hasher.verify("s3cret", user.password_hash))
        self.assertTrue(user.is_admin)
        self.assertEqual(user.email, "c@example.com")

    def test_invalid_input(self) -> None:
        cases = [("", "pass1234"), ("   ", "pass1234"), ("dave", ""), ("dave", "abc")]
        for username, password in cases:
            with self.subTest(username=username, password=password):
                with self.assertRaises(InvalidInput):
                    self.directory.create_user(username, None, password)

    def test_duplicate_username_conflicts(self) -> None:
        self.directory.create_user("erin", None, "pass1234")
        with self.assertRaises(Conflict):
            self.directory.create_user("erin", None, "other-pass")

    def test_created_user_can_log_in(self) -> None:
        for name in ("f1", "f2", "f3"):
            user = self.directory.create_user(name, None, f"{name}-password")
            token, _ = self.directory.login(name, f"{name}-password")
            self.assertEqual(self.directory.tokens.verify(token).subject_id, user.id)


class TestUpdateUser(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = _directory()
        self.user = self.directory.create_user("gina", "g@example.com", "pass1234")

    def test_empty_update_only_touches_updated_at(self) -> None:
        before = self.directory.get_user(self.user.id)
        self.directory.update_user(self.user.id)
        after = self.directory.get_user(self.user.id)
        for field in ("id", "username", "email", "password_hash", "is_admin", "created_at"):
            self.assertEqual(getattr(after, field), getattr(before, field), field)
        self.assertGreaterEqual(after.updated_at, before.updated_at)

    def test_partial_update(self) -> None:
        updated = self.directory.update_user(self.user.id, is_admin=True)
        self.assertTrue(updated.is_admin)
        self.assertEqual(updated.email, "g@example.com")

    def test_empty_email_clears_it(self) -> None:
        updated = self.directory.update_user(self.user.id, email="")
        self.assertIsNone(updated.email)
        self.assertIsNone(self.directory.get_user(self.user.id).email)

    def test_password_update(self) -> None:
        self.directory.update_user(self.user.id, password="brand-new")
        self.directory.login("gina", "brand-new")

    def test_short_password_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            self.directory.update_user(self.user.id, password="abc")

    def test_unknown_id(self) -> None:
        with self.assertRaises(NotFound):
            self.directory.update_user("missing", email="x@example.com")


class TestDeleteUser(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = _directory()
        self.admin = self.directory.create_user("admin", None, "admin-pass", is_admin=True)

    def test_last_admin_forbidden(self) -> None:
        with self.assertRaises(Forbidden) as ctx:
            self.directory.delete_user(self.admin.id)
        self.assertIn("last admin", ctx.exception.message)
        self.assertEqual(self.directory.store.count_admins(), 1)

    def test_deleting_one_of_two_admins(self) -> None:
        second = self.directory.create_user("admin2", None, "admin-pass", is_admin=True)
        before = self.directory.store.count_admins()
        self.directory.delete_user(second.id)
        self.assertEqual(self.directory.store.count_admins(), before - 1)

    def test_unknown_id(self) -> None:
        with self.assertRaises(NotFound):
            self.directory.delete_user("missing")


class TestBootstrap(unittest.TestCase):
    def test_creates_single_admin_once(self) -> None:
        directory = _directory()
        settings = _settings(DEFAULT_ADMIN_PASSWORD="first-run")
        created = bootstrap_default_admin(directory, settings)
        self.assertIsNotNone(created)
        self.assertEqual(created.username, "admin")
        self.assertTrue(created.is_admin)
        self.assertEqual(directory.store.count_all(), 1)
        directory.login("admin", "first-run")

        self.assertIsNone(bootstrap_default_admin(directory, settings))
        self.assertEqual(directory.store.count_all(), 1)

    def test_generated_password_goes_to_stderr_not_log(self) -> None:
        directory = _directory()
        stderr = io.StringIO()
        with self.assertLogs("app.services.user_directory", level="WARNING") as logs:
            with patch("sys.stderr", stderr):
                created = bootstrap_default_admin(directory, _settings())
        self.assertIsNotNone(created)
        printed = stderr.getvalue().strip()
        password = printed.rsplit(": ", 1)[1]
        directory.login("admin", password)
        self.assertIn("generated password", "\n".join(logs.output))
        self.assertNotIn(password, "\n".join(logs.output))

    def test_skips_when_users_exist(self) -> None:
        directory = _directory()
        directory.create_user("someone", None, "pass1234")
        self.assertIsNone(bootstrap_default_admin(directory, _settings()))
        self.assertEqual(directory.store.count_all(), 1)


if __name__ == "__main__":
    unittest.main()
