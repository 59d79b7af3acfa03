import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from researchhub_cli.auth.commands import app
from researchhub_cli.core import config, session
from researchhub_cli.core.api import ApiError
from researchhub_cli.users.commands import app as users_app

runner = CliRunner()


class TestCLIAuth(unittest.TestCase):

    def setUp(self):
        self.token = "fake_bearer_token"
        self.login_result = {
            "token": self.token,
            "sessionToken": "fake_session_token",
            "user": {"id": 1, "email": "a@example.com"},
        }

    @patch("researchhub_cli.auth.commands.getpass.getpass")
    @patch("researchhub_cli.auth.commands.save_token")
    @patch("researchhub_cli.auth.commands.api_login")
    @patch("researchhub_cli.auth.commands.is_logged_in")
    def test_login_success(self, mock_logged_in, mock_login, mock_save, mock_getpass):
        mock_logged_in.return_value = False
        mock_login.return_value = self.login_result
        mock_getpass.return_value = "longenough1"

        result = runner.invoke(app, ["login", "--email", "a@example.com", "--remember"])
        self.assertEqual(result.exit_code, 0, result.stdout)
        self.assertIn("Login successful as 'a@example.com'", result.stdout)

        mock_login.assert_called_once_with("a@example.com", "longenough1", remember=True)
        mock_save.assert_called_once_with(self.token, "fake_session_token")

    @patch("researchhub_cli.auth.commands.getpass.getpass")
    @patch("researchhub_cli.auth.commands.save_token")
    @patch("researchhub_cli.auth.commands.api_login")
    @patch("researchhub_cli.auth.commands.is_logged_in")
    def test_login_failure(self, mock_logged_in, mock_login, mock_save, mock_getpass):
        mock_logged_in.return_value = False
        mock_login.side_effect = ApiError("Invalid credentials", status_code=401, reason="invalidCredentials")
        mock_getpass.return_value = "wrongpassword"

        result = runner.invoke(app, ["login", "--email", "a@example.com"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Login failed: Invalid credentials", result.stdout)
        mock_save.assert_not_called()

    @patch("researchhub_cli.auth.commands.getpass.getpass")
    @patch("researchhub_cli.auth.commands.api_login")
    @patch("researchhub_cli.auth.commands.is_logged_in")
    def test_login_needs_verification(self, mock_logged_in, mock_login, mock_getpass):
        mock_logged_in.return_value = False
        mock_login.side_effect = ApiError("Email verification required", status_code=401, reason="verificationRequired")
        mock_getpass.return_value = "longenough1"

        result = runner.invoke(app, ["login", "--email", "a@example.com"])
        self.assertIn("verify your email address first", result.stdout)

    @patch("researchhub_cli.auth.commands.api_login")
    @patch("researchhub_cli.auth.commands.is_logged_in")
    def test_login_refused_when_session_active(self, mock_logged_in, mock_login):
        mock_logged_in.return_value = True
        result = runner.invoke(app, ["login", "--email", "a@example.com"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Session already active", result.stdout)
        mock_login.assert_not_called()

    @patch("researchhub_cli.auth.commands.clear_token")
    @patch("researchhub_cli.auth.commands.api_logout")
    @patch("researchhub_cli.auth.commands.load_token")
    def test_logout_clears_even_if_server_fails(self, mock_load, mock_logout, mock_clear):
        mock_load.return_value = self.token
        mock_logout.side_effect = ApiError("Token expired", status_code=401, reason="expired")

        result = runner.invoke(app, ["logout"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Warning: server logout failed", result.stdout)
        mock_clear.assert_called_once()

    @patch("researchhub_cli.auth.commands.api_register")
    @patch("researchhub_cli.auth.commands.getpass.getpass")
    def test_register_password_mismatch(self, mock_getpass, mock_register):
        mock_getpass.side_effect = ["longenough1", "different1"]

        result = runner.invoke(app, ["register", "--email", "a@example.com", "--name", "Ada Lovelace"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Passwords do not match", result.stdout)
        mock_register.assert_not_called()

    @patch("researchhub_cli.auth.commands.api_register")
    @patch("researchhub_cli.auth.commands.getpass.getpass")
    def test_register_success(self, mock_getpass, mock_register):
        mock_getpass.return_value = "longenough1"
        mock_register.return_value = {"userId": 3, "emailVerificationRequired": True}

        result = runner.invoke(app, ["register", "--email", "a@example.com", "--name", "Ada Lovelace"])
        self.assertEqual(result.exit_code, 0, result.stdout)
        self.assertIn("user id 3", result.stdout)
        self.assertIn("verify-email", result.stdout)
        mock_register.assert_called_once_with("a@example.com", "Ada Lovelace", "longenough1", None)


    @patch("researchhub_cli.auth.commands.api_register")
    @patch("researchhub_cli.auth.commands.getpass.getpass")
    def test_register_accepts_any_password_the_server_accepts(self, mock_getpass, mock_register):
        mock_getpass.return_value = "correcthorsebattery"
        mock_register.return_value = {"userId": 4, "emailVerificationRequired": False}

        result = runner.invoke(app, ["register", "--email", "a@example.com", "--name", "Ada Lovelace"])
        self.assertEqual(result.exit_code, 0, result.stdout)
        mock_register.assert_called_once_with("a@example.com", "Ada Lovelace", "correcthorsebattery", None)

    @patch("researchhub_cli.auth.commands.api_register")
    @patch("researchhub_cli.auth.commands.getpass.getpass")
    def test_register_rejects_short_password(self, mock_getpass, mock_register):
        mock_getpass.return_value = "short1"

        result = runner.invoke(app, ["register", "--email", "a@example.com", "--name", "Ada Lovelace"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("at least 8 characters", result.stdout)
        mock_register.assert_not_called()


class TestCLIUsers(unittest.TestCase):

    @patch("researchhub_cli.users.commands.api_get_profile")
    @patch("researchhub_cli.users.commands.load_token")
    def test_profile(self, mock_load, mock_profile):
        mock_load.return_value = "tok"
        mock_profile.return_value = {"id": 1, "email": "a@example.com", "fullName": "Ada Lovelace", "emailVerified": True}

        result = runner.invoke(users_app, ["profile"])
        self.assertEqual(result.exit_code, 0, result.stdout)
        self.assertIn("Ada Lovelace", result.stdout)
        self.assertIn("Verified:    yes", result.stdout)

    @patch("researchhub_cli.users.commands.load_token")
    def test_profile_without_session(self, mock_load):
        mock_load.return_value = None
        result = runner.invoke(users_app, ["profile"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Please login first", result.stdout)

    @patch("researchhub_cli.users.commands.api_update_preferences")
    @patch("researchhub_cli.users.commands.load_token")
    def test_preferences_update(self, mock_load, mock_update):
        mock_load.return_value = "tok"
        mock_update.return_value = {"theme": "light", "emailNotifications": False}

        result = runner.invoke(users_app, ["preferences", "--theme", "light", "--no-notifications"])
        self.assertEqual(result.exit_code, 0, result.stdout)
        mock_update.assert_called_once_with("tok", {"theme": "light", "emailNotifications": False})
        self.assertIn("Notifications: off", result.stdout)


class TestSessionFile(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        app_dir = Path(self.tmp.name)
        patcher_dir = patch.object(config, "APP_DIR", app_dir)
        patcher_file = patch.object(config, "SESSION_FILE", app_dir / "session.json")
        patcher_dir.start()
        patcher_file.start()
        self.addCleanup(patcher_dir.stop)
        self.addCleanup(patcher_file.stop)
        self.addCleanup(self.tmp.cleanup)

    def test_save_load_clear(self):
        self.assertFalse(session.is_logged_in())
        session.save_token("access", "sess")
        self.assertEqual(session.load_token(), "access")
        self.assertEqual(session.load_session_token(), "sess")
        session.clear_token()
        self.assertIsNone(session.load_token())

    def test_corrupt_file_is_ignored(self):
        config.SESSION_FILE.write_text("{not json")
        self.assertIsNone(session.load_token())


if __name__ == "__main__":
    unittest.main()
