import configparser
import tempfile
import unittest
from pathlib import Path

from qbit_renamer.exceptions import ConfigurationError
from qbit_renamer.models.config import AppConfig
from qbit_renamer.models.torrent import MediaType
from qbit_renamer.storage.config_manager import ConfigManager


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_file = Path(self._tmp.name) / "qbit-renamer" / "config.ini"

    def tearDown(self):
        self._tmp.cleanup()

    def _save(self, **settings):
        settings.setdefault("qbittorrent_url", "http://localhost:8080")
        ConfigManager(self.config_file, environ={}).save_new_config(settings)

    def test_saved_config_round_trips(self):
        self._save(qbittorrent_username="admin", qbittorrent_password="pw")

        config = ConfigManager(self.config_file, environ={}).load_config()

        self.assertEqual(config.qbittorrent_url, "http://localhost:8080")
        self.assertEqual(config.qbittorrent_username, "admin")
        self.assertEqual(config.max_retries, 2)
        self.assertEqual(config.tv_format, "{plex}")
        self.assertEqual(config.config_path, str(self.config_file.parent))

    def test_environment_overrides_file_values(self):
        self._save(qbittorrent_username="admin")
        environ = {
            "QBITTORRENT_USERNAME": "other",
            "QB_REQUEST_TIMEOUT_MS": "5000",
            "FILEBOT_TIMEOUT_MS": "120000",
            "MAX_RENAME_BATCH_SIZE": "10",
            "FILEBOT_TV_DATABASE": "TheMovieDB",
            "PORT": "",
        }

        config = ConfigManager(self.config_file, environ=environ).load_config()

        self.assertEqual(config.qbittorrent_username, "other")
        self.assertEqual(config.request_timeout, 5.0)
        self.assertEqual(config.filebot_timeout, 120.0)
        self.assertEqual(config.max_rename_batch_size, 10)
        self.assertEqual(config.database_for(MediaType.TV), "TheMovieDB")
        self.assertEqual(config.port, 3000)

    def test_cli_options_take_precedence(self):
        self._save()
        config = ConfigManager(self.config_file, environ={"PORT": "4000"}).load_config(
            {"port": 5000}
        )
        self.assertEqual(config.port, 5000)

    def test_environment_only_configuration(self):
        environ = {"QBITTORRENT_URL": "http://qbt:8080/", "QBITTORRENT_PASSWORD": "pw"}

        config = ConfigManager(self.config_file, environ=environ).load_config()

        self.assertEqual(config.qbittorrent_url, "http://qbt:8080")
        self.assertEqual(config.qbittorrent_password, "pw")
        self.assertFalse(self.config_file.exists())

    def test_missing_configuration_raises(self):
        with self.assertRaises(ConfigurationError):
            ConfigManager(self.config_file, environ={}).load_config()

    def test_invalid_values_raise_configuration_error(self):
        for key, value in (
            ("qbittorrent_url", "ftp://qbt"),
            ("max_retries", "11"),
            ("request_timeout", "0"),
            ("port", "70000"),
            ("filebot_path", ""),
        ):
            with self.subTest(key=key):
                self._save(**{key: value})
                with self.assertRaises(ConfigurationError):
                    ConfigManager(self.config_file, environ={}).load_config()

    def test_malformed_environment_value_raises(self):
        self._save()
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigManager(self.config_file, environ={"QB_MAX_RETRIES": "two"}).load_config()
        self.assertIn("QB_MAX_RETRIES", str(ctx.exception))

    def test_missing_keys_are_migrated(self):
        self.config_file.parent.mkdir(parents=True)
        self.config_file.write_text(
            "[DEFAULT]\nqbittorrent_url = http://localhost:8080\nunknown_key = 1\n",
            encoding="utf-8",
        )

        config = ConfigManager(self.config_file, environ={}).load_config()

        self.assertEqual(config.max_auth_retries, 3)
        parser = configparser.ConfigParser(interpolation=None)
        parser.read(self.config_file, encoding="utf-8")
        self.assertEqual(parser["DEFAULT"]["filebot_path"], "filebot")
        self.assertEqual(parser["DEFAULT"]["tv_format"], "{plex}")

    def test_formats_with_percent_signs_are_not_interpolated(self):
        self._save(movie_format="{n} (%y)")
        config = ConfigManager(self.config_file, environ={}).load_config()
        self.assertEqual(config.format_for(MediaType.MOVIE), "{n} (%y)")


class TestAppConfig(unittest.TestCase):
    def test_defaults(self):
        config = AppConfig(qbittorrent_url="http://localhost:8080")
        self.assertEqual(config.max_auth_retries, 3)
        self.assertEqual(config.max_retries, 2)
        self.assertEqual(config.database_for(MediaType.MOVIE), "TheMovieDB")
        self.assertEqual(config.rate_limit_max_requests, 100)

    def test_ini_keys_exclude_internal_fields(self):
        keys = AppConfig.get_ini_keys()
        self.assertIn("qbittorrent_url", keys)
        self.assertNotIn("config_path", keys)


if __name__ == "__main__":
    unittest.main()
