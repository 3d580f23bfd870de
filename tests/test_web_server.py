import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
from fastapi.testclient import TestClient

from qbit_renamer.api.client import QBittorrentClient
from qbit_renamer.exceptions import AuthenticationError
from qbit_renamer.utils.process import ProcessResult
from qbit_renamer.web.server import FILEBOT_ERROR_DETAILS, SECURITY_HEADERS, create_app

from tests.mocks.fake_qbittorrent import HASH_A, HASH_B, make_config, make_torrent

FILEBOT_OUTPUT = "[TEST] /downloads/Show/ep1.mkv -> /downloads/Show/S01E01.mkv\n"


def response_error(status):
    return aiohttp.ClientResponseError(
        request_info=MagicMock(), history=(), status=status, message="Error"
    )


def make_api_client():
    client = MagicMock(spec=QBittorrentClient)
    client.fetch_torrents = AsyncMock(
        return_value=[make_torrent(HASH_A, "Show"), make_torrent(HASH_B, "Film")]
    )
    client.fetch_torrent_properties = AsyncMock(return_value={"save_path": "/downloads"})
    client.fetch_torrent_files = AsyncMock(return_value=[{"name": "Show/ep1.mkv"}])
    client.rename_file = AsyncMock(return_value="")
    client.close = AsyncMock()
    return client


class ServerTestCase(unittest.TestCase):
    config_overrides = {}

    def setUp(self):
        self.api_client = make_api_client()
        self.config = make_config(**self.config_overrides)
        self.app = create_app(self.config, api_client=self.api_client)
        self.http = TestClient(self.app)
        self.http.__enter__()
        self.addCleanup(self.http.__exit__, None, None, None)

        patcher = patch(
            "qbit_renamer.core.suggestions.run_command",
            new_callable=AsyncMock,
            return_value=ProcessResult(returncode=0, stdout=FILEBOT_OUTPUT, stderr=""),
        )
        self.run_command = patcher.start()
        self.addCleanup(patcher.stop)


class TestTorrentsEndpoint(ServerTestCase):
    def test_lists_enriched_torrents(self):
        response = self.http.get("/api/torrents")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([t["hash"] for t in body], [HASH_A, HASH_B])
        self.assertEqual(body[0]["properties"], {"save_path": "/downloads"})
        self.assertEqual(body[0]["files"], [{"name": "Show/ep1.mkv"}])

    def test_partial_enrichment_still_lists_torrent(self):
        self.api_client.fetch_torrent_properties.side_effect = [
            {"save_path": "/downloads"},
            response_error(500),
        ]

        body = self.http.get("/api/torrents").json()

        self.assertEqual(len(body), 2)
        self.assertEqual(
            sum(1 for t in body if "properties" not in t), 1
        )
        self.assertTrue(all("files" in t for t in body))

    def test_daemon_error_gives_generic_500(self):
        self.api_client.fetch_torrents.side_effect = response_error(500)

        response = self.http.get("/api/torrents")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to fetch torrents"})

    def test_authentication_failure_gives_502(self):
        self.api_client.fetch_torrents.side_effect = AuthenticationError(
            "Failed to authenticate with qBittorrent"
        )

        response = self.http.get("/api/torrents")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["error"], "Failed to authenticate with qBittorrent")


class TestListTimeout(ServerTestCase):
    config_overrides = {"list_timeout": 0.05}

    def test_slow_listing_gives_504(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        self.api_client.fetch_torrents.side_effect = slow

        response = self.http.get("/api/torrents")

        self.assertEqual(response.status_code, 504)
        self.assertIn("timed out", response.json()["error"])


class TestSuggestEndpoint(ServerTestCase):
    def test_returns_suggestions_and_output(self):
        response = self.http.post(
            "/api/filebot/suggest", json={"torrentHash": HASH_A, "type": "tv"}
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "suggestions": [
                    {
                        "oldPath": "/downloads/Show/ep1.mkv",
                        "newPath": "/downloads/Show/S01E01.mkv",
                    }
                ],
                "output": FILEBOT_OUTPUT,
            },
        )

    def test_invalid_hash_gives_400(self):
        response = self.http.post(
            "/api/filebot/suggest", json={"torrentHash": "abc", "type": "tv"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('"torrentHash"', response.json()["error"])
        self.run_command.assert_not_awaited()

    def test_invalid_type_gives_400(self):
        response = self.http.post(
            "/api/filebot/suggest", json={"torrentHash": HASH_A, "type": "music"}
        )
        self.assertEqual(response.status_code, 400)

    def test_missing_field_gives_400(self):
        response = self.http.post("/api/filebot/suggest", json={"torrentHash": HASH_A})
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["error"].startswith('Validation error: "type"'))

    def test_torrent_without_files_gives_400(self):
        self.api_client.fetch_torrent_files.return_value = []
        response = self.http.post(
            "/api/filebot/suggest", json={"torrentHash": HASH_A, "type": "tv"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No files found for this torrent"})

    def test_filebot_failure_gives_502_without_stderr(self):
        self.run_command.return_value = ProcessResult(
            returncode=1, stdout="", stderr="License Error: UNREGISTERED"
        )

        response = self.http.post(
            "/api/filebot/suggest", json={"torrentHash": HASH_A, "type": "tv"}
        )

        self.assertEqual(response.status_code, 502)
        self.assertEqual(
            response.json(),
            {"error": "FileBot execution failed", "details": FILEBOT_ERROR_DETAILS},
        )
        self.assertNotIn("License", response.text)

    def test_unexpected_error_gives_generic_500(self):
        self.api_client.fetch_torrent_files.side_effect = RuntimeError("boom")

        response = self.http.post(
            "/api/filebot/suggest", json={"torrentHash": HASH_A, "type": "tv"}
        )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to generate suggestions"})


class TestRenameEndpoint(ServerTestCase):
    def _rename(self, renames):
        return self.http.post(
            "/api/torrents/rename", json={"torrentHash": HASH_A, "renames": renames}
        )

    def test_full_success(self):
        response = self._rename([{"oldPath": "ep1.mkv", "newPath": "S01E01.mkv"}])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "success": True,
                "message": "1 files renamed successfully",
                "results": [
                    {"success": True, "oldPath": "ep1.mkv", "newPath": "S01E01.mkv"}
                ],
            },
        )

    def test_partial_failure_is_still_200(self):
        self.api_client.rename_file.side_effect = [None, response_error(409), None]

        response = self._rename(
            [
                {"oldPath": "ep1.mkv", "newPath": "S01E01.mkv"},
                {"oldPath": "ep2.mkv", "newPath": "S01E02.mkv"},
                {"oldPath": "ep3.mkv", "newPath": "S01E03.mkv"},
            ]
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["message"], "2 files renamed successfully, 1 failed")
        self.assertEqual(len(body["results"]), 3)
        self.assertEqual(body["results"][1]["error"], "Request failed with status code 409")
        self.assertNotIn("error", body["results"][0])

    def test_empty_batch_gives_400(self):
        response = self._rename([])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No renames provided"})

    def test_malformed_entry_gives_400(self):
        response = self._rename([{"oldPath": "ep1.mkv"}])
        self.assertEqual(response.status_code, 400)
        self.api_client.rename_file.assert_not_awaited()

    def test_nothing_valid_after_sanitization_gives_400(self):
        response = self._rename([{"oldPath": "..", "newPath": "x.mkv"}])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No valid renames after sanitization"})


class TestRequestGuards(ServerTestCase):
    config_overrides = {"rate_limit_max_requests": 2, "max_request_bytes": 64}

    def test_unknown_route_gives_json_404(self):
        response = self.http.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Not found"})

    def test_rate_limit(self):
        for _ in range(2):
            self.assertEqual(self.http.get("/api/torrents").status_code, 200)

        response = self.http.get("/api/torrents")

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json(), {"error": self.config.rate_limit_message})
        self.assertIn("Retry-After", response.headers)

    def test_oversized_body_gives_413(self):
        response = self.http.post(
            "/api/torrents/rename",
            json={"torrentHash": HASH_A, "renames": [{"oldPath": "a" * 100, "newPath": "b"}]},
        )
        self.assertEqual(response.status_code, 413)

    def test_unexpected_error_still_carries_security_headers(self):
        @self.app.get("/api/broken")
        async def broken():
            raise RuntimeError("boom")

        response = self.http.get("/api/broken")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Internal server error"})
        for name, value in SECURITY_HEADERS.items():
            self.assertEqual(response.headers[name], value)

    def test_security_headers_on_every_response(self):
        for response in (self.http.get("/api/torrents"), self.http.get("/missing")):
            with self.subTest(path=response.url.path):
                for name, value in SECURITY_HEADERS.items():
                    self.assertEqual(response.headers[name], value)


class TestLifespan(unittest.TestCase):
    def test_shutdown_closes_the_client(self):
        api_client = make_api_client()
        with TestClient(create_app(make_config(), api_client=api_client)):
            pass
        api_client.close.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
