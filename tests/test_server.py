import logging
import unittest
from unittest.mock import Mock, patch

import server
from wanderer.errors import BackendUnavailable

from fakes import FakeBackend, ScriptedRandom, make_city


def _backend():
    backend = FakeBackend([
        make_city(1, population=5000, lat=0.0, lng=0.0, name="Origin"),
        make_city(2, population=4000, lat=10.0, lng=0.0, name="Target"),
        make_city(3, population=3000, lat=0.0, lng=10.0, name="Eastville"),
    ] + [make_city(i, population=100 + i) for i in range(4, 12)])
    return backend


class ServerTests(unittest.TestCase):
    def setUp(self):
        server.GAMES.clear()
        self.app = server.app.test_client()
        self.backend = _backend()
        patcher = patch.object(server, "_make_client", return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        # difficulty 0 -> 10 largest cities; fixed draws so the pair is (1, 2)
        rng_patch = patch("wanderer.sampler.random.Random", return_value=ScriptedRandom([1, 2]))
        rng_patch.start()
        self.addCleanup(rng_patch.stop)

    def _start(self):
        rsp = self.app.post("/api/games", json={"token": "tok", "username": "me", "difficulty": 0})
        self.assertEqual(rsp.status_code, 200)
        return rsp.get_json()

    def test_requires_credentials(self):
        rsp = self.app.post("/api/games", json={"difficulty": 0})
        self.assertEqual(rsp.status_code, 400)

    def test_start_and_info(self):
        body = self._start()
        self.assertEqual(body["current"]["fid"], 1)
        self.assertEqual(body["visited"], [1])
        self.assertIn("Origin", body["message"])

        rsp = self.app.post(f"/api/games/{body['game_id']}/command", json={"command": "info"})
        data = rsp.get_json()
        self.assertEqual(data["kind"], "info")
        self.assertAlmostEqual(data["bearing"], 0.0, places=6)
        self.assertIn("bearing of 0 degrees", data["message"])

    def test_move_and_save(self):
        game_id = self._start()["game_id"]
        self.backend.results = [self.backend.cities[3]]
        data = self.app.post(f"/api/games/{game_id}/command", json={"command": "e"}).get_json()
        self.assertEqual(data["kind"], "moved")
        self.assertEqual(data["city"]["fid"], 3)

        summary = self.app.get(f"/api/games/{game_id}").get_json()
        self.assertEqual(summary["visited"], [1, 3])
        self.assertEqual(summary["difficulty"], "easy")

        saved = self.app.post(f"/api/games/{game_id}/save", json={}).get_json()
        self.assertEqual(saved["item_id"], "item123")
        self.assertEqual(self.backend.saved_items, [[1, 3]])

    def test_unrecognized_command(self):
        game_id = self._start()["game_id"]
        data = self.app.post(f"/api/games/{game_id}/command", json={"command": "fly"}).get_json()
        self.assertEqual(data["kind"], "unrecognized")
        self.assertEqual(data["message"], "I don't know how to fly")

    def test_missing_command(self):
        game_id = self._start()["game_id"]
        rsp = self.app.post(f"/api/games/{game_id}/command", json={})
        self.assertEqual(rsp.status_code, 400)

    def test_unknown_game(self):
        self.assertEqual(self.app.get("/api/games/nope").status_code, 404)
        self.assertEqual(self.app.post("/api/games/nope/command", json={"command": "n"}).status_code, 404)

    def test_backend_down_at_start(self):
        self.backend.query_ranked = Mock(side_effect=BackendUnavailable("down"))
        rsp = self.app.post("/api/games", json={"token": "tok", "difficulty": 0})
        self.assertEqual(rsp.status_code, 502)
        self.assertEqual(rsp.get_json()["error"], "BackendUnavailable")
        self.assertEqual(server.GAMES, {})

    def test_log_lines_carry_logger_name(self):
        record = logging.LogRecord("NearestJobRunner", logging.INFO, __file__, 1, "Job %s status=%s", ("j1", "esriJobRunning"), None)
        line = logging.Formatter(server.LOG_FORMAT).format(record)
        self.assertIn("NearestJobRunner: Job j1 status=esriJobRunning", line)


if __name__ == "__main__":
    unittest.main()
