import unittest
from unittest.mock import Mock

from wanderer.errors import BackendQueryError, BackendUnavailable, JobFailed
from wanderer.jobs import NearestJobRunner, build_filters
from wanderer.models import AnalysisJob, JobStatus

from fakes import FakeBackend, make_city


class PollUntilTerminalTests(unittest.TestCase):
    def setUp(self):
        self.backend = FakeBackend([])
        self.backend.get_status = Mock()
        self.backend.get_result = Mock(return_value=make_city(42, population=9000))
        self.sleep = Mock()
        self.runner = NearestJobRunner(self.backend, poll_interval_s=5.0, max_polls=None, sleep=self.sleep)

    def test_running_running_succeeded(self):
        self.backend.get_status.side_effect = [JobStatus.RUNNING, JobStatus.SUCCEEDED]
        outcome = self.runner.poll_until_terminal(AnalysisJob("j1", JobStatus.RUNNING))
        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.city.fid, 42)
        self.assertEqual(self.sleep.call_count, 2)
        self.sleep.assert_called_with(5.0)
        self.assertEqual(self.backend.get_status.call_count, 2)
        self.backend.get_result.assert_called_once_with("j1")

    def test_terminal_failure_is_not_retried(self):
        for status in (JobStatus.FAILED, JobStatus.TIMED_OUT, JobStatus.CANCELLED):
            self.backend.get_status.reset_mock()
            self.backend.get_status.side_effect = [status]
            outcome = self.runner.poll_until_terminal(AnalysisJob("j2", JobStatus.SUBMITTED))
            self.assertFalse(outcome.succeeded)
            self.assertEqual(outcome.status, status)
            self.assertEqual(self.backend.get_status.call_count, 1)
        self.backend.get_result.assert_not_called()

    def test_unknown_status_keeps_polling(self):
        self.backend.get_status.side_effect = [JobStatus.UNKNOWN, JobStatus.UNKNOWN, JobStatus.SUCCEEDED]
        outcome = self.runner.poll_until_terminal(AnalysisJob("j3", JobStatus.SUBMITTED))
        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.polls, 3)

    def test_failed_status_read_keeps_polling(self):
        self.backend.get_status.side_effect = [JobStatus.RUNNING, BackendUnavailable("blip"), JobStatus.SUCCEEDED]
        outcome = self.runner.poll_until_terminal(AnalysisJob("j6", JobStatus.SUBMITTED))
        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.city.fid, 42)
        self.assertEqual(outcome.polls, 3)
        self.assertEqual(self.sleep.call_count, 3)

    def test_unparseable_status_read_counts_toward_max_polls(self):
        runner = NearestJobRunner(self.backend, poll_interval_s=1.0, max_polls=2, sleep=self.sleep)
        self.backend.get_status.side_effect = [BackendQueryError("bad body"), BackendQueryError("bad body")]
        with self.assertRaises(JobFailed) as ctx:
            runner.poll_until_terminal(AnalysisJob("j7", JobStatus.RUNNING))
        self.assertEqual(ctx.exception.status, JobStatus.UNKNOWN)
        self.backend.get_result.assert_not_called()

    def test_already_succeeded_skips_sleep(self):
        outcome = self.runner.poll_until_terminal(AnalysisJob("j4", JobStatus.SUCCEEDED))
        self.assertTrue(outcome.succeeded)
        self.sleep.assert_not_called()

    def test_max_polls(self):
        runner = NearestJobRunner(self.backend, poll_interval_s=1.0, max_polls=2, sleep=self.sleep)
        self.backend.get_status.side_effect = [JobStatus.RUNNING, JobStatus.RUNNING, JobStatus.RUNNING]
        with self.assertRaises(JobFailed) as ctx:
            runner.poll_until_terminal(AnalysisJob("j5", JobStatus.SUBMITTED))
        self.assertEqual(ctx.exception.status, JobStatus.UNKNOWN)
        self.assertEqual(self.backend.get_status.call_count, 2)


class FindNearestTests(unittest.TestCase):
    def test_filters(self):
        analysis, near = build_filters(make_city(17), 250000)
        self.assertEqual(analysis, "population >= 250000 AND FID <> 17")
        self.assertEqual(near, "FID = 17")

    def test_submits_one_result_job_in_extent(self):
        backend = FakeBackend([])
        backend.results = [make_city(8)]
        runner = NearestJobRunner(backend, poll_interval_s=0.0, sleep=Mock())
        outcome = runner.find_nearest(make_city(3, lat=10.0, lng=170.0), "e", 100)
        self.assertEqual(outcome.city.fid, 8)
        sent = backend.submitted[0]
        self.assertEqual(sent["max_count"], 1)
        self.assertEqual(sent["near_filter"], "FID = 3")
        self.assertAlmostEqual(sent["extent"].xmax, -10.0)

    def test_unknown_direction(self):
        runner = NearestJobRunner(FakeBackend([]), poll_interval_s=0.0, sleep=Mock())
        with self.assertRaises(ValueError):
            runner.find_nearest(make_city(3), "up", 100)


if __name__ == "__main__":
    unittest.main()
