import tempfile
import unittest
from datetime import datetime

from ptlog.errors import (
    ConstraintViolationError,
    NotFoundError,
    PersistenceError,
    PoolExhaustedError,
)
from ptlog.tests.helpers import make_db_client, sample_draft


class SqlDbClientTests(unittest.TestCase):
    """
    Runs the repository against a temporary embedded database file.
    """

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db = make_db_client(self.tmp.name)
        self.db.create_project("Alpha")

    def tearDown(self):
        self.db.engine.dispose()
        self.tmp.cleanup()

    def test_next_name_uses_count_plus_one(self):
        self.assertEqual(self.db.count_for_project("Alpha"), 0)
        for i in range(3):
            self.db.insert_log(sample_draft("Alpha", test_name=f"Run{i}"))
        self.assertEqual(self.db.count_for_project("Alpha"), 3)

        name = self.db.insert_log(
            sample_draft("Alpha", test_type="Belastningstest", test_name="Checkout")
        )
        self.assertEqual(name, "04_BEL_Checkout")

    def test_ordinal_widens_past_99(self):
        for i in range(99):
            self.db.insert_log(sample_draft("Alpha", test_name=f"Run{i}"))
        name = self.db.insert_log(sample_draft("Alpha", test_name="Last"))
        self.assertEqual(name, "100_REF_Last")

        names = [record.name for record in self.db.query_logs("Alpha")]
        self.assertEqual(names[:3], ["100_REF_Last", "99_REF_Run98", "98_REF_Run97"])

    def test_insert_then_query_round_trip(self):
        when = datetime(2024, 5, 2, 14, 30)
        name = self.db.insert_log(
            sample_draft(
                "Alpha",
                test_type="Maxtest",
                test_name="Search",
                when=when,
                purpose="Find the ceiling",
                tester="Robin",
            )
        )
        records = self.db.query_logs("Alpha")
        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertEqual(record.name, name)
        self.assertEqual(record.timestamp, when)
        self.assertEqual(record.type, "Maxtest")
        self.assertEqual(record.purpose, "Find the ceiling")
        self.assertEqual(record.project, "Alpha")
        self.assertEqual(record.tester, "Robin")
        self.assertIsNone(record.analysis)

    def test_query_orders_most_recent_first(self):
        self.db.insert_log(sample_draft("Alpha", test_name="Old", when=datetime(2024, 1, 1, 8, 0)))
        self.db.insert_log(sample_draft("Alpha", test_name="New", when=datetime(2024, 6, 1, 8, 0)))
        self.db.insert_log(sample_draft("Alpha", test_name="Mid", when=datetime(2024, 3, 1, 8, 0)))
        names = [record.name for record in self.db.query_logs("Alpha")]
        self.assertEqual(names, ["02_REF_New", "03_REF_Mid", "01_REF_Old"])

    def test_query_unknown_project_is_empty(self):
        self.assertEqual(self.db.query_logs("Nobody"), [])

    def test_insert_into_missing_project_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.db.insert_log(sample_draft("Ghost"))
        self.assertEqual(self.db.count_for_project("Ghost"), 0)

    def test_update_analysis(self):
        name = self.db.insert_log(sample_draft("Alpha"))
        self.assertEqual(self.db.update_analysis("Alpha", name, "Looks good"), 1)
        self.assertEqual(self.db.query_logs("Alpha")[0].analysis, "Looks good")

    def test_update_analysis_missing_row_changes_nothing(self):
        name = self.db.insert_log(sample_draft("Alpha"))
        self.assertEqual(self.db.update_analysis("Alpha", "99_REF_None", "x"), 0)
        self.assertEqual(self.db.update_analysis("Beta", name, "x"), 0)
        self.assertIsNone(self.db.query_logs("Alpha")[0].analysis)

    def test_delete_log(self):
        name = self.db.insert_log(sample_draft("Alpha"))
        self.assertEqual(self.db.delete_log("Alpha", name), 1)
        self.assertEqual(self.db.delete_log("Alpha", name), 0)
        self.assertEqual(self.db.query_logs("Alpha"), [])

    def test_create_project_trims_and_rejects_duplicates(self):
        self.db.create_project("  Beta ")
        self.assertEqual(self.db.list_projects(), ["Alpha", "Beta"])
        with self.assertRaises(ConstraintViolationError) as ctx:
            self.db.create_project("Beta")
        self.assertIsInstance(ctx.exception, PersistenceError)

    def test_project_names_are_case_sensitive(self):
        self.db.create_project("alpha")
        self.assertEqual(self.db.list_projects(), ["Alpha", "alpha"])

    def test_archive_and_restore(self):
        self.db.create_project("Beta")
        self.assertEqual(self.db.set_archived("Alpha", True), 1)
        self.assertEqual(self.db.list_projects(archived=False), ["Beta"])
        self.assertEqual(self.db.list_projects(archived=True), ["Alpha"])

        self.assertEqual(self.db.set_archived("Alpha", False), 1)
        self.assertEqual(self.db.list_projects(archived=False), ["Alpha", "Beta"])
        self.assertEqual(self.db.list_projects(archived=True), [])

    def test_archive_missing_project_is_not_an_error(self):
        self.assertEqual(self.db.set_archived("Ghost", True), 0)

    def test_delete_project_cascades(self):
        self.db.create_project("Beta")
        self.db.insert_log(sample_draft("Alpha"))
        self.db.insert_log(sample_draft("Alpha"))
        self.db.insert_log(sample_draft("Beta"))

        result = self.db.delete_project("Alpha")
        self.assertTrue(result.project_deleted)
        self.assertEqual(result.logs_deleted, 2)
        self.assertEqual(self.db.query_logs("Alpha"), [])
        self.assertEqual(self.db.list_projects(), ["Beta"])
        self.assertEqual(self.db.count_for_project("Beta"), 1)

    def test_failed_project_delete_keeps_its_logs(self):
        self.db.insert_log(sample_draft("Alpha"))
        with self.db.engine.begin() as conn:
            conn.exec_driver_sql(
                "CREATE TRIGGER block_project_delete BEFORE DELETE ON ptlog_projekt "
                "BEGIN SELECT RAISE(ABORT, 'blocked'); END"
            )

        with self.assertRaises(PersistenceError):
            self.db.delete_project("Alpha")
        self.assertEqual(self.db.count_for_project("Alpha"), 1)
        self.assertEqual(self.db.list_projects(), ["Alpha"])

    def test_name_taken_after_delete_is_a_conflict(self):
        for _ in range(3):
            self.db.insert_log(sample_draft("Alpha"))
        self.assertEqual(self.db.delete_log("Alpha", "01_REF_Baseline"), 1)

        with self.assertRaises(ConstraintViolationError):
            self.db.insert_log(sample_draft("Alpha"))
        self.assertEqual(self.db.count_for_project("Alpha"), 2)

        name = self.db.insert_log(sample_draft("Alpha", test_name="Rerun"))
        self.assertEqual(name, "03_REF_Rerun")

    def test_delete_missing_project_reports_not_found(self):
        self.db.insert_log(sample_draft("Alpha"))
        result = self.db.delete_project("Ghost")
        self.assertFalse(result.project_deleted)
        self.assertEqual(result.logs_deleted, 0)
        self.assertEqual(self.db.count_for_project("Alpha"), 1)

    def test_pool_and_backend_diagnostics(self):
        status = self.db.pool_status()
        self.assertEqual(status["checked_out"], 0)
        self.assertIn("size", status)
        info = self.db.describe()
        self.assertEqual(info["dialect"], "sqlite")
        self.assertEqual(info["schema_state"], "ready")


class PoolExhaustionTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db = make_db_client(
            self.tmp.name, max_pool_size=1, min_idle=1, connection_timeout_ms=200
        )

    def tearDown(self):
        self.db.engine.dispose()
        self.tmp.cleanup()

    def test_checkout_timeout_is_reported_as_pool_exhausted(self):
        held = self.db.engine.connect()
        try:
            with self.assertRaises(PoolExhaustedError):
                self.db.list_projects()
        finally:
            held.close()
        self.assertEqual(self.db.list_projects(), [])


if __name__ == "__main__":
    unittest.main()
