"""test_mutations.py: Task / Cashflow write translation against a recording fake client.

Run: python3 -m pytest backend/lambda/shared_layer/test_mutations.py -v
"""

from __future__ import annotations

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "python"))

from dashboard_shared.errors import UnknownProjectKey, UpstreamWriteError, ValidationError
from dashboard_shared.field_maps import build_schema
from dashboard_shared.mutations import MutationTranslator


class RecordingAirtable:
    def __init__(self, fail_writes=False):
        self.projects = [
            {"id": "recP1", "fields": {"Project Key": "macro_lan"}},
            {"id": "recP2", "fields": {"Project Key": "data_center"}},
        ]
        self.fail_writes = fail_writes
        self.calls = []

    def list_records(self, table):
        self.calls.append(("list", table))
        return list(self.projects) if table == "Projects" else []

    def create_record(self, table, fields):
        self.calls.append(("create", table, fields))
        if self.fail_writes:
            raise UpstreamWriteError(table, 422, '{"error":"INVALID_REQUEST"}')
        return {"id": "recNEW", "fields": fields}

    def update_record(self, table, record_id, fields):
        self.calls.append(("update", table, record_id, fields))
        return {"id": record_id, "fields": fields}

    def delete_record(self, table, record_id):
        self.calls.append(("delete", table, record_id))
        return {"id": record_id, "deleted": True}

    def writes(self):
        return [call for call in self.calls if call[0] != "list"]


class TaskMutationTests(unittest.TestCase):
    def setUp(self):
        self.client = RecordingAirtable()
        self.translator = MutationTranslator(self.client, build_schema())

    def test_create_task_fills_defaults_and_links_project(self):
        record = self.translator.create_task({
            "projectKey": "macro_lan",
            "name": "Site survey",
            "progress": "40",
            "startDate": "2025-03-02",
        })

        self.assertEqual(record, {"id": "recNEW"})
        self.assertEqual(self.client.calls[0], ("list", "Projects"))
        _, table, fields = self.client.calls[1]
        self.assertEqual(table, "Tasks")
        self.assertEqual(fields, {
            "Name": "Site survey",
            "Description": "",
            "Owner": "",
            "Status": "pending",
            "Progress": 40,
            "Start Date": "2025-03-02",
            "Project": ["recP1"],
        })

    def test_create_requires_project_key(self):
        with self.assertRaises(ValidationError) as ctx:
            self.translator.create_task({"name": "No project"})
        self.assertIn("projectKey", ctx.exception.message)
        self.assertEqual(self.client.calls, [])

    def test_create_unknown_project_key_issues_no_write(self):
        with self.assertRaises(UnknownProjectKey) as ctx:
            self.translator.create_task({"projectKey": "nonexistent", "name": "x"})
        self.assertIn("nonexistent", ctx.exception.message)
        self.assertEqual(self.client.writes(), [])

    def test_create_rejects_bad_date_before_any_call(self):
        with self.assertRaises(ValidationError):
            self.translator.create_task({"projectKey": "macro_lan", "endDate": "next week"})
        self.assertEqual(self.client.calls, [])

    def test_partial_update_sends_only_present_fields(self):
        record = self.translator.update_task("recT1", {"status": "done"})

        self.assertEqual(record, {"id": "recT1"})
        self.assertEqual(self.client.calls, [("update", "Tasks", "recT1", {"Status": "done"})])

    def test_update_clears_explicit_empty_values(self):
        self.translator.update_task("recT1", {"owner": None, "endDate": "", "progress": None})
        _, _, _, fields = self.client.calls[0]
        self.assertEqual(fields, {"Owner": "", "End Date": None, "Progress": None})

    def test_update_relinks_project(self):
        self.translator.update_task("recT1", {"projectKey": "data_center"})
        self.assertEqual(self.client.calls, [
            ("list", "Projects"),
            ("update", "Tasks", "recT1", {"Project": ["recP2"]}),
        ])

    def test_update_unknown_project_key(self):
        with self.assertRaises(UnknownProjectKey):
            self.translator.update_task("recT1", {"projectKey": "nope", "status": "done"})
        self.assertEqual(self.client.writes(), [])

    def test_update_with_nothing_to_change(self):
        with self.assertRaises(ValidationError):
            self.translator.update_task("recT1", {"unrelated": 1})
        self.assertEqual(self.client.calls, [])

    def test_update_ignores_read_only_task_id(self):
        self.translator.update_task("recT1", {"id": 99, "name": "Renamed"})
        self.assertEqual(self.client.calls[0][3], {"Name": "Renamed"})

    def test_delete_task(self):
        self.assertEqual(self.translator.delete_task("recT1"), {"id": "recT1", "deleted": True})
        self.assertEqual(self.client.calls, [("delete", "Tasks", "recT1")])

    def test_record_id_required(self):
        with self.assertRaises(ValidationError):
            self.translator.delete_task("  ")

    def test_upstream_write_error_propagates(self):
        translator = MutationTranslator(RecordingAirtable(fail_writes=True), build_schema())
        with self.assertRaises(UpstreamWriteError):
            translator.create_task({"projectKey": "macro_lan"})

    def test_compact_style_writes_compact_names(self):
        translator = MutationTranslator(self.client, build_schema(field_style="compact"))
        translator.update_task("recT1", {"startDate": "2025-04-01T10:00:00Z"})
        self.assertEqual(self.client.calls[0][3], {"StartDate": "2025-04-01"})


class CashflowMutationTests(unittest.TestCase):
    def setUp(self):
        self.client = RecordingAirtable()
        self.translator = MutationTranslator(self.client, build_schema())

    def test_create_cashflow_accepts_aliases(self):
        self.translator.create_cashflow({
            "projectKey": "data_center",
            "name": "Advance payment",
            "party": "ACME",
            "date": "2025-03-10",
            "type": "Cobro",
            "amount": "$1,200.50",
            "relatedTask": "recT1",
        })

        _, table, fields = self.client.calls[1]
        self.assertEqual(table, "Cashflow")
        self.assertEqual(fields, {
            "Concept": "Advance payment",
            "Date": "2025-03-10",
            "Type": "Cobro",
            "Amount": 1200.5,
            "Currency": "USD",
            "Counterparty": "ACME",
            "Status": "",
            "Notes": "",
            "Related Task": ["recT1"],
            "Project": ["recP2"],
        })

    def test_update_cashflow_amount_only(self):
        self.translator.update_cashflow("recF1", {"amount": 250})
        self.assertEqual(self.client.calls, [("update", "Cashflow", "recF1", {"Amount": 250})])

    def test_update_cashflow_clears_related_task(self):
        self.translator.update_cashflow("recF1", {"relatedTask": None, "notes": ""})
        self.assertEqual(self.client.calls[0][3], {"Notes": "", "Related Task": []})

    def test_delete_cashflow(self):
        self.assertEqual(self.translator.delete_cashflow("recF1"), {"id": "recF1", "deleted": True})

    def test_unsupported_resource(self):
        with self.assertRaises(ValidationError):
            self.translator.create("team", {"projectKey": "macro_lan"})


if __name__ == "__main__":
    unittest.main()
