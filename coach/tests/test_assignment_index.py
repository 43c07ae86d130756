import unittest
from coach.domain.AssignedPlan import AssignedPlan
from coach.domain.Client import Client, Package
from coach.domain.Template import Template
from coach.logic.assignment.index import build_index, annotate_roster, all_assigned


def plan(**fields):
    record = {"isTemplate": False}
    record.update(fields)
    return record


class TestBuildIndex(unittest.TestCase):

    def setUp(self):
        self.template = Template(id="w1", resource_kind="workout", name="12-Week Cut")

    def test_matches_by_template_id_regardless_of_name(self):
        index = build_index(self.template, [plan(templateId="w1", name="Renamed copy", clientId="c1")])
        self.assertEqual(index.assigned_client_ids, {"c1"})

    def test_template_id_is_trimmed(self):
        index = build_index(self.template, [plan(templateId="  w1 ", name="x", clientId="c1")])
        self.assertIn("c1", index)

    def test_legacy_plan_matches_by_name(self):
        template = Template(id="d9", resource_kind="diet", name="Keto Basics")
        index = build_index(template, [plan(templateId="", name="Keto Basics", clientId="c2")])
        self.assertEqual(index.assigned_client_ids, {"c2"})

    def test_whitespace_template_id_falls_through_to_name(self):
        template = Template(id="d9", resource_kind="diet", name="Keto Basics")
        plans = [
            plan(templateId="   ", name="Keto Basics", clientId="c2"),
            plan(templateId="   ", name="Paleo", clientId="c3"),
        ]
        index = build_index(template, plans)
        self.assertEqual(index.assigned_client_ids, {"c2"})

    def test_name_match_is_case_sensitive_after_trim(self):
        plans = [
            plan(name=" 12-Week Cut ", clientId="c1"),
            plan(name="12-week cut", clientId="c2"),
        ]
        index = build_index(self.template, plans)
        self.assertEqual(index.assigned_client_ids, {"c1"})

    def test_different_id_and_name_is_excluded(self):
        index = build_index(self.template, [plan(templateId="w2", name="Bulk", clientId="c1")])
        self.assertEqual(index.assigned_client_ids, set())
        self.assertEqual(index.assigned_client_names, [])

    def test_template_records_are_ignored(self):
        plans = [
            {"templateId": "w1", "name": "12-Week Cut", "clientId": "c1", "isTemplate": True},
            {"templateId": "w1", "name": "12-Week Cut", "clientId": "c2"},
        ]
        self.assertEqual(build_index(self.template, plans).assigned_client_ids, set())

    def test_plans_without_client_are_skipped(self):
        index = build_index(self.template, [plan(templateId="w1", clientId=None), plan(templateId="w1")])
        self.assertEqual(index.assigned_client_ids, set())

    def test_denormalized_client_is_normalized(self):
        plans = [
            plan(templateId="w1", clientId={"_id": " c1 ", "name": "Ana Pop"}),
            plan(templateId="w1", clientId="c2"),
        ]
        index = build_index(self.template, plans)
        self.assertEqual(index.assigned_client_ids, {"c1", "c2"})
        self.assertEqual(index.assigned_client_names, ["Ana Pop"])

    def test_client_listed_once_when_holding_several_copies(self):
        plans = [
            plan(templateId="w1", clientId={"_id": "c1", "name": "Ana Pop"}),
            plan(name="12-Week Cut", clientId={"_id": "c1", "name": "Ana Pop"}),
        ]
        index = build_index(self.template, plans)
        self.assertEqual(index.assigned_client_names, ["Ana Pop"])

    def test_unnamed_template_does_not_match_unnamed_plans(self):
        template = Template(id="", resource_kind="meal", name="")
        index = build_index(template, [plan(name="", clientId="c1")])
        self.assertEqual(index.assigned_client_ids, set())

    def test_accepts_domain_objects(self):
        existing = [AssignedPlan(template_id="w1", name="x", client_id="c1", is_template=False)]
        self.assertEqual(build_index(self.template, existing).assigned_client_ids, {"c1"})

    def test_same_inputs_same_index(self):
        plans = [plan(templateId="w1", clientId="c1"), plan(name="12-Week Cut", clientId="c2")]
        first = build_index(self.template, plans)
        second = build_index(self.template, plans)
        self.assertEqual(first, second)

    def test_template_key_falls_back_to_name(self):
        self.assertEqual(build_index(self.template, []).template_key, "w1")
        unnamed = Template(id="", resource_kind="diet", name=" Keto Basics ")
        self.assertEqual(build_index(unnamed, []).template_key, "Keto Basics")


class TestAnnotateRoster(unittest.TestCase):

    def setUp(self):
        self.template = Template(id="w1", resource_kind="workout", name="12-Week Cut")
        self.clients = [
            Client("c1", "Ana Pop", "ana@example.com", "pk1"),
            Client("c2", "Bogdan Ionescu", "bogdan@example.com", "pk2"),
        ]
        self.packages = [Package("pk1", "Gold")]
        self.index = build_index(self.template, [plan(templateId="w1", clientId="c1")])

    def test_rows_flag_assigned_clients_and_resolve_packages(self):
        rows = annotate_roster(self.clients, self.index, self.packages)
        by_id = {r["id"]: r for r in rows}
        self.assertTrue(by_id["c1"]["isAlreadyAssigned"])
        self.assertFalse(by_id["c2"]["isAlreadyAssigned"])
        self.assertEqual(by_id["c1"]["package"]["name"], "Gold")
        self.assertIsNone(by_id["c2"]["package"])

    def test_search_keeps_assigned_clients_visible(self):
        rows = annotate_roster(self.clients, self.index, self.packages, search="ANA@")
        self.assertEqual([r["id"] for r in rows], ["c1"])
        self.assertTrue(all_assigned(rows, self.index))

    def test_not_all_assigned_with_eligible_client(self):
        rows = annotate_roster(self.clients, self.index, self.packages)
        self.assertFalse(all_assigned(rows, self.index))


if __name__ == '__main__':
    unittest.main()
