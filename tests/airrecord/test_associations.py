# Tests for the associations module.

import unittest

from airrecord import Table, Record, Association
from tests.airrecord.base import AirrecordTestCase, TEST_BASE_ID, TEST_SERVER_URI, make_response, record_data, page


class AssociationTests(AirrecordTestCase):

    table_name = "Projects"

    def setUp(self):
        super(AssociationTests, self).setUp()
        self.projects = self.table
        self.tasks = Table(TEST_BASE_ID, "Tasks", binding=self.binding)
        self.projects.has_many("tasks", self.tasks, column="Tasks")
        self.tasks.belongs_to("project", self.projects, column="Project")
        self.task_a = Record(self.tasks, {"Name": "A"}, id="recA")
        self.task_b = Record(self.tasks, {"Name": "B"}, id="recB")

    def test_declarations(self):
        self.assertEqual(Association("tasks", self.tasks, "Tasks", False), self.projects.associations["tasks"])
        self.assertTrue(self.tasks.associations["project"].single)
        self.assertIs(Table.belongs_to, Table.has_one)

    def test_assign_many_reverses_ids(self):
        project = Record(self.projects, {"Name": "P"}, id="recP")
        project.tasks = [self.task_a, self.task_b]
        self.assertEqual(["recB", "recA"], project.fields["Tasks"])
        self.assertEqual(["Tasks"], project.updated_keys)
        self.assertNoRequests()

    def test_many_round_trip_preserves_order(self):
        project = Record(self.projects, {"Name": "P"}, id="recP")
        project.tasks = [self.task_a, self.task_b]

        self.session.get.return_value = page(["recB", "recA"])
        tasks = project.tasks

        self.assertEqual(["recA", "recB"], [task.id for task in tasks])
        self.assertEqual([("filterByFormula", "OR(RECORD_ID() = 'recA',RECORD_ID() = 'recB')")],
                         self.session.get.call_args[1]["params"])
        self.assertEqual(TEST_SERVER_URI + "/appBASE/Tasks", self.session.get.call_args[0][0])

    def test_many_reads_in_display_order(self):
        project = Record(self.projects, {"Tasks": ["rec1", "rec2", "rec3"]}, id="recP")
        self.session.get.return_value = page(["rec1", "rec2", "rec3"])
        self.assertEqual(["rec3", "rec2", "rec1"], [task.id for task in project.related("tasks")])

    def test_many_empty_column(self):
        project = Record(self.projects, {"Name": "P"}, id="recP")
        self.assertEqual([], project.tasks)
        self.assertNoRequests()

    def test_single_reads_first_displayed_id(self):
        task = Record(self.tasks, {"Project": ["recP2", "recP1"]}, id="recA")
        self.session.get.return_value = make_response(200, record_data("recP1", {"Name": "P1"}))
        project = task.project
        self.assertEqual("recP1", project.id)
        self.assertIs(self.projects, project.table)
        self.assertEqual(TEST_SERVER_URI + "/appBASE/Projects/recP1", self.session.get.call_args[0][0])

    def test_single_empty_column(self):
        task = Record(self.tasks, {"Name": "A"}, id="recA")
        self.assertIsNone(task.project)
        self.assertNoRequests()

    def test_single_assignment(self):
        project = Record(self.projects, {"Name": "P"}, id="recP")
        task = Record(self.tasks, {"Name": "A"}, id="recA")
        task.project = project
        self.assertEqual(["recP"], task.fields["Project"])

        self.session.get.return_value = make_response(200, record_data("recP", {"Name": "P"}))
        self.assertEqual("recP", task.project.id)

    def test_assign_none_clears(self):
        task = Record(self.tasks, {"Project": ["recP"]}, id="recA")
        task.relate("project", None)
        self.assertEqual([], task.fields["Project"])
        self.assertEqual(["Project"], task.updated_keys)

    def test_assign_same_ids_is_noop(self):
        project = Record(self.projects, {"Tasks": ["recB", "recA"]}, id="recP")
        project.tasks = [self.task_a, self.task_b]
        self.assertEqual([], project.updated_keys)

    def test_assignment_is_saved_through_dirty_tracking(self):
        project = Record(self.projects, {"Name": "P", "Tasks": []}, id="recP")
        project.tasks = [self.task_a, self.task_b]
        self.session.patch.return_value = make_response(200, record_data("recP", {
            "Name": "P", "Tasks": ["recB", "recA"]
        }))
        project.save()
        self.assertEqual({"fields": {"Tasks": ["recB", "recA"]}}, self.session.patch.call_args[1]["json"])

    def test_callable_target(self):
        people = Table(TEST_BASE_ID, "People", binding=self.binding)
        self.tasks.belongs_to("owner", lambda: people, column="Owner")
        task = Record(self.tasks, {"Owner": ["recU"]}, id="recA")
        self.session.get.return_value = make_response(200, record_data("recU", {"Name": "U"}))
        self.assertIs(people, task.owner.table)

    def test_unknown_attribute(self):
        task = Record(self.tasks, {"Name": "A"}, id="recA")
        with self.assertRaises(AttributeError):
            task.assignee


if __name__ == '__main__':
    unittest.main()
