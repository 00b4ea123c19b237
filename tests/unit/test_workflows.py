"""Tests for workflows module."""

import unittest

from buildtree.graph import TargetGraph, TargetNotFoundError
from buildtree.pipeline import create_graph
from buildtree.workflows import WORKFLOWS, Workflow, validate_workflows


class TestWorkflows(unittest.TestCase):
    def test_all_workflows_match_build_graph(self):
        validate_workflows(create_graph())

    def test_after_merge_bumps_and_publishes(self):
        workflow = WORKFLOWS["after-merge"]
        self.assertEqual(workflow.invoked_targets, ("BumpVersion", "Publish"))
        self.assertEqual(workflow.on_push_branches, ("main",))
        self.assertEqual(workflow.fetch_depth, 0)

    def test_continuous_ignores_main(self):
        self.assertEqual(WORKFLOWS["continuous"].on_push_branches_ignore, ("main",))
        self.assertIn("push except main", WORKFLOWS["continuous"].describe_triggers())

    def test_bumpversion_not_generated(self):
        self.assertFalse(WORKFLOWS["bumpversion"].auto_generate)

    def test_unknown_target_rejected(self):
        graph = TargetGraph()
        graph.define("Test")
        graph.build()
        workflows = {"deploy": Workflow(name="deploy", invoked_targets=("Deploy",))}

        with self.assertRaises(TargetNotFoundError) as ctx:
            validate_workflows(graph, workflows)
        self.assertIn("deploy", str(ctx.exception))

    def test_workflow_without_targets_rejected(self):
        graph = TargetGraph().build()
        with self.assertRaises(TargetNotFoundError):
            validate_workflows(graph, {"empty": Workflow(name="empty", invoked_targets=())})


if __name__ == "__main__":
    unittest.main()
