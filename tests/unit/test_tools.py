"""Tests for the toolchain wrappers."""

import unittest
from pathlib import Path
from unittest.mock import patch

from helpers.logging import RecordingLogger, logger_stub
from helpers.process_runner import MockProcessRunner
from buildtree.tools import (
    DotNet,
    Git,
    MinVer,
    ReportGenerator,
    ToolError,
    Toolchain,
    is_on_hotfix_branch,
    is_on_main_branch,
    is_on_main_or_master_branch,
    is_on_release_branch,
)

ROOT = Path("/repo")


class TestTool(unittest.TestCase):
    def test_non_zero_exit_raises_with_diagnostics(self):
        runner = MockProcessRunner()
        runner.respond(["dotnet", "build"], returncode=1, stderr="line1\nerror CS0103\n")

        with self.assertRaises(ToolError) as ctx:
            DotNet(runner, logger_stub, ROOT).build(ROOT, "Debug")

        error = ctx.exception
        self.assertEqual(error.exit_code, 1)
        self.assertEqual(error.tool, "dotnet")
        self.assertIn("error CS0103", error.output)
        self.assertIn("exit code 1", str(error))

    def test_diagnostics_fall_back_to_stdout(self):
        runner = MockProcessRunner()
        runner.respond(["dotnet", "test"], returncode=1, stdout="Failed!  - Failed: 2\n")

        with self.assertRaises(ToolError) as ctx:
            DotNet(runner, logger_stub, ROOT).test("Debug", ROOT / "TestResults", "XPlat Code Coverage")

        self.assertIn("Failed: 2", ctx.exception.output)

    def test_missing_executable(self):
        runner = MockProcessRunner()
        with patch.object(runner, "run", side_effect=FileNotFoundError("minver")):
            with self.assertRaises(ToolError) as ctx:
                MinVer(runner, logger_stub, ROOT).version()
        self.assertEqual(ctx.exception.exit_code, 127)

    def test_runs_in_root_directory(self):
        runner = MockProcessRunner()
        with patch.object(runner, "run", wraps=runner.run) as run:
            Git(runner, logger_stub, ROOT).tag("1.0.0")
        self.assertEqual(run.call_args.kwargs["cwd"], ROOT)


class TestDotNet(unittest.TestCase):
    def setUp(self):
        self.runner = MockProcessRunner()
        self.dotnet = DotNet(self.runner, logger_stub, ROOT)

    def test_restore_forced(self):
        self.dotnet.restore(ROOT)
        self.assertEqual(self.runner.calls[-1], ["dotnet", "restore", "/repo", "--force"])

    def test_build(self):
        self.dotnet.build(ROOT, "Release")
        self.assertEqual(
            self.runner.calls[-1],
            ["dotnet", "build", "/repo", "--nologo", "--no-restore", "--configuration", "Release"],
        )

    def test_test_passes_run_settings_after_separator(self):
        self.dotnet.test("Debug", Path("/repo/TestResults"), "XPlat Code Coverage", {"A.B": "x,y"})

        cmd = self.runner.calls[-1]
        self.assertIn("--no-build", cmd)
        self.assertEqual(cmd[cmd.index("--collect") + 1], "XPlat Code Coverage")
        self.assertEqual(cmd[cmd.index("--results-directory") + 1], "/repo/TestResults")
        self.assertEqual(cmd[-2:], ["--", "A.B=x,y"])

    def test_pack_output_directory(self):
        self.dotnet.pack(Path("/repo/src/Cli"), "Release", Path("/repo/packages/1.2.3"))

        cmd = self.runner.calls[-1]
        self.assertEqual(cmd[:3], ["dotnet", "pack", "/repo/src/Cli"])
        self.assertEqual(cmd[cmd.index("--output") + 1], "/repo/packages/1.2.3")

    def test_nuget_push_never_logs_api_key(self):
        logger = RecordingLogger()
        dotnet = DotNet(self.runner, logger, ROOT)

        dotnet.nuget_push(Path("/repo/packages/a.nupkg"), "oy2secret", "https://nuget.example/v3")

        self.assertIn("oy2secret", self.runner.calls[-1])
        self.assertNotIn("oy2secret", logger.text())
        self.assertIn("***", logger.text())

    def test_failed_push_error_hides_api_key(self):
        self.runner.respond(["dotnet", "nuget", "push"], returncode=1, stderr="403 Forbidden")

        with self.assertRaises(ToolError) as ctx:
            self.dotnet.nuget_push(Path("a.nupkg"), "oy2secret", "https://nuget.example/v3")

        self.assertNotIn("oy2secret", ctx.exception.command)


class TestReportGenerator(unittest.TestCase):
    def test_generate(self):
        runner = MockProcessRunner()
        ReportGenerator(runner, logger_stub, ROOT).generate(
            [Path("/r/a.xml"), Path("/r/b.xml")], Path("/r/coveragereport")
        )
        self.assertEqual(
            runner.calls[-1],
            ["reportgenerator", "-reports:/r/a.xml;/r/b.xml", "-targetdir:/r/coveragereport"],
        )


class TestMinVer(unittest.TestCase):
    def test_version_is_last_stdout_line(self):
        runner = MockProcessRunner()
        runner.respond(["minver"], stdout="\n1.4.0-alpha.0.3\n\n")

        self.assertEqual(MinVer(runner, logger_stub, ROOT).version(), "1.4.0-alpha.0.3")

    def test_last_tag_version_ignores_height(self):
        runner = MockProcessRunner()
        runner.respond(["minver", "-i"], stdout="1.3.0\n")

        self.assertEqual(MinVer(runner, logger_stub, ROOT).last_tag_version(), "1.3.0")


class TestGit(unittest.TestCase):
    def setUp(self):
        self.runner = MockProcessRunner()
        self.git = Git(self.runner, logger_stub, ROOT)

    def test_current_branch(self):
        self.runner.respond(["git", "rev-parse", "--abbrev-ref"], stdout="feature/x\n")
        self.assertEqual(self.git.current_branch(), "feature/x")

    def test_detached_head_uses_ci_branch(self):
        self.runner.respond(["git", "rev-parse", "--abbrev-ref"], stdout="HEAD\n")
        with patch.dict("os.environ", {"GITHUB_REF_NAME": "main"}, clear=True):
            self.assertEqual(self.git.current_branch(), "main")

    def test_tags(self):
        self.runner.respond(["git", "tag", "--points-at"], stdout="1.0.0\nv1\n")
        self.assertEqual(self.git.tags(), ["1.0.0", "v1"])

    def test_tag_force_and_push(self):
        self.git.tag("1.2.0", force=True)
        self.git.push(tags=True, force=True)

        self.assertEqual(self.runner.commands("git"), [
            ["git", "tag", "1.2.0", "-f"],
            ["git", "push", "--tags", "-f"],
        ])

    def test_remote_url_missing(self):
        self.runner.respond(["git", "remote", "get-url"], returncode=2, stderr="No such remote")
        self.assertIsNone(self.git.remote_url())


class TestBranchClassification(unittest.TestCase):
    def test_classification(self):
        self.assertTrue(is_on_main_branch("main"))
        self.assertFalse(is_on_main_branch("master"))
        self.assertTrue(is_on_main_or_master_branch("master"))
        self.assertFalse(is_on_main_or_master_branch("develop"))
        self.assertTrue(is_on_release_branch("release/1.0"))
        self.assertTrue(is_on_hotfix_branch("hotfix/crash"))
        self.assertFalse(is_on_hotfix_branch("feature/hotfix"))


class TestToolchain(unittest.TestCase):
    def test_create_shares_runner(self):
        runner = MockProcessRunner()
        tools = Toolchain.create(runner, logger_stub, ROOT)

        tools.git.tag("1.0.0")
        tools.dotnet.restore(ROOT)

        self.assertEqual([c[0] for c in runner.calls], ["git", "dotnet"])


if __name__ == "__main__":
    unittest.main()
