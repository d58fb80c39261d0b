import io
import os
import subprocess
import tempfile
import time
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

import build_toolchain
import common
import project_list
from build_toolchain import configure, run_configuration
from project import project, when_built
from toolchain_state import toolchain_state


class command_recorder:
    """代替subprocess.run记录命令，configure时生成config.status"""

    def __init__(self, fail: str | None = None) -> None:
        self.command_list: list[str] = []
        self.fail = fail

    def __call__(self, command: str, **kwargs) -> subprocess.CompletedProcess[str]:
        self.command_list.append(command)
        if self.fail and command.startswith(self.fail):
            raise subprocess.CalledProcessError(2, command)
        if command.split()[0].endswith("/configure"):
            open(os.path.join(kwargs["cwd"], "config.status"), "w").close()
        return subprocess.CompletedProcess(command, 0, "", "")


class fake_host:
    def find_program(self, name: str) -> str | None:
        return None


class BuildTestCase(unittest.TestCase):
    def setUp(self) -> None:
        common.command_dry_run.set(False)
        common.command_verbosity.set(common.message_level.normal)
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = self.temp_dir.name
        self.home = os.path.join(self.root, "src")
        self.build_root = os.path.join(self.root, "build")
        past = time.time() - 3600
        for source in ("a", "b", "binutils", "gcc", "newlib"):
            script = os.path.join(self.home, source, "configure")
            os.makedirs(os.path.dirname(script))
            open(script, "w").close()
            os.utime(script, (past, past))
        self.config = configure(self.home, 2, os.path.join(self.root, "opt"))
        self.cwd = os.getcwd()
        os.chdir(self.root)
        self.path_patch = patch.dict(os.environ, {"PATH": os.environ.get("PATH", "")})
        self.path_patch.start()

    def tearDown(self) -> None:
        self.path_patch.stop()
        os.chdir(self.cwd)
        common.command_dry_run.set(False)
        common.command_verbosity.set(common.message_level.normal)
        self.temp_dir.cleanup()

    def build(self, catalog=None, recorder: command_recorder | None = None, **kwargs):
        recorder = recorder or command_recorder()
        run_config = run_configuration(build_here=True, **kwargs)
        with patch("common.subprocess.run", side_effect=recorder), redirect_stdout(io.StringIO()):
            state = build_toolchain.build(self.config, run_config, catalog, fake_host())
        return state, recorder.command_list

    def main(self, *argv: str, recorder: command_recorder | None = None) -> tuple[int, str, str, command_recorder]:
        recorder = recorder or command_recorder()
        output = io.StringIO()
        errors = io.StringIO()
        with patch("common.subprocess.run", side_effect=recorder), redirect_stdout(output), redirect_stderr(errors):
            try:
                code = build_toolchain.main(["--home", self.home, "--prefix-dir", os.path.join(self.root, "opt"), *argv])
            except SystemExit as e:
                code = e.code
        return code, output.getvalue(), errors.getvalue(), recorder


class ScenarioTests(BuildTestCase):
    catalog = (project("a"), project("b", predicate=when_built("a")))

    def test_dependent_project_follows_state(self) -> None:
        state, _ = self.build(self.catalog)
        self.assertTrue(state.is_built("a"))
        self.assertTrue(state.is_built("b"))

        state, command_list = self.build(self.catalog, only=("b",))
        self.assertFalse(state.is_built("b"))
        self.assertEqual(command_list, [])

        state, command_list = self.build(self.catalog, only=("b",), force=True)
        self.assertTrue(state.is_built("b"))
        self.assertEqual(command_list, ["make -j 2", "make install -j 2"])

    def test_rerun_skips_configure(self) -> None:
        _, first = self.build(self.catalog)
        _, second = self.build(self.catalog)
        self.assertEqual(sum(command.endswith("/configure") or "/configure " in command for command in first), 2)
        self.assertEqual(second, ["make -j 2", "make install -j 2"] * 2)

        _, third = self.build(self.catalog, reconfigure=True)
        self.assertEqual(len(third), 6)

    def test_dry_run_plans_same_commands(self) -> None:
        _, planned = self.build(self.catalog, dry_run=True)
        self.assertEqual(planned, [])
        self.assertFalse(os.path.exists(self.build_root))

        output = io.StringIO()
        common.command_dry_run.set(True)
        with patch("common.subprocess.run") as run, redirect_stdout(output):
            build_toolchain.build(self.config, run_configuration(build_here=True, dry_run=True), self.catalog, fake_host())
        run.assert_not_called()
        echo_list = [line.split("Run command: ", 1)[1] for line in output.getvalue().splitlines() if "Run command: " in line]

        common.command_dry_run.set(False)
        _, executed = self.build(self.catalog)
        self.assertEqual(echo_list, executed)

    def test_failure_aborts_remaining_projects(self) -> None:
        recorder = command_recorder(fail="make install")
        with self.assertRaises(RuntimeError):
            self.build(self.catalog, recorder)
        self.assertFalse(any(os.sep + "b" + os.sep in command for command in recorder.command_list))
        self.assertFalse(os.path.exists(os.path.join(self.build_root, "b")))

    def test_failed_project_is_not_marked_built(self) -> None:
        state = toolchain_state()
        recorder = command_recorder(fail="make install")
        with patch("common.subprocess.run", side_effect=recorder), redirect_stdout(io.StringIO()):
            with self.assertRaises(RuntimeError):
                build_toolchain.build(self.config, run_configuration(build_here=True), self.catalog, fake_host(), state)
        self.assertFalse(state.is_built("a"))
        self.assertEqual(dict(state.snapshot()), {})

    def test_duplicate_names_rejected_before_any_command(self) -> None:
        recorder = command_recorder()
        with self.assertRaises(ValueError):
            self.build((project("a"), project("a")), recorder)
        self.assertEqual(recorder.command_list, [])
        self.assertFalse(os.path.exists(self.build_root))


class CatalogBuildTests(BuildTestCase):
    def test_existing_compiler_skips_bootstrap_and_rebuilds_newlib(self) -> None:
        class host_with_gcc:
            def find_program(self, name: str) -> str | None:
                return "/usr/bin/arm-none-eabi-gcc"

        recorder = command_recorder()
        with patch("common.subprocess.run", side_effect=recorder), redirect_stdout(io.StringIO()):
            state = build_toolchain.build(
                self.config, run_configuration(build_here=True, skip=("newlib-nano",)), None, host_with_gcc()
            )
        self.assertFalse(state.is_built("gcc-bootstrap"))
        self.assertTrue(state.is_built("newlib-final"))
        self.assertNotIn("make all-gcc -j 2", recorder.command_list)

    def test_bootstrap_makes_final_newlib_unnecessary(self) -> None:
        state, command_list = self.build(skip=("newlib-nano",))
        self.assertTrue(state.is_built("gcc-bootstrap"))
        self.assertFalse(state.is_built("newlib-final"))
        self.assertIn("make all-gcc -j 2", command_list)
        self.assertFalse(os.path.exists(os.path.join(self.build_root, "newlib-final")))


class MainTests(BuildTestCase):
    def test_list_projects(self) -> None:
        code, output, _, recorder = self.main("--list-projects")
        self.assertEqual(code, 0)
        self.assertEqual(output.splitlines(), project_list.names(project_list.catalog()))
        self.assertEqual(recorder.command_list, [])
        self.assertFalse(os.path.exists(self.build_root))

    def test_help(self) -> None:
        code, output, _, _ = self.main("--help")
        self.assertEqual(code, 0)
        self.assertIn("--list-projects", output)

    def test_skip_and_only_are_rejected(self) -> None:
        code, _, errors, recorder = self.main("--build-here", "--skip", "gcc", "--only", "newlib")
        self.assertEqual(code, 2)
        self.assertIn("usage:", errors)
        self.assertEqual(recorder.command_list, [])

    def test_unknown_projects_are_rejected(self) -> None:
        for option in ("--skip", "--only"):
            with self.subTest(option=option):
                code, _, errors, recorder = self.main("--build-here", option, "gcc,gdb")
                self.assertEqual(code, 2)
                self.assertIn("gdb", errors)
                self.assertEqual(recorder.command_list, [])
                self.assertFalse(os.path.exists(self.build_root))

    def test_only_binutils(self) -> None:
        code, _, _, recorder = self.main("--build-here", "-q", "--only", "binutils")
        self.assertEqual(code, 0)
        self.assertEqual(len(recorder.command_list), 3)
        self.assertTrue(os.path.exists(os.path.join(self.build_root, "binutils", "config.status")))

    def test_missing_configure_script_exit_code(self) -> None:
        os.remove(os.path.join(self.home, "binutils", "configure"))
        code, _, errors, _ = self.main("--build-here", "--only", "binutils")
        self.assertEqual(code, 1)
        self.assertIn("configure", errors)

    def test_failed_command_exit_code(self) -> None:
        code, _, errors, recorder = self.main("--build-here", "--only", "binutils", recorder=command_recorder(fail="make"))
        self.assertEqual(code, 1)
        self.assertIn('Command "make -j', errors)
        self.assertIn("failed with errno=2", errors)
        self.assertNotIn("make install", " ".join(recorder.command_list))

    def test_silent_dry_run_prints_nothing(self) -> None:
        code, output, errors, recorder = self.main("--build-here", "-s", "-d", "--no-install")
        self.assertEqual(code, 0)
        self.assertEqual((output, errors), ("", ""))
        self.assertEqual(recorder.command_list, [])

    def test_export_settings(self) -> None:
        export_file = os.path.join(self.root, "settings.json")
        code, _, _, _ = self.main("--build-here", "--only", "binutils", "--jobs", "3", "--export", export_file)
        self.assertEqual(code, 0)
        self.assertTrue(os.path.isfile(export_file))
        code, _, _, recorder = self.main("--build-here", "--import", export_file, "--only", "binutils")
        self.assertEqual(code, 0)
        self.assertIn("make -j 3", recorder.command_list)

    def test_dry_run_does_not_export_settings(self) -> None:
        export_file = os.path.join(self.root, "settings.json")
        code, output, _, _ = self.main("--build-here", "-d", "--jobs", "3", "--export", export_file)
        self.assertEqual(code, 0)
        self.assertIn("Skip writing settings", output)
        self.assertFalse(os.path.exists(export_file))


class SplitNameListTests(unittest.TestCase):
    def test_split(self) -> None:
        self.assertEqual(build_toolchain.split_name_list(["gcc,newlib", " binutils "]), ("gcc", "newlib", "binutils"))
        self.assertEqual(build_toolchain.split_name_list(None), ())


if __name__ == "__main__":
    unittest.main()
