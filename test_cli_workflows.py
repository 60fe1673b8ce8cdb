from __future__ import annotations

import io
import os
import subprocess
import sys
import tempfile
import unittest
from contextlib import redirect_stderr
from pathlib import Path
from typing import Dict
from unittest import mock

from tinytar import cli
from tinytar.constants import RECORD_SIZE, ZERO_BLOCK
from tinytar.reader import TarReader


REPO_ROOT = Path(__file__).resolve().parent


def _build_fixture_files(root: Path) -> Dict[str, bytes]:
    files = {
        "readme.txt": b"hello world\n" * 20,
        "binary.bin": os.urandom(2048 + 7),
        "empty.txt": b"",
    }
    for name, data in files.items():
        (root / name).write_bytes(data)
    return files


class CLIIntegrationTests(unittest.TestCase):
    def _env(self):
        env = os.environ.copy()
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(REPO_ROOT) if not existing else f"{REPO_ROOT}{os.pathsep}{existing}"
        return env

    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "tinytar.cli"] + [str(a) for a in args]
        return self._run(cmd, expect=expect, cwd=cwd)

    def run_corrupt(self, args, *, expect: int | None = 0):
        cmd = [sys.executable, str(REPO_ROOT / "scripts" / "corrupt.py")] + [str(a) for a in args]
        return self._run(cmd, expect=expect)

    def _run(self, cmd, *, expect, cwd=None):
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=self._env(),
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def setUp(self):
        tmp_src = tempfile.TemporaryDirectory()
        tmp_workspace = tempfile.TemporaryDirectory()
        self.addCleanup(tmp_src.cleanup)
        self.addCleanup(tmp_workspace.cleanup)
        self.src = Path(tmp_src.name)
        self.workspace = Path(tmp_workspace.name)
        self.files = _build_fixture_files(self.src)
        self.archive = self.workspace / "archive.tar"

    def _inputs(self, *names):
        return [self.src / n for n in (names or self.files)]

    def test_create_list_extract_roundtrip(self):
        proc = self.run_cli(["create", self.archive, *self._inputs()])
        self.assertIn("readme.txt (240)", proc.stdout)
        self.assertIn("Done:", proc.stdout)

        listing = self.run_cli(["list", self.archive])
        self.assertEqual(
            listing.stdout.splitlines(),
            ["readme.txt (240 bytes)", "binary.bin (2055 bytes)", "empty.txt (0 bytes)"],
        )
        self.assertEqual(self.run_cli(["list", self.archive]).stdout, listing.stdout)

        out = self.workspace / "out"
        out.mkdir()
        self.run_cli(["extract", self.archive, "--outdir", out])
        for name, data in self.files.items():
            self.assertEqual((out / name).read_bytes(), data, name)

        data = self.archive.read_bytes()
        self.assertEqual(len(data) % RECORD_SIZE, 0)
        self.assertEqual(data[-2 * RECORD_SIZE:], ZERO_BLOCK * 2)

    def test_extract_into_cwd_by_default(self):
        self.run_cli(["create", self.archive, *self._inputs("readme.txt")])
        out = self.workspace / "cwd"
        out.mkdir()
        self.run_cli(["extract", self.archive], cwd=out)
        self.assertEqual((out / "readme.txt").read_bytes(), self.files["readme.txt"])

    def test_classic_flags_and_bare_path(self):
        self.run_cli(["-cf", self.archive, *self._inputs("readme.txt")])
        self.run_cli(["-rf", self.archive, *self._inputs("empty.txt")])
        bare = self.run_cli([self.archive])
        self.assertEqual(bare.stdout.splitlines(), ["readme.txt (240 bytes)", "empty.txt (0 bytes)"])
        self.assertEqual(self.run_cli(["-tf", self.archive]).stdout, bare.stdout)
        out = self.workspace / "x"
        out.mkdir()
        self.run_cli(["-xf", self.archive], cwd=out)
        self.assertTrue((out / "empty.txt").exists())

    def test_usage_error_performs_no_io(self):
        proc = self.run_cli(["create", self.archive], expect=2)
        self.assertIn("usage:", proc.stderr)
        self.assertFalse(self.archive.exists())
        self.run_cli([], expect=2)
        self.run_cli(["-xf"], expect=2)

    def test_create_skips_non_regular_inputs(self):
        (self.src / "subdir").mkdir()
        proc = self.run_cli(
            ["create", self.archive, self.src / "subdir", self.src / "missing.txt", *self._inputs("readme.txt")]
        )
        self.assertIn("Skipping:", proc.stderr)
        self.assertIn("missing.txt", proc.stderr)
        with TarReader(str(self.archive)) as r:
            self.assertEqual([e.name for e in r], ["readme.txt"])

    def test_create_skips_input_too_large_for_size_field(self):
        big = self.src / "huge.bin"
        with open(big, "wb") as fh:
            try:
                fh.truncate(8 ** 11)  # one past the 11-digit octal maximum
            except OSError as exc:
                self.skipTest(f"sparse files unsupported: {exc}")
        proc = self.run_cli(["create", self.archive, big, *self._inputs("readme.txt")])
        self.assertIn("Skipping:", proc.stderr)
        self.assertIn("huge.bin", proc.stderr)
        self.assertIn("skipped=1", proc.stdout)
        with TarReader(str(self.archive)) as r:
            self.assertEqual([e.name for e in r], ["readme.txt"])
        self.assertEqual(self.archive.stat().st_size, 512 + 512 + 1024)

    def test_interrupt_exits_130(self):
        self.run_cli(["create", self.archive, *self._inputs("readme.txt")])
        err = io.StringIO()
        with mock.patch("tinytar.cli.cmd_list", side_effect=KeyboardInterrupt), redirect_stderr(err):
            with self.assertRaises(SystemExit) as cm:
                cli.main(["list", str(self.archive)])
        self.assertEqual(cm.exception.code, 130)
        self.assertIn("^C", err.getvalue())

    def test_create_expands_wildcards_and_excludes_archive(self):
        archive = self.src / "all.tar"
        self.run_cli(["create", archive, self.src / "*"])
        with TarReader(str(archive)) as r:
            self.assertEqual(sorted(e.name for e in r), sorted(self.files))

    def test_append_adds_entries_after_existing(self):
        self.run_cli(["create", self.archive, *self._inputs("readme.txt")])
        self.run_cli(["append", self.archive, *self._inputs("binary.bin", "empty.txt"), "--quiet"])
        listing = self.run_cli(["list", self.archive]).stdout.splitlines()
        self.assertEqual(listing, ["readme.txt (240 bytes)", "binary.bin (2055 bytes)", "empty.txt (0 bytes)"])
        size = self.archive.stat().st_size
        self.assertEqual(size, 512 + 512 + 512 + 2560 + 512 + 1024)

    def test_append_to_missing_archive_fails(self):
        proc = self.run_cli(["append", self.workspace / "nope.tar", *self._inputs("readme.txt")], expect=2)
        self.assertIn("Error:", proc.stderr)

    def test_corrupt_archive_stops_list_and_blocks_append(self):
        self.run_cli(["create", self.archive, *self._inputs()])
        self.run_corrupt(["magic", self.archive, 1])
        before = self.archive.read_bytes()

        listing = self.run_cli(["list", self.archive], expect=2)
        self.assertEqual(listing.stdout.splitlines(), ["readme.txt (240 bytes)"])
        self.assertIn("missing ustar magic", listing.stderr)

        appended = self.run_cli(["append", self.archive, *self._inputs("empty.txt")], expect=2)
        self.assertIn("Archive left unchanged", appended.stderr)
        self.assertEqual(self.archive.read_bytes(), before)

        out = self.workspace / "out"
        out.mkdir()
        self.run_cli(["extract", self.archive, "--outdir", out], expect=2)
        self.assertEqual((out / "readme.txt").read_bytes(), self.files["readme.txt"])
        self.assertFalse((out / "binary.bin").exists())

    def test_extract_continues_past_unwritable_destination(self):
        self.run_cli(["create", self.archive, *self._inputs()])
        out = self.workspace / "out"
        out.mkdir()
        (out / "binary.bin").mkdir()
        proc = self.run_cli(["extract", self.archive, "--outdir", out])
        self.assertIn("Warning:", proc.stderr)
        self.assertIn("skipped=1", proc.stdout)
        self.assertEqual((out / "readme.txt").read_bytes(), self.files["readme.txt"])
        self.assertEqual((out / "empty.txt").read_bytes(), b"")

    def test_verify_detects_header_damage(self):
        self.run_cli(["create", self.archive, *self._inputs()])
        self.assertIn("OK", self.run_cli(["verify", self.archive]).stdout)
        # mode field of the second header: '0' -> '1'
        self.run_corrupt(["by-offset", self.archive, 1024 + 101, "--xor", "0x01"])
        proc = self.run_cli(["verify", self.archive], expect=1)
        self.assertIn("binary.bin: header checksum mismatch", proc.stdout)
        self.assertIn("FAIL", proc.stdout)
        # checksums are not checked on read
        self.assertEqual(len(self.run_cli(["list", self.archive]).stdout.splitlines()), 3)

    def test_extract_truncated_archive_fails(self):
        self.run_cli(["create", self.archive, *self._inputs("readme.txt", "binary.bin")])
        self.run_corrupt(["truncate", self.archive, 1024 + 512 + 1024])
        self.run_cli(["verify", self.archive], expect=1)
        out = self.workspace / "out"
        out.mkdir()
        proc = self.run_cli(["extract", self.archive, "--outdir", out], expect=2)
        self.assertIn("Error:", proc.stderr)

    def test_info_reports_stale_tail(self):
        self.run_cli(["create", self.archive, *self._inputs("readme.txt")])
        with open(self.archive, "ab") as fh:
            fh.write(b"\x01" * 100)
        proc = self.run_cli(["info", self.archive])
        self.assertIn("Entries: 1", proc.stdout)
        self.assertIn("Logical end: 2048", proc.stdout)
        self.assertIn("Bytes beyond trailer: 100", proc.stdout)

    def test_version(self):
        proc = self.run_cli(["--version"])
        self.assertIn("tinytar", proc.stdout)


if __name__ == "__main__":
    unittest.main()
