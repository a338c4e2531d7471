from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
import zlib
from pathlib import Path
from typing import Dict

from fo2dat.pathutil import to_archive_name, to_local_path
from fo2dat.reader import ArchiveReader
from fo2dat.writer import build_archive

from test_index import _raw_archive


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "art" / "intrface").mkdir(parents=True)
    (root / "text").mkdir()
    content = b"hello world\n" * 20
    (root / "text" / "readme.txt").write_bytes(content)
    files["text/readme.txt"] = content

    bin_data = bytes(range(256)) * 8
    (root / "art" / "intrface" / "iface.frm").write_bytes(bin_data)
    files["art/intrface/iface.frm"] = bin_data

    (root / "empty.txt").write_bytes(b"")
    files["empty.txt"] = b""
    return files


def _compare_trees(expected: Dict[str, bytes], dst: Path):
    found = {}
    for root, _dirs, fnames in os.walk(dst):
        for fn in fnames:
            p = Path(root) / fn
            found[p.relative_to(dst).as_posix()] = p.read_bytes()
    assert found == expected, f"Extracted tree differs: {sorted(found)} != {sorted(expected)}"


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "fo2dat.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def test_create_list_extract_roundtrip(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            src = root / "src"
            src.mkdir()
            files = _build_fixture_tree(src)
            archive = root / "master.dat"

            create_proc = self.run_cli(["create", str(archive), str(src), "--compress"])
            self.assertIn("3 files", create_proc.stdout)

            r = ArchiveReader.from_path(str(archive))
            names = [e.name for e in r.list()]
            # os.walk order with sorted dirs and files
            self.assertEqual(names, ["empty.txt", "art\\intrface\\iface.frm", "text\\readme.txt"])
            self.assertTrue(all(e.is_declared_compressed() for e in r.list()))

            list_proc = self.run_cli(["list", str(archive)])
            lines = list_proc.stdout.strip().splitlines()
            self.assertEqual(len(lines), 3)
            self.assertIn("240\t", lines[2])
            self.assertTrue(lines[2].endswith("text\\readme.txt"))

            out = root / "out"
            out.mkdir()
            extract_proc = self.run_cli(["extract", str(archive), "--outdir", str(out)])
            self.assertIn("extracted=3 failed=0", extract_proc.stdout)
            _compare_trees(files, out)

    def test_extract_selected_names(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            archive = root / "a.dat"
            archive.write_bytes(build_archive([("A.TXT", b"HELLO"), ("DIR\\B.TXT", b"WORLD")]))
            out = root / "out"
            self.run_cli(["extract", str(archive), "--outdir", str(out), "--quiet", "dir/b.txt"])
            self.assertEqual((out / "DIR" / "B.TXT").read_bytes(), b"WORLD")
            self.assertFalse((out / "A.TXT").exists())

            missing = self.run_cli(["extract", str(archive), "--outdir", str(out), "NOPE.TXT"], expect=1)
            self.assertIn("no such entry: NOPE.TXT", missing.stderr)

    def test_names_around_options(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            archive = root / "a.dat"
            archive.write_bytes(build_archive([("A.TXT", b"HELLO"), ("B.TXT", b"WORLD"), ("C.TXT", b"!")]))
            out = root / "out"
            proc = self.run_cli(["extract", str(archive), "A.TXT", "--outdir", str(out), "B.TXT"])
            self.assertIn("extracted=2 failed=0", proc.stdout)
            self.assertEqual((out / "A.TXT").read_bytes(), b"HELLO")
            self.assertEqual((out / "B.TXT").read_bytes(), b"WORLD")
            self.assertFalse((out / "C.TXT").exists())

            bad = self.run_cli(["extract", str(archive), "--outdir", str(out), "--bogus"], expect=2)
            self.assertIn("unrecognized arguments: --bogus", bad.stderr)
            self.run_cli(["list", str(archive), "EXTRA"], expect=2)

    def test_unwritable_destination_does_not_stop_extraction(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            archive = root / "clash.dat"
            # "A" is written as a file, so "A\B" cannot get a directory
            archive.write_bytes(build_archive([("A", b"FILE"), ("A\\B", b"NESTED"), ("C", b"LAST")]))
            out = root / "out"
            proc = self.run_cli(["extract", str(archive), "--outdir", str(out)], expect=1)
            self.assertIn("Error: A\\B:", proc.stderr)
            self.assertIn("extracted=2 failed=1", proc.stdout)
            self.assertEqual((out / "A").read_bytes(), b"FILE")
            self.assertEqual((out / "C").read_bytes(), b"LAST")

    def test_non_ascii_names_are_listed_escaped(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            archive = root / "latin.dat"
            archive.write_bytes(_raw_archive(b"HELLOWORLD", [(b"\xe9.TXT", 0, 5, 5, 0), (b"B.TXT", 0, 5, 5, 5)]))
            listed = self.run_cli(["list", str(archive)])
            lines = listed.stdout.strip().splitlines()
            self.assertEqual(lines, ["5\t5\t\\xe9.TXT", "5\t5\tB.TXT"])

    def test_failed_entry_does_not_stop_extraction(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            bad = b"\x78\xda\xff\xff\xff\xff"
            good = zlib.compress(b"WORLD", 9)
            data = bad + good
            archive = root / "broken.dat"
            archive.write_bytes(
                _raw_archive(data, [(b"BAD.BIN", 1, 4, len(bad), 0), (b"GOOD.TXT", 0, 5, len(good), len(bad))])
            )
            out = root / "out"
            proc = self.run_cli(["extract", str(archive), "--outdir", str(out)], expect=1)
            self.assertIn("BAD.BIN", proc.stderr)
            self.assertIn("extracted=1 failed=1", proc.stdout)
            self.assertEqual((out / "GOOD.TXT").read_bytes(), b"WORLD")
            self.assertFalse((out / "BAD.BIN").exists())

    def test_structural_failure_halts(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            good = _raw_archive(b"HELLO", [(b"A.TXT", 0, 5, 5, 0)])
            archive = root / "short.dat"
            archive.write_bytes(_raw_archive(b"HELLO", [(b"A.TXT", 0, 5, 5, 0)], file_size=len(good) - 1))
            proc = self.run_cli(["list", str(archive)], expect=2)
            self.assertIn("file_size mismatch", proc.stderr)
            self.assertIn("off by -1", proc.stderr)
            absent = self.run_cli(["info", str(root / "absent.dat")], expect=2)
            self.assertIn("Error:", absent.stderr)
            self.assertIn("absent.dat", absent.stderr)

    def test_info_and_duplicates(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            archive = root / "dup.dat"
            archive.write_bytes(build_archive([("A.TXT", b"one"), ("A.TXT", b"two"), ("B.TXT", b"three")]))
            info = self.run_cli(["info", str(archive)])
            self.assertIn("entries:    2", info.stdout)
            self.assertIn("duplicates: 1", info.stdout)
            listed = self.run_cli(["list", str(archive)])
            self.assertEqual(len(listed.stdout.strip().splitlines()), 2)
            listed_all = self.run_cli(["list", "--all", str(archive)])
            self.assertEqual(len(listed_all.stdout.strip().splitlines()), 3)

    def test_verbose_logging(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            src = root / "one.txt"
            src.write_bytes(b"payload")
            archive = root / "v.dat"
            created = self.run_cli(["-v", "create", str(archive), str(src)])
            self.assertIn("INFO: ", created.stderr)
            self.assertIn("added one.txt (7 -> 7 bytes)", created.stderr)
            quiet = self.run_cli(["create", str(archive), str(src)])
            self.assertNotIn("added one.txt", quiet.stderr)

    def test_legacy_tree_size_flag(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            src = root / "one.txt"
            src.write_bytes(b"payload")
            archive = root / "legacy.dat"
            self.run_cli(["--legacy-tree-size", "create", str(archive), str(src)])
            r = ArchiveReader.from_path(str(archive), tree_size_includes_self=False)
            self.assertEqual(r.extract("one.txt"), b"payload")
            listed = self.run_cli(["--legacy-tree-size", "list", str(archive)])
            self.assertIn("one.txt", listed.stdout)


class PathMappingTests(unittest.TestCase):
    def test_archive_names(self):
        self.assertEqual(to_archive_name("art/critters/hmjmps.frm"), "art\\critters\\hmjmps.frm")
        self.assertEqual(to_archive_name(".//a/./b/"), "a\\b")
        with self.assertRaises(ValueError):
            to_archive_name("a/../b")

    def test_local_paths(self):
        self.assertEqual(to_local_path("ART\\INTRFACE\\IFACE.FRM"), os.path.join("ART", "INTRFACE", "IFACE.FRM"))
        with self.assertRaises(ValueError):
            to_local_path("..\\..\\etc\\passwd")
        with self.assertRaises(ValueError):
            to_local_path("\\")


if __name__ == "__main__":
    unittest.main()
