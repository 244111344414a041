# tests/test_main.py
"""
Tests for the command-line entry point.
"""

import json
import logging

from foreach_lint.main import EXIT_FINDINGS, EXIT_INFRA, EXIT_OK, iter_source_paths, main

SIMPLE = "for (let i = 0; i < xs.length; i++) { f(xs[i]); }\n"
CLEAN = "for (let i = 0; i < xs.length; i++) { f(i); }\n"


class TestMain:

    def test_findings_gcc(self, tmp_path, capsys):
        path = tmp_path / "a.ts"
        path.write_text(SIMPLE, encoding="utf-8")
        assert main([str(path)]) == EXIT_FINDINGS
        out = capsys.readouterr().out
        assert out.startswith(f"{path}:1:1: style: ")
        assert "[preferForEach]" in out

    def test_findings_json(self, tmp_path, capsys):
        path = tmp_path / "a.ts"
        path.write_text(SIMPLE, encoding="utf-8")
        assert main([str(path), "--format", "json"]) == EXIT_FINDINGS
        [line] = capsys.readouterr().out.splitlines()
        assert json.loads(line)["file"] == str(path)

    def test_clean(self, tmp_path, capsys):
        path = tmp_path / "a.ts"
        path.write_text(CLEAN, encoding="utf-8")
        assert main([str(path)]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_summary(self, tmp_path, capsys):
        path = tmp_path / "a.ts"
        path.write_text(SIMPLE, encoding="utf-8")
        main([str(path), "--format", "summary"])
        assert "prefer-for-each: 1 findings" in capsys.readouterr().out

    def test_suppress(self, tmp_path):
        path = tmp_path / "a.ts"
        path.write_text(SIMPLE, encoding="utf-8")
        assert main([str(path), "--suppress", "preferForEach"]) == EXIT_OK

    def test_dialect_override(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text(SIMPLE, encoding="utf-8")
        assert main(["--dialect", "javascript", str(path)]) == EXIT_FINDINGS

    def test_bad_dialect(self, tmp_path):
        path = tmp_path / "a.ts"
        path.write_text(SIMPLE, encoding="utf-8")
        assert main(["--dialect", "cobol", str(path)]) == EXIT_INFRA

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "a.py"
        path.write_text("x = 1\n", encoding="utf-8")
        assert main([str(path)]) == EXIT_INFRA

    def test_missing_file(self, tmp_path):
        assert main([str(tmp_path / "nope.ts")]) == EXIT_INFRA

    def test_bad_path_still_reports_other_files(self, tmp_path, capsys):
        good = tmp_path / "good.ts"
        good.write_text(SIMPLE, encoding="utf-8")
        assert main([str(good), str(tmp_path / "missing.ts")]) == EXIT_INFRA
        out = capsys.readouterr().out
        assert out.startswith(f"{good}:1:1: style: ")

    def test_repeated_calls_add_one_handler(self, tmp_path):
        path = tmp_path / "a.ts"
        path.write_text(CLEAN, encoding="utf-8")
        main([str(path)])
        main([str(path)])
        handlers = logging.getLogger("foreach_lint").handlers
        assert sum(isinstance(h, logging.StreamHandler) for h in handlers) == 1

    def test_no_paths(self):
        assert main([]) == EXIT_INFRA

    def test_list_checkers(self, capsys):
        assert main(["--list-checkers"]) == EXIT_OK
        assert "prefer-for-each" in capsys.readouterr().out


class TestSourcePaths:

    def test_directory_walk(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "node_modules" / "dep").mkdir(parents=True)
        (tmp_path / "src" / "b.tsx").write_text("", encoding="utf-8")
        (tmp_path / "src" / "a.ts").write_text("", encoding="utf-8")
        (tmp_path / "src" / "notes.md").write_text("", encoding="utf-8")
        (tmp_path / "node_modules" / "dep" / "index.js").write_text("", encoding="utf-8")
        found = [p.relative_to(tmp_path).as_posix() for p in iter_source_paths([str(tmp_path)])]
        assert found == ["src/a.ts", "src/b.tsx"]

    def test_files_passed_through(self, tmp_path):
        path = tmp_path / "x.unknown"
        assert list(iter_source_paths([str(path)])) == [path]
