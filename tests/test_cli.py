"""
Tests for the command-line interface.
"""

import json

import pytest
from treemerge import __version__
from treemerge.ui.cli import create_parser, load_graph, main


@pytest.fixture
def family_files(tmp_path, family_graphs):
    existing, incoming = family_graphs
    existing_path = tmp_path / "existing.json"
    incoming_path = tmp_path / "incoming.json"
    existing_path.write_text(json.dumps(existing.to_dict()), encoding='utf-8')
    incoming_path.write_text(json.dumps(incoming.to_dict()), encoding='utf-8')
    return str(existing_path), str(incoming_path)


class TestParser:
    """Tests for argument parsing."""

    def test_merge_arguments(self):
        args = create_parser().parse_args(
            ['merge', 'a.json', 'b.json', '-o', 'out.json', '--reject', 'p1', '--reject', 'p2'])

        assert args.command == 'merge'
        assert args.output == 'out.json'
        assert args.reject == ['p1', 'p2']
        assert not args.accept_low
        assert args.storage is None

    def test_merge_requires_output(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['merge', 'a.json', 'b.json'])

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            main(['--version'])

        assert __version__ in capsys.readouterr().out


class TestLoadGraph:
    """Tests for load_graph."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_graph(str(tmp_path / "missing.json"))

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{}", encoding='utf-8')

        with pytest.raises(ValueError, match="missingPersons"):
            load_graph(str(path))

    def test_valid_file(self, family_files):
        graph = load_graph(family_files[0])

        assert list(graph.persons) == ["a", "b", "c"]


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def test_prints_matches(self, family_files, capsys):
        assert main(['analyze', *family_files]) == 0

        out = capsys.readouterr().out
        assert "MERGE ANALYSIS" in out
        assert "MATCHES:" in out
        assert "c2 -> c" in out

    def test_missing_file(self, tmp_path, capsys):
        code = main(['analyze', str(tmp_path / "nope.json"), str(tmp_path / "nope.json")])

        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out


class TestMergeCommand:
    """Tests for the merge command."""

    def test_low_confidence_added_as_new(self, family_files, tmp_path):
        output = tmp_path / "merged.json"

        assert main(['merge', *family_files, '-o', str(output)]) == 0

        merged = json.loads(output.read_text(encoding='utf-8'))
        # The wife matched with low confidence and is added
        assert len(merged['persons']) == 4
        assert {"a", "b", "c"} <= set(merged['persons'])

    def test_accept_low(self, family_files, tmp_path, capsys):
        output = tmp_path / "merged.json"

        assert main(['merge', *family_files, '-o', str(output), '--accept-low']) == 0

        merged = json.loads(output.read_text(encoding='utf-8'))
        assert list(merged['persons']) == ["a", "b", "c"]
        assert list(merged['partnerships']) == ["u1"]
        assert "Merge succeeded" in capsys.readouterr().out

    def test_unknown_reject_id(self, family_files, tmp_path, capsys):
        output = tmp_path / "merged.json"

        code = main(['merge', *family_files, '-o', str(output), '--accept-low', '--reject', 'zz'])

        assert code == 0
        assert "Unknown incoming person: zz" in capsys.readouterr().err

    def test_reject_adds_person(self, family_files, tmp_path):
        output = tmp_path / "merged.json"

        main(['merge', *family_files, '-o', str(output), '--accept-low', '--reject', 'c2'])

        merged = json.loads(output.read_text(encoding='utf-8'))
        assert len(merged['persons']) == 4

    def test_sqlite_backup(self, family_files, tmp_path, capsys):
        output = tmp_path / "merged.json"
        database = tmp_path / "merge.db"

        code = main(['merge', *family_files, '-o', str(output), '--storage', str(database)])

        assert code == 0
        assert database.exists()
        assert "Backup saved as backup-" in capsys.readouterr().out
