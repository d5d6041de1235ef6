"""
Tests for the research-search CLI.

Commands run through click's CliRunner against a temporary database.
"""

import json

import pytest
from click.testing import CliRunner

from src.cli.research_cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_db(runner, tmp_path, seed_documents):
    db_path = str(tmp_path / "cli.db")
    papers = tmp_path / "papers.json"
    papers.write_text(json.dumps(seed_documents), encoding="utf-8")

    result = runner.invoke(cli, ["import-documents", str(papers), "--db-path", db_path])

    assert result.exit_code == 0, result.output
    assert "Saved" in result.output
    return db_path


class TestDatabaseCommands:
    """init-db and import-documents."""

    def test_init_db(self, runner, tmp_path):
        db_path = tmp_path / "fresh.db"

        result = runner.invoke(cli, ["init-db", "--db-path", str(db_path)])

        assert result.exit_code == 0
        assert db_path.exists()

    def test_import_rejects_non_list(self, runner, tmp_path):
        papers = tmp_path / "papers.json"
        papers.write_text(json.dumps({"title": "x"}), encoding="utf-8")

        result = runner.invoke(cli, ["import-documents", str(papers), "--db-path", str(tmp_path / "x.db")])

        assert result.exit_code == 1

    def test_import_rejects_bad_json(self, runner, tmp_path):
        papers = tmp_path / "papers.json"
        papers.write_text("{not json", encoding="utf-8")

        result = runner.invoke(cli, ["import-documents", str(papers), "--db-path", str(tmp_path / "x.db")])

        assert result.exit_code == 1


class TestSearchCommands:
    """search, similar and recommend."""

    def test_search(self, runner, cli_db):
        result = runner.invoke(cli, ["search", "author:Smith AND pain", "--db-path", cli_db])

        assert result.exit_code == 0
        assert "Found 1 papers" in result.output

    def test_search_with_filters(self, runner, cli_db):
        result = runner.invoke(
            cli, ["search", "pain", "--category", "Completed", "--semantic", "--db-path", cli_db]
        )

        assert result.exit_code == 0
        assert "Found 2 papers" in result.output

    def test_search_no_results(self, runner, cli_db):
        result = runner.invoke(cli, ["search", "year:abc", "--db-path", cli_db])

        assert result.exit_code == 0
        assert "No papers found" in result.output

    def test_similar_missing(self, runner, cli_db):
        result = runner.invoke(cli, ["similar", "999", "--db-path", cli_db])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_recommend(self, runner, cli_db):
        result = runner.invoke(cli, ["recommend", "new-user", "--limit", "2", "--db-path", cli_db])

        assert result.exit_code == 0
        assert "Diabetes" in result.output


class TestInteractionCommands:
    """view, bookmark and stats."""

    def test_view_updates_stats(self, runner, cli_db):
        result = runner.invoke(cli, ["view", "u1", "2", "--db-path", cli_db])
        assert result.exit_code == 0

        result = runner.invoke(cli, ["stats", "--db-path", cli_db])
        assert result.exit_code == 0
        assert "1096" in result.output

    def test_view_missing(self, runner, cli_db):
        result = runner.invoke(cli, ["view", "u1", "999", "--db-path", cli_db])
        assert result.exit_code == 1

    def test_bookmark_twice(self, runner, cli_db):
        first = runner.invoke(cli, ["bookmark", "u1", "3", "--db-path", cli_db])
        second = runner.invoke(cli, ["bookmark", "u1", "3", "--db-path", cli_db])

        assert first.exit_code == 0
        assert "Bookmark added" in first.output
        assert "Already bookmarked" in second.output

    def test_bookmark_missing(self, runner, cli_db):
        result = runner.invoke(cli, ["bookmark", "u1", "999", "--db-path", cli_db])
        assert result.exit_code == 1
