"""Tests for the pith command line interface."""

import json

import pytest
import respx
from httpx import Response
from typer.testing import CliRunner

from pith_workbench.cli.main import app

runner = CliRunner()

OLLAMA = "http://ollama.test"


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    """Point the CLI at a temporary data dir and a fake Ollama URL."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("OLLAMA_URL", OLLAMA)
    monkeypatch.delenv("DATABASE_PATH", raising=False)


@pytest.fixture
def sales_file(sales_csv):
    return str(sales_csv)


def ndjson(*records) -> bytes:
    return "".join(json.dumps(record) + "\n" for record in records).encode()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "pith version" in result.stdout


class TestTablesCommands:
    def test_ingest(self, sales_file):
        result = runner.invoke(app, ["tables", "ingest", sales_file])
        assert result.exit_code == 0
        assert "Table 'sales' ingested: 3 rows" in result.stdout

    def test_ingest_json_output(self, sales_file):
        result = runner.invoke(app, ["--json", "tables", "ingest", sales_file])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"table_name": "sales", "row_count": 3, "columns": ["id", "name", "amount"]}
        ]

    def test_ingest_unsupported_file(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        result = runner.invoke(app, ["tables", "ingest", str(notes)])
        assert result.exit_code == 1
        assert "Unsupported file type" in result.output

    def test_list_with_load(self, sales_file):
        result = runner.invoke(app, ["--json", "tables", "list", "--load", sales_file])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"tables": ["sales"], "total": 1}

    def test_list_empty(self):
        result = runner.invoke(app, ["tables", "list"])
        assert result.exit_code == 0
        assert "No tables found" in result.stdout

    def test_describe(self, sales_file):
        result = runner.invoke(app, ["--json", "tables", "describe", "sales", "--load", sales_file])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["columns"][2] == {"column": "amount", "type": "DOUBLE", "numeric": True}

    def test_describe_missing_table(self):
        result = runner.invoke(app, ["tables", "describe", "ghost"])
        assert result.exit_code == 1
        assert "Table ghost does not exist" in result.output


class TestQueryCommand:
    def test_query(self, sales_file):
        result = runner.invoke(app, ["query", "SELECT name FROM sales ORDER BY id", "--load", sales_file])
        assert result.exit_code == 0
        assert "Widget" in result.stdout
        assert "3 row(s)" in result.stdout

    def test_query_json_with_limit(self, sales_file):
        result = runner.invoke(
            app, ["--json", "query", "SELECT id FROM sales ORDER BY id", "--load", sales_file, "--limit", "2"]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["rows"] == [{"id": 1.0}, {"id": 2.0}]
        assert data["row_count"] == 3

    def test_query_error(self):
        result = runner.invoke(app, ["query", "SELECT * FROM ghost"])
        assert result.exit_code == 1
        assert "ghost" in result.output


class TestChartsCommands:
    def test_validate_ok(self, sales_file):
        result = runner.invoke(
            app, ["charts", "validate", "sales", "--x", "name", "--y", "amount", "--agg", "sum", "--load", sales_file]
        )
        assert result.exit_code == 0
        assert "Chart configuration is valid" in result.stdout

    def test_validate_invalid(self, sales_file):
        result = runner.invoke(
            app, ["--json", "charts", "validate", "sales", "--type", "scatter", "--x", "amount", "--load", sales_file]
        )
        assert result.exit_code == 1
        assert json.loads(result.stdout) == {
            "is_valid": False,
            "error": "Scatter Plot requires a Y-axis column",
        }

    def test_validate_bad_chart_type(self, sales_file):
        result = runner.invoke(app, ["charts", "validate", "sales", "--type", "pie", "--x", "name"])
        assert result.exit_code == 2
        assert "Invalid chart options" in result.output

    def test_plot(self, sales_file):
        result = runner.invoke(
            app, ["charts", "plot", "sales", "--type", "line", "--x", "id", "--y", "amount", "--agg", "avg",
                  "--load", sales_file]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["spec"]["plot"][0]["mark"] == "lineY"
        assert data["spec"]["yLabel"] == "avg(amount)"
        assert data["legend"] == []


class TestExportCommands:
    def test_export_csv(self, sales_file, tmp_path):
        target = tmp_path / "out.csv"
        result = runner.invoke(app, ["export", "csv", "sales", "-o", str(target), "--load", sales_file])
        assert result.exit_code == 0
        assert target.read_text().splitlines()[0] == "id,name,amount"
        assert "Exported 3 rows" in result.stdout

    def test_export_sql(self, sales_file, tmp_path):
        target = tmp_path / "dump.sql"
        result = runner.invoke(app, ["export", "sql", "-o", str(target), "--load", sales_file])
        assert result.exit_code == 0
        assert 'CREATE TABLE "sales"' in target.read_text()


class TestModelCommands:
    def test_list(self):
        result = runner.invoke(app, ["--json", "models", "list"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["current_model"] == "llama3.2:3b"
        assert [m["id"] for m in data["models"]][:2] == ["llama3.2:3b", "llama3.2:1b"]

    def test_use_is_remembered(self):
        result = runner.invoke(app, ["models", "use", "gemma2:2b"])
        assert result.exit_code == 0
        assert "Gemma 2 2B" in result.stdout

        listed = json.loads(runner.invoke(app, ["--json", "models", "list"]).stdout)
        assert listed["current_model"] == "gemma2:2b"

    def test_use_unknown_model(self):
        result = runner.invoke(app, ["models", "use", "gpt-4"])
        assert result.exit_code == 1
        assert "Unknown model: gpt-4" in result.output

    @respx.mock
    def test_cached(self):
        respx.post(f"{OLLAMA}/api/show").mock(return_value=Response(200, json={}))
        result = runner.invoke(app, ["models", "cached", "llama3.2:3b"])
        assert result.exit_code == 0
        assert "llama3.2:3b is downloaded" in result.stdout

    @respx.mock
    def test_cached_runtime_down(self):
        respx.post(f"{OLLAMA}/api/show").mock(return_value=Response(500))
        result = runner.invoke(app, ["--json", "models", "cached", "llama3.2:3b"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"model_id": "llama3.2:3b", "cached": False}

    @respx.mock
    def test_purge(self):
        respx.get(f"{OLLAMA}/api/tags").mock(return_value=Response(200, json={
            "models": [{"name": "mistral:7b"}, {"name": "nomic-embed-text:latest"}],
        }))
        delete = respx.delete(f"{OLLAMA}/api/delete").mock(return_value=Response(200))

        result = runner.invoke(app, ["models", "purge", "--force"])

        assert result.exit_code == 0
        assert "Purged 1 model(s): Mistral 7B" in result.stdout
        assert delete.call_count == 1

    def test_purge_aborts_without_confirmation(self):
        result = runner.invoke(app, ["models", "purge"], input="n\n")
        assert result.exit_code == 1


class TestAskCommand:
    @respx.mock
    def test_ask_runs_generated_sql(self, sales_file):
        respx.get(f"{OLLAMA}/api/version").mock(return_value=Response(200, json={"version": "0.5.1"}))
        respx.post(f"{OLLAMA}/api/pull").mock(return_value=Response(200, content=ndjson(
            {"status": "pulling manifest"},
            {"status": "success"},
        )))
        respx.post(f"{OLLAMA}/api/generate").mock(return_value=Response(200, json={"done": True}))
        respx.post(f"{OLLAMA}/api/chat").mock(return_value=Response(200, content=ndjson(
            {"message": {"role": "assistant", "content": "There are 3 sales.\n"}, "done": False},
            {"message": {"role": "assistant", "content": "```sql\nSELECT count(*) AS n FROM sales\n```"},
             "done": False},
            {"message": {"role": "assistant", "content": ""}, "done": True},
        )))

        result = runner.invoke(app, ["--json", "ask", "How many sales?", "--load", sales_file])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["sql"] == "SELECT count(*) AS n FROM sales"
        assert data["rows"] == [{"n": 3.0}]
        assert data["content"].startswith("There are 3 sales.")

    @respx.mock
    def test_ask_runtime_unavailable(self):
        respx.get(f"{OLLAMA}/api/version").mock(return_value=Response(503))

        result = runner.invoke(app, ["ask", "hello"])

        assert result.exit_code == 1
        assert "Local inference runtime is not available" in result.output


class TestPrefsCommands:
    def test_show_defaults(self):
        result = runner.invoke(app, ["--json", "prefs", "show"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["pith-notifications"] is True

    def test_set(self):
        result = runner.invoke(app, ["prefs", "set", "pith-analytics", "on"])
        assert result.exit_code == 0

        shown = json.loads(runner.invoke(app, ["--json", "prefs", "show"]).stdout)
        assert shown["pith-analytics"] is True

    def test_set_invalid(self):
        result = runner.invoke(app, ["prefs", "set", "pith-analytics", "maybe"])
        assert result.exit_code == 1
        assert "expects true or false" in result.output
