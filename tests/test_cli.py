"""CLI: extract (enqueue only) and inspect against a temp DB."""
import re

from cvextract.cli import main


def test_extract_then_inspect(tmp_path, temp_db_url, monkeypatch, capsys):
    monkeypatch.setenv("DB_DB_URL", temp_db_url)
    monkeypatch.setenv("LLM_PROVIDER", "ollama")
    cv = tmp_path / "ada.txt"
    cv.write_text("Ada Lovelace\n\nExperience\nAnalyst\n", encoding="utf-8")

    assert main(["extract", str(cv)]) == 0
    out = capsys.readouterr().out
    job_id = re.search(r"^Job: (\S+)$", out, re.MULTILINE).group(1)
    assert "status=pending" in out
    assert "attempts=0/3" in out

    assert main(["inspect", "--job", job_id]) == 0
    out = capsys.readouterr().out
    assert f"Job: {job_id}" in out
    assert "type=cv_parsing" in out
    assert "document_id=" in out


def test_inspect_unknown_job(temp_db_url, monkeypatch, capsys):
    monkeypatch.setenv("DB_DB_URL", temp_db_url)
    from cvextract.db.session import init_db

    # inspect never creates tables.
    init_db(create_tables=True)
    assert main(["inspect", "--job", "nope"]) == 1
    assert "job not found" in capsys.readouterr().err


def test_extract_missing_file(tmp_path, capsys):
    assert main(["extract", str(tmp_path / "missing.txt")]) == 1
    assert "file not found" in capsys.readouterr().err
