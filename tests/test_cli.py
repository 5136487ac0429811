import csv
import json
from pathlib import Path

import cpreadme
from cpreadme import find_readme_file, main, print_policy


class TestFindReadme:
    def test_first_existing_candidate(self, tmp_path: Path, readme_path: Path) -> None:
        missing = tmp_path / "missing.html"

        assert find_readme_file([str(missing), str(readme_path)]) == readme_path

    def test_wildcard_candidate(self, tmp_path: Path) -> None:
        desktop = tmp_path / "Users" / "chell" / "Desktop"
        desktop.mkdir(parents=True)
        target = desktop / "README.html"
        target.write_text("<h1>x</h1>", encoding="utf-8")

        pattern = str(tmp_path / "Users" / "*" / "Desktop" / "README.html")
        assert find_readme_file([pattern]) == target

    def test_nothing_found(self, tmp_path: Path) -> None:
        assert find_readme_file([str(tmp_path / "a.html"), str(tmp_path / "*" / "b.html")]) is None


class TestMain:
    def test_requires_input(self, capsys) -> None:
        assert main([]) == 2
        assert "usage" in capsys.readouterr().err

    def test_missing_readme(self, tmp_path: Path, capsys) -> None:
        assert main(["--readme", str(tmp_path / "nope.html")]) == 2
        assert "Input error" in capsys.readouterr().err

    def test_directory_readme(self, tmp_path: Path) -> None:
        assert main(["-r", str(tmp_path)]) == 2

    def test_prints_summary(self, readme_path: Path, capsys) -> None:
        assert main(["--readme", str(readme_path)]) == 0

        out = capsys.readouterr().out
        assert "cjohnson" in out
        assert "Disable service: Telnet" in out

    def test_quiet_exports(self, readme_path: Path, tmp_path: Path, capsys) -> None:
        json_out = tmp_path / "out" / "policy.json"
        csv_out = tmp_path / "out" / "items.csv"

        code = main(["-r", str(readme_path), "--json-out", str(json_out), "--csv-out", str(csv_out), "--quiet"])

        assert code == 0
        assert "[Authorized Administrators]" not in capsys.readouterr().out

        payload = json.loads(json_out.read_text(encoding="utf-8"))
        assert payload["tool"] == "cpreadme"
        assert "generated_at" in payload
        document = payload["document"]
        assert document["administrators"][0]["username"] == "cjohnson"
        assert document["administrators"][0]["password"] == "Ch3ll!Test"
        assert document["critical_services"][-1] == "CCS Client"
        assert "Competition Guidelines" in document["sections"]

        with csv_out.open(newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["type"] for r in rows] == [
            "CreateUser", "CreateGroup", "DisableService", "SecurityPolicy", "FileOperation",
        ]
        assert rows[0]["details"] == "Username=chell"

    def test_auto_readme(self, readme_path: Path, monkeypatch, capsys) -> None:
        monkeypatch.setattr(cpreadme, "DEFAULT_README_PATHS", (str(readme_path),))

        assert main(["--auto-readme", "--quiet"]) == 0
        assert "Found README" in capsys.readouterr().out

    def test_auto_readme_nothing_found(self, tmp_path: Path, monkeypatch, capsys) -> None:
        monkeypatch.setattr(cpreadme, "DEFAULT_README_PATHS", (str(tmp_path / "none.html"),))

        assert main(["-R"]) == 2
        assert "No README found" in capsys.readouterr().err


def test_print_policy_empty_document(capsys) -> None:
    print_policy(cpreadme.PolicyDocument())

    out = capsys.readouterr().out
    assert "Unknown" in out
    assert "[Actionable Items]" not in out
