"""CLI entrypoint tests."""

from __future__ import annotations

import json
import sys

import pytest

from docsfront.__main__ import _parse_cookies, main, run_self_check


def test_cli_version(capsys, monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["docsfront", "--version"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 0
    assert "docsfront" in capsys.readouterr().out


def test_cli_help(capsys, monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["docsfront", "--help"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 0
    assert "usage:" in capsys.readouterr().out.lower()


def test_cli_resolve_prints_redirect(capsys, monkeypatch) -> None:
    monkeypatch.setattr(
        sys, "argv", ["docsfront", "--resolve", "/rest/actions", "--cookie", "locale=ja"]
    )
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["redirect_to"] == "/ja/rest/actions?apiVersion=2022-11-28"
    assert payload["effective_locale"] == "ja"
    assert payload["cookies"] == {"locale": "ja"}


def test_cli_cookie_requires_resolve(capsys, monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["docsfront", "--cookie", "locale=ja"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 2
    assert "--cookie requires --resolve" in capsys.readouterr().err


def test_cli_modes_are_exclusive(monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["docsfront", "--resolve", "/en", "--suggest", "rest"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 2


def test_parse_cookies() -> None:
    assert _parse_cookies(["locale=ja", " tool = cli "]) == {"locale": "ja", "tool": "cli"}
    with pytest.raises(ValueError):
        _parse_cookies(["locale"])


def test_cli_suggest_runs_asyncio(monkeypatch) -> None:
    called: dict[str, object] = {}

    async def fake_suggest(base_url: str, query: str) -> int:
        return 0

    def fake_run(coro) -> int:
        called["coro"] = coro
        coro.close()
        return 0

    monkeypatch.setattr("docsfront.__main__.run_suggest", fake_suggest)
    monkeypatch.setattr("docsfront.__main__.asyncio.run", fake_run)
    monkeypatch.setattr(sys, "argv", ["docsfront", "--suggest", "rest"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 0
    assert called.get("coro")


def test_cli_runs_uvicorn(monkeypatch) -> None:
    captured: dict[str, object] = {}

    class DummyUvicorn:
        @staticmethod
        def run(app: str, factory: bool, host: str, port: int, reload: bool) -> None:
            captured["app"] = app
            captured["factory"] = factory
            captured["host"] = host
            captured["port"] = port
            captured["reload"] = reload

    monkeypatch.setitem(sys.modules, "uvicorn", DummyUvicorn)
    monkeypatch.setattr(sys, "argv", ["docsfront", "--host", "127.0.0.1", "--port", "9001"])
    main()
    assert captured == {
        "app": "docsfront.main:create_app",
        "factory": True,
        "host": "127.0.0.1",
        "port": 9001,
        "reload": False,
    }


def test_self_check_json_without_server(capsys) -> None:
    code = run_self_check("http://127.0.0.1:9", output_json=True)
    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["status"] == "pass"
    assert payload["checks"]["fixtures"]["status"] == "pass"
    assert payload["warnings"] == ["server_health"]


def test_self_check_fails_without_fixtures(capsys, monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("DOCSFRONT_FIXTURES_PATH", str(tmp_path))
    code = run_self_check("http://127.0.0.1:9")
    output = capsys.readouterr().out
    assert code == 1
    assert "required failures: fixtures" in output


def test_self_check_json_requires_self_check(monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["docsfront", "--self-check-json"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 2


def test_cli_visit_summarizes_page(capsys, monkeypatch) -> None:
    monkeypatch.delenv("DOCSFRONT_FIXTURES_PATH", raising=False)
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "docsfront",
            "--visit",
            "/get-started/foo/for-playwright",
            "--width",
            "1400",
            "--base-url",
            "http://127.0.0.1:9",
        ],
    )
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["url"] == "/en/get-started/foo/for-playwright"
    assert payload["redirects"] == ["/en/get-started/foo/for-playwright"]
    assert payload["title"] == "For Playwright"
    assert payload["layout"] == "xxlarge"


def test_cli_visit_unknown_page(capsys, monkeypatch) -> None:
    monkeypatch.delenv("DOCSFRONT_FIXTURES_PATH", raising=False)
    monkeypatch.setattr(
        sys, "argv", ["docsfront", "--visit", "/en/nowhere", "--base-url", "http://127.0.0.1:9"]
    )
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 1
    assert "not found: /nowhere" in capsys.readouterr().err
